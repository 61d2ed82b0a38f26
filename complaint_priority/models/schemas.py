from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel


class PriorityLevel(str, Enum):
    CRITICAL = "Critical"
    HIGH = "High"
    MEDIUM = "Medium"
    LOW = "Low"


class ImpactLevel(str, Enum):
    CRITICAL = "critical"
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


class ModelState(str, Enum):
    ABSENT = "absent"
    TRAINING = "training"
    READY = "ready"
    FAILED = "failed"


class ComplaintPayload(BaseModel):
    category: str
    description: str
    location: Optional[str] = None


class Tag(BaseModel):
    label: str
    value: str


class PriorityResult(BaseModel):
    score: float
    priority_level: PriorityLevel
    impact_level: Optional[ImpactLevel] = None
    tags: List[Tag]
    is_fallback: bool = False


class HealthResponse(BaseModel):
    status: str
    message: str


class ModelStatus(BaseModel):
    state: ModelState
    feature_size: Optional[int] = None
    vocabulary_size: Optional[int] = None
    category_count: Optional[int] = None
    fallback_count: int = 0
    last_error: Optional[str] = None
    report: Optional[Dict[str, Any]] = None


class ErrorResponse(BaseModel):
    detail: str
    code: str | None = None
    request_id: str | None = None

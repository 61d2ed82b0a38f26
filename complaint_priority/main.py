import asyncio
import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import Depends, FastAPI, HTTPException
from fastapi.middleware.cors import CORSMiddleware
from fastapi.requests import Request
from fastapi.responses import JSONResponse

from complaint_priority.config import settings
from complaint_priority.logging_utils import RequestIDMiddleware, configure_logging, get_request_id
from complaint_priority.models.schemas import (
    ComplaintPayload,
    ErrorResponse,
    HealthResponse,
    ModelStatus,
    PriorityResult,
)
from complaint_priority.models.scorer import PriorityService

# Configure structured logging
configure_logging()
logger = logging.getLogger(__name__)


def _log_warmup_outcome(task: asyncio.Task) -> None:
    if task.cancelled():
        return
    exc = task.exception()
    if exc is not None:
        logger.error("Background warm-up crashed: %s", exc, exc_info=exc)


@asynccontextmanager
async def lifespan(app: FastAPI):
    # Tests may install their own service before startup
    service: Optional[PriorityService] = getattr(app.state, "priority_service", None)
    if service is None:
        service = PriorityService()
        app.state.priority_service = service
    warmup_task = None
    if settings.WARMUP_ON_STARTUP:
        logger.info("Training priority model in background (dataset=%s)", settings.dataset_path)
        warmup_task = asyncio.create_task(service.warmup())
        warmup_task.add_done_callback(_log_warmup_outcome)
    yield
    if warmup_task is not None and not warmup_task.done():
        warmup_task.cancel()
    logger.info("Lifespan shutdown complete")


app = FastAPI(
    title="Municipal Complaint Priority Scorer",
    description="Scores citizen complaints and derives priority, impact and tags",
    version=settings.APP_VERSION,
    lifespan=lifespan,
)

app.add_middleware(CORSMiddleware, allow_origins=["*"], allow_credentials=True, allow_methods=["*"], allow_headers=["*"])
app.add_middleware(RequestIDMiddleware)


def get_service(request: Request) -> PriorityService:
    """Dependency to get the prediction service instance"""
    service = getattr(request.app.state, "priority_service", None)
    if service is None:
        raise HTTPException(status_code=503, detail="Priority service not initialized")
    return service


@app.get("/", response_model=HealthResponse)
async def root():
    return HealthResponse(status="healthy", message="Municipal Complaint Priority Scorer is running")


@app.get("/health/live", response_model=HealthResponse, tags=["health"])
async def liveness():
    return HealthResponse(status="alive", message="Service process responsive")


@app.get("/health/ready", response_model=HealthResponse, tags=["health"])
async def readiness(service: PriorityService = Depends(get_service)):
    # Not ready still serves fallback scores, so this stays 200.
    if service.is_ready:
        return HealthResponse(status="ready", message="Priority model trained")
    return HealthResponse(status="not_ready", message=f"Priority model {service.state.value}")


@app.get("/version")
async def version(service: PriorityService = Depends(get_service)):
    bundle = service.bundle
    return {
        "api_version": settings.APP_VERSION,
        "model_loaded": service.is_ready,
        "training_report": bundle.report.to_dict() if bundle else None,
    }


@app.get("/model/status", response_model=ModelStatus, tags=["model"])
async def model_status(service: PriorityService = Depends(get_service)):
    return service.status()


@app.post("/model/warmup", response_model=ModelStatus, tags=["model"])
async def model_warmup(service: PriorityService = Depends(get_service)):
    await service.warmup()
    return service.status()


@app.post("/priority/predict", response_model=PriorityResult, tags=["inference"])
async def predict_priority(payload: ComplaintPayload, service: PriorityService = Depends(get_service)):
    """Score a complaint; degrades to the fallback result instead of failing"""
    return await service.predict(payload)


@app.exception_handler(HTTPException)
async def http_exception_handler(request: Request, exc: HTTPException):
    return JSONResponse(
        status_code=exc.status_code,
        content=ErrorResponse(
            detail=exc.detail if isinstance(exc.detail, str) else str(exc.detail),
            code=f"HTTP_{exc.status_code}",
            request_id=get_request_id(),
        ).model_dump(),
    )


@app.exception_handler(Exception)
async def unhandled_exception_handler(request: Request, exc: Exception):
    logger.exception("Unhandled exception")
    return JSONResponse(
        status_code=500,
        content=ErrorResponse(
            detail="Internal server error",
            code="INTERNAL_ERROR",
            request_id=get_request_id(),
        ).model_dump(),
    )


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=8000)

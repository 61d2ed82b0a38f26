"""Prediction service: the one object holding the trained scorer.

Cold start contract: the network is trained in-process from the configured
dataset. The host should call ``warmup()`` at startup so that steady-state
``predict`` calls never wait on training. When no model exists yet, the first
``predict`` starts (or joins) the single in-flight training run and waits for
it at most ``TRAINING_TIMEOUT_SEC``. Every concurrent caller awaits the same
run, so training happens once no matter how many requests arrive cold.

``predict`` never raises a ``PriorityError``: failures become the fixed
fallback result (score 0.5, Medium) and bump ``fallback_count``.
"""

from __future__ import annotations

import asyncio
import logging
import math
from functools import lru_cache
from typing import Any, Callable, Mapping, Optional, Union

import numpy as np

from complaint_priority.config import Settings, settings as default_settings
from complaint_priority.errors import (
    EncodingError,
    ModelInferenceError,
    PriorityError,
    TrainingError,
    TrainingTimeoutError,
)
from complaint_priority.models.features import encode_sample
from complaint_priority.models.levels import impact_level_from_score, priority_level_from_score
from complaint_priority.models.schemas import (
    ComplaintPayload,
    ModelState,
    ModelStatus,
    PriorityLevel,
    PriorityResult,
    Tag,
)
from complaint_priority.models.training import ScoringBundle, TrainingConfig, train_from_csv

logger = logging.getLogger(__name__)

FALLBACK_SCORE = 0.5
UNKNOWN_LOCATION = "Unknown"

Trainer = Callable[[], ScoringBundle]


def _consume_exception(run: asyncio.Future) -> None:
    # Waiters may have timed out; the failure is already recorded in last_error.
    if not run.cancelled():
        run.exception()


def build_tags(priority: str, impact: Optional[str], score: float, location: Optional[str]):
    tags = [Tag(label="Priority", value=priority)]
    if impact is not None:
        tags.append(Tag(label="Impact", value=impact.capitalize()))
    tags.append(Tag(label="Urgency Score", value=f"{score:.2f}"))
    tags.append(Tag(label="Location", value=location or UNKNOWN_LOCATION))
    return tags


def _payload_fields(payload: Any) -> dict:
    if isinstance(payload, ComplaintPayload):
        return payload.model_dump()
    if isinstance(payload, Mapping):
        return dict(payload)
    raise EncodingError(f"Unsupported payload type: {type(payload).__name__}")


def fallback_result(location: Optional[str] = None) -> PriorityResult:
    return PriorityResult(
        score=FALLBACK_SCORE,
        priority_level=PriorityLevel.MEDIUM,
        impact_level=None,
        tags=build_tags(PriorityLevel.MEDIUM.value, None, FALLBACK_SCORE, location),
        is_fallback=True,
    )


class PriorityService:
    def __init__(
        self,
        trainer: Optional[Trainer] = None,
        settings: Optional[Settings] = None,
        training_timeout: Optional[float] = None,
    ):
        self.settings = settings or default_settings
        self._trainer: Trainer = trainer or self._train_from_dataset
        self.training_timeout = (
            training_timeout if training_timeout is not None else self.settings.TRAINING_TIMEOUT_SEC
        )
        self._bundle: Optional[ScoringBundle] = None
        self._training: Optional[asyncio.Future] = None
        self.training_runs = 0
        self.fallback_count = 0
        self.last_error: Optional[str] = None

    # ------------------------------ Public API ------------------------------
    @property
    def is_ready(self) -> bool:
        return self._bundle is not None

    @property
    def bundle(self) -> Optional[ScoringBundle]:
        return self._bundle

    @property
    def state(self) -> ModelState:
        if self._bundle is not None:
            return ModelState.READY
        if self._training is not None and not self._training.done():
            return ModelState.TRAINING
        if self.last_error:
            return ModelState.FAILED
        return ModelState.ABSENT

    async def warmup(self) -> None:
        """Start or join training; failures are logged, never raised."""
        try:
            await self._wait_for_model()
        except PriorityError as e:
            logger.error("Priority model warm-up failed: %s", e)

    async def predict(self, payload: Union[ComplaintPayload, Mapping[str, Any]]) -> PriorityResult:
        location = None
        try:
            data = _payload_fields(payload)
            location = data.get("location") if isinstance(data.get("location"), str) else None
            bundle = await self._wait_for_model()
            return self._score(bundle, data.get("category"), data.get("description"), location)
        except PriorityError as e:
            self.fallback_count += 1
            logger.warning(
                "Priority scoring fell back to default: %s",
                e,
                extra={"fallback_count": self.fallback_count},
            )
            return fallback_result(location)

    def status(self) -> ModelStatus:
        bundle = self._bundle
        return ModelStatus(
            state=self.state,
            feature_size=bundle.encoders.feature_size if bundle else None,
            vocabulary_size=bundle.encoders.vocabulary.size if bundle else None,
            category_count=bundle.encoders.category.size if bundle else None,
            fallback_count=self.fallback_count,
            last_error=self.last_error,
            report=bundle.report.to_dict() if bundle else None,
        )

    # --------------------------- Internal Helpers ---------------------------
    def _train_from_dataset(self) -> ScoringBundle:
        return train_from_csv(self.settings.dataset_path, TrainingConfig.from_settings(self.settings))

    def _ensure_training(self) -> asyncio.Future:
        # Memoise the run itself so concurrent cold callers share it.
        if self._training is None:
            self.training_runs += 1
            logger.info("Initializing priority model (run %d)", self.training_runs)
            self._training = asyncio.ensure_future(self._run_training())
            self._training.add_done_callback(_consume_exception)
        return self._training

    async def _run_training(self) -> ScoringBundle:
        try:
            bundle = await asyncio.to_thread(self._trainer)
        except PriorityError as e:
            self._training_failed(e)
            raise
        except Exception as e:
            # Any trainer failure ends this run; the next caller retries.
            err = TrainingError(f"Training failed: {type(e).__name__}: {e}")
            self._training_failed(err)
            raise err from e
        self._bundle = bundle
        self.last_error = None
        logger.info("Priority model ready")
        return bundle

    def _training_failed(self, error: PriorityError) -> None:
        self.last_error = str(error)
        self._training = None

    async def _wait_for_model(self) -> ScoringBundle:
        if self._bundle is not None:
            return self._bundle
        run = self._ensure_training()
        try:
            return await asyncio.wait_for(asyncio.shield(run), timeout=self.training_timeout)
        except asyncio.TimeoutError as e:
            raise TrainingTimeoutError(
                f"Priority model not ready after {self.training_timeout:.1f}s"
            ) from e

    def _score(
        self,
        bundle: ScoringBundle,
        category: Optional[str],
        description: Optional[str],
        location: Optional[str],
    ) -> PriorityResult:
        if not (isinstance(category, str) and category) or not (isinstance(description, str) and description):
            raise EncodingError("Missing required fields: category or description")

        features = encode_sample(category, description, bundle.encoders)
        if np.isnan(features).any():
            raise EncodingError("Invalid feature encoding")

        score = bundle.score_features(features)
        if not math.isfinite(score):
            raise ModelInferenceError(f"Invalid priority score: {score}")

        priority = priority_level_from_score(score)
        impact = impact_level_from_score(score)
        logger.info(
            "Priority prediction for %r: %s/%s (%.3f)",
            str(description)[:50],
            priority.value,
            impact.value,
            score,
            extra={"category": category, "score": round(score, 3)},
        )
        return PriorityResult(
            score=score,
            priority_level=priority,
            impact_level=impact,
            tags=build_tags(priority.value, impact.value, score, location),
        )


@lru_cache()
def get_priority_service() -> PriorityService:
    return PriorityService()


__all__ = ["PriorityService", "get_priority_service", "fallback_result", "build_tags", "FALLBACK_SCORE"]

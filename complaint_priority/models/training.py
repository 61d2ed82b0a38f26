"""Training pipeline for the complaint priority regressor.

Steps:
 - read a delimited dataset with a header row (category, impact, description, priority)
 - drop rows without category/description or with an unparseable priority
 - fit the vocabulary and category index on every usable row
 - hold out ``validation_split`` of the rows and fit ``PriorityNet`` with Adam on
   MSE + L2, shuffling each epoch
 - stop after ``patience`` epochs without improvement of the monitored loss
   (validation loss, or training loss when the corpus is too small to hold out)

The result is a ``ScoringBundle``: encoders, network and a diagnostics report,
always produced and published together.
"""

from __future__ import annotations

import logging
import math
import os
import time
from dataclasses import asdict, dataclass, field
from typing import Any, Dict, List, Optional, Sequence

import numpy as np
import pandas as pd
import torch
from sklearn.model_selection import train_test_split
from torch import nn

from complaint_priority.config import Settings, settings as default_settings
from complaint_priority.errors import DatasetError, ModelInferenceError, TrainingError
from complaint_priority.models.features import Encoders, build_encoders, encode_sample, encode_samples
from complaint_priority.models.levels import band_distribution
from complaint_priority.models.network import PriorityNet, build_model

logger = logging.getLogger(__name__)

REQUIRED_COLUMNS = ("category", "description", "priority")


@dataclass(frozen=True)
class TrainingConfig:
    epochs: int = 200
    batch_size: int = 32
    learning_rate: float = 0.001
    validation_split: float = 0.15
    patience: int = 30
    log_every: int = 25
    seed: int = 42

    @classmethod
    def from_settings(cls, s: Optional[Settings] = None) -> "TrainingConfig":
        s = s or default_settings
        return cls(
            epochs=s.EPOCHS,
            batch_size=s.BATCH_SIZE,
            learning_rate=s.LEARNING_RATE,
            validation_split=s.VALIDATION_SPLIT,
            patience=s.EARLY_STOPPING_PATIENCE,
            log_every=s.LOG_EVERY_EPOCHS,
            seed=s.RANDOM_SEED,
        )


@dataclass
class TrainingReport:
    n_samples: int
    n_train: int
    n_val: int
    feature_size: int
    vocabulary_size: int
    category_count: int
    priority_distribution: Dict[str, int]
    epochs_run: int = 0
    stopped_early: bool = False
    monitor: str = "val_loss"
    best_loss: float = math.inf
    duration_sec: float = 0.0
    history: List[Dict[str, float]] = field(default_factory=list)
    validation_indices: List[int] = field(default_factory=list)

    def to_dict(self, include_indices: bool = False) -> Dict[str, Any]:
        data = asdict(self)
        if not math.isfinite(self.best_loss):
            data["best_loss"] = None
        if not include_indices:
            data.pop("validation_indices")
        return data


@dataclass
class ScoringBundle:
    encoders: Encoders
    model: PriorityNet
    report: TrainingReport

    def score(self, category: str, description: str) -> float:
        features = encode_sample(category, description, self.encoders)
        return self.score_features(features)

    def score_features(self, features: np.ndarray) -> float:
        try:
            with torch.no_grad():
                output = self.model(torch.from_numpy(features).reshape(1, -1))
            return float(output.item())
        except (RuntimeError, ValueError) as e:
            raise ModelInferenceError(f"Forward pass failed: {e}") from e


# ------------------------------ Dataset ---------------------------------
def load_samples(path: str) -> List[Dict[str, Any]]:
    if not os.path.exists(path):
        raise DatasetError(f"Training dataset not found: {path}")
    try:
        df = pd.read_csv(path, dtype=str, keep_default_na=False, skipinitialspace=True)
    except pd.errors.EmptyDataError as e:
        raise DatasetError(f"Training dataset is empty: {path}") from e
    except (OSError, UnicodeDecodeError, pd.errors.ParserError) as e:
        raise DatasetError(f"Failed to read training dataset {path}: {e}") from e
    return samples_from_frame(df)


def samples_from_frame(df: pd.DataFrame) -> List[Dict[str, Any]]:
    df = df.rename(columns=lambda c: str(c).strip())
    missing = [c for c in REQUIRED_COLUMNS if c not in df.columns]
    if missing:
        raise DatasetError(f"Missing required columns: {missing}")
    duplicated = sorted({c for c in df.columns[df.columns.duplicated()] if c in REQUIRED_COLUMNS})
    if duplicated:
        raise DatasetError(f"Ambiguous duplicate columns: {duplicated}")

    frame = pd.DataFrame({
        "category": df["category"].fillna("").astype(str).str.strip(),
        "description": df["description"].fillna("").astype(str).str.strip(),
        "priority": pd.to_numeric(df["priority"], errors="coerce"),
    })
    keep = (frame["category"] != "") & (frame["description"] != "") & frame["priority"].notna()
    dropped = int((~keep).sum())
    if dropped:
        logger.warning("Dropped %d unusable training rows", dropped)
    frame = frame[keep]
    return [
        {"category": row.category, "description": row.description, "priority": float(row.priority)}
        for row in frame.itertuples(index=False)
    ]


# ------------------------------ Fitting ---------------------------------
def _batches(order: torch.Tensor, batch_size: int) -> List[torch.Tensor]:
    chunks = list(torch.split(order, batch_size))
    # BatchNorm cannot normalise a single row in training mode
    if len(chunks) > 1 and len(chunks[-1]) == 1:
        tail = chunks.pop()
        chunks[-1] = torch.cat([chunks[-1], tail])
    return chunks


def _split(n: int, config: TrainingConfig):
    n_val = int(n * config.validation_split)
    indices = np.arange(n)
    if n_val == 0 or n - n_val < 2:
        return indices, np.array([], dtype=int)
    train_idx, val_idx = train_test_split(indices, test_size=n_val, random_state=config.seed, shuffle=True)
    return np.sort(train_idx), np.sort(val_idx)


def fit(
    model: PriorityNet,
    x_train: torch.Tensor,
    y_train: torch.Tensor,
    x_val: Optional[torch.Tensor],
    y_val: Optional[torch.Tensor],
    config: TrainingConfig,
    report: TrainingReport,
) -> None:
    optimizer = torch.optim.Adam(model.parameters(), lr=config.learning_rate)
    loss_fn = nn.MSELoss()
    generator = torch.Generator().manual_seed(config.seed)
    n = x_train.shape[0]
    report.monitor = "val_loss" if x_val is not None else "loss"
    wait = 0

    for epoch in range(config.epochs):
        model.train()
        total_loss = 0.0
        total_abs = 0.0
        for idx in _batches(torch.randperm(n, generator=generator), config.batch_size):
            xb, yb = x_train[idx], y_train[idx]
            optimizer.zero_grad()
            pred = model(xb)
            loss = loss_fn(pred, yb) + model.l2_penalty()
            loss.backward()
            optimizer.step()
            total_loss += loss.item() * len(idx)
            total_abs += (pred.detach() - yb).abs().sum().item()

        logs = {"epoch": epoch, "loss": total_loss / n, "mae": total_abs / n}
        if x_val is not None:
            model.eval()
            with torch.no_grad():
                logs["val_loss"] = (loss_fn(model(x_val), y_val) + model.l2_penalty()).item()
        report.history.append(logs)
        report.epochs_run = epoch + 1

        current = logs[report.monitor]
        if not math.isfinite(current):
            raise TrainingError(f"{report.monitor} diverged at epoch {epoch}: {current}")
        if current < report.best_loss:
            report.best_loss = current
            wait = 0
        else:
            wait += 1

        if epoch % config.log_every == 0 or epoch == config.epochs - 1:
            logger.info(
                "Epoch %d: loss=%.4f, val_loss=%s, mae=%.4f",
                epoch,
                logs["loss"],
                f"{logs['val_loss']:.4f}" if "val_loss" in logs else "n/a",
                logs["mae"],
                extra={"epoch": epoch, "loss": logs["loss"], "val_loss": logs.get("val_loss"), "mae": logs["mae"]},
            )

        if wait >= config.patience:
            report.stopped_early = True
            logger.info("Early stopping at epoch %d. Best %s: %.4f", epoch, report.monitor, report.best_loss)
            break

    model.eval()


def train_priority_model(samples: Sequence[Dict[str, Any]], config: Optional[TrainingConfig] = None) -> ScoringBundle:
    config = config or TrainingConfig.from_settings()
    if len(samples) < 2:
        raise DatasetError(f"Need at least 2 usable training rows, got {len(samples)}")

    start = time.perf_counter()
    np.random.seed(config.seed)
    logger.info("Training priority model on %d complaint samples", len(samples))

    encoders = build_encoders(samples)
    features = encode_samples(samples, encoders)
    labels = np.array([[s["priority"]] for s in samples], dtype=np.float32)
    if not np.isfinite(features).all():
        raise TrainingError("Non-finite values in encoded training features")

    train_idx, val_idx = _split(len(samples), config)
    report = TrainingReport(
        n_samples=len(samples),
        n_train=len(train_idx),
        n_val=len(val_idx),
        feature_size=int(features.shape[1]),
        vocabulary_size=encoders.vocabulary.size,
        category_count=encoders.category.size,
        priority_distribution=band_distribution(float(s["priority"]) for s in samples),
        validation_indices=[int(i) for i in val_idx],
    )
    logger.info("Feature vector size: %d", report.feature_size)
    logger.info("Sample priority distribution: %s", report.priority_distribution)

    x = torch.from_numpy(features)
    y = torch.from_numpy(labels)
    train_idx = torch.as_tensor(train_idx, dtype=torch.long)
    val_idx = torch.as_tensor(val_idx, dtype=torch.long)
    model = build_model(report.feature_size, seed=config.seed)
    has_val = len(val_idx) > 0
    try:
        fit(
            model,
            x[train_idx],
            y[train_idx],
            x[val_idx] if has_val else None,
            y[val_idx] if has_val else None,
            config,
            report,
        )
    except RuntimeError as e:
        raise TrainingError(f"Training failed: {e}") from e

    report.duration_sec = round(time.perf_counter() - start, 3)
    logger.info("Priority model training completed in %.1fs after %d epochs", report.duration_sec, report.epochs_run)
    return ScoringBundle(encoders=encoders, model=model, report=report)


def train_from_csv(path: str, config: Optional[TrainingConfig] = None) -> ScoringBundle:
    return train_priority_model(load_samples(path), config)


__all__ = [
    "TrainingConfig",
    "TrainingReport",
    "ScoringBundle",
    "load_samples",
    "samples_from_frame",
    "fit",
    "train_priority_model",
    "train_from_csv",
]

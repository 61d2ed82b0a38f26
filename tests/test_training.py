import pandas as pd
import pytest
import torch

from complaint_priority.errors import DatasetError
from complaint_priority.models.levels import priority_level_from_score
from complaint_priority.models.network import L2_PENALTY, build_model
from complaint_priority.models.scorer import PriorityService
from complaint_priority.models.training import (
    TrainingConfig,
    _batches,
    load_samples,
    samples_from_frame,
    train_priority_model,
)


def _write_csv(path, text):
    path.write_text(text, encoding="utf-8")
    return str(path)


# ------------------------------ Network ---------------------------------
def test_network_output_is_bounded():
    model = build_model(10, seed=0)
    model.eval()
    with torch.no_grad():
        out = model(torch.randn(4, 10))
    assert out.shape == (4, 1)
    assert torch.all((out > 0) & (out < 1))


def test_l2_penalty_covers_the_two_wide_layers():
    model = build_model(6, seed=0)
    expected = L2_PENALTY * (model.dense1.weight.pow(2).sum() + model.dense2.weight.pow(2).sum())
    assert model.l2_penalty().item() == pytest.approx(expected.item())


def test_trailing_single_row_batch_is_merged():
    chunks = _batches(torch.arange(33), 32)
    assert [len(c) for c in chunks] == [33]
    assert [len(c) for c in _batches(torch.arange(40), 32)] == [32, 8]


# ------------------------------ Dataset ---------------------------------
def test_load_samples_drops_unusable_rows(tmp_path):
    path = _write_csv(tmp_path / "complaints.csv", (
        "category,impact,description,priority\n"
        "water_supply,critical,Burst water main,0.95\n"
        ",low,No category here,0.2\n"
        "roads,low,,0.2\n"
        "roads,low,Pothole on the corner,not-a-number\n"
        "drainage,high,\"Blocked drain, flooding the lane\",0.8\n"
    ))
    samples = load_samples(path)
    assert samples == [
        {"category": "water_supply", "description": "Burst water main", "priority": 0.95},
        {"category": "drainage", "description": "Blocked drain, flooding the lane", "priority": 0.8},
    ]


def test_missing_dataset_raises(tmp_path):
    with pytest.raises(DatasetError, match="not found"):
        load_samples(str(tmp_path / "nope.csv"))


def test_empty_dataset_raises(tmp_path):
    with pytest.raises(DatasetError, match="empty"):
        load_samples(_write_csv(tmp_path / "empty.csv", ""))


def test_missing_columns_raise():
    with pytest.raises(DatasetError, match="Missing required columns"):
        samples_from_frame(pd.DataFrame({"category": ["roads"], "description": ["Pothole"]}))


def test_duplicate_columns_raise(tmp_path):
    path = _write_csv(tmp_path / "dup.csv", (
        "category,category ,description,priority\n"
        "roads,water_supply,Pothole near the bus stop,0.3\n"
    ))
    with pytest.raises(DatasetError, match="duplicate"):
        load_samples(path)


def test_header_only_dataset_cannot_train(tmp_path):
    samples = load_samples(_write_csv(tmp_path / "header.csv", "category,impact,description,priority\n"))
    assert samples == []
    with pytest.raises(DatasetError):
        train_priority_model(samples, TrainingConfig(epochs=1))


def test_single_sample_cannot_train():
    with pytest.raises(DatasetError, match="at least 2"):
        train_priority_model([{"category": "roads", "description": "Pothole", "priority": 0.2}], TrainingConfig(epochs=1))


# ------------------------------ Fitting ---------------------------------
def test_training_produces_consistent_bundle(trained_bundle, sample_complaints, fast_config):
    report = trained_bundle.report
    encoders = trained_bundle.encoders
    assert report.n_samples == len(sample_complaints)
    assert report.n_val == int(len(sample_complaints) * fast_config.validation_split)
    assert report.n_train + report.n_val == report.n_samples
    assert report.feature_size == 3 + min(35, encoders.vocabulary.size)
    assert encoders.vocabulary.size <= 60
    assert 1 <= report.epochs_run <= fast_config.epochs
    assert len(report.history) == report.epochs_run
    assert report.monitor == "val_loss"
    assert "val_loss" in report.history[0]
    assert sum(report.priority_distribution.values()) == report.n_samples
    assert not trained_bundle.model.training


def test_scores_are_bounded(trained_bundle, sample_complaints):
    for sample in sample_complaints[:20]:
        score = trained_bundle.score(sample["category"], sample["description"])
        assert 0.0 <= score <= 1.0


def test_early_stopping_halts_before_max_epochs(sample_complaints):
    config = TrainingConfig(epochs=200, batch_size=16, patience=1, log_every=50, seed=3)
    bundle = train_priority_model(sample_complaints[:60], config)
    assert bundle.report.stopped_early
    assert bundle.report.epochs_run < 200


def test_report_serializes_without_indices(trained_bundle):
    data = trained_bundle.report.to_dict()
    assert "validation_indices" not in data
    assert data["best_loss"] is not None
    assert "validation_indices" in trained_bundle.report.to_dict(include_indices=True)


TINY_CORPUS = [
    {"category": "water_supply", "description": "Burst water main flooding the street", "priority": 0.95},
    {"category": "roads", "description": "Small pothole near the corner", "priority": 0.2},
]


def test_tiny_corpus_scenario():
    """Two-row corpus: burst/flooding water complaint ranks High or above, minor road one stays low"""
    bundle = train_priority_model(TINY_CORPUS, TrainingConfig())
    assert bundle.report.n_val == 0
    assert bundle.report.monitor == "loss"

    urgent = bundle.score("water_supply", "Burst pipe flooding area")
    minor = bundle.score("roads", "tiny crack")
    assert priority_level_from_score(urgent).value in ("High", "Critical")
    assert priority_level_from_score(minor).value in ("Low", "Medium")


@pytest.mark.asyncio
async def test_tiny_corpus_scenario_through_service():
    bundle = train_priority_model(TINY_CORPUS, TrainingConfig())
    service = PriorityService(trainer=lambda: bundle, training_timeout=30)

    urgent = await service.predict({"category": "water_supply", "description": "Burst pipe flooding area"})
    minor = await service.predict({"category": "roads", "description": "tiny crack"})
    assert not urgent.is_fallback and not minor.is_fallback
    assert urgent.priority_level.value in ("High", "Critical")
    assert urgent.impact_level.value in ("high", "critical")
    assert minor.priority_level.value in ("Low", "Medium")
    assert minor.impact_level.value in ("low", "medium")

#!/usr/bin/env python3

import sys
import os
import json
import hashlib
import argparse
from dataclasses import replace
from pathlib import Path
from datetime import datetime, timezone

import numpy as np
from sklearn.metrics import accuracy_score, mean_absolute_error

# Add the project root to the Python path
project_root = Path(__file__).parent
sys.path.insert(0, str(project_root))

from complaint_priority.config import settings
from complaint_priority.errors import PriorityError
from complaint_priority.logging_utils import configure_logging
from complaint_priority.models.levels import band_distribution, impact_level_from_score
from complaint_priority.models.training import TrainingConfig, load_samples, train_priority_model
from data.generate_dataset import save_sample_dataset


def _hash_file(path: str) -> str:
    h = hashlib.sha256()
    with open(path, 'rb') as f:
        for chunk in iter(lambda: f.read(8192), b''):
            h.update(chunk)
    return h.hexdigest()


def evaluate(bundle, samples, indices):
    """MAE and impact-band agreement of the trained network on the given rows"""
    if not indices:
        return {}
    y_true = [samples[i]["priority"] for i in indices]
    y_pred = [bundle.score(samples[i]["category"], samples[i]["description"]) for i in indices]
    return {
        'n_samples': len(indices),
        'mae': float(mean_absolute_error(y_true, y_pred)),
        'impact_accuracy': float(accuracy_score(
            [impact_level_from_score(s).value for s in y_true],
            [impact_level_from_score(s).value for s in y_pred],
        )),
    }


def train_model(data_path: str, n_samples: int = 1500, epochs: int | None = None,
                patience: int | None = None, report_path: str | None = None):
    """Train the priority network on a CSV and print diagnostics.

    Parameters:
        data_path: CSV with columns category, impact, description, priority
        n_samples: size of the synthetic dataset generated when data_path is missing
        epochs / patience: overrides for the configured fit loop
        report_path: optional JSON file receiving the training report and metrics
    """
    config = TrainingConfig.from_settings(settings)
    if epochs is not None:
        config = replace(config, epochs=epochs)
    if patience is not None:
        config = replace(config, patience=patience)

    print(f"Training priority model with data from: {data_path}")
    print(f"Training config: {config}")

    if not os.path.exists(data_path):
        print(f"Data file not found: {data_path}")
        print("Generating sample dataset...")
        os.makedirs(os.path.dirname(data_path) or ".", exist_ok=True)
        save_sample_dataset(data_path, n_samples, seed=config.seed)

    samples = load_samples(data_path)
    print(f"Loaded {len(samples)} usable complaints")
    print(f"Priority distribution: {band_distribution(s['priority'] for s in samples)}")

    bundle = train_priority_model(samples, config)
    report = bundle.report
    print(f"Feature vector size: {report.feature_size} | vocabulary: {report.vocabulary_size} | categories: {report.category_count}")
    print(f"Training samples: {report.n_train} | Validation samples: {report.n_val}")
    print(f"Epochs run: {report.epochs_run} (early stop: {report.stopped_early}) best {report.monitor}={report.best_loss:.4f}")

    metrics = evaluate(bundle, samples, report.validation_indices)
    if metrics:
        print(f"Validation MAE: {metrics['mae']:.4f} | impact agreement: {metrics['impact_accuracy']:.3f}")

    if report_path:
        payload = {
            'created_at': datetime.now(timezone.utc).isoformat(),
            'data_path': data_path,
            'data_sha256': _hash_file(data_path),
            'report': report.to_dict(),
            'validation_metrics': metrics,
        }
        Path(report_path).parent.mkdir(parents=True, exist_ok=True)
        with open(report_path, 'w', encoding='utf-8') as f:
            json.dump(payload, f, indent=2)
        print(f"Training report written to {report_path}")

    print("\nTesting with sample predictions:")
    test_cases = [
        ("water_supply", "Burst pipe flooding the main road near the school"),
        ("roads", "Small crack in the footpath"),
        ("electricity", "Sparking wires hanging over the bus stop"),
    ]
    for category, description in test_cases:
        score = bundle.score(category, description)
        print(f"[{category}] {description}")
        print(f"  -> score: {score:.3f} impact: {impact_level_from_score(score).value}")
    return bundle


def main():
    parser = argparse.ArgumentParser(
        description="Train the complaint priority network",
        epilog="When --data does not exist a synthetic dataset is generated there first; "
               "the API service trains from the same configured path at startup.",
    )
    parser.add_argument(
        "--data",
        default=settings.dataset_path,
        help="Path to the training data CSV file"
    )
    parser.add_argument(
        "--samples",
        type=int,
        default=1500,
        help="Rows to generate when the data file does not exist"
    )
    parser.add_argument("--epochs", type=int, default=None, help="Override the maximum number of epochs")
    parser.add_argument("--patience", type=int, default=None, help="Override early stopping patience")
    parser.add_argument("--report", default=None, help="Write a JSON training report to this path")

    args = parser.parse_args()
    configure_logging()
    np.random.seed(settings.RANDOM_SEED)

    try:
        train_model(args.data, args.samples, args.epochs, args.patience, args.report)
    except PriorityError as e:
        print(f"Error during training: {e}")
        sys.exit(1)


if __name__ == "__main__":
    main()

import sys
from pathlib import Path

import pytest

# Add project root to path
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

from complaint_priority.models.training import TrainingConfig, samples_from_frame, train_priority_model
from data.generate_dataset import generate_sample_dataset


@pytest.fixture(scope="session")
def sample_complaints():
    """Small synthetic corpus shared by the training-heavy tests"""
    return samples_from_frame(generate_sample_dataset(120, seed=7))


@pytest.fixture(scope="session")
def fast_config():
    return TrainingConfig(epochs=15, batch_size=16, patience=15, log_every=5, seed=7)


@pytest.fixture(scope="session")
def trained_bundle(sample_complaints, fast_config):
    """A bundle trained once per session"""
    return train_priority_model(sample_complaints, fast_config)

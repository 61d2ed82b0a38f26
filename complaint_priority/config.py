import os
from functools import lru_cache

from pydantic_settings import BaseSettings

PROJECT_ROOT = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))


class Settings(BaseSettings):
    """Service settings read from the environment or ``.env``.

    The training CSV is not shipped. Create it with ``python train.py``
    (generates a synthetic corpus at the configured path when missing) or
    ``python data/generate_dataset.py``. Until it exists the service answers
    with fallback results. A relative ``DATASET_DIR`` is resolved against the
    project root, not the working directory.
    """

    # Reported by /version
    APP_VERSION: str = "1.0.0"
    # Directory holding the training corpora
    DATASET_DIR: str = "data"
    # Full municipal corpus and the small synthetic one
    DATASET_FILE: str = "municipal_complaints_training.csv"
    TEST_DATASET_FILE: str = "test_data.csv"
    USE_TEST_DATA: bool = False
    # Fit loop
    EPOCHS: int = 200
    BATCH_SIZE: int = 32
    LEARNING_RATE: float = 0.001
    VALIDATION_SPLIT: float = 0.15
    EARLY_STOPPING_PATIENCE: int = 30
    LOG_EVERY_EPOCHS: int = 25
    # Random seed for reproducibility
    RANDOM_SEED: int = 42
    # How long a caller may wait on an in-flight training run
    TRAINING_TIMEOUT_SEC: float = 600.0
    # Start training in the background when the host process boots
    WARMUP_ON_STARTUP: bool = True

    class Config:
        env_file = ".env"
        case_sensitive = True

    @property
    def dataset_path(self) -> str:
        name = self.TEST_DATASET_FILE if self.USE_TEST_DATA else self.DATASET_FILE
        base = self.DATASET_DIR if os.path.isabs(self.DATASET_DIR) else os.path.join(PROJECT_ROOT, self.DATASET_DIR)
        return os.path.join(base, name)


@lru_cache()
def get_settings() -> Settings:
    return Settings()


settings = get_settings()

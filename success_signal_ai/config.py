"""Configuration loaded from environment variables."""

import os
from pathlib import Path

from dotenv import load_dotenv

# Load .env: try package dir then project root
_base = Path(__file__).resolve().parent
for _env_path in (_base / ".env", _base.parent / ".env"):
    if load_dotenv(_env_path):
        break
load_dotenv()  # also allow process env

# Storage locations
DATA_DIR: Path = Path(os.getenv("SUCCESS_SIGNAL_DATA_DIR", str(_base.parent / "data")))
MODEL_DIR: Path = Path(os.getenv("SUCCESS_SIGNAL_MODEL_DIR", str(DATA_DIR / "model")))
TRAINING_DATA_FILE: Path = DATA_DIR / "training_data.json"

LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO").upper()

# Storage / persistence timeouts
STORAGE_TIMEOUT_SECONDS: float = float(os.getenv("STORAGE_TIMEOUT_SECONDS", "10"))

# Training data
MIN_TRAINING_SAMPLES: int = int(os.getenv("MIN_TRAINING_SAMPLES", "30"))
RECOMMENDED_TRAINING_SAMPLES: int = 100
TEST_SPLIT_RATIO: float = 0.2
MIN_DESCRIPTION_LENGTH: int = 50

# Model / training defaults
MODEL_VERSION: str = "1.0"
TRAINING_EPOCHS: int = int(os.getenv("TRAINING_EPOCHS", "100"))
TRAINING_BATCH_SIZE: int = int(os.getenv("TRAINING_BATCH_SIZE", "32"))
LEARNING_RATE: float = float(os.getenv("LEARNING_RATE", "0.001"))
VALIDATION_SPLIT: float = 0.2
EARLY_STOPPING_PATIENCE: int = 10

# Prediction service
PREDICTION_HISTORY_LIMIT: int = 100
COMPARISON_SAMPLE_SIZE: int = 10

# Minimum acceptable model performance (pipeline validation gate)
PERFORMANCE_THRESHOLDS: dict = {
    "accuracy": 0.65,
    "precision": 0.60,
    "recall": 0.60,
    "f1_score": 0.60,
    "auc": 0.70,
}

# Hyperparameter grid searched by the training pipeline
HYPERPARAMETER_GRID: dict = {
    "learning_rate": [0.0001, 0.001, 0.01],
    "batch_size": [16, 32, 64],
}

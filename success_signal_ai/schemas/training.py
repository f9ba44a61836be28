"""Training options, metrics and persisted model metadata."""

from datetime import datetime
from typing import Dict, List, Optional

from pydantic import BaseModel, Field

from success_signal_ai.config import (
    EARLY_STOPPING_PATIENCE,
    LEARNING_RATE,
    MODEL_VERSION,
    TRAINING_BATCH_SIZE,
    TRAINING_EPOCHS,
    VALIDATION_SPLIT,
)
from success_signal_ai.schemas.feature_vector import FEATURE_SCHEMA, FEATURE_SCHEMA_VERSION


class TrainingOptions(BaseModel):
    epochs: int = Field(default=TRAINING_EPOCHS, ge=1)
    batch_size: int = Field(default=TRAINING_BATCH_SIZE, ge=1)
    validation_split: float = Field(default=VALIDATION_SPLIT, ge=0.0, lt=1.0)
    early_stopping_patience: int = Field(default=EARLY_STOPPING_PATIENCE, ge=1)
    learning_rate: float = Field(default=LEARNING_RATE, gt=0.0)
    class_weight: Optional[Dict[int, float]] = Field(
        default=None, description="Loss weight per class; computed from the training labels when None"
    )
    seed: Optional[int] = Field(default=None, description="Seed for weight init, shuffling and dropout")
    verbose: bool = False


class FeatureStats(BaseModel):
    """Per-feature z-score statistics, frozen at training time."""

    mean: List[float]
    std: List[float]


class ConfusionMatrix(BaseModel):
    tp: int = 0
    fp: int = 0
    tn: int = 0
    fn: int = 0


class EvaluationMetrics(BaseModel):
    confusion_matrix: ConfusionMatrix
    precision: float
    recall: float
    f1_score: float
    accuracy: float
    auc: float
    loss: Optional[float] = None
    total_samples: int


class EpochLog(BaseModel):
    epoch: int
    loss: float
    accuracy: float
    val_loss: Optional[float] = None
    val_accuracy: Optional[float] = None


class ModelMetadata(BaseModel):
    version: str = MODEL_VERSION
    feature_schema_version: str = FEATURE_SCHEMA_VERSION
    feature_names: List[str] = Field(default_factory=lambda: list(FEATURE_SCHEMA))
    trained_at: Optional[datetime] = None
    training_size: int = 0
    validation_size: int = 0
    epochs: int = 0
    class_weight: Dict[int, float] = Field(default_factory=dict)
    performance: Optional[EvaluationMetrics] = None


class TrainingResult(BaseModel):
    history: List[EpochLog] = Field(default_factory=list)
    metadata: ModelMetadata
    stopped_early: bool = False
    best_epoch: int = 0

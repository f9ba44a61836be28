"""Training pipeline configuration, status and report."""

from datetime import datetime
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field

from success_signal_ai.config import (
    EARLY_STOPPING_PATIENCE,
    LEARNING_RATE,
    MIN_TRAINING_SAMPLES,
    TRAINING_BATCH_SIZE,
    TRAINING_EPOCHS,
    VALIDATION_SPLIT,
)
from success_signal_ai.schemas.dataset import ClassBalance
from success_signal_ai.schemas.training import ConfusionMatrix, EvaluationMetrics

REPORT_VERSION = "1.0"


class PipelineConfig(BaseModel):
    min_samples: int = Field(default=MIN_TRAINING_SAMPLES, ge=1)
    validation_split: float = Field(default=VALIDATION_SPLIT, gt=0.0, lt=1.0)
    epochs: int = Field(default=TRAINING_EPOCHS, ge=1)
    batch_size: int = Field(default=TRAINING_BATCH_SIZE, ge=1)
    learning_rate: float = Field(default=LEARNING_RATE, gt=0.0)
    early_stopping_patience: int = Field(default=EARLY_STOPPING_PATIENCE, ge=1)
    hyperparameter_tuning: bool = False
    seed: Optional[int] = Field(default=None, description="Seeds the split, training and permutation importance")


class PipelineStatus(BaseModel):
    is_running: bool = False
    current_stage: Optional[str] = None
    progress: int = 0
    error: Optional[str] = None


class DataStatisticsSummary(BaseModel):
    total_applications: int
    completed_applications: int
    success_rate: float
    class_balance: Optional[ClassBalance] = None
    cleaned_samples: int
    removed_samples: int


class DataQualitySummary(BaseModel):
    is_valid: bool
    completeness: float
    issue_count: int


class TrainingSummary(BaseModel):
    training_samples: int
    validation_samples: int
    epochs: int
    best_epoch: int
    stopped_early: bool
    learning_rate: float
    batch_size: int
    final_loss: Optional[float] = None
    final_accuracy: Optional[float] = None
    final_val_loss: Optional[float] = None
    final_val_accuracy: Optional[float] = None


class EvaluationSummary(BaseModel):
    accuracy: float
    precision: float
    recall: float
    f1_score: float
    auc: float
    confusion_matrix: ConfusionMatrix


class FeatureImportanceScore(BaseModel):
    feature: str
    importance: float = Field(..., description="Drop in accuracy when the feature is shuffled")
    rank: int


class ModelSummary(BaseModel):
    architecture: Dict[str, Any]
    trained_at: Optional[datetime] = None


class PipelineRecommendation(BaseModel):
    type: str = Field(..., description="data, model or success")
    priority: str = Field(..., description="high, medium or info")
    message: str


class TrainingReport(BaseModel):
    version: str = REPORT_VERSION
    generated_at: datetime
    duration: float = Field(..., description="Seconds")
    configuration: PipelineConfig
    data_statistics: DataStatisticsSummary
    data_quality: DataQualitySummary
    training: TrainingSummary
    evaluation: EvaluationSummary
    feature_importance: List[FeatureImportanceScore] = Field(default_factory=list)
    model: ModelSummary
    recommendations: List[PipelineRecommendation] = Field(default_factory=list)


class HyperparameterTrial(BaseModel):
    learning_rate: float
    batch_size: int
    accuracy: float


class TuningResult(BaseModel):
    best_learning_rate: float
    best_batch_size: int
    best_accuracy: float
    trials: List[HyperparameterTrial] = Field(default_factory=list)


class PerformanceValidation(BaseModel):
    passed: bool
    checks: Dict[str, bool]
    requirements: Dict[str, float]
    evaluation: EvaluationMetrics
    message: str

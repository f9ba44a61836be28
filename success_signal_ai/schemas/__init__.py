"""Schema exports."""

from .application import (
    ApplicationContext,
    Outcome,
    OutcomeStatus,
    OutcomeUpdate,
    TrainingRecord,
)
from .dataset import DataQualityReport, DatasetStatistics, SplitResult, TrainingDataset
from .feature_vector import (
    FEATURE_IMPORTANCE,
    FEATURE_POLICIES,
    FEATURE_SCHEMA,
    FEATURE_SCHEMA_VERSION,
    FeatureDetails,
    FeatureVector,
)
from .feedback import Feedback
from .job_posting import JobPosting, SalaryRange
from .prediction import BatchPredictionItem, ModelPrediction, Prediction, QuickMatch
from .report import PipelineConfig, PipelineStatus, TrainingReport
from .resume import Education, Experience, Preferences, Resume
from .training import EvaluationMetrics, ModelMetadata, TrainingOptions, TrainingResult

__all__ = [
    "JobPosting",
    "SalaryRange",
    "Resume",
    "Experience",
    "Education",
    "Preferences",
    "ApplicationContext",
    "Outcome",
    "OutcomeStatus",
    "OutcomeUpdate",
    "TrainingRecord",
    "FEATURE_SCHEMA",
    "FEATURE_SCHEMA_VERSION",
    "FEATURE_POLICIES",
    "FEATURE_IMPORTANCE",
    "FeatureDetails",
    "FeatureVector",
    "ModelPrediction",
    "Prediction",
    "BatchPredictionItem",
    "QuickMatch",
    "Feedback",
    "TrainingDataset",
    "SplitResult",
    "DataQualityReport",
    "DatasetStatistics",
    "TrainingOptions",
    "TrainingResult",
    "EvaluationMetrics",
    "ModelMetadata",
    "PipelineConfig",
    "PipelineStatus",
    "TrainingReport",
]

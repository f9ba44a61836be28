"""Service exports."""

from .feedback_service import FeedbackGenerator, generate_feedback
from .prediction_service import PredictionService
from .training_pipeline import TrainingPipeline

__all__ = [
    "PredictionService",
    "FeedbackGenerator",
    "generate_feedback",
    "TrainingPipeline",
]

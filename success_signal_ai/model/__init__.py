"""Classifier model: network, metrics and persistence."""

from .classifier import ApplicationSuccessModel, compute_class_weights, compute_feature_stats, to_feature_matrix
from .metrics import evaluate_predictions, roc_auc
from .network import SuccessNet
from .persistence import ModelStore

__all__ = [
    "ApplicationSuccessModel",
    "ModelStore",
    "SuccessNet",
    "compute_class_weights",
    "compute_feature_stats",
    "to_feature_matrix",
    "evaluate_predictions",
    "roc_auc",
]

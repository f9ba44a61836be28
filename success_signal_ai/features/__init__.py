"""Feature engineering: job posting + resume + context -> FeatureVector."""

from success_signal_ai.features.builder import coerce_model, extract_features
from success_signal_ai.schemas.feature_vector import (
    FEATURE_IMPORTANCE,
    FEATURE_POLICIES,
    FEATURE_SCHEMA,
    FEATURE_SCHEMA_VERSION,
    categorize_feature,
    get_feature_names,
)

__all__ = [
    "extract_features",
    "coerce_model",
    "FEATURE_SCHEMA",
    "FEATURE_SCHEMA_VERSION",
    "FEATURE_POLICIES",
    "FEATURE_IMPORTANCE",
    "get_feature_names",
    "categorize_feature",
]

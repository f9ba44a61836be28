"""Application success prediction: feature extraction, classifier, training data and feedback."""

__version__ = "0.1.0"

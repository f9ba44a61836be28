"""Exception types raised across the prediction pipeline."""


class SuccessSignalError(Exception):
    """Base class for all pipeline errors."""


class InsufficientDataError(SuccessSignalError):
    """Fewer labeled samples than the training minimum."""

    def __init__(self, available: int, required: int):
        self.available = available
        self.required = required
        super().__init__(
            f"Insufficient training data: {available} samples (need at least {required})"
        )


class ModelNotLoadedError(SuccessSignalError):
    """Prediction requested before a model was trained or loaded."""


class AlreadyTrainingError(SuccessSignalError):
    """A training run is already in progress on this instance."""


class TrainingAbortedError(SuccessSignalError):
    """Training was cancelled through its abort signal."""


class InvalidRecordError(SuccessSignalError):
    """A record or import payload failed validation."""


class NotFoundError(SuccessSignalError):
    """Referenced record id does not exist."""


class ModelPersistenceError(SuccessSignalError):
    """Saving or loading model files failed."""


class StorageTimeoutError(SuccessSignalError):
    """A storage operation exceeded its timeout."""

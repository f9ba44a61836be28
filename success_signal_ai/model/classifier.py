"""Application success classifier: training, prediction, evaluation and persistence."""

import asyncio
import copy
import threading
from typing import Any, Dict, List, NamedTuple, Optional, Sequence, Tuple

import numpy as np
import torch
import torch.nn as nn

from success_signal_ai.config import MIN_TRAINING_SAMPLES
from success_signal_ai.errors import (
    AlreadyTrainingError,
    InsufficientDataError,
    ModelNotLoadedError,
    ModelPersistenceError,
    TrainingAbortedError,
)
from success_signal_ai.model.metrics import evaluate_predictions
from success_signal_ai.model.network import SuccessNet
from success_signal_ai.model.persistence import ModelStore
from success_signal_ai.schemas.feature_vector import FEATURE_COUNT, FEATURE_SCHEMA, FeatureVector
from success_signal_ai.schemas.prediction import ModelPrediction
from success_signal_ai.schemas.training import (
    EpochLog,
    EvaluationMetrics,
    FeatureStats,
    ModelMetadata,
    TrainingOptions,
    TrainingResult,
)
from success_signal_ai.utils.date_parser import utc_now
from success_signal_ai.utils.logger import get_logger

logger = get_logger(__name__)

DECISION_THRESHOLD = 0.5
# Minimum improvement in the monitored loss that resets early-stopping patience
MIN_LOSS_DELTA = 1e-6


class _ModelState(NamedTuple):
    """Everything predict() reads. Replaced as a whole, never mutated."""

    network: SuccessNet
    mean: np.ndarray
    std: np.ndarray
    metadata: ModelMetadata


def to_feature_matrix(features: Any) -> np.ndarray:
    """
    Accept FeatureVectors, name -> value dicts, rows of FEATURE_COUNT numbers or an array,
    and return an (n, FEATURE_COUNT) float32 matrix in schema order.
    """
    if isinstance(features, np.ndarray):
        matrix = features.astype(np.float32)
    else:
        rows = []
        for item in features:
            if isinstance(item, FeatureVector):
                rows.append(item.to_array())
            elif isinstance(item, dict):
                rows.append(FeatureVector.from_values(item).to_array())
            else:
                rows.append(np.asarray(item, dtype=np.float32))
        matrix = np.stack(rows) if rows else np.zeros((0, FEATURE_COUNT), dtype=np.float32)
    if matrix.ndim == 1:
        matrix = matrix.reshape(1, -1)
    if matrix.shape[1] != FEATURE_COUNT:
        raise ValueError(f"Expected {FEATURE_COUNT} features per sample, got {matrix.shape[1]}")
    return matrix


def compute_feature_stats(x: np.ndarray) -> Tuple[np.ndarray, np.ndarray]:
    """Column mean and population std; zero std becomes 1."""
    mean = x.mean(axis=0)
    std = x.std(axis=0)
    std[std == 0] = 1.0
    return mean.astype(np.float32), std.astype(np.float32)


def compute_class_weights(labels: np.ndarray) -> Dict[int, float]:
    """total / (2 * count) per class; 1.0 for a class with no samples."""
    total = len(labels)
    weights = {}
    for cls in (0, 1):
        count = int(np.sum(labels == cls))
        weights[cls] = total / (2.0 * count) if count else 1.0
    return weights


class ApplicationSuccessModel:
    """
    Binary classifier over FeatureVectors. Training runs in a worker thread and is exclusive
    per instance; prediction reads an immutable snapshot and may run concurrently with training.
    """

    def __init__(self, store: Optional[ModelStore] = None, min_samples: int = MIN_TRAINING_SAMPLES):
        self.store = store or ModelStore()
        self.min_samples = min_samples
        self._state: Optional[_ModelState] = None
        self._train_lock = threading.Lock()

    @property
    def is_loaded(self) -> bool:
        return self._state is not None

    @property
    def is_training(self) -> bool:
        return self._train_lock.locked()

    @property
    def metadata(self) -> Optional[ModelMetadata]:
        state = self._state
        return state.metadata if state else None

    # ---- training ----

    async def train(
        self,
        features: Any,
        labels: Sequence[int],
        options: Optional[TrainingOptions] = None,
        validation_data: Optional[Tuple[Any, Sequence[int]]] = None,
        abort_event: Optional[threading.Event] = None,
    ) -> TrainingResult:
        """
        Fit a new network, persist it, then swap it in. Raises AlreadyTrainingError if a run is in
        flight, InsufficientDataError below min_samples, TrainingAbortedError when abort_event is set
        (checked at each epoch boundary). If saving fails the previous model stays active.
        """
        if not self._train_lock.acquire(blocking=False):
            raise AlreadyTrainingError("A training run is already in progress")
        try:
            options = options or TrainingOptions()
            x = to_feature_matrix(features)
            y = np.asarray(labels, dtype=np.float32)
            if len(x) != len(y):
                raise ValueError(f"{len(x)} feature rows but {len(y)} labels")

            val = None
            if validation_data is not None:
                val = (to_feature_matrix(validation_data[0]), np.asarray(validation_data[1], dtype=np.float32))
            total = len(x) + (len(val[0]) if val else 0)
            if total < self.min_samples:
                raise InsufficientDataError(total, self.min_samples)

            logger.info("Training on %s samples (%s epochs max)", total, options.epochs)
            state, result = await asyncio.to_thread(self._fit, x, y, val, options, abort_event)

            stats = FeatureStats(mean=state.mean.tolist(), std=state.std.tolist())
            await self.store.save(state.network.state_dict(), state.metadata, stats)
            self._state = state
            logger.info(
                "Training complete: %s epochs, best epoch %s, val accuracy %s",
                state.metadata.epochs,
                result.best_epoch,
                state.metadata.performance.accuracy if state.metadata.performance else "n/a",
            )
            return result
        finally:
            self._train_lock.release()

    def _fit(
        self,
        x: np.ndarray,
        y: np.ndarray,
        val: Optional[Tuple[np.ndarray, np.ndarray]],
        options: TrainingOptions,
        abort_event: Optional[threading.Event],
    ) -> Tuple[_ModelState, TrainingResult]:
        with torch.random.fork_rng(devices=[], enabled=options.seed is not None):
            if options.seed is not None:
                torch.manual_seed(options.seed)
            return self._fit_seeded(x, y, val, options, abort_event)

    def _fit_seeded(
        self,
        x: np.ndarray,
        y: np.ndarray,
        val: Optional[Tuple[np.ndarray, np.ndarray]],
        options: TrainingOptions,
        abort_event: Optional[threading.Event],
    ) -> Tuple[_ModelState, TrainingResult]:
        if val is None and options.validation_split > 0:
            rng = np.random.default_rng(options.seed)
            order = rng.permutation(len(x))
            boundary = int(np.floor(len(x) * (1 - options.validation_split)))
            if 0 < boundary < len(x):
                val = (x[order[boundary:]], y[order[boundary:]])
                x, y = x[order[:boundary]], y[order[:boundary]]

        # Stats and class weights come from the training portion only
        mean, std = compute_feature_stats(x)
        class_weight = options.class_weight or compute_class_weights(y)

        x_train = torch.from_numpy((x - mean) / std)
        y_train = torch.from_numpy(y)
        w_train = torch.tensor([class_weight.get(int(label), 1.0) for label in y], dtype=torch.float32)
        x_val = y_val = None
        if val is not None:
            x_val = torch.from_numpy((val[0] - mean) / std)
            y_val = torch.from_numpy(val[1])

        network = SuccessNet()
        optimizer = torch.optim.Adam(network.parameters(), lr=options.learning_rate)
        loss_fn = nn.BCEWithLogitsLoss(reduction="none")

        history: List[EpochLog] = []
        best_loss = float("inf")
        best_weights = copy.deepcopy(network.state_dict())
        best_epoch = 0
        waited = 0
        stopped_early = False

        for epoch in range(1, options.epochs + 1):
            if abort_event is not None and abort_event.is_set():
                logger.warning("Training aborted at epoch %s", epoch)
                raise TrainingAbortedError(f"Training aborted at epoch {epoch}")

            network.train()
            permutation = torch.randperm(len(x_train))
            epoch_loss = 0.0
            correct = 0
            for start in range(0, len(x_train), options.batch_size):
                idx = permutation[start:start + options.batch_size]
                logits = network(x_train[idx])
                loss = (loss_fn(logits, y_train[idx]) * w_train[idx]).mean()
                optimizer.zero_grad()
                loss.backward()
                optimizer.step()
                epoch_loss += loss.item() * len(idx)
                correct += int(((logits.detach() >= 0).float() == y_train[idx]).sum())

            log = EpochLog(epoch=epoch, loss=epoch_loss / len(x_train), accuracy=correct / len(x_train))
            if x_val is not None:
                network.eval()
                with torch.no_grad():
                    val_logits = network(x_val)
                    log.val_loss = float(loss_fn(val_logits, y_val).mean())
                    log.val_accuracy = float(((val_logits >= 0).float() == y_val).float().mean())
            history.append(log)
            if options.verbose:
                logger.info("Epoch %s: loss=%.4f acc=%.3f val_loss=%s", epoch, log.loss, log.accuracy, log.val_loss)

            monitored = log.val_loss if log.val_loss is not None else log.loss
            if monitored < best_loss - MIN_LOSS_DELTA:
                best_loss = monitored
                best_weights = copy.deepcopy(network.state_dict())
                best_epoch = epoch
                waited = 0
            else:
                waited += 1
                if waited >= options.early_stopping_patience:
                    stopped_early = True
                    logger.info("Early stopping at epoch %s (best epoch %s)", epoch, best_epoch)
                    break

        network.load_state_dict(best_weights)
        network.eval()

        metadata = ModelMetadata(
            trained_at=utc_now(),
            training_size=len(x_train),
            validation_size=len(x_val) if x_val is not None else 0,
            epochs=len(history),
            class_weight=class_weight,
        )
        state = _ModelState(network, mean, std, metadata)
        if val is not None:
            metadata.performance = self._evaluate_state(state, val[0], val[1])
        result = TrainingResult(
            history=history,
            metadata=metadata,
            stopped_early=stopped_early,
            best_epoch=best_epoch,
        )
        return state, result

    # ---- inference ----

    def _require_state(self) -> _ModelState:
        state = self._state
        if state is None:
            raise ModelNotLoadedError("Model is not trained or loaded")
        return state

    @staticmethod
    def _logits(state: _ModelState, x: np.ndarray) -> torch.Tensor:
        z = torch.from_numpy(((x - state.mean) / state.std).astype(np.float32))
        with torch.no_grad():
            return state.network(z)

    def predict_proba(self, features: Any) -> np.ndarray:
        """Success probabilities for a batch of feature rows."""
        state = self._require_state()
        x = to_feature_matrix(features)
        return torch.sigmoid(self._logits(state, x)).numpy().astype(np.float64)

    def predict(self, features: Any) -> ModelPrediction:
        """Prediction for one FeatureVector (or dict / row). Raises ModelNotLoadedError."""
        probability = float(self.predict_proba([features])[0])
        predicted_class = 1 if probability >= DECISION_THRESHOLD else 0
        return ModelPrediction(
            probability=probability,
            confidence=abs(probability - 0.5) * 2,
            match_score=int(round(probability * 100)),
            predicted_class=predicted_class,
            predicted_label="success" if predicted_class else "failure",
        )

    def predict_batch(self, features: Sequence[Any]) -> List[ModelPrediction]:
        return [self.predict(f) for f in features]

    def _evaluate_state(self, state: _ModelState, x: np.ndarray, y: np.ndarray) -> EvaluationMetrics:
        logits = self._logits(state, x)
        target = torch.from_numpy(np.asarray(y, dtype=np.float32))
        loss = float(nn.functional.binary_cross_entropy_with_logits(logits, target))
        return evaluate_predictions(y, torch.sigmoid(logits).numpy(), DECISION_THRESHOLD, loss)

    def evaluate(self, features: Any, labels: Sequence[int]) -> EvaluationMetrics:
        """Metrics on a labeled set; also recorded as metadata.performance."""
        state = self._require_state()
        x = to_feature_matrix(features)
        y = np.asarray(labels, dtype=np.float32)
        metrics = self._evaluate_state(state, x, y)
        metadata = state.metadata.model_copy(update={"performance": metrics})
        self._state = state._replace(metadata=metadata)
        logger.info(
            "Evaluation: accuracy=%.3f precision=%.3f recall=%.3f f1=%.3f auc=%.3f",
            metrics.accuracy, metrics.precision, metrics.recall, metrics.f1_score, metrics.auc,
        )
        return metrics

    # ---- persistence ----

    async def load(self) -> bool:
        """Load the persisted model. False if none exists."""
        stored = await self.store.load()
        if stored is None:
            logger.info("No saved model found in %s", self.store.model_dir)
            return False
        network = SuccessNet()
        try:
            network.load_state_dict(stored.state_dict)
        except RuntimeError as e:
            raise ModelPersistenceError(f"Stored weights do not fit the network: {e}") from e
        network.eval()
        self._state = _ModelState(
            network,
            np.asarray(stored.feature_stats.mean, dtype=np.float32),
            np.asarray(stored.feature_stats.std, dtype=np.float32),
            stored.metadata,
        )
        logger.info("Loaded model version %s trained at %s", stored.metadata.version, stored.metadata.trained_at)
        return True

    async def save(self) -> None:
        state = self._require_state()
        stats = FeatureStats(mean=state.mean.tolist(), std=state.std.tolist())
        await self.store.save(state.network.state_dict(), state.metadata, stats)

    async def delete(self) -> None:
        await self.store.delete()
        self._state = None

    def get_model_info(self) -> Dict[str, Any]:
        state = self._state
        network = state.network if state else SuccessNet()
        return {
            "loaded": state is not None,
            "architecture": network.architecture(),
            "feature_names": list(FEATURE_SCHEMA),
            "metadata": state.metadata.model_dump(mode="json") if state else None,
        }

"""Training pipeline: statistics, validation, cleaning, features, split, training, evaluation and report."""

import tempfile
import threading
import time
from pathlib import Path
from typing import Any, List, Optional, Sequence

import numpy as np

from success_signal_ai.config import HYPERPARAMETER_GRID, PERFORMANCE_THRESHOLDS, RECOMMENDED_TRAINING_SAMPLES
from success_signal_ai.errors import AlreadyTrainingError, InsufficientDataError
from success_signal_ai.model.classifier import DECISION_THRESHOLD, ApplicationSuccessModel, to_feature_matrix
from success_signal_ai.model.persistence import ModelStore
from success_signal_ai.schemas.dataset import CleaningResult, DataQualityReport, DatasetStatistics, SplitResult
from success_signal_ai.schemas.feature_vector import FEATURE_SCHEMA
from success_signal_ai.schemas.report import (
    DataQualitySummary,
    DataStatisticsSummary,
    EvaluationSummary,
    FeatureImportanceScore,
    HyperparameterTrial,
    ModelSummary,
    PerformanceValidation,
    PipelineConfig,
    PipelineRecommendation,
    PipelineStatus,
    TrainingReport,
    TrainingSummary,
    TuningResult,
)
from success_signal_ai.schemas.training import EvaluationMetrics, TrainingOptions, TrainingResult
from success_signal_ai.storage.training_data import TrainingDataStore, train_test_split
from success_signal_ai.utils.date_parser import utc_now
from success_signal_ai.utils.logger import get_logger

logger = get_logger(__name__)

TOP_FEATURES = 10
MIN_ACCURACY = 0.7
MIN_F1 = 0.65
MIN_COMPLETENESS = 0.9
MIN_CLASS_SHARE = 0.3
OVERFIT_GAP = 0.15
TUNING_PATIENCE = 5


class TrainingPipeline:
    """
    Orchestrates one end-to-end training run over a TrainingDataStore and an
    ApplicationSuccessModel. Only one run may be active per pipeline.
    """

    def __init__(
        self,
        store: TrainingDataStore,
        model: Optional[ApplicationSuccessModel] = None,
        config: Optional[PipelineConfig] = None,
    ):
        self.store = store
        self.model = model or ApplicationSuccessModel()
        self.config = config or PipelineConfig()
        self.status = PipelineStatus()

    def get_status(self) -> PipelineStatus:
        return self.status.model_copy()

    def _update_status(self, stage: str, progress: int) -> None:
        self.status.current_stage = stage
        self.status.progress = progress
        logger.info("Pipeline stage %s (%s%%)", stage, progress)

    async def run_pipeline(self, abort_event: Optional[threading.Event] = None, **overrides: Any) -> TrainingReport:
        """
        Run every stage and return the report. Keyword overrides replace PipelineConfig fields
        for this run. Raises AlreadyTrainingError if a run is active; other failures are recorded
        in the status and re-raised.
        """
        if self.status.is_running:
            raise AlreadyTrainingError("Training pipeline is already running")
        self.status = PipelineStatus(is_running=True, current_stage="initialization")
        started = time.monotonic()

        try:
            config = PipelineConfig.model_validate({**self.config.model_dump(), **overrides})
            self.store.min_samples = config.min_samples
            self.model.min_samples = config.min_samples

            self._update_status("data_collection", 10)
            stats = await self.store.get_dataset_statistics()
            if not stats.ready_for_training:
                raise InsufficientDataError(stats.completed_applications, config.min_samples)

            self._update_status("data_validation", 20)
            quality = await self.store.validate_data_quality()
            if not quality.is_valid:
                logger.warning("Data quality issues detected: %s issues", quality.total_issues)

            self._update_status("data_cleaning", 30)
            cleaned = await self.store.clean_data_for_training()

            self._update_status("feature_engineering", 40)
            dataset = await self.store.get_training_dataset(cleaned.records)
            logger.info(
                "Extracted features for %s samples (success rate %.1f%%)",
                len(dataset.features), dataset.metadata.success_rate * 100,
            )

            self._update_status("data_splitting", 50)
            split = train_test_split(dataset.features, dataset.labels, config.validation_split, config.seed)
            logger.info("Training samples: %s, validation samples: %s", len(split.train_labels), len(split.val_labels))

            self._update_status("model_training", 60)
            learning_rate, batch_size = config.learning_rate, config.batch_size
            if config.hyperparameter_tuning:
                tuning = await self.hyperparameter_tuning(split, config)
                learning_rate, batch_size = tuning.best_learning_rate, tuning.best_batch_size
            training = await self.model.train(
                split.train_features,
                split.train_labels,
                self._training_options(config, learning_rate, batch_size),
                validation_data=(split.val_features, split.val_labels) if split.val_labels else None,
                abort_event=abort_event,
            )

            self._update_status("model_evaluation", 85)
            evaluation = self.model.evaluate(split.val_features, split.val_labels)

            self._update_status("feature_importance", 90)
            importance = self.analyze_feature_importance(split.val_features, split.val_labels, config.seed)

            self._update_status("model_saving", 95)
            await self.model.save()

            self._update_status("report_generation", 100)
            report = self._build_report(
                config=config,
                stats=stats,
                quality=quality,
                cleaned=cleaned,
                split=split,
                training=training,
                learning_rate=learning_rate,
                batch_size=batch_size,
                evaluation=evaluation,
                importance=importance,
                duration=time.monotonic() - started,
            )
            logger.info("Training pipeline complete in %.1fs, accuracy %.2f%%", report.duration, evaluation.accuracy * 100)
            self.status = PipelineStatus(is_running=False, current_stage="complete", progress=100)
            return report
        except Exception as e:
            logger.exception("Training pipeline failed: %s", e)
            self.status = PipelineStatus(is_running=False, current_stage="error", progress=0, error=str(e))
            raise

    @staticmethod
    def _training_options(config: PipelineConfig, learning_rate: float, batch_size: int, **overrides: Any) -> TrainingOptions:
        options = TrainingOptions(
            epochs=config.epochs,
            batch_size=batch_size,
            validation_split=0.0,
            early_stopping_patience=config.early_stopping_patience,
            learning_rate=learning_rate,
            seed=config.seed,
        )
        return options.model_copy(update=overrides)

    async def hyperparameter_tuning(self, split: SplitResult, config: Optional[PipelineConfig] = None) -> TuningResult:
        """
        Grid search over learning rate and batch size. Trial models are trained for half the
        epochs into a scratch directory; the best validation accuracy wins (first trial on ties).
        """
        config = config or self.config
        trials: List[HyperparameterTrial] = []
        best: Optional[HyperparameterTrial] = None
        validation = (split.val_features, split.val_labels) if split.val_labels else None

        with tempfile.TemporaryDirectory(prefix="success_signal_tuning_") as scratch:
            for lr in HYPERPARAMETER_GRID["learning_rate"]:
                for bs in HYPERPARAMETER_GRID["batch_size"]:
                    trial_dir = Path(scratch) / f"lr{lr}_bs{bs}"
                    trial_model = ApplicationSuccessModel(store=ModelStore(trial_dir), min_samples=self.model.min_samples)
                    options = self._training_options(
                        config, lr, bs,
                        epochs=max(1, config.epochs // 2),
                        early_stopping_patience=TUNING_PATIENCE,
                    )
                    await trial_model.train(split.train_features, split.train_labels, options, validation_data=validation)
                    accuracy = _accuracy(trial_model, split.val_features, split.val_labels)
                    trial = HyperparameterTrial(learning_rate=lr, batch_size=bs, accuracy=accuracy)
                    trials.append(trial)
                    logger.info("Trial %s: lr=%s bs=%s accuracy=%.2f%%", len(trials), lr, bs, accuracy * 100)
                    if best is None or trial.accuracy > best.accuracy:
                        best = trial

        logger.info("Hyperparameter tuning complete: lr=%s bs=%s accuracy=%.2f%%", best.learning_rate, best.batch_size, best.accuracy * 100)
        return TuningResult(
            best_learning_rate=best.learning_rate,
            best_batch_size=best.batch_size,
            best_accuracy=best.accuracy,
            trials=trials,
        )

    def analyze_feature_importance(
        self,
        features: Sequence[Any],
        labels: Sequence[int],
        seed: Optional[int] = None,
    ) -> List[FeatureImportanceScore]:
        """Permutation importance: accuracy drop when one column is shuffled. Top 10, highest first."""
        x = to_feature_matrix(features)
        y = np.asarray(labels)
        if len(x) == 0:
            return []
        baseline = _accuracy_on_matrix(self.model, x, y)
        rng = np.random.default_rng(seed)

        scores = []
        for i, name in enumerate(FEATURE_SCHEMA):
            permuted = x.copy()
            permuted[:, i] = rng.permutation(permuted[:, i])
            scores.append((name, baseline - _accuracy_on_matrix(self.model, permuted, y)))

        scores.sort(key=lambda s: s[1], reverse=True)
        ranked = [
            FeatureImportanceScore(feature=name, importance=float(score), rank=rank)
            for rank, (name, score) in enumerate(scores[:TOP_FEATURES], start=1)
        ]
        for item in ranked[:5]:
            logger.info("  %s. %s: %.4f", item.rank, item.feature, item.importance)
        return ranked

    def generate_recommendations(
        self,
        stats: DatasetStatistics,
        quality: DataQualityReport,
        evaluation: EvaluationMetrics,
        training: TrainingSummary,
    ) -> List[PipelineRecommendation]:
        recs: List[PipelineRecommendation] = []
        if stats.completed_applications < RECOMMENDED_TRAINING_SAMPLES:
            recs.append(PipelineRecommendation(
                type="data",
                priority="high",
                message=(
                    f"Collect more training data (current: {stats.completed_applications}, "
                    f"target: {RECOMMENDED_TRAINING_SAMPLES}+) for better model performance"
                ),
            ))
        if stats.class_balance and min(stats.class_balance.success, stats.class_balance.failure) < MIN_CLASS_SHARE:
            recs.append(PipelineRecommendation(
                type="data",
                priority="medium",
                message="Class imbalance detected. Consider collecting more samples for the minority class.",
            ))
        if evaluation.accuracy < MIN_ACCURACY:
            recs.append(PipelineRecommendation(
                type="model",
                priority="high",
                message=(
                    f"Model accuracy is low ({evaluation.accuracy * 100:.1f}%). Consider:\n"
                    "  - Collecting more training data\n"
                    "  - Feature engineering improvements\n"
                    "  - Hyperparameter tuning"
                ),
            ))
        if evaluation.f1_score < MIN_F1:
            recs.append(PipelineRecommendation(
                type="model",
                priority="medium",
                message="F1 score is moderate. Model may benefit from class weight adjustment or threshold tuning.",
            ))
        if quality.completeness < MIN_COMPLETENESS:
            recs.append(PipelineRecommendation(
                type="data",
                priority="medium",
                message=f"Data completeness is {quality.completeness * 100:.1f}%. Review and fix data quality issues.",
            ))
        if (
            training.final_accuracy is not None
            and training.final_val_accuracy is not None
            and training.final_accuracy - training.final_val_accuracy > OVERFIT_GAP
        ):
            recs.append(PipelineRecommendation(
                type="model",
                priority="high",
                message=(
                    "Potential overfitting detected (train-val gap > 15%). Consider:\n"
                    "  - Increasing dropout rates\n"
                    "  - Adding more training data\n"
                    "  - Reducing model complexity"
                ),
            ))
        if evaluation.accuracy >= MIN_ACCURACY and evaluation.f1_score >= MIN_F1:
            recs.append(PipelineRecommendation(
                type="success",
                priority="info",
                message="Model performance is good! Ready for production use.",
            ))
        return recs

    def validate_model_performance(self, evaluation: EvaluationMetrics) -> PerformanceValidation:
        checks = {name: getattr(evaluation, name) >= minimum for name, minimum in PERFORMANCE_THRESHOLDS.items()}
        passed = all(checks.values())
        return PerformanceValidation(
            passed=passed,
            checks=checks,
            requirements=dict(PERFORMANCE_THRESHOLDS),
            evaluation=evaluation,
            message=(
                "Model meets minimum performance requirements"
                if passed
                else "Model does not meet minimum requirements. More training data or tuning needed."
            ),
        )

    @staticmethod
    def export_report(report: TrainingReport) -> str:
        return report.model_dump_json(indent=2)

    def _build_report(
        self,
        *,
        config: PipelineConfig,
        stats: DatasetStatistics,
        quality: DataQualityReport,
        cleaned: CleaningResult,
        split: SplitResult,
        training: TrainingResult,
        learning_rate: float,
        batch_size: int,
        evaluation: EvaluationMetrics,
        importance: List[FeatureImportanceScore],
        duration: float,
    ) -> TrainingReport:
        last = training.history[-1] if training.history else None
        summary = TrainingSummary(
            training_samples=len(split.train_labels),
            validation_samples=len(split.val_labels),
            epochs=training.metadata.epochs,
            best_epoch=training.best_epoch,
            stopped_early=training.stopped_early,
            learning_rate=learning_rate,
            batch_size=batch_size,
            final_loss=last.loss if last else None,
            final_accuracy=last.accuracy if last else None,
            final_val_loss=last.val_loss if last else None,
            final_val_accuracy=last.val_accuracy if last else None,
        )
        info = self.model.get_model_info()
        metadata = self.model.metadata
        return TrainingReport(
            generated_at=utc_now(),
            duration=round(duration, 3),
            configuration=config,
            data_statistics=DataStatisticsSummary(
                total_applications=stats.total_applications,
                completed_applications=stats.completed_applications,
                success_rate=stats.success_rate,
                class_balance=stats.class_balance,
                cleaned_samples=cleaned.stats.cleaned,
                removed_samples=cleaned.stats.removed,
            ),
            data_quality=DataQualitySummary(
                is_valid=quality.is_valid,
                completeness=quality.completeness,
                issue_count=quality.total_issues,
            ),
            training=summary,
            evaluation=EvaluationSummary(
                accuracy=evaluation.accuracy,
                precision=evaluation.precision,
                recall=evaluation.recall,
                f1_score=evaluation.f1_score,
                auc=evaluation.auc,
                confusion_matrix=evaluation.confusion_matrix,
            ),
            feature_importance=importance[:TOP_FEATURES],
            model=ModelSummary(
                architecture=info["architecture"],
                trained_at=metadata.trained_at if metadata else None,
            ),
            recommendations=self.generate_recommendations(stats, quality, evaluation, summary),
        )


def _accuracy_on_matrix(model: ApplicationSuccessModel, x: np.ndarray, y: np.ndarray) -> float:
    predicted = (model.predict_proba(x) >= DECISION_THRESHOLD).astype(int)
    return float(np.mean(predicted == y))


def _accuracy(model: ApplicationSuccessModel, features: Sequence[Any], labels: Sequence[int]) -> float:
    if not labels:
        return 0.0
    return _accuracy_on_matrix(model, to_feature_matrix(features), np.asarray(labels))


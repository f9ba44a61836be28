"""Prediction Service: match score, confidence interval, feature breakdown, comparison and recommendation."""

import asyncio
from collections import defaultdict
from typing import Any, Dict, List, Optional

from success_signal_ai.config import COMPARISON_SAMPLE_SIZE, PREDICTION_HISTORY_LIMIT
from success_signal_ai.errors import ModelNotLoadedError
from success_signal_ai.features.builder import coerce_model, extract_features
from success_signal_ai.model.classifier import ApplicationSuccessModel
from success_signal_ai.schemas.application import OutcomeStatus
from success_signal_ai.schemas.feature_vector import (
    FEATURE_IMPORTANCE,
    FEATURE_SCHEMA,
    FeatureVector,
    categorize_feature,
    get_feature_names,
)
from success_signal_ai.schemas.job_posting import JobPosting
from success_signal_ai.schemas.prediction import (
    BatchPredictionItem,
    CategoryScore,
    Comparison,
    ConfidenceInterval,
    FeatureBreakdown,
    FeatureComparison,
    FeatureContribution,
    Prediction,
    QuickMatch,
    Recommendation,
    SignificantGap,
)
from success_signal_ai.storage.kv_store import InMemoryKeyValueStore, KeyValueStore
from success_signal_ai.storage.training_data import TrainingDataStore
from success_signal_ai.utils.date_parser import utc_now
from success_signal_ai.utils.helpers import generate_id, round_to
from success_signal_ai.utils.logger import get_logger

logger = get_logger(__name__)

HISTORY_KEY = "prediction_history"
CONFIDENCE_LEVEL = 0.95
MAX_MARGIN = 0.3
STRENGTH_THRESHOLD = 0.7
WEAKNESS_THRESHOLD = 0.5
SIGNIFICANT_GAP = -0.2

# (min score, level, message, action), highest band first
RECOMMENDATION_BANDS = [
    (
        80,
        "excellent",
        "Excellent match! You have a strong chance of success.",
        "Apply immediately and craft a tailored cover letter highlighting your top strengths.",
    ),
    (
        65,
        "good",
        "Good match. You have a solid chance with some improvements.",
        "Apply, but address the identified weaknesses in your cover letter or by updating your resume.",
    ),
    (
        50,
        "moderate",
        "Moderate match. Consider improving key areas before applying.",
        "Review the weaknesses and decide if you can address them. "
        "Consider gaining missing skills or experience first.",
    ),
    (
        0,
        "low",
        "Low match. Significant gaps exist between your profile and job requirements.",
        "Focus on positions that better match your current skills, "
        "or work on developing the missing skills before applying.",
    ),
]

QUICK_RECOMMENDATIONS = [
    (80, "Strong Match - Apply Now!"),
    (65, "Good Match - Worth Applying"),
    (50, "Moderate Match - Consider Improvements"),
    (0, "Low Match - Proceed with Caution"),
]


def calculate_confidence_interval(probability: float, confidence: float) -> ConfidenceInterval:
    """Interval around probability; margin grows from 0 to 0.3 as confidence falls."""
    margin = (1 - confidence) * MAX_MARGIN
    return ConfidenceInterval(
        lower=round_to(max(0.0, probability - margin)),
        upper=round_to(min(1.0, probability + margin)),
        margin=round_to(margin),
        level=CONFIDENCE_LEVEL,
    )


def analyze_feature_contributions(features: FeatureVector) -> FeatureBreakdown:
    """Rank features by value x importance and pick strengths and weaknesses among weighted ones."""
    descriptions = get_feature_names()
    contributions = []
    for name, value in features.values().items():
        importance = FEATURE_IMPORTANCE.get(name, 0.0)
        contributions.append(
            FeatureContribution(
                name=name,
                description=descriptions[name],
                value=round_to(value),
                importance=round_to(importance),
                contribution=round_to(value * importance, 4),
                category=categorize_feature(name),
            )
        )
    contributions.sort(key=lambda c: abs(c.contribution), reverse=True)

    weighted = [c for c in contributions if c.importance > 0]
    strengths = [c for c in weighted if c.value >= STRENGTH_THRESHOLD][:5]
    weaknesses = sorted(
        (c for c in weighted if c.value < WEAKNESS_THRESHOLD),
        key=lambda c: c.importance,
        reverse=True,
    )[:5]

    return FeatureBreakdown(
        all=contributions,
        strengths=strengths,
        weaknesses=weaknesses,
        top_contributors=contributions[:10],
        categories=group_by_category(contributions),
    )


def group_by_category(contributions: List[FeatureContribution]) -> Dict[str, CategoryScore]:
    grouped: Dict[str, List[FeatureContribution]] = defaultdict(list)
    for c in contributions:
        grouped[c.category].append(c)
    return {
        category: CategoryScore(
            score=round_to(sum(c.value for c in items) / len(items)),
            count=len(items),
            items=items[:3],
        )
        for category, items in grouped.items()
    }


def average_features(vectors: List[FeatureVector]) -> Dict[str, float]:
    return {name: sum(getattr(v, name) for v in vectors) / len(vectors) for name in FEATURE_SCHEMA}


def compare_features(features: FeatureVector, successful: List[FeatureVector]) -> Comparison:
    """Per-feature difference from the average of successful applications."""
    averages = average_features(successful)
    comparison: Dict[str, FeatureComparison] = {}
    for name, current in features.values().items():
        avg = averages[name]
        diff = current - avg
        comparison[name] = FeatureComparison(
            current=round_to(current),
            avg_successful=round_to(avg),
            difference=round_to(diff),
            percent_diff=round_to(diff / avg * 100, 1) if avg != 0 else 0.0,
            better_than_average=diff >= 0,
        )

    gaps = sorted(
        (
            SignificantGap(feature=name, **comp.model_dump())
            for name, comp in comparison.items()
            if comp.difference < SIGNIFICANT_GAP
        ),
        key=lambda g: g.difference,
    )[:5]
    better = sum(1 for comp in comparison.values() if comp.better_than_average)
    return Comparison(
        available=True,
        comparison=comparison,
        significant_gaps=gaps,
        successful_count=len(successful),
        overall_match=round_to(better / len(comparison)),
    )


def get_recommendation(match_score: int, breakdown: FeatureBreakdown) -> Recommendation:
    for min_score, level, message, action in RECOMMENDATION_BANDS:
        if match_score >= min_score:
            break
    return Recommendation(
        level=level,
        score=match_score,
        message=message,
        action=action,
        strengths=breakdown.strengths,
        weaknesses=breakdown.weaknesses,
    )


def get_quick_recommendation(match_score: int) -> str:
    for min_score, text in QUICK_RECOMMENDATIONS:
        if match_score >= min_score:
            return text
    return QUICK_RECOMMENDATIONS[-1][1]


class PredictionService:
    """
    Composes feature extraction and the classifier into a full Prediction. The model is loaded
    lazily on first use; past interview records (if a training store is given) drive the comparison.
    """

    def __init__(
        self,
        model: Optional[ApplicationSuccessModel] = None,
        training_store: Optional[TrainingDataStore] = None,
        history_store: Optional[KeyValueStore] = None,
    ):
        self.model = model or ApplicationSuccessModel()
        self.training_store = training_store
        self.history_store = history_store or InMemoryKeyValueStore()
        self._history_lock = asyncio.Lock()

    async def initialize(self) -> bool:
        """Load the persisted model if none is active. False if no model exists."""
        if self.model.is_loaded:
            return True
        loaded = await self.model.load()
        if not loaded:
            logger.warning("Model not found. Train the model first.")
            return False
        logger.info("Prediction service initialized")
        return True

    async def predict_application_success(
        self,
        job_posting: Any,
        resume: Any,
        application_context: Any = None,
    ) -> Prediction:
        """Full prediction for one application. Raises ModelNotLoadedError without a trained model."""
        if not await self.initialize():
            raise ModelNotLoadedError("Model not trained. Collect training data and train the model first.")

        features = extract_features(job_posting, resume, application_context)
        result = self.model.predict(features)
        breakdown = analyze_feature_contributions(features)
        comparison = await self.compare_to_successful_applications(features)
        metadata = self.model.metadata

        logger.info("Predicted match score %s (p=%.3f)", result.match_score, result.probability)
        return Prediction(
            match_score=result.match_score,
            probability=result.probability,
            confidence=result.confidence,
            predicted_outcome=result.predicted_label,
            confidence_interval=calculate_confidence_interval(result.probability, result.confidence),
            features=features,
            feature_breakdown=breakdown,
            comparison=comparison,
            recommendation=get_recommendation(result.match_score, breakdown),
            predicted_at=utc_now(),
            model_version=metadata.version if metadata else "unknown",
        )

    async def compare_to_successful_applications(self, features: FeatureVector) -> Comparison:
        if self.training_store is None:
            return Comparison(available=False, message="No training data available for comparison")
        records = await self.training_store.get_records_by_outcome(OutcomeStatus.INTERVIEW)
        if not records:
            return Comparison(available=False, message="No successful applications available for comparison")

        recent = sorted(records, key=lambda r: r.timestamp, reverse=True)[:COMPARISON_SAMPLE_SIZE]
        successful = []
        for record in recent:
            try:
                successful.append(
                    extract_features(
                        record.job_posting,
                        record.resume,
                        record.application_context,
                        now=record.application_date,
                    )
                )
            except Exception:
                logger.exception("Feature extraction failed for record %s", record.id)
        if not successful:
            return Comparison(available=False, message="Could not extract features from successful applications")
        return compare_features(features, successful)

    async def batch_predict(self, job_postings: List[Any], resume: Any) -> List[BatchPredictionItem]:
        """
        Predict each job in turn. A failure is recorded on its item instead of aborting the batch.
        Successful items come first by descending match score, failures after in input order.
        """
        logger.info("Batch prediction for %s jobs", len(job_postings))
        items: List[BatchPredictionItem] = []
        for raw in job_postings:
            job = coerce_model(JobPosting, raw)
            item = BatchPredictionItem(job_id=job.id, job_title=job.title, company=job.company)
            try:
                item.prediction = await self.predict_application_success(job, resume, {"application_date": utc_now()})
            except Exception as e:
                logger.warning("Prediction failed for %s: %s", job.title or job.id, e)
                item.error = str(e)
            items.append(item)

        succeeded = sorted((i for i in items if i.prediction), key=lambda i: i.match_score, reverse=True)
        failed = [i for i in items if not i.prediction]
        return succeeded + failed

    async def get_quick_match_score(self, job_posting: Any, resume: Any) -> QuickMatch:
        prediction = await self.predict_application_success(job_posting, resume)
        breakdown = prediction.feature_breakdown
        return QuickMatch(
            match_score=prediction.match_score,
            recommendation=get_quick_recommendation(prediction.match_score),
            top_strengths=breakdown.strengths[:3],
            top_weaknesses=breakdown.weaknesses[:3],
        )

    # ---- history ----

    async def get_prediction_history(self) -> List[Dict[str, Any]]:
        return await self.history_store.get(HISTORY_KEY, [])

    async def save_prediction(self, prediction: Prediction) -> str:
        """Append to history, keeping the most recent PREDICTION_HISTORY_LIMIT entries. Returns the entry id."""
        entry_id = generate_id("pred")
        entry = prediction.model_dump(mode="json")
        entry.update(id=entry_id, saved_at=utc_now().isoformat())
        async with self._history_lock:
            history = await self.get_prediction_history()
            history.append(entry)
            await self.history_store.set(HISTORY_KEY, history[-PREDICTION_HISTORY_LIMIT:])
        return entry_id

    def get_model_performance(self) -> Dict[str, Any]:
        metadata = self.model.metadata
        if metadata is None or metadata.performance is None:
            return {"available": False, "message": "Model performance metrics not available"}
        return {
            "available": True,
            **metadata.performance.model_dump(mode="json"),
            "trained_at": metadata.trained_at.isoformat() if metadata.trained_at else None,
            "training_size": metadata.training_size,
        }

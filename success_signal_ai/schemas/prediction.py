"""Prediction output returned by the prediction service."""

from datetime import datetime
from typing import Dict, List, Optional

from pydantic import BaseModel, Field

from success_signal_ai.schemas.feature_vector import FeatureVector


class ModelPrediction(BaseModel):
    """Raw classifier output for one feature vector."""

    probability: float = Field(..., description="P(interview or offer)")
    confidence: float = Field(..., description="|p - 0.5| * 2")
    match_score: int = Field(..., description="round(p * 100)")
    predicted_class: int = Field(..., description="1 if p >= 0.5 else 0")
    predicted_label: str = Field(..., description="success or failure")


class ConfidenceInterval(BaseModel):
    lower: float
    upper: float
    margin: float
    level: float = 0.95


class FeatureContribution(BaseModel):
    name: str
    description: str = ""
    value: float
    importance: float
    contribution: float = Field(..., description="value * importance")
    category: str


class CategoryScore(BaseModel):
    score: float = Field(..., description="Average feature value in the category")
    count: int
    items: List[FeatureContribution] = Field(default_factory=list, description="Top 3 contributors")


class FeatureBreakdown(BaseModel):
    all: List[FeatureContribution] = Field(default_factory=list)
    strengths: List[FeatureContribution] = Field(default_factory=list)
    weaknesses: List[FeatureContribution] = Field(default_factory=list)
    top_contributors: List[FeatureContribution] = Field(default_factory=list)
    categories: Dict[str, CategoryScore] = Field(default_factory=dict)


class FeatureComparison(BaseModel):
    current: float
    avg_successful: float
    difference: float
    percent_diff: float
    better_than_average: bool


class SignificantGap(FeatureComparison):
    feature: str


class Comparison(BaseModel):
    """How this application compares with past applications that got interviews."""

    available: bool
    message: Optional[str] = None
    comparison: Dict[str, FeatureComparison] = Field(default_factory=dict)
    significant_gaps: List[SignificantGap] = Field(default_factory=list)
    successful_count: int = 0
    overall_match: Optional[float] = None


class Recommendation(BaseModel):
    level: str = Field(..., description="excellent, good, moderate or low")
    score: int
    message: str
    action: str
    strengths: List[FeatureContribution] = Field(default_factory=list)
    weaknesses: List[FeatureContribution] = Field(default_factory=list)


class Prediction(BaseModel):
    """Full prediction for one (job, resume, context) triple."""

    match_score: int
    probability: float
    confidence: float
    predicted_outcome: str
    confidence_interval: ConfidenceInterval
    features: FeatureVector
    feature_breakdown: FeatureBreakdown
    comparison: Comparison
    recommendation: Recommendation
    predicted_at: datetime
    model_version: str


class BatchPredictionItem(BaseModel):
    """One entry of a batch run; error is set instead of prediction on failure."""

    job_id: Optional[str] = None
    job_title: str = ""
    company: str = ""
    prediction: Optional[Prediction] = None
    error: Optional[str] = None

    @property
    def match_score(self) -> int:
        return self.prediction.match_score if self.prediction else 0


class QuickMatch(BaseModel):
    match_score: int
    recommendation: str
    top_strengths: List[FeatureContribution] = Field(default_factory=list)
    top_weaknesses: List[FeatureContribution] = Field(default_factory=list)

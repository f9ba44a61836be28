"""Results returned by the training data store."""

from datetime import datetime
from typing import Dict, List, Optional

from pydantic import BaseModel, Field

from success_signal_ai.schemas.application import TrainingRecord
from success_signal_ai.schemas.feature_vector import FeatureVector


class DatasetMetadata(BaseModel):
    total_records: int
    success_rate: float
    class_balance: float = Field(..., description="Minority class share (0.5 is perfectly balanced)")
    record_count: Dict[str, int] = Field(default_factory=dict, description="Labeled records per outcome")
    skipped: int = Field(0, description="Records that failed feature extraction")


class TrainingDataset(BaseModel):
    features: List[FeatureVector]
    labels: List[int]
    ids: List[str]
    metadata: DatasetMetadata


class SplitResult(BaseModel):
    train_features: list
    train_labels: List[int]
    val_features: list
    val_labels: List[int]
    train_indices: List[int]
    val_indices: List[int]


class CleaningStats(BaseModel):
    total: int
    cleaned: int
    removed: int
    invalid: int
    duplicates: int


class CleaningResult(BaseModel):
    records: List[TrainingRecord]
    removed_count: int
    stats: CleaningStats


class DuplicateIssue(BaseModel):
    id: str
    duplicate_of: str


class QualityIssues(BaseModel):
    missing_job_title: List[str] = Field(default_factory=list)
    missing_job_description: List[str] = Field(default_factory=list)
    missing_resume: List[str] = Field(default_factory=list)
    missing_skills: List[str] = Field(default_factory=list)
    incomplete_outcome: List[str] = Field(default_factory=list)
    duplicates: List[DuplicateIssue] = Field(default_factory=list)

    def count(self) -> int:
        return sum(len(getattr(self, name)) for name in type(self).model_fields)


class DataQualityReport(BaseModel):
    is_valid: bool
    total_records: int
    total_issues: int
    issues: QualityIssues
    completeness: float = Field(..., description="1 - issues / (records * checks)")
    recommendation: str


class ClassBalance(BaseModel):
    success: float
    failure: float


class DatasetStatistics(BaseModel):
    total_applications: int
    completed_applications: int
    pending_applications: int
    withdrawn_applications: int
    outcomes: Dict[str, int]
    success_rate: float
    interview_rate: float
    offer_rate: float
    rejection_rate: float
    ready_for_training: bool
    samples_needed: int
    class_balance: Optional[ClassBalance] = None


class FeatureBin(BaseModel):
    bin_start: float
    bin_end: float
    count: int
    success_rate: float


class TrainingDataExport(BaseModel):
    version: str
    exported_at: datetime
    record_count: int
    records: List[TrainingRecord]

"""Application context, outcome and the stored training record."""

from datetime import datetime
from enum import Enum
from typing import Any, Optional

from pydantic import Field, field_validator

from success_signal_ai.schemas.common import (
    SnapshotModel,
    to_bool,
    to_optional_datetime,
    to_optional_float,
    to_optional_str,
)
from success_signal_ai.schemas.job_posting import JobPosting
from success_signal_ai.schemas.resume import Resume
from success_signal_ai.utils.date_parser import utc_now

RECORD_VERSION = "1.0"


class OutcomeStatus(str, Enum):
    PENDING = "pending"
    INTERVIEW = "interview"
    REJECT = "reject"
    OFFER = "offer"
    WITHDRAWN = "withdrawn"

    @classmethod
    def parse(cls, value: Any) -> "OutcomeStatus":
        if isinstance(value, cls):
            return value
        text = str(value or "").strip().lower()
        aliases = {"rejected": "reject", "rejection": "reject", "interviewed": "interview", "withdrew": "withdrawn"}
        return cls(aliases.get(text, text))

    @property
    def is_labeled(self) -> bool:
        return self not in (OutcomeStatus.PENDING, OutcomeStatus.WITHDRAWN)

    @property
    def label(self) -> Optional[int]:
        """1 for interview/offer, 0 for reject, None when unlabeled."""
        if self in (OutcomeStatus.INTERVIEW, OutcomeStatus.OFFER):
            return 1
        if self is OutcomeStatus.REJECT:
            return 0
        return None


class ApplicationContext(SnapshotModel):
    """Circumstances of the application. Only timing features read it."""

    application_date: Optional[datetime] = Field(default=None, description="When the application was submitted")
    source: Optional[str] = Field(default=None, description="Where the application was made")
    custom_resume: bool = Field(default=False, description="Resume tailored for this job")
    custom_cover_letter: bool = Field(default=False, description="Cover letter written for this job")
    referral: bool = Field(default=False, description="Application came with a referral")
    days_since_posted: Optional[float] = Field(
        default=None, description="Overrides the value computed from the posted date"
    )

    @field_validator("application_date", mode="before")
    @classmethod
    def _date(cls, v: Any) -> Optional[datetime]:
        return to_optional_datetime(v)

    @field_validator("source", mode="before")
    @classmethod
    def _source(cls, v: Any) -> Optional[str]:
        return to_optional_str(v)

    @field_validator("custom_resume", "custom_cover_letter", "referral", mode="before")
    @classmethod
    def _flag(cls, v: Any) -> bool:
        return to_bool(v)

    @field_validator("days_since_posted", mode="before")
    @classmethod
    def _days(cls, v: Any) -> Optional[float]:
        return to_optional_float(v)


class OutcomeUpdate(SnapshotModel):
    """Outcome change reported by the outcome-tracking layer."""

    status: OutcomeStatus = Field(..., description="New outcome status")
    interview_date: Optional[datetime] = Field(default=None)
    rejection_date: Optional[datetime] = Field(default=None)
    offer_date: Optional[datetime] = Field(default=None)
    feedback: Optional[str] = Field(default=None, description="Feedback received from the employer")
    notes: Optional[str] = Field(default=None, description="Candidate notes")

    @field_validator("status", mode="before")
    @classmethod
    def _status(cls, v: Any) -> OutcomeStatus:
        return OutcomeStatus.parse(v)

    @field_validator("interview_date", "rejection_date", "offer_date", mode="before")
    @classmethod
    def _date(cls, v: Any) -> Optional[datetime]:
        return to_optional_datetime(v)


class Outcome(OutcomeUpdate):
    """Outcome stored on a record; updated_at is set whenever it changes."""

    status: OutcomeStatus = Field(default=OutcomeStatus.PENDING, description="Current outcome status")
    updated_at: Optional[datetime] = Field(default=None, description="Last change to the outcome")

    @field_validator("updated_at", mode="before")
    @classmethod
    def _updated(cls, v: Any) -> Optional[datetime]:
        return to_optional_datetime(v)

    def same_as(self, update: OutcomeUpdate) -> bool:
        """True if applying update would not change any outcome field."""
        fields = OutcomeUpdate.model_fields.keys()
        return all(getattr(self, f) == getattr(update, f) for f in fields)


class TrainingRecord(SnapshotModel):
    """One application: immutable job/resume snapshots plus the mutable outcome."""

    id: str = Field(..., description="Record id (app_<ms>_<random>)")
    timestamp: datetime = Field(default_factory=utc_now, description="When the application was recorded")
    job_posting: JobPosting = Field(default_factory=JobPosting)
    resume: Resume = Field(default_factory=Resume)
    application_context: ApplicationContext = Field(default_factory=ApplicationContext)
    outcome: Outcome = Field(default_factory=Outcome)
    version: str = Field(default=RECORD_VERSION, description="Record format version")

    @field_validator("timestamp", mode="before")
    @classmethod
    def _timestamp(cls, v: Any) -> Any:
        return to_optional_datetime(v) or v

    @property
    def label(self) -> Optional[int]:
        return self.outcome.status.label

    @property
    def application_date(self) -> datetime:
        return self.application_context.application_date or self.timestamp

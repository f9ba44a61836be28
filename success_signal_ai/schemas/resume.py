"""Resume snapshot: experience, education, skills and preferences."""

from datetime import datetime
from typing import Any, List, Optional

from pydantic import AliasChoices, Field, field_validator

from success_signal_ai.schemas.common import (
    SnapshotModel,
    to_bool,
    to_dict_list,
    to_optional_datetime,
    to_optional_float,
    to_optional_int,
    to_optional_str,
    to_str,
    to_str_list,
)
from success_signal_ai.utils.helpers import unique_normalized


class Experience(SnapshotModel):
    """One employment entry. end_date None means open-ended."""

    title: str = Field(default="", description="Job title held")
    company: str = Field(default="", description="Employer name")
    start_date: Optional[datetime] = Field(default=None, description="Start of the role")
    end_date: Optional[datetime] = Field(default=None, description="End of the role, None if ongoing")
    current: bool = Field(default=False, description="True if this is the current role")
    description: str = Field(default="", description="Free-text description of the role")
    responsibilities: List[str] = Field(default_factory=list, description="Bullet points")
    industry: Optional[str] = Field(default=None, description="Industry of the employer")
    company_size: Optional[str] = Field(default=None, description="startup, small, medium, large or enterprise")

    @field_validator("title", "company", "description", mode="before")
    @classmethod
    def _text(cls, v: Any) -> str:
        return to_str(v)

    @field_validator("start_date", "end_date", mode="before")
    @classmethod
    def _date(cls, v: Any) -> Optional[datetime]:
        return to_optional_datetime(v)

    @field_validator("current", mode="before")
    @classmethod
    def _current(cls, v: Any) -> bool:
        return to_bool(v)

    @field_validator("responsibilities", mode="before")
    @classmethod
    def _bullets(cls, v: Any) -> List[str]:
        return to_str_list(v) if not isinstance(v, str) else [v] if v.strip() else []

    @field_validator("industry", "company_size", mode="before")
    @classmethod
    def _label(cls, v: Any) -> Optional[str]:
        text = to_optional_str(v)
        return text.lower() if text else None

    def text(self) -> str:
        """Title, company, description and responsibilities as one string."""
        return " ".join(p for p in [self.title, self.company, self.description, *self.responsibilities] if p)


class Education(SnapshotModel):
    degree: str = Field(default="", description="Degree name (e.g. BS, Master of Science)")
    field: str = Field(
        default="",
        validation_alias=AliasChoices("field", "major", "field_of_study", "fieldOfStudy"),
        description="Field of study",
    )
    school: str = Field(
        default="",
        validation_alias=AliasChoices("school", "institution", "university"),
        description="Institution name",
    )
    gpa: Optional[float] = Field(default=None, description="GPA on a 4.0 scale")
    graduation_year: Optional[int] = Field(default=None, description="Year of graduation")

    @field_validator("degree", "field", "school", mode="before")
    @classmethod
    def _text(cls, v: Any) -> str:
        return to_str(v)

    @field_validator("gpa", mode="before")
    @classmethod
    def _gpa(cls, v: Any) -> Optional[float]:
        gpa = to_optional_float(v)
        return gpa if gpa is not None and gpa > 0 else None

    @field_validator("graduation_year", mode="before")
    @classmethod
    def _year(cls, v: Any) -> Optional[int]:
        return to_optional_int(v)


class Preferences(SnapshotModel):
    willing_to_relocate: bool = Field(default=False, description="Open to relocating for a role")

    @field_validator("willing_to_relocate", mode="before")
    @classmethod
    def _flag(cls, v: Any) -> bool:
        return to_bool(v)


class Resume(SnapshotModel):
    """Resume fields consumed by feature extraction. Experience is ordered most recent first."""

    summary: str = Field(default="", description="Professional summary")
    title: str = Field(default="", description="Current or headline title")
    experience: List[Experience] = Field(default_factory=list, description="Work history, most recent first")
    education: List[Education] = Field(default_factory=list, description="Education history")
    skills: List[str] = Field(default_factory=list, description="Unique skills, lowercased")
    location: str = Field(default="", description="Candidate location")
    target_titles: List[str] = Field(default_factory=list, description="Titles the candidate is targeting")
    preferences: Preferences = Field(default_factory=Preferences, description="Search preferences")

    @field_validator("summary", "title", "location", mode="before")
    @classmethod
    def _text(cls, v: Any) -> str:
        return to_str(v)

    @field_validator("experience", "education", mode="before")
    @classmethod
    def _entries(cls, v: Any) -> List[Any]:
        return to_dict_list(v)

    @field_validator("skills", mode="before")
    @classmethod
    def _skills(cls, v: Any) -> List[str]:
        return unique_normalized(to_str_list(v))

    @field_validator("target_titles", mode="before")
    @classmethod
    def _titles(cls, v: Any) -> List[str]:
        return to_str_list(v)

    @field_validator("preferences", mode="before")
    @classmethod
    def _preferences(cls, v: Any) -> Any:
        return v if isinstance(v, (dict, Preferences)) else {}

    def text(self) -> str:
        """Summary, experience and skills flattened into one string."""
        parts = [self.summary] if self.summary else []
        parts.extend(exp.text() for exp in self.experience)
        parts.extend(self.skills)
        return " ".join(p for p in parts if p)

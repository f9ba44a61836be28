"""Job posting snapshot captured at application time."""

import re
from datetime import datetime
from typing import Any, Optional

from pydantic import AliasChoices, Field, field_validator, model_validator

from success_signal_ai.schemas.common import (
    SnapshotModel,
    to_bool,
    to_optional_datetime,
    to_optional_float,
    to_optional_int,
    to_optional_str,
    to_str,
)
from success_signal_ai.utils.date_parser import normalize_posted_date

_SALARY_NUMBER = re.compile(r"(\d+(?:[.,]\d+)*)\s*([kK])?")


class SalaryRange(SnapshotModel):
    """Salary band; a plain string like "$120k - $150k" is parsed into min/max."""

    min: Optional[float] = Field(default=None, description="Lower bound of the band")
    max: Optional[float] = Field(default=None, description="Upper bound of the band")
    currency: str = Field(default="USD", description="ISO currency code")

    @model_validator(mode="before")
    @classmethod
    def _parse(cls, data: Any) -> Any:
        if isinstance(data, (int, float)) and not isinstance(data, bool):
            return {"min": data, "max": data}
        if isinstance(data, str):
            values = []
            for number, thousands in _SALARY_NUMBER.findall(data):
                v = to_optional_float(number)
                if v is None:
                    continue
                values.append(v * 1000 if thousands else v)
            if not values:
                return {}
            return {"min": values[0], "max": values[1] if len(values) > 1 else values[0]}
        return data

    @field_validator("min", "max", mode="before")
    @classmethod
    def _amount(cls, v: Any) -> Optional[float]:
        result = to_optional_float(v)
        return result if result is not None and result > 0 else None

    @field_validator("currency", mode="before")
    @classmethod
    def _currency(cls, v: Any) -> str:
        return to_str(v).strip().upper() or "USD"

    @property
    def midpoint(self) -> Optional[float]:
        if self.min is None:
            return None
        return (self.min + (self.max if self.max is not None else self.min)) / 2


class JobPosting(SnapshotModel):
    """Job posting fields consumed by feature extraction."""

    id: Optional[str] = Field(default=None, description="Upstream job id if known")
    title: str = Field(default="", description="Job title")
    description: str = Field(default="", description="Full job description text")
    company: str = Field(
        default="",
        validation_alias=AliasChoices("company", "companyName", "company_name"),
        description="Company or employer name",
    )
    company_size: Optional[str] = Field(
        default=None, description="startup, small, medium, large or enterprise"
    )
    location: str = Field(default="", description="Job location text")
    remote: bool = Field(default=False, description="True if the posting is flagged remote")
    salary: Optional[SalaryRange] = Field(default=None, description="Salary band if stated")
    posted_date: Optional[datetime] = Field(default=None, description="When the job was posted (UTC)")
    application_count: Optional[int] = Field(
        default=None, description="Number of applicants shown on the posting"
    )
    source: Optional[str] = Field(default=None, description="Job board or site the posting came from")

    @field_validator("title", "description", "company", "location", mode="before")
    @classmethod
    def _text(cls, v: Any) -> str:
        return to_str(v)

    @field_validator("id", "source", mode="before")
    @classmethod
    def _optional_text(cls, v: Any) -> Optional[str]:
        return to_optional_str(v)

    @field_validator("company_size", mode="before")
    @classmethod
    def _size(cls, v: Any) -> Optional[str]:
        text = to_optional_str(v)
        return text.lower() if text else None

    @field_validator("remote", mode="before")
    @classmethod
    def _remote(cls, v: Any) -> bool:
        return to_bool(v)

    @field_validator("salary", mode="before")
    @classmethod
    def _salary(cls, v: Any) -> Any:
        if v is None or isinstance(v, (SalaryRange, dict, str, int, float)):
            return v
        return None

    @field_validator("posted_date", mode="before")
    @classmethod
    def _posted(cls, v: Any) -> Optional[datetime]:
        parsed = to_optional_datetime(v)
        if parsed is None and isinstance(v, str):
            # Relative text ("3 days ago") resolves against the current time
            parsed, _ = normalize_posted_date(v)
        return parsed

    @field_validator("application_count", mode="before")
    @classmethod
    def _count(cls, v: Any) -> Optional[int]:
        count = to_optional_int(v)
        return count if count is not None and count >= 0 else None

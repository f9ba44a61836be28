"""Feature vector schema: ordered feature names, defaulting policy and the FeatureVector model."""

from typing import Dict, List, NamedTuple, Optional, Sequence

import numpy as np
from pydantic import BaseModel, Field

FEATURE_SCHEMA_VERSION = "1.0"


class FeaturePolicy(NamedTuple):
    """Fallback value and bounds for one feature. Values are clamped to [lower, upper]."""

    default: float
    lower: float
    upper: float
    category: str
    description: str


# Order is the network input order. Changing it invalidates persisted models.
FEATURE_POLICIES: Dict[str, FeaturePolicy] = {
    # Skills
    "skill_match_score": FeaturePolicy(0.0, 0.0, 1.0, "Skills", "Overall skill match (0-1)"),
    "required_skills_coverage": FeaturePolicy(1.0, 0.0, 1.0, "Skills", "% of required skills matched"),
    "preferred_skills_coverage": FeaturePolicy(0.5, 0.0, 1.0, "Skills", "% of preferred skills matched"),
    "unique_skills_count": FeaturePolicy(0.0, 0.0, 100.0, "Skills", "Number of additional skills"),
    "skill_depth_score": FeaturePolicy(0.0, 0.0, 1.0, "Skills", "Breadth of skill set (0-1)"),
    # Experience
    "experience_match_score": FeaturePolicy(0.0, 0.0, 1.0, "Experience", "Experience level match (0-1)"),
    "years_of_experience": FeaturePolicy(0.0, 0.0, 50.0, "Experience", "Total years of experience"),
    "experience_gap": FeaturePolicy(0.0, 0.0, 50.0, "Experience", "Years short of requirement"),
    "seniority_match": FeaturePolicy(0.5, 0.0, 1.0, "Experience", "Seniority level alignment (0-1)"),
    "industry_match": FeaturePolicy(0.5, 0.0, 1.0, "Experience", "Industry experience match (0-1)"),
    "company_size_match": FeaturePolicy(0.5, 0.0, 1.0, "Experience", "Company size experience match (0-1)"),
    # Education
    "education_match": FeaturePolicy(0.0, 0.0, 1.0, "Education", "Education requirement match (0-1)"),
    "education_level_score": FeaturePolicy(0.0, 0.0, 1.0, "Education", "Highest education level (0-1)"),
    "field_match": FeaturePolicy(0.5, 0.0, 1.0, "Education", "Field of study match (0-1)"),
    "gpa_score": FeaturePolicy(0.5, 0.0, 1.0, "Education", "GPA normalized (0-1)"),
    "institution_bonus": FeaturePolicy(0.0, 0.0, 0.2, "Education", "Prestigious institution bonus"),
    # Location
    "location_match": FeaturePolicy(0.2, 0.0, 1.0, "Location", "Location compatibility (0-1)"),
    "is_remote": FeaturePolicy(0.0, 0.0, 1.0, "Location", "Remote position (0/1)"),
    "relocation_willingness": FeaturePolicy(0.0, 0.0, 1.0, "Location", "Willing to relocate (0/1)"),
    # Timing
    "days_since_posted": FeaturePolicy(7.0, 0.0, 365.0, "Timing", "Days between posting and application"),
    "application_speed_score": FeaturePolicy(0.8, 0.0, 1.0, "Timing", "Application timeliness (0-1)"),
    "is_early_applicant": FeaturePolicy(0.0, 0.0, 1.0, "Timing", "Applied within 3 days (0/1)"),
    "time_of_day_score": FeaturePolicy(1.0, 0.0, 1.0, "Timing", "Applied during business hours"),
    "day_of_week_score": FeaturePolicy(1.0, 0.0, 1.0, "Timing", "Applied on a weekday"),
    # Text match
    "title_similarity": FeaturePolicy(0.0, 0.0, 1.0, "Text Match", "Job title similarity (0-1)"),
    "description_similarity": FeaturePolicy(0.0, 0.0, 1.0, "Text Match", "Description similarity (0-1)"),
    "keyword_density": FeaturePolicy(0.0, 0.0, 1.0, "Text Match", "Keyword overlap (0-1)"),
    "resume_relevance_score": FeaturePolicy(0.0, 0.0, 1.0, "Text Match", "Resume relevance to job (0-1)"),
    "buzzword_match": FeaturePolicy(0.5, 0.0, 1.0, "Text Match", "Industry buzzword alignment (0-1)"),
    # Job characteristics
    "job_popularity": FeaturePolicy(0.5, 0.0, 1.0, "Job Characteristics", "Job popularity/competition (0-1)"),
    "company_size": FeaturePolicy(0.5, 0.0, 1.0, "Job Characteristics", "Company size (0-1)"),
    "is_fortune_500": FeaturePolicy(0.0, 0.0, 1.0, "Job Characteristics", "Fortune 500 company (0/1)"),
    "job_level": FeaturePolicy(0.25, 0.0, 1.0, "Job Characteristics", "Job seniority level (0-1)"),
    "salary_competitiveness": FeaturePolicy(0.5, 0.0, 1.0, "Job Characteristics", "Salary competitiveness (0-1)"),
}

FEATURE_SCHEMA: tuple = tuple(FEATURE_POLICIES)
FEATURE_COUNT = len(FEATURE_SCHEMA)

# Fixed interpretation weights used for breakdowns and feedback (not learned)
FEATURE_IMPORTANCE: Dict[str, float] = {
    "skill_match_score": 0.15,
    "required_skills_coverage": 0.12,
    "experience_match_score": 0.10,
    "seniority_match": 0.08,
    "education_match": 0.07,
    "location_match": 0.06,
    "description_similarity": 0.06,
    "application_speed_score": 0.05,
    "industry_match": 0.05,
    "preferred_skills_coverage": 0.04,
    "field_match": 0.04,
    "company_size_match": 0.03,
    "is_early_applicant": 0.03,
    "keyword_density": 0.03,
    "skill_depth_score": 0.02,
    "gpa_score": 0.02,
    "buzzword_match": 0.02,
    "institution_bonus": 0.01,
    "is_fortune_500": 0.01,
    "salary_competitiveness": 0.01,
}


class FeatureDetails(BaseModel):
    """Non-numeric diagnostics from extraction, read by the feedback generator."""

    job_skills: List[str] = Field(default_factory=list, description="Skills found in the job posting")
    matched_required_skills: List[str] = Field(default_factory=list)
    missing_required_skills: List[str] = Field(default_factory=list)
    matched_preferred_skills: List[str] = Field(default_factory=list)
    missing_preferred_skills: List[str] = Field(default_factory=list)
    job_seniority: int = Field(default=3, description="Ordinal seniority of the job (1-9)")
    user_seniority: int = Field(default=2, description="Ordinal seniority of the candidate (1-9)")
    job_industry: str = Field(default="general", description="Industry keyword found in the posting")
    required_education_level: int = Field(default=3, description="Ordinal education level required (1-5)")
    user_education_level: int = Field(default=0, description="Highest ordinal education level held (0-5)")
    required_field: Optional[str] = Field(default=None, description="Field of study the posting asks for")


class FeatureVector(BaseModel):
    """The 34 model inputs in FEATURE_SCHEMA order, plus required_years and diagnostics."""

    skill_match_score: float = 0.0
    required_skills_coverage: float = 1.0
    preferred_skills_coverage: float = 0.5
    unique_skills_count: float = 0.0
    skill_depth_score: float = 0.0
    experience_match_score: float = 0.0
    years_of_experience: float = 0.0
    experience_gap: float = 0.0
    seniority_match: float = 0.5
    industry_match: float = 0.5
    company_size_match: float = 0.5
    education_match: float = 0.0
    education_level_score: float = 0.0
    field_match: float = 0.5
    gpa_score: float = 0.5
    institution_bonus: float = 0.0
    location_match: float = 0.2
    is_remote: float = 0.0
    relocation_willingness: float = 0.0
    days_since_posted: float = 7.0
    application_speed_score: float = 0.8
    is_early_applicant: float = 0.0
    time_of_day_score: float = 1.0
    day_of_week_score: float = 1.0
    title_similarity: float = 0.0
    description_similarity: float = 0.0
    keyword_density: float = 0.0
    resume_relevance_score: float = 0.0
    buzzword_match: float = 0.5
    job_popularity: float = 0.5
    company_size: float = 0.5
    is_fortune_500: float = 0.0
    job_level: float = 0.25
    salary_competitiveness: float = 0.5

    required_years: Optional[float] = Field(default=None, description="Years required by the posting, if stated")
    details: FeatureDetails = Field(default_factory=FeatureDetails)

    def values(self) -> Dict[str, float]:
        """Model inputs as an ordered name -> value mapping."""
        return {name: getattr(self, name) for name in FEATURE_SCHEMA}

    def to_array(self) -> np.ndarray:
        return np.array([getattr(self, name) for name in FEATURE_SCHEMA], dtype=np.float32)

    @classmethod
    def from_values(cls, values: Dict[str, float], required_years: Optional[float] = None) -> "FeatureVector":
        """Build from a name -> value mapping; missing names take their policy default."""
        data = {name: float(values.get(name, FEATURE_POLICIES[name].default)) for name in FEATURE_SCHEMA}
        return cls(required_years=required_years, **data)


def get_feature_names() -> Dict[str, str]:
    """Feature name -> human readable description."""
    return {name: policy.description for name, policy in FEATURE_POLICIES.items()}


def categorize_feature(name: str) -> str:
    policy = FEATURE_POLICIES.get(name)
    return policy.category if policy else "Other"


def to_matrix(vectors: Sequence[FeatureVector]) -> np.ndarray:
    """Stack feature vectors into an (n, FEATURE_COUNT) float32 matrix."""
    if not vectors:
        return np.zeros((0, FEATURE_COUNT), dtype=np.float32)
    return np.stack([v.to_array() for v in vectors])

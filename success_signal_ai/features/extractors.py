"""Feature group extractors. Each returns (feature values, diagnostics) for one group."""

import math
import re
from datetime import datetime
from typing import Any, Dict, List, Optional, Tuple

from success_signal_ai.features.text_similarity import (
    buzzword_overlap,
    contains_term,
    find_terms,
    keyword_density,
    resume_relevance,
    text_similarity,
)
from success_signal_ai.features.vocabulary import (
    COMPANY_SIZES,
    COUNTRIES,
    DEFAULT_COMPANY_SIZE,
    DEFAULT_JOB_SENIORITY,
    DEFAULT_REQUIRED_EDUCATION,
    DEGREE_ABBREVIATIONS,
    EDUCATION_LEVELS,
    FORTUNE_500,
    INDUSTRIES,
    MARKET_SALARY,
    PREFERRED_MARKERS,
    PRESTIGIOUS_INSTITUTIONS,
    RELATED_FIELDS,
    REMOTE_MARKERS,
    REQUIRED_MARKERS,
    SENIORITY_LEVELS,
    STUDY_FIELDS,
    TECH_SKILLS,
    US_STATES,
)
from success_signal_ai.schemas.application import ApplicationContext
from success_signal_ai.schemas.job_posting import JobPosting
from success_signal_ai.schemas.resume import Experience, Resume
from success_signal_ai.utils.date_parser import days_between

GroupResult = Tuple[Dict[str, float], Dict[str, Any]]

DAYS_PER_YEAR = 365.25
MAX_REQUIRED_YEARS = 50
DEFAULT_DAYS_SINCE_POSTED = 7.0
# Section headings are short lines; longer lines are sentences that only mention a marker
HEADING_MAX_LENGTH = 40

_REQUIRED_YEARS_PATTERNS = [
    re.compile(r"(?<!\d)(\d{1,2})\s*\+?\s*(?:(?:-|–|to)\s*\d{1,2}\s*\+?\s*)?years?", re.IGNORECASE),
    re.compile(r"minimum\s+(?:of\s+)?(\d{1,2})\s*years?", re.IGNORECASE),
    re.compile(r"at\s+least\s+(\d{1,2})\s*years?", re.IGNORECASE),
]

_COUNTRY_ALIASES = {
    "united states": "usa",
    "us": "usa",
    "u.s": "usa",
    "america": "usa",
    "united kingdom": "uk",
    "england": "uk",
}


# ---- Skills ----

def _first_marker(line: str, markers: List[str]) -> Optional[int]:
    positions = [line.find(m) for m in markers if m in line]
    return min(positions) if positions else None


def _is_heading(line: str) -> bool:
    stripped = line.strip()
    return len(stripped) <= HEADING_MAX_LENGTH or stripped.endswith(":")


def split_job_skills(description: str) -> Tuple[List[str], List[str]]:
    """
    Vocabulary skills in the posting split into (required, preferred).
    Text after a preferred marker ("nice to have", "a plus", ...) is preferred; a preferred heading
    carries over to following lines until a required heading. A skill in both lists is required.
    """
    required: List[str] = []
    preferred: List[str] = []
    in_preferred = False
    for line in (description or "").lower().splitlines():
        pref_at = _first_marker(line, PREFERRED_MARKERS)
        if pref_at is not None:
            (preferred if in_preferred else required).extend(find_terms(line[:pref_at], TECH_SKILLS))
            preferred.extend(find_terms(line[pref_at:], TECH_SKILLS))
            if _is_heading(line):
                in_preferred = True
            continue
        if _first_marker(line, REQUIRED_MARKERS) is not None and _is_heading(line):
            in_preferred = False
        (preferred if in_preferred else required).extend(find_terms(line, TECH_SKILLS))

    required = list(dict.fromkeys(required))
    preferred = [s for s in dict.fromkeys(preferred) if s not in required]
    return required, preferred


def _has_skill(resume_skills: List[str], skill: str) -> bool:
    return any(rs == skill or contains_term(rs, skill) for rs in resume_skills)


def skill_features(job: JobPosting, resume: Resume) -> GroupResult:
    required, preferred = split_job_skills(job.description)
    resume_skills = resume.skills

    matched_required = [s for s in required if _has_skill(resume_skills, s)]
    matched_preferred = [s for s in preferred if _has_skill(resume_skills, s)]
    required_coverage = len(matched_required) / len(required) if required else 1.0
    preferred_coverage = len(matched_preferred) / len(preferred) if preferred else 0.5

    job_skills = required + preferred
    unmatched = [rs for rs in resume_skills if not any(rs == js or contains_term(rs, js) for js in job_skills)]

    values = {
        "skill_match_score": 0.7 * required_coverage + 0.3 * preferred_coverage,
        "required_skills_coverage": required_coverage,
        "preferred_skills_coverage": preferred_coverage,
        "unique_skills_count": float(len(unmatched)),
        "skill_depth_score": min(len(unmatched) / 20.0, 1.0),
    }
    details = {
        "job_skills": job_skills,
        "matched_required_skills": matched_required,
        "missing_required_skills": [s for s in required if s not in matched_required],
        "matched_preferred_skills": matched_preferred,
        "missing_preferred_skills": [s for s in preferred if s not in matched_preferred],
    }
    return values, details


# ---- Experience ----

def extract_required_years(description: str) -> Optional[float]:
    """First "N+ years" / "N-M years" / "minimum of N years" / "at least N years" match."""
    for pattern in _REQUIRED_YEARS_PATTERNS:
        m = pattern.search(description or "")
        if m:
            years = int(m.group(1))
            return float(years) if years <= MAX_REQUIRED_YEARS else None
    return None


def total_experience_years(experience: List[Experience], now: datetime) -> float:
    """Sum of entry spans in years; open-ended entries run to now, entries without a start count 0."""
    total_days = 0.0
    for exp in experience:
        if exp.start_date is None:
            continue
        end = now if exp.current or exp.end_date is None else exp.end_date
        total_days += max(0.0, days_between(exp.start_date, end))
    return total_days / DAYS_PER_YEAR


def seniority_from_title(title: str) -> Optional[int]:
    """Highest seniority keyword in the title, None if it has none."""
    lowered = (title or "").lower()
    levels = [level for keyword, level in SENIORITY_LEVELS.items() if contains_term(lowered, keyword)]
    return max(levels) if levels else None


def estimate_user_seniority(experience: List[Experience], years: float) -> int:
    for exp in experience:
        level = seniority_from_title(exp.title)
        if level is not None:
            return level
    if years < 2:
        return 2
    if years < 5:
        return 3
    if years < 8:
        return 4
    if years < 12:
        return 5
    return 6


def seniority_match(job_level: int, user_level: int) -> float:
    return max(0.2, 1.0 - 0.2 * abs(job_level - user_level))


def extract_industry(job: JobPosting) -> str:
    text = f"{job.description} {job.company}".lower()
    for industry in INDUSTRIES:
        if industry in text:
            return industry
    return "general"


def industry_match(experience: List[Experience], industry: str) -> float:
    if industry == "general":
        return 0.5
    for exp in experience:
        text = f"{exp.industry or ''} {exp.company} {exp.description}".lower()
        if industry in text:
            return 1.0
    return 0.0


def company_size_value(size: Optional[str]) -> float:
    return COMPANY_SIZES.get((size or "").strip().lower(), DEFAULT_COMPANY_SIZE)


def company_size_match(job: JobPosting, experience: List[Experience]) -> float:
    """Closeness of job size to the mean size of the two most recent employers."""
    recent = experience[:2]
    if not recent:
        return 0.5
    user_size = sum(company_size_value(e.company_size) for e in recent) / len(recent)
    return max(0.0, 1.0 - abs(company_size_value(job.company_size) - user_size))


def experience_features(job: JobPosting, resume: Resume, now: datetime) -> GroupResult:
    required_years = extract_required_years(job.description)
    years = total_experience_years(resume.experience, now)

    if required_years is not None:
        match = 1.0 if years >= required_years else years / required_years
        gap = max(0.0, required_years - years)
    else:
        match = min(years / 4.0, 1.0)
        gap = 0.0

    job_level = seniority_from_title(job.title) or DEFAULT_JOB_SENIORITY
    user_level = estimate_user_seniority(resume.experience, years)
    industry = extract_industry(job)

    values = {
        "experience_match_score": match,
        "years_of_experience": years,
        "experience_gap": gap,
        "seniority_match": seniority_match(job_level, user_level),
        "industry_match": industry_match(resume.experience, industry),
        "company_size_match": company_size_match(job, resume.experience),
    }
    details = {
        "required_years": required_years,
        "job_seniority": job_level,
        "user_seniority": user_level,
        "job_industry": industry,
    }
    return values, details


# ---- Education ----

def required_education(description: str) -> Tuple[int, Optional[str]]:
    """(required ordinal level, required field or None) from the posting text."""
    lowered = (description or "").lower()
    level = DEFAULT_REQUIRED_EDUCATION
    for keyword in ("phd", "doctorate", "master", "bachelor", "associate", "high school"):
        if keyword in lowered:
            level = EDUCATION_LEVELS[keyword]
            break
    field = next((f for f in STUDY_FIELDS if f in lowered), None)
    return level, field


def degree_level(degree: str) -> int:
    lowered = (degree or "").lower()
    levels = [lvl for keyword, lvl in EDUCATION_LEVELS.items() if keyword in lowered]
    levels += [lvl for abbr, lvl in DEGREE_ABBREVIATIONS.items() if contains_term(lowered, abbr)]
    return max(levels) if levels else 0


def field_match(required_field: Optional[str], fields: List[str]) -> float:
    if not required_field:
        return 0.5
    related = RELATED_FIELDS.get(required_field, [])
    best = 0.0
    for field in fields:
        field = field.strip().lower()
        if not field:
            continue
        if required_field in field or field in required_field:
            return 1.0
        if any(r in field for r in related):
            best = 0.7
    return best


def education_features(job: JobPosting, resume: Resume) -> GroupResult:
    required_level, required_field = required_education(job.description)
    user_level = max((degree_level(e.degree) for e in resume.education), default=0)
    gpas = [e.gpa for e in resume.education if e.gpa]
    schools = " | ".join(e.school.lower() for e in resume.education)

    values = {
        "education_match": 1.0 if user_level >= required_level else user_level / required_level,
        "education_level_score": user_level / 5.0,
        "field_match": field_match(required_field, [e.field for e in resume.education]),
        "gpa_score": min(max(gpas) / 4.0, 1.0) if gpas else 0.5,
        "institution_bonus": 0.2 if any(contains_term(schools, s) for s in PRESTIGIOUS_INSTITUTIONS) else 0.0,
    }
    details = {
        "required_education_level": required_level,
        "user_education_level": user_level,
        "required_field": required_field,
    }
    return values, details


# ---- Location ----

def _location_parts(location: str) -> Tuple[str, Optional[str], Optional[str]]:
    """(city, state code, country) parsed from "City, ST, Country" style text."""
    lowered = location.lower()
    city = lowered.split(",")[0].strip()
    state = next((s for s in US_STATES if contains_term(lowered, s)), None)
    country = next((c for c in COUNTRIES if contains_term(lowered, c)), None)
    if country is None:
        country = next((v for k, v in _COUNTRY_ALIASES.items() if contains_term(lowered, k)), None)
    if country is None and state is not None:
        country = "usa"
    return city, state, country


def location_features(job: JobPosting, resume: Resume) -> GroupResult:
    job_loc = job.location.strip()
    user_loc = resume.location.strip()
    is_remote = job.remote or any(m in job_loc.lower() for m in REMOTE_MARKERS)
    willing = resume.preferences.willing_to_relocate

    if is_remote:
        match = 1.0
    elif not job_loc or not user_loc:
        match = 0.2
    else:
        job_city, job_state, job_country = _location_parts(job_loc)
        user_city, user_state, user_country = _location_parts(user_loc)
        if job_city and job_city == user_city:
            match = 1.0
        elif job_state and job_state == user_state:
            match = 0.7
        elif job_country and job_country == user_country:
            match = 0.4
        else:
            match = 0.2

    if not is_remote and willing:
        match = max(match, 0.5)

    values = {
        "location_match": match,
        "is_remote": 1.0 if is_remote else 0.0,
        "relocation_willingness": 1.0 if willing else 0.0,
    }
    return values, {}


# ---- Timing ----

def application_speed(days: float) -> float:
    if days <= 2:
        return 1.0
    if days <= 7:
        return 0.8
    if days <= 14:
        return 0.6
    if days <= 30:
        return 0.4
    return 0.2


def timing_features(job: JobPosting, context: ApplicationContext, application_date: datetime) -> GroupResult:
    if context.days_since_posted is not None:
        days = float(context.days_since_posted)
    elif job.posted_date is not None:
        days = float(math.floor(days_between(job.posted_date, application_date)))
    else:
        days = DEFAULT_DAYS_SINCE_POSTED
    days = max(0.0, days)

    values = {
        "days_since_posted": days,
        "application_speed_score": application_speed(days),
        "is_early_applicant": 1.0 if days <= 3 else 0.0,
        "time_of_day_score": 1.0 if 9 <= application_date.hour <= 17 else 0.7,
        "day_of_week_score": 1.0 if application_date.weekday() < 5 else 0.8,
    }
    return values, {}


# ---- Text match ----

def _resume_title_text(resume: Resume) -> str:
    if resume.target_titles:
        return " ".join(resume.target_titles)
    if resume.title:
        return resume.title
    return resume.experience[0].title if resume.experience else ""


def text_features(job: JobPosting, resume: Resume) -> GroupResult:
    resume_text = resume.text()
    values = {
        "title_similarity": text_similarity(job.title, _resume_title_text(resume)),
        "description_similarity": text_similarity(job.description, resume_text),
        "keyword_density": keyword_density(job.description, resume_text),
        "resume_relevance_score": resume_relevance(resume_text, f"{job.title} {job.description}"),
        "buzzword_match": buzzword_overlap(job.description, resume_text),
    }
    return values, {}


# ---- Job characteristics ----

def _market_salary(seniority: int) -> float:
    if seniority <= 2:
        return MARKET_SALARY["entry"]
    if seniority == 3:
        return MARKET_SALARY["mid"]
    if seniority == 4:
        return MARKET_SALARY["senior"]
    return MARKET_SALARY["lead"]


def salary_competitiveness(job: JobPosting, seniority: int) -> float:
    midpoint = job.salary.midpoint if job.salary else None
    if not midpoint:
        return 0.5
    ratio = midpoint / _market_salary(seniority)
    if 0.8 <= ratio <= 1.2:
        return 1.0
    if 1.2 < ratio <= 1.5:
        return 0.9
    if 0.6 <= ratio < 0.8:
        return 0.7
    return 0.5


def job_features(job: JobPosting) -> GroupResult:
    seniority = seniority_from_title(job.title) or DEFAULT_JOB_SENIORITY
    company = job.company.lower()
    values = {
        "job_popularity": min(job.application_count / 100.0, 1.0) if job.application_count is not None else 0.5,
        "company_size": company_size_value(job.company_size),
        "is_fortune_500": 1.0 if any(contains_term(company, c) for c in FORTUNE_500) else 0.0,
        "job_level": (seniority - 1) / 8.0,
        "salary_competitiveness": salary_competitiveness(job, seniority),
    }
    return values, {}

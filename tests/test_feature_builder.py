"""Tests for feature extraction."""

import math
import random
from datetime import datetime, timezone

import pytest

from success_signal_ai.features import extract_features
from success_signal_ai.features.builder import coerce_model, sanitize
from success_signal_ai.features.extractors import (
    application_speed,
    extract_required_years,
    seniority_from_title,
    split_job_skills,
)
from success_signal_ai.schemas.feature_vector import FEATURE_COUNT, FEATURE_POLICIES, FEATURE_SCHEMA, FeatureVector
from success_signal_ai.schemas.job_posting import JobPosting
from success_signal_ai.schemas.resume import Resume


def assert_in_bounds(vector: FeatureVector):
    values = vector.values()
    assert list(values) == list(FEATURE_SCHEMA)
    assert len(values) == FEATURE_COUNT == 34
    for name, value in values.items():
        policy = FEATURE_POLICIES[name]
        assert isinstance(value, float), name
        assert not math.isnan(value), name
        assert policy.lower <= value <= policy.upper, name


def test_full_application(job_posting, resume, fixed_now):
    f = extract_features(job_posting, resume, now=fixed_now)
    assert_in_bounds(f)

    assert f.details.matched_required_skills == ["python", "sql"]
    assert f.details.missing_required_skills == ["microservices"]
    assert f.details.missing_preferred_skills == ["kubernetes"]
    assert f.required_skills_coverage == pytest.approx(2 / 3)
    assert f.preferred_skills_coverage == pytest.approx(0.5)
    assert f.skill_match_score == pytest.approx(0.7 * 2 / 3 + 0.3 * 0.5)

    assert f.required_years == 5
    assert f.experience_match_score == 1.0
    assert f.experience_gap == 0.0
    assert f.seniority_match == 1.0

    assert f.education_match == 1.0
    assert f.education_level_score == pytest.approx(0.8)
    assert f.field_match == 1.0
    assert f.gpa_score == pytest.approx(0.9)
    assert f.institution_bonus == pytest.approx(0.2)

    assert f.location_match == 1.0
    assert f.days_since_posted == 1.0
    assert f.application_speed_score == 1.0
    assert f.is_early_applicant == 1.0

    assert f.is_fortune_500 == 1.0
    assert f.company_size == pytest.approx(0.9)
    assert f.job_level == pytest.approx(0.375)
    assert f.salary_competitiveness == 1.0
    assert f.job_popularity == pytest.approx(0.4)


def test_deterministic(job_posting, resume, fixed_now):
    first = extract_features(job_posting, resume, {"applicationDate": fixed_now})
    second = extract_features(job_posting, resume, {"applicationDate": fixed_now})
    assert first.model_dump() == second.model_dump()
    assert first.details == second.details


def test_experience_covers_requirement():
    job = {"title": "Engineer", "description": "You have 3 years of professional experience."}
    resume = {
        "experience": [
            {"title": "Engineer", "startDate": "2018-01", "endDate": "2020-01", "current": False},
            {"title": "Engineer", "startDate": "2021-01", "current": True},
        ]
    }
    f = extract_features(job, resume, now=datetime(2024, 1, 1, tzinfo=timezone.utc))
    assert f.years_of_experience == pytest.approx(5.0, abs=0.01)
    assert f.experience_match_score == 1.0
    assert f.experience_gap == 0.0


def test_experience_short_of_requirement():
    job = {"description": "Minimum of 8 years building distributed systems."}
    resume = {"experience": [{"startDate": "2020-01-01", "endDate": "2024-01-01"}]}
    f = extract_features(job, resume, now=datetime(2024, 6, 1, tzinfo=timezone.utc))
    assert f.experience_match_score == pytest.approx(0.5, abs=0.01)
    assert f.experience_gap == pytest.approx(4.0, abs=0.01)


def test_no_requirement_scales_to_four_years():
    resume = {"experience": [{"startDate": "2022-01-01", "endDate": "2024-01-01"}]}
    f = extract_features({"description": "Great team."}, resume, now=datetime(2024, 6, 1, tzinfo=timezone.utc))
    assert f.required_years is None
    assert f.experience_match_score == pytest.approx(0.5, abs=0.01)


def test_zero_year_requirement_is_met_by_any_experience():
    job = {"description": "We want 0-2 years of experience with Python"}
    resume = {"experience": [{"title": "Intern", "startDate": "2024-01-01", "endDate": "2024-04-01"}]}
    f = extract_features(job, resume, now=datetime(2024, 6, 1, tzinfo=timezone.utc))
    assert f.required_years == 0.0
    assert f.experience_match_score == 1.0
    assert f.experience_gap == 0.0


def test_no_required_skills_is_vacuously_covered():
    job = {"title": "Team Member", "description": "Join our friendly team and help customers every day."}
    skills = ["python", "sql", "docker", "git", "linux", "excel", "communication", "leadership", "figma", "jira"]
    f = extract_features(job, {"skills": skills})
    assert f.required_skills_coverage == 1.0
    assert f.preferred_skills_coverage == 0.5
    assert f.skill_depth_score > 0
    assert f.unique_skills_count == 10


def test_skill_match_is_whole_word():
    required, preferred = split_job_skills("Strong JavaScript and REST APIs required")
    assert "javascript" in required
    assert "java" not in required
    assert "api" in required
    f = extract_features({"description": "Requirements: Java"}, {"skills": ["JavaScript"]})
    assert f.required_skills_coverage == 0.0


def test_preferred_section_carries_over_lines():
    description = "Requirements:\nPython\nNice to have:\nDocker\nAWS\nQualifications:\nSQL"
    required, preferred = split_job_skills(description)
    assert required == ["python", "sql"]
    assert preferred == ["docker", "aws"]


@pytest.mark.parametrize(
    "text, years",
    [
        ("5+ years of experience", 5),
        ("3-5 years in backend work", 3),
        ("at least 2 years with Go", 2),
        ("minimum of 7 years", 7),
        ("no experience needed", None),
    ],
)
def test_extract_required_years(text, years):
    assert extract_required_years(text) == years


def test_seniority_uses_highest_keyword():
    assert seniority_from_title("Senior Staff Engineer") == 6
    assert seniority_from_title("Engineer") is None


@pytest.mark.parametrize(
    "job_location, user_location, willing, expected",
    [
        ("Austin, TX", "Austin, TX", False, 1.0),
        ("Dallas, TX", "Austin, TX", False, 0.7),
        ("Seattle, WA", "Austin, TX, USA", False, 0.4),
        ("Berlin, Germany", "Austin, TX", False, 0.2),
        ("Berlin, Germany", "Austin, TX", True, 0.5),
        ("", "Austin, TX", False, 0.2),
    ],
)
def test_location_match(job_location, user_location, willing, expected):
    f = extract_features(
        {"location": job_location},
        {"location": user_location, "preferences": {"willingToRelocate": willing}},
    )
    assert f.location_match == pytest.approx(expected)
    assert f.is_remote == 0.0


def test_remote_posting_matches_anywhere():
    f = extract_features({"location": "Remote - US"}, {"location": "Berlin, Germany"})
    assert f.is_remote == 1.0
    assert f.location_match == 1.0


def test_timing_uses_application_date():
    job = {"postedDate": "2023-12-01"}
    weekend_evening = {"applicationDate": "2024-01-13T20:00:00Z"}  # Saturday
    f = extract_features(job, {}, weekend_evening)
    assert f.days_since_posted == 43.0
    assert f.application_speed_score == 0.2
    assert f.is_early_applicant == 0.0
    assert f.time_of_day_score == pytest.approx(0.7)
    assert f.day_of_week_score == pytest.approx(0.8)


def test_timing_context_override():
    f = extract_features({"postedDate": "2023-01-01"}, {}, {"daysSincePosted": 10}, now=datetime(2024, 1, 10))
    assert f.days_since_posted == 10.0
    assert f.application_speed_score == 0.6


@pytest.mark.parametrize("days, score", [(0, 1.0), (2, 1.0), (5, 0.8), (14, 0.6), (30, 0.4), (31, 0.2)])
def test_application_speed_steps(days, score):
    assert application_speed(days) == score


def test_salary_band_by_seniority():
    junior = extract_features({"title": "Junior Developer", "salary": {"min": 65000, "max": 75000}}, {})
    lead = extract_features({"title": "Lead Developer", "salary": "$60k"}, {})
    assert junior.salary_competitiveness == 1.0
    assert lead.salary_competitiveness == 0.5


def test_empty_inputs_use_defaults():
    f = extract_features(None, None)
    assert_in_bounds(f)
    assert f.required_skills_coverage == 1.0
    assert f.location_match == 0.2
    assert f.gpa_score == 0.5
    assert f.days_since_posted == 7.0
    assert f.required_years is None


def test_garbage_inputs_never_raise():
    job = {
        "title": 123,
        "description": None,
        "salary": "competitive",
        "postedDate": "sometime",
        "applicationCount": "many",
        "remote": "yes",
    }
    resume = {
        "experience": "junk",
        "skills": 5,
        "education": [{"gpa": "n/a", "degree": None}, "not a dict"],
        "preferences": [],
    }
    f = extract_features(job, resume, "not a context")
    assert_in_bounds(f)
    assert f.is_remote == 1.0


def test_randomised_partial_inputs_stay_in_bounds(job_posting, resume, fixed_now):
    rng = random.Random(7)
    junk = [None, "", "???", -5, 1e12, float("nan"), [], {}, "2099-01-01"]
    for _ in range(40):
        job = {k: v for k, v in job_posting.items() if rng.random() > 0.4}
        res = {k: v for k, v in resume.items() if rng.random() > 0.4}
        if rng.random() > 0.5:
            job[rng.choice(list(job_posting))] = rng.choice(junk)
        if rng.random() > 0.5:
            res[rng.choice(list(resume))] = rng.choice(junk)
        assert_in_bounds(extract_features(job, res, now=fixed_now))


def test_sanitize_clamps_and_defaults():
    assert sanitize("location_match", 3.0) == 1.0
    assert sanitize("location_match", -1) == 0.0
    assert sanitize("location_match", float("nan")) == 0.2
    assert sanitize("days_since_posted", "x") == 7.0
    assert sanitize("days_since_posted", 500) == 365.0


def test_coerce_model_drops_invalid_entries():
    res = coerce_model(Resume, {"skills": ["Python"], "education": [{"gpa": {"bad": 1}}, {"degree": "BSc"}]})
    assert res.skills == ["python"]
    assert any(e.degree == "BSc" for e in res.education)
    assert coerce_model(JobPosting, "nonsense") == JobPosting()

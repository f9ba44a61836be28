from datetime import datetime, timezone

import pytest

from success_signal_ai.schemas.feature_vector import FeatureDetails, FeatureVector
from success_signal_ai.schemas.prediction import Comparison, Prediction
from success_signal_ai.services import FeedbackGenerator, generate_feedback
from success_signal_ai.services.feedback_service import (
    estimate_current_level,
    estimate_learning_time,
    estimate_target_level,
    suggest_certifications,
    suggest_complementary_skills,
    suggest_learning_resources,
)
from success_signal_ai.services.prediction_service import (
    analyze_feature_contributions,
    calculate_confidence_interval,
    get_recommendation,
)


def make_prediction(score=50, details=None, **values):
    features = FeatureVector(details=FeatureDetails(**(details or {})), **values)
    breakdown = analyze_feature_contributions(features)
    probability = score / 100
    confidence = abs(probability - 0.5) * 2
    return Prediction(
        match_score=score,
        probability=probability,
        confidence=confidence,
        predicted_outcome="success" if probability >= 0.5 else "failure",
        confidence_interval=calculate_confidence_interval(probability, confidence),
        features=features,
        feature_breakdown=breakdown,
        comparison=Comparison(available=False),
        recommendation=get_recommendation(score, breakdown),
        predicted_at=datetime(2024, 1, 10, tzinfo=timezone.utc),
        model_version="1.0",
    )


@pytest.fixture
def generator():
    return FeedbackGenerator()


@pytest.mark.parametrize(
    "score, status, priority",
    [(85, "excellent", "low"), (70, "good", "medium"), (55, "moderate", "high"), (30, "needs-work", "critical")],
)
def test_assessment_bands(generator, score, status, priority):
    assessment = generator.generate_assessment(make_prediction(score, skill_match_score=0.9))
    assert assessment.status == status
    assert assessment.priority == priority
    assert assessment.top_strength == "Overall skill match (0-1)"
    assert assessment.strength_count >= 1


@pytest.mark.parametrize(
    "skill, duration",
    [("React", "2-4 weeks"), ("Python", "1-3 months"), ("JavaScript", "1-3 months"), ("Docker", "1-2 months"), ("Rust", "2-6 weeks")],
)
def test_learning_time(skill, duration):
    assert estimate_learning_time(skill) == duration


def test_complementary_skills():
    assert suggest_complementary_skills(["python", "Django"]) == ["Flask", "Pandas", "NumPy", "TensorFlow"]
    suggestions = suggest_complementary_skills(["javascript", "react"])
    assert "React" not in suggestions
    assert suggestions.count("TypeScript") == 1
    assert suggest_complementary_skills(["cobol"]) == []


def test_learning_resources():
    resources = suggest_learning_resources(["ci/cd", "aws", "sql", "go"])
    assert [r.skill for r in resources] == ["ci/cd", "aws", "sql"]
    urls = [res.url for res in resources[0].resources]
    assert urls[0] == "https://coursera.org/search?query=ci%2Fcd"
    assert len(urls) == 4


def test_certifications():
    assert suggest_certifications(["aws", "python"]) == [
        "AWS Certified Solutions Architect",
        "Google Data Analytics Certificate",
    ]
    assert suggest_certifications(["figma"]) == []


@pytest.mark.parametrize("years, level", [(0.5, "entry"), (2, "junior"), (5, "mid"), (9, "senior"), (12, "lead")])
def test_current_level(years, level):
    assert estimate_current_level(years) == level


@pytest.mark.parametrize("required, level", [(None, "mid"), (0, "junior"), (1, "junior"), (3, "mid"), (6, "senior"), (10, "lead")])
def test_target_level(required, level):
    assert estimate_target_level(required) == level


def test_skill_feedback(generator):
    details = {
        "missing_required_skills": ["kubernetes", "aws"],
        "missing_preferred_skills": ["redis", "graphql", "spark", "hadoop", "vue", "angular"],
        "matched_required_skills": ["python"],
    }
    feedback = generator.generate_skill_feedback(make_prediction(details=details))
    assert [g.skill for g in feedback.critical_gaps] == ["kubernetes", "aws"]
    assert all(g.impact_estimate == 15 and g.urgency == "high" for g in feedback.critical_gaps)
    assert feedback.critical_gaps[0].estimated_time == "1-2 months"
    assert len(feedback.recommended_skills) == 5
    assert [c.skill for c in feedback.complementary_skills] == ["Django", "Flask", "Pandas"]
    assert [r.skill for r in feedback.learning_resources] == ["kubernetes", "aws", "redis"]


@pytest.mark.parametrize(
    "gap, note_type",
    [(0.5, "minor-gap"), (2.0, "moderate-gap"), (5.0, "significant-gap")],
)
def test_experience_gap_notes(generator, gap, note_type):
    prediction = make_prediction(experience_gap=gap, seniority_match=1.0, industry_match=1.0, company_size_match=1.0)
    feedback = generator.generate_experience_feedback(prediction)
    assert [n.type for n in feedback.recommendations] == [note_type]
    assert feedback.gap == gap


def test_experience_mismatch_notes(generator):
    prediction = make_prediction(
        years_of_experience=4,
        required_years=7,
        experience_gap=0,
        seniority_match=0.6,
        industry_match=0.0,
        company_size_match=0.4,
    )
    feedback = generator.generate_experience_feedback(prediction)
    assert feedback.current_level == "mid"
    assert feedback.target_level == "senior"
    assert [n.type for n in feedback.recommendations] == ["seniority-mismatch", "industry-gap", "company-size-gap"]


def test_education_feedback(generator):
    slightly_below = generator.generate_education_feedback(
        make_prediction(education_match=0.8, field_match=1.0, gpa_score=0.9)
    )
    assert slightly_below.level == "meets-requirements"
    assert [n.type for n in slightly_below.recommendations] == ["minor-gap"]
    assert slightly_below.recommendations[0].message == "Your education level is slightly below preferred."

    below = generator.generate_education_feedback(
        make_prediction(
            education_match=0.5,
            field_match=0.5,
            gpa_score=0.6,
            details={"missing_required_skills": ["aws"]},
        )
    )
    assert below.level == "below-requirements"
    assert [n.type for n in below.recommendations] == ["significant-gap", "field-mismatch", "gpa-concern"]
    assert below.recommendations[1].suggestions == ["AWS Certified Solutions Architect"]

    no_gpa = generator.generate_education_feedback(make_prediction(education_match=1.0, field_match=1.0, gpa_score=0.0))
    assert no_gpa.recommendations == []


def test_resume_optimization_thresholds(generator):
    optimization = generator.generate_resume_optimization(
        make_prediction(
            keyword_density=0.5,
            description_similarity=0.3,
            title_similarity=0.6,
            resume_relevance_score=0.4,
            buzzword_match=0.7,
        )
    )
    assert [(i.impact_estimate, i.priority) for i in optimization.keywords] == [(5, "high"), (8, "critical")]
    assert optimization.structure == []
    assert [(i.impact_estimate, i.priority) for i in optimization.content] == [(10, "critical")]

    clean = generator.generate_resume_optimization(
        make_prediction(
            keyword_density=0.6,
            description_similarity=0.4,
            title_similarity=0.5,
            resume_relevance_score=0.5,
            buzzword_match=0.6,
        )
    )
    assert clean.keywords == clean.structure == clean.content == []


def test_quick_wins_ordered_by_impact(generator):
    prediction = make_prediction(
        application_speed_score=0.6,
        days_since_posted=5,
        title_similarity=0.2,
        keyword_density=0.3,
        is_remote=1.0,
        location_match=0.5,
    )
    wins = generator.identify_quick_wins(prediction)
    assert [w.impact_estimate for w in wins] == [8, 5, 5, 3, 3]
    assert [w.category for w in wins] == ["application", "resume", "resume", "timing", "resume"]


def test_cover_letter_is_always_a_quick_win(generator):
    wins = generator.identify_quick_wins(
        make_prediction(application_speed_score=1.0, title_similarity=0.9, keyword_density=0.9)
    )
    assert [w.category for w in wins] == ["application"]


def test_impact_estimates(generator):
    prediction = make_prediction(
        50,
        required_skills_coverage=0.5,
        experience_gap=2.0,
        experience_match_score=0.6,
        description_similarity=0.3,
    )
    estimates = generator.estimate_improvement_impact(prediction)
    assert [(i.category, i.impact) for i in estimates.improvements] == [
        ("Skills", 10),
        ("Experience", 10),
        ("Resume", 6),
    ]
    assert estimates.total_potential_impact == 26
    assert estimates.max_achievable_score == 76
    assert estimates.realistic_score == 68


def test_impact_estimates_are_capped(generator):
    prediction = make_prediction(95, required_skills_coverage=0.0, experience_gap=10.0, description_similarity=0.0)
    estimates = generator.estimate_improvement_impact(prediction)
    assert estimates.total_potential_impact == 20 + 15 + 10
    assert estimates.max_achievable_score == 100
    assert estimates.realistic_score == 100


def test_priority_actions(generator):
    prediction = make_prediction(
        title_similarity=0.2,
        description_similarity=0.1,
        details={"missing_required_skills": ["kubernetes"]},
    )
    actions = generator.generate_priority_actions(prediction)
    keys = [(a.priority, -a.impact_estimate) for a in actions]
    assert keys == sorted(keys)
    assert actions[-1].type == "critical"
    assert actions[-1].priority == 2
    assert {a.type for a in actions if a.priority == 1} == {"quick-win", "optimization"}
    assert len(actions) <= 10


def test_long_term_goals_and_timeline(generator):
    prediction = make_prediction(
        experience_gap=3.0,
        education_match=0.5,
        industry_match=0.0,
        details={"missing_required_skills": ["aws", "docker", "sql", "go"]},
    )
    goals = generator.generate_long_term_goals(prediction)
    assert goals[0].goal == "Master critical skills: aws, docker, sql"
    assert [g.priority for g in goals] == ["critical", "high", "medium", "medium"]

    timeline = generator.generate_improvement_timeline(prediction)
    assert timeline.long_term.actions == [g.goal for g in goals]
    assert timeline.short_term.timeframe == "1-4 weeks"


def test_generate_feedback_is_deterministic():
    prediction = make_prediction(62, skill_match_score=0.4, details={"missing_required_skills": ["aws"]})
    first = generate_feedback(prediction)
    second = generate_feedback(prediction)
    assert first.model_dump() == second.model_dump()
    assert first.assessment.status == "moderate"
    assert first.action_items


def test_generate_feedback_with_feature_override():
    prediction = make_prediction(70)
    feedback = generate_feedback(prediction, FeatureVector(experience_gap=5.0))
    assert feedback.experience.gap == 5.0


def test_feedback_survives_json_round_trip(generator):
    prediction = make_prediction(
        58,
        details={
            "matched_required_skills": ["python", "sql"],
            "missing_required_skills": ["microservices", "kubernetes"],
            "missing_preferred_skills": ["redis"],
        },
        experience_gap=2.0,
    )
    restored = Prediction.model_validate_json(prediction.model_dump_json())

    assert restored.features.details == prediction.features.details
    feedback = generator.generate_feedback(restored)
    assert [g.skill for g in feedback.skills.critical_gaps] == ["microservices", "kubernetes"]
    assert feedback.model_dump() == generator.generate_feedback(prediction).model_dump()

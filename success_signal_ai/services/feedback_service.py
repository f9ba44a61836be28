"""Feedback Generator: turn a prediction into prioritised, actionable improvement suggestions."""

from typing import Dict, List, Optional
from urllib.parse import quote_plus

from success_signal_ai.features.text_similarity import contains_term
from success_signal_ai.schemas.feature_vector import FeatureVector
from success_signal_ai.schemas.feedback import (
    ActionItem,
    Assessment,
    EducationFeedback,
    ExperienceFeedback,
    Feedback,
    FeedbackNote,
    ImpactEstimates,
    ImpactItem,
    ImprovementTimeline,
    LearningResource,
    LongTermGoal,
    OptimizationItem,
    QuickWin,
    ResumeOptimization,
    SkillFeedback,
    SkillResources,
    SkillSuggestion,
    TimelinePhase,
)
from success_signal_ai.schemas.prediction import Prediction
from success_signal_ai.utils.logger import get_logger

logger = get_logger(__name__)

# Skills that usually come with a matched skill
COMPLEMENTARY_SKILLS: Dict[str, List[str]] = {
    "javascript": ["React", "Node.js", "TypeScript", "Vue.js", "Angular"],
    "python": ["Django", "Flask", "Pandas", "NumPy", "TensorFlow"],
    "react": ["Redux", "React Native", "Next.js", "TypeScript", "Jest"],
    "java": ["Spring Boot", "Hibernate", "Maven", "JUnit", "Microservices"],
    "cloud": ["AWS", "Azure", "GCP", "Docker", "Kubernetes"],
    "data": ["SQL", "Python", "Tableau", "Power BI", "Spark"],
}

# (keywords, learning time), first match wins
LEARNING_TIMES = [
    (("react", "vue", "angular", "express", "flask"), "2-4 weeks"),
    (("javascript", "python", "java", "typescript"), "1-3 months"),
    (("aws", "azure", "gcp", "docker", "kubernetes"), "1-2 months"),
]
DEFAULT_LEARNING_TIME = "2-6 weeks"

CERTIFICATIONS = [
    (("aws",), "AWS Certified Solutions Architect"),
    (("python", "data", "ml"), "Google Data Analytics Certificate"),
    (("scrum",), "Certified Scrum Master (CSM)"),
]

# (upper bound in years, level) for the candidate's experience and the role's requirement
CURRENT_LEVELS = [(1, "entry"), (3, "junior"), (6, "mid"), (10, "senior")]
TARGET_LEVELS = [(2, "junior"), (5, "mid"), (8, "senior")]

# (min score, status, message, priority)
ASSESSMENT_BANDS = [
    (80, "excellent", "You're well-positioned for this role. Focus on crafting a compelling application.", "low"),
    (
        65,
        "good",
        "You have a solid foundation. A few key improvements could significantly boost your chances.",
        "medium",
    ),
    (
        50,
        "moderate",
        "Substantial gaps exist. Strategic improvements in key areas are recommended before applying.",
        "high",
    ),
    (
        0,
        "needs-work",
        "Significant development needed. Consider targeting roles that better match your current profile, "
        "or invest time in skill/experience building.",
        "critical",
    ),
]

SHORT_TERM_ACTIONS = [
    "Complete online courses for 1-2 critical skills",
    "Update resume with optimized keywords",
    "Build small project demonstrating key skill",
    "Get resume reviewed by peer or professional",
]
MEDIUM_TERM_ACTIONS = [
    "Complete 2-3 substantial projects",
    "Earn relevant certification",
    "Gain hands-on experience through freelancing or contributions",
    "Network in target industry",
]

MAX_QUICK_WINS = 5
MAX_ACTION_ITEMS = 10
REALISTIC_SHARE = 0.7


def estimate_learning_time(skill: str) -> str:
    lowered = skill.lower()
    for keywords, duration in LEARNING_TIMES:
        if any(k in lowered for k in keywords):
            return duration
    return DEFAULT_LEARNING_TIME


def suggest_complementary_skills(matched_skills: List[str]) -> List[str]:
    """Complements of matched skills, deduplicated, excluding skills already held."""
    lowered = [s.lower() for s in matched_skills]
    suggestions: List[str] = []
    for skill in lowered:
        for key, complements in COMPLEMENTARY_SKILLS.items():
            if contains_term(skill, key):
                suggestions.extend(c for c in complements if c not in suggestions)
    return [s for s in suggestions if not any(contains_term(held, s.lower()) for held in lowered)]


def suggest_learning_resources(skills: List[str]) -> List[SkillResources]:
    resources = []
    for skill in skills[:3]:
        q = quote_plus(skill)
        resources.append(
            SkillResources(
                skill=skill,
                resources=[
                    LearningResource(name="Coursera", type="course", url=f"https://coursera.org/search?query={q}"),
                    LearningResource(name="Udemy", type="course", url=f"https://udemy.com/courses/search/?q={q}"),
                    LearningResource(
                        name="YouTube", type="tutorial", url=f"https://youtube.com/results?search_query={q}+tutorial"
                    ),
                    LearningResource(
                        name="Official Docs", type="documentation", url=f"https://duckduckgo.com/?q={q}+documentation"
                    ),
                ],
            )
        )
    return resources


def suggest_certifications(missing_skills: List[str]) -> List[str]:
    lowered = [s.lower() for s in missing_skills]
    return [cert for keywords, cert in CERTIFICATIONS if any(k in s for s in lowered for k in keywords)]


def estimate_current_level(years: float) -> str:
    for bound, level in CURRENT_LEVELS:
        if years < bound:
            return level
    return "lead"


def estimate_target_level(required_years: Optional[float]) -> str:
    if required_years is None:
        return "mid"
    for bound, level in TARGET_LEVELS:
        if required_years < bound:
            return level
    return "lead"


class FeedbackGenerator:
    """Deterministic threshold and lookup rules over a Prediction. Holds no state."""

    def generate_feedback(self, prediction: Prediction) -> Feedback:
        logger.info("Generating feedback for match score %s", prediction.match_score)
        return Feedback(
            assessment=self.generate_assessment(prediction),
            skills=self.generate_skill_feedback(prediction),
            experience=self.generate_experience_feedback(prediction),
            education=self.generate_education_feedback(prediction),
            resume_optimization=self.generate_resume_optimization(prediction),
            quick_wins=self.identify_quick_wins(prediction),
            long_term_goals=self.generate_long_term_goals(prediction),
            impact_estimates=self.estimate_improvement_impact(prediction),
            action_items=self.generate_priority_actions(prediction),
            timeline=self.generate_improvement_timeline(prediction),
        )

    def generate_assessment(self, prediction: Prediction) -> Assessment:
        score = prediction.match_score
        breakdown = prediction.feature_breakdown
        for min_score, status, message, priority in ASSESSMENT_BANDS:
            if score >= min_score:
                break
        return Assessment(
            status=status,
            score=score,
            message=message,
            priority=priority,
            strength_count=len(breakdown.strengths),
            weakness_count=len(breakdown.weaknesses),
            top_strength=breakdown.strengths[0].description if breakdown.strengths else "N/A",
            top_weakness=breakdown.weaknesses[0].description if breakdown.weaknesses else "N/A",
        )

    def generate_skill_feedback(self, prediction: Prediction) -> SkillFeedback:
        details = prediction.features.details
        missing_required = details.missing_required_skills
        missing_preferred = details.missing_preferred_skills
        matched = details.matched_required_skills + details.matched_preferred_skills

        feedback = SkillFeedback()
        for skill in missing_required:
            feedback.critical_gaps.append(
                SkillSuggestion(
                    skill=skill,
                    importance="critical",
                    impact="+15-20 match score",
                    impact_estimate=15,
                    action=f"Learn {skill}",
                    urgency="high",
                    estimated_time=estimate_learning_time(skill),
                )
            )
        for skill in missing_preferred[:5]:
            feedback.recommended_skills.append(
                SkillSuggestion(
                    skill=skill,
                    importance="recommended",
                    impact="+5-10 match score",
                    impact_estimate=5,
                    action=f"Add {skill} to skillset",
                    urgency="medium",
                    estimated_time=estimate_learning_time(skill),
                )
            )
        for skill in suggest_complementary_skills(matched)[:3]:
            feedback.complementary_skills.append(
                SkillSuggestion(
                    skill=skill,
                    importance="complementary",
                    impact="+3-5 match score",
                    impact_estimate=3,
                    action=f"Complement existing skills with {skill}",
                    urgency="low",
                    estimated_time=estimate_learning_time(skill),
                )
            )
        feedback.learning_resources = suggest_learning_resources(missing_required + missing_preferred[:3])
        return feedback

    def generate_experience_feedback(self, prediction: Prediction) -> ExperienceFeedback:
        f = prediction.features
        gap = f.experience_gap
        feedback = ExperienceFeedback(
            current_level=estimate_current_level(f.years_of_experience),
            target_level=estimate_target_level(f.required_years),
            gap=gap,
        )
        notes = feedback.recommendations

        if gap > 0:
            if gap <= 1:
                notes.append(
                    FeedbackNote(
                        type="minor-gap",
                        message=f"You're {gap:.1f} years short of the preferred experience level.",
                        action="Emphasize relevant projects and achievements to compensate",
                        impact="Can be mitigated with strong portfolio",
                    )
                )
            elif gap <= 3:
                notes.append(
                    FeedbackNote(
                        type="moderate-gap",
                        message=f"{gap:.1f} year experience gap exists.",
                        action="Consider roles at your current level, or highlight transferable experience",
                        impact="Moderate hurdle, but addressable",
                    )
                )
            else:
                notes.append(
                    FeedbackNote(
                        type="significant-gap",
                        message=f"Significant {gap:.1f} year gap in experience.",
                        action="Target roles 1-2 levels below, or gain experience before applying",
                        impact="Major obstacle to success",
                    )
                )

        if f.seniority_match < 0.7:
            notes.append(
                FeedbackNote(
                    type="seniority-mismatch",
                    message="Your seniority level doesn't align well with the role.",
                    action="Clarify your level in resume title and summary",
                    impact="+5-10 match score",
                )
            )
        if f.industry_match < 0.5:
            notes.append(
                FeedbackNote(
                    type="industry-gap",
                    message="Limited experience in this industry.",
                    action="Highlight transferable skills and quick learning ability",
                    impact="+3-5 match score",
                )
            )
        if f.company_size_match < 0.5:
            notes.append(
                FeedbackNote(
                    type="company-size-gap",
                    message="Your experience is primarily with different company sizes.",
                    action="Research and address in cover letter how your experience translates",
                    impact="+2-4 match score",
                )
            )
        return feedback

    def generate_education_feedback(self, prediction: Prediction) -> EducationFeedback:
        f = prediction.features
        feedback = EducationFeedback(level="meets-requirements" if f.education_match >= 0.8 else "below-requirements")
        notes = feedback.recommendations

        if f.education_match < 1.0:
            if f.education_match >= 0.8:
                notes.append(
                    FeedbackNote(
                        type="minor-gap",
                        message="Your education level is slightly below preferred.",
                        action="Compensate with strong work experience and certifications",
                        impact="+2-3 match score",
                    )
                )
            else:
                notes.append(
                    FeedbackNote(
                        type="significant-gap",
                        message="Education level below requirements.",
                        action="Consider pursuing additional education or target roles with lower requirements",
                        impact="Major factor - consider long-term education goals",
                    )
                )
        if f.field_match < 0.7:
            notes.append(
                FeedbackNote(
                    type="field-mismatch",
                    message="Your field of study doesn't closely match role requirements.",
                    action="Take online courses or certifications in the target field",
                    impact="+3-5 match score",
                    suggestions=suggest_certifications(f.details.missing_required_skills),
                )
            )
        if 0 < f.gpa_score < 0.7:
            notes.append(
                FeedbackNote(
                    type="gpa-concern",
                    message="GPA may be below some company thresholds.",
                    action="Emphasize work achievements and skills gained since graduation",
                    impact="Minor factor for experienced candidates",
                )
            )
        return feedback

    def generate_resume_optimization(self, prediction: Prediction) -> ResumeOptimization:
        f = prediction.features
        optimization = ResumeOptimization()
        if f.keyword_density < 0.6:
            optimization.keywords.append(
                OptimizationItem(
                    issue="Low keyword density",
                    action="Add more job-specific keywords from the posting",
                    impact="+5-10 match score",
                    impact_estimate=5,
                    priority="high",
                )
            )
        if f.description_similarity < 0.4:
            optimization.keywords.append(
                OptimizationItem(
                    issue="Weak alignment between resume and job description",
                    action="Rephrase experience bullets to match job requirements language",
                    impact="+8-12 match score",
                    impact_estimate=8,
                    priority="critical",
                )
            )
        if f.title_similarity < 0.5:
            optimization.structure.append(
                OptimizationItem(
                    issue="Resume title doesn't match target role",
                    action="Update resume title to match or closely align with job title",
                    impact="+3-5 match score",
                    impact_estimate=3,
                    priority="high",
                )
            )
        if f.resume_relevance_score < 0.5:
            optimization.content.append(
                OptimizationItem(
                    issue="Much of resume content not relevant to role",
                    action="Tailor resume to emphasize relevant experience and hide/minimize irrelevant items",
                    impact="+10-15 match score",
                    impact_estimate=10,
                    priority="critical",
                )
            )
        if f.buzzword_match < 0.6:
            optimization.content.append(
                OptimizationItem(
                    issue="Missing industry buzzwords",
                    action="Incorporate relevant industry terminology naturally",
                    impact="+4-6 match score",
                    impact_estimate=4,
                    priority="medium",
                )
            )
        return optimization

    def identify_quick_wins(self, prediction: Prediction) -> List[QuickWin]:
        """Low-effort improvements, highest impact first (top 5)."""
        f = prediction.features
        wins = []
        if f.application_speed_score < 0.8 and f.days_since_posted <= 7:
            wins.append(
                QuickWin(
                    action="Apply immediately (job posted recently)",
                    impact="+3-5 match score",
                    impact_estimate=3,
                    effort="immediate",
                    category="timing",
                )
            )
        if f.title_similarity < 0.5:
            wins.append(
                QuickWin(
                    action="Update resume title to match job title",
                    impact="+3-5 match score",
                    impact_estimate=3,
                    effort="5 minutes",
                    category="resume",
                )
            )
        if f.keyword_density < 0.5:
            wins.append(
                QuickWin(
                    action="Add 5-10 keywords from job description",
                    impact="+5-8 match score",
                    impact_estimate=5,
                    effort="15 minutes",
                    category="resume",
                )
            )
        wins.append(
            QuickWin(
                action="Write custom cover letter addressing key requirements",
                impact="+8-12 match score",
                impact_estimate=8,
                effort="30-45 minutes",
                category="application",
            )
        )
        if f.is_remote == 1 and f.location_match < 0.8:
            wins.append(
                QuickWin(
                    action="Emphasize remote work experience in resume",
                    impact="+5-7 match score",
                    impact_estimate=5,
                    effort="10 minutes",
                    category="resume",
                )
            )
        wins.sort(key=lambda w: w.impact_estimate, reverse=True)
        return wins[:MAX_QUICK_WINS]

    def generate_long_term_goals(self, prediction: Prediction) -> List[LongTermGoal]:
        f = prediction.features
        goals = []
        missing = f.details.missing_required_skills
        if missing:
            goals.append(
                LongTermGoal(
                    goal=f"Master critical skills: {', '.join(missing[:3])}",
                    timeline="3-6 months",
                    impact="+15-25 match score",
                    steps=[
                        "Take online courses (Coursera, Udemy, etc.)",
                        "Build 2-3 projects using these skills",
                        "Get certification if available",
                        "Add to resume with project examples",
                    ],
                    priority="critical",
                )
            )
        if f.experience_gap > 2:
            goals.append(
                LongTermGoal(
                    goal="Gain relevant work experience",
                    timeline="1-2 years",
                    impact="+20-30 match score",
                    steps=[
                        "Target intermediate-level roles first",
                        "Take on stretch projects in current role",
                        "Contribute to open source projects",
                        "Seek mentorship from senior professionals",
                    ],
                    priority="high",
                )
            )
        if f.education_match < 0.8:
            goals.append(
                LongTermGoal(
                    goal="Pursue additional education or certifications",
                    timeline="6-24 months",
                    impact="+10-15 match score",
                    steps=[
                        "Research relevant certifications or degree programs",
                        "Start with online courses to test interest",
                        "Consider part-time or evening programs",
                        "Seek employer tuition assistance",
                    ],
                    priority="medium",
                )
            )
        if f.industry_match < 0.5:
            goals.append(
                LongTermGoal(
                    goal="Build industry-specific experience",
                    timeline="6-12 months",
                    impact="+8-12 match score",
                    steps=[
                        "Take on projects in target industry",
                        "Network with industry professionals",
                        "Attend industry conferences/meetups",
                        "Read industry publications and blogs",
                    ],
                    priority="medium",
                )
            )
        return goals

    def estimate_improvement_impact(self, prediction: Prediction) -> ImpactEstimates:
        f = prediction.features
        current = prediction.match_score
        improvements: List[ImpactItem] = []

        skill_gap = 1.0 - f.required_skills_coverage
        if skill_gap > 0:
            improvements.append(_impact_item(
                "Skills", "Add all missing required skills", f.required_skills_coverage * 100, 100, skill_gap * 20, current
            ))
        if f.experience_gap > 0:
            improvements.append(_impact_item(
                "Experience",
                f"Gain {f.experience_gap:.1f} more years of experience",
                f.experience_match_score * 100,
                100,
                min(f.experience_gap * 5, 15),
                current,
            ))
        if f.description_similarity < 0.7:
            improvements.append(_impact_item(
                "Resume",
                "Optimize resume for better alignment",
                f.description_similarity * 100,
                70,
                (0.7 - f.description_similarity) * 15,
                current,
            ))

        total = sum(item.impact for item in improvements)
        return ImpactEstimates(
            current=current,
            improvements=improvements,
            total_potential_impact=total,
            max_achievable_score=min(100, current + total),
            realistic_score=min(100, round(current + total * REALISTIC_SHARE)),
        )

    def generate_priority_actions(self, prediction: Prediction) -> List[ActionItem]:
        """Quick wins and critical fixes first, then critical skill gaps; by impact within a priority."""
        actions = [
            ActionItem(**win.model_dump(), type="quick-win", priority=1)
            for win in self.identify_quick_wins(prediction)
        ]
        for gap in self.generate_skill_feedback(prediction).critical_gaps:
            actions.append(
                ActionItem(
                    action=gap.action,
                    impact=gap.impact,
                    impact_estimate=gap.impact_estimate,
                    effort=gap.estimated_time,
                    category="skill",
                    type="critical",
                    priority=2,
                )
            )
        for item in self.generate_resume_optimization(prediction).keywords:
            if item.priority == "critical":
                actions.append(
                    ActionItem(
                        action=item.action,
                        impact=item.impact,
                        impact_estimate=item.impact_estimate,
                        effort="15-30 minutes",
                        category="resume",
                        type="optimization",
                        priority=1,
                    )
                )
        actions.sort(key=lambda a: (a.priority, -a.impact_estimate))
        return actions[:MAX_ACTION_ITEMS]

    def generate_improvement_timeline(self, prediction: Prediction) -> ImprovementTimeline:
        return ImprovementTimeline(
            immediate=self.identify_quick_wins(prediction),
            short_term=TimelinePhase(timeframe="1-4 weeks", actions=list(SHORT_TERM_ACTIONS)),
            medium_term=TimelinePhase(timeframe="1-3 months", actions=list(MEDIUM_TERM_ACTIONS)),
            long_term=TimelinePhase(
                timeframe="3-12 months",
                actions=[goal.goal for goal in self.generate_long_term_goals(prediction)],
            ),
        )


def _impact_item(
    category: str,
    description: str,
    current_score: float,
    potential_score: float,
    impact: float,
    match_score: int,
) -> ImpactItem:
    return ImpactItem(
        category=category,
        description=description,
        current_score=round(current_score, 1),
        potential_score=potential_score,
        impact=round(impact),
        new_total_score=round(min(100.0, match_score + impact), 1),
    )


def generate_feedback(prediction: Prediction, features: Optional[FeatureVector] = None) -> Feedback:
    """Convenience wrapper; features overrides prediction.features when given."""
    if features is not None:
        prediction = prediction.model_copy(update={"features": features})
    return FeedbackGenerator().generate_feedback(prediction)

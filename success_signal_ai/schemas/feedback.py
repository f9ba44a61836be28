"""Feedback output produced from a prediction."""

from typing import List

from pydantic import BaseModel, Field


class Assessment(BaseModel):
    status: str = Field(..., description="excellent, good, moderate or needs-work")
    score: int
    message: str
    priority: str = Field(..., description="low, medium, high or critical")
    strength_count: int = 0
    weakness_count: int = 0
    top_strength: str = "N/A"
    top_weakness: str = "N/A"


class SkillSuggestion(BaseModel):
    skill: str
    importance: str = Field(..., description="critical, recommended or complementary")
    impact: str
    impact_estimate: int = Field(..., description="Lower bound of the match-score gain")
    action: str
    urgency: str
    estimated_time: str


class LearningResource(BaseModel):
    name: str
    type: str
    url: str


class SkillResources(BaseModel):
    skill: str
    resources: List[LearningResource] = Field(default_factory=list)


class SkillFeedback(BaseModel):
    critical_gaps: List[SkillSuggestion] = Field(default_factory=list)
    recommended_skills: List[SkillSuggestion] = Field(default_factory=list)
    complementary_skills: List[SkillSuggestion] = Field(default_factory=list)
    learning_resources: List[SkillResources] = Field(default_factory=list)


class FeedbackNote(BaseModel):
    type: str
    message: str
    action: str
    impact: str
    suggestions: List[str] = Field(default_factory=list)


class ExperienceFeedback(BaseModel):
    current_level: str
    target_level: str
    gap: float
    recommendations: List[FeedbackNote] = Field(default_factory=list)


class EducationFeedback(BaseModel):
    level: str = Field(..., description="meets-requirements or below-requirements")
    recommendations: List[FeedbackNote] = Field(default_factory=list)


class OptimizationItem(BaseModel):
    issue: str
    action: str
    impact: str
    impact_estimate: int
    priority: str


class ResumeOptimization(BaseModel):
    keywords: List[OptimizationItem] = Field(default_factory=list)
    structure: List[OptimizationItem] = Field(default_factory=list)
    content: List[OptimizationItem] = Field(default_factory=list)


class QuickWin(BaseModel):
    action: str
    impact: str
    impact_estimate: int
    effort: str
    category: str


class LongTermGoal(BaseModel):
    goal: str
    timeline: str
    impact: str
    steps: List[str] = Field(default_factory=list)
    priority: str


class ImpactItem(BaseModel):
    category: str
    description: str
    current_score: float
    potential_score: float
    impact: int
    new_total_score: float


class ImpactEstimates(BaseModel):
    current: int
    improvements: List[ImpactItem] = Field(default_factory=list)
    total_potential_impact: int = 0
    max_achievable_score: int = 0
    realistic_score: int = Field(0, description="Current score plus 70% of the potential impact")


class ActionItem(BaseModel):
    action: str
    impact: str
    impact_estimate: int
    effort: str
    category: str
    type: str = Field(..., description="quick-win, critical or optimization")
    priority: int = Field(..., description="Lower runs first")


class TimelinePhase(BaseModel):
    timeframe: str
    actions: List[str] = Field(default_factory=list)


class ImprovementTimeline(BaseModel):
    immediate: List[QuickWin] = Field(default_factory=list)
    short_term: TimelinePhase
    medium_term: TimelinePhase
    long_term: TimelinePhase


class Feedback(BaseModel):
    """Actionable feedback derived deterministically from one prediction."""

    assessment: Assessment
    skills: SkillFeedback
    experience: ExperienceFeedback
    education: EducationFeedback
    resume_optimization: ResumeOptimization
    quick_wins: List[QuickWin] = Field(default_factory=list)
    long_term_goals: List[LongTermGoal] = Field(default_factory=list)
    impact_estimates: ImpactEstimates
    action_items: List[ActionItem] = Field(default_factory=list)
    timeline: ImprovementTimeline

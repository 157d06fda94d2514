"""
MedScope.ai - Screening Assessments
PHQ-9 depression screening, blood-pressure categories, diet and exercise plans, and first-aid guides.
"""
from dataclasses import dataclass
from typing import Sequence

PHQ9_QUESTIONS = [
    "Little interest or pleasure in doing things?",
    "Feeling down, depressed, or hopeless?",
    "Trouble falling or staying asleep, or sleeping too much?",
    "Feeling tired or having little energy?",
    "Poor appetite or overeating?",
    "Feeling bad about yourself?",
    "Trouble concentrating?",
    "Moving or speaking slowly/being fidgety or restless?",
    "Thoughts of self-harm?",
]

PHQ9_OPTIONS = ["Not at all", "Several days", "More than half the days", "Nearly every day"]

# (minimum score, severity, recommendation), highest band first
PHQ9_BANDS = [
    (20, "severe", "Severe depression symptoms. Please seek professional help immediately."),
    (15, "moderately severe",
     "Moderately severe depression symptoms. Consider consulting a mental health professional."),
    (10, "moderate", "Moderate depression symptoms. Talk to your healthcare provider."),
    (5, "mild", "Mild depression symptoms. Monitor your mood and practice self-care."),
    (0, "minimal", "Minimal depression symptoms. Continue monitoring your mental health."),
]


@dataclass
class PHQ9Result:
    score: int
    severity: str
    recommendation: str
    self_harm_flag: bool

    def summary(self) -> str:
        """Plain-text summary used as chat context for follow-up questions."""
        text = (
            f"PHQ-9 depression screening score: {self.score} out of 27 "
            f"({self.severity}). {self.recommendation}"
        )
        if self.self_harm_flag:
            text += " The respondent reported thoughts of self-harm."
        return text


def score_phq9(answers: Sequence[int]) -> PHQ9Result:
    """
    Score a completed PHQ-9 questionnaire.

    Args:
        answers: Nine answers, each 0 (not at all) to 3 (nearly every day).

    Raises:
        ValueError: If the questionnaire is incomplete or an answer is out of range.
    """
    if len(answers) != len(PHQ9_QUESTIONS):
        raise ValueError(f"PHQ-9 requires {len(PHQ9_QUESTIONS)} answers, got {len(answers)}")
    for value in answers:
        if isinstance(value, bool) or not isinstance(value, int) or not 0 <= value <= 3:
            raise ValueError(f"PHQ-9 answers must be integers from 0 to 3, got {value!r}")

    score = sum(answers)
    for minimum, severity, recommendation in PHQ9_BANDS:
        if score >= minimum:
            break
    return PHQ9Result(
        score=score,
        severity=severity,
        recommendation=recommendation,
        self_harm_flag=answers[-1] > 0,
    )


def blood_pressure_category(systolic: float, diastolic: float) -> str:
    if systolic < 120 and diastolic < 80:
        return "Normal"
    if systolic < 130 and diastolic < 80:
        return "Elevated"
    return "High"


# goal -> (diet, exercise)
HEALTH_GOALS = {
    "lose": (
        "Focus on a calorie deficit with plenty of protein, vegetables, and whole grains. "
        "Aim for 500 calories less than maintenance.",
        "Combine cardio (30 mins, 5x/week) with strength training (3x/week). "
        "Focus on compound exercises.",
    ),
    "gain": (
        "Increase caloric intake with healthy fats, complex carbs, and lean proteins. "
        "Eat frequent, nutrient-dense meals.",
        "Prioritize strength training (4x/week) with progressive overload. "
        "Add light cardio for heart health.",
    ),
    "maintain": (
        "Balanced diet with adequate protein, complex carbs, and healthy fats. "
        "Focus on whole, unprocessed foods.",
        "Mix of cardio and strength training (3-4x/week). "
        "Include flexibility work and recovery days.",
    ),
}


@dataclass
class HealthPlan:
    bmi: float
    diet: str
    exercise: str


def body_mass_index(height_cm: float, weight_kg: float) -> float:
    if height_cm <= 0 or weight_kg <= 0:
        raise ValueError("Height and weight must be positive")
    return weight_kg / (height_cm / 100) ** 2


def health_plan(height_cm: float, weight_kg: float, goal: str = "maintain") -> HealthPlan:
    """
    BMI plus diet and exercise guidance for a weight goal.

    Raises:
        ValueError: On a non-positive height or weight, or an unknown goal.
    """
    if goal not in HEALTH_GOALS:
        raise ValueError(f"Goal must be one of {', '.join(HEALTH_GOALS)}, got {goal!r}")
    diet, exercise = HEALTH_GOALS[goal]
    return HealthPlan(
        bmi=round(body_mass_index(height_cm, weight_kg), 1),
        diet=diet,
        exercise=exercise,
    )


FIRST_AID_TOPICS = [
    {
        "topic": "Minor Cuts",
        "emergency": False,
        "steps": [
            "Clean your hands thoroughly with soap and water",
            "Clean the wound with mild soap and water",
            "Apply antibiotic ointment if available",
            "Cover with a sterile bandage",
            "Change the dressing daily or whenever it gets wet or dirty",
        ],
    },
    {
        "topic": "CPR",
        "emergency": True,
        "steps": [
            "Check the scene is safe and the person is unresponsive",
            "Call emergency services (911) or ask someone else to",
            "Begin chest compressions: 30 compressions at 100-120 per minute",
            "Give 2 rescue breaths",
            "Continue cycles of 30 compressions and 2 breaths",
        ],
    },
    {
        "topic": "Choking",
        "emergency": True,
        "steps": [
            "Ask if the person is choking",
            "Perform abdominal thrusts (Heimlich maneuver)",
            "Alternate between 5 back blows and 5 abdominal thrusts",
            "Continue until the object is forced out or person becomes unconscious",
            "If unconscious, start CPR",
        ],
    },
]

EMERGENCY_NOTICE = "Emergency Situation - Call emergency services immediately!"


def first_aid_topic(name: str):
    """Look up a first-aid topic by name, case-insensitively. None if unknown."""
    wanted = name.strip().lower()
    for topic in FIRST_AID_TOPICS:
        if topic["topic"].lower() == wanted:
            return topic
    return None

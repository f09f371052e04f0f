"""
Behavioral (affective domain) grading.

Each criterion is graded A-E. Letters carry fixed points (A=5 ... E=1);
the average grade is the mean of the graded criteria mapped back to a letter.
Blank criteria are skipped.
"""

from typing import Dict, List, Optional
import logging

from .data_models import BehavioralGrade
from .errors import ValidationError

logger = logging.getLogger(__name__)


BEHAVIOR_POINTS = {
    "A": 5,
    "B": 4,
    "C": 3,
    "D": 2,
    "E": 1,
}

BEHAVIOR_DESCRIPTORS = {
    "A": "Excellent",
    "B": "Very Good",
    "C": "Good",
    "D": "Fair",
    "E": "Poor",
}

# Lower bound of the mean points for each letter
AVERAGE_THRESHOLDS = [
    (4.5, "A"),
    (3.5, "B"),
    (2.5, "C"),
    (1.5, "D"),
]

AFFECTIVE_DOMAIN_CRITERIA = [
    {"id": "attentiveness", "label": "Attentiveness"},
    {"id": "class_attendance", "label": "Class Attendance"},
    {"id": "honesty", "label": "Honesty"},
    {"id": "leadership", "label": "Leadership"},
    {"id": "neatness", "label": "Neatness"},
    {"id": "politeness", "label": "Politeness"},
    {"id": "punctuality", "label": "Punctuality"},
    {"id": "application_studies", "label": "Application in Studies"},
    {"id": "attitude_elders", "label": "Attitude towards Elders"},
    {"id": "attitude_peers", "label": "Attitude towards Peers"},
    {"id": "attitude_school", "label": "Attitude towards School"},
    {"id": "conduct_class", "label": "Conduct in Class"},
    {"id": "discipline", "label": "Discipline"},
    {"id": "order_neatness", "label": "Order & Neatness"},
    {"id": "regularity_punctuality", "label": "Regularity & Punctuality"},
]


def average_grade(grades: List[str]) -> str:
    """Rounded mean letter of the given grades, N/A when empty"""
    if not grades:
        return "N/A"
    mean = sum(BEHAVIOR_POINTS[g] for g in grades) / len(grades)
    for threshold, letter in AVERAGE_THRESHOLDS:
        if mean >= threshold:
            return letter
    return "E"


def grade_behavior(
    student_id: str,
    criteria_grades: Dict[str, Optional[str]],
    feedback: str = "",
) -> BehavioralGrade:
    """
    Grade one student's behavioral assessment

    Args:
        student_id: Student identifier
        criteria_grades: criterion id -> letter (blank/None = not graded)
        feedback: Free-text feedback

    Returns:
        BehavioralGrade with total points and average grade

    Raises:
        ValidationError: a letter outside A-E was given
    """
    graded: Dict[str, str] = {}
    for criterion_id, letter in criteria_grades.items():
        if letter is None or not str(letter).strip():
            continue
        letter = str(letter).strip().upper()
        if letter not in BEHAVIOR_POINTS:
            raise ValidationError(
                f"Invalid behavioral grade '{letter}' for {criterion_id}; expected A-E"
            )
        graded[criterion_id] = letter

    total_points = sum(BEHAVIOR_POINTS[g] for g in graded.values())
    result = BehavioralGrade(
        student_id=student_id,
        criteria_grades=graded,
        total_points=total_points,
        average_grade=average_grade(list(graded.values())),
        feedback=feedback,
    )
    logger.debug(
        f"Behavioral grade for {student_id}: {len(graded)} criteria, "
        f"{total_points} points, average {result.average_grade}"
    )
    return result


__all__ = [
    "BEHAVIOR_POINTS",
    "BEHAVIOR_DESCRIPTORS",
    "AFFECTIVE_DOMAIN_CRITERIA",
    "average_grade",
    "grade_behavior",
]

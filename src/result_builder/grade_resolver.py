#!/usr/bin/env python3
"""
GRADE RESOLVER - Map a percentage to a letter grade using a grade scale

RESOLUTION RULES:
✅ A range matches when minScore <= percentage <= maxScore
✅ Whole-mark scales (all bounds integers) let each range own the fractional
   marks below maxScore + 1, so B:70-74 resolves 74.9 and A:75-100 owns 75.0
✅ Gap in the scale -> NoMatchingGradeError (the resolver never guesses)
✅ Several matches (overlapping legacy data) -> highest minScore wins, with a
   consistency warning

The scale is always passed in by the caller; there is no module-level
"current scale".

Priority: CRITICAL - Every printed grade comes from here
Dependencies: data_models
"""

from dataclasses import dataclass
from typing import Optional
import logging

from .data_models import DEFAULT_GRADE_COLOR, GradeScale
from .errors import NoMatchingGradeError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ResolvedGrade:
    """Grade resolved for one percentage"""
    grade: str
    remark: str
    grade_point: float
    color: str


def resolve(percentage: float, scale: GradeScale) -> ResolvedGrade:
    """
    Resolve a percentage against a grade scale

    Args:
        percentage: Aggregated percentage (0-100)
        scale: Grade scale to resolve against (normally the active one)

    Returns:
        ResolvedGrade with grade, remark, grade point and color

    Raises:
        NoMatchingGradeError: percentage falls in a gap of the scale
    """
    whole_mark = scale.is_whole_mark
    matches = [r for r in scale.grade_ranges if r.contains(percentage, whole_mark)]

    if not matches:
        raise NoMatchingGradeError(percentage, scale.name)

    best = max(matches, key=lambda r: r.min_score)
    if len(matches) > 1:
        logger.warning(
            f"Grade scale '{scale.name}' has overlapping ranges at {percentage:.2f}%: "
            f"{', '.join(r.label() for r in matches)} - using {best.grade}"
        )

    return ResolvedGrade(
        grade=best.grade,
        remark=best.remark,
        grade_point=best.grade_point,
        color=best.color,
    )


def resolve_or_default(percentage: float, scale: GradeScale) -> ResolvedGrade:
    """Resolve, falling back to the lowest grade of the scale for gaps"""
    try:
        return resolve(percentage, scale)
    except NoMatchingGradeError:
        lowest = scale.lowest_range()
        if lowest is None:
            raise
        logger.warning(
            f"{percentage:.2f}% is not covered by '{scale.name}', defaulting to {lowest.grade}"
        )
        return ResolvedGrade(
            grade=lowest.grade,
            remark=lowest.remark,
            grade_point=lowest.grade_point,
            color=lowest.color,
        )


def grade_color(grade: Optional[str], scale: GradeScale) -> str:
    """Display color of a grade letter, read from the scale's ranges"""
    if grade:
        grade_range = scale.get_range(grade)
        if grade_range is not None:
            return grade_range.color
    return DEFAULT_GRADE_COLOR


__all__ = ["ResolvedGrade", "resolve", "resolve_or_default", "grade_color"]

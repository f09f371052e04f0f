#!/usr/bin/env python3
"""
GRADE SCALE VALIDATOR - Validate and manage score-to-grade scales

VALIDATION RULES:
✅ Name: non-empty after trimming
✅ Ranges: at least one
✅ Overlap: ranges sorted by minScore (highest first); adjacent pairs are
   checked, which is equivalent to checking every unordered pair
✅ Coverage: gaps in 0-100 are reported, not rejected

MANAGEMENT:
- Create / update / delete scales through a GradeScaleStore
- Activation switches the single active scale in one store call

Priority: HIGH - A bad scale silently corrupts every grade
Dependencies: data_models, errors
"""

from abc import ABC, abstractmethod
from datetime import datetime
from typing import Any, Dict, Iterable, List, Optional, Tuple, Union
import copy
import logging

from pydantic import ValidationError as PydanticValidationError

from .data_models import GradeRange, GradeScale
from .errors import (
    GradeScaleInUseError,
    GradeScaleNotFoundError,
    ValidationError,
)

logger = logging.getLogger(__name__)

RangeInput = Union[GradeRange, Dict[str, Any]]


def ranges_overlap(a: GradeRange, b: GradeRange) -> bool:
    """Two ranges overlap when their closed score intervals intersect"""
    return a.min_score <= b.max_score and b.min_score <= a.max_score


def _parse_ranges(grade_ranges: Iterable[RangeInput]) -> List[GradeRange]:
    parsed = []
    for index, raw in enumerate(grade_ranges):
        if isinstance(raw, GradeRange):
            parsed.append(raw)
            continue
        try:
            parsed.append(GradeRange.model_validate(raw))
        except PydanticValidationError as e:
            errors = [f"range {index + 1}: {err['msg']}" for err in e.errors()]
            raise ValidationError(f"Invalid grade range: {'; '.join(errors)}", errors=errors) from e
    return parsed


def validate_grade_scale(name: Optional[str], grade_ranges: Optional[Iterable[RangeInput]]) -> List[GradeRange]:
    """
    Validate a candidate grade scale

    Args:
        name: Scale name
        grade_ranges: GradeRange objects or API dicts, in any order

    Returns:
        Parsed ranges sorted by minScore, highest first

    Raises:
        ValidationError: blank name, no ranges, or overlapping ranges
    """
    if name is None or not name.strip():
        raise ValidationError("Grade scale name is required")

    ranges = _parse_ranges(grade_ranges or [])
    if not ranges:
        raise ValidationError("Grade ranges are required")

    sorted_ranges = sorted(ranges, key=lambda r: r.min_score, reverse=True)
    for upper, lower in zip(sorted_ranges, sorted_ranges[1:]):
        if ranges_overlap(upper, lower):
            raise ValidationError(
                f"Grade ranges cannot overlap: {upper.label()} and {lower.label()}",
                pair=(upper, lower),
            )

    return sorted_ranges


def find_coverage_gaps(
    grade_ranges: Iterable[RangeInput],
    lower: float = 0.0,
    upper: float = 100.0,
) -> List[Tuple[float, float]]:
    """
    Find score intervals in [lower, upper] not covered by any range

    Whole-mark scales treat 70-74 followed by 75-100 as contiguous.

    Returns:
        List of (start, end) gaps, lowest first
    """
    ranges = sorted(_parse_ranges(grade_ranges), key=lambda r: r.min_score)
    if not ranges:
        return [(lower, upper)]

    whole_mark = all(r.is_whole_mark for r in ranges)
    step = 1.0 if whole_mark else 0.0

    gaps = []
    cursor = lower
    for grade_range in ranges:
        if grade_range.min_score > cursor:
            gaps.append((cursor, grade_range.min_score))
        cursor = max(cursor, grade_range.max_score + step)

    if whole_mark:
        if cursor <= upper:
            gaps.append((cursor, upper))
    elif cursor < upper:
        gaps.append((cursor, upper))
    return gaps


class GradeScaleStore(ABC):
    """Persistence collaborator for grade scales"""

    @abstractmethod
    def get(self, scale_id: str) -> Optional[GradeScale]:
        ...

    @abstractmethod
    def list(self) -> List[GradeScale]:
        ...

    @abstractmethod
    def save(self, scale: GradeScale) -> GradeScale:
        ...

    @abstractmethod
    def delete(self, scale_id: str) -> None:
        ...

    @abstractmethod
    def set_active(self, scale_id: str) -> None:
        """Make scale_id the only active scale, in one step"""


class InMemoryGradeScaleStore(GradeScaleStore):
    """Dictionary-backed store; returns copies so callers never share state"""

    def __init__(self, scales: Optional[Iterable[GradeScale]] = None):
        self._scales: Dict[str, GradeScale] = {}
        for scale in scales or []:
            self._scales[scale.id] = scale.model_copy(deep=True)

    def get(self, scale_id: str) -> Optional[GradeScale]:
        scale = self._scales.get(scale_id)
        return scale.model_copy(deep=True) if scale else None

    def list(self) -> List[GradeScale]:
        return [s.model_copy(deep=True) for s in self._scales.values()]

    def save(self, scale: GradeScale) -> GradeScale:
        self._scales[scale.id] = scale.model_copy(deep=True)
        return scale.model_copy(deep=True)

    def delete(self, scale_id: str) -> None:
        self._scales.pop(scale_id, None)

    def set_active(self, scale_id: str) -> None:
        updated = {
            sid: s.model_copy(update={"is_active": sid == scale_id})
            for sid, s in self._scales.items()
        }
        # Swap the whole mapping so no half-switched state is observable
        self._scales = updated


class GradeScaleManager:
    """Create, edit, activate and delete grade scales for one school"""

    def __init__(self, store: Optional[GradeScaleStore] = None):
        self.store = store or InMemoryGradeScaleStore()

    def _require(self, scale_id: str) -> GradeScale:
        scale = self.store.get(scale_id)
        if scale is None:
            raise GradeScaleNotFoundError(scale_id)
        return scale

    def create(self, name: str, grade_ranges: Iterable[RangeInput], activate: bool = True) -> GradeScale:
        """Validate and persist a new scale, optionally making it the active one"""
        ranges = validate_grade_scale(name, grade_ranges)
        scale = GradeScale(
            name=name.strip(),
            grade_ranges=ranges,
            is_active=False,
            created_at=datetime.now(),
        )
        self.store.save(scale)
        if activate:
            self.store.set_active(scale.id)

        gaps = find_coverage_gaps(ranges)
        if gaps:
            logger.warning(f"Grade scale '{scale.name}' leaves gaps: {gaps}")
        logger.info(f"Created grade scale '{scale.name}' with {len(ranges)} ranges")
        return self._require(scale.id)

    def update(
        self,
        scale_id: str,
        name: Optional[str] = None,
        grade_ranges: Optional[Iterable[RangeInput]] = None,
    ) -> GradeScale:
        """Rename and/or replace ranges wholesale"""
        scale = self._require(scale_id)
        new_name = scale.name if name is None else name
        if grade_ranges is not None:
            ranges = validate_grade_scale(new_name, grade_ranges)
        else:
            ranges = validate_grade_scale(new_name, scale.grade_ranges)

        updated = scale.model_copy(update={"name": new_name.strip(), "grade_ranges": ranges})
        self.store.save(updated)
        logger.info(f"Updated grade scale '{updated.name}'")
        return self._require(scale_id)

    def activate(self, scale_id: str) -> GradeScale:
        """Make scale_id the school's single active scale"""
        self._require(scale_id)
        self.store.set_active(scale_id)
        logger.info(f"Activated grade scale {scale_id}")
        return self._require(scale_id)

    def delete(self, scale_id: str, referenced_by_results: bool = False) -> None:
        """Delete a scale unless results still reference it"""
        self._require(scale_id)
        if referenced_by_results:
            raise GradeScaleInUseError(scale_id)
        self.store.delete(scale_id)
        logger.info(f"Deleted grade scale {scale_id}")

    def get(self, scale_id: str) -> GradeScale:
        return self._require(scale_id)

    def get_active(self) -> Optional[GradeScale]:
        active = [s for s in self.store.list() if s.is_active]
        if len(active) > 1:
            logger.warning(f"{len(active)} grade scales marked active - store is inconsistent")
        return active[0] if active else None

    def list_scales(self) -> List[GradeScale]:
        """All scales, newest first"""
        return sorted(self.store.list(), key=lambda s: s.created_at, reverse=True)

    def coverage_report(self, scale_id: str) -> List[Tuple[float, float]]:
        return find_coverage_gaps(self._require(scale_id).grade_ranges)


# Templates offered when a school sets up its first scale
DEFAULT_GRADE_SCALES: List[Dict[str, Any]] = [
    {
        "name": "Primary School Grading (100%)",
        "gradeRanges": [
            {"grade": "A", "minScore": 90, "maxScore": 100, "gradePoint": 4.0, "remark": "Excellent", "color": "#10B981"},
            {"grade": "B", "minScore": 80, "maxScore": 89, "gradePoint": 3.0, "remark": "Very Good", "color": "#3B82F6"},
            {"grade": "C", "minScore": 70, "maxScore": 79, "gradePoint": 2.5, "remark": "Good", "color": "#F59E0B"},
            {"grade": "D", "minScore": 60, "maxScore": 69, "gradePoint": 2.0, "remark": "Fair", "color": "#EF4444"},
            {"grade": "F", "minScore": 0, "maxScore": 59, "gradePoint": 0.0, "remark": "Poor", "color": "#6B7280"},
        ],
    },
    {
        "name": "Secondary School Grading (WAEC/NECO)",
        "gradeRanges": [
            {"grade": "A1", "minScore": 90, "maxScore": 100, "gradePoint": 4.0, "remark": "Excellent", "color": "#10B981"},
            {"grade": "A2", "minScore": 85, "maxScore": 89, "gradePoint": 3.8, "remark": "Very Good", "color": "#059669"},
            {"grade": "B1", "minScore": 80, "maxScore": 84, "gradePoint": 3.5, "remark": "Good", "color": "#3B82F6"},
            {"grade": "B2", "minScore": 75, "maxScore": 79, "gradePoint": 3.2, "remark": "Good", "color": "#2563EB"},
            {"grade": "C1", "minScore": 70, "maxScore": 74, "gradePoint": 3.0, "remark": "Credit", "color": "#F59E0B"},
            {"grade": "C2", "minScore": 65, "maxScore": 69, "gradePoint": 2.5, "remark": "Credit", "color": "#D97706"},
            {"grade": "C3", "minScore": 60, "maxScore": 64, "gradePoint": 2.2, "remark": "Credit", "color": "#B45309"},
            {"grade": "D", "minScore": 50, "maxScore": 59, "gradePoint": 2.0, "remark": "Pass", "color": "#EF4444"},
            {"grade": "F", "minScore": 0, "maxScore": 49, "gradePoint": 0.0, "remark": "Fail", "color": "#6B7280"},
        ],
    },
    {
        "name": "Cambridge Assessment Scale",
        "gradeRanges": [
            {"grade": "A*", "minScore": 90, "maxScore": 100, "gradePoint": 4.0, "remark": "Exceptional", "color": "#10B981"},
            {"grade": "A", "minScore": 80, "maxScore": 89, "gradePoint": 3.7, "remark": "Excellent", "color": "#059669"},
            {"grade": "B", "minScore": 70, "maxScore": 79, "gradePoint": 3.3, "remark": "Good", "color": "#3B82F6"},
            {"grade": "C", "minScore": 60, "maxScore": 69, "gradePoint": 3.0, "remark": "Satisfactory", "color": "#F59E0B"},
            {"grade": "D", "minScore": 50, "maxScore": 59, "gradePoint": 2.5, "remark": "Pass", "color": "#EF4444"},
            {"grade": "E", "minScore": 40, "maxScore": 49, "gradePoint": 2.0, "remark": "Borderline", "color": "#DC2626"},
            {"grade": "F", "minScore": 0, "maxScore": 39, "gradePoint": 0.0, "remark": "Fail", "color": "#6B7280"},
        ],
    },
    {
        "name": "American GPA Scale (4.0)",
        "gradeRanges": [
            {"grade": "A+", "minScore": 97, "maxScore": 100, "gradePoint": 4.0, "remark": "Outstanding", "color": "#10B981"},
            {"grade": "A", "minScore": 93, "maxScore": 96, "gradePoint": 4.0, "remark": "Excellent", "color": "#059669"},
            {"grade": "A-", "minScore": 90, "maxScore": 92, "gradePoint": 3.7, "remark": "Very Good", "color": "#3B82F6"},
            {"grade": "B+", "minScore": 87, "maxScore": 89, "gradePoint": 3.3, "remark": "Good", "color": "#2563EB"},
            {"grade": "B", "minScore": 83, "maxScore": 86, "gradePoint": 3.0, "remark": "Good", "color": "#F59E0B"},
            {"grade": "B-", "minScore": 80, "maxScore": 82, "gradePoint": 2.7, "remark": "Fair", "color": "#D97706"},
            {"grade": "C+", "minScore": 77, "maxScore": 79, "gradePoint": 2.3, "remark": "Satisfactory", "color": "#B45309"},
            {"grade": "C", "minScore": 73, "maxScore": 76, "gradePoint": 2.0, "remark": "Satisfactory", "color": "#EF4444"},
            {"grade": "C-", "minScore": 70, "maxScore": 72, "gradePoint": 1.7, "remark": "Below Average", "color": "#DC2626"},
            {"grade": "D", "minScore": 60, "maxScore": 69, "gradePoint": 1.0, "remark": "Poor", "color": "#B91C1C"},
            {"grade": "F", "minScore": 0, "maxScore": 59, "gradePoint": 0.0, "remark": "Fail", "color": "#6B7280"},
        ],
    },
]


def default_grade_scales() -> List[Dict[str, Any]]:
    """Copies of the template scales, safe to edit"""
    return copy.deepcopy(DEFAULT_GRADE_SCALES)


__all__ = [
    "ranges_overlap",
    "validate_grade_scale",
    "find_coverage_gaps",
    "GradeScaleStore",
    "InMemoryGradeScaleStore",
    "GradeScaleManager",
    "DEFAULT_GRADE_SCALES",
    "default_grade_scales",
]

#!/usr/bin/env python3
"""
SCORE AGGREGATOR - Combine CA and exam components into subject totals
Turn raw per-subject score entries into totals, percentages and results

CALCULATION TYPES:
✅ Subject Total: Sum of entered components (missing counts as 0)
✅ Percentage: total / maxPossibleTotal * 100
✅ Completeness: Which components are still "not yet entered"
✅ Student Result: Totals, average and subject count for one term

SCORE SCHEMAS (expected maximum per component):
standard-100: 1st CA 10, 2nd CA 10, 3rd CA 10, Exam 70  -> 100
extended-160: 1st CA 30, 2nd CA 30, 3rd CA 30, Exam 70  -> 160

The aggregator never clamps. Entries above these maxima are a data-entry
problem; callers that want to reject them run validate_components() before
aggregating. maxPossibleTotal always comes from the schema passed in.

Priority: CRITICAL - Every grade and rank starts here
Dependencies: data_models, grade_resolver, pandas for score sheets
"""

from pathlib import Path
from typing import Dict, List, Optional, Union, Any
import logging

import pandas as pd
from pydantic import ValidationError as PydanticValidationError

from .data_models import (
    COMPONENT_NAMES,
    Attendance,
    ComponentScores,
    Conduct,
    GradeScale,
    ScoreSchema,
    StudentResult,
    SubjectScore,
)
from .errors import NoMatchingGradeError, ValidationError
from . import grade_resolver

logger = logging.getLogger(__name__)


STANDARD_100 = ScoreSchema(
    name="standard-100",
    component_maxima={"firstCA": 10.0, "secondCA": 10.0, "thirdCA": 10.0, "exam": 70.0},
    max_possible_total=100.0,
)

EXTENDED_160 = ScoreSchema(
    name="extended-160",
    component_maxima={"firstCA": 30.0, "secondCA": 30.0, "thirdCA": 30.0, "exam": 70.0},
    max_possible_total=160.0,
)

SCORE_SCHEMAS: Dict[str, ScoreSchema] = {
    STANDARD_100.name: STANDARD_100,
    EXTENDED_160.name: EXTENDED_160,
}

ComponentInput = Union[ComponentScores, Dict[str, Optional[float]]]


def get_score_schema(name: str) -> ScoreSchema:
    """Look up a built-in score schema by name"""
    try:
        return SCORE_SCHEMAS[name]
    except KeyError:
        raise ValidationError(
            f"Unknown score schema '{name}'. Expected one of: {', '.join(sorted(SCORE_SCHEMAS))}"
        ) from None


def _as_components(components: ComponentInput) -> ComponentScores:
    if isinstance(components, ComponentScores):
        return components
    try:
        return ComponentScores.model_validate(components)
    except PydanticValidationError as e:
        errors = [f"{'.'.join(str(p) for p in err['loc'])}: {err['msg']}" for err in e.errors()]
        raise ValidationError(f"Invalid score entry: {'; '.join(errors)}", errors=errors) from e


def aggregate(components: ComponentInput) -> float:
    """Sum of present components; absent components count as 0"""
    return _as_components(components).total()


def percentage(total: float, schema: ScoreSchema) -> float:
    """Total expressed as a percentage of the schema's maxPossibleTotal"""
    return total / schema.max_possible_total * 100


def missing_components(components: ComponentInput) -> List[str]:
    """Components not yet entered, in entry order"""
    entered = _as_components(components).as_dict()
    return [name for name in COMPONENT_NAMES if entered[name] is None]


def is_complete(components: ComponentInput) -> bool:
    return not missing_components(components)


def validate_components(components: ComponentInput, schema: ScoreSchema) -> ComponentScores:
    """
    Reject entries outside the schema maxima before aggregation

    Args:
        components: Component scores for one subject
        schema: Score schema carrying the per-component maximum

    Returns:
        The parsed ComponentScores

    Raises:
        ValidationError: listing every offending component
    """
    parsed = _as_components(components)

    errors = []
    for name, value in parsed.present().items():
        maximum = schema.maximum_for(name)
        if maximum is not None and value > maximum:
            errors.append(f"{name} score {value:g} exceeds maximum {maximum:g}")
    if errors:
        raise ValidationError("; ".join(errors), errors=errors)
    return parsed


class ScoreAggregator:
    """Aggregate raw component scores into subject scores and student results"""

    def __init__(self, schema: ScoreSchema, grade_scale: Optional[GradeScale] = None):
        """
        Args:
            schema: Score schema; the only source of maxPossibleTotal
            grade_scale: Active grade scale used to grade each subject (optional)
        """
        self.schema = schema
        self.grade_scale = grade_scale
        self.aggregation_log: List[str] = []

    def build_subject_score(
        self,
        subject_id: Any,
        components: ComponentInput,
        subject_name: str = "",
    ) -> SubjectScore:
        """Total, percentage and (when a scale is set) grade for one subject"""
        parsed = _as_components(components)
        subject = SubjectScore(
            subject_id=str(subject_id),
            subject_name=subject_name,
            components=parsed,
        )
        subject.percentage = percentage(subject.total, self.schema)

        if self.grade_scale is not None and subject.has_score:
            resolved = self._resolve(subject.percentage, f"subject {subject.subject_id}")
            if resolved is not None:
                subject.grade = resolved.grade
                subject.grade_point = resolved.grade_point
                subject.remark = resolved.remark

        missing = missing_components(parsed)
        if missing and subject.has_score:
            self.aggregation_log.append(
                f"   Subject {subject.subject_id}: not yet entered {', '.join(missing)}"
            )
        return subject

    def build_student_result(
        self,
        student: Dict[str, Any],
        subject_entries: List[Dict[str, Any]],
        attendance: Optional[Dict[str, Any]] = None,
        conduct: Optional[Dict[str, Any]] = None,
    ) -> StudentResult:
        """
        Aggregate every subject of one student for one term

        Args:
            student: studentId, firstName, lastName, ... (API field names)
            subject_entries: dicts with subjectId, optional subjectName and
                any of firstCA/secondCA/thirdCA/exam
            attendance: daysPresent/daysAbsent/timesLate
            conduct: grade/teacherComment/principalComment

        Returns:
            StudentResult without position (positions need the whole class)
        """
        student_id = student.get("studentId", student.get("student_id"))
        self.aggregation_log.append(f"📊 Aggregating scores for student {student_id}")

        subject_scores = []
        for entry in subject_entries:
            components = {name: entry.get(name) for name in COMPONENT_NAMES}
            subject_scores.append(
                self.build_subject_score(
                    entry["subjectId"],
                    components,
                    subject_name=entry.get("subjectName", ""),
                )
            )

        scored = [s for s in subject_scores if s.has_score]
        total_score = float(sum(s.total for s in scored))
        total_subjects = len(scored)
        average_score = (
            sum(s.percentage for s in scored) / total_subjects if total_subjects else 0.0
        )

        grade = None
        if self.grade_scale is not None and total_subjects:
            resolved = self._resolve(average_score, f"student {student_id} average")
            grade = resolved.grade if resolved is not None else None

        result = StudentResult.model_validate(
            {
                **student,
                "subjectScores": subject_scores,
                "totalScore": total_score,
                "averageScore": average_score,
                "totalSubjects": total_subjects,
                "grade": grade,
                "attendance": Attendance.model_validate(attendance or {}),
                "conduct": Conduct.model_validate(conduct or {}),
            }
        )

        self.aggregation_log.append(
            f"✅ Student {student_id}: total {total_score:g} over {total_subjects} subjects, "
            f"average {average_score:.2f}%"
        )
        return result

    def _resolve(self, value: float, label: str) -> Optional[grade_resolver.ResolvedGrade]:
        """Grade for a percentage, or None when it falls in a gap of the scale"""
        try:
            return grade_resolver.resolve(value, self.grade_scale)
        except NoMatchingGradeError:
            logger.warning(f"{label}: {value:.2f}% not covered by scale '{self.grade_scale.name}'")
            self.aggregation_log.append(f"⚠️ No grade for {label} at {value:.2f}%, left ungraded")
            return None

    def get_aggregation_log(self) -> List[str]:
        """Get detailed aggregation log"""
        return self.aggregation_log


def load_score_sheet(source: Union[str, Path, pd.DataFrame]) -> Dict[str, List[Dict[str, Any]]]:
    """
    Load a result-entry sheet into per-student subject entries

    Expected columns: studentId, subjectId, firstCA, secondCA, thirdCA, exam
    (subjectName optional). Blank cells become None (not yet entered).

    Returns:
        Dict mapping studentId to a list of subject entry dicts
    """
    if isinstance(source, pd.DataFrame):
        df = source.copy()
    else:
        df = pd.read_csv(source, dtype={"studentId": str, "subjectId": str})

    required = {"studentId", "subjectId"}
    missing = required - set(df.columns)
    if missing:
        raise ValidationError(f"Score sheet missing required columns: {sorted(missing)}")

    for name in COMPONENT_NAMES:
        if name not in df.columns:
            df[name] = None
        df[name] = pd.to_numeric(df[name], errors="coerce")

    entries: Dict[str, List[Dict[str, Any]]] = {}
    for _, row in df.iterrows():
        entry = {
            "subjectId": str(row["subjectId"]),
            "subjectName": str(row["subjectName"]) if "subjectName" in df.columns and pd.notna(row["subjectName"]) else "",
        }
        for name in COMPONENT_NAMES:
            entry[name] = float(row[name]) if pd.notna(row[name]) else None
        entries.setdefault(str(row["studentId"]), []).append(entry)

    logger.info(f"Loaded score sheet: {len(df)} rows for {len(entries)} students")
    return entries


__all__ = [
    "STANDARD_100",
    "EXTENDED_160",
    "SCORE_SCHEMAS",
    "get_score_schema",
    "aggregate",
    "percentage",
    "missing_components",
    "is_complete",
    "validate_components",
    "ScoreAggregator",
    "load_score_sheet",
]

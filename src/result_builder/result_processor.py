#!/usr/bin/env python3
"""
RESULT PROCESSOR - Raw class scores to ranked, publishable results

PIPELINE:
1. Validate every entry against the score schema maxima
2. Aggregate each student's subjects (ScoreAggregator)
3. Rank the whole class and position each subject (ClassRankCalculator)
4. Publish / unpublish: toggle isPublished and recompute positions

Positions are always recomputed from the full cohort; nothing is patched
incrementally and the caller's results are never mutated.

Priority: HIGH - Entry point for a term's result computation
Dependencies: score_aggregator, class_rank_calculator
"""

from typing import Any, Dict, List, Optional, Sequence
import logging

from .class_rank_calculator import ClassRankCalculator, RankingOutcome
from .data_models import COMPONENT_NAMES, GradeScale, ScoreSchema, StudentResult
from .errors import ValidationError
from .score_aggregator import ScoreAggregator, validate_components

logger = logging.getLogger(__name__)


class ResultProcessor:
    """Compute a class's term results with one schema and one grade scale"""

    def __init__(self, schema: ScoreSchema, scale: GradeScale):
        self.schema = schema
        self.scale = scale
        self.aggregator = ScoreAggregator(schema, scale)
        self.rank_calculator = ClassRankCalculator()
        self.processing_log: List[str] = []

    def process_class(self, raw_entries: Sequence[Dict[str, Any]]) -> RankingOutcome:
        """
        Aggregate and rank one class+term

        Args:
            raw_entries: One dict per student:
                {"student": {...}, "subjects": [...], "attendance": {...}, "conduct": {...}}
                Subjects use API names (subjectId, firstCA, ..., exam).

        Returns:
            RankingOutcome with per-subject positions filled in

        Raises:
            ValidationError: any component above its schema maximum, listing all offenders
        """
        self.processing_log = [f"📚 Processing {len(raw_entries)} students ({self.schema.name})"]

        errors = []
        for entry in raw_entries:
            student_id = entry.get("student", {}).get("studentId", "?")
            for subject in entry.get("subjects", []):
                components = {name: subject.get(name) for name in COMPONENT_NAMES}
                try:
                    validate_components(components, self.schema)
                except ValidationError as e:
                    errors.extend(
                        f"student {student_id}, subject {subject.get('subjectId')}: {err}" for err in e.errors
                    )
        if errors:
            logger.error(f"Rejected score entries: {len(errors)} problems")
            raise ValidationError(f"{len(errors)} invalid score entries", errors=errors)

        results = [
            self.aggregator.build_student_result(
                entry["student"],
                entry.get("subjects", []),
                attendance=entry.get("attendance"),
                conduct=entry.get("conduct"),
            )
            for entry in raw_entries
        ]
        outcome = self._rank(results)
        self.processing_log.append(
            f"✅ {outcome.summary.ranked_students}/{outcome.summary.total_students} students ranked"
        )
        return outcome

    def publish(self, results: Sequence[StudentResult]) -> RankingOutcome:
        """Copies marked published, positions recomputed from the whole class"""
        return self._set_published(results, True)

    def unpublish(self, results: Sequence[StudentResult]) -> RankingOutcome:
        return self._set_published(results, False)

    def _set_published(self, results: Sequence[StudentResult], published: bool) -> RankingOutcome:
        copies = [r.model_copy(deep=True, update={"is_published": published}) for r in results]
        outcome = self._rank(copies)
        action = "Published" if published else "Unpublished"
        logger.info(f"{action} {len(copies)} results; positions recomputed")
        self.processing_log.append(f"   {action} {len(copies)} results")
        return outcome

    def _rank(self, results: List[StudentResult]) -> RankingOutcome:
        with_subjects = self.rank_calculator.calculate_subject_positions(results)
        outcome = self.rank_calculator.calculate_class_rankings(with_subjects, self.scale)
        self.processing_log.extend(self.rank_calculator.get_ranking_log())
        return outcome

    def get_processing_log(self) -> List[str]:
        return self.processing_log


__all__ = ["ResultProcessor"]

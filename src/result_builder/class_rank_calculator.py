#!/usr/bin/env python3
"""
CLASS RANK CALCULATOR - Calculate class positions and class statistics
Determine each student's position for a class+term and summarize the cohort

RANKING METHODOLOGY:
✅ Primary Sort: Average score (descending)
✅ Tie Handling: Students with identical averages receive same position
✅ Rank Gaps: After ties, next position skips (e.g., two #2s, next is #4)
✅ Exclusions: Students with no scored subject get no position but still
   count toward total students
✅ Grade Distribution: Letter for each ranked student's average

OUTPUT FORMATS:
- Numeric: "2nd of 40"
- Summary: class average, highest, lowest, grade histogram
- Report: pandas DataFrame / CSV broadsheet

Positions are recomputed wholesale on every run; nothing is patched
incrementally and the input results are never mutated.

Priority: HIGH - Printed on every report card
Dependencies: pandas, data_models, grade_resolver
"""

from typing import Dict, List, Optional, Sequence, Tuple
from dataclasses import dataclass
from pathlib import Path
import logging

import numpy as np
import pandas as pd

from .data_models import ClassSummary, GradeScale, StudentResult
from .errors import NoMatchingGradeError
from . import grade_resolver
from .report_paginator import ordinal

logger = logging.getLogger(__name__)

# Averages closer than this are treated as a tie
TIE_TOLERANCE = 1e-9

UNGRADED = "N/A"


def competition_ranks(values: Sequence[float]) -> List[int]:
    """
    Standard competition ranking of values, highest first

    Args:
        values: Scores in input order

    Returns:
        Rank for each value in input order ([90, 80, 80, 70] -> [1, 2, 2, 4])
    """
    order = sorted(range(len(values)), key=lambda i: values[i], reverse=True)
    ranks = [0] * len(values)
    previous = None
    current_rank = 0
    for place, index in enumerate(order, start=1):
        value = values[index]
        if previous is None or abs(value - previous) > TIE_TOLERANCE:
            current_rank = place
            previous = value
        ranks[index] = current_rank
    return ranks


@dataclass
class RankingOutcome:
    """Ranked copies of the class results plus the class summary"""
    results: List[StudentResult]
    summary: ClassSummary

    def position_of(self, student_id: str) -> Optional[int]:
        for result in self.results:
            if result.student_id == str(student_id):
                return result.position
        return None


class ClassRankCalculator:
    """Calculate class positions and statistics from student results"""

    def __init__(self):
        self.rankings: Dict[str, StudentResult] = {}
        self.summary: Optional[ClassSummary] = None
        self.ranking_log: List[str] = []

    def calculate_class_rankings(
        self,
        results: Sequence[StudentResult],
        grade_scale: GradeScale,
    ) -> RankingOutcome:
        """
        Rank every student of one class for one term

        Args:
            results: All StudentResults of the class+term cohort
            grade_scale: Active grade scale, used for the grade distribution

        Returns:
            RankingOutcome with ranked copies (input order kept) and summary
        """
        self.ranking_log = []
        self.ranking_log.append(f"🏆 Calculating class positions for {len(results)} students")

        ranked_copies = [r.model_copy(deep=True) for r in results]
        rankable = [r for r in ranked_copies if r.is_rankable]
        excluded = len(ranked_copies) - len(rankable)
        if excluded:
            self.ranking_log.append(f"   Excluded {excluded} students with no scored subjects")

        partial = [r.student_id for r in rankable if r.is_partial]
        if partial:
            self.ranking_log.append(
                f"   ⚠️ {len(partial)} students ranked on partial results: {', '.join(partial)}"
            )

        ranks = competition_ranks([r.average_score for r in rankable])
        for result, rank in zip(rankable, ranks):
            result.position = rank
        for result in ranked_copies:
            if not result.is_rankable:
                result.position = None

        distribution: Dict[str, int] = {}
        for result in rankable:
            try:
                letter = grade_resolver.resolve(result.average_score, grade_scale).grade
            except NoMatchingGradeError:
                logger.warning(
                    f"Student {result.student_id} average {result.average_score:.2f}% "
                    f"not covered by scale '{grade_scale.name}'"
                )
                letter = UNGRADED
            result.grade = letter if letter != UNGRADED else None
            distribution[letter] = distribution.get(letter, 0) + 1

        averages = np.array([r.average_score for r in rankable], dtype=float)
        summary = ClassSummary(
            total_students=len(ranked_copies),
            ranked_students=len(rankable),
            average_score=float(averages.mean()) if averages.size else 0.0,
            highest_score=float(averages.max()) if averages.size else 0.0,
            lowest_score=float(averages.min()) if averages.size else 0.0,
            grade_distribution=dict(sorted(distribution.items())),
        )

        self.rankings = {r.student_id: r for r in ranked_copies}
        self.summary = summary

        for result in sorted(rankable, key=lambda r: r.position)[:10]:
            self.ranking_log.append(
                f"   #{result.position}: Student {result.student_id} - Average {result.average_score:.2f}%"
            )
        self.ranking_log.append(f"✅ Positions calculated successfully")
        self.ranking_log.append(
            f"   Class average: {summary.average_score:.2f}% "
            f"(high {summary.highest_score:.2f}, low {summary.lowest_score:.2f})"
        )

        return RankingOutcome(results=ranked_copies, summary=summary)

    def calculate_subject_positions(self, results: Sequence[StudentResult]) -> List[StudentResult]:
        """
        Position each student within every subject they were scored in

        Only subject totals above zero take part, as for class positions.
        """
        updated = [r.model_copy(deep=True) for r in results]

        by_subject: Dict[str, List[Tuple[int, int]]] = {}
        for r_index, result in enumerate(updated):
            for s_index, subject in enumerate(result.subject_scores):
                subject.position = None
                if subject.has_score:
                    by_subject.setdefault(subject.subject_id, []).append((r_index, s_index))

        for subject_id, members in by_subject.items():
            totals = [updated[r].subject_scores[s].total for r, s in members]
            for (r, s), rank in zip(members, competition_ranks(totals)):
                updated[r].subject_scores[s].position = rank
            self.ranking_log.append(f"   Subject {subject_id}: {len(members)} students positioned")

        return updated

    def get_student_position(self, student_id: str) -> Optional[int]:
        """Get position for specific student"""
        result = self.rankings.get(str(student_id))
        return result.position if result else None

    def get_top_students(self, n: int = 10) -> List[StudentResult]:
        """Get top N students by position"""
        ranked = [r for r in self.rankings.values() if r.position is not None]
        return sorted(ranked, key=lambda r: (r.position, r.last_name, r.first_name))[:n]

    def generate_ranking_report(self, output_path: Optional[Path] = None) -> pd.DataFrame:
        """
        Generate class broadsheet of positions

        Args:
            output_path: Optional path to save CSV report

        Returns:
            DataFrame sorted by position, unranked students last
        """
        if not self.rankings:
            logger.warning("No rankings calculated yet")
            return pd.DataFrame()

        total_students = len(self.rankings)
        records = []
        for student_id, result in self.rankings.items():
            records.append({
                'Student ID': student_id,
                'Name': result.full_name,
                'Total Score': result.total_score,
                'Average Score': round(result.average_score, 2),
                'Subjects': result.total_subjects,
                'Grade': result.grade or UNGRADED,
                'Position': result.position,
                'Position Display': (
                    f"{ordinal(result.position)} of {total_students}" if result.position else UNGRADED
                ),
            })

        df = pd.DataFrame(records)
        df = df.sort_values('Position', na_position='last').reset_index(drop=True)

        if output_path:
            df.to_csv(output_path, index=False)
            logger.info(f"Ranking report saved to: {output_path}")

        return df

    def get_ranking_log(self) -> List[str]:
        """Get detailed ranking calculation log"""
        return self.ranking_log


__all__ = [
    "TIE_TOLERANCE",
    "competition_ranks",
    "RankingOutcome",
    "ClassRankCalculator",
]

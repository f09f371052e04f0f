"""
Unit Tests for Grade Resolver

Tests for:
- Band boundaries on whole-mark scales (74.9 -> B, 75.0 -> A)
- Fractional scales (inclusive bounds)
- Gaps and overlapping legacy ranges
- Colors read from the scale
"""

import logging

import pytest

from result_builder.data_models import DEFAULT_GRADE_COLOR, GradeScale
from result_builder.errors import NoMatchingGradeError
from result_builder.grade_resolver import grade_color, resolve, resolve_or_default


class TestResolve:
    """Tests for resolve"""

    @pytest.mark.parametrize(
        "score,expected",
        [
            (100.0, "A"),
            (75.0, "A"),
            (74.9, "B"),
            (74.0, "B"),
            (70.0, "B"),
            (69.99, "C"),
            (60.0, "C"),
            (59.5, "D"),
            (50.0, "D"),
            (49.9, "F"),
            (0.0, "F"),
        ],
    )
    def test_whole_mark_boundaries(self, sample_scale, score, expected):
        assert resolve(score, sample_scale).grade == expected

    def test_resolved_fields_come_from_range(self, sample_scale):
        resolved = resolve(88.0, sample_scale)
        assert resolved.remark == "Excellent"
        assert resolved.grade_point == 4.0
        assert resolved.color == "#10B981"

    def test_fractional_scale_is_inclusive(self):
        scale = GradeScale(name="Fractional", grade_ranges=[
            {"grade": "A", "minScore": 74.5, "maxScore": 100},
            {"grade": "B", "minScore": 0, "maxScore": 74.4},
        ])
        assert resolve(74.4, scale).grade == "B"
        assert resolve(74.5, scale).grade == "A"
        with pytest.raises(NoMatchingGradeError):
            resolve(74.45, scale)

    def test_gap_raises(self):
        scale = GradeScale(name="Gappy", grade_ranges=[
            {"grade": "A", "minScore": 80, "maxScore": 100},
            {"grade": "F", "minScore": 0, "maxScore": 59},
        ])
        with pytest.raises(NoMatchingGradeError) as exc_info:
            resolve(65.0, scale)
        assert exc_info.value.percentage == 65.0
        assert exc_info.value.scale_name == "Gappy"

    def test_above_scale_raises(self, sample_scale):
        with pytest.raises(NoMatchingGradeError):
            resolve(101.5, sample_scale)

    def test_overlap_highest_min_wins(self, caplog):
        scale = GradeScale(name="Legacy", grade_ranges=[
            {"grade": "B", "minScore": 60, "maxScore": 80},
            {"grade": "A", "minScore": 70, "maxScore": 100},
        ])
        with caplog.at_level(logging.WARNING, logger="result_builder.grade_resolver"):
            resolved = resolve(75.0, scale)

        assert resolved.grade == "A"
        assert "overlapping" in caplog.text


class TestResolveOrDefault:
    """Tests for resolve_or_default"""

    def test_gap_falls_back_to_lowest(self):
        scale = GradeScale(name="Gappy", grade_ranges=[
            {"grade": "A", "minScore": 80, "maxScore": 100},
            {"grade": "F", "minScore": 0, "maxScore": 59},
        ])
        assert resolve_or_default(65.0, scale).grade == "F"

    def test_empty_scale_still_raises(self):
        with pytest.raises(NoMatchingGradeError):
            resolve_or_default(50.0, GradeScale(name="Empty"))


class TestGradeColor:
    """Tests for grade_color"""

    def test_color_from_scale(self, sample_scale):
        assert grade_color("C", sample_scale) == "#F59E0B"

    def test_unknown_grade_is_grey(self, sample_scale):
        assert grade_color("Z", sample_scale) == DEFAULT_GRADE_COLOR
        assert grade_color(None, sample_scale) == DEFAULT_GRADE_COLOR

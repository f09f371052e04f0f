"""
Unit Tests for Score Aggregator

Tests for:
- Component totals and "not yet entered" components
- Percentages for the standard-100 and extended-160 schemas
- Maximum checks before aggregation
- Student results (average of subject percentages)
- Score sheet loading with pandas
"""

import pandas as pd
import pytest

from result_builder.data_models import ComponentScores, GradeScale
from result_builder.errors import ValidationError
from result_builder.score_aggregator import (
    EXTENDED_160,
    STANDARD_100,
    ScoreAggregator,
    aggregate,
    get_score_schema,
    is_complete,
    load_score_sheet,
    missing_components,
    percentage,
    validate_components,
)


class TestAggregate:
    """Tests for component aggregation"""

    def test_full_entry(self):
        assert aggregate({"firstCA": 8, "secondCA": 7, "thirdCA": 9, "exam": 55}) == 79

    def test_missing_components_count_as_zero(self):
        assert aggregate({"firstCA": 8, "exam": 60}) == 68

    def test_nothing_entered(self):
        assert aggregate({}) == 0

    def test_not_clamped_above_schema_maximum(self):
        """Aggregation sums what is entered; bounds are checked separately"""
        assert aggregate({"firstCA": 15, "exam": 90}) == 105

    def test_negative_component_rejected(self):
        with pytest.raises(ValidationError):
            aggregate({"exam": -5})

    def test_missing_and_complete(self):
        entry = {"firstCA": 8, "thirdCA": 9}
        assert missing_components(entry) == ["secondCA", "exam"]
        assert not is_complete(entry)
        assert is_complete({"firstCA": 1, "secondCA": 2, "thirdCA": 3, "exam": 4})

    def test_zero_is_entered(self):
        assert missing_components({"firstCA": 0, "secondCA": 0, "thirdCA": 0, "exam": 0}) == []

    @pytest.mark.parametrize("entry", [
        {"firstCA": 25, "secondCA": 28, "thirdCA": 30, "exam": 37},
        {"exam": 37, "thirdCA": 30, "secondCA": 28, "firstCA": 25},
        {"secondCA": 28, "exam": 37, "firstCA": 25, "thirdCA": 30},
        ComponentScores(exam=37, first_ca=25, third_ca=30, second_ca=28),
    ])
    def test_entry_order_does_not_change_result(self, entry):
        total = aggregate(entry)
        assert total == 120
        assert percentage(total, EXTENDED_160) == pytest.approx(75.0)


class TestSchemas:
    """Tests for score schemas and percentages"""

    def test_standard_percentage(self):
        assert percentage(79, STANDARD_100) == pytest.approx(79.0)

    def test_extended_percentage(self):
        assert percentage(120, EXTENDED_160) == pytest.approx(75.0)

    def test_schema_totals(self):
        assert sum(STANDARD_100.component_maxima.values()) == STANDARD_100.max_possible_total
        assert sum(EXTENDED_160.component_maxima.values()) == EXTENDED_160.max_possible_total

    def test_lookup_by_name(self):
        assert get_score_schema("extended-160") is EXTENDED_160

    def test_unknown_schema(self):
        with pytest.raises(ValidationError):
            get_score_schema("standard-200")

    def test_validate_components_within_maxima(self):
        parsed = validate_components({"firstCA": 10, "exam": 70}, STANDARD_100)
        assert parsed.total() == 80

    def test_validate_components_lists_every_offender(self):
        with pytest.raises(ValidationError) as exc_info:
            validate_components({"firstCA": 12, "secondCA": 5, "exam": 75}, STANDARD_100)

        errors = exc_info.value.errors
        assert len(errors) == 2
        assert any("firstCA" in e for e in errors)
        assert any("exam" in e for e in errors)

    def test_extended_schema_allows_larger_ca(self):
        validate_components({"firstCA": 25}, EXTENDED_160)
        with pytest.raises(ValidationError):
            validate_components({"firstCA": 25}, STANDARD_100)


class TestScoreAggregator:
    """Tests for ScoreAggregator"""

    def test_subject_score_graded(self, sample_scale):
        aggregator = ScoreAggregator(STANDARD_100, sample_scale)
        subject = aggregator.build_subject_score("math", {"firstCA": 8, "secondCA": 7, "thirdCA": 9, "exam": 50})

        assert subject.total == 74
        assert subject.percentage == pytest.approx(74.0)
        assert subject.grade == "B"
        assert subject.remark == "Very Good"
        assert subject.grade_point == 3.0

    def test_subject_ids_coerced_to_string(self):
        subject = ScoreAggregator(STANDARD_100).build_subject_score(101, {"exam": 50})
        assert subject.subject_id == "101"
        assert subject.grade is None

    def test_unscored_subject_not_graded(self, sample_scale):
        subject = ScoreAggregator(STANDARD_100, sample_scale).build_subject_score("math", {})
        assert subject.total == 0
        assert not subject.has_score
        assert subject.grade is None

    def test_extended_schema_grades_on_percentage(self, sample_scale):
        aggregator = ScoreAggregator(EXTENDED_160, sample_scale)
        subject = aggregator.build_subject_score("math", {"firstCA": 30, "secondCA": 30, "thirdCA": 30, "exam": 30})

        assert subject.total == 120
        assert subject.percentage == pytest.approx(75.0)
        assert subject.grade == "A"

    def test_gap_in_scale_left_ungraded(self):
        gappy = GradeScale(name="Gappy", grade_ranges=[
            {"grade": "A", "minScore": 80, "maxScore": 100},
            {"grade": "F", "minScore": 0, "maxScore": 59},
        ])
        aggregator = ScoreAggregator(STANDARD_100, gappy)
        subject = aggregator.build_subject_score("math", {"exam": 65})

        assert subject.total == 65
        assert subject.grade is None
        assert subject.remark is None
        assert any("No grade for subject math" in line for line in aggregator.get_aggregation_log())

    def test_student_result_average_of_percentages(self, sample_scale):
        aggregator = ScoreAggregator(STANDARD_100, sample_scale)
        result = aggregator.build_student_result(
            {"studentId": 7, "firstName": "Ada", "lastName": "Obi"},
            [
                {"subjectId": "math", "firstCA": 10, "exam": 70},
                {"subjectId": "english", "exam": 60},
                {"subjectId": "science"},
            ],
            attendance={"daysPresent": 58, "daysAbsent": 2},
            conduct={"grade": "A", "teacherComment": "Keep it up"},
        )

        assert result.student_id == "7"
        assert result.total_score == 140
        assert result.total_subjects == 2
        assert result.average_score == pytest.approx(70.0)
        assert result.grade == "B"
        assert result.position is None
        assert result.is_partial
        assert result.attendance.total_days == 60
        assert result.conduct.teacher_comment == "Keep it up"

    def test_student_without_scores(self, sample_scale):
        aggregator = ScoreAggregator(STANDARD_100, sample_scale)
        result = aggregator.build_student_result({"studentId": "s9"}, [{"subjectId": "math"}])

        assert result.total_subjects == 0
        assert result.average_score == 0.0
        assert result.grade is None
        assert not result.is_rankable

    def test_aggregation_log(self, sample_scale):
        aggregator = ScoreAggregator(STANDARD_100, sample_scale)
        aggregator.build_student_result({"studentId": "s1"}, [{"subjectId": "math", "exam": 50}])

        log = aggregator.get_aggregation_log()
        assert any("not yet entered" in line for line in log)
        assert any("Student s1" in line for line in log)


class TestLoadScoreSheet:
    """Tests for load_score_sheet"""

    def test_dataframe_blank_cells_become_none(self):
        df = pd.DataFrame([
            {"studentId": "s1", "subjectId": "math", "firstCA": 8, "secondCA": None, "thirdCA": 9, "exam": 60},
            {"studentId": "s1", "subjectId": "english", "firstCA": 7, "secondCA": 6, "thirdCA": None, "exam": None},
            {"studentId": "s2", "subjectId": "math", "firstCA": 10, "secondCA": 10, "thirdCA": 10, "exam": 70},
        ])
        entries = load_score_sheet(df)

        assert set(entries) == {"s1", "s2"}
        assert len(entries["s1"]) == 2
        assert entries["s1"][0]["secondCA"] is None
        assert entries["s1"][1]["exam"] is None
        assert entries["s2"][0]["exam"] == 70.0

    def test_csv_file(self, tmp_path):
        path = tmp_path / "scores.csv"
        path.write_text(
            "studentId,subjectId,subjectName,firstCA,secondCA,thirdCA,exam\n"
            "001,math,Mathematics,8,7,,55\n"
        )
        entries = load_score_sheet(path)

        entry = entries["001"][0]
        assert entry["subjectName"] == "Mathematics"
        assert entry["thirdCA"] is None
        assert aggregate({k: entry[k] for k in ("firstCA", "secondCA", "thirdCA", "exam")}) == 70

    def test_missing_required_columns(self):
        with pytest.raises(ValidationError):
            load_score_sheet(pd.DataFrame([{"studentId": "s1", "exam": 50}]))

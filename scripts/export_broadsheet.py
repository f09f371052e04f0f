#!/usr/bin/env python3
"""
Export Class Broadsheet
Computes results and positions from a result-entry CSV and writes a broadsheet CSV

Usage: python3 scripts/export_broadsheet.py <scores.csv> <grade_scale.json> [output.csv]

The score sheet has columns studentId, subjectId, firstCA, secondCA, thirdCA, exam
(subjectName optional). The grade scale file holds {"name": ..., "gradeRanges": [...]}.
"""

import json
import logging
import sys
from pathlib import Path

# Add src directory to path
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root / "src"))

from result_builder.config import ResultConfig
from result_builder.errors import ResultBuilderError
from result_builder.grade_scale_validator import GradeScaleManager
from result_builder.result_processor import ResultProcessor
from result_builder.score_aggregator import load_score_sheet


def main():
    """Export a class broadsheet with positions"""
    if len(sys.argv) < 3:
        print("Usage: python3 scripts/export_broadsheet.py <scores.csv> <grade_scale.json> [output.csv]")
        return 1

    scores_path = Path(sys.argv[1]).expanduser()
    scale_path = Path(sys.argv[2]).expanduser()
    output_path = Path(sys.argv[3]).expanduser() if len(sys.argv) > 3 else scores_path.with_name("broadsheet.csv")
    config = ResultConfig.from_env()

    print("=" * 70)
    print("CLASS BROADSHEET EXPORT")
    print("=" * 70)
    print(f"📄 Scores: {scores_path} ({config.score_schema.name})")

    try:
        scale_data = json.loads(scale_path.read_text())
        scale = GradeScaleManager().create(scale_data.get("name"), scale_data.get("gradeRanges"))
        entries = load_score_sheet(scores_path)

        processor = ResultProcessor(config.score_schema, scale)
        outcome = processor.process_class(
            [{"student": {"studentId": sid}, "subjects": subjects} for sid, subjects in entries.items()]
        )
    except ResultBuilderError as e:
        print(f"❌ ERROR: {e}")
        for error in getattr(e, "errors", []):
            if error != str(e):
                print(f"  • {error}")
        return 1

    df = processor.rank_calculator.generate_ranking_report(output_path)

    summary = outcome.summary
    print(f"✅ {summary.ranked_students}/{summary.total_students} students ranked")
    print(f"   Class average: {summary.average_score:.2f}%")
    print(f"   Grades: {summary.grade_distribution}")
    print(f"📁 Broadsheet: {output_path} ({len(df)} rows)")
    return 0


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO)
    sys.exit(main())

#!/usr/bin/env python3
"""
Simple wrapper to generate a report card for a given student
Usage: python3 generate_report.py <student_id> <class_id> <term_id> [standard|terminal] [output_dir]

Result API location and score scheme come from RESULT_BUILDER_* environment variables.
"""

import asyncio
import logging
import sys
from pathlib import Path

# Add src to path
sys.path.insert(0, str(Path(__file__).parent / "src"))

from result_builder.api_client import ResultApiClient
from result_builder.config import ResultConfig
from result_builder.errors import ResultBuilderError
from result_builder.report_generator import ReportGenerator


async def main(argv) -> int:
    if len(argv) < 4:
        print("ERROR: Missing arguments")
        print("Usage: python3 generate_report.py <student_id> <class_id> <term_id> [standard|terminal] [output_dir]")
        return 1

    student_id, class_id, term_id = argv[1], argv[2], argv[3]
    layout = argv[4] if len(argv) > 4 else "standard"

    overrides = {}
    if len(argv) > 5:
        overrides["output_dir"] = Path(argv[5]).expanduser()
    config = ResultConfig.from_env(**overrides)

    print(f"Starting report generation...")
    print(f"  Student ID: {student_id}")
    print(f"  Class/Term: {class_id} / {term_id}")
    print(f"  Layout: {layout} ({config.score_schema.name}, {config.pagination_strategy} pagination)")

    async with ResultApiClient(
        config.api_base_url,
        timeout=config.api_timeout_seconds,
        image_proxy_path=config.image_proxy_path,
    ) as client:
        generator = ReportGenerator(config, api_client=client)
        try:
            output_path = await generator.generate_report(student_id, class_id, term_id, layout=layout)
        except ResultBuilderError as e:
            print(f"\n❌ FAILED: {e}")
            return 1

    print(f"\n✅ SUCCESS!")
    print(f"Report saved to: {output_path}")
    return 0


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO)
    sys.exit(asyncio.run(main(sys.argv)))

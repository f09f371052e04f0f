#!/usr/bin/env python3
"""
BATCH REPORT GENERATOR
Generates every report card of one class and term with a summary of failures.

Usage: python3 scripts/batch_generate.py <class_id> <term_id> [standard|terminal]

Output: $RESULT_BUILDER_OUTPUT_DIR (default output/reports)
Naming: Report_{Type}_{LastName}_{FirstName}_{Term}_{Year}.pdf
"""

import asyncio
import logging
import sys
from pathlib import Path
from typing import List

# Add src to path
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from result_builder.api_client import ResultApiClient
from result_builder.config import ResultConfig
from result_builder.errors import ResultBuilderError
from result_builder.report_generator import GenerationResult, ReportGenerator


def print_summary(results: List[GenerationResult], output_base: Path):
    """Print generation summary."""
    success = [r for r in results if r.success]
    failed = [r for r in results if not r.success]

    print("\n" + "=" * 70)
    print("BATCH GENERATION SUMMARY")
    print("=" * 70)

    print(f"\n✅ Successful: {len(success)}")
    print(f"❌ Failed: {len(failed)}")

    if failed:
        print("\n❌ FAILED REPORTS:")
        print("-" * 50)
        for r in failed:
            print(f"  [{r.student_id}] {r.student_name}")
            print(f"      Error: {r.error[:80]}..." if len(r.error) > 80 else f"      Error: {r.error}")

    print(f"\n📁 Output: {output_base}")
    print("=" * 70)


async def generate_all_reports(class_id: str, term_id: str, layout: str) -> int:
    config = ResultConfig.from_env()

    print("=" * 70)
    print("BATCH REPORT GENERATOR")
    print("=" * 70)
    print(f"\n📂 Class {class_id}, term {term_id} ({layout} layout, {config.score_schema.name})")

    # Reduce logging verbosity during batch
    logging.getLogger("weasyprint").setLevel(logging.ERROR)
    logging.getLogger("fontTools").setLevel(logging.ERROR)
    logging.getLogger("result_builder.report_paginator").setLevel(logging.WARNING)
    logging.getLogger("result_builder.report_generator").setLevel(logging.WARNING)

    async with ResultApiClient(
        config.api_base_url,
        timeout=config.api_timeout_seconds,
        image_proxy_path=config.image_proxy_path,
    ) as client:
        generator = ReportGenerator(config, api_client=client)
        try:
            results = await generator.generate_class_reports(class_id, term_id, layout=layout)
        except ResultBuilderError as e:
            print(f"\n❌ Batch aborted: {e}")
            return 1

    print_summary(results, config.output_dir)
    return 0 if all(r.success for r in results) else 1


def main():
    if len(sys.argv) < 3:
        print("Usage: python3 scripts/batch_generate.py <class_id> <term_id> [standard|terminal]")
        return 1
    layout = sys.argv[3] if len(sys.argv) > 3 else "standard"
    return asyncio.run(generate_all_reports(sys.argv[1], sys.argv[2], layout))


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO)
    sys.exit(main())

#!/usr/bin/env python3
"""
REPORT GENERATOR - Main PDF generation engine
Generate printable report cards from result-data API results

GENERATION PROCESS:
1. Fetch result, active grade scale, report metadata and the class cohort
   (sequentially, one call at a time)
2. Recompute class and subject positions from the cohort
3. Route photo and logo through the same-origin image proxy
4. Build the ReportCardDocument and paginate it (rows or slice)
5. Render HTML with Jinja2
6. Convert HTML to PDF using WeasyPrint and save to the output directory

FEATURES:
✅ Standard and Terminal layouts over the same data
✅ Row-aware pagination with repeated table header
✅ Grading legend taken from the active scale
✅ No partial PDFs: failed writes are removed and reported

Priority: HIGH - Core report generation
Dependencies: Jinja2, WeasyPrint, tqdm, api_client, report_paginator
"""

from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import Dict, List, Optional
import logging
import re

from jinja2 import Environment, FileSystemLoader, TemplateError, select_autoescape
from tqdm import tqdm

from .api_client import ResultApiClient
from .class_rank_calculator import ClassRankCalculator
from .config import ResultConfig
from .data_models import GradeScale, ReportMetadata, StudentResult
from .errors import RenderError, ResultBuilderError, ValidationError
from .report_paginator import (
    LayoutPolicy,
    PaginatedReport,
    ReportCardDocument,
    ReportPaginator,
    get_layout,
    ordinal,
)

logger = logging.getLogger(__name__)

TEMPLATES_DIR = Path(__file__).parent / "templates"

_UNSAFE_FILENAME_CHARS = re.compile(r'[\\/:*?"<>|\s]+')


def report_filename(report_type: str, last_name: str, first_name: str, term: str, year: str) -> str:
    """Report_{Type}_{LastName}_{FirstName}_{Term}_{Year}.pdf with path-unsafe characters replaced"""
    parts = [report_type, last_name, first_name, term, year]
    cleaned = [_UNSAFE_FILENAME_CHARS.sub("_", str(p).strip()) or "_" for p in parts]
    return "Report_" + "_".join(cleaned) + ".pdf"


def _score(value: Optional[float]) -> str:
    if value is None:
        return "-"
    return f"{value:g}"


@dataclass
class GenerationResult:
    student_id: str
    student_name: str
    success: bool
    pdf_path: Optional[str]
    error: Optional[str]


class ReportGenerator:
    """Generate report card PDFs"""

    def __init__(
        self,
        config: Optional[ResultConfig] = None,
        api_client: Optional[ResultApiClient] = None,
        templates_dir: Optional[Path] = None,
    ):
        """
        Initialize report generator

        Args:
            config: Result configuration (schema, page format, output dir)
            api_client: Client for the result-data API (needed for generate_report)
            templates_dir: Override the bundled templates
        """
        self.config = config or ResultConfig()
        self.api_client = api_client
        self.templates_dir = Path(templates_dir) if templates_dir else TEMPLATES_DIR
        self.output_dir = Path(self.config.output_dir)

        self.env = Environment(
            loader=FileSystemLoader(str(self.templates_dir)),
            autoescape=select_autoescape(["html", "xml"]),
        )
        self.env.filters["ordinal"] = ordinal
        self.env.filters["score"] = _score

        logger.info(f"Report generator initialized")
        logger.info(f"Templates: {self.templates_dir}")
        logger.info(f"Output: {self.output_dir}")

    def build_document(
        self,
        result: StudentResult,
        metadata: ReportMetadata,
        scale: GradeScale,
        layout: str = "standard",
    ) -> ReportCardDocument:
        policy = get_layout(layout)
        return ReportCardDocument.from_result(result, metadata, scale, self.config.score_schema, policy)

    def paginate(self, document: ReportCardDocument, layout: str = "standard") -> PaginatedReport:
        paginator = ReportPaginator(
            get_layout(layout), self.config.page_format, self.config.pagination_strategy
        )
        return paginator.paginate(document)

    def render_html(
        self,
        document: ReportCardDocument,
        paginated: PaginatedReport,
        layout: str = "standard",
        images: Optional[Dict[str, Optional[str]]] = None,
    ) -> str:
        """Render the paginated document with the layout's template"""
        policy = get_layout(layout)
        images = images or {}
        page_format = self.config.page_format
        try:
            template = self.env.get_template(policy.template_name)
            return template.render(
                document=document,
                result=document.result,
                metadata=document.metadata,
                paginated=paginated,
                layout=policy,
                verbose=policy.name == "standard",
                page_height=paginated.page_height,
                page_width=page_format.usable_width,
                photo_src=images.get("photo", document.result.photo_url),
                logo_src=images.get("logo", document.metadata.school.logo_url),
                issue_date=datetime.now().strftime("%B %d, %Y"),
            )
        except TemplateError as e:
            logger.error(f"Template rendering failed ({policy.template_name}): {e}")
            raise RenderError(f"Template rendering failed: {e}") from e

    def _page_css(self) -> str:
        page_format = self.config.page_format
        return f"@page {{ size: {page_format.name}; margin: {page_format.margin_mm:g}mm; }}"

    def write_pdf(self, html: str, output_path: Path, layout: str = "standard") -> Path:
        """
        Generate PDF using WeasyPrint

        Any failure removes the partially written file and raises RenderError.
        """
        policy = get_layout(layout)
        output_path = Path(output_path)
        output_path.parent.mkdir(parents=True, exist_ok=True)
        css_path = self.templates_dir / policy.stylesheet_name

        try:
            from weasyprint import CSS, HTML

            stylesheets = [CSS(filename=str(css_path)), CSS(string=self._page_css())]
            HTML(string=html, base_url=str(self.templates_dir)).write_pdf(
                str(output_path), stylesheets=stylesheets
            )
        except Exception as e:
            if output_path.exists():
                output_path.unlink()
            logger.error(f"PDF generation failed for {output_path.name}: {e}")
            raise RenderError(f"PDF generation failed for {output_path.name}: {e}") from e

        logger.info(f"PDF generated with WeasyPrint ({policy.name} layout): {output_path}")
        return output_path

    def render_report(
        self,
        result: StudentResult,
        metadata: ReportMetadata,
        scale: GradeScale,
        layout: str = "standard",
        output_path: Optional[Path] = None,
        images: Optional[Dict[str, Optional[str]]] = None,
    ) -> Path:
        """Document, pagination, HTML and PDF for an already fetched result"""
        policy: LayoutPolicy = get_layout(layout)
        document = self.build_document(result, metadata, scale, layout)
        paginated = self.paginate(document, layout)
        html = self.render_html(document, paginated, layout, images)

        if output_path is None:
            filename = report_filename(
                policy.report_type,
                result.last_name,
                result.first_name,
                metadata.term_name,
                metadata.academic_year,
            )
            output_path = self.output_dir / filename
        return self.write_pdf(html, output_path, layout)

    @staticmethod
    def _require_selection(selection: Dict[str, Optional[str]]) -> None:
        missing = [name for name, value in selection.items() if not value or not str(value).strip()]
        if missing:
            raise ValidationError(f"Please select {' and '.join(missing)}", errors=missing)

    def _require_client(self) -> ResultApiClient:
        if self.api_client is None:
            raise ResultBuilderError("ReportGenerator needs an api_client to fetch results")
        return self.api_client

    def _images_for(self, result: StudentResult, metadata: ReportMetadata) -> Dict[str, Optional[str]]:
        client = self._require_client()
        return {
            "photo": client.proxy_image_url(result.photo_url),
            "logo": client.proxy_image_url(metadata.school.logo_url),
        }

    @staticmethod
    def _ranked_copy(result: StudentResult, cohort: List[StudentResult], scale: GradeScale) -> StudentResult:
        """The student's result with positions recomputed from the whole cohort"""
        members = [r for r in cohort if r.student_id != result.student_id] + [result]
        calculator = ClassRankCalculator()
        with_subjects = calculator.calculate_subject_positions(members)
        outcome = calculator.calculate_class_rankings(with_subjects, scale)
        return outcome.results[-1]

    async def generate_report(
        self,
        student_id: str,
        class_id: str,
        term_id: str,
        layout: str = "standard",
        output_path: Optional[Path] = None,
    ) -> Path:
        """
        Fetch, rank, render and write one student's report card

        Returns:
            Path to generated PDF file

        Raises:
            UpstreamFetchError: any API call failed (nothing is written)
            RenderError: template or PDF failure (no partial file is left)
        """
        self._require_selection({"student": student_id, "class": class_id, "term": term_id})
        client = self._require_client()
        logger.info(f"📄 Generating {layout} report for student {student_id}")

        result = await client.get_student_result(student_id, term_id)
        scale = await client.get_active_grade_scale()
        metadata = await client.get_report_metadata(student_id, term_id)
        cohort = await client.get_class_results(class_id, term_id)

        ranked = self._ranked_copy(result, cohort, scale)
        if not metadata.class_size:
            class_size = len({r.student_id for r in cohort} | {ranked.student_id})
            metadata = metadata.model_copy(update={"class_size": class_size})

        path = self.render_report(
            ranked, metadata, scale, layout, output_path, images=self._images_for(ranked, metadata)
        )
        logger.info(f"✅ Report generated: {path}")
        return path

    async def generate_class_reports(
        self,
        class_id: str,
        term_id: str,
        layout: str = "standard",
        progress: bool = True,
    ) -> List[GenerationResult]:
        """
        Generate every report of a class+term, one after another

        A failure for one student is recorded and the batch continues.
        """
        self._require_selection({"class": class_id, "term": term_id})
        client = self._require_client()
        scale = await client.get_active_grade_scale()
        cohort = await client.get_class_results(class_id, term_id)

        calculator = ClassRankCalculator()
        outcome = calculator.calculate_class_rankings(
            calculator.calculate_subject_positions(cohort), scale
        )

        results: List[GenerationResult] = []
        iterator = tqdm(outcome.results, desc="Generating", unit="report") if progress else outcome.results
        for student in iterator:
            try:
                metadata = await client.get_report_metadata(student.student_id, term_id)
                if not metadata.class_size:
                    metadata = metadata.model_copy(update={"class_size": outcome.summary.total_students})
                path = self.render_report(
                    student, metadata, scale, layout, images=self._images_for(student, metadata)
                )
                results.append(GenerationResult(
                    student_id=student.student_id,
                    student_name=student.full_name,
                    success=True,
                    pdf_path=str(path),
                    error=None,
                ))
            except ResultBuilderError as e:
                logger.error(f"Report for student {student.student_id} failed: {e}")
                results.append(GenerationResult(
                    student_id=student.student_id,
                    student_name=student.full_name,
                    success=False,
                    pdf_path=None,
                    error=str(e),
                ))

        succeeded = sum(1 for r in results if r.success)
        logger.info(f"Batch complete: {succeeded}/{len(results)} reports generated")
        return results


__all__ = ["TEMPLATES_DIR", "report_filename", "GenerationResult", "ReportGenerator"]

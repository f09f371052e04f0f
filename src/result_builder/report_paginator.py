#!/usr/bin/env python3
"""
REPORT PAGINATOR - Lay out a student's result into fixed-size pages

LAYOUT PROCESS:
1. Project StudentResult + metadata into a ReportCardDocument (copy only)
2. Break the document into blocks sized by the layout policy
3. Paginate the blocks for the page format (A4, 10mm margins)

LAYOUTS:
✅ Standard: verbose, generous row heights
✅ Terminal: dense end-of-term layout
Both read exactly the same StudentResult fields.

PAGINATION STRATEGIES:
✅ rows: row-aware - blocks placed whole, the subject table split between
   rows with its header repeated on every page
✅ slice: the whole content is laid out once at full height and cut into
   page-height windows, each shifted by -pageHeight (no reflow)

Priority: HIGH - Report cards must fit the printed page
Dependencies: pydantic, data_models, grade_resolver
"""

from dataclasses import dataclass, field
from typing import Any, List, Optional, Tuple
import logging

from pydantic import BaseModel, Field

from .data_models import GradeRange, GradeScale, ReportMetadata, ScoreSchema, StudentResult
from .errors import NoMatchingGradeError, ValidationError
from . import grade_resolver
from .score_aggregator import percentage as score_percentage

logger = logging.getLogger(__name__)

STRATEGY_ROWS = "rows"
STRATEGY_SLICE = "slice"
PAGINATION_STRATEGIES = (STRATEGY_ROWS, STRATEGY_SLICE)

# Remaining heights below this are treated as zero
_EPSILON = 1e-6


def ordinal(n: int) -> str:
    """1 -> 1st, 2 -> 2nd, 3 -> 3rd, 11 -> 11th, 21 -> 21st, 101 -> 101st"""
    if 11 <= n % 100 <= 13:
        suffix = "th"
    else:
        suffix = {1: "st", 2: "nd", 3: "rd"}.get(n % 10, "th")
    return f"{n}{suffix}"


@dataclass(frozen=True)
class PageFormat:
    """Physical page size in millimetres"""
    name: str
    width_mm: float
    height_mm: float
    margin_mm: float = 10.0

    @property
    def usable_height(self) -> float:
        return self.height_mm - 2 * self.margin_mm

    @property
    def usable_width(self) -> float:
        return self.width_mm - 2 * self.margin_mm


PAGE_FORMATS = {
    "A4": PageFormat("A4", 210.0, 297.0),
    "Letter": PageFormat("Letter", 215.9, 279.4),
}


def get_page_format(name: str, margin_mm: float = 10.0) -> PageFormat:
    try:
        base = PAGE_FORMATS[name]
    except KeyError:
        raise ValidationError(f"Unknown page format '{name}'") from None
    return PageFormat(base.name, base.width_mm, base.height_mm, margin_mm)


@dataclass(frozen=True)
class LayoutPolicy:
    """Block heights (mm) and report type for one layout density"""
    name: str
    report_type: str
    template_name: str
    stylesheet_name: str
    header_mm: float
    student_info_mm: float
    table_header_mm: float
    row_mm: float
    legend_header_mm: float
    legend_row_mm: float
    attendance_mm: float
    comments_mm: float
    signatures_mm: float
    footer_mm: float


STANDARD_LAYOUT = LayoutPolicy(
    name="standard",
    report_type="Standard",
    template_name="report_standard.html",
    stylesheet_name="styles_standard.css",
    header_mm=42.0,
    student_info_mm=46.0,
    table_header_mm=12.0,
    row_mm=9.0,
    legend_header_mm=8.0,
    legend_row_mm=6.0,
    attendance_mm=30.0,
    comments_mm=36.0,
    signatures_mm=28.0,
    footer_mm=12.0,
)

TERMINAL_LAYOUT = LayoutPolicy(
    name="terminal",
    report_type="Terminal",
    template_name="report_terminal.html",
    stylesheet_name="styles_terminal.css",
    header_mm=26.0,
    student_info_mm=30.0,
    table_header_mm=9.0,
    row_mm=5.5,
    legend_header_mm=5.0,
    legend_row_mm=3.5,
    attendance_mm=24.0,
    comments_mm=22.0,
    signatures_mm=18.0,
    footer_mm=8.0,
)

LAYOUTS = {STANDARD_LAYOUT.name: STANDARD_LAYOUT, TERMINAL_LAYOUT.name: TERMINAL_LAYOUT}


def get_layout(name: str) -> LayoutPolicy:
    try:
        return LAYOUTS[name]
    except KeyError:
        raise ValidationError(
            f"Unknown report layout '{name}'. Expected one of: {', '.join(sorted(LAYOUTS))}"
        ) from None


class SubjectRow(BaseModel):
    """One printed line of the subject table"""

    serial: int
    subject_id: str
    subject_name: str
    first_ca: Optional[float] = None
    second_ca: Optional[float] = None
    third_ca: Optional[float] = None
    exam: Optional[float] = None
    total: float = 0.0
    max_score: float = 100.0
    percentage: float = 0.0
    grade: str = "N/A"
    remark: str = ""
    color: str = ""
    position_display: str = "-"


class ReportCardDocument(BaseModel):
    """Render-only projection of a StudentResult; never persisted"""

    result: StudentResult
    metadata: ReportMetadata
    scale: GradeScale
    schema_name: str
    max_possible_total: float
    report_type: str
    subject_rows: List[SubjectRow] = Field(default_factory=list)
    legend: List[GradeRange] = Field(default_factory=list)
    overall_grade: str = "N/A"
    overall_remark: str = ""
    overall_color: str = ""
    position_display: str = "N/A"

    @classmethod
    def from_result(
        cls,
        result: StudentResult,
        metadata: ReportMetadata,
        scale: GradeScale,
        schema: ScoreSchema,
        layout: LayoutPolicy = STANDARD_LAYOUT,
    ) -> "ReportCardDocument":
        """
        Build the printable projection of a result

        The source result is deep-copied; rendering never touches it.
        Percentages outside the scale are printed as N/A and logged.
        """
        source = result.model_copy(deep=True)

        rows = []
        for serial, subject in enumerate(source.subject_scores, start=1):
            subject_percentage = score_percentage(subject.total, schema)
            grade, remark, color = "N/A", "", grade_resolver.grade_color(None, scale)
            if subject.grade:
                grade = subject.grade
                remark = subject.remark or ""
                color = grade_resolver.grade_color(grade, scale)
            elif subject.has_score:
                grade, remark, color = _resolve_for_print(subject_percentage, scale, subject.subject_id)

            rows.append(SubjectRow(
                serial=serial,
                subject_id=subject.subject_id,
                subject_name=subject.subject_name or subject.subject_id,
                first_ca=subject.components.first_ca,
                second_ca=subject.components.second_ca,
                third_ca=subject.components.third_ca,
                exam=subject.components.exam,
                total=subject.total,
                max_score=schema.max_possible_total,
                percentage=subject_percentage,
                grade=grade,
                remark=remark,
                color=color,
                position_display=ordinal(subject.position) if subject.position else "-",
            ))

        overall_grade, overall_remark, overall_color = "N/A", "", grade_resolver.grade_color(None, scale)
        if source.grade:
            graded = scale.get_range(source.grade)
            overall_grade = source.grade
            overall_remark = graded.remark if graded else ""
            overall_color = grade_resolver.grade_color(source.grade, scale)
        elif source.is_rankable:
            overall_grade, overall_remark, overall_color = _resolve_for_print(
                source.average_score, scale, f"student {source.student_id}"
            )

        return cls(
            result=source,
            metadata=metadata.model_copy(deep=True),
            scale=scale.model_copy(deep=True),
            schema_name=schema.name,
            max_possible_total=schema.max_possible_total,
            report_type=layout.report_type,
            subject_rows=rows,
            legend=scale.sorted_ranges(),
            overall_grade=overall_grade,
            overall_remark=overall_remark,
            overall_color=overall_color,
            position_display=ordinal(source.position) if source.position else "N/A",
        )

    def summary_fields(self) -> Tuple[float, float, Optional[str]]:
        """(totalScore, averageScore, grade) exactly as in the source result"""
        return (self.result.total_score, self.result.average_score, self.result.grade)


def _resolve_for_print(percentage: float, scale: GradeScale, label: str) -> Tuple[str, str, str]:
    try:
        resolved = grade_resolver.resolve(percentage, scale)
    except NoMatchingGradeError:
        logger.warning(f"{label}: {percentage:.2f}% not covered by scale '{scale.name}' - printed as N/A")
        return "N/A", "Not graded", grade_resolver.grade_color(None, scale)
    return resolved.grade, resolved.remark, resolved.color


@dataclass
class Block:
    """Vertical slab of report content; the subject table carries rows"""
    kind: str
    height: float
    rows: List[Any] = field(default_factory=list)
    header_height: float = 0.0
    row_height: float = 0.0
    continued: bool = False


BLOCK_ORDER = (
    "header",
    "student_info",
    "subject_table",
    "grading_legend",
    "attendance_conduct",
    "comments",
    "signatures",
    "footer",
)


def build_blocks(document: ReportCardDocument, policy: LayoutPolicy) -> List[Block]:
    """Blocks in print order, sized by the layout policy"""
    table_rows = list(document.subject_rows)
    # An empty table still prints one "no subjects" line
    printed_rows = max(len(table_rows), 1)
    heights = {
        "header": policy.header_mm,
        "student_info": policy.student_info_mm,
        "subject_table": policy.table_header_mm + printed_rows * policy.row_mm,
        "grading_legend": policy.legend_header_mm + len(document.legend) * policy.legend_row_mm,
        "attendance_conduct": policy.attendance_mm,
        "comments": policy.comments_mm,
        "signatures": policy.signatures_mm,
        "footer": policy.footer_mm,
    }

    blocks = []
    for kind in BLOCK_ORDER:
        if kind == "subject_table":
            blocks.append(Block(
                kind=kind,
                height=heights[kind],
                rows=table_rows,
                header_height=policy.table_header_mm,
                row_height=policy.row_mm,
            ))
        else:
            blocks.append(Block(kind=kind, height=heights[kind]))
    return blocks


def slice_page_offsets(content_height: float, page_height: float) -> List[float]:
    """
    Vertical offsets of each page window over full-height content

    The first page shows the content at offset 0; while content remains
    below the window another page is added, shifted by -page_height.
    2.4 page heights of content give 3 pages; exactly 2 give 2.
    """
    if page_height <= 0:
        raise ValidationError("Page height must be positive")

    offsets = [0.0]
    remaining = content_height - page_height
    while remaining > _EPSILON:
        offsets.append(-page_height * len(offsets))
        remaining -= page_height
    return offsets


def paginate_rows(blocks: List[Block], page_height: float) -> List[List[Block]]:
    """
    Row-aware pagination

    Blocks are placed whole, moving to a new page when they do not fit.
    The subject table is split between rows and its header repeats on
    each page. A block taller than a page gets a page of its own.
    """
    if page_height <= 0:
        raise ValidationError("Page height must be positive")

    pages: List[List[Block]] = [[]]
    remaining = page_height

    def new_page():
        nonlocal remaining
        pages.append([])
        remaining = page_height

    for block in blocks:
        if block.kind == "subject_table" and block.rows:
            rows = list(block.rows)
            first = True
            while rows:
                needed = block.header_height + block.row_height
                if needed > remaining + _EPSILON and pages[-1]:
                    new_page()
                fit = int((remaining - block.header_height + _EPSILON) // block.row_height)
                fit = max(fit, 1)
                taken, rows = rows[:fit], rows[fit:]
                pages[-1].append(Block(
                    kind=block.kind,
                    height=block.header_height + len(taken) * block.row_height,
                    rows=taken,
                    header_height=block.header_height,
                    row_height=block.row_height,
                    continued=not first,
                ))
                remaining -= block.header_height + len(taken) * block.row_height
                first = False
                if rows:
                    new_page()
            continue

        if block.height > remaining + _EPSILON and pages[-1]:
            new_page()
        pages[-1].append(block)
        remaining -= block.height

    return pages


@dataclass
class PaginatedReport:
    """Pages ready for rendering"""
    strategy: str
    content_height: float
    page_height: float
    blocks: List[Block]
    pages: List[List[Block]] = field(default_factory=list)
    page_offsets: List[float] = field(default_factory=list)

    @property
    def page_count(self) -> int:
        if self.strategy == STRATEGY_SLICE:
            return len(self.page_offsets)
        return len(self.pages)


class ReportPaginator:
    """Paginate report documents for one layout and page format"""

    def __init__(
        self,
        policy: LayoutPolicy = STANDARD_LAYOUT,
        page_format: Optional[PageFormat] = None,
        strategy: str = STRATEGY_ROWS,
    ):
        if strategy not in PAGINATION_STRATEGIES:
            raise ValidationError(
                f"Unknown pagination strategy '{strategy}'. Expected one of: {', '.join(PAGINATION_STRATEGIES)}"
            )
        self.policy = policy
        self.page_format = page_format or PAGE_FORMATS["A4"]
        self.strategy = strategy

    def paginate(self, document: ReportCardDocument) -> PaginatedReport:
        blocks = build_blocks(document, self.policy)
        content_height = sum(b.height for b in blocks)
        page_height = self.page_format.usable_height

        report = PaginatedReport(
            strategy=self.strategy,
            content_height=content_height,
            page_height=page_height,
            blocks=blocks,
        )
        if self.strategy == STRATEGY_SLICE:
            report.page_offsets = slice_page_offsets(content_height, page_height)
        else:
            report.pages = paginate_rows(blocks, page_height)

        logger.info(
            f"Paginated {self.policy.name} report for student {document.result.student_id}: "
            f"{content_height:.1f}mm over {report.page_count} page(s) ({self.strategy})"
        )
        return report


__all__ = [
    "STRATEGY_ROWS",
    "STRATEGY_SLICE",
    "PAGINATION_STRATEGIES",
    "ordinal",
    "PageFormat",
    "PAGE_FORMATS",
    "get_page_format",
    "LayoutPolicy",
    "STANDARD_LAYOUT",
    "TERMINAL_LAYOUT",
    "LAYOUTS",
    "get_layout",
    "SubjectRow",
    "ReportCardDocument",
    "Block",
    "BLOCK_ORDER",
    "build_blocks",
    "slice_page_offsets",
    "paginate_rows",
    "PaginatedReport",
    "ReportPaginator",
]

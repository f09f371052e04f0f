"""
Result Builder - term result computation and report-card rendering

Grade scales, score aggregation, grade resolution, class positions and
paginated PDF report cards for school results.
"""

from .errors import (
    GradeScaleInUseError,
    GradeScaleNotFoundError,
    NoMatchingGradeError,
    RenderError,
    ResultBuilderError,
    UpstreamFetchError,
    ValidationError,
)
from .data_models import (
    Attendance,
    BehavioralGrade,
    ClassSummary,
    ComponentScores,
    Conduct,
    GradeRange,
    GradeScale,
    ReportMetadata,
    SchoolInfo,
    ScoreSchema,
    StudentResult,
    SubjectScore,
)
from .score_aggregator import EXTENDED_160, STANDARD_100, ScoreAggregator
from .grade_scale_validator import DEFAULT_GRADE_SCALES, GradeScaleManager, validate_grade_scale
from .class_rank_calculator import ClassRankCalculator, RankingOutcome
from .behavioral_calculator import AFFECTIVE_DOMAIN_CRITERIA, BEHAVIOR_POINTS, grade_behavior
from .report_paginator import ReportCardDocument, ReportPaginator, ordinal
from .config import ResultConfig
from .result_processor import ResultProcessor
from .api_client import ResultApiClient
from .report_generator import ReportGenerator, report_filename

__version__ = "1.0.0"

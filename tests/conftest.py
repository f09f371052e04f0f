"""
Pytest Configuration and Fixtures

Provides common fixtures for all tests including:
- Sample grade scale (A 75-100 ... F 0-49)
- Student results built through the score aggregator
- Report metadata
- Mocked result-data API transport
"""

import json
from datetime import date
from typing import Any, Callable, Dict, List, Optional

import httpx
import pytest

from result_builder.data_models import GradeScale, ReportMetadata, SchoolInfo, StudentResult
from result_builder.score_aggregator import STANDARD_100, ScoreAggregator


SAMPLE_RANGES = [
    {"grade": "A", "minScore": 75, "maxScore": 100, "gradePoint": 4.0, "remark": "Excellent", "color": "#10B981"},
    {"grade": "B", "minScore": 70, "maxScore": 74, "gradePoint": 3.0, "remark": "Very Good", "color": "#3B82F6"},
    {"grade": "C", "minScore": 60, "maxScore": 69, "gradePoint": 2.0, "remark": "Good", "color": "#F59E0B"},
    {"grade": "D", "minScore": 50, "maxScore": 59, "gradePoint": 1.0, "remark": "Pass", "color": "#EF4444"},
    {"grade": "F", "minScore": 0, "maxScore": 49, "gradePoint": 0.0, "remark": "Fail", "color": "#6B7280"},
]


@pytest.fixture
def sample_ranges() -> List[Dict[str, Any]]:
    return [dict(r) for r in SAMPLE_RANGES]


@pytest.fixture
def sample_scale(sample_ranges) -> GradeScale:
    """Active whole-mark grade scale used across tests"""
    return GradeScale(name="Test Scale", is_active=True, grade_ranges=sample_ranges)


def subject(subject_id: str, **components) -> Dict[str, Any]:
    """Subject entry in API field names (firstCA, secondCA, thirdCA, exam)"""
    return {"subjectId": subject_id, "subjectName": subject_id.title(), **components}


@pytest.fixture
def make_result(sample_scale) -> Callable[..., StudentResult]:
    """Factory: build a StudentResult from subject entries (standard-100 schema)"""

    def _make(
        student_id: str,
        subjects: List[Dict[str, Any]],
        first_name: str = "Test",
        last_name: Optional[str] = None,
        **student_fields,
    ) -> StudentResult:
        aggregator = ScoreAggregator(STANDARD_100, sample_scale)
        student = {
            "studentId": student_id,
            "firstName": first_name,
            "lastName": last_name or f"Student{student_id}",
            **student_fields,
        }
        return aggregator.build_student_result(student, subjects)

    return _make


@pytest.fixture
def sample_results(make_result) -> List[StudentResult]:
    """Averages 90, 80, 80, 70 plus one student with no scores"""
    return [
        make_result("s1", [subject("math", firstCA=10, secondCA=10, thirdCA=10, exam=60),
                           subject("english", firstCA=10, secondCA=10, thirdCA=10, exam=60)]),
        make_result("s2", [subject("math", firstCA=10, exam=70), subject("english", firstCA=10, exam=70)]),
        make_result("s3", [subject("math", secondCA=10, exam=70), subject("english", thirdCA=10, exam=70)]),
        make_result("s4", [subject("math", exam=70), subject("english", exam=70)]),
        make_result("s5", [subject("math"), subject("english")]),
    ]


@pytest.fixture
def sample_metadata() -> ReportMetadata:
    return ReportMetadata(
        school=SchoolInfo(
            name="Greenfield Academy",
            address="12 School Road, Ikeja",
            phone="+234 800 000 0000",
            email="office@greenfield.example",
            logo_url="https://cdn.example.com/logo.png",
        ),
        class_name="JSS 2A",
        term_name="First Term",
        academic_year="2024/2025",
        class_size=5,
        class_teacher="Mrs. Okafor",
        next_term_begins=date(2025, 1, 6),
    )


@pytest.fixture
def api_routes() -> Dict[str, Any]:
    """Path -> response body (or callable(request) -> httpx.Response) for the mock API"""
    return {}


@pytest.fixture
def api_calls() -> List[str]:
    """Every request the mock API received as "METHOD path", in order"""
    return []


@pytest.fixture
def mock_transport(api_routes, api_calls) -> httpx.MockTransport:
    """httpx transport answering from api_routes; unknown paths return 404"""
    def handler(request: httpx.Request) -> httpx.Response:
        path = request.url.path
        api_calls.append(f"{request.method} {path}")
        route = api_routes.get(path)
        if route is None:
            return httpx.Response(404, json={"success": False, "message": "Not found"})
        if callable(route):
            return route(request)
        return httpx.Response(200, content=json.dumps(route), headers={"content-type": "application/json"})

    return httpx.MockTransport(handler)

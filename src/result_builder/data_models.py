#!/usr/bin/env python3
"""
DATA MODELS - Pydantic schemas for result computation and report cards
Type-safe data structures for grade scales, scores, results and reports

COMPREHENSIVE DATA VALIDATION:
✅ Grade Scales: Named ordered score ranges mapped to letter grades
✅ Subject Scores: CA + exam components, total always recomputed
✅ Student Results: Per-term subject scores, attendance, conduct, position
✅ Behavioral Grades: Criterion-based A-E affective domain grading
✅ Report Metadata: School, class and term details for printing

VALIDATION RULES:
- Range bounds must lie within 0-100 and minScore <= maxScore
- Range colors must be #RRGGBB hex strings
- Component scores must be non-negative when entered
- Attendance counters must be non-negative integers

Wire names follow the result-data API (camelCase); Python attributes are
snake_case. Both are accepted on input.

Priority: CRITICAL - Foundation for all result processing
Dependencies: Pydantic for validation
"""

from typing import Optional, List, Dict, Any
from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator
from datetime import datetime, date
from uuid import uuid4
import re


DEFAULT_GRADE_COLOR = "#6B7280"

# Wire names of the score components, in entry order
COMPONENT_NAMES = ("firstCA", "secondCA", "thirdCA", "exam")

_HEX_COLOR = re.compile(r"^#[0-9A-Fa-f]{6}$")


class GradeRange(BaseModel):
    """One score band of a grade scale"""

    model_config = ConfigDict(populate_by_name=True)

    grade: str = Field(..., min_length=1, description="Letter grade (A, B1, A*...)")
    min_score: float = Field(..., alias="minScore", ge=0.0, le=100.0, description="Lowest score in band")
    max_score: float = Field(..., alias="maxScore", ge=0.0, le=100.0, description="Highest score in band")
    grade_point: float = Field(0.0, alias="gradePoint", ge=0.0, description="Grade point value")
    remark: str = Field("", description="Remark printed next to the grade")
    color: str = Field(DEFAULT_GRADE_COLOR, description="Display color for the grade")

    @field_validator("grade")
    @classmethod
    def strip_grade(cls, v):
        """Normalize grade letter"""
        v = v.strip()
        if not v:
            raise ValueError("Grade letter cannot be blank")
        return v

    @field_validator("color")
    @classmethod
    def validate_color(cls, v):
        """Validate hex color format"""
        if not v:
            return DEFAULT_GRADE_COLOR
        if not _HEX_COLOR.match(v):
            raise ValueError(f"Color must be #RRGGBB, got: {v}")
        return v.upper()

    @model_validator(mode="after")
    def check_bounds(self):
        if self.min_score > self.max_score:
            raise ValueError(
                f"minScore ({self.min_score}) cannot exceed maxScore ({self.max_score}) for grade {self.grade}"
            )
        return self

    @property
    def is_whole_mark(self) -> bool:
        """Both bounds are whole numbers (e.g. 70-74)"""
        return float(self.min_score).is_integer() and float(self.max_score).is_integer()

    def contains(self, score: float, whole_mark: bool = False) -> bool:
        """
        Check if a score falls in this band

        On a whole-mark scale the band also owns the fractional marks above
        maxScore, up to but excluding maxScore + 1 (70-74 owns 74.9).
        """
        if whole_mark:
            return self.min_score <= score < self.max_score + 1
        return self.min_score <= score <= self.max_score

    def label(self) -> str:
        return f"{self.grade} ({self.min_score:g}-{self.max_score:g})"


class GradeScale(BaseModel):
    """Named score-to-grade mapping owned by a school"""

    model_config = ConfigDict(populate_by_name=True)

    id: str = Field(default_factory=lambda: uuid4().hex, description="Scale identifier")
    name: str = Field(..., description="Display name")
    is_active: bool = Field(False, alias="isActive", description="Whether this is the school's active scale")
    grade_ranges: List[GradeRange] = Field(default_factory=list, alias="gradeRanges")
    created_at: datetime = Field(default_factory=datetime.now, alias="createdAt")

    @property
    def is_whole_mark(self) -> bool:
        """Every range bound is a whole number"""
        return bool(self.grade_ranges) and all(r.is_whole_mark for r in self.grade_ranges)

    def sorted_ranges(self) -> List[GradeRange]:
        """Ranges ordered by minScore, highest first"""
        return sorted(self.grade_ranges, key=lambda r: r.min_score, reverse=True)

    def lowest_range(self) -> Optional[GradeRange]:
        if not self.grade_ranges:
            return None
        return min(self.grade_ranges, key=lambda r: r.min_score)

    def get_range(self, grade: str) -> Optional[GradeRange]:
        for grade_range in self.grade_ranges:
            if grade_range.grade == grade:
                return grade_range
        return None


class ComponentScores(BaseModel):
    """Sparse CA/exam entries for one subject; None means not yet entered"""

    model_config = ConfigDict(populate_by_name=True)

    first_ca: Optional[float] = Field(None, alias="firstCA", ge=0.0)
    second_ca: Optional[float] = Field(None, alias="secondCA", ge=0.0)
    third_ca: Optional[float] = Field(None, alias="thirdCA", ge=0.0)
    exam: Optional[float] = Field(None, alias="exam", ge=0.0)

    def as_dict(self) -> Dict[str, Optional[float]]:
        """Components keyed by wire name, in entry order"""
        return {
            "firstCA": self.first_ca,
            "secondCA": self.second_ca,
            "thirdCA": self.third_ca,
            "exam": self.exam,
        }

    def present(self) -> Dict[str, float]:
        return {name: value for name, value in self.as_dict().items() if value is not None}

    def total(self) -> float:
        return float(sum(self.present().values()))

    @property
    def ca_total(self) -> float:
        return float(sum(v for k, v in self.present().items() if k != "exam"))


class SubjectScore(BaseModel):
    """Per-subject result; total is derived from components"""

    model_config = ConfigDict(populate_by_name=True)

    subject_id: str = Field(..., alias="subjectId")
    subject_name: str = Field("", alias="subjectName")
    components: ComponentScores = Field(default_factory=ComponentScores)
    total: float = Field(0.0, description="Derived - recomputed from components")
    percentage: float = Field(0.0, description="Total as a percentage of the schema maximum")
    grade: Optional[str] = Field(None)
    grade_point: Optional[float] = Field(None, alias="gradePoint")
    remark: Optional[str] = Field(None)
    position: Optional[int] = Field(None, description="Position among classmates in this subject")

    @field_validator("subject_id", mode="before")
    @classmethod
    def coerce_subject_id(cls, v):
        return str(v)

    @model_validator(mode="after")
    def recompute_total(self):
        self.total = self.components.total()
        return self

    @property
    def has_score(self) -> bool:
        return self.total > 0


class Attendance(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    days_present: int = Field(0, alias="daysPresent", ge=0)
    days_absent: int = Field(0, alias="daysAbsent", ge=0)
    times_late: int = Field(0, alias="timesLate", ge=0)

    @property
    def total_days(self) -> int:
        return self.days_present + self.days_absent

    @property
    def attendance_percentage(self) -> float:
        """Share of school days present, 0.0 when nothing is recorded"""
        if self.total_days == 0:
            return 0.0
        return self.days_present / self.total_days * 100


class Conduct(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    grade: Optional[str] = Field(None, description="Conduct grade")
    teacher_comment: str = Field("", alias="teacherComment")
    principal_comment: str = Field("", alias="principalComment")


class StudentResult(BaseModel):
    """Result of one student for one term in one class"""

    model_config = ConfigDict(populate_by_name=True)

    student_id: str = Field(..., alias="studentId")
    first_name: str = Field("", alias="firstName")
    last_name: str = Field("", alias="lastName")
    middle_name: Optional[str] = Field(None, alias="middleName")
    admission_number: Optional[str] = Field(None, alias="admissionNumber")
    photo_url: Optional[str] = Field(None, alias="photoUrl")

    subject_scores: List[SubjectScore] = Field(default_factory=list, alias="subjectScores")
    total_score: float = Field(0.0, alias="totalScore", ge=0.0)
    average_score: float = Field(0.0, alias="averageScore", ge=0.0)
    total_subjects: int = Field(0, alias="totalSubjects", ge=0)
    grade: Optional[str] = Field(None, description="Grade for the average score")

    # Assigned only by a full class ranking run
    position: Optional[int] = Field(None, ge=1)

    attendance: Attendance = Field(default_factory=Attendance)
    conduct: Conduct = Field(default_factory=Conduct)
    is_published: bool = Field(False, alias="isPublished")

    @field_validator("student_id", mode="before")
    @classmethod
    def coerce_student_id(cls, v):
        return str(v)

    @property
    def full_name(self) -> str:
        """Get student full name"""
        if self.middle_name:
            return f"{self.first_name} {self.middle_name} {self.last_name}"
        return f"{self.first_name} {self.last_name}"

    @property
    def is_rankable(self) -> bool:
        """At least one subject carries a score"""
        return any(s.has_score for s in self.subject_scores)

    @property
    def is_partial(self) -> bool:
        """Some subjects are scored, others are still empty"""
        scored = sum(1 for s in self.subject_scores if s.has_score)
        return 0 < scored < len(self.subject_scores)


class ClassSummary(BaseModel):
    """Class-level statistics produced by a ranking run"""

    model_config = ConfigDict(populate_by_name=True)

    total_students: int = Field(0, alias="totalStudents", ge=0)
    ranked_students: int = Field(0, alias="rankedStudents", ge=0)
    average_score: float = Field(0.0, alias="averageScore")
    highest_score: float = Field(0.0, alias="highestScore")
    lowest_score: float = Field(0.0, alias="lowestScore")
    grade_distribution: Dict[str, int] = Field(default_factory=dict, alias="gradeDistribution")


class BehavioralGrade(BaseModel):
    """Criterion-based affective domain grading, independent of scores"""

    model_config = ConfigDict(populate_by_name=True)

    student_id: str = Field(..., alias="studentId")
    criteria_grades: Dict[str, str] = Field(default_factory=dict, alias="criteriaGrades")
    total_points: int = Field(0, alias="totalPoints", ge=0)
    average_grade: str = Field("N/A", alias="averageGrade")
    feedback: str = Field("")

    @field_validator("student_id", mode="before")
    @classmethod
    def coerce_student_id(cls, v):
        return str(v)


class SchoolInfo(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    name: str = Field(..., description="School name")
    address: str = Field("", description="Single-line postal address")
    phone: Optional[str] = Field(None)
    email: Optional[str] = Field(None)
    logo_url: Optional[str] = Field(None, alias="logoUrl")

    @field_validator("email")
    @classmethod
    def validate_email(cls, v):
        """Validate email format"""
        if v and "@" not in v:
            raise ValueError("Invalid email format")
        return v


class ReportMetadata(BaseModel):
    """School/class/term context printed around a student's result"""

    model_config = ConfigDict(populate_by_name=True)

    school: SchoolInfo
    class_name: str = Field(..., alias="className")
    term_name: str = Field(..., alias="termName")
    academic_year: str = Field(..., alias="academicYear")
    class_size: int = Field(0, alias="classSize", ge=0)
    class_teacher: Optional[str] = Field(None, alias="classTeacher")
    next_term_begins: Optional[date] = Field(None, alias="nextTermBegins")


class ScoreSchema(BaseModel):
    """Component maxima and the single maximum possible total"""

    model_config = ConfigDict(populate_by_name=True)

    name: str = Field(..., description="Schema identifier")
    component_maxima: Dict[str, float] = Field(..., alias="componentMaxima")
    max_possible_total: float = Field(..., alias="maxPossibleTotal", gt=0.0)

    @field_validator("component_maxima")
    @classmethod
    def validate_components(cls, v):
        unknown = set(v) - set(COMPONENT_NAMES)
        if unknown:
            raise ValueError(f"Unknown score components: {sorted(unknown)}")
        for name, maximum in v.items():
            if maximum <= 0:
                raise ValueError(f"Maximum for {name} must be positive")
        return v

    def maximum_for(self, component: str) -> Optional[float]:
        return self.component_maxima.get(component)


__all__ = [
    "DEFAULT_GRADE_COLOR",
    "COMPONENT_NAMES",
    "GradeRange",
    "GradeScale",
    "ComponentScores",
    "SubjectScore",
    "Attendance",
    "Conduct",
    "StudentResult",
    "ClassSummary",
    "BehavioralGrade",
    "SchoolInfo",
    "ReportMetadata",
    "ScoreSchema",
]

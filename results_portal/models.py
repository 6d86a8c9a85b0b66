"""
Domain records shared by the parser, the aggregator and the API.

Everything here is immutable; aggregation builds new objects on every run
instead of updating old ones.
"""

from dataclasses import dataclass, replace
from typing import Optional, Tuple

from results_portal.gpa import grade_to_points


@dataclass(frozen=True)
class GradeToken:
    index_number: str
    grade: str

    def to_dict(self) -> dict:
        return {'indexNumber': self.index_number, 'grade': self.grade}


@dataclass(frozen=True)
class Scope:
    """Restricts which part of the record store is visited (batch / degree)."""
    cohort: Optional[str] = None
    program: Optional[str] = None

    @property
    def is_global(self) -> bool:
        return not self.cohort and not self.program

    def to_dict(self) -> Optional[dict]:
        if self.is_global:
            return None
        return {'batch': self.cohort, 'degree': self.program}


GLOBAL_SCOPE = Scope()


@dataclass(frozen=True)
class ModuleRecord:
    module_code: str
    module_name: str
    credits: float
    year: str
    semester: str
    students: Tuple[GradeToken, ...] = ()
    source: Optional[str] = None


@dataclass(frozen=True)
class GradedModule:
    module_code: str
    module_name: str
    grade: str
    credits: float
    year: str
    semester: str

    @property
    def period(self) -> Tuple[str, str]:
        return (self.year, self.semester)

    def to_dict(self) -> dict:
        return {
            'moduleCode': self.module_code,
            'moduleName': self.module_name,
            'grade': self.grade,
            'credits': self.credits,
            'gradePoints': grade_to_points(self.grade),
            'year': self.year,
            'semester': self.semester,
        }


@dataclass(frozen=True)
class SemesterSummary:
    year: str
    semester: str
    sgpa: float
    credits: float
    modules: Tuple[GradedModule, ...]

    def to_dict(self) -> dict:
        return {
            'year': self.year,
            'semester': self.semester,
            'sgpa': self.sgpa,
            'credits': self.credits,
            'modules': [m.to_dict() for m in self.modules],
        }


@dataclass(frozen=True)
class StudentProfile:
    index_number: str
    name: Optional[str] = None
    photo_url: Optional[str] = None


@dataclass(frozen=True)
class StudentTranscript:
    index_number: str
    modules: Tuple[GradedModule, ...]
    semesters: Tuple[SemesterSummary, ...]
    cgpa: float
    total_credits: float
    rank: Optional[int] = None

    @property
    def module_count(self) -> int:
        return len(self.modules)

    def with_rank(self, rank: int) -> 'StudentTranscript':
        return replace(self, rank=rank)


"""
Transcript aggregation.

Joins every module record in a scope into one transcript per student,
partitions each transcript by (year, semester), and fills in SGPA/CGPA.
Transcripts are rebuilt from the record store on every call; nothing is
cached between requests.
"""

import logging
import re
from collections import defaultdict
from typing import Dict, Iterable, List, Optional

from results_portal.gpa import calculate_cgpa, calculate_sgpa, gpa_label, predicted_class, total_credits
from results_portal.models import (
    GLOBAL_SCOPE,
    GradedModule,
    ModuleRecord,
    Scope,
    SemesterSummary,
    StudentProfile,
    StudentTranscript,
)
from results_portal.ranking import rank_of, rank_transcripts
from results_portal.store import ModuleRepository, ProfileCache

logger = logging.getLogger(__name__)


def _natural_key(label: str):
    """Natural order, so "Year 10" sorts after "Year 2"."""
    return [(0, int(part), '') if part.isdigit() else (1, 0, part.lower())
            for part in re.split(r'(\d+)', label) if part]


def _module_sort_key(module: GradedModule):
    return (_natural_key(module.year), _natural_key(module.semester), module.module_code)


# ─── Aggregation ─────────────────────────────────────────────────────────────

def group_by_student(records: Iterable[ModuleRecord]) -> Dict[str, List[GradedModule]]:
    """
    One GradedModule per (student, grade) pair of every record.

    Records can arrive in any order; the result only depends on which
    records were seen.
    """
    modules_by_student: Dict[str, List[GradedModule]] = defaultdict(list)
    for record in records:
        for token in record.students:
            modules_by_student[token.index_number].append(GradedModule(
                module_code=record.module_code,
                module_name=record.module_name,
                grade=token.grade,
                credits=record.credits,
                year=record.year,
                semester=record.semester,
            ))
    return modules_by_student


def build_semesters(modules: Iterable[GradedModule]) -> List[SemesterSummary]:
    partitions: Dict[tuple, List[GradedModule]] = defaultdict(list)
    for module in modules:
        partitions[module.period].append(module)

    semesters = []
    for (year, semester), semester_modules in partitions.items():
        semesters.append(SemesterSummary(
            year=year,
            semester=semester,
            sgpa=calculate_sgpa(semester_modules),
            credits=total_credits(semester_modules),
            modules=tuple(semester_modules),
        ))
    semesters.sort(key=lambda s: (_natural_key(s.year), _natural_key(s.semester)))
    return semesters


def build_transcript(index_number: str, modules: Iterable[GradedModule]) -> StudentTranscript:
    modules = sorted(modules, key=_module_sort_key)
    return StudentTranscript(
        index_number=index_number,
        modules=tuple(modules),
        semesters=tuple(build_semesters(modules)),
        cgpa=calculate_cgpa(modules),
        total_credits=total_credits(modules),
    )


def aggregate_transcripts(records: Iterable[ModuleRecord]) -> List[StudentTranscript]:
    """Transcripts for every student that appears in at least one record."""
    grouped = group_by_student(records)
    return [build_transcript(index_number, modules) for index_number, modules in grouped.items()]


# ─── Views ───────────────────────────────────────────────────────────────────

def _profile_fields(profile: Optional[StudentProfile]) -> dict:
    return {
        'name': profile.name if profile else None,
        'photoUrl': profile.photo_url if profile else None,
    }


def population_entry(transcript: StudentTranscript, profile: Optional[StudentProfile] = None) -> dict:
    return {
        'indexNumber': transcript.index_number,
        **_profile_fields(profile),
        'rank': transcript.rank,
        'cgpa': transcript.cgpa,
        'totalCredits': transcript.total_credits,
        'moduleCount': transcript.module_count,
    }


def detail_entry(transcript: StudentTranscript, profile: Optional[StudentProfile] = None) -> dict:
    return {
        'indexNumber': transcript.index_number,
        **_profile_fields(profile),
        'rank': transcript.rank,
        'cgpa': transcript.cgpa,
        'totalCredits': transcript.total_credits,
        'gpaLabel': gpa_label(transcript.cgpa),
        'predictedClass': predicted_class(transcript.cgpa),
        'semesters': [s.to_dict() for s in transcript.semesters],
        'modules': [m.to_dict() for m in transcript.modules],
    }


class TranscriptAggregator:
    """Builds transcripts and their views from a module repository."""

    def __init__(self, repository: ModuleRepository, profiles: Optional[ProfileCache] = None):
        self.repository = repository
        self.profiles = profiles

    def _profile(self, index_number: str, scope: Scope) -> Optional[StudentProfile]:
        if self.profiles is None:
            return None
        return self.profiles.lookup(index_number, scope)

    def transcripts(self, scope: Scope = GLOBAL_SCOPE) -> List[StudentTranscript]:
        records = self.repository.list_module_records(scope)
        transcripts = aggregate_transcripts(records)
        logger.info(
            "👥 Aggregated %d students from %d module records",
            len(transcripts), len(records),
        )
        return transcripts

    def ranked(self, scope: Scope = GLOBAL_SCOPE) -> List[StudentTranscript]:
        return rank_transcripts(self.transcripts(scope))

    def population(self, scope: Scope = GLOBAL_SCOPE) -> List[dict]:
        """Every student in scope, best CGPA first."""
        return [
            population_entry(t, self._profile(t.index_number, scope))
            for t in self.ranked(scope)
        ]

    def detail(self, index_number: str, scope: Scope = GLOBAL_SCOPE) -> Optional[dict]:
        """Full transcript of one student, or None if no record mentions them."""
        transcripts = self.transcripts(scope)
        transcript = next((t for t in transcripts if t.index_number == index_number), None)
        if transcript is None:
            return None

        rank = rank_of(index_number, transcripts)
        return detail_entry(transcript.with_rank(rank), self._profile(index_number, scope))

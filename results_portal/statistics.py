"""Population summary for the admin statistics view."""

from collections import Counter
from typing import Dict, List, Optional

from results_portal.gpa import GPA_PRECISION, grade_to_points
from results_portal.models import StudentProfile, StudentTranscript
from results_portal.ranking import rank_transcripts


def generate_statistics(
    transcripts: List[StudentTranscript],
    top_n: int = 10,
    profiles: Optional[Dict[str, StudentProfile]] = None,
) -> dict:
    """Generate statistics summary. Top students carry their profile name when known."""
    profiles = profiles or {}
    if not transcripts:
        return {
            "totalStudents": 0,
            "totalModuleResults": 0,
            "averageCGPA": 0,
            "topGPA": 0,
            "topStudents": [],
            "gradeDistribution": {},
        }

    ranked = rank_transcripts(transcripts)
    total = len(ranked)
    average_cgpa = round(sum(t.cgpa for t in ranked) / total, GPA_PRECISION)

    grades = Counter(m.grade for t in ranked for m in t.modules if m.grade)
    # Best grades first, then alphabetical within the same grade point
    distribution = dict(sorted(grades.items(), key=lambda kv: (-grade_to_points(kv[0]), kv[0])))

    top_students = [
        {
            "indexNumber": t.index_number,
            "name": profiles[t.index_number].name if t.index_number in profiles else None,
            "rank": t.rank,
            "cgpa": t.cgpa,
            "totalCredits": t.total_credits,
            "moduleCount": t.module_count,
        }
        for t in ranked[:top_n]
    ]

    return {
        "totalStudents": total,
        "totalModuleResults": sum(grades.values()),
        "averageCGPA": average_cgpa,
        "topGPA": ranked[0].cgpa,
        "topStudents": top_students,
        "gradeDistribution": distribution,
    }

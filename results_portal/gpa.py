"""
Grade point table and credit-weighted GPA calculation.

    gpa = Σ(gradePoint × credits) / Σ(credits)

The same formula gives the SGPA of one (year, semester) partition and the
CGPA of a student's whole module list, so CGPA is credit weighted across
semesters rather than a mean of SGPAs.
"""

from typing import Iterable


# ─── Grade Point Table ──────────────────────────────────────────────────────

GRADE_POINTS = {
    'A+': 4.0,
    'A': 4.0,
    'A-': 3.7,
    'B+': 3.3,
    'B': 3.0,
    'B-': 2.7,
    'C+': 2.3,
    'C': 2.0,
    'C-': 1.7,
    'D': 1.0,
    # Fail and administrative markers (incomplete / pass / no grade / withdrawn)
    'F': 0.0,
    'I': 0.0,
    'P': 0.0,
    'N': 0.0,
    'W': 0.0,
}

GPA_PRECISION = 4


def grade_to_points(grade) -> float:
    """Grade points for a letter grade; anything unrecognised is 0.0."""
    if not isinstance(grade, str):
        return 0.0
    return GRADE_POINTS.get(grade.strip().upper(), 0.0)


# ─── GPA Calculator ─────────────────────────────────────────────────────────

def total_credits(modules: Iterable) -> float:
    return sum(m.credits for m in modules)


def calculate_gpa(modules: Iterable) -> float:
    """
    Credit-weighted grade point average over graded modules.

    Returns 0.0 for an empty list or when the credits sum to zero.
    Rounded to 4 decimal places only after the full-precision division.
    """
    total_points = 0.0
    credits = 0.0
    for module in modules:
        total_points += grade_to_points(module.grade) * module.credits
        credits += module.credits

    if credits <= 0:
        return 0.0
    return round(total_points / credits, GPA_PRECISION)


def calculate_sgpa(semester_modules: Iterable) -> float:
    return calculate_gpa(semester_modules)


def calculate_cgpa(all_modules: Iterable) -> float:
    # Same formula over every module, not an average of the SGPAs
    return calculate_gpa(all_modules)


# ─── Labels ─────────────────────────────────────────────────────────────────

def gpa_label(gpa: float) -> str:
    if gpa >= 3.7:
        return 'Excellent'
    if gpa >= 3.0:
        return 'Good'
    if gpa >= 2.0:
        return 'Satisfactory'
    return 'Needs Improvement'


def predicted_class(gpa: float) -> str:
    """
    Degree class for a CGPA:
      3.70 or above  First Class
      3.30 - 3.69    Second Class - Upper Division
      3.00 - 3.29    Second Class - Lower Division
      2.00 - 2.99    General
    """
    if gpa >= 3.70:
        return 'First Class'
    if gpa >= 3.30:
        return 'Second Class – Upper Division'
    if gpa >= 3.00:
        return 'Second Class – Lower Division'
    if gpa >= 2.00:
        return 'General'
    return 'N/A'

"""
Result-sheet PDF parser using pdfplumber.

Pulls every (index number, grade) pair out of a module result sheet.
Result sheets are typeset tables, but the extracted text is noisy: invisible
control characters, assorted dash and plus glyphs, and arbitrary line breaks
inside the table. The text is normalized first and then scanned with a single
lexical pattern:

    214115C A-      ->  index "214115C", grade "A-"

Index numbers are six digits followed by one uppercase letter; the grade
follows immediately after.
"""

import io
import logging
import re
from pathlib import Path
from typing import List, Union

import pdfplumber

from results_portal.models import GradeToken

logger = logging.getLogger(__name__)


class DecodeError(Exception):
    """The document could not be opened or decoded as a PDF."""


# ─── Text Normalization ──────────────────────────────────────────────────────

# zero-width space / non-joiner / joiner, BOM, word joiner, soft hyphen
INVISIBLE_CHARS = re.compile("[\u200b\u200c\u200d\ufeff\u2060\u00ad]")
# hyphen, non-breaking hyphen, figure dash, en dash, em dash, horizontal bar,
# minus sign, small and fullwidth hyphen-minus
DASH_CHARS = re.compile("[\u2010\u2011\u2012\u2013\u2014\u2015\u2212\ufe63\uff0d]")
FULLWIDTH_PLUS = "\uff0b"
WHITESPACE_RUN = re.compile(r'\s+')


def clean_text(raw: str) -> str:
    text = INVISIBLE_CHARS.sub('', raw)
    text = DASH_CHARS.sub('-', text)
    text = text.replace(FULLWIDTH_PLUS, '+')
    return WHITESPACE_RUN.sub(' ', text)


# ─── Grade Matching ──────────────────────────────────────────────────────────

# The lookbehind keeps a longer digit run from anchoring on its last six digits
GRADE_PATTERN = re.compile(r'(?<!\d)(\d{6}[A-Z])([A-D][+\-]?|[EF]|I)')


def extract_grade_tokens(text: str) -> List[GradeToken]:
    """
    Scan text for grade tokens in order of appearance.

    Repeated rows (e.g. a table header repeated across a page break) are
    returned as many times as they appear.
    """
    cleaned = clean_text(text)
    tokens = []
    for match in GRADE_PATTERN.finditer(cleaned):
        tokens.append(GradeToken(index_number=match.group(1), grade=match.group(2)))
        logger.debug("MATCH: %s %s", match.group(1), match.group(2))
    return tokens


# ─── PDF Text ────────────────────────────────────────────────────────────────

def extract_pdf_text(data: bytes) -> str:
    """Concatenated text of every page; raises DecodeError for corrupt input."""
    pages = []
    try:
        with pdfplumber.open(io.BytesIO(data)) as pdf:
            for page in pdf.pages:
                text = page.extract_text()
                if text:
                    pages.append(text)
    except Exception as e:
        raise DecodeError(f"Could not decode PDF: {e}") from e
    return '\n'.join(pages)


def parse_result_pdf(data: bytes) -> List[GradeToken]:
    return extract_grade_tokens(extract_pdf_text(data))


# ─── File Name / Path Metadata ───────────────────────────────────────────────

MODULE_CODE_PATTERN = re.compile(r'(IN|CM|IS)\d{4}', re.IGNORECASE)
YEAR_DIR_PATTERN = re.compile(r'Year\s+\d+', re.IGNORECASE)
SEMESTER_DIR_PATTERN = re.compile(r'Semester\s+(\d+)', re.IGNORECASE)


def extract_module_code(filename: str) -> str:
    """
    "IN1311_Digital System Design.pdf" -> "IN1311"
    """
    match = MODULE_CODE_PATTERN.search(filename)
    return match.group(0).upper() if match else 'Unknown'


def extract_module_name(filename: str) -> str:
    """
    "IN1311_Digital System Design_Intake 2021.pdf" -> "Digital System Design"

    Falls back to the file name without its extension.
    """
    stem = re.sub(r'\.pdf$', '', filename, flags=re.IGNORECASE)
    parts = stem.split('_')
    if len(parts) >= 2:
        return parts[1].strip()
    return stem


def extract_period(relative_path: str) -> tuple:
    """
    Year label and semester numeral from the directory part of a path.

    "Year 1/Semester 2/IN1311.pdf" -> ("Year 1", "2")
    """
    directories = re.split(r'[\\/]', relative_path)[:-1]

    year = 'Unknown'
    semester = 'Unknown'
    for part in directories:
        if YEAR_DIR_PATTERN.search(part):
            year = part
        semester_match = SEMESTER_DIR_PATTERN.search(part)
        if semester_match:
            semester = semester_match.group(1)
    return year, semester


# ─── Main Parser ─────────────────────────────────────────────────────────────

class ResultSheetParser:
    """Parses one result-sheet PDF (a path or raw bytes) into grade tokens."""

    def __init__(self, source: Union[str, Path, bytes], name: str = None):
        if isinstance(source, (bytes, bytearray)):
            self.data = bytes(source)
            self.name = name or '<upload>'
        else:
            self.data = None
            self.path = Path(source)
            self.name = name or self.path.name
        self.tokens: List[GradeToken] = []

    def _read(self) -> bytes:
        if self.data is None:
            self.data = self.path.read_bytes()
        return self.data

    def parse(self) -> List[GradeToken]:
        logger.info("📄 Parsing %s...", self.name)
        self.tokens = parse_result_pdf(self._read())

        students = {t.index_number for t in self.tokens}
        logger.info("✅ Parsed %d grades for %d students", len(self.tokens), len(students))
        if len(students) < len(self.tokens):
            logger.warning(
                "⚠️  %d repeated index numbers in %s",
                len(self.tokens) - len(students), self.name,
            )
        return self.tokens

    def to_document(self, module_code: str, module_name: str, credits: float,
                    year: str, semester: str) -> dict:
        """Module record document in the shape the record store keeps on disk."""
        return {
            'moduleCode': module_code,
            'moduleName': module_name,
            'credits': credits,
            'year': year,
            'semester': semester,
            'students': [t.to_dict() for t in self.tokens],
        }

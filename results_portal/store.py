"""
Module record store.

The parsing pipeline writes one JSON document per result sheet:

    { "moduleCode": "IN1311", "moduleName": "Digital System Design",
      "credits": 3, "year": "Year 1", "semester": "1",
      "students": [ { "indexNumber": "214115C", "grade": "A-" }, ... ] }

This module only reads them. Documents are laid out as
<root>/<batch>/<degree>/Year N/Semester N/<sheet>.pdf.json, and a scope
(batch, degree) picks a subtree. A bad document is logged and skipped so
that one broken file never takes the whole aggregation down.
"""

import json
import logging
import re
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from results_portal.models import GLOBAL_SCOPE, GradeToken, ModuleRecord, Scope, StudentProfile

logger = logging.getLogger(__name__)

PROFILE_FILENAME = 'student-profiles.json'


class MalformedRecord(Exception):
    """A module document is present but does not have the expected shape."""

    def __init__(self, source: str, reason: str):
        super().__init__(f"{source}: {reason}")
        self.source = source
        self.reason = reason


# ─── Document Validation ─────────────────────────────────────────────────────

def normalize_semester(value: str) -> str:
    """
    "Semester 2" -> "2", "2" -> "2". Labels without a numeral are kept as is.
    """
    match = re.search(r'\d+', value)
    return match.group(0) if match else value.strip()


class ModuleDocument(BaseModel):
    # Infinity/NaN credits would turn every GPA they touch into NaN
    model_config = ConfigDict(extra='ignore', allow_inf_nan=False)

    moduleCode: str = 'Unknown'
    moduleName: str = 'Unknown'
    credits: float = Field(default=0.0, ge=0)
    year: str = 'Unknown'
    semester: str = 'Unknown'
    students: List[Any]

    @field_validator('moduleCode', 'moduleName', 'year', 'semester', mode='before')
    @classmethod
    def _as_text(cls, v):
        if v is None:
            return 'Unknown'
        if isinstance(v, (int, float)):
            return str(v)
        return v

    @field_validator('credits', mode='before')
    @classmethod
    def _missing_credits(cls, v):
        # Sheets parsed before their credits were entered count as 0 credits
        return 0.0 if v is None else v

    @field_validator('semester')
    @classmethod
    def _bare_numeral(cls, v: str) -> str:
        return normalize_semester(v)


def _student_token(entry: Any) -> Optional[GradeToken]:
    if not isinstance(entry, dict):
        return None
    index_number = entry.get('indexNumber')
    grade = entry.get('grade')
    if not isinstance(index_number, str) or not index_number.strip():
        return None
    # Unknown or missing grades are kept; they count as 0 grade points
    grade = grade.strip() if isinstance(grade, str) else ''
    return GradeToken(index_number=index_number.strip(), grade=grade)


def validate_module_document(raw: Any, source: str = '<memory>') -> ModuleRecord:
    """Check a raw JSON document and turn it into a ModuleRecord."""
    if not isinstance(raw, dict):
        raise MalformedRecord(source, f"expected an object, got {type(raw).__name__}")
    if not isinstance(raw.get('students'), list):
        raise MalformedRecord(source, "'students' is missing or not a list")

    try:
        doc = ModuleDocument.model_validate(raw)
    except ValidationError as e:
        fields = ', '.join('.'.join(str(p) for p in err['loc']) for err in e.errors())
        raise MalformedRecord(source, f"invalid fields: {fields}") from e

    students = []
    for entry in doc.students:
        token = _student_token(entry)
        if token is None:
            logger.debug("Dropping student entry without index number in %s: %r", source, entry)
            continue
        students.append(token)

    return ModuleRecord(
        module_code=doc.moduleCode,
        module_name=doc.moduleName,
        credits=doc.credits,
        year=doc.year,
        semester=doc.semester,
        students=tuple(students),
        source=source,
    )


def load_records(documents: Iterable[Tuple[str, Any]]) -> List[ModuleRecord]:
    """Validate (source, document) pairs, skipping and logging the bad ones."""
    records = []
    skipped = 0
    for source, raw in documents:
        try:
            records.append(validate_module_document(raw, source))
        except MalformedRecord as e:
            skipped += 1
            logger.warning("⚠️  Skipping malformed module record %s", e)
    if skipped:
        logger.info("Loaded %d module records, skipped %d", len(records), skipped)
    return records


# ─── Repositories ────────────────────────────────────────────────────────────

class ModuleRepository(ABC):
    """Read-only source of module records."""

    @abstractmethod
    def list_module_records(self, scope: Scope = GLOBAL_SCOPE) -> List[ModuleRecord]:
        ...


def _inside(root: Path, candidate: Path) -> bool:
    resolved_root = root.resolve()
    resolved = candidate.resolve()
    return resolved == resolved_root or resolved_root in resolved.parents


def scope_directories(root: Path, scope: Scope) -> List[Path]:
    """
    Directories under root that belong to a scope. Candidates that resolve
    outside root (absolute paths, "..") are dropped with a warning.
    """
    if scope.is_global:
        return [root]
    if scope.cohort:
        base = root / scope.cohort
        candidates = [base / scope.program] if scope.program else [base]
    elif not root.is_dir():
        return []
    else:
        candidates = [d / scope.program for d in sorted(root.iterdir()) if d.is_dir()]

    directories = []
    for candidate in candidates:
        if not _inside(root, candidate):
            logger.warning("⚠️  Ignoring scope path outside %s: %s", root, candidate)
            continue
        directories.append(candidate)
    return directories


class JsonTreeRepository(ModuleRepository):
    """Module records stored as JSON files in a directory tree."""

    def __init__(self, root):
        self.root = Path(root)

    def _json_files(self, scope: Scope) -> List[Path]:
        files = []
        for base in scope_directories(self.root, scope):
            if not base.is_dir():
                logger.warning("⚠️ Path does not exist: %s", base)
                continue
            logger.debug("📂 Scanning path: %s", base)
            files.extend(
                p for p in sorted(base.rglob('*.json'))
                if p.is_file() and 'metadata' not in p.name and p.name != PROFILE_FILENAME
            )
        return files

    def _read_documents(self, files: List[Path]):
        for path in files:
            source = str(path.relative_to(self.root))
            try:
                raw = json.loads(path.read_text(encoding='utf-8'))
            except (OSError, UnicodeDecodeError, json.JSONDecodeError) as e:
                logger.warning("⚠️  Skipping unreadable module record %s: %s", source, e)
                continue
            yield source, raw

    def list_module_records(self, scope: Scope = GLOBAL_SCOPE) -> List[ModuleRecord]:
        files = self._json_files(scope)
        logger.info("Found %d module files for scope %s", len(files), scope.to_dict() or 'global')
        return load_records(self._read_documents(files))


class InMemoryModuleRepository(ModuleRepository):
    """
    Module documents held in memory. A document may carry "cohort" and
    "program" keys; scoped listings only return matching documents.
    """

    def __init__(self, documents: Iterable[Any] = ()):
        self.documents = list(documents)

    def _in_scope(self, document: Any, scope: Scope) -> bool:
        if not isinstance(document, dict):
            return scope.is_global
        if scope.cohort and document.get('cohort') != scope.cohort:
            return False
        if scope.program and document.get('program') != scope.program:
            return False
        return True

    def list_module_records(self, scope: Scope = GLOBAL_SCOPE) -> List[ModuleRecord]:
        selected = (
            (f'<memory:{i}>', doc) for i, doc in enumerate(self.documents)
            if self._in_scope(doc, scope)
        )
        return load_records(selected)


# ─── Student Profiles ────────────────────────────────────────────────────────

class ProfileCache:
    """
    Student names and photos per scope, read from student-profiles.json files:

        { "214115C": { "name": "...", "photoUrl": "..." }, ... }

    Profiles are loaded lazily and kept until clear() is called.
    """

    def __init__(self, root):
        self.root = Path(root)
        self._profiles: Dict[Scope, Dict[str, StudentProfile]] = {}

    def _profile_files(self, scope: Scope) -> List[Path]:
        files = []
        for base in scope_directories(self.root, scope):
            if base.is_dir():
                files.extend(sorted(base.rglob(PROFILE_FILENAME)))
        return files

    def _photo_url(self, profile_file: Path, photo_url: Any) -> Optional[str]:
        """
        Scrapers store photos beside the profile file as "photos/<file>";
        served URLs are "/<batch>/<degree>/photos/<file>".
        """
        if not isinstance(photo_url, str) or not photo_url:
            return None
        if not photo_url.startswith('photos/'):
            return photo_url
        prefix = profile_file.parent.relative_to(self.root).as_posix()
        if prefix == '.':
            return f"/{photo_url}"
        return f"/{prefix}/{photo_url}"

    def _load(self, scope: Scope) -> Dict[str, StudentProfile]:
        profiles: Dict[str, StudentProfile] = {}
        for path in self._profile_files(scope):
            try:
                raw = json.loads(path.read_text(encoding='utf-8'))
            except (OSError, UnicodeDecodeError, json.JSONDecodeError) as e:
                logger.warning("⚠️  Skipping unreadable profile file %s: %s", path, e)
                continue
            if not isinstance(raw, dict):
                logger.warning("⚠️  Skipping profile file %s: expected an object", path)
                continue
            for index_number, entry in raw.items():
                if isinstance(entry, str):
                    entry = {'name': entry}
                if not isinstance(entry, dict):
                    continue
                profiles[index_number] = StudentProfile(
                    index_number=index_number,
                    name=entry.get('name'),
                    photo_url=self._photo_url(path, entry.get('photoUrl')),
                )
        logger.debug("Loaded %d student profiles for scope %s", len(profiles), scope)
        return profiles

    def profiles(self, scope: Scope = GLOBAL_SCOPE) -> Dict[str, StudentProfile]:
        if scope not in self._profiles:
            self._profiles[scope] = self._load(scope)
        return self._profiles[scope]

    def lookup(self, index_number: str, scope: Scope = GLOBAL_SCOPE) -> Optional[StudentProfile]:
        return self.profiles(scope).get(index_number)

    def clear(self) -> None:
        self._profiles.clear()

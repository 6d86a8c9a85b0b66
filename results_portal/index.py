"""
FastAPI Results Portal - API Entry Point
"""

import logging
import math
from pathlib import Path
from typing import Optional

from fastapi import Depends, FastAPI, File, Form, HTTPException, Query, Request, UploadFile
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from results_portal.aggregator import TranscriptAggregator
from results_portal.grade_parser import (
    DecodeError,
    ResultSheetParser,
    extract_module_code,
    extract_module_name,
    extract_period,
)
from results_portal.models import Scope
from results_portal.settings import settings
from results_portal.statistics import generate_statistics
from results_portal.store import JsonTreeRepository, ModuleRepository, ProfileCache, normalize_semester

logging.basicConfig(
    level=settings.LOG_LEVEL,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)

app = FastAPI(
    title=settings.APP_TITLE,
    description=settings.APP_DESCRIPTION,
    version=settings.APP_VERSION,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGIN_LIST,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.state.profiles = ProfileCache(settings.PROFILES_DIR)


@app.exception_handler(Exception)
async def unhandled_exception_handler(request: Request, exc: Exception):
    logger.exception("❌ Unhandled error on %s", request.url.path)
    return JSONResponse(
        status_code=500,
        content={"success": False, "error": str(exc)},
    )


# ─── Dependencies ────────────────────────────────────────────────────────────

def get_repository() -> ModuleRepository:
    return JsonTreeRepository(settings.RECORDS_DIR)


def get_profiles(request: Request) -> ProfileCache:
    return request.app.state.profiles


def get_aggregator(
    repository: ModuleRepository = Depends(get_repository),
    profiles: ProfileCache = Depends(get_profiles),
) -> TranscriptAggregator:
    return TranscriptAggregator(repository, profiles)


def get_scope(
    batch: Optional[str] = Query(None),
    degree: Optional[str] = Query(None),
) -> Scope:
    for value in (batch, degree):
        if value and ('/' in value or '\\' in value or value.strip() == '..'):
            raise HTTPException(status_code=400, detail="batch and degree must be single directory names")
    return Scope(cohort=batch or None, program=degree or None)


# ─── Routes ──────────────────────────────────────────────────────────────────

@app.get("/")
async def root():
    """Root endpoint"""
    return {"message": "Results Portal API", "version": settings.APP_VERSION, "status": "active"}


@app.get("/health")
async def health_check():
    """Health check endpoint"""
    return {"status": "ok", "service": "results-portal", "version": settings.APP_VERSION}


@app.post("/parse")
async def parse_pdf(
    file: UploadFile = File(...),
    credits: float = Form(...),
    moduleCode: Optional[str] = Form(None),
    moduleName: Optional[str] = Form(None),
    year: Optional[str] = Form(None),
    semester: Optional[str] = Form(None),
    pdfPath: Optional[str] = Form(None),
):
    """
    Parse a result-sheet PDF into a module record document.

    Accepts: multipart/form-data with a PDF file and the module's credits.
    pdfPath is the sheet's location in the scraped tree, e.g.
    "Year 1/Semester 2/IN1311_Digital System Design.pdf"; year and semester
    are read from it when not given.
    Returns: the module document (not persisted) and the number of grades found
    """
    if not file.filename or not file.filename.lower().endswith('.pdf'):
        raise HTTPException(status_code=400, detail="File must be a PDF")

    if not math.isfinite(credits) or credits < 0:
        raise HTTPException(status_code=400, detail="Credits must be a finite, non-negative number")

    contents = await file.read()
    if len(contents) > settings.MAX_UPLOAD_MB * 1024 * 1024:
        raise HTTPException(
            status_code=400,
            detail=f"File size must be less than {settings.MAX_UPLOAD_MB}MB",
        )

    filename = Path(file.filename).name
    parser = ResultSheetParser(contents, name=filename)
    try:
        parser.parse()
    except DecodeError as e:
        logger.error("❌ Could not decode %s: %s", filename, e)
        raise HTTPException(status_code=422, detail=f"Parsing failed: {e}")

    path_year, path_semester = extract_period(pdfPath) if pdfPath else ('Unknown', 'Unknown')
    document = parser.to_document(
        module_code=moduleCode or extract_module_code(filename),
        module_name=moduleName or extract_module_name(filename),
        credits=credits,
        year=year or path_year,
        semester=normalize_semester(semester) if semester else path_semester,
    )

    return {
        "success": True,
        "recordCount": len(document["students"]),
        "sourceFile": filename,
        "module": document,
    }


@app.get("/students")
async def list_students(
    scope: Scope = Depends(get_scope),
    aggregator: TranscriptAggregator = Depends(get_aggregator),
):
    """All students in scope ordered by CGPA, best first."""
    logger.info("👥 Fetching students... (scope: %s)", scope.to_dict() or 'global')
    students = aggregator.population(scope)
    return {
        "success": True,
        "count": len(students),
        "students": students,
        "context": scope.to_dict(),
    }


@app.get("/students/{index_number}")
async def student_details(
    index_number: str,
    scope: Scope = Depends(get_scope),
    aggregator: TranscriptAggregator = Depends(get_aggregator),
):
    """Transcript, semester breakdown and rank of one student."""
    student = aggregator.detail(index_number, scope)
    if student is None:
        raise HTTPException(status_code=404, detail="Student not found")
    return {"success": True, "student": student}


@app.get("/statistics")
async def statistics(
    scope: Scope = Depends(get_scope),
    aggregator: TranscriptAggregator = Depends(get_aggregator),
    profiles: ProfileCache = Depends(get_profiles),
    top: int = Query(10, ge=1, le=100),
):
    """CGPA summary, top students and grade distribution for a scope."""
    return {
        "success": True,
        "context": scope.to_dict(),
        "statistics": generate_statistics(
            aggregator.transcripts(scope), top_n=top, profiles=profiles.profiles(scope)
        ),
    }


@app.post("/profiles/clear")
async def clear_profiles(profiles: ProfileCache = Depends(get_profiles)):
    """Drop cached student profiles so the next request re-reads them."""
    profiles.clear()
    return {"success": True}

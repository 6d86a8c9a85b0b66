import io
import json
from pathlib import Path

import pytest
from reportlab.pdfgen import canvas  # type: ignore


def _make_pdf(lines) -> bytes:
    buf = io.BytesIO()
    c = canvas.Canvas(buf)
    c.setFont("Helvetica", 12)
    y = 720
    for line in lines:
        c.drawString(72, y, line)
        y -= 24
    c.showPage()
    c.save()
    return buf.getvalue()


@pytest.fixture
def make_pdf():
    return _make_pdf


@pytest.fixture
def module_documents():
    return [
        {
            "moduleCode": "IN1311",
            "moduleName": "Digital System Design",
            "credits": 3,
            "year": "Year 1",
            "semester": "1",
            "students": [
                {"indexNumber": "214115C", "grade": "A-"},
                {"indexNumber": "214001A", "grade": "A"},
                {"indexNumber": "214002B", "grade": "C"},
            ],
        },
        {
            "moduleCode": "IN1202",
            "moduleName": "Fundamentals of Programming",
            "credits": 2,
            "year": "Year 1",
            "semester": "2",
            "students": [
                {"indexNumber": "214115C", "grade": "B"},
                {"indexNumber": "214001A", "grade": "A+"},
            ],
        },
    ]


def write_json(path: Path, data) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(data), encoding="utf-8")
    return path


@pytest.fixture
def records_tree(tmp_path, module_documents):
    """output/<batch>/<degree>/Year N/Semester N/*.pdf.json layout."""
    root = tmp_path / "output"
    write_json(root / "batch 21" / "IT" / "Year 1" / "Semester 1" / "IN1311_Digital System Design.pdf.json",
               module_documents[0])
    write_json(root / "batch 21" / "IT" / "Year 1" / "Semester 2" / "IN1202_Programming.pdf.json",
               module_documents[1])
    write_json(root / "batch 22" / "AI" / "Year 1" / "Semester 1" / "IN1311_Digital System Design.pdf.json",
               {**module_documents[0], "students": [{"indexNumber": "224500K", "grade": "B+"}]})
    return root


@pytest.fixture
def json_writer():
    return write_json

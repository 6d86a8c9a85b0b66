import pytest
from fastapi.testclient import TestClient

from results_portal.index import app, get_profiles, get_repository
from results_portal.store import InMemoryModuleRepository, ProfileCache


@pytest.fixture
def client(module_documents, tmp_path, json_writer):
    documents = [
        {**module_documents[0], "cohort": "batch 21", "program": "IT"},
        {**module_documents[1], "cohort": "batch 21", "program": "IT"},
        {"moduleCode": "IN1311", "credits": 3, "year": "Year 1", "semester": "1",
         "cohort": "batch 22", "program": "AI",
         "students": [{"indexNumber": "224500K", "grade": "B+"}]},
    ]
    json_writer(tmp_path / "batch 21" / "IT" / "student-profiles.json",
                {"214115C": {"name": "Nimal Perera"}})
    profiles = ProfileCache(tmp_path)

    app.dependency_overrides[get_repository] = lambda: InMemoryModuleRepository(documents)
    app.dependency_overrides[get_profiles] = lambda: profiles
    yield TestClient(app)
    app.dependency_overrides.clear()


def test_root_and_health(client):
    assert client.get("/").json()["status"] == "active"
    assert client.get("/health").json()["status"] == "ok"


def test_list_students_global(client):
    body = client.get("/students").json()
    assert body["success"] is True
    assert body["count"] == 4
    assert body["context"] is None
    assert [s["indexNumber"] for s in body["students"]] == ["214001A", "214115C", "224500K", "214002B"]


def test_list_students_scoped(client):
    body = client.get("/students", params={"batch": "batch 21", "degree": "IT"}).json()
    assert body["count"] == 3
    assert body["context"] == {"batch": "batch 21", "degree": "IT"}
    assert body["students"][1]["name"] == "Nimal Perera"


def test_student_details(client):
    response = client.get("/students/214115C", params={"batch": "batch 21", "degree": "IT"})
    assert response.status_code == 200
    student = response.json()["student"]
    assert student["cgpa"] == 3.42
    assert student["totalCredits"] == 5
    assert student["rank"] == 2
    assert student["name"] == "Nimal Perera"
    assert len(student["semesters"]) == 2


def test_student_rank_uses_global_population_by_default(client):
    student = client.get("/students/214002B").json()["student"]
    assert student["rank"] == 4


def test_unknown_student_is_404(client):
    response = client.get("/students/999999Z")
    assert response.status_code == 404
    assert response.json()["detail"] == "Student not found"


def test_statistics(client):
    body = client.get("/statistics", params={"batch": "batch 22", "top": 1}).json()
    assert body["statistics"]["totalStudents"] == 1
    assert body["statistics"]["topStudents"][0]["indexNumber"] == "224500K"
    assert body["statistics"]["gradeDistribution"] == {"B+": 1}


def test_parse_pdf(client, make_pdf):
    pdf = make_pdf(["Index Grade", "214115CA-", "214001AB+"])
    response = client.post(
        "/parse",
        files={"file": ("IN1311_Digital System Design.pdf", pdf, "application/pdf")},
        data={"credits": "3", "year": "Year 1", "semester": "Semester 1"},
    )
    assert response.status_code == 200
    body = response.json()
    assert body["recordCount"] == 2
    assert body["module"] == {
        "moduleCode": "IN1311",
        "moduleName": "Digital System Design",
        "credits": 3.0,
        "year": "Year 1",
        "semester": "1",
        "students": [
            {"indexNumber": "214115C", "grade": "A-"},
            {"indexNumber": "214001A", "grade": "B+"},
        ],
    }


def test_parse_rejects_non_pdf(client):
    response = client.post(
        "/parse", files={"file": ("grades.txt", b"214115CA", "text/plain")}, data={"credits": "3"}
    )
    assert response.status_code == 400


def test_parse_rejects_negative_credits(client, make_pdf):
    response = client.post(
        "/parse", files={"file": ("sheet.pdf", make_pdf([]), "application/pdf")}, data={"credits": "-1"}
    )
    assert response.status_code == 400


def test_parse_requires_credits(client, make_pdf):
    response = client.post("/parse", files={"file": ("sheet.pdf", make_pdf([]), "application/pdf")})
    assert response.status_code == 422


def test_parse_corrupt_pdf_is_reported(client):
    response = client.post(
        "/parse", files={"file": ("sheet.pdf", b"not a pdf at all", "application/pdf")}, data={"credits": "2"}
    )
    assert response.status_code == 422
    assert response.json()["detail"].startswith("Parsing failed")


def test_clear_profiles(client, tmp_path, json_writer):
    client.get("/students", params={"batch": "batch 21", "degree": "IT"})
    json_writer(tmp_path / "batch 21" / "IT" / "student-profiles.json", {"214115C": {"name": "Renamed"}})

    scoped = {"batch": "batch 21", "degree": "IT"}
    assert client.get("/students/214115C", params=scoped).json()["student"]["name"] == "Nimal Perera"
    assert client.post("/profiles/clear").json() == {"success": True}
    assert client.get("/students/214115C", params=scoped).json()["student"]["name"] == "Renamed"


def test_statistics_top_students_include_names(client):
    top = client.get("/statistics", params={"top": 2}).json()["statistics"]["topStudents"]
    assert [(s["indexNumber"], s["name"]) for s in top] == [("214001A", None), ("214115C", "Nimal Perera")]


@pytest.mark.parametrize("params", [
    {"batch": "../secret"},
    {"batch": "..", "degree": "IT"},
    {"batch": "batch 21", "degree": "IT/../../secret"},
    {"degree": "..\\secret"},
])
def test_scope_must_be_plain_directory_names(client, params):
    response = client.get("/students", params=params)
    assert response.status_code == 400


def test_parse_reads_period_from_pdf_path(client, make_pdf):
    response = client.post(
        "/parse",
        files={"file": ("IN1202_Programming.pdf", make_pdf(["214115CB"]), "application/pdf")},
        data={"credits": "2", "pdfPath": "Year 1/Semester 2/IN1202_Programming.pdf"},
    )
    module = response.json()["module"]
    assert (module["year"], module["semester"]) == ("Year 1", "2")


def test_parse_form_fields_override_pdf_path(client, make_pdf):
    response = client.post(
        "/parse",
        files={"file": ("IN1202_Programming.pdf", make_pdf(["214115CB"]), "application/pdf")},
        data={"credits": "2", "year": "Year 2", "pdfPath": "Year 1/Semester 2/IN1202_Programming.pdf"},
    )
    module = response.json()["module"]
    assert (module["year"], module["semester"]) == ("Year 2", "2")


@pytest.mark.parametrize("credits", ["inf", "nan"])
def test_parse_rejects_non_finite_credits(client, make_pdf, credits):
    response = client.post(
        "/parse", files={"file": ("sheet.pdf", make_pdf([]), "application/pdf")}, data={"credits": credits}
    )
    assert response.status_code == 400

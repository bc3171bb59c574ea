"""
End-to-end tests for the /api/candidates endpoints through a TestClient.
"""

import json

from fastapi.testclient import TestClient

from ats_intake.core.config import settings
from ats_intake.main import app
from ats_intake.storage.local_files import LocalFileStorage, get_file_storage

PDF_BYTES = b"%PDF-1.4 minimal resume"
MB = 1024 * 1024


def _post_candidate(client, payload, files=None):
    data = {"candidateData": payload if isinstance(payload, str) else json.dumps(payload)}
    return client.post("/api/candidates", data=data, files=files)


def _pdf(name="resume.pdf", content=PDF_BYTES, mime="application/pdf"):
    return ("documents", (name, content, mime))


class FailingSecondStageStorage(LocalFileStorage):
    """Stages the first upload, then fails as if the client had disconnected."""

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.calls = 0

    async def stage(self, upload):
        self.calls += 1
        if self.calls == 2:
            raise RuntimeError("client disconnected")
        return await super().stage(upload)


class TestCreateCandidate:

    def test_creates_candidate_with_lowercased_email(self, client, make_payload):
        response = _post_candidate(client, make_payload(email="JOHN@EXAMPLE.COM"))

        assert response.status_code == 201
        body = response.json()
        assert body["success"] is True
        assert body["data"]["email"] == "john@example.com"
        assert body["data"]["firstName"] == "John"
        assert body["data"]["educations"] == []
        assert body["data"]["documents"] == []

    def test_nested_history_is_returned_in_camel_case(self, client, make_payload):
        payload = make_payload(
            educations=[{
                "institution": "Harvard University", "degree": "Bachelor", "fieldOfStudy": "CS",
                "startDate": "2015-09-01", "endDate": "2019-06-01", "current": False,
            }],
            experiences=[{
                "company": "Google", "position": "Engineer",
                "startDate": "2019-07-01", "endDate": "2020-01-01", "current": True,
            }],
        )

        body = _post_candidate(client, payload).json()

        education = body["data"]["educations"][0]
        assert education["fieldOfStudy"] == "CS"
        assert education["endDate"] == "2019-06-01"
        experience = body["data"]["experiences"][0]
        assert experience["current"] is True
        assert experience["endDate"] is None

    def test_missing_required_fields(self, client):
        response = _post_candidate(client, {})

        assert response.status_code == 400
        body = response.json()
        assert body["success"] is False
        assert body["error"] == "Validation failed"
        assert [e["field"] for e in body["errors"]] == ["firstName", "lastName", "email", "phone"]

    def test_missing_candidate_data_field(self, client):
        response = client.post("/api/candidates", data={})
        assert response.status_code == 400
        assert response.json()["error"] == "Validation failed"

    def test_invalid_json(self, client):
        response = _post_candidate(client, "{not json")
        assert response.status_code == 400
        assert response.json()["errors"][0]["field"] == "candidateData"

    def test_duplicate_email(self, client, make_payload):
        assert _post_candidate(client, make_payload()).status_code == 201

        response = _post_candidate(client, make_payload(email="John@Example.com", firstName="Johnny"))

        assert response.status_code == 409
        assert "already exists" in response.json()["error"]

    def test_empty_linkedin_is_accepted(self, client, make_payload):
        response = _post_candidate(client, make_payload(linkedIn=""))
        assert response.status_code == 201
        assert response.json()["data"]["linkedIn"] is None

    def test_malformed_linkedin(self, client, make_payload):
        response = _post_candidate(client, make_payload(linkedIn="not-a-url"))
        assert response.status_code == 400
        assert [e["field"] for e in response.json()["errors"]] == ["linkedIn"]

    def test_end_date_must_follow_start_date(self, client, make_payload):
        payload = make_payload(experiences=[{
            "company": "Google", "position": "Engineer",
            "startDate": "2020-01-01", "endDate": "2020-01-01", "current": False,
        }])
        response = _post_candidate(client, payload)
        assert response.status_code == 400
        assert response.json()["errors"][0]["field"] == "experiences[0].endDate"


class TestUploads:

    def test_valid_pdf_is_stored_under_generated_name(self, client, make_payload, file_storage):
        response = _post_candidate(client, make_payload(), files=[_pdf("My CV.pdf")])

        assert response.status_code == 201
        document = response.json()["data"]["documents"][0]
        assert document["originalName"] == "My CV.pdf"
        assert document["fileType"] == "application/pdf"
        assert document["fileSize"] == len(PDF_BYTES)
        assert document["fileName"].startswith("resume-")
        assert document["fileName"].endswith(".pdf")
        assert [p.name for p in file_storage.list_uploaded()] == [document["fileName"]]
        assert file_storage.list_staged() == []

    def test_oversized_file_is_rejected_and_removed(self, client, make_payload, file_storage):
        response = _post_candidate(client, make_payload(), files=[_pdf(content=b"0" * (6 * MB))])

        assert response.status_code == 400
        assert response.json()["errors"][0]["field"] == "documents[0]"
        assert file_storage.list_staged() == []
        assert file_storage.list_uploaded() == []

    def test_wrong_file_type(self, client, make_payload, file_storage):
        response = _post_candidate(client, make_payload(), files=[_pdf("notes.txt", b"hello", "text/plain")])

        assert response.status_code == 400
        assert "Invalid file type" in response.json()["errors"][0]["message"]
        assert file_storage.list_staged() == []

    def test_too_many_files(self, client, make_payload, file_storage):
        files = [_pdf(f"cv{i}.pdf") for i in range(4)]
        response = _post_candidate(client, make_payload(), files=files)

        assert response.status_code == 400
        assert response.json()["errors"][0]["field"] == "documents"
        assert file_storage.list_staged() == []

    def test_failed_submission_keeps_no_files(self, client, make_payload, file_storage):
        response = _post_candidate(client, make_payload(email="bad"), files=[_pdf()])
        assert response.status_code == 400
        assert file_storage.list_staged() == []
        assert file_storage.list_uploaded() == []

    def test_staging_failure_removes_files_already_staged(self, client, make_payload, tmp_path):
        storage = FailingSecondStageStorage(tmp_path / "flaky-staging", tmp_path / "flaky-uploads")
        app.dependency_overrides[get_file_storage] = lambda: storage

        response = _post_candidate(client, make_payload(), files=[_pdf("a.pdf"), _pdf("b.pdf")])

        assert response.status_code == 500
        assert response.json()["error"] == "Failed to save uploaded files"
        assert storage.calls == 2
        assert storage.list_staged() == []
        assert storage.list_uploaded() == []

    def test_download_returns_original_name(self, client, make_payload):
        created = _post_candidate(client, make_payload(), files=[_pdf("cv.pdf")]).json()["data"]
        document = created["documents"][0]

        response = client.get(f"/api/candidates/{created['id']}/documents/{document['id']}/download")

        assert response.status_code == 200
        assert response.content == PDF_BYTES
        assert "cv.pdf" in response.headers["content-disposition"]

    def test_download_unknown_document(self, client, make_payload):
        created = _post_candidate(client, make_payload()).json()["data"]
        response = client.get(f"/api/candidates/{created['id']}/documents/999/download")
        assert response.status_code == 404
        assert response.json()["error"] == "Document not found"

    def test_download_file_missing_on_disk(self, client, make_payload, file_storage):
        created = _post_candidate(client, make_payload(), files=[_pdf()]).json()["data"]
        document = created["documents"][0]
        file_storage.discard(file_storage.list_uploaded())

        response = client.get(f"/api/candidates/{created['id']}/documents/{document['id']}/download")

        assert response.status_code == 404
        assert response.json()["error"] == "Document file not found"


class TestReadCandidates:

    def test_get_by_id(self, client, make_payload):
        created = _post_candidate(client, make_payload()).json()["data"]

        response = client.get(f"/api/candidates/{created['id']}")

        assert response.status_code == 200
        assert response.json()["data"]["email"] == "john@example.com"

    def test_get_missing_candidate(self, client):
        response = client.get("/api/candidates/999")
        assert response.status_code == 404
        assert response.json() == {"success": False, "error": "Candidate not found"}

    def test_pagination(self, client, add_candidate):
        for _ in range(5):
            add_candidate()

        response = client.get("/api/candidates", params={"page": 2, "limit": 2})

        assert response.status_code == 200
        data = response.json()["data"]
        assert len(data["candidates"]) == 2
        assert data["pagination"] == {"total": 5, "page": 2, "limit": 2, "totalPages": 3}
        # Newest first.
        assert [c["email"] for c in data["candidates"]] == ["seed3@example.com", "seed2@example.com"]

    def test_empty_list(self, client):
        data = client.get("/api/candidates").json()["data"]
        assert data["candidates"] == []
        assert data["pagination"]["totalPages"] == 0

    def test_page_must_be_positive(self, client):
        response = client.get("/api/candidates", params={"page": 0})
        assert response.status_code == 400
        assert response.json()["error"] == "Invalid request parameters"

    def test_limit_is_capped(self, client):
        assert client.get("/api/candidates", params={"limit": 101}).status_code == 400


class TestAutocompleteEndpoints:

    def test_query_is_required(self, client):
        response = client.get("/api/candidates/autocomplete/institutions")
        assert response.status_code == 400
        assert response.json()["error"] == "Query parameter is required"

    def test_query_too_short(self, client):
        response = client.get("/api/candidates/autocomplete/companies", params={"query": "a"})
        assert response.status_code == 400
        assert response.json()["error"] == "Query must be at least 2 characters"

    def test_matches(self, client, add_candidate):
        add_candidate(institutions=["Harvard University", "Stanford University"], companies=["Google"])

        institutions = client.get("/api/candidates/autocomplete/institutions", params={"query": "harv"})
        companies = client.get("/api/candidates/autocomplete/companies", params={"query": "xyz"})

        assert institutions.json() == {"success": True, "data": ["Harvard University"]}
        assert companies.json() == {"success": True, "data": []}


class TestServiceEndpoints:

    def test_unknown_route(self, client):
        response = client.get("/api/unknown")
        assert response.status_code == 404
        assert response.json() == {"success": False, "error": "Route not found"}

    def test_health(self, client):
        body = client.get("/health").json()
        assert body["status"] == "healthy"
        assert body["database"] == "connected"

    def test_startup_creates_upload_directories(self, monkeypatch, tmp_path):
        monkeypatch.setattr(settings, "UPLOAD_DIR", str(tmp_path / "uploads"))
        monkeypatch.setattr(settings, "STAGING_DIR", str(tmp_path / "uploads" / ".staging"))

        with TestClient(app):
            pass

        assert (tmp_path / "uploads" / ".staging").is_dir()

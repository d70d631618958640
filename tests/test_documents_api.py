from fastapi.testclient import TestClient

from conftest import pdf, sample_data


def test_upload_rejects_non_pdf_mime(app_client: TestClient):
	resp = app_client.post("/api/upload", files={"file": ("a.txt", b"hi", "text/plain")})
	assert resp.status_code == 400
	body = resp.json()
	assert body["success"] is False
	assert body["message"] == "Only PDF files are allowed"


def test_upload_rejects_missing_file(app_client: TestClient):
	resp = app_client.post("/api/upload")
	assert resp.status_code == 400
	assert resp.json()["message"] == "No file provided"


def test_upload_rejects_wrong_extension(app_client: TestClient):
	resp = app_client.post("/api/upload", files={"file": ("a.docx", b"%PDF", "application/pdf")})
	assert resp.status_code == 400
	assert resp.json()["message"] == "File must have .pdf extension"


def test_upload_too_large(app_client: TestClient, monkeypatch):
	monkeypatch.setenv("MAX_UPLOAD_MB", "0")
	resp = app_client.post("/api/upload", files={"file": ("a.pdf", b"x" * 1024, "application/pdf")})
	assert resp.status_code == 400
	assert "File size exceeds" in resp.json()["message"]


def test_upload_success_returns_id(app_client: TestClient):
	resp = app_client.post("/api/upload", files={"file": ("a.pdf", b"%PDF-1.4", "application/pdf")})
	assert resp.status_code == 200
	data = resp.json()["data"]
	assert data["filename"] == "a.pdf"
	assert data["size"] == 8
	assert data["documentId"]


def test_extract_requires_ids(app_client: TestClient):
	resp = app_client.post("/api/extract", json={"filename": "a.pdf"})
	assert resp.status_code == 400
	assert resp.json()["message"] == "Document ID is required"
	resp = app_client.post("/api/extract", json={"documentId": "x"})
	assert resp.status_code == 400
	assert resp.json()["message"] == "Filename is required"


def test_extract_success_and_failure(app_client: TestClient):
	resp = app_client.post("/api/extract", json={"documentId": "d1", "filename": "a.pdf"})
	assert resp.status_code == 200
	data = resp.json()["data"]
	assert data["documentId"] == "d1"
	assert data["qualityScore"] == 88
	assert data["extractedData"]["name"] == "Anna"
	assert data["processedAt"]

	resp = app_client.post("/api/extract", json={"documentId": "d1", "filename": "broken.pdf"})
	assert resp.status_code == 500
	assert resp.json()["message"] == "Extraction failed: Please upload again"


def test_intake_processes_each_file_independently(app_client: TestClient):
	resp = app_client.post(
		"/documents",
		files=[pdf("a.pdf"), pdf("broken.pdf"), pdf("notes.txt", content_type="text/plain")],
	)
	assert resp.status_code == 202
	queued = resp.json()["data"]
	assert [d["status"] for d in queued] == ["queued", "queued", "queued"]

	# Background tasks have finished once the test client returns
	listing = app_client.get("/documents").json()["data"]
	by_name = {d["filename"]: d for d in listing["items"]}
	assert by_name["a.pdf"]["status"] == "awaiting_review"
	assert by_name["a.pdf"]["qualityScore"] == 88
	assert by_name["broken.pdf"]["status"] == "failed"
	assert by_name["broken.pdf"]["error"] == "Extraction failed: Please upload again"
	assert by_name["notes.txt"]["error"] == "Only PDF files are allowed"


def test_intake_with_datasets(app_client: TestClient):
	ds = app_client.post("/datasets", json={"name": "Munich"}).json()["data"]["id"]
	resp = app_client.post("/documents", files=[pdf("a.pdf")], data={"dataset_ids": [ds, "ghost"]})
	doc = resp.json()["data"][0]
	assert doc["datasetIds"] == [ds]
	dataset = app_client.get(f"/datasets/{ds}").json()["data"]
	assert dataset["documentIds"] == [doc["id"]]


def test_list_filters(app_client: TestClient):
	app_client.post("/documents", files=[pdf("a.pdf"), pdf("broken.pdf")])
	failed = app_client.get("/documents", params={"status": "failed"}).json()["data"]
	assert [d["filename"] for d in failed["items"]] == ["broken.pdf"]
	high = app_client.get("/documents", params={"quality": "high"}).json()["data"]
	# the failed document has no score and is never hidden by the quality filter
	assert high["total"] == 2
	low = app_client.get("/documents", params={"quality": "low"}).json()["data"]
	assert [d["filename"] for d in low["items"]] == ["broken.pdf"]
	assert app_client.get("/documents", params={"status": "done"}).status_code == 422


def test_review_flow(app_client: TestClient):
	doc_id = app_client.post("/documents", files=[pdf("a.pdf")]).json()["data"][0]["id"]

	resp = app_client.put(f"/documents/{doc_id}/unsaved", json={"hasUnsavedChanges": True})
	assert resp.json()["data"]["hasUnsavedChanges"] is True

	edited = sample_data(name="Julia").model_dump(mode="json")
	resp = app_client.put(f"/documents/{doc_id}/review", json={"extractedData": edited})
	assert resp.status_code == 200
	doc = resp.json()["data"]
	assert doc["status"] == "reviewed"
	assert doc["isReviewed"] is True
	assert doc["hasUnsavedChanges"] is False
	assert doc["extractedData"]["name"] == "Julia"


def test_review_unknown_document_404(app_client: TestClient):
	edited = sample_data().model_dump(mode="json")
	resp = app_client.put("/documents/ghost/review", json={"extractedData": edited})
	assert resp.status_code == 404


def test_delete_document_is_idempotent(app_client: TestClient):
	doc_id = app_client.post("/documents", files=[pdf("a.pdf")]).json()["data"][0]["id"]
	first = app_client.delete(f"/documents/{doc_id}").json()["data"]
	second = app_client.delete(f"/documents/{doc_id}").json()["data"]
	assert first["deleted"] is True
	assert second["deleted"] is False
	assert app_client.get(f"/documents/{doc_id}").status_code == 404

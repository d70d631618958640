import os
import shutil
import tempfile
import importlib
from datetime import datetime, timezone
from pathlib import Path

import pytest
from fastapi.testclient import TestClient
import sys

# Ensure project root is on sys.path
PROJECT_ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))
if PROJECT_ROOT not in sys.path:
	sys.path.insert(0, PROJECT_ROOT)

from models.document import ExtractedData
from store.document_store import DocumentStore
from store.persistence import SnapshotFile
from tasks.extraction import ExtractionError, ExtractionResult, Extractor


def sample_data(**overrides) -> ExtractedData:
	fields = {
		"name": "Anna",
		"surname": "Schmidt",
		"address_street": "Hauptstraße",
		"address_house_number": "12",
		"address_zip_code": "80331",
		"address_city": "München",
		"warm_rent": 1450,
		"cold_rent": 1200,
		"rent_increase_type": "Indexmiete",
		"date": "2022-04-01",
		"is_active": True,
		"deposit": 3600,
		"confidence": {"name": 0.95, "surname": 0.91},
	}
	fields.update(overrides)
	return ExtractedData(**fields)


class FakeExtractor(Extractor):
	"""Deterministic extractor: fails for any filename containing 'broken'."""

	def __init__(self, quality_score: int = 88):
		self.quality_score = quality_score
		self.calls = []

	async def extract(self, document_id: str, filename: str) -> ExtractionResult:
		self.calls.append((document_id, filename))
		if "broken" in filename:
			raise ExtractionError("Extraction failed: Please upload again")
		return ExtractionResult(
			extracted_data=sample_data(),
			quality_score=self.quality_score,
			processed_at=datetime.now(timezone.utc),
		)


@pytest.fixture(scope="session")
def temp_dirs():
	base = tempfile.mkdtemp(prefix="lease_tests_")
	state_dir = os.path.join(base, "state")
	logs_dir = os.path.join(base, "logs")
	os.makedirs(state_dir, exist_ok=True)
	os.makedirs(logs_dir, exist_ok=True)
	yield {"base": base, "state": state_dir, "logs": logs_dir}
	shutil.rmtree(base, ignore_errors=True)


@pytest.fixture(scope="session")
def app_module(temp_dirs):
	# Set env before importing app
	os.environ["STATE_DIR"] = temp_dirs["state"]
	os.environ["LOG_DIR"] = temp_dirs["logs"]
	os.environ["MAX_UPLOAD_MB"] = "10"
	import main as main_module
	importlib.reload(main_module)
	return main_module


@pytest.fixture(scope="session")
def app_client(app_module):
	return TestClient(app_module.app)


@pytest.fixture
def store(tmp_path: Path) -> DocumentStore:
	return DocumentStore(SnapshotFile(tmp_path / "document-store.json"))


@pytest.fixture
def extractor() -> FakeExtractor:
	return FakeExtractor()


@pytest.fixture(autouse=True)
def fresh_app_state(request, tmp_path):
	# Only touch the app for tests that use the HTTP client
	if "app_client" not in request.fixturenames:
		yield
		return
	app = request.getfixturevalue("app_module").app
	app.state.store = DocumentStore(SnapshotFile(tmp_path / "api-store.json"))
	app.state.extractor = FakeExtractor()
	yield


def pdf(name: str = "lease.pdf", size: int = 2048, content_type: str = "application/pdf"):
	return ("files", (name, b"%PDF-1.4\n" + b"0" * size, content_type))

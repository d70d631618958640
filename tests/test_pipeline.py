import asyncio
import random
import threading

import pytest

from conftest import FakeExtractor
from tasks.extraction import ExtractionError, SimulatedExtractor, generate_lease_data
from tasks.pipeline import PROCESSING_FAILED_MESSAGE, ingest, process_document
from utils.uploads import UploadedFile


def upload(name: str, size: int = 1024, content_type: str = "application/pdf") -> UploadedFile:
	return UploadedFile(filename=name, content_type=content_type, size=size)


def test_three_files_two_succeed_one_fails(store, extractor):
	events = []
	store.subscribe(events.append)
	uploads = [(upload("a.pdf"), []), (upload("broken.pdf"), []), (upload("c.pdf"), [])]

	doc_ids = asyncio.run(ingest(store, extractor, uploads))

	assert events[:3] == ["document_registered"] * 3
	statuses = [store.get_document(doc_id).status for doc_id in doc_ids]
	assert statuses == ["awaiting_review", "failed", "awaiting_review"]

	failed = store.get_document(doc_ids[1])
	assert failed.error
	assert failed.extracted_data is None
	for doc_id in (doc_ids[0], doc_ids[2]):
		doc = store.get_document(doc_id)
		assert doc.extracted_data is not None
		assert doc.quality_score == 88
		assert doc.error is None


def test_registered_documents_start_queued(store, extractor):
	from tasks.pipeline import register_uploads

	jobs = register_uploads(store, [(upload("a.pdf"), []), (upload("b.pdf"), [])])
	assert [store.get_document(doc_id).status for doc_id, _ in jobs] == ["queued", "queued"]


def test_validation_failure_skips_extraction(store, extractor):
	ds = store.create_dataset("Munich")
	uploads = [
		(upload("notes.txt", content_type="text/plain"), [ds]),
		(upload("huge.pdf", size=11 * 1024 * 1024), [ds]),
		(upload("scan.png", content_type="application/pdf"), [ds]),
	]
	doc_ids = asyncio.run(ingest(store, extractor, uploads))

	errors = [store.get_document(doc_id).error for doc_id in doc_ids]
	assert errors == [
		"Only PDF files are allowed",
		"File size exceeds maximum allowed size of 10MB",
		"File must have .pdf extension",
	]
	assert extractor.calls == []
	assert store.get_dataset(ds).document_ids == doc_ids


def test_unexpected_error_marks_document_failed(store):
	class Crashing(FakeExtractor):
		async def extract(self, document_id, filename):
			raise RuntimeError("socket closed")

	doc_id = store.register_document("a.pdf")
	ok = asyncio.run(process_document(store, Crashing(), doc_id, upload("a.pdf")))
	assert ok is False
	assert store.get_document(doc_id).error == PROCESSING_FAILED_MESSAGE


def test_document_deleted_mid_pipeline_is_ignored(store):
	class DeletesFirst(FakeExtractor):
		async def extract(self, document_id, filename):
			store.delete_document(doc_id)
			return await super().extract(document_id, filename)

	doc_id = store.register_document("a.pdf")
	asyncio.run(process_document(store, DeletesFirst(), doc_id, upload("a.pdf")))
	assert store.get_document(doc_id) is None
	assert store.documents == []


def test_simulated_extractor_success_shape():
	extractor = SimulatedExtractor(failure_rate=0.0, min_delay=0, max_delay=0, rng=random.Random(7))
	result = asyncio.run(extractor.extract("doc-1", "lease.pdf"))
	data = result.extracted_data
	assert 70 <= result.quality_score <= 95
	assert 500 <= data.cold_rent <= 2000
	assert data.cold_rent + 100 <= data.warm_rent <= data.cold_rent + 400
	assert len(data.address_zip_code) == 5
	assert set(data.confidence) >= {"name", "surname", "warm_rent", "is_active"}
	assert all(0.65 <= value <= 0.98 for value in data.confidence.values())


def test_simulated_extractor_always_fails_at_rate_one():
	extractor = SimulatedExtractor(failure_rate=1.0, min_delay=0, max_delay=0)
	with pytest.raises(ExtractionError, match="Extraction failed: Please upload again"):
		asyncio.run(extractor.extract("doc-1", "lease.pdf"))


def test_simulated_extractor_rejects_bad_config():
	with pytest.raises(ValueError):
		SimulatedExtractor(failure_rate=1.5)
	with pytest.raises(ValueError):
		SimulatedExtractor(min_delay=2, max_delay=1)


def test_optional_fields_carry_confidence():
	rng = random.Random(42)
	for _ in range(50):
		data = generate_lease_data(rng)
		for field in ("deposit", "contract_term_months", "notice_period_months", "landlord_entity"):
			present = getattr(data, field) is not None
			assert present == (field in data.confidence)


def test_failed_snapshot_write_does_not_strand_document(tmp_path, extractor):
	from store.document_store import DocumentStore
	from store.persistence import SnapshotFile

	class FullDisk(SnapshotFile):
		def save(self, state):
			raise OSError("disk full")

	store = DocumentStore(FullDisk(tmp_path / "document-store.json"))
	doc_ids = asyncio.run(ingest(store, extractor, [(upload("broken.pdf"), []), (upload("a.pdf"), [])]))
	assert [store.get_document(doc_id).status for doc_id in doc_ids] == ["failed", "awaiting_review"]


def test_store_writes_leave_the_event_loop_thread(store, extractor):
	threads = []
	store.subscribe(lambda event: threads.append(threading.get_ident()))

	async def run():
		doc_id = store.register_document("a.pdf")
		threads.clear()
		await process_document(store, extractor, doc_id, upload("a.pdf"))
		return threading.get_ident()

	loop_thread = asyncio.run(run())
	assert len(threads) == 2
	assert loop_thread not in threads

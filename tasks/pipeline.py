"""
Upload pipeline: register -> processing -> validate -> extract -> attach.

Each file runs its steps strictly in order; different files run concurrently
and never share a failure. Store writes run in a worker thread so the
snapshot write never blocks the event loop.
"""
import asyncio
import logging
from typing import Iterable, List, Sequence, Tuple

from store.document_store import DocumentStore
from tasks.extraction import ExtractionError, Extractor
from utils.uploads import UploadValidationError, UploadedFile, validate_upload

logger = logging.getLogger("tasks.pipeline")

PROCESSING_FAILED_MESSAGE = "Processing failed"


async def process_document(store: DocumentStore, extractor: Extractor, document_id: str, upload: UploadedFile) -> bool:
	"""Run one already-registered document through validation and extraction."""
	try:
		logger.info("pipeline_started", extra={"doc_id": document_id, "file_name": upload.filename})
		await asyncio.to_thread(store.update_status, document_id, "processing")

		receipt = validate_upload(upload)
		result = await extractor.extract(receipt.document_id, receipt.filename)

		await asyncio.to_thread(store.attach_extracted_data, document_id, result.extracted_data, result.quality_score)
		logger.info("pipeline_completed", extra={"doc_id": document_id, "quality_score": result.quality_score})
		return True
	except (UploadValidationError, ExtractionError) as exc:
		logger.warning("pipeline_failed", extra={"doc_id": document_id, "error": str(exc)})
		await asyncio.to_thread(store.update_status, document_id, "failed", str(exc))
		return False
	except Exception:
		logger.error("pipeline_crashed", exc_info=True, extra={"doc_id": document_id})
		await asyncio.to_thread(store.update_status, document_id, "failed", PROCESSING_FAILED_MESSAGE)
		return False


async def process_documents(
	store: DocumentStore,
	extractor: Extractor,
	jobs: Sequence[Tuple[str, UploadedFile]],
) -> List[bool]:
	return list(await asyncio.gather(*(process_document(store, extractor, doc_id, upload) for doc_id, upload in jobs)))


def register_uploads(
	store: DocumentStore,
	uploads: Sequence[Tuple[UploadedFile, Iterable[str]]],
) -> List[Tuple[str, UploadedFile]]:
	"""Register every upload as a queued document before any processing starts."""
	jobs = []
	for upload, dataset_ids in uploads:
		document_id = store.register_document(upload.filename or "", dataset_ids)
		jobs.append((document_id, upload))
	return jobs


async def ingest(
	store: DocumentStore,
	extractor: Extractor,
	uploads: Sequence[Tuple[UploadedFile, Iterable[str]]],
) -> List[str]:
	"""Register and process a batch of uploads; returns the new document ids."""
	jobs = await asyncio.to_thread(register_uploads, store, uploads)
	await process_documents(store, extractor, jobs)
	return [doc_id for doc_id, _ in jobs]

from fastapi import APIRouter, BackgroundTasks, Depends, File, Form, HTTPException, Query, UploadFile, status
from fastapi.responses import Response
from typing import List, Literal, Optional
import asyncio
import logging

from models.document import DocumentStatus
from models.requests import SaveReviewRequest, UnsavedChangesRequest
from routers.intake import to_uploaded_file
from store.document_store import DocumentStore
from store.views import filter_documents
from tasks.extraction import Extractor
from tasks.pipeline import process_documents, register_uploads
from utils.dependencies import get_extractor, get_store
from utils.export import (
	CSV_CONTENT_TYPE,
	XLSX_CONTENT_TYPE,
	build_rows,
	content_disposition,
	export_filename,
	to_csv,
	to_xlsx,
)
from utils.response import api_response, dump

router = APIRouter(prefix="/documents", tags=["documents"])
logger = logging.getLogger("api.documents")


@router.post("")
async def upload_documents(
	background_tasks: BackgroundTasks,
	files: List[UploadFile] = File(...),
	dataset_ids: List[str] = Form([]),
	store: DocumentStore = Depends(get_store),
	extractor: Extractor = Depends(get_extractor),
):
	"""Register every file as queued, then validate and extract them in the background."""
	uploads = [(await to_uploaded_file(f), dataset_ids) for f in files]
	jobs = await asyncio.to_thread(register_uploads, store, uploads)
	background_tasks.add_task(process_documents, store, extractor, jobs)

	logger.info("upload_batch_accepted", extra={"count": len(jobs), "dataset_ids": dataset_ids})
	documents = [store.get_document(doc_id) for doc_id, _ in jobs]
	return api_response(
		data=dump([doc for doc in documents if doc is not None]),
		message="Files queued for extraction.",
		status_code=status.HTTP_202_ACCEPTED,
	)


@router.get("")
def list_documents(
	dataset_id: Optional[str] = Query(None, description="Only documents in this dataset"),
	use_active: bool = Query(True, description="Fall back to the active dataset when dataset_id is omitted"),
	status_filter: Optional[DocumentStatus] = Query(None, alias="status"),
	quality: Optional[Literal["high", "medium", "low"]] = Query(None),
	store: DocumentStore = Depends(get_store),
):
	if dataset_id is None and use_active:
		dataset_id = store.active_dataset_id
	if dataset_id is not None and store.get_dataset(dataset_id) is None:
		raise HTTPException(status_code=404, detail="Dataset not found")

	documents = filter_documents(store.view(dataset_id), status=status_filter, quality=quality)
	return api_response(
		data={"items": dump(documents), "total": len(documents), "datasetId": dataset_id},
		message="Documents fetched successfully.",
	)


@router.get("/export")
def export_documents(
	export_format: Literal["csv", "xlsx"] = Query("csv", alias="format"),
	dataset_id: Optional[str] = Query(None),
	store: DocumentStore = Depends(get_store),
):
	"""Download the current view (or the given dataset) as CSV or XLSX."""
	if dataset_id is None:
		dataset_id = store.active_dataset_id
	dataset = store.get_dataset(dataset_id) if dataset_id is not None else None
	if dataset_id is not None and dataset is None:
		raise HTTPException(status_code=404, detail="Dataset not found")

	rows = build_rows(store.view(dataset_id), store.datasets)
	if export_format == "xlsx":
		content, media_type = to_xlsx(rows), XLSX_CONTENT_TYPE
	else:
		content, media_type = to_csv(rows), CSV_CONTENT_TYPE

	filename = export_filename(dataset, export_format)
	logger.info("documents_exported", extra={"dataset_id": dataset_id, "format": export_format, "count": len(rows)})
	return Response(
		content=content,
		media_type=media_type,
		headers={"Content-Disposition": content_disposition(filename)},
	)


@router.get("/{document_id}")
def get_document(document_id: str, store: DocumentStore = Depends(get_store)):
	doc = store.get_document(document_id)
	if doc is None:
		raise HTTPException(status_code=404, detail="Document not found")
	return api_response(data=dump(doc), message="Document fetched successfully.")


@router.put("/{document_id}/review")
def save_review(document_id: str, body: SaveReviewRequest, store: DocumentStore = Depends(get_store)):
	if not store.save_review(document_id, body.extracted_data):
		raise HTTPException(status_code=404, detail="Document not found")
	return api_response(data=dump(store.get_document(document_id)), message="Review saved.")


@router.put("/{document_id}/unsaved")
def set_unsaved_changes(document_id: str, body: UnsavedChangesRequest, store: DocumentStore = Depends(get_store)):
	if not store.set_unsaved_changes(document_id, body.has_unsaved_changes):
		raise HTTPException(status_code=404, detail="Document not found")
	return api_response(data=dump(store.get_document(document_id)), message="Document updated.")


@router.delete("/{document_id}")
def delete_document(document_id: str, store: DocumentStore = Depends(get_store)):
	# Deleting an unknown id is not an error
	deleted = store.delete_document(document_id)
	return api_response(data={"id": document_id, "deleted": deleted}, message="Document deleted.")

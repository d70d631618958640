from fastapi import APIRouter, Depends, HTTPException, status
import logging

from models.requests import CreateDatasetRequest, DocumentIdsRequest, SelectDatasetRequest
from store.document_store import DocumentStore
from utils.dependencies import get_store
from utils.response import api_response, dump

router = APIRouter(prefix="/datasets", tags=["datasets"])
logger = logging.getLogger("api.datasets")


def _require_dataset(store: DocumentStore, dataset_id: str):
	dataset = store.get_dataset(dataset_id)
	if dataset is None:
		raise HTTPException(status_code=404, detail="Dataset not found")
	return dataset


@router.get("")
def list_datasets(store: DocumentStore = Depends(get_store)):
	return api_response(
		data={"items": dump(store.datasets), "activeDatasetId": store.active_dataset_id},
		message="Datasets fetched successfully.",
	)


@router.post("")
def create_dataset(body: CreateDatasetRequest, store: DocumentStore = Depends(get_store)):
	# DuplicateDatasetNameError is turned into a 409 by the exception handlers
	dataset_id = store.create_dataset(body.name, body.description, body.color, body.categories)
	return api_response(data=dump(store.get_dataset(dataset_id)), message="Dataset created.", status_code=status.HTTP_201_CREATED)


@router.put("/active")
def select_dataset(body: SelectDatasetRequest, store: DocumentStore = Depends(get_store)):
	if not store.select_dataset(body.dataset_id):
		raise HTTPException(status_code=404, detail="Dataset not found")
	return api_response(data={"activeDatasetId": store.active_dataset_id}, message="Active dataset updated.")


@router.get("/{dataset_id}")
def get_dataset(dataset_id: str, store: DocumentStore = Depends(get_store)):
	return api_response(data=dump(_require_dataset(store, dataset_id)), message="Dataset fetched successfully.")


@router.put("/{dataset_id}/documents/{document_id}")
def tag_document(dataset_id: str, document_id: str, store: DocumentStore = Depends(get_store)):
	if not store.tag_document(dataset_id, document_id):
		raise HTTPException(status_code=404, detail="Dataset or document not found")
	return api_response(data=dump(store.get_dataset(dataset_id)), message="Document added to dataset.")


@router.delete("/{dataset_id}/documents/{document_id}")
def untag_document(dataset_id: str, document_id: str, store: DocumentStore = Depends(get_store)):
	if not store.untag_document(dataset_id, document_id):
		raise HTTPException(status_code=404, detail="Dataset or document not found")
	return api_response(data=dump(store.get_dataset(dataset_id)), message="Document removed from dataset.")


@router.post("/{dataset_id}/documents")
def bulk_tag(dataset_id: str, body: DocumentIdsRequest, store: DocumentStore = Depends(get_store)):
	_require_dataset(store, dataset_id)
	added = store.bulk_tag(dataset_id, body.document_ids)
	return api_response(
		data={"added": added, "dataset": dump(store.get_dataset(dataset_id))},
		message=f"{len(added)} document(s) added to dataset.",
	)


@router.post("/{dataset_id}/duplicates")
def detect_duplicates(dataset_id: str, body: DocumentIdsRequest, store: DocumentStore = Depends(get_store)):
	"""Which candidates share a filename with a document already in the dataset."""
	_require_dataset(store, dataset_id)
	duplicates = store.detect_duplicates(dataset_id, body.document_ids)
	return api_response(data={"duplicates": duplicates}, message="Duplicate check completed.")

from fastapi import Request

from store.document_store import DocumentStore
from tasks.extraction import Extractor


def get_store(request: Request) -> DocumentStore:
	return request.app.state.store


def get_extractor(request: Request) -> Extractor:
	return request.app.state.extractor

"""
The document/dataset store.

``DocumentStore`` is the only place documents and datasets are created,
changed or removed. Every public mutator takes the store lock, applies the
whole change, writes the snapshot and then notifies subscribers, so a reader
never sees a half-applied update. A snapshot write that fails is logged and
the change stays applied. Reads hand out deep copies.

Not-found targets are not errors here: mutators return ``False`` and log a
warning, because an upload pipeline may still be writing to a document the
user has already deleted.
"""
import uuid
import logging
import threading
from datetime import datetime, timezone
from typing import Any, Callable, Dict, Iterable, List, Optional, Union

from models.document import DOCUMENT_STATUSES, Dataset, Document, ExtractedData, StoreState
from store import membership
from store.errors import DuplicateDatasetNameError
from store.persistence import SnapshotFile
from store.views import in_dataset

logger = logging.getLogger("store.documents")

DEFAULT_DATASET_NAME = "New Dataset"

Listener = Callable[[str], None]
DataLike = Union[ExtractedData, Dict[str, Any]]


def _utcnow() -> datetime:
	return datetime.now(timezone.utc)


def _coerce_data(data: DataLike) -> ExtractedData:
	if isinstance(data, ExtractedData):
		return data.model_copy(deep=True)
	return ExtractedData.model_validate(data)


def _check_score(quality_score: int) -> int:
	if isinstance(quality_score, bool) or quality_score != int(quality_score):
		raise ValueError(f"Quality score must be a whole number, got {quality_score}")
	score = int(quality_score)
	if not 0 <= score <= 100:
		raise ValueError(f"Quality score must be between 0 and 100, got {quality_score}")
	return score


class DocumentStore:
	def __init__(
		self,
		storage: Optional[SnapshotFile] = None,
		clock: Optional[Callable[[], datetime]] = None,
		id_factory: Optional[Callable[[], str]] = None,
	):
		self._lock = threading.RLock()
		self._documents: Dict[str, Document] = {}
		self._datasets: Dict[str, Dataset] = {}
		self._active_dataset_id: Optional[str] = None
		self._listeners: List[Listener] = []
		self._storage = storage
		self._clock = clock or _utcnow
		self._new_id = id_factory or (lambda: str(uuid.uuid4()))

		if storage is not None:
			state = storage.load()
			if state is not None:
				self._restore(state)

	# -- internals -----------------------------------------------------

	def _restore(self, state: StoreState) -> None:
		self._documents = {doc.id: doc for doc in state.documents}
		self._datasets = {ds.id: ds for ds in state.datasets}
		repaired, dropped = membership.reconcile(self._documents, self._datasets)
		active = state.active_dataset_id
		self._active_dataset_id = active if active in self._datasets else None
		logger.info(
			"store_rehydrated",
			extra={
				"documents": len(self._documents),
				"datasets": len(self._datasets),
				"edges_repaired": repaired,
				"edges_dropped": dropped,
			},
		)

	def _state(self) -> StoreState:
		return StoreState(
			documents=list(self._documents.values()),
			datasets=list(self._datasets.values()),
			active_dataset_id=self._active_dataset_id,
		)

	def _commit(self, event: str) -> None:
		# Caller holds the lock; the in-memory change is already applied
		if self._storage is not None:
			try:
				self._storage.save(self._state())
			except OSError:
				logger.error("snapshot_save_failed", exc_info=True, extra={"event": event})
		for listener in list(self._listeners):
			try:
				listener(event)
			except Exception:
				logger.error("store_listener_failed", exc_info=True, extra={"event": event})

	def _document(self, document_id: str, op: str) -> Optional[Document]:
		doc = self._documents.get(document_id)
		if doc is None:
			logger.warning("document_not_found", extra={"doc_id": document_id, "op": op})
		return doc

	def _dataset(self, dataset_id: str, op: str) -> Optional[Dataset]:
		ds = self._datasets.get(dataset_id)
		if ds is None:
			logger.warning("dataset_not_found", extra={"dataset_id": dataset_id, "op": op})
		return ds

	# -- reads ---------------------------------------------------------

	@property
	def documents(self) -> List[Document]:
		with self._lock:
			return [doc.model_copy(deep=True) for doc in self._documents.values()]

	@property
	def datasets(self) -> List[Dataset]:
		with self._lock:
			return [ds.model_copy(deep=True) for ds in self._datasets.values()]

	@property
	def active_dataset_id(self) -> Optional[str]:
		with self._lock:
			return self._active_dataset_id

	def get_document(self, document_id: str) -> Optional[Document]:
		with self._lock:
			doc = self._documents.get(document_id)
			return doc.model_copy(deep=True) if doc is not None else None

	def get_dataset(self, dataset_id: str) -> Optional[Dataset]:
		with self._lock:
			ds = self._datasets.get(dataset_id)
			return ds.model_copy(deep=True) if ds is not None else None

	def snapshot(self) -> StoreState:
		with self._lock:
			return self._state().model_copy(deep=True)

	def view(self, dataset_id: Optional[str] = None) -> List[Document]:
		"""Documents in ``dataset_id``, or every document when it is None."""
		with self._lock:
			return [doc.model_copy(deep=True) for doc in in_dataset(self._documents.values(), dataset_id)]

	def active_view(self) -> List[Document]:
		with self._lock:
			return self.view(self._active_dataset_id)

	def subscribe(self, listener: Listener) -> Callable[[], None]:
		"""Call ``listener(event)`` after every applied mutation. Returns an unsubscribe callable."""
		with self._lock:
			self._listeners.append(listener)

		def unsubscribe() -> None:
			with self._lock:
				if listener in self._listeners:
					self._listeners.remove(listener)

		return unsubscribe

	# -- documents -----------------------------------------------------

	def register_document(self, filename: str, dataset_ids: Iterable[str] = ()) -> str:
		"""
		Create a queued document and add it to each named dataset.

		Unknown dataset ids are dropped from the membership and logged; the
		document is still created.
		"""
		with self._lock:
			doc = Document(
				id=self._new_id(),
				filename=filename,
				status="queued",
				uploaded_at=self._clock(),
			)
			self._documents[doc.id] = doc

			ignored = []
			for dataset_id in dataset_ids:
				dataset = self._datasets.get(dataset_id)
				if dataset is None:
					ignored.append(dataset_id)
					continue
				membership.link(dataset, doc)
			if ignored:
				logger.warning("unknown_datasets_ignored", extra={"doc_id": doc.id, "dataset_ids": ignored})

			logger.info(
				"document_registered",
				extra={"doc_id": doc.id, "file_name": filename, "dataset_ids": list(doc.dataset_ids)},
			)
			self._commit("document_registered")
			return doc.id

	def update_status(self, document_id: str, status: str, error: Optional[str] = None) -> bool:
		"""Overwrite status and error. Transition order is the caller's responsibility."""
		if status not in DOCUMENT_STATUSES:
			raise ValueError(f"Unknown document status: {status}")
		with self._lock:
			doc = self._document(document_id, "update_status")
			if doc is None:
				return False
			doc.status = status
			doc.error = error
			logger.info("document_status_changed", extra={"doc_id": document_id, "status": status, "error": error})
			self._commit("document_status_changed")
			return True

	def attach_extracted_data(self, document_id: str, data: DataLike, quality_score: int) -> bool:
		extracted = _coerce_data(data)
		score = _check_score(quality_score)
		with self._lock:
			doc = self._document(document_id, "attach_extracted_data")
			if doc is None:
				return False
			doc.extracted_data = extracted
			doc.quality_score = score
			doc.processed_at = self._clock()
			doc.status = "awaiting_review"
			doc.error = None
			logger.info("extracted_data_attached", extra={"doc_id": document_id, "quality_score": score})
			self._commit("extracted_data_attached")
			return True

	def save_review(self, document_id: str, edited_data: DataLike) -> bool:
		"""Store the reviewer's edits and mark the document reviewed."""
		extracted = _coerce_data(edited_data)
		with self._lock:
			doc = self._document(document_id, "save_review")
			if doc is None:
				return False
			doc.extracted_data = extracted
			doc.processed_at = self._clock()
			doc.status = "reviewed"
			doc.error = None
			doc.is_reviewed = True
			doc.has_unsaved_changes = False
			logger.info("review_saved", extra={"doc_id": document_id})
			self._commit("review_saved")
			return True

	def set_unsaved_changes(self, document_id: str, has_changes: bool) -> bool:
		with self._lock:
			doc = self._document(document_id, "set_unsaved_changes")
			if doc is None:
				return False
			if doc.has_unsaved_changes == bool(has_changes):
				return True
			doc.has_unsaved_changes = bool(has_changes)
			self._commit("unsaved_changes_set")
			return True

	def delete_document(self, document_id: str) -> bool:
		"""Remove a document and every membership edge it had. Unknown ids are a no-op."""
		with self._lock:
			doc = self._documents.pop(document_id, None)
			if doc is None:
				logger.debug("delete_unknown_document", extra={"doc_id": document_id})
				return False
			left = membership.detach_document(doc, self._datasets)
			logger.info("document_deleted", extra={"doc_id": document_id, "dataset_ids": left})
			self._commit("document_deleted")
			return True

	# -- datasets ------------------------------------------------------

	def create_dataset(
		self,
		name: str,
		description: Optional[str] = None,
		color: Optional[str] = None,
		categories: Optional[Iterable[str]] = None,
	) -> str:
		"""Create an empty dataset. Raises DuplicateDatasetNameError on a case-insensitive name clash."""
		clean = (name or "").strip() or DEFAULT_DATASET_NAME
		with self._lock:
			for existing in self._datasets.values():
				if existing.name.casefold() == clean.casefold():
					logger.warning("dataset_name_taken", extra={"dataset_name": clean, "dataset_id": existing.id})
					raise DuplicateDatasetNameError(clean, existing.id)
			dataset = Dataset(
				id=self._new_id(),
				name=clean,
				created_at=self._clock(),
				description=description or None,
				color=color or None,
				categories=list(categories or []),
			)
			self._datasets[dataset.id] = dataset
			logger.info("dataset_created", extra={"dataset_id": dataset.id, "dataset_name": clean})
			self._commit("dataset_created")
			return dataset.id

	def select_dataset(self, dataset_id: Optional[str]) -> bool:
		"""Set the active view filter. None selects all documents."""
		with self._lock:
			if dataset_id is not None and self._dataset(dataset_id, "select_dataset") is None:
				return False
			if self._active_dataset_id == dataset_id:
				return True
			self._active_dataset_id = dataset_id
			self._commit("dataset_selected")
			return True

	def tag_document(self, dataset_id: str, document_id: str) -> bool:
		"""Add one membership edge. Returns False only when either side does not exist."""
		with self._lock:
			dataset = self._dataset(dataset_id, "tag_document")
			doc = self._document(document_id, "tag_document")
			if dataset is None or doc is None:
				return False
			if membership.link(dataset, doc):
				logger.info("document_tagged", extra={"doc_id": document_id, "dataset_id": dataset_id})
				self._commit("document_tagged")
			return True

	def untag_document(self, dataset_id: str, document_id: str) -> bool:
		with self._lock:
			dataset = self._dataset(dataset_id, "untag_document")
			doc = self._document(document_id, "untag_document")
			if dataset is None or doc is None:
				return False
			if membership.unlink(dataset, doc):
				logger.info("document_untagged", extra={"doc_id": document_id, "dataset_id": dataset_id})
				self._commit("document_untagged")
			return True

	def bulk_tag(self, dataset_id: str, document_ids: Iterable[str]) -> List[str]:
		"""Tag every listed document; returns the ids that were newly added."""
		with self._lock:
			dataset = self._dataset(dataset_id, "bulk_tag")
			if dataset is None:
				return []
			added: List[str] = []
			for document_id in document_ids:
				doc = self._document(document_id, "bulk_tag")
				if doc is not None and membership.link(dataset, doc):
					added.append(document_id)
			if added:
				logger.info("documents_bulk_tagged", extra={"dataset_id": dataset_id, "count": len(added)})
				self._commit("documents_bulk_tagged")
			return added

	def detect_duplicates(self, dataset_id: str, candidate_ids: Iterable[str]) -> List[str]:
		"""Candidates whose filename already appears (case-insensitive) in the dataset."""
		with self._lock:
			dataset = self._datasets.get(dataset_id)
			if dataset is None:
				return []
			candidates = [self._documents[c] for c in candidate_ids if c in self._documents]
			return membership.find_duplicates(dataset, candidates, self._documents)

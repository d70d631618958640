"""
Helpers that keep ``Document.dataset_ids`` and ``Dataset.document_ids`` in step.

Nothing outside this module appends to or removes from either list. Every
helper touches both sides of an edge, so callers holding the store lock can
never leave the relation half-updated.
"""
from typing import Dict, Iterable, List, Tuple

from models.document import Dataset, Document


def link(dataset: Dataset, document: Document) -> bool:
	"""Add the edge (dataset, document). Returns False when it already existed."""
	changed = False
	if document.id not in dataset.document_ids:
		dataset.document_ids.append(document.id)
		changed = True
	if dataset.id not in document.dataset_ids:
		document.dataset_ids.append(dataset.id)
		changed = True
	return changed


def unlink(dataset: Dataset, document: Document) -> bool:
	"""Remove the edge (dataset, document). Returns False when it was absent."""
	changed = False
	if document.id in dataset.document_ids:
		dataset.document_ids.remove(document.id)
		changed = True
	if dataset.id in document.dataset_ids:
		document.dataset_ids.remove(dataset.id)
		changed = True
	return changed


def detach_document(document: Document, datasets: Dict[str, Dataset]) -> List[str]:
	"""Cut every edge of ``document``; returns the ids of the datasets it left."""
	left = []
	for dataset_id in list(document.dataset_ids):
		dataset = datasets.get(dataset_id)
		if dataset is not None:
			unlink(dataset, document)
		else:
			document.dataset_ids.remove(dataset_id)
		left.append(dataset_id)
	# Also catch datasets pointing at the document without a back-reference
	for dataset in datasets.values():
		if document.id in dataset.document_ids:
			dataset.document_ids.remove(document.id)
			if dataset.id not in left:
				left.append(dataset.id)
	return left


def find_duplicates(
	dataset: Dataset,
	candidates: Iterable[Document],
	documents: Dict[str, Document],
) -> List[str]:
	"""
	Ids of candidates whose filename (case-insensitive) matches a document
	already in ``dataset``. Matching is by name only.
	"""
	existing = {
		documents[doc_id].filename.lower()
		for doc_id in dataset.document_ids
		if doc_id in documents
	}
	found: List[str] = []
	for candidate in candidates:
		if candidate.filename.lower() in existing and candidate.id not in found:
			found.append(candidate.id)
	return found


def reconcile(documents: Dict[str, Document], datasets: Dict[str, Dataset]) -> Tuple[int, int]:
	"""
	Make both sides agree after loading a snapshot.

	Ids pointing at nothing are dropped. An edge recorded on only one side is
	completed on the other. Existing order on both sides is kept. Returns
	(edges_repaired, dangling_dropped).
	"""
	repaired = 0
	dropped = 0

	for document in documents.values():
		kept: List[str] = []
		for dataset_id in document.dataset_ids:
			if dataset_id not in datasets:
				dropped += 1
			elif dataset_id not in kept:
				kept.append(dataset_id)
		document.dataset_ids = kept

	for dataset in datasets.values():
		kept = []
		for doc_id in dataset.document_ids:
			if doc_id not in documents:
				dropped += 1
			elif doc_id not in kept:
				kept.append(doc_id)
		dataset.document_ids = kept

	for document in documents.values():
		for dataset_id in document.dataset_ids:
			dataset = datasets[dataset_id]
			if document.id not in dataset.document_ids:
				dataset.document_ids.append(document.id)
				repaired += 1
	for dataset in datasets.values():
		for doc_id in dataset.document_ids:
			document = documents[doc_id]
			if dataset.id not in document.dataset_ids:
				document.dataset_ids.append(dataset.id)
				repaired += 1

	return repaired, dropped

from typing import Iterable, List, Optional

from models.document import Document


def in_dataset(documents: Iterable[Document], dataset_id: Optional[str]) -> List[Document]:
	"""All documents when ``dataset_id`` is None, else only its members."""
	if dataset_id is None:
		return list(documents)
	return [doc for doc in documents if dataset_id in doc.dataset_ids]


def matches_quality(score: Optional[int], band: str) -> bool:
	# Documents without a score are never hidden by the quality filter
	if score is None:
		return True
	if band == "high":
		return score > 85
	if band == "medium":
		return 70 <= score <= 85
	if band == "low":
		return score < 70
	raise ValueError(f"Unknown quality band: {band}")


def filter_documents(
	documents: Iterable[Document],
	status: Optional[str] = None,
	quality: Optional[str] = None,
) -> List[Document]:
	result = []
	for doc in documents:
		if status and doc.status != status:
			continue
		if quality and not matches_quality(doc.quality_score, quality):
			continue
		result.append(doc)
	return result


def quality_label(score: int) -> str:
	if score > 85:
		return "Excellent"
	if score >= 70:
		return "Good"
	if score >= 50:
		return "Needs Review"
	return "Poor"

import os
import uuid
import logging
from dataclasses import dataclass
from typing import Optional

logger = logging.getLogger("api.uploads")

ALLOWED_MIME = "application/pdf"
ALLOWED_EXTENSION = ".pdf"


class UploadValidationError(Exception):
	"""The upload was refused; the message is safe to show to the user."""


@dataclass
class UploadedFile:
	filename: Optional[str]
	content_type: Optional[str]
	size: int


@dataclass
class UploadReceipt:
	document_id: str
	filename: str
	size: int


def _get_max_upload_mb() -> int:
	try:
		return int(os.getenv("MAX_UPLOAD_MB", "10"))
	except Exception:
		return 10


def validate_upload(upload: Optional[UploadedFile]) -> UploadReceipt:
	"""Check presence, MIME type, size and extension, in that order."""
	if upload is None or not upload.filename:
		raise UploadValidationError("No file provided")

	if upload.content_type != ALLOWED_MIME:
		logger.warning("upload_unsupported_mime", extra={"file_name": upload.filename, "mime": upload.content_type})
		raise UploadValidationError("Only PDF files are allowed")

	limit_mb = _get_max_upload_mb()
	if upload.size > limit_mb * 1024 * 1024:
		logger.warning("upload_too_large", extra={"file_name": upload.filename, "size_bytes": upload.size})
		raise UploadValidationError(f"File size exceeds maximum allowed size of {limit_mb}MB")

	if not upload.filename.lower().endswith(ALLOWED_EXTENSION):
		logger.warning("upload_unsupported_extension", extra={"file_name": upload.filename})
		raise UploadValidationError("File must have .pdf extension")

	receipt = UploadReceipt(document_id=str(uuid.uuid4()), filename=upload.filename, size=upload.size)
	logger.info(
		"upload_accepted",
		extra={"doc_id": receipt.document_id, "file_name": upload.filename, "size_bytes": upload.size},
	)
	return receipt

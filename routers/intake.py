from fastapi import APIRouter, Depends, File, HTTPException, UploadFile, status
from typing import Optional
import logging

from models.requests import ExtractRequest
from tasks.extraction import ExtractionError, Extractor
from utils.dependencies import get_extractor
from utils.response import api_response
from utils.uploads import UploadValidationError, UploadedFile, validate_upload

router = APIRouter(prefix="/api", tags=["intake"])
logger = logging.getLogger("api.intake")


async def to_uploaded_file(file: Optional[UploadFile]) -> Optional[UploadedFile]:
	if file is None:
		return None
	content = await file.read()
	return UploadedFile(filename=file.filename, content_type=file.content_type, size=len(content))


@router.post("/upload")
async def upload_file(file: Optional[UploadFile] = File(None)):
	"""Validate a single PDF and hand back a fresh document id. Nothing is stored."""
	try:
		receipt = validate_upload(await to_uploaded_file(file))
	except UploadValidationError as exc:
		raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc))
	return api_response(
		data={"documentId": receipt.document_id, "filename": receipt.filename, "size": receipt.size},
		message="File uploaded successfully.",
	)


@router.post("/extract")
async def extract_document(body: ExtractRequest, extractor: Extractor = Depends(get_extractor)):
	if not body.document_id:
		raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Document ID is required")
	if not body.filename:
		raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Filename is required")

	try:
		result = await extractor.extract(body.document_id, body.filename)
	except ExtractionError as exc:
		raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=str(exc))

	return api_response(
		data={
			"documentId": body.document_id,
			"extractedData": result.extracted_data.model_dump(mode="json"),
			"qualityScore": result.quality_score,
			"processedAt": result.processed_at.isoformat(),
		},
		message="Extraction completed.",
	)

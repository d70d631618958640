import logging
from fastapi import FastAPI, HTTPException, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.encoders import jsonable_encoder
from typing import Any, Dict

from store.errors import DuplicateDatasetNameError
from utils.response import api_response

logger = logging.getLogger("api.errors")


def install_exception_handlers(app: FastAPI) -> None:
	@app.exception_handler(HTTPException)
	async def http_exception_handler(request: Request, exc: HTTPException):
		logger.warning(
			"http_exception",
			extra={
				"path": request.url.path,
				"method": request.method,
				"status_code": exc.status_code,
			}
		)
		return api_response(data=None, message=str(exc.detail or "HTTP error"), status_code=exc.status_code)

	@app.exception_handler(DuplicateDatasetNameError)
	async def duplicate_dataset_handler(request: Request, exc: DuplicateDatasetNameError):
		logger.warning(
			"duplicate_dataset_name",
			extra={
				"path": request.url.path,
				"method": request.method,
				"status_code": status.HTTP_409_CONFLICT,
				"dataset_name": exc.name,
			}
		)
		return api_response(
			data={"existingDatasetId": exc.existing_id},
			message=str(exc),
			status_code=status.HTTP_409_CONFLICT,
		)

	@app.exception_handler(RequestValidationError)
	async def validation_exception_handler(request: Request, exc: RequestValidationError):
		errors = jsonable_encoder(exc.errors())
		logger.warning(
			"validation_error",
			extra={
				"path": request.url.path,
				"method": request.method,
				"status_code": 422,
				"count": len(errors),
			}
		)
		content: Dict[str, Any] = {"errors": errors}
		return api_response(data=content, message="Validation error", status_code=422)

	@app.exception_handler(Exception)
	async def generic_exception_handler(request: Request, exc: Exception):
		# Do not expose internal details to clients
		logger.error(
			"unhandled_exception",
			exc_info=True,
			extra={
				"path": request.url.path,
				"method": request.method,
				"status_code": status.HTTP_500_INTERNAL_SERVER_ERROR,
			}
		)
		return api_response(data=None, message="Internal server error", status_code=status.HTTP_500_INTERNAL_SERVER_ERROR)

from fastapi.responses import JSONResponse
from models.response import APIResponse


def api_response(data=None, message="Success", status_code=200):
	return JSONResponse(
		status_code=status_code,
		content=APIResponse(
			success=status_code < 400,
			data=data,
			message=message,
			status_code=status_code,
		).model_dump()
	)


def dump(model):
	"""Serialise a model (or list of models) with camelCase keys and ISO timestamps."""
	if isinstance(model, list):
		return [dump(m) for m in model]
	return model.model_dump(by_alias=True, mode="json")

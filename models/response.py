from pydantic import BaseModel
from typing import Any


class APIResponse(BaseModel):
    success: bool
    data: Any
    message: str
    status_code: int

from typing import List, Optional

from pydantic import Field

from models.document import CamelModel, ExtractedData


class ExtractRequest(CamelModel):
    # Both are optional here so the route can answer 400 with a readable message
    document_id: Optional[str] = None
    filename: Optional[str] = None


class CreateDatasetRequest(CamelModel):
    name: str = ""
    description: Optional[str] = None
    color: Optional[str] = None
    categories: List[str] = Field(default_factory=list)


class SelectDatasetRequest(CamelModel):
    dataset_id: Optional[str] = None


class DocumentIdsRequest(CamelModel):
    document_ids: List[str] = Field(default_factory=list)


class SaveReviewRequest(CamelModel):
    extracted_data: ExtractedData


class UnsavedChangesRequest(CamelModel):
    has_unsaved_changes: bool

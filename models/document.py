from datetime import datetime
from typing import Dict, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

DocumentStatus = Literal["queued", "processing", "awaiting_review", "reviewed", "failed"]

DOCUMENT_STATUSES = ("queued", "processing", "awaiting_review", "reviewed", "failed")


class CamelModel(BaseModel):
    # Snapshot and API payloads use camelCase keys
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class ExtractedData(BaseModel):
    """Lease fields pulled out of one document."""

    name: str
    surname: str
    address_street: str
    address_house_number: str
    address_zip_code: str
    address_city: str
    warm_rent: float
    cold_rent: float
    rent_increase_type: str
    date: str  # YYYY-MM-DD as printed in the contract
    is_active: bool

    deposit: Optional[float] = None
    contract_term_months: Optional[int] = None
    notice_period_months: Optional[int] = None
    landlord_entity: Optional[str] = None

    confidence: Optional[Dict[str, float]] = None


class Document(CamelModel):
    id: str
    filename: str
    status: DocumentStatus = "queued"
    uploaded_at: datetime
    processed_at: Optional[datetime] = None
    error: Optional[str] = None
    extracted_data: Optional[ExtractedData] = None
    quality_score: Optional[int] = Field(default=None, ge=0, le=100)
    is_reviewed: bool = False
    has_unsaved_changes: bool = False
    dataset_ids: List[str] = Field(default_factory=list)


class Dataset(CamelModel):
    id: str
    name: str
    created_at: datetime
    description: Optional[str] = None
    color: Optional[str] = None
    document_ids: List[str] = Field(default_factory=list)
    categories: List[str] = Field(default_factory=list)


class StoreState(CamelModel):
    documents: List[Document] = Field(default_factory=list)
    datasets: List[Dataset] = Field(default_factory=list)
    active_dataset_id: Optional[str] = None

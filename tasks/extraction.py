import os
import random
import asyncio
import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Optional

from models.document import ExtractedData

logger = logging.getLogger("tasks.extraction")

EXTRACTION_FAILED_MESSAGE = "Extraction failed: Please upload again"

FIRST_NAMES = ["Max", "Anna", "Thomas", "Julia", "Michael", "Sarah", "Lukas", "Emma", "Felix", "Laura"]
LAST_NAMES = ["Müller", "Schmidt", "Schneider", "Fischer", "Weber", "Meyer", "Wagner", "Becker", "Schulz", "Hoffmann"]
STREETS = ["Hauptstraße", "Bahnhofstraße", "Kirchstraße", "Schulstraße", "Gartenstraße", "Bergstraße", "Waldstraße", "Lindenstraße"]
CITIES = ["München", "Berlin", "Hamburg", "Frankfurt", "Köln", "Stuttgart", "Düsseldorf", "Leipzig", "Dortmund", "Essen"]
RENT_INCREASE_TYPES = ["Staffelmiete", "Indexmiete", "Festmiete", "Wertsicherungsklausel"]
LANDLORDS = ["Hausverwaltung GmbH", "Immobilien AG", "Wohnbau Gesellschaft", "Private Vermietung"]


class ExtractionError(Exception):
	pass


@dataclass
class ExtractionResult:
	extracted_data: ExtractedData
	quality_score: int
	processed_at: datetime


class Extractor:
	"""Turns an uploaded document into lease fields, or raises ExtractionError."""

	async def extract(self, document_id: str, filename: str) -> ExtractionResult:
		raise NotImplementedError


def _get_float(key: str, default: float) -> float:
	try:
		return float(os.getenv(key, str(default)))
	except Exception:
		return default


def generate_lease_data(rng: random.Random) -> ExtractedData:
	"""Random but plausible lease fields with per-field confidences."""

	def confidence() -> float:
		if rng.random() < 0.8:
			return rng.randint(80, 98) / 100
		return rng.randint(65, 75) / 100

	cold_rent = rng.randint(500, 2000)
	fields = {
		"name": rng.choice(FIRST_NAMES),
		"surname": rng.choice(LAST_NAMES),
		"address_street": rng.choice(STREETS),
		"address_house_number": str(rng.randint(1, 150)),
		"address_zip_code": str(10000 + rng.randint(0, 89999)),
		"address_city": rng.choice(CITIES),
		"warm_rent": cold_rent + rng.randint(100, 400),
		"cold_rent": cold_rent,
		"rent_increase_type": rng.choice(RENT_INCREASE_TYPES),
		"date": f"{rng.randint(2019, 2024)}-{rng.randint(1, 12):02d}-{rng.randint(1, 28):02d}",
		"is_active": rng.random() > 0.2,
	}
	scores = {key: confidence() for key in fields}

	optional = {
		"deposit": lambda: cold_rent * rng.randint(2, 4),
		"contract_term_months": lambda: rng.randint(12, 36),
		"notice_period_months": lambda: rng.randint(1, 6),
		"landlord_entity": lambda: rng.choice(LANDLORDS),
	}
	for key, make in optional.items():
		if rng.random() > 0.3:
			fields[key] = make()
			scores[key] = confidence()

	return ExtractedData(**fields, confidence=scores)


class SimulatedExtractor(Extractor):
	"""
	Stand-in for a document-understanding service.

	Waits a random delay, fails with probability ``failure_rate`` and otherwise
	returns generated lease data with a quality score between 70 and 95. The
	filename is not read.
	"""

	def __init__(
		self,
		failure_rate: float = 0.05,
		min_delay: float = 1.0,
		max_delay: float = 2.0,
		rng: Optional[random.Random] = None,
	):
		if not 0.0 <= failure_rate <= 1.0:
			raise ValueError("failure_rate must be between 0 and 1")
		if min_delay < 0 or max_delay < min_delay:
			raise ValueError("delays must satisfy 0 <= min_delay <= max_delay")
		self.failure_rate = failure_rate
		self.min_delay = min_delay
		self.max_delay = max_delay
		self.rng = rng or random.Random()

	@classmethod
	def from_env(cls) -> "SimulatedExtractor":
		return cls(
			failure_rate=_get_float("EXTRACTION_FAILURE_RATE", 0.05),
			min_delay=_get_float("EXTRACTION_MIN_DELAY_MS", 1000) / 1000,
			max_delay=_get_float("EXTRACTION_MAX_DELAY_MS", 2000) / 1000,
		)

	async def extract(self, document_id: str, filename: str) -> ExtractionResult:
		logger.info("extraction_started", extra={"doc_id": document_id, "file_name": filename})
		delay = self.rng.uniform(self.min_delay, self.max_delay)
		if delay:
			await asyncio.sleep(delay)

		if self.rng.random() < self.failure_rate:
			logger.warning("extraction_failed", extra={"doc_id": document_id, "file_name": filename})
			raise ExtractionError(EXTRACTION_FAILED_MESSAGE)

		data = generate_lease_data(self.rng)
		score = self.rng.randint(70, 95)
		logger.info("extraction_completed", extra={"doc_id": document_id, "file_name": filename, "quality_score": score})
		return ExtractionResult(extracted_data=data, quality_score=score, processed_at=datetime.now(timezone.utc))

import io
import csv
import unicodedata
from urllib.parse import quote
from typing import Any, Dict, Iterable, List, Optional

from openpyxl import Workbook
from openpyxl.styles import Font, PatternFill
from openpyxl.utils import get_column_letter

from models.document import Dataset, Document
from store.views import quality_label

CSV_CONTENT_TYPE = "text/csv; charset=utf-8"
XLSX_CONTENT_TYPE = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"
SHEET_TITLE = "Extracted Data"

# (header, ExtractedData field)
FIELD_COLUMNS = [
	("Name", "name"),
	("Surname", "surname"),
	("Street", "address_street"),
	("House Number", "address_house_number"),
	("Zip Code", "address_zip_code"),
	("City", "address_city"),
	("Warm Rent", "warm_rent"),
	("Cold Rent", "cold_rent"),
	("Deposit", "deposit"),
	("Contract Term (Months)", "contract_term_months"),
	("Notice Period (Months)", "notice_period_months"),
	("Date", "date"),
	("Rent Increase Type", "rent_increase_type"),
	("Landlord", "landlord_entity"),
	("Active", "is_active"),
]

HEADERS = ["Document", "Datasets", "Reviewed"] + [header for header, _ in FIELD_COLUMNS] + ["Quality Score", "Quality"]


def _cell(value: Any) -> Any:
	if value is None:
		return ""
	if isinstance(value, bool):
		return "Yes" if value else "No"
	if isinstance(value, float) and value.is_integer():
		return int(value)
	return value


def build_rows(documents: Iterable[Document], datasets: Iterable[Dataset]) -> List[Dict[str, Any]]:
	"""One row per document that has extracted data, keyed by column header."""
	names = {ds.id: ds.name for ds in datasets}
	rows = []
	for doc in documents:
		if doc.extracted_data is None:
			continue
		row = {
			"Document": doc.filename,
			"Datasets": "; ".join(names[ds_id] for ds_id in doc.dataset_ids if ds_id in names),
			"Reviewed": _cell(doc.is_reviewed),
		}
		for header, field in FIELD_COLUMNS:
			row[header] = _cell(getattr(doc.extracted_data, field))
		row["Quality Score"] = _cell(doc.quality_score)
		row["Quality"] = quality_label(doc.quality_score) if doc.quality_score is not None else ""
		rows.append(row)
	return rows


def to_csv(rows: List[Dict[str, Any]]) -> str:
	output = io.StringIO()
	writer = csv.DictWriter(output, fieldnames=HEADERS, quoting=csv.QUOTE_MINIMAL, lineterminator="\n")
	writer.writeheader()
	writer.writerows(rows)
	return output.getvalue()


def to_xlsx(rows: List[Dict[str, Any]]) -> bytes:
	wb = Workbook()
	ws = wb.active
	ws.title = SHEET_TITLE
	ws.append(HEADERS)

	header_fill = PatternFill(start_color="366092", end_color="366092", fill_type="solid")
	header_font = Font(bold=True, color="FFFFFF")
	for cell in ws[1]:
		cell.fill = header_fill
		cell.font = header_font

	for row in rows:
		ws.append([row[header] for header in HEADERS])

	for idx, header in enumerate(HEADERS, start=1):
		width = max([len(header)] + [len(str(row[header])) for row in rows])
		ws.column_dimensions[get_column_letter(idx)].width = min(width + 2, 50)

	buffer = io.BytesIO()
	wb.save(buffer)
	return buffer.getvalue()


def export_filename(dataset: Optional[Dataset], extension: str) -> str:
	base = dataset.name if dataset is not None else "documents"
	base = "".join(ch for ch in base if ch not in '"/\\' and ch.isprintable()).strip() or "documents"
	return f"{base}_data.{extension}"


def content_disposition(filename: str) -> str:
	"""Attachment header with an ASCII fallback and an RFC 5987 UTF-8 name."""
	fallback = unicodedata.normalize("NFKD", filename).encode("ascii", "ignore").decode("ascii")
	fallback = fallback.replace(";", "_") or "export"
	return f"attachment; filename=\"{fallback}\"; filename*=UTF-8''{quote(filename, safe='')}"

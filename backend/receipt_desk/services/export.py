"""
CSV and JSON export of receipts and receipt lines.

Documents are built in memory and returned with a suggested filename; the
routers deliver them as attachments. Export is one-way.
"""

import json
from dataclasses import dataclass
from datetime import date, datetime
from enum import Enum
from typing import Any, Iterable, Optional

from ..models import Receipt, ReceiptLine, ReceiptWithLines

CSV_MEDIA_TYPE = "text/csv"
JSON_MEDIA_TYPE = "application/json"


@dataclass
class ExportDocument:
    filename: str
    media_type: str
    content: str


def _today() -> str:
    return date.today().isoformat()


def _cell(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    if isinstance(value, datetime):
        return value.isoformat()
    if isinstance(value, Enum):
        return str(value.value)
    return str(value)


def to_csv(rows: list[dict[str, Any]]) -> Optional[str]:
    """
    Render rows as CSV.

    The header comes from the first row's keys. Every field is wrapped in
    double quotes with embedded quotes doubled; rows are joined with ``\\n``.
    Returns None for an empty list.
    """
    if not rows:
        return None

    headers = list(rows[0].keys())
    lines = [",".join(headers)]
    for row in rows:
        cells = (_cell(row.get(header)) for header in headers)
        lines.append(",".join('"' + cell.replace('"', '""') + '"' for cell in cells))
    return "\n".join(lines)


def receipts_csv_rows(receipts: Iterable[Receipt]) -> list[dict[str, Any]]:
    return [
        {
            "id": receipt.id,
            "vendor": receipt.vendor,
            "date": receipt.date_time,
            "receipt_no": receipt.receipt_no or "",
            "total": receipt.total,
            "paid": receipt.paid,
            "change": receipt.change,
            "status": receipt.status,
            "confidence": receipt.confidence_overall,
        }
        for receipt in receipts
    ]


def receipt_lines_csv_rows(lines: Iterable[ReceiptLine]) -> list[dict[str, Any]]:
    return [
        {
            "index": line.index,
            "description": line.description_raw,
            "qty": line.qty,
            "unit_price": line.unit_price,
            "line_total": line.line_total,
            "unit": line.unit or "",
        }
        for line in lines
    ]


def to_json(data: Any) -> str:
    """Pretty-print models (or lists of them) as 2-space indented JSON."""
    if isinstance(data, list):
        payload = [item.model_dump(mode="json") if hasattr(item, "model_dump") else item for item in data]
    elif hasattr(data, "model_dump"):
        payload = data.model_dump(mode="json")
    else:
        payload = data
    return json.dumps(payload, indent=2, ensure_ascii=False)


def export_receipts_csv(receipts: list[Receipt]) -> Optional[ExportDocument]:
    content = to_csv(receipts_csv_rows(receipts))
    if content is None:
        return None
    return ExportDocument(f"receipts_{_today()}.csv", CSV_MEDIA_TYPE, content)


def export_receipt_lines_csv(lines: list[ReceiptLine], receipt_id: Optional[str] = None) -> Optional[ExportDocument]:
    content = to_csv(receipt_lines_csv_rows(lines))
    if content is None:
        return None
    filename = f"receipt_{receipt_id}_lines.csv" if receipt_id else f"receipt_lines_{_today()}.csv"
    return ExportDocument(filename, CSV_MEDIA_TYPE, content)


def export_receipts_json(receipts: list[Receipt]) -> ExportDocument:
    """Listing export; lines are not fetched, so each receipt carries an empty list."""
    documents = [ReceiptWithLines(**receipt.model_dump(), lines=[]) for receipt in receipts]
    return ExportDocument(f"receipts_{_today()}.json", JSON_MEDIA_TYPE, to_json(documents))


def export_receipt_json(receipt: ReceiptWithLines) -> ExportDocument:
    return ExportDocument(f"receipt_{receipt.id}.json", JSON_MEDIA_TYPE, to_json(receipt))

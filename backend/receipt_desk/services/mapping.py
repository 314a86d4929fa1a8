"""
Translation between Supabase rows and in-memory models.

Rows use the table column names; nullable columns come back as None.
Line confidences are stored as a JSON object keyed
``qty`` / ``unitPrice`` / ``lineTotal`` / ``description``.
"""

from datetime import datetime
from typing import Any, Iterable, Optional

from ..models import (
    CURRENCY,
    LineConfidences,
    Product,
    ProductCreate,
    ProductUpdate,
    Receipt,
    ReceiptCreate,
    ReceiptLine,
    ReceiptLineCreate,
    ReceiptStatus,
    ReceiptUpdate,
    Vendor,
    VendorCreate,
    VendorUpdate,
)

_CONFIDENCE_KEYS = {
    "qty": "qty",
    "unit_price": "unitPrice",
    "line_total": "lineTotal",
    "description": "description",
}


def _parse_datetime(value: Any) -> datetime:
    if isinstance(value, datetime):
        return value
    return datetime.fromisoformat(str(value).replace("Z", "+00:00"))


def confidences_from_row(value: Optional[dict]) -> Optional[LineConfidences]:
    if not value:
        return None
    return LineConfidences(**{
        field: value.get(key)
        for field, key in _CONFIDENCE_KEYS.items()
        if value.get(key) is not None
    })


def confidences_to_row(confidences: Optional[LineConfidences]) -> Optional[dict]:
    if confidences is None:
        return None
    data = {
        key: getattr(confidences, field)
        for field, key in _CONFIDENCE_KEYS.items()
        if getattr(confidences, field) is not None
    }
    return data or None


def vendor_from_row(row: dict) -> Vendor:
    return Vendor(id=row["id"], name=row["name"], aliases=row.get("aliases") or [])


def vendor_to_row(vendor: VendorCreate | VendorUpdate) -> dict:
    # updates only touch the columns the caller sent
    return vendor.model_dump(exclude_unset=isinstance(vendor, VendorUpdate))


def product_from_row(row: dict) -> Product:
    return Product(
        id=row["id"],
        name=row["name"],
        aliases=row.get("aliases") or [],
        default_unit=row.get("default_unit"),
        category=row.get("category"),
    )


def product_to_row(product: ProductCreate | ProductUpdate) -> dict:
    return product.model_dump(exclude_unset=isinstance(product, ProductUpdate))


def receipt_from_row(row: dict) -> Receipt:
    """Build a Receipt from a ``receipts`` row. Currency is always pinned to MAD."""
    return Receipt(
        id=row["id"],
        vendor=row["vendor"],
        vendor_id=row.get("vendor_id"),
        date_time=_parse_datetime(row["date_time"]),
        receipt_no=row.get("receipt_no"),
        currency=CURRENCY,
        total=row.get("total") or 0,
        paid=row.get("paid"),
        change=row.get("change"),
        balance_prev=row.get("balance_prev"),
        balance_curr=row.get("balance_curr"),
        status=ReceiptStatus(row.get("status") or ReceiptStatus.DRAFT.value),
        confidence_overall=row.get("confidence_overall") or 0,
        image_url=row.get("image_url"),
        ocr_raw=row.get("ocr_raw"),
        notes=row.get("notes"),
    )


def receipt_to_row(receipt: ReceiptCreate) -> dict:
    """Insert payload for a new receipt (lines are inserted separately)."""
    return {
        "vendor": receipt.vendor,
        "vendor_id": receipt.vendor_id,
        "date_time": receipt.date_time.isoformat(),
        "receipt_no": receipt.receipt_no,
        "currency": CURRENCY,
        "total": receipt.total,
        "paid": receipt.paid,
        "change": receipt.change,
        "balance_prev": receipt.balance_prev,
        "balance_curr": receipt.balance_curr,
        "status": receipt.status.value,
        "confidence_overall": receipt.confidence_overall,
        "image_url": receipt.image_url,
        "ocr_raw": receipt.ocr_raw,
        "notes": receipt.notes,
    }


def receipt_update_to_row(update: ReceiptUpdate) -> dict:
    """Update payload containing only the fields the caller set."""
    return update.model_dump(mode="json", exclude_unset=True)


def line_from_row(row: dict) -> ReceiptLine:
    return ReceiptLine(
        id=row["id"],
        receipt_id=row["receipt_id"],
        index=row["index"],
        description_raw=row.get("description_raw") or "",
        description_norm=row.get("description_norm"),
        qty=row.get("qty") or 0,
        unit_price=row.get("unit_price") or 0,
        line_total=row.get("line_total") or 0,
        unit=row.get("unit"),
        product_id=row.get("product_id"),
        confidences=confidences_from_row(row.get("confidences")),
    )


def line_to_row(line: ReceiptLine | ReceiptLineCreate, receipt_id: str) -> dict:
    """Insert payload for one line. Persisted lines keep their id."""
    row = {
        "receipt_id": receipt_id,
        "index": line.index,
        "description_raw": line.description_raw,
        "description_norm": line.description_norm or None,
        "qty": line.qty,
        "unit_price": line.unit_price,
        "line_total": line.line_total,
        "unit": line.unit or None,
        "product_id": line.product_id or None,
        "confidences": confidences_to_row(line.confidences),
    }
    if isinstance(line, ReceiptLine) and line.id:
        row = {"id": line.id, **row}
    return row


def lines_to_rows(lines: Iterable[ReceiptLine | ReceiptLineCreate], receipt_id: str) -> list[dict]:
    return [line_to_row(line, receipt_id) for line in lines]

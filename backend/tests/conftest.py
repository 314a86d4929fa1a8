from datetime import datetime, timezone
from fnmatch import fnmatchcase
from unittest.mock import patch, AsyncMock

import pytest

from receipt_desk.models import LineConfidences, Receipt, ReceiptLine, ReceiptStatus, ReceiptWithLines


class FakeRedis:
    """In-memory stand-in for the redis.asyncio commands the cache uses."""

    def __init__(self):
        self.data = {}
        self.ttls = {}

    async def get(self, key):
        return self.data.get(key)

    async def set(self, key, value, ex=None):
        self.data[key] = value
        self.ttls[key] = ex

    async def delete(self, *keys):
        return sum(1 for key in keys if self.data.pop(key, None) is not None)

    async def scan_iter(self, match="*"):
        for key in list(self.data):
            if fnmatchcase(key, match):
                yield key


@pytest.fixture(autouse=True)
def fake_redis():
    """Every test gets its own empty read cache."""
    redis = FakeRedis()
    with patch("receipt_desk.services.cache.get_redis", new_callable=AsyncMock, return_value=redis):
        yield redis


@pytest.fixture
def sample_lines():
    """Two lines that add up: 4 x 49 = 196 and 2 x 10 = 20."""
    return [
        ReceiptLine(
            id="l1",
            receipt_id="r1",
            index=0,
            description_raw="Frites Julienne 7/7 2.5kg",
            qty=4,
            unit_price=49.0,
            line_total=196.0,
            unit="kg",
            confidences=LineConfidences(qty=0.95, unit_price=0.98, line_total=0.99, description=0.92),
        ),
        ReceiptLine(
            id="l2",
            receipt_id="r1",
            index=1,
            description_raw="Hot-Dog",
            qty=2,
            unit_price=10.0,
            line_total=20.0,
            unit="pcs",
        ),
    ]


@pytest.fixture
def sample_receipt(sample_lines):
    """Receipt declaring 216 MAD, matching its lines."""
    return ReceiptWithLines(
        id="r1",
        vendor="Metro Cash & Carry",
        vendor_id="v1",
        date_time=datetime(2025, 10, 20, 14, 30, tzinfo=timezone.utc),
        receipt_no="R20251020-001",
        total=216.0,
        paid=220.0,
        change=4.0,
        status=ReceiptStatus.DRAFT,
        confidence_overall=0.95,
        lines=sample_lines,
    )


@pytest.fixture
def receipt_row():
    """A ``receipts`` row as returned by Supabase."""
    return {
        "id": "r1",
        "vendor": "Metro Cash & Carry",
        "vendor_id": "v1",
        "date_time": "2025-10-20T14:30:00Z",
        "receipt_no": "R20251020-001",
        "currency": "MAD",
        "total": 216.0,
        "paid": 220.0,
        "change": 4.0,
        "balance_prev": None,
        "balance_curr": None,
        "status": "verified",
        "confidence_overall": 0.95,
        "image_url": None,
        "ocr_raw": None,
        "notes": None,
    }


@pytest.fixture
def line_row():
    """A ``receipt_lines`` row as returned by Supabase."""
    return {
        "id": "l1",
        "receipt_id": "r1",
        "index": 0,
        "description_raw": "Frites Julienne 7/7 2.5kg",
        "description_norm": "Frites Julienne 2.5kg",
        "qty": 4,
        "unit_price": 49.0,
        "line_total": 196.0,
        "unit": "kg",
        "product_id": None,
        "confidences": {"qty": 0.95, "unitPrice": 0.98, "lineTotal": 0.99, "description": 0.92},
    }


@pytest.fixture
def sample_receipts():
    """Listing of receipts with mixed status, confidence and dates."""
    def receipt(id, vendor, day, receipt_no, total, status, confidence):
        return Receipt(
            id=id,
            vendor=vendor,
            date_time=datetime(2025, 10, day, 12, 0, tzinfo=timezone.utc),
            receipt_no=receipt_no,
            total=total,
            status=status,
            confidence_overall=confidence,
        )

    verified, draft = ReceiptStatus.VERIFIED, ReceiptStatus.DRAFT
    return [
        receipt("r1", "Metro Cash & Carry", 20, "R20251020-001", 216.0, verified, 0.95),
        receipt("r2", "Marjane", 15, "MAR-789", 1319.6, draft, 0.82),
        receipt("r3", "MaCuisine", 12, "MC-456", 55.1, verified, 0.91),
        receipt("r4", "Carrefour", 10, None, 145.5, draft, 0.76),
    ]

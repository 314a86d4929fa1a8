"""Demo data: seed, clear and reset the Supabase tables."""

import logging
from datetime import datetime

from ..models import LineConfidences, ReceiptCreate, ReceiptLineCreate, ReceiptStatus
from . import mapping, store
from .queries import invalidate_all

logger = logging.getLogger(__name__)

DEMO_VENDORS = [
    {"name": "Metro Cash & Carry", "aliases": ["Metro", "Metro Maroc"]},
    {"name": "Marjane", "aliases": ["Marjane Market"]},
    {"name": "Carrefour", "aliases": ["Carrefour Market"]},
    {"name": "MaCuisine", "aliases": ["Ma Cuisine"]},
]

DEMO_PRODUCTS = [
    {"name": "Frites Julienne 2.5kg", "category": "Frozen", "default_unit": "kg", "aliases": []},
    {"name": "Hot-Dog", "category": "Frozen", "default_unit": "pcs", "aliases": []},
    {"name": "Thon", "category": "Canned Goods", "default_unit": "kg", "aliases": []},
    {"name": "Huile 5L", "category": "Oil", "default_unit": "L", "aliases": ["Oil 5L"]},
    {"name": "Pommes de terre", "category": "Produce", "default_unit": "kg", "aliases": ["Pommes"]},
    {"name": "Oeufs", "category": "Eggs", "default_unit": "pcs", "aliases": ["Eggs"]},
    {"name": "Sacs Kraft", "category": "Supplies", "default_unit": "pcs", "aliases": ["Kraft bags"]},
]

# Tables in dependency order for deletion
TABLES = ("receipt_lines", "receipts", "products", "vendors")

_IMAGE = "https://images.pexels.com/photos/{}/pexels-photo-{}.jpeg?auto=compress&cs=tinysrgb&w=800"


def _line(index, raw, norm, qty, unit_price, line_total, unit, confidences) -> ReceiptLineCreate:
    qty_c, price_c, total_c, desc_c = confidences
    return ReceiptLineCreate(
        index=index,
        description_raw=raw,
        description_norm=norm,
        qty=qty,
        unit_price=unit_price,
        line_total=line_total,
        unit=unit,
        confidences=LineConfidences(qty=qty_c, unit_price=price_c, line_total=total_c, description=desc_c),
    )


def _receipt(vendor, when, receipt_no, total, paid, change, status, confidence, photo, lines) -> ReceiptCreate:
    return ReceiptCreate(
        vendor=vendor,
        date_time=datetime.fromisoformat(when),
        receipt_no=receipt_no,
        total=total,
        paid=paid,
        change=change,
        status=status,
        confidence_overall=confidence,
        image_url=_IMAGE.format(photo, photo),
        lines=lines,
    )


def demo_receipts() -> list[ReceiptCreate]:
    """Six receipts with sixteen lines; vendor ids are resolved at seed time."""
    verified, draft = ReceiptStatus.VERIFIED, ReceiptStatus.DRAFT
    return [
        _receipt("Metro Cash & Carry", "2025-10-20T14:30:00", "R20251020-001", 216.0, 220.0, 4.0, verified, 0.95, 3944405, [
            _line(0, "Frites Julienne 7/7 2.5kg", "Frites Julienne 2.5kg", 4, 49.0, 196.0, "kg", (0.95, 0.98, 0.99, 0.92)),
            _line(1, "Hot-Dog", "Hot-Dog", 2, 10.0, 20.0, "pcs", (0.99, 0.97, 0.98, 0.95)),
        ]),
        _receipt("Metro Cash & Carry", "2025-10-18T11:15:00", "R20251018-002", 360.0, 360.0, 0.0, verified, 0.98, 5632381, [
            _line(0, "Thon 1700g", "Thon 1.7kg", 3, 120.0, 360.0, "kg", (0.98, 0.99, 0.99, 0.97)),
        ]),
        _receipt("Marjane", "2025-10-15T16:45:00", "MAR-20251015-789", 1319.6, 1320.0, 0.4, draft, 0.82, 5632371, [
            _line(0, "Huile 5L", "Oil 5L", 2, 85.0, 170.0, "L", (0.85, 0.82, 0.88, 0.79)),
            _line(1, "Pommes 2.5kg", "Pommes de terre 2.5kg", 4, 45.0, 180.0, "kg", (0.90, 0.85, 0.92, 0.75)),
            _line(2, "Oeufs 100pcs", "Eggs 100", 5, 120.0, 600.0, "pcs", (0.78, 0.80, 0.82, 0.85)),
            _line(3, "Sacs Kraft 26", "Kraft bags 26", 10, 36.96, 369.6, "pcs", (0.81, 0.75, 0.79, 0.82)),
        ]),
        _receipt("MaCuisine", "2025-10-12T10:20:00", "MC-456", 55.1, 60.0, 4.9, verified, 0.91, 4226140, [
            _line(0, "Spatule Silicone", "Silicone Spatula", 2, 15.5, 31.0, "pcs", (0.92, 0.91, 0.93, 0.89)),
            _line(1, "Fouet Inox", "Stainless Steel Whisk", 1, 24.1, 24.1, "pcs", (0.95, 0.88, 0.90, 0.91)),
        ]),
        _receipt("Carrefour", "2025-10-10T09:30:00", "CF-2025-1010", 145.5, 150.0, 4.5, draft, 0.76, 5625120, [
            _line(0, "Pain de mie", "Sliced bread", 3, 8.5, 25.5, "pcs", (0.80, 0.75, 0.78, 0.72)),
            _line(1, "Lait 1L", "Milk 1L", 4, 12.0, 48.0, "L", (0.75, 0.78, 0.76, 0.74)),
            _line(2, "Yaourt nature", "Plain yogurt", 6, 12.0, 72.0, "pcs", (0.73, 0.71, 0.75, 0.70)),
        ]),
        _receipt("Metro Cash & Carry", "2025-10-08T13:00:00", "R20251008-555", 89.75, 90.0, 0.25, verified, 0.93, 5632402, [
            _line(0, "Tomates 1kg", "Tomatoes 1kg", 2.5, 15.0, 37.5, "kg", (0.94, 0.93, 0.95, 0.91)),
            _line(1, "Concombre", "Cucumber", 3, 5.75, 17.25, "pcs", (0.92, 0.90, 0.93, 0.94)),
            _line(2, "Oignons", "Onions", 1.5, 10.0, 15.0, "kg", (0.89, 0.92, 0.91, 0.93)),
            _line(3, "Poivrons", "Bell peppers", 4, 5.0, 20.0, "pcs", (0.91, 0.94, 0.92, 0.90)),
        ]),
    ]


# Carrefour receipts stay unlinked to a vendor row
_LINKED_VENDORS = {"Metro Cash & Carry", "Marjane", "MaCuisine"}


async def seed_demo_data() -> dict[str, int]:
    """
    Insert the demo vendors, products, receipts and lines.

    Vendors are upserted on name so seeding twice keeps one row per vendor.
    Store failures propagate as StoreError after logging.
    """
    try:
        vendor_rows = await store.insert_rows("vendors", DEMO_VENDORS, "seed vendors", on_conflict="name")
        vendor_ids = {row["name"]: row["id"] for row in vendor_rows}

        await store.insert_rows("products", DEMO_PRODUCTS, "seed products")

        receipts = demo_receipts()
        receipt_rows = []
        for receipt in receipts:
            row = mapping.receipt_to_row(receipt)
            if receipt.vendor in _LINKED_VENDORS:
                row["vendor_id"] = vendor_ids.get(receipt.vendor)
            receipt_rows.append(row)
        inserted = await store.insert_rows("receipts", receipt_rows, "seed receipts")

        line_rows = []
        for receipt, row in zip(receipts, inserted):
            line_rows.extend(mapping.lines_to_rows(receipt.lines, row["id"]))
        await store.insert_rows("receipt_lines", line_rows, "seed lines")
    finally:
        await invalidate_all()

    summary = {
        "vendors": len(vendor_rows),
        "products": len(DEMO_PRODUCTS),
        "receipts": len(inserted),
        "lines": len(line_rows),
    }
    logger.info(f"Demo data seeded: {summary}")
    return summary


async def clear_all_data() -> None:
    """Delete every row from every table, children first."""
    try:
        for table in TABLES:
            await store.delete_all_rows(table)
    finally:
        await invalidate_all()
    logger.info("All data cleared")


async def reset_demo_data() -> dict[str, int]:
    await clear_all_data()
    return await seed_demo_data()

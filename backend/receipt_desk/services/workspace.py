"""
Receipt detail workspace.

Holds the editable draft of one receipt, composes header edits with the
line-item grid and reports how the lines reconcile with the declared total.
"""

import logging
from typing import Any, Iterable, Optional

from ..config import get_settings
from ..models import (
    ReceiptLine,
    ReceiptStatus,
    ReceiptUpdate,
    ReceiptWithLines,
    ReconciliationReport,
    SaveResult,
    Vendor,
)
from . import mutations, queries
from .formatting import format_currency
from .grid import CellValue, ReconciliationGrid, coerce_number, mismatched_rows

logger = logging.getLogger(__name__)

TOTAL_MISMATCH_TOLERANCE = 0.5

# Header columns written back on save
HEADER_FIELDS = (
    "vendor",
    "vendor_id",
    "date_time",
    "receipt_no",
    "total",
    "paid",
    "change",
    "status",
    "notes",
)


def lines_total(lines: Iterable[ReceiptLine]) -> float:
    return sum((line.line_total for line in lines), 0.0)


def reconcile(lines: list[ReceiptLine], total: float) -> ReconciliationReport:
    """
    Compare the sum of line totals with the declared receipt total.

    The receipt is flagged when they differ by more than 0.5; lines are
    flagged individually by the grid's arithmetic check. Advisory only.
    """
    computed = lines_total(lines)
    difference = abs(computed - total)
    return ReconciliationReport(
        lines_total=computed,
        total=total,
        difference=difference,
        total_mismatch=difference > TOTAL_MISMATCH_TOLERANCE,
        mismatched_rows=mismatched_rows(lines),
    )


def _optional_amount(value: CellValue) -> Optional[float]:
    # empty, invalid or zero input clears the amount
    number = coerce_number(value)
    return number or None


class ReceiptWorkspace:
    """Editable draft of one receipt."""

    def __init__(self, receipt: ReceiptWithLines):
        self.receipt = receipt
        self.grid = ReconciliationGrid(receipt.lines, self._on_lines_change, receipt_id=receipt.id)

    @classmethod
    async def load(cls, receipt_id: str) -> "ReceiptWorkspace":
        """Open a workspace on the stored state of a receipt."""
        return cls(await queries.get_receipt(receipt_id))

    def _on_lines_change(self, lines: list[ReceiptLine]) -> None:
        self.receipt = self.receipt.model_copy(update={"lines": lines})

    @property
    def lines(self) -> list[ReceiptLine]:
        return self.receipt.lines

    # Header edits

    def update_header(self, **fields: Any) -> ReceiptWithLines:
        unknown = set(fields) - set(ReceiptUpdate.model_fields)
        if unknown:
            raise ValueError(f"Not a header field: {', '.join(sorted(unknown))}")
        self.receipt = self.receipt.model_copy(update=fields)
        return self.receipt

    def set_vendor(self, name: str, vendors: Iterable[Vendor]) -> ReceiptWithLines:
        """Pick a vendor by name; the vendor reference follows the name."""
        match = next((vendor for vendor in vendors if vendor.name == name), None)
        return self.update_header(vendor=name, vendor_id=match.id if match else None)

    def set_total(self, value: CellValue) -> ReceiptWithLines:
        return self.update_header(total=coerce_number(value))

    def set_paid(self, value: CellValue) -> ReceiptWithLines:
        return self.update_header(paid=_optional_amount(value))

    def set_change(self, value: CellValue) -> ReceiptWithLines:
        return self.update_header(change=_optional_amount(value))

    # Checks

    def reconciliation(self) -> ReconciliationReport:
        return reconcile(self.receipt.lines, self.receipt.total)

    # Persistence

    def header_update(self) -> ReceiptUpdate:
        return ReceiptUpdate(**{name: getattr(self.receipt, name) for name in HEADER_FIELDS})

    async def save(self) -> SaveResult:
        """
        Persist the header and the lines as two independent writes.

        There is no transaction: the lines are written even if the header
        write failed, and a partial failure is reported, not rolled back.
        A total mismatch never blocks the save.
        """
        receipt = self.receipt
        report = self.reconciliation()
        if report.total_mismatch:
            locale = get_settings().default_locale
            logger.info(
                f"Saving receipt {receipt.id} with total mismatch "
                f"(lines {format_currency(report.lines_total, locale)}, "
                f"declared {format_currency(receipt.total, locale)})"
            )

        header = await mutations.update_receipt(receipt.id, self.header_update())
        lines = await mutations.replace_receipt_lines(receipt.id, receipt.lines)

        if header.ok != lines.ok:
            logger.warning(
                f"Partial save of receipt {receipt.id}: header_saved={header.ok}, lines_saved={lines.ok}"
            )

        return SaveResult(
            receipt=receipt,
            header_saved=header.ok,
            lines_saved=lines.ok,
            notifications=[header.notification, lines.notification],
            reconciliation=report,
        )

    async def mark_verified(self) -> mutations.MutationOutcome:
        """Set status to verified and persist only that field, leaving other edits unsaved."""
        self.receipt = self.receipt.model_copy(update={"status": ReceiptStatus.VERIFIED})
        outcome = await mutations.update_receipt(
            self.receipt.id, ReceiptUpdate(status=ReceiptStatus.VERIFIED)
        )
        return outcome

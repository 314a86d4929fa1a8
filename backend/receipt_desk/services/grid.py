"""
Editable line-item grid with per-line arithmetic checks.

The grid does not own the line list: the owner hands it the current lines
and receives the complete new list through ``on_change`` after every
mutating operation. The grid only keeps transient editing state: the cell in
edit mode and the set of selected row positions.
"""

import logging
import math
import uuid
from typing import Callable, Iterable, Optional, Union

from ..models import GridCell, GridField, ReceiptLine
from .formatting import leading_float

logger = logging.getLogger(__name__)

LINE_MISMATCH_TOLERANCE = 0.01

# Enter/Tab navigation order within a row
FIELD_CYCLE: tuple[GridField, ...] = (
    GridField.DESCRIPTION,
    GridField.QTY,
    GridField.UNIT_PRICE,
    GridField.LINE_TOTAL,
    GridField.UNIT,
)

CellValue = Union[str, float, int, None]
LinesCallback = Callable[[list[ReceiptLine]], None]


def coerce_number(value: CellValue) -> float:
    """Convert raw cell input to a number; anything unparseable becomes 0."""
    if isinstance(value, bool) or value is None:
        return 0.0
    if isinstance(value, (int, float)):
        number = float(value)
    else:
        parsed = leading_float(value)
        number = parsed if parsed is not None else 0.0
    return number if math.isfinite(number) else 0.0


def line_has_math_error(line: ReceiptLine) -> bool:
    """True when qty x unit price and the line total differ by more than the tolerance."""
    return abs(line.qty * line.unit_price - line.line_total) > LINE_MISMATCH_TOLERANCE


def mismatched_rows(lines: Iterable[ReceiptLine]) -> list[int]:
    """Positions of all lines whose arithmetic does not add up."""
    return [row for row, line in enumerate(lines) if line_has_math_error(line)]


def reindex(lines: Iterable[ReceiptLine]) -> list[ReceiptLine]:
    """Renumber lines 0..n-1, keeping their relative order."""
    return [line.model_copy(update={"index": i}) for i, line in enumerate(lines)]


def next_cell(cell: GridCell, row_count: int) -> Optional[GridCell]:
    """
    Cell that keyboard commit moves to.

    Advances through FIELD_CYCLE, wrapping to the first field of the next
    row. Returns None when that row does not exist.
    """
    position = FIELD_CYCLE.index(cell.field)
    next_position = (position + 1) % len(FIELD_CYCLE)
    next_row = cell.row + 1 if next_position == 0 else cell.row
    if next_row >= row_count:
        return None
    return GridCell(row=next_row, field=FIELD_CYCLE[next_position])


class ReconciliationGrid:
    """Line-item editor used by the receipt workspace."""

    def __init__(
        self,
        lines: Iterable[ReceiptLine],
        on_change: Optional[LinesCallback] = None,
        receipt_id: str = "",
    ):
        self.lines: list[ReceiptLine] = list(lines)
        self.on_change = on_change
        self.receipt_id = receipt_id
        self.editing_cell: Optional[GridCell] = None
        self.selected_rows: set[int] = set()

    def _line(self, row: int) -> ReceiptLine:
        if not 0 <= row < len(self.lines):
            raise IndexError(f"Row {row} out of range")
        return self.lines[row]

    def _emit(self, lines: list[ReceiptLine]) -> None:
        self.lines = lines
        if self.on_change is not None:
            self.on_change(list(lines))

    # Editing

    def start_edit(self, row: int, field: GridField) -> CellValue:
        """Put a cell in edit mode and return the value the input is seeded with."""
        line = self._line(row)
        self.editing_cell = GridCell(row=row, field=field)
        return getattr(line, GridField(field).value)

    def cancel_edit(self) -> None:
        """Leave edit mode (blur or Escape). Values were already applied on input."""
        self.editing_cell = None

    def commit_edit(self) -> Optional[GridCell]:
        """Leave edit mode (Enter or Tab) and open the next cell, if there is one."""
        current = self.editing_cell
        self.editing_cell = None
        if current is None:
            return None
        self.editing_cell = next_cell(current, len(self.lines))
        return self.editing_cell

    def handle_key(self, key: str) -> Optional[GridCell]:
        """Dispatch a key press from the cell editor."""
        if key in ("Enter", "Tab"):
            return self.commit_edit()
        if key == "Escape":
            self.cancel_edit()
        return self.editing_cell

    def update_value(self, row: int, field: GridField, value: CellValue) -> ReceiptLine:
        """
        Apply one keystroke's worth of input to a cell.

        Editing qty or unit price recomputes the line total, overwriting any
        manual edit. Editing the line total leaves qty and unit price alone.
        """
        field = GridField(field)
        line = self._line(row)

        if field in (GridField.QTY, GridField.UNIT_PRICE):
            updated = line.model_copy(update={field.value: coerce_number(value)})
            updated = updated.model_copy(update={"line_total": updated.qty * updated.unit_price})
        elif field == GridField.LINE_TOTAL:
            updated = line.model_copy(update={"line_total": coerce_number(value)})
        else:
            updated = line.model_copy(update={field.value: "" if value is None else str(value)})

        new_lines = list(self.lines)
        new_lines[row] = updated
        self._emit(new_lines)
        return updated

    # Row operations

    def add_line(self) -> ReceiptLine:
        """Append an empty line (qty 1, unit price 0, total 0)."""
        receipt_id = self.lines[0].receipt_id if self.lines else self.receipt_id
        line = ReceiptLine(
            id=str(uuid.uuid4()),
            receipt_id=receipt_id,
            index=len(self.lines),
            description_raw="",
            qty=1,
            unit_price=0,
            line_total=0,
        )
        self._emit([*self.lines, line])
        return line

    def duplicate_line(self, row: int) -> ReceiptLine:
        """Append a copy of a line; the copy always goes to the end."""
        source = self._line(row)
        line = source.model_copy(
            update={"id": str(uuid.uuid4()), "index": len(self.lines)},
            deep=True,
        )
        self._emit([*self.lines, line])
        return line

    def delete_line(self, row: int) -> None:
        """Remove one line, renumber the rest and clear the selection."""
        self._line(row)
        remaining = [line for i, line in enumerate(self.lines) if i != row]
        self._emit(reindex(remaining))
        self.selected_rows = set()

    def delete_selected(self) -> int:
        """Remove every selected line in one change. Returns how many were removed."""
        remaining = [line for i, line in enumerate(self.lines) if i not in self.selected_rows]
        removed = len(self.lines) - len(remaining)
        self._emit(reindex(remaining))
        self.selected_rows = set()
        logger.debug(f"Deleted {removed} selected line(s)")
        return removed

    def toggle_row_selection(self, row: int) -> bool:
        """Flip a row's selection. Returns True if it is now selected."""
        self._line(row)
        if row in self.selected_rows:
            self.selected_rows.discard(row)
            return False
        self.selected_rows.add(row)
        return True

    # Checks

    def is_mismatched(self, row: int) -> bool:
        return line_has_math_error(self._line(row))

    def mismatched_rows(self) -> list[int]:
        return mismatched_rows(self.lines)

from fastapi import APIRouter, HTTPException

from ..models import (
    GridOperationRequest,
    GridOperationResponse,
    ReconcileRequest,
    ReconciliationReport,
)
from ..services.grid import ReconciliationGrid
from ..services.workspace import reconcile

router = APIRouter(prefix="/grid", tags=["Grid"])


def apply_operation(request: GridOperationRequest) -> ReconciliationGrid:
    """Replay one operation on a grid holding the posted lines and selection."""
    grid = ReconciliationGrid(request.lines, receipt_id=request.receipt_id or "")
    grid.selected_rows = set(request.selected_rows)

    if request.operation == "add_line":
        grid.add_line()
    elif request.operation == "delete_selected":
        grid.delete_selected()
    else:
        if request.row is None:
            raise ValueError(f"{request.operation} requires a row")
        if request.operation == "update_value":
            if request.field is None:
                raise ValueError("update_value requires a field")
            grid.update_value(request.row, request.field, request.value)
        elif request.operation == "duplicate_line":
            grid.duplicate_line(request.row)
        elif request.operation == "delete_line":
            grid.delete_line(request.row)
        elif request.operation == "toggle_row_selection":
            grid.toggle_row_selection(request.row)
    return grid


@router.post("/operations", response_model=GridOperationResponse)
async def grid_operation(request: GridOperationRequest) -> GridOperationResponse:
    """
    Apply one grid operation to a line list.

    The whole new list comes back, along with the selection and the rows
    whose qty x unit price does not match their line total.
    """
    try:
        grid = apply_operation(request)
    except (IndexError, ValueError) as e:
        raise HTTPException(status_code=400, detail=str(e))

    return GridOperationResponse(
        lines=grid.lines,
        selected_rows=sorted(grid.selected_rows),
        mismatched_rows=grid.mismatched_rows(),
    )


@router.post("/reconcile", response_model=ReconciliationReport)
async def grid_reconcile(request: ReconcileRequest) -> ReconciliationReport:
    """Compare line totals with a declared receipt total."""
    return reconcile(request.lines, request.total)

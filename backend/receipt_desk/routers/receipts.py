from datetime import datetime
from typing import Literal, Optional

from fastapi import APIRouter, Depends, File, HTTPException, Query, Response, UploadFile

from ..exceptions import ReceiptNotFoundError
from ..models import (
    CreatedReceipt,
    Notification,
    Receipt,
    ReceiptCreate,
    ReceiptFilters,
    ReceiptLine,
    ReceiptPage,
    ReceiptSave,
    ReceiptUpdate,
    ReceiptWithLines,
    ReconciliationReport,
    SaveResult,
    SortField,
)
from ..services import dashboard, export, mutations, queries
from ..services.extraction import draft_from_extraction, get_extractor
from ..services.mutations import MutationOutcome
from ..services.workspace import ReceiptWorkspace, reconcile
from .ocr import read_image_upload

router = APIRouter(prefix="/receipts", tags=["Receipts"])


def receipt_filters(
    status: Literal["draft", "verified", "all"] = "all",
    low_confidence: bool = False,
    search: Optional[str] = None,
    date_from: Optional[datetime] = None,
    date_to: Optional[datetime] = None,
    vendors: list[str] = Query([]),
    min_total: Optional[float] = None,
    max_total: Optional[float] = None,
) -> ReceiptFilters:
    return ReceiptFilters(
        status=status,
        low_confidence=low_confidence,
        search=search,
        date_from=date_from,
        date_to=date_to,
        vendors=vendors,
        min_total=min_total,
        max_total=max_total,
    )


def _check(outcome: MutationOutcome) -> Notification:
    if not outcome.ok:
        raise HTTPException(status_code=500, detail=outcome.notification.description)
    return outcome.notification


def _download(document: Optional[export.ExportDocument]) -> Response:
    if document is None:
        return Response(status_code=204)
    return Response(
        content=document.content,
        media_type=document.media_type,
        headers={"Content-Disposition": f'attachment; filename="{document.filename}"'},
    )


async def _load_receipt(receipt_id: str) -> ReceiptWithLines:
    try:
        return await queries.get_receipt(receipt_id)
    except ReceiptNotFoundError:
        raise HTTPException(status_code=404, detail="Receipt not found")
    except Exception as e:
        raise HTTPException(status_code=500, detail=f"Failed to fetch receipt: {str(e)}")


async def _fetch_receipts() -> list[Receipt]:
    try:
        return await queries.get_receipts()
    except Exception as e:
        raise HTTPException(status_code=500, detail=f"Failed to fetch receipts: {str(e)}")


async def _filtered_receipts(filters: ReceiptFilters):
    return dashboard.filter_receipts(await _fetch_receipts(), filters)


@router.get("", response_model=ReceiptPage)
async def list_receipts(
    filters: ReceiptFilters = Depends(receipt_filters),
    sort_by: SortField = dashboard.DEFAULT_SORT,
    descending: Optional[bool] = None,
    page: int = Query(1, ge=1),
    page_size: int = Query(dashboard.DEFAULT_PAGE_SIZE, ge=1, le=100),
) -> ReceiptPage:
    """
    List receipts for the dashboard.

    Filters combine; results are sorted (newest first by default) and
    returned one page at a time.
    """
    receipts = await _fetch_receipts()
    return dashboard.list_page(receipts, filters, sort_by, descending, page, page_size)


@router.post("", response_model=CreatedReceipt, status_code=201)
async def create_receipt(receipt: ReceiptCreate) -> CreatedReceipt:
    """Create a receipt together with its lines."""
    outcome = await mutations.create_receipt(receipt)
    _check(outcome)
    return CreatedReceipt(id=outcome.value)


@router.post("/upload", response_model=CreatedReceipt, status_code=201)
async def upload_receipt(file: UploadFile = File(...)) -> CreatedReceipt:
    """
    Run extraction on an uploaded image and store the result as a draft.

    The draft is meant to be reviewed and corrected in the workspace.
    """
    content, media_type = await read_image_upload(file)

    try:
        extracted = await get_extractor().extract(content, media_type)
    except Exception as e:
        raise HTTPException(status_code=500, detail=f"OCR processing failed: {str(e)}")

    outcome = await mutations.create_receipt(draft_from_extraction(extracted))
    _check(outcome)
    return CreatedReceipt(id=outcome.value)


@router.get("/export/csv")
async def export_receipts_csv(filters: ReceiptFilters = Depends(receipt_filters)) -> Response:
    """Download the filtered receipts as CSV. Nothing to export gives 204."""
    receipts = dashboard.sort_receipts(await _filtered_receipts(filters))
    return _download(export.export_receipts_csv(receipts))


@router.get("/export/json")
async def export_receipts_json(filters: ReceiptFilters = Depends(receipt_filters)) -> Response:
    """Download the filtered receipts as JSON."""
    receipts = dashboard.sort_receipts(await _filtered_receipts(filters))
    return _download(export.export_receipts_json(receipts))


@router.get("/{receipt_id}", response_model=ReceiptWithLines)
async def get_receipt(receipt_id: str) -> ReceiptWithLines:
    """Get a receipt with its lines in index order."""
    return await _load_receipt(receipt_id)


@router.get("/{receipt_id}/reconciliation", response_model=ReconciliationReport)
async def get_reconciliation(receipt_id: str) -> ReconciliationReport:
    """Check the stored lines against each other and against the declared total."""
    receipt = await _load_receipt(receipt_id)
    return reconcile(receipt.lines, receipt.total)


@router.put("/{receipt_id}", response_model=SaveResult)
async def save_receipt(receipt_id: str, receipt: ReceiptSave) -> SaveResult:
    """
    Save the edited header and lines of a receipt.

    Header and lines are written independently, so one may succeed while
    the other fails; both outcomes are reported. Mismatches never block.
    """
    workspace = ReceiptWorkspace(ReceiptWithLines(id=receipt_id, **receipt.model_dump()))
    return await workspace.save()


@router.patch("/{receipt_id}", response_model=Notification)
async def update_receipt(receipt_id: str, update: ReceiptUpdate) -> Notification:
    """Overwrite only the header fields present in the body."""
    return _check(await mutations.update_receipt(receipt_id, update))


@router.post("/{receipt_id}/verify", response_model=Notification)
async def verify_receipt(receipt_id: str) -> Notification:
    """Mark a receipt as verified. Only the status is written."""
    workspace = ReceiptWorkspace(await _load_receipt(receipt_id))
    return _check(await workspace.mark_verified())


@router.put("/{receipt_id}/lines", response_model=Notification)
async def replace_lines(receipt_id: str, lines: list[ReceiptLine]) -> Notification:
    """Replace every line of a receipt with the given list."""
    return _check(await mutations.replace_receipt_lines(receipt_id, lines))


@router.delete("/{receipt_id}", response_model=Notification)
async def delete_receipt(receipt_id: str) -> Notification:
    return _check(await mutations.delete_receipt(receipt_id))


@router.get("/{receipt_id}/export/csv")
async def export_receipt_lines_csv(receipt_id: str) -> Response:
    """Download a receipt's lines as CSV. A receipt without lines gives 204."""
    receipt = await _load_receipt(receipt_id)
    return _download(export.export_receipt_lines_csv(receipt.lines, receipt.id))


@router.get("/{receipt_id}/export/json")
async def export_receipt_json(receipt_id: str) -> Response:
    """Download a receipt with its lines as JSON."""
    receipt = await _load_receipt(receipt_id)
    return _download(export.export_receipt_json(receipt))

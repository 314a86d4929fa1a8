from datetime import datetime
from enum import Enum
from typing import Annotated, Any, Literal, Optional, Union

from pydantic import AfterValidator, BaseModel, Field

CURRENCY = "MAD"


class ReceiptStatus(str, Enum):
    """Lifecycle status of a receipt."""
    DRAFT = "draft"
    VERIFIED = "verified"


class GridField(str, Enum):
    """Editable columns of the line-item grid, in keyboard navigation order."""
    DESCRIPTION = "description_raw"
    QTY = "qty"
    UNIT_PRICE = "unit_price"
    LINE_TOTAL = "line_total"
    UNIT = "unit"


class LineConfidences(BaseModel):
    """Per-field OCR certainty for one line. Advisory only."""
    qty: Optional[float] = Field(None, ge=0, le=1)
    unit_price: Optional[float] = Field(None, ge=0, le=1)
    line_total: Optional[float] = Field(None, ge=0, le=1)
    description: Optional[float] = Field(None, ge=0, le=1)


class ReceiptLine(BaseModel):
    """One purchased item on a receipt."""
    id: str
    receipt_id: str = ""
    index: int = Field(0, ge=0)
    description_raw: str = ""
    description_norm: Optional[str] = None
    qty: float = 1
    unit_price: float = 0
    line_total: float = 0  # not constrained to qty * unit_price
    unit: Optional[str] = None
    product_id: Optional[str] = None
    confidences: Optional[LineConfidences] = None


class ReceiptLineCreate(BaseModel):
    """A line for a receipt that has not been persisted yet."""
    index: int = Field(0, ge=0)
    description_raw: str = ""
    description_norm: Optional[str] = None
    qty: float = 1
    unit_price: float = 0
    line_total: float = 0
    unit: Optional[str] = None
    product_id: Optional[str] = None
    confidences: Optional[LineConfidences] = None


class ReceiptBase(BaseModel):
    vendor: str
    vendor_id: Optional[str] = None
    date_time: datetime
    receipt_no: Optional[str] = None
    currency: Literal["MAD"] = CURRENCY
    total: float = 0
    paid: Optional[float] = None
    change: Optional[float] = None
    balance_prev: Optional[float] = None
    balance_curr: Optional[float] = None
    status: ReceiptStatus = ReceiptStatus.DRAFT
    confidence_overall: float = Field(0, ge=0, le=1)
    image_url: Optional[str] = None
    ocr_raw: Optional[Any] = None
    notes: Optional[str] = None


class Receipt(ReceiptBase):
    """One purchase transaction, without its lines."""
    id: str


class ReceiptWithLines(Receipt):
    """A receipt together with its ordered line items."""
    lines: list[ReceiptLine] = []


class ReceiptCreate(ReceiptBase):
    """Request body for creating a receipt, optionally with its lines."""
    lines: list[ReceiptLineCreate] = []


class ReceiptSave(ReceiptBase):
    """Request body for saving the edited state of an existing receipt."""
    lines: list[ReceiptLine] = []


class ReceiptUpdate(BaseModel):
    """Partial header update. Only fields that were explicitly set are sent to the store."""
    vendor: Optional[str] = None
    vendor_id: Optional[str] = None
    date_time: Optional[datetime] = None
    receipt_no: Optional[str] = None
    total: Optional[float] = None
    paid: Optional[float] = None
    change: Optional[float] = None
    balance_prev: Optional[float] = None
    balance_curr: Optional[float] = None
    status: Optional[ReceiptStatus] = None
    confidence_overall: Optional[float] = Field(None, ge=0, le=1)
    image_url: Optional[str] = None
    notes: Optional[str] = None


def _clean_aliases(aliases: list[str]) -> list[str]:
    return [alias.strip() for alias in aliases if alias.strip()]


def _require_name(name: str) -> str:
    name = name.strip()
    if not name:
        raise ValueError("Name is required")
    return name


# Validated only at the vendor/product form boundary.
Name = Annotated[str, AfterValidator(_require_name)]
Aliases = Annotated[list[str], AfterValidator(_clean_aliases)]


class Vendor(BaseModel):
    """A merchant, matched on its name or one of its aliases."""
    id: str
    name: str
    aliases: list[str] = []


class VendorCreate(BaseModel):
    """Request body for creating a vendor."""
    name: Name
    aliases: Aliases = []


class VendorUpdate(BaseModel):
    """Request body for updating a vendor."""
    name: Optional[Name] = None
    aliases: Optional[Aliases] = None


class Product(BaseModel):
    """A canonical product that receipt lines may link to."""
    id: str
    name: str
    aliases: list[str] = []
    default_unit: Optional[str] = None
    category: Optional[str] = None


class ProductCreate(BaseModel):
    """Request body for creating a product."""
    name: Name
    aliases: Aliases = []
    default_unit: Optional[str] = None
    category: Optional[str] = None


class ProductUpdate(BaseModel):
    """Request body for updating a product."""
    name: Optional[Name] = None
    aliases: Optional[Aliases] = None
    default_unit: Optional[str] = None
    category: Optional[str] = None


class ExtractedLine(BaseModel):
    """A line item as produced by an extractor."""
    description: str = ""
    qty: float = 1
    unit_price: float = 0
    line_total: float = 0
    unit: Optional[str] = None
    confidences: Optional[LineConfidences] = None


class ExtractedReceipt(BaseModel):
    """Structured result of running an extractor on one receipt image."""
    vendor: Optional[str] = None
    date_time: Optional[datetime] = None
    receipt_no: Optional[str] = None
    currency: Optional[str] = None
    total: Optional[float] = None
    paid: Optional[float] = None
    change: Optional[float] = None
    confidence_overall: float = Field(0, ge=0, le=1)
    lines: list[ExtractedLine] = []


class ExtractionRequest(BaseModel):
    """Request body for extraction with a base64 image."""
    image_base64: str
    media_type: str = "image/jpeg"


class Notification(BaseModel):
    """User-facing outcome of a mutation."""
    title: str
    description: str
    variant: Literal["default", "destructive"] = "default"


class GridCell(BaseModel):
    """The grid cell currently in edit mode."""
    row: int
    field: GridField


class ReconciliationReport(BaseModel):
    """Line-level and receipt-level arithmetic checks for one receipt."""
    lines_total: float
    total: float
    difference: float
    total_mismatch: bool
    mismatched_rows: list[int] = []


class SaveResult(BaseModel):
    """Outcome of saving a receipt workspace (header and lines are independent)."""
    receipt: ReceiptWithLines
    header_saved: bool
    lines_saved: bool
    notifications: list[Notification] = []
    reconciliation: ReconciliationReport


GridOperationName = Literal[
    "update_value",
    "add_line",
    "duplicate_line",
    "delete_line",
    "delete_selected",
    "toggle_row_selection",
]


class GridOperationRequest(BaseModel):
    """One grid operation applied to a posted line list."""
    lines: list[ReceiptLine] = []
    selected_rows: list[int] = []
    operation: GridOperationName
    row: Optional[int] = None
    field: Optional[GridField] = None
    value: Optional[Union[float, str]] = None
    receipt_id: Optional[str] = None


class GridOperationResponse(BaseModel):
    """Line list and selection after a grid operation."""
    lines: list[ReceiptLine]
    selected_rows: list[int]
    mismatched_rows: list[int]


class ReconcileRequest(BaseModel):
    """Request body for a stateless reconciliation check."""
    lines: list[ReceiptLine] = []
    total: float = 0


SortField = Literal["date_time", "vendor", "receipt_no", "total", "status", "confidence_overall"]


class ReceiptFilters(BaseModel):
    """Dashboard filters. Unset fields do not filter."""
    status: Literal["draft", "verified", "all"] = "all"
    low_confidence: bool = False
    search: Optional[str] = None
    date_from: Optional[datetime] = None
    date_to: Optional[datetime] = None
    vendors: list[str] = []
    min_total: Optional[float] = None
    max_total: Optional[float] = None


class ReceiptPage(BaseModel):
    """One page of the receipt listing."""
    items: list[Receipt]
    total: int
    page: int
    page_size: int
    page_count: int


class Kpis(BaseModel):
    """Dashboard key figures."""
    total_amount: float
    monthly_receipts: int
    verified_percent: float
    avg_confidence: float


class CreatedReceipt(BaseModel):
    """Response for a created receipt."""
    id: str

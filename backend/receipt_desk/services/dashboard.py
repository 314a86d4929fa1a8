"""Receipt listing: filtering, sorting, pagination and KPI figures."""

import logging
import math
from datetime import datetime, timezone
from typing import Optional

from ..models import Kpis, Receipt, ReceiptFilters, ReceiptPage, ReceiptStatus, SortField

logger = logging.getLogger(__name__)

LOW_CONFIDENCE_THRESHOLD = 0.85
DEFAULT_PAGE_SIZE = 10
DEFAULT_SORT: SortField = "date_time"


def _aware(value: datetime) -> datetime:
    # naive datetimes are treated as UTC
    return value if value.tzinfo else value.replace(tzinfo=timezone.utc)


def filter_receipts(receipts: list[Receipt], filters: ReceiptFilters) -> list[Receipt]:
    """Apply every set filter; unset filters keep all receipts."""
    result = receipts

    if filters.status != "all":
        result = [r for r in result if r.status.value == filters.status]

    if filters.low_confidence:
        result = [r for r in result if r.confidence_overall < LOW_CONFIDENCE_THRESHOLD]

    if filters.search:
        needle = filters.search.lower()
        result = [
            r for r in result
            if needle in r.vendor.lower() or (r.receipt_no and needle in r.receipt_no.lower())
        ]

    if filters.date_from:
        start = _aware(filters.date_from)
        result = [r for r in result if _aware(r.date_time) >= start]

    if filters.date_to:
        end = _aware(filters.date_to)
        result = [r for r in result if _aware(r.date_time) <= end]

    if filters.vendors:
        wanted = set(filters.vendors)
        result = [r for r in result if r.vendor in wanted]

    if filters.min_total is not None:
        result = [r for r in result if r.total >= filters.min_total]

    if filters.max_total is not None:
        result = [r for r in result if r.total <= filters.max_total]

    return result


def sort_receipts(
    receipts: list[Receipt],
    sort_by: SortField = DEFAULT_SORT,
    descending: Optional[bool] = None,
) -> list[Receipt]:
    """
    Sort receipts by one column.

    Dates sort newest first unless ``descending`` says otherwise; every other
    column sorts ascending by default. Missing values always sort last.
    """
    if descending is None:
        descending = sort_by == "date_time"

    def key(receipt: Receipt):
        value = getattr(receipt, sort_by)
        if isinstance(value, ReceiptStatus):
            value = value.value
        elif isinstance(value, str):
            value = value.lower()
        elif isinstance(value, datetime):
            value = _aware(value)
        return value

    present = [r for r in receipts if getattr(r, sort_by) is not None]
    missing = [r for r in receipts if getattr(r, sort_by) is None]
    return sorted(present, key=key, reverse=descending) + missing


def paginate(receipts: list[Receipt], page: int = 1, page_size: int = DEFAULT_PAGE_SIZE) -> ReceiptPage:
    """Slice one 1-based page. Pages past the end are empty."""
    page = max(page, 1)
    page_size = max(page_size, 1)
    start = (page - 1) * page_size
    return ReceiptPage(
        items=receipts[start:start + page_size],
        total=len(receipts),
        page=page,
        page_size=page_size,
        page_count=math.ceil(len(receipts) / page_size),
    )


def list_page(
    receipts: list[Receipt],
    filters: ReceiptFilters,
    sort_by: SortField = DEFAULT_SORT,
    descending: Optional[bool] = None,
    page: int = 1,
    page_size: int = DEFAULT_PAGE_SIZE,
) -> ReceiptPage:
    filtered = filter_receipts(receipts, filters)
    logger.debug(f"{len(filtered)} of {len(receipts)} receipts match filters")
    return paginate(sort_receipts(filtered, sort_by, descending), page, page_size)


def compute_kpis(receipts: list[Receipt], now: Optional[datetime] = None) -> Kpis:
    """
    Dashboard figures over all receipts.

    - total_amount: sum of verified receipt totals
    - monthly_receipts: receipts dated in the current calendar month
    - verified_percent: share of verified receipts, 0-100
    - avg_confidence: mean overall confidence, 0-100
    """
    now = now or datetime.now(timezone.utc)
    verified = [r for r in receipts if r.status == ReceiptStatus.VERIFIED]
    this_month = [
        r for r in receipts
        if r.date_time.year == now.year and r.date_time.month == now.month
    ]
    count = len(receipts)

    return Kpis(
        total_amount=sum((r.total for r in verified), 0.0),
        monthly_receipts=len(this_month),
        verified_percent=len(verified) / count * 100 if count else 0.0,
        avg_confidence=sum(r.confidence_overall for r in receipts) / count * 100 if count else 0.0,
    )

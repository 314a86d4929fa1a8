"""
Supabase REST client for vendors, products, receipts and receipt lines.

Every call opens its own ``httpx.AsyncClient``. Transport errors, non-2xx
responses and bodies that are not JSON or do not map to a model all raise
StoreError; nothing is retried.
"""

import asyncio
import logging
from typing import Any, Callable, Optional, TypeVar

import httpx

from ..config import get_settings
from ..exceptions import ReceiptNotFoundError, StoreError, StoreNotConfiguredError
from ..models import (
    Product,
    ProductCreate,
    ProductUpdate,
    Receipt,
    ReceiptCreate,
    ReceiptLine,
    ReceiptUpdate,
    ReceiptWithLines,
    Vendor,
    VendorCreate,
    VendorUpdate,
)
from . import mapping

logger = logging.getLogger(__name__)

T = TypeVar("T")

# PostgREST needs a filter on DELETE; every id differs from the nil uuid.
NIL_UUID = "00000000-0000-0000-0000-000000000000"


async def get_supabase_headers() -> dict[str, str]:
    """Get headers for Supabase REST API calls."""
    settings = get_settings()
    return {
        "apikey": settings.supabase_service_key,
        "Authorization": f"Bearer {settings.supabase_service_key}",
        "Content-Type": "application/json",
        "Prefer": "return=representation",
    }


def _table_url(table: str, operation: str) -> str:
    settings = get_settings()
    if not settings.supabase_url or not settings.supabase_service_key:
        raise StoreNotConfiguredError(operation)
    return f"{settings.supabase_url}/rest/v1/{table}"


def _error_message(response: httpx.Response) -> str:
    try:
        data = response.json()
    except ValueError:
        return response.text or f"HTTP {response.status_code}"
    if isinstance(data, dict):
        return data.get("message") or data.get("error") or str(data)
    return str(data)


async def _request(
    method: str,
    table: str,
    operation: str,
    params: Optional[dict[str, str]] = None,
    json: Any = None,
    prefer: Optional[str] = None,
) -> list[dict]:
    """Issue one PostgREST call and return the affected/selected rows."""
    url = _table_url(table, operation)
    headers = await get_supabase_headers()
    if prefer:
        headers = {**headers, "Prefer": prefer}

    async with httpx.AsyncClient(timeout=get_settings().request_timeout) as client:
        try:
            response = await client.request(method, url, headers=headers, params=params, json=json)
        except httpx.RequestError as e:
            logger.error(f"{operation} failed: {e}")
            raise StoreError(operation, str(e)) from e

    if response.status_code not in (200, 201, 204):
        message = _error_message(response)
        logger.error(f"{operation} failed with HTTP {response.status_code}: {message}")
        raise StoreError(operation, message, status_code=response.status_code)

    if response.status_code == 204 or not response.content:
        return []
    try:
        data = response.json()
    except ValueError as e:
        logger.error(f"{operation} returned a non-JSON body: {e}")
        raise StoreError(operation, f"Invalid response from store: {e}", status_code=response.status_code) from e
    return data if isinstance(data, list) else [data]


def _map_rows(rows: list[dict], mapper: Callable[[dict], T], operation: str) -> list[T]:
    """Map rows to models, reporting malformed rows as StoreError."""
    try:
        return [mapper(row) for row in rows]
    except (KeyError, TypeError, AttributeError, ValueError) as e:
        logger.error(f"{operation} returned a malformed row: {e!r}")
        raise StoreError(operation, f"Malformed row from store: {e!r}") from e


def _first_row(rows: list[dict], operation: str) -> dict:
    if not rows or not isinstance(rows[0], dict):
        raise StoreError(operation, "Store returned no row")
    return rows[0]


def _map_first(rows: list[dict], mapper: Callable[[dict], T], operation: str) -> T:
    return _map_rows([_first_row(rows, operation)], mapper, operation)[0]


# Generic row helpers (also used by demo seeding)

async def select_rows(table: str, operation: str, params: dict[str, str]) -> list[dict]:
    return await _request("GET", table, operation, params={"select": "*", **params})


async def insert_rows(
    table: str,
    rows: list[dict],
    operation: str,
    on_conflict: Optional[str] = None,
) -> list[dict]:
    """Insert rows, or upsert them on ``on_conflict`` columns when given."""
    if not rows:
        return []
    params = None
    prefer = None
    if on_conflict:
        params = {"on_conflict": on_conflict}
        prefer = "resolution=merge-duplicates,return=representation"
    return await _request("POST", table, operation, params=params, json=rows, prefer=prefer)


async def delete_all_rows(table: str) -> None:
    await _request("DELETE", table, f"clear {table}", params={"id": f"neq.{NIL_UUID}"})


# Vendors

async def list_vendors() -> list[Vendor]:
    rows = await select_rows("vendors", "fetch vendors", {"order": "name.asc"})
    return _map_rows(rows, mapping.vendor_from_row, "fetch vendors")


async def create_vendor(vendor: VendorCreate) -> Vendor:
    rows = await insert_rows("vendors", [mapping.vendor_to_row(vendor)], "create vendor")
    return _map_first(rows, mapping.vendor_from_row, "create vendor")


async def update_vendor(vendor_id: str, vendor: VendorUpdate) -> None:
    await _request(
        "PATCH", "vendors", "update vendor",
        params={"id": f"eq.{vendor_id}"},
        json=mapping.vendor_to_row(vendor),
    )


async def delete_vendor(vendor_id: str) -> None:
    await _request("DELETE", "vendors", "delete vendor", params={"id": f"eq.{vendor_id}"})


# Products

async def list_products() -> list[Product]:
    rows = await select_rows("products", "fetch products", {"order": "name.asc"})
    return _map_rows(rows, mapping.product_from_row, "fetch products")


async def create_product(product: ProductCreate) -> Product:
    rows = await insert_rows("products", [mapping.product_to_row(product)], "create product")
    return _map_first(rows, mapping.product_from_row, "create product")


async def update_product(product_id: str, product: ProductUpdate) -> None:
    await _request(
        "PATCH", "products", "update product",
        params={"id": f"eq.{product_id}"},
        json=mapping.product_to_row(product),
    )


async def delete_product(product_id: str) -> None:
    await _request("DELETE", "products", "delete product", params={"id": f"eq.{product_id}"})


# Receipts

async def list_receipts() -> list[Receipt]:
    """All receipts, newest first."""
    rows = await select_rows("receipts", "fetch receipts", {"order": "date_time.desc"})
    return _map_rows(rows, mapping.receipt_from_row, "fetch receipts")


async def fetch_receipt_lines(receipt_id: str) -> list[ReceiptLine]:
    rows = await select_rows(
        "receipt_lines", "fetch receipt lines",
        {"receipt_id": f"eq.{receipt_id}", "order": "index.asc"},
    )
    return _map_rows(rows, mapping.line_from_row, "fetch receipt lines")


async def fetch_receipt(receipt_id: str) -> ReceiptWithLines:
    """Fetch a receipt and its lines concurrently."""
    receipt_rows, lines = await asyncio.gather(
        select_rows("receipts", "fetch receipt", {"id": f"eq.{receipt_id}"}),
        fetch_receipt_lines(receipt_id),
    )
    if not receipt_rows:
        raise ReceiptNotFoundError(receipt_id)

    receipt = _map_first(receipt_rows, mapping.receipt_from_row, "fetch receipt")
    return ReceiptWithLines(**receipt.model_dump(), lines=lines)


async def create_receipt(receipt: ReceiptCreate) -> str:
    """Insert a receipt, then its lines. Returns the new receipt id."""
    rows = await insert_rows("receipts", [mapping.receipt_to_row(receipt)], "create receipt")
    receipt_id = _first_row(rows, "create receipt").get("id")
    if not receipt_id:
        raise StoreError("create receipt", "Failed to create receipt")

    if receipt.lines:
        await insert_rows("receipt_lines", mapping.lines_to_rows(receipt.lines, receipt_id), "create receipt lines")

    logger.info(f"Created receipt {receipt_id} with {len(receipt.lines)} line(s)")
    return receipt_id


async def update_receipt(receipt_id: str, update: ReceiptUpdate) -> None:
    """Overwrite the given header columns. Last write wins."""
    await _request(
        "PATCH", "receipts", "update receipt",
        params={"id": f"eq.{receipt_id}"},
        json=mapping.receipt_update_to_row(update),
    )


async def delete_receipt(receipt_id: str) -> None:
    await _request("DELETE", "receipts", "delete receipt", params={"id": f"eq.{receipt_id}"})


async def replace_receipt_lines(receipt_id: str, lines: list[ReceiptLine]) -> None:
    """Whole-replace a receipt's lines: delete all existing rows, insert the current set."""
    await _request(
        "DELETE", "receipt_lines", "update lines",
        params={"receipt_id": f"eq.{receipt_id}"},
    )
    if lines:
        await insert_rows("receipt_lines", mapping.lines_to_rows(lines, receipt_id), "update lines")

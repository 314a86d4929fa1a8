"""
Mutation boundary.

Each function runs one store write, invalidates the cached reads it affects
and reports the outcome as a Notification. Store errors are caught here and
turned into a destructive notification carrying the operation name and the
underlying message; they never propagate further and are not retried.
"""

import logging
from dataclasses import dataclass
from typing import Any, Awaitable, Optional

from ..exceptions import StoreError
from ..models import (
    Notification,
    ProductCreate,
    ProductUpdate,
    ReceiptCreate,
    ReceiptLine,
    ReceiptUpdate,
    VendorCreate,
    VendorUpdate,
)
from . import store
from .cache import cache_delete
from .queries import PRODUCTS_KEY, RECEIPTS_KEY, VENDORS_KEY, receipt_key

logger = logging.getLogger(__name__)


@dataclass
class MutationOutcome:
    ok: bool
    notification: Notification
    value: Any = None
    error: Optional[StoreError] = None


async def run_mutation(
    operation: str,
    action: Awaitable[Any],
    success: Notification,
    invalidate: tuple[str, ...] = (),
) -> MutationOutcome:
    """Await a store write and convert its result or failure into an outcome."""
    try:
        value = await action
    except StoreError as e:
        logger.error(f"Failed to {operation}: {e.message}")
        return MutationOutcome(
            ok=False,
            notification=Notification(
                title="Error",
                description=f"Failed to {operation}: {e.message}",
                variant="destructive",
            ),
            error=e,
        )

    await cache_delete(*invalidate)
    logger.info(f"{operation} succeeded")
    return MutationOutcome(ok=True, notification=success, value=value)


# Receipts

async def create_receipt(receipt: ReceiptCreate) -> MutationOutcome:
    return await run_mutation(
        "create receipt",
        store.create_receipt(receipt),
        Notification(title="Receipt created", description="The receipt has been saved successfully."),
        invalidate=(RECEIPTS_KEY,),
    )


async def update_receipt(receipt_id: str, update: ReceiptUpdate) -> MutationOutcome:
    return await run_mutation(
        "update receipt",
        store.update_receipt(receipt_id, update),
        Notification(title="Receipt updated", description="Changes have been saved."),
        invalidate=(RECEIPTS_KEY, receipt_key(receipt_id)),
    )


async def delete_receipt(receipt_id: str) -> MutationOutcome:
    return await run_mutation(
        "delete receipt",
        store.delete_receipt(receipt_id),
        Notification(title="Receipt deleted", description="The receipt has been removed."),
        invalidate=(RECEIPTS_KEY, receipt_key(receipt_id)),
    )


async def replace_receipt_lines(receipt_id: str, lines: list[ReceiptLine]) -> MutationOutcome:
    return await run_mutation(
        "update lines",
        store.replace_receipt_lines(receipt_id, lines),
        Notification(title="Lines updated", description="Changes have been saved."),
        invalidate=(receipt_key(receipt_id),),
    )


# Vendors

async def create_vendor(vendor: VendorCreate) -> MutationOutcome:
    return await run_mutation(
        "create vendor",
        store.create_vendor(vendor),
        Notification(title="Vendor created", description="The vendor has been added."),
        invalidate=(VENDORS_KEY,),
    )


async def update_vendor(vendor_id: str, vendor: VendorUpdate) -> MutationOutcome:
    return await run_mutation(
        "update vendor",
        store.update_vendor(vendor_id, vendor),
        Notification(title="Vendor updated", description="Changes have been saved."),
        invalidate=(VENDORS_KEY,),
    )


async def delete_vendor(vendor_id: str) -> MutationOutcome:
    return await run_mutation(
        "delete vendor",
        store.delete_vendor(vendor_id),
        Notification(title="Vendor deleted", description="The vendor has been removed."),
        invalidate=(VENDORS_KEY,),
    )


# Products

async def create_product(product: ProductCreate) -> MutationOutcome:
    return await run_mutation(
        "create product",
        store.create_product(product),
        Notification(title="Product created", description="The product has been added."),
        invalidate=(PRODUCTS_KEY,),
    )


async def update_product(product_id: str, product: ProductUpdate) -> MutationOutcome:
    return await run_mutation(
        "update product",
        store.update_product(product_id, product),
        Notification(title="Product updated", description="Changes have been saved."),
        invalidate=(PRODUCTS_KEY,),
    )


async def delete_product(product_id: str) -> MutationOutcome:
    return await run_mutation(
        "delete product",
        store.delete_product(product_id),
        Notification(title="Product deleted", description="The product has been removed."),
        invalidate=(PRODUCTS_KEY,),
    )

"""Cached reads. Each query has a cache key that mutations invalidate."""

from ..models import Product, Receipt, ReceiptWithLines, Vendor
from . import store
from .cache import cache_delete_pattern, cache_get_json, cache_set_json

RECEIPTS_KEY = "receipts:list"
VENDORS_KEY = "vendors:list"
PRODUCTS_KEY = "products:list"

CACHE_NAMESPACES = ("receipts", "vendors", "products")


def receipt_key(receipt_id: str) -> str:
    return f"receipts:detail:{receipt_id}"


async def invalidate_all() -> None:
    """Drop every cached read, for bulk writes such as demo seeding."""
    for namespace in CACHE_NAMESPACES:
        await cache_delete_pattern(f"{namespace}:*")


async def get_receipts() -> list[Receipt]:
    cached = await cache_get_json(RECEIPTS_KEY)
    if cached is not None:
        return [Receipt.model_validate(item) for item in cached]
    receipts = await store.list_receipts()
    await cache_set_json(RECEIPTS_KEY, [r.model_dump(mode="json") for r in receipts])
    return receipts


async def get_receipt(receipt_id: str) -> ReceiptWithLines:
    key = receipt_key(receipt_id)
    cached = await cache_get_json(key)
    if cached is not None:
        return ReceiptWithLines.model_validate(cached)
    receipt = await store.fetch_receipt(receipt_id)
    await cache_set_json(key, receipt.model_dump(mode="json"))
    return receipt


async def get_vendors() -> list[Vendor]:
    cached = await cache_get_json(VENDORS_KEY)
    if cached is not None:
        return [Vendor.model_validate(item) for item in cached]
    vendors = await store.list_vendors()
    await cache_set_json(VENDORS_KEY, [v.model_dump(mode="json") for v in vendors])
    return vendors


async def get_products() -> list[Product]:
    cached = await cache_get_json(PRODUCTS_KEY)
    if cached is not None:
        return [Product.model_validate(item) for item in cached]
    products = await store.list_products()
    await cache_set_json(PRODUCTS_KEY, [p.model_dump(mode="json") for p in products])
    return products

"""Tests for the mutation boundary."""

import pytest
from unittest.mock import patch, AsyncMock, MagicMock

from receipt_desk.exceptions import StoreError, StoreNotConfiguredError
from receipt_desk.models import ReceiptUpdate, Vendor, VendorCreate
from receipt_desk.services import mutations
from receipt_desk.services.queries import RECEIPTS_KEY, VENDORS_KEY, receipt_key


class TestRunMutation:
    """Tests for outcome and notification handling."""

    @pytest.mark.asyncio
    async def test_success_returns_value_and_notification(self):
        with patch("receipt_desk.services.store.create_receipt", new_callable=AsyncMock, return_value="r9"):
            outcome = await mutations.create_receipt(MagicMock())

        assert outcome.ok is True
        assert outcome.value == "r9"
        assert outcome.notification.title == "Receipt created"
        assert outcome.notification.variant == "default"

    @pytest.mark.asyncio
    async def test_store_error_becomes_destructive_notification(self):
        with patch(
            "receipt_desk.services.store.delete_vendor",
            new_callable=AsyncMock,
            side_effect=StoreError("delete vendor", "violates foreign key constraint"),
        ):
            outcome = await mutations.delete_vendor("v1")

        assert outcome.ok is False
        assert outcome.notification.title == "Error"
        assert outcome.notification.variant == "destructive"
        assert outcome.notification.description == "Failed to delete vendor: violates foreign key constraint"
        assert isinstance(outcome.error, StoreError)

    @pytest.mark.asyncio
    async def test_unconfigured_store_is_reported(self):
        with patch(
            "receipt_desk.services.store.update_receipt",
            new_callable=AsyncMock,
            side_effect=StoreNotConfiguredError("update receipt"),
        ):
            outcome = await mutations.update_receipt("r1", ReceiptUpdate(total=1.0))

        assert outcome.notification.description == "Failed to update receipt: Supabase is not configured"

    @pytest.mark.asyncio
    async def test_other_errors_propagate(self):
        with patch("receipt_desk.services.store.delete_receipt", new_callable=AsyncMock, side_effect=RuntimeError("bug")):
            with pytest.raises(RuntimeError):
                await mutations.delete_receipt("r1")


class TestInvalidation:
    """Tests for cache invalidation after writes."""

    @pytest.mark.asyncio
    async def test_update_receipt_invalidates_listing_and_detail(self, fake_redis):
        fake_redis.data[RECEIPTS_KEY] = "[]"
        fake_redis.data[receipt_key("r1")] = "{}"
        fake_redis.data[VENDORS_KEY] = "[]"

        with patch("receipt_desk.services.store.update_receipt", new_callable=AsyncMock):
            await mutations.update_receipt("r1", ReceiptUpdate(total=1.0))

        assert RECEIPTS_KEY not in fake_redis.data
        assert receipt_key("r1") not in fake_redis.data
        assert VENDORS_KEY in fake_redis.data

    @pytest.mark.asyncio
    async def test_replace_lines_invalidates_detail_only(self, fake_redis):
        fake_redis.data[RECEIPTS_KEY] = "[]"
        fake_redis.data[receipt_key("r1")] = "{}"

        with patch("receipt_desk.services.store.replace_receipt_lines", new_callable=AsyncMock):
            outcome = await mutations.replace_receipt_lines("r1", [])

        assert outcome.notification.title == "Lines updated"
        assert RECEIPTS_KEY in fake_redis.data
        assert receipt_key("r1") not in fake_redis.data

    @pytest.mark.asyncio
    async def test_failure_keeps_cache(self, fake_redis):
        fake_redis.data[VENDORS_KEY] = "[]"

        with patch(
            "receipt_desk.services.store.create_vendor",
            new_callable=AsyncMock,
            side_effect=StoreError("create vendor", "duplicate"),
        ):
            await mutations.create_vendor(VendorCreate(name="Metro"))

        assert VENDORS_KEY in fake_redis.data

    @pytest.mark.asyncio
    async def test_create_vendor_invalidates_vendors(self, fake_redis):
        fake_redis.data[VENDORS_KEY] = "[]"

        with patch(
            "receipt_desk.services.store.create_vendor",
            new_callable=AsyncMock,
            return_value=Vendor(id="v1", name="Metro"),
        ):
            outcome = await mutations.create_vendor(VendorCreate(name="Metro"))

        assert outcome.value.id == "v1"
        assert VENDORS_KEY not in fake_redis.data

    @pytest.mark.asyncio
    async def test_delete_receipt_invalidates_its_detail(self, fake_redis):
        fake_redis.data[RECEIPTS_KEY] = "[]"
        fake_redis.data[receipt_key("r1")] = "{}"
        fake_redis.data[receipt_key("r2")] = "{}"

        with patch("receipt_desk.services.store.delete_receipt", new_callable=AsyncMock):
            await mutations.delete_receipt("r1")

        assert list(fake_redis.data) == [receipt_key("r2")]


class TestMalformedResponses:
    """Tests for store responses that cannot be decoded or mapped."""

    @pytest.mark.asyncio
    async def test_malformed_vendor_row_becomes_notification(self):
        with patch("receipt_desk.services.store.insert_rows", new_callable=AsyncMock, return_value=[{"name": "Metro"}]):
            outcome = await mutations.create_vendor(VendorCreate(name="Metro"))

        assert outcome.ok is False
        assert outcome.notification.variant == "destructive"
        assert outcome.notification.description.startswith("Failed to create vendor: Malformed row from store")

    @pytest.mark.asyncio
    async def test_empty_insert_response_becomes_notification(self):
        with patch("receipt_desk.services.store.insert_rows", new_callable=AsyncMock, return_value=[]):
            outcome = await mutations.create_vendor(VendorCreate(name="Metro"))

        assert outcome.notification.description == "Failed to create vendor: Store returned no row"

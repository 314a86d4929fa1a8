"""Tests for demo data seeding."""

import pytest
from unittest.mock import patch, AsyncMock

from receipt_desk.exceptions import StoreError
from receipt_desk.services import seed
from receipt_desk.services.grid import mismatched_rows
from receipt_desk.services.queries import RECEIPTS_KEY, receipt_key
from receipt_desk.services.workspace import reconcile


def fake_insert_rows():
    """insert_rows stand-in that assigns ids like the store would."""
    async def insert(table, rows, operation, on_conflict=None):
        return [{**row, "id": f"{table}-{i}"} for i, row in enumerate(rows)]
    return AsyncMock(side_effect=insert)


class TestDemoData:
    """Tests for the demo data set itself."""

    def test_counts(self):
        receipts = seed.demo_receipts()

        assert len(seed.DEMO_VENDORS) == 4
        assert len(seed.DEMO_PRODUCTS) == 7
        assert len(receipts) == 6
        assert sum(len(r.lines) for r in receipts) == 16

    def test_demo_lines_add_up(self):
        for receipt in seed.demo_receipts():
            assert mismatched_rows(receipt.lines) == []

    def test_first_receipt_matches_total(self):
        first = seed.demo_receipts()[0]

        assert reconcile(first.lines, first.total).total_mismatch is False


class TestSeedDemoData:
    """Tests for seeding through the store."""

    @pytest.mark.asyncio
    async def test_seed_inserts_all_tables(self, fake_redis):
        fake_redis.data[RECEIPTS_KEY] = "[]"
        fake_redis.data[receipt_key("r1")] = "{}"
        mock_insert = fake_insert_rows()

        with patch("receipt_desk.services.store.insert_rows", mock_insert):
            summary = await seed.seed_demo_data()

        assert summary == {"vendors": 4, "products": 7, "receipts": 6, "lines": 16}
        tables = [call.args[0] for call in mock_insert.call_args_list]
        assert tables == ["vendors", "products", "receipts", "receipt_lines"]
        assert mock_insert.call_args_list[0].kwargs["on_conflict"] == "name"
        assert fake_redis.data == {}

    @pytest.mark.asyncio
    async def test_receipts_link_vendors_and_lines_link_receipts(self):
        mock_insert = fake_insert_rows()

        with patch("receipt_desk.services.store.insert_rows", mock_insert):
            await seed.seed_demo_data()

        receipt_rows = mock_insert.call_args_list[2].args[1]
        assert receipt_rows[0]["vendor_id"] == "vendors-0"
        assert receipt_rows[2]["vendor_id"] == "vendors-1"
        carrefour = next(row for row in receipt_rows if row["vendor"] == "Carrefour")
        assert carrefour["vendor_id"] is None

        line_rows = mock_insert.call_args_list[3].args[1]
        assert {row["receipt_id"] for row in line_rows} == {f"receipts-{i}" for i in range(6)}
        assert line_rows[0]["confidences"] == {"qty": 0.95, "unitPrice": 0.98, "lineTotal": 0.99, "description": 0.92}

    @pytest.mark.asyncio
    async def test_store_failure_propagates(self):
        with patch(
            "receipt_desk.services.store.insert_rows",
            AsyncMock(side_effect=StoreError("seed vendors", "permission denied")),
        ):
            with pytest.raises(StoreError):
                await seed.seed_demo_data()


class TestClearAndReset:
    """Tests for clearing and resetting data."""

    @pytest.mark.asyncio
    async def test_clear_deletes_children_first(self):
        with patch("receipt_desk.services.store.delete_all_rows", new_callable=AsyncMock) as mock_delete:
            await seed.clear_all_data()

        tables = [call.args[0] for call in mock_delete.call_args_list]
        assert tables == ["receipt_lines", "receipts", "products", "vendors"]

    @pytest.mark.asyncio
    async def test_reset_clears_then_seeds(self):
        with patch("receipt_desk.services.store.delete_all_rows", new_callable=AsyncMock) as mock_delete, \
             patch("receipt_desk.services.store.insert_rows", fake_insert_rows()):
            summary = await seed.reset_demo_data()

        assert mock_delete.call_count == 4
        assert summary["receipts"] == 6

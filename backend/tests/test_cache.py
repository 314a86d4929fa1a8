"""Tests for the Redis read cache."""

import json

import pytest
from unittest.mock import patch, AsyncMock, MagicMock
from redis.exceptions import ConnectionError as RedisConnectionError

from receipt_desk.services import cache, mutations, queries
from receipt_desk.services.cache import get_redis
from receipt_desk.models import ReceiptUpdate


class TestCacheHelpers:
    """Tests for JSON get/set and deletion."""

    @pytest.mark.asyncio
    async def test_set_then_get(self, fake_redis):
        await cache.cache_set_json("vendors:list", [{"id": "v1", "name": "Marjane"}], ttl=60)

        assert await cache.cache_get_json("vendors:list") == [{"id": "v1", "name": "Marjane"}]
        assert fake_redis.ttls["vendors:list"] == 60

    @pytest.mark.asyncio
    async def test_default_ttl_comes_from_settings(self, fake_redis):
        with patch("receipt_desk.services.cache.get_settings") as mock_settings:
            mock_settings.return_value = MagicMock(cache_ttl_seconds=15)
            await cache.cache_set_json("products:list", [])

        assert fake_redis.ttls["products:list"] == 15

    @pytest.mark.asyncio
    async def test_missing_key_returns_none(self):
        assert await cache.cache_get_json("vendors:list") is None

    @pytest.mark.asyncio
    async def test_unreadable_entry_is_dropped(self, fake_redis):
        fake_redis.data["vendors:list"] = "{not json"

        assert await cache.cache_get_json("vendors:list") is None
        assert "vendors:list" not in fake_redis.data

    @pytest.mark.asyncio
    async def test_delete_pattern_keeps_other_namespaces(self, fake_redis):
        fake_redis.data.update({
            "receipts:list": "[]",
            "receipts:detail:r1": "{}",
            "vendors:list": "[]",
        })

        await cache.cache_delete_pattern("receipts:*")

        assert list(fake_redis.data) == ["vendors:list"]

    @pytest.mark.asyncio
    async def test_redis_errors_are_a_miss(self):
        client = AsyncMock()
        client.get.side_effect = RedisConnectionError("Connection refused")
        client.set.side_effect = RedisConnectionError("Connection refused")
        client.delete.side_effect = RedisConnectionError("Connection refused")

        with patch("receipt_desk.services.cache.get_redis", new_callable=AsyncMock, return_value=client):
            assert await cache.cache_get_json("vendors:list") is None
            await cache.cache_set_json("vendors:list", [], ttl=30)
            await cache.cache_delete("vendors:list")

        client.set.assert_awaited_once()


class TestGetRedis:
    """Tests for client creation from settings."""

    @pytest.mark.asyncio
    async def test_no_url_disables_caching(self):
        with patch("receipt_desk.services.cache.get_settings") as mock_settings, \
                patch("receipt_desk.services.cache._redis_client", None):
            mock_settings.return_value = MagicMock(redis_url="")

            assert await get_redis() is None

    @pytest.mark.asyncio
    async def test_client_is_created_once(self):
        with patch("receipt_desk.services.cache.get_settings") as mock_settings, \
                patch("receipt_desk.services.cache._redis_client", None), \
                patch("receipt_desk.services.cache.aioredis.from_url") as mock_from_url:
            mock_settings.return_value = MagicMock(redis_url="redis://localhost:6379/0")

            first = await get_redis()
            second = await get_redis()

        assert first is second
        mock_from_url.assert_called_once_with("redis://localhost:6379/0", decode_responses=True)


class TestCachedQueries:
    """Tests for reads served from and invalidated in the shared cache."""

    @pytest.mark.asyncio
    async def test_receipt_is_stored_as_json(self, fake_redis, sample_receipt):
        with patch("receipt_desk.services.store.fetch_receipt", new_callable=AsyncMock, return_value=sample_receipt):
            await queries.get_receipt("r1")

        stored = json.loads(fake_redis.data["receipts:detail:r1"])
        assert stored["id"] == "r1"
        assert stored["date_time"] == "2025-10-20T14:30:00Z"

    @pytest.mark.asyncio
    async def test_cached_receipt_round_trips(self, sample_receipt):
        with patch("receipt_desk.services.store.fetch_receipt", new_callable=AsyncMock) as mock_fetch:
            mock_fetch.return_value = sample_receipt
            await queries.get_receipt("r1")
            cached = await queries.get_receipt("r1")

        mock_fetch.assert_awaited_once()
        assert cached == sample_receipt

    @pytest.mark.asyncio
    async def test_write_from_another_worker_is_seen(self, sample_receipt):
        """A save clears the shared entry, so the next read goes to the store."""
        updated = sample_receipt.model_copy(update={"total": 220.0})

        with patch("receipt_desk.services.store.fetch_receipt", new_callable=AsyncMock) as mock_fetch:
            mock_fetch.side_effect = [sample_receipt, updated]
            assert (await queries.get_receipt("r1")).total == 216.0

            with patch("receipt_desk.services.store.update_receipt", new_callable=AsyncMock):
                await mutations.update_receipt("r1", ReceiptUpdate(total=220.0))

            assert (await queries.get_receipt("r1")).total == 220.0

        assert mock_fetch.await_count == 2

    @pytest.mark.asyncio
    async def test_no_redis_reads_through(self, sample_receipts):
        with patch("receipt_desk.services.cache.get_redis", new_callable=AsyncMock, return_value=None), \
                patch("receipt_desk.services.store.list_receipts", new_callable=AsyncMock) as mock_list:
            mock_list.return_value = sample_receipts
            await queries.get_receipts()
            receipts = await queries.get_receipts()

        assert mock_list.await_count == 2
        assert receipts == sample_receipts

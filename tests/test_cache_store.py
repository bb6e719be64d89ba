"""Tests for contentgem/cache — memory and DynamoDB stores, factory."""

import json
from unittest.mock import MagicMock, patch

import pytest

import contentgem.cache.factory as factory_mod
from contentgem.cache.dynamodb_store import DynamoDBCacheStore
from contentgem.cache.store import MemoryCacheStore


class TestMemoryCacheStore:

    async def test_set_get(self):
        store = MemoryCacheStore()
        await store.set("subscription_1", {"can_use": True}, ttl=300)
        assert await store.get("subscription_1") == {"can_use": True}

    async def test_missing_key(self):
        assert await MemoryCacheStore().get("nope") is None

    async def test_expiry(self):
        store = MemoryCacheStore()
        with patch("contentgem.cache.store.time.monotonic", return_value=100.0):
            await store.set("k", {"v": 1}, ttl=300)
        with patch("contentgem.cache.store.time.monotonic", return_value=400.0):
            assert await store.get("k") is None
        assert "k" not in store

    async def test_whole_entry_replacement(self):
        store = MemoryCacheStore()
        await store.set("k", {"a": 1, "b": 2}, ttl=300)
        await store.set("k", {"a": 3}, ttl=300)
        assert await store.get("k") == {"a": 3}

    async def test_returned_value_is_a_copy(self):
        store = MemoryCacheStore()
        await store.set("k", {"a": 1}, ttl=300)
        value = await store.get("k")
        value["a"] = 99
        assert await store.get("k") == {"a": 1}

    async def test_delete(self):
        store = MemoryCacheStore()
        await store.set("k", {"a": 1}, ttl=300)
        await store.delete("k")
        await store.delete("k")
        assert await store.get("k") is None


@pytest.fixture
def mock_table():
    """Mock boto3 DynamoDB Table."""
    return MagicMock()


@pytest.fixture
def dynamo_store(mock_table):
    s = DynamoDBCacheStore(table_name="test-table", region="us-east-1")
    s._table = mock_table
    return s


class TestDynamoDBCacheStore:

    async def test_set_writes_item(self, dynamo_store, mock_table):
        with patch("contentgem.cache.dynamodb_store.time.time", return_value=1000.0):
            await dynamo_store.set("subscription_1", {"can_use": True}, ttl=300)
        item = mock_table.put_item.call_args.kwargs["Item"]
        assert item["cache_key"] == "subscription_1"
        assert json.loads(item["value"]) == {"can_use": True}
        assert item["expires_at"] == 1300

    async def test_get_hit(self, dynamo_store, mock_table):
        mock_table.get_item.return_value = {
            "Item": {"cache_key": "k", "value": '{"can_use": false}', "expires_at": 2000},
        }
        with patch("contentgem.cache.dynamodb_store.time.time", return_value=1000.0):
            assert await dynamo_store.get("k") == {"can_use": False}

    async def test_get_miss(self, dynamo_store, mock_table):
        mock_table.get_item.return_value = {}
        assert await dynamo_store.get("k") is None

    async def test_expired_item_deleted(self, dynamo_store, mock_table):
        mock_table.get_item.return_value = {
            "Item": {"cache_key": "k", "value": "{}", "expires_at": 999},
        }
        with patch("contentgem.cache.dynamodb_store.time.time", return_value=1000.0):
            assert await dynamo_store.get("k") is None
        mock_table.delete_item.assert_called_once_with(Key={"cache_key": "k"})

    async def test_corrupt_value_is_miss(self, dynamo_store, mock_table):
        mock_table.get_item.return_value = {
            "Item": {"cache_key": "k", "value": "{broken", "expires_at": 2000},
        }
        with patch("contentgem.cache.dynamodb_store.time.time", return_value=1000.0):
            assert await dynamo_store.get("k") is None

    async def test_delete(self, dynamo_store, mock_table):
        await dynamo_store.delete("k")
        mock_table.delete_item.assert_called_once_with(Key={"cache_key": "k"})


class TestGetCacheStore:

    @pytest.fixture(autouse=True)
    def reset_store_singleton(self, monkeypatch):
        monkeypatch.setattr(factory_mod, "_store", None)
        yield
        monkeypatch.setattr(factory_mod, "_store", None)

    def test_memory_backend(self, override_settings):
        override_settings(CACHE_BACKEND="memory")
        assert isinstance(factory_mod.get_cache_store(), MemoryCacheStore)

    def test_dynamodb_backend(self, override_settings):
        override_settings(CACHE_BACKEND="dynamodb", DYNAMODB_TABLE_NAME="cg-cache")
        store = factory_mod.get_cache_store()
        assert isinstance(store, DynamoDBCacheStore)
        assert store._table_name == "cg-cache"

    def test_singleton(self, override_settings):
        override_settings(CACHE_BACKEND="memory")
        assert factory_mod.get_cache_store() is factory_mod.get_cache_store()

    def test_unknown_backend(self, override_settings):
        override_settings(CACHE_BACKEND="redis")
        with pytest.raises(ValueError):
            factory_mod.get_cache_store()

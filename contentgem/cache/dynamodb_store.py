"""DynamoDB-backed cache store, for deployments running more than one process."""

import asyncio
import json
import time

from contentgem.cache.store import CacheStore


class DynamoDBCacheStore(CacheStore):
    """Stores entries in a table keyed by `cache_key`.

    Items carry `value` (JSON string) and `expires_at` (epoch seconds). The
    table's TTL sweep is lazy, so expiry is also enforced on read.
    """

    def __init__(self, table_name: str, region: str = "us-east-1"):
        self._table_name = table_name
        self._region = region
        self._table = None

    def _get_table(self):
        """Lazy-init boto3 Table resource."""
        if self._table is None:
            import boto3

            dynamodb = boto3.resource("dynamodb", region_name=self._region)
            self._table = dynamodb.Table(self._table_name)
        return self._table

    async def get(self, key: str) -> dict | None:
        item = await asyncio.to_thread(self._get_item, key)
        if item is None:
            return None

        if int(item.get("expires_at", 0)) <= int(time.time()):
            await self.delete(key)
            return None

        try:
            return json.loads(item["value"])
        except (KeyError, TypeError, ValueError):
            # Corrupt entry: behave like a miss so the caller recomputes
            return None

    async def set(self, key: str, value: dict, ttl: int) -> None:
        item = {
            "cache_key": key,
            "value": json.dumps(value),
            "expires_at": int(time.time()) + ttl,
        }
        await asyncio.to_thread(self._get_table().put_item, Item=item)

    async def delete(self, key: str) -> None:
        await asyncio.to_thread(self._get_table().delete_item, Key={"cache_key": key})

    def _get_item(self, key: str) -> dict | None:
        resp = self._get_table().get_item(Key={"cache_key": key})
        return resp.get("Item")

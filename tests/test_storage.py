"""
Tests for the storage backends
"""
import unittest
import asyncio
import shutil
import tempfile
from pathlib import Path
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from cache import FileStorage, MemoryStorage, RedisStorage
from lunie.bootstrap import create_storage
from lunie.config import Settings


class TestMemoryStorage(unittest.TestCase):
    """Test cases for the in-memory backend."""

    def setUp(self):
        """Set up test environment."""
        self.storage = MemoryStorage(max_size=3)
        self.loop = asyncio.new_event_loop()
        asyncio.set_event_loop(self.loop)

    def tearDown(self):
        """Clean up after tests."""
        self.loop.close()

    def wait(self, coroutine):
        return self.loop.run_until_complete(coroutine)

    def test_basic_operations(self):
        """Test set, get and delete."""
        self.assertTrue(self.wait(self.storage.set("key", "value")))
        self.assertEqual(self.wait(self.storage.get("key")), "value")
        self.assertTrue(self.wait(self.storage.exists("key")))

        self.assertTrue(self.wait(self.storage.delete("key")))
        self.assertFalse(self.wait(self.storage.delete("key")))
        self.assertIsNone(self.wait(self.storage.get("key")))

    def test_max_size_evicts_oldest(self):
        """Test the oldest written record makes room for a new one."""
        for key in ("key1", "key2", "key3"):
            self.wait(self.storage.set(key, key))
        # rewriting moves key1 to the back
        self.wait(self.storage.set("key1", "again"))
        self.wait(self.storage.set("key4", "key4"))

        self.assertIsNone(self.wait(self.storage.get("key2")))
        self.assertEqual(self.wait(self.storage.get("key1")), "again")

    def test_stats(self):
        """Test hits and misses are counted."""
        self.wait(self.storage.set("key", "value"))
        self.wait(self.storage.get("key"))
        self.wait(self.storage.get("missing"))

        stats = self.storage.get_stats()
        self.assertEqual(stats["hits"], 1)
        self.assertEqual(stats["misses"], 1)
        self.assertEqual(stats["hit_ratio"], 0.5)

        self.wait(self.storage.flush())
        self.assertEqual(self.storage.get_stats()["size"], 0)


class TestFileStorage(unittest.TestCase):
    """Test cases for the file backend."""

    def setUp(self):
        """Set up test environment."""
        self.directory = Path(tempfile.mkdtemp())
        self.storage = FileStorage(self.directory / "store")
        self.loop = asyncio.new_event_loop()
        asyncio.set_event_loop(self.loop)

    def tearDown(self):
        """Clean up after tests."""
        self.loop.close()
        shutil.rmtree(self.directory)

    def test_records_survive_new_instances(self):
        """Test records are read back by another storage on the same directory."""
        self.loop.run_until_complete(self.storage.set("store_cosmos-hub-mainnet_cosmos1xxx", '{"version": 1}'))

        reopened = FileStorage(self.directory / "store")
        value = self.loop.run_until_complete(reopened.get("store_cosmos-hub-mainnet_cosmos1xxx"))

        self.assertEqual(value, '{"version": 1}')
        self.assertTrue((self.directory / "store" / "store_cosmos-hub-mainnet_cosmos1xxx.json").exists())

    def test_missing_and_deleted_records(self):
        """Test reading and deleting records that don't exist."""
        self.assertIsNone(self.loop.run_until_complete(self.storage.get("missing")))
        self.assertFalse(self.loop.run_until_complete(self.storage.delete("missing")))

        self.loop.run_until_complete(self.storage.set("key", "value"))
        self.assertTrue(self.loop.run_until_complete(self.storage.delete("key")))
        self.assertIsNone(self.loop.run_until_complete(self.storage.get("key")))

    def test_unsafe_keys_stay_in_directory(self):
        """Test keys can't point outside the storage directory."""
        self.loop.run_until_complete(self.storage.set("../escape", "value"))
        self.assertEqual(list((self.directory / "store").iterdir())[0].name, ".._escape.json")


class TestRedisStorage(unittest.TestCase):
    """Test cases for the Redis backend against a mocked client."""

    def setUp(self):
        """Set up test environment."""
        self.client = MagicMock()
        self.client.ping = AsyncMock(return_value=True)
        self.client.get = AsyncMock(return_value='{"version": 1}')
        self.client.set = AsyncMock(return_value=True)
        self.client.delete = AsyncMock(return_value=1)
        self.loop = asyncio.new_event_loop()
        asyncio.set_event_loop(self.loop)

    def tearDown(self):
        """Clean up after tests."""
        self.loop.close()

    def test_operations_use_namespaced_keys(self):
        """Test records are stored under the namespace."""
        with patch("cache.redis_manager.redis.from_url", return_value=self.client) as from_url:
            storage = RedisStorage("redis://localhost:6379/0", ttl=60)
            self.loop.run_until_complete(storage.set("store_net_addr", "value"))
            value = self.loop.run_until_complete(storage.get("store_net_addr"))
            deleted = self.loop.run_until_complete(storage.delete("store_net_addr"))

        from_url.assert_called_once()
        self.client.set.assert_awaited_once_with("lunie:store_net_addr", "value", ex=60)
        self.client.get.assert_awaited_once_with("lunie:store_net_addr")
        self.assertEqual(value, '{"version": 1}')
        self.assertTrue(deleted)

    def test_clear_pattern_and_disconnect(self):
        """Test clearing records page by page, then closing the client."""
        self.client.scan = AsyncMock(side_effect=[
            (5, ["lunie:store_a", "lunie:store_b"]),
            (0, ["lunie:store_c"]),
        ])
        self.client.delete = AsyncMock(side_effect=[2, 1])
        self.client.aclose = AsyncMock()
        with patch("cache.redis_manager.redis.from_url", return_value=self.client):
            storage = RedisStorage("redis://localhost:6379/0")
            deleted = self.loop.run_until_complete(storage.clear_pattern("store_*"))
            self.loop.run_until_complete(storage.disconnect())

        self.assertEqual(deleted, 3)
        self.client.scan.assert_any_await(cursor=0, match="lunie:store_*", count=100)
        self.client.aclose.assert_awaited_once()
        self.assertIsNone(storage.redis)

    def test_errors_propagate(self):
        """Test a failing Redis surfaces to the caller."""
        self.client.get = AsyncMock(side_effect=ConnectionError("redis down"))
        with patch("cache.redis_manager.redis.from_url", return_value=self.client):
            storage = RedisStorage("redis://localhost:6379/0")
            with self.assertRaises(ConnectionError):
                self.loop.run_until_complete(storage.get("key"))


def test_create_storage(tmp_path):
    assert isinstance(create_storage(Settings(_env_file=None, storage_backend="memory")), MemoryStorage)

    file_storage = create_storage(Settings(_env_file=None, storage_backend="file", storage_dir=str(tmp_path)))
    assert isinstance(file_storage, FileStorage)
    assert file_storage.directory == tmp_path

    redis_storage = create_storage(Settings(_env_file=None, storage_backend="redis", redis_url="redis://cache:6379/1"))
    assert isinstance(redis_storage, RedisStorage)

    with pytest.raises(ValueError):
        create_storage(Settings(_env_file=None, storage_backend="redis", redis_url=None))

import errno
from pathlib import Path
from unittest.mock import MagicMock, patch

import pytest
import redis

from src.adapters.secondary.redis.redis_key_value_storage import RedisKeyValueStorage
from src.adapters.secondary.storage.in_memory_storage import InMemoryKeyValueStorage
from src.adapters.secondary.storage.json_file_storage import JsonFileKeyValueStorage
from src.domain.storage.exceptions import StorageError, StorageQuotaExceededError


@pytest.fixture(params=["memory", "file"])
def storage(request, tmp_path):
    if request.param == "memory":
        return InMemoryKeyValueStorage()
    return JsonFileKeyValueStorage(tmp_path / "state")


def test_set_get_remove(storage):
    assert storage.get_item("k") is None

    storage.set_item("k", '{"a": 1}')
    assert storage.get_item("k") == '{"a": 1}'

    storage.remove_item("k")
    storage.remove_item("k")
    assert storage.get_item("k") is None


def test_keys_and_sizes(storage):
    storage.set_item("cache_a", "xx")
    storage.set_item("workflow_history", "[]")

    assert sorted(storage.keys()) == ["cache_a", "workflow_history"]
    assert storage.size_bytes("missing") == 0
    assert storage.size_bytes() >= storage.size_bytes("cache_a") > 0


@pytest.mark.parametrize("backend", [InMemoryKeyValueStorage, JsonFileKeyValueStorage])
def test_quota_rejects_oversized_write(backend, tmp_path):
    storage = backend(quota_bytes=64) if backend is InMemoryKeyValueStorage else backend(tmp_path, quota_bytes=64)

    storage.set_item("k", "small")
    with pytest.raises(StorageQuotaExceededError) as exc_info:
        storage.set_item("k", "x" * 200)

    assert exc_info.value.error_code == "STORAGE_QUOTA_EXCEEDED"
    assert storage.get_item("k") == "small"


def test_file_storage_survives_reopen_and_escapes_keys(tmp_path):
    JsonFileKeyValueStorage(tmp_path).set_item("user_cards_a/b", "[1]")

    reopened = JsonFileKeyValueStorage(tmp_path)

    assert reopened.get_item("user_cards_a/b") == "[1]"
    assert reopened.keys() == ["user_cards_a/b"]


def test_file_storage_disk_full_maps_to_quota_error(tmp_path):
    storage = JsonFileKeyValueStorage(tmp_path)

    with patch("src.adapters.secondary.storage.json_file_storage.os.replace", side_effect=OSError(errno.ENOSPC, "full")):
        with pytest.raises(StorageQuotaExceededError):
            storage.set_item("k", "v")

    assert storage.keys() == []


def test_redis_storage_prefixes_keys():
    client = MagicMock()
    client.get.return_value = '{"a": 1}'
    client.scan_iter.return_value = iter(["orchestrator:cache_a", "orchestrator:workflow_history"])
    storage = RedisKeyValueStorage(client)

    storage.set_item("cache_a", "v")
    assert storage.get_item("cache_a") == '{"a": 1}'
    storage.remove_item("cache_a")

    client.set.assert_called_once_with("orchestrator:cache_a", "v")
    client.get.assert_called_once_with("orchestrator:cache_a")
    client.delete.assert_called_once_with("orchestrator:cache_a")
    assert storage.keys() == ["cache_a", "workflow_history"]


def test_redis_storage_decodes_bytes():
    client = MagicMock()
    client.get.return_value = b"[1]"

    assert RedisKeyValueStorage(client, key_prefix="t:").get_item("k") == "[1]"


def test_redis_oom_is_quota_error():
    client = MagicMock()
    client.set.side_effect = redis.exceptions.ResponseError("OOM command not allowed when used memory > 'maxmemory'")

    with pytest.raises(StorageQuotaExceededError):
        RedisKeyValueStorage(client).set_item("k", "v")


def test_redis_connection_error_is_storage_error():
    client = MagicMock()
    client.get.side_effect = redis.exceptions.ConnectionError("refused")

    with pytest.raises(StorageError):
        RedisKeyValueStorage(client).get_item("k")


def test_file_storage_remove_failure_is_storage_error(tmp_path):
    storage = JsonFileKeyValueStorage(tmp_path)
    storage.set_item("cache_k", "v")
    [path] = list(tmp_path.iterdir())
    path.unlink()
    path.mkdir()

    with pytest.raises(StorageError) as exc_info:
        storage.remove_item("cache_k")

    assert exc_info.value.error_code == "STORAGE_ERROR"
    assert isinstance(exc_info.value.__cause__, OSError)


def test_file_storage_listing_failure_is_storage_error(tmp_path):
    storage = JsonFileKeyValueStorage(tmp_path)

    with patch.object(Path, "glob", side_effect=PermissionError(errno.EACCES, "denied")):
        with pytest.raises(StorageError):
            storage.keys()

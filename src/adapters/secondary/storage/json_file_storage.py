import errno
import os
import tempfile
from pathlib import Path
from urllib.parse import quote, unquote

from src.domain.storage.exceptions import StorageError, StorageQuotaExceededError
from src.ports.secondary.key_value_storage import IKeyValueStorage
from src.shared.logger import get_logger

logger = get_logger(__name__)

_SUFFIX = ".json"


class JsonFileKeyValueStorage(IKeyValueStorage):
    """
    Directory-backed storage: one file per key, replaced atomically on write.

    Survives process restarts. The quota mirrors the few-megabyte budget of
    browser local storage so that history trimming behaves the same way.
    """

    def __init__(self, directory: str | Path, quota_bytes: int | None = None):
        self._directory = Path(directory)
        self._directory.mkdir(parents=True, exist_ok=True)
        self._quota_bytes = quota_bytes

    @property
    def quota_bytes(self) -> int | None:
        return self._quota_bytes

    def _path(self, key: str) -> Path:
        return self._directory / f"{quote(key, safe='')}{_SUFFIX}"

    def get_item(self, key: str) -> str | None:
        path = self._path(key)
        try:
            return path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return None
        except OSError as e:
            raise StorageError(f"Failed to read '{key}': {e}", key=key) from e

    def set_item(self, key: str, value: str) -> None:
        encoded = value.encode("utf-8")
        if self._quota_bytes is not None:
            required = self.size_bytes() - self.size_bytes(key) + len(encoded)
            if required > self._quota_bytes:
                raise StorageQuotaExceededError(key, required, self._quota_bytes)

        fd, tmp_name = tempfile.mkstemp(dir=self._directory, prefix=".tmp-")
        try:
            with os.fdopen(fd, "wb") as handle:
                handle.write(encoded)
            os.replace(tmp_name, self._path(key))
        except OSError as e:
            Path(tmp_name).unlink(missing_ok=True)
            if e.errno in (errno.ENOSPC, errno.EDQUOT):
                raise StorageQuotaExceededError(key, len(encoded), self._quota_bytes or 0) from e
            raise StorageError(f"Failed to write '{key}': {e}", key=key) from e

    def remove_item(self, key: str) -> None:
        try:
            self._path(key).unlink(missing_ok=True)
        except OSError as e:
            raise StorageError(f"Failed to remove '{key}': {e}", key=key) from e

    def keys(self) -> list[str]:
        try:
            return sorted(
                unquote(path.name[: -len(_SUFFIX)])
                for path in self._directory.glob(f"*{_SUFFIX}")
            )
        except OSError as e:
            raise StorageError(f"Failed to list {self._directory}: {e}") from e

    def size_bytes(self, key: str | None = None) -> int:
        if key is not None:
            try:
                return self._path(key).stat().st_size
            except FileNotFoundError:
                return 0
        total = 0
        for path in self._directory.glob(f"*{_SUFFIX}"):
            try:
                total += path.stat().st_size
            except FileNotFoundError:
                # removed concurrently by another store instance
                logger.debug("storage_file_vanished", path=str(path))
        return total

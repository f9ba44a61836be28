"""Async key-value store interface with in-memory and JSON-file backends."""

import asyncio
import json
import os
import time
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple

from success_signal_ai.config import STORAGE_TIMEOUT_SECONDS
from success_signal_ai.errors import StorageTimeoutError
from success_signal_ai.utils.logger import get_logger

logger = get_logger(__name__)


class KeyValueStore(ABC):
    """
    Abstract async store of JSON-serialisable values. Entries may carry a TTL in seconds;
    expired entries read as missing. Every call is bounded by `timeout` and raises
    StorageTimeoutError when exceeded.
    """

    def __init__(self, timeout: float = STORAGE_TIMEOUT_SECONDS):
        self.timeout = timeout

    async def get(self, key: str, default: Any = None) -> Any:
        return await self._bounded(self._get(key, default), f"get {key}")

    async def get_many(self, keys: List[str]) -> Dict[str, Any]:
        """Values for the given keys; missing or expired keys are omitted."""
        return await self._bounded(self._get_many(keys), f"get_many ({len(keys)} keys)")

    async def set(self, key: str, value: Any, ttl: Optional[float] = None) -> None:
        await self._bounded(self._set(key, value, ttl), f"set {key}")

    async def delete(self, key: str) -> None:
        await self._bounded(self._delete(key), f"delete {key}")

    async def keys(self, prefix: str = "") -> List[str]:
        return await self._bounded(self._keys(prefix), f"keys {prefix}*")

    async def clear(self) -> None:
        await self._bounded(self._clear(), "clear")

    async def _bounded(self, coro, operation: str):
        try:
            return await asyncio.wait_for(coro, timeout=self.timeout)
        except asyncio.TimeoutError as e:
            logger.error("Storage %s timed out after %ss", operation, self.timeout)
            raise StorageTimeoutError(f"Storage operation '{operation}' timed out after {self.timeout}s") from e

    @abstractmethod
    async def _get(self, key: str, default: Any) -> Any:
        pass

    async def _get_many(self, keys: List[str]) -> Dict[str, Any]:
        missing = object()
        result = {}
        for key in keys:
            value = await self._get(key, missing)
            if value is not missing:
                result[key] = value
        return result

    @abstractmethod
    async def _set(self, key: str, value: Any, ttl: Optional[float]) -> None:
        pass

    @abstractmethod
    async def _delete(self, key: str) -> None:
        pass

    @abstractmethod
    async def _keys(self, prefix: str) -> List[str]:
        pass

    @abstractmethod
    async def _clear(self) -> None:
        pass


# Stored entry: (value, expiry epoch seconds or None)
_Entry = Tuple[Any, Optional[float]]


def _expired(entry: _Entry, now: float) -> bool:
    return entry[1] is not None and entry[1] <= now


class InMemoryKeyValueStore(KeyValueStore):
    """Process-local store. Values are JSON round-tripped so callers never share mutable state."""

    def __init__(self, timeout: float = STORAGE_TIMEOUT_SECONDS):
        super().__init__(timeout)
        self._data: Dict[str, _Entry] = {}

    async def _get(self, key: str, default: Any) -> Any:
        entry = self._data.get(key)
        if entry is None or _expired(entry, time.time()):
            self._data.pop(key, None)
            return default
        return json.loads(entry[0])

    async def _set(self, key: str, value: Any, ttl: Optional[float]) -> None:
        expires = time.time() + ttl if ttl else None
        self._data[key] = (json.dumps(value), expires)

    async def _delete(self, key: str) -> None:
        self._data.pop(key, None)

    async def _keys(self, prefix: str) -> List[str]:
        now = time.time()
        return sorted(k for k, entry in self._data.items() if k.startswith(prefix) and not _expired(entry, now))

    async def _clear(self) -> None:
        self._data.clear()


class JsonFileKeyValueStore(KeyValueStore):
    """
    Store persisted as one JSON file. Writes go to a temp file that replaces the original,
    so a crash never leaves a half-written file. File I/O runs in a worker thread.
    """

    def __init__(self, path: Path, timeout: float = STORAGE_TIMEOUT_SECONDS):
        super().__init__(timeout)
        self.path = Path(path)
        self._lock = asyncio.Lock()

    def _read_all(self) -> Dict[str, Any]:
        if not self.path.is_file():
            return {}
        with open(self.path, encoding="utf-8") as f:
            return json.load(f)

    def _write_all(self, data: Dict[str, Any]) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        tmp_path = self.path.with_suffix(self.path.suffix + ".tmp")
        with open(tmp_path, "w", encoding="utf-8") as f:
            json.dump(data, f)
            f.flush()
            os.fsync(f.fileno())
        os.replace(tmp_path, self.path)

    async def _get(self, key: str, default: Any) -> Any:
        data = await asyncio.to_thread(self._read_all)
        entry = data.get(key)
        if entry is None or (entry.get("expires") is not None and entry["expires"] <= time.time()):
            return default
        return entry["value"]

    async def _get_many(self, keys: List[str]) -> Dict[str, Any]:
        data = await asyncio.to_thread(self._read_all)
        now = time.time()
        result = {}
        for key in keys:
            entry = data.get(key)
            if entry is not None and (entry.get("expires") is None or entry["expires"] > now):
                result[key] = entry["value"]
        return result

    async def _set(self, key: str, value: Any, ttl: Optional[float]) -> None:
        async with self._lock:
            data = await asyncio.to_thread(self._read_all)
            data[key] = {"value": value, "expires": time.time() + ttl if ttl else None}
            await asyncio.to_thread(self._write_all, data)

    async def _delete(self, key: str) -> None:
        async with self._lock:
            data = await asyncio.to_thread(self._read_all)
            if data.pop(key, None) is not None:
                await asyncio.to_thread(self._write_all, data)

    async def _keys(self, prefix: str) -> List[str]:
        data = await asyncio.to_thread(self._read_all)
        now = time.time()
        return sorted(
            k for k, entry in data.items()
            if k.startswith(prefix) and (entry.get("expires") is None or entry["expires"] > now)
        )

    async def _clear(self) -> None:
        async with self._lock:
            await asyncio.to_thread(self._write_all, {})

"""Key-value + append-log stores shared by scrapers, merge and readers.

Every value is written whole; a put never patches part of a record, so
writers on different keys need no coordination and writers on the same
key resolve last-writer-wins.
"""
import asyncio
import json
import logging
import os
import tempfile
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any, List, Optional

import redis.asyncio as redis
from redis.exceptions import RedisError


logger = logging.getLogger(__name__)

# Upper bound on retained append-log lines per key
LOG_MAX_LINES = 1000

# Key layout
GOOGLE_SNAPSHOT_KEY = "snapshot:google"
YAHOO_SNAPSHOT_KEY = "snapshot:yahoo"
MERGED_PREFIX = "stocks:"
SYNC_PREFIX = "sync:"
SYNC_LOG_KEY = "logs:sync"
SNAPSHOT_VERSION = 1


def merged_key(entity_id: str) -> str:
    return f"{MERGED_PREFIX}{entity_id}"


class CacheStoreError(Exception):
    """Raised when the backing store cannot be read or written."""
    pass


class CacheStore(ABC):
    """Durable keyed store consumed by the pipeline."""

    @abstractmethod
    async def get(self, key: str) -> Optional[bytes]:
        """Return the stored bytes, or None if the key does not exist."""
        pass

    @abstractmethod
    async def put(self, key: str, value: bytes) -> None:
        """Overwrite the value stored under key."""
        pass

    @abstractmethod
    async def list(self, prefix: str) -> List[str]:
        """List keys starting with prefix, sorted."""
        pass

    @abstractmethod
    async def append(self, key: str, line: str) -> None:
        """Append one line to the log stored under key."""
        pass

    @abstractmethod
    async def tail(self, key: str, limit: int = 50) -> List[str]:
        """Return up to limit most recent log lines, oldest first."""
        pass

    async def get_json(self, key: str) -> Optional[Any]:
        """Get and decode a JSON value; None when missing."""
        raw = await self.get(key)
        if raw is None:
            return None
        return json.loads(raw)

    async def put_json(self, key: str, value: Any) -> None:
        await self.put(key, json.dumps(value, indent=2).encode("utf-8") + b"\n")

    async def close(self):
        pass


class RedisCacheStore(CacheStore):
    """Redis implementation of the cache store."""

    def __init__(self, client: redis.Redis):
        self.redis = client

    async def get(self, key: str) -> Optional[bytes]:
        try:
            value = await self.redis.get(key)
        except RedisError as e:
            raise CacheStoreError(f"Redis read failed for {key}: {e}") from e
        if isinstance(value, str):
            return value.encode("utf-8")
        return value

    async def put(self, key: str, value: bytes) -> None:
        try:
            await self.redis.set(key, value)
        except RedisError as e:
            raise CacheStoreError(f"Redis write failed for {key}: {e}") from e

    async def list(self, prefix: str) -> List[str]:
        try:
            keys = [
                k.decode("utf-8") if isinstance(k, bytes) else k
                async for k in self.redis.scan_iter(match=f"{prefix}*")
            ]
        except RedisError as e:
            raise CacheStoreError(f"Redis scan failed for {prefix}: {e}") from e
        return sorted(keys)

    async def append(self, key: str, line: str) -> None:
        try:
            await self.redis.rpush(key, line)
            await self.redis.ltrim(key, -LOG_MAX_LINES, -1)
        except RedisError as e:
            raise CacheStoreError(f"Redis append failed for {key}: {e}") from e

    async def tail(self, key: str, limit: int = 50) -> List[str]:
        try:
            lines = await self.redis.lrange(key, -limit, -1)
        except RedisError as e:
            raise CacheStoreError(f"Redis read failed for {key}: {e}") from e
        return [l.decode("utf-8") if isinstance(l, bytes) else l for l in lines]


class FileCacheStore(CacheStore):
    """Filesystem implementation: one file per key under a root directory.

    Key segments separated by ':' become directories, so "stocks:affle"
    is stored at <root>/stocks/affle.json.
    """

    def __init__(self, root: str):
        self.root = Path(root)

    def _path(self, key: str, suffix: str = ".json") -> Path:
        parts = [p for p in key.split(":") if p]
        if not parts or any(p in (".", "..") or "/" in p or "\\" in p for p in parts):
            raise ValueError(f"Invalid cache key: {key!r}")
        return self.root.joinpath(*parts[:-1], parts[-1] + suffix)

    def _read_sync(self, path: Path) -> Optional[bytes]:
        try:
            return path.read_bytes()
        except FileNotFoundError:
            return None

    def _write_sync(self, path: Path, value: bytes) -> None:
        path.parent.mkdir(parents=True, exist_ok=True)
        # Temp file + rename so readers never see a half-written record
        fd, tmp_name = tempfile.mkstemp(dir=path.parent, prefix=f".{path.name}.", suffix=".tmp")
        try:
            with os.fdopen(fd, "wb") as f:
                f.write(value)
            os.replace(tmp_name, path)
        except BaseException:
            Path(tmp_name).unlink(missing_ok=True)
            raise

    def _list_sync(self, prefix: str) -> List[str]:
        if not self.root.exists():
            return []
        keys = []
        for path in self.root.rglob("*.json"):
            if path.name.startswith("."):
                continue
            relative = path.relative_to(self.root).with_suffix("")
            key = ":".join(relative.parts)
            if key.startswith(prefix):
                keys.append(key)
        return sorted(keys)

    def _append_sync(self, path: Path, line: str) -> None:
        path.parent.mkdir(parents=True, exist_ok=True)
        with path.open("a", encoding="utf-8") as f:
            f.write(line.rstrip("\n") + "\n")

    def _tail_sync(self, path: Path, limit: int) -> List[str]:
        try:
            lines = path.read_text(encoding="utf-8").splitlines()
        except FileNotFoundError:
            return []
        return lines[-limit:]

    async def get(self, key: str) -> Optional[bytes]:
        try:
            return await asyncio.to_thread(self._read_sync, self._path(key))
        except OSError as e:
            raise CacheStoreError(f"File read failed for {key}: {e}") from e

    async def put(self, key: str, value: bytes) -> None:
        try:
            await asyncio.to_thread(self._write_sync, self._path(key), value)
        except OSError as e:
            raise CacheStoreError(f"File write failed for {key}: {e}") from e

    async def list(self, prefix: str) -> List[str]:
        try:
            return await asyncio.to_thread(self._list_sync, prefix)
        except OSError as e:
            raise CacheStoreError(f"File listing failed for {prefix}: {e}") from e

    async def append(self, key: str, line: str) -> None:
        try:
            await asyncio.to_thread(self._append_sync, self._path(key, ".log"), line)
        except OSError as e:
            raise CacheStoreError(f"File append failed for {key}: {e}") from e

    async def tail(self, key: str, limit: int = 50) -> List[str]:
        try:
            return await asyncio.to_thread(self._tail_sync, self._path(key, ".log"), limit)
        except OSError as e:
            raise CacheStoreError(f"File read failed for {key}: {e}") from e

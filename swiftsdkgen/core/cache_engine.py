"""
Content-addressed build cache for generator artifacts.

The engine maps a deterministic fingerprint of an operation and its inputs to
a materialized artifact on disk. Identical keys always resolve to the same
content across runs, which is what makes incremental generation cheap: a
producer only ever runs on a cache miss.

Layout of the cache directory:
    index.json        : fingerprint -> artifact record
    objects/<fp>/     : materialized artifacts
    tmp/              : staging directories for running producers
    lock/engine.lock  : held for the whole session
"""

import hashlib
import json
import logging
import shutil
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import Callable, Dict, Optional, Tuple

from filelock import FileLock, Timeout

from swiftsdkgen.core.exceptions import CacheEngineError, CacheLockTimeout
from swiftsdkgen.core.filesystem import (
    atomic_write,
    create_directory_if_needed,
    remove_recursively,
    temporary_directory,
)

logger = logging.getLogger(__name__)

INDEX_VERSION = 1


@dataclass(frozen=True)
class CacheKey:
    """Operation name plus its inputs, fingerprinted for lookup."""

    operation: str
    inputs: Tuple[Tuple[str, str], ...]

    @property
    def fingerprint(self) -> str:
        canonical = json.dumps(
            {"operation": self.operation, "inputs": [list(i) for i in self.inputs]},
            sort_keys=True,
            separators=(",", ":"),
        )
        return hashlib.sha256(canonical.encode("utf-8")).hexdigest()

    def __str__(self) -> str:
        args = ", ".join(f"{k}={v}" for k, v in self.inputs)
        return f"{self.operation}({args})"


def cache_key(operation: str, **inputs) -> CacheKey:
    """
    Build a CacheKey from keyword inputs.

    Input order does not affect the fingerprint.

    Example:
        >>> cache_key("download", url="https://download.swift.org/...")
    """
    return CacheKey(
        operation=operation,
        inputs=tuple(sorted((name, str(value)) for name, value in inputs.items())),
    )


@dataclass(frozen=True)
class Artifact:
    """A materialized cache entry."""

    fingerprint: str
    path: Path


class CacheEngine:
    """
    Persistent key -> artifact store, opened once per generator run.

    Example:
        >>> with CacheEngine(Path("Artifacts/cache")) as engine:
        ...     key = cache_key("download", url=url)
        ...     artifact = engine.put(key, lambda staging: fetch_into(staging))
        ...     print(artifact.path)
    """

    def __init__(self, cache_path: Path, lock_timeout: int = 30):
        """
        Initialize cache engine.

        Args:
            cache_path: Root directory of the cache
            lock_timeout: Timeout in seconds for acquiring the session lock
        """
        self.cache_path = Path(cache_path)
        self.index_path = self.cache_path / "index.json"
        self.objects_path = self.cache_path / "objects"
        self.staging_path = self.cache_path / "tmp"
        self.lock_path = self.cache_path / "lock" / "engine.lock"
        self.lock_timeout = lock_timeout

        self.hits = 0
        self.misses = 0

        self._lock: Optional[FileLock] = None
        self._index: Dict[str, dict] = {}

    @property
    def is_open(self) -> bool:
        return self._lock is not None

    def open(self) -> "CacheEngine":
        """
        Acquire the session lock and load the index.

        Raises:
            CacheLockTimeout: If another run holds the cache
        """
        if self.is_open:
            return self

        create_directory_if_needed(self.lock_path.parent)
        lock = FileLock(self.lock_path, timeout=self.lock_timeout)

        try:
            lock.acquire()
        except Timeout as e:
            raise CacheLockTimeout(
                f"Could not acquire cache lock within {self.lock_timeout} seconds: "
                f"{self.lock_path}"
            ) from e

        self._lock = lock
        try:
            self._index = self._load_index()
            create_directory_if_needed(self.objects_path)
            remove_recursively(self.staging_path)
        except Exception:
            self.close()
            raise

        logger.debug(f"Opened cache engine at {self.cache_path}")
        return self

    def close(self):
        """Release the session lock."""
        if self._lock is not None:
            self._lock.release()
            self._lock = None
            logger.debug(
                f"Closed cache engine ({self.hits} hits, {self.misses} misses)"
            )

    def __enter__(self) -> "CacheEngine":
        return self.open()

    def __exit__(self, exc_type, exc, tb):
        self.close()

    def _load_index(self) -> Dict[str, dict]:
        if not self.index_path.exists():
            logger.debug("Cache index not found, starting empty")
            return {}

        try:
            with open(self.index_path, "r", encoding="utf-8") as f:
                data = json.load(f)
        except (json.JSONDecodeError, OSError) as e:
            raise CacheEngineError(f"Failed to load cache index: {e}") from e

        if data.get("version") != INDEX_VERSION or "entries" not in data:
            logger.warning("Invalid cache index format, resetting")
            return {}

        return data["entries"]

    def _save_index(self):
        content = json.dumps(
            {"version": INDEX_VERSION, "entries": self._index},
            indent=2,
            sort_keys=True,
        )
        try:
            atomic_write(self.index_path, content)
        except OSError as e:
            raise CacheEngineError(f"Failed to save cache index: {e}") from e

    def _require_open(self):
        if not self.is_open:
            raise CacheEngineError("Cache engine is not open")

    def get(self, key: CacheKey) -> Optional[Artifact]:
        """
        Look up a cached artifact.

        An index entry whose object has disappeared counts as a miss.

        Returns:
            Artifact on a hit, None on a miss
        """
        self._require_open()
        fingerprint = key.fingerprint
        entry = self._index.get(fingerprint)

        if entry is None:
            return None

        path = self.objects_path / entry["path"]
        if not (path.exists() or path.is_symlink()):
            logger.warning(f"Cached object for {key} is missing, discarding entry")
            del self._index[fingerprint]
            self._save_index()
            return None

        return Artifact(fingerprint=fingerprint, path=path)

    def put(self, key: CacheKey, producer: Callable[[Path], Path]) -> Artifact:
        """
        Return the artifact for key, running producer only on a miss.

        The producer receives an empty staging directory and returns the path
        of the file or directory it produced inside it.

        Raises:
            CacheEngineError: If the producer returns a path outside staging
        """
        cached = self.get(key)
        if cached is not None:
            self.hits += 1
            logger.debug(f"Cache hit: {key}")
            return cached

        self.misses += 1
        logger.debug(f"Cache miss: {key}")
        fingerprint = key.fingerprint

        with temporary_directory(
            prefix=f"{fingerprint[:12]}_", parent=self.staging_path
        ) as staging:
            produced = Path(producer(staging))

            try:
                relative = produced.relative_to(staging)
            except ValueError as e:
                raise CacheEngineError(
                    f"Producer for {key} returned {produced}, outside {staging}"
                ) from e
            if not relative.parts:
                raise CacheEngineError(
                    f"Producer for {key} must return a path inside {staging}"
                )

            object_dir = self.objects_path / fingerprint
            remove_recursively(object_dir)
            create_directory_if_needed(object_dir)
            final_path = object_dir / relative.parts[0]
            shutil.move(str(staging / relative.parts[0]), str(final_path))

        self._index[fingerprint] = {
            "key": str(key),
            "path": str(Path(fingerprint, *relative.parts)),
            "created": datetime.now().isoformat(),
        }
        self._save_index()

        return Artifact(
            fingerprint=fingerprint, path=object_dir.joinpath(*relative.parts)
        )

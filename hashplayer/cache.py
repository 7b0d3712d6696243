"""
cache.py - Chain hash storage keyed by file identity and block index.
"""

import errno
import hashlib
import logging
import os
import shutil
import threading
import uuid
from abc import ABC, abstractmethod
from contextlib import contextmanager
from pathlib import Path
from typing import Dict, Iterator, Optional, Union

from .exceptions import CacheCorrupt, CacheMiss
from .utils import HASH_SIZE, with_retry

logger = logging.getLogger(__name__)


def file_identity_key(path: Union[str, os.PathLike]) -> str:
    """
    Return hex(SHA256(absolute path)) for ``path``.

    The key depends on the path only, so a file rewritten in place keeps its key.
    """
    abs_path = os.path.abspath(os.fspath(path))
    return hashlib.sha256(abs_path.encode("utf-8")).hexdigest()


def _check_digest(key: str, index: int, digest: bytes) -> bytes:
    if len(digest) != HASH_SIZE:
        raise CacheCorrupt(f"hash {index} for {key} is {len(digest)} bytes, expected {HASH_SIZE}")
    return digest


class CacheWriter(ABC):
    """Write side of a chain being built for one key."""

    published: bool = False

    @abstractmethod
    def put(self, index: int, digest: bytes) -> None:
        ...

    @abstractmethod
    def put_block_size(self, block_size: int) -> None:
        ...


class CacheStore(ABC):
    """
    Persists one 32-byte chain hash per (key, block index).
    """

    @abstractmethod
    def exists(self, key: str) -> bool:
        """Return True if a chain was published for ``key``; raise CacheCorrupt on a foreign entry."""

    @abstractmethod
    def get(self, key: str, index: int) -> bytes:
        """Return the hash for ``index``; raise CacheMiss if it was never written."""

    @abstractmethod
    def put(self, key: str, index: int, digest: bytes) -> None:
        """Write (or overwrite) the hash for ``index``."""

    @abstractmethod
    def get_block_size(self, key: str) -> int:
        """Return the block size the chain under ``key`` was built with; raise CacheMiss if unrecorded."""

    @abstractmethod
    def staging(self, key: str) -> Iterator[CacheWriter]:
        """
        Context manager collecting a whole chain and publishing it atomically.

        If another builder published ``key`` first, the staged hashes are
        discarded and ``writer.published`` stays False.
        """

    @abstractmethod
    def evict(self, key: str) -> bool:
        """Drop every hash stored under ``key``. Returns False if there was none."""


@with_retry
def _read_bytes(path: Path) -> bytes:
    with open(path, "rb") as f:
        return f.read()


@with_retry
def _write_bytes(path: Path, data: bytes) -> None:
    # Write atomically so readers never see a partial hash.
    tmp_path = path.with_name(f"{path.name}.{uuid.uuid4().hex}.tmp")
    with open(tmp_path, "wb") as f:
        f.write(data)
    os.replace(tmp_path, path)


class _DirectoryWriter(CacheWriter):
    def __init__(self, directory: Path) -> None:
        self.directory = directory

    def put(self, index: int, digest: bytes) -> None:
        _write_bytes(self.directory / DirectoryCacheStore.entry_name(index), digest)

    def put_block_size(self, block_size: int) -> None:
        _write_bytes(self.directory / DirectoryCacheStore.BLOCK_SIZE_ENTRY, str(block_size).encode("ascii"))


class DirectoryCacheStore(CacheStore):
    """
    Chain hashes under <root>/<key>/<index>.sha256, 32 raw bytes each.

    The block size the chain was built with is kept beside them in
    <root>/<key>/block_size as decimal text.
    """

    BLOCK_SIZE_ENTRY = "block_size"

    def __init__(self, root: Union[str, os.PathLike]) -> None:
        self.root = Path(root)

    @staticmethod
    def entry_name(index: int) -> str:
        return f"{index}.sha256"

    def location(self, key: str) -> Path:
        return self.root / key

    def exists(self, key: str) -> bool:
        location = self.location(key)
        if location.is_dir():
            return True
        if location.exists():
            raise CacheCorrupt(f"cache location {str(location)!r} is not a directory")
        return False

    def get(self, key: str, index: int) -> bytes:
        path = self.location(key) / self.entry_name(index)
        try:
            digest = _read_bytes(path)
        except FileNotFoundError as e:
            raise CacheMiss(f"no hash {index} cached for {key}") from e
        return _check_digest(key, index, digest)

    def put(self, key: str, index: int, digest: bytes) -> None:
        _check_digest(key, index, digest)
        location = self.location(key)
        location.mkdir(parents=True, exist_ok=True)
        _write_bytes(location / self.entry_name(index), digest)

    def get_block_size(self, key: str) -> int:
        path = self.location(key) / self.BLOCK_SIZE_ENTRY
        try:
            raw = _read_bytes(path)
        except FileNotFoundError as e:
            raise CacheMiss(f"no block size recorded for {key}") from e
        try:
            return int(raw.decode("ascii"))
        except (UnicodeDecodeError, ValueError) as e:
            raise CacheCorrupt(f"block size for {key} is not a number: {raw!r}") from e

    @contextmanager
    def staging(self, key: str) -> Iterator[CacheWriter]:
        self.root.mkdir(parents=True, exist_ok=True)
        tmp_dir = self.root / f".{key}.{uuid.uuid4().hex}.tmp"
        tmp_dir.mkdir(mode=0o750)
        writer = _DirectoryWriter(tmp_dir)
        try:
            yield writer
            writer.published = self._publish(key, tmp_dir)
        finally:
            if tmp_dir.exists():
                shutil.rmtree(tmp_dir, ignore_errors=True)

    def _publish(self, key: str, tmp_dir: Path) -> bool:
        location = self.location(key)
        if self.exists(key):
            logger.info("Cache for %s was published concurrently, discarding staged copy", key)
            return False
        try:
            os.rename(tmp_dir, location)
        except OSError as e:
            if e.errno not in (errno.EEXIST, errno.ENOTEMPTY):
                raise
            logger.info("Cache for %s was published concurrently, discarding staged copy", key)
            return False
        return True

    def evict(self, key: str) -> bool:
        location = self.location(key)
        # staging copies left behind by builders that died mid-pass
        for stale in self.root.glob(f".{key}.*.tmp"):
            shutil.rmtree(stale, ignore_errors=True)
        if location.is_dir():
            shutil.rmtree(location)
            return True
        if location.exists():
            location.unlink()
            return True
        return False


class _MemoryWriter(CacheWriter):
    def __init__(self) -> None:
        self.entries: Dict[int, bytes] = {}
        self.block_size: Optional[int] = None

    def put(self, index: int, digest: bytes) -> None:
        self.entries[index] = digest

    def put_block_size(self, block_size: int) -> None:
        self.block_size = block_size


class MemoryCacheStore(CacheStore):
    """In-process cache store, mainly for tests and short-lived streams."""

    def __init__(self) -> None:
        self.chains: Dict[str, Dict[int, bytes]] = {}
        self.block_sizes: Dict[str, int] = {}
        self.lock = threading.Lock()

    def exists(self, key: str) -> bool:
        with self.lock:
            return key in self.chains

    def get(self, key: str, index: int) -> bytes:
        with self.lock:
            try:
                digest = self.chains[key][index]
            except KeyError as e:
                raise CacheMiss(f"no hash {index} cached for {key}") from e
        return _check_digest(key, index, digest)

    def put(self, key: str, index: int, digest: bytes) -> None:
        _check_digest(key, index, digest)
        with self.lock:
            self.chains.setdefault(key, {})[index] = digest

    def get_block_size(self, key: str) -> int:
        with self.lock:
            try:
                return self.block_sizes[key]
            except KeyError as e:
                raise CacheMiss(f"no block size recorded for {key}") from e

    @contextmanager
    def staging(self, key: str) -> Iterator[CacheWriter]:
        writer = _MemoryWriter()
        yield writer
        with self.lock:
            if key not in self.chains:
                self.chains[key] = writer.entries
                if writer.block_size is not None:
                    self.block_sizes[key] = writer.block_size
                writer.published = True

    def evict(self, key: str) -> bool:
        with self.lock:
            self.block_sizes.pop(key, None)
            return self.chains.pop(key, None) is not None

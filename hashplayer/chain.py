"""
chain.py - Hash chain pre-processing for hashplayer.

Chain hashes are built from the end of the file backward: the last block has
no successor, so it is hashed with a zero trailer, and every earlier block is
hashed together with the hash of the block after it.
"""

import logging
import os
import stat
from dataclasses import dataclass
from typing import Iterator, Optional, Tuple, Union

from .blocks import DEFAULT_BLOCK_SIZE, BlockLayout
from .cache import CacheStore, file_identity_key
from .exceptions import CacheCorrupt, CacheMiss, NotARegularFile
from .metrics import CACHE_LOOKUPS, PREPROCESS_LATENCY
from .utils import ZERO_HASH, sha256

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ChainInfo:
    """Where a file's chain lives and how the file is split."""
    path: str
    key: str
    layout: BlockLayout
    cache_hit: bool = False

    @property
    def num_blocks(self) -> int:
        return self.layout.num_blocks

    @property
    def highest_block_size(self) -> int:
        return self.layout.highest_block_size


def regular_file_size(path: Union[str, os.PathLike]) -> int:
    """Return the size of ``path``, raising NotARegularFile unless it is a plain file."""
    try:
        info = os.stat(path)
    except FileNotFoundError as e:
        raise NotARegularFile(f"{os.fspath(path)!r} does not exist") from e
    if not stat.S_ISREG(info.st_mode):
        raise NotARegularFile(f"{os.fspath(path)!r} is not a regular file")
    return info.st_size


def iter_chain(path: Union[str, os.PathLike], layout: BlockLayout) -> Iterator[Tuple[int, bytes]]:
    """
    Yield ``(index, hash)`` from the last block down to block 0.
    """
    carried = ZERO_HASH
    with open(path, "rb") as f:
        for index in range(layout.last_index, -1, -1):
            block = layout.read(f, index)
            carried = sha256(block + carried)
            yield index, carried


class ChainBuilder:
    """
    Builds and caches the chain hashes of files.

    Args:
        store: Where chain hashes are persisted.
        block_size: Default block size for ``build`` calls that do not pass one.
    """

    def __init__(self, store: CacheStore, block_size: int = DEFAULT_BLOCK_SIZE) -> None:
        self.store = store
        self.block_size = block_size

    def build(self, path: Union[str, os.PathLike], block_size: Optional[int] = None) -> ChainInfo:
        """
        Pre-process ``path`` unless its chain is already cached.

        I/O errors abort the pass and propagate unchanged; nothing is published
        for an aborted pass, so a later call rebuilds from scratch.

        A cached chain keeps the block size it was built with: when it differs
        from the requested one, the returned layout follows the cache.
        """
        path = os.fspath(path)
        size = regular_file_size(path)
        layout = BlockLayout.for_size(size, self.block_size if block_size is None else block_size)
        key = file_identity_key(path)

        if self.store.exists(key):
            logger.info("Cache hit for %r", path)
            CACHE_LOOKUPS.labels(result="hit").inc()
            return ChainInfo(path, key, self._cached_layout(key, size, layout), cache_hit=True)

        CACHE_LOOKUPS.labels(result="miss").inc()
        logger.info("Building hash chain for %r (%d blocks)", path, layout.num_blocks)
        with PREPROCESS_LATENCY.time():
            with self.store.staging(key) as writer:
                writer.put_block_size(layout.block_size)
                for index, digest in iter_chain(path, layout):
                    writer.put(index, digest)
        if not writer.published:
            # another builder won the race; serve its chain
            return ChainInfo(path, key, self._cached_layout(key, size, layout))
        logger.info("Cached hash chain for %r under %s", path, key)
        return ChainInfo(path, key, layout)

    def _cached_layout(self, key: str, size: int, requested: BlockLayout) -> BlockLayout:
        try:
            cached_size = self.store.get_block_size(key)
        except CacheMiss as e:
            raise CacheCorrupt(f"cached chain {key} has no recorded block size") from e
        if cached_size <= 0:
            raise CacheCorrupt(f"cached chain {key} records invalid block size {cached_size}")
        if cached_size == requested.block_size:
            return requested
        logger.warning(
            "Cached chain %s was built with block size %d, using it instead of %d",
            key,
            cached_size,
            requested.block_size,
        )
        return BlockLayout(size, cached_size)

    def validate(self, info: ChainInfo) -> bool:
        """
        Recompute the chain of ``info.path`` and compare it with the cache.

        Returns False when the file changed since its chain was cached.
        """
        for index, digest in iter_chain(info.path, info.layout):
            try:
                cached = self.store.get(info.key, index)
            except CacheMiss:
                logger.warning("Hash %d missing from cache for %r", index, info.path)
                return False
            if cached != digest:
                logger.warning("Stale hash %d in cache for %r", index, info.path)
                return False
        return True

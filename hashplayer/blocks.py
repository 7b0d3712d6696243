"""
blocks.py - Block addressing shared by the chain builder and the block server.
"""
import logging
import warnings
from dataclasses import dataclass
from typing import BinaryIO

from .exceptions import EmptyFile, InvalidBlockSizeWarning, ShortRead

DEFAULT_BLOCK_SIZE = 1024

logger = logging.getLogger(__name__)


def coerce_block_size(block_size: int) -> int:
    """
    Replace a non-positive block size with DEFAULT_BLOCK_SIZE, warning about it.
    """
    if block_size <= 0:
        message = f"invalid block size {block_size}, defaulting to {DEFAULT_BLOCK_SIZE}"
        logger.warning(message)
        warnings.warn(message, InvalidBlockSizeWarning, stacklevel=3)
        return DEFAULT_BLOCK_SIZE
    return block_size


@dataclass(frozen=True)
class BlockLayout:
    """
    Splits a file of ``file_size`` bytes into blocks of ``block_size`` bytes.

    Index 0 is the start of the file. Every block is full except the last one,
    whose length is in (0, block_size].
    """
    file_size: int
    block_size: int

    def __post_init__(self) -> None:
        if self.block_size <= 0:
            raise ValueError(f"block size must be positive, got {self.block_size}")
        if self.file_size <= 0:
            raise EmptyFile("cannot split an empty file into blocks")

    @classmethod
    def for_size(cls, file_size: int, block_size: int) -> "BlockLayout":
        layout = cls(file_size, coerce_block_size(block_size))
        logger.info("numBlocks: %d, highestBlockSize: %d", layout.num_blocks, layout.highest_block_size)
        return layout

    @property
    def num_blocks(self) -> int:
        return (self.file_size - 1) // self.block_size + 1

    @property
    def highest_block_size(self) -> int:
        return (self.file_size - 1) % self.block_size + 1

    @property
    def last_index(self) -> int:
        return self.num_blocks - 1

    def is_last(self, index: int) -> bool:
        return index == self.last_index

    def offset(self, index: int) -> int:
        return self.block_size * index

    def length(self, index: int) -> int:
        if not 0 <= index < self.num_blocks:
            raise IndexError(f"block index {index} out of range [0, {self.num_blocks})")
        return self.highest_block_size if self.is_last(index) else self.block_size

    def read(self, f: BinaryIO, index: int) -> bytes:
        """
        Seek to block ``index`` and read exactly its length from ``f``.

        Raises ShortRead with the bytes that were read if the file ends early.
        """
        size = self.length(index)
        f.seek(self.offset(index))
        block = f.read(size)
        if len(block) != size:
            raise ShortRead(index, size, block)
        return block

"""
hashplayer - Stream files as hash-chained blocks that are verified one at a time.

A file is split into fixed-size blocks and pre-processed from its end toward
its start, so that each block's SHA-256 hash commits to the block and to the
hash of the block after it. A consumer holding only the root hash can then
verify every block as it arrives.
"""

__version__ = "0.1.0"

from .blocks import DEFAULT_BLOCK_SIZE, BlockLayout
from .cache import CacheStore, DirectoryCacheStore, MemoryCacheStore, file_identity_key
from .chain import ChainBuilder, ChainInfo
from .decoder import Decoder, decode, is_terminal
from .exceptions import (
    CacheCorrupt,
    CacheError,
    CacheMiss,
    DecodeError,
    EmptyFile,
    EndOfStream,
    HashPlayerError,
    InvalidBlockSizeWarning,
    NotARegularFile,
    ShortRead,
    StaleCache,
    TooShort,
    VerificationFailed,
)
from .metrics import start_metrics_server
from .server import BlockServer
from .stream import StreamResult, iter_verified_blocks, stream_file
from .utils import HASH_SIZE, ZERO_HASH

__all__ = [
    "DEFAULT_BLOCK_SIZE",
    "HASH_SIZE",
    "ZERO_HASH",
    "BlockLayout",
    "CacheStore",
    "DirectoryCacheStore",
    "MemoryCacheStore",
    "file_identity_key",
    "ChainBuilder",
    "ChainInfo",
    "BlockServer",
    "Decoder",
    "decode",
    "is_terminal",
    "stream_file",
    "iter_verified_blocks",
    "StreamResult",
    "start_metrics_server",
    "HashPlayerError",
    "NotARegularFile",
    "EmptyFile",
    "CacheError",
    "CacheCorrupt",
    "CacheMiss",
    "StaleCache",
    "ShortRead",
    "DecodeError",
    "TooShort",
    "VerificationFailed",
    "EndOfStream",
    "InvalidBlockSizeWarning",
]

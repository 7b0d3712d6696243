"""
stream.py - File-to-file orchestration of build, serve, and verify.
"""

import logging
import os
from dataclasses import dataclass
from typing import Iterator, Optional, Union

from .cache import CacheStore, DirectoryCacheStore
from .chain import ChainBuilder
from .config import Settings, get_settings
from .decoder import Decoder
from .server import BlockServer

logger = logging.getLogger(__name__)


@dataclass
class StreamResult:
    root_hash: bytes
    blocks: int = 0
    bytes_written: int = 0


def iter_verified_blocks(server: BlockServer, root_hash: Optional[bytes] = None) -> Iterator[bytes]:
    """
    Drive ``server`` request by request, yielding only verified block content.

    ``root_hash`` is the out-of-band trusted root; when omitted, request 0 of
    the server is trusted instead. Stops after the terminal block and closes
    the server on every exit.
    """
    with server:
        trusted = server.request(0) if root_hash is None else root_hash
        decoder = Decoder(trusted)
        request_number = 1
        while not decoder.finished:
            yield decoder.feed(server.request(request_number))
            request_number += 1


def stream_file(
    source: Union[str, os.PathLike],
    dest: Union[str, os.PathLike],
    block_size: Optional[int] = None,
    store: Optional[CacheStore] = None,
    root_hash: Optional[bytes] = None,
    settings: Optional[Settings] = None,
) -> StreamResult:
    """
    Pre-process ``source`` and copy it to ``dest`` through the verified stream.

    ``dest`` is truncated first. On failure it holds only the blocks verified
    before the failing one, and the error propagates.
    """
    settings = settings or get_settings()
    if store is None:
        store = DirectoryCacheStore(settings.cache_dir)
    builder = ChainBuilder(store, settings.block_size)
    info = builder.build(source, block_size)

    server = BlockServer(info, store)
    result = StreamResult(root_hash=root_hash if root_hash is not None else server.root_hash())
    with open(dest, "wb") as out:
        for block in iter_verified_blocks(server, result.root_hash):
            out.write(block)
            result.blocks += 1
            result.bytes_written += len(block)
    logger.info("Streamed %d blocks (%d bytes) from %r to %r", result.blocks, result.bytes_written, info.path, os.fspath(dest))
    return result

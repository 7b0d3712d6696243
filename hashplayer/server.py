"""
server.py - Forward, request-driven serving of hashed blocks.
"""

import logging
from typing import BinaryIO, Iterator, Optional

from .cache import CacheStore
from .chain import ChainInfo
from .exceptions import EndOfStream
from .metrics import BLOCKS_SERVED
from .utils import ZERO_HASH

logger = logging.getLogger(__name__)

ROOT_REQUEST = 0


class BlockServer:
    """
    Serves one file as a stream of hashed blocks.

    Request 0 returns the root hash. Request ``n`` returns block ``n-1``
    followed by the chain hash of block ``n``, or by 32 zero bytes when block
    ``n-1`` is the last one. Once the last block has been served, or a request
    goes past it, every further block request raises EndOfStream.

    The file is opened on the first block request and closed when the stream
    ends, when a request fails, or when ``close`` is called.
    """

    def __init__(self, info: ChainInfo, store: CacheStore) -> None:
        self.info = info
        self.store = store
        self._file: Optional[BinaryIO] = None
        self._exhausted = False

    @property
    def exhausted(self) -> bool:
        return self._exhausted

    def root_hash(self) -> bytes:
        return self.store.get(self.info.key, 0)

    def request(self, request_number: int) -> bytes:
        if request_number < 0:
            raise ValueError(f"request number must be >= 0, got {request_number}")
        if request_number == ROOT_REQUEST:
            return self.root_hash()

        # request 1 returns block 0, request 2 returns block 1
        index = request_number - 1
        layout = self.info.layout
        if self._exhausted or index >= layout.num_blocks:
            self._finish()
            raise EndOfStream(f"{self.info.path!r} has no block {index}")

        try:
            block = layout.read(self._handle(), index)
            if layout.is_last(index):
                trailer = ZERO_HASH
            else:
                trailer = self.store.get(self.info.key, request_number)
        except Exception:
            self.close()
            raise

        if layout.is_last(index):
            self._finish()
        BLOCKS_SERVED.inc()
        return block + trailer

    def close(self) -> None:
        """Release the file handle; safe to call more than once."""
        f, self._file = self._file, None
        if f is not None:
            f.close()

    def _handle(self) -> BinaryIO:
        if self._file is None:
            logger.info("Opening %r", self.info.path)
            self._file = open(self.info.path, "rb")
        return self._file

    def _finish(self) -> None:
        if not self._exhausted:
            logger.info("End of stream for %r", self.info.path)
        self._exhausted = True
        self.close()

    def __iter__(self) -> Iterator[bytes]:
        """Yield requests 0, 1, 2, ... until the stream ends."""
        request_number = ROOT_REQUEST
        while True:
            try:
                payload = self.request(request_number)
            except EndOfStream:
                return
            yield payload
            request_number += 1

    def __enter__(self) -> "BlockServer":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

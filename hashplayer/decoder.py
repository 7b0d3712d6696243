"""
decoder.py - Verification of hashed blocks against a trusted hash.
"""

import hmac
import logging
from typing import Optional, Tuple

from .exceptions import EndOfStream, TooShort, VerificationFailed
from .metrics import BLOCKS_VERIFIED, VERIFICATION_FAILURES
from .utils import HASH_SIZE, ZERO_HASH, sha256

logger = logging.getLogger(__name__)


def is_terminal(next_hash: bytes) -> bool:
    """True if ``next_hash`` is the all-zero trailer of the last block."""
    return next_hash == ZERO_HASH


def decode(trusted_hash: bytes, hashed_block: bytes) -> Tuple[bytes, bytes]:
    """
    Verify ``hashed_block`` against ``trusted_hash`` and split it.

    Returns ``(block, next_hash)``; ``next_hash`` is the hash to trust for the
    following request, or 32 zero bytes after the last block.
    """
    offset = len(hashed_block) - HASH_SIZE
    if offset <= 0:
        raise TooShort(f"hashed block too short, expected length > {HASH_SIZE}, got: {len(hashed_block)}")

    actual = sha256(hashed_block)
    if not hmac.compare_digest(actual, trusted_hash):
        VERIFICATION_FAILURES.inc()
        raise VerificationFailed(bytes(trusted_hash), actual)

    BLOCKS_VERIFIED.inc()
    return hashed_block[:offset], hashed_block[offset:]


class Decoder:
    """
    Lock-step consumer state: the hash trusted for the next hashed block.

    A failed verification is final; the decoder refuses every later block.
    """

    def __init__(self, root_hash: bytes) -> None:
        if len(root_hash) != HASH_SIZE:
            raise ValueError(f"root hash must be {HASH_SIZE} bytes, got {len(root_hash)}")
        self.trusted_hash = root_hash
        self.blocks = 0
        self.finished = False
        self.failure: Optional[VerificationFailed] = None

    def feed(self, hashed_block: bytes) -> bytes:
        """Verify the next hashed block and return its content."""
        if self.failure is not None:
            raise self.failure
        if self.finished:
            raise EndOfStream("terminal block already verified")
        try:
            block, next_hash = decode(self.trusted_hash, hashed_block)
        except VerificationFailed as e:
            logger.error("Block %d failed verification: %s", self.blocks, e)
            self.failure = e
            raise
        self.trusted_hash = next_hash
        self.blocks += 1
        self.finished = is_terminal(next_hash)
        return block

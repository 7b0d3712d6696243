"""
exceptions.py - Custom exceptions for the hashplayer package.
"""


class HashPlayerError(Exception):
    """Base exception for hashplayer failures."""
    pass


class NotARegularFile(HashPlayerError):
    """Raised when the source path is missing or is not a plain, seekable file."""
    pass


class EmptyFile(HashPlayerError):
    """Raised when the source file has no content bytes to chain."""
    pass


class CacheError(HashPlayerError):
    """Base exception for cache store failures."""
    pass


class CacheCorrupt(CacheError):
    """Raised when a cache location exists but does not hold what we expect."""
    pass


class CacheMiss(CacheError):
    """Raised when a chain hash is needed but has not been built."""
    pass


class StaleCache(CacheError):
    """Raised when a cached chain no longer matches the file it was built from."""
    pass


class ShortRead(HashPlayerError, OSError):
    """
    Raised when a block read returns fewer bytes than the layout promises.

    The bytes that were read are kept on ``partial``; they are unverified and
    must not be forwarded.
    """

    def __init__(self, index: int, expected: int, partial: bytes) -> None:
        super().__init__(f"short read on block {index}: expected {expected} bytes, got {len(partial)}")
        self.index = index
        self.expected = expected
        self.partial = partial


class DecodeError(HashPlayerError):
    """Base exception for hashed blocks that cannot be trusted."""
    pass


class TooShort(DecodeError):
    """Raised when a hashed block has no content byte in front of its trailer."""
    pass


class VerificationFailed(DecodeError):
    """Raised when a hashed block does not match the trusted hash."""

    def __init__(self, expected: bytes, actual: bytes) -> None:
        super().__init__(f"hashed block failed verification, expected: {expected.hex()}, got: {actual.hex()}")
        self.expected = expected
        self.actual = actual


class EndOfStream(Exception):
    """
    Raised when every block of a stream has been served.

    Not a ``HashPlayerError``: it marks a successful finish.
    """
    pass


class InvalidBlockSizeWarning(UserWarning):
    """Emitted when a non-positive block size is replaced by the default."""
    pass

"""Exception types raised by the tag maintenance engine."""

from __future__ import annotations


class TagkeeperError(RuntimeError):
    """Base class for tagkeeper failures."""


class DiscoveryError(TagkeeperError):
    """File enumeration or the mtime batch could not run; no index is produced."""


class IndexerError(TagkeeperError):
    """The external indexer failed or returned unusable output."""

    def __init__(self, message: str, *, returncode: int | None = None, stderr: str = "") -> None:
        super().__init__(message)
        self.returncode = returncode
        self.stderr = stderr


class StoreCorruption(TagkeeperError):
    """The tags file does not follow the block delimiter convention."""

"""Errors raised by the memory store."""


class MemoryStoreError(Exception):
    """Base class for memory store failures."""


class InvalidMemoryError(MemoryStoreError, ValueError):
    """Rejected input: empty user id or content, or a user id unsafe for a file name."""


class MemoryWriteError(MemoryStoreError):
    """A durable log operation failed; the in-memory index was left unchanged."""

from __future__ import annotations

from typing import Optional


class StoreError(Exception):
    """Base class for recoverable application errors."""


class ValidationError(StoreError, ValueError):
    def __init__(self, message: str, *, field: Optional[str] = None, reason: Optional[str] = None):
        super().__init__(message)
        self.field = field
        self.reason = reason


class ParseError(StoreError, ValueError):
    """Malformed import file. The import is aborted as a whole."""


class RemoteWriteError(StoreError, RuntimeError):
    def __init__(self, message: str, *, table: Optional[str] = None):
        super().__init__(message)
        self.table = table


class ReferentialIntegrityError(StoreError, ValueError):
    pass

from __future__ import annotations
from typing import Any, Dict, Optional


class HoldingsError(Exception):
    """Base error for the holdings service."""

    def __init__(self, message: str, error_code: str = "GENERAL_ERROR", details: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        self.error_code = error_code
        self.details = details or {}


class ExtractionError(HoldingsError):
    """Upstream fetch failed, timed out or returned no usable table."""

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message, "EXTRACTION_ERROR", details)


class PersistenceError(HoldingsError):
    """Local snapshot store could not be read or written."""

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message, "PERSISTENCE_ERROR", details)


class NoDataAvailableError(HoldingsError):
    """No snapshot could be produced by any path (fresh, cached or persisted)."""

    def __init__(self, message: str, cause: Optional[BaseException] = None):
        details = {"cause": str(cause)} if cause is not None else {}
        super().__init__(message, "NO_DATA_AVAILABLE", details)
        self.cause = cause

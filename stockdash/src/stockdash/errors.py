import json
import traceback

class StockDashError(Exception):
    """Base exception for stockdash"""
    def __init__(self, message: str, details: dict = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}

class ValidationError(StockDashError):
    """Input validation errors"""
    pass

class ProviderError(StockDashError):
    """
    External provider errors (network failure, non-success status,
    unusable reply). Always recoverable by trying again.
    """
    def __init__(self, message: str, details: dict = None):
        details = dict(details or {})
        details.setdefault("retryable", True)
        super().__init__(message, details)

class StorageError(StockDashError):
    """Watchlist storage backend unavailable or failing"""
    pass

def format_error(e: Exception) -> str:
    """Format exception as the JSON error envelope printed by the CLI"""

    if isinstance(e, StockDashError):
        error_type = e.__class__.__name__
        message = e.message
        details = e.details
    else:
        error_type = "UnknownError"
        message = str(e)
        details = {
            "traceback": traceback.format_exc().splitlines()
        }

    payload = {
        "ok": False,
        "error": {
            "type": error_type,
            "message": message,
            "details": details
        },
        "meta": {
            "version": 1
        }
    }

    return json.dumps(payload, indent=2)

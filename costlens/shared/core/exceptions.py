from typing import Optional, Dict, Any

class CostLensException(Exception):
    """Base exception for all CostLens errors."""
    def __init__(
        self,
        message: str,
        code: str = "internal_error",
        status_code: int = 500,
        details: Optional[Dict[str, Any]] = None
    ):
        super().__init__(message)
        self.message = message
        self.code = code
        self.status_code = status_code
        self.details = details or {}

class InvalidDateError(CostLensException):
    """Raised when a derived calendar boundary cannot be constructed."""
    def __init__(self, message: str, code: str = "invalid_date", details: Optional[Dict[str, Any]] = None):
        super().__init__(message, code=code, status_code=400, details=details)

class UpstreamFetchError(CostLensException):
    """Raised by store adapters when the record or budget store fails."""
    def __init__(self, message: str, code: str = "upstream_fetch_failed", details: Optional[Dict[str, Any]] = None):
        super().__init__(message, code=code, status_code=502, details=details)

class ResourceNotFoundError(CostLensException):
    """Raised when a requested account does not exist."""
    def __init__(self, message: str, code: str = "not_found", details: Optional[Dict[str, Any]] = None):
        super().__init__(message, code=code, status_code=404, details=details)

class DuplicateAccountError(CostLensException):
    """Raised when a provider account id is registered twice."""
    def __init__(self, message: str, code: str = "account_exists", details: Optional[Dict[str, Any]] = None):
        super().__init__(message, code=code, status_code=409, details=details)

from fastapi import HTTPException
from typing import Dict, Any


# =============================================================================
# DOMAIN ERRORS - raised by the aggregation engine, transport agnostic
# =============================================================================

class AnalyticsError(Exception):
    """Base class for aggregation engine errors"""
    pass


class AccountNotFoundError(AnalyticsError):
    """The referenced account does not exist in the record store"""
    def __init__(self, username: str):
        super().__init__(f"Account not found: {username}")
        self.username = username


class EmptyDataError(AnalyticsError):
    """The account exists but the relevant post set is empty"""
    def __init__(self, username: str, message: str):
        super().__init__(message)
        self.username = username


class AnalyticsFailure(AnalyticsError):
    """Unexpected fault while computing a view (store unavailable, malformed record...)"""
    def __init__(self, operation: str, cause: Exception):
        super().__init__(f"{operation} failed: {cause}")
        self.operation = operation
        self.cause = cause


# =============================================================================
# HTTP ERRORS - request layer
# =============================================================================

class APIException(HTTPException):
    def __init__(self, status_code: int, detail: Any, headers: Dict[str, Any] = None):
        super().__init__(status_code=status_code, detail=detail, headers=headers)


class NotFoundException(APIException):
    def __init__(self, detail: Any):
        super().__init__(status_code=404, detail=detail)


class ValidationException(APIException):
    def __init__(self, detail: Any):
        super().__init__(status_code=422, detail=detail)


class AnalyticsException(APIException):
    def __init__(self, detail: Any):
        super().__init__(status_code=500, detail=detail)


class CollectionException(APIException):
    def __init__(self, detail: Any):
        super().__init__(status_code=502, detail=detail)

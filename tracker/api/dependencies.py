"""
Request-scoped dependencies and the error mapping shared by the routers
"""
import logging
from typing import NoReturn

from fastapi import Depends, HTTPException

from tracker.core.exceptions import (
    AccountNotFoundError,
    EmptyDataError,
    NotFoundException,
    ValidationException,
    AnalyticsException,
)
from tracker.database.connection import get_session
from tracker.database.record_store import RecordStore
from tracker.services.analytics_orchestrator import AnalyticsOrchestrator
from tracker.services.analytics_service import AnalyticsService
from tracker.services.data_collection_service import DataCollectionService

logger = logging.getLogger(__name__)


def get_record_store() -> RecordStore:
    return RecordStore(get_session)


def get_analytics_service(store: RecordStore = Depends(get_record_store)) -> AnalyticsService:
    return AnalyticsService(store)


def get_orchestrator(analytics: AnalyticsService = Depends(get_analytics_service)) -> AnalyticsOrchestrator:
    return AnalyticsOrchestrator(analytics)


def get_collection_service(store: RecordStore = Depends(get_record_store)) -> DataCollectionService:
    return DataCollectionService(store)


def failure_body(message: str, error: Exception) -> dict:
    return {"success": False, "message": message, "error": str(error)}


def raise_http_error(message: str, error: Exception) -> NoReturn:
    """
    Translate an engine error into the matching HTTP exception

    AccountNotFoundError -> 404, EmptyDataError/ValueError -> 422, anything else -> 500
    """
    if isinstance(error, HTTPException):
        raise error
    if isinstance(error, AccountNotFoundError):
        raise NotFoundException(failure_body(message, error)) from error
    if isinstance(error, (EmptyDataError, ValueError)):
        raise ValidationException(failure_body(message, error)) from error

    logger.error(f"{message}: {error}")
    raise AnalyticsException(failure_body(message, error)) from error

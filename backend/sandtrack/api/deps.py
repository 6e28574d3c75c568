"""
FastAPI dependencies for database sessions, settings and services.

This module also maps the engine's error taxonomy onto HTTP status codes
so every router reports failures the same way.
"""

from typing import Annotated

from fastapi import Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from sandtrack.core.config import Settings, get_settings
from sandtrack.core.exceptions import (
    ConflictError,
    EntityNotFoundError,
    PreconditionFailedError,
    SandtrackError,
    StoreUnavailableError,
    ValidationFailedError,
)
from sandtrack.database.connection import get_db
from sandtrack.services.deliveries.service import DeliveryLifecycleService
from sandtrack.services.invoices.service import InvoiceService

DatabaseSession = Annotated[AsyncSession, Depends(get_db)]
AppSettings = Annotated[Settings, Depends(get_settings)]

# Most specific first; EntityNotFoundError is a PreconditionFailedError
ERROR_STATUS_CODES: tuple[tuple[type[SandtrackError], int], ...] = (
    (ValidationFailedError, status.HTTP_400_BAD_REQUEST),
    (EntityNotFoundError, status.HTTP_404_NOT_FOUND),
    (PreconditionFailedError, status.HTTP_422_UNPROCESSABLE_ENTITY),
    (ConflictError, status.HTTP_409_CONFLICT),
    (StoreUnavailableError, status.HTTP_503_SERVICE_UNAVAILABLE),
)


def status_code_for_error(error: SandtrackError) -> int:
    """
    Resolve the HTTP status code for an engine error.

    Args:
        error: Raised engine error

    Returns:
        HTTP status code, 500 for errors outside the taxonomy
    """
    for error_type, code in ERROR_STATUS_CODES:
        if isinstance(error, error_type):
            return code
    return status.HTTP_500_INTERNAL_SERVER_ERROR


async def get_lifecycle_service(
    db: DatabaseSession,
    settings: AppSettings,
) -> DeliveryLifecycleService:
    return DeliveryLifecycleService(db, settings)


async def get_invoice_service(
    db: DatabaseSession,
    settings: AppSettings,
) -> InvoiceService:
    return InvoiceService(db, settings)


LifecycleService = Annotated[DeliveryLifecycleService, Depends(get_lifecycle_service)]
Invoices = Annotated[InvoiceService, Depends(get_invoice_service)]

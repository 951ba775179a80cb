# accounting/api/exception_handler.py

"""
DRF EXCEPTION HANDLER

Maps ledger service errors onto HTTP responses so views stay thin:

- LedgerValidationError      -> 400 (structured body from as_dict())
- ConcurrencyConflictError   -> 409 (safe to retry)
- LedgerConfigurationError   -> 500 (setup problem, logged at ERROR)
- django ValidationError     -> 400

Everything else falls through to DRF's default handler.
"""

from __future__ import annotations

import logging

from django.core.exceptions import ValidationError as DjangoValidationError
from rest_framework import status
from rest_framework.response import Response
from rest_framework.views import exception_handler

from accounting.services.exceptions import (
    ConcurrencyConflictError,
    LedgerConfigurationError,
    LedgerServiceError,
    LedgerValidationError,
)

logger = logging.getLogger("accounting")


def ledger_exception_handler(exc, context):
    if isinstance(exc, LedgerValidationError):
        return Response(exc.as_dict(), status=status.HTTP_400_BAD_REQUEST)

    if isinstance(exc, ConcurrencyConflictError):
        return Response(exc.as_dict(), status=status.HTTP_409_CONFLICT)

    if isinstance(exc, LedgerConfigurationError):
        logger.error("Ledger configuration error", extra={"code": exc.code, "error": str(exc)})
        return Response(exc.as_dict(), status=status.HTTP_500_INTERNAL_SERVER_ERROR)

    if isinstance(exc, LedgerServiceError):
        return Response(exc.as_dict(), status=status.HTTP_400_BAD_REQUEST)

    if isinstance(exc, DjangoValidationError):
        return Response(
            {"code": "validation_error", "errors": exc.messages},
            status=status.HTTP_400_BAD_REQUEST,
        )

    return exception_handler(exc, context)

"""
Settlement errors and their HTTP rendering.

Every error is terminal for the computation that raised it: the engine never
returns a partial snapshot, and the caller keeps the last stored one.
"""

import logging
from datetime import datetime
from typing import Any, Dict, Optional

from fastapi import Request, status
from fastapi.responses import JSONResponse

logger = logging.getLogger(__name__)


class AppException(Exception):
    """Base application exception."""

    def __init__(self, message: str, error_code: str, status_code: int = 500, details: Dict[str, Any] = None):
        self.message = message
        self.error_code = error_code
        self.status_code = status_code
        self.details = details or {}
        super().__init__(message)


class SettlementError(AppException):
    """Base class for errors that stop a settlement computation."""


class MalformedExpenseError(SettlementError):
    """Raised when an expense record breaks the shares-sum-to-amount contract."""

    def __init__(self, expense_id: str, reason: str):
        self.expense_id = expense_id
        self.reason = reason
        super().__init__(
            message=f"Expense {expense_id} is malformed: {reason}",
            error_code="ERR_SETTLE_MALFORMED",
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            details={"expense_id": expense_id, "reason": reason}
        )


class MissingExchangeRateError(SettlementError):
    """Raised when the ledger uses a currency the rate snapshot has no rate for."""

    def __init__(self, currency: str, base_currency: Optional[str] = None):
        self.currency = currency
        message = f"No exchange rate for {currency}"
        if base_currency:
            message = f"No exchange rate from {currency} to {base_currency}"
        super().__init__(
            message=message,
            error_code="ERR_SETTLE_MISSING_RATE",
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            details={"currency": currency, "base_currency": base_currency}
        )


class UnknownParticipantError(SettlementError):
    """Raised when a ledger entry references someone outside the trip."""

    def __init__(self, participant_id: str, expense_id: Optional[str] = None):
        self.participant_id = participant_id
        self.expense_id = expense_id
        message = f"Unknown participant {participant_id}"
        if expense_id:
            message = f"Unknown participant {participant_id} in expense {expense_id}"
        super().__init__(
            message=message,
            error_code="ERR_SETTLE_UNKNOWN_PARTICIPANT",
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            details={"participant_id": participant_id, "expense_id": expense_id}
        )


class ImbalancedLedgerError(SettlementError):
    """Internal invariant violation: balances do not net to zero."""

    def __init__(self, message: str, residual_minor: Optional[int] = None, issues: Optional[list] = None):
        self.residual_minor = residual_minor
        self.issues = issues or []
        super().__init__(
            message=message,
            error_code="ERR_SETTLE_IMBALANCED",
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            details={"residual_minor": residual_minor, "issues": self.issues}
        )


class StaleExchangeRateError(SettlementError):
    """Raised when the rate snapshot is older than the allowed age."""

    def __init__(self, as_of: datetime, max_age_hours: int):
        self.as_of = as_of
        self.max_age_hours = max_age_hours
        super().__init__(
            message=f"Exchange rates as of {as_of.isoformat()} are older than {max_age_hours}h",
            error_code="ERR_SETTLE_STALE_RATES",
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            details={"as_of": as_of.isoformat(), "max_age_hours": max_age_hours}
        )


class TripNotFoundError(AppException):
    """Raised when the trip to settle does not exist."""

    def __init__(self, trip_id: str):
        super().__init__(
            message=f"Trip with ID {trip_id} not found",
            error_code="ERR_NOT_FOUND_001",
            status_code=status.HTTP_404_NOT_FOUND,
            details={"resource": "Trip", "id": trip_id}
        )


# Global Exception Handlers

async def app_exception_handler(request: Request, exc: AppException) -> JSONResponse:
    """Handler for custom application exceptions."""
    if exc.status_code >= 500:
        logger.error(exc.message, extra={"error_code": exc.error_code, "path": request.url.path})
    return JSONResponse(
        status_code=exc.status_code,
        content={
            "error_code": exc.error_code,
            "message": exc.message,
            "details": exc.details
        }
    )

"""Exception hierarchy for travelledger.

Every error carries a human-readable message plus a ``context`` dict that is
passed straight into structured log events.

Usage:
    from travelledger.exceptions import ConflictError

    try:
        lifecycle.approve(transaction_id, record_id)
    except ConflictError as e:
        logger.warning("approve_rejected", error=str(e), context=e.context)
"""

from __future__ import annotations

from typing import Any


class TravelLedgerError(Exception):
    """Base exception for all travelledger errors.

    Attributes:
        message: Human-readable error message
        context: Additional context for debugging (dict)
        original_error: Original exception if wrapped
    """

    def __init__(
        self,
        message: str,
        *,
        context: dict[str, Any] | None = None,
        original_error: Exception | None = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.context = context or {}
        self.original_error = original_error

    def __str__(self) -> str:
        """Format exception with context for logging."""
        base = self.message
        if self.context:
            ctx_str = ", ".join(f"{k}={v}" for k, v in self.context.items())
            base = f"{base} ({ctx_str})"
        if self.original_error:
            base = f"{base} [caused by: {type(self.original_error).__name__}]"
        return base

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(message={self.message!r}, context={self.context!r})"


# =============================================================================
# Validation & Input Errors
# =============================================================================


class ValidationError(TravelLedgerError):
    """Raised when a required field is missing or malformed.

    Optional fields (dates, counterparty names) never raise; the scorer drops
    the signal instead.
    """

    def __init__(
        self,
        message: str,
        *,
        field: str | None = None,
        value: Any = None,
        constraint: str | None = None,
        **kwargs: Any,
    ) -> None:
        """Initialize validation error.

        Args:
            message: Error description
            field: Name of the invalid field
            value: The invalid value (truncated in logs)
            constraint: Validation constraint that was violated
            **kwargs: Additional context
        """
        context = dict(kwargs.get("context") or {})
        if field:
            context["field"] = field
        if value is not None:
            context["value"] = str(value)[:100]
        if constraint:
            context["constraint"] = constraint
        kwargs["context"] = context
        super().__init__(message, **kwargs)


class ConfigurationError(TravelLedgerError):
    """Raised when settings are inconsistent (e.g. weights that do not sum to 1)."""

    def __init__(
        self,
        message: str,
        *,
        setting: str | None = None,
        expected: str | None = None,
        **kwargs: Any,
    ) -> None:
        context = dict(kwargs.get("context") or {})
        if setting:
            context["setting"] = setting
        if expected:
            context["expected"] = expected
        kwargs["context"] = context
        super().__init__(message, **kwargs)


# =============================================================================
# Database & Persistence Errors
# =============================================================================


class DatabaseError(TravelLedgerError):
    """Base class for persistence errors."""


class NotFoundError(DatabaseError):
    """Raised when a match or suggestion does not exist.

    Usually means a concurrent action already resolved it; callers should
    refresh their state and retry or ignore.
    """

    def __init__(
        self,
        message: str,
        *,
        entity_type: str | None = None,
        entity_id: int | str | None = None,
        **kwargs: Any,
    ) -> None:
        context = dict(kwargs.get("context") or {})
        if entity_type:
            context["entity_type"] = entity_type
        if entity_id:
            context["entity_id"] = str(entity_id)
        kwargs["context"] = context
        super().__init__(message, **kwargs)


class DatabaseIntegrityError(DatabaseError):
    """Raised when a database constraint other than match uniqueness fails."""


# =============================================================================
# Business Logic Errors
# =============================================================================


class BusinessLogicError(TravelLedgerError):
    """Base class for business rule violations."""


class ConflictError(BusinessLogicError):
    """Raised when a confirmation would give a transaction or record a second
    confirmed match.

    The existing match has to be unlinked first; it is never overwritten.
    """

    def __init__(
        self,
        message: str,
        *,
        transaction_id: str | None = None,
        record_id: str | None = None,
        existing_match_id: str | None = None,
        **kwargs: Any,
    ) -> None:
        context = dict(kwargs.get("context") or {})
        if transaction_id:
            context["transaction_id"] = transaction_id
        if record_id:
            context["record_id"] = record_id
        if existing_match_id:
            context["existing_match_id"] = existing_match_id
        kwargs["context"] = context
        super().__init__(message, **kwargs)


# =============================================================================
# Utility Functions
# =============================================================================


def wrap_exception(
    error: Exception,
    message: str,
    *,
    exception_class: type[TravelLedgerError] = TravelLedgerError,
    **context: Any,
) -> TravelLedgerError:
    """Wrap a third-party exception in the travelledger hierarchy.

    Example:
        try:
            session.commit()
        except IntegrityError as e:
            raise wrap_exception(
                e,
                "Record already has a confirmed match",
                exception_class=ConflictError,
                record_id="inv-001",
            )
    """
    return exception_class(
        message,
        context=context,
        original_error=error,
    )


__all__ = [
    "TravelLedgerError",
    "ValidationError",
    "ConfigurationError",
    "DatabaseError",
    "NotFoundError",
    "DatabaseIntegrityError",
    "BusinessLogicError",
    "ConflictError",
    "wrap_exception",
]

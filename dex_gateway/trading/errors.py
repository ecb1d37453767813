from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from .types import INVALID_PARAMETER, OPERATION_ERROR, TRANSACTION_UNCONFIRMED


class GatewayError(Exception):
    """Base for failures that already know their stable error code and HTTP status."""

    status = 500

    def __init__(self, message: str, *, reason: str | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.reason = reason


class ValidationError(GatewayError):
    status = 400

    def __init__(self, message: str) -> None:
        super().__init__(message, reason=INVALID_PARAMETER)


class ExecutionError(GatewayError):
    """Submission failed or the swap reverted on-chain."""

    def __init__(self, message: str, *, reason: str | None = None, tx_hash: str | None = None) -> None:
        super().__init__(message, reason=reason)
        self.tx_hash = tx_hash


class ConfirmationTimeoutError(GatewayError):
    """The transaction was broadcast but no receipt arrived in time; outcome unknown."""

    status = 202

    def __init__(self, message: str, *, tx_hash: str) -> None:
        super().__init__(message, reason=TRANSACTION_UNCONFIRMED)
        self.tx_hash = tx_hash


@dataclass(slots=True, frozen=True)
class ClassifiedError:
    error: str
    message: Any
    status: int = 500

    def to_dict(self) -> dict[str, Any]:
        return {"error": self.error, "message": self.message}


def _structured_reason(error: BaseException) -> str | None:
    reason = getattr(error, "reason", None)
    if isinstance(reason, str) and reason.strip():
        return reason
    return None


def classify(error: BaseException) -> ClassifiedError:
    """Map any failure to a stable ``{error, message}`` pair.

    A structured reason (our own codes, an on-chain revert string) is surfaced
    verbatim; everything else becomes ``operation_error`` with the raw text.
    """
    status = error.status if isinstance(error, GatewayError) else 500
    message = error.message if isinstance(error, GatewayError) else str(error)

    reason = _structured_reason(error)
    if reason is not None:
        return ClassifiedError(error=reason, message=message, status=status)
    return ClassifiedError(error=OPERATION_ERROR, message=message, status=status)

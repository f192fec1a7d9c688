"""
Service exceptions shared by every app.

Each exception carries one ErrorKind. Views translate the kind to an HTTP
status through HTTP_STATUS instead of inspecting exception names.
"""

from enum import StrEnum
from typing import Any, ClassVar


class ErrorKind(StrEnum):
    """Closed set of failure kinds a service operation can report."""

    VALIDATION = "validation_error"
    NOT_FOUND = "not_found"
    OFFER_INVALID = "offer_invalid"
    SIGNATURE_INVALID = "signature_invalid"
    TRANSITION = "invalid_transition"
    CONFLICT = "conflict"
    MANUAL_REFUND_REQUIRED = "manual_refund_required"
    GATEWAY_ERROR = "gateway_error"
    GATEWAY_UNAVAILABLE = "gateway_unavailable"
    PERMISSION_DENIED = "permission_denied"


HTTP_STATUS: dict[ErrorKind, int] = {
    ErrorKind.VALIDATION: 400,
    ErrorKind.NOT_FOUND: 404,
    ErrorKind.OFFER_INVALID: 400,
    ErrorKind.SIGNATURE_INVALID: 400,
    ErrorKind.TRANSITION: 400,
    ErrorKind.CONFLICT: 409,
    ErrorKind.MANUAL_REFUND_REQUIRED: 400,
    ErrorKind.GATEWAY_ERROR: 502,
    ErrorKind.GATEWAY_UNAVAILABLE: 502,
    ErrorKind.PERMISSION_DENIED: 403,
}


class ServiceError(Exception):
    """Base exception for service-layer failures."""

    kind: ClassVar[ErrorKind] = ErrorKind.VALIDATION

    def __init__(self, message: str, **details: Any) -> None:
        self.message = message
        self.details = details
        super().__init__(message)

    @property
    def status_code(self) -> int:
        return HTTP_STATUS[self.kind]


class ValidationError(ServiceError):
    """Malformed or inconsistent input."""

    kind = ErrorKind.VALIDATION


class NotFoundError(ServiceError):
    """Unknown order, item, address, offer or transaction."""

    kind = ErrorKind.NOT_FOUND


class OfferInvalidError(ServiceError):
    """Offer rejected by a business rule."""

    kind = ErrorKind.OFFER_INVALID


class SignatureVerificationFailed(ServiceError):
    """Payload signature did not match."""

    kind = ErrorKind.SIGNATURE_INVALID


class TransitionError(ServiceError):
    """Order status change not allowed from the current status."""

    kind = ErrorKind.TRANSITION

    def __init__(self, current: str, target: str) -> None:
        super().__init__(
            f"Cannot change order status from '{current}' to '{target}'",
            current=current,
            target=target,
        )
        self.current = current
        self.target = target


class ConflictError(ServiceError):
    """Operation not allowed in the resource's current state."""

    kind = ErrorKind.CONFLICT


class PaymentNotAllowed(ConflictError):
    """Payment cannot be initiated for the order right now."""


class RefundNotAllowed(ConflictError):
    """Refund preconditions are not met."""


class PermissionDeniedError(ServiceError):
    """Caller may not act on this resource."""

    kind = ErrorKind.PERMISSION_DENIED


class GatewayError(ServiceError):
    """Payment gateway rejected a request."""

    kind = ErrorKind.GATEWAY_ERROR

    def __init__(
        self,
        message: str,
        provider: str | None = None,
        status_code: int | None = None,
        response_body: str | None = None,
    ) -> None:
        super().__init__(message, provider=provider)
        self.provider = provider
        self.upstream_status = status_code
        self.response_body = response_body


class GatewayUnavailable(GatewayError):
    """Gateway timed out or failed on its side. Safe to retry later."""

    kind = ErrorKind.GATEWAY_UNAVAILABLE

    def __init__(
        self,
        message: str,
        provider: str | None = None,
        timed_out: bool = False,
    ) -> None:
        super().__init__(message, provider)
        self.timed_out = timed_out

    @property
    def status_code(self) -> int:
        return 504 if self.timed_out else HTTP_STATUS[self.kind]


class ManualRefundRequired(GatewayError):
    """Gateway has no refund API; the refund must be settled by hand."""

    kind = ErrorKind.MANUAL_REFUND_REQUIRED

# storefront/core/errors.py
"""
Storefront exceptions.

Raised by the cart engine, the order/delivery state machine and the
resource client. The gateway API maps them to HTTP responses in
`storefront.main`.
"""


class StorefrontError(Exception):
    """Base exception for all storefront errors."""

    def __init__(self, message: str):
        self.message = message
        super().__init__(message)


class InvalidCheckoutState(StorefrontError):
    """Checkout attempted without an identity, with an empty cart, or while blocked."""


class RequestFailed(StorefrontError):
    """
    Non-2xx response (or transport failure) from the backend.

    `status` is 0 when no response was received at all.
    """

    def __init__(self, status: int, message: str):
        self.status = status
        super().__init__(message)

    @property
    def is_authorization_error(self) -> bool:
        return self.status in (401, 403)

    @property
    def is_transient(self) -> bool:
        return self.status == 0 or self.status in (408, 429) or self.status >= 500


class MalformedResponse(StorefrontError):
    """2xx response whose body matches no recognized envelope."""

    def __init__(self, resource: str, body: object):
        self.resource = resource
        self.body = body
        super().__init__(f"Unexpected response format from '{resource}'")


class Unauthorized(StorefrontError):
    """Local role/ownership mismatch detected before a read is dispatched."""

    def __init__(self, message: str = "Access denied"):
        super().__init__(message)


class UpdateValidationError(StorefrontError):
    """Outgoing order/delivery mutation rejected before dispatch."""


class InvalidStatus(UpdateValidationError):
    def __init__(self, value: object, kind: str):
        self.value = value
        self.kind = kind
        super().__init__(f"Invalid {kind} status: {value}")


class InvalidPriority(UpdateValidationError):
    def __init__(self, value: object):
        self.value = value
        super().__init__(f"Invalid priority: {value}")


class InvalidTransition(UpdateValidationError):
    def __init__(self, kind: str, current: str, target: str):
        self.kind = kind
        self.current = current
        self.target = target
        super().__init__(f"Invalid {kind} status transition: {current} -> {target}")


class MissingFailureReason(UpdateValidationError):
    def __init__(self):
        super().__init__("A failure reason is required when marking a delivery as failed")

"""Error taxonomy surfaced by the payment core.

The API layer maps each class to a status code; messages on these exceptions
are safe to return to clients.
"""


class PaymentError(Exception):
    """Base class for all payment core failures."""


class InvalidAmount(PaymentError):
    """Amount missing, non-numeric, or below the chargeable minimum."""


class ProcessorError(PaymentError):
    """Upstream processor call failed; carries the processor's message."""

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.status_code = status_code


class VerificationFailure(PaymentError):
    """Webhook could not be authenticated.

    `reason` is for server-side logs only. The string form is always the same
    generic message so callers cannot tell which check failed.
    """

    public_message = "Webhook verification failed"

    def __init__(self, reason: str) -> None:
        super().__init__(self.public_message)
        self.reason = reason


class IntentNotFound(PaymentError):
    """No locally known intent with the given id."""

    def __init__(self, intent_id: str) -> None:
        super().__init__("Payment intent not found")
        self.intent_id = intent_id


class InvalidTransition(PaymentError, ValueError):
    """Requested state change is not allowed from the current state."""

"""Webhook signature verification.

The processor signs `"<timestamp>.<raw body>"` with HMAC-SHA256 and sends
`t=<timestamp>,v1=<hex digest>[,v1=...]` in the signature header. The HMAC is
computed over the exact received bytes; callers must not parse or re-encode
the body first, so anything other than `bytes` is refused.
"""

import hashlib
import hmac
import time

from pydantic import SecretStr, ValidationError

from paybridge.common.errors import VerificationFailure
from paybridge.services.webhooks.schemas import WebhookEvent

SIGNATURE_SCHEME = "v1"


def parse_signature_header(header: str) -> tuple[int, list[str]]:
    """Split a signature header into its timestamp and `v1` signatures."""

    timestamp: int | None = None
    signatures: list[str] = []
    for item in header.split(","):
        key, sep, value = item.strip().partition("=")
        if not sep:
            continue
        if key == "t":
            try:
                timestamp = int(value)
            except ValueError as exc:
                raise VerificationFailure("malformed_timestamp") from exc
        elif key == SIGNATURE_SCHEME:
            signatures.append(value)
    if timestamp is None:
        raise VerificationFailure("missing_timestamp")
    if not signatures:
        raise VerificationFailure("missing_signature")
    return timestamp, signatures


def compute_signature(payload: bytes, secret: str, timestamp: int) -> str:
    signed_payload = str(timestamp).encode("utf-8") + b"." + payload
    return hmac.new(secret.encode("utf-8"), signed_payload, hashlib.sha256).hexdigest()


def sign_payload(payload: bytes, secret: str, timestamp: int | None = None) -> str:
    """Build a signature header the way the processor does."""

    if timestamp is None:
        timestamp = int(time.time())
    return f"t={timestamp},{SIGNATURE_SCHEME}={compute_signature(payload, secret, timestamp)}"


def _secret_value(secret: str | SecretStr | None) -> str:
    if isinstance(secret, SecretStr):
        return secret.get_secret_value()
    return secret or ""


def verify_signature(
    payload: bytes,
    signature_header: str | None,
    secret: str | SecretStr | None,
    tolerance_seconds: int,
    now: float | None = None,
) -> int:
    """Authenticate `payload`, returning the signed timestamp.

    Every failure raises `VerificationFailure`; its `reason` is for logs only.
    """

    secret_value = _secret_value(secret)
    if not secret_value:
        raise VerificationFailure("secret_not_configured")
    if not isinstance(payload, (bytes, bytearray)):
        raise VerificationFailure("payload_not_raw_bytes")
    if not signature_header:
        raise VerificationFailure("missing_header")

    timestamp, signatures = parse_signature_header(signature_header)
    expected = compute_signature(bytes(payload), secret_value, timestamp).encode("ascii")
    if not any(hmac.compare_digest(expected, candidate.encode("utf-8")) for candidate in signatures):
        raise VerificationFailure("signature_mismatch")

    current = time.time() if now is None else now
    if tolerance_seconds > 0 and abs(current - timestamp) > tolerance_seconds:
        raise VerificationFailure("timestamp_outside_tolerance")
    return timestamp


def verify_webhook(
    payload: bytes,
    signature_header: str | None,
    secret: str | SecretStr | None,
    tolerance_seconds: int,
    now: float | None = None,
) -> WebhookEvent:
    """Verify the raw body and only then parse it into a `WebhookEvent`."""

    verify_signature(payload, signature_header, secret, tolerance_seconds, now=now)
    try:
        event = WebhookEvent.model_validate_json(bytes(payload))
    except ValidationError as exc:
        raise VerificationFailure("malformed_payload") from exc
    return event.model_copy(update={"signature_header": signature_header})

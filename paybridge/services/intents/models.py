"""Payment intent records held by the intent store.

Records are immutable; the store swaps in a whole new record on every
transition so readers never observe a half-applied update.
"""

from datetime import datetime, timezone

from pydantic import BaseModel, ConfigDict, Field

from paybridge.common.state_machine import CREATED


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class PaymentIntent(BaseModel):
    """Current state of one processor payment intent."""

    model_config = ConfigDict(frozen=True)

    id: str
    amount_minor_units: int
    currency: str
    description: str | None = None
    metadata: dict[str, str] = Field(default_factory=dict)
    state: str = CREATED
    state_version: int = 0
    # Handed to the client once at creation; excluded from dumps and repr.
    client_secret: str = Field(default="", repr=False, exclude=True)
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)


class IntentTransition(BaseModel):
    """Immutable audit entry for one applied state change."""

    model_config = ConfigDict(frozen=True)

    intent_id: str
    from_state: str | None
    to_state: str
    reason: str
    event_id: str | None = None
    at: datetime = Field(default_factory=utcnow)


class TransitionResult(BaseModel):
    """Outcome of `IntentStore.transition`.

    `applied` is False when the target was absorbed by a terminal state or
    equal to the current one; `intent` is the record after the call either way.
    """

    intent: PaymentIntent
    from_state: str
    applied: bool

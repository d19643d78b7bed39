"""Values returned by the intent orchestrator."""

from pydantic import BaseModel, Field

from paybridge.services.intents.models import PaymentIntent


class CreatedIntent(BaseModel):
    """Creation result; the only place a client secret is ever returned."""

    id: str
    client_secret: str = Field(repr=False)


class IntentStatus(BaseModel):
    """Status view of an intent. Never carries the client secret."""

    id: str
    state: str
    amount_minor_units: int
    currency: str
    description: str | None = None
    metadata: dict[str, str] = Field(default_factory=dict)

    @classmethod
    def from_intent(cls, intent: PaymentIntent) -> "IntentStatus":
        return cls(
            id=intent.id,
            state=intent.state,
            amount_minor_units=intent.amount_minor_units,
            currency=intent.currency,
            description=intent.description,
            metadata=dict(intent.metadata),
        )

"""Webhook event shapes delivered by the processor."""

from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class WebhookIntentObject(BaseModel):
    """Payment intent embedded in a `payment_intent.*` event."""

    model_config = ConfigDict(extra="ignore")

    id: str
    amount: int | None = None
    currency: str | None = None
    status: str | None = None
    metadata: dict[str, str] = Field(default_factory=dict)
    last_payment_error: dict[str, Any] | None = None


class WebhookEventData(BaseModel):
    model_config = ConfigDict(extra="ignore")

    object: dict[str, Any]


class WebhookEvent(BaseModel):
    """A processor event. Only ever built from verified bytes."""

    model_config = ConfigDict(extra="ignore")

    id: str
    type: str
    created: int | None = None
    data: WebhookEventData
    signature_header: str = Field(default="", repr=False, exclude=True)

    def intent_object(self) -> WebhookIntentObject:
        return WebhookIntentObject.model_validate(self.data.object)


class WebhookAck(BaseModel):
    """Acknowledgement returned to the transport layer."""

    received: bool = True
    event_id: str
    event_type: str
    outcome: str
    intent_id: str | None = None
    state: str | None = None

"""Processor-side payment intent representation and status mapping."""

from pydantic import BaseModel, ConfigDict, Field

from paybridge.common.state_machine import CANCELED, CREATED, REQUIRES_ACTION, SUCCEEDED

# Processor statuses that map onto the local state machine. Payment failure
# is only learned from webhooks; the processor reports it as a return to
# `requires_payment_method`.
PROCESSOR_STATUS_TO_STATE: dict[str, str] = {
    "requires_payment_method": CREATED,
    "requires_confirmation": CREATED,
    "requires_capture": CREATED,
    "requires_action": REQUIRES_ACTION,
    "processing": REQUIRES_ACTION,
    "succeeded": SUCCEEDED,
    "canceled": CANCELED,
}


class ProcessorIntent(BaseModel):
    """Subset of the processor's payment intent object this service reads."""

    model_config = ConfigDict(extra="ignore")

    id: str
    status: str
    amount: int
    currency: str
    client_secret: str | None = Field(default=None, repr=False)
    description: str | None = None
    metadata: dict[str, str] = Field(default_factory=dict)

    @property
    def local_state(self) -> str | None:
        return PROCESSOR_STATUS_TO_STATE.get(self.status)

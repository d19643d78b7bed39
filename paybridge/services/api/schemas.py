"""API request/response schemas for the storefront-facing endpoints."""

from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class CreateIntentRequest(BaseModel):
    """Body of `POST /api/create-payment-intent`.

    `amount` is left untyped so the orchestrator, not schema coercion, decides
    what counts as a valid amount.
    """

    amount: Any = None
    currency: str | None = None
    description: str | None = None
    metadata: dict[str, Any] | None = None


class CreateIntentResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    client_secret: str = Field(alias="clientSecret")
    payment_intent_id: str = Field(alias="paymentIntentId")


class IntentStatusResponse(BaseModel):
    """Status view returned to clients. Never includes the client secret."""

    status: str
    amount: int
    currency: str
    metadata: dict[str, str]


class ConfigResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    publishable_key: str = Field(alias="publishableKey")


class Product(BaseModel):
    id: str
    name: str
    description: str
    price: int
    currency: str

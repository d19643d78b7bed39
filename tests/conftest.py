"""Shared fixtures: test settings, an in-memory processor fake, signing helpers."""

import json
import time

import pytest

from paybridge.common.config import Settings
from paybridge.common.errors import ProcessorError
from paybridge.services.intents.service import IntentOrchestrator
from paybridge.services.intents.store import InMemoryIntentStore
from paybridge.services.processor.models import ProcessorIntent
from paybridge.services.webhooks.reconciler import WebhookReconciler
from paybridge.services.webhooks.signature import sign_payload

WEBHOOK_SECRET = "whsec_test_secret"


class FakeProcessor:
    """Records calls and answers like the processor API would."""

    def __init__(self) -> None:
        self.calls: list[tuple] = []
        self.create_status = "requires_payment_method"
        self.remote_status: dict[str, str] = {}
        self.error: ProcessorError | None = None
        self._counter = 0
        self._by_idempotency_key: dict[str, ProcessorIntent] = {}

    async def create_payment_intent(self, amount, currency, description, metadata, idempotency_key=None):
        self.calls.append(("create", amount, currency, description, dict(metadata), idempotency_key))
        if self.error is not None:
            raise self.error
        if idempotency_key in self._by_idempotency_key:
            # A repeated key replays the original response, as the processor does.
            return self._by_idempotency_key[idempotency_key]
        self._counter += 1
        intent_id = f"pi_test_{self._counter}"
        self.remote_status[intent_id] = self.create_status
        created = ProcessorIntent(
            id=intent_id,
            status=self.create_status,
            amount=amount,
            currency=currency,
            client_secret=f"{intent_id}_secret_xyz",
            description=description,
            metadata=metadata,
        )
        if idempotency_key is not None:
            self._by_idempotency_key[idempotency_key] = created
        return created

    async def retrieve_payment_intent(self, intent_id):
        self.calls.append(("retrieve", intent_id))
        if self.error is not None:
            raise self.error
        return ProcessorIntent(
            id=intent_id,
            status=self.remote_status.get(intent_id, "requires_payment_method"),
            amount=0,
            currency="usd",
        )

    async def cancel_payment_intent(self, intent_id):
        self.calls.append(("cancel", intent_id))
        if self.error is not None:
            raise self.error
        self.remote_status[intent_id] = "canceled"
        return ProcessorIntent(id=intent_id, status="canceled", amount=0, currency="usd")

    def call_names(self) -> list[str]:
        return [call[0] for call in self.calls]


@pytest.fixture
def test_settings():
    return Settings(
        _env_file=None,
        stripe_secret_key="sk_test_key",
        stripe_publishable_key="pk_test_key",
        stripe_webhook_secret=WEBHOOK_SECRET,
        stripe_api_base="https://processor.test",
    )


@pytest.fixture
def processor():
    return FakeProcessor()


@pytest.fixture
def store():
    return InMemoryIntentStore()


@pytest.fixture
def orchestrator(store, processor, test_settings):
    return IntentOrchestrator(store, processor, test_settings)


@pytest.fixture
def reconciler(orchestrator):
    return WebhookReconciler(orchestrator)


def event_body(event_type: str, intent_id: str, event_id: str = "evt_1", amount: int = 2999) -> bytes:
    """Serialize a processor-shaped event around one intent."""

    return json.dumps(
        {
            "id": event_id,
            "type": event_type,
            "created": int(time.time()),
            "data": {
                "object": {
                    "id": intent_id,
                    "object": "payment_intent",
                    "amount": amount,
                    "currency": "usd",
                    "metadata": {"product_id": "prod_1"},
                }
            },
        }
    ).encode("utf-8")


@pytest.fixture
def signed_event():
    """Return `(body, signature_header)` for an event signed with the test secret."""

    def _build(event_type, intent_id, event_id="evt_1", secret=WEBHOOK_SECRET, timestamp=None):
        body = event_body(event_type, intent_id, event_id=event_id)
        return body, sign_payload(body, secret, timestamp)

    return _build

"""Intent orchestration.

Validates purchase requests before any processor call, mints intents at the
processor, records them in the intent store, and applies state transitions
for status polling, cancellation and webhook reconciliation. Store locks are
only taken for local mutations, never across a processor round trip.
"""

import math
from decimal import Decimal, InvalidOperation

from paybridge.common.config import Settings
from paybridge.common.errors import InvalidAmount, InvalidTransition, ProcessorError
from paybridge.common.logging import intent_id_ctx, logger
from paybridge.common.metrics import (
    intent_transition_noops_total,
    intent_transitions_total,
    intents_created_total,
)
from paybridge.common.state_machine import CANCELED, CREATED, REQUIRES_ACTION, is_terminal
from paybridge.services.intents.models import PaymentIntent, TransitionResult
from paybridge.services.intents.schemas import CreatedIntent, IntentStatus
from paybridge.services.intents.store import IntentStore
from paybridge.services.processor.client import PaymentProcessor
from paybridge.services.processor.models import ProcessorIntent


class IntentOrchestrator:
    """Owns intent creation, status lookups and state transitions."""

    def __init__(self, store: IntentStore, processor: PaymentProcessor, settings: Settings) -> None:
        self.store = store
        self.processor = processor
        self.settings = settings
        self.service_name = settings.service_name

    def _validate_amount(self, amount) -> int:
        """Return the amount in whole minor units or raise `InvalidAmount`.

        Numeric strings are accepted. The floor is checked on the raw value,
        before rounding.
        """

        minimum = self.settings.min_amount_minor_units
        message = f"Invalid amount. Minimum amount is {minimum} minor units."
        if isinstance(amount, str):
            try:
                amount = Decimal(amount.strip())
            except InvalidOperation as exc:
                raise InvalidAmount(message) from exc
            if not amount.is_finite():
                raise InvalidAmount(message)
        elif amount is None or isinstance(amount, bool) or not isinstance(amount, (int, float)):
            raise InvalidAmount(message)
        elif isinstance(amount, float) and not math.isfinite(amount):
            raise InvalidAmount(message)
        if amount < minimum:
            raise InvalidAmount(message)
        return int(round(amount))

    async def create_intent(
        self,
        amount,
        currency: str | None = None,
        description: str | None = None,
        metadata: dict | None = None,
        idempotency_key: str | None = None,
    ) -> CreatedIntent:
        """Mint a processor intent and store it locally.

        Nothing is stored unless the processor call succeeds and returns both
        an id and a client secret.
        """

        amount_minor_units = self._validate_amount(amount)
        currency = (currency or self.settings.default_currency).lower()
        metadata = {str(key): str(value) for key, value in (metadata or {}).items()}
        description = description or "Payment"

        remote = await self.processor.create_payment_intent(
            amount=amount_minor_units,
            currency=currency,
            description=description,
            metadata=metadata,
            idempotency_key=idempotency_key,
        )
        if not remote.id or not remote.client_secret:
            raise ProcessorError("Payment processor returned an incomplete intent")

        state = REQUIRES_ACTION if remote.local_state == REQUIRES_ACTION else CREATED
        intent = PaymentIntent(
            id=remote.id,
            amount_minor_units=amount_minor_units,
            currency=currency,
            description=description,
            metadata=metadata,
            state=state,
            client_secret=remote.client_secret,
        )
        stored = await self.store.put(intent.id, intent)
        intent_token = intent_id_ctx.set(stored.id)
        try:
            if stored is not intent:
                # Processor replayed an earlier creation for the same idempotency key.
                logger.info("intent_create_replayed intent_id=%s state=%s", stored.id, stored.state)
            else:
                intents_created_total.labels(service=self.service_name).inc()
                logger.info(
                    "intent_created intent_id=%s amount=%s currency=%s state=%s",
                    intent.id,
                    amount_minor_units,
                    currency,
                    state,
                )
        finally:
            intent_id_ctx.reset(intent_token)
        return CreatedIntent(id=stored.id, client_secret=remote.client_secret)

    async def apply_transition(
        self, intent_id: str, new_state: str, reason: str, event_id: str | None = None
    ) -> TransitionResult:
        """Move one intent to `new_state`; absorbed attempts are logged no-ops."""

        result = await self.store.transition(intent_id, new_state, reason=reason, event_id=event_id)
        if result.applied:
            intent_transitions_total.labels(
                service=self.service_name,
                from_state=result.from_state,
                to_state=new_state,
            ).inc()
            logger.info(
                "intent_transition intent_id=%s from=%s to=%s reason=%s",
                intent_id,
                result.from_state,
                new_state,
                reason,
            )
        else:
            intent_transition_noops_total.labels(service=self.service_name, state=result.intent.state).inc()
            logger.info(
                "intent_transition_noop intent_id=%s state=%s requested=%s reason=%s",
                intent_id,
                result.intent.state,
                new_state,
                reason,
            )
        return result

    async def _reconcile_drift(self, intent: PaymentIntent, remote: ProcessorIntent) -> PaymentIntent:
        target = remote.local_state
        if target is None or target == intent.state:
            return intent
        try:
            result = await self.apply_transition(intent.id, target, reason=f"processor_status:{remote.status}")
        except InvalidTransition:
            logger.warning(
                "status_drift_ignored intent_id=%s local=%s processor=%s",
                intent.id,
                intent.state,
                remote.status,
            )
            return await self.store.get(intent.id)
        return result.intent

    async def get_status(self, intent_id: str) -> IntentStatus:
        """Return the intent's status, re-querying the processor when enabled.

        Raises `IntentNotFound` when the id is not known locally.
        """

        intent = await self.store.get(intent_id)
        if self.settings.status_requery and not is_terminal(intent.state):
            remote = await self.processor.retrieve_payment_intent(intent_id)
            intent = await self._reconcile_drift(intent, remote)
        return IntentStatus.from_intent(intent)

    async def cancel_intent(self, intent_id: str) -> IntentStatus:
        """Cancel at the processor and record `CANCELED`; terminal intents are left as is."""

        intent = await self.store.get(intent_id)
        if is_terminal(intent.state):
            logger.info("cancel_skipped intent_id=%s state=%s", intent_id, intent.state)
            return IntentStatus.from_intent(intent)
        await self.processor.cancel_payment_intent(intent_id)
        result = await self.apply_transition(intent_id, CANCELED, reason="canceled_by_request")
        return IntentStatus.from_intent(result.intent)

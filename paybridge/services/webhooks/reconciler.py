"""Applies verified processor events to local intent state.

Event types map to target states through a closed table; anything not in the
table is acknowledged and ignored. Every event is acknowledged so the
processor stops redelivering it.
"""

from pydantic import ValidationError

from paybridge.common.errors import IntentNotFound, InvalidTransition
from paybridge.common.logging import event_id_ctx, intent_id_ctx, logger
from paybridge.common.metrics import webhook_events_total
from paybridge.common.state_machine import FAILED, SUCCEEDED
from paybridge.services.intents.service import IntentOrchestrator
from paybridge.services.webhooks.schemas import WebhookAck, WebhookEvent, WebhookIntentObject

EVENT_TRANSITIONS: dict[str, str] = {
    "payment_intent.succeeded": SUCCEEDED,
    "payment_intent.payment_failed": FAILED,
}


class WebhookReconciler:
    """Maps processor events onto orchestrator transitions, idempotently."""

    def __init__(self, orchestrator: IntentOrchestrator) -> None:
        self.orchestrator = orchestrator
        self.store = orchestrator.store
        self.service_name = orchestrator.service_name

    def _ack(
        self, event: WebhookEvent, outcome: str, intent_id: str | None = None, state: str | None = None
    ) -> WebhookAck:
        webhook_events_total.labels(
            service=self.service_name,
            event_type=event.type,
            outcome=outcome,
        ).inc()
        return WebhookAck(
            event_id=event.id,
            event_type=event.type,
            outcome=outcome,
            intent_id=intent_id,
            state=state,
        )

    async def reconcile(self, event: WebhookEvent) -> WebhookAck:
        """Apply one verified event and return an acknowledgement.

        Outcomes: `applied`, `noop` (state already absorbed it), `duplicate`
        (event id seen before), `ignored` (unmapped type or unusable object),
        `unknown_intent`, `rejected` (illegal transition).
        """

        event_token = event_id_ctx.set(event.id)
        try:
            target = EVENT_TRANSITIONS.get(event.type)
            if target is None:
                logger.info("webhook_unhandled_event_type event_type=%s", event.type)
                return self._ack(event, "ignored")

            if await self.store.has_processed_event(event.id):
                logger.info("duplicate event skipped event_type=%s event_id=%s", event.type, event.id)
                return self._ack(event, "duplicate")

            try:
                obj = event.intent_object()
            except ValidationError:
                logger.warning("webhook_object_unusable event_type=%s", event.type)
                await self.store.record_event(event.id)
                return self._ack(event, "ignored")

            intent_token = intent_id_ctx.set(obj.id)
            try:
                return await self._apply(event, obj, target)
            finally:
                intent_id_ctx.reset(intent_token)
        finally:
            event_id_ctx.reset(event_token)

    async def _apply(self, event: WebhookEvent, obj: WebhookIntentObject, target: str) -> WebhookAck:
        try:
            known = await self.store.get(obj.id)
        except IntentNotFound:
            logger.warning("webhook_unknown_intent event_type=%s intent_id=%s", event.type, obj.id)
            await self.store.record_event(event.id)
            return self._ack(event, "unknown_intent", intent_id=obj.id)

        if (obj.amount is not None and obj.amount != known.amount_minor_units) or (
            obj.currency is not None and obj.currency.lower() != known.currency
        ):
            logger.warning(
                "webhook_amount_mismatch intent_id=%s local=%s %s event=%s %s",
                obj.id,
                known.amount_minor_units,
                known.currency,
                obj.amount,
                obj.currency,
            )

        try:
            result = await self.orchestrator.apply_transition(
                obj.id, target, reason=f"webhook:{event.type}", event_id=event.id
            )
        except InvalidTransition as exc:
            logger.warning("webhook_transition_rejected intent_id=%s error=%s", obj.id, exc)
            await self.store.record_event(event.id)
            return self._ack(event, "rejected", intent_id=obj.id, state=known.state)

        outcome = "applied" if result.applied else "noop"
        return self._ack(event, outcome, intent_id=obj.id, state=result.intent.state)

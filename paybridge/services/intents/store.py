"""Keyed intent storage with per-id serialized transitions."""

import asyncio
from collections import OrderedDict, defaultdict
from typing import Protocol

from paybridge.common.errors import IntentNotFound
from paybridge.common.state_machine import is_noop, validate_transition
from paybridge.services.intents.models import IntentTransition, PaymentIntent, TransitionResult, utcnow


class IntentStore(Protocol):
    """Storage contract the orchestrator and reconciler depend on."""

    async def put(self, intent_id: str, intent: PaymentIntent) -> PaymentIntent: ...

    async def get(self, intent_id: str) -> PaymentIntent: ...

    async def transition(
        self, intent_id: str, new_state: str, reason: str, event_id: str | None = None
    ) -> TransitionResult: ...

    async def history(self, intent_id: str) -> list[IntentTransition]: ...

    async def has_processed_event(self, event_id: str) -> bool: ...

    async def record_event(self, event_id: str) -> None: ...


class InMemoryIntentStore:
    """Process-local store.

    Mutations on one intent id run under that id's lock; there is no lock
    spanning ids. Each transition replaces the whole record and bumps
    `state_version`. Processed webhook event ids are remembered up to
    `max_processed_events`; the oldest are forgotten first.
    """

    def __init__(self, max_processed_events: int = 100_000) -> None:
        self._intents: dict[str, PaymentIntent] = {}
        self._timeline: dict[str, list[IntentTransition]] = defaultdict(list)
        self._processed_events: OrderedDict[str, None] = OrderedDict()
        self._max_processed_events = max_processed_events
        self._locks: dict[str, asyncio.Lock] = {}

    def _lock(self, intent_id: str) -> asyncio.Lock:
        return self._locks.setdefault(intent_id, asyncio.Lock())

    def _remember_event(self, event_id: str) -> None:
        self._processed_events[event_id] = None
        self._processed_events.move_to_end(event_id)
        while len(self._processed_events) > self._max_processed_events:
            self._processed_events.popitem(last=False)

    async def put(self, intent_id: str, intent: PaymentIntent) -> PaymentIntent:
        """Insert `intent` unless the id is already known; return the stored record."""

        if intent.id != intent_id:
            raise ValueError(f"intent id mismatch: {intent_id} != {intent.id}")
        async with self._lock(intent_id):
            existing = self._intents.get(intent_id)
            if existing is not None:
                return existing
            self._intents[intent_id] = intent
            if not self._timeline[intent_id]:
                self._timeline[intent_id].append(
                    IntentTransition(
                        intent_id=intent_id,
                        from_state=None,
                        to_state=intent.state,
                        reason="intent_created",
                    )
                )
            return intent

    async def get(self, intent_id: str) -> PaymentIntent:
        intent = self._intents.get(intent_id)
        if intent is None:
            raise IntentNotFound(intent_id)
        return intent

    async def transition(
        self, intent_id: str, new_state: str, reason: str, event_id: str | None = None
    ) -> TransitionResult:
        """Apply `new_state` unless the current state absorbs it.

        Raises `IntentNotFound` for unknown ids and `InvalidTransition` for
        illegal moves out of a non-terminal state.
        """

        async with self._lock(intent_id):
            current = self._intents.get(intent_id)
            if current is None:
                raise IntentNotFound(intent_id)
            if is_noop(current.state, new_state):
                if event_id is not None:
                    self._remember_event(event_id)
                return TransitionResult(intent=current, from_state=current.state, applied=False)

            validate_transition(current.state, new_state)
            if event_id is not None:
                self._remember_event(event_id)
            updated = current.model_copy(
                update={
                    "state": new_state,
                    "state_version": current.state_version + 1,
                    "updated_at": utcnow(),
                }
            )
            self._intents[intent_id] = updated
            self._timeline[intent_id].append(
                IntentTransition(
                    intent_id=intent_id,
                    from_state=current.state,
                    to_state=new_state,
                    reason=reason,
                    event_id=event_id,
                )
            )
            return TransitionResult(intent=updated, from_state=current.state, applied=True)

    async def history(self, intent_id: str) -> list[IntentTransition]:
        if intent_id not in self._intents:
            raise IntentNotFound(intent_id)
        return list(self._timeline[intent_id])

    async def has_processed_event(self, event_id: str) -> bool:
        return event_id in self._processed_events

    async def record_event(self, event_id: str) -> None:
        self._remember_event(event_id)

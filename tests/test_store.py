"""Intent store: atomic per-id transitions, absorption and history."""

import asyncio

import pytest

from paybridge.common.errors import IntentNotFound, InvalidTransition
from paybridge.services.intents.models import PaymentIntent
from paybridge.services.intents.store import InMemoryIntentStore


def _intent(intent_id="pi_1", state="CREATED"):
    return PaymentIntent(
        id=intent_id,
        amount_minor_units=2999,
        currency="usd",
        state=state,
        client_secret=f"{intent_id}_secret",
    )


def test_put_and_get_roundtrip():
    store = InMemoryIntentStore()

    async def scenario():
        await store.put("pi_1", _intent())
        return await store.get("pi_1")

    intent = asyncio.run(scenario())
    assert intent.state == "CREATED"
    assert intent.state_version == 0


def test_put_rejects_mismatched_id():
    store = InMemoryIntentStore()
    with pytest.raises(ValueError):
        asyncio.run(store.put("pi_other", _intent("pi_1")))


def test_get_unknown_raises_not_found():
    with pytest.raises(IntentNotFound):
        asyncio.run(InMemoryIntentStore().get("pi_missing"))


def test_transition_unknown_raises_not_found():
    with pytest.raises(IntentNotFound):
        asyncio.run(InMemoryIntentStore().transition("pi_missing", "SUCCEEDED", reason="test"))


def test_transition_replaces_record_and_bumps_version():
    store = InMemoryIntentStore()

    async def scenario():
        original = await store.put("pi_1", _intent())
        result = await store.transition("pi_1", "REQUIRES_ACTION", reason="test")
        return original, result, await store.history("pi_1")

    original, result, history = asyncio.run(scenario())
    assert result.applied
    assert result.from_state == "CREATED"
    assert result.intent.state == "REQUIRES_ACTION"
    assert result.intent.state_version == 1
    assert original.state == "CREATED"
    assert [(entry.from_state, entry.to_state) for entry in history] == [
        (None, "CREATED"),
        ("CREATED", "REQUIRES_ACTION"),
    ]


def test_terminal_state_absorbs_contradicting_transition():
    store = InMemoryIntentStore()

    async def scenario():
        await store.put("pi_1", _intent())
        await store.transition("pi_1", "SUCCEEDED", reason="confirmation")
        return await store.transition("pi_1", "FAILED", reason="late webhook")

    result = asyncio.run(scenario())
    assert not result.applied
    assert result.intent.state == "SUCCEEDED"
    assert result.intent.state_version == 1


def test_first_recorded_terminal_state_wins_in_either_order():
    store = InMemoryIntentStore()

    async def scenario():
        await store.put("pi_a", _intent("pi_a"))
        await store.put("pi_b", _intent("pi_b"))
        await store.transition("pi_a", "SUCCEEDED", reason="test")
        await store.transition("pi_a", "FAILED", reason="test")
        await store.transition("pi_b", "FAILED", reason="test")
        await store.transition("pi_b", "SUCCEEDED", reason="test")
        return (await store.get("pi_a")).state, (await store.get("pi_b")).state

    assert asyncio.run(scenario()) == ("SUCCEEDED", "FAILED")


def test_illegal_open_state_transition_raises():
    store = InMemoryIntentStore()

    async def scenario():
        await store.put("pi_1", _intent(state="REQUIRES_ACTION"))
        await store.transition("pi_1", "CREATED", reason="test", event_id="evt_bad")

    with pytest.raises(InvalidTransition):
        asyncio.run(scenario())
    assert not asyncio.run(store.has_processed_event("evt_bad"))


def test_concurrent_terminal_transitions_serialize():
    store = InMemoryIntentStore()

    async def scenario():
        await store.put("pi_1", _intent())
        results = await asyncio.gather(
            store.transition("pi_1", "SUCCEEDED", reason="confirmation"),
            store.transition("pi_1", "FAILED", reason="webhook"),
        )
        return results, await store.get("pi_1"), await store.history("pi_1")

    results, final, history = asyncio.run(scenario())
    applied = [result for result in results if result.applied]
    assert len(applied) == 1
    assert final.state == applied[0].intent.state
    assert final.state_version == 1
    assert len(history) == 2


def test_transition_records_event_id():
    store = InMemoryIntentStore()

    async def scenario():
        await store.put("pi_1", _intent())
        await store.transition("pi_1", "SUCCEEDED", reason="webhook", event_id="evt_1")
        return await store.has_processed_event("evt_1"), await store.has_processed_event("evt_2")

    assert asyncio.run(scenario()) == (True, False)


def test_client_secret_not_serialized():
    intent = _intent()
    assert "client_secret" not in intent.model_dump()
    assert "pi_1_secret" not in repr(intent)


def test_put_keeps_existing_record_for_known_id():
    store = InMemoryIntentStore()

    async def scenario():
        await store.put("pi_1", _intent())
        await store.transition("pi_1", "SUCCEEDED", reason="confirmation")
        returned = await store.put("pi_1", _intent())
        return returned, await store.get("pi_1"), await store.history("pi_1")

    returned, stored, history = asyncio.run(scenario())
    assert returned is stored
    assert stored.state == "SUCCEEDED"
    assert stored.state_version == 1
    assert len(history) == 2


def test_processed_events_are_bounded_oldest_first():
    store = InMemoryIntentStore(max_processed_events=2)

    async def scenario():
        for event_id in ("evt_1", "evt_2", "evt_3"):
            await store.record_event(event_id)
        return [await store.has_processed_event(event_id) for event_id in ("evt_1", "evt_2", "evt_3")]

    assert asyncio.run(scenario()) == [False, True, True]

"""Payment intent state machine enforced by the intent store."""

from paybridge.common.errors import InvalidTransition

CREATED = "CREATED"
REQUIRES_ACTION = "REQUIRES_ACTION"
SUCCEEDED = "SUCCEEDED"
FAILED = "FAILED"
CANCELED = "CANCELED"

ALLOWED_TRANSITIONS: dict[str, set[str]] = {
    CREATED: {REQUIRES_ACTION, SUCCEEDED, FAILED, CANCELED},
    REQUIRES_ACTION: {SUCCEEDED, FAILED, CANCELED},
    SUCCEEDED: set(),
    FAILED: set(),
    CANCELED: set(),
}

# Terminal states absorb every later transition attempt, whatever order
# events arrive in.
TERMINAL_STATES: frozenset[str] = frozenset({SUCCEEDED, FAILED, CANCELED})


def is_terminal(state: str) -> bool:
    return state in TERMINAL_STATES


def is_noop(current: str, new: str) -> bool:
    """True when applying `new` must leave `current` untouched."""

    return current == new or is_terminal(current)


def validate_transition(current: str, new: str) -> None:
    """Raise when a transition is not allowed by the state machine."""

    if new not in ALLOWED_TRANSITIONS.get(current, set()):
        raise InvalidTransition(f"Invalid transition: {current} -> {new}")

from enum import Enum, auto


class SessionState(Enum):
    CREATED = auto()
    INITIALIZING = auto()
    READY = auto()
    CLOSED = auto()


TRANSITIONS: dict[SessionState, set[SessionState]] = {
    SessionState.CREATED: {SessionState.INITIALIZING, SessionState.CLOSED},
    SessionState.INITIALIZING: {SessionState.READY, SessionState.CLOSED},
    SessionState.READY: {SessionState.CLOSED},
    SessionState.CLOSED: set(),
}

# States in which tools/list and tools/call are served
SERVING_STATES = frozenset({SessionState.INITIALIZING, SessionState.READY})


def validate_transition(current: SessionState, target: SessionState) -> None:
    """Raise ValueError if the transition is not allowed."""
    allowed = TRANSITIONS.get(current, set())
    if target not in allowed:
        raise ValueError(
            f"Invalid transition: {current.name} -> {target.name}. "
            f"Allowed: {[s.name for s in allowed]}"
        )

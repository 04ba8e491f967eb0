from enum import Enum, auto


class MonitorState(Enum):
    BINDING = auto()
    BIND_FAILED = auto()
    STARTING = auto()
    AWAITING_START = auto()
    RUNNING = auto()
    STOPPING = auto()
    AWAITING_STOP = auto()
    TERMINATED = auto()


VALID_TRANSITIONS: dict[MonitorState, set[MonitorState]] = {
    MonitorState.BINDING: {MonitorState.STARTING, MonitorState.BIND_FAILED},
    MonitorState.BIND_FAILED: set(),
    MonitorState.STARTING: {MonitorState.AWAITING_START},
    MonitorState.AWAITING_START: {MonitorState.RUNNING},
    MonitorState.RUNNING: {MonitorState.STOPPING, MonitorState.TERMINATED},
    MonitorState.STOPPING: {MonitorState.AWAITING_STOP},
    MonitorState.AWAITING_STOP: {MonitorState.TERMINATED},
    MonitorState.TERMINATED: set(),
}

TERMINAL_STATES = frozenset({MonitorState.BIND_FAILED, MonitorState.TERMINATED})


class InvalidTransitionError(Exception):
    pass


def validate_transition(current: MonitorState, target: MonitorState) -> None:
    if target not in VALID_TRANSITIONS.get(current, set()):
        raise InvalidTransitionError(f"Cannot transition from {current.name} to {target.name}")

"""Enums for the session lifecycle and the interaction state machine."""

from enum import Enum


class Environment(str, Enum):
    """Recognized deployment environments."""

    DEVELOPMENT = "development"
    PRODUCTION = "production"


class SessionStatus(str, Enum):
    """Session initializer lifecycle status."""

    UNINITIALIZED = "uninitialized"
    INITIALIZING = "initializing"
    READY = "ready"
    FAILED = "failed"


class InteractionState(str, Enum):
    """Primary state of the interaction state machine."""

    CONNECTING = "connecting"
    READY_IDLE = "ready-idle"
    SUBMITTING = "submitting"
    ERROR = "error"


# States in which the coarse "loading" flag is raised
LOADING_STATES = {InteractionState.CONNECTING, InteractionState.SUBMITTING}

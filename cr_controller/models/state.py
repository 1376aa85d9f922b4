"""Orchestration phase state machine."""

from __future__ import annotations

from enum import Enum
from typing import Callable, List, Optional


class OrchestrationPhase(str, Enum):
    """Phases a driver run moves through."""

    IDLE = "idle"
    CREATING = "creating"
    UPLOADING = "uploading"
    SETTING_UP = "setting_up"
    RUNNING = "running"
    WAITING = "waiting"
    DESTROYING = "destroying"
    FINISHED = "finished"
    FAILED = "failed"


_TERMINAL_PHASES = {OrchestrationPhase.FINISHED, OrchestrationPhase.FAILED}

_AFTER_BOOTSTRAP = {
    OrchestrationPhase.RUNNING,
    OrchestrationPhase.WAITING,
    OrchestrationPhase.DESTROYING,
    OrchestrationPhase.FINISHED,
}

_ALLOWED_TRANSITIONS = {
    OrchestrationPhase.IDLE: {
        OrchestrationPhase.CREATING,
        OrchestrationPhase.UPLOADING,
        OrchestrationPhase.SETTING_UP,
        *_AFTER_BOOTSTRAP,
    },
    OrchestrationPhase.CREATING: {
        OrchestrationPhase.UPLOADING,
        OrchestrationPhase.SETTING_UP,
        *_AFTER_BOOTSTRAP,
    },
    OrchestrationPhase.UPLOADING: {OrchestrationPhase.SETTING_UP, *_AFTER_BOOTSTRAP},
    OrchestrationPhase.SETTING_UP: set(_AFTER_BOOTSTRAP),
    OrchestrationPhase.RUNNING: {OrchestrationPhase.WAITING},
    OrchestrationPhase.WAITING: {
        OrchestrationPhase.DESTROYING,
        OrchestrationPhase.FINISHED,
    },
    OrchestrationPhase.DESTROYING: {OrchestrationPhase.FINISHED},
    OrchestrationPhase.FINISHED: set(),
    OrchestrationPhase.FAILED: set(),
}


PhaseCallback = Callable[[OrchestrationPhase, Optional[str]], None]


class PhaseStateMachine:
    """Tracks the current phase and the phases visited so far."""

    def __init__(self) -> None:
        self._phase = OrchestrationPhase.IDLE
        self._reason: Optional[str] = None
        self._history: List[OrchestrationPhase] = [OrchestrationPhase.IDLE]
        self._callbacks: List[PhaseCallback] = []

    @property
    def phase(self) -> OrchestrationPhase:
        return self._phase

    @property
    def reason(self) -> Optional[str]:
        return self._reason

    @property
    def history(self) -> List[OrchestrationPhase]:
        return list(self._history)

    def is_terminal(self) -> bool:
        return self._phase in _TERMINAL_PHASES

    def register_callback(self, callback: PhaseCallback) -> None:
        """Call ``callback(phase, reason)`` after every transition."""
        self._callbacks.append(callback)

    def transition(
        self, new_phase: OrchestrationPhase, reason: Optional[str] = None
    ) -> OrchestrationPhase:
        """Move to ``new_phase``; raise ValueError if the move is not allowed.

        FAILED is reachable from every non-terminal phase.
        """
        allowed = _ALLOWED_TRANSITIONS.get(self._phase, set())
        failing = new_phase == OrchestrationPhase.FAILED and not self.is_terminal()
        if new_phase not in allowed and not failing:
            raise ValueError(f"Invalid transition {self._phase} -> {new_phase}")
        self._phase = new_phase
        self._reason = reason
        self._history.append(new_phase)
        for callback in self._callbacks:
            callback(new_phase, reason)
        return new_phase

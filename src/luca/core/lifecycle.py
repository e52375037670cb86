"""
LUCA Core Lifecycle
Finite-state machine owning the Core's initialized/learning/counter state.

All legal moves live in ALLOWED_TRANSITIONS. Transitions and the learn slot
are guarded by a single asyncio.Lock; the Core is owned by one event loop.
"""

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Any, Callable, Dict, FrozenSet, List, Optional
import asyncio
import logging

from luca.core.exceptions import (
    AlreadyInitializedError,
    AlreadyLearningError,
    InvalidTransitionError,
    NotInitializedError,
)


class Phase(Enum):
    """Lifecycle phases of the Core."""
    UNINITIALIZED = "uninitialized"
    INITIALIZING = "initializing"
    READY = "ready"
    SHUTTING_DOWN = "shutting_down"


ALLOWED_TRANSITIONS: Dict[Phase, FrozenSet[Phase]] = {
    Phase.UNINITIALIZED: frozenset({Phase.INITIALIZING, Phase.SHUTTING_DOWN}),
    Phase.INITIALIZING: frozenset({Phase.READY, Phase.UNINITIALIZED, Phase.SHUTTING_DOWN}),
    # READY -> INITIALIZING is used by restore() only; initialize() is rejected
    Phase.READY: frozenset({Phase.SHUTTING_DOWN, Phase.INITIALIZING}),
    Phase.SHUTTING_DOWN: frozenset({Phase.UNINITIALIZED}),
}


@dataclass
class LifecycleState:
    """Mutable record owned exclusively by the Core."""
    phase: Phase = Phase.UNINITIALIZED
    learning: bool = False
    total_processed: int = 0
    last_update: Optional[datetime] = None

    @property
    def initialized(self) -> bool:
        return self.phase is Phase.READY

    def touch(self) -> None:
        self.last_update = datetime.now()

    def to_dict(self) -> Dict[str, Any]:
        return {
            "phase": self.phase.value,
            "initialized": self.initialized,
            "learning": self.learning,
            "total_processed": self.total_processed,
            "last_update": self.last_update.isoformat() if self.last_update else None,
        }


class CancellationToken:
    """
    Cooperative cancellation signal for a learn session.

    Checked by the learn loop before fetching each stream item.
    """

    def __init__(self):
        self._event = asyncio.Event()
        self._callbacks: List[Callable[[], None]] = []
        self.reason: Optional[str] = None

    def add_callback(self, callback: Callable[[], None]) -> None:
        """Run ``callback`` on cancel (immediately if already cancelled)."""
        if self._event.is_set():
            callback()
        else:
            self._callbacks.append(callback)

    def cancel(self, reason: str = "cancelled") -> None:
        if self._event.is_set():
            return
        self.reason = reason
        self._event.set()
        callbacks, self._callbacks = self._callbacks, []
        for callback in callbacks:
            callback()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    async def wait(self) -> None:
        await self._event.wait()


class LifecycleMachine:
    """
    Guards every Lifecycle State transition.

    Example:
        machine = LifecycleMachine()
        async with machine.lock:
            machine.transition(Phase.INITIALIZING)
            ...
            machine.transition(Phase.READY)
    """

    def __init__(self, state: Optional[LifecycleState] = None):
        self.state = state or LifecycleState()
        self.lock = asyncio.Lock()
        self.logger = logging.getLogger("LUCA.Lifecycle")
        self._active_token: Optional[CancellationToken] = None

    @property
    def phase(self) -> Phase:
        return self.state.phase

    def can_transition(self, target: Phase) -> bool:
        return target in ALLOWED_TRANSITIONS[self.state.phase]

    def transition(self, target: Phase, operation: Optional[str] = None) -> Phase:
        """
        Move to ``target`` or raise InvalidTransitionError.

        Returns:
            The phase that was left
        """
        current = self.state.phase
        # READY -> INITIALIZING is reserved for restore()
        if operation == "initialize" and current is Phase.READY:
            raise AlreadyInitializedError(current, target)
        if not self.can_transition(target):
            raise InvalidTransitionError(current, target, operation)
        self.state.phase = target
        if target is not Phase.READY:
            self.state.learning = False
        self.logger.debug(f"Phase {current.value} -> {target.value}")
        return current

    def require_initialized(self, operation: str) -> None:
        if not self.state.initialized:
            raise NotInitializedError(operation)

    # ------------------------------------------------------------------
    # Learn slot
    # ------------------------------------------------------------------

    def acquire_learning(self, token: CancellationToken) -> None:
        """Claim the single learn slot. Caller must hold ``lock``."""
        self.require_initialized("learning")
        if self.state.learning:
            raise AlreadyLearningError()
        self.state.learning = True
        self._active_token = token
        token.add_callback(lambda: self.release_learning(token))

    def release_learning(self, token: CancellationToken) -> None:
        """Release the learn slot if ``token`` still owns it."""
        if self._active_token is token:
            self.state.learning = False
            self._active_token = None

    def cancel_learning(self, reason: str) -> None:
        """Force the learn slot free and signal the active session."""
        token = self._active_token
        if token is not None:
            token.cancel(reason)
        self._active_token = None
        self.state.learning = False

    def owns_learning(self, token: CancellationToken) -> bool:
        return self._active_token is token

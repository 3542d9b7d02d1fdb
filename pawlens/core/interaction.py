"""Per-view interaction state machine.

``idle -> loading -> success | error``; ``reset`` returns to ``idle`` from any
state. Only one request may be in flight per interaction. A reset while
loading bumps the generation, so the eventual result of the abandoned call is
dropped instead of overwriting the fresh state.
"""
import logging
import threading
from collections.abc import Callable
from dataclasses import dataclass
from enum import Enum
from typing import Any

from pawlens.core.errors import InteractionBusy, PawLensError
from pawlens.core.types import Notification

logger = logging.getLogger('pawlens.interaction')

FAILURE_TITLE = 'Analysis Failed'


class InteractionState(str, Enum):
    IDLE = 'idle'
    LOADING = 'loading'
    SUCCESS = 'success'
    ERROR = 'error'


@dataclass(frozen=True)
class InteractionSnapshot:
    view: str
    state: InteractionState
    selection: dict[str, Any] | None = None
    result: Any = None
    error: str | None = None
    notification: Notification | None = None
    generation: int = 0


class Interaction:
    def __init__(self, view: str, failure_description: str) -> None:
        self._view = view
        self._failure_description = failure_description
        self._lock = threading.Lock()
        self._state = InteractionState.IDLE
        self._selection: dict[str, Any] | None = None
        self._result: Any = None
        self._error: str | None = None
        self._notification: Notification | None = None
        self._generation = 0

    @property
    def state(self) -> InteractionState:
        return self._state

    def begin(self, selection: dict[str, Any]) -> int:
        with self._lock:
            if self._state is InteractionState.LOADING:
                raise InteractionBusy(self._view)
            self._generation += 1
            self._state = InteractionState.LOADING
            self._selection = selection
            self._result = None
            self._error = None
            self._notification = None
            return self._generation

    def succeed(self, generation: int, result: Any) -> bool:
        with self._lock:
            if generation != self._generation or self._state is not InteractionState.LOADING:
                logger.info('dropping stale result view=%s generation=%s current=%s', self._view, generation, self._generation)
                return False
            self._state = InteractionState.SUCCESS
            self._result = result
            return True

    def fail(self, generation: int, error: Exception) -> bool:
        message = error.message if isinstance(error, PawLensError) else str(error) or error.__class__.__name__
        with self._lock:
            if generation != self._generation or self._state is not InteractionState.LOADING:
                logger.info('dropping stale failure view=%s generation=%s current=%s', self._view, generation, self._generation)
                return False
            self._state = InteractionState.ERROR
            self._selection = None
            self._result = None
            self._error = message
            self._notification = Notification(title=FAILURE_TITLE, description=self._failure_description)
        logger.warning('analysis failed view=%s generation=%s error=%s', self._view, generation, message)
        return True

    def reset(self) -> None:
        with self._lock:
            self._generation += 1
            self._state = InteractionState.IDLE
            self._selection = None
            self._result = None
            self._error = None
            self._notification = None

    def run(self, selection: dict[str, Any], work: Callable[[], Any]) -> InteractionSnapshot:
        generation = self.begin(selection)
        try:
            result = work()
        except PawLensError as exc:
            self.fail(generation, exc)
        except Exception as exc:
            self.fail(generation, exc)
            raise
        else:
            self.succeed(generation, result)
        return self.snapshot()

    def snapshot(self) -> InteractionSnapshot:
        with self._lock:
            return InteractionSnapshot(
                view=self._view,
                state=self._state,
                selection=self._selection,
                result=self._result,
                error=self._error,
                notification=self._notification,
                generation=self._generation,
            )

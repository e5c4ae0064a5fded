"""
Deferred callbacks keyed to the current load generation.

The grid widget finishes its column/sort setup asynchronously, so the
default sort is applied after a short settling delay. A reload starts a new
generation and discards tasks scheduled for the previous one.
"""

import logging
from typing import Any, Callable, Dict, List, Optional, Protocol, Tuple

from PyQt6.QtCore import QTimer

logger = logging.getLogger(__name__)


class TimerBackend(Protocol):
    def start(self, delay_ms: int, callback: Callable[[], None]) -> Any:
        ...

    def cancel(self, handle: Any) -> None:
        ...


class QtTimerBackend:
    """Single-shot QTimer per task, driven by the Qt event loop"""

    def __init__(self):
        self._timers: List[QTimer] = []

    def start(self, delay_ms: int, callback: Callable[[], None]) -> QTimer:
        timer = QTimer()
        timer.setSingleShot(True)

        def fire():
            if timer in self._timers:
                self._timers.remove(timer)
            callback()

        timer.timeout.connect(fire)
        self._timers.append(timer)
        timer.start(max(0, int(delay_ms)))
        return timer

    def cancel(self, handle: QTimer) -> None:
        handle.stop()
        if handle in self._timers:
            self._timers.remove(handle)


class ManualTimerBackend:
    """Explicit clock for headless hosts and tests; nothing fires until advance()"""

    def __init__(self):
        self.now_ms = 0
        self._next_handle = 0
        self._tasks: Dict[int, Tuple[int, Callable[[], None]]] = {}

    def start(self, delay_ms: int, callback: Callable[[], None]) -> int:
        self._next_handle += 1
        self._tasks[self._next_handle] = (self.now_ms + max(0, int(delay_ms)), callback)
        return self._next_handle

    def cancel(self, handle: int) -> None:
        self._tasks.pop(handle, None)

    @property
    def pending(self) -> int:
        return len(self._tasks)

    def advance(self, delay_ms: int) -> int:
        """Move the clock forward, running due tasks in order. Returns how many ran."""
        self.now_ms += delay_ms
        ran = 0
        while True:
            due = sorted((when, handle) for handle, (when, _) in self._tasks.items()
                         if when <= self.now_ms)
            if not due:
                return ran
            _, handle = due[0]
            _, callback = self._tasks.pop(handle)
            callback()
            ran += 1


class GenerationScheduler:
    """Schedules callbacks that only run while their load generation is current"""

    def __init__(self, backend: Optional[TimerBackend] = None):
        self.backend = backend if backend is not None else QtTimerBackend()
        self.generation = 0
        self._handles: Dict[int, Any] = {}
        self._next_task = 0

    def schedule(self, delay_ms: int, callback: Callable[[], None]) -> int:
        self._next_task += 1
        task_id = self._next_task
        generation = self.generation

        def run():
            self._handles.pop(task_id, None)
            if generation != self.generation:
                logger.debug("Discarding task %d from generation %d", task_id, generation)
                return
            callback()

        self._handles[task_id] = self.backend.start(delay_ms, run)
        return task_id

    def cancel(self, task_id: int) -> None:
        handle = self._handles.pop(task_id, None)
        if handle is not None:
            self.backend.cancel(handle)

    def advance_generation(self) -> int:
        """Start a new generation, cancelling everything still pending"""
        for task_id in list(self._handles):
            self.cancel(task_id)
        self.generation += 1
        return self.generation

    @property
    def pending(self) -> int:
        return len(self._handles)

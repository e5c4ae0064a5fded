"""
Session diagnostics: logging setup, error collection and re-render loop detection.

The collectors are plain objects constructed once per session and passed
into the reconciler; there are no module-level instances.
"""

import json
import logging
from collections import deque
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from pathlib import Path
from typing import Any, Deque, Dict, List, Optional, Union

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

MAX_ERRORS = 50
MAX_HISTORY = 100
LOOP_THRESHOLD = 10


def configure_logging(level: int = logging.INFO,
                      log_file: Optional[Union[str, Path]] = None) -> logging.Logger:
    """Set up the ``tablesync`` logger with console and optional file output."""
    logger = logging.getLogger("tablesync")
    logger.setLevel(level)

    if not logger.handlers:
        formatter = logging.Formatter(LOG_FORMAT)

        console_handler = logging.StreamHandler()
        console_handler.setLevel(level)
        console_handler.setFormatter(formatter)
        logger.addHandler(console_handler)

        if log_file is not None:
            log_path = Path(log_file)
            log_path.parent.mkdir(parents=True, exist_ok=True)
            file_handler = logging.FileHandler(log_path)
            file_handler.setLevel(level)
            file_handler.setFormatter(formatter)
            logger.addHandler(file_handler)

    return logger


class ErrorCategory(Enum):
    DATA = "data"
    GRID = "grid"
    SELECTION = "selection"
    RENDERING = "rendering"
    UNKNOWN = "unknown"


@dataclass
class ErrorInfo:
    message: str
    category: ErrorCategory
    timestamp: str
    context: Dict[str, Any] = field(default_factory=dict)


class ErrorCollector:
    """Most-recent-first record of the errors seen during a session"""

    def __init__(self, max_errors: int = MAX_ERRORS, logger: Optional[logging.Logger] = None):
        self._errors: Deque[ErrorInfo] = deque(maxlen=max_errors)
        self.logger = logger or logging.getLogger("tablesync.errors")

    def log_error(self, message: str, category: ErrorCategory = ErrorCategory.UNKNOWN,
                  context: Optional[Dict[str, Any]] = None) -> ErrorInfo:
        error = ErrorInfo(
            message=message,
            category=category,
            timestamp=datetime.now().isoformat(),
            context=dict(context or {}),
        )
        self._errors.appendleft(error)
        self.logger.error("[Grid %s] %s", category.value.upper(), message)
        return error

    @property
    def errors(self) -> List[ErrorInfo]:
        return list(self._errors)

    def errors_by_category(self, category: ErrorCategory) -> List[ErrorInfo]:
        return [e for e in self._errors if e.category == category]

    def last_error(self) -> Optional[ErrorInfo]:
        return self._errors[0] if self._errors else None

    def has_errors(self, category: Optional[ErrorCategory] = None) -> bool:
        if category is None:
            return bool(self._errors)
        return any(e.category == category for e in self._errors)

    def clear(self) -> None:
        self._errors.clear()


@dataclass
class LoopCall:
    key: str
    call_count: int
    timestamp: str
    dependencies: List[Any]
    previous_dependencies: List[Any]


def _snapshot(value: Any) -> str:
    try:
        return json.dumps(value, sort_keys=True, default=str)
    except (TypeError, ValueError):
        return repr(value)


class RenderLoopDetector:
    """Counts how often a host re-delivers the same inputs and warns on runaway loops."""

    def __init__(self, threshold: int = LOOP_THRESHOLD, max_history: int = MAX_HISTORY,
                 logger: Optional[logging.Logger] = None):
        self.threshold = threshold
        self.logger = logger or logging.getLogger("tablesync.loops")
        self._counts: Dict[str, int] = {}
        self._last_dependencies: Dict[str, List[Any]] = {}
        self._history: Deque[LoopCall] = deque(maxlen=max_history)

    def track_call(self, component: str, hook: str, dependencies: Optional[List[Any]] = None) -> int:
        key = f"{component}:{hook}"
        dependencies = list(dependencies or [])
        count = self._counts.get(key, 0) + 1
        self._counts[key] = count
        previous = self._last_dependencies.get(key, [])

        self._history.appendleft(LoopCall(
            key=key,
            call_count=count,
            timestamp=datetime.now().isoformat(),
            dependencies=dependencies,
            previous_dependencies=previous,
        ))

        if count >= self.threshold:
            self.logger.warning("Possible re-render loop: %s called %d times", key, count)
        if self._dependencies_changed(previous, dependencies):
            self.logger.debug("%s dependencies changed (call %d)", key, count)

        self._last_dependencies[key] = dependencies
        return count

    @staticmethod
    def _dependencies_changed(previous: List[Any], current: List[Any]) -> bool:
        if len(previous) != len(current):
            return True
        return any(_snapshot(a) != _snapshot(b) for a, b in zip(previous, current))

    def call_count(self, component: str, hook: str) -> int:
        return self._counts.get(f"{component}:{hook}", 0)

    def history(self, component: Optional[str] = None) -> List[LoopCall]:
        if component is None:
            return list(self._history)
        return [c for c in self._history if c.key.startswith(f"{component}:")]

    def clear(self, component: str, hook: str) -> None:
        key = f"{component}:{hook}"
        self._counts.pop(key, None)
        self._last_dependencies.pop(key, None)

    def summary(self) -> Dict[str, int]:
        return dict(self._counts)

    def reset(self) -> None:
        self._counts.clear()
        self._last_dependencies.clear()
        self._history.clear()


class GridDiagnostics:
    """Bundle of the per-session diagnostic collaborators"""

    def __init__(self, errors: Optional[ErrorCollector] = None,
                 loops: Optional[RenderLoopDetector] = None):
        self.errors = errors or ErrorCollector()
        self.loops = loops or RenderLoopDetector()

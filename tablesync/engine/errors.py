"""
Error taxonomy for the reconciliation engine.

Nothing in here is fatal to the host: normalization errors are returned as
values, widget command errors are caught where the command is issued and
serialization errors degrade to a fallback row identity.
"""

from enum import Enum
from typing import Any, Optional


class TableSyncError(Exception):
    """Base exception for tablesync operations."""

    pass


class ConfigurationError(TableSyncError):
    """Raised when grid options or a config file are invalid."""

    pass


class SerializationError(TableSyncError):
    """Raised when a row cannot be serialized (cyclic or exotic values)."""

    pass


class WidgetCommandErrorKind(Enum):
    """Why a command sent to the grid widget could not run"""
    NOT_MOUNTED = "not_mounted"
    INVALID_SORT_COLUMN = "invalid_sort_column"
    EMPTY_SELECTION = "empty_selection"
    COMMAND_FAILED = "command_failed"


class WidgetCommandError(TableSyncError):
    """Raised by grid widgets when a command cannot be carried out."""

    def __init__(self, kind: WidgetCommandErrorKind, message: str):
        super().__init__(message)
        self.kind = kind
        self.message = message


class NormalizationErrorKind(Enum):
    """Classified reasons for rejecting an input value"""
    UNSUPPORTED_SHAPE = "unsupported_shape"
    EMPTY_DATASET = "empty_dataset"
    INVALID_ROW_TYPE = "invalid_row_type"


class NormalizationError(TableSyncError):
    """
    A rejected input value.

    Returned inside a NormalizationResult rather than raised; ``value`` keeps
    the offending input so the diagnostic panel can describe it.
    """

    def __init__(self, kind: NormalizationErrorKind, message: str, value: Optional[Any] = None):
        super().__init__(message)
        self.kind = kind
        self.message = message
        self.value = value

    def __repr__(self) -> str:
        return f"NormalizationError({self.kind.value!r}, {self.message!r})"

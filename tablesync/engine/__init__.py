"""
Row-identity and edit-reconciliation engine.

Normalizes incoming data, assigns stable row identities, infers columns,
tracks edits and reconciles grid events into the host's output views.
"""

from .reconciler import (
    GridReconciler,
    GridState,
    GridStats,
    DatasetSnapshot,
)

from .normalizer import (
    normalize,
    select_source,
    describe_value,
    NormalizationResult,
)

from .identity import resolve_row_id, assign_row_ids

from .columns import (
    ColumnKind,
    ColumnSchema,
    infer_schema,
    schema_from_definitions,
    header_label,
    is_valid_url,
)

from .edit_tracker import EditTracker
from .outputs import OutputChannel, OutputViews

from .grid import (
    GridWidget,
    GridNode,
    SortDirection,
    SelectionSource,
    CellValueChangedEvent,
    SelectionChangedEvent,
    CsvExportOptions,
)

from .scheduler import GenerationScheduler, QtTimerBackend, ManualTimerBackend

from .diagnostics import (
    GridDiagnostics,
    ErrorCollector,
    ErrorCategory,
    RenderLoopDetector,
    configure_logging,
)

from .errors import (
    TableSyncError,
    ConfigurationError,
    SerializationError,
    WidgetCommandError,
    WidgetCommandErrorKind,
    NormalizationError,
    NormalizationErrorKind,
)

__all__ = [
    # Facade
    "GridReconciler",
    "GridState",
    "GridStats",
    "DatasetSnapshot",

    # Normalization and identity
    "normalize",
    "select_source",
    "describe_value",
    "NormalizationResult",
    "resolve_row_id",
    "assign_row_ids",

    # Columns
    "ColumnKind",
    "ColumnSchema",
    "infer_schema",
    "schema_from_definitions",
    "header_label",
    "is_valid_url",

    # Edits and outputs
    "EditTracker",
    "OutputChannel",
    "OutputViews",

    # Grid interface
    "GridWidget",
    "GridNode",
    "SortDirection",
    "SelectionSource",
    "CellValueChangedEvent",
    "SelectionChangedEvent",
    "CsvExportOptions",

    # Scheduling and diagnostics
    "GenerationScheduler",
    "QtTimerBackend",
    "ManualTimerBackend",
    "GridDiagnostics",
    "ErrorCollector",
    "ErrorCategory",
    "RenderLoopDetector",
    "configure_logging",

    # Errors
    "TableSyncError",
    "ConfigurationError",
    "SerializationError",
    "WidgetCommandError",
    "WidgetCommandErrorKind",
    "NormalizationError",
    "NormalizationErrorKind",
]

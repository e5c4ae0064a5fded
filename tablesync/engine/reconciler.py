"""
Reconciliation Facade - wires normalization, identity, column inference and
edit tracking to the grid widget, and keeps the three output views current.

State machine:
    EMPTY  --load-->  LOADED  --cell edit-->  DIRTY
    DIRTY  --reload-> LOADED  (edits discarded)

The reconciler exclusively owns the dataset snapshot and the edit set. The
grid widget is driven through the GridWidget interface and reports events
back through the ``on_*`` handlers.
"""

import hashlib
import json
import logging
from dataclasses import dataclass
from datetime import date
from enum import Enum
from typing import Any, Callable, Dict, List, Optional

from ..config import GridOptions
from .columns import ColumnSchema, infer_schema, schema_from_definitions
from .diagnostics import ErrorCategory, GridDiagnostics
from .edit_tracker import EditTracker
from .errors import NormalizationError, WidgetCommandError, WidgetCommandErrorKind
from .grid import (
    CellValueChangedEvent, CsvExportOptions, GridWidget, SelectionChangedEvent,
    SelectionSource,
)
from .identity import assign_row_ids
from .normalizer import describe_value, normalize, select_source
from .outputs import OutputViews, clone_rows
from .scheduler import GenerationScheduler

logger = logging.getLogger(__name__)

Notifier = Callable[[str], None]

EMPTY_SELECTION_NOTICE = "No rows selected. Please select rows to export."


class GridState(Enum):
    EMPTY = "empty"
    LOADED = "loaded"
    DIRTY = "dirty"


@dataclass
class DatasetSnapshot:
    """The currently loaded rows, their identities and derived columns"""
    rows: List[Dict[str, Any]]
    row_ids: List[str]
    columns: List[ColumnSchema]
    fingerprint: str
    generation: int


@dataclass
class GridStats:
    total_rows: int = 0
    displayed_rows: int = 0
    selected_count: int = 0
    edited_count: int = 0


def input_fingerprint(*values: Any) -> str:
    """Content hash of the host inputs; object identity when they cannot be serialized"""
    try:
        text = json.dumps(values, sort_keys=True, default=str)
    except (TypeError, ValueError, RecursionError):
        return "id-" + "-".join(str(id(v)) for v in values)
    return hashlib.sha1(text.encode("utf-8")).hexdigest()


def _default_notifier(message: str) -> None:
    logger.info("Notice: %s", message)


class GridReconciler:
    """Owns the loaded dataset and reconciles grid events into output views"""

    COMPONENT = "GridReconciler"

    def __init__(self, options: Optional[GridOptions] = None,
                 grid: Optional[GridWidget] = None,
                 scheduler: Optional[GenerationScheduler] = None,
                 diagnostics: Optional[GridDiagnostics] = None,
                 notifier: Optional[Notifier] = None):
        self.options = options or GridOptions()
        self.grid = grid
        self.scheduler = scheduler or GenerationScheduler()
        self.diagnostics = diagnostics or GridDiagnostics()
        self.notifier = notifier or _default_notifier

        self.views = OutputViews()
        self.tracker = EditTracker()
        self.state = GridState.EMPTY
        self.snapshot: Optional[DatasetSnapshot] = None
        self.stats = GridStats()
        self.error: Optional[NormalizationError] = None
        self.diagnostic: Optional[str] = None

        self._row_data: Any = None
        self._alternative_data: Any = None
        self._column_defs: Any = None
        self._fingerprint: Optional[str] = None
        self._grid_ready = False

    # ------------------------------------------------------------------
    # Loading
    # ------------------------------------------------------------------

    @property
    def has_data(self) -> bool:
        return self.snapshot is not None and bool(self.snapshot.rows)

    @property
    def columns(self) -> List[ColumnSchema]:
        return list(self.snapshot.columns) if self.snapshot else []

    def set_input(self, row_data: Any, alternative_data: Any = None,
                  column_defs: Any = None) -> bool:
        """
        Accept a delivery of host inputs.

        A dataset is loaded once per distinct input; re-deliveries of the same
        content are ignored so in-progress edits survive host re-renders.
        Returns True when a load happened.
        """
        fingerprint = input_fingerprint(row_data, alternative_data, column_defs)
        if fingerprint == self._fingerprint:
            self.diagnostics.loops.track_call(self.COMPONENT, "set_input", [fingerprint])
            logger.debug("Ignoring redundant delivery of the current dataset")
            return False

        self.diagnostics.loops.clear(self.COMPONENT, "set_input")
        self._row_data = row_data
        self._alternative_data = alternative_data
        self._column_defs = column_defs
        self._fingerprint = fingerprint
        self._load()
        return True

    def reload(self) -> bool:
        """Re-normalize the original input and discard all edits"""
        if self._fingerprint is None:
            logger.info("Nothing to reload: no input has been delivered")
            return False
        logger.info("Reloading data from source, discarding %d edited rows", len(self.tracker))
        self._load()
        return True

    def _load(self) -> None:
        source = select_source(self._row_data, self._alternative_data)
        result = normalize(source)
        generation = self.scheduler.advance_generation()
        self.tracker.reset()

        if not result.ok:
            self._load_failed(source, result.error, result.rows)
            return

        rows = clone_rows(result.rows)
        row_ids = assign_row_ids(rows)
        columns: List[ColumnSchema] = []
        if isinstance(self._column_defs, (list, tuple)) and self._column_defs:
            columns = schema_from_definitions(self._column_defs, self.options.enable_editing)
        if not columns:
            columns = infer_schema(rows, self.options.enable_editing)

        self.snapshot = DatasetSnapshot(
            rows=rows,
            row_ids=row_ids,
            columns=columns,
            fingerprint=self._fingerprint or "",
            generation=generation,
        )
        self.error = None
        self.diagnostic = None
        self.state = GridState.LOADED
        self.stats = GridStats(total_rows=len(rows), displayed_rows=len(rows))
        self.views.reset(rows)
        logger.info("Loaded %d rows with %d columns (generation %d)",
                    len(rows), len(columns), generation)

        self._push_to_grid()
        if self._grid_ready:
            self._schedule_default_sort()

    def _load_failed(self, source: Any, error: NormalizationError, rows: List[Any]) -> None:
        self.snapshot = None
        self.error = error
        self.diagnostic = f"{error.message}\n{describe_value(source, rows or None)}"
        self.state = GridState.EMPTY
        self.stats = GridStats()
        self.views.reset([])
        self.diagnostics.errors.log_error(error.message, ErrorCategory.DATA,
                                          {"kind": error.kind.value})
        self._push_to_grid()

    def _push_to_grid(self) -> None:
        if self.grid is None:
            return
        snapshot = self.snapshot
        try:
            if snapshot is None:
                self.grid.load_rows([], [], [])
            else:
                self.grid.load_rows(snapshot.rows, snapshot.row_ids, snapshot.columns)
        except Exception as e:
            self.diagnostics.errors.log_error(f"Error loading rows into grid: {e}",
                                              ErrorCategory.RENDERING)

    # ------------------------------------------------------------------
    # Grid lifecycle
    # ------------------------------------------------------------------

    def attach_grid(self, grid: GridWidget) -> None:
        """Mount a grid widget and hand it the current dataset"""
        self.grid = grid
        self._grid_ready = False
        self._push_to_grid()

    def detach_grid(self) -> None:
        self.grid = None
        self._grid_ready = False
        self.scheduler.advance_generation()

    def on_ready(self) -> None:
        """The grid finished its initial render"""
        self._grid_ready = True
        if self.grid is not None:
            try:
                self.stats.displayed_rows = self.grid.displayed_row_count()
            except Exception as e:
                self.diagnostics.errors.log_error(f"Error reading row count: {e}",
                                                  ErrorCategory.GRID)
        logger.debug("Grid ready with %d displayed rows", self.stats.displayed_rows)
        self._schedule_default_sort()

    def _schedule_default_sort(self) -> None:
        if not self.options.default_sort_field:
            return
        self.scheduler.schedule(self.options.settle_delay_ms, self._apply_default_sort)

    def _apply_default_sort(self) -> None:
        # Resolved at fire time: the grid may have been swapped since scheduling.
        grid = self.grid
        column = self.options.default_sort_field
        if grid is None or self.snapshot is None:
            logger.debug("Skipping default sort: no grid or dataset")
            return
        try:
            grid.apply_sort(column, self.options.sort_direction)
            logger.debug("Applied default sort %s %s", column, self.options.sort_direction.value)
        except Exception as e:
            logger.warning("Could not apply default sort. Column may not exist: %s", column)
            self.diagnostics.errors.log_error(f"Could not apply default sort on {column!r}: {e}",
                                              ErrorCategory.GRID, {"column": column})

    # ------------------------------------------------------------------
    # Grid events
    # ------------------------------------------------------------------

    def on_selection_changed(self, event: Optional[SelectionChangedEvent] = None) -> None:
        event = event or SelectionChangedEvent()
        if self.grid is None:
            return
        try:
            selected = self.grid.selected_rows()
        except Exception as e:
            self.diagnostics.errors.log_error(f"Error in selection changed event: {e}",
                                              ErrorCategory.SELECTION)
            return

        if event.source == SelectionSource.ROW_DATA_CHANGED and not selected:
            logger.debug("Skipping empty selection caused by a data change")
            return

        self.views.selected_rows.publish(selected)
        self.stats.selected_count = len(selected)
        logger.debug("Selection updated: %d rows (%s)", len(selected), event.source.value)

    def on_cell_value_changed(self, event: CellValueChangedEvent) -> None:
        if self.snapshot is None:
            logger.warning("Cell edit on row %r ignored: no dataset loaded", event.row_id)
            return
        logger.debug("Cell value changed: row=%r field=%r %r -> %r",
                     event.row_id, event.field, event.old_value, event.new_value)
        self.tracker.record_edit(event.row_id)
        self._rebuild_edit_views()
        # Identities outside the loaded dataset were purged by the rebuild.
        self.state = GridState.DIRTY if len(self.tracker) else GridState.LOADED

    def _rebuild_edit_views(self) -> None:
        row_ids: List[str]
        rows: List[Any]
        try:
            if self.grid is None:
                raise WidgetCommandError(WidgetCommandErrorKind.NOT_MOUNTED, "Grid is not mounted")
            nodes = list(self.grid.iter_nodes())
            rows = [node.data for node in nodes]
            row_ids = [node.row_id for node in nodes]
        except Exception as e:
            self.diagnostics.errors.log_error(f"Error walking grid rows: {e}", ErrorCategory.GRID)
            rows = list(self.snapshot.rows)
            row_ids = list(self.snapshot.row_ids)

        self.tracker.retain(self.snapshot.row_ids)
        changed = self.tracker.snapshot_changed(rows, lambda row, index: row_ids[index])
        self.views.edited_data.publish(rows)
        self.views.changed_rows.publish(changed)
        self.stats.edited_count = len(changed)

    def on_filter_changed(self) -> None:
        self._refresh_displayed_count()
        logger.debug("Filter changed: %d rows displayed", self.stats.displayed_rows)

    def on_sort_changed(self, sort_model: Optional[List[Dict[str, Any]]] = None) -> None:
        self._refresh_displayed_count()
        logger.debug("Sort changed: %s", sort_model or [])

    def _refresh_displayed_count(self) -> None:
        if self.grid is None:
            return
        try:
            self.stats.displayed_rows = self.grid.displayed_row_count()
        except Exception as e:
            self.diagnostics.errors.log_error(f"Error updating grid stats: {e}", ErrorCategory.GRID)

    # ------------------------------------------------------------------
    # Commands
    # ------------------------------------------------------------------

    def _report(self, message: str, category: ErrorCategory = ErrorCategory.GRID) -> None:
        self.diagnostics.errors.log_error(message, category)
        self.notifier(message)

    def _require_grid(self, command: str) -> GridWidget:
        if self.grid is None:
            raise WidgetCommandError(WidgetCommandErrorKind.NOT_MOUNTED,
                                     f"Grid is not ready; cannot {command}")
        return self.grid

    def _run_command(self, command: str, action: Callable[[GridWidget], Any]) -> bool:
        try:
            action(self._require_grid(command))
            return True
        except WidgetCommandError as e:
            self._report(e.message)
        except Exception as e:
            self._report(f"Error trying to {command}: {e}")
        return False

    def export_all(self) -> Optional[str]:
        """Export every displayed row to CSV; returns the written path"""
        filename = f"export_{date.today().isoformat()}.csv"
        try:
            path = self._require_grid("export data").export_csv(CsvExportOptions(filename=filename))
        except WidgetCommandError as e:
            self._report(e.message)
            return None
        except Exception as e:
            self._report(f"Failed to export data: {e}")
            return None
        logger.info("CSV exported to %s (%d rows)", path, self.stats.displayed_rows)
        return path

    def export_selected(self) -> Optional[str]:
        """Export the selected rows to CSV; a no-op with a notice when nothing is selected"""
        filename = f"export_selected_{date.today().isoformat()}.csv"
        try:
            grid = self._require_grid("export selected rows")
            selected = grid.selected_rows()
            if not selected:
                raise WidgetCommandError(WidgetCommandErrorKind.EMPTY_SELECTION,
                                         EMPTY_SELECTION_NOTICE)
            path = grid.export_csv(CsvExportOptions(filename=filename, only_selected=True))
        except WidgetCommandError as e:
            self._report(e.message, ErrorCategory.SELECTION)
            return None
        except Exception as e:
            self._report(f"Failed to export selected rows: {e}")
            return None
        logger.info("CSV exported to %s (%d selected rows)", path, len(selected))
        return path

    def clear_filters(self) -> bool:
        return self._run_command("clear filters", lambda grid: grid.clear_filters())

    def auto_size_columns(self) -> bool:
        return self._run_command("auto-size columns", lambda grid: grid.auto_size_columns())

    def reset_column_state(self) -> bool:
        return self._run_command("reset columns", lambda grid: grid.reset_column_state())

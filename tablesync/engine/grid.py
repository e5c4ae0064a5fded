"""
Interface of the grid widget the reconciler drives.

The widget owns only transient view state (sort, filter, selection). It is
an untrusted source of events and a write-only sink for datasets.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Iterator, List, Optional, Protocol, Sequence

from .columns import ColumnSchema


class SortDirection(Enum):
    ASC = "asc"
    DESC = "desc"

    @classmethod
    def parse(cls, value: Optional[str]) -> "SortDirection":
        """Anything but "desc" sorts ascending"""
        if isinstance(value, str) and value.strip().lower() == "desc":
            return cls.DESC
        return cls.ASC


class SelectionSource(Enum):
    """What caused a selection-changed notification"""
    USER = "user"
    API = "api"
    ROW_DATA_CHANGED = "rowDataChanged"


@dataclass
class GridNode:
    """A materialized grid row: its identity and its live data"""
    row_id: str
    data: Dict[str, Any]


@dataclass
class CellValueChangedEvent:
    row_id: str
    field: str
    old_value: Any = None
    new_value: Any = None


@dataclass
class SelectionChangedEvent:
    source: SelectionSource = SelectionSource.USER


@dataclass
class CsvExportOptions:
    filename: str
    only_selected: bool = False


class GridWidget(Protocol):
    """Commands and accessors the reconciler needs from a grid widget"""

    def load_rows(self, rows: Sequence[Dict[str, Any]], row_ids: Sequence[str],
                  columns: Sequence[ColumnSchema]) -> None:
        ...

    def displayed_row_count(self) -> int:
        ...

    def selected_rows(self) -> List[Dict[str, Any]]:
        ...

    def iter_nodes(self) -> Iterator[GridNode]:
        ...

    def apply_sort(self, field: str, direction: SortDirection) -> None:
        ...

    def reset_column_state(self) -> None:
        ...

    def export_csv(self, options: CsvExportOptions) -> str:
        ...

    def clear_filters(self) -> None:
        ...

    def auto_size_columns(self) -> None:
        ...

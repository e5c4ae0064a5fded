"""Qt widgets for embedding a reconciled data grid."""

from .grid_view import DataGridWidget
from .table_sync_widget import TableSyncWidget

__all__ = ['DataGridWidget', 'TableSyncWidget']

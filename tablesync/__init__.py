"""
tablesync - Embeddable data grid with row identity and edit reconciliation

Renders an arbitrary tabular dataset in an interactive grid and reports
selection and edit results back to the host.
"""

# Engine first: the reconciler imports tablesync.config while loading.
from .engine import GridReconciler, GridState, GridDiagnostics, configure_logging
from .config import GridOptions, GridConfig
from .widgets import DataGridWidget, TableSyncWidget

__version__ = "0.1.0"

__all__ = [
    "GridReconciler",
    "GridState",
    "GridDiagnostics",
    "configure_logging",
    "GridOptions",
    "GridConfig",
    "DataGridWidget",
    "TableSyncWidget",
]

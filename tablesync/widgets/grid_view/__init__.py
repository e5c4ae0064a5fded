#!/usr/bin/env python3
"""
Grid View Package - Qt table view over a reconciled dataset

Item models, filtering/sorting/paging proxies and the grid widget the
reconciler drives.
"""

from .grid_table_model import (
    GridTableModel,
    GridFilterProxy,
    PageProxy,
    ColumnFilter,
    RAW_VALUE_ROLE
)

from .grid_widget import DataGridWidget

__all__ = [
    # Models
    'GridTableModel',
    'GridFilterProxy',
    'PageProxy',
    'ColumnFilter',
    'RAW_VALUE_ROLE',

    # Widget
    'DataGridWidget'
]

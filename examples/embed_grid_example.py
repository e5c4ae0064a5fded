#!/usr/bin/env python3
"""
Embedding Example

Shows how a host window embeds the TableSyncWidget, feeds it a response
object and listens to the selection and edit outputs.
"""

import logging
import sys
from pathlib import Path

from PyQt6.QtWidgets import QApplication, QMainWindow

sys.path.append(str(Path(__file__).parent.parent))

from tablesync import GridOptions, TableSyncWidget, configure_logging

SAMPLE_RESPONSE = {
    "results": [
        {"id": 1, "item": "Plasma Rifle", "quantity": 5, "price": 1200.0, "inStock": True,
         "lastAudit": "2024-01-15", "manual": "https://example.com/manuals/rifle"},
        {"id": 2, "item": "Energy Cell", "quantity": 150, "price": 25.5, "inStock": True,
         "lastAudit": "2024-02-01", "manual": "https://example.com/manuals/cell"},
        {"id": 3, "item": "Med Kit", "quantity": 0, "price": 50.0, "inStock": False,
         "lastAudit": "2023-12-20", "manual": "not available"},
        {"id": 4, "item": "Scanner", "quantity": 8, "price": 800.0, "inStock": True,
         "lastAudit": "2024-03-03", "manual": "https://example.com/manuals/scanner"},
    ]
}


class HostWindow(QMainWindow):
    """Minimal host that logs what the grid reports back"""

    def __init__(self):
        super().__init__()
        self.setWindowTitle("Inventory")
        self.resize(1000, 500)

        options = GridOptions.from_mapping({
            "enableEditing": True,
            "enablePagination": True,
            "pageSize": 3,
            "defaultSortColumn": "price",
            "defaultSortDirection": "desc",
        })
        self.grid = TableSyncWidget(options)
        self.grid.selected_rows_changed.connect(self.on_selection)
        self.grid.changed_rows_changed.connect(self.on_changes)
        self.setCentralWidget(self.grid)

        self.grid.set_input(SAMPLE_RESPONSE)

    def on_selection(self, rows):
        logging.getLogger("tablesync.example").info(
            "Selected: %s", [row.get("item") for row in rows])

    def on_changes(self, rows):
        logging.getLogger("tablesync.example").info("Changed rows: %s", rows)


def main():
    configure_logging(logging.DEBUG)
    app = QApplication(sys.argv)
    window = HostWindow()
    window.show()
    return app.exec()


if __name__ == "__main__":
    sys.exit(main())

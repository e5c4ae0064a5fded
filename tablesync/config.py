"""
Configuration utilities for tablesync.
Handles the static grid options a host sets, and loading/saving them as YAML.
"""

import os
from dataclasses import asdict, dataclass, fields
from typing import Any, Dict, Mapping, Optional

import yaml

from .engine.errors import ConfigurationError
from .engine.grid import SortDirection

# Host property names (camelCase) mapped to option attributes
HOST_OPTION_NAMES = {
    "enableRowSelection": "enable_row_selection",
    "multiRowSelection": "multi_row_selection",
    "enablePagination": "enable_pagination",
    "pageSize": "page_size",
    "enableEditing": "enable_editing",
    "defaultSortColumn": "default_sort_column",
    "defaultSortDirection": "default_sort_direction",
    "settleDelayMs": "settle_delay_ms",
    "exportDir": "export_dir",
}


@dataclass
class GridOptions:
    """Static grid options supplied by the host."""

    enable_row_selection: bool = True
    multi_row_selection: bool = True
    enable_pagination: bool = False
    page_size: int = 50
    enable_editing: bool = False
    default_sort_column: str = ""
    default_sort_direction: str = "asc"
    settle_delay_ms: int = 200
    export_dir: str = "."

    def __post_init__(self):
        self.validate()

    def validate(self) -> None:
        for name in ("enable_row_selection", "multi_row_selection",
                     "enable_pagination", "enable_editing"):
            if not isinstance(getattr(self, name), bool):
                raise ConfigurationError(f"{name} must be a boolean")
        for name in ("page_size", "settle_delay_ms"):
            value = getattr(self, name)
            if isinstance(value, bool) or not isinstance(value, int):
                raise ConfigurationError(f"{name} must be an integer")
        if self.page_size < 1:
            raise ConfigurationError("page_size must be at least 1")
        if self.settle_delay_ms < 0:
            raise ConfigurationError("settle_delay_ms cannot be negative")
        if self.default_sort_column is None:
            self.default_sort_column = ""
        if not isinstance(self.default_sort_column, str):
            raise ConfigurationError("default_sort_column must be a string")
        if str(self.default_sort_direction).lower() not in ("asc", "desc"):
            raise ConfigurationError(
                f"default_sort_direction must be 'asc' or 'desc', got {self.default_sort_direction!r}"
            )

    @classmethod
    def from_mapping(cls, data: Optional[Mapping[str, Any]]) -> "GridOptions":
        """Build options from host properties (camelCase) or config keys (snake_case)."""
        known = {f.name for f in fields(cls)}
        values = {}
        for key, value in (data or {}).items():
            name = HOST_OPTION_NAMES.get(key, key)
            if name not in known:
                raise ConfigurationError(f"Unknown grid option: {key}")
            values[name] = value
        return cls(**values)

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @property
    def sort_direction(self) -> SortDirection:
        return SortDirection.parse(self.default_sort_direction)

    @property
    def default_sort_field(self) -> str:
        return (self.default_sort_column or "").strip()

    @property
    def selection_mode(self) -> Optional[str]:
        """None when selection is off, otherwise "single" or "multi"."""
        if not self.enable_row_selection:
            return None
        return "multi" if self.multi_row_selection else "single"


class GridConfig:
    """Manages grid option files and templates."""

    def create_template_config(self, output_path: str) -> None:
        """Create a template configuration file."""
        with open(output_path, "w") as f:
            yaml.dump(self.get_config_template(), f, default_flow_style=False, indent=2)

    def expand_environment_variables(self, config_data: Dict[str, Any]) -> Dict[str, Any]:
        """Expand $VARIABLE references in configuration values."""

        def expand_value(value):
            if isinstance(value, str) and value.startswith("$"):
                return os.getenv(value[1:], value)
            elif isinstance(value, dict):
                return {k: expand_value(v) for k, v in value.items()}
            elif isinstance(value, list):
                return [expand_value(item) for item in value]
            return value

        return expand_value(config_data)

    def load_config(self, config_path: str) -> GridOptions:
        """Load and validate grid options from a YAML file."""
        if not os.path.exists(config_path):
            raise ConfigurationError(f"Configuration file not found: {config_path}")

        try:
            with open(config_path, "r") as f:
                config_data = yaml.safe_load(f)
        except yaml.YAMLError as e:
            raise ConfigurationError(f"Invalid YAML in config file: {e}")

        if config_data is None:
            return GridOptions()
        if not isinstance(config_data, dict):
            raise ConfigurationError("Configuration file must contain a mapping")

        config_data = self.expand_environment_variables(config_data)
        return GridOptions.from_mapping(config_data.get("grid", config_data))

    def save_config(self, options: GridOptions, output_path: str) -> None:
        """Save grid options to a YAML file."""
        try:
            with open(output_path, "w") as f:
                yaml.dump({"grid": options.to_dict()}, f, default_flow_style=False, indent=2)
        except OSError as e:
            raise ConfigurationError(f"Failed to save configuration: {e}")

    def get_config_template(self) -> Dict[str, Any]:
        """Get a basic configuration template as a dictionary."""
        return {"grid": GridOptions().to_dict()}

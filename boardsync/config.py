# boardsync — configuration
# Override list, field and endpoints via board.yaml or environment.

import os
import yaml
from pathlib import Path
from dataclasses import dataclass, field as dc_field
from typing import Any, List, Optional, Union

from .errors import ConfigError

CONFIG_PATH = Path("board.yaml")


@dataclass
class BoardConfig:
    """Runtime configuration for one board."""

    # Remote list
    base_url: str = ""
    api_token: Optional[str] = None
    list_name: str = ""
    field: str = ""                 # field the columns are built from
    id_field: str = "id"

    # Record selection
    query: Any = None               # filter expression or callable(deliver, context)
    view_fields: List[str] = dc_field(default_factory=list)

    # Columns
    field_filter: Optional[Union[str, List[str], Any]] = None
    optional_label: str = "(none)"
    allow_field_blanks: Optional[bool] = None   # None = follow field definition
    visible_columns: List[str] = dc_field(default_factory=list)
    max_columns: int = 20           # columns that can be built
    max_visible: int = 10           # columns that can be shown at once

    # Cards
    template: Any = None            # "{{Title}}" style string or callable(record, existing)
    height: Optional[str] = None    # fixed CSS height of the card area

    # Behavior
    request_timeout: float = 10.0
    fetch_timeout: float = 30.0
    refresh_interval: float = 0.0   # 0 = no periodic refresh

    def validate(self) -> "BoardConfig":
        """Raise ConfigError when the board cannot be built from this config."""
        if not self.list_name or not self.field:
            raise ConfigError("Missing required board parameters: list_name and field")
        if self.max_visible < 2:
            raise ConfigError(f"max_visible must be at least 2, got {self.max_visible}")
        if self.max_columns < 1:
            raise ConfigError(f"max_columns must be positive, got {self.max_columns}")
        return self

    def request_fields(self) -> List[str]:
        """Fields to request from the list; always includes id, Title and the board field."""
        fields = list(self.view_fields) or [self.id_field, "Title"]
        for required in (self.id_field, self.field):
            if required not in fields:
                fields.append(required)
        return fields

    def apply_env(self) -> None:
        """Environment wins over the YAML file for secrets and endpoints."""
        self.base_url = os.environ.get("BOARDSYNC_BASE_URL", self.base_url)
        self.api_token = os.environ.get("BOARDSYNC_API_TOKEN", self.api_token)

    @classmethod
    def load(cls, path: Optional[str] = None) -> "BoardConfig":
        """Load config from YAML file, falling back to defaults."""
        cfg_path = Path(path) if path else CONFIG_PATH
        if cfg_path.exists():
            with open(cfg_path, "r") as f:
                try:
                    data = yaml.safe_load(f) or {}
                except yaml.YAMLError as e:
                    raise ConfigError(f"Cannot parse {cfg_path}: {e}")
            if not isinstance(data, dict):
                raise ConfigError(f"{cfg_path} must contain a mapping")
            cfg = cls(**{k: v for k, v in data.items() if k in cls.__dataclass_fields__})
        elif path:
            raise ConfigError(f"Config file not found: {cfg_path}")
        else:
            cfg = cls()
        cfg.apply_env()
        return cfg

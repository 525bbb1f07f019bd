"""Application configuration defaults."""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path

DATA_ROOT_ENV = "REPOSEARCH_VAR"


def _get_default_data_root() -> Path:
    """Get the default data root based on environment and execution context."""
    var_dir = os.environ.get(DATA_ROOT_ENV)
    if var_dir:
        return Path(var_dir) / "reposearch"

    # When running from a checkout, prefer local data/ if it exists
    local_root = Path("data/reposearch")
    if local_root.exists():
        return local_root

    return Path.home() / ".reposearch"


@dataclass(slots=True)
class AppConfig:
    data_root: Path | None = None
    max_file_size_kb: int = 512
    store_timeout: float = 5.0

    def __post_init__(self) -> None:
        if self.data_root is None:
            self.data_root = _get_default_data_root()

    @property
    def max_file_size(self) -> int:
        return self.max_file_size_kb * 1024

    def resolve_data_root(self, base_dir: Path | None = None) -> Path:
        if self.data_root is None:
            self.data_root = _get_default_data_root()
        if Path(self.data_root).is_absolute() or base_dir is None:
            return Path(self.data_root)
        return base_dir / self.data_root

    def index_path(self, project_identifier: str, base_dir: Path | None = None) -> Path:
        """Directory holding the full-text index of one project."""
        return self.resolve_data_root(base_dir) / project_identifier

    def history_path(self, base_dir: Path | None = None) -> Path:
        return self.resolve_data_root(base_dir) / "history.db"

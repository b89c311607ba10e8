"""Configuration for the history viewer, persisted as JSON in the user's home."""

from __future__ import annotations

import json
import logging
from dataclasses import asdict, dataclass, field, fields
from pathlib import Path
from typing import Any, Dict, List

logger = logging.getLogger(__name__)

CONFIG_FILENAME = "config.json"


@dataclass(slots=True)
class ViewerConfig:
    """Runtime configuration for the viewer.

    Attributes
    ----------
    base_dir:
        Directory holding ``config.json``. Defaults to ``~/.histview``.
    commit_limit:
        Maximum number of commits loaded into the history list.
    commit_batch_size:
        Number of commits each streaming load cycle produces.
    enable_commit_streaming:
        Load history incrementally instead of in a single bulk call.
    max_recent_repos:
        Length of the recently opened repositories list.
    recent_repositories:
        Recently opened repositories, most recent first.
    short_id_length:
        Number of hex digits shown for abbreviated commit ids.
    """

    base_dir: Path = field(default_factory=lambda: Path.home() / ".histview")
    commit_limit: int = 1000
    commit_batch_size: int = 50
    enable_commit_streaming: bool = True
    max_recent_repos: int = 10
    recent_repositories: List[Path] = field(default_factory=list)
    short_id_length: int = 7

    def config_path(self) -> Path:
        """Return path to the config file, creating its directory."""
        self.base_dir.mkdir(parents=True, exist_ok=True)
        return self.base_dir / CONFIG_FILENAME

    @classmethod
    def load(cls, base_dir: Path | None = None) -> "ViewerConfig":
        """Load the configuration stored under ``base_dir``.

        A missing or unreadable file yields the defaults; unknown keys are
        ignored so older builds can read newer files.
        """

        config = cls() if base_dir is None else cls(base_dir=base_dir)
        path = config.base_dir / CONFIG_FILENAME
        if not path.exists():
            return config

        try:
            with open(path, "r", encoding="utf-8") as f:
                data = json.load(f)
        except (OSError, ValueError) as e:
            logger.warning("Ignoring unreadable config %s: %s", path, e)
            return config
        if not isinstance(data, dict):
            logger.warning("Ignoring malformed config %s", path)
            return config

        known = {item.name for item in fields(cls)} - {"base_dir"}
        values: Dict[str, Any] = {key: data[key] for key in known if key in data}
        if "recent_repositories" in values:
            values["recent_repositories"] = [Path(p) for p in values["recent_repositories"]]
        return cls(base_dir=config.base_dir, **values)

    def save(self) -> None:
        """Write the configuration to ``config_path()``."""
        data = asdict(self)
        del data["base_dir"]
        data["recent_repositories"] = [str(p) for p in self.recent_repositories]
        with open(self.config_path(), "w", encoding="utf-8") as f:
            json.dump(data, f, indent=2)

    def add_recent_repository(self, path: Path) -> None:
        """Move ``path`` to the front of the recent list, trimming it to size."""
        path = Path(path)
        self.recent_repositories = [p for p in self.recent_repositories if p != path]
        self.recent_repositories.insert(0, path)
        del self.recent_repositories[self.max_recent_repos:]

    def remove_recent_repository(self, path: Path) -> None:
        path = Path(path)
        self.recent_repositories = [p for p in self.recent_repositories if p != path]

"""
Analyzer configuration.

The configuration is an explicit value handed to every entry point; nothing in
commitcoupling reads process-wide settings.
"""
import time
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Optional

import yaml

from commitcoupling.errors import ConfigError

MILLIS_PER_DAY = 86_400_000
DEFAULT_RECENT_DAYS = 182

DEFAULT_EXCLUDE_FILTERS = [
    ".eslintrc.cjs",
    ".gitignore",
    ".prettierignore",
    "README.md",
    "index.html",
    "package-lock.json",
    "package.json",
    "prettierrc.json",
    "tsconfig.json",
    "tsconfig.node.json",
    ".png",
    ".config.",
    "public/",
    "yarn.lock",
    ".yarn",
    ".github/",
]


def recent_cutoff_from_days(days: float, now: Optional[float] = None) -> int:
    """
    Convert a recency window into an epoch-millisecond cutoff.

    Args:
        days: Size of the window, counting back from ``now``
        now: Reference time in epoch seconds (default: current time)

    Returns:
        Commits with a timestamp greater than this value are recent
    """
    if days < 0:
        raise ConfigError("recent_days must not be negative", key="recent_days")
    if now is None:
        now = time.time()
    return int(now * 1000) - int(days * MILLIS_PER_DAY)


@dataclass(frozen=True)
class RiskThresholds:
    """Inclusive thresholds for upgrading a file's risk tier."""

    medium_co_changes: int = 3
    high_co_changes: int = 6
    medium_contributors: int = 3
    high_contributors: int = 5

    def __post_init__(self):
        for name in ("medium_co_changes", "high_co_changes", "medium_contributors", "high_contributors"):
            if getattr(self, name) < 1:
                raise ConfigError(f"{name} must be at least 1", key=name)


@dataclass(frozen=True)
class AnalyzerConfig:
    """Everything a single analysis run needs to know."""

    repo_path: Path
    exclude_filters: tuple[str, ...] = tuple(DEFAULT_EXCLUDE_FILTERS)
    recent_cutoff: int = field(default_factory=lambda: recent_cutoff_from_days(DEFAULT_RECENT_DAYS))
    thresholds: RiskThresholds = field(default_factory=RiskThresholds)
    max_workers: int = 8
    aggregate_partitions: int = 1
    editor_command: str = "code"

    def __post_init__(self):
        # frozen, so normalize through object.__setattr__
        object.__setattr__(self, "repo_path", Path(self.repo_path))
        object.__setattr__(self, "exclude_filters", tuple(self.exclude_filters))
        if self.max_workers < 1:
            raise ConfigError("max_workers must be at least 1", key="max_workers")
        if self.aggregate_partitions < 1:
            raise ConfigError("aggregate_partitions must be at least 1", key="aggregate_partitions")
        if not self.editor_command:
            raise ConfigError("editor_command must not be empty", key="editor_command")

    @classmethod
    def from_yaml(cls, yaml_path: Path, now: Optional[float] = None) -> "AnalyzerConfig":
        """
        Load an analyzer configuration from a YAML file.

        Args:
            yaml_path: Path to the YAML file
            now: Reference time used when the file gives ``recent_days``

        Returns:
            AnalyzerConfig instance

        Example YAML:
            repo_path: ../my-project
            exclude_filters:
              - package-lock.json
              - .png
            recent_days: 182
            thresholds:
              co_changes:
                medium: 3
                high: 6
              contributors:
                medium: 3
                high: 5
            max_workers: 8
            aggregate_partitions: 1
            editor_command: code
        """
        yaml_path = Path(yaml_path)
        try:
            with open(yaml_path) as f:
                config = yaml.safe_load(f) or {}
        except OSError as e:
            raise ConfigError(f"cannot read {yaml_path}: {e.strerror}") from e
        except yaml.YAMLError as e:
            raise ConfigError(f"cannot parse {yaml_path}: {e}") from e

        if not isinstance(config, dict):
            raise ConfigError(f"{yaml_path} must contain a mapping")
        if "repo_path" not in config:
            raise ConfigError("repo_path is required", key="repo_path")

        repo_path = Path(config["repo_path"])
        if not repo_path.is_absolute():
            repo_path = yaml_path.parent / repo_path

        kwargs: dict[str, Any] = {"repo_path": repo_path}

        if "exclude_filters" in config:
            filters = config["exclude_filters"] or []
            if not isinstance(filters, list):
                raise ConfigError("exclude_filters must be a list", key="exclude_filters")
            kwargs["exclude_filters"] = tuple(str(f) for f in filters)

        try:
            if "recent_cutoff" in config:
                kwargs["recent_cutoff"] = int(config["recent_cutoff"])
            elif "recent_days" in config:
                kwargs["recent_cutoff"] = recent_cutoff_from_days(float(config["recent_days"]), now)

            if "thresholds" in config:
                kwargs["thresholds"] = _thresholds_from_mapping(config["thresholds"] or {})

            if "max_workers" in config:
                kwargs["max_workers"] = int(config["max_workers"])
            if "aggregate_partitions" in config:
                kwargs["aggregate_partitions"] = int(config["aggregate_partitions"])
        except (TypeError, ValueError, AttributeError) as e:
            raise ConfigError(f"invalid value in {yaml_path}: {e}") from e

        if "editor_command" in config:
            kwargs["editor_command"] = str(config["editor_command"])

        return cls(**kwargs)


def _thresholds_from_mapping(thresholds: dict) -> RiskThresholds:
    defaults = RiskThresholds()
    co_changes = thresholds.get("co_changes") or {}
    contributors = thresholds.get("contributors") or {}

    return RiskThresholds(
        medium_co_changes=int(co_changes.get("medium", defaults.medium_co_changes)),
        high_co_changes=int(co_changes.get("high", defaults.high_co_changes)),
        medium_contributors=int(contributors.get("medium", defaults.medium_contributors)),
        high_contributors=int(contributors.get("high", defaults.high_contributors)),
    )

"""Configuration for rmlinks: tunable settings and the resolved run input."""

from __future__ import annotations

import logging
import os
import stat
from dataclasses import dataclass
from pathlib import Path
from typing import Any

import yaml

from .errors import ConfigurationError, NoHardLinksError
from .identity import TargetIdentity

_TRUE_STRINGS = frozenset({"true", "yes", "on", "1"})


def parse_bool(value: Any, default: bool) -> bool:
    """Interpret a YAML scalar as a boolean.

    Args:
        value: Value read from the config file.
        default: Returned when ``value`` is None.

    Returns:
        Parsed boolean.

    """
    if value is None:
        return default
    if isinstance(value, str):
        return value.strip().lower() in _TRUE_STRINGS
    return bool(value)


def default_workers() -> int:
    """Number of traversal workers used when none is configured."""
    return min(32, (os.cpu_count() or 1) + 4)


@dataclass
class RmlinksConfig:
    """Tunable settings, loaded from an optional YAML file."""

    # Seconds between re-inspections of the target's link count
    poll_interval: float = 0.1

    # Traversal worker threads (0 = auto, 1 = single thread with inline recursion)
    workers: int = 0

    # Wake the supervisor early on filesystem events for the target
    watch_target: bool = True

    # Logging
    log_level: str = "WARNING"
    log_file: Path | None = None

    @classmethod
    def get_config_path(cls) -> Path:
        """Get the default configuration file path."""
        config_home = os.environ.get("XDG_CONFIG_HOME") or str(Path.home() / ".config")
        return Path(config_home) / "rmlinks" / "config.yaml"

    @classmethod
    def load(cls, config_path: Path | None = None) -> RmlinksConfig:
        """Load configuration from YAML file.

        Args:
            config_path: Path to config file. Uses default if None.

        Returns:
            Loaded configuration, or defaults if the file does not exist.

        Raises:
            ConfigurationError: If the file cannot be parsed or holds invalid values.

        """
        if config_path is None:
            config_path = cls.get_config_path()

        if not config_path.exists():
            return cls()

        try:
            with config_path.open(encoding="utf-8") as f:
                data = yaml.safe_load(f) or {}
        except (OSError, yaml.YAMLError) as e:
            raise ConfigurationError(f"rmlinks: could not read config {config_path} ({e}).") from e

        if not isinstance(data, dict):
            raise ConfigurationError(f"rmlinks: config {config_path} must be a mapping.")

        config = cls._from_dict(data)
        config.validate()
        return config

    @classmethod
    def _from_dict(cls, data: dict[str, Any]) -> RmlinksConfig:
        """Create config from dictionary."""
        config = cls()

        try:
            if "poll_interval" in data:
                config.poll_interval = float(data["poll_interval"])
            if "workers" in data:
                config.workers = int(data["workers"])
        except (TypeError, ValueError) as e:
            raise ConfigurationError(f"rmlinks: invalid config value ({e}).") from e

        config.watch_target = parse_bool(data.get("watch_target"), config.watch_target)

        if "logging" in data:
            logging_cfg = data["logging"] or {}
            if "level" in logging_cfg:
                config.log_level = str(logging_cfg["level"]).upper()
            if logging_cfg.get("file"):
                config.log_file = Path(os.path.expanduser(logging_cfg["file"]))

        return config

    def validate(self) -> None:
        """Check that settings are usable.

        Raises:
            ConfigurationError: On the first invalid setting.

        """
        if self.poll_interval <= 0:
            raise ConfigurationError(f"rmlinks: poll_interval must be positive, got {self.poll_interval}.")
        if self.workers < 0:
            raise ConfigurationError(f"rmlinks: workers must not be negative, got {self.workers}.")
        if not isinstance(logging.getLevelName(self.log_level), int):
            raise ConfigurationError(f"rmlinks: invalid log level {self.log_level!r}.")

    @property
    def effective_workers(self) -> int:
        """Worker count with ``0`` resolved to the automatic default."""
        return self.workers or default_workers()

    def save(self, config_path: Path | None = None) -> None:
        """Save configuration to YAML file.

        Args:
            config_path: Path to save config. Uses default if None.

        """
        if config_path is None:
            config_path = self.get_config_path()

        config_path.parent.mkdir(parents=True, exist_ok=True)

        logging_cfg: dict[str, Any] = {"level": self.log_level}
        if self.log_file is not None:
            logging_cfg["file"] = str(self.log_file)

        data = {
            "poll_interval": self.poll_interval,
            "workers": self.workers,
            "watch_target": self.watch_target,
            "logging": logging_cfg,
        }

        with config_path.open("w", encoding="utf-8") as f:
            yaml.dump(data, f, default_flow_style=False, sort_keys=False)


def _canonicalize(arg: str) -> Path:
    try:
        return Path(arg).resolve(strict=True)
    except (OSError, RuntimeError) as e:
        raise ConfigurationError(
            f"Failed to resolve full path for '{arg}'. "
            "Please check that it exists and is accessible."
        ) from e


def _stat(path: Path, *, follow_symlinks: bool) -> os.stat_result:
    try:
        return path.stat() if follow_symlinks else path.lstat()
    except OSError as e:
        raise ConfigurationError(f"rmlinks: could not stat {path} ({e.strerror or e}).") from e


@dataclass(frozen=True)
class RunConfig:
    """Validated, immutable input to a run."""

    search_root: Path
    target: TargetIdentity
    initial_link_count: int
    recursive: bool = False
    softlinks: bool = False

    @classmethod
    def resolve(
        cls,
        directory: str,
        file: str,
        *,
        recursive: bool = False,
        softlinks: bool = False,
    ) -> RunConfig:
        """Canonicalize and validate the command line paths.

        Args:
            directory: Directory to search.
            file: Target file whose extra links are removed.
            recursive: Whether to search subdirectories.
            softlinks: Whether to remove symbolic links to the target.

        Returns:
            Resolved run configuration.

        Raises:
            ConfigurationError: If a path is unusable.
            NoHardLinksError: If the target has no other links.

        """
        target_path = _canonicalize(file)
        search_root = _canonicalize(directory)

        if not stat.S_ISDIR(_stat(search_root, follow_symlinks=True).st_mode):
            raise ConfigurationError(f"rmlinks: {search_root} is not a directory.")

        target_stat = _stat(target_path, follow_symlinks=False)
        if not stat.S_ISREG(target_stat.st_mode):
            raise ConfigurationError(f"rmlinks: {target_path} is not a regular file.")

        if target_stat.st_nlink == 1:
            raise NoHardLinksError(f"rmlinks: there are no hardlinks to {target_path}.")

        return cls(
            search_root=search_root,
            target=TargetIdentity.from_stat(target_path, target_stat),
            initial_link_count=target_stat.st_nlink,
            recursive=recursive,
            softlinks=softlinks,
        )

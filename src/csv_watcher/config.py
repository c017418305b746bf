"""Configuration management for the CSV folder watcher."""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml

from .fileops import default_backup_dir, default_target_dir
from .policy import WorkflowPolicy

_TRUE_STRINGS = frozenset({"true", "yes", "on", "1"})


def parse_bool(value: Any, default: bool) -> bool:
    """Parse a boolean from YAML-ish input.

    Args:
        value: Raw value (bool, int, str or None).
        default: Value returned when ``value`` is None.

    Returns:
        Parsed boolean.

    """
    if value is None:
        return default
    if isinstance(value, bool):
        return value
    if isinstance(value, int):
        return value != 0
    return str(value).strip().lower() in _TRUE_STRINGS


def _expand(value: str) -> Path:
    return Path(os.path.expanduser(value))


@dataclass
class WatcherConfig:
    """Configuration for the CSV folder watcher."""

    # Folder that receives user-dropped CSV files
    target_dir: Path = field(default_factory=default_target_dir)

    # Folder that receives timestamped backup copies
    backup_dir: Path = field(default_factory=default_backup_dir)

    # Seconds between reconciliation polls
    poll_interval: float = 5.0

    # Staggering of files found by the initial scan (seconds)
    initial_delay: float = 1.0
    stagger_step: float = 0.5

    # Minimum seconds between "folder is empty" diagnostics
    empty_log_interval: float = 30.0

    # Initial workflow policy
    auto_processing: bool = True
    process_delay: int = 2000  # milliseconds
    enable_backup: bool = True
    enable_cleanup: bool = True

    # Logging
    log_file: Path = field(
        default_factory=lambda: Path.home() / ".local/state/csv-watcher/csv-watcher.log"
    )
    log_level: str = "INFO"

    @classmethod
    def get_config_path(cls) -> Path:
        """Get the default configuration file path."""
        return Path.home() / ".config/csv-watcher/config.yaml"

    @classmethod
    def load(cls, config_path: Path | None = None) -> WatcherConfig:
        """Load configuration from YAML file.

        Args:
            config_path: Path to config file. Uses default if None.

        Returns:
            Loaded configuration.

        Raises:
            ValueError: If the file is not valid YAML or holds invalid values.

        """
        if config_path is None:
            config_path = cls.get_config_path()

        if not config_path.exists():
            return cls()

        try:
            with config_path.open(encoding="utf-8") as f:
                data = yaml.safe_load(f) or {}
        except yaml.YAMLError as e:
            raise ValueError(f"Invalid YAML in {config_path}: {e}") from e

        if not isinstance(data, dict):
            raise ValueError(f"Invalid YAML in {config_path}: expected a mapping")

        config = cls._from_dict(data)
        config.validate()
        return config

    @classmethod
    def _from_dict(cls, data: dict[str, Any]) -> WatcherConfig:
        """Create config from dictionary."""
        config = cls()

        # Folders
        if "target_dir" in data:
            config.target_dir = _expand(data["target_dir"])
        if "backup_dir" in data:
            config.backup_dir = _expand(data["backup_dir"])

        # Timing
        if "poll_interval" in data:
            config.poll_interval = float(data["poll_interval"])
        if "initial_delay" in data:
            config.initial_delay = float(data["initial_delay"])
        if "stagger_step" in data:
            config.stagger_step = float(data["stagger_step"])
        if "empty_log_interval" in data:
            config.empty_log_interval = float(data["empty_log_interval"])

        # Workflow policy
        if "workflow" in data:
            workflow = data["workflow"] or {}
            config.auto_processing = parse_bool(workflow.get("auto_processing"), config.auto_processing)
            if "process_delay" in workflow:
                config.process_delay = int(workflow["process_delay"])
            config.enable_backup = parse_bool(workflow.get("enable_backup"), config.enable_backup)
            config.enable_cleanup = parse_bool(workflow.get("enable_cleanup"), config.enable_cleanup)

        # Logging
        if "logging" in data:
            logging_cfg = data["logging"] or {}
            if "file" in logging_cfg:
                config.log_file = _expand(logging_cfg["file"])
            if "level" in logging_cfg:
                config.log_level = str(logging_cfg["level"]).upper()

        return config

    def validate(self) -> None:
        """Check value ranges.

        Raises:
            ValueError: If any value is out of range.

        """
        if self.poll_interval <= 0:
            raise ValueError("poll_interval must be positive")
        if self.initial_delay < 0:
            raise ValueError("initial_delay must not be negative")
        if self.stagger_step < 0:
            raise ValueError("stagger_step must not be negative")
        if self.empty_log_interval < 0:
            raise ValueError("empty_log_interval must not be negative")
        if self.process_delay < 0:
            raise ValueError("process_delay must not be negative")

    def initial_policy(self) -> WorkflowPolicy:
        """Build the workflow policy the watcher starts with."""
        return WorkflowPolicy(
            auto_processing=self.auto_processing,
            process_delay=self.process_delay,
            enable_backup=self.enable_backup,
            enable_cleanup=self.enable_cleanup,
        )

    def save(self, config_path: Path | None = None) -> None:
        """Save configuration to YAML file.

        Args:
            config_path: Path to save config. Uses default if None.

        """
        if config_path is None:
            config_path = self.get_config_path()

        config_path.parent.mkdir(parents=True, exist_ok=True)

        data = {
            "target_dir": str(self.target_dir),
            "backup_dir": str(self.backup_dir),
            "poll_interval": self.poll_interval,
            "initial_delay": self.initial_delay,
            "stagger_step": self.stagger_step,
            "empty_log_interval": self.empty_log_interval,
            "workflow": {
                "auto_processing": self.auto_processing,
                "process_delay": self.process_delay,
                "enable_backup": self.enable_backup,
                "enable_cleanup": self.enable_cleanup,
            },
            "logging": {
                "file": str(self.log_file),
                "level": self.log_level,
            },
        }

        with config_path.open("w", encoding="utf-8") as f:
            yaml.dump(data, f, default_flow_style=False, sort_keys=False)

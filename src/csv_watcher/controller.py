"""Control-plane operations exposed to the CLI or a UI layer."""

from __future__ import annotations

import logging
import os
import subprocess
import sys
from typing import TYPE_CHECKING, Any

from rich.console import Console
from rich.logging import RichHandler

from .engine import WatchEngine
from .errors import AlreadyWatchingError

if TYPE_CHECKING:
    from .config import WatcherConfig
    from .models import DetectedFile, WatchStatus
    from .policy import WorkflowPolicy

LOGGER_NAME = "csv-watcher"
_LOG_LEVELS = frozenset({"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"})


class WatchController:
    """Single entry point for starting, stopping and steering the watcher."""

    def __init__(self, config: WatcherConfig, logger: logging.Logger | None = None) -> None:
        """Initialize the controller.

        Args:
            config: Watcher configuration.
            logger: Logger to use; a configured ``csv-watcher`` logger if None.

        Raises:
            ValueError: If ``config.log_level`` is not a logging level name.

        """
        self.config = config
        self.logger = logger or self._setup_logging()
        self.engine = WatchEngine(config, self.logger)

    def _setup_logging(self) -> logging.Logger:
        """Set up logging for the watcher.

        Returns:
            Configured logger instance.

        """
        level = self.config.log_level.upper()
        if level not in _LOG_LEVELS:
            raise ValueError(f"Invalid log_level: {self.config.log_level}")

        logger = logging.getLogger(LOGGER_NAME)
        logger.setLevel(getattr(logging, level))

        # Clear existing handlers to avoid duplicates if the controller is recreated
        if logger.handlers:
            logger.handlers.clear()

        console_handler = RichHandler(
            console=Console(stderr=True),
            show_time=True,
            show_path=False,
        )
        console_handler.setLevel(logging.INFO)
        logger.addHandler(console_handler)

        self.config.log_file.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(self.config.log_file)
        file_handler.setLevel(logging.DEBUG)
        file_handler.setFormatter(
            logging.Formatter("%(asctime)s | %(levelname)s | %(message)s")
        )
        logger.addHandler(file_handler)

        return logger

    async def start_watching(self) -> WatchStatus:
        """Start watching; an active session is returned unchanged."""
        try:
            return await self.engine.start()
        except AlreadyWatchingError:
            self.logger.info("Folder watching already active")
            return self.engine.status()

    async def auto_start_watching(self) -> WatchStatus:
        """Prepare the folders and start watching."""
        self.initialize_folder()
        return await self.start_watching()

    async def stop_watching(self) -> WatchStatus:
        return await self.engine.stop()

    def get_status(self) -> WatchStatus:
        return self.engine.status()

    def get_file_details(self, file_name: str) -> DetectedFile:
        """Return the tracked entry for ``file_name``.

        Raises:
            NotFoundError: If the file is not tracked.

        """
        return self.engine.get_file_details(file_name)

    def initialize_folder(self) -> dict[str, Any]:
        """Create the target and backup folders and count existing files."""
        file_ops = self.engine.file_ops
        folder = file_ops.ensure_folder(self.config.target_dir)
        file_ops.ensure_folder(self.config.backup_dir)
        existing = file_ops.list_csv_files(folder)
        self.logger.info("CSV folder ready at %s (%d files)", folder, len(existing))
        return {"folderPath": str(folder), "existingFileCount": len(existing)}

    def open_folder(self) -> dict[str, Any]:
        """Open the target folder in the system file explorer."""
        folder = self.engine.file_ops.ensure_folder(self.config.target_dir)
        if sys.platform == "win32":
            os.startfile(folder)  # type: ignore[attr-defined]
        else:
            opener = "open" if sys.platform == "darwin" else "xdg-open"
            subprocess.run([opener, str(folder)], check=False)
        return {"folderPath": str(folder)}

    def get_folder_size(self) -> int:
        """Total size in bytes of the target folder."""
        return self.engine.file_ops.folder_size(self.config.target_dir)

    def set_auto_processing(self, enabled: bool) -> dict[str, Any]:
        policy = self.engine.policy.set_auto_processing(enabled)
        self.logger.info("Auto-processing %s", "enabled" if policy.auto_processing else "disabled")
        return {"autoProcessing": policy.auto_processing}

    def get_workflow_config(self) -> WorkflowPolicy:
        return self.engine.policy.get()

    def update_workflow_config(self, **changes: Any) -> WorkflowPolicy:
        """Merge ``changes`` into the workflow policy.

        Raises:
            ValueError: On unknown settings or a negative delay.

        """
        return self.engine.policy.update(**changes)

    async def process_all_files_now(self) -> dict[str, Any]:
        result = await self.engine.process_all_now()
        return result.to_dict()

    def reset_counters(self) -> dict[str, Any]:
        self.engine.reset_counters()
        return {"success": True}

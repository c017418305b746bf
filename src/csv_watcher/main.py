"""Main entry point for the CSV folder watcher."""

from __future__ import annotations

import argparse
import asyncio
import signal
import sys
from pathlib import Path
from typing import TYPE_CHECKING

from rich.console import Console
from rich.table import Table

from .config import WatcherConfig
from .controller import WatchController

if TYPE_CHECKING:
    from .models import WatchStatus


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    """Parse command line arguments.

    Returns:
        Parsed arguments.

    """
    parser = argparse.ArgumentParser(
        prog="csv-watcher",
        description="Watch a folder and ingest the CSV files dropped into it",
    )

    parser.add_argument(
        "--config",
        "-c",
        type=Path,
        default=None,
        help="Path to configuration file",
    )

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    # Run command (default)
    run_parser = subparsers.add_parser("run", help="Watch the folder until interrupted")
    run_parser.add_argument(
        "--once",
        action="store_true",
        help="Process the files already in the folder and exit",
    )

    subparsers.add_parser("scan", help="List CSV files in the folder without processing")
    subparsers.add_parser("process", help="Back up and delete every CSV file now")
    subparsers.add_parser("init", help="Create the watch and backup folders")
    subparsers.add_parser("open", help="Open the watch folder in the file explorer")

    # Config command
    config_parser = subparsers.add_parser("config", help="Configuration management")
    config_parser.add_argument(
        "--init",
        action="store_true",
        help="Create default configuration file",
    )
    config_parser.add_argument(
        "--show",
        action="store_true",
        help="Show current configuration",
    )

    return parser.parse_args(argv)


def _status_table(status: WatchStatus) -> Table:
    table = Table(title="Watcher status")
    table.add_column("Field", style="cyan")
    table.add_column("Value", style="green")

    table.add_row("Watching", str(status.is_watching))
    table.add_row("Paused", str(status.is_paused))
    table.add_row("Auto-processing", str(status.auto_processing))
    table.add_row("Folder", str(status.folder_path))
    table.add_row("Backup folder", str(status.backup_folder_path))
    table.add_row("Files detected", str(len(status.files_detected)))
    table.add_row("Processed", str(status.processed_count))
    table.add_row("Failed", str(status.failed_count))
    table.add_row("Last update", status.last_update.strftime("%Y-%m-%d %H:%M:%S"))
    return table


def cmd_scan(config: WatcherConfig, args: argparse.Namespace) -> int:
    """Execute scan command.

    Args:
        config: Watcher configuration.
        args: Parsed arguments.

    Returns:
        Exit code.

    """
    import logging

    from .controller import LOGGER_NAME
    from .decoder import detect_file
    from .fileops import FileOps, format_file_size

    console = Console()
    file_ops = FileOps(logging.getLogger(LOGGER_NAME))
    files = file_ops.list_csv_files(config.target_dir)

    if not files:
        console.print(f"[green]No CSV files in {config.target_dir}[/green]")
        return 0

    table = Table(title=f"Found {len(files)} CSV files")
    table.add_column("File", style="cyan")
    table.add_column("Size", style="dim")
    table.add_column("Rows", justify="right")
    table.add_column("Problem", style="red")

    for info in files:
        try:
            detected = detect_file(info.path)
        except OSError as e:
            table.add_row(info.name, format_file_size(info.size), "-", str(e))
            continue
        table.add_row(
            info.name,
            format_file_size(detected.size),
            str(detected.row_count),
            detected.parse_error or "",
        )

    console.print(table)
    return 0


def cmd_process(config: WatcherConfig, args: argparse.Namespace) -> int:
    """Execute process command.

    Args:
        config: Watcher configuration.
        args: Parsed arguments.

    Returns:
        Exit code.

    """
    console = Console()
    controller = WatchController(config)
    result = asyncio.run(controller.process_all_files_now())

    table = Table(title=f"Processed {len(result['processed'])} of {result['totalFiles']} files")
    table.add_column("File", style="cyan")
    table.add_column("Result")
    for name in result["processed"]:
        table.add_row(name, "[green]processed[/green]")
    for name in result["failed"]:
        table.add_row(name, "[red]failed[/red]")

    console.print(table)
    return 1 if result["failed"] else 0


def cmd_init(config: WatcherConfig, args: argparse.Namespace) -> int:
    """Execute init command."""
    console = Console()
    result = WatchController(config).initialize_folder()
    console.print(
        f"[green]CSV folder ready: {result['folderPath']} "
        f"({result['existingFileCount']} existing files)[/green]"
    )
    return 0


def cmd_open(config: WatcherConfig, args: argparse.Namespace) -> int:
    """Execute open command."""
    result = WatchController(config).open_folder()
    Console().print(f"Opened {result['folderPath']}")
    return 0


def cmd_config(config: WatcherConfig, args: argparse.Namespace) -> int:
    """Execute config command.

    Args:
        config: Watcher configuration.
        args: Parsed arguments.

    Returns:
        Exit code.

    """
    console = Console()

    if args.init:
        config_path = args.config or WatcherConfig.get_config_path()
        if config_path.exists():
            console.print(f"[yellow]Config already exists: {config_path}[/yellow]")
            return 1
        config.save(config_path)
        console.print(f"[green]Created config: {config_path}[/green]")
        return 0

    if args.show:
        table = Table(title="Current Configuration")
        table.add_column("Setting", style="cyan")
        table.add_column("Value", style="green")

        table.add_row("Watch folder", str(config.target_dir))
        table.add_row("Backup folder", str(config.backup_dir))
        table.add_row("Poll interval", f"{config.poll_interval:g}s")
        table.add_row("Auto-processing", str(config.auto_processing))
        table.add_row("Process delay", f"{config.process_delay}ms")
        table.add_row("Backup enabled", str(config.enable_backup))
        table.add_row("Cleanup enabled", str(config.enable_cleanup))
        table.add_row("Log file", str(config.log_file))
        table.add_row("Log level", config.log_level)

        console.print(table)
        return 0

    console.print("[yellow]Use --init or --show[/yellow]")
    return 1


async def _run_once(controller: WatchController) -> WatchStatus:
    await controller.auto_start_watching()
    try:
        await controller.engine.join()
    finally:
        status = await controller.stop_watching()
    return status


async def _run_forever(controller: WatchController) -> WatchStatus:
    stop_requested = asyncio.Event()
    loop = asyncio.get_running_loop()
    for sig in (signal.SIGTERM, signal.SIGINT):
        loop.add_signal_handler(sig, stop_requested.set)

    await controller.auto_start_watching()
    try:
        await stop_requested.wait()
        controller.logger.info("Shutdown signal received")
    finally:
        status = await controller.stop_watching()
    return status


def cmd_run(config: WatcherConfig, args: argparse.Namespace) -> int:
    """Execute run command.

    Args:
        config: Watcher configuration.
        args: Parsed arguments.

    Returns:
        Exit code.

    """
    controller = WatchController(config)
    runner = _run_once if getattr(args, "once", False) else _run_forever
    status = asyncio.run(runner(controller))
    Console().print(_status_table(status))
    return 0


def main(argv: list[str] | None = None) -> int:
    """Main entry point.

    Returns:
        Exit code.

    """
    args = parse_args(argv)
    config = WatcherConfig.load(args.config)

    # Default to run command
    command = args.command or "run"

    if command == "scan":
        return cmd_scan(config, args)
    elif command == "process":
        return cmd_process(config, args)
    elif command == "init":
        return cmd_init(config, args)
    elif command == "open":
        return cmd_open(config, args)
    elif command == "config":
        return cmd_config(config, args)
    elif command == "run":
        return cmd_run(config, args)
    else:
        print(f"Unknown command: {command}")
        return 1


if __name__ == "__main__":
    sys.exit(main())

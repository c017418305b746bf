"""Folder watcher that ingests CSV files dropped into a target directory."""

__version__ = "0.1.0"

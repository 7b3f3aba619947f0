"""Utility modules for restic exporter."""

from .formatters import format_command, join_paths, join_tags, truncate_string

__all__ = ["format_command", "join_paths", "join_tags", "truncate_string"]

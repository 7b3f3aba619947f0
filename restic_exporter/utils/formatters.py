"""Formatting helpers for log messages and metric labels."""

import shlex
from typing import List


def format_command(argv: List[str]) -> str:
    """Render an argument list as a shell-quoted command line.

    Args:
        argv: Program and arguments.

    Returns:
        Command line suitable for copying into a shell.
    """
    return ' '.join(shlex.quote(arg) for arg in argv)


def join_paths(paths: List[str]) -> str:
    """Join snapshot paths into a single label value."""
    return ':'.join(paths)


def join_tags(tags: List[str]) -> str:
    """Join snapshot tags into a single label value."""
    return ','.join(tags)


def truncate_string(text: str, max_length: int, suffix: str = "...") -> str:
    """Truncate string to maximum length.

    Args:
        text: Text to truncate.
        max_length: Maximum length.
        suffix: Suffix to add when truncating.

    Returns:
        Truncated string.
    """
    if len(text) <= max_length:
        return text

    return text[:max_length - len(suffix)] + suffix

"""Data models for restic probes."""

import re
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, List, Mapping, Optional

from .errors import MissingParameter

# restic writes RFC 3339 timestamps with nanosecond precision
_RFC3339 = re.compile(
    r'^(?P<base>\d{4}-\d{2}-\d{2}[T ]\d{2}:\d{2}:\d{2})'
    r'(?:\.(?P<fraction>\d+))?'
    r'(?P<offset>Z|z|[+-]\d{2}:\d{2})$'
)


def parse_timestamp(value: str) -> datetime:
    """Parse an RFC 3339 timestamp as written by restic.

    Args:
        value: Timestamp string such as ``2024-05-01T02:00:03.123456789+02:00``.

    Returns:
        Timezone-aware datetime, fraction truncated to microseconds.

    Raises:
        ValueError: If the string is not an RFC 3339 timestamp.
    """
    match = _RFC3339.match(value.strip())
    if not match:
        raise ValueError(f"not an RFC 3339 timestamp: {value!r}")

    text = match.group('base').replace(' ', 'T')
    fraction = match.group('fraction')
    if fraction:
        text += '.' + fraction[:6].ljust(6, '0')
    offset = match.group('offset')
    text += '+00:00' if offset in ('Z', 'z') else offset
    return datetime.fromisoformat(text)


def _first(value: Any) -> str:
    if isinstance(value, (list, tuple)):
        value = value[0] if value else ''
    return value or ''


@dataclass(frozen=True)
class ProbeParameters:
    """Filters for one probe request. Empty string means not set."""
    target: str = ''
    tags: str = ''
    path: str = ''

    def __post_init__(self):
        if not (self.target or self.tags or self.path):
            raise MissingParameter()

    @classmethod
    def from_query(cls, query: Mapping[str, Any]) -> 'ProbeParameters':
        """Build parameters from parsed query arguments.

        Args:
            query: Mapping of parameter name to a value or a list of values,
                as produced by ``urllib.parse.parse_qs``.

        Raises:
            MissingParameter: If target, tags and path are all empty.
        """
        return cls(
            target=_first(query.get('target')),
            tags=_first(query.get('tags')),
            path=_first(query.get('path')),
        )

    @property
    def tag_list(self) -> List[str]:
        if not self.tags:
            return []
        return self.tags.split(',')


@dataclass
class SnapshotStats:
    """Output of ``restic stats latest``."""
    total_size: int
    total_file_count: int

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'SnapshotStats':
        if not isinstance(data, dict):
            raise ValueError(f"expected an object, got {type(data).__name__}")
        return cls(
            total_size=_int_field(data, 'total_size'),
            total_file_count=_int_field(data, 'total_file_count'),
        )


@dataclass
class Snapshot:
    """One entry of ``restic snapshots latest``."""
    time: datetime
    parent: str = ''
    tree: str = ''
    paths: List[str] = field(default_factory=list)
    tags: List[str] = field(default_factory=list)
    hostname: str = ''
    username: str = ''
    id: str = ''
    short_id: str = ''

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Snapshot':
        if not isinstance(data, dict):
            raise ValueError(f"expected an object, got {type(data).__name__}")
        if 'time' not in data or not isinstance(data['time'], str):
            raise ValueError("snapshot has no 'time' string")

        return cls(
            time=parse_timestamp(data['time']),
            parent=_str_field(data, 'parent'),
            tree=_str_field(data, 'tree'),
            paths=_list_field(data, 'paths'),
            tags=_list_field(data, 'tags'),
            hostname=_str_field(data, 'hostname'),
            username=_str_field(data, 'username'),
            id=_str_field(data, 'id'),
            short_id=_str_field(data, 'short_id'),
        )

    @property
    def unix_time(self) -> int:
        return int(self.time.timestamp())


@dataclass
class ProbeResult:
    """Everything one probe learned about the repository."""
    stats: SnapshotStats
    snapshots: List[Snapshot]
    locked: bool = False

    @property
    def latest(self) -> Optional[Snapshot]:
        """The snapshot used for labels, or None if nothing matched."""
        return self.snapshots[0] if self.snapshots else None


def _int_field(data: Dict[str, Any], key: str) -> int:
    value = data.get(key, 0)
    # bool is an int subclass but never a valid count
    if isinstance(value, bool) or not isinstance(value, int):
        raise ValueError(f"'{key}' must be an integer, got {value!r}")
    return value


def _str_field(data: Dict[str, Any], key: str) -> str:
    value = data.get(key)
    if value is None:
        return ''
    if not isinstance(value, str):
        raise ValueError(f"'{key}' must be a string, got {value!r}")
    return value


def _list_field(data: Dict[str, Any], key: str) -> List[str]:
    value = data.get(key)
    if value is None:
        return []
    if not isinstance(value, list) or not all(isinstance(item, str) for item in value):
        raise ValueError(f"'{key}' must be a list of strings, got {value!r}")
    return list(value)

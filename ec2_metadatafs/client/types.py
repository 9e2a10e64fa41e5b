# Copyright 2025 Accelerated Cloud Storage Corporation. All Rights Reserved.
import stat
from dataclasses import dataclass, field
from datetime import timezone
from email.utils import parsedate_to_datetime
from enum import Enum
from typing import Dict, Mapping, Optional

from requests.structures import CaseInsensitiveDict

DIRECTORY_SIZE = 4096
DIRECTORY_MODE = stat.S_IFDIR | 0o555
FILE_MODE = stat.S_IFREG | 0o444

class NodeKind(Enum):
    """Whether a remote path behaves as a directory or a file."""
    DIRECTORY = "directory"
    FILE = "file"

@dataclass
class Attribute:
    """Attributes of a read-only node."""
    kind: NodeKind
    size: int = DIRECTORY_SIZE
    modified_at: Optional[float] = None

    @property
    def is_dir(self) -> bool:
        return self.kind is NodeKind.DIRECTORY

    @property
    def mode(self) -> int:
        return DIRECTORY_MODE if self.is_dir else FILE_MODE

@dataclass
class DirEntry:
    """One child of a listed directory."""
    name: str
    kind: NodeKind

@dataclass(frozen=True)
class BearerToken:
    """Session token together with the clock reading after which it is stale."""
    value: str
    expires_at: float

    def is_valid(self, now: float) -> bool:
        return bool(self.value) and now < self.expires_at

@dataclass
class TagEntry:
    """An EC2 tag of the mounted instance."""
    key: str
    value: str

@dataclass
class MetadataResponse:
    """Status, headers and body of one metadata service call."""
    status_code: int
    headers: Mapping[str, str] = field(default_factory=CaseInsensitiveDict)
    body: bytes = b""

    @property
    def content_length(self) -> int:
        """Content-Length header, falling back to the body length."""
        try:
            return int(self.headers.get("Content-Length", ""))
        except ValueError:
            return len(self.body)

    def last_modified(self) -> float:
        """
        Parse the Last-Modified header as a POSIX timestamp.

        Returns:
            float: Seconds since the epoch

        Raises:
            ValueError: If the header is missing or not an RFC 1123 date
        """
        value = self.headers.get("Last-Modified")
        if not value:
            raise ValueError("no Last-Modified header")
        try:
            parsed = parsedate_to_datetime(value)
        except (TypeError, IndexError) as e:
            raise ValueError(f"invalid date {value!r}") from e
        if parsed.tzinfo is None:
            parsed = parsed.replace(tzinfo=timezone.utc)
        return parsed.timestamp()

def empty_statfs() -> Dict[str, int]:
    """Filesystem statistics for a filesystem that does not track usage."""
    return {
        'f_bsize': 0,
        'f_frsize': 0,
        'f_blocks': 0,
        'f_bfree': 0,
        'f_bavail': 0,
        'f_files': 0,
        'f_ffree': 0,
        'f_favail': 0,
        'f_flag': 0,
        'f_namemax': 0,
    }

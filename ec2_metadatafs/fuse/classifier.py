# Copyright 2025 Accelerated Cloud Storage Corporation. All Rights Reserved.
"""
Directory/file classification of metadata paths.

The metadata service does not say whether a path is a listing or a value,
so paths are classified against a fixed table of known directories. See
http://docs.aws.amazon.com/AWSEC2/latest/UserGuide/ec2-instance-metadata.html
for the shape of the tree. Paths missing from the table are files.
"""
from dataclasses import dataclass
from typing import Iterable, Tuple, Union

from ..client.types import NodeKind

HEX_MAC_CHARS = frozenset("0123456789abcdef:")

@dataclass(frozen=True)
class ExactSegment:
    """Matches one path literally."""
    path: str

    def matches(self, path: str) -> bool:
        return path == self.path

@dataclass(frozen=True)
class ParameterizedSegment:
    """Matches prefix/<segment> where the segment uses only char_class characters."""
    prefix: str
    char_class: frozenset

    def matches(self, path: str) -> bool:
        head, sep, segment = path.rpartition("/")
        if not sep or head != self.prefix or not segment:
            return False
        return all(c in self.char_class for c in segment)

DirectoryPattern = Union[ExactSegment, ParameterizedSegment]

DEFAULT_DIRECTORY_PATTERNS: Tuple[DirectoryPattern, ...] = (
    ExactSegment(""),
    ExactSegment("meta-data"),
    ExactSegment("meta-data/block-device-mapping"),
    ExactSegment("meta-data/iam"),
    ExactSegment("meta-data/iam/security-credentials"),
    ExactSegment("meta-data/network/interfaces"),
    ExactSegment("meta-data/network"),
    ExactSegment("meta-data/network/interfaces/macs"),
    ParameterizedSegment("meta-data/network/interfaces/macs", HEX_MAC_CHARS),
    ExactSegment("meta-data/placement"),
    ExactSegment("meta-data/public-keys"),
    ExactSegment("meta-data/public-keys/0"),
    ExactSegment("meta-data/services"),
    ExactSegment("meta-data/services/domain"),
    ExactSegment("meta-data/spot"),
    ExactSegment("meta-data/spot/termination-time"),
    ExactSegment("dynamic"),
    ExactSegment("dynamic/fws"),
    ExactSegment("dynamic/fws/instance-monitoring"),
    ExactSegment("dynamic/instance-identity"),
)

class PathClassifier:
    """Ordered, immutable table of directory patterns; first match wins."""

    def __init__(self, patterns: Iterable[DirectoryPattern] = DEFAULT_DIRECTORY_PATTERNS):
        self.patterns = tuple(patterns)

    def classify(self, path: str) -> NodeKind:
        path = path.strip("/")
        if path == "":
            return NodeKind.DIRECTORY
        for pattern in self.patterns:
            if pattern.matches(path):
                return NodeKind.DIRECTORY
        return NodeKind.FILE

    def is_dir(self, path: str) -> bool:
        return self.classify(path) is NodeKind.DIRECTORY

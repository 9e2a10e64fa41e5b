import pytest

from ec2_metadatafs.client.types import NodeKind
from ec2_metadatafs.fuse.classifier import (
    DEFAULT_DIRECTORY_PATTERNS,
    HEX_MAC_CHARS,
    ExactSegment,
    ParameterizedSegment,
    PathClassifier,
)

@pytest.fixture
def classifier():
    return PathClassifier()

@pytest.mark.parametrize("path", [
    "",
    "meta-data",
    "meta-data/iam/security-credentials",
    "meta-data/network/interfaces/macs",
    "meta-data/network/interfaces/macs/0e:49:61:0f:c3:11",
    "meta-data/public-keys/0",
    "dynamic/instance-identity",
])
def test_known_directories(classifier, path):
    assert classifier.classify(path) is NodeKind.DIRECTORY, f"{path!r} should be a directory"

@pytest.mark.parametrize("path", [
    "meta-data/instance-id",
    "meta-data/public-keys/0/openssh-key",
    "meta-data/network/interfaces/macs/0e:49:61:0f:c3:11/local-ipv4s",
    "meta-data/network/interfaces/macs/not-a-mac",
    "meta-data/new-field-added-later",
    "user-data",
])
def test_everything_else_is_a_file(classifier, path):
    assert classifier.classify(path) is NodeKind.FILE, f"{path!r} should be a file"

def test_root_is_a_directory_even_with_empty_table():
    assert PathClassifier(patterns=()).classify("") is NodeKind.DIRECTORY
    assert PathClassifier(patterns=()).classify("meta-data") is NodeKind.FILE

def test_surrounding_slashes_are_ignored(classifier):
    assert classifier.is_dir("/meta-data/")
    assert not classifier.is_dir("/meta-data/ami-id")

def test_custom_table_is_owned_by_instance():
    custom = PathClassifier(patterns=(ExactSegment("meta-data"), ExactSegment("meta-data/tags")))
    assert custom.is_dir("meta-data/tags")
    assert not PathClassifier().is_dir("meta-data/tags"), "default table must not see custom patterns"
    assert PathClassifier().patterns == DEFAULT_DIRECTORY_PATTERNS

def test_parameterized_segment_matches_single_segment_only():
    pattern = ParameterizedSegment("a/b", HEX_MAC_CHARS)
    assert pattern.matches("a/b/00:1f")
    assert not pattern.matches("a/b")
    assert not pattern.matches("a/b/")
    assert not pattern.matches("a/b/00:1f/c")
    assert not pattern.matches("a/b/00:1F"), "uppercase is outside the character class"
    assert not pattern.matches("x/a/b/00")

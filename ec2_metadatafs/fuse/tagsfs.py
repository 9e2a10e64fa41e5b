# Copyright 2025 Accelerated Cloud Storage Corporation. All Rights Reserved.
"""
Filesystem view of the EC2 tags of the running instance.

The tree is flat: a synthetic root directory holding one file per tag
key, whose content is the tag value.
"""

from typing import Dict, List

from ..client.exceptions import BackendIOError, NotDirectoryError, NotFoundError
from ..client.tags import TagClient
from ..client.types import Attribute, DirEntry, NodeKind, TagEntry, empty_statfs
from ..log import logger
from .utils import trace_op

class TagsFs:
    """
    Read-only filesystem over instance tags.

    Attributes:
        client (TagClient): Tag query client scoped to one instance
    """

    def __init__(self, client: TagClient):
        self.client = client

    def _lookup(self, name: str) -> TagEntry:
        logger.debug(f"issuing request to AWS API for tag: {name}")
        try:
            entry = self.client.find(name)
        except BackendIOError as e:
            logger.error(f"failed to query AWS API: {e}")
            raise
        if entry is None:
            logger.debug(f"no tag found for {name}")
            raise NotFoundError(f"No tag: {name}")
        return entry

    def attributes(self, name: str) -> Attribute:
        """
        Get the attributes of the root ("") or of one tag.

        Raises:
            NotFoundError: If the instance has no tag with that key
            BackendIOError: If the EC2 API call fails
        """
        trace_op("tags.attributes", name)
        name = name.strip("/")
        if name == "":
            return Attribute(kind=NodeKind.DIRECTORY)
        entry = self._lookup(name)
        return Attribute(kind=NodeKind.FILE, size=len(entry.value.encode("utf-8")))

    def listing(self, name: str = "") -> List[DirEntry]:
        """
        List the tag keys of the instance. Only the root can be listed.

        Raises:
            NotDirectoryError: If name is not the root
            BackendIOError: If the EC2 API call fails
        """
        trace_op("tags.listing", name)
        if name.strip("/") != "":
            raise NotDirectoryError(f"Not a directory: {name}")
        logger.debug("issuing request to AWS API for instance tags")
        entries = []
        seen = set()
        try:
            for tag in self.client.describe():
                if tag.key in seen:
                    continue
                seen.add(tag.key)
                logger.debug(f"adding dir entry for tag '{tag.key}'")
                entries.append(DirEntry(name=tag.key, kind=NodeKind.FILE))
        except BackendIOError as e:
            logger.error(f"failed to query AWS API: {e}")
            raise
        return entries

    def read_file(self, name: str) -> bytes:
        """
        Read a tag value.

        Raises:
            NotFoundError: If the instance has no tag with that key
            BackendIOError: If the EC2 API call fails
        """
        trace_op("tags.read_file", name)
        return self._lookup(name.strip("/")).value.encode("utf-8")

    def statfs(self) -> Dict[str, int]:
        return empty_statfs()

# Copyright 2025 Accelerated Cloud Storage Corporation. All Rights Reserved.
"""
Filesystem view of the EC2 Instance Metadata Service.

This module translates metadata service responses into filesystem
semantics: attributes, directory listings and file contents. Status codes
are mapped to filesystem errors here; the metadata clients only report
what the service returned.
"""

import posixpath
import time
from typing import Dict, List, Optional

from ..client.exceptions import BackendIOError, NotDirectoryError, NotFoundError
from ..client.metadata import MetadataClient
from ..client.types import Attribute, DirEntry, MetadataResponse, NodeKind, empty_statfs
from .classifier import PathClassifier
from ..log import logger
from .utils import time_function, trace_op

PUBLIC_KEYS_PATH = "meta-data/public-keys"
USER_DATA_NAME = "user-data"

class MetadataFs:
    """
    Read-only filesystem over the metadata tree.

    Holds no mutable state of its own, so it is safe for concurrent use as
    long as the underlying client is.

    Attributes:
        client (MetadataClient): Source of metadata responses
        classifier (PathClassifier): Decides which paths are directories
    """

    def __init__(self, client: MetadataClient, classifier: Optional[PathClassifier] = None):
        self.client = client
        self.classifier = classifier or PathClassifier()

    def _call(self, method: str, path: str) -> MetadataResponse:
        try:
            return getattr(self.client, method)(path)
        except BackendIOError as e:
            logger.error(f"failed to query AWS metadata API: {e}")
            raise

    def _check_status(self, resp: MetadataResponse, path: str) -> None:
        if resp.status_code == 404:
            logger.debug(f"returning ENOENT for {path}")
            raise NotFoundError(f"Not found: {path}")
        if resp.status_code != 200:
            logger.error(f"unknown HTTP status code from AWS metadata API: {resp.status_code}")
            raise BackendIOError(f"unexpected HTTP status {resp.status_code} for {path}")

    def _modified_at(self, resp: MetadataResponse) -> float:
        try:
            return resp.last_modified()
        except ValueError as e:
            logger.warning(
                f"couldn't parse Last-Modified '{resp.headers.get('Last-Modified')}' as time: {e}")
            return 0.0

    def attributes(self, path: str) -> Attribute:
        """
        Get the attributes of a metadata path.

        Args:
            path (str): Path relative to the metadata endpoint, "" for root

        Returns:
            Attribute: Directory attributes for classified directories,
                otherwise file attributes sized from Content-Length

        Raises:
            NotFoundError: If the service returned 404
            BackendIOError: On any other status or a failed request
        """
        trace_op("attributes", path)
        start_time = time.time()
        resp = self._call("head", path)
        self._check_status(resp, path)

        modified_at = self._modified_at(resp)
        if self.classifier.is_dir(path):
            logger.debug(f"determined '{path}' is a directory")
            attr = Attribute(kind=NodeKind.DIRECTORY, modified_at=modified_at)
        else:
            logger.debug(f"determined '{path}' is a file")
            attr = Attribute(kind=NodeKind.FILE, size=resp.content_length, modified_at=modified_at)
        time_function("attributes", start_time)
        return attr

    def listing(self, path: str) -> List[DirEntry]:
        """
        List the children of a metadata directory.

        The service answers a directory GET with one child name per line,
        subdirectories carrying a trailing slash. Two paths need special
        handling: the public keys listing, which uses index=name lines, and
        user-data, which is listed even when the instance has none.

        Args:
            path (str): Directory path relative to the metadata endpoint

        Returns:
            List[DirEntry]: Children in the order the service listed them

        Raises:
            NotFoundError: If the service returned 404
            NotDirectoryError: If the path is not a classified directory
            BackendIOError: On any other status or a failed request
        """
        trace_op("listing", path)
        start_time = time.time()
        resp = self._call("get", path)
        self._check_status(resp, path)

        if not self.classifier.is_dir(path):
            logger.debug(f"returning ENOTDIR for {path}")
            raise NotDirectoryError(f"Not a directory: {path}")

        names = self._parse_names(resp.body.decode("utf-8", errors="replace"))
        if path.strip("/") == PUBLIC_KEYS_PATH:
            names = self._public_key_indices(names)

        entries = []
        for name in names:
            child = posixpath.join(path, name)
            if name == USER_DATA_NAME and self._is_missing(child):
                logger.debug(f"skipping absent '{name}' in listing of '{path}'")
                continue
            kind = self.classifier.classify(child)
            logger.debug(f"adding dir entry for '{name}' as {kind.value}")
            entries.append(DirEntry(name=name, kind=kind))

        time_function("listing", start_time)
        return entries

    @staticmethod
    def _parse_names(body: str) -> List[str]:
        names = []
        for line in body.split("\n"):
            name = line.strip()
            if name.endswith("/"):
                name = name[:-1]
            if name:
                names.append(name)
        return names

    @staticmethod
    def _public_key_indices(names: List[str]) -> List[str]:
        # the service answers with "0=key-name" rather than a list of indices
        if len(names) == 1 and "=" in names[0]:
            return ["0"]
        return [name.split("=", 1)[0] for name in names]

    def _is_missing(self, path: str) -> bool:
        try:
            self.attributes(path)
        except NotFoundError:
            return True
        except BackendIOError:
            # only a confirmed absence hides the entry
            return False
        return False

    def read_file(self, path: str) -> bytes:
        """
        Read the value stored at a metadata path.

        Args:
            path (str): File path relative to the metadata endpoint

        Returns:
            bytes: Response body, unmodified

        Raises:
            NotFoundError: If the service returned 404
            BackendIOError: On any other status or a failed request
        """
        trace_op("read_file", path)
        start_time = time.time()
        resp = self._call("get", path)
        self._check_status(resp, path)
        time_function("read_file", start_time)
        return resp.body

    def statfs(self) -> Dict[str, int]:
        """Filesystem statistics; usage is not tracked, so every field is zero."""
        return empty_statfs()

# Copyright 2025 Accelerated Cloud Storage Corporation. All Rights Reserved.
from errno import EINVAL, EIO, ENOENT, ENOTDIR


class MetadataFsError(Exception):
    """Base exception for metadata filesystem errors."""
    errno = EIO

    def __init__(self, message: str, code: str = "ERR_UNKNOWN"):
        self.code = code
        self.message = message
        super().__init__(f"{code}: {message}")

class NotFoundError(MetadataFsError):
    """The backend confirmed the path does not exist."""
    errno = ENOENT

    def __init__(self, message: str):
        super().__init__(message, code="ERR_NOT_FOUND")

class NotDirectoryError(MetadataFsError):
    """A listing was requested on a path classified as a file."""
    errno = ENOTDIR

    def __init__(self, message: str):
        super().__init__(message, code="ERR_NOT_DIR")

class BackendIOError(MetadataFsError):
    """Unexpected backend status or failed backend call."""
    errno = EIO

    def __init__(self, message: str, code: str = "ERR_IO"):
        super().__init__(message, code=code)

class TransportError(BackendIOError):
    """The request never produced a response."""
    def __init__(self, message: str):
        super().__init__(message, code="ERR_TRANSPORT")

class TokenRefreshError(BackendIOError):
    """A session token could not be obtained."""
    def __init__(self, message: str):
        super().__init__(message, code="ERR_TOKEN")

class ConfigurationError(MetadataFsError):
    """Configuration or argument error."""
    errno = EINVAL

    def __init__(self, message: str):
        super().__init__(message, code="ERR_CONFIG")

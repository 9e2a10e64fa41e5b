# Copyright 2025 Accelerated Cloud Storage Corporation. All Rights Reserved.
from .exceptions import (
    BackendIOError,
    ConfigurationError,
    MetadataFsError,
    NotDirectoryError,
    NotFoundError,
    TokenRefreshError,
    TransportError,
)
from .metadata import IMDSv1Client, IMDSv2Client, MetadataClient, new_metadata_client
from .tags import TagClient
from .token import TokenManager

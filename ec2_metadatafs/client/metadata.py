# Copyright 2025 Accelerated Cloud Storage Corporation. All Rights Reserved.
"""
Instance Metadata Service clients.

This module provides the two ways of talking to the EC2 Instance Metadata
Service (IMDS): the unauthenticated v1 API and the session-token v2 API.
Both expose the same two calls, head and get, and return the raw status,
headers and body. Interpreting the status code is left to the caller.

Usage:
    client = new_metadata_client("http://169.254.169.254/latest/", imds_version=2)
    response = client.get("meta-data/instance-id")
    print(response.status_code, response.body)
"""
import time
from typing import Callable, Optional, Protocol

import requests
from requests.structures import CaseInsensitiveDict

from .exceptions import ConfigurationError, TokenRefreshError, TransportError
from .token import DEFAULT_TOKEN_TTL, TokenManager
from .types import MetadataResponse
from ..log import logger

DEFAULT_ENDPOINT = "http://169.254.169.254/latest/"
TOKEN_PATH = "api/token"
TOKEN_HEADER = "X-aws-ec2-metadata-token"
TOKEN_TTL_HEADER = "X-aws-ec2-metadata-token-ttl-seconds"

class MetadataClient(Protocol):
    """Read access to the metadata tree."""

    def head(self, path: str) -> MetadataResponse:
        ...

    def get(self, path: str) -> MetadataResponse:
        ...

def join_url(base: str, path: str) -> str:
    """
    Join an endpoint and a metadata path with exactly one slash.

    Args:
        base (str): Endpoint URL, with or without a trailing slash
        path (str): Path relative to the endpoint

    Returns:
        str: The full URL
    """
    return f"{base.rstrip('/')}/{path.lstrip('/')}"

def _to_response(resp: requests.Response) -> MetadataResponse:
    return MetadataResponse(
        status_code=resp.status_code,
        headers=CaseInsensitiveDict(resp.headers),
        body=resp.content,
    )

class HTTPTransport:
    """
    Request plumbing shared by both IMDS clients.

    Attributes:
        endpoint (str): Base URL of the metadata service
        session (requests.Session): HTTP session used for all calls
        timeout (float, optional): Per-request timeout in seconds
    """

    def __init__(self, endpoint: str, session: Optional[requests.Session] = None,
                 timeout: Optional[float] = None):
        self.endpoint = endpoint
        self.session = session or requests.Session()
        self.timeout = timeout

    def request(self, method: str, path: str, headers=None) -> MetadataResponse:
        """
        Issue one request and capture its status, headers and body.

        Raises:
            TransportError: If no response was received
        """
        url = join_url(self.endpoint, path)
        logger.debug(f"issuing HTTP {method} to AWS metadata API for path: {url}")
        try:
            resp = self.session.request(method, url, headers=headers, timeout=self.timeout)
        except requests.RequestException as e:
            raise TransportError(f"{method} {url} failed: {e}") from e
        logger.debug(f"got {resp.status_code} from AWS metadata API for path: {url}")
        return _to_response(resp)

    def close(self):
        self.session.close()

class IMDSv1Client:
    """Client for the unauthenticated v1 metadata API."""

    def __init__(self, endpoint: str, session: Optional[requests.Session] = None,
                 timeout: Optional[float] = None):
        self.transport = HTTPTransport(endpoint, session=session, timeout=timeout)

    def head(self, path: str) -> MetadataResponse:
        """Issue a HEAD request for the given path."""
        return self.transport.request("HEAD", path)

    def get(self, path: str) -> MetadataResponse:
        """Issue a GET request for the given path."""
        return self.transport.request("GET", path)

    def close(self):
        self.transport.close()

class IMDSv2Client:
    """
    Client for the session-token v2 metadata API.

    Every request carries a bearer token obtained from an embedded
    TokenManager. When no token can be obtained, no request is sent.

    Attributes:
        transport (HTTPTransport): Request plumbing
        tokens (TokenManager): Cache of the session token
    """

    def __init__(
        self,
        endpoint: str,
        token_ttl: int = DEFAULT_TOKEN_TTL,
        prefetch_window: Optional[float] = None,
        session: Optional[requests.Session] = None,
        timeout: Optional[float] = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.transport = HTTPTransport(endpoint, session=session, timeout=timeout)
        self.tokens = TokenManager(
            self._request_token, ttl=token_ttl, prefetch_window=prefetch_window, clock=clock)

    def _request_token(self, ttl: int) -> str:
        url = join_url(self.transport.endpoint, TOKEN_PATH)
        logger.debug(f"issuing HTTP PUT to AWS metadata API for path: {url}")
        try:
            resp = self.transport.session.put(
                url, headers={TOKEN_TTL_HEADER: str(ttl)}, timeout=self.transport.timeout)
        except requests.RequestException as e:
            raise TokenRefreshError(f"error refreshing metadata token: {e}") from e
        if resp.status_code != 200:
            raise TokenRefreshError(
                f"unexpected HTTP status {resp.status_code} refreshing metadata token")
        return resp.text.strip()

    def _authenticated(self, method: str, path: str) -> MetadataResponse:
        token = self.tokens.get_token()
        return self.transport.request(method, path, headers={TOKEN_HEADER: token})

    def head(self, path: str) -> MetadataResponse:
        """Issue a HEAD request for the given path, refreshing the token if needed."""
        return self._authenticated("HEAD", path)

    def get(self, path: str) -> MetadataResponse:
        """Issue a GET request for the given path, refreshing the token if needed."""
        return self._authenticated("GET", path)

    def close(self):
        self.transport.close()

def new_metadata_client(
    endpoint: str = DEFAULT_ENDPOINT,
    imds_version: int = 2,
    token_ttl: int = DEFAULT_TOKEN_TTL,
    timeout: Optional[float] = None,
) -> MetadataClient:
    """
    Build the metadata client for the requested IMDS version.

    Args:
        endpoint (str): Base URL of the metadata service
        imds_version (int): 1 for unauthenticated access, 2 for session tokens
        token_ttl (int): Token lifetime in seconds (v2 only)
        timeout (float, optional): Per-request timeout in seconds

    Returns:
        MetadataClient: The client

    Raises:
        ConfigurationError: If the version is unknown
    """
    if imds_version == 1:
        return IMDSv1Client(endpoint, timeout=timeout)
    if imds_version == 2:
        return IMDSv2Client(endpoint, token_ttl=token_ttl, timeout=timeout)
    raise ConfigurationError(f"unsupported IMDS version: {imds_version}")

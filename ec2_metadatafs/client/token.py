# Copyright 2025 Accelerated Cloud Storage Corporation. All Rights Reserved.
"""
Session token management for IMDSv2.

This module provides the TokenManager, which caches a single bearer token
for the Instance Metadata Service and refreshes it lazily. Any number of
threads may ask for a token concurrently; at most one refresh request is
in flight at a time, and a refresh only happens when the cached token is
actually stale.

Classes:
    ReadWriteLock: Shared/exclusive lock used by the token cache.
    TokenManager: Lazily refreshed cache of one bearer token.
"""
import threading
import time
from contextlib import contextmanager
from typing import Callable, Optional

from .exceptions import ConfigurationError, TokenRefreshError
from .types import BearerToken
from ..log import logger

# IMDS accepts token lifetimes between one second and six hours
MIN_TOKEN_TTL = 1
MAX_TOKEN_TTL = 21600
DEFAULT_TOKEN_TTL = MAX_TOKEN_TTL
DEFAULT_PREFETCH_WINDOW = 10.0

class ReadWriteLock:
    """
    Lock allowing many concurrent readers or a single writer.

    Readers proceed as long as no writer holds the lock. A writer waits
    until all current readers have left.
    """

    def __init__(self):
        self._cond = threading.Condition(threading.Lock())
        self._readers = 0
        self._writer = False

    @contextmanager
    def read(self):
        with self._cond:
            while self._writer:
                self._cond.wait()
            self._readers += 1
        try:
            yield
        finally:
            with self._cond:
                self._readers -= 1
                if self._readers == 0:
                    self._cond.notify_all()

    @contextmanager
    def write(self):
        with self._cond:
            while self._writer or self._readers:
                self._cond.wait()
            self._writer = True
        try:
            yield
        finally:
            with self._cond:
                self._writer = False
                self._cond.notify_all()

class TokenManager:
    """
    Cache of a single IMDSv2 bearer token with de-duplicated refresh.

    The token is considered stale once the clock passes its issue time plus
    the granted TTL minus the prefetch window. The issue time is sampled
    before the refresh request is sent, so network latency only ever makes
    the cached expiry earlier than the real one.

    Attributes:
        ttl (int): Token lifetime requested on every refresh, in seconds
        prefetch_window (float): Seconds subtracted from the TTL
    """

    def __init__(
        self,
        fetch: Callable[[int], str],
        ttl: int = DEFAULT_TOKEN_TTL,
        prefetch_window: Optional[float] = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        """
        Initialize an empty token cache.

        Args:
            fetch (Callable[[int], str]): Issues the refresh request for the
                given TTL and returns the new token value. Any exception it
                raises is reported as a TokenRefreshError.
            ttl (int): Requested token lifetime in seconds. Defaults to 21600.
            prefetch_window (float, optional): Safety margin in seconds.
                Defaults to 10, or half the TTL for TTLs of 20 seconds or less.
            clock (Callable[[], float]): Monotonic clock. Defaults to time.monotonic.

        Raises:
            ConfigurationError: If the TTL or prefetch window is out of range
        """
        if not MIN_TOKEN_TTL <= ttl <= MAX_TOKEN_TTL:
            raise ConfigurationError(
                f"token TTL must be between {MIN_TOKEN_TTL} and {MAX_TOKEN_TTL} seconds, got {ttl}")
        if prefetch_window is None:
            # short-lived tokens are still usable, they are just refreshed sooner
            prefetch_window = min(DEFAULT_PREFETCH_WINDOW, ttl / 2)
        if prefetch_window < 0 or prefetch_window >= ttl:
            raise ConfigurationError(
                f"prefetch window must be non-negative and smaller than the TTL, got {prefetch_window}")
        self.ttl = int(ttl)
        self.prefetch_window = prefetch_window
        self._fetch = fetch
        self._clock = clock
        self._lock = ReadWriteLock()
        self._token: Optional[BearerToken] = None

    @property
    def token(self) -> Optional[BearerToken]:
        """The cached token, valid or not."""
        return self._token

    def get_token(self) -> str:
        """
        Return a non-expired token, refreshing it if needed.

        Returns:
            str: The token value

        Raises:
            TokenRefreshError: If a refresh was needed and failed
        """
        with self._lock.read():
            token = self._token
            if token is not None and token.is_valid(self._clock()):
                return token.value

        with self._lock.write():
            # another caller may have refreshed while we waited
            token = self._token
            if token is not None and token.is_valid(self._clock()):
                logger.debug("Token refreshed by a concurrent caller, reusing it")
                return token.value
            self._token = self._refresh()
            return self._token.value

    def _refresh(self) -> BearerToken:
        issued_at = self._clock()
        logger.debug(f"Refreshing metadata token with TTL {self.ttl}s")
        try:
            value = self._fetch(self.ttl)
        except TokenRefreshError:
            raise
        except Exception as e:
            raise TokenRefreshError(f"could not refresh metadata token: {e}") from e
        if not value:
            raise TokenRefreshError("metadata service returned an empty token")
        expires_at = issued_at + self.ttl - self.prefetch_window
        logger.debug(f"Metadata token refreshed, valid for {expires_at - issued_at:.0f}s")
        return BearerToken(value=value, expires_at=expires_at)

import pytest
import threading
import time
from concurrent.futures import ThreadPoolExecutor

from ec2_metadatafs.client.exceptions import ConfigurationError, TokenRefreshError
from ec2_metadatafs.client.token import ReadWriteLock, TokenManager

class FakeClock:
    def __init__(self, now=0.0):
        self.now = now

    def __call__(self):
        return self.now

class CountingFetch:
    """Refresh function that counts calls and hands out numbered tokens."""

    def __init__(self, delay=0.0):
        self.delay = delay
        self.calls = 0
        self.ttls = []
        self.lock = threading.Lock()
        self.error = None

    def __call__(self, ttl):
        with self.lock:
            self.calls += 1
            self.ttls.append(ttl)
            number = self.calls
        if self.delay:
            time.sleep(self.delay)
        if self.error is not None:
            raise self.error
        return f"token-{number}"

def test_first_call_fetches_with_configured_ttl():
    fetch = CountingFetch()
    manager = TokenManager(fetch, ttl=300, prefetch_window=10, clock=FakeClock())
    assert manager.get_token() == "token-1"
    assert fetch.ttls == [300]

def test_valid_token_is_reused_without_fetching():
    fetch = CountingFetch()
    manager = TokenManager(fetch, ttl=300, prefetch_window=10, clock=FakeClock())
    manager.get_token()
    assert manager.get_token() == "token-1"
    assert fetch.calls == 1

def test_expiry_subtracts_prefetch_window():
    clock = FakeClock(1000.0)
    fetch = CountingFetch()
    manager = TokenManager(fetch, ttl=100, prefetch_window=10, clock=clock)
    manager.get_token()
    assert manager.token.expires_at == 1090.0

    # one margin-width before the computed expiry
    clock.now = 1080.0
    assert manager.get_token() == "token-1"
    assert fetch.calls == 1

    # one margin-width after it
    clock.now = 1100.0
    assert manager.get_token() == "token-2"
    assert fetch.calls == 2

def test_token_is_stale_exactly_at_expiry():
    clock = FakeClock()
    fetch = CountingFetch()
    manager = TokenManager(fetch, ttl=100, prefetch_window=10, clock=clock)
    manager.get_token()
    clock.now = 90.0
    assert manager.get_token() == "token-2"

def test_concurrent_callers_with_valid_token_never_fetch():
    fetch = CountingFetch()
    manager = TokenManager(fetch, ttl=300, prefetch_window=10, clock=FakeClock())
    manager.get_token()

    with ThreadPoolExecutor(max_workers=16) as executor:
        results = list(executor.map(lambda _: manager.get_token(), range(64)))

    assert set(results) == {"token-1"}
    assert fetch.calls == 1, "no refresh expected while the token is valid"

@pytest.mark.parametrize("prime", [False, True], ids=["absent", "stale"])
def test_concurrent_callers_with_stale_token_fetch_once(prime):
    clock = FakeClock()
    fetch = CountingFetch(delay=0.05)
    manager = TokenManager(fetch, ttl=300, prefetch_window=10, clock=clock)
    if prime:
        manager.get_token()
        clock.now = 1000.0
    calls_before = fetch.calls

    num_concurrent = 16
    barrier = threading.Barrier(num_concurrent)

    def get_token(_):
        barrier.wait()
        return manager.get_token()

    with ThreadPoolExecutor(max_workers=num_concurrent) as executor:
        results = list(executor.map(get_token, range(num_concurrent)))

    assert fetch.calls - calls_before == 1, f"expected one refresh, got {fetch.calls - calls_before}"
    assert len(set(results)) == 1, f"callers saw different tokens: {set(results)}"
    assert results[0] == f"token-{fetch.calls}"

def test_refresh_failure_keeps_previous_token():
    clock = FakeClock()
    fetch = CountingFetch()
    manager = TokenManager(fetch, ttl=100, prefetch_window=10, clock=clock)
    manager.get_token()
    previous = manager.token

    clock.now = 500.0
    fetch.error = ConnectionError("metadata service unreachable")
    with pytest.raises(TokenRefreshError):
        manager.get_token()
    assert manager.token is previous, "failed refresh must not touch the cached token"

    # the stale token is never handed out; the next call retries
    fetch.error = None
    assert manager.get_token() == "token-3"

def test_empty_token_is_a_refresh_failure():
    manager = TokenManager(lambda ttl: "", ttl=100, prefetch_window=10, clock=FakeClock())
    with pytest.raises(TokenRefreshError):
        manager.get_token()
    assert manager.token is None

@pytest.mark.parametrize("ttl, window", [(0, 0), (21601, 10), (10, 10), (100, -1)])
def test_invalid_configuration(ttl, window):
    with pytest.raises(ConfigurationError):
        TokenManager(CountingFetch(), ttl=ttl, prefetch_window=window)

def test_write_lock_excludes_readers():
    lock = ReadWriteLock()
    events = []
    reader_done = threading.Event()

    def reader():
        with lock.read():
            events.append("read")
        reader_done.set()

    with lock.write():
        thread = threading.Thread(target=reader)
        thread.start()
        assert not reader_done.wait(0.1), "reader entered while writer held the lock"
        events.append("write")
    thread.join(1)
    assert events == ["write", "read"]

def test_readers_share_the_lock():
    lock = ReadWriteLock()
    inside = threading.Barrier(2, timeout=1)

    def reader():
        with lock.read():
            inside.wait()

    threads = [threading.Thread(target=reader) for _ in range(2)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join(2)
    assert not inside.broken, "two readers should hold the lock at the same time"

@pytest.mark.parametrize("ttl, window", [(1, 0.5), (5, 2.5), (20, 10.0), (21600, 10.0)])
def test_default_window_fits_short_ttls(ttl, window):
    clock = FakeClock(100.0)
    manager = TokenManager(CountingFetch(), ttl=ttl, clock=clock)
    assert manager.prefetch_window == window
    manager.get_token()
    assert manager.token.expires_at == 100.0 + ttl - window

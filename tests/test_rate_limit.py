import threading

import pytest

from app.core.rate_limit import FixedWindowRateLimiter


@pytest.fixture
def limiter(clock):
    return FixedWindowRateLimiter(max_requests=30, window_seconds=60, timer=clock)


def test_first_30_allowed_31st_denied(limiter):
    assert all(limiter.check("1.2.3.4") for _ in range(30))
    assert limiter.check("1.2.3.4") is False


def test_denied_requests_do_not_increment(limiter):
    for _ in range(35):
        limiter.check("k")
    assert limiter.window("k").count == 30


def test_window_resets_after_expiry(limiter, clock):
    for _ in range(31):
        limiter.check("k")
    first_reset = limiter.window("k").reset_at

    clock.advance(60)  # now == reset_at counts as expired
    assert limiter.check("k") is True
    window = limiter.window("k")
    assert window.count == 1
    assert window.reset_at == pytest.approx(first_reset + 60)


def test_still_denied_just_before_reset(limiter, clock):
    for _ in range(30):
        limiter.check("k")
    clock.advance(59.9)
    assert limiter.check("k") is False


def test_keys_are_independent(limiter):
    for _ in range(30):
        limiter.check("a")
    assert limiter.check("a") is False
    assert limiter.check("b") is True


def test_reset_clears_windows(limiter):
    for _ in range(31):
        limiter.check("k")
    limiter.reset()
    assert len(limiter) == 0
    assert limiter.check("k") is True


def test_window_snapshot_is_a_copy(limiter):
    limiter.check("k")
    snap = limiter.window("k")
    snap.count = 99
    assert limiter.window("k").count == 1
    assert limiter.window("missing") is None


def test_concurrent_checks_admit_exactly_max(clock):
    limiter = FixedWindowRateLimiter(max_requests=30, window_seconds=60, timer=clock)
    allowed = []
    lock = threading.Lock()
    start = threading.Barrier(20)

    def worker():
        start.wait()
        for _ in range(10):
            ok = limiter.check("shared")
            with lock:
                allowed.append(ok)

    threads = [threading.Thread(target=worker) for _ in range(20)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    assert allowed.count(True) == 30
    assert len(allowed) == 200


@pytest.mark.parametrize("kwargs", [{"max_requests": 0}, {"window_seconds": 0}])
def test_rejects_nonsense_config(kwargs):
    with pytest.raises(ValueError):
        FixedWindowRateLimiter(**kwargs)

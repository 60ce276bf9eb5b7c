from app.core.rate_limiter import InMemoryRateLimiter


class _Clock:
    def __init__(self, now=1000.0):
        self.now = now

    def __call__(self):
        return self.now


def test_blocks_after_limit_and_reports_wait():
    clock = _Clock()
    limiter = InMemoryRateLimiter(clock=clock)

    assert limiter.allow("ip:/login", limit=2, window_seconds=60) == (True, 0)
    clock.now += 10
    assert limiter.allow("ip:/login", limit=2, window_seconds=60) == (True, 0)
    clock.now += 5
    assert limiter.allow("ip:/login", limit=2, window_seconds=60) == (False, 45)


def test_window_slides_as_old_requests_expire():
    clock = _Clock()
    limiter = InMemoryRateLimiter(clock=clock)

    limiter.allow("k", limit=2, window_seconds=60)
    clock.now += 30
    limiter.allow("k", limit=2, window_seconds=60)

    clock.now += 31  # first request is now out of the window, second is not
    assert limiter.allow("k", limit=2, window_seconds=60)[0] is True
    assert limiter.allow("k", limit=2, window_seconds=60)[0] is False


def test_rejected_requests_do_not_extend_the_block():
    clock = _Clock()
    limiter = InMemoryRateLimiter(clock=clock)

    limiter.allow("k", limit=1, window_seconds=60)
    for _ in range(5):
        clock.now += 10
        assert limiter.allow("k", limit=1, window_seconds=60)[0] is False
    clock.now += 10
    assert limiter.allow("k", limit=1, window_seconds=60) == (True, 0)


def test_keys_are_independent_and_reset_clears():
    limiter = InMemoryRateLimiter()
    assert limiter.allow("a", limit=1, window_seconds=60)[0] is True
    assert limiter.allow("a", limit=1, window_seconds=60)[0] is False
    assert limiter.allow("b", limit=1, window_seconds=60)[0] is True
    limiter.reset()
    assert limiter.allow("a", limit=1, window_seconds=60)[0] is True

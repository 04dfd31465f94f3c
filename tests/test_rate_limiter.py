from trip_pipeline.tools.rate_limiter import RateLimiter


class FakeClock:
    def __init__(self, start: float = 1000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


def test_rate_limiter_blocks_after_max_requests():
    clock = FakeClock()
    limiter = RateLimiter(3, 60, clock=clock)

    assert [limiter.is_allowed("user-1") for _ in range(4)] == [True, True, True, False]
    assert limiter.remaining("user-1") == 0


def test_rate_limiter_tracks_subjects_independently():
    clock = FakeClock()
    limiter = RateLimiter(1, 60, clock=clock)

    assert limiter.is_allowed("user-1") is True
    assert limiter.is_allowed("user-2") is True
    assert limiter.is_allowed("user-1") is False


def test_rate_limiter_readmits_once_window_slides():
    clock = FakeClock()
    limiter = RateLimiter(2, 60, clock=clock)

    assert limiter.is_allowed("user-1")
    clock.advance(30)
    assert limiter.is_allowed("user-1")
    assert not limiter.is_allowed("user-1")

    clock.advance(30)  # first admission is now exactly one window old
    assert limiter.is_allowed("user-1")
    assert not limiter.is_allowed("user-1")

    clock.advance(61)
    assert limiter.remaining("user-1") == 2


def test_rejected_checks_do_not_consume_budget():
    clock = FakeClock()
    limiter = RateLimiter(1, 10, clock=clock)

    assert limiter.is_allowed("user-1")
    for _ in range(5):
        assert not limiter.is_allowed("user-1")
    clock.advance(10)
    assert limiter.is_allowed("user-1")

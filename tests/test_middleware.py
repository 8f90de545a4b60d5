from middleware import FixedWindowLimiter


class FakeClock:
    def __init__(self):
        self.now = 0.0

    def __call__(self):
        return self.now


def test_fixed_window_counts_per_key():
    limiter = FixedWindowLimiter(limit=2, period=60, clock=FakeClock())

    assert limiter.hit("a")[0] is True
    assert limiter.hit("a")[0] is True
    assert limiter.hit("a")[0] is False
    assert limiter.hit("b")[0] is True


def test_window_resets_after_period():
    clock = FakeClock()
    limiter = FixedWindowLimiter(limit=1, period=60, clock=clock)
    limiter.hit("a")

    clock.now = 30
    allowed, remaining, reset_in = limiter.hit("a")
    assert (allowed, remaining, reset_in) == (False, 0, 30)

    clock.now = 61
    assert limiter.hit("a") == (True, 0, 60)


def test_expired_windows_are_dropped():
    clock = FakeClock()
    limiter = FixedWindowLimiter(limit=5, period=60, clock=clock)
    for key in ("a", "b", "c"):
        limiter.hit(key)
    assert len(limiter) == 3

    clock.now = 90
    limiter.hit("d")

    assert len(limiter) == 1

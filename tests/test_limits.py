import unittest

from linkpreview.limits import SlidingWindowLimiter


class FakeClock:
    def __init__(self, now: float = 0.0) -> None:
        self.now = now

    def __call__(self) -> float:
        return self.now


class SlidingWindowLimiterTests(unittest.TestCase):
    def setUp(self) -> None:
        self.clock = FakeClock()
        self.limiter = SlidingWindowLimiter(max_requests=10, window_sec=60, clock=self.clock)

    def test_eleventh_call_in_window_is_denied(self) -> None:
        for i in range(10):
            self.clock.now = float(i)
            self.assertTrue(self.limiter.admit("chan"))

        self.clock.now = 30.0
        self.assertFalse(self.limiter.admit("chan"))

    def test_admits_again_once_earliest_leaves_window(self) -> None:
        for i in range(10):
            self.clock.now = float(i)
            self.limiter.admit("chan")

        self.clock.now = 59.9
        self.assertFalse(self.limiter.admit("chan"))

        self.clock.now = 60.5
        self.assertTrue(self.limiter.admit("chan"))
        # Second slot (t=1) is still inside the window
        self.assertFalse(self.limiter.admit("chan"))

    def test_denied_calls_are_not_recorded(self) -> None:
        for _ in range(10):
            self.limiter.admit("chan")
        for _ in range(5):
            self.assertFalse(self.limiter.admit("chan"))

        self.clock.now = 60.0
        for _ in range(10):
            self.assertTrue(self.limiter.admit("chan"))

    def test_channels_are_independent(self) -> None:
        for _ in range(10):
            self.limiter.admit("a")

        self.assertFalse(self.limiter.admit("a"))
        self.assertTrue(self.limiter.admit("b"))

    def test_is_rate_limited_and_reset(self) -> None:
        limiter = SlidingWindowLimiter(max_requests=1, window_sec=60, clock=self.clock)

        self.assertFalse(limiter.is_rate_limited("chan"))
        self.assertTrue(limiter.is_rate_limited("chan"))

        limiter.reset("chan")
        self.assertFalse(limiter.is_rate_limited("chan"))

        limiter.reset()
        self.assertEqual(0, limiter.get_stats()["tracked_channels"])

    def test_idle_channels_are_forgotten(self) -> None:
        for i in range(100):
            self.limiter.admit(f"chan-{i}")
        self.assertEqual(100, self.limiter.get_stats()["tracked_channels"])

        self.clock.now = 60.0
        self.assertTrue(self.limiter.admit("busy"))

        self.assertEqual(1, self.limiter.get_stats()["tracked_channels"])

    def test_is_rate_limited_records_an_admission(self) -> None:
        self.assertFalse(self.limiter.is_rate_limited("chan"))
        self.assertEqual(1, self.limiter.get_stats()["total_admitted"])

    def test_stats(self) -> None:
        for _ in range(11):
            self.limiter.admit("chan")

        stats = self.limiter.get_stats()

        self.assertEqual(10, stats["total_admitted"])
        self.assertEqual(1, stats["total_denied"])
        self.assertEqual(10, stats["config"]["max_requests"])

    def test_invalid_settings(self) -> None:
        with self.assertRaises(ValueError):
            SlidingWindowLimiter(max_requests=0)
        with self.assertRaises(ValueError):
            SlidingWindowLimiter(window_sec=0)


if __name__ == "__main__":
    unittest.main()

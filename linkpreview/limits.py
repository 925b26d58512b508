"""
Per-channel rate limiting
"""

import time
from collections import deque
from typing import Any, Callable, Deque, Dict, Optional


class SlidingWindowLimiter:
    """
    Sliding-window admission control keyed by channel id.

    Denied calls are dropped, never queued, and are not recorded in the
    window. State lives only as long as the instance.
    """

    def __init__(
        self,
        max_requests: int = 10,
        window_sec: float = 60.0,
        clock: Callable[[], float] = time.monotonic,
    ):
        """
        Initialize rate limiter.

        Args:
            max_requests: Admissions allowed per channel within the window
            window_sec: Trailing window length in seconds
            clock: Time source in seconds
        """
        if max_requests < 1:
            raise ValueError(f"max_requests must be >= 1, got {max_requests}")
        if window_sec <= 0:
            raise ValueError(f"window_sec must be > 0, got {window_sec}")

        self.max_requests = max_requests
        self.window_sec = window_sec
        self._clock = clock
        self._windows: Dict[str, Deque[float]] = {}
        self._last_sweep = clock()

        # Statistics
        self.total_admitted = 0
        self.total_denied = 0

    def admit(self, channel_id: str) -> bool:
        """
        Record an admission for a channel if it is under its limit.

        Args:
            channel_id: Channel the request originates from

        Returns:
            True if admitted, False if the channel is over its limit
        """
        now = self._clock()
        if now - self._last_sweep >= self.window_sec:
            self._sweep(now)

        window = self._windows.get(channel_id)
        if window is None:
            window = self._windows[channel_id] = deque()

        while window and now - window[0] >= self.window_sec:
            window.popleft()

        if len(window) >= self.max_requests:
            self.total_denied += 1
            return False

        window.append(now)
        self.total_admitted += 1
        return True

    def is_rate_limited(self, channel_id: str) -> bool:
        """
        Inverse of admit(). Not a read-only check: when the channel is under
        its limit this call records an admission.
        """
        return not self.admit(channel_id)

    def reset(self, channel_id: Optional[str] = None):
        """Forget recorded admissions for one channel, or all channels"""
        if channel_id is None:
            self._windows.clear()
        else:
            self._windows.pop(channel_id, None)

    def _sweep(self, now: float):
        # Drop channels whose newest admission has left the window
        idle = [
            channel_id
            for channel_id, window in self._windows.items()
            if not window or now - window[-1] >= self.window_sec
        ]
        for channel_id in idle:
            del self._windows[channel_id]
        self._last_sweep = now

    def get_stats(self) -> Dict[str, Any]:
        """Get rate limiter statistics"""
        return {
            "total_admitted": self.total_admitted,
            "total_denied": self.total_denied,
            "tracked_channels": len(self._windows),
            "config": {
                "max_requests": self.max_requests,
                "window_sec": self.window_sec
            }
        }

"""Fragment coalescing for SSE output."""

import time
from collections.abc import Callable
from dataclasses import dataclass, field


@dataclass
class CoalescingBuffer:
    """
    Batches small fragments into fewer chunk frames.

    A batch is ready when it holds at least ``min_chars`` characters or when
    ``max_delay`` seconds have passed since the last flush, whichever comes
    first.
    """

    min_chars: int = 3
    max_delay: float = 0.030
    clock: Callable[[], float] = time.monotonic
    _buffer: str = field(default="", init=False, repr=False)
    _last_flush: float = field(default=0.0, init=False, repr=False)

    def __post_init__(self) -> None:
        if self.min_chars < 1:
            raise ValueError("min_chars must be at least 1")
        if self.max_delay < 0:
            raise ValueError("max_delay cannot be negative")
        self._last_flush = self.clock()

    def __len__(self) -> int:
        return len(self._buffer)

    def add(self, fragment: str) -> str | None:
        """Add fragment to buffer, return batch if ready."""
        self._buffer += fragment
        if len(self._buffer) >= self.min_chars or self.is_due():
            return self._take()
        return None

    def is_due(self) -> bool:
        """True when pending content has waited out the delay."""
        return bool(self._buffer) and self.time_until_due() <= 0

    def time_until_due(self) -> float | None:
        """Seconds until the pending content must be flushed, None if empty."""
        if not self._buffer:
            return None
        return max(0.0, self.max_delay - (self.clock() - self._last_flush))

    def flush(self) -> str | None:
        """Return remaining buffer contents."""
        if self._buffer:
            return self._take()
        return None

    def _take(self) -> str:
        batch = self._buffer
        self._buffer = ""
        self._last_flush = self.clock()
        return batch


@dataclass
class StreamCounter:
    """Track fragment statistics."""

    count: int = 0
    chars: int = 0

    def track(self, fragment: str) -> None:
        """Record fragment."""
        self.count += 1
        self.chars += len(fragment)

    def reset(self) -> tuple[int, int]:
        """Reset and return counts."""
        result = (self.count, self.chars)
        self.count = 0
        self.chars = 0
        return result

"""
Debounced input: turns keystrokes into one stable search term per quiet period.
"""
import asyncio
import logging
from typing import Callable, Optional

logger = logging.getLogger(__name__)


class DebounceReducer:
    """
    Clock-driven debounce state.

    `push` restarts the quiet window, `poll` emits the latest value once the
    window has elapsed. Intermediate values are overwritten, never queued.
    """

    def __init__(self, delay: float):
        if delay < 0:
            raise ValueError("delay must be >= 0")
        self.delay = delay
        self._value: Optional[str] = None
        self._deadline: Optional[float] = None

    @property
    def pending(self) -> Optional[str]:
        return self._value if self._deadline is not None else None

    @property
    def deadline(self) -> Optional[float]:
        return self._deadline

    def push(self, value: str, now: float) -> float:
        self._value = value
        self._deadline = now + self.delay
        return self._deadline

    def poll(self, now: float) -> Optional[str]:
        if self._deadline is None or now < self._deadline:
            return None
        return self.flush()

    def flush(self) -> Optional[str]:
        """Emit whatever is pending, regardless of the clock."""
        if self._deadline is None:
            return None
        value = self._value
        self._value = None
        self._deadline = None
        return value

    def cancel(self) -> None:
        self._value = None
        self._deadline = None


class Debouncer:
    """Runs a DebounceReducer on the asyncio loop and hands each stable value to `on_emit`."""

    def __init__(self, delay: float, on_emit: Callable[[str], None]):
        self._reducer = DebounceReducer(delay)
        self._on_emit = on_emit
        self._handle: Optional[asyncio.TimerHandle] = None

    @property
    def pending(self) -> Optional[str]:
        return self._reducer.pending

    def push(self, value: str) -> None:
        loop = asyncio.get_running_loop()
        if self._handle is not None:
            self._handle.cancel()
        self._reducer.push(value, loop.time())
        self._handle = loop.call_later(self._reducer.delay, self._fire)

    def _fire(self) -> None:
        self._handle = None
        # call_later may run a hair before the deadline on coarse clocks, so flush rather than poll
        value = self._reducer.flush()
        if value is None:
            return
        logger.debug(f"Debounced search term emitted: {value!r}")
        self._on_emit(value)

    def cancel(self) -> None:
        if self._handle is not None:
            self._handle.cancel()
            self._handle = None
        self._reducer.cancel()

"""Resend countdown and cancellable redirect timers for the flows."""
import asyncio
from typing import Any, Callable, Optional


class ResendCountdown:
    """
    Counts down the seconds before a new OTP may be requested.

    ``tick()`` is the whole state machine and can be driven by hand; ``start()``
    drives it from the running event loop once per ``interval`` seconds.
    """

    def __init__(self, seconds: int = 60, interval: float = 1.0):
        self.seconds = seconds
        self.interval = interval
        self.remaining = seconds
        self.can_resend = False
        self._task: Optional[asyncio.Task] = None

    def tick(self) -> bool:
        """Advance one second. Returns True on the tick that enables resend."""
        if self.can_resend:
            return False
        if self.remaining <= 1:
            self.remaining = 0
            self.can_resend = True
            return True
        self.remaining -= 1
        return False

    def restart(self):
        self.cancel()
        self.remaining = self.seconds
        self.can_resend = False
        self.start()

    def start(self):
        """Start ticking on the running loop. No-op outside a loop."""
        if self.running or self.can_resend:
            return
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            return
        self._task = loop.create_task(self._run())

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    async def _run(self):
        while not self.can_resend:
            await asyncio.sleep(self.interval)
            self.tick()

    def cancel(self):
        if self._task is not None and not self._task.done():
            self._task.cancel()
        self._task = None


class RedirectScheduler:
    """A single pending redirect, replaced on reschedule and dropped on cancel."""

    def __init__(self):
        self._handle: Optional[asyncio.TimerHandle] = None

    @property
    def pending(self) -> bool:
        return self._handle is not None

    def schedule(self, delay: float, callback: Callable[..., Any], *args: Any):
        self.cancel()
        loop = asyncio.get_running_loop()
        self._handle = loop.call_later(delay, self._fire, callback, args)

    def _fire(self, callback: Callable[..., Any], args: tuple):
        self._handle = None
        callback(*args)

    def cancel(self):
        if self._handle is not None:
            self._handle.cancel()
            self._handle = None

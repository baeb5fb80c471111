import asyncio
import contextlib
import logging
from typing import Awaitable, Callable, Optional

logger = logging.getLogger(__name__)

SleepFn = Callable[[float], Awaitable[None]]


class Countdown:
    """
    One-second countdown running as its own asyncio task.

    ``on_tick(remaining)`` fires after every second, ``on_expire()`` once when
    the counter reaches zero. Callback errors are logged and swallowed.
    ``aclose()`` cancels the task and waits until it has really finished.
    """

    def __init__(
        self,
        seconds: int,
        on_tick: Optional[Callable[[int], None]] = None,
        on_expire: Optional[Callable[[], None]] = None,
        sleep: Optional[SleepFn] = None,
    ):
        if seconds < 1:
            raise ValueError("countdown needs at least one second")
        self.total = seconds
        self.remaining = seconds
        self._on_tick = on_tick
        self._on_expire = on_expire
        self._sleep = sleep or asyncio.sleep
        self._task: Optional[asyncio.Task] = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    @property
    def expired(self) -> bool:
        return self.remaining <= 0

    def start(self) -> None:
        if self._task is not None:
            raise RuntimeError("countdown already started")
        self._task = asyncio.get_running_loop().create_task(self._run())

    async def _run(self) -> None:
        while self.remaining > 0:
            await self._sleep(1)
            self.remaining -= 1
            if self._on_tick:
                self._call(self._on_tick, self.remaining)
        if self._on_expire:
            self._call(self._on_expire)

    @staticmethod
    def _call(callback: Callable[..., None], *args) -> None:
        # a failing listener must not stop the clock
        try:
            callback(*args)
        except Exception:
            logger.exception("countdown callback %r failed", callback)

    async def aclose(self) -> None:
        task = self._task
        if task is None or task is asyncio.current_task():
            return
        task.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await task

    async def __aenter__(self) -> "Countdown":
        self.start()
        return self

    async def __aexit__(self, *exc) -> None:
        await self.aclose()

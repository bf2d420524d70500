"""
Debounced auto-save.

A cancellable delayed task: every mutation (re)arms a timer, and only when
no further mutation arrives within the window does the save run.

A save has two halves. `prepare` runs on the event loop when the timer
fires and captures the latest state; `write` then runs in the loop's
default executor so the file I/O never blocks the loop. Writes run one at
a time in firing order, and `on_written` receives each write's result back
on the loop.
"""

import asyncio
import logging
from typing import Any, Callable, Optional


logger = logging.getLogger(__name__)


class DebouncedSave:
    """Coalesces bursts of edits into a single save."""

    def __init__(
        self,
        write: Callable[..., Any],
        delay: float = 0.3,
        prepare: Optional[Callable[[], Any]] = None,
        on_written: Optional[Callable[[Any], None]] = None,
    ):
        self._write = write
        self._delay = delay
        self._prepare = prepare
        self._on_written = on_written
        self._handle: Optional[asyncio.TimerHandle] = None
        self._writing: Optional[asyncio.Task] = None
        self._pending = False

    @property
    def pending(self) -> bool:
        """True if a save is owed."""
        return self._pending

    @property
    def writing(self) -> bool:
        """True while a fired save is still being written."""
        return self._writing is not None and not self._writing.done()

    @property
    def delay(self) -> float:
        return self._delay

    def _cancel_timer(self):
        if self._handle is not None:
            self._handle.cancel()
            self._handle = None

    def _job(self) -> Callable[[], Any]:
        if self._prepare is None:
            return self._write
        payload = self._prepare()
        return lambda: self._write(payload)

    def arm(self):
        """Cancel any pending timer and schedule a new one."""
        self._cancel_timer()
        self._pending = True
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            # No event loop: the save stays pending until flush()
            return
        self._handle = loop.call_later(self._delay, self._fire)

    def _fire(self):
        self._handle = None
        self._pending = False
        try:
            job = self._job()
        except Exception:
            logger.exception("Auto-save failed")
            return
        previous = self._writing
        self._writing = asyncio.ensure_future(self._run(job, previous))
        self._writing.add_done_callback(self._report)

    async def _run(self, job: Callable[[], Any], previous: Optional[asyncio.Task]):
        if previous is not None and not previous.done():
            await asyncio.wait([previous])
        result = await asyncio.get_running_loop().run_in_executor(None, job)
        if self._on_written is not None:
            self._on_written(result)
        return result

    @staticmethod
    def _report(task: asyncio.Task):
        if task.cancelled():
            return
        error = task.exception()
        if error is not None:
            logger.error("Auto-save failed", exc_info=error)

    async def wait_idle(self):
        """Wait for a fired save that is still being written."""
        if self._writing is not None and not self._writing.done():
            await asyncio.wait([self._writing])

    def flush(self) -> bool:
        """Run a pending save now, in the calling thread. Returns False if nothing was pending."""
        if not self._pending:
            return False
        self._cancel_timer()
        self._pending = False
        result = self._job()()
        if self._on_written is not None:
            self._on_written(result)
        return True

    def cancel(self):
        """Drop a pending save without running it."""
        self._cancel_timer()
        self._pending = False

from __future__ import annotations

import logging
import threading
from typing import Callable, Generic, Optional, TypeVar


logger = logging.getLogger(__name__)

T = TypeVar("T")


class AIMoveScheduler(Generic[T]):
    """Run an AI computation after a delay and deliver its result once.

    The computation runs on a daemon timer thread. Each ``schedule`` or
    ``cancel`` bumps a generation counter; a job whose generation is stale when
    it wakes up or finishes is dropped without calling ``deliver``. The owner
    applies the delivered result under its own lock after confirming
    ``is_current(gen)`` there, so a reset racing the delivery always wins and
    the live board keeps a single writer.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._gen = 0
        self._timer: Optional[threading.Timer] = None
        self._done = threading.Event()
        self._done.set()

    @property
    def pending(self) -> bool:
        return not self._done.is_set()

    def schedule(
        self,
        delay: float,
        compute: Callable[[], T],
        deliver: Callable[[int, T], None],
    ) -> int:
        """Start a job, superseding any outstanding one. Returns its generation."""
        with self._lock:
            self._gen += 1
            gen = self._gen
            if self._timer is not None:
                self._timer.cancel()
            self._done.clear()
            timer = threading.Timer(delay, self._run, args=(gen, compute, deliver))
            timer.daemon = True
            timer.name = f"ai-move-{gen}"
            self._timer = timer
        timer.start()
        return gen

    def cancel(self) -> None:
        """Drop the outstanding job; an in-flight computation will not deliver."""
        with self._lock:
            self._gen += 1
            if self._timer is not None:
                self._timer.cancel()
                self._timer = None
            self._done.set()

    def wait(self, timeout: Optional[float] = None) -> bool:
        """Block until no job is outstanding. Returns False on timeout."""
        return self._done.wait(timeout)

    def is_current(self, gen: int) -> bool:
        with self._lock:
            return gen == self._gen

    def _run(
        self, gen: int, compute: Callable[[], T], deliver: Callable[[int, T], None]
    ) -> None:
        try:
            if not self.is_current(gen):
                return
            result = compute()
            if not self.is_current(gen):
                logger.debug("discarding stale ai result", extra={"generation": gen})
                return
            deliver(gen, result)
        except Exception:
            logger.exception("ai move job failed", extra={"generation": gen})
        finally:
            with self._lock:
                if gen == self._gen:
                    self._timer = None
                    self._done.set()

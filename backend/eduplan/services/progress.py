from __future__ import annotations

from collections.abc import Callable
import logging
from queue import Empty, Full, Queue
from threading import Lock, Thread
import time

logger = logging.getLogger(__name__)

ProgressSink = Callable[[int, int], None]

_STOP = object()


class ProgressThrottle:
    """Forwards ``(current, total)`` to a sink at most once per interval.

    The first report always goes through. Reports arriving inside the
    interval are held back; ``flush`` delivers the most recent one.
    """

    def __init__(
        self,
        sink: ProgressSink,
        *,
        interval_seconds: float = 2.0,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._sink = sink
        self._interval = max(0.0, interval_seconds)
        self._clock = clock
        self._lock = Lock()
        self._last_emit: float | None = None
        self._pending: tuple[int, int] | None = None
        self.emitted = 0

    def __call__(self, current: int, total: int) -> None:
        now = self._clock()
        with self._lock:
            if self._last_emit is not None and now - self._last_emit < self._interval:
                self._pending = (current, total)
                return
            self._last_emit = now
            self._pending = None
        self._emit(current, total)

    def flush(self) -> None:
        with self._lock:
            pending = self._pending
            self._pending = None
            if pending is None:
                return
            self._last_emit = self._clock()
        self._emit(*pending)

    def _emit(self, current: int, total: int) -> None:
        try:
            self._sink(current, total)
            self.emitted += 1
        except Exception:
            logger.warning("Failed to update progress (%d/%d)", current, total, exc_info=True)


class ProgressChannel:
    """Non-blocking hand-off of progress reports to a worker thread.

    ``publish`` never waits on the sink: when the buffer is full the oldest
    pending report is dropped in favour of the newer one.
    """

    def __init__(self, sink: ProgressSink, *, maxsize: int = 1, name: str = "progress-channel") -> None:
        self._sink = sink
        self._queue: Queue = Queue(maxsize=max(1, maxsize))
        self._lock = Lock()
        self._closed = False
        self.dropped = 0
        self._worker = Thread(target=self._drain, name=name, daemon=True)
        self._worker.start()

    def publish(self, current: int, total: int) -> None:
        item = (current, total)
        with self._lock:
            if self._closed:
                return
            while True:
                try:
                    self._queue.put_nowait(item)
                    return
                except Full:
                    try:
                        self._queue.get_nowait()
                        self.dropped += 1
                    except Empty:
                        pass

    __call__ = publish

    def _drain(self) -> None:
        while True:
            item = self._queue.get()
            if item is _STOP:
                return
            try:
                self._sink(*item)
            except Exception:
                logger.warning("Progress sink failed for %s", item, exc_info=True)

    def close(self, timeout: float | None = 5.0) -> None:
        with self._lock:
            if self._closed:
                return
            self._closed = True
        try:
            self._queue.put(_STOP, timeout=timeout)
        except Full:
            logger.warning("Progress channel worker is stalled; closing without draining")
            return
        self._worker.join(timeout)
        if self._worker.is_alive():
            logger.debug("Progress channel worker still running after %.1fs", timeout or 0.0)

    @property
    def closed(self) -> bool:
        return self._closed

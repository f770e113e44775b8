"""
Latency measurement for ingest logging.
"""
import time
from typing import Optional


class Timer:
    """
    Monotonic stopwatch. Usable directly or as a context manager:

        with Timer() as timer:
            ...
        logger.info("took %dms", timer.elapsed_ms)
    """

    def __init__(self):
        self._start: Optional[float] = None
        self._end: Optional[float] = None

    def __enter__(self) -> "Timer":
        return self.start()

    def __exit__(self, exc_type, exc, tb) -> None:
        self.stop()

    def start(self) -> "Timer":
        self._start = time.monotonic()
        self._end = None
        return self

    def stop(self) -> int:
        """Stop timer and return elapsed milliseconds."""
        self._end = time.monotonic()
        return self.elapsed_ms

    @property
    def elapsed_ms(self) -> int:
        if self._start is None:
            return 0
        end = self._end if self._end is not None else time.monotonic()
        return int((end - self._start) * 1000)

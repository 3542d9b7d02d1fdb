import time
from collections.abc import Callable, Iterator
from contextlib import contextmanager


@contextmanager
def measure_ms() -> Iterator[Callable[[], int]]:
    """Yield a callable returning the elapsed milliseconds, never less than 1."""
    start = time.perf_counter()
    yield lambda: max(int((time.perf_counter() - start) * 1000), 1)

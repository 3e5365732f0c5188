import time
from contextlib import contextmanager
from typing import Dict, Iterator, Optional


@contextmanager
def timed(label: str, sink: Optional[Dict[str, int]] = None) -> Iterator[None]:
    """Print the wall time of the block; also record it in `sink` when given."""
    t0 = time.time()
    try:
        yield
    finally:
        dt = int((time.time() - t0) * 1000)
        if sink is not None:
            sink[label] = dt
        print(f"[timed] {label}: {dt} ms")


def log(tag: str, message: str) -> None:
    print(f"[{tag}] {message}")

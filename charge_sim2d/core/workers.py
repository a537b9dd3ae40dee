"""
Fork-join execution over particle index ranges.

Every pipeline stage is expressed as `fn(start, stop)` working on one
contiguous slice of the particle arrays. `ChunkExecutor.run` submits one
call per chunk and returns only after all of them finished, which is the
barrier between two stages. Chunks never overlap, so workers never write
the same slot.

NumPy releases the GIL inside its array kernels, so a thread pool gives
real parallelism for the force stage without copying the snapshot.
"""

from __future__ import annotations

import os
from concurrent.futures import ThreadPoolExecutor
from typing import Callable


def partition(n: int, chunk_size: int) -> list[tuple[int, int]]:
    """
    Split `[0, n)` into contiguous `(start, stop)` ranges.

    Args:
        n: Number of items
        chunk_size: Maximum items per range (> 0)

    Returns:
        Non-overlapping ranges covering every index exactly once.
    """
    if chunk_size <= 0:
        raise ValueError("chunk_size must be > 0")
    return [(start, min(n, start + chunk_size)) for start in range(0, max(0, n), chunk_size)]


class ChunkExecutor:
    """
    Run a per-chunk function over a partitioned index range.

    Attributes:
        workers: Number of worker threads (1 = run inline)
        chunk_size: Particles per chunk
    """

    def __init__(self, workers: int = 1, chunk_size: int = 256) -> None:
        if chunk_size <= 0:
            raise ValueError("chunk_size must be > 0")
        if workers <= 0:
            workers = os.cpu_count() or 1
        self.workers = int(workers)
        self.chunk_size = int(chunk_size)
        self._pool: ThreadPoolExecutor | None = None

    def _ensure_pool(self) -> ThreadPoolExecutor:
        if self._pool is None:
            self._pool = ThreadPoolExecutor(
                max_workers=self.workers,
                thread_name_prefix="charge-sim2d",
            )
        return self._pool

    def run(self, fn: Callable[[int, int], None], n: int) -> int:
        """
        Call `fn(start, stop)` for every chunk of `[0, n)` and wait for all.

        Returns:
            Number of chunks executed.
        """
        chunks = partition(n, self.chunk_size)
        if self.workers <= 1 or len(chunks) <= 1:
            for start, stop in chunks:
                fn(start, stop)
            return len(chunks)

        pool = self._ensure_pool()
        futures = [pool.submit(fn, start, stop) for start, stop in chunks]
        # barrier: every chunk completes before the first error is re-raised
        errors = [f.exception() for f in futures]
        for exc in errors:
            if exc is not None:
                raise exc
        return len(chunks)

    def shutdown(self) -> None:
        if self._pool is not None:
            self._pool.shutdown(wait=True)
            self._pool = None

    def __enter__(self) -> "ChunkExecutor":
        return self

    def __exit__(self, *exc_info) -> None:
        self.shutdown()

# -- Data-Parallel Particle Passes -- #

'''
Thread-pool execution of "for each particle index" passes.

A pass splits the index range [0, N) into contiguous blocks and runs
one block per worker. Every block writes only its own slots of the
pass's output arrays, so the only shared mutable state that needs a
lock is a scalar reduction (MaxAccumulator). parallelFor returns once
all blocks have finished, which is the barrier between passes.

The per-block work is vectorized NumPy, which releases the GIL for
most of its inner loops.
'''

from __future__ import annotations

import os
import threading
from concurrent.futures import ThreadPoolExecutor
from typing import Callable, TypeVar

T = TypeVar('T')


class ParallelExecutor:
    '''
    Runs index-block passes on a bounded thread pool.

    Parameters:
    -----------
    maxParallelism : int | None
        Worker count; None uses the CPU count. A value of 1 runs every
        pass inline on the calling thread.
    minBlockSize : int
        Passes smaller than this many indices per worker use fewer blocks
    '''

    def __init__(self, maxParallelism: int | None = None, minBlockSize: int = 64) -> None:
        if maxParallelism is None:
            maxParallelism = os.cpu_count() or 1
        if maxParallelism < 1:
            raise ValueError(f'maxParallelism must be at least 1, got {maxParallelism}')

        self._maxParallelism = maxParallelism
        self._minBlockSize = max(1, minBlockSize)
        self._pool: ThreadPoolExecutor | None = None
        self._poolLock = threading.Lock()

    @property
    def maxParallelism(self) -> int:
        '''Maximum number of blocks run concurrently.'''
        return self._maxParallelism

    def blocks(self, count: int) -> list[tuple[int, int]]:
        '''
        Split [0, count) into contiguous (start, stop) blocks.

        Parameters:
        -----------
        count : int
            Number of indices

        Returns:
        --------
        list[tuple[int, int]] : At most maxParallelism non-empty blocks
        '''
        if count <= 0:
            return []

        nBlocks = min(self._maxParallelism, max(1, count // self._minBlockSize))
        bounds = [count * b // nBlocks for b in range(nBlocks + 1)]
        return [(bounds[b], bounds[b + 1]) for b in range(nBlocks) if bounds[b] < bounds[b + 1]]

    def mapBlocks(self, count: int, body: Callable[[int, int], T]) -> list[T]:
        '''
        Run body(start, stop) for every block and collect the results.

        Results are returned in block order. The first exception raised
        by any block is re-raised after all blocks have finished.
        '''
        blocks = self.blocks(count)
        if len(blocks) <= 1:
            return [body(start, stop) for start, stop in blocks]

        pool = self._getPool()
        futures = [pool.submit(body, start, stop) for start, stop in blocks]

        # Wait for every block before surfacing errors so no worker is
        # still writing when the caller moves on
        errors = [f.exception() for f in futures]
        for error in errors:
            if error is not None:
                raise error

        return [f.result() for f in futures]

    def parallelFor(self, count: int, body: Callable[[int, int], None]) -> None:
        '''Run body(start, stop) over [0, count) and wait for completion.'''
        self.mapBlocks(count, body)

    def close(self) -> None:
        '''Shut down the worker threads (the executor can be reused).'''
        with self._poolLock:
            if self._pool is not None:
                self._pool.shutdown(wait=True)
                self._pool = None

    def _getPool(self) -> ThreadPoolExecutor:
        with self._poolLock:
            if self._pool is None:
                self._pool = ThreadPoolExecutor(
                    max_workers=self._maxParallelism,
                    thread_name_prefix='sph-pass',
                )
            return self._pool


class MaxAccumulator:
    '''
    Lock-guarded running maximum shared by the blocks of one pass.

    Parameters:
    -----------
    initial : float
        Starting value (the reduction never goes below it)
    '''

    def __init__(self, initial: float = 0.0) -> None:
        self._initial = initial
        self._value = initial
        self._lock = threading.Lock()

    @property
    def value(self) -> float:
        '''Current maximum.'''
        with self._lock:
            return self._value

    def update(self, candidate: float) -> None:
        '''Compare-and-update: keep the larger of the current value and candidate.'''
        with self._lock:
            if candidate > self._value:
                self._value = candidate

    def reset(self) -> None:
        '''Return to the initial value.'''
        with self._lock:
            self._value = self._initial

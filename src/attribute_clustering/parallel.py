#!/usr/bin/env python3
# parallel.py
"""
Bounded worker pool helpers for the row-parallel phases (score matrix, pairwise distances).

Work is partitioned by row index and every unit writes to its own row (or its own
condensed cells), so no locking is needed. `parallel_for` returns only once every
row has been processed, which is the barrier between two phases.

The pool runs threads, so row functions written in pure Python are serialized by the
GIL and gain little; the speedup comes from work that releases it (NumPy and SciPy
kernels).
"""

import logging
from concurrent.futures import ThreadPoolExecutor
from os import cpu_count
from typing import Callable, Optional

from attribute_clustering.errors import ConfigurationError

__all__ = ["select_n_jobs", "parallel_for"]

logger = logging.getLogger(__name__)


def select_n_jobs(n_jobs: Optional[int]) -> int:
    """
    Resolve a user-facing n_jobs value into a concrete worker count.

    @param n_jobs: None or 0 for serial execution, -1 for all cores, -2 for all
                   cores but one (and so on), or a positive worker count.
    @return: number of workers, between 1 and the available CPU count.
    @raises ConfigurationError: if n_jobs is not an integer.
    """
    if n_jobs is None:
        return 1
    if isinstance(n_jobs, bool) or not isinstance(n_jobs, int):
        raise ConfigurationError(f"n_jobs must be an integer or None, got {n_jobs!r}")
    if n_jobs == 0:
        return 1

    total_cores = cpu_count() or 1
    if n_jobs < 0:
        return max(1, total_cores + 1 + n_jobs)
    if n_jobs > total_cores:
        logger.warning("n_jobs (%d) exceeds available cores (%d), using all cores instead.",
                       n_jobs, total_cores)
        return total_cores
    return n_jobs


def parallel_for(func: Callable[[int], None], count: int, n_jobs: Optional[int] = None) -> None:
    """
    Call func(i) for every i in range(count) on a bounded thread pool.

    Exceptions raised by func are re-raised in the caller once the pool shuts down.

    @param func: per-row work function; must only write to memory owned by row i.
    @param count: number of rows.
    @param n_jobs: worker count specification, see select_n_jobs.
    """
    workers = min(select_n_jobs(n_jobs), max(count, 1))
    if workers == 1:
        for i in range(count):
            func(i)
        return

    logger.debug("Running %d rows on %d workers", count, workers)
    with ThreadPoolExecutor(max_workers=workers) as executor:
        # consume the iterator so worker exceptions surface here
        for _ in executor.map(func, range(count)):
            pass

#!/usr/bin/env python3
# condensed.py
"""
Condensed (upper-triangular) pairwise dissimilarity storage.

For n observations only the n(n-1)/2 pairs i < j are stored, in the same row-major
order as scipy.spatial.distance.pdist, so arrays built here can be handed to SciPy
and vice versa. The diagonal is never stored; it reads as zero.
"""

import logging
from typing import Optional, Union

import numpy as np
from scipy.spatial.distance import squareform

from attribute_clustering.distances import DistanceMethod, get_distance_method
from attribute_clustering.errors import ConfigurationError
from attribute_clustering.parallel import parallel_for

__all__ = [
    "condensed_size",
    "condensed_index",
    "compute_condensed_distances",
    "CondensedDistanceMatrix",
]

logger = logging.getLogger(__name__)


def condensed_size(n: int) -> int:
    """Number of stored cells for n observations."""
    return n * (n - 1) // 2 if n > 1 else 0


def condensed_index(n: int, i, j):
    """
    Position of pair (i, j) in a condensed array of n observations.

    Uses index(n, i, j) = i * (2n - i - 1) / 2 + j - i - 1 for i < j; pairs with
    i > j are flipped first, so (i, j) and (j, i) share a cell. Accepts scalars
    or equally-shaped integer arrays.

    @param n: number of observations
    @param i: row index (int or array)
    @param j: column index (int or array)
    @return: int, or integer array for array input
    @raises ValueError: if any i == j (the diagonal has no cell)
    @raises IndexError: if any index lies outside [0, n)
    """
    i_arr = np.asarray(i, dtype=np.int64)
    j_arr = np.asarray(j, dtype=np.int64)
    if np.any(i_arr == j_arr):
        raise ValueError("The diagonal (i == j) is not stored in a condensed matrix.")
    lo = np.minimum(i_arr, j_arr)
    hi = np.maximum(i_arr, j_arr)
    if np.any(lo < 0) or np.any(hi >= n):
        raise IndexError(f"Pair index out of range for {n} observations.")
    index = lo * (2 * n - lo - 1) // 2 + hi - lo - 1
    if index.ndim == 0:
        return int(index)
    return index


def compute_condensed_distances(scores: np.ndarray,
                                distance: Union[str, DistanceMethod] = "euclidean",
                                n_jobs: Optional[int] = None) -> np.ndarray:
    """
    Compute all pairwise dissimilarities between the rows of a score matrix.

    Rows of the outer loop are distributed over the worker pool; row i owns the
    contiguous cells of pairs (i, i+1) ... (i, n-1), so workers never share cells.

    @param scores: 2D array (n_observations, n_neighborhoods)
    @param distance: registered method name or callable d(u, v) -> float
    @param n_jobs: worker count specification (see parallel.select_n_jobs)
    @return: 1D float array of length n(n-1)/2
    """
    scores = np.asarray(scores, dtype=float)
    if scores.ndim != 2:
        raise ValueError("scores must be a 2D array (n_observations, n_neighborhoods).")
    method = get_distance_method(distance)
    n = scores.shape[0]
    result = np.empty(condensed_size(n), dtype=float)

    def row(i: int) -> None:
        if i >= n - 1:
            return
        start = condensed_index(n, i, i + 1)
        for offset, j in enumerate(range(i + 1, n)):
            result[start + offset] = method(scores[i], scores[j])

    logger.debug("Computing %d pairwise dissimilarities", result.size)
    parallel_for(row, n, n_jobs)
    return result


class CondensedDistanceMatrix:
    """
    Read-only symmetric view over a condensed dissimilarity array.

    d[i, j] returns 0.0 when i == j and the shared stored value otherwise; indexes
    outside [0, n) raise IndexError.
    """

    def __init__(self, values: np.ndarray, n: int):
        values = np.asarray(values, dtype=float)
        if values.ndim != 1 or values.size != condensed_size(n):
            raise ConfigurationError(
                f"Condensed array of length {values.size} does not match {n} observations "
                f"(expected {condensed_size(n)})."
            )
        self.values = values
        self.n = n

    def __len__(self) -> int:
        return self.n

    def __getitem__(self, pair) -> float:
        i, j = pair
        if i == j:
            if not 0 <= i < self.n:
                raise IndexError(f"Index {i} out of range for {self.n} observations.")
            return 0.0
        return float(self.values[condensed_index(self.n, i, j)])

    def to_square(self) -> np.ndarray:
        """Full (n, n) symmetric matrix with a zero diagonal."""
        if self.n < 2:
            return np.zeros((self.n, self.n), dtype=float)
        return squareform(self.values, checks=False)

#!/usr/bin/env python3
# agglomerative.py
"""
Agglomerative clustering over a condensed dissimilarity array, reported as linkage events.

The working dissimilarities live in a copy of the condensed array (n(n-1)/2 cells),
merges are chosen from a heap with lazy deletion, and inter-cluster dissimilarities
are updated with Lance–Williams rules (vectorized). Supported linkages:
    - 'single' (default), 'complete', 'average'

Every merge is reported as Linkage(o1, o2, dissimilarity) where o1 < o2 are the
slots of the two merged clusters. Cluster j is always merged into cluster i with
i < j, so a slot index is also the smallest observation index of its cluster.

Ties between equal dissimilarities are broken by the lowest (i, j) pair in
lexicographic order, which is the natural ordering of the (dissimilarity, i, j)
heap entries. Infinite dissimilarities still merge, after every finite one; NaN
dissimilarities are ordered as +inf.

Memory: the heap starts with one Python tuple per pair (about n^2/2 entries) and
gains up to n-2 entries per merge, so a few thousand observations already need
several hundred MB on top of the n(n-1)/2 float working array.

Doxygen-style docstrings are used (with @param / @return tags).
"""

import heapq
import math
from typing import Callable, List, NamedTuple, Optional, Tuple, Union

import numpy as np

from attribute_clustering.condensed import CondensedDistanceMatrix, condensed_index, condensed_size
from attribute_clustering.errors import ConfigurationError

__all__ = [
    "Linkage",
    "init_clusters",
    "pair_to_heap_entries",
    "lance_williams_update",
    "extract_min_pair",
    "merge_clusters",
    "agglomerative",
    "linkage_matrix",
]

_supported_linkages = {"single", "complete", "average"}

ClusteringBuilder = Callable[[int, int, float], None]


class Linkage(NamedTuple):
    """One merge event: slots o1 and o2 joined at the given dissimilarity."""
    o1: int
    o2: int
    dissimilarity: float


def init_clusters(n: int) -> Tuple[np.ndarray, np.ndarray]:
    """
    Initialize cluster bookkeeping structures.

    @param n: Number of initial clusters (number of observations).

    @return: A tuple (active, sizes)
        - active: boolean array length n (True indicates cluster is active)
        - sizes: integer array length n (cluster sizes)
    """
    active = np.ones(n, dtype=bool)
    sizes = np.ones(n, dtype=int)
    return active, sizes


def pair_to_heap_entries(D: np.ndarray, n: int) -> List[Tuple[float, int, int]]:
    """
    Create heap entries (dissimilarity, i, j) for every stored pair i < j and heapify them.

    @param D: condensed dissimilarity array of length n(n-1)/2
    @param n: number of observations
    @return: list suitable for heapq operations (heapified).
    """
    rows, cols = np.triu_indices(n, k=1)
    # triu_indices walks pairs in condensed order, so cell k belongs to (rows[k], cols[k])
    entries = list(zip(D.tolist(), rows.tolist(), cols.tolist()))
    heapq.heapify(entries)
    return entries


def lance_williams_update(linkage: str,
                          d_ik, d_jk,
                          size_i: int, size_j: int):
    """
    Lance–Williams update for the single/complete/average linkages.

    @param linkage: 'single' | 'complete' | 'average'
    @param d_ik: dissimilarity between cluster i and k (scalar or array)
    @param d_jk: dissimilarity between cluster j and k (scalar or array)
    @param size_i: size of cluster i (int)
    @param size_j: size of cluster j (int)
    @return: updated dissimilarity d(i u j, k)
    """
    if linkage == "single":
        return np.minimum(d_ik, d_jk)
    elif linkage == "complete":
        return np.maximum(d_ik, d_jk)
    elif linkage == "average":
        return (size_i * np.asarray(d_ik) + size_j * np.asarray(d_jk)) / (size_i + size_j)
    else:
        raise ValueError("Unsupported linkage for lance_williams_update: " + str(linkage))


def extract_min_pair(heap: List[Tuple[float, int, int]], D: np.ndarray, n: int,
                     active: np.ndarray, tol: float = 1e-12) -> Tuple[int, int, float]:
    """
    Pop from heap until a valid active pair (i, j) with up-to-date dissimilarity is found.

    Lazy deletion: many heap entries go stale after merges; they are skipped until an
    active pair whose popped value still matches the working array turns up.

    @param heap: heap list managed with heapq
    @param D: working condensed dissimilarity array
    @param n: number of observations
    @param active: boolean mask of active clusters
    @param tol: absolute tolerance for considering a popped value equal to the stored one
    @return: tuple (i, j, dissimilarity) with i < j
    @raises RuntimeError: if heap is exhausted (should not happen normally)
    """
    while heap:
        # entries are always pushed as (d, i, j) with 0 <= i < j < n
        dist, i, j = heapq.heappop(heap)
        if not (active[i] and active[j]):
            continue
        current = D[condensed_index(n, i, j)]
        if dist == current:
            return int(i), int(j), float(current)
        if np.isfinite(current) and abs(dist - current) <= max(tol, 1e-12 * (1.0 + abs(current))):
            return int(i), int(j), float(current)
        # else stale -> skip
    raise RuntimeError("Heap exhausted without finding a valid pair.")


def merge_clusters(i: int, j: int,
                   active: np.ndarray,
                   sizes: np.ndarray,
                   D: np.ndarray,
                   n: int,
                   linkage: str,
                   heap: List[Tuple[float, int, int]]) -> None:
    """
    Merge cluster j into cluster i. Update active mask, sizes, D,
    and push updated heap entries (i, k) for all remaining active k.

    @param i: slot of the cluster to keep (int)
    @param j: slot of the cluster to deactivate (int). j != i.
    @param active: boolean mask of active clusters; modified in-place
    @param sizes: integer array of cluster sizes; modified in-place
    @param D: working condensed dissimilarity array; modified in-place
    @param n: number of observations
    @param linkage: linkage method string
    @param heap: heap list to push updated pairs into (heapq used); modified in-place
    @return: None
    """
    if i == j:
        raise ValueError("Cannot merge a cluster with itself.")
    if not (active[i] and active[j]):
        raise ValueError("Both clusters must be active to merge.")
    if linkage not in _supported_linkages:
        raise ValueError(f"Unsupported linkage: {linkage}")

    size_i = int(sizes[i])
    size_j = int(sizes[j])

    act_idx = np.flatnonzero(active)
    others = act_idx[(act_idx != i) & (act_idx != j)]

    if others.size:
        cells_ik = condensed_index(n, np.full(others.size, i), others)
        cells_jk = condensed_index(n, np.full(others.size, j), others)
        d_new = lance_williams_update(linkage, D[cells_ik], D[cells_jk], size_i, size_j)
        D[cells_ik] = d_new
        # j is gone: its cells can never be selected again
        D[cells_jk] = np.inf

    D[condensed_index(n, i, j)] = np.inf
    active[j] = False
    sizes[i] = size_i + size_j
    sizes[j] = 0

    for k in others.tolist():
        a = min(i, k)
        b = max(i, k)
        heapq.heappush(heap, (float(D[condensed_index(n, a, b)]), a, b))


def _num_observations(size: int) -> int:
    if size == 0:
        return 1
    n = int(round((1.0 + math.sqrt(1.0 + 8.0 * size)) / 2.0))
    if condensed_size(n) != size:
        raise ConfigurationError(f"Length {size} is not a valid condensed array length.")
    return n


def agglomerative(distances: Union[np.ndarray, CondensedDistanceMatrix],
                  n: Optional[int] = None,
                  linkage: str = "single",
                  builder: Optional[ClusteringBuilder] = None) -> List[Linkage]:
    """
    Perform agglomerative clustering over a condensed dissimilarity array.

    @param distances: condensed array of length n(n-1)/2, or a CondensedDistanceMatrix
    @param n: number of observations; inferred from the array length when omitted
    @param linkage: one of 'single', 'complete', 'average'
    @param builder: optional callback builder(o1, o2, dissimilarity) called for every
                    merge, in merge order

    @return: list of the n-1 Linkage events in merge order (empty for n <= 1)
    """
    if linkage not in _supported_linkages:
        raise ConfigurationError(f"Unsupported linkage: {linkage!r}")
    if isinstance(distances, CondensedDistanceMatrix):
        values, n = distances.values, distances.n
    else:
        values = np.asarray(distances, dtype=float)
        if values.ndim != 1:
            raise ConfigurationError("distances must be a condensed (1D) array.")
        if n is None:
            n = _num_observations(values.size)
        elif values.size != condensed_size(n):
            raise ConfigurationError(
                f"Condensed array of length {values.size} does not match {n} observations."
            )

    linkages: List[Linkage] = []
    if n <= 1:
        return linkages

    # working copy; NaN cannot be ordered so it sorts as +inf
    D = np.where(np.isnan(values), np.inf, values)

    active, sizes = init_clusters(n)
    heap = pair_to_heap_entries(D, n)

    num_active = n
    while num_active > 1:
        i, j, dist = extract_min_pair(heap, D, n, active)
        linkages.append(Linkage(i, j, dist))
        if builder is not None:
            builder(i, j, dist)
        merge_clusters(i, j, active, sizes, D, n, linkage, heap)
        num_active -= 1

    return linkages


def linkage_matrix(linkages: List[Linkage], n: int) -> np.ndarray:
    """
    Convert linkage events into a SciPy-style linkage matrix.

    @param linkages: the n-1 events produced by agglomerative (no self-merges)
    @param n: number of observations
    @return: np.ndarray shape (n-1, 4) with rows [node_a, node_b, dissimilarity, size],
             node ids >= n referring to earlier rows as in scipy.cluster.hierarchy
    """
    if len(linkages) != max(n - 1, 0):
        raise ValueError(f"Expected {max(n - 1, 0)} linkages for {n} observations, got {len(linkages)}.")

    node_id = list(range(n))  # current mapping: slot -> node id
    sizes = [1] * n
    Z_rows: List[List[float]] = []
    next_node = n
    for o1, o2, dist in linkages:
        if o1 == o2:
            raise ValueError("Self-merge linkages cannot be expressed in a linkage matrix.")
        i, j = min(o1, o2), max(o1, o2)
        a, b = sorted((node_id[i], node_id[j]))
        new_size = sizes[i] + sizes[j]
        Z_rows.append([float(a), float(b), float(dist), float(new_size)])
        # the surviving slot i gets assigned the new node id
        node_id[i] = next_node
        node_id[j] = -1
        sizes[i] = new_size
        sizes[j] = 0
        next_node += 1

    return np.array(Z_rows, dtype=float).reshape(-1, 4)

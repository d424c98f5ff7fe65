#!/usr/bin/env python3
# tree_cut.py
"""
Cutting a linkage sequence at a height-relative threshold and extracting the clusters.

The cut works on a parent forest: parents[i] == -1 means observation i was never merged
below the cutoff, anything else points towards the smallest index of a merged pair.
Roots are resolved with path compression, so after one pass every resolved index points
straight at its root.
"""

import math
from typing import Dict, Iterable, List, Sequence

import numpy as np

from attribute_clustering.agglomerative import Linkage
from attribute_clustering.errors import ConfigurationError, ResolutionError

__all__ = [
    "tree_height",
    "compute_parents",
    "resolve_parent",
    "compute_clusters",
]


def tree_height(linkages: Sequence[Linkage]) -> float:
    """
    Maximum finite dissimilarity over all linkages.

    Non-finite dissimilarities count as 0, so a single unmergeable pair cannot
    stretch the height the threshold is relative to.

    @param linkages: linkage events
    @return: tree height (>= 0 for non-negative dissimilarities)
    @raises ConfigurationError: if there are no linkages
    """
    if len(linkages) == 0:
        raise ConfigurationError("Cannot compute the height of an empty linkage tree.")
    return max(d if math.isfinite(d) else 0.0 for _, _, d in linkages)


def compute_parents(linkages: Iterable[Linkage], n: int, cutoff: float) -> np.ndarray:
    """
    Build the parent forest from every linkage below the cutoff.

    Self-merges (o1 == o2) and linkages at or above the cutoff are skipped. For the
    rest both ends point at min(o1, o2); a later linkage may overwrite an earlier
    assignment of the same index.

    @param linkages: linkage events in merge order
    @param n: number of observations
    @param cutoff: absolute dissimilarity cutoff
    @return: int array of length n with values in {-1} u [0, n)
    """
    parents = np.full(n, -1, dtype=int)
    for o1, o2, dissimilarity in linkages:
        if o1 == o2 or dissimilarity >= cutoff:
            continue
        parent = min(o1, o2)
        parents[o1] = parent
        parents[o2] = parent
    return parents


def resolve_parent(parents: np.ndarray, index: int) -> int:
    """
    Root of index in the parent forest, or -1 if it belongs to no cluster.

    Follows parent pointers until an index that points at itself (a root) or at -1.
    When a root is found every index on the walked chain is rewritten to point at it.

    @param parents: parent forest; modified in-place
    @param index: observation index
    @return: root index or -1
    @raises ResolutionError: if the chain loops back on itself
    """
    chain = []
    seen = set()
    current = index
    while True:
        parent = int(parents[current])
        if parent == current or parent == -1:
            root = parent
            break
        if current in seen:
            raise ResolutionError(f"Cycle in parent forest at index {current} (resolving {index}).")
        seen.add(current)
        chain.append(current)
        current = parent

    if root != -1:
        for i in chain:
            parents[i] = root
    return root


def compute_clusters(parents: np.ndarray) -> List[List[int]]:
    """
    Group observations by resolved root and order the groups by size.

    Observations resolving to -1 are left out. Groups are sorted by descending
    size, ties by their smallest member; members are ascending.

    @param parents: parent forest; path-compressed in-place
    @return: list of clusters, each a list of observation indices
    """
    members: Dict[int, List[int]] = {}
    for i in range(len(parents)):
        root = resolve_parent(parents, i)
        if root != -1:
            members.setdefault(root, []).append(i)

    clusters = [cluster for cluster in members.values() if cluster]
    clusters.sort(key=lambda cluster: (-len(cluster), cluster[0]))
    return clusters

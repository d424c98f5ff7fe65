#!/usr/bin/env python3
# distances.py
"""
Pluggable dissimilarity functions between attribute score vectors.

A distance method is any callable d(u, v) -> float that is commutative and returns
its zero-dissimilarity value for equal vectors. A small set of standard methods is
registered by name; callers may also pass their own callable wherever a method
name is accepted.

NaN or infinite scores are not rejected here: whatever the SciPy kernel returns for
them is passed on to the clusterer.
"""

from typing import Callable, Dict, Union

import numpy as np
from scipy.spatial import distance as ssd

from attribute_clustering.errors import ConfigurationError

__all__ = [
    "DistanceMethod",
    "jaccard_distance",
    "euclidean_distance",
    "correlation_distance",
    "cosine_distance",
    "register_distance_method",
    "get_distance_method",
    "available_distance_methods",
]

DistanceMethod = Callable[[np.ndarray, np.ndarray], float]


def jaccard_distance(u: np.ndarray, v: np.ndarray, threshold: float = 0.0) -> float:
    """
    Jaccard dissimilarity between the significant positions of two score vectors.

    A position is significant when its score is strictly greater than threshold.
    Two vectors with no significant positions at all have distance 0.

    @param u: score vector
    @param v: score vector of the same length
    @param threshold: significance cutoff applied to both vectors
    @return: value in [0, 1]
    """
    a = np.asarray(u, dtype=float) > threshold
    b = np.asarray(v, dtype=float) > threshold
    if not (a.any() or b.any()):
        return 0.0
    return float(ssd.jaccard(a, b))


def euclidean_distance(u: np.ndarray, v: np.ndarray) -> float:
    return float(ssd.euclidean(np.asarray(u, dtype=float), np.asarray(v, dtype=float)))


def correlation_distance(u: np.ndarray, v: np.ndarray) -> float:
    """One minus the Pearson correlation; NaN for constant vectors."""
    with np.errstate(divide="ignore", invalid="ignore"):
        return float(ssd.correlation(np.asarray(u, dtype=float), np.asarray(v, dtype=float)))


def cosine_distance(u: np.ndarray, v: np.ndarray) -> float:
    with np.errstate(divide="ignore", invalid="ignore"):
        return float(ssd.cosine(np.asarray(u, dtype=float), np.asarray(v, dtype=float)))


_distance_methods: Dict[str, DistanceMethod] = {
    "jaccard": jaccard_distance,
    "euclidean": euclidean_distance,
    "correlation": correlation_distance,
    "cosine": cosine_distance,
}


def register_distance_method(name: str, method: DistanceMethod) -> None:
    """
    Make a custom distance method selectable by name.

    @param name: configuration name; must not shadow a registered method
    @param method: callable d(u, v) -> float
    @raises ConfigurationError: if the name is taken or method is not callable
    """
    if not callable(method):
        raise ConfigurationError(f"Distance method {name!r} is not callable.")
    key = name.lower()
    if key in _distance_methods:
        raise ConfigurationError(f"Distance method {name!r} is already registered.")
    _distance_methods[key] = method


def get_distance_method(method: Union[str, DistanceMethod]) -> DistanceMethod:
    """
    Resolve a distance method name, or pass an injected callable through unchanged.

    @param method: registered name (case-insensitive) or callable
    @return: the distance callable
    @raises ConfigurationError: for unknown names or non-callable values
    """
    if callable(method):
        return method
    if isinstance(method, str):
        key = method.lower()
        if key in _distance_methods:
            return _distance_methods[key]
    raise ConfigurationError(
        f"Unsupported distance method: {method!r}. "
        f"Choose one of {sorted(_distance_methods)} or pass a callable."
    )


def available_distance_methods():
    return sorted(_distance_methods)

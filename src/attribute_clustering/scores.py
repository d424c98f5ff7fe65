#!/usr/bin/env python3
# scores.py
"""
Attribute selection and the dense [attribute][neighborhood] score matrix.

Scores come from an external NeighborhoodScoreSource: an ordered collection of
neighborhoods plus a pure scoring function per type index. Attribute eligibility
comes from an AttributeFilter. Both are duck-typed; EnrichmentTable is a small
array-backed source for callers that already hold scores in memory.
"""

import logging
from typing import Any, Callable, List, Optional, Protocol, Sequence, Union

import numpy as np

from attribute_clustering.errors import ConfigurationError
from attribute_clustering.parallel import parallel_for

__all__ = [
    "ScoringFunction",
    "AttributeFilter",
    "NeighborhoodScoreSource",
    "select_attributes",
    "compute_score_matrix",
    "Neighborhood",
    "EnrichmentTable",
]

logger = logging.getLogger(__name__)

ScoringFunction = Callable[[Any, int], float]


class AttributeFilter(Protocol):
    def is_top(self, attribute_index: int, type_index: int) -> bool:
        ...


class NeighborhoodScoreSource(Protocol):
    neighborhoods: Sequence[Any]

    def scoring_function(self, type_index: int) -> ScoringFunction:
        ...


def select_attributes(total_attributes: int,
                      type_index: int,
                      attribute_filter: Union[AttributeFilter, Callable[[int, int], bool]]) -> List[int]:
    """
    Ordered indexes of the attributes eligible for clustering.

    @param total_attributes: number of attributes known to the annotation provider
    @param type_index: enrichment type the filter is evaluated for
    @param attribute_filter: object with is_top(i, type_index), or a callable of the same shape
    @return: increasing list of attribute indexes
    """
    is_top = getattr(attribute_filter, "is_top", attribute_filter)
    if not callable(is_top):
        raise ConfigurationError("attribute_filter must provide is_top(attribute_index, type_index).")
    return [i for i in range(total_attributes) if is_top(i, type_index)]


def compute_score_matrix(source: NeighborhoodScoreSource,
                         attribute_indexes: Sequence[int],
                         type_index: int,
                         n_jobs: Optional[int] = None) -> np.ndarray:
    """
    Score every selected attribute against every neighborhood.

    Row f holds score(neighborhood, attribute_indexes[f]) for all neighborhoods in
    source order. Rows are filled in parallel; the scoring function must not share
    mutable state. NaN or infinite scores are stored as they are.

    @param source: neighborhood score source
    @param attribute_indexes: filtered attribute indexes, one row each
    @param type_index: selects the scoring function
    @param n_jobs: worker count specification (see parallel.select_n_jobs)
    @return: float array shape (len(attribute_indexes), len(source.neighborhoods))
    """
    score = source.scoring_function(type_index)
    neighborhoods = list(source.neighborhoods)
    scores = np.empty((len(attribute_indexes), len(neighborhoods)), dtype=float)

    def row(f: int) -> None:
        attribute_index = attribute_indexes[f]
        scores[f, :] = [score(neighborhood, attribute_index) for neighborhood in neighborhoods]

    logger.debug("Scoring %d attributes over %d neighborhoods", len(attribute_indexes), len(neighborhoods))
    parallel_for(row, len(attribute_indexes), n_jobs)
    return scores


class Neighborhood:
    """A node's neighborhood inside an EnrichmentTable."""

    def __init__(self, table: "EnrichmentTable", node_index: int):
        self.table = table
        self.node_index = node_index

    def enrichment_score(self, attribute_index: int, type_index: int) -> float:
        return float(self.table.values[type_index, self.node_index, attribute_index])

    def __repr__(self) -> str:
        return f"Neighborhood(node_index={self.node_index})"


class EnrichmentTable:
    """
    Array-backed NeighborhoodScoreSource.

    values has shape (n_types, n_neighborhoods, n_attributes); by convention type 0
    holds enrichment ("highest") scores and type 1 depletion ("lowest") scores.
    A 2D array is taken as a single type.
    """

    def __init__(self, values: np.ndarray):
        values = np.asarray(values, dtype=float)
        if values.ndim == 2:
            values = values[np.newaxis, :, :]
        if values.ndim != 3:
            raise ConfigurationError("values must have shape (n_types, n_neighborhoods, n_attributes).")
        self.values = values
        self.neighborhoods = [Neighborhood(self, i) for i in range(values.shape[1])]

    @property
    def type_count(self) -> int:
        return self.values.shape[0]

    @property
    def attribute_count(self) -> int:
        return self.values.shape[2]

    def scoring_function(self, type_index: int) -> ScoringFunction:
        if not 0 <= type_index < self.type_count:
            raise ConfigurationError(f"type_index {type_index} out of range [0, {self.type_count}).")

        def score(neighborhood: Neighborhood, attribute_index: int) -> float:
            return neighborhood.enrichment_score(attribute_index, type_index)

        return score

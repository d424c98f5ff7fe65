#!/usr/bin/env python3
# grouping.py
"""
Cluster-based grouping of attributes into domains.

Pipeline for one enrichment type:
    1. select the top attributes (AttributeFilter)
    2. score them against every neighborhood (parallel over attributes)
    3. pairwise dissimilarities in condensed form (parallel over rows)
    4. single-linkage agglomerative clustering -> linkage events
    5. cut the tree at threshold * height and extract clusters, largest first
    6. emit each cluster to a DomainConsumer using the original attribute indexes

Fewer than two selected attributes produce no domains and no error.
"""

import logging
import time
from typing import List, Optional, Protocol, Sequence

from attribute_clustering.agglomerative import agglomerative
from attribute_clustering.condensed import CondensedDistanceMatrix, compute_condensed_distances
from attribute_clustering.config import GroupingConfig
from attribute_clustering.scores import NeighborhoodScoreSource, compute_score_matrix, select_attributes
from attribute_clustering.tree_cut import compute_clusters, compute_parents, tree_height

__all__ = [
    "DomainConsumer",
    "DomainCollector",
    "ProgressReporter",
    "LoggingProgressReporter",
    "ClusterBasedGrouping",
]

logger = logging.getLogger(__name__)


class DomainConsumer(Protocol):
    def start_group(self) -> None:
        ...

    def attribute(self, attribute_index: int) -> None:
        ...

    def end_group(self) -> None:
        ...


class DomainCollector:
    """DomainConsumer that keeps every emitted group as a list of attribute indexes."""

    def __init__(self):
        self.groups: List[List[int]] = []
        self._current: Optional[List[int]] = None

    def start_group(self) -> None:
        if self._current is not None:
            raise RuntimeError("start_group() called before the previous group ended.")
        self._current = []

    def attribute(self, attribute_index: int) -> None:
        if self._current is None:
            raise RuntimeError("attribute() called outside of a group.")
        self._current.append(attribute_index)

    def end_group(self) -> None:
        if self._current is None:
            raise RuntimeError("end_group() called without start_group().")
        self.groups.append(self._current)
        self._current = None


class ProgressReporter(Protocol):
    def set_status(self, message: str, *args) -> None:
        ...


class LoggingProgressReporter:
    """Forwards progress messages to a logger at INFO level."""

    def __init__(self, log: Optional[logging.Logger] = None):
        self.log = log or logger

    def set_status(self, message: str, *args) -> None:
        self.log.info(message, *args)


class ClusterBasedGrouping:
    """
    Groups attributes whose neighborhood score profiles are similar into domains.

    Examples:
        >>> table = EnrichmentTable(scores)          # (types, neighborhoods, attributes)
        >>> grouping = ClusterBasedGrouping(GroupingConfig(threshold=0.75))
        >>> collector = DomainCollector()
        >>> grouping.group(table, lambda i, t: True, table.attribute_count, 0, collector)
        >>> collector.groups
    """

    ID = "cluster"

    def __init__(self, config: Optional[GroupingConfig] = None):
        self.config = config or GroupingConfig()

    @property
    def id(self) -> str:
        return self.ID

    def group(self,
              source: NeighborhoodScoreSource,
              attribute_filter,
              total_attributes: int,
              type_index: int,
              consumer: DomainConsumer,
              progress: Optional[ProgressReporter] = None) -> List[List[int]]:
        """
        Cluster the top attributes of one enrichment type and emit them as domains.

        @param source: neighborhoods and their scoring functions
        @param attribute_filter: object with is_top(i, type_index) or equivalent callable
        @param total_attributes: number of attributes known to the annotation provider
        @param type_index: enrichment type to group
        @param consumer: receives start_group / attribute / end_group calls
        @param progress: optional status sink; defaults to logging
        @return: the emitted domains as lists of original attribute indexes, largest first
        """
        progress = progress or LoggingProgressReporter()
        config = self.config

        filtered_indexes = select_attributes(total_attributes, type_index, attribute_filter)
        total_filtered = len(filtered_indexes)
        progress.set_status("Top attributes: %d", total_filtered)
        if total_filtered < 2:
            logger.debug("Nothing to cluster for type %d", type_index)
            return []

        started = time.perf_counter()
        progress.set_status("Computing attribute distances...")
        scores = compute_score_matrix(source, filtered_indexes, type_index, config.n_jobs)

        progress.set_status("Computing dissimilarity matrix...")
        distances = compute_condensed_distances(scores, config.distance, config.n_jobs)
        logger.debug("Score and distance phases took %.3fs", time.perf_counter() - started)

        progress.set_status("Computing cluster linkages...")
        matrix = CondensedDistanceMatrix(distances, total_filtered)
        linkages = agglomerative(matrix, linkage=config.linkage)
        height = tree_height(linkages)

        progress.set_status("Cluster tree height: %f", height)
        progress.set_status("Total linkages: %d", len(linkages))

        cutoff = height * config.threshold
        parents = compute_parents(linkages, total_filtered, cutoff)
        clusters = compute_clusters(parents)

        progress.set_status("Assigning clusters...")
        return self.emit(clusters, filtered_indexes, consumer)

    @staticmethod
    def emit(clusters: Sequence[Sequence[int]],
             filtered_indexes: Sequence[int],
             consumer: DomainConsumer) -> List[List[int]]:
        """
        Translate observation clusters to attribute indexes and hand them to the consumer.

        Empty clusters are skipped.
        """
        domains: List[List[int]] = []
        for cluster in clusters:
            if len(cluster) == 0:
                continue
            consumer.start_group()
            domain = []
            for observation in cluster:
                attribute_index = filtered_indexes[observation]
                consumer.attribute(attribute_index)
                domain.append(attribute_index)
            consumer.end_group()
            domains.append(domain)
        return domains

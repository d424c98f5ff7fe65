#!/usr/bin/env python3
# config.py
"""Validated parameters of a cluster-based grouping run."""

import math
from dataclasses import dataclass, fields
from typing import Any, Mapping, Optional, Union

from attribute_clustering.distances import DistanceMethod, get_distance_method
from attribute_clustering.errors import ConfigurationError
from attribute_clustering.parallel import select_n_jobs

__all__ = ["GroupingConfig"]

_supported_linkages = ("single", "complete", "average")


@dataclass(frozen=True)
class GroupingConfig:
    """
    Parameters of ClusterBasedGrouping.

    @param threshold: fraction of the tree height below which merges are accepted, in [0, 1]
    @param distance_method: registered distance name or callable d(u, v) -> float
    @param linkage: merge strategy of the clusterer; domains use 'single'
    @param n_jobs: worker count for the score and distance phases (see parallel.select_n_jobs)
    """
    threshold: float = 0.5
    distance_method: Union[str, DistanceMethod] = "jaccard"
    linkage: str = "single"
    n_jobs: Optional[int] = None

    def __post_init__(self):
        threshold = self.threshold
        if isinstance(threshold, bool) or not isinstance(threshold, (int, float)):
            raise ConfigurationError(f"threshold must be a number, got {threshold!r}")
        if math.isnan(threshold) or not 0.0 <= threshold <= 1.0:
            raise ConfigurationError(f"threshold must be within [0, 1], got {threshold}")
        if self.linkage not in _supported_linkages:
            raise ConfigurationError(
                f"Unsupported linkage: {self.linkage!r}. Choose one of {list(_supported_linkages)}."
            )
        get_distance_method(self.distance_method)
        select_n_jobs(self.n_jobs)

    @property
    def distance(self) -> DistanceMethod:
        return get_distance_method(self.distance_method)

    @classmethod
    def from_mapping(cls, options: Mapping[str, Any]) -> "GroupingConfig":
        """
        Build a config from a plain mapping such as a parsed settings file.

        @raises ConfigurationError: for keys that are not config fields
        """
        known = {f.name for f in fields(cls)}
        unknown = sorted(set(options) - known)
        if unknown:
            raise ConfigurationError(f"Unknown grouping options: {unknown}")
        return cls(**dict(options))

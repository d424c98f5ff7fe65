import logging

import numpy as np
import pytest

from attribute_clustering.config import GroupingConfig
from attribute_clustering.errors import ConfigurationError
from attribute_clustering.grouping import (
    ClusterBasedGrouping,
    DomainCollector,
    LoggingProgressReporter,
)
from attribute_clustering.scores import EnrichmentTable

# 6 neighborhoods x 5 attributes: 0/1 and 2/3 are enriched in the same neighborhoods
SCORES = np.array([
    [1.0, 0.9, 0.0, 0.0, 0.0],
    [1.0, 1.0, 0.0, 0.0, 0.0],
    [0.8, 0.7, 0.0, 0.0, 0.0],
    [0.0, 0.0, 1.0, 1.0, 0.0],
    [0.0, 0.0, 0.9, 1.0, 0.0],
    [0.0, 0.0, 0.0, 0.0, 1.0],
])


def every_attribute(attribute_index, type_index):
    return True


class RecordingConsumer:
    def __init__(self):
        self.calls = []

    def start_group(self):
        self.calls.append("start")

    def attribute(self, attribute_index):
        self.calls.append(attribute_index)

    def end_group(self):
        self.calls.append("end")


class RecordingProgress:
    def __init__(self):
        self.messages = []

    def set_status(self, message, *args):
        self.messages.append(message % args if args else message)


def run(scores, attribute_filter=every_attribute, progress=None, **options):
    table = EnrichmentTable(scores)
    consumer = RecordingConsumer()
    grouping = ClusterBasedGrouping(GroupingConfig(**options))
    domains = grouping.group(table, attribute_filter, table.attribute_count, 0, consumer, progress)
    return domains, consumer.calls


def test_groups_attributes_with_shared_neighborhoods():
    domains, calls = run(SCORES, threshold=0.5)

    assert domains == [[0, 1], [2, 3]]
    assert calls == ["start", 0, 1, "end", "start", 2, 3, "end"]


def test_groups_use_original_attribute_indexes():
    domains, _ = run(SCORES, attribute_filter=lambda i, t: i != 0, threshold=0.5)
    assert domains == [[2, 3]]


@pytest.mark.parametrize("n_jobs", [None, 2, -1])
def test_parallelism_does_not_change_domains(n_jobs):
    rng = np.random.default_rng(0)
    scores = rng.uniform(size=(30, 12))
    expected, _ = run(scores, threshold=0.6, distance_method="euclidean")
    domains, _ = run(scores, threshold=0.6, distance_method="euclidean", n_jobs=n_jobs)
    assert domains == expected


def test_domains_are_ordered_by_size():
    rng = np.random.default_rng(1)
    scores = rng.uniform(size=(20, 15))
    domains, _ = run(scores, threshold=0.8, distance_method="correlation")
    sizes = [len(d) for d in domains]
    assert sizes == sorted(sizes, reverse=True)
    flat = [a for d in domains for a in d]
    assert len(flat) == len(set(flat))


def test_threshold_zero_emits_nothing():
    domains, calls = run(SCORES, threshold=0.0)
    assert domains == []
    assert calls == []


def test_injected_distance_method():
    def first_neighborhood(u, v):
        return abs(u[0] - v[0])

    # attribute scores in neighborhood 0: 1.0, 0.9, 0, 0, 0
    domains, _ = run(SCORES, threshold=0.5, distance_method=first_neighborhood)
    assert domains == [[2, 3, 4], [0, 1]]


@pytest.mark.parametrize("selected", [[], [3]])
def test_fewer_than_two_attributes_emit_nothing(selected):
    progress = RecordingProgress()
    domains, calls = run(SCORES, attribute_filter=lambda i, t: i in selected, progress=progress)

    assert domains == []
    assert calls == []
    assert progress.messages == [f"Top attributes: {len(selected)}"]


def test_progress_checkpoints():
    progress = RecordingProgress()
    run(SCORES, progress=progress, threshold=0.5)

    assert progress.messages == [
        "Top attributes: 5",
        "Computing attribute distances...",
        "Computing dissimilarity matrix...",
        "Computing cluster linkages...",
        "Cluster tree height: 1.000000",
        "Total linkages: 4",
        "Assigning clusters...",
    ]


def test_default_progress_goes_to_logging(caplog):
    caplog.set_level(logging.INFO, logger="attribute_clustering.grouping")
    run(SCORES, threshold=0.5)
    assert "Top attributes: 5" in caplog.messages
    assert "Total linkages: 4" in caplog.messages


def test_logging_progress_reporter_uses_given_logger(caplog):
    log = logging.getLogger("grouping-test")
    caplog.set_level(logging.INFO, logger="grouping-test")
    LoggingProgressReporter(log).set_status("Top attributes: %d", 3)
    assert caplog.records[-1].name == "grouping-test"
    assert caplog.records[-1].getMessage() == "Top attributes: 3"


def test_emit_skips_empty_clusters():
    collector = DomainCollector()
    domains = ClusterBasedGrouping.emit([[1, 0], [], [2]], [10, 11, 12], collector)
    assert domains == [[11, 10], [12]]
    assert collector.groups == domains


def test_domain_collector_protocol_misuse():
    collector = DomainCollector()
    with pytest.raises(RuntimeError):
        collector.attribute(1)
    with pytest.raises(RuntimeError):
        collector.end_group()
    collector.start_group()
    with pytest.raises(RuntimeError):
        collector.start_group()


def test_grouping_identifier_and_defaults():
    grouping = ClusterBasedGrouping()
    assert grouping.id == "cluster"
    assert grouping.config == GroupingConfig()


def test_invalid_threshold_is_rejected_before_grouping():
    with pytest.raises(ConfigurationError):
        run(SCORES, threshold=1.5)

import logging

import numpy as np

from attribute_clustering.config import GroupingConfig
from attribute_clustering.grouping import ClusterBasedGrouping, DomainCollector
from attribute_clustering.scores import EnrichmentTable

if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO)

    # 6 neighborhoods x 5 attributes; attributes 0/1 and 2/3 share enrichment patterns
    scores = np.array([
        [1.0, 0.9, 0.0, 0.0, 0.0],
        [1.0, 1.0, 0.0, 0.0, 0.0],
        [0.8, 0.7, 0.0, 0.0, 0.0],
        [0.0, 0.0, 1.0, 1.0, 0.0],
        [0.0, 0.0, 0.9, 1.0, 0.0],
        [0.0, 0.0, 0.0, 0.0, 1.0],
    ])
    table = EnrichmentTable(scores)

    grouping = ClusterBasedGrouping(GroupingConfig(threshold=0.5, distance_method="jaccard", n_jobs=-1))
    collector = DomainCollector()
    grouping.group(table, lambda i, t: True, table.attribute_count, 0, collector)

    for number, attributes in enumerate(collector.groups, start=1):
        print(f"Domain {number}: attributes {attributes}")

"""
blurtools Mapping

Conversion of cell-index clusters back to the hits that produced them.
"""

from .operations import HitCluster, map_cluster, map_clusters

__all__ = [
    'HitCluster',
    'map_cluster',
    'map_clusters',
]

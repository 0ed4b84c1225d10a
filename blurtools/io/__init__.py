"""
blurtools I/O: persistence of clustering results.
"""

from .cluster_store import save_clusters, load_clusters

__all__ = ['save_clusters', 'load_clusters']

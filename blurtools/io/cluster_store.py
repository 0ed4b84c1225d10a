"""
HDF5 storage of clustering results.

Layout:
    /plane_<n>/hits      (N, 4) float64 table: wire, tick, charge, plane
    /plane_<n>/offsets   (n_clusters + 1,) int64, cluster k is hits[offsets[k]:offsets[k+1]]
    /metadata            attributes: the clustering parameters

Author: blurtools developers
"""

import logging
from typing import Dict, List, Mapping, Optional, Tuple

import h5py
import numpy as np

from ..config import BlurredClusteringParams
from ..funcs.mapping import HitCluster
from ..hits import hits_from_array, hits_to_array

logger = logging.getLogger(__name__)

PLANE_PREFIX = "plane_"


def _h5_name(filename: str) -> str:
    filename = str(filename)
    if not filename.endswith('.h5'):
        filename = filename + '.h5'
    return filename


def save_clusters(
    filename: str,
    clusters_by_plane: Mapping[int, List[HitCluster]],
    params: Optional[BlurredClusteringParams] = None,
    compression: Optional[str] = 'gzip',
    compression_opts: Optional[int] = 4) -> str:
    """
    Save clusters to an HDF5 file.

    Args:
        filename: Output filename (with or without .h5 extension)
        clusters_by_plane: plane -> clusters, as returned by BlurredClustering.cluster_hits
        params: parameters used, stored as metadata attributes
        compression: HDF5 compression type ('gzip', 'lzf', None)
        compression_opts: Compression level (1-9 for gzip, ignored otherwise)

    Returns:
        the filename written
    """
    filename = _h5_name(filename)
    if compression != 'gzip':
        compression_opts = None

    with h5py.File(filename, 'w') as f:
        for plane, clusters in clusters_by_plane.items():
            group = f.create_group(f"{PLANE_PREFIX}{int(plane)}")
            table = hits_to_array(hit for cluster in clusters for hit in cluster.hits)
            offsets = np.zeros(len(clusters) + 1, dtype=np.int64)
            offsets[1:] = np.cumsum([cluster.size for cluster in clusters])
            if table.shape[0] > 0:
                group.create_dataset('hits', data=table,
                                     compression=compression, compression_opts=compression_opts)
            else:
                group.create_dataset('hits', data=table)
            group.create_dataset('offsets', data=offsets)
            group.attrs['plane'] = int(plane)
            group.attrs['n_clusters'] = len(clusters)

        meta_group = f.create_group('metadata')
        if params is not None:
            for key, value in params.to_dict().items():
                meta_group.attrs[key] = value

    logger.info("clusters of %d planes saved to %s", len(clusters_by_plane), filename)
    return filename


def load_clusters(filename: str) -> Tuple[Dict[int, List[HitCluster]], Dict]:
    """
    Load clusters written by save_clusters.

    Returns:
        (plane -> clusters, parameter dict; empty if none were stored)
    """
    filename = _h5_name(filename)
    clusters_by_plane: Dict[int, List[HitCluster]] = {}

    with h5py.File(filename, 'r') as f:
        for name in f:
            if not name.startswith(PLANE_PREFIX):
                continue
            group = f[name]
            plane = int(group.attrs['plane'])
            hits = hits_from_array(group['hits'][:])
            offsets = group['offsets'][:]
            clusters_by_plane[plane] = [
                HitCluster(hits=hits[offsets[k]:offsets[k + 1]], plane=plane)
                for k in range(len(offsets) - 1)
            ]

        params = {}
        if 'metadata' in f:
            params = {key: value.item() if hasattr(value, 'item') else value
                      for key, value in f['metadata'].attrs.items()}

    return dict(sorted(clusters_by_plane.items())), params

"""
blurtools

Blurred image clustering of 2D detector hits. Hits of a plane are rasterised
on a (wire, tick) grid, smoothed with a Gaussian kernel, grown into clusters
from the brightest cells and merged when two clusters line up.

Author: blurtools developers
"""

import logging
import sys

from .config import BlurredClusteringParams
from .errors import BlurToolsError, InvalidGeometry, InvalidParameter
from .hits import HitRecord, WireLayout, group_hits_by_plane, remove_excluded_hits
from .pipeline import BlurredClustering, ClusterResult
from .funcs.mapping import HitCluster

__version__ = "0.1.0"

logging.getLogger(__name__).addHandler(logging.NullHandler())

LOG_FORMAT = '%(asctime)s | %(levelname)-8s | %(name)s | %(message)s'


def set_log_level(level=logging.INFO) -> logging.Handler:
    """
    Send blurtools log records at `level` and above to stdout.
    """
    package_logger = logging.getLogger(__name__)
    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(logging.Formatter(LOG_FORMAT, datefmt='%Y-%m-%d %H:%M:%S'))
    handler.setLevel(level)
    package_logger.addHandler(handler)
    package_logger.setLevel(level)
    return handler


__all__ = [
    'BlurredClustering',
    'BlurredClusteringParams',
    'ClusterResult',
    'HitCluster',
    'HitRecord',
    'WireLayout',
    'group_hits_by_plane',
    'remove_excluded_hits',
    'BlurToolsError',
    'InvalidGeometry',
    'InvalidParameter',
    'set_log_level',
]

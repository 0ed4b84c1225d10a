"""
blurtools Clustering

Seeded region growing on blurred plane images, with neighbour-count,
time-consistency, charge and size filters.
"""

# Import main classes
from .operations import ClusterFinder, CellCluster, FinderDiagnostics
from .constants import UNASSIGNED, REJECTED

# Import core functions for advanced users
from .core_functions import (
    count_neighbours_nb_core,
    count_neighbours_many_nb_core,
    count_neighbours_np_core,
    dominant_tick_np_core,
)

# Define public API
__all__ = [
    'ClusterFinder',
    'CellCluster',
    'FinderDiagnostics',
    'UNASSIGNED', 'REJECTED',
    # Core functions for advanced use
    'count_neighbours_nb_core',
    'count_neighbours_many_nb_core',
    'count_neighbours_np_core',
    'dominant_tick_np_core',
]

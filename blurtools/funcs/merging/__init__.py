"""
blurtools Merging

PCA-based merging of clusters that share a common linear trajectory.
"""

# Import main classes
from .operations import ClusterMerger

# Import core functions for advanced users
from .core_functions import (
    covariance_2d_nb_core,
    covariance_2d_np_core,
    eigenvalues_symmetric_2x2_nb_core,
    eigenvalues_symmetric_2x2_np_core,
    principal_fraction_core,
    find_root,
    union_nodes,
)

# Define public API
__all__ = [
    'ClusterMerger',
    # Core functions for advanced use
    'covariance_2d_nb_core',
    'covariance_2d_np_core',
    'eigenvalues_symmetric_2x2_nb_core',
    'eigenvalues_symmetric_2x2_np_core',
    'principal_fraction_core',
    'find_root',
    'union_nodes',
]

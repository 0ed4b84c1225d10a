"""
Type signatures and constants for PCA-based cluster merging.
"""
from numba import types

##############################################################################
# Global constants
##############################################################################

WIRE, TICK = 0, 1
EPSILON = 1e-12    # total variance below this is treated as a degenerate point set

##############################################################################
# Type signatures for Numba functions
##############################################################################

# Population covariance of an (N, 2) point set
sig_covariance_2d = types.float64[:, :](
    types.float64[:, :],   # points (N, 2)
)

# Eigenvalues of a symmetric 2x2 matrix, descending
sig_eigenvalues_symmetric_2x2 = types.float64[:](
    types.float64[:, :],   # matrix (2, 2)
)

# Union-Find operations
sig_union_find_64 = types.int64(
    types.int64[:],  # parent array
    types.int64      # node index
)

sig_union_64 = types.void(
    types.int64[:],  # parent array
    types.int64,     # node1
    types.int64      # node2
)

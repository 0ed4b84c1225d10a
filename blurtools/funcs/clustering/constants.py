"""
Type signatures and constants for region-growing clustering.
Centralizes all Numba type definitions for the cluster finder.
"""
from numba import types

##############################################################################
# Global constants
##############################################################################

# Grid axes
WIRE, TICK = 0, 1

# Cell labels
UNASSIGNED = -1     # free to join a cluster
REJECTED = -2       # taken by a cluster, then filtered out of it


##############################################################################
# Type signatures for Numba functions
##############################################################################

# Number of 8-neighbours of one cell carrying a given label
sig_count_neighbours = types.int64(
    types.int64[:, :],  # labels (Nw, Nt)
    types.int64,        # wire bin
    types.int64,        # tick bin
    types.int64         # label
)

# Neighbour counts for a list of cells
sig_count_neighbours_many = types.void(
    types.int64[:, :],  # labels (Nw, Nt)
    types.int64[:],     # wire bins (N,)
    types.int64[:],     # tick bins (N,)
    types.int64,        # label
    types.int64[:]      # out counts (N,)
)

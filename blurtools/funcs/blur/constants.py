"""
Type signatures and constants for Gaussian blurring.
Centralizes all Numba type definitions.
"""
from numba import types
import numpy as np

##############################################################################
# Global constants
##############################################################################

WIRE, TICK = 0, 1              # kernel / image axes
KERNEL_DTYPE = np.float64      # kernels are always built in double precision

##############################################################################
# Type signatures for Numba functions
##############################################################################

# Direct 2D convolution with zero padding
sig_convolve_2d_32 = types.void(
    types.float32[:, :],   # image (Nw, Nt)
    types.float32[:, :],   # kernel (2*rw+1, 2*rt+1)
    types.float32[:, :],   # out (Nw, Nt)
)
sig_convolve_2d_64 = types.void(
    types.float64[:, :],   # image (Nw, Nt)
    types.float64[:, :],   # kernel (2*rw+1, 2*rt+1)
    types.float64[:, :],   # out (Nw, Nt)
)

"""
blurtools Blur Module

Gaussian kernel construction with single-entry memoisation, and 2D
convolution of plane images (numba direct kernel or scipy.signal).
"""

# Import main classes
from .operations import (
    BlurOperations,
    GaussianKernelCache,
    KernelKey,
    shared_kernel_cache,
)

# Import core functions for advanced users
from .core_functions import (
    gaussian_kernel_np_core,
    convolve_2d_nb_core,
)

# Define public API
__all__ = [
    'BlurOperations',
    'GaussianKernelCache',
    'KernelKey',
    'shared_kernel_cache',
    # Core functions for advanced use
    'gaussian_kernel_np_core',
    'convolve_2d_nb_core',
]

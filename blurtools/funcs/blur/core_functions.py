"""
Core functions for Gaussian blurring of plane images.
The convolution is the performance-critical kernel and is JIT compiled.

Author: blurtools developers
"""
import numpy as np
from numba import njit, prange
from .constants import *

##########################################################################################
# Kernel construction
##########################################################################################

def gaussian_kernel_np_core(wire_radius, tick_radius, sigma):
    """
    Normalised 2D Gaussian table.

    Args:
        wire_radius, tick_radius: half-widths, table is (2*rw+1, 2*rt+1)
        sigma: Gaussian width in bins (same in both axes)

    Returns:
        kernel whose weights sum to 1
    """
    dw = np.arange(-wire_radius, wire_radius + 1, dtype=KERNEL_DTYPE)[:, np.newaxis]
    dt = np.arange(-tick_radius, tick_radius + 1, dtype=KERNEL_DTYPE)[np.newaxis, :]
    inv_two_sigma_sq = 1.0 / (2.0 * sigma * sigma)
    kernel = np.exp(-(dw * dw + dt * dt) * inv_two_sigma_sq)
    return kernel / np.sum(kernel)

##########################################################################################
# Convolution
##########################################################################################

@njit([sig_convolve_2d_32, sig_convolve_2d_64], parallel=True, cache=True)
def convolve_2d_nb_core(image, kernel, out):
    """
    Direct 2D convolution, same-size output, zero padding.

    out[i, j] = sum_ab kernel[a, b] * image[i + rw - a, j + rt - b]
    with taps falling outside the image contributing nothing.

    Args:
        image: input (Nw, Nt)
        kernel: odd-sized kernel (2*rw+1, 2*rt+1)
        out: output (Nw, Nt)
    """
    nw, nt = image.shape
    kw, kt = kernel.shape
    rw = kw // 2
    rt = kt // 2

    for i in prange(nw):
        for j in range(nt):
            acc = 0.0
            for a in range(kw):
                ii = i + rw - a
                if ii < 0 or ii >= nw:
                    continue
                for b in range(kt):
                    jj = j + rt - b
                    if jj < 0 or jj >= nt:
                        continue
                    acc += kernel[a, b] * image[ii, jj]
            out[i, j] = acc

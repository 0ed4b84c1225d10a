"""
blurtools Blur Operations

Gaussian blurring of plane images. Building the kernel is the expensive part
when the blur parameters stay the same from event to event, so kernels are
memoised in a single-entry cache keyed by (wire radius, tick radius, sigma).

Author: blurtools developers
"""

import logging
import math
import threading
import warnings
from typing import NamedTuple, Optional

import numpy as np
from scipy import signal

from ...errors import InvalidParameter
from ..grid import Grid
from .constants import *
from .core_functions import *

logger = logging.getLogger(__name__)

# numba's workqueue threading layer does not allow concurrent parallel launches
_PARALLEL_LAUNCH_LOCK = threading.Lock()


class KernelKey(NamedTuple):
    wire_radius: int
    tick_radius: int
    sigma: float


def _kernel_key(wire_radius, tick_radius, sigma) -> KernelKey:
    radii = []
    for name, radius in (("wire_radius", wire_radius), ("tick_radius", tick_radius)):
        try:
            as_float = float(radius)
        except (TypeError, ValueError):
            raise InvalidParameter(f"{name} must be an integer, got {radius!r}") from None
        if isinstance(radius, bool) or not math.isfinite(as_float) or as_float != int(as_float):
            raise InvalidParameter(f"{name} must be an integer, got {radius!r}")
        if as_float < 0:
            raise InvalidParameter(f"{name} must be non-negative, got {radius!r}")
        radii.append(int(as_float))
    try:
        sigma = float(sigma)
    except (TypeError, ValueError):
        raise InvalidParameter(f"sigma must be a number, got {sigma!r}") from None
    if not math.isfinite(sigma) or sigma <= 0:
        raise InvalidParameter(f"sigma must be positive and finite, got {sigma!r}")
    return KernelKey(radii[0], radii[1], sigma)


class GaussianKernelCache:
    """
    Single-entry memoisation of Gaussian kernels.

    A request with the same key as the last computed kernel returns that
    kernel (read-only, no recomputation). Any other key rebuilds the table
    and replaces the entry. Lookups and rebuilds hold a lock, so one cache
    can be shared by threads clustering different planes.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._entry = None          # (KernelKey, kernel)
        self.n_computed = 0
        self.n_hits = 0

    @property
    def last_key(self) -> Optional[KernelKey]:
        entry = self._entry
        return entry[0] if entry is not None else None

    def get_kernel(self, wire_radius: int, tick_radius: int, sigma: float) -> np.ndarray:
        """
        Return the (2*wire_radius+1, 2*tick_radius+1) Gaussian kernel.

        Raises:
            InvalidParameter: negative or non-integer radius, non-positive sigma
        """
        key = _kernel_key(wire_radius, tick_radius, sigma)

        # counters and entry change together
        with self._lock:
            entry = self._entry
            if entry is not None and entry[0] == key:
                self.n_hits += 1
                return entry[1]
            kernel = gaussian_kernel_np_core(key.wire_radius, key.tick_radius, key.sigma)
            kernel.setflags(write=False)
            self._entry = (key, kernel)
            self.n_computed += 1

        logger.debug("built Gaussian kernel %s, shape %s", key, kernel.shape)
        return kernel

    def clear(self) -> None:
        with self._lock:
            self._entry = None


_SHARED_CACHE = GaussianKernelCache()


def shared_kernel_cache() -> GaussianKernelCache:
    """Process-wide kernel cache used when no cache is passed explicitly."""
    return _SHARED_CACHE


class BlurOperations:
    """
    Gaussian blurring of Grid images via direct 2D convolution.
    """

    def __init__(
        self,
        use_numba: bool = True,
        precision: str = 'float64',
        kernel_cache: Optional[GaussianKernelCache] = None) -> None:
        """
        Args:
            use_numba: Use the JIT convolution kernel, otherwise scipy.signal
            precision: Numerical precision ('float32' or 'float64')
            kernel_cache: Kernel cache to use. Defaults to the shared cache.
        """
        if precision not in ['float32', 'float64']:
            raise InvalidParameter("precision must be 'float32' or 'float64'")

        self.use_numba = use_numba
        self.precision = precision
        self.float_dtype = np.float32 if precision == 'float32' else np.float64
        self.kernel_cache = kernel_cache if kernel_cache is not None else shared_kernel_cache()

    def convolve(
        self,
        image: np.ndarray,
        kernel: np.ndarray) -> np.ndarray:
        """
        Convolve an image with an odd-sized kernel.

        Output has the image's shape; kernel taps that fall outside the
        image contribute zero (no wrap-around, no reflection).

        Args:
            image: (Nw, Nt) array
            kernel: (2*rw+1, 2*rt+1) array

        Returns:
            new (Nw, Nt) array
        """
        if image.ndim != 2 or kernel.ndim != 2:
            raise ValueError("image and kernel must be 2D arrays")
        if kernel.shape[WIRE] % 2 == 0 or kernel.shape[TICK] % 2 == 0:
            raise ValueError(f"kernel shape must be odd in both axes, got {kernel.shape}")

        image = np.ascontiguousarray(image, dtype=self.float_dtype)
        # cached kernels are read-only; the JIT signatures take writeable arrays
        kernel = np.array(kernel, dtype=self.float_dtype, order='C')
        if image.size == 0:
            return image.copy()

        if not self.use_numba:
            return self._convolve_scipy(image, kernel)

        out = np.empty_like(image)
        try:
            with _PARALLEL_LAUNCH_LOCK:
                convolve_2d_nb_core(image, kernel, out)
        except Exception as e:
            warnings.warn(
                f"Numba convolution failed ({e}), falling back to scipy implementation",
                RuntimeWarning)
            return self._convolve_scipy(image, kernel)
        return out

    def _convolve_scipy(
        self,
        image: np.ndarray,
        kernel: np.ndarray) -> np.ndarray:
        """
        Fallback scipy implementation.
        """
        out = signal.convolve2d(image, kernel, mode='same', boundary='fill', fillvalue=0)
        return out.astype(self.float_dtype, copy=False)

    def blur(
        self,
        grid: Grid,
        wire_radius: int,
        tick_radius: int,
        sigma: float) -> Grid:
        """
        Blur a grid with the cached Gaussian kernel for (wire_radius,
        tick_radius, sigma). The input grid is left untouched.
        """
        kernel = self.kernel_cache.get_kernel(wire_radius, tick_radius, sigma)
        return grid.with_values(self.convolve(grid.values, kernel))

import numpy as np
import pytest
from joblib import Parallel, delayed

from blurtools import InvalidParameter
from blurtools.funcs.blur import (
    BlurOperations,
    GaussianKernelCache,
    KernelKey,
    gaussian_kernel_np_core,
)
from blurtools.funcs.grid import Grid


# --- kernel ---

def test_kernel_is_normalised_gaussian():
    kernel = gaussian_kernel_np_core(2, 3, 1.5)
    assert kernel.shape == (5, 7)
    assert kernel.sum() == pytest.approx(1.0)
    # peak in the centre, symmetric in both axes
    assert kernel.argmax() == np.ravel_multi_index((2, 3), kernel.shape)
    np.testing.assert_allclose(kernel, kernel[::-1, ::-1])
    # ratio of neighbouring weights follows exp(-d^2 / 2 sigma^2)
    assert kernel[3, 3] / kernel[2, 3] == pytest.approx(np.exp(-1.0 / (2 * 1.5 ** 2)))


def test_zero_radius_kernel_is_identity():
    np.testing.assert_array_equal(gaussian_kernel_np_core(0, 0, 1.0), [[1.0]])


def test_cache_reuses_kernel_for_same_key(kernel_cache):
    first = kernel_cache.get_kernel(1, 1, 1.0)
    second = kernel_cache.get_kernel(1, 1, 1.0)
    assert second is first
    assert kernel_cache.n_computed == 1
    assert kernel_cache.n_hits == 1
    assert kernel_cache.last_key == KernelKey(1, 1, 1.0)
    assert not first.flags.writeable


def test_cache_rebuilds_on_new_sigma(kernel_cache):
    first = kernel_cache.get_kernel(1, 1, 1.0)
    second = kernel_cache.get_kernel(1, 1, 2.0)
    assert second is not first
    assert kernel_cache.n_computed == 2
    assert kernel_cache.last_key == KernelKey(1, 1, 2.0)
    assert not np.allclose(first, second)
    # going back to the first sigma is a rebuild too: only the last key is kept
    kernel_cache.get_kernel(1, 1, 1.0)
    assert kernel_cache.n_computed == 3


def test_cache_counts_every_request_across_threads(kernel_cache):
    def fetch(n):
        for _ in range(n):
            kernel_cache.get_kernel(2, 3, 1.5)

    Parallel(n_jobs=8, prefer="threads")(delayed(fetch)(200) for _ in range(8))
    assert kernel_cache.n_computed == 1
    assert kernel_cache.n_computed + kernel_cache.n_hits == 1600


def test_cache_clear(kernel_cache):
    kernel_cache.get_kernel(2, 2, 1.0)
    kernel_cache.clear()
    assert kernel_cache.last_key is None
    kernel_cache.get_kernel(2, 2, 1.0)
    assert kernel_cache.n_computed == 2


@pytest.mark.parametrize("args", [(-1, 1, 1.0), (1, -1, 1.0), (1, 1, 0.0),
                                  (1, 1, -2.0), (1, 1, float("inf")), (1.5, 1, 1.0),
                                  (float("nan"), 1, 1.0), ("wide", 1, 1.0), (1, None, 1.0),
                                  (True, 1, 1.0), (1, 1, "narrow")])
def test_invalid_kernel_parameters(kernel_cache, args):
    with pytest.raises(InvalidParameter):
        kernel_cache.get_kernel(*args)
    assert kernel_cache.n_computed == 0


# --- convolution ---

def test_zero_image_stays_zero(use_numba, kernel_cache):
    ops = BlurOperations(use_numba=use_numba, kernel_cache=kernel_cache)
    out = ops.convolve(np.zeros((8, 9)), kernel_cache.get_kernel(2, 2, 1.0))
    assert out.shape == (8, 9)
    assert not out.any()


def test_single_cell_charge_is_conserved(use_numba, kernel_cache):
    image = np.zeros((11, 13))
    image[5, 6] = 100.0
    ops = BlurOperations(use_numba=use_numba, kernel_cache=kernel_cache)
    kernel = kernel_cache.get_kernel(2, 3, 1.0)
    out = ops.convolve(image, kernel)

    assert out.sum() == pytest.approx(100.0)
    # the footprint is the kernel itself, centred on the hit
    np.testing.assert_allclose(out[3:8, 3:10], 100.0 * kernel)
    assert out[0, 0] == 0.0


def test_edges_are_zero_padded(use_numba, kernel_cache):
    image = np.zeros((4, 4))
    image[0, 0] = 1.0
    ops = BlurOperations(use_numba=use_numba, kernel_cache=kernel_cache)
    kernel = kernel_cache.get_kernel(1, 1, 1.0)
    out = ops.convolve(image, kernel)

    # taps that would fall off the grid are lost, nothing wraps around
    assert out.sum() == pytest.approx(kernel[1:, 1:].sum())
    assert out[-1, -1] == 0.0
    assert out[0, -1] == 0.0


def test_numba_matches_scipy(kernel_cache):
    rng = np.random.default_rng(7)
    image = rng.random((17, 23))
    kernel = kernel_cache.get_kernel(3, 2, 1.7)
    fast = BlurOperations(use_numba=True, kernel_cache=kernel_cache).convolve(image, kernel)
    slow = BlurOperations(use_numba=False, kernel_cache=kernel_cache).convolve(image, kernel)
    np.testing.assert_allclose(fast, slow, rtol=1e-10, atol=1e-12)


def test_kernel_larger_than_image(use_numba, kernel_cache):
    image = np.array([[2.0, 0.0]])
    ops = BlurOperations(use_numba=use_numba, kernel_cache=kernel_cache)
    kernel = kernel_cache.get_kernel(3, 3, 2.0)
    out = ops.convolve(image, kernel)
    np.testing.assert_allclose(out, 2.0 * kernel[3:4, 3:5])


def test_even_kernel_rejected(kernel_cache):
    with pytest.raises(ValueError):
        BlurOperations(kernel_cache=kernel_cache).convolve(np.zeros((3, 3)), np.ones((2, 3)))


def test_blur_keeps_grid_geometry(use_numba, kernel_cache):
    values = np.zeros((5, 5))
    values[2, 2] = 10.0
    grid = Grid(values=values, wire_offset=100, tick_offset=7)
    ops = BlurOperations(use_numba=use_numba, kernel_cache=kernel_cache)

    blurred = ops.blur(grid, 1, 1, 1.0)
    assert blurred.shape == grid.shape
    assert (blurred.wire_offset, blurred.tick_offset) == (100, 7)
    assert blurred.values.sum() == pytest.approx(10.0)
    assert grid.values[2, 2] == 10.0  # input untouched

    ops.blur(grid, 1, 1, 1.0)
    assert kernel_cache.n_computed == 1


def test_blur_of_empty_grid(use_numba, kernel_cache):
    grid = Grid(values=np.zeros((0, 0)))
    blurred = BlurOperations(use_numba=use_numba, kernel_cache=kernel_cache).blur(grid, 2, 2, 1.0)
    assert blurred.shape == (0, 0)

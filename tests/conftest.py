import pytest

from blurtools.funcs.blur import GaussianKernelCache


@pytest.fixture(params=[True, False], ids=["numba", "numpy"])
def use_numba(request):
    """Run a test against both the JIT kernels and the numpy/scipy paths."""
    return request.param


@pytest.fixture
def kernel_cache():
    """A private kernel cache, so tests do not see each other's kernels."""
    return GaussianKernelCache()

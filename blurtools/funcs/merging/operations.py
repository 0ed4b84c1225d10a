"""
blurtools Merging Operations

Joins clusters that lie along a common line. For each pair of large enough
clusters the (wire, tick) coordinates of all their cells are pooled and a 2D
principal component analysis is run; if the principal axis carries more than
`merging_threshold` of the total variance, the pair is merged.

Author: blurtools developers
"""

import logging
import warnings
from typing import Dict, List, Optional, Sequence

import numpy as np

from ...config import BlurredClusteringParams
from ...constants import DEFAULT_MERGING_THRESHOLD, DEFAULT_MIN_MERGE_CLUSTER_SIZE
from ...errors import InvalidParameter
from ..clustering import CellCluster
from ..grid import Grid
from .constants import *
from .core_functions import *

logger = logging.getLogger(__name__)


class ClusterMerger:
    """
    PCA merging of cell clusters, repeated to a fixed point.
    """

    def __init__(
        self,
        min_merge_cluster_size: int = DEFAULT_MIN_MERGE_CLUSTER_SIZE,
        merging_threshold: float = DEFAULT_MERGING_THRESHOLD,
        use_numba: bool = True) -> None:
        """
        Args:
            min_merge_cluster_size: both clusters need at least this many hits
                (cells, for clusters built without an occupancy mask)
            merging_threshold: principal-axis variance fraction to exceed
            use_numba: Use the JIT PCA kernels
        """
        if min_merge_cluster_size < 0:
            raise InvalidParameter("min_merge_cluster_size must be non-negative")
        if not np.isfinite(merging_threshold) or merging_threshold < 0:
            raise InvalidParameter("merging_threshold must be finite and non-negative")

        self.min_merge_cluster_size = int(min_merge_cluster_size)
        self.merging_threshold = float(merging_threshold)
        self.use_numba = use_numba
        self.n_merges = 0

    @classmethod
    def from_params(cls, params: BlurredClusteringParams, use_numba: bool = True) -> "ClusterMerger":
        return cls(
            min_merge_cluster_size=params.min_merge_cluster_size,
            merging_threshold=params.merging_threshold,
            use_numba=use_numba)

    def eigenvalues(self, points: np.ndarray) -> np.ndarray:
        """
        Eigenvalues (descending) of the covariance of an (N, 2) point set.
        """
        points = np.ascontiguousarray(points, dtype=np.float64)
        if points.ndim != 2 or points.shape[1] != 2:
            raise ValueError("points must have shape (N, 2)")
        if points.shape[0] == 0:
            return np.zeros(2, dtype=np.float64)

        if self.use_numba:
            try:
                return eigenvalues_symmetric_2x2_nb_core(covariance_2d_nb_core(points))
            except Exception as e:
                warnings.warn(
                    f"Numba PCA failed ({e}), falling back to numpy implementation",
                    RuntimeWarning)
                self.use_numba = False
        return eigenvalues_symmetric_2x2_np_core(covariance_2d_np_core(points))

    def principal_fraction(self, points: np.ndarray) -> float:
        """
        Fraction of the variance of `points` along their principal axis.
        """
        return principal_fraction_core(self.eigenvalues(points))

    @staticmethod
    def _merge_size(cluster: CellCluster) -> int:
        # hits when the cluster knows them, cells otherwise
        return cluster.n_hits if cluster.n_hits is not None else cluster.size

    def should_merge(
        self,
        first: CellCluster,
        second: CellCluster,
        grid: Grid) -> bool:
        """
        Pairwise merge decision for two clusters on the same grid.
        """
        if (self._merge_size(first) < self.min_merge_cluster_size
                or self._merge_size(second) < self.min_merge_cluster_size):
            return False
        cells = sorted(first.cells + second.cells)
        return self.principal_fraction(grid.coordinates(cells)) > self.merging_threshold

    def merge(
        self,
        clusters: Sequence[CellCluster],
        grid: Grid) -> List[CellCluster]:
        """
        Merge clusters until no pair passes the merge test.

        Each pass tests every pair of the current clusters and joins the
        qualifying pairs with union-find; merged clusters are re-tested in
        the next pass. Clusters are ordered by their lowest cell before each
        pass, so the result depends only on the set of input clusters.

        Returns:
            clusters ordered by lowest cell index
        """
        current = sorted(clusters, key=CellCluster.first_cell)
        self.n_merges = 0

        while len(current) > 1:
            n_clusters = len(current)
            parent = np.arange(n_clusters, dtype=np.int64)
            n_joined = 0
            for i in range(n_clusters):
                for j in range(i + 1, n_clusters):
                    if self.should_merge(current[i], current[j], grid):
                        union_nodes(parent, i, j)
                        n_joined += 1
            if n_joined == 0:
                break

            groups: Dict[int, List[CellCluster]] = {}
            for i in range(n_clusters):
                groups.setdefault(int(find_root(parent, i)), []).append(current[i])

            merged = [self._combine(members) for members in groups.values()]
            self.n_merges += n_clusters - len(merged)
            logger.debug("merge pass joined %d clusters into %d",
                         n_clusters, len(merged))
            current = sorted(merged, key=CellCluster.first_cell)

        return current

    @staticmethod
    def _combine(members: List[CellCluster]) -> CellCluster:
        if len(members) == 1:
            return members[0]
        cells = [cell for member in members for cell in member.cells]
        brightest = max(members, key=lambda c: (c.seed_value, -c.seed))
        n_hits = None
        if all(member.n_hits is not None for member in members):
            n_hits = sum(member.n_hits for member in members)
        return CellCluster(
            cells=cells,
            seed=brightest.seed,
            seed_value=brightest.seed_value,
            n_hits=n_hits)

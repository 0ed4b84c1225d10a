"""
blurtools Blurred Clustering Pipeline

Runs the full chain on the hits of one plane:

    hits -> grid -> Gaussian blur -> region growing -> PCA merging -> hit clusters

and drives it over all planes of an event, optionally in parallel.

Author: blurtools developers
"""

import logging
from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Optional

from joblib import Parallel, delayed

from .config import BlurredClusteringParams
from .constants import DUPLICATE_LAST
from .funcs.blur import BlurOperations, GaussianKernelCache
from .funcs.clustering import CellCluster, ClusterFinder
from .funcs.grid import CellToHitMap, Grid, GridOperations
from .funcs.mapping import HitCluster, map_clusters
from .funcs.merging import ClusterMerger
from .hits import HitRecord, group_hits_by_plane, remove_excluded_hits

logger = logging.getLogger(__name__)


@dataclass
class ClusterResult:
    """
    Output of one plane. `clusters` is the cluster set; the grids and the
    back-map are kept for read-only consumers (e.g. event displays).
    `cell_clusters` are the merged cell clusters before the min_size cut.
    """
    clusters: List[HitCluster]
    grid: Grid
    blurred: Grid
    cell_to_hit: CellToHitMap
    cell_clusters: List[CellCluster] = field(default_factory=list)

    @property
    def n_clusters(self) -> int:
        return len(self.clusters)


class BlurredClustering:
    """
    Blurred image clustering of detector hits.

    Only the kernel cache outlives a call; every grid and back-map is local
    to the plane being clustered.
    """

    def __init__(
        self,
        params: Optional[BlurredClusteringParams] = None,
        use_numba: bool = True,
        kernel_cache: Optional[GaussianKernelCache] = None,
        duplicate_policy: str = DUPLICATE_LAST,
        precision: str = 'float64') -> None:
        """
        Args:
            params: clustering parameters, defaults if None
            use_numba: Use the JIT kernels (with numpy/scipy fallbacks)
            kernel_cache: kernel cache, the process-wide one if None
            duplicate_policy: back-map policy for hits sharing a cell
            precision: 'float32' or 'float64' images
        """
        self.params = params if params is not None else BlurredClusteringParams()
        self.use_numba = use_numba
        self.grid_ops = GridOperations(duplicate_policy=duplicate_policy, precision=precision)
        self.blur_ops = BlurOperations(
            use_numba=use_numba, precision=precision, kernel_cache=kernel_cache)

    @property
    def kernel_cache(self) -> GaussianKernelCache:
        return self.blur_ops.kernel_cache

    def cluster_plane(self, hits: Iterable[HitRecord]) -> ClusterResult:
        """
        Cluster the hits of a single plane.

        Raises:
            InvalidGeometry: a hit has no finite grid position
        """
        params = self.params
        hits = list(hits)

        grid, cell_to_hit = self.grid_ops.build(
            hits, margin=(params.blur_wire, params.blur_tick))
        blurred = self.blur_ops.blur(
            grid, params.blur_wire, params.blur_tick, params.blur_sigma)

        # finder and merger hold per-call state; min_size applies to the
        # final hit clusters only, after merging
        finder = ClusterFinder(params.replace(min_size=0), use_numba=self.use_numba)
        cell_clusters = finder.find_clusters(
            blurred, occupancy=cell_to_hit.occupancy(grid.n_cells))
        merger = ClusterMerger.from_params(params, use_numba=self.use_numba)
        cell_clusters = merger.merge(cell_clusters, blurred)

        clusters = map_clusters(cell_clusters, cell_to_hit, min_size=params.min_size)
        logger.info("%d hits -> %d clusters (%d merges)",
                    len(hits), len(clusters), merger.n_merges)
        return ClusterResult(
            clusters=clusters,
            grid=grid,
            blurred=blurred,
            cell_to_hit=cell_to_hit,
            cell_clusters=cell_clusters)

    def cluster_hits(
        self,
        hits: Iterable[HitRecord],
        excluded: Optional[Iterable[HitRecord]] = None,
        n_jobs: int = 1) -> Dict[int, List[HitCluster]]:
        """
        Cluster an event: drop excluded hits, split by plane and cluster
        every plane independently.

        Args:
            hits: hits of all planes
            excluded: hits to leave out (e.g. already on tracks)
            n_jobs: planes processed concurrently (joblib threads; -1 = all cores)

        Returns:
            plane -> list of hit clusters
        """
        planes = group_hits_by_plane(remove_excluded_hits(hits, excluded))
        if not planes:
            return {}

        if n_jobs == 1 or len(planes) == 1:
            results = [self.cluster_plane(plane_hits) for plane_hits in planes.values()]
        else:
            # threads share the (locked) kernel cache
            results = Parallel(n_jobs=n_jobs, prefer="threads")(
                delayed(self.cluster_plane)(plane_hits) for plane_hits in planes.values())

        return {plane: result.clusters for plane, result in zip(planes, results)}

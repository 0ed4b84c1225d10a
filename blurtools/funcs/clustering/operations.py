"""
blurtools Clustering Operations

Region growing on a blurred plane image. Seeds are the brightest cells;
clusters grow into neighbouring cells that are supported by enough cells
already in the cluster, then are pruned by neighbour count, time
consistency and charge, and finally kept only if large enough.

Author: blurtools developers
"""

import logging
import warnings
from dataclasses import dataclass
from typing import List, Optional

import numpy as np

from ...config import BlurredClusteringParams
from ..grid import Grid
from .constants import *
from .core_functions import *

logger = logging.getLogger(__name__)


@dataclass
class CellCluster:
    """
    A cluster of grid cells, in the order growth visited them.
    """
    cells: List[int]
    seed: int = -1
    seed_value: float = 0.0
    n_hits: Optional[int] = None   # members carrying a real hit, when known

    @property
    def size(self) -> int:
        return len(self.cells)

    def coordinates(self, grid: Grid) -> np.ndarray:
        return grid.coordinates(self.cells)

    def time_span(self, grid: Grid) -> int:
        if not self.cells:
            return 0
        ticks = self.coordinates(grid)[:, TICK]
        return int(ticks.max() - ticks.min())

    def first_cell(self) -> int:
        return min(self.cells)


@dataclass
class FinderDiagnostics:
    n_seeds: int = 0
    n_grown: int = 0
    n_kept: int = 0
    dropped_neighbours: int = 0
    dropped_time: int = 0
    dropped_charge: int = 0
    dropped_small: int = 0


class ClusterFinder:
    """
    Seeded region growing with neighbour-count gating.

    Parameters used: min_seed, cluster_wire_distance, cluster_tick_distance,
    neighbours_threshold, min_neighbours, time_threshold, charge_threshold,
    min_size.
    """

    def __init__(
        self,
        params: Optional[BlurredClusteringParams] = None,
        use_numba: bool = True) -> None:
        self.params = params if params is not None else BlurredClusteringParams()
        self.use_numba = use_numba
        self.diagnostics = FinderDiagnostics()

    def find_clusters(
        self,
        blurred: Grid,
        occupancy: Optional[np.ndarray] = None) -> List[CellCluster]:
        """
        Cluster a blurred grid.

        Args:
            blurred: blurred plane image
            occupancy: optional flat boolean mask of cells holding a real hit.
                When given, min_size is applied to the number of such cells
                in a cluster (the number of hits it will map back to).

        Returns:
            clusters in seed order, each non-empty
        """
        self.diagnostics = FinderDiagnostics()
        values = blurred.values
        if values.size == 0:
            return []
        if occupancy is not None:
            occupancy = np.asarray(occupancy, dtype=np.bool_).ravel()
            if occupancy.size != values.size:
                raise ValueError(
                    f"occupancy has {occupancy.size} cells, grid has {values.size}")

        n_ticks = values.shape[TICK]
        labels = np.full(values.shape, UNASSIGNED, dtype=np.int64)
        clusters: List[CellCluster] = []

        for seed in self._ordered_seeds(values):
            seed_w, seed_t = divmod(int(seed), n_ticks)
            if labels[seed_w, seed_t] != UNASSIGNED:
                continue

            label = len(clusters)
            members = self._grow(values, labels, seed_w, seed_t, label)
            self.diagnostics.n_grown += 1
            members = self._prune(values, labels, members, label, blurred.tick_offset)
            if not members:
                continue

            cells = [w * n_ticks + t for w, t in members]
            n_hits = int(np.count_nonzero(occupancy[cells])) if occupancy is not None else None
            size = n_hits if n_hits is not None else len(cells)
            if size < self.params.min_size:
                self.diagnostics.dropped_small += 1
                for w, t in members:
                    labels[w, t] = REJECTED
                continue

            clusters.append(CellCluster(
                cells=cells,
                seed=int(seed),
                seed_value=float(values[seed_w, seed_t]),
                n_hits=n_hits))

        self.diagnostics.n_kept = len(clusters)
        logger.debug("%d seeds, %d grown, %d clusters kept",
                     self.diagnostics.n_seeds, self.diagnostics.n_grown, len(clusters))
        return clusters

    def _ordered_seeds(self, values: np.ndarray) -> np.ndarray:
        """
        Cells above min_seed, brightest first, ties by ascending cell index.
        """
        flat = values.ravel()
        seeds = np.flatnonzero(flat > self.params.min_seed)
        # lexsort sorts by the last key first
        order = np.lexsort((seeds, -flat[seeds]))
        self.diagnostics.n_seeds = int(seeds.size)
        return seeds[order]

    def _count(self, labels, wire_bin, tick_bin, label) -> int:
        if self.use_numba:
            return count_neighbours_nb_core(labels, wire_bin, tick_bin, label)
        return count_neighbours_np_core(labels, wire_bin, tick_bin, label)

    def _grow(self, values, labels, seed_w, seed_t, label):
        """
        Grow from a seed until a full sweep over the members adds nothing.
        """
        nw, nt = values.shape
        dist_w = self.params.cluster_wire_distance
        dist_t = self.params.cluster_tick_distance
        threshold = self.params.neighbours_threshold

        labels[seed_w, seed_t] = label
        members = [(seed_w, seed_t)]

        try:
            added = True
            while added:
                added = False
                i = 0
                while i < len(members):
                    mw, mt = members[i]
                    i += 1
                    for w in range(max(mw - dist_w, 0), min(mw + dist_w + 1, nw)):
                        for t in range(max(mt - dist_t, 0), min(mt + dist_t + 1, nt)):
                            if labels[w, t] != UNASSIGNED or values[w, t] <= 0:
                                continue
                            if self._count(labels, w, t, label) >= threshold:
                                labels[w, t] = label
                                members.append((w, t))
                                added = True
        except Exception as e:
            if not self.use_numba:
                raise
            warnings.warn(
                f"Numba neighbour counting failed ({e}), falling back to numpy implementation",
                RuntimeWarning)
            self.use_numba = False
            for w, t in members:
                labels[w, t] = UNASSIGNED
            return self._grow(values, labels, seed_w, seed_t, label)

        return members

    def _prune(self, values, labels, members, label, tick_offset):
        """
        Apply the minimum-neighbours, time and charge filters to a grown
        cluster. Removed cells keep a REJECTED label so they are not grown
        into again.
        """
        params = self.params

        # neighbour support measured on the converged cluster
        if params.min_neighbours > 0:
            counts = self._neighbour_counts(labels, members, label)
            kept = [m for m, c in zip(members, counts) if c >= params.min_neighbours]
            self.diagnostics.dropped_neighbours += len(members) - len(kept)
            members = self._reject(labels, members, kept)

        if members:
            ticks = np.array([t for _, t in members], dtype=np.int64) + tick_offset
            dominant = dominant_tick_np_core(ticks)
            kept = [m for m, tick in zip(members, ticks)
                    if abs(int(tick) - int(dominant)) <= params.time_threshold]
            self.diagnostics.dropped_time += len(members) - len(kept)
            members = self._reject(labels, members, kept)

        if members:
            kept = [(w, t) for w, t in members if values[w, t] >= params.charge_threshold]
            self.diagnostics.dropped_charge += len(members) - len(kept)
            members = self._reject(labels, members, kept)

        return members

    def _neighbour_counts(self, labels, members, label) -> np.ndarray:
        wire_bins = np.array([w for w, _ in members], dtype=np.int64)
        tick_bins = np.array([t for _, t in members], dtype=np.int64)
        counts = np.zeros(len(members), dtype=np.int64)
        if self.use_numba:
            count_neighbours_many_nb_core(labels, wire_bins, tick_bins, label, counts)
        else:
            for n, (w, t) in enumerate(members):
                counts[n] = count_neighbours_np_core(labels, w, t, label)
        return counts

    @staticmethod
    def _reject(labels, members, kept):
        if len(kept) == len(members):
            return members
        kept_set = set(kept)
        for w, t in members:
            if (w, t) not in kept_set:
                labels[w, t] = REJECTED
        return kept

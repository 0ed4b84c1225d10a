"""
blurtools Mapping Operations

Turns cell clusters back into hit clusters through the cell -> hit map built
with the grid. Cells that only received blurred charge map to nothing.

Author: blurtools developers
"""

import logging
from dataclasses import dataclass
from typing import Iterable, List, Tuple

from ...hits import HitRecord
from ..clustering import CellCluster
from ..grid import CellToHitMap

logger = logging.getLogger(__name__)


@dataclass
class HitCluster:
    """
    A cluster of hits, in the order the cluster finder reached their cells.
    """
    hits: List[HitRecord]
    plane: int = 0

    @property
    def size(self) -> int:
        return len(self.hits)

    @property
    def total_charge(self) -> float:
        return float(sum(hit.charge for hit in self.hits))

    @property
    def wire_range(self) -> Tuple[int, int]:
        wires = [hit.wire for hit in self.hits]
        return min(wires), max(wires)

    @property
    def tick_range(self) -> Tuple[int, int]:
        ticks = [hit.tick for hit in self.hits]
        return min(ticks), max(ticks)

    @property
    def time_span(self) -> int:
        low, high = self.tick_range
        return high - low

    def __len__(self) -> int:
        return len(self.hits)

    def __iter__(self):
        return iter(self.hits)


def map_cluster(cluster: CellCluster, cell_to_hit: CellToHitMap) -> List[HitRecord]:
    """Hits of one cell cluster, skipping cells without a hit."""
    hits = []
    for cell in cluster.cells:
        hit = cell_to_hit.get(cell)
        if hit is not None:
            hits.append(hit)
    return hits


def map_clusters(
    clusters: Iterable[CellCluster],
    cell_to_hit: CellToHitMap,
    min_size: int = 1) -> List[HitCluster]:
    """
    Convert cell clusters into hit clusters.

    Clusters left with fewer than ``min_size`` hits are dropped; a cluster
    without any real hit is always dropped.
    """
    min_size = max(int(min_size), 1)
    out: List[HitCluster] = []
    n_dropped = 0
    for cluster in clusters:
        hits = map_cluster(cluster, cell_to_hit)
        if len(hits) < min_size:
            n_dropped += 1
            continue
        out.append(HitCluster(hits=hits, plane=hits[0].plane))
    if n_dropped:
        logger.debug("dropped %d clusters with fewer than %d hits", n_dropped, min_size)
    return out

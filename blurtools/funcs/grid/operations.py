"""
blurtools Grid Operations

Rasterises a list of hits from one plane onto a dense (wire, tick) grid and
records which hit produced each occupied cell, so clusters found on the
image can be turned back into hits.

Author: blurtools developers
"""

import logging
import math
from dataclasses import dataclass
from typing import Dict, Iterable, Iterator, List, Optional, Sequence, Tuple

import numpy as np

from ...constants import DUPLICATE_LAST, DUPLICATE_MAX_CHARGE, DUPLICATE_POLICIES
from ...errors import InvalidGeometry, InvalidParameter
from ...hits import HitRecord
from .constants import *

logger = logging.getLogger(__name__)


@dataclass
class Grid:
    """
    Dense image of one plane.

    values: (n_wire_bins, n_tick_bins) array
    wire_offset, tick_offset: absolute wire/tick of bin (0, 0)

    Cells are addressed by a flattened index ``wire_bin * n_tick_bins +
    tick_bin``; blurring changes values, never the geometry.
    """
    values: np.ndarray
    wire_offset: int = 0
    tick_offset: int = 0

    @property
    def shape(self) -> Tuple[int, int]:
        return self.values.shape

    @property
    def n_cells(self) -> int:
        return int(self.values.size)

    @property
    def n_ticks(self) -> int:
        return self.values.shape[TICK]

    def cell_index(self, wire_bin: int, tick_bin: int) -> int:
        return int(wire_bin) * self.n_ticks + int(tick_bin)

    def cell_coords(self, index: int) -> Tuple[int, int]:
        return divmod(int(index), self.n_ticks)

    def wire_of(self, index: int) -> int:
        return self.cell_coords(index)[WIRE] + self.wire_offset

    def tick_of(self, index: int) -> int:
        return self.cell_coords(index)[TICK] + self.tick_offset

    def value_of(self, index: int) -> float:
        wire_bin, tick_bin = self.cell_coords(index)
        return float(self.values[wire_bin, tick_bin])

    def coordinates(self, cells: Sequence[int]) -> np.ndarray:
        """(N, 2) array of (wire_bin, tick_bin) for the given cells."""
        cells = np.asarray(cells, dtype=np.int64)
        if self.n_ticks == 0:
            return np.empty((0, 2), dtype=np.int64)
        return np.stack((cells // self.n_ticks, cells % self.n_ticks), axis=-1)

    def with_values(self, values: np.ndarray) -> "Grid":
        """A grid with the same geometry and new content."""
        if values.shape != self.values.shape:
            raise ValueError(
                f"values shape {values.shape} does not match grid {self.values.shape}")
        return Grid(values=values, wire_offset=self.wire_offset, tick_offset=self.tick_offset)


class CellToHitMap:
    """
    Cell index -> HitRecord back-mapping. At most one hit per cell.
    """

    def __init__(self, mapping: Optional[Dict[int, HitRecord]] = None) -> None:
        self._map: Dict[int, HitRecord] = dict(mapping) if mapping else {}

    def __contains__(self, cell: int) -> bool:
        return int(cell) in self._map

    def __len__(self) -> int:
        return len(self._map)

    def __iter__(self) -> Iterator[int]:
        return iter(self._map)

    def __getitem__(self, cell: int) -> HitRecord:
        return self._map[int(cell)]

    def get(self, cell: int, default=None) -> Optional[HitRecord]:
        return self._map.get(int(cell), default)

    def cells(self) -> List[int]:
        return sorted(self._map)

    def occupancy(self, n_cells: int) -> np.ndarray:
        """Boolean mask, True where a cell carries a real hit."""
        mask = np.zeros(n_cells, dtype=np.bool_)
        if self._map:
            mask[np.fromiter(self._map.keys(), dtype=np.int64, count=len(self._map))] = True
        return mask

    def _record(self, cell: int, hit: HitRecord, policy: str) -> None:
        if policy == DUPLICATE_LAST or cell not in self._map:
            self._map[cell] = hit
            return
        current = self._map[cell]
        if _hit_rank(hit) > _hit_rank(current):
            self._map[cell] = hit


def _hit_rank(hit: HitRecord) -> Tuple:
    # total order on hits: charge first, then the remaining fields
    return (hit.charge, hit.wire, hit.tick, hit.plane)


def _as_bin(value, name: str, hit: HitRecord) -> int:
    try:
        as_float = float(value)
    except (TypeError, ValueError):
        raise InvalidGeometry(f"{name} of {hit!r} is not a number") from None
    if not math.isfinite(as_float):
        raise InvalidGeometry(f"{name} of {hit!r} is not finite")
    if as_float != int(as_float):
        raise InvalidGeometry(f"{name} of {hit!r} is not an integer bin")
    return int(as_float)


class GridOperations:
    """
    Builds plane images from hit lists.
    """

    def __init__(
        self,
        duplicate_policy: str = DUPLICATE_LAST,
        precision: str = "float64") -> None:
        """
        Args:
            duplicate_policy: which hit the back-map keeps when two hits fall
                in the same cell ('last' seen or 'max_charge'); charges always sum
            precision: 'float32' or 'float64' grid values
        """
        if duplicate_policy not in DUPLICATE_POLICIES:
            raise InvalidParameter(
                f"duplicate_policy must be one of {DUPLICATE_POLICIES}, got {duplicate_policy!r}")
        if precision not in FLOAT_DTYPES:
            raise InvalidParameter("precision must be 'float32' or 'float64'")

        self.duplicate_policy = duplicate_policy
        self.precision = precision
        self.float_dtype = FLOAT_DTYPES[precision]

    def build(
        self,
        hits: Iterable[HitRecord],
        margin: Tuple[int, int] = DEFAULT_MARGIN) -> Tuple[Grid, CellToHitMap]:
        """
        Rasterise hits into a grid covering their wire/tick range plus
        ``margin`` bins on every side.

        Args:
            hits: hits of a single plane
            margin: (wire_margin, tick_margin), at least the blur radii so a
                blurred hit never spills off the grid

        Returns:
            (grid, cell_to_hit)
        """
        hits = list(hits)
        wire_margin, tick_margin = (int(m) for m in margin)
        if wire_margin < 0 or tick_margin < 0:
            raise InvalidParameter(f"margin must be non-negative, got {margin!r}")

        if not hits:
            return Grid(values=np.zeros(EMPTY_SHAPE, dtype=self.float_dtype)), CellToHitMap()

        wires = np.empty(len(hits), dtype=np.int64)
        ticks = np.empty(len(hits), dtype=np.int64)
        charges = np.empty(len(hits), dtype=self.float_dtype)
        for i, hit in enumerate(hits):
            wires[i] = _as_bin(hit.wire, "wire", hit)
            ticks[i] = _as_bin(hit.tick, "tick", hit)
            charge = float(hit.charge)
            if not math.isfinite(charge):
                raise InvalidGeometry(f"charge of {hit!r} is not finite")
            charges[i] = charge

        wire_offset = int(wires.min()) - wire_margin
        tick_offset = int(ticks.min()) - tick_margin
        n_wire_bins = int(wires.max()) - int(wires.min()) + 1 + 2 * wire_margin
        n_tick_bins = int(ticks.max()) - int(ticks.min()) + 1 + 2 * tick_margin

        values = np.zeros((n_wire_bins, n_tick_bins), dtype=self.float_dtype)
        wire_bins = wires - wire_offset
        tick_bins = ticks - tick_offset
        np.add.at(values, (wire_bins, tick_bins), charges)

        cell_to_hit = CellToHitMap()
        cells = wire_bins * n_tick_bins + tick_bins
        for cell, hit in zip(cells.tolist(), hits):
            cell_to_hit._record(cell, hit, self.duplicate_policy)

        grid = Grid(values=values, wire_offset=wire_offset, tick_offset=tick_offset)
        logger.debug("built %dx%d grid from %d hits (%d occupied cells)",
                     n_wire_bins, n_tick_bins, len(hits), len(cell_to_hit))
        return grid, cell_to_hit

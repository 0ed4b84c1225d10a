"""
Hit records and the wire geometry used to place them on a plane-wide grid.

Author: blurtools developers
"""

from collections import OrderedDict
from dataclasses import dataclass
from typing import Dict, Iterable, List, Mapping, Optional, Union

import numpy as np

from .errors import InvalidGeometry


@dataclass(frozen=True)
class HitRecord:
    """
    A single reconstructed hit.

    wire: global wire index, flattened across the TPCs of one plane
    tick: time tick of the hit peak
    charge: integrated charge
    plane: owning readout plane
    """
    wire: int
    tick: int
    charge: float
    plane: int = 0


class WireLayout:
    """
    Read-only geometry used to turn (tpc, plane, wire) into a global wire.

    TPCs are grouped in blocks of ``tpcs_per_offset`` which share the same
    wires (the drift volumes either side of a cathode). Each block is shifted
    along the global wire axis by the number of wires in the plane, so a
    global wire identifies a (block, wire) pair uniquely across the plane.
    """

    def __init__(
        self,
        wires_per_plane: Union[int, Mapping[int, int]],
        n_tpcs: int = 1,
        tpcs_per_offset: int = 2) -> None:
        """
        Args:
            wires_per_plane: number of wires in every plane, or a mapping
                plane -> number of wires
            n_tpcs: number of TPCs in the detector
            tpcs_per_offset: TPCs sharing one block of global wires
        """
        if n_tpcs < 1:
            raise InvalidGeometry("n_tpcs must be at least 1")
        if tpcs_per_offset < 1:
            raise InvalidGeometry("tpcs_per_offset must be at least 1")

        if isinstance(wires_per_plane, Mapping):
            self.wires_per_plane = {int(p): int(n) for p, n in wires_per_plane.items()}
        else:
            self.wires_per_plane = None
            self._n_wires = int(wires_per_plane)
            if self._n_wires < 1:
                raise InvalidGeometry("wires_per_plane must be positive")

        if self.wires_per_plane is not None:
            for plane, n_wires in self.wires_per_plane.items():
                if n_wires < 1:
                    raise InvalidGeometry(f"plane {plane} has no wires")

        self.n_tpcs = int(n_tpcs)
        self.tpcs_per_offset = int(tpcs_per_offset)

    def n_wires(self, plane: int) -> int:
        if self.wires_per_plane is None:
            return self._n_wires
        try:
            return self.wires_per_plane[plane]
        except KeyError:
            raise InvalidGeometry(f"unknown plane {plane}") from None

    def global_wire(self, tpc: int, plane: int, wire: int) -> int:
        """Flatten a local wire index into the plane-wide wire space."""
        if not 0 <= tpc < self.n_tpcs:
            raise InvalidGeometry(f"unknown tpc {tpc}")
        n_wires = self.n_wires(plane)
        if not 0 <= wire < n_wires:
            raise InvalidGeometry(
                f"wire {wire} outside plane {plane} (0..{n_wires - 1})")
        return (tpc // self.tpcs_per_offset) * n_wires + wire

    def make_hit(
        self,
        tpc: int,
        plane: int,
        wire: int,
        tick: int,
        charge: float) -> HitRecord:
        return HitRecord(
            wire=self.global_wire(tpc, plane, wire),
            tick=tick,
            charge=charge,
            plane=plane)


def remove_excluded_hits(
    hits: Iterable[HitRecord],
    excluded: Optional[Iterable[HitRecord]] = None) -> List[HitRecord]:
    """
    Drop hits already attributed elsewhere (e.g. to reconstructed tracks).
    Order of the remaining hits is preserved.
    """
    if not excluded:
        return list(hits)
    excluded = frozenset(excluded)
    return [hit for hit in hits if hit not in excluded]


def group_hits_by_plane(hits: Iterable[HitRecord]) -> Dict[int, List[HitRecord]]:
    """Split hits per plane, planes in ascending order, hit order kept."""
    groups: Dict[int, List[HitRecord]] = {}
    for hit in hits:
        groups.setdefault(hit.plane, []).append(hit)
    return OrderedDict((plane, groups[plane]) for plane in sorted(groups))


def hits_to_array(hits: Iterable[HitRecord]) -> np.ndarray:
    """
    Table view of a hit list, shape (N, 4): wire, tick, charge, plane.
    """
    table = np.array(
        [(h.wire, h.tick, h.charge, h.plane) for h in hits], dtype=np.float64)
    return table.reshape(-1, 4)


def hits_from_array(table: np.ndarray) -> List[HitRecord]:
    """Inverse of hits_to_array."""
    return [HitRecord(wire=int(w), tick=int(t), charge=float(q), plane=int(p))
            for w, t, q, p in np.asarray(table).reshape(-1, 4)]

"""
Flat parameter set for the blurred clustering pipeline.

Every tunable is an independent named number. Parameters can be given with
their Python names or with the names used in the reconstruction
configuration files (``BlurWire``, ``MinSeed``, ...).

Author: blurtools developers
"""

from typing import Any, Dict, Mapping

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from .constants import *
from .errors import InvalidParameter


class BlurredClusteringParams(BaseModel):
    """
    Parameters of one blurred clustering pass.

    blur_wire, blur_tick: Gaussian kernel half-widths (bins)
    blur_sigma: Gaussian width (bins)
    cluster_wire_distance, cluster_tick_distance: growth window around members
    neighbours_threshold: in-cluster neighbours needed to join a cluster
    min_neighbours: in-cluster neighbours needed to stay after growth
    min_size: minimum number of hits in an output cluster
    min_seed: blurred value a cell must exceed to seed a cluster
    time_threshold: allowed tick distance from the cluster's dominant tick
    charge_threshold: minimum blurred value of a kept member
    min_merge_cluster_size: clusters with fewer hits than this are never merged
    merging_threshold: principal-axis variance fraction needed to merge
    """
    model_config = ConfigDict(
        frozen=True, extra='forbid', populate_by_name=True, allow_inf_nan=False)

    blur_wire: int = Field(DEFAULT_BLUR_WIRE, ge=0, alias='BlurWire')
    blur_tick: int = Field(DEFAULT_BLUR_TICK, ge=0, alias='BlurTick')
    blur_sigma: float = Field(DEFAULT_BLUR_SIGMA, gt=0, alias='BlurSigma')
    cluster_wire_distance: int = Field(DEFAULT_CLUSTER_WIRE_DISTANCE, ge=0, alias='ClusterWireDistance')
    cluster_tick_distance: int = Field(DEFAULT_CLUSTER_TICK_DISTANCE, ge=0, alias='ClusterTickDistance')
    neighbours_threshold: int = Field(DEFAULT_NEIGHBOURS_THRESHOLD, ge=0, alias='NeighboursThreshold')
    min_neighbours: int = Field(DEFAULT_MIN_NEIGHBOURS, ge=0, alias='MinNeighbours')
    min_size: int = Field(DEFAULT_MIN_SIZE, ge=0, alias='MinSize')
    min_seed: float = Field(DEFAULT_MIN_SEED, ge=0, alias='MinSeed')
    time_threshold: float = Field(DEFAULT_TIME_THRESHOLD, ge=0, alias='TimeThreshold')
    charge_threshold: float = Field(DEFAULT_CHARGE_THRESHOLD, ge=0, alias='ChargeThreshold')
    min_merge_cluster_size: int = Field(DEFAULT_MIN_MERGE_CLUSTER_SIZE, ge=0, alias='MinMergeClusterSize')
    merging_threshold: float = Field(DEFAULT_MERGING_THRESHOLD, ge=0, alias='MergingThreshold')

    def __init__(self, **data: Any) -> None:
        try:
            super().__init__(**data)
        except ValidationError as e:
            raise InvalidParameter(str(e)) from e

    @classmethod
    def from_dict(cls, mapping: Mapping[str, Any]) -> "BlurredClusteringParams":
        """
        Build parameters from a flat key -> value map. Missing keys take
        their defaults; unknown keys are rejected.
        """
        by_alias = {info.alias: name for name, info in cls.model_fields.items()}
        kwargs = {}
        for key, value in mapping.items():
            name = by_alias.get(key, key)
            if name in kwargs:
                raise InvalidParameter(f"parameter {name!r} given twice")
            kwargs[name] = value
        return cls(**kwargs)

    def to_dict(self) -> Dict[str, Any]:
        return self.model_dump()

    def replace(self, **changes) -> "BlurredClusteringParams":
        """Validated copy with some fields changed."""
        return type(self)(**{**self.model_dump(), **changes})

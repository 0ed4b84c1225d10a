import numpy as np
import pytest

from blurtools import BlurredClusteringParams
from blurtools.funcs.clustering import (
    ClusterFinder,
    count_neighbours_nb_core,
    count_neighbours_np_core,
    dominant_tick_np_core,
)
from blurtools.funcs.grid import Grid


def make_params(**changes):
    base = dict(min_seed=1.0, min_size=1, neighbours_threshold=0, min_neighbours=0,
                cluster_wire_distance=1, cluster_tick_distance=1,
                time_threshold=1000.0, charge_threshold=0.0)
    base.update(changes)
    return BlurredClusteringParams(**base)


def cell_sets(clusters):
    return [set(c.cells) for c in clusters]


# --- core functions ---

def test_neighbour_count_cores_agree():
    labels = np.full((4, 5), -1, dtype=np.int64)
    labels[0, 0] = labels[1, 1] = labels[2, 2] = labels[1, 2] = 3
    for w in range(4):
        for t in range(5):
            assert count_neighbours_nb_core(labels, w, t, 3) == \
                count_neighbours_np_core(labels, w, t, 3)
    assert count_neighbours_np_core(labels, 1, 1, 3) == 3
    assert count_neighbours_np_core(labels, 3, 4, 3) == 0


def test_dominant_tick_is_lower_median():
    assert dominant_tick_np_core([9, 1, 5]) == 5
    assert dominant_tick_np_core([4, 1, 2, 3]) == 2


# --- region growing ---

def test_empty_and_quiet_grids(use_numba):
    finder = ClusterFinder(make_params(), use_numba=use_numba)
    assert finder.find_clusters(Grid(values=np.zeros((0, 0)))) == []
    assert finder.find_clusters(Grid(values=np.full((3, 3), 0.5))) == []


def test_separate_blobs_brightest_first(use_numba):
    values = np.zeros((7, 7))
    values[1:3, 1:3] = 5.0
    values[5, 5] = 10.0
    grid = Grid(values=values)

    clusters = ClusterFinder(make_params(), use_numba=use_numba).find_clusters(grid)
    assert cell_sets(clusters) == [{grid.cell_index(5, 5)},
                                   {grid.cell_index(w, t) for w in (1, 2) for t in (1, 2)}]
    assert clusters[0].seed == grid.cell_index(5, 5)
    assert clusters[0].seed_value == 10.0


def test_equal_seeds_ordered_by_cell_index(use_numba):
    values = np.zeros((5, 5))
    values[4, 0] = values[0, 4] = 3.0
    grid = Grid(values=values)
    clusters = ClusterFinder(make_params(), use_numba=use_numba).find_clusters(grid)
    assert [c.seed for c in clusters] == [grid.cell_index(0, 4), grid.cell_index(4, 0)]


def test_neighbour_threshold_gates_growth(use_numba):
    values = np.zeros((7, 7))
    values[3, 3] = 10.0
    values[3, 4] = 5.0
    grid = Grid(values=values)

    joined = ClusterFinder(make_params(neighbours_threshold=1), use_numba=use_numba)
    assert cell_sets(joined.find_clusters(grid)) == [{grid.cell_index(3, 3), grid.cell_index(3, 4)}]

    # a single supporting neighbour is not enough: the cell seeds its own cluster
    gated = ClusterFinder(make_params(neighbours_threshold=2), use_numba=use_numba)
    assert cell_sets(gated.find_clusters(grid)) == [{grid.cell_index(3, 3)}, {grid.cell_index(3, 4)}]


def test_growth_reaches_fixed_point(use_numba):
    # an L-shaped track: every cell has one supporting neighbour once its
    # predecessor is in, whatever order the sweep visits them in
    values = np.zeros((8, 8))
    values[1, 1:7] = 4.0
    values[1:7, 6] = 4.0
    values[1, 1] = 9.0
    grid = Grid(values=values)
    clusters = ClusterFinder(make_params(neighbours_threshold=1), use_numba=use_numba).find_clusters(grid)
    assert len(clusters) == 1
    assert clusters[0].size == 11
    assert clusters[0].cells[0] == grid.cell_index(1, 1)


def test_min_neighbours_drops_loosely_attached_cells(use_numba):
    values = np.zeros((6, 7))
    values[1:4, 1:4] = 5.0
    values[2, 5] = 5.0   # within the growth window, but not touching the block
    grid = Grid(values=values)

    loose = ClusterFinder(make_params(cluster_wire_distance=2, cluster_tick_distance=2),
                          use_numba=use_numba).find_clusters(grid)
    assert [c.size for c in loose] == [10]

    finder = ClusterFinder(make_params(cluster_wire_distance=2, cluster_tick_distance=2,
                                       min_neighbours=1), use_numba=use_numba)
    pruned = finder.find_clusters(grid)
    assert [c.size for c in pruned] == [9]
    assert grid.cell_index(2, 5) not in pruned[0].cells
    assert finder.diagnostics.dropped_neighbours == 1


def test_time_filter_uses_dominant_tick(use_numba):
    values = np.zeros((5, 10))
    values[2, :] = 5.0
    grid = Grid(values=values, tick_offset=100)

    finder = ClusterFinder(make_params(time_threshold=3), use_numba=use_numba)
    clusters = finder.find_clusters(grid)
    # ticks 100..109, lower median 104, keep 101..107
    assert len(clusters) == 1
    assert sorted(grid.tick_of(c) for c in clusters[0].cells) == list(range(101, 108))
    assert finder.diagnostics.dropped_time == 3


def test_charge_filter(use_numba):
    values = np.zeros((5, 5))
    values[2, 2] = 10.0
    values[2, 3] = 0.5
    grid = Grid(values=values)
    clusters = ClusterFinder(make_params(charge_threshold=1.0), use_numba=use_numba).find_clusters(grid)
    assert cell_sets(clusters) == [{grid.cell_index(2, 2)}]


def test_min_size_counts_hit_cells_when_occupancy_given(use_numba):
    values = np.zeros((5, 5))
    values[2, 1:4] = 5.0
    grid = Grid(values=values)
    occupancy = np.zeros(grid.n_cells, dtype=bool)
    occupancy[grid.cell_index(2, 2)] = True

    finder = ClusterFinder(make_params(min_size=2), use_numba=use_numba)
    assert len(finder.find_clusters(grid)) == 1
    assert finder.find_clusters(grid, occupancy=occupancy) == []
    assert finder.diagnostics.dropped_small == 1

    occupancy[grid.cell_index(2, 3)] = True
    clusters = finder.find_clusters(grid, occupancy=occupancy)
    assert len(clusters) == 1
    assert clusters[0].n_hits == 2


def test_raising_min_size_only_removes_clusters(use_numba):
    rng = np.random.default_rng(3)
    values = np.where(rng.random((20, 20)) > 0.7, rng.random((20, 20)) * 10, 0.0)
    grid = Grid(values=values)

    previous = None
    for min_size in range(1, 8):
        clusters = ClusterFinder(make_params(min_size=min_size), use_numba=use_numba).find_clusters(grid)
        assert all(c.size >= min_size for c in clusters)
        current = {frozenset(c.cells) for c in clusters}
        if previous is not None:
            assert current <= previous
        previous = current


def test_numba_and_numpy_paths_agree():
    rng = np.random.default_rng(11)
    values = np.where(rng.random((25, 30)) > 0.6, rng.random((25, 30)) * 5, 0.0)
    grid = Grid(values=values)
    params = make_params(neighbours_threshold=2, min_neighbours=1, min_size=2)
    fast = ClusterFinder(params, use_numba=True).find_clusters(grid)
    slow = ClusterFinder(params, use_numba=False).find_clusters(grid)
    assert [c.cells for c in fast] == [c.cells for c in slow]


def test_time_span(use_numba):
    values = np.zeros((3, 6))
    values[1, 1:5] = 2.0
    grid = Grid(values=values)
    clusters = ClusterFinder(make_params(), use_numba=use_numba).find_clusters(grid)
    assert clusters[0].time_span(grid) == 3

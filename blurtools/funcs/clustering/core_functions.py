"""
Core Numba JIT compiled functions for region-growing clustering.
Neighbour counting is called once per candidate cell during growth, so it is
kept in compiled code.

Author: blurtools developers
"""
import numpy as np
from numba import njit
from .constants import *

##########################################################################################
# Neighbour counting on a label image
##########################################################################################

@njit(sig_count_neighbours, cache=True, nogil=True)
def count_neighbours_nb_core(labels, wire_bin, tick_bin, label):
    """
    Count the 8-connected neighbours of (wire_bin, tick_bin) carrying `label`.
    Neighbours outside the image are ignored.
    """
    nw, nt = labels.shape
    count = 0
    for dw in range(-1, 2):
        w = wire_bin + dw
        if w < 0 or w >= nw:
            continue
        for dt in range(-1, 2):
            if dw == 0 and dt == 0:
                continue
            t = tick_bin + dt
            if t < 0 or t >= nt:
                continue
            if labels[w, t] == label:
                count += 1
    return count


@njit(sig_count_neighbours_many, cache=True, nogil=True)
def count_neighbours_many_nb_core(labels, wire_bins, tick_bins, label, counts):
    """
    Neighbour counts for every listed cell against the same label image.
    """
    for n in range(wire_bins.shape[0]):
        counts[n] = count_neighbours_nb_core(labels, wire_bins[n], tick_bins[n], label)


def count_neighbours_np_core(labels, wire_bin, tick_bin, label):
    """
    Pure Python version of count_neighbours_nb_core.
    """
    nw, nt = labels.shape
    w0, w1 = max(wire_bin - 1, 0), min(wire_bin + 2, nw)
    t0, t1 = max(tick_bin - 1, 0), min(tick_bin + 2, nt)
    count = int(np.count_nonzero(labels[w0:w1, t0:t1] == label))
    if labels[wire_bin, tick_bin] == label:
        count -= 1
    return count


def dominant_tick_np_core(ticks):
    """
    Most representative tick of a cluster: the lower median of its members'
    ticks. Independent of member order.
    """
    ordered = np.sort(np.asarray(ticks))
    return ordered[(ordered.size - 1) // 2]

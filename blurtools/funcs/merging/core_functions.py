"""
Core functions for PCA merging of clusters: 2D covariance, analytic 2x2
symmetric eigenvalues and union-find.

Author: blurtools developers
"""
import numpy as np
from numba import njit
from .constants import *

##########################################################################################
# Principal component analysis of 2D point sets
##########################################################################################

@njit(sig_covariance_2d, cache=True)
def covariance_2d_nb_core(points):
    """
    Population covariance matrix of an (N, 2) point set.
    """
    n = points.shape[0]
    mean_w = 0.0
    mean_t = 0.0
    for i in range(n):
        mean_w += points[i, WIRE]
        mean_t += points[i, TICK]
    mean_w /= n
    mean_t /= n

    c_ww = 0.0
    c_tt = 0.0
    c_wt = 0.0
    for i in range(n):
        dw = points[i, WIRE] - mean_w
        dt = points[i, TICK] - mean_t
        c_ww += dw * dw
        c_tt += dt * dt
        c_wt += dw * dt

    cov = np.empty((2, 2), dtype=np.float64)
    cov[0, 0] = c_ww / n
    cov[1, 1] = c_tt / n
    cov[0, 1] = c_wt / n
    cov[1, 0] = c_wt / n
    return cov


@njit(sig_eigenvalues_symmetric_2x2, cache=True)
def eigenvalues_symmetric_2x2_nb_core(matrix):
    """
    Eigenvalues of a symmetric 2x2 matrix using the analytical formula.

    For 2x2 symmetric matrices:
    λ = (trace ± √(trace² - 4*det)) / 2

    Returns:
        eigenvalues (2,), sorted in descending order
    """
    a11 = matrix[0, 0]
    a22 = matrix[1, 1]
    a12 = matrix[0, 1]

    trace = a11 + a22
    det = a11 * a22 - a12 * a12
    discriminant = trace * trace - 4.0 * det
    if discriminant < 0:
        discriminant = 0.0  # rounding only; symmetric matrices have real roots

    sqrt_disc = np.sqrt(discriminant)
    eigenvalues = np.empty(2, dtype=np.float64)
    eigenvalues[0] = 0.5 * (trace + sqrt_disc)
    eigenvalues[1] = 0.5 * (trace - sqrt_disc)
    return eigenvalues


def covariance_2d_np_core(points):
    return np.cov(np.asarray(points, dtype=np.float64).T, bias=True).reshape(2, 2)


def eigenvalues_symmetric_2x2_np_core(matrix):
    """
    Numpy eigenvalues of a symmetric 2x2 matrix, descending.
    """
    return np.linalg.eigvalsh(matrix)[::-1]


def principal_fraction_core(eigenvalues):
    """
    Share of the total variance carried by the principal axis:
    1 for collinear points, 1/2 for an isotropic cloud, 0 if degenerate.
    """
    total = eigenvalues[0] + eigenvalues[1]
    if total <= EPSILON:
        return 0.0
    return float(eigenvalues[0] / total)

##########################################################################################
# Union-Find data structure with path compression
##########################################################################################

@njit(sig_union_find_64, cache=True)
def find_root(parent, node):
    """
    Find root of node with iterative path compression.
    """
    root = node
    while parent[root] != root:
        root = parent[root]

    current = node
    while parent[current] != current:
        next_node = parent[current]
        parent[current] = root
        current = next_node

    return root


@njit(sig_union_64, cache=True)
def union_nodes(parent, node1, node2):
    """
    Union two nodes. The smaller root becomes the representative, so the
    representative of a set is always its lowest index.
    """
    root1 = find_root(parent, node1)
    root2 = find_root(parent, node2)

    if root1 == root2:
        return
    if root1 < root2:
        parent[root2] = root1
    else:
        parent[root1] = root2

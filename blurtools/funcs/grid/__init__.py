"""
blurtools Grid Module

Dense (wire, tick) images of detector planes and the cell -> hit back-mapping.
"""

from .operations import Grid, CellToHitMap, GridOperations
from .constants import WIRE, TICK

__all__ = [
    'Grid',
    'CellToHitMap',
    'GridOperations',
    'WIRE', 'TICK',
]

"""
Constants for grid construction.
"""
import numpy as np

##############################################################################
# Global constants
##############################################################################

WIRE, TICK = 0, 1          # grid axes
EMPTY_SHAPE = (0, 0)       # grid built from no hits
DEFAULT_MARGIN = (0, 0)    # (wire, tick) bins added either side of the hits
FLOAT_DTYPES = {"float32": np.float32, "float64": np.float64}

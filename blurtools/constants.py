"""
Default parameters for the blurred clustering pipeline.

The values mirror the standard reconstruction configuration.
"""

##############################################################################
# Blurring
##############################################################################

DEFAULT_BLUR_WIRE = 6        # kernel half-width in wires
DEFAULT_BLUR_TICK = 12       # kernel half-width in ticks
DEFAULT_BLUR_SIGMA = 6.0     # Gaussian width (bins)

##############################################################################
# Region growing
##############################################################################

DEFAULT_CLUSTER_WIRE_DISTANCE = 2
DEFAULT_CLUSTER_TICK_DISTANCE = 2
DEFAULT_NEIGHBOURS_THRESHOLD = 0
DEFAULT_MIN_NEIGHBOURS = 0
DEFAULT_MIN_SIZE = 2
DEFAULT_MIN_SEED = 0.1
DEFAULT_TIME_THRESHOLD = 500.0
DEFAULT_CHARGE_THRESHOLD = 0.07

##############################################################################
# Merging
##############################################################################

DEFAULT_MIN_MERGE_CLUSTER_SIZE = 3
DEFAULT_MERGING_THRESHOLD = 0.9

##############################################################################
# Grid back-mapping
##############################################################################

DUPLICATE_LAST = "last"
DUPLICATE_MAX_CHARGE = "max_charge"
DUPLICATE_POLICIES = (DUPLICATE_LAST, DUPLICATE_MAX_CHARGE)

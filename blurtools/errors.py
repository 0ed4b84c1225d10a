"""
Exceptions raised by blurtools.

All errors derive from ValueError.
"""


class BlurToolsError(ValueError):
    """Base class for all blurtools errors."""


class InvalidGeometry(BlurToolsError):
    """A hit cannot be resolved to a finite grid cell."""


class InvalidParameter(BlurToolsError):
    """A configuration value is out of its allowed range."""

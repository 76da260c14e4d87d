"""
Contour Editor Errors

This module defines the error and warning types raised by the spatial,
contour and MPR code.

Outputs:
    - CoordinateError: degenerate or malformed spatial metadata on a slice
    - InvalidGeometry: polygon input rejected by the contour store
    - GeometryWarning: polygon boolean operation failed, contour left unchanged
    - InconsistentVolumeError: slices of an MPR volume do not share dimensions

Requirements:
    - Standard library only
"""


class CoordinateError(ValueError):
    """Raised when a slice's position/spacing/orientation cannot define a valid affine."""
    pass


class InvalidGeometry(ValueError):
    """Raised when a polygon has fewer than 3 distinct points."""
    pass


class GeometryWarning(UserWarning):
    """Issued when a polygon union/difference fails; the previous contour is kept."""
    pass


class InconsistentVolumeError(ValueError):
    """Raised when slices in an MPR volume have different width/height."""
    pass

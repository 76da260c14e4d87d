"""
MPR Resampler

This module builds orthogonal planes (axial, sagittal, coronal) from a
sorted stack of axial slices.

Voxel coordinates are (x, y, z) = (column, row, stack index). No plane is
flipped: every raster axis runs in the same direction as the voxel axis it
comes from, so a crosshair voxel maps to each plane with plane_point() and
back with voxel_from_plane() without any correction.

    axial(z):    shape (height, width),  [y, x]
    sagittal(x): shape (height, depth),  [y, z]
    coronal(y):  shape (depth, width),   [z, x]

Inputs:
    - SliceStack with identical slice dimensions

Outputs:
    - 2-D sample rasters (float64), plane pixel spacings

Requirements:
    - numpy for volume stacking and slicing
    - core.errors.InconsistentVolumeError
"""

from typing import Optional, Sequence, Tuple
import numpy as np

from core.errors import InconsistentVolumeError


PLANE_AXIAL = 'axial'
PLANE_SAGITTAL = 'sagittal'
PLANE_CORONAL = 'coronal'
PLANES = (PLANE_AXIAL, PLANE_SAGITTAL, PLANE_CORONAL)


class MPRResampler:
    """
    Resamples a slice stack into orthogonal planes.
    """

    def __init__(self, stack, rescaled: bool = False):
        """
        Initialize the resampler and validate the volume.

        Args:
            stack: SliceStack (sorted)
            rescaled: If True, planes hold slope/intercept-rescaled values,
                so slices with different rescale parameters can share one window

        Raises:
            InconsistentVolumeError: if the stack is empty or slice dimensions differ
        """
        slices = stack.ordered_slices()
        if not slices:
            raise InconsistentVolumeError("Cannot build an MPR volume from an empty stack")
        dims = {s.dimensions for s in slices}
        if len(dims) != 1:
            raise InconsistentVolumeError(
                f"Slices have mismatched dimensions: {sorted(dims)}")
        self.stack = stack
        self.rescaled = rescaled
        self.width, self.height = dims.pop()
        self.depth = len(slices)
        self._volume: Optional[np.ndarray] = None

    @property
    def volume(self) -> np.ndarray:
        """(depth, height, width) array, built on first use."""
        if self._volume is None:
            planes = [s.rescaled_samples() if self.rescaled else s.samples
                      for s in self.stack.ordered_slices()]
            self._volume = np.stack(planes, axis=0)
        return self._volume

    def _check(self, value: int, limit: int, name: str) -> None:
        if value < 0 or value >= limit:
            raise IndexError(f"{name}={value} out of range (0..{limit - 1})")

    def axial_plane(self, z: int) -> np.ndarray:
        self._check(z, self.depth, "z")
        return self.volume[z, :, :].copy()

    def sagittal_plane(self, x: int) -> np.ndarray:
        """Row r, column z is sample [r][x] of slice z."""
        self._check(x, self.width, "x")
        return self.volume[:, :, x].T.copy()

    def coronal_plane(self, y: int) -> np.ndarray:
        """Row z, column c is sample [y][c] of slice z."""
        self._check(y, self.height, "y")
        return self.volume[:, y, :].copy()

    def plane(self, plane: str, index: int) -> np.ndarray:
        if plane == PLANE_AXIAL:
            return self.axial_plane(index)
        if plane == PLANE_SAGITTAL:
            return self.sagittal_plane(index)
        if plane == PLANE_CORONAL:
            return self.coronal_plane(index)
        raise ValueError(f"Unknown plane: {plane}")

    def plane_pixel_spacing(self, plane: str) -> Tuple[float, float]:
        """(row_spacing, column_spacing) in mm of a plane's raster."""
        row_spacing, col_spacing = self.stack.slice_at(0).pixel_spacing
        slice_spacing = self.stack.slice_spacing()
        if plane == PLANE_AXIAL:
            return row_spacing, col_spacing
        if plane == PLANE_SAGITTAL:
            return row_spacing, slice_spacing
        if plane == PLANE_CORONAL:
            return slice_spacing, col_spacing
        raise ValueError(f"Unknown plane: {plane}")


def plane_point(plane: str, voxel: Sequence[int]) -> Tuple[int, int]:
    """
    Position (row, column) of voxel (x, y, z) in the given plane's raster.
    """
    x, y, z = voxel
    if plane == PLANE_AXIAL:
        return y, x
    if plane == PLANE_SAGITTAL:
        return y, z
    if plane == PLANE_CORONAL:
        return z, x
    raise ValueError(f"Unknown plane: {plane}")


def voxel_from_plane(plane: str, row: int, column: int, fixed: int) -> Tuple[int, int, int]:
    """
    Voxel (x, y, z) for raster position (row, column) of a plane taken at
    index fixed (z for axial, x for sagittal, y for coronal).
    """
    if plane == PLANE_AXIAL:
        return column, row, fixed
    if plane == PLANE_SAGITTAL:
        return fixed, row, column
    if plane == PLANE_CORONAL:
        return column, fixed, row
    raise ValueError(f"Unknown plane: {plane}")

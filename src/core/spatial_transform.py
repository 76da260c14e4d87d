"""
Spatial Transform

This module converts points between the coordinate spaces used by the
viewer:

- world: patient coordinates in mm (scanner reference frame)
- plane: 2-D in-plane coordinates, the two world axes spanning the slice
  plane (x, y for axial slices); contours and brush strokes use these
- pixel: continuous (x=column, y=row) image coordinates; integer values are
  pixel centers, the image occupies [0, width) x [0, height)
- screen: canvas pixels after centering, fit/fill scaling, zoom and pan

Inputs:
    - Slice spatial metadata (position, pixel spacing, orientation)
    - Canvas size and ViewState

Outputs:
    - Converted points (numpy arrays), or None for points outside the image

Requirements:
    - numpy for vector math
    - core.errors.CoordinateError for degenerate metadata
"""

from typing import Optional, Sequence, Tuple
import numpy as np

from core.errors import CoordinateError
from core.view_state_manager import SCALE_POLICY_FILL, SCALE_POLICY_FIT, ViewState


ORIENTATION_TOLERANCE = 1e-3


def validate_geometry(slice_) -> None:
    """
    Check that a slice's metadata defines an invertible affine.

    Raises:
        CoordinateError: if a direction cosine is not unit length, the two
            cosines are not orthogonal (tolerance 1e-3), or a spacing is not positive
    """
    row_cosine, col_cosine = slice_.orientation
    row_norm = float(np.linalg.norm(row_cosine))
    col_norm = float(np.linalg.norm(col_cosine))
    if abs(row_norm - 1.0) > ORIENTATION_TOLERANCE or abs(col_norm - 1.0) > ORIENTATION_TOLERANCE:
        raise CoordinateError(
            f"Direction cosines are not unit length (|row|={row_norm:.5f}, |col|={col_norm:.5f})")
    dot = float(np.dot(row_cosine, col_cosine))
    if abs(dot) > ORIENTATION_TOLERANCE:
        raise CoordinateError(f"Direction cosines are not orthogonal (dot={dot:.5f})")
    row_spacing, col_spacing = slice_.pixel_spacing
    if not (row_spacing > 0 and col_spacing > 0):
        raise CoordinateError(f"Pixel spacing must be positive, got {slice_.pixel_spacing}")


def plane_axes(slice_) -> Tuple[int, int]:
    """
    World axes used as the slice's in-plane coordinates: the two axes other
    than the one closest to the slice normal. Axial slices use (x, y),
    sagittal (y, z) and coronal (x, z).
    """
    dropped = int(np.argmax(np.abs(slice_.normal)))
    first, second = (axis for axis in range(3) if axis != dropped)
    return first, second


def world_to_plane(world_point: Sequence[float], slice_) -> np.ndarray:
    """
    Reduce a world point to the slice's in-plane coordinates (see plane_axes).
    Points that already have 2 components are returned unchanged.
    """
    point = np.asarray(world_point, dtype=np.float64)
    if point.shape == (2,):
        return point.copy()
    if point.shape != (3,):
        raise ValueError(f"World point must have 2 or 3 components, got {point.shape}")
    first, second = plane_axes(slice_)
    return np.array([point[first], point[second]])


def plane_to_world(plane_point: Sequence[float], slice_) -> np.ndarray:
    """
    Lift in-plane coordinates back onto the slice plane. The remaining axis
    is solved from normal . (world - position) = 0.
    """
    first, second = plane_axes(slice_)
    dropped = 3 - first - second
    normal = slice_.normal
    point = np.zeros(3)
    point[first] = float(plane_point[0])
    point[second] = float(plane_point[1])
    point[dropped] = (float(np.dot(normal, slice_.position))
                      - normal[first] * point[first]
                      - normal[second] * point[second]) / normal[dropped]
    return point


def _as_world(world_point: Sequence[float], slice_) -> np.ndarray:
    point = np.asarray(world_point, dtype=np.float64)
    if point.shape == (2,):
        return plane_to_world(point, slice_)
    if point.shape != (3,):
        raise ValueError(f"World point must have 2 or 3 components, got {point.shape}")
    return point


def in_image_bounds(pixel_point: Sequence[float], image_dims: Tuple[int, int]) -> bool:
    """True if pixel_point lies in [0, width) x [0, height)."""
    width, height = image_dims
    return 0.0 <= pixel_point[0] < width and 0.0 <= pixel_point[1] < height


def world_to_pixel(world_point: Sequence[float], slice_, bounded: bool = True) -> Optional[np.ndarray]:
    """
    Convert a world point (mm) to pixel coordinates (x=column, y=row).

    delta = world - position is projected onto the row and column direction
    cosines; each projection is divided by the spacing along that axis.

    Args:
        world_point: (x, y, z) in mm, or in-plane coordinates (see plane_axes)
        slice_: Slice supplying position, pixel_spacing and orientation
        bounded: If True, return None for points outside the image

    Returns:
        np.array([x, y]) or None

    Raises:
        CoordinateError: if the slice metadata is degenerate
    """
    validate_geometry(slice_)
    delta = _as_world(world_point, slice_) - slice_.position
    row_spacing, col_spacing = slice_.pixel_spacing
    row_cosine, col_cosine = slice_.orientation
    pixel = np.array([
        float(np.dot(delta, row_cosine)) / col_spacing,
        float(np.dot(delta, col_cosine)) / row_spacing,
    ])
    if bounded and not in_image_bounds(pixel, slice_.dimensions):
        return None
    return pixel


def pixel_to_world(pixel_point: Sequence[float], slice_) -> np.ndarray:
    """
    Convert pixel coordinates (x=column, y=row) to a world point (mm).

    Exact inverse of world_to_pixel for points in the slice plane.

    Raises:
        CoordinateError: if the slice metadata is degenerate
    """
    validate_geometry(slice_)
    x, y = float(pixel_point[0]), float(pixel_point[1])
    row_spacing, col_spacing = slice_.pixel_spacing
    row_cosine, col_cosine = slice_.orientation
    return slice_.position + x * col_spacing * row_cosine + y * row_spacing * col_cosine


def base_scale(image_dims: Tuple[int, int], canvas_dims: Tuple[int, int],
               scale_policy: str = SCALE_POLICY_FIT) -> float:
    """
    Scale that fits ("fit": whole image visible) or fills ("fill": canvas
    covered) the canvas with the image at zoom 1.0.
    """
    image_w, image_h = image_dims
    canvas_w, canvas_h = canvas_dims
    if image_w <= 0 or image_h <= 0 or canvas_w <= 0 or canvas_h <= 0:
        raise ValueError(f"Invalid dimensions image={image_dims} canvas={canvas_dims}")
    ratios = (canvas_w / image_w, canvas_h / image_h)
    if scale_policy == SCALE_POLICY_FILL:
        return max(ratios)
    return min(ratios)


def screen_affine(image_dims: Tuple[int, int], canvas_dims: Tuple[int, int],
                  view: ViewState) -> Tuple[float, float, float]:
    """
    Return (scale, offset_x, offset_y) such that
    screen = offset + (pixel + 0.5) * scale.

    The image rectangle [-0.5, width - 0.5) x [-0.5, height - 0.5) is centered
    on the canvas, scaled by base_scale * zoom, then shifted by the pan.
    """
    scale = base_scale(image_dims, canvas_dims, view.scale_policy) * view.zoom
    image_w, image_h = image_dims
    canvas_w, canvas_h = canvas_dims
    offset_x = (canvas_w - image_w * scale) / 2.0 + view.pan_x
    offset_y = (canvas_h - image_h * scale) / 2.0 + view.pan_y
    return scale, offset_x, offset_y


def pixel_to_screen(pixel_point: Sequence[float], image_dims: Tuple[int, int],
                    canvas_dims: Tuple[int, int], view: ViewState) -> np.ndarray:
    """Convert pixel coordinates to screen coordinates."""
    scale, offset_x, offset_y = screen_affine(image_dims, canvas_dims, view)
    return np.array([
        offset_x + (float(pixel_point[0]) + 0.5) * scale,
        offset_y + (float(pixel_point[1]) + 0.5) * scale,
    ])


def screen_to_pixel(screen_point: Sequence[float], image_dims: Tuple[int, int],
                    canvas_dims: Tuple[int, int], view: ViewState,
                    bounded: bool = True) -> Optional[np.ndarray]:
    """
    Convert screen coordinates to pixel coordinates; exact inverse of pixel_to_screen.

    Returns None when bounded and the point falls outside the image.
    """
    scale, offset_x, offset_y = screen_affine(image_dims, canvas_dims, view)
    pixel = np.array([
        (float(screen_point[0]) - offset_x) / scale - 0.5,
        (float(screen_point[1]) - offset_y) / scale - 0.5,
    ])
    if bounded and not in_image_bounds(pixel, image_dims):
        return None
    return pixel


def screen_to_world(screen_point: Sequence[float], slice_, canvas_dims: Tuple[int, int],
                    view: ViewState, bounded: bool = True) -> Optional[np.ndarray]:
    """Screen point to world point via the slice's pixel grid. None outside the image."""
    pixel = screen_to_pixel(screen_point, slice_.dimensions, canvas_dims, view, bounded)
    if pixel is None:
        return None
    return pixel_to_world(pixel, slice_)


def world_to_screen(world_point: Sequence[float], slice_, canvas_dims: Tuple[int, int],
                    view: ViewState) -> np.ndarray:
    """World point to screen point. Never None: overlays may extend past the image."""
    pixel = world_to_pixel(world_point, slice_, bounded=False)
    return pixel_to_screen(pixel, slice_.dimensions, canvas_dims, view)


def sample_at(world_point: Sequence[float], slice_) -> Optional[Tuple[float, float]]:
    """
    Stored and rescaled sample value of the pixel containing world_point.

    Returns:
        (raw, rescaled) or None outside the image
    """
    pixel = world_to_pixel(world_point, slice_)
    if pixel is None:
        return None
    column = min(int(np.floor(pixel[0] + 0.5)), slice_.width - 1)
    row = min(int(np.floor(pixel[1] + 0.5)), slice_.height - 1)
    raw = float(slice_.samples[row, column])
    return raw, raw * slice_.rescale_slope + slice_.rescale_intercept


def world_length_to_screen(length_mm: float, slice_, canvas_dims: Tuple[int, int],
                           view: ViewState) -> float:
    """Convert an in-plane length (mm, along the row direction) to screen pixels."""
    scale = base_scale(slice_.dimensions, canvas_dims, view.scale_policy) * view.zoom
    return length_mm / slice_.pixel_spacing[1] * scale


class Viewport:
    """
    Everything needed to map pointer positions on one canvas: the displayed
    slice, the canvas size and the session's ViewState. Built by the host and
    passed in at call time.
    """

    def __init__(self, slice_, canvas_dims: Tuple[int, int], view: ViewState):
        self.slice = slice_
        self.canvas_dims = (int(canvas_dims[0]), int(canvas_dims[1]))
        self.view = view

    def to_world(self, screen_point: Sequence[float], bounded: bool = True) -> Optional[np.ndarray]:
        return screen_to_world(screen_point, self.slice, self.canvas_dims, self.view, bounded)

    def to_plane(self, screen_point: Sequence[float], bounded: bool = True) -> Optional[np.ndarray]:
        """Screen point to the slice's in-plane coordinates, or None off the image."""
        world = self.to_world(screen_point, bounded)
        return None if world is None else world_to_plane(world, self.slice)

    def to_screen(self, world_point: Sequence[float]) -> np.ndarray:
        return world_to_screen(world_point, self.slice, self.canvas_dims, self.view)

    def length_to_screen(self, length_mm: float) -> float:
        return world_length_to_screen(length_mm, self.slice, self.canvas_dims, self.view)

    def sample_at(self, screen_point: Sequence[float]) -> Optional[Tuple[float, float]]:
        """(raw, rescaled) value under a screen point, or None off the image."""
        world = self.to_world(screen_point)
        if world is None:
            return None
        return sample_at(world, self.slice)

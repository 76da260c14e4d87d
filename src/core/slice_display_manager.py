"""
Slice Display Manager

This module renders a slice for display: windowing to 8-bit, placing the
raster on the canvas with the current zoom/pan/scale policy, and drawing the
structure contours and brush cursor on top.

Every placement goes through core.spatial_transform.screen_affine, so the
image, the contour overlay and the pointer mapping always agree.

Inputs:
    - Slice, WindowLevel, ViewState, canvas size
    - ContourStore for overlays
    - BrushCursor for the cursor overlay

Outputs:
    - uint8 rasters and PIL canvas images
    - Contours in screen coordinates

Requirements:
    - numpy for array operations
    - PIL/Pillow for canvas composition and drawing
    - core.dicom_window_level for windowing
    - core.spatial_transform for the image-to-screen mapping
"""

from typing import List, Optional, Sequence, Tuple
import numpy as np
from PIL import Image, ImageDraw

from core.dicom_window_level import WindowLevel, apply_window
from core.spatial_transform import Viewport, screen_affine, world_to_screen
from core.view_state_manager import ViewState, ViewStateManager
from tools.brush_cursor import draw_brush_cursor
from utils.image_utils import array_to_image, ensure_rgb


def render_slice(slice_, window: WindowLevel) -> np.ndarray:
    """
    Window a slice's stored samples to an 8-bit raster.

    The window is in rescaled units; the slice's own slope/intercept are
    applied before windowing.
    """
    return apply_window(slice_.samples, window, slice_.rescale_slope, slice_.rescale_intercept)


def render_viewport(raster: np.ndarray, canvas_dims: Tuple[int, int], view: ViewState,
                    smooth: bool = False) -> Image.Image:
    """
    Place a raster on a canvas of canvas_dims using the view's zoom, pan and
    scale policy.

    Canvas pixel X covers screen [X, X + 1); the inverse affine maps its
    center back to image space, matching pixel_to_screen exactly.

    Args:
        raster: uint8 array (height, width) or (height, width, 3)
        canvas_dims: (width, height) of the canvas
        view: ViewState
        smooth: Bilinear instead of nearest-neighbour sampling

    Returns:
        PIL image of the canvas size (areas outside the image are black)
    """
    image = array_to_image(raster)
    if image is None:
        raise ValueError(f"Cannot render raster with shape {raster.shape}")
    height, width = raster.shape[:2]
    scale, offset_x, offset_y = screen_affine((width, height), canvas_dims, view)
    # PIL's input coordinates put pixel i at [i, i + 1), i.e. our pixel + 0.5
    data = (1.0 / scale, 0.0, -offset_x / scale,
            0.0, 1.0 / scale, -offset_y / scale)
    resample = Image.Resampling.BILINEAR if smooth else Image.Resampling.NEAREST
    return image.transform((int(canvas_dims[0]), int(canvas_dims[1])), Image.Transform.AFFINE,
                           data=data, resample=resample, fillcolor=0)


def contour_to_screen(contour, slice_, canvas_dims: Tuple[int, int],
                      view: ViewState) -> List[List[Tuple[float, float]]]:
    """Each polygon of a contour as a list of screen points."""
    screen_polygons = []
    for polygon in contour.polygons:
        points = []
        for point in polygon:
            sx, sy = world_to_screen(point, slice_, canvas_dims, view)
            points.append((float(sx), float(sy)))
        screen_polygons.append(points)
    return screen_polygons


def draw_contours(image: Image.Image, contour_store, slice_, canvas_dims: Tuple[int, int],
                  view: ViewState, line_width: int = 2,
                  structure_ids: Optional[Sequence[int]] = None) -> Image.Image:
    """
    Outline every structure contour on the slice in its display color.

    Args:
        image: Canvas image
        contour_store: ContourStore
        slice_: Displayed slice (its projected z selects the contours)
        canvas_dims: Canvas size
        view: ViewState
        line_width: Outline width in screen pixels
        structure_ids: Only draw these structures (all if None)

    Returns:
        The image drawn on (RGB)
    """
    image = ensure_rgb(image)
    draw = ImageDraw.Draw(image)
    for structure, contour in contour_store.contours_for_slice(slice_.projected_z()):
        if structure_ids is not None and structure.structure_id not in structure_ids:
            continue
        for points in contour_to_screen(contour, slice_, canvas_dims, view):
            if len(points) < 3:
                continue
            draw.line(points + [points[0]], fill=structure.display_color, width=line_width)
    return image


class SliceDisplayManager:
    """
    Renders the current slice with overlays.

    Responsibilities:
    - Window the current slice with the view state manager's window
    - Place it on the canvas with the shared ViewState
    - Draw contours and the brush cursor
    """

    def __init__(self, view_state_manager: ViewStateManager, contour_store=None,
                 brush_engine=None):
        """
        Initialize the display manager.

        Args:
            view_state_manager: Source of ViewState and window
            contour_store: ContourStore whose contours are drawn (optional)
            brush_engine: BrushEngine whose cursor is drawn (optional)
        """
        self.view_state_manager = view_state_manager
        self.contour_store = contour_store
        self.brush_engine = brush_engine
        self.smooth = False
        self.contour_line_width = 2

    def viewport(self, slice_, canvas_dims: Tuple[int, int]) -> Viewport:
        """Viewport for pointer mapping on the canvas showing slice_."""
        return Viewport(slice_, canvas_dims, self.view_state_manager.view_state)

    def display_slice(self, slice_, canvas_dims: Tuple[int, int]) -> Image.Image:
        """
        Render slice_ with contours and cursor onto a canvas of canvas_dims.
        """
        view = self.view_state_manager.view_state
        raster = render_slice(slice_, self.view_state_manager.window)
        image = ensure_rgb(render_viewport(raster, canvas_dims, view, self.smooth))
        if self.contour_store is not None:
            image = draw_contours(image, self.contour_store, slice_, canvas_dims, view,
                                  self.contour_line_width)
        if self.brush_engine is not None:
            image = draw_brush_cursor(image, self.brush_engine.cursor,
                                      self.viewport(slice_, canvas_dims))
        return image

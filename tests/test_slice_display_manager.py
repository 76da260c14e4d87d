"""
Unit tests for rendering (core.slice_display_manager, tools.brush_cursor).

Tests canvas placement against the spatial transform, contour overlays and
the brush cursor. Runnable with pytest or unittest.
"""

import unittest
import sys
import os

import numpy as np
from PIL import Image

sys.path.insert(0, os.path.join(os.path.dirname(__file__), "..", "src"))

from core.dicom_slice import Slice
from core.dicom_window_level import WindowLevel
from core.slice_display_manager import (
    SliceDisplayManager,
    contour_to_screen,
    draw_contours,
    render_slice,
    render_viewport,
)
from core.spatial_transform import Viewport
from core.view_state_manager import ViewState, ViewStateManager
from tools.brush_cursor import ADD_COLOR, ERASE_COLOR, cursor_indicator, draw_brush_cursor
from tools.brush_tool import OPERATION_ADDITIVE, OPERATION_SUBTRACTIVE, BrushCursor, BrushEngine
from tools.contour_store import ContourStore, Structure


def has_color_near(image, x, y, color, radius=1):
    for dx in range(-radius, radius + 1):
        for dy in range(-radius, radius + 1):
            if image.getpixel((x + dx, y + dy)) == color:
                return True
    return False


class TestRenderViewport(unittest.TestCase):
    """Tests for render_slice / render_viewport."""

    def test_render_slice_applies_rescale(self):
        slice_ = Slice([[864.0, 1264.0]], rescale_intercept=-1024.0)
        raster = render_slice(slice_, WindowLevel(400.0, 40.0))
        self.assertEqual(raster.tolist(), [[0, 255]])

    def test_fit_scales_by_pixel_blocks(self):
        raster = np.array([[0, 255], [128, 64]], dtype=np.uint8)
        image = render_viewport(raster, (4, 4), ViewState())
        expected = np.kron(raster, np.ones((2, 2), dtype=np.uint8))
        np.testing.assert_array_equal(np.array(image), expected)

    def test_zoomed_out_leaves_black_border(self):
        raster = np.full((2, 2), 200, dtype=np.uint8)
        image = np.array(render_viewport(raster, (4, 4), ViewState(zoom=0.5)))
        self.assertEqual(image[0, 0], 0)
        self.assertEqual(image[1, 1], 200)
        self.assertEqual(image[2, 2], 200)
        self.assertEqual(image[3, 3], 0)

    def test_pan_shifts_image(self):
        raster = np.array([[0, 255], [128, 64]], dtype=np.uint8)
        image = np.array(render_viewport(raster, (4, 4), ViewState(pan_x=2.0)))
        self.assertEqual(image[0, 0], 0)
        self.assertEqual(image[0, 2], 0)
        self.assertEqual(image[2, 2], 128)


class TestOverlays(unittest.TestCase):
    """Tests for contour and cursor overlays."""

    def setUp(self):
        # 100x100 image, 1 mm pixels, 100x100 canvas: screen = world + 0.5
        self.slice = Slice(np.zeros((100, 100)), position=(0.0, 0.0, 0.0))
        self.view = ViewState()
        self.store = ContourStore()
        self.store.add_structure(Structure(1, "GTV", (255, 0, 0)))
        self.store.upsert_contour(1, 0.0, [[(10.0, 10.0), (30.0, 10.0), (30.0, 30.0), (10.0, 30.0)]])

    def test_contour_to_screen(self):
        polygons = contour_to_screen(self.store.get_contour(1, 0.0), self.slice, (100, 100), self.view)
        np.testing.assert_allclose(polygons[0][0], (10.5, 10.5))
        np.testing.assert_allclose(polygons[0][2], (30.5, 30.5))

    def test_draw_contours_uses_structure_color(self):
        image = draw_contours(Image.new('L', (100, 100)), self.store, self.slice, (100, 100), self.view)
        self.assertEqual(image.mode, 'RGB')
        self.assertTrue(has_color_near(image, 20, 10, (255, 0, 0)))
        self.assertEqual(image.getpixel((20, 20)), (0, 0, 0))

    def test_contours_on_other_slice_not_drawn(self):
        other = Slice(np.zeros((100, 100)), position=(0.0, 0.0, 10.0))
        image = draw_contours(Image.new('L', (100, 100)), self.store, other, (100, 100), self.view)
        self.assertFalse(has_color_near(image, 20, 10, (255, 0, 0)))

    def test_cursor_colors_and_indicator(self):
        viewport = Viewport(self.slice, (100, 100), self.view)
        add = draw_brush_cursor(Image.new('RGB', (100, 100)),
                                BrushCursor((50.0, 50.0), 5.0, OPERATION_ADDITIVE, "idle"), viewport)
        self.assertTrue(has_color_near(add, 55, 50, ADD_COLOR))
        self.assertTrue(has_color_near(add, 50, 48, ADD_COLOR))
        erase = draw_brush_cursor(Image.new('RGB', (100, 100)),
                                  BrushCursor((50.0, 50.0), 5.0, OPERATION_SUBTRACTIVE, "idle"), viewport)
        self.assertTrue(has_color_near(erase, 45, 50, ERASE_COLOR))
        self.assertEqual(cursor_indicator(OPERATION_ADDITIVE), "+")
        self.assertEqual(cursor_indicator(OPERATION_SUBTRACTIVE), "-")

    def test_hidden_cursor_draws_nothing(self):
        viewport = Viewport(self.slice, (100, 100), self.view)
        image = draw_brush_cursor(Image.new('RGB', (10, 10)),
                                  BrushCursor(None, 5.0, OPERATION_ADDITIVE, "idle"), viewport)
        self.assertEqual(image.getcolors(), [(100, (0, 0, 0))])

    def test_display_slice(self):
        engine = BrushEngine(self.store)
        engine.hover((70.0, 70.0))
        manager = SliceDisplayManager(ViewStateManager(), self.store, engine)
        image = manager.display_slice(self.slice, (100, 100))
        self.assertEqual(image.size, (100, 100))
        self.assertTrue(has_color_near(image, 20, 10, (255, 0, 0)))
        self.assertTrue(has_color_near(image, 75, 70, ADD_COLOR))


if __name__ == "__main__":
    unittest.main()

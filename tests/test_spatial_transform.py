"""
Unit tests for the spatial transform (core.spatial_transform).

Tests world<->pixel and pixel<->screen round trips, bounds handling, fit/fill
scaling and degenerate metadata. Does not require DICOM files.
Runnable with pytest or unittest.
"""

import unittest
import sys
import os

import numpy as np

sys.path.insert(0, os.path.join(os.path.dirname(__file__), "..", "src"))

from core.dicom_slice import Slice
from core.errors import CoordinateError
from core.spatial_transform import (
    Viewport,
    base_scale,
    plane_axes,
    plane_to_world,
    pixel_to_screen,
    pixel_to_world,
    sample_at,
    screen_to_pixel,
    screen_to_world,
    world_to_pixel,
    world_to_plane,
    world_to_screen,
)
from core.view_state_manager import SCALE_POLICY_FILL, SCALE_POLICY_FIT, ViewState


def make_slice(width=64, height=48, position=(-100.0, -80.0, 25.0), spacing=(0.8, 0.6),
               orientation=((1.0, 0.0, 0.0), (0.0, 1.0, 0.0))):
    return Slice(np.zeros((height, width)), position=position, pixel_spacing=spacing,
                 orientation=orientation)


class TestWorldPixel(unittest.TestCase):
    """Tests for world_to_pixel / pixel_to_world."""

    def test_origin_maps_to_pixel_zero(self):
        slice_ = make_slice()
        pixel = world_to_pixel((-100.0, -80.0, 25.0), slice_)
        np.testing.assert_allclose(pixel, [0.0, 0.0], atol=1e-9)

    def test_column_uses_column_spacing(self):
        # Row spacing 0.8, column spacing 0.6: 6 mm along x is 10 columns
        slice_ = make_slice()
        pixel = world_to_pixel((-94.0, -72.0, 25.0), slice_)
        np.testing.assert_allclose(pixel, [10.0, 10.0], atol=1e-9)

    def test_round_trip_axial(self):
        slice_ = make_slice()
        for pixel in [(0.0, 0.0), (10.25, 3.5), (63.4, 47.9), (31.0, 24.0)]:
            world = pixel_to_world(pixel, slice_)
            back = world_to_pixel(world, slice_)
            np.testing.assert_allclose(back, pixel, atol=1e-3)

    def test_round_trip_oblique(self):
        c, s = np.cos(0.3), np.sin(0.3)
        slice_ = make_slice(orientation=((c, s, 0.0), (0.0, 0.0, -1.0)))
        for pixel in [(1.5, 2.5), (40.0, 12.0)]:
            world = pixel_to_world(pixel, slice_)
            np.testing.assert_allclose(world_to_pixel(world, slice_), pixel, atol=1e-3)

    def test_outside_image_returns_none(self):
        slice_ = make_slice()
        self.assertIsNone(world_to_pixel((-101.0, -80.0, 25.0), slice_))
        self.assertIsNone(world_to_pixel(pixel_to_world((64.0, 0.0), slice_), slice_))

    def test_unbounded_returns_outside_point(self):
        slice_ = make_slice()
        pixel = world_to_pixel((-106.0, -80.0, 25.0), slice_, bounded=False)
        np.testing.assert_allclose(pixel, [-10.0, 0.0], atol=1e-9)

    def test_in_plane_point_uses_slice_z(self):
        slice_ = make_slice()
        np.testing.assert_allclose(world_to_pixel((-94.0, -72.0), slice_), [10.0, 10.0], atol=1e-9)

    def test_non_unit_cosine_raises(self):
        slice_ = make_slice(orientation=((2.0, 0.0, 0.0), (0.0, 1.0, 0.0)))
        with self.assertRaises(CoordinateError):
            world_to_pixel((0.0, 0.0, 0.0), slice_)

    def test_non_orthogonal_cosines_raise(self):
        slice_ = make_slice(orientation=((1.0, 0.0, 0.0), (0.6, 0.8, 0.0)))
        with self.assertRaises(CoordinateError):
            pixel_to_world((0.0, 0.0), slice_)

    def test_zero_spacing_raises(self):
        slice_ = make_slice(spacing=(0.0, 1.0))
        with self.assertRaises(CoordinateError):
            world_to_pixel((0.0, 0.0, 0.0), slice_)


class TestScreenPixel(unittest.TestCase):
    """Tests for pixel_to_screen / screen_to_pixel."""

    def test_base_scale_fit_and_fill(self):
        self.assertEqual(base_scale((100, 50), (400, 400), SCALE_POLICY_FIT), 4.0)
        self.assertEqual(base_scale((100, 50), (400, 400), SCALE_POLICY_FILL), 8.0)

    def test_image_is_centered(self):
        view = ViewState()
        # 100x50 image on 400x400 canvas, fit scale 4 -> image spans y 100..300
        top_left = pixel_to_screen((-0.5, -0.5), (100, 50), (400, 400), view)
        np.testing.assert_allclose(top_left, [0.0, 100.0])
        bottom_right = pixel_to_screen((99.5, 49.5), (100, 50), (400, 400), view)
        np.testing.assert_allclose(bottom_right, [400.0, 300.0])

    def test_round_trip_with_zoom_and_pan(self):
        view = ViewState(zoom=2.5, pan_x=-37.0, pan_y=12.5)
        for policy in (SCALE_POLICY_FIT, SCALE_POLICY_FILL):
            view.scale_policy = policy
            for pixel in [(0.0, 0.0), (12.3, 45.6), (99.0, 49.0)]:
                screen = pixel_to_screen(pixel, (100, 50), (640, 480), view)
                back = screen_to_pixel(screen, (100, 50), (640, 480), view)
                np.testing.assert_allclose(back, pixel, atol=1e-3)

    def test_screen_outside_image_returns_none(self):
        view = ViewState()
        self.assertIsNone(screen_to_pixel((5.0, 5.0), (100, 50), (400, 400), view))
        self.assertIsNotNone(screen_to_pixel((5.0, 5.0), (100, 50), (400, 400), view, bounded=False))

    def test_zoom_is_clamped(self):
        view = ViewState(zoom=50.0)
        self.assertEqual(view.zoom, 5.0)
        self.assertEqual(view.set_zoom(0.01), 0.1)


class TestScreenWorld(unittest.TestCase):
    """Tests for the screen<->world compositions and Viewport."""

    def test_world_screen_round_trip(self):
        slice_ = make_slice()
        view = ViewState(zoom=1.7, pan_x=20.0, pan_y=-5.0)
        world = pixel_to_world((20.0, 30.0), slice_)
        screen = world_to_screen(world, slice_, (800, 600), view)
        back = screen_to_world(screen, slice_, (800, 600), view)
        np.testing.assert_allclose(back, world, atol=1e-3)

    def test_viewport_length_to_screen(self):
        slice_ = make_slice(width=100, height=100, spacing=(1.0, 0.5))
        viewport = Viewport(slice_, (200, 200), ViewState())
        # 1 mm = 2 columns, fit scale 2 -> 4 screen pixels
        self.assertAlmostEqual(viewport.length_to_screen(1.0), 4.0)

    def test_viewport_to_world_matches_function(self):
        slice_ = make_slice()
        view = ViewState(zoom=2.0)
        viewport = Viewport(slice_, (300, 300), view)
        np.testing.assert_allclose(viewport.to_world((150.0, 150.0)),
                                   screen_to_world((150.0, 150.0), slice_, (300, 300), view))


SAGITTAL = ((0.0, 1.0, 0.0), (0.0, 0.0, -1.0))
CORONAL = ((1.0, 0.0, 0.0), (0.0, 0.0, -1.0))


class TestPlaneCoordinates(unittest.TestCase):
    """Tests for plane_axes / world_to_plane / plane_to_world."""

    def test_axes_follow_orientation(self):
        self.assertEqual(plane_axes(make_slice()), (0, 1))
        self.assertEqual(plane_axes(make_slice(orientation=SAGITTAL)), (1, 2))
        self.assertEqual(plane_axes(make_slice(orientation=CORONAL)), (0, 2))

    def test_sagittal_round_trip(self):
        slice_ = make_slice(position=(12.0, -30.0, 40.0), orientation=SAGITTAL)
        world = pixel_to_world((10.0, 20.0), slice_)
        plane = world_to_plane(world, slice_)
        np.testing.assert_allclose(plane, [world[1], world[2]])
        np.testing.assert_allclose(plane_to_world(plane, slice_), world, atol=1e-9)
        np.testing.assert_allclose(world_to_pixel(plane, slice_), [10.0, 20.0], atol=1e-9)

    def test_oblique_lift_stays_on_plane(self):
        c, s = np.cos(0.3), np.sin(0.3)
        slice_ = make_slice(orientation=((c, s, 0.0), (0.0, 0.0, -1.0)))
        world = pixel_to_world((15.0, 7.0), slice_)
        lifted = plane_to_world(world_to_plane(world, slice_), slice_)
        np.testing.assert_allclose(lifted, world, atol=1e-9)


class TestSampleAt(unittest.TestCase):
    """Tests for reading the value under a point."""

    def setUp(self):
        samples = np.arange(12, dtype=np.float64).reshape(3, 4)
        self.slice = Slice(samples, rescale_slope=2.0, rescale_intercept=-10.0)

    def test_world_point(self):
        self.assertEqual(sample_at((2.0, 1.0, 0.0), self.slice), (6.0, 2.0))

    def test_nearest_pixel_center(self):
        self.assertEqual(sample_at((2.4, 0.6), self.slice)[0], 6.0)

    def test_outside_image(self):
        self.assertIsNone(sample_at((-3.0, 0.0), self.slice))

    def test_viewport_screen_point(self):
        # 4x3 image on a 4x3 canvas: screen = pixel + 0.5
        viewport = Viewport(self.slice, (4, 3), ViewState())
        self.assertEqual(viewport.sample_at((3.5, 2.5)), (11.0, 12.0))
        self.assertIsNone(Viewport(self.slice, (8, 3), ViewState()).sample_at((0.5, 1.5)))


if __name__ == "__main__":
    unittest.main()

"""
Unit tests for DICOM tag helpers (utils.dicom_utils) and the dataset-to-Slice
adapter (core.dicom_slice).

Builds small in-memory pydicom datasets; does not require DICOM files.
Runnable with pytest or unittest.
"""

import unittest
import sys
import os

import numpy as np
from pydicom.dataset import Dataset

sys.path.insert(0, os.path.join(os.path.dirname(__file__), "..", "src"))

from core.dicom_slice import AXIAL_ORIENTATION, Slice, slice_from_dataset
from core.errors import CoordinateError
from utils.dicom_utils import (
    format_length_mm,
    get_float_tag,
    get_image_orientation,
    get_image_position,
    get_pixel_spacing,
    get_rescale_parameters,
)


def make_dataset():
    ds = Dataset()
    ds.SOPInstanceUID = "1.2.3.4.5"
    ds.InstanceNumber = 7
    ds.SliceLocation = -12.5
    ds.ImagePositionPatient = [-250.0, -250.0, -12.5]
    ds.ImageOrientationPatient = [1, 0, 0, 0, 1, 0]
    ds.PixelSpacing = [0.9765625, 0.5]
    ds.RescaleSlope = 1
    ds.RescaleIntercept = -1024
    return ds


class TestTagHelpers(unittest.TestCase):
    """Tests for tag reading helpers."""

    def test_pixel_spacing(self):
        self.assertEqual(get_pixel_spacing(make_dataset()), (0.9765625, 0.5))

    def test_imager_pixel_spacing_fallback(self):
        ds = Dataset()
        ds.ImagerPixelSpacing = [0.2, 0.3]
        self.assertEqual(get_pixel_spacing(ds), (0.2, 0.3))

    def test_missing_spacing(self):
        self.assertIsNone(get_pixel_spacing(Dataset()))

    def test_position_and_orientation(self):
        ds = make_dataset()
        np.testing.assert_array_equal(get_image_position(ds), [-250.0, -250.0, -12.5])
        row_cosine, col_cosine = get_image_orientation(ds)
        np.testing.assert_array_equal(row_cosine, [1.0, 0.0, 0.0])
        np.testing.assert_array_equal(col_cosine, [0.0, 1.0, 0.0])

    def test_rescale_defaults(self):
        self.assertEqual(get_rescale_parameters(Dataset()), (1.0, 0.0))
        self.assertEqual(get_rescale_parameters(make_dataset()), (1.0, -1024.0))

    def test_zero_slope_treated_as_identity(self):
        ds = Dataset()
        ds.RescaleSlope = 0
        self.assertEqual(get_rescale_parameters(ds)[0], 1.0)

    def test_float_tag(self):
        self.assertEqual(get_float_tag(make_dataset(), 'SliceLocation'), -12.5)
        self.assertIsNone(get_float_tag(Dataset(), 'SliceLocation'))

    def test_format_length(self):
        self.assertEqual(format_length_mm(2.5), "2.50 mm")
        self.assertEqual(format_length_mm(12.5), "12.5 mm")


class TestSliceFromDataset(unittest.TestCase):
    """Tests for slice_from_dataset and Slice."""

    def test_maps_tags(self):
        pixels = np.arange(12, dtype=np.int16).reshape(3, 4)
        slice_ = slice_from_dataset(make_dataset(), pixels)
        self.assertEqual(slice_.dimensions, (4, 3))
        self.assertEqual(slice_.pixel_spacing, (0.9765625, 0.5))
        self.assertEqual(slice_.key, "1.2.3.4.5")
        self.assertEqual(slice_.sequence_number, 7)
        self.assertEqual(slice_.slice_location, -12.5)
        self.assertEqual(slice_.rescale_intercept, -1024.0)
        self.assertAlmostEqual(slice_.projected_z(), -12.5)

    def test_missing_spatial_tags_default_to_axial(self):
        slice_ = slice_from_dataset(Dataset(), np.zeros((2, 2)))
        self.assertEqual(slice_.pixel_spacing, (1.0, 1.0))
        np.testing.assert_array_equal(slice_.row_cosine, AXIAL_ORIENTATION[0])
        self.assertIsNone(slice_.key)

    def test_samples_are_read_only(self):
        slice_ = Slice(np.zeros((2, 2)))
        with self.assertRaises(ValueError):
            slice_.samples[0, 0] = 1.0

    def test_rescaled_samples(self):
        slice_ = Slice([[0.0, 10.0]], rescale_slope=2.0, rescale_intercept=-5.0)
        np.testing.assert_array_equal(slice_.rescaled_samples(), [[-5.0, 15.0]])

    def test_invalid_samples(self):
        with self.assertRaises(ValueError):
            Slice(np.zeros(5))

    def test_non_finite_position(self):
        with self.assertRaises(CoordinateError):
            Slice(np.zeros((2, 2)), position=(0.0, float("nan"), 0.0))


if __name__ == "__main__":
    unittest.main()

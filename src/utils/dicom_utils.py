"""
DICOM Utility Functions

This module provides helper functions for reading spatial and rescale tags
from already-decoded pydicom datasets, plus length formatting.

Inputs:
    - pydicom.Dataset objects
    - Distance values

Outputs:
    - Tag values as floats/numpy arrays
    - Formatted length strings

Requirements:
    - pydicom library
    - numpy for calculations
"""

from typing import Optional, Tuple
import numpy as np
from pydicom.dataset import Dataset


def _first_float(value) -> Optional[float]:
    """Convert a tag value (single or multi-valued) to float, taking the first item."""
    if value is None:
        return None
    try:
        if isinstance(value, (int, float, str)):
            return float(value)
        # MultiValue, list or tuple
        items = list(value)
        return float(items[0]) if items else None
    except (TypeError, ValueError):
        return None


def get_float_tag(dataset: Dataset, keyword: str) -> Optional[float]:
    """
    Get a numeric tag as float.

    Args:
        dataset: pydicom Dataset
        keyword: DICOM keyword (e.g. "SliceLocation")

    Returns:
        Float value, or None if the tag is missing or not numeric
    """
    if not hasattr(dataset, keyword):
        return None
    return _first_float(getattr(dataset, keyword))


def get_pixel_spacing(dataset: Dataset) -> Optional[Tuple[float, float]]:
    """
    Get pixel spacing from DICOM dataset.
    Checks Pixel Spacing (0028,0030) first, then Imager Pixel Spacing (0018,1164).

    Args:
        dataset: pydicom Dataset

    Returns:
        Tuple of (row_spacing, column_spacing) in mm, or None if not available
    """
    for keyword in ('PixelSpacing', 'ImagerPixelSpacing'):
        spacing = getattr(dataset, keyword, None)
        try:
            if spacing and len(spacing) >= 2:
                row_spacing = float(spacing[0])
                col_spacing = float(spacing[1])
                if row_spacing > 0 and col_spacing > 0:
                    return (row_spacing, col_spacing)
        except (TypeError, ValueError):
            continue
    return None


def get_image_position(dataset: Dataset) -> Optional[np.ndarray]:
    """
    Get ImagePositionPatient from DICOM dataset.

    Args:
        dataset: pydicom Dataset

    Returns:
        NumPy array of [X, Y, Z] coordinates, or None if not available
    """
    pos = getattr(dataset, 'ImagePositionPatient', None)
    try:
        if pos and len(pos) >= 3:
            return np.array([float(pos[0]), float(pos[1]), float(pos[2])])
    except (TypeError, ValueError):
        pass
    return None


def get_image_orientation(dataset: Dataset) -> Optional[Tuple[np.ndarray, np.ndarray]]:
    """
    Get ImageOrientationPatient from DICOM dataset.

    Args:
        dataset: pydicom Dataset

    Returns:
        Tuple of (row_cosine, column_cosine) arrays, or None if not available
    """
    orient = getattr(dataset, 'ImageOrientationPatient', None)
    try:
        if orient and len(orient) >= 6:
            row_cosine = np.array([float(orient[0]), float(orient[1]), float(orient[2])])
            col_cosine = np.array([float(orient[3]), float(orient[4]), float(orient[5])])
            return (row_cosine, col_cosine)
    except (TypeError, ValueError):
        pass
    return None


def get_rescale_parameters(dataset: Dataset) -> Tuple[float, float]:
    """
    Get rescale slope and intercept, defaulting to the identity map (1.0, 0.0).

    Args:
        dataset: pydicom Dataset

    Returns:
        Tuple of (rescale_slope, rescale_intercept)
    """
    slope = get_float_tag(dataset, 'RescaleSlope')
    intercept = get_float_tag(dataset, 'RescaleIntercept')
    if slope is None or slope == 0.0:
        slope = 1.0
    if intercept is None:
        intercept = 0.0
    return slope, intercept


def format_length_mm(mm: float) -> str:
    """Format a length in mm, e.g. "2.50 mm" below 10 mm and "12.5 mm" above."""
    if mm >= 10:
        return f"{mm:.1f} mm"
    return f"{mm:.2f} mm"

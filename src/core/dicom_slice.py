"""
Decoded Slice

This module holds the immutable Slice value (decoded intensity grid plus the
spatial metadata needed to place it in patient space) and the adapter that
builds one from a pydicom Dataset.

Inputs:
    - Decoded pixel arrays and spatial metadata
    - pydicom Dataset (pixel data decoded by pydicom)

Outputs:
    - Slice objects

Requirements:
    - numpy for sample storage
    - pydicom for Dataset access
    - utils.dicom_utils for tag lookups
"""

from typing import Optional, Sequence, Tuple
import numpy as np
from pydicom.dataset import Dataset

from core.errors import CoordinateError
from utils.dicom_utils import (
    get_float_tag,
    get_image_orientation,
    get_image_position,
    get_pixel_spacing,
    get_rescale_parameters,
)


AXIAL_ORIENTATION = ((1.0, 0.0, 0.0), (0.0, 1.0, 0.0))


class Slice:
    """
    One decoded 2-D image with its placement in patient space.

    samples are stored as a read-only (height, width) float array; row r,
    column c is pixel (x=c, y=r). position is the world location of the
    center of pixel (0, 0). pixel_spacing is (row_spacing, column_spacing)
    in mm, i.e. (distance between rows, distance between columns).
    """

    def __init__(
        self,
        samples,
        position: Sequence[float] = (0.0, 0.0, 0.0),
        pixel_spacing: Sequence[float] = (1.0, 1.0),
        orientation: Sequence[Sequence[float]] = AXIAL_ORIENTATION,
        rescale_slope: float = 1.0,
        rescale_intercept: float = 0.0,
        slice_location: Optional[float] = None,
        sequence_number: Optional[int] = None,
        key: Optional[str] = None,
    ):
        array = np.array(samples, dtype=np.float64)
        if array.ndim != 2:
            raise ValueError(f"Slice samples must be 2-D, got shape {array.shape}")
        array.setflags(write=False)
        self._samples = array
        self._position = _frozen_vector(position, 3, "position")
        self._pixel_spacing = (float(pixel_spacing[0]), float(pixel_spacing[1]))
        if len(orientation) != 2:
            raise CoordinateError("orientation must hold a row and a column direction cosine")
        self._row_cosine = _frozen_vector(orientation[0], 3, "row cosine")
        self._col_cosine = _frozen_vector(orientation[1], 3, "column cosine")
        self._rescale_slope = float(rescale_slope)
        self._rescale_intercept = float(rescale_intercept)
        self._slice_location = None if slice_location is None else float(slice_location)
        self._sequence_number = None if sequence_number is None else int(sequence_number)
        self._key = key

    @property
    def samples(self) -> np.ndarray:
        return self._samples

    @property
    def width(self) -> int:
        return self._samples.shape[1]

    @property
    def height(self) -> int:
        return self._samples.shape[0]

    @property
    def dimensions(self) -> Tuple[int, int]:
        """(width, height) in pixels."""
        return self.width, self.height

    @property
    def position(self) -> np.ndarray:
        return self._position

    @property
    def pixel_spacing(self) -> Tuple[float, float]:
        return self._pixel_spacing

    @property
    def row_cosine(self) -> np.ndarray:
        return self._row_cosine

    @property
    def col_cosine(self) -> np.ndarray:
        return self._col_cosine

    @property
    def orientation(self) -> Tuple[np.ndarray, np.ndarray]:
        return self._row_cosine, self._col_cosine

    @property
    def normal(self) -> np.ndarray:
        """Slice normal (row cosine x column cosine)."""
        return np.cross(self._row_cosine, self._col_cosine)

    @property
    def rescale_slope(self) -> float:
        return self._rescale_slope

    @property
    def rescale_intercept(self) -> float:
        return self._rescale_intercept

    @property
    def slice_location(self) -> Optional[float]:
        return self._slice_location

    @property
    def sequence_number(self) -> Optional[int]:
        return self._sequence_number

    @property
    def key(self) -> Optional[str]:
        return self._key

    def projected_z(self) -> float:
        """Position projected onto the slice normal (the Z of an axial slice)."""
        normal = self.normal
        norm = float(np.linalg.norm(normal))
        if norm == 0.0:
            return float(self._position[2])
        return float(np.dot(self._position, normal / norm))

    def rescaled_samples(self) -> np.ndarray:
        """Samples mapped through slope/intercept (Hounsfield-like units for CT)."""
        return self._samples * self._rescale_slope + self._rescale_intercept

    def __repr__(self) -> str:
        return (f"Slice(key={self._key!r}, {self.width}x{self.height}, "
                f"z={self.projected_z():.2f})")


def _frozen_vector(values: Sequence[float], length: int, name: str) -> np.ndarray:
    try:
        vector = np.array([float(v) for v in values], dtype=np.float64)
    except (TypeError, ValueError) as e:
        raise CoordinateError(f"Invalid {name}: {values!r}") from e
    if vector.shape != (length,):
        raise CoordinateError(f"{name} must have {length} components, got {len(vector)}")
    if not np.all(np.isfinite(vector)):
        raise CoordinateError(f"{name} contains non-finite values: {values!r}")
    vector.setflags(write=False)
    return vector


def slice_from_dataset(dataset: Dataset, pixel_array: Optional[np.ndarray] = None) -> Slice:
    """
    Build a Slice from an image dataset.

    Pixel data decoding is pydicom's job: when pixel_array is not supplied,
    dataset.pixel_array is used. Missing spatial tags fall back to an axial
    orientation at the origin with 1 mm spacing.

    Args:
        dataset: pydicom Dataset of a CT/MR image
        pixel_array: Optional already-decoded (rows, columns) array

    Returns:
        Slice

    Raises:
        CoordinateError: if the spatial tags are malformed
        ValueError: if the pixel data is not a single 2-D frame
    """
    if pixel_array is None:
        pixel_array = dataset.pixel_array
    position = get_image_position(dataset)
    orientation = get_image_orientation(dataset)
    spacing = get_pixel_spacing(dataset)
    slope, intercept = get_rescale_parameters(dataset)
    instance_number = get_float_tag(dataset, 'InstanceNumber')
    key = getattr(dataset, 'SOPInstanceUID', None)
    return Slice(
        pixel_array,
        position=position if position is not None else (0.0, 0.0, 0.0),
        pixel_spacing=spacing if spacing is not None else (1.0, 1.0),
        orientation=orientation if orientation is not None else AXIAL_ORIENTATION,
        rescale_slope=slope,
        rescale_intercept=intercept,
        slice_location=get_float_tag(dataset, 'SliceLocation'),
        sequence_number=None if instance_number is None else int(instance_number),
        key=str(key) if key is not None else None,
    )

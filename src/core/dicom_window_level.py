"""
DICOM window/level handling.

This module maps stored intensity samples to 8-bit grayscale under a window
width/center, converts window values between raw and rescaled units, and
extracts window center/width from DICOM datasets.

Inputs:
    - Sample arrays (full-resolution slices or MPR planes), rescale parameters
    - pydicom Dataset

Outputs:
    - Windowed arrays (0-255 uint8), WindowLevel values, presets

Requirements:
    - numpy, pydicom
"""

import numpy as np
from typing import Dict, List, Optional, Tuple
from pydicom.dataset import Dataset


MIN_WINDOW_WIDTH = 1.0


class WindowLevel:
    """
    Window width/center pair. Width is clamped to MIN_WINDOW_WIDTH so the
    normalization never divides by zero.
    """

    def __init__(self, width: float, center: float):
        self.width = max(MIN_WINDOW_WIDTH, float(width))
        self.center = float(center)

    @property
    def lower(self) -> float:
        return self.center - self.width / 2.0

    @property
    def upper(self) -> float:
        return self.center + self.width / 2.0

    def adjusted(self, center_delta: float, width_delta: float) -> 'WindowLevel':
        """Return a new window shifted by the given deltas (right-drag window/level)."""
        return WindowLevel(self.width + width_delta, self.center + center_delta)

    def __eq__(self, other) -> bool:
        if not isinstance(other, WindowLevel):
            return NotImplemented
        return self.width == other.width and self.center == other.center

    def __repr__(self) -> str:
        return f"WindowLevel(width={self.width}, center={self.center})"


# Named CT presets (width, center)
WINDOW_LEVEL_PRESETS: Dict[str, Tuple[float, float]] = {
    'soft tissue': (400.0, 40.0),
    'lung': (1500.0, -600.0),
    'bone': (1800.0, 400.0),
    'brain': (80.0, 40.0),
    'liver': (150.0, 30.0),
    'mediastinum': (350.0, 50.0),
    'abdomen': (350.0, 40.0),
    'full range': (4096.0, 1024.0),
}


def get_preset(name: str) -> WindowLevel:
    """
    Look up a named preset (case-insensitive).

    Raises:
        KeyError: if the preset name is unknown
    """
    width, center = WINDOW_LEVEL_PRESETS[name.strip().lower()]
    return WindowLevel(width, center)


def apply_window_level(
    pixel_array: np.ndarray,
    window_center: float,
    window_width: float,
    rescale_slope: Optional[float] = None,
    rescale_intercept: Optional[float] = None,
) -> np.ndarray:
    """
    Apply window/level transformation to a sample array. Returns 0-255 uint8.

    hu = raw * slope + intercept; t = (hu - (center - width/2)) / width,
    clamped to [0, 1], scaled to [0, 255] and rounded. Values at or below the
    lower window edge map to exactly 0, values at or above the upper edge to
    exactly 255.
    """
    values = np.asarray(pixel_array, dtype=np.float64)
    if rescale_slope is not None and rescale_intercept is not None:
        values = values * rescale_slope + rescale_intercept
    width = max(MIN_WINDOW_WIDTH, float(window_width))
    window_min = float(window_center) - width / 2.0
    normalized = np.clip((values - window_min) / width, 0.0, 1.0)
    return np.rint(normalized * 255.0).astype(np.uint8)


def apply_window(pixel_array: np.ndarray, window: WindowLevel,
                 rescale_slope: float = 1.0, rescale_intercept: float = 0.0) -> np.ndarray:
    """apply_window_level taking a WindowLevel."""
    return apply_window_level(pixel_array, window.center, window.width,
                              rescale_slope, rescale_intercept)


def convert_window_level_rescaled_to_raw(
    center: float, width: float, slope: float, intercept: float
) -> Tuple[float, float]:
    """Convert window/level from rescaled to raw pixel values. Returns (raw_center, raw_width)."""
    if slope == 0.0:
        return center, width
    return (center - intercept) / slope, width / slope


def convert_window_level_raw_to_rescaled(
    center: float, width: float, slope: float, intercept: float
) -> Tuple[float, float]:
    """Convert window/level from raw to rescaled. Returns (rescaled_center, rescaled_width)."""
    return center * slope + intercept, width * slope


def _parse_window_values(value) -> List[float]:
    """Parse a WindowCenter/WindowWidth value that may be single, multi-valued or a backslash string."""
    if value is None:
        return []
    if isinstance(value, str):
        return [float(p.strip()) for p in value.split('\\') if p.strip()]
    if isinstance(value, (int, float)):
        return [float(value)]
    return [float(v) for v in value]


def get_window_level_from_dataset(
    dataset: Dataset,
    pixel_array: Optional[np.ndarray] = None,
    rescale_slope: float = 1.0,
    rescale_intercept: float = 0.0,
) -> Optional[WindowLevel]:
    """
    Get the default window from a DICOM dataset, in rescaled units.

    Uses the first WindowCenter/WindowWidth value when present. Otherwise
    falls back to the rescaled min/max of pixel_array. Returns None when
    neither source is available.
    """
    try:
        centers = _parse_window_values(getattr(dataset, 'WindowCenter', None))
        widths = _parse_window_values(getattr(dataset, 'WindowWidth', None))
    except (TypeError, ValueError) as e:
        print(f"Error parsing window tags: {e}")
        centers, widths = [], []
    if centers and widths:
        return WindowLevel(widths[0], centers[0])
    if pixel_array is None or np.size(pixel_array) == 0:
        return None
    rescaled = np.asarray(pixel_array, dtype=np.float64) * rescale_slope + rescale_intercept
    pixel_min = float(np.min(rescaled))
    pixel_max = float(np.max(rescaled))
    return WindowLevel(pixel_max - pixel_min, (pixel_min + pixel_max) / 2.0)


def get_window_level_presets_from_dataset(dataset: Dataset) -> List[Tuple[WindowLevel, Optional[str]]]:
    """
    Get all window center/width pairs from a DICOM dataset.
    Returns list of (WindowLevel, preset_name); the first entry has no name.
    """
    try:
        centers = _parse_window_values(getattr(dataset, 'WindowCenter', None))
        widths = _parse_window_values(getattr(dataset, 'WindowWidth', None))
    except (TypeError, ValueError):
        return []
    presets = []
    for i in range(max(len(centers), len(widths))):
        if not centers or not widths:
            break
        wc = centers[i] if i < len(centers) else centers[-1]
        ww = widths[i] if i < len(widths) else widths[-1]
        presets.append((WindowLevel(ww, wc), None if i == 0 else f"Preset {i + 1}"))
    return presets

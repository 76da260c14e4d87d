"""
Slice Stack

This module orders a set of decoded slices by spatial position and provides
slice lookup by index and by world Z.

Ordering uses the highest-priority key that every slice provides:
    1. SliceLocation
    2. ImagePositionPatient projected onto the slice normal
    3. Sequence number (InstanceNumber)
    4. Input order
The sort is stable: slices with equal keys keep their input order. Neighbours
closer than the tolerance are reported by duplicate_keys. Sorting is
deterministic, so building a stack twice from the same input (or from an
already sorted stack) yields the same order.

Inputs:
    - Slices (any order)

Outputs:
    - Ordered slices, index/position lookups, continuity report

Requirements:
    - numpy for spacing statistics
"""

from typing import Dict, List, Optional, Sequence, Tuple
import numpy as np


SLICE_POSITION_TOLERANCE = 2.0

SORT_SLICE_LOCATION = 'sliceLocation'
SORT_IMAGE_POSITION = 'imagePosition'
SORT_SEQUENCE_NUMBER = 'sequenceNumber'
SORT_INPUT_ORDER = 'inputOrder'


def _spatial_keys(slices: Sequence) -> Tuple[str, List[float]]:
    """Pick the sort method and compute one key per slice."""
    if slices and all(s.slice_location is not None for s in slices):
        return SORT_SLICE_LOCATION, [s.slice_location for s in slices]
    if slices and all(s.position is not None for s in slices):
        return SORT_IMAGE_POSITION, [s.projected_z() for s in slices]
    if slices and all(s.sequence_number is not None for s in slices):
        return SORT_SEQUENCE_NUMBER, [float(s.sequence_number) for s in slices]
    return SORT_INPUT_ORDER, [float(i) for i in range(len(slices))]


def sort_slices(slices: Sequence) -> Tuple[List, List[float], str]:
    """
    Sort slices ascending by spatial key. Equal keys keep input order.

    Returns:
        (ordered slices, their keys, sort method)
    """
    method, keys = _spatial_keys(slices)
    order = sorted(range(len(slices)), key=lambda i: keys[i])
    return [slices[i] for i in order], [keys[i] for i in order], method


class SliceStack:
    """
    Ordered sequence of slices belonging to one series.
    """

    def __init__(self, slices: Sequence, tolerance: float = SLICE_POSITION_TOLERANCE):
        """
        Initialize and sort the stack.

        Args:
            slices: Decoded slices in any order
            tolerance: Spatial key tolerance used for duplicate detection and lookups
        """
        self.tolerance = float(tolerance)
        self._slices, self._keys, self.sort_method = sort_slices(list(slices))

    def __len__(self) -> int:
        return len(self._slices)

    def __iter__(self):
        return iter(self._slices)

    def ordered_slices(self) -> List:
        return list(self._slices)

    def spatial_keys(self) -> List[float]:
        return list(self._keys)

    def slice_at(self, index: int):
        """
        Raises:
            IndexError: if index is outside [0, len)
        """
        if index < 0 or index >= len(self._slices):
            raise IndexError(f"Slice index {index} out of range (0..{len(self._slices) - 1})")
        return self._slices[index]

    def index_near(self, world_z: float, tolerance: Optional[float] = None) -> Optional[int]:
        """Index of the first slice whose spatial key is within tolerance of world_z, or None."""
        tol = self.tolerance if tolerance is None else tolerance
        for index, key in enumerate(self._keys):
            if abs(key - world_z) <= tol:
                return index
        return None

    def slice_near(self, world_z: float, tolerance: Optional[float] = None):
        """First slice whose spatial key is within tolerance of world_z, or None."""
        index = self.index_near(world_z, tolerance)
        return None if index is None else self._slices[index]

    def common_dimensions(self) -> Optional[Tuple[int, int]]:
        """(width, height) shared by all slices, or None if they differ or the stack is empty."""
        dims = {s.dimensions for s in self._slices}
        if len(dims) != 1:
            return None
        return dims.pop()

    def slice_spacing(self) -> float:
        """Median distance between neighbouring spatial keys (1.0 for fewer than 2 slices)."""
        if len(self._keys) < 2:
            return 1.0
        spacing = float(np.median(np.abs(np.diff(self._keys))))
        return spacing if spacing > 0 else 1.0

    def duplicate_keys(self) -> List[Tuple[int, int]]:
        """Pairs of neighbouring indices whose keys are within the tolerance."""
        return [(i, i + 1) for i in range(len(self._keys) - 1)
                if abs(self._keys[i + 1] - self._keys[i]) <= self.tolerance]

    def validate_continuity(self) -> Dict:
        """
        Check for missing sequence numbers and irregular spacing.

        Spacing is irregular when any gap deviates more than 20% from the
        average gap.

        Returns:
            Dict with keys is_valid, missing_sequence_numbers, irregular_spacing, average_spacing
        """
        numbers = sorted(s.sequence_number for s in self._slices if s.sequence_number is not None)
        missing: List[int] = []
        if len(numbers) >= 2:
            present = set(numbers)
            missing = [n for n in range(numbers[0], numbers[-1] + 1) if n not in present]

        irregular = False
        average_spacing = None
        if len(self._keys) > 2 and self.sort_method != SORT_INPUT_ORDER:
            gaps = np.abs(np.diff(sorted(self._keys)))
            average_spacing = float(np.mean(gaps))
            if average_spacing > 0:
                irregular = bool(np.any(np.abs(gaps - average_spacing) / average_spacing > 0.2))

        return {
            'is_valid': not missing and not irregular,
            'missing_sequence_numbers': missing,
            'irregular_spacing': irregular,
            'average_spacing': average_spacing,
        }

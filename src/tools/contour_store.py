"""
Contour Store

This module owns the editable structure set: per-structure, per-slice
polygon sets with tolerance-based slice lookup, atomic replacement and the
point-in-contour test used by the brush to choose between add and erase.

Inputs:
    - Imported structures (RT-STRUCT)
    - Polygon sets from the brush engine

Outputs:
    - Contours for display and for the host to persist
    - Change notifications

Requirements:
    - tools.polygon_operations for validation, ray casting and area
    - core.errors.InvalidGeometry
"""

from typing import Callable, Dict, Iterable, List, Optional, Sequence, Tuple

from core.errors import InvalidGeometry
from tools.polygon_operations import (
    Polygon,
    is_valid_polygon,
    normalize_polygon,
    point_in_polygons,
    polygons_area,
)


SLICE_MATCH_TOLERANCE = 2.0


class Contour:
    """
    All polygons of one structure on one slice. Polygons follow the
    even-odd rule (holes are separate rings).
    """

    def __init__(self, slice_position: float, polygons: Iterable[Polygon] = ()):
        self.slice_position = float(slice_position)
        self.polygons: List[Polygon] = [normalize_polygon(p) for p in polygons]

    def copy(self) -> 'Contour':
        return Contour(self.slice_position, list(self.polygons))

    def area(self) -> float:
        return polygons_area(self.polygons)

    def __len__(self) -> int:
        return len(self.polygons)

    def __repr__(self) -> str:
        return f"Contour(z={self.slice_position}, polygons={len(self.polygons)})"


class Structure:
    """
    One RT structure (ROI): identity, display color and its contours keyed
    by slice position.
    """

    def __init__(self, structure_id: int, name: str = "",
                 display_color: Tuple[int, int, int] = (255, 0, 0),
                 contours: Optional[Iterable[Contour]] = None):
        self.structure_id = structure_id
        self.name = name
        self.display_color = tuple(int(c) for c in display_color)
        self.contours: Dict[float, Contour] = {}
        for contour in contours or ():
            self.contours[contour.slice_position] = contour

    def find_key(self, slice_position: float,
                 tolerance: float = SLICE_MATCH_TOLERANCE) -> Optional[float]:
        """Key of the contour nearest slice_position within tolerance, or None."""
        best_key = None
        best_distance = None
        for key in self.contours:
            distance = abs(key - slice_position)
            if distance <= tolerance and (best_distance is None or distance < best_distance):
                best_key, best_distance = key, distance
        return best_key

    def slice_positions(self) -> List[float]:
        return sorted(self.contours.keys())

    def __repr__(self) -> str:
        return f"Structure(id={self.structure_id}, name={self.name!r}, contours={len(self.contours)})"


class ContourStore:
    """
    Manages structures and their per-slice contours.

    Features:
    - Tolerance-based contour lookup
    - Atomic replacement of a slice's polygon set
    - Even-odd point-in-contour test
    - Change callbacks
    """

    def __init__(self, tolerance: float = SLICE_MATCH_TOLERANCE):
        """
        Initialize the contour store.

        Args:
            tolerance: Slice position match tolerance (mm)
        """
        self.tolerance = float(tolerance)
        self.structures: Dict[int, Structure] = {}
        self._listeners: List[Callable[[int, float], None]] = []

    @classmethod
    def from_config(cls, config_manager) -> 'ContourStore':
        """Store using the saved slice match tolerance."""
        return cls(config_manager.get_slice_tolerance())

    def add_listener(self, callback: Callable[[int, float], None]) -> None:
        """Register callback(structure_id, slice_position) run after every contour change."""
        self._listeners.append(callback)

    def _notify(self, structure_id: int, slice_position: float) -> None:
        for callback in self._listeners:
            callback(structure_id, slice_position)

    def add_structure(self, structure: Structure) -> None:
        """Add (or replace) an imported structure."""
        self.structures[structure.structure_id] = structure

    def get_structure(self, structure_id: int) -> Optional[Structure]:
        return self.structures.get(structure_id)

    def structure_ids(self) -> List[int]:
        return list(self.structures.keys())

    def get_contour(self, structure_id: int, slice_position: float) -> Optional[Contour]:
        """Contour of the structure nearest slice_position within the tolerance, or None."""
        structure = self.structures.get(structure_id)
        if structure is None:
            return None
        key = structure.find_key(slice_position, self.tolerance)
        return None if key is None else structure.contours[key]

    def upsert_contour(self, structure_id: int, slice_position: float,
                       polygons: Sequence[Sequence[Sequence[float]]]) -> Optional[Contour]:
        """
        Replace the whole polygon set of one slice.

        The structure is created if absent. A slice already matching within
        the tolerance keeps its stored position. An empty polygon list removes
        the slice's contour.

        Returns:
            The stored Contour, or None if the slice was cleared

        Raises:
            InvalidGeometry: if any polygon has fewer than 3 distinct points;
                the store is left unchanged
        """
        normalized = [normalize_polygon(p) for p in polygons]
        for index, polygon in enumerate(normalized):
            if not is_valid_polygon(polygon):
                raise InvalidGeometry(
                    f"Polygon {index} for structure {structure_id} at z={slice_position} "
                    f"has fewer than 3 distinct points")

        structure = self.structures.get(structure_id)
        if structure is None:
            structure = Structure(structure_id)
            self.structures[structure_id] = structure

        key = structure.find_key(slice_position, self.tolerance)
        if key is None:
            key = float(slice_position)

        if not normalized:
            structure.contours.pop(key, None)
            self._notify(structure_id, key)
            return None

        contour = Contour(key, normalized)
        structure.contours[key] = contour
        self._notify(structure_id, key)
        return contour

    def remove_contour(self, structure_id: int, slice_position: float) -> bool:
        """Remove the slice's contour. Returns True if one was removed."""
        structure = self.structures.get(structure_id)
        if structure is None:
            return False
        key = structure.find_key(slice_position, self.tolerance)
        if key is None:
            return False
        del structure.contours[key]
        self._notify(structure_id, key)
        return True

    def restore_contour(self, structure_id: int, slice_position: float,
                        contour: Optional[Contour]) -> None:
        """Put back a previously captured contour (None clears the slice). Used by undo/redo."""
        if contour is None:
            self.remove_contour(structure_id, slice_position)
            return
        self.upsert_contour(structure_id, slice_position, contour.polygons)

    def is_point_inside(self, structure_id: int, slice_position: float,
                        world_point: Sequence[float]) -> bool:
        """True iff world_point lies inside an odd number of the slice's polygons."""
        contour = self.get_contour(structure_id, slice_position)
        if contour is None:
            return False
        return point_in_polygons(world_point, contour.polygons)

    def slice_positions(self, structure_id: int) -> List[float]:
        structure = self.structures.get(structure_id)
        return structure.slice_positions() if structure else []

    def contour_area(self, structure_id: int, slice_position: float) -> float:
        contour = self.get_contour(structure_id, slice_position)
        return contour.area() if contour else 0.0

    def contours_for_slice(self, slice_position: float) -> List[Tuple[Structure, Contour]]:
        """(structure, contour) pairs of every structure that has a contour on this slice."""
        result = []
        for structure in self.structures.values():
            key = structure.find_key(slice_position, self.tolerance)
            if key is not None:
                result.append((structure, structure.contours[key]))
        return result

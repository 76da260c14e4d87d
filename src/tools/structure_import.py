"""
Structure Import

This module maps an RT Structure Set dataset (already read by pydicom) into
editable Structure objects, and turns edited contours back into flat
ContourData lists for the host to write out.

Inputs:
    - pydicom Dataset with StructureSetROISequence and ROIContourSequence

Outputs:
    - Structure objects keyed by ROI number
    - Flat x, y, z ContourData lists

Requirements:
    - pydicom for dataset access
    - tools.contour_store for Structure/Contour
    - core.spatial_transform to lift in-plane points for export
"""

from typing import Dict, List, Optional, Tuple

from pydicom.dataset import Dataset

from core.spatial_transform import plane_to_world
from tools.contour_store import SLICE_MATCH_TOLERANCE, Contour, ContourStore, Structure
from tools.polygon_operations import is_valid_polygon, normalize_polygon


DEFAULT_STRUCTURE_COLOR = (255, 255, 0)
SUPPORTED_GEOMETRIC_TYPES = ('CLOSED_PLANAR', 'OPEN_PLANAR')


def _roi_names(dataset: Dataset) -> Dict[int, str]:
    names = {}
    for item in getattr(dataset, 'StructureSetROISequence', []):
        number = getattr(item, 'ROINumber', None)
        if number is None:
            continue
        name = str(getattr(item, 'ROIName', '') or '').strip()
        names[int(number)] = name or f"ROI_{int(number)}"
    return names


def _display_color(item: Dataset) -> Tuple[int, int, int]:
    color = getattr(item, 'ROIDisplayColor', None)
    try:
        values = [int(c) for c in color]
    except (TypeError, ValueError):
        return DEFAULT_STRUCTURE_COLOR
    if len(values) != 3:
        return DEFAULT_STRUCTURE_COLOR
    return tuple(max(0, min(255, v)) for v in values)


def _contour_points(item: Dataset) -> Optional[Tuple[float, List[Tuple[float, float]]]]:
    """(slice z, in-plane points) of one ContourSequence item, or None if unusable."""
    geometric_type = str(getattr(item, 'ContourGeometricType', 'CLOSED_PLANAR'))
    if geometric_type not in SUPPORTED_GEOMETRIC_TYPES:
        print(f"Warning: Unsupported contour geometric type: {geometric_type}")
        return None
    data = getattr(item, 'ContourData', None)
    if not data:
        return None
    values = [float(v) for v in data]
    if len(values) % 3 != 0:
        print(f"Warning: ContourData length {len(values)} is not a multiple of 3")
        return None
    expected = getattr(item, 'NumberOfContourPoints', None)
    if expected is not None and int(expected) * 3 != len(values):
        print("Warning: Contour points count mismatch")
        return None
    points = [(values[i], values[i + 1]) for i in range(0, len(values), 3)]
    # All points of a planar contour share the slice's z
    return values[2], points


def structures_from_dataset(dataset: Dataset,
                            tolerance: float = SLICE_MATCH_TOLERANCE) -> List[Structure]:
    """
    Read every ROI of an RT Structure Set.

    Contours on the same slice (z within tolerance) are grouped into one
    Contour; polygons with fewer than 3 distinct points are skipped.

    Args:
        dataset: RT Structure Set dataset
        tolerance: Slice grouping tolerance (mm)

    Returns:
        List of Structure, in ROIContourSequence order
    """
    names = _roi_names(dataset)
    structures = []
    for roi_item in getattr(dataset, 'ROIContourSequence', []):
        number = getattr(roi_item, 'ReferencedROINumber', None)
        if number is None:
            continue
        number = int(number)
        structure = Structure(number, names.get(number, f"ROI_{number}"), _display_color(roi_item))
        for contour_item in getattr(roi_item, 'ContourSequence', []):
            parsed = _contour_points(contour_item)
            if parsed is None:
                continue
            z, points = parsed
            polygon = normalize_polygon(points)
            if not is_valid_polygon(polygon):
                print(f"Warning: Skipping degenerate contour in ROI {number} at z={z}")
                continue
            key = structure.find_key(z, tolerance)
            if key is None:
                structure.contours[z] = Contour(z, [polygon])
            else:
                structure.contours[key].polygons.append(polygon)
        structures.append(structure)
    return structures


def load_structures(contour_store: ContourStore, dataset: Dataset) -> List[int]:
    """Add every structure of dataset to contour_store. Returns the structure ids."""
    ids = []
    for structure in structures_from_dataset(dataset, contour_store.tolerance):
        contour_store.add_structure(structure)
        ids.append(structure.structure_id)
    return ids


def contour_to_contour_data(contour: Contour, slice_=None) -> List[List[float]]:
    """
    Flat [x0, y0, z0, x1, y1, z1, ...] list per polygon of contour.

    Without slice_ the polygons are taken as axial (x, y) points at the
    contour's slice position. With slice_ they are lifted from that slice's
    in-plane coordinates.
    """
    result = []
    for polygon in contour.polygons:
        flat = []
        for point in polygon:
            if slice_ is None:
                world = (point[0], point[1], contour.slice_position)
            else:
                world = plane_to_world(point, slice_)
            flat.extend(float(v) for v in world)
        result.append(flat)
    return result

"""
Polygon Operations

This module provides the polygon math used for contour editing: validity
checks, the exact ray-casting point-in-polygon test, brush disk and sweep
polygons, and boolean union/difference through shapely.

Polygons are tuples of (x, y) world points in the slice plane, implicitly
closed (the first point is not repeated at the end). A contour's polygon set
uses the even-odd rule: a point is inside when it lies inside an odd number
of rings, so holes are stored as separate rings.

Inputs:
    - Point lists in world mm
    - Brush radius and stroke points

Outputs:
    - Normalized polygons, areas, shapely geometries and ring lists

Requirements:
    - shapely for polygon clipping (union/difference/validity repair)
    - numpy for point arithmetic
"""

import math
from functools import reduce
from typing import Iterable, List, Sequence, Tuple

import numpy as np
from shapely.geometry import GeometryCollection, MultiPolygon, Polygon as ShapelyPolygon
from shapely.geometry.base import BaseGeometry
from shapely.ops import unary_union
from shapely.validation import make_valid


Point2D = Tuple[float, float]
Polygon = Tuple[Point2D, ...]

MIN_POLYGON_POINTS = 3
MIN_CIRCLE_SEGMENTS = 12
MAX_CIRCLE_SEGMENTS = 72
CIRCLE_CHORD_LENGTH = 0.5  # mm of arc per disk segment
MIN_RING_AREA = 1e-6  # mm^2; rings below this are clipping slivers
POINT_EPSILON = 1e-9


def normalize_polygon(points: Iterable[Sequence[float]]) -> Polygon:
    """
    Convert a point sequence (2-D or 3-D) to a tuple of (x, y) floats.
    Consecutive duplicates and a repeated closing point are dropped.
    """
    result: List[Point2D] = []
    for point in points:
        xy = (float(point[0]), float(point[1]))
        if result and abs(xy[0] - result[-1][0]) <= POINT_EPSILON and abs(xy[1] - result[-1][1]) <= POINT_EPSILON:
            continue
        result.append(xy)
    if len(result) > 1 and abs(result[0][0] - result[-1][0]) <= POINT_EPSILON \
            and abs(result[0][1] - result[-1][1]) <= POINT_EPSILON:
        result.pop()
    return tuple(result)


def distinct_point_count(polygon: Sequence[Sequence[float]]) -> int:
    return len({(float(p[0]), float(p[1])) for p in polygon})


def is_valid_polygon(polygon: Sequence[Sequence[float]]) -> bool:
    """A polygon is usable when it has at least 3 distinct points."""
    return distinct_point_count(polygon) >= MIN_POLYGON_POINTS


def point_in_polygon(point: Sequence[float], polygon: Sequence[Sequence[float]]) -> bool:
    """
    Ray-casting test: cast a ray from point towards +X and count edges where
    one endpoint is strictly above the point's Y and the other at or below
    it, and whose crossing lies to the right of the point. Odd count = inside.

    Points exactly on an edge get a fixed, repeatable answer.
    """
    n = len(polygon)
    if n < MIN_POLYGON_POINTS:
        return False
    px, py = float(point[0]), float(point[1])
    inside = False
    j = n - 1
    for i in range(n):
        xi, yi = float(polygon[i][0]), float(polygon[i][1])
        xj, yj = float(polygon[j][0]), float(polygon[j][1])
        if (yi > py) != (yj > py):
            crossing_x = (xj - xi) * (py - yi) / (yj - yi) + xi
            if px < crossing_x:
                inside = not inside
        j = i
    return inside


def point_in_polygons(point: Sequence[float], polygons: Iterable[Sequence[Sequence[float]]]) -> bool:
    """True if point lies inside an odd number of polygons (even-odd rule)."""
    count = sum(1 for polygon in polygons if point_in_polygon(point, polygon))
    return count % 2 == 1


def polygon_area(polygon: Sequence[Sequence[float]]) -> float:
    """Unsigned shoelace area of one ring."""
    n = len(polygon)
    if n < MIN_POLYGON_POINTS:
        return 0.0
    area = 0.0
    for i in range(n):
        x1, y1 = polygon[i][0], polygon[i][1]
        x2, y2 = polygon[(i + 1) % n][0], polygon[(i + 1) % n][1]
        area += x1 * y2 - x2 * y1
    return abs(area) / 2.0


def circle_segments(radius: float) -> int:
    """Number of disk vertices: about one per CIRCLE_CHORD_LENGTH of arc, within [12, 72]."""
    if radius <= 0:
        return MIN_CIRCLE_SEGMENTS
    segments = int(math.ceil(2.0 * math.pi * radius / CIRCLE_CHORD_LENGTH))
    return max(MIN_CIRCLE_SEGMENTS, min(MAX_CIRCLE_SEGMENTS, segments))


def create_circle_polygon(center: Sequence[float], radius: float, segments: int = 0) -> Polygon:
    """Regular N-gon with its vertices on the circle of the given radius."""
    count = segments if segments >= MIN_CIRCLE_SEGMENTS else circle_segments(radius)
    cx, cy = float(center[0]), float(center[1])
    return tuple(
        (cx + radius * math.cos(2.0 * math.pi * i / count),
         cy + radius * math.sin(2.0 * math.pi * i / count))
        for i in range(count)
    )


def segment_quad(start: Sequence[float], end: Sequence[float], radius: float) -> Polygon:
    """
    Rectangle joining the tangent points of two disks of the given radius,
    offset perpendicular to the segment. Empty for a zero-length segment.
    """
    sx, sy = float(start[0]), float(start[1])
    ex, ey = float(end[0]), float(end[1])
    length = math.hypot(ex - sx, ey - sy)
    if length <= POINT_EPSILON:
        return ()
    nx, ny = -(ey - sy) / length * radius, (ex - sx) / length * radius
    return ((sx + nx, sy + ny), (ex + nx, ey + ny), (ex - nx, ey - ny), (sx - nx, sy - ny))


def sweep_geometry(points: Sequence[Sequence[float]], radius: float) -> BaseGeometry:
    """
    Area swept by a disk of the given radius moving along the stroke points:
    the union of a disk at every point and a tangent quad for every segment.
    A single point gives one disk.
    """
    if not points or radius <= 0:
        return GeometryCollection()
    segments = circle_segments(radius)
    shapes = [ShapelyPolygon(create_circle_polygon(p, radius, segments)) for p in points]
    for start, end in zip(points[:-1], points[1:]):
        quad = segment_quad(start, end, radius)
        if quad:
            shapes.append(ShapelyPolygon(quad))
    if len(shapes) == 1:
        return shapes[0]
    return unary_union(shapes)


def _polygonal_parts(geometry: BaseGeometry) -> List[ShapelyPolygon]:
    if geometry.is_empty:
        return []
    if isinstance(geometry, ShapelyPolygon):
        return [geometry]
    if isinstance(geometry, (MultiPolygon, GeometryCollection)):
        parts: List[ShapelyPolygon] = []
        for part in geometry.geoms:
            parts.extend(_polygonal_parts(part))
        return parts
    return []


def ring_to_geometry(polygon: Sequence[Sequence[float]]) -> BaseGeometry:
    """Shapely geometry of one ring, repairing self-intersections."""
    shape = ShapelyPolygon([(float(p[0]), float(p[1])) for p in polygon])
    if not shape.is_valid:
        shape = unary_union(_polygonal_parts(make_valid(shape)))
    return shape


def rings_to_geometry(polygons: Iterable[Sequence[Sequence[float]]]) -> BaseGeometry:
    """
    Combine a contour's rings into one geometry under the even-odd rule
    (symmetric difference of all rings), so holes stored as separate rings
    are subtracted.
    """
    shapes = [ring_to_geometry(p) for p in polygons if is_valid_polygon(p)]
    shapes = [s for s in shapes if not s.is_empty]
    if not shapes:
        return GeometryCollection()
    return reduce(lambda a, b: a.symmetric_difference(b), shapes)


def geometry_to_rings(geometry: BaseGeometry) -> List[Polygon]:
    """
    Flatten a polygonal geometry into rings: each exterior followed by its
    holes. Slivers and degenerate rings are dropped.
    """
    rings: List[Polygon] = []
    for part in _polygonal_parts(geometry):
        if part.area <= MIN_RING_AREA:
            continue
        for ring in [part.exterior] + list(part.interiors):
            polygon = normalize_polygon(ring.coords)
            if is_valid_polygon(polygon) and polygon_area(polygon) > MIN_RING_AREA:
                rings.append(polygon)
    return rings


def union_polygons(polygons: Sequence[Polygon], addition: BaseGeometry) -> List[Polygon]:
    """Existing rings united with addition, as rings."""
    return geometry_to_rings(rings_to_geometry(polygons).union(addition))


def difference_polygons(polygons: Sequence[Polygon], subtraction: BaseGeometry) -> List[Polygon]:
    """Existing rings minus subtraction, as rings."""
    return geometry_to_rings(rings_to_geometry(polygons).difference(subtraction))


def polygons_area(polygons: Sequence[Polygon]) -> float:
    """Area covered by a ring set under the even-odd rule."""
    return float(rings_to_geometry(polygons).area)


def polygon_centroid(polygons: Sequence[Polygon]) -> Point2D:
    """Area-weighted centroid of a ring set; (0, 0) for an empty set."""
    geometry = rings_to_geometry(polygons)
    if geometry.is_empty:
        return (0.0, 0.0)
    centroid = geometry.centroid
    return (float(centroid.x), float(centroid.y))


def interpolate_points(start: Sequence[float], end: Sequence[float], step: float) -> List[Point2D]:
    """
    Points from start (exclusive) to end (inclusive) spaced at most step apart.
    """
    start_arr = np.asarray(start[:2], dtype=np.float64)
    end_arr = np.asarray(end[:2], dtype=np.float64)
    distance = float(np.linalg.norm(end_arr - start_arr))
    if distance <= POINT_EPSILON:
        return []
    count = max(1, int(math.ceil(distance / step))) if step > 0 else 1
    return [tuple(float(v) for v in start_arr + (end_arr - start_arr) * (i / count))
            for i in range(1, count + 1)]

"""
Brush Tool

This module implements the contour brush: a pointer-driven state machine that
turns drag strokes into swept disk polygons and merges them into, or erases
them from, the active structure's contour on the active slice.

The add/erase operation is chosen once, when the drag starts: starting inside
the existing contour erases, starting outside adds, and the invert modifier
swaps the two. The choice stays locked until the pointer is released.

A secondary gesture (right button or the resize modifier) changes the brush
radius by vertical drag distance without touching any contour.

Inputs:
    - Pointer events (screen coordinates) with a Viewport, or in-plane points
    - Active structure id and slice position
    - Brush radius (world mm)

Outputs:
    - Updated contours in the ContourStore
    - Undoable edit commands
    - Cursor state for the brush overlay
    - GeometryWarning when polygon clipping fails

Requirements:
    - shapely (through tools.polygon_operations) for union/difference
    - numpy for point handling
    - utils.undo_redo for edit history
"""

import warnings
from typing import Callable, List, Optional, Sequence, Tuple

import numpy as np
from shapely.errors import ShapelyError

from core.errors import GeometryWarning
from core.spatial_transform import world_to_plane
from tools.contour_store import Contour, ContourStore
from tools.polygon_operations import (
    MIN_RING_AREA,
    Point2D,
    difference_polygons,
    geometry_to_rings,
    interpolate_points,
    sweep_geometry,
    union_polygons,
)
from utils.debug_log import brush_debug, debug_log
from utils.undo_redo import ContourEditCommand, UndoRedoManager


STATE_IDLE = "idle"
STATE_DRAGGING = "dragging"
STATE_RESIZING = "resizing"

OPERATION_ADDITIVE = "additive"
OPERATION_SUBTRACTIVE = "subtractive"

BUTTON_PRIMARY = "primary"
BUTTON_SECONDARY = "secondary"

BRUSH_RADIUS_MIN = 1.0
BRUSH_RADIUS_MAX = 100.0
DEFAULT_BRUSH_RADIUS = 5.0
STROKE_STEP_FACTOR = 0.3  # Stroke sample spacing as a fraction of the radius
RESIZE_SENSITIVITY = 0.5  # Radius change per screen pixel of vertical drag


class PointerEvent:
    """
    Toolkit-neutral pointer sample in screen (canvas) pixels.

    Attributes:
        x, y: Screen position
        button: BUTTON_PRIMARY or BUTTON_SECONDARY
        invert: Invert modifier held (swaps add/erase)
        resize: Resize modifier held (primary button resizes instead of painting)
    """

    def __init__(self, x: float, y: float, button: str = BUTTON_PRIMARY,
                 invert: bool = False, resize: bool = False):
        self.x = float(x)
        self.y = float(y)
        self.button = button
        self.invert = bool(invert)
        self.resize = bool(resize)

    @property
    def position(self) -> Tuple[float, float]:
        return self.x, self.y

    def __repr__(self) -> str:
        return (f"PointerEvent(x={self.x}, y={self.y}, button={self.button!r}, "
                f"invert={self.invert}, resize={self.resize})")


class BrushCursor:
    """
    Snapshot of what the cursor overlay should draw: where the brush is, how
    big it is and which operation a press (or the current drag) applies.
    """

    def __init__(self, position: Optional[Point2D], radius: float, operation: str, state: str):
        self.position = position
        self.radius = radius
        self.operation = operation
        self.state = state

    @property
    def visible(self) -> bool:
        return self.position is not None

    def __repr__(self) -> str:
        return (f"BrushCursor(position={self.position}, radius={self.radius}, "
                f"operation={self.operation!r}, state={self.state!r})")


def clamp_radius(radius: float) -> float:
    return max(BRUSH_RADIUS_MIN, min(BRUSH_RADIUS_MAX, float(radius)))


def _plane_point(world_point: Sequence[float], slice_=None) -> Point2D:
    """In-plane coordinates of world_point on slice_ (x, y when no slice is set)."""
    if slice_ is not None:
        x, y = world_to_plane(world_point, slice_)
    else:
        x, y = world_point[0], world_point[1]
    return float(x), float(y)


class BrushEngine:
    """
    Brush state machine for contour editing.

    Features:
    - Add/erase detection locked at drag start
    - Gap-free stroke sampling
    - Swept disk polygon merged with real polygon clipping
    - Radius resize gesture
    - Undo/redo of committed strokes
    """

    def __init__(self, contour_store: ContourStore, config_manager=None,
                 undo_manager: Optional[UndoRedoManager] = None,
                 on_warning: Optional[Callable[[GeometryWarning], None]] = None,
                 on_cursor_changed: Optional[Callable[[BrushCursor], None]] = None):
        """
        Initialize the brush engine.

        Args:
            contour_store: Store receiving committed strokes
            config_manager: Optional ConfigManager for radius, invert default and step
            undo_manager: Edit history (a new one is created if None)
            on_warning: Called with each GeometryWarning
            on_cursor_changed: Called with the new BrushCursor after every cursor update
        """
        self.contour_store = contour_store
        self.config_manager = config_manager

        if config_manager is not None:
            self.radius = clamp_radius(config_manager.get_brush_radius())
            self.invert_default = config_manager.get_brush_invert_default()
            self.step_factor = config_manager.get_brush_step_factor()
            history = config_manager.get_undo_history()
        else:
            self.radius = DEFAULT_BRUSH_RADIUS
            self.invert_default = False
            self.step_factor = STROKE_STEP_FACTOR
            history = 100
        self.undo_manager = undo_manager if undo_manager is not None else UndoRedoManager(history)

        self.on_warning = on_warning
        self.on_cursor_changed = on_cursor_changed
        self.last_warning: Optional[GeometryWarning] = None

        self.structure_id: Optional[int] = None
        self.slice_position: Optional[float] = None
        self.plane_slice = None

        self.state = STATE_IDLE
        self.operation: Optional[str] = None
        self.stroke_points: List[Point2D] = []

        self._resize_start_y = 0.0
        self._resize_start_radius = self.radius

        self._cursor_position: Optional[Point2D] = None
        self._cursor_invert = False

    # Target

    def set_target(self, structure_id: Optional[int], slice_position: Optional[float],
                   slice_=None) -> None:
        """
        Set the active structure and slice. An in-progress stroke is discarded.

        Args:
            structure_id: Edited structure
            slice_position: Contour key of the edited slice
            slice_: Edited Slice; 3-D world points are reduced to its in-plane
                coordinates (x, y is assumed when None)
        """
        if self.state == STATE_DRAGGING:
            self.cancel()
        self.structure_id = structure_id
        self.slice_position = None if slice_position is None else float(slice_position)
        self.plane_slice = slice_

    def _to_plane(self, world_point: Sequence[float]) -> Point2D:
        return _plane_point(world_point, self.plane_slice)

    def has_target(self) -> bool:
        return self.structure_id is not None and self.slice_position is not None

    # Radius

    def set_radius(self, radius: float) -> float:
        """Set the brush radius (clamped to [1, 100]). Returns the stored radius."""
        self.radius = clamp_radius(radius)
        self._emit_cursor()
        return self.radius

    # Operation

    def preview_operation(self, world_point: Sequence[float], invert: bool = False) -> str:
        """Operation a drag starting at world_point would use."""
        inside = False
        if self.has_target():
            inside = self.contour_store.is_point_inside(
                self.structure_id, self.slice_position, self._to_plane(world_point))
        subtractive = inside != (bool(invert) != self.invert_default)
        return OPERATION_SUBTRACTIVE if subtractive else OPERATION_ADDITIVE

    # Drag

    def drag_start(self, world_point: Sequence[float], invert: bool = False) -> bool:
        """
        Begin a stroke at world_point and lock its operation.

        Returns:
            True if a stroke started, False without an active structure/slice
        """
        if self.state != STATE_IDLE:
            return False
        if not self.has_target():
            brush_debug("drag_start ignored: no active structure")
            return False
        start = self._to_plane(world_point)
        self.operation = self.preview_operation(start, invert)
        self.stroke_points = [start]
        self.state = STATE_DRAGGING
        self._cursor_position = start
        self._cursor_invert = bool(invert)
        brush_debug(f"drag_start at {start} operation={self.operation} radius={self.radius}")
        self._emit_cursor()
        return True

    def drag_move(self, world_point: Sequence[float]) -> None:
        """Append samples from the last stroke point to world_point."""
        point = self._to_plane(world_point)
        self._cursor_position = point
        if self.state == STATE_DRAGGING:
            step = self.radius * self.step_factor
            self.stroke_points.extend(interpolate_points(self.stroke_points[-1], point, step))
        self._emit_cursor()

    def drag_end(self) -> Optional[Contour]:
        """
        Commit the stroke.

        Returns:
            The slice's contour after the edit (None if the slice is now empty,
            or nothing was committed)
        """
        if self.state != STATE_DRAGGING:
            return None
        points = self.stroke_points
        operation = self.operation
        self.stroke_points = []
        self.operation = None
        self.state = STATE_IDLE
        self._emit_cursor()

        sweep = sweep_geometry(points, self.radius)
        if sweep.is_empty or sweep.area <= MIN_RING_AREA:
            brush_debug("drag_end: degenerate sweep, nothing to commit")
            return None
        return self._commit(sweep, operation, len(points))

    def cancel(self) -> None:
        """Abandon the current stroke or resize without committing."""
        self.stroke_points = []
        self.operation = None
        self.state = STATE_IDLE
        self._emit_cursor()

    def _commit(self, sweep, operation: str, sample_count: int) -> Optional[Contour]:
        structure_id = self.structure_id
        existing = self.contour_store.get_contour(structure_id, self.slice_position)
        if existing is None and operation == OPERATION_SUBTRACTIVE:
            return None
        slice_position = existing.slice_position if existing is not None else self.slice_position
        before = existing.copy() if existing is not None else None

        try:
            if operation == OPERATION_ADDITIVE:
                if existing is None:
                    polygons = geometry_to_rings(sweep)
                else:
                    polygons = union_polygons(existing.polygons, sweep)
            else:
                polygons = difference_polygons(existing.polygons, sweep)
            if not polygons and existing is None:
                return None
            contour = self.contour_store.upsert_contour(structure_id, slice_position, polygons)
        except (ShapelyError, ValueError) as e:
            self._report_warning(
                f"Brush {operation} on structure {structure_id} at z={slice_position} failed: {e}")
            return None

        after = contour.copy() if contour is not None else None
        self.undo_manager.push_executed(
            ContourEditCommand(self.contour_store, structure_id, slice_position, before, after))
        debug_log("brush_tool.py:_commit", "Stroke committed", {
            "structure_id": structure_id,
            "slice_position": slice_position,
            "operation": operation,
            "samples": sample_count,
            "radius": self.radius,
            "polygons": len(polygons),
        })
        return contour

    def _report_warning(self, message: str) -> None:
        warning = GeometryWarning(message)
        self.last_warning = warning
        print(f"[BRUSH] {message}; contour left unchanged")
        warnings.warn(warning, stacklevel=3)
        if self.on_warning:
            self.on_warning(warning)

    # Cursor

    def hover(self, world_point: Optional[Sequence[float]], invert: Optional[bool] = None) -> BrushCursor:
        """Move the cursor (None hides it). Works in any state."""
        self._cursor_position = None if world_point is None else self._to_plane(world_point)
        if invert is not None:
            self._cursor_invert = bool(invert)
        return self._emit_cursor()

    @property
    def cursor(self) -> BrushCursor:
        if self.state == STATE_DRAGGING:
            operation = self.operation
        elif self._cursor_position is not None:
            operation = self.preview_operation(self._cursor_position, self._cursor_invert)
        else:
            operation = OPERATION_ADDITIVE
        return BrushCursor(self._cursor_position, self.radius, operation, self.state)

    def _emit_cursor(self) -> BrushCursor:
        cursor = self.cursor
        if self.on_cursor_changed:
            self.on_cursor_changed(cursor)
        return cursor

    # Resize

    def resize_start(self, screen_point: Sequence[float]) -> bool:
        if self.state != STATE_IDLE:
            return False
        self.state = STATE_RESIZING
        self._resize_start_y = float(screen_point[1])
        self._resize_start_radius = self.radius
        return True

    def resize_move(self, screen_point: Sequence[float]) -> float:
        """Dragging up grows the brush, dragging down shrinks it."""
        if self.state != STATE_RESIZING:
            return self.radius
        delta_y = self._resize_start_y - float(screen_point[1])
        return self.set_radius(self._resize_start_radius + delta_y * RESIZE_SENSITIVITY)

    def resize_end(self) -> float:
        if self.state == STATE_RESIZING:
            self.state = STATE_IDLE
            if self.config_manager is not None:
                self.config_manager.set_brush_radius(self.radius)
            self._emit_cursor()
        return self.radius

    # Pointer entry points

    def pointer_down(self, event: PointerEvent, viewport) -> bool:
        """
        Handle a press on the canvas described by viewport.

        Secondary button or the resize modifier starts a resize; otherwise a
        press inside the image starts a stroke.
        """
        if event.button == BUTTON_SECONDARY or event.resize:
            return self.resize_start(event.position)
        point = viewport.to_plane(event.position)
        if point is None:
            return False
        return self.drag_start(point, event.invert)

    def pointer_move(self, event: PointerEvent, viewport) -> BrushCursor:
        if self.state == STATE_RESIZING:
            self.resize_move(event.position)
            return self.cursor
        point = viewport.to_plane(event.position, bounded=False)
        self._cursor_invert = event.invert
        if self.state == STATE_DRAGGING:
            self.drag_move(point)
            return self.cursor
        return self.hover(point)

    def pointer_up(self, event: PointerEvent, viewport) -> Optional[Contour]:
        if self.state == STATE_RESIZING:
            self.resize_end()
            return None
        if self.state == STATE_DRAGGING:
            point = viewport.to_plane(event.position, bounded=False)
            if point is not None and not np.allclose(point, self.stroke_points[-1]):
                self.drag_move(point)
            return self.drag_end()
        return None

    # History

    def undo(self) -> bool:
        if self.state != STATE_IDLE:
            return False
        return self.undo_manager.undo()

    def redo(self) -> bool:
        if self.state != STATE_IDLE:
            return False
        return self.undo_manager.redo()

"""
View State Manager

This module manages view state: zoom, pan and reset for one rendering
session, plus the current window/level and per-series view defaults.

The ViewState object is passed explicitly to the transform, renderer and
brush code at call time; nothing looks it up globally.

Inputs:
    - Zoom in/out/reset and pan requests
    - Window/level changes
    - Series switches

Outputs:
    - Updated ViewState and WindowLevel
    - Restored per-series defaults

Requirements:
    - core.dicom_window_level for WindowLevel
"""

from typing import Callable, Dict, Optional

from core.dicom_window_level import WindowLevel, get_preset


SCALE_POLICY_FIT = "fit"
SCALE_POLICY_FILL = "fill"
SCALE_POLICIES = (SCALE_POLICY_FIT, SCALE_POLICY_FILL)

DEFAULT_ZOOM_MIN = 0.1
DEFAULT_ZOOM_MAX = 5.0
DEFAULT_ZOOM_FACTOR = 1.2


class ViewState:
    """
    Zoom and pan of one viewport.

    zoom is always clamped to [zoom_min, zoom_max]. pan_x/pan_y are screen
    pixel offsets applied after centering. scale_policy decides how the
    image is fitted to the canvas at zoom 1.0 ("fit" or "fill") and is the
    single setting used by both image rendering and contour overlay.
    """

    def __init__(self, zoom: float = 1.0, pan_x: float = 0.0, pan_y: float = 0.0,
                 zoom_min: float = DEFAULT_ZOOM_MIN, zoom_max: float = DEFAULT_ZOOM_MAX,
                 scale_policy: str = SCALE_POLICY_FIT):
        if zoom_min <= 0 or zoom_max < zoom_min:
            raise ValueError(f"Invalid zoom range [{zoom_min}, {zoom_max}]")
        if scale_policy not in SCALE_POLICIES:
            raise ValueError(f"Unknown scale policy: {scale_policy}")
        self.zoom_min = float(zoom_min)
        self.zoom_max = float(zoom_max)
        self.scale_policy = scale_policy
        self.zoom = self._clamp_zoom(zoom)
        self.pan_x = float(pan_x)
        self.pan_y = float(pan_y)

    def _clamp_zoom(self, zoom: float) -> float:
        return max(self.zoom_min, min(self.zoom_max, float(zoom)))

    def set_zoom(self, zoom: float) -> float:
        """Set zoom (clamped). Returns the applied zoom."""
        self.zoom = self._clamp_zoom(zoom)
        return self.zoom

    def zoom_in(self, factor: float = DEFAULT_ZOOM_FACTOR) -> float:
        return self.set_zoom(self.zoom * factor)

    def zoom_out(self, factor: float = DEFAULT_ZOOM_FACTOR) -> float:
        return self.set_zoom(self.zoom / factor)

    def pan_by(self, dx: float, dy: float) -> None:
        self.pan_x += dx
        self.pan_y += dy

    def reset(self) -> None:
        """Back to zoom 1.0, centered."""
        self.zoom = self._clamp_zoom(1.0)
        self.pan_x = 0.0
        self.pan_y = 0.0

    def copy(self) -> 'ViewState':
        return ViewState(self.zoom, self.pan_x, self.pan_y,
                         self.zoom_min, self.zoom_max, self.scale_policy)

    def __repr__(self) -> str:
        return (f"ViewState(zoom={self.zoom:.3f}, pan=({self.pan_x:.1f}, {self.pan_y:.1f}), "
                f"policy={self.scale_policy})")


class ViewStateManager:
    """
    Manages view state for one rendering session.

    Handles:
    - Zoom/pan through the owned ViewState
    - Window/level state, preserved between slices
    - Series-specific view defaults (zoom, pan, window) restored on series switch
    - View reset
    """

    def __init__(self, view_state: Optional[ViewState] = None,
                 default_window: Optional[WindowLevel] = None,
                 zoom_factor: float = DEFAULT_ZOOM_FACTOR,
                 on_view_changed: Optional[Callable[[], None]] = None):
        """
        Initialize the view state manager.

        Args:
            view_state: ViewState to manage (a new one is created if None)
            default_window: Initial window (soft tissue preset if None)
            zoom_factor: Multiplier used by zoom_in/zoom_out
            on_view_changed: Optional callback run after every view/window change
        """
        self.view_state = view_state if view_state is not None else ViewState()
        self.zoom_factor = zoom_factor
        self.on_view_changed = on_view_changed
        self.initial_window = default_window if default_window is not None else get_preset('soft tissue')
        self.window = WindowLevel(self.initial_window.width, self.initial_window.center)
        self.window_level_user_modified = False

        # Series defaults storage: key is series identifier
        # Value is dict with: window, zoom, pan_x, pan_y
        self.series_defaults: Dict[str, Dict] = {}
        self.current_series_identifier: Optional[str] = None

    @classmethod
    def from_config(cls, config_manager,
                    on_view_changed: Optional[Callable[[], None]] = None) -> 'ViewStateManager':
        """
        Build a manager using the saved zoom limits, zoom step, scale policy
        and default window preset.
        """
        zoom_min, zoom_max = config_manager.get_zoom_limits()
        view_state = ViewState(zoom_min=zoom_min, zoom_max=zoom_max,
                               scale_policy=config_manager.get_scale_policy())
        try:
            default_window = get_preset(config_manager.get_window_preset())
        except KeyError:
            print(f"Warning: Unknown window preset {config_manager.get_window_preset()!r}, "
                  f"using soft tissue")
            default_window = None
        return cls(view_state, default_window, config_manager.get_zoom_factor(), on_view_changed)

    def _notify(self) -> None:
        if self.on_view_changed:
            self.on_view_changed()

    def zoom_in(self) -> float:
        zoom = self.view_state.zoom_in(self.zoom_factor)
        self._notify()
        return zoom

    def zoom_out(self) -> float:
        zoom = self.view_state.zoom_out(self.zoom_factor)
        self._notify()
        return zoom

    def pan(self, dx: float, dy: float) -> None:
        self.view_state.pan_by(dx, dy)
        self._notify()

    def reset_view(self) -> None:
        """Reset zoom/pan and the window to the series initial values."""
        self.view_state.reset()
        self.window = WindowLevel(self.initial_window.width, self.initial_window.center)
        self.window_level_user_modified = False
        self._notify()

    def handle_window_changed(self, center: float, width: float) -> None:
        """Apply a user window/level change; width is clamped by WindowLevel."""
        self.window = WindowLevel(width, center)
        self.window_level_user_modified = True
        self._notify()

    def handle_window_level_drag(self, center_delta: float, width_delta: float) -> None:
        window = self.window.adjusted(center_delta, width_delta)
        self.handle_window_changed(window.center, window.width)

    def apply_preset(self, name: str) -> WindowLevel:
        """Switch to a named preset. Raises KeyError on unknown names."""
        preset = get_preset(name)
        self.handle_window_changed(preset.center, preset.width)
        return self.window

    def switch_series(self, series_identifier: str,
                      initial_window: Optional[WindowLevel] = None) -> None:
        """
        Save the current series' view and restore (or initialize) the new one.

        Args:
            series_identifier: Identifier of the series being shown
            initial_window: Window to use if the series has no stored defaults
        """
        if self.current_series_identifier == series_identifier:
            return
        if self.current_series_identifier is not None:
            self.series_defaults[self.current_series_identifier] = {
                'window': self.window,
                'initial_window': self.initial_window,
                'zoom': self.view_state.zoom,
                'pan_x': self.view_state.pan_x,
                'pan_y': self.view_state.pan_y,
            }
        self.current_series_identifier = series_identifier
        stored = self.series_defaults.get(series_identifier)
        if stored is not None:
            self.window = stored['window']
            self.initial_window = stored['initial_window']
            self.view_state.set_zoom(stored['zoom'])
            self.view_state.pan_x = stored['pan_x']
            self.view_state.pan_y = stored['pan_y']
        else:
            if initial_window is not None:
                self.initial_window = initial_window
            self.window = WindowLevel(self.initial_window.width, self.initial_window.center)
            self.window_level_user_modified = False
            self.view_state.reset()
        self._notify()

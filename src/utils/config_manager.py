"""
Configuration Manager

This module handles persistent storage and retrieval of editor preferences.
Settings are stored in a JSON file in the user's application data directory.

Inputs:
    - User preferences (brush radius, zoom limits, scale policy, window preset, etc.)

Outputs:
    - Loaded configuration values
    - Saved configuration file

Requirements:
    - json module (standard library)
    - pathlib module (standard library)
    - os module (standard library)
"""

import json
import os
from pathlib import Path
from typing import Any, Dict, Optional


BRUSH_RADIUS_MIN = 1.0
BRUSH_RADIUS_MAX = 100.0


class ConfigManager:
    """
    Manages editor configuration and user preferences.

    Handles loading and saving of settings including:
    - Brush radius and add/erase inversion default
    - Zoom limits, zoom step and the fit/fill scale policy
    - Slice matching tolerance
    - Prefetch worker count
    - Default window preset
    """

    def __init__(self, config_filename: str = "contour_editor_config.json",
                 config_dir: Optional[Path] = None):
        """
        Initialize the configuration manager.

        Args:
            config_filename: Name of the configuration file to use
            config_dir: Directory for the config file (user app data directory if None)
        """
        if config_dir is not None:
            self.config_dir = Path(config_dir)
        elif os.name == 'nt':  # Windows
            app_data = os.getenv('APPDATA', os.path.expanduser('~'))
            self.config_dir = Path(app_data) / "DICOMContourEditor"
        else:  # Mac/Linux
            self.config_dir = Path.home() / ".config" / "DICOMContourEditor"

        # Create config directory if it doesn't exist
        self.config_dir.mkdir(parents=True, exist_ok=True)

        # Full path to config file
        self.config_path = self.config_dir / config_filename

        # Default configuration values
        self.default_config = {
            "brush_radius": 5.0,  # World mm
            "brush_invert_default": False,  # True swaps inside=erase / outside=add
            "brush_step_factor": 0.3,  # Stroke sampling step as a fraction of the radius
            "zoom_min": 0.1,
            "zoom_max": 5.0,
            "zoom_factor": 1.2,  # Multiplier per zoom in/out step
            "scale_policy": "fit",  # fit or fill, used by rendering and overlay alike
            "slice_tolerance": 2.0,  # Slice position match tolerance (mm)
            "prefetch_workers": 4,
            "window_preset": "soft tissue",
            "undo_history": 100,
        }

        # Load configuration
        self.config = self._load_config()

    def _load_config(self) -> Dict[str, Any]:
        """
        Load configuration from file, or return defaults if file doesn't exist.

        Returns:
            Dictionary containing configuration values
        """
        if self.config_path.exists():
            try:
                with open(self.config_path, 'r', encoding='utf-8') as f:
                    loaded_config = json.load(f)
                    # Merge with defaults to ensure all keys exist
                    config = self.default_config.copy()
                    config.update(loaded_config)
                    return config
            except (json.JSONDecodeError, IOError) as e:
                # If file is corrupted, use defaults
                print(f"Warning: Could not load config file: {e}")
                return self.default_config.copy()
        else:
            return self.default_config.copy()

    def save_config(self) -> bool:
        """
        Save current configuration to file.

        Returns:
            True if save was successful, False otherwise
        """
        try:
            with open(self.config_path, 'w', encoding='utf-8') as f:
                json.dump(self.config, f, indent=4, ensure_ascii=False)
            return True
        except IOError as e:
            print(f"Error saving config file: {e}")
            return False

    def get(self, key: str, default: Any = None) -> Any:
        """
        Get a configuration value.

        Args:
            key: Configuration key to retrieve
            default: Default value if key doesn't exist

        Returns:
            Configuration value or default
        """
        return self.config.get(key, default)

    def set(self, key: str, value: Any) -> None:
        """
        Set a configuration value.

        Args:
            key: Configuration key to set
            value: Value to set
        """
        self.config[key] = value

    def get_brush_radius(self) -> float:
        """
        Get the brush radius.

        Returns:
            Radius in world mm, within [1, 100]
        """
        radius = float(self.config.get("brush_radius", 5.0))
        return max(BRUSH_RADIUS_MIN, min(BRUSH_RADIUS_MAX, radius))

    def set_brush_radius(self, radius: float) -> None:
        """
        Set the brush radius (clamped to [1, 100]).

        Args:
            radius: Radius in world mm
        """
        self.config["brush_radius"] = max(BRUSH_RADIUS_MIN, min(BRUSH_RADIUS_MAX, float(radius)))
        self.save_config()

    def get_brush_invert_default(self) -> bool:
        return bool(self.config.get("brush_invert_default", False))

    def set_brush_invert_default(self, invert: bool) -> None:
        self.config["brush_invert_default"] = bool(invert)
        self.save_config()

    def get_brush_step_factor(self) -> float:
        factor = float(self.config.get("brush_step_factor", 0.3))
        return factor if factor > 0 else 0.3

    def get_zoom_limits(self) -> tuple:
        """
        Get the zoom range.

        Returns:
            (zoom_min, zoom_max); defaults are restored if the stored pair is invalid
        """
        zoom_min = float(self.config.get("zoom_min", 0.1))
        zoom_max = float(self.config.get("zoom_max", 5.0))
        if zoom_min <= 0 or zoom_max < zoom_min:
            return 0.1, 5.0
        return zoom_min, zoom_max

    def set_zoom_limits(self, zoom_min: float, zoom_max: float) -> None:
        if zoom_min > 0 and zoom_max >= zoom_min:
            self.config["zoom_min"] = float(zoom_min)
            self.config["zoom_max"] = float(zoom_max)
            self.save_config()

    def get_zoom_factor(self) -> float:
        factor = float(self.config.get("zoom_factor", 1.2))
        return factor if factor > 1.0 else 1.2

    def get_scale_policy(self) -> str:
        """
        Get the image-to-canvas scale policy.

        Returns:
            "fit" or "fill"
        """
        policy = self.config.get("scale_policy", "fit")
        return policy if policy in ("fit", "fill") else "fit"

    def set_scale_policy(self, policy: str) -> None:
        """
        Set the image-to-canvas scale policy.

        Args:
            policy: "fit" or "fill"
        """
        if policy in ["fit", "fill"]:
            self.config["scale_policy"] = policy
            self.save_config()

    def get_slice_tolerance(self) -> float:
        tolerance = float(self.config.get("slice_tolerance", 2.0))
        return tolerance if tolerance > 0 else 2.0

    def get_prefetch_workers(self) -> int:
        """Number of concurrent decode tasks, within [1, 8]."""
        return max(1, min(8, int(self.config.get("prefetch_workers", 4))))

    def set_prefetch_workers(self, workers: int) -> None:
        self.config["prefetch_workers"] = max(1, min(8, int(workers)))
        self.save_config()

    def get_window_preset(self) -> str:
        return str(self.config.get("window_preset", "soft tissue"))

    def set_window_preset(self, name: str) -> None:
        self.config["window_preset"] = name
        self.save_config()

    def get_undo_history(self) -> int:
        return max(1, int(self.config.get("undo_history", 100)))

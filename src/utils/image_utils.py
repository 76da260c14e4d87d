"""
Image Utility Functions

This module provides utility functions for converting rasters to PIL images
and preparing canvases for overlay drawing.

Inputs:
    - NumPy arrays
    - PIL Image objects
    
Outputs:
    - Converted images
    
Requirements:
    - PIL/Pillow for image handling
    - numpy for array operations
"""

from typing import Optional
import numpy as np
from PIL import Image


def array_to_image(array: np.ndarray) -> Optional[Image.Image]:
    """
    Convert NumPy array to PIL Image.
    
    Args:
        array: NumPy array (2D for grayscale, 3D for RGB)
        
    Returns:
        PIL Image or None if conversion fails
    """
    try:
        # Ensure array is in correct format
        if array.dtype != np.uint8:
            # Normalize to 0-255
            if array.max() > array.min():
                array = ((array - array.min()) / (array.max() - array.min()) * 255.0).astype(np.uint8)
            else:
                array = np.zeros_like(array, dtype=np.uint8)
        
        if array.ndim in (2, 3):
            return Image.fromarray(np.ascontiguousarray(array))
        return None
    except (ValueError, TypeError) as e:
        print(f"Error converting array to image: {e}")
        return None


def ensure_rgb(image: Image.Image) -> Image.Image:
    """Return image in RGB mode so colored overlays can be drawn on it."""
    if image.mode == 'RGB':
        return image
    return image.convert('RGB')

"""
Raster Image Conversion

Converts rendered rasters (uint8 numpy arrays or PIL images) into Qt images
for display in a widget.

Inputs:
    - uint8 numpy arrays (grayscale or RGB) or PIL images

Outputs:
    - QImage / QPixmap owning their pixel data

Requirements:
    - PySide6 for QImage/QPixmap
    - PIL/Pillow for mode conversion
    - numpy for array input
"""

from typing import Union

import numpy as np
from PIL import Image
from PySide6.QtGui import QImage, QPixmap

from utils.image_utils import array_to_image


def to_qimage(source: Union[np.ndarray, Image.Image]) -> QImage:
    """
    Convert a raster to a QImage.

    Args:
        source: uint8 array (height, width) / (height, width, 3) or PIL image

    Returns:
        QImage (a deep copy; Qt owns the data)
    """
    image = array_to_image(source) if isinstance(source, np.ndarray) else source
    if image is None:
        raise ValueError("Cannot convert raster to QImage")

    # Keep a reference to the bytes buffer until the QImage has been copied
    if image.mode == 'L':
        image_bytes = image.tobytes()
        qimage = QImage(image_bytes, image.width, image.height, image.width,
                        QImage.Format.Format_Grayscale8)
    else:
        if image.mode != 'RGB':
            image = image.convert('RGB')
        image_bytes = image.tobytes()
        qimage = QImage(image_bytes, image.width, image.height, image.width * 3,
                        QImage.Format.Format_RGB888)
    return qimage.copy()


def to_qpixmap(source: Union[np.ndarray, Image.Image]) -> QPixmap:
    """Convert a raster to a QPixmap (requires a QGuiApplication)."""
    return QPixmap.fromImage(to_qimage(source))

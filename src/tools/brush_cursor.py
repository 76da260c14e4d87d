"""
Brush Cursor Overlay

Draws the brush cursor on a rendered canvas: a circle of the brush radius in
the color of the operation a press would apply, with a "+" (add) or "-"
(erase) mark at its center. While resizing, the radius is labelled.

Inputs:
    - BrushCursor snapshot from the brush engine
    - Viewport (slice, canvas size, view state)

Outputs:
    - Cursor drawn onto a PIL image

Requirements:
    - PIL/Pillow ImageDraw
"""

from typing import Tuple

from PIL import Image, ImageDraw

from tools.brush_tool import OPERATION_ADDITIVE, STATE_RESIZING, BrushCursor
from utils.dicom_utils import format_length_mm
from utils.image_utils import ensure_rgb


ADD_COLOR = (16, 185, 129)
ERASE_COLOR = (239, 68, 68)


def cursor_color(operation: str) -> Tuple[int, int, int]:
    return ADD_COLOR if operation == OPERATION_ADDITIVE else ERASE_COLOR


def cursor_indicator(operation: str) -> str:
    return "+" if operation == OPERATION_ADDITIVE else "-"


def draw_brush_cursor(image: Image.Image, cursor: BrushCursor, viewport,
                      line_width: int = 1) -> Image.Image:
    """
    Draw the cursor onto image (converted to RGB if needed).

    Args:
        image: Canvas image, same size as viewport.canvas_dims
        cursor: BrushCursor to draw; hidden cursors leave the image as is
        viewport: Viewport used to render the canvas
        line_width: Outline width in screen pixels

    Returns:
        The image drawn on
    """
    image = ensure_rgb(image)
    if not cursor.visible:
        return image

    center_x, center_y = viewport.to_screen(cursor.position)
    radius = viewport.length_to_screen(cursor.radius)
    color = cursor_color(cursor.operation)

    draw = ImageDraw.Draw(image)
    draw.ellipse([center_x - radius, center_y - radius, center_x + radius, center_y + radius],
                 outline=color, width=line_width)

    # Indicator mark stays legible for tiny and huge brushes alike
    mark = max(3.0, min(8.0, radius * 0.3))
    draw.line([center_x - mark, center_y, center_x + mark, center_y], fill=color, width=line_width)
    if cursor_indicator(cursor.operation) == "+":
        draw.line([center_x, center_y - mark, center_x, center_y + mark], fill=color, width=line_width)

    if cursor.state == STATE_RESIZING:
        draw.text((center_x + radius + 4, center_y - 6), format_length_mm(cursor.radius), fill=color)
    return image

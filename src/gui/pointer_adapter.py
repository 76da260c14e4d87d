"""
Pointer Adapter

Maps Qt mouse input to the toolkit-neutral PointerEvent consumed by the
brush engine.

    Left button              paint (add/erase chosen at press)
    Left button + Shift      paint with add/erase swapped
    Left button + Ctrl       resize brush
    Right button             resize brush

Inputs:
    - QMouseEvent, or position/button/modifier values

Outputs:
    - PointerEvent

Requirements:
    - PySide6 for Qt enums
"""

from PySide6.QtCore import Qt
from PySide6.QtGui import QMouseEvent

from tools.brush_tool import BUTTON_PRIMARY, BUTTON_SECONDARY, PointerEvent


INVERT_MODIFIER = Qt.KeyboardModifier.ShiftModifier
RESIZE_MODIFIER = Qt.KeyboardModifier.ControlModifier


def pointer_event_from_values(x: float, y: float, button: Qt.MouseButton,
                              modifiers: Qt.KeyboardModifier) -> PointerEvent:
    """Build a PointerEvent from widget coordinates, a Qt button and Qt modifiers."""
    pointer_button = BUTTON_SECONDARY if button == Qt.MouseButton.RightButton else BUTTON_PRIMARY
    return PointerEvent(
        x, y,
        button=pointer_button,
        invert=bool(modifiers & INVERT_MODIFIER),
        resize=bool(modifiers & RESIZE_MODIFIER),
    )


def pointer_event_from_qt(event: QMouseEvent) -> PointerEvent:
    """
    Build a PointerEvent from a widget mouse event.

    For move events (no button changed), the held buttons decide the button.
    """
    button = event.button()
    if button == Qt.MouseButton.NoButton:
        button = (Qt.MouseButton.RightButton
                  if event.buttons() & Qt.MouseButton.RightButton else Qt.MouseButton.LeftButton)
    position = event.position()
    return pointer_event_from_values(position.x(), position.y(), button, event.modifiers())

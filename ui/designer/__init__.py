"""PyQt6 binding for the play designer canvas."""

from .canvas_view import DesignerCanvas, DesignerWindow, main
from .export import copy_to_clipboard, export_png, image_to_png, render_image
from .toast import Toast

__all__ = [
    "DesignerCanvas",
    "DesignerWindow",
    "main",
    "copy_to_clipboard",
    "export_png",
    "image_to_png",
    "render_image",
    "Toast",
]

from __future__ import annotations

import logging
from pathlib import Path

from PyQt6.QtCore import QBuffer, QByteArray, QIODevice, QRectF, Qt
from PyQt6.QtGui import QGuiApplication, QImage, QPainter
from PyQt6.QtSvg import QSvgRenderer

from domain.errors import ExportError
from domain.football_config import FIELD_HEIGHT, FIELD_WIDTH

LOGGER = logging.getLogger("ui.designer.export")

NATIVE_WIDTH = int(FIELD_WIDTH)
NATIVE_HEIGHT = int(FIELD_HEIGHT)
SUPERSAMPLE = 2


def _renderer(svg: str) -> QSvgRenderer:
    renderer = QSvgRenderer(QByteArray(svg.encode("utf-8")))
    if not renderer.isValid():
        raise ExportError("Canvas SVG could not be parsed")
    return renderer


def _rasterize(renderer: QSvgRenderer, width: int, height: int) -> QImage:
    image = QImage(width, height, QImage.Format.Format_ARGB32)
    image.fill(Qt.GlobalColor.transparent)
    painter = QPainter(image)
    try:
        painter.setRenderHint(QPainter.RenderHint.Antialiasing)
        renderer.render(painter, QRectF(0, 0, width, height))
    finally:
        painter.end()
    return image


def render_image(svg: str, width: int = NATIVE_WIDTH, height: int = NATIVE_HEIGHT) -> QImage:
    """Rasterize the canvas SVG at the requested pixel size.

    The native field size renders directly. Any other size renders at twice
    the native resolution and is then downscaled with smoothing.
    """

    if width <= 0 or height <= 0:
        raise ExportError(f"Invalid export size {width}x{height}")
    renderer = _renderer(svg)
    if (width, height) == (NATIVE_WIDTH, NATIVE_HEIGHT):
        return _rasterize(renderer, width, height)
    supersampled = _rasterize(renderer, NATIVE_WIDTH * SUPERSAMPLE, NATIVE_HEIGHT * SUPERSAMPLE)
    return supersampled.scaled(
        width,
        height,
        Qt.AspectRatioMode.IgnoreAspectRatio,
        Qt.TransformationMode.SmoothTransformation,
    )


def image_to_png(image: QImage) -> bytes:
    data = QByteArray()
    buffer = QBuffer(data)
    buffer.open(QIODevice.OpenModeFlag.WriteOnly)
    try:
        saved = image.save(buffer, "PNG")
    finally:
        buffer.close()
    if not saved:
        raise ExportError("Unable to encode canvas image as PNG")
    return bytes(data.data())


def export_png(svg: str, path: Path, width: int = NATIVE_WIDTH, height: int = NATIVE_HEIGHT) -> Path:
    payload = image_to_png(render_image(svg, width, height))
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_bytes(payload)
    except OSError as exc:
        raise ExportError(f"Unable to write {path}: {exc}") from exc
    LOGGER.info("Exported play image to %s (%dx%d)", path, width, height)
    return path


def copy_to_clipboard(svg: str, width: int = NATIVE_WIDTH, height: int = NATIVE_HEIGHT) -> QImage:
    image = render_image(svg, width, height)
    clipboard = QGuiApplication.clipboard()
    if clipboard is None:
        raise ExportError("No clipboard available")
    clipboard.setImage(image)
    return image

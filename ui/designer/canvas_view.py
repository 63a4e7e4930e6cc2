from __future__ import annotations

import logging
import os
import sys
from concurrent.futures import Future
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional

from pydantic import ValidationError
from PyQt6.QtCore import QByteArray, QPoint, QRectF, Qt, QTimer, pyqtSignal
from PyQt6.QtGui import QAction, QColor, QKeyEvent, QMouseEvent, QPainter, QPaintEvent, QPen
from PyQt6.QtSvg import QSvgRenderer
from PyQt6.QtWidgets import QApplication, QFileDialog, QMainWindow, QMenu, QToolBar, QWidget

from canvas import events
from canvas.engine import ContextMenu, MenuStep, PlayDesigner
from canvas.events import Notification
from canvas.generation import GenerationRequest, PlayGenerationClient, PlayGenerationService
from canvas.render import to_svg
from domain.errors import ExportError, PlayGenerationError
from domain.football_config import FIELD_HEIGHT, FIELD_WIDTH
from domain.models import DefensiveAction, RouteStyle, RouteType, Side, ToolMode
from domain.settings import load_settings
from ui.designer import export
from ui.designer.toast import Toast

LOGGER = logging.getLogger("ui.designer.canvas_view")

SETTINGS_ENV = "PLAY_DESIGNER_SETTINGS"

_ROUTE_TYPE_LABELS = {
    RouteType.PASS: "Pass route",
    RouteType.RUN: "Run path",
    RouteType.BLOCKING: "Block",
}
_ROUTE_STYLE_LABELS = {
    RouteStyle.STRAIGHT: "Straight",
    RouteStyle.CURVED: "Curved",
}
_DEFENSIVE_LABELS = {
    DefensiveAction.BLITZ: "Blitz",
    DefensiveAction.MAN: "Man coverage",
    DefensiveAction.ZONE: "Zone",
}


class DesignerCanvas(QWidget):
    """Qt surface that forwards pointer input to a :class:`PlayDesigner`."""

    generation_finished = pyqtSignal(object)

    def __init__(
        self,
        designer: PlayDesigner,
        service: Optional[PlayGenerationService] = None,
        parent: QWidget | None = None,
    ) -> None:
        super().__init__(parent)
        self.designer = designer
        self._service = service
        self.setFixedSize(int(FIELD_WIDTH), int(FIELD_HEIGHT))
        self.setMouseTracking(True)
        self.setFocusPolicy(Qt.FocusPolicy.StrongFocus)

        self._long_press = QTimer(self)
        self._long_press.setSingleShot(True)
        self._long_press.timeout.connect(self._on_long_press)
        self._menu: Optional[QMenu] = None
        self.toasts: List[Notification] = []

        self._unsubscribers: List[Callable[[], None]] = [
            designer.bus.subscribe(events.TOAST, self._on_toast),
            designer.bus.subscribe(events.MENU, self._on_menu),
            designer.bus.subscribe(events.BUSY, lambda _busy: self.update()),
            designer.bus.subscribe(events.CHANGED, lambda _tab: self.update()),
        ]
        self.generation_finished.connect(self._apply_generation)

    def closeEvent(self, event) -> None:  # type: ignore[override]
        for unsubscribe in self._unsubscribers:
            unsubscribe()
        self._unsubscribers.clear()
        if self._service is not None:
            self._service.shutdown()
        super().closeEvent(event)

    # ------------------------------------------------------------------
    # Pointer forwarding
    # ------------------------------------------------------------------
    def mousePressEvent(self, event: QMouseEvent) -> None:  # type: ignore[override]
        if event.button() != Qt.MouseButton.LeftButton:
            return
        pos = event.position()
        self.designer.pointer_down(pos.x(), pos.y())
        if self.designer.gestures.pending is not None and self.designer.gestures.pending.deadline is not None:
            self._long_press.start(int(self.designer.settings.long_press_ms))
        self.update()

    def mouseMoveEvent(self, event: QMouseEvent) -> None:  # type: ignore[override]
        pos = event.position()
        self.designer.pointer_move(pos.x(), pos.y())
        if self.designer.gestures.pending is None:
            self._long_press.stop()
        self.update()

    def mouseReleaseEvent(self, event: QMouseEvent) -> None:  # type: ignore[override]
        if event.button() != Qt.MouseButton.LeftButton:
            return
        self._long_press.stop()
        pos = event.position()
        self.designer.pointer_up(pos.x(), pos.y())
        self.designer.click(pos.x(), pos.y())
        self.update()

    def keyPressEvent(self, event: QKeyEvent) -> None:  # type: ignore[override]
        key = event.key()
        if key in (Qt.Key.Key_Delete, Qt.Key.Key_Backspace):
            self.designer.delete_selected()
        elif key == Qt.Key.Key_Z and event.modifiers() & Qt.KeyboardModifier.ControlModifier:
            self.designer.undo()
        elif key == Qt.Key.Key_Escape:
            self.designer.close_menu()
            self.designer.set_tool(ToolMode.SELECT)
        else:
            super().keyPressEvent(event)
            return
        self.update()

    def _on_long_press(self) -> None:
        self.designer.poll()
        self.update()

    # ------------------------------------------------------------------
    # Context menu
    # ------------------------------------------------------------------
    def _on_menu(self, menu: Optional[ContextMenu]) -> None:
        if self._menu is not None:
            self._menu.close()
            self._menu = None
        if menu is None:
            return
        popup = QMenu(self)
        if menu.step == MenuStep.ROUTE_TYPE:
            for route_type, label in _ROUTE_TYPE_LABELS.items():
                action = popup.addAction(label)
                action.triggered.connect(
                    lambda _checked=False, value=route_type: self.designer.choose_menu_route_type(value)
                )
            if menu.side == Side.DEFENSE:
                popup.addSeparator()
                for defensive_action, label in _DEFENSIVE_LABELS.items():
                    action = popup.addAction(label)
                    action.triggered.connect(
                        lambda _checked=False, value=defensive_action: self._choose_defensive(value)
                    )
        else:
            for style, label in _ROUTE_STYLE_LABELS.items():
                action = popup.addAction(label)
                action.triggered.connect(
                    lambda _checked=False, value=style: self.designer.choose_menu_route_style(value)
                )
        self._menu = popup
        popup.popup(self.mapToGlobal(QPoint(int(menu.anchor.x), int(menu.anchor.y))))

    def _choose_defensive(self, action: DefensiveAction) -> None:
        self.designer.choose_menu_defensive_action(action)
        self.update()

    # ------------------------------------------------------------------
    # Painting
    # ------------------------------------------------------------------
    def render_svg(self) -> str:
        return to_svg(self.designer.render())

    def paintEvent(self, event: QPaintEvent) -> None:  # type: ignore[override]
        painter = QPainter(self)
        try:
            painter.setRenderHint(QPainter.RenderHint.Antialiasing)
            renderer = QSvgRenderer(QByteArray(self.render_svg().encode("utf-8")))
            renderer.render(painter, QRectF(0, 0, FIELD_WIDTH, FIELD_HEIGHT))
            corners = self.designer.shape_preview()
            if corners is not None:
                start, end = corners
                pen = QPen(QColor(self.designer.shape_color))
                pen.setStyle(Qt.PenStyle.DashLine)
                painter.setPen(pen)
                painter.drawRect(
                    QRectF(
                        min(start.x, end.x),
                        min(start.y, end.y),
                        abs(end.x - start.x),
                        abs(end.y - start.y),
                    )
                )
        finally:
            painter.end()

    # ------------------------------------------------------------------
    # Notifications
    # ------------------------------------------------------------------
    def _on_toast(self, notification: Notification) -> None:
        self.toasts.append(notification)
        if self.isVisible():
            Toast.show_notification(self, notification)

    # ------------------------------------------------------------------
    # Generation
    # ------------------------------------------------------------------
    def request_generation(
        self,
        prompt: Optional[str] = None,
        image: Optional[str] = None,
        situation: Optional[str] = None,
    ) -> bool:
        if self._service is None:
            self.designer.bus.toast("Generation unavailable", "No generation service configured.", error=True)
            return False
        try:
            request = GenerationRequest(prompt=prompt, image=image, situation=situation)
        except ValidationError:
            self.designer.bus.toast("Nothing to generate", "Enter a prompt or attach an image.", error=True)
            return False
        if not self.designer.begin_generation():
            return False
        future = self._service.submit(request)
        if future is None:
            self.designer.fail_generation("A generation request is already pending")
            return False
        future.add_done_callback(self.generation_finished.emit)
        return True

    def _apply_generation(self, future: Future[Dict[str, Any]]) -> None:
        try:
            payload = future.result()
        except PlayGenerationError as exc:
            self.designer.fail_generation(exc)
        except Exception as exc:
            LOGGER.exception("Unexpected play generation failure")
            self.designer.fail_generation(exc)
        else:
            self.designer.apply_generated_play(payload)
        self.update()

    # ------------------------------------------------------------------
    # Export
    # ------------------------------------------------------------------
    def export_png(self, path: Path, width: int = export.NATIVE_WIDTH, height: int = export.NATIVE_HEIGHT) -> bool:
        try:
            export.export_png(self.render_svg(), path, width, height)
        except ExportError as exc:
            LOGGER.warning("Export failed: %s", exc)
            self.designer.bus.toast("Export failed", str(exc), error=True)
            return False
        self.designer.bus.toast("Image exported", str(path))
        return True

    def copy_to_clipboard(self, width: int = export.NATIVE_WIDTH, height: int = export.NATIVE_HEIGHT) -> bool:
        try:
            export.copy_to_clipboard(self.render_svg(), width, height)
        except ExportError as exc:
            LOGGER.warning("Clipboard copy failed: %s", exc)
            self.designer.bus.toast("Copy failed", str(exc), error=True)
            return False
        self.designer.bus.toast("Copied to clipboard")
        return True


class DesignerWindow(QMainWindow):
    def __init__(self, canvas: DesignerCanvas) -> None:
        super().__init__()
        self.setWindowTitle("Play Designer")
        self.canvas = canvas
        self.setCentralWidget(canvas)

        toolbar = QToolBar("Tools", self)
        self.addToolBar(toolbar)
        for tool in ToolMode:
            action = QAction(tool.value.title(), self)
            action.triggered.connect(lambda _checked=False, value=tool: self._set_tool(value))
            toolbar.addAction(action)
        toolbar.addSeparator()
        undo = QAction("Undo", self)
        undo.triggered.connect(self._undo)
        toolbar.addAction(undo)
        export_action = QAction("Export PNG", self)
        export_action.triggered.connect(self._export)
        toolbar.addAction(export_action)
        copy_action = QAction("Copy", self)
        copy_action.triggered.connect(lambda: canvas.copy_to_clipboard())
        toolbar.addAction(copy_action)

    def _set_tool(self, tool: ToolMode) -> None:
        self.canvas.designer.set_tool(tool)
        self.canvas.update()

    def _undo(self) -> None:
        self.canvas.designer.undo()
        self.canvas.update()

    def _export(self) -> None:
        filename, _ = QFileDialog.getSaveFileName(self, "Export play", "play.png", "PNG image (*.png)")
        if filename:
            self.canvas.export_png(Path(filename))


def main() -> None:
    settings_path = os.environ.get(SETTINGS_ENV)
    settings = load_settings(Path(settings_path) if settings_path else None)
    app = QApplication(sys.argv)
    designer = PlayDesigner(settings)
    designer.load_formation("7v7", Side.OFFENSE)
    client = PlayGenerationClient(settings.generate_url, timeout=settings.generate_timeout)
    canvas = DesignerCanvas(designer, PlayGenerationService(client))
    window = DesignerWindow(canvas)
    window.show()
    app.exec()


if __name__ == "__main__":
    main()

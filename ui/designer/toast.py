from __future__ import annotations

from PyQt6.QtCore import QEasingCurve, QPoint, QPropertyAnimation, QRect, Qt, QTimer
from PyQt6.QtWidgets import QFrame, QLabel, QVBoxLayout, QWidget

from canvas.events import Notification

_VARIANT_STYLES = {
    "default": "background: #111827; color: #f9fafb; border-radius: 8px;",
    "destructive": "background: #b91c1c; color: #ffffff; border-radius: 8px;",
}


class Toast(QFrame):
    """Transient notification sliding up from the bottom of the window."""

    def __init__(self, notification: Notification, duration_ms: int = 3000, parent: QWidget | None = None) -> None:
        super().__init__(parent, Qt.WindowType.ToolTip)
        self.setAttribute(Qt.WidgetAttribute.WA_ShowWithoutActivating)
        self.setWindowFlags(
            Qt.WindowType.ToolTip
            | Qt.WindowType.FramelessWindowHint
            | Qt.WindowType.WindowStaysOnTopHint
        )
        self.setStyleSheet(_VARIANT_STYLES.get(notification.variant, _VARIANT_STYLES["default"]))
        self.notification = notification
        layout = QVBoxLayout(self)
        layout.setContentsMargins(16, 12, 16, 12)
        title = QLabel(notification.title, self)
        title.setStyleSheet("font-weight: bold;")
        layout.addWidget(title)
        if notification.description:
            layout.addWidget(QLabel(notification.description, self))
        self._duration_ms = duration_ms
        self._animation = QPropertyAnimation(self, b"pos")
        self._animation.setDuration(250)
        self._animation.setEasingCurve(QEasingCurve.Type.OutCubic)

    def show_at_parent(self, parent: QWidget) -> None:
        if parent.window() is not None:
            parent = parent.window()
        geom: QRect = parent.geometry()
        self.adjustSize()
        x = geom.x() + (geom.width() - self.width()) // 2
        y = geom.y() + geom.height() - self.height() - 32
        start = QPoint(x, y + 20)
        end = QPoint(x, y)
        self.move(start)
        self.show()
        self.raise_()
        self._animation.stop()
        self._animation.setStartValue(start)
        self._animation.setEndValue(end)
        self._animation.start()
        QTimer.singleShot(self._duration_ms, self.close)

    @staticmethod
    def show_notification(parent: QWidget, notification: Notification, duration_ms: int = 3000) -> "Toast":
        toast = Toast(notification, duration_ms, parent)
        toast.show_at_parent(parent)
        return toast

"""Banner widget rendering the current notification."""

from __future__ import annotations

from typing import Optional

from models import Notification

try:
    from PySide6.QtCore import Qt
    from PySide6.QtWidgets import QLabel
except Exception:  # pragma: no cover
    Qt = None  # type: ignore
    QLabel = object  # type: ignore

SUCCESS_STYLE = (
    "color: #155724; background: #d4edda; border: 1px solid #c3e6cb;"
    "font-size: 14px; padding: 12px; border-radius: 8px;"
)
ERROR_STYLE = (
    "color: #721c24; background: #f8d7da; border: 1px solid #f5c6cb;"
    "font-size: 14px; padding: 12px; border-radius: 8px;"
)


class NotificationBanner(QLabel):
    def __init__(self) -> None:
        if Qt is None:
            raise RuntimeError("PySide6 is not installed")
        super().__init__("")
        self.setAlignment(Qt.AlignCenter)
        self.setWordWrap(True)
        self.hide()

    def show_notification(self, notification: Optional[Notification]) -> None:
        """Render a notification, or hide the banner when there is none."""
        if notification is None:
            self.setText("")
            self.hide()
            return
        self.setStyleSheet(ERROR_STYLE if notification.is_error else SUCCESS_STYLE)
        self.setText(notification.message)
        self.show()

"""Application entrypoint."""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path
from typing import Optional, Sequence

from camera import CameraImageSource
from config import JsonConfigStore
from image_source import DeviceImageSource, FileImageSource
from interfaces import ConfigStore
from models import ImageOrigin, ScanPhase, ScanState, render_result
from notifications import NotificationCenter
from recognition_client import HttpRecognitionClient
from scan_session import ScanSession

logger = logging.getLogger(__name__)


def build_arg_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(
        prog="docscan",
        description="Capture or select an image and extract its text with a recognition service.",
    )
    p.add_argument(
        "image",
        nargs="?",
        type=Path,
        help="Scan this image file without opening the window and print the text.",
    )
    p.add_argument("--endpoint", help="Recognition endpoint URL (overrides config).")
    p.add_argument("--timeout", type=float, help="Request timeout in seconds.")
    p.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging.")
    return p


def run_headless(image_path: Path, client: HttpRecognitionClient) -> int:
    """Run one scan session from a file and print the outcome."""
    notifications = NotificationCenter()
    files = FileImageSource(lambda: str(image_path))
    session = ScanSession(
        source=DeviceImageSource(camera=CameraImageSource(), files=files),
        client=client,
        notifications=notifications,
    )
    try:
        if not session.acquire(ImageOrigin.FILE):
            current = notifications.current
            print(current.message if current else f"cannot read {image_path}", file=sys.stderr)
            return 1
        session.submit()
        session.wait()
    finally:
        notifications.shutdown()

    state = session.state
    if state.phase == ScanPhase.SUCCEEDED:
        print(render_result(state))
        return 0
    message = state.failure.message if state.failure else "recognition did not finish"
    print(f"error: {message}", file=sys.stderr)
    return 1


def run_gui(config_store: ConfigStore, client: HttpRecognitionClient) -> int:
    try:
        from PySide6.QtCore import QObject, Signal, Qt
        from PySide6.QtGui import QAction, QPixmap
        from PySide6.QtWidgets import (
            QApplication,
            QFileDialog,
            QHBoxLayout,
            QInputDialog,
            QLabel,
            QMainWindow,
            QMessageBox,
            QPlainTextEdit,
            QPushButton,
            QVBoxLayout,
            QWidget,
        )
    except Exception as exc:  # pragma: no cover
        raise SystemExit(f"PySide6 is required to run the desktop app: {exc}")

    from notification_banner import NotificationBanner

    class UIBridge(QObject):
        state_signal = Signal(object)  # ScanState
        preview_signal = Signal(object)  # Preview | None
        notification_signal = Signal(object)  # Notification | None

    class App:
        def __init__(self) -> None:
            self.app = QApplication(sys.argv)
            self.config_store = config_store
            self.ui = UIBridge()
            self.ui.state_signal.connect(self._on_state_change_ui)
            self.ui.preview_signal.connect(self._on_preview_ui)
            self.ui.notification_signal.connect(self._on_notification_ui)

            self.camera = CameraImageSource(index=config_store.get_camera_index())
            self.notifications = NotificationCenter(on_change=self.ui.notification_signal.emit)
            self.session = ScanSession(
                source=DeviceImageSource(camera=self.camera, files=FileImageSource(self._choose_file)),
                client=client,
                notifications=self.notifications,
                on_state_change=self._on_state_change,
                on_preview=self.ui.preview_signal.emit,
            )

            self.window = QMainWindow()
            self.window.setWindowTitle("OCR Document Scanner")
            self._build_ui()
            self._setup_menu()
            self._render(self.session.state)
            self.window.show()

        def _build_ui(self) -> None:
            central = QWidget()
            layout = QVBoxLayout(central)

            buttons = QHBoxLayout()
            self.camera_button = QPushButton("Take photo")
            self.camera_button.clicked.connect(lambda: self.session.acquire_async(ImageOrigin.CAMERA))
            self.file_button = QPushButton("Choose image")
            self.file_button.clicked.connect(lambda: self.session.acquire(ImageOrigin.FILE))
            buttons.addWidget(self.camera_button)
            buttons.addWidget(self.file_button)
            layout.addLayout(buttons)

            self.preview_label = QLabel()
            self.preview_label.setAlignment(Qt.AlignCenter)
            self.preview_label.setMinimumHeight(240)
            layout.addWidget(self.preview_label)

            self.submit_button = QPushButton("Start OCR")
            self.submit_button.clicked.connect(self.session.submit)
            layout.addWidget(self.submit_button)

            self.loading_label = QLabel("Processing, please wait...")
            self.loading_label.setAlignment(Qt.AlignCenter)
            layout.addWidget(self.loading_label)

            self.banner = NotificationBanner()
            layout.addWidget(self.banner)

            self.result_view = QPlainTextEdit()
            self.result_view.setReadOnly(True)
            layout.addWidget(self.result_view)

            self.window.setCentralWidget(central)
            self.window.resize(640, 720)

        def _setup_menu(self) -> None:
            menu = self.window.menuBar().addMenu("Settings")

            endpoint_action = QAction("Set endpoint", menu)
            endpoint_action.triggered.connect(self._set_endpoint)
            menu.addAction(endpoint_action)

            menu.addSeparator()
            quit_action = QAction("Quit", menu)
            quit_action.triggered.connect(self.quit)
            menu.addAction(quit_action)

        def _choose_file(self) -> Optional[str]:
            path, _ = QFileDialog.getOpenFileName(
                self.window, "Choose image", "", "Images (*.png *.jpg *.jpeg *.bmp *.gif *.tif *.tiff *.webp)"
            )
            return path or None

        def _set_endpoint(self) -> None:
            value, ok = QInputDialog.getText(
                self.window, "Endpoint", "Recognition endpoint URL", text=self.config_store.get_endpoint_url()
            )
            if not ok or not value:
                return
            self.config_store.set_endpoint_url(value)
            self.session.replace_client(
                HttpRecognitionClient(value, timeout_s=self.config_store.get_request_timeout_s())
            )
            QMessageBox.information(self.window, "Saved", "Endpoint saved and applied.")

        # ------------------------------------------------------------------
        # Callbacks (may run on worker threads → emit signals for UI thread)
        # ------------------------------------------------------------------

        def _on_state_change(self, from_state: ScanState, to_state: ScanState) -> None:
            self.ui.state_signal.emit(to_state)

        # ------------------------------------------------------------------
        # UI thread handlers (safe for Qt)
        # ------------------------------------------------------------------

        def _on_state_change_ui(self, state: ScanState) -> None:
            self._render(state)

        def _render(self, state: ScanState) -> None:
            self.submit_button.setEnabled(self.session.can_submit)
            self.loading_label.setVisible(state.is_loading)
            result = render_result(state)
            self.result_view.setVisible(result is not None)
            self.result_view.setPlainText(result or "")
            if state.image is None:
                self.preview_label.clear()

        def _on_preview_ui(self, preview) -> None:  # noqa: ANN001
            if preview is None:
                self.preview_label.clear()
                return
            pixmap = QPixmap()
            pixmap.loadFromData(preview.payload())
            self.preview_label.setPixmap(
                pixmap.scaled(self.preview_label.width(), 480, Qt.KeepAspectRatio, Qt.SmoothTransformation)
            )

        def _on_notification_ui(self, notification) -> None:  # noqa: ANN001
            self.banner.show_notification(notification)

        def run(self) -> int:
            return self.app.exec()

        def quit(self) -> None:
            self.notifications.shutdown()
            self.camera.release()
            self.app.quit()

    app = App()
    return app.run()


def main(argv: Optional[Sequence[str]] = None) -> int:
    args = build_arg_parser().parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    config_store = JsonConfigStore()
    endpoint = args.endpoint or config_store.get_endpoint_url()
    timeout_s = args.timeout if args.timeout is not None else config_store.get_request_timeout_s()
    client = HttpRecognitionClient(endpoint, timeout_s=timeout_s)
    logger.debug("using endpoint %s", endpoint)

    if args.image is not None:
        return run_headless(args.image, client)
    return run_gui(config_store, client)


if __name__ == "__main__":
    raise SystemExit(main())

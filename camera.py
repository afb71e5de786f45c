"""OpenCV camera adapter.

CAMERA_INDEX env var (default 0) selects the device when no index is given.
"""

from __future__ import annotations

import logging
import os
import threading
import time
from typing import Any, Optional

from errors import ImageSourceError
from models import Image, ImageOrigin

try:
    import cv2
except Exception:  # pragma: no cover
    cv2 = None  # type: ignore

logger = logging.getLogger(__name__)


class CameraImageSource:
    def __init__(self, index: Optional[int] = None, jpeg_quality: int = 90) -> None:
        self._index = index
        self._jpeg_quality = jpeg_quality
        self._cap: Any = None
        self._lock = threading.Lock()

    def capture(self) -> Image:
        with self._lock:
            if cv2 is None:
                raise ImageSourceError("opencv-python is not installed")
            index = self._open()
            ret, frame = self._cap.read()
            if not ret or frame is None:
                raise ImageSourceError(f"frame capture failed on camera {index}")
            ok, buf = cv2.imencode(".jpg", frame, [cv2.IMWRITE_JPEG_QUALITY, self._jpeg_quality])
            if not ok:
                raise ImageSourceError("JPEG encoding failed")
        filename = time.strftime("camera-%Y%m%d-%H%M%S.jpg")
        logger.debug("captured %s from camera %d", filename, index)
        return Image(
            data=bytes(buf),
            media_type="image/jpeg",
            origin=ImageOrigin.CAMERA,
            filename=filename,
        )

    def release(self) -> None:
        with self._lock:
            if self._cap is not None and self._cap.isOpened():
                self._cap.release()
            self._cap = None

    def _open(self) -> int:
        index = self._resolve_index()
        if self._cap is None or not self._cap.isOpened():
            self._cap = cv2.VideoCapture(index)
            if not self._cap.isOpened():
                self._cap = None
                raise ImageSourceError(f"failed to open camera {index}")
        return index

    def _resolve_index(self) -> int:
        if self._index is not None:
            return self._index
        raw = os.getenv("CAMERA_INDEX", "0")
        try:
            return int(raw)
        except ValueError as exc:
            raise ImageSourceError(f"CAMERA_INDEX must be an integer, got {raw!r}") from exc

"""Image acquisition from files or a camera, plus preview derivation."""

from __future__ import annotations

import base64
import logging
import mimetypes
import threading
from pathlib import Path
from typing import Callable, Optional

from errors import ImageSourceError
from interfaces import CameraDevice
from models import Image, ImageOrigin, Preview

logger = logging.getLogger(__name__)

PathChooser = Callable[[], Optional[str]]
PreviewCallback = Callable[[Image, Preview], None]


class FileImageSource:
    def __init__(self, chooser: PathChooser) -> None:
        self._chooser = chooser

    def choose(self) -> Optional[Image]:
        path = self._chooser()
        if not path:
            return None
        return read_image_file(Path(path))


class DeviceImageSource:
    """Dispatch acquisition to the camera or the file chooser by origin."""

    def __init__(self, camera: CameraDevice, files: FileImageSource) -> None:
        self._camera = camera
        self._files = files

    def acquire(self, origin: ImageOrigin) -> Optional[Image]:
        if origin == ImageOrigin.CAMERA:
            return self._camera.capture()
        return self._files.choose()


def read_image_file(path: Path) -> Image:
    try:
        data = path.read_bytes()
    except OSError as exc:
        raise ImageSourceError(f"cannot read {path}: {exc}") from exc
    if not data:
        raise ImageSourceError(f"{path} is empty")
    media_type, _ = mimetypes.guess_type(path.name)
    return Image(
        data=data,
        media_type=media_type or "application/octet-stream",
        origin=ImageOrigin.FILE,
        filename=path.name,
    )


def derive_preview(image: Image) -> Preview:
    """Encode the image as a base64 data URI."""
    encoded = base64.b64encode(image.data).decode("ascii")
    return Preview(
        data_uri=f"data:{image.media_type};base64,{encoded}",
        media_type=image.media_type,
    )


class PreviewWorker:
    """Derive previews off the calling thread; only the latest image wins."""

    def __init__(self, on_preview: PreviewCallback) -> None:
        self._on_preview = on_preview
        self._lock = threading.Lock()
        self._generation = 0
        self._threads: list[threading.Thread] = []

    def request(self, image: Image) -> None:
        with self._lock:
            self._generation += 1
            generation = self._generation
            self._threads = [t for t in self._threads if t.is_alive()]
            thread = threading.Thread(target=self._worker, args=(image, generation), daemon=True)
            self._threads.append(thread)
        thread.start()

    def cancel(self) -> None:
        with self._lock:
            self._generation += 1

    def wait(self, timeout: Optional[float] = None) -> None:
        with self._lock:
            threads = list(self._threads)
        for thread in threads:
            thread.join(timeout=timeout)

    def _worker(self, image: Image, generation: int) -> None:
        preview = derive_preview(image)
        with self._lock:
            stale = generation != self._generation
        if stale:
            logger.debug("dropping stale preview for %s", image.filename)
            return
        self._on_preview(image, preview)

"""Protocol interfaces used by ScanSession."""

from __future__ import annotations

from typing import Optional, Protocol

from models import Image, ImageOrigin


class ImageSource(Protocol):
    def acquire(self, origin: ImageOrigin) -> Optional[Image]: ...


class CameraDevice(Protocol):
    def capture(self) -> Image: ...


class RecognitionClient(Protocol):
    def recognize(self, image: Image) -> str: ...


class ConfigStore(Protocol):
    def get_endpoint_url(self) -> str: ...

    def set_endpoint_url(self, url: str) -> None: ...

    def get_request_timeout_s(self) -> float: ...

    def set_request_timeout_s(self, timeout_s: float) -> None: ...

    def get_camera_index(self) -> int: ...

    def set_camera_index(self, index: int) -> None: ...

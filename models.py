"""Core data models for the scanner."""

from __future__ import annotations

import base64
from dataclasses import dataclass
from enum import Enum
from typing import Optional

NO_TEXT_DETECTED = "(no text detected)"


class ImageOrigin(str, Enum):
    CAMERA = "camera"
    FILE = "file"


class ScanPhase(str, Enum):
    IDLE = "IDLE"
    READY = "READY"
    SUBMITTING = "SUBMITTING"
    SUCCEEDED = "SUCCEEDED"
    FAILED = "FAILED"


@dataclass(frozen=True)
class Image:
    data: bytes
    media_type: str
    origin: ImageOrigin
    filename: str = "image"


@dataclass(frozen=True)
class Preview:
    data_uri: str
    media_type: str

    def payload(self) -> bytes:
        """Decode the data URI back to raw bytes."""
        _, _, encoded = self.data_uri.partition(",")
        return base64.b64decode(encoded)


@dataclass(frozen=True)
class FailureReason:
    message: str
    code: str
    user_input: bool = False


@dataclass(frozen=True)
class ScanState:
    """One scan session state.

    Build instances through the classmethods so that each phase carries
    exactly the fields it owns.
    """

    phase: ScanPhase
    image: Optional[Image] = None
    text: Optional[str] = None
    failure: Optional[FailureReason] = None

    @classmethod
    def idle(cls) -> "ScanState":
        return cls(ScanPhase.IDLE)

    @classmethod
    def ready(cls, image: Image) -> "ScanState":
        return cls(ScanPhase.READY, image=image)

    @classmethod
    def submitting(cls, image: Image) -> "ScanState":
        return cls(ScanPhase.SUBMITTING, image=image)

    @classmethod
    def succeeded(cls, image: Image, text: str) -> "ScanState":
        return cls(ScanPhase.SUCCEEDED, image=image, text=text)

    @classmethod
    def failed(cls, image: Image, reason: FailureReason) -> "ScanState":
        return cls(ScanPhase.FAILED, image=image, failure=reason)

    @property
    def is_loading(self) -> bool:
        return self.phase == ScanPhase.SUBMITTING


@dataclass(frozen=True)
class Notification:
    message: str
    is_error: bool
    expires_at: float


def render_result(state: ScanState) -> Optional[str]:
    """Text to show in the result pane, or None outside SUCCEEDED."""
    if state.phase != ScanPhase.SUCCEEDED:
        return None
    return state.text or NO_TEXT_DETECTED

"""Shared error codes, user-facing messages and exceptions."""

from __future__ import annotations

NO_IMAGE_SELECTED = "NO_IMAGE_SELECTED"
NETWORK_ERROR = "NETWORK_ERROR"
PROTOCOL_ERROR = "PROTOCOL_ERROR"
BACKEND_ERROR = "BACKEND_ERROR"
CAPTURE_FAILED = "CAPTURE_FAILED"

ERROR_MESSAGES = {
    NO_IMAGE_SELECTED: "Please select an image first.",
    NETWORK_ERROR: "Could not reach the recognition service.",
    PROTOCOL_ERROR: "Recognition service returned an unreadable response.",
    BACKEND_ERROR: "Recognition failed.",
    CAPTURE_FAILED: "Could not capture an image.",
}

SUCCESS_MESSAGE = "Recognition finished."


class BackendFailure(Exception):
    """Recognition did not produce text: transport, protocol or backend error."""

    def __init__(self, code: str, message: str = "") -> None:
        self.code = code
        self.message = message or ERROR_MESSAGES.get(code, code)
        super().__init__(self.message)


class ImageSourceError(RuntimeError):
    """A camera or file could not deliver an image."""

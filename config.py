"""Simple JSON-based config store."""

from __future__ import annotations

import json
import os
from pathlib import Path

DEFAULT_ENDPOINT_URL = "http://localhost:3000/api/ocr"
DEFAULT_REQUEST_TIMEOUT_S = 60.0
ENDPOINT_ENV_VAR = "DOCSCAN_ENDPOINT_URL"


class JsonConfigStore:
    def __init__(self, path: Path | None = None) -> None:
        self._path = path or Path.home() / ".config" / "docscan" / "config.json"
        self._path.parent.mkdir(parents=True, exist_ok=True)

    def get_endpoint_url(self) -> str:
        override = os.getenv(ENDPOINT_ENV_VAR, "")
        if override:
            return override
        data = self._read_all()
        return str(data.get("endpoint_url", DEFAULT_ENDPOINT_URL))

    def set_endpoint_url(self, url: str) -> None:
        data = self._read_all()
        data["endpoint_url"] = url
        self._write_all(data)

    def get_request_timeout_s(self) -> float:
        data = self._read_all()
        try:
            return float(data.get("request_timeout_s", DEFAULT_REQUEST_TIMEOUT_S))
        except (TypeError, ValueError):
            return DEFAULT_REQUEST_TIMEOUT_S

    def set_request_timeout_s(self, timeout_s: float) -> None:
        data = self._read_all()
        data["request_timeout_s"] = timeout_s
        self._write_all(data)

    def get_camera_index(self) -> int:
        data = self._read_all()
        try:
            return int(data.get("camera_index", 0))
        except (TypeError, ValueError):
            return 0

    def set_camera_index(self, index: int) -> None:
        data = self._read_all()
        data["camera_index"] = index
        self._write_all(data)

    def _read_all(self) -> dict:
        if not self._path.exists():
            return {}
        try:
            data = json.loads(self._path.read_text(encoding="utf-8"))
        except (json.JSONDecodeError, OSError):
            return {}
        return data if isinstance(data, dict) else {}

    def _write_all(self, data: dict) -> None:
        self._path.write_text(json.dumps(data, ensure_ascii=False, indent=2), encoding="utf-8")

"""HTTP adapter for the document recognition endpoint.

Contract:
  Request:  POST <endpoint>  multipart/form-data, one file part named ``file``
  Response: {"text": "..."}  on success (text may be empty)
            {"error": "..."} on failure, whatever the HTTP status
Any other body is a protocol error.
"""

from __future__ import annotations

import json
import logging
from typing import Any, Optional

import httpx

from errors import BACKEND_ERROR, NETWORK_ERROR, PROTOCOL_ERROR, BackendFailure
from models import Image

logger = logging.getLogger(__name__)

FILE_FIELD = "file"


class HttpRecognitionClient:
    def __init__(
        self,
        endpoint_url: str,
        timeout_s: float = 60.0,
        transport: Optional[httpx.BaseTransport] = None,
    ) -> None:
        self._endpoint_url = endpoint_url
        self._timeout_s = timeout_s
        self._transport = transport

    def recognize(self, image: Image) -> str:
        files = {FILE_FIELD: (image.filename, image.data, image.media_type)}
        logger.debug("POST %s (%d bytes, %s)", self._endpoint_url, len(image.data), image.media_type)
        try:
            with httpx.Client(timeout=self._timeout_s, transport=self._transport) as client:
                response = client.post(self._endpoint_url, files=files)
                body = response.read()
        except httpx.HTTPError as exc:
            logger.warning("recognition request failed: %r", exc)
            raise BackendFailure(NETWORK_ERROR, str(exc) or exc.__class__.__name__) from exc

        logger.debug("raw response status=%d body=%r", response.status_code, body[:500])
        if response.is_error:
            logger.warning("recognition endpoint answered HTTP %d", response.status_code)
        return self._interpret(body)

    @staticmethod
    def _interpret(body: bytes) -> str:
        try:
            payload: Any = json.loads(body)
        except ValueError as exc:
            raise BackendFailure(PROTOCOL_ERROR) from exc
        if not isinstance(payload, dict):
            raise BackendFailure(PROTOCOL_ERROR)

        error = payload.get("error")
        if error:
            raise BackendFailure(BACKEND_ERROR, str(error))

        text = payload.get("text")
        if not isinstance(text, str):
            raise BackendFailure(PROTOCOL_ERROR)
        return text

"""State-machine based scan session orchestration."""

from __future__ import annotations

import logging
import threading
from typing import Callable, Optional

from errors import (
    CAPTURE_FAILED,
    ERROR_MESSAGES,
    NETWORK_ERROR,
    NO_IMAGE_SELECTED,
    SUCCESS_MESSAGE,
    BackendFailure,
    ImageSourceError,
)
from image_source import PreviewWorker
from interfaces import ImageSource, RecognitionClient
from models import FailureReason, Image, ImageOrigin, Preview, ScanPhase, ScanState
from notifications import NotificationCenter

logger = logging.getLogger(__name__)

StateCallback = Callable[[ScanState, ScanState], None]
PreviewCallback = Callable[[Optional[Preview]], None]


class ScanSession:
    def __init__(
        self,
        source: ImageSource,
        client: RecognitionClient,
        notifications: NotificationCenter,
        on_state_change: Optional[StateCallback] = None,
        on_preview: Optional[PreviewCallback] = None,
    ) -> None:
        self._source = source
        self._client = client
        self._notifications = notifications
        self._on_state_change = on_state_change
        self._on_preview = on_preview

        self._lock = threading.RLock()
        self._state = ScanState.idle()
        self._preview: Optional[Preview] = None
        self._generation = 0
        self._pending = False
        self._rejection: Optional[FailureReason] = None
        self._worker: Optional[threading.Thread] = None
        self._previews = PreviewWorker(self._handle_preview)

    @property
    def state(self) -> ScanState:
        return self._state

    @property
    def image(self) -> Optional[Image]:
        return self._state.image

    @property
    def preview(self) -> Optional[Preview]:
        return self._preview

    @property
    def is_loading(self) -> bool:
        return self._state.is_loading

    @property
    def rejection(self) -> Optional[FailureReason]:
        """Why the last submit was refused for missing input, if it was."""
        return self._rejection

    @property
    def can_submit(self) -> bool:
        with self._lock:
            return self._state.image is not None and not self._in_flight()

    def replace_client(self, client: RecognitionClient) -> None:
        with self._lock:
            self._client = client

    def acquire(self, origin: ImageOrigin) -> bool:
        """Ask the image source for a new image and make it current."""
        try:
            image = self._source.acquire(origin)
        except ImageSourceError as exc:
            logger.warning("acquire from %s failed: %s", origin.value, exc)
            self._notifications.notify(f"{ERROR_MESSAGES[CAPTURE_FAILED]} {exc}", is_error=True)
            return False
        if image is None:
            logger.debug("acquire from %s cancelled", origin.value)
            return False
        self.load_image(image)
        return True

    def acquire_async(self, origin: ImageOrigin) -> threading.Thread:
        """Run acquire on a worker thread so slow devices do not block the caller."""
        thread = threading.Thread(target=self.acquire, args=(origin,), daemon=True)
        thread.start()
        return thread

    def load_image(self, image: Image) -> None:
        with self._lock:
            self._generation += 1
            self._rejection = None
            self._set_preview(None)
            self._transition(ScanState.ready(image))
        self._previews.request(image)

    def submit(self) -> bool:
        """Start recognition of the current image on a worker thread."""
        with self._lock:
            image = self._state.image
            if image is None:
                reason = FailureReason(ERROR_MESSAGES[NO_IMAGE_SELECTED], NO_IMAGE_SELECTED, user_input=True)
                self._rejection = reason
                self._notifications.notify(reason.message, is_error=True)
                return False
            if self._in_flight():
                logger.debug("submit ignored: request already in flight")
                return False
            self._pending = True
            self._rejection = None
            self._transition(ScanState.submitting(image))
            self._worker = threading.Thread(
                target=self._run_recognition,
                args=(image, self._generation, self._client),
                daemon=True,
            )
            self._worker.start()
            return True

    def wait(self, timeout: Optional[float] = None) -> bool:
        """Join the in-flight request; True once nothing is outstanding."""
        worker = self._worker
        if worker is not None:
            worker.join(timeout=timeout)
            if worker.is_alive():
                return False
        self._previews.wait(timeout=timeout)
        return True

    def reset(self) -> None:
        with self._lock:
            self._generation += 1
            self._set_preview(None)
            self._transition(ScanState.idle())
        self._previews.cancel()

    def _run_recognition(self, image: Image, generation: int, client: RecognitionClient) -> None:
        outcome: Optional[ScanState] = None
        try:
            text = client.recognize(image)
            outcome = ScanState.succeeded(image, text)
        except BackendFailure as exc:
            outcome = ScanState.failed(image, FailureReason(exc.message, exc.code))
        except Exception as exc:
            logger.exception("recognition raised unexpectedly")
            reason = FailureReason(str(exc) or ERROR_MESSAGES[NETWORK_ERROR], NETWORK_ERROR)
            outcome = ScanState.failed(image, reason)
        finally:
            if outcome is None:
                outcome = ScanState.failed(image, FailureReason("Recognition was aborted.", NETWORK_ERROR))
            self._finish(generation, outcome)

    def _finish(self, generation: int, outcome: ScanState) -> None:
        with self._lock:
            self._pending = False
            if generation != self._generation or self._state.phase != ScanPhase.SUBMITTING:
                logger.info("discarding stale %s response", outcome.phase.value)
                # state is unchanged but the session is submittable again
                self._notify_state(self._state, self._state)
                return
            self._transition(outcome)
            if outcome.failure is not None:
                self._notifications.notify(outcome.failure.message, is_error=True)
            else:
                self._notifications.notify(SUCCESS_MESSAGE)

    def _handle_preview(self, image: Image, preview: Preview) -> None:
        with self._lock:
            if self._state.image is not image:
                return
            self._set_preview(preview)

    def _in_flight(self) -> bool:
        return self._pending

    def _set_preview(self, preview: Optional[Preview]) -> None:
        if preview is None and self._preview is None:
            return
        self._preview = preview
        if self._on_preview:
            self._on_preview(preview)

    def _transition(self, to_state: ScanState) -> None:
        from_state = self._state
        self._state = to_state
        logger.debug("scan state %s -> %s", from_state.phase.value, to_state.phase.value)
        self._notify_state(from_state, to_state)

    def _notify_state(self, from_state: ScanState, to_state: ScanState) -> None:
        if self._on_state_change:
            self._on_state_change(from_state, to_state)

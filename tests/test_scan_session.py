from __future__ import annotations

import json
import threading

import httpx

from errors import (
    BACKEND_ERROR,
    ERROR_MESSAGES,
    NETWORK_ERROR,
    NO_IMAGE_SELECTED,
    PROTOCOL_ERROR,
    SUCCESS_MESSAGE,
    BackendFailure,
    ImageSourceError,
)
from models import NO_TEXT_DETECTED, Image, ImageOrigin, ScanPhase, ScanState, render_result
from notifications import NotificationCenter
from recognition_client import HttpRecognitionClient
from scan_session import ScanSession


class FakeTimer:
    def __init__(self, interval: float, function) -> None:  # noqa: ANN001
        self.interval = interval
        self.function = function
        self.cancelled = False

    def start(self) -> None:
        pass

    def cancel(self) -> None:
        self.cancelled = True


class FakeSource:
    def __init__(self, *images: Image) -> None:
        self.images = list(images)
        self.error: Exception | None = None
        self.calls: list[ImageOrigin] = []

    def acquire(self, origin: ImageOrigin) -> Image | None:
        self.calls.append(origin)
        if self.error is not None:
            raise self.error
        if not self.images:
            return None  # user cancelled
        return self.images.pop(0)


class FakeClient:
    def __init__(self, text: str = "Hello", error: Exception | None = None) -> None:
        self.text = text
        self.error = error
        self.calls: list[Image] = []
        self.gate: threading.Event | None = None
        self.entered = threading.Event()

    def recognize(self, image: Image) -> str:
        self.calls.append(image)
        self.entered.set()
        if self.gate is not None:
            self.gate.wait(timeout=5.0)
        if self.error is not None:
            raise self.error
        return self.text


def _image(name: str = "page.png", data: bytes = b"\x89PNG\r\n\x1a\nfake") -> Image:
    return Image(data=data, media_type="image/png", origin=ImageOrigin.FILE, filename=name)


def _make_session(source=None, client=None):  # noqa: ANN001, ANN202
    notifications = NotificationCenter(timer_factory=FakeTimer)
    transitions: list[tuple[ScanPhase, ScanPhase]] = []
    session = ScanSession(
        source=source or FakeSource(_image()),
        client=client or FakeClient(),
        notifications=notifications,
        on_state_change=lambda f, t: transitions.append((f.phase, t.phase)),
    )
    return session, notifications, transitions


def _http_client(status_code: int, body: bytes) -> HttpRecognitionClient:
    transport = httpx.MockTransport(lambda request: httpx.Response(status_code, content=body))
    return HttpRecognitionClient("http://ocr.test/api/ocr", transport=transport)


def test_acquire_moves_idle_to_ready() -> None:
    image = _image()
    session, notifications, transitions = _make_session(source=FakeSource(image))

    assert session.state == ScanState.idle()
    assert session.acquire(ImageOrigin.FILE) is True

    assert session.state == ScanState.ready(image)
    assert session.can_submit is True
    assert transitions == [(ScanPhase.IDLE, ScanPhase.READY)]
    assert notifications.current is None


def test_acquire_supersedes_succeeded_and_failed() -> None:
    first, second, third = _image("a.png"), _image("b.png"), _image("c.png")
    client = FakeClient(text="Hello")
    session, _, _ = _make_session(source=FakeSource(first, second, third), client=client)

    session.acquire(ImageOrigin.FILE)
    session.submit()
    session.wait(timeout=2.0)
    assert session.state.phase == ScanPhase.SUCCEEDED

    session.acquire(ImageOrigin.CAMERA)
    assert session.state == ScanState.ready(second)
    assert render_result(session.state) is None

    client.error = BackendFailure(BACKEND_ERROR, "bad image")
    session.submit()
    session.wait(timeout=2.0)
    assert session.state.phase == ScanPhase.FAILED

    session.acquire(ImageOrigin.FILE)
    assert session.state == ScanState.ready(third)
    assert session.state.failure is None


def test_cancelled_acquire_leaves_state_untouched() -> None:
    session, notifications, transitions = _make_session(source=FakeSource())

    assert session.acquire(ImageOrigin.FILE) is False
    assert session.state == ScanState.idle()
    assert transitions == []
    assert notifications.current is None


def test_source_error_notifies_without_transition() -> None:
    source = FakeSource(_image())
    source.error = ImageSourceError("failed to open camera 0")
    session, notifications, transitions = _make_session(source=source)

    assert session.acquire(ImageOrigin.CAMERA) is False
    assert session.state == ScanState.idle()
    assert transitions == []
    assert notifications.current is not None
    assert notifications.current.is_error is True
    assert "failed to open camera 0" in notifications.current.message


def test_submit_without_image_is_user_error_and_skips_network() -> None:
    client = FakeClient()
    session, notifications, transitions = _make_session(client=client)

    assert session.submit() is False
    session.wait(timeout=1.0)

    assert client.calls == []
    assert session.state == ScanState.idle()
    assert transitions == []
    assert notifications.current is not None
    assert notifications.current.is_error is True
    assert notifications.current.message == ERROR_MESSAGES[NO_IMAGE_SELECTED]
    assert session.rejection is not None
    assert session.rejection.user_input is True
    assert session.rejection.code == NO_IMAGE_SELECTED

    session.acquire(ImageOrigin.FILE)
    assert session.rejection is None
    assert session.can_submit is True


def test_rapid_submits_send_one_request() -> None:
    client = FakeClient(text="Hello")
    client.gate = threading.Event()
    session, _, _ = _make_session(client=client)
    session.acquire(ImageOrigin.FILE)

    results = [session.submit() for _ in range(5)]
    assert client.entered.wait(timeout=2.0)
    assert session.is_loading is True
    assert session.can_submit is False
    client.gate.set()
    assert session.wait(timeout=2.0) is True

    assert results == [True, False, False, False, False]
    assert len(client.calls) == 1
    assert session.is_loading is False


def test_success_response_reaches_succeeded_with_text() -> None:
    image = _image()
    session, notifications, transitions = _make_session(
        source=FakeSource(image),
        client=_http_client(200, b'{"text": "Hello"}'),
    )
    session.acquire(ImageOrigin.FILE)
    session.submit()
    session.wait(timeout=2.0)

    assert session.state == ScanState.succeeded(image, "Hello")
    assert render_result(session.state) == "Hello"
    assert notifications.current is not None
    assert notifications.current.is_error is False
    assert notifications.current.message == SUCCESS_MESSAGE
    assert transitions == [
        (ScanPhase.IDLE, ScanPhase.READY),
        (ScanPhase.READY, ScanPhase.SUBMITTING),
        (ScanPhase.SUBMITTING, ScanPhase.SUCCEEDED),
    ]


def test_error_field_fails_whatever_the_status() -> None:
    for status in (200, 400, 500):
        image = _image()
        session, notifications, _ = _make_session(
            source=FakeSource(image),
            client=_http_client(status, json.dumps({"error": "bad image"}).encode()),
        )
        session.acquire(ImageOrigin.FILE)
        session.submit()
        session.wait(timeout=2.0)

        assert session.state.phase == ScanPhase.FAILED
        assert session.state.image is image
        assert session.state.failure is not None
        assert session.state.failure.message == "bad image"
        assert session.state.failure.code == BACKEND_ERROR
        assert session.state.failure.user_input is False
        assert notifications.current is not None
        assert notifications.current.is_error is True
        assert notifications.current.message == "bad image"


def test_empty_text_is_success_with_placeholder() -> None:
    image = _image()
    session, notifications, _ = _make_session(
        source=FakeSource(image),
        client=_http_client(200, b'{"text": ""}'),
    )
    session.acquire(ImageOrigin.FILE)
    session.submit()
    session.wait(timeout=2.0)

    assert session.state == ScanState.succeeded(image, "")
    assert render_result(session.state) == NO_TEXT_DETECTED
    assert notifications.current is not None
    assert notifications.current.is_error is False


def test_malformed_body_fails_with_parse_error() -> None:
    session, notifications, _ = _make_session(
        client=_http_client(200, b"<html>Internal Server Error</html>"),
    )
    session.acquire(ImageOrigin.FILE)
    session.submit()
    session.wait(timeout=2.0)

    assert session.state.phase == ScanPhase.FAILED
    assert session.state.failure is not None
    assert session.state.failure.code == PROTOCOL_ERROR
    assert session.state.failure.message == ERROR_MESSAGES[PROTOCOL_ERROR]
    assert notifications.current is not None
    assert notifications.current.is_error is True


def test_unexpected_client_exception_still_clears_loading() -> None:
    session, notifications, _ = _make_session(client=FakeClient(error=RuntimeError("boom")))
    session.acquire(ImageOrigin.FILE)
    session.submit()
    session.wait(timeout=2.0)

    assert session.is_loading is False
    assert session.state.phase == ScanPhase.FAILED
    assert session.state.failure is not None
    assert session.state.failure.code == NETWORK_ERROR
    assert session.state.failure.message == "boom"
    assert notifications.current is not None
    assert notifications.current.is_error is True


def test_resubmit_after_failure_reenters_pipeline() -> None:
    image = _image()
    client = FakeClient(error=BackendFailure(NETWORK_ERROR, "connection refused"))
    session, _, transitions = _make_session(source=FakeSource(image), client=client)
    session.acquire(ImageOrigin.FILE)
    session.submit()
    session.wait(timeout=2.0)
    assert session.state.phase == ScanPhase.FAILED

    client.error = None
    assert session.submit() is True
    session.wait(timeout=2.0)

    assert session.state == ScanState.succeeded(image, "Hello")
    assert client.calls == [image, image]
    assert (ScanPhase.FAILED, ScanPhase.SUBMITTING) in transitions


def test_stale_response_is_discarded_after_new_acquire() -> None:
    old, new = _image("old.png"), _image("new.png")
    client = FakeClient(text="old text")
    client.gate = threading.Event()
    session, notifications, _ = _make_session(source=FakeSource(old, new), client=client)

    session.acquire(ImageOrigin.FILE)
    session.submit()
    assert client.entered.wait(timeout=2.0)

    session.acquire(ImageOrigin.FILE)
    assert session.state == ScanState.ready(new)
    assert session.is_loading is False

    client.gate.set()
    session.wait(timeout=2.0)

    assert session.state == ScanState.ready(new)
    assert notifications.current is None
    assert session.can_submit is True


def test_preview_follows_current_image() -> None:
    image = _image(data=b"\x89PNG\r\n\x1a\npreview")
    previews: list = []
    session = ScanSession(
        source=FakeSource(image),
        client=FakeClient(),
        notifications=NotificationCenter(timer_factory=FakeTimer),
        on_preview=previews.append,
    )
    session.acquire(ImageOrigin.FILE)
    session.wait(timeout=2.0)

    assert session.preview is not None
    assert session.preview.data_uri.startswith("data:image/png;base64,")
    assert session.preview.payload() == image.data
    assert previews[-1] is session.preview


def test_reset_discards_image() -> None:
    session, _, _ = _make_session()
    session.acquire(ImageOrigin.FILE)
    session.wait(timeout=2.0)

    session.reset()

    assert session.state == ScanState.idle()
    assert session.image is None
    assert session.preview is None
    assert session.can_submit is False


def test_discarded_stale_response_reports_submittable_again() -> None:
    old, new = _image("old.png"), _image("new.png")
    client = FakeClient(text="old text")
    client.gate = threading.Event()
    seen: list[tuple[ScanState, ScanState, bool]] = []
    session = ScanSession(
        source=FakeSource(old, new),
        client=client,
        notifications=NotificationCenter(timer_factory=FakeTimer),
        on_state_change=lambda f, t: seen.append((f, t, session.can_submit)),
    )
    session.acquire(ImageOrigin.FILE)
    session.submit()
    assert client.entered.wait(timeout=2.0)
    session.acquire(ImageOrigin.FILE)

    assert session.can_submit is False
    assert session.submit() is False

    before = len(seen)
    client.gate.set()
    session.wait(timeout=2.0)

    assert seen[before:] == [(ScanState.ready(new), ScanState.ready(new), True)]
    assert session.submit() is True
    session.wait(timeout=2.0)
    assert session.state == ScanState.succeeded(new, "old text")


class GatedSource(FakeSource):
    def __init__(self, *images: Image) -> None:
        super().__init__(*images)
        self.gate = threading.Event()
        self.entered = threading.Event()

    def acquire(self, origin: ImageOrigin) -> Image | None:
        self.entered.set()
        self.gate.wait(timeout=5.0)
        return super().acquire(origin)


def test_acquire_async_does_not_block_caller() -> None:
    image = _image("camera.jpg")
    source = GatedSource(image)
    session, _, transitions = _make_session(source=source)

    thread = session.acquire_async(ImageOrigin.CAMERA)
    assert source.entered.wait(timeout=2.0)
    assert session.state == ScanState.idle()

    source.gate.set()
    thread.join(timeout=2.0)

    assert not thread.is_alive()
    assert session.state == ScanState.ready(image)
    assert source.calls == [ImageOrigin.CAMERA]
    assert transitions == [(ScanPhase.IDLE, ScanPhase.READY)]

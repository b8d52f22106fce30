import time

import cv2
import pytest

from eduportal.services.capture_device import OpenCVCaptureDevice
from eduportal.services.qr_scanner import CameraUnavailableError, QRScanSession, ScanState, encode_qr_payload


class FakeVideoCapture:
    """Camera that yields the same frame forever; the frame is the QR text."""

    instances = []

    def __init__(self, index, opened=True, frame="code"):
        self.index = index
        self.opened = opened
        self.frame = frame
        self.release_calls = 0
        FakeVideoCapture.instances.append(self)

    def isOpened(self):
        return self.opened

    def read(self):
        return True, self.frame

    def release(self):
        self.release_calls += 1


class FakeQRCodeDetector:
    def detectAndDecode(self, frame):
        return frame, None, None


@pytest.fixture
def camera(monkeypatch):
    """Install fake cv2 classes; returns a setter for the next camera's behaviour."""
    FakeVideoCapture.instances = []
    behaviour = {"opened": True, "frame": "code"}

    monkeypatch.setattr(cv2, "VideoCapture", lambda index: FakeVideoCapture(index, **behaviour))
    monkeypatch.setattr(cv2, "QRCodeDetector", FakeQRCodeDetector)

    def configure(**kwargs):
        behaviour.update(kwargs)

    return configure


def wait_until(predicate, timeout=2.0):
    deadline = time.time() + timeout
    while time.time() < deadline:
        if predicate():
            return True
        time.sleep(0.01)
    return predicate()


def test_unopened_camera_raises_and_is_released(camera):
    camera(opened=False)
    device = OpenCVCaptureDevice(camera_index=3, fps=200)

    with pytest.raises(CameraUnavailableError):
        device.start(lambda text: None)

    assert FakeVideoCapture.instances[0].index == 3
    assert FakeVideoCapture.instances[0].release_calls == 1
    assert not device.is_scanning


def test_decoded_text_is_delivered(camera):
    received = []
    device = OpenCVCaptureDevice(fps=200)

    device.start(received.append)
    try:
        assert wait_until(lambda: len(received) >= 2)
    finally:
        device.stop()

    assert set(received) == {"code"}


def test_paused_device_drops_frames(camera):
    received = []
    device = OpenCVCaptureDevice(fps=200)

    def on_decode(text):
        received.append(text)
        device.pause()

    device.start(on_decode)
    try:
        assert wait_until(lambda: len(received) == 1)
        time.sleep(0.1)
        assert len(received) == 1

        device.resume()
        assert wait_until(lambda: len(received) == 2)
    finally:
        device.stop()


def test_stop_joins_thread_and_releases_camera_once(camera):
    device = OpenCVCaptureDevice(fps=200)
    device.start(lambda text: None)
    thread = device._thread

    device.stop()
    device.stop()

    assert not thread.is_alive()
    assert FakeVideoCapture.instances[0].release_calls == 1
    assert not device.is_scanning


def test_failing_handler_does_not_kill_reader(camera):
    received = []
    device = OpenCVCaptureDevice(fps=200)

    def on_decode(text):
        received.append(text)
        if len(received) == 1:
            raise RuntimeError("handler blew up")

    device.start(on_decode)
    try:
        assert wait_until(lambda: len(received) >= 2)
        assert device._thread.is_alive()
    finally:
        device.stop()


def test_session_releases_camera_when_success_handler_fails(camera):
    camera(frame=encode_qr_payload("s1"))

    def on_success(student_id):
        raise RuntimeError("store unavailable")

    session = QRScanSession(OpenCVCaptureDevice(fps=200), on_success=on_success)
    session.start()
    assert wait_until(lambda: session.state is ScanState.SUCCESS)

    session.close()

    assert FakeVideoCapture.instances[0].release_calls == 1
    assert not session.device.is_scanning

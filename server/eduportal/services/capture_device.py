"""
OpenCV camera capture for the attendance scanner.

Reads frames from a local camera on a single background thread and hands
every decoded QR text to the session callback, one at a time.
"""
import threading
import time
from typing import Callable, Optional

import cv2

from eduportal.services.qr_scanner import CameraUnavailableError, CaptureDevice


class OpenCVCaptureDevice(CaptureDevice):
    """Camera-backed capture device using cv2.VideoCapture + cv2.QRCodeDetector."""

    def __init__(self, camera_index: int = 0, fps: int = 10):
        self.camera_index = camera_index
        self.frame_interval = 1.0 / max(fps, 1)
        self._capture: Optional[cv2.VideoCapture] = None
        self._detector = cv2.QRCodeDetector()
        self._thread: Optional[threading.Thread] = None
        self._on_decode: Optional[Callable[[str], None]] = None
        self._paused = threading.Event()
        self._stopped = threading.Event()

    @property
    def is_scanning(self) -> bool:
        return self._capture is not None

    def start(self, on_decode: Callable[[str], None]) -> None:
        capture = cv2.VideoCapture(self.camera_index)
        if not capture.isOpened():
            capture.release()
            raise CameraUnavailableError(f"Camera {self.camera_index} not available")

        self._capture = capture
        self._on_decode = on_decode
        self._paused.clear()
        self._stopped.clear()
        self._thread = threading.Thread(target=self._run, name="qr-capture", daemon=True)
        self._thread.start()

    def pause(self) -> None:
        self._paused.set()

    def resume(self) -> None:
        self._paused.clear()

    def stop(self) -> None:
        self._stopped.set()
        thread = self._thread
        if thread is not None and thread is not threading.current_thread():
            thread.join(timeout=2.0)
        self._thread = None

        if self._capture is not None:
            self._capture.release()
            self._capture = None

    def _run(self) -> None:
        capture = self._capture
        while not self._stopped.is_set():
            if self._paused.is_set():
                time.sleep(self.frame_interval)
                continue

            ok, frame = capture.read()
            if not ok:
                time.sleep(self.frame_interval)
                continue

            try:
                data, _, _ = self._detector.detectAndDecode(frame)
            except cv2.error as e:
                print(f"⚠️ QR decode error: {e}")
                data = ""

            # pause() may arrive between read and decode; drop the frame then.
            if data and not self._paused.is_set() and not self._stopped.is_set():
                try:
                    self._on_decode(data)
                except Exception as e:
                    print(f"❌ QR decode handler failed: {e}")

            time.sleep(self.frame_interval)

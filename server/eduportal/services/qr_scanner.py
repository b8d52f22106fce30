"""
Attendance QR Scan Session.

Wraps a capture device, validates decoded attendance codes and reports either
the resolved student id or a categorized failure.

Code format: base64 of a UTF-8 JSON object
    {"studentId": "<id>", "timestamp": <ms since epoch>}
A code older than the freshness window (60s by default) is rejected so that a
screenshot of someone else's code cannot be replayed later.
"""
import base64
import binascii
import enum
import json
import threading
import time
from abc import ABC, abstractmethod
from typing import Callable, Optional

from pydantic import BaseModel, ConfigDict, Field, StrictInt, StrictStr, ValidationError


DEFAULT_FRESHNESS_SECONDS = 60


class QRPayloadError(Exception):
    pass


class QRFormatError(QRPayloadError):
    pass


class QRExpiredError(QRPayloadError):
    pass


class CameraUnavailableError(Exception):
    pass


class InvalidScanTransitionError(Exception):
    pass


class QRPayload(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    student_id: StrictStr = Field(alias="studentId", min_length=1)
    timestamp: StrictInt = Field(gt=0)  # ms since epoch


def encode_qr_payload(student_id: str, timestamp_ms: Optional[int] = None) -> str:
    """Build the text a student's attendance QR code carries."""
    if timestamp_ms is None:
        timestamp_ms = int(time.time() * 1000)
    data = json.dumps({"studentId": student_id, "timestamp": timestamp_ms})
    return base64.b64encode(data.encode("utf-8")).decode("ascii")


def decode_qr_payload(
    text: str,
    now_ms: Optional[int] = None,
    freshness_seconds: int = DEFAULT_FRESHNESS_SECONDS,
) -> QRPayload:
    """
    Decode and validate a scanned attendance code.

    Raises:
        QRFormatError: not base64, not UTF-8 JSON, or missing/mistyped fields
        QRExpiredError: older than the freshness window
    """
    try:
        raw = base64.b64decode(text.strip(), validate=True)
        data = json.loads(raw.decode("utf-8"))
    except (binascii.Error, UnicodeDecodeError, ValueError) as e:
        raise QRFormatError(f"Unreadable QR payload: {e}") from e

    if not isinstance(data, dict):
        raise QRFormatError("QR payload is not a JSON object")

    try:
        payload = QRPayload.model_validate(data)
    except ValidationError as e:
        raise QRFormatError(f"Invalid QR code data: {e}") from e

    if now_ms is None:
        now_ms = int(time.time() * 1000)
    if now_ms - payload.timestamp > freshness_seconds * 1000:
        raise QRExpiredError(f"QR code is {(now_ms - payload.timestamp) / 1000:.1f}s old")

    return payload


class CaptureDevice(ABC):
    """A camera (or other source) that delivers decoded QR text one at a time."""

    @abstractmethod
    def start(self, on_decode: Callable[[str], None]) -> None:
        """Acquire the device. Raises CameraUnavailableError."""
        pass

    @abstractmethod
    def pause(self) -> None:
        pass

    @abstractmethod
    def resume(self) -> None:
        pass

    @abstractmethod
    def stop(self) -> None:
        """Stop capturing and release the device."""
        pass

    @property
    @abstractmethod
    def is_scanning(self) -> bool:
        pass


class ScanState(str, enum.Enum):
    INITIALIZING = "initializing"
    SCANNING = "scanning"
    SUCCESS = "success"
    ERROR = "error"
    CLOSED = "closed"


class ScanFailure(str, enum.Enum):
    INVALID_FORMAT = "invalid_format"
    EXPIRED = "expired"
    CAMERA_UNAVAILABLE = "camera_unavailable"

    @property
    def message(self) -> str:
        return _FAILURE_MESSAGES[self]


_FAILURE_MESSAGES = {
    ScanFailure.INVALID_FORMAT: "Invalid or unreadable QR code format.",
    ScanFailure.EXPIRED: "Expired QR Code. Please ask the student to generate a new one.",
    ScanFailure.CAMERA_UNAVAILABLE: "Could not start camera. Please check permissions.",
}


class QRScanSession:
    """
    One scan-and-validate lifecycle over a capture device.

        initializing -> scanning -> success
                            |  ^
                            v  | retry()
                           error

    The device is paused before a decoded code is validated, so only one
    decode is ever processed at a time. retry() resumes the paused device
    rather than acquiring it again.
    """

    def __init__(
        self,
        device: CaptureDevice,
        on_success: Optional[Callable[[str], None]] = None,
        clock: Callable[[], float] = time.time,
        freshness_seconds: int = DEFAULT_FRESHNESS_SECONDS,
    ):
        self.device = device
        self.on_success = on_success
        self.clock = clock
        self.freshness_seconds = freshness_seconds
        self.state = ScanState.INITIALIZING
        self.failure: Optional[ScanFailure] = None
        self.student_id: Optional[str] = None
        self._acquired = False
        self._lock = threading.RLock()

    def __enter__(self):
        self.start()
        return self

    def __exit__(self, exc_type, exc, tb):
        self.close()

    def start(self) -> ScanState:
        with self._lock:
            if self.state is not ScanState.INITIALIZING:
                raise InvalidScanTransitionError(f"Cannot start from {self.state.value}")
            try:
                self.device.start(self.handle_decode)
            except CameraUnavailableError as e:
                print(f"❌ Could not start camera: {e}")
                self._fail(ScanFailure.CAMERA_UNAVAILABLE)
                return self.state

            self._acquired = True
            self.state = ScanState.SCANNING
            print("📷 Scanner started")
            return self.state

    def handle_decode(self, text: str) -> None:
        """Decode callback handed to the capture device."""
        with self._lock:
            if self.state is not ScanState.SCANNING:
                return

            self.device.pause()

            try:
                payload = decode_qr_payload(
                    text,
                    now_ms=int(self.clock() * 1000),
                    freshness_seconds=self.freshness_seconds,
                )
            except QRExpiredError as e:
                print(f"⚠️ Rejected QR code: {e}")
                self._fail(ScanFailure.EXPIRED)
                return
            except QRFormatError as e:
                print(f"⚠️ Rejected QR code: {e}")
                self._fail(ScanFailure.INVALID_FORMAT)
                return

            self.state = ScanState.SUCCESS
            self.student_id = payload.student_id
            print(f"✅ Scanned student {payload.student_id}")

        if self.on_success:
            try:
                self.on_success(payload.student_id)
            except Exception as e:
                print(f"❌ Scan handler failed for student {payload.student_id}: {e}")

    def retry(self) -> ScanState:
        with self._lock:
            if self.state is not ScanState.ERROR:
                raise InvalidScanTransitionError(f"Cannot retry from {self.state.value}")

            if not self._acquired:
                # Camera never came up, so there is nothing paused to resume.
                self.failure = None
                self.state = ScanState.INITIALIZING
                return self.start()

            self.failure = None
            self.state = ScanState.SCANNING
            self.device.resume()
            return self.state

    def close(self) -> None:
        """Stop and release the device. Safe to call more than once."""
        with self._lock:
            if self.state is ScanState.CLOSED:
                return
            was_acquired = self._acquired
            self._acquired = False
            self.state = ScanState.CLOSED

        # Outside the lock: stopping joins the capture thread, which may be
        # waiting on the lock inside handle_decode.
        if was_acquired:
            try:
                self.device.stop()
            except Exception as e:
                print(f"⚠️ Failed to stop scanner: {e}")

    def _fail(self, failure: ScanFailure) -> None:
        self.state = ScanState.ERROR
        self.failure = failure

    def snapshot(self) -> dict:
        with self._lock:
            return {
                "state": self.state.value,
                "failure": self.failure.value if self.failure else None,
                "message": self.failure.message if self.failure else None,
                "student_id": self.student_id,
            }

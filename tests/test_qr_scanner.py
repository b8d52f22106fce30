import base64
import json

import pytest

from eduportal.services.qr_scanner import (
    InvalidScanTransitionError,
    QRExpiredError,
    QRFormatError,
    QRScanSession,
    ScanFailure,
    ScanState,
    decode_qr_payload,
    encode_qr_payload,
)

NOW_MS = 1_700_000_000_000


def b64(obj) -> str:
    text = obj if isinstance(obj, str) else json.dumps(obj)
    return base64.b64encode(text.encode("utf-8")).decode("ascii")


def fixed_clock(ms=NOW_MS):
    return lambda: ms / 1000


# --- payload codec ---

def test_encoded_payload_decodes_back():
    code = encode_qr_payload("stu-7", timestamp_ms=NOW_MS)

    payload = decode_qr_payload(code, now_ms=NOW_MS)

    assert payload.student_id == "stu-7"
    assert payload.timestamp == NOW_MS


def test_payload_exactly_at_freshness_limit_is_accepted():
    code = b64({"studentId": "s1", "timestamp": NOW_MS - 60_000})

    assert decode_qr_payload(code, now_ms=NOW_MS).student_id == "s1"


def test_payload_one_ms_past_freshness_limit_is_expired():
    code = b64({"studentId": "s1", "timestamp": NOW_MS - 60_001})

    with pytest.raises(QRExpiredError):
        decode_qr_payload(code, now_ms=NOW_MS)


def test_custom_freshness_window():
    code = b64({"studentId": "s1", "timestamp": NOW_MS - 10_000})

    with pytest.raises(QRExpiredError):
        decode_qr_payload(code, now_ms=NOW_MS, freshness_seconds=5)


@pytest.mark.parametrize("code", [
    "not base64 at all!",
    b64("this is not json"),
    b64([1, 2, 3]),
    b64({"timestamp": NOW_MS}),
    b64({"studentId": "", "timestamp": NOW_MS}),
    b64({"studentId": 12, "timestamp": NOW_MS}),
    b64({"studentId": "s1"}),
    b64({"studentId": "s1", "timestamp": "yesterday"}),
    b64({"studentId": "s1", "timestamp": 0}),
    base64.b64encode(b"\xff\xfe\xfd").decode("ascii"),
])
def test_malformed_payload_is_format_error(code):
    with pytest.raises(QRFormatError):
        decode_qr_payload(code, now_ms=NOW_MS)


def test_extra_fields_are_tolerated():
    code = b64({"studentId": "s1", "timestamp": NOW_MS, "name": "Asha"})

    assert decode_qr_payload(code, now_ms=NOW_MS).student_id == "s1"


# --- scan session ---

def make_session(device, clock=None):
    scanned = []
    session = QRScanSession(device, on_success=scanned.append, clock=clock or fixed_clock())
    return session, scanned


def test_start_acquires_device_and_scans(fake_device):
    session, _ = make_session(fake_device)

    assert session.start() is ScanState.SCANNING
    assert fake_device.start_calls == 1
    assert fake_device.is_scanning


def test_camera_failure_goes_straight_to_error(broken_device):
    session, _ = make_session(broken_device)

    session.start()

    assert session.state is ScanState.ERROR
    assert session.failure is ScanFailure.CAMERA_UNAVAILABLE
    assert "camera" in session.failure.message.lower()


def test_fresh_code_succeeds_and_notifies(fake_device):
    session, scanned = make_session(fake_device)
    session.start()

    fake_device.emit(encode_qr_payload("s1", timestamp_ms=NOW_MS - 1000))

    assert session.state is ScanState.SUCCESS
    assert session.student_id == "s1"
    assert scanned == ["s1"]
    assert fake_device.paused
    assert fake_device.resume_calls == 0


def test_garbage_code_pauses_and_reports_format_error(fake_device):
    session, scanned = make_session(fake_device)
    session.start()

    fake_device.emit("garbage")

    assert session.state is ScanState.ERROR
    assert session.failure is ScanFailure.INVALID_FORMAT
    assert fake_device.paused
    assert scanned == []


def test_expired_code_reports_expired(fake_device):
    session, scanned = make_session(fake_device)
    session.start()

    fake_device.emit(encode_qr_payload("s1", timestamp_ms=NOW_MS - 120_000))

    assert session.failure is ScanFailure.EXPIRED
    assert scanned == []


def test_decodes_while_error_is_shown_are_ignored(fake_device):
    session, scanned = make_session(fake_device)
    session.start()
    fake_device.emit("garbage")

    fake_device.emit(encode_qr_payload("s1", timestamp_ms=NOW_MS))

    assert session.state is ScanState.ERROR
    assert session.failure is ScanFailure.INVALID_FORMAT
    assert scanned == []


def test_retry_resumes_without_reacquiring(fake_device):
    session, scanned = make_session(fake_device)
    session.start()
    fake_device.emit("garbage")

    assert session.retry() is ScanState.SCANNING

    assert session.failure is None
    assert fake_device.start_calls == 1
    assert fake_device.resume_calls == 1
    assert not fake_device.paused

    fake_device.emit(encode_qr_payload("s2", timestamp_ms=NOW_MS))
    assert scanned == ["s2"]


def test_retry_only_from_error(fake_device):
    session, _ = make_session(fake_device)
    session.start()

    with pytest.raises(InvalidScanTransitionError):
        session.retry()


def test_retry_after_camera_failure_tries_to_acquire_again(broken_device):
    session, _ = make_session(broken_device)
    session.start()

    broken_device.fail = False
    assert session.retry() is ScanState.SCANNING
    assert broken_device.start_calls == 2


def test_close_stops_device_once(fake_device):
    session, _ = make_session(fake_device)
    session.start()

    session.close()
    session.close()

    assert session.state is ScanState.CLOSED
    assert fake_device.stop_calls == 1
    assert not fake_device.is_scanning


def test_close_after_camera_failure_does_not_stop(broken_device):
    session, _ = make_session(broken_device)
    session.start()

    session.close()

    assert broken_device.stop_calls == 0


def test_context_manager_releases_device_on_exception(fake_device):
    with pytest.raises(RuntimeError):
        with QRScanSession(fake_device, clock=fixed_clock()) as session:
            assert session.state is ScanState.SCANNING
            raise RuntimeError("boom")

    assert fake_device.stop_calls == 1


def test_decode_after_close_is_ignored(fake_device):
    session, scanned = make_session(fake_device)
    session.start()
    on_decode = fake_device.on_decode
    session.close()

    on_decode(encode_qr_payload("s1", timestamp_ms=NOW_MS))

    assert scanned == []
    assert session.state is ScanState.CLOSED


def test_failing_success_handler_still_releases_device(fake_device):
    def on_success(student_id):
        raise RuntimeError("store unavailable")

    session = QRScanSession(fake_device, on_success=on_success, clock=fixed_clock())
    session.start()

    fake_device.emit(encode_qr_payload("s1", timestamp_ms=NOW_MS))
    # A capture thread that died would report not scanning; close must still stop it.
    fake_device.scanning = False
    session.close()

    assert session.student_id == "s1"
    assert fake_device.stop_calls == 1

from fastapi import APIRouter, Depends, HTTPException
from fastapi.responses import Response
import io
import uuid

import qrcode

from eduportal.config import settings
from eduportal.schemas import (
    AttendanceCodeResponse,
    ScanRequest,
    ScanResponse,
    ScannerSessionResponse,
    ScannerStartRequest,
)
from eduportal.services.capture_device import OpenCVCaptureDevice
from eduportal.services.qr_scanner import (
    CaptureDevice,
    InvalidScanTransitionError,
    QRExpiredError,
    QRFormatError,
    QRScanSession,
    ScanFailure,
    decode_qr_payload,
    encode_qr_payload,
)
from eduportal.storage import mark_attendance, scanner_sessions, scanner_subjects, students_db

router = APIRouter(tags=["Attendance"])


def get_capture_device() -> CaptureDevice:
    """Camera attached to the machine running the portal."""
    return OpenCVCaptureDevice(camera_index=settings.camera_index, fps=settings.scanner_fps)


def session_response(session_id: str) -> ScannerSessionResponse:
    session = scanner_sessions[session_id]
    return ScannerSessionResponse(
        session_id=session_id,
        subject=scanner_subjects[session_id],
        **session.snapshot(),
    )


def get_session_or_404(session_id: str) -> QRScanSession:
    session = scanner_sessions.get(session_id)
    if session is None:
        raise HTTPException(status_code=404, detail="Scanner session not found")
    return session


@router.get("/qr/{student_id}", response_model=AttendanceCodeResponse)
async def get_attendance_code(student_id: str):
    """Fresh attendance code for a student to show on their device."""
    if student_id not in students_db:
        raise HTTPException(status_code=404, detail="Student not found")
    return AttendanceCodeResponse(
        student_id=student_id,
        code=encode_qr_payload(student_id),
        valid_for_seconds=settings.qr_freshness_seconds,
    )


@router.get("/qr/{student_id}/image")
async def get_attendance_qr_image(student_id: str):
    """Same code rendered as a PNG QR image."""
    if student_id not in students_db:
        raise HTTPException(status_code=404, detail="Student not found")

    img = qrcode.make(encode_qr_payload(student_id))
    buffer = io.BytesIO()
    img.save(buffer)
    return Response(content=buffer.getvalue(), media_type="image/png")


@router.post("/scan", response_model=ScanResponse)
async def scan_code(request: ScanRequest):
    """
    Validate a code decoded by a browser-side scanner and mark the student present.
    """
    try:
        payload = decode_qr_payload(request.code, freshness_seconds=settings.qr_freshness_seconds)
    except QRExpiredError:
        failure = ScanFailure.EXPIRED
        return ScanResponse(status="error", failure=failure.value, message=failure.message)
    except QRFormatError:
        failure = ScanFailure.INVALID_FORMAT
        return ScanResponse(status="error", failure=failure.value, message=failure.message)

    if mark_attendance(payload.student_id, request.subject) is None:
        raise HTTPException(status_code=404, detail="Student not found")

    return ScanResponse(status="success", student_id=payload.student_id)


@router.post("/scanner", response_model=ScannerSessionResponse, status_code=201)
async def open_scanner(request: ScannerStartRequest, device: CaptureDevice = Depends(get_capture_device)):
    """
    Open a scanner session on the local camera. Each successful scan marks
    the student present for the session's subject.
    """
    session_id = str(uuid.uuid4())[:8]

    def on_success(student_id: str):
        if mark_attendance(student_id, request.subject) is None:
            print(f"⚠️ Scanned unknown student {student_id}")

    session = QRScanSession(
        device,
        on_success=on_success,
        freshness_seconds=settings.qr_freshness_seconds,
    )
    session.start()
    scanner_sessions[session_id] = session
    scanner_subjects[session_id] = request.subject
    return session_response(session_id)


@router.get("/scanner/{session_id}", response_model=ScannerSessionResponse)
async def get_scanner(session_id: str):
    get_session_or_404(session_id)
    return session_response(session_id)


@router.post("/scanner/{session_id}/retry", response_model=ScannerSessionResponse)
async def retry_scanner(session_id: str):
    """Scan Again: clears the failure and resumes the paused camera."""
    session = get_session_or_404(session_id)
    try:
        session.retry()
    except InvalidScanTransitionError as e:
        raise HTTPException(status_code=409, detail=str(e))
    return session_response(session_id)


@router.delete("/scanner/{session_id}")
async def close_scanner(session_id: str):
    session = get_session_or_404(session_id)
    session.close()
    scanner_sessions.pop(session_id, None)
    scanner_subjects.pop(session_id, None)
    return {"success": True}

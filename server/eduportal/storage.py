"""
In-memory storage for exams, submissions, and students.
In production, this should be replaced with a proper database.
"""
import uuid
from datetime import date
from typing import Dict, List, Optional

from eduportal.models import AttendanceRecord, Exam, ExamSubmission, NewSubmission, Student
from eduportal.services.exam_access import ExamAccessController
from eduportal.services.qr_scanner import QRScanSession


class DuplicateSubmissionError(Exception):
    """A submission already exists for this (student, exam) pair."""


class SubmissionNotFoundError(Exception):
    pass


# Exam catalog: exam_id -> Exam
exams_db: Dict[str, Exam] = {}

# Submissions: submission_id -> ExamSubmission
submissions_db: Dict[str, ExamSubmission] = {}

# Students: student_id -> Student
students_db: Dict[str, Student] = {}

# Open exam portals: student_id -> ExamAccessController
portal_controllers: Dict[str, ExamAccessController] = {}

# Open scanner sessions: session_id -> QRScanSession
scanner_sessions: Dict[str, QRScanSession] = {}

# Subject each scanner session marks attendance for: session_id -> subject
scanner_subjects: Dict[str, str] = {}


def find_submission(student_id: str, exam_id: str) -> Optional[ExamSubmission]:
    for submission in submissions_db.values():
        if submission.student_id == student_id and submission.exam_id == exam_id:
            return submission
    return None


def student_submissions(student_id: str) -> List[ExamSubmission]:
    return [s for s in submissions_db.values() if s.student_id == student_id]


def persist_submission(new: NewSubmission, student_name: str = "") -> ExamSubmission:
    """Store a submission, enforcing one submission per (student, exam)."""
    if find_submission(new.student_id, new.exam_id) is not None:
        raise DuplicateSubmissionError(
            f"Student {new.student_id} already has a submission for exam {new.exam_id}"
        )

    submission = ExamSubmission(
        id=str(uuid.uuid4())[:8],
        student_name=student_name,
        **new.model_dump(),
    )
    submissions_db[submission.id] = submission
    print(f"💾 Stored submission {submission.id} ({submission.status.value}) for exam {submission.exam_id}")
    return submission


def delete_submission(submission_id: str) -> ExamSubmission:
    """Teacher-side clear. The only way a Blocked submission goes away."""
    if submission_id not in submissions_db:
        raise SubmissionNotFoundError(submission_id)
    submission = submissions_db.pop(submission_id)
    print(f"🗑️ Removed submission {submission_id} for exam {submission.exam_id}")
    return submission


def mark_attendance(student_id: str, subject: str, status: str = "Present") -> Optional[AttendanceRecord]:
    """Append today's attendance record. None when the student is unknown."""
    student = students_db.get(student_id)
    if student is None:
        return None
    record = AttendanceRecord(subject=subject, date=date.today().isoformat(), status=status)
    students_db[student_id] = student.model_copy(update={"attendance": student.attendance + [record]})
    print(f"✅ Marked {student.name} {status} for {subject}")
    return record


def close_scanner_sessions():
    """Release every camera still held by a scanner session."""
    for session_id in list(scanner_sessions):
        scanner_sessions.pop(session_id).close()
        scanner_subjects.pop(session_id, None)


def reset():
    """Drop everything. Used by the test suite."""
    close_scanner_sessions()
    exams_db.clear()
    submissions_db.clear()
    students_db.clear()
    portal_controllers.clear()

from fastapi import APIRouter, HTTPException, Request
from fastapi.responses import StreamingResponse
from typing import List, Optional
import asyncio
import json
import uuid

from eduportal.models import Exam, ExamSubmission, Question
from eduportal.schemas import (
    ExamCreate,
    GradeSubmissionRequest,
    PortalResponse,
    StartExamResponse,
    StudentExam,
    StudentQuestion,
    SubmitExamRequest,
)
from eduportal.services.exam_access import (
    ExamAccessController,
    ExamNotFoundError,
    ExamNotInProgressError,
    StartOutcome,
)
from eduportal.services.grading import grade_submission
from eduportal.services.sse_manager import sse_manager
from eduportal.storage import (
    SubmissionNotFoundError,
    delete_submission,
    exams_db,
    find_submission,
    persist_submission,
    portal_controllers,
    student_submissions,
    students_db,
    submissions_db,
)

router = APIRouter(tags=["Exam"])

BLOCKED_MESSAGE = (
    "Your access to this exam has been blocked due to a violation of exam rules. "
    "Please contact your teacher for assistance."
)
COMPLETED_MESSAGE = "You have already completed this exam."


def to_student_exam(exam: Exam) -> StudentExam:
    """Strip answer keys before an exam goes to a student."""
    return StudentExam(
        id=exam.id,
        title=exam.title,
        subject=exam.subject,
        duration_minutes=exam.duration_minutes,
        questions=[StudentQuestion(id=q.id, text=q.text, options=q.options) for q in exam.questions],
    )


def get_portal(student_id: str) -> ExamAccessController:
    """Fetch (or open) the student's portal and sync it with the store."""
    student = students_db.get(student_id)
    if student is None:
        raise HTTPException(status_code=404, detail="Student not found")

    controller = portal_controllers.get(student_id)
    if controller is None:
        controller = ExamAccessController(
            student_id,
            on_submit=lambda new: persist_submission(new, student.name),
        )
        portal_controllers[student_id] = controller

    controller.refresh(list(exams_db.values()), student_submissions(student_id))
    return controller


def portal_response(controller: ExamAccessController) -> PortalResponse:
    return PortalResponse(
        student_id=controller.student_id,
        view=controller.view,
        selected_exam_id=controller.selected_exam.id if controller.selected_exam else None,
        cards=controller.exam_cards(),
    )


@router.post("/exams", response_model=StudentExam, status_code=201)
async def create_exam(request: ExamCreate):
    """
    Teacher publishes an exam. Questions get sequential ids q1, q2, ...
    """
    exam = Exam(
        id=str(uuid.uuid4())[:8],
        title=request.title,
        subject=request.subject,
        duration_minutes=request.duration_minutes,
        questions=[
            Question(id=f"q{i}", text=q.text, options=q.options, correct_answer=q.correct_answer)
            for i, q in enumerate(request.questions, start=1)
        ],
    )
    exams_db[exam.id] = exam
    print(f"🚀 Published exam {exam.id}: {exam.title} ({len(exam.questions)} questions)")
    return to_student_exam(exam)


@router.get("/exams", response_model=List[StudentExam])
async def list_exams():
    return [to_student_exam(exam) for exam in exams_db.values()]


@router.get("/students/{student_id}/portal", response_model=PortalResponse)
async def get_student_portal(student_id: str):
    """Exam catalog for a student with Take / Completed / Blocked per exam."""
    return portal_response(get_portal(student_id))


@router.post("/students/{student_id}/exams/{exam_id}/start", response_model=StartExamResponse)
async def start_exam(student_id: str, exam_id: str):
    controller = get_portal(student_id)
    try:
        outcome = controller.start_exam(exam_id)
    except ExamNotFoundError:
        raise HTTPException(status_code=404, detail="Exam not found")

    if outcome is StartOutcome.TAKING:
        return StartExamResponse(
            outcome=outcome,
            view=controller.view,
            exam=to_student_exam(controller.selected_exam),
        )
    if outcome is StartOutcome.BLOCKED:
        return StartExamResponse(outcome=outcome, view=controller.view, message=BLOCKED_MESSAGE)
    return StartExamResponse(outcome=outcome, view=controller.view, message=COMPLETED_MESSAGE)


@router.post("/students/{student_id}/submit", response_model=ExamSubmission, status_code=201)
async def submit_exam(student_id: str, request: SubmitExamRequest):
    """
    Exam-taking flow reports final answers and status (Completed, or Blocked
    after a rule violation). The portal goes back to the catalog either way.
    """
    controller = get_portal(student_id)
    try:
        new = controller.complete_exam(request.answers, request.status)
    except ExamNotInProgressError:
        raise HTTPException(status_code=409, detail="No exam in progress")

    stored = find_submission(student_id, new.exam_id)
    if stored is None or stored.submitted_at != new.submitted_at:
        raise HTTPException(status_code=409, detail="A submission for this exam already exists")

    await sse_manager.publish(stored.exam_id, "new_submission", stored.model_dump(mode="json"))
    return stored


@router.post("/students/{student_id}/cancel", response_model=PortalResponse)
async def cancel_exam(student_id: str):
    """Back out of the blocked-access message (or an open exam)."""
    controller = get_portal(student_id)
    controller.cancel()
    return portal_response(controller)


@router.get("/submissions", response_model=List[ExamSubmission])
async def list_submissions(exam_id: Optional[str] = None, student_id: Optional[str] = None):
    """Teacher view of submissions, optionally filtered."""
    return [
        s for s in submissions_db.values()
        if (exam_id is None or s.exam_id == exam_id)
        and (student_id is None or s.student_id == student_id)
    ]


@router.post("/submissions/{submission_id}/grade", response_model=ExamSubmission)
async def grade(submission_id: str, request: GradeSubmissionRequest):
    """
    Teacher sets the score, or grades against the answer key when no score is given.
    """
    submission = submissions_db.get(submission_id)
    if submission is None:
        raise HTTPException(status_code=404, detail="Submission not found")

    score = request.score
    if score is None:
        exam = exams_db.get(submission.exam_id)
        if exam is None:
            raise HTTPException(status_code=404, detail="Exam not found")
        score = grade_submission(exam, submission.answers)

    graded = submission.model_copy(update={"score": score})
    submissions_db[submission_id] = graded
    print(f"✅ Graded submission {submission_id}: {score}%")

    await sse_manager.publish(graded.exam_id, "submission_graded", graded.model_dump(mode="json"))
    return graded


@router.delete("/submissions/{submission_id}")
async def clear_submission(submission_id: str):
    """Teacher clears a submission, e.g. to let a blocked student retake the exam."""
    try:
        removed = delete_submission(submission_id)
    except SubmissionNotFoundError:
        raise HTTPException(status_code=404, detail="Submission not found")

    await sse_manager.publish(removed.exam_id, "submission_cleared", {"submission_id": submission_id})
    return {"success": True}


@router.get("/events/{exam_id}")
async def exam_events(exam_id: str, request: Request):
    """
    SSE Endpoint for teacher dashboards.
    """
    async def event_generator():
        queue = await sse_manager.subscribe(exam_id)
        try:
            while True:
                if await request.is_disconnected():
                    break

                try:
                    data = await asyncio.wait_for(queue.get(), timeout=30.0)
                    yield f"data: {json.dumps(data)}\n\n"
                except asyncio.TimeoutError:
                    # Keep-alive
                    yield ": ping\n\n"
        except asyncio.CancelledError:
            pass
        finally:
            sse_manager.unsubscribe(exam_id, queue)

    return StreamingResponse(event_generator(), media_type="text/event-stream")

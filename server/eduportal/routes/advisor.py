from fastapi import APIRouter, HTTPException
from typing import List

from eduportal.models import LearningPath
from eduportal.schemas import (
    ActivitySuggestion,
    ChatRequest,
    ChatResponse,
    FaceMatchResult,
    FaceVerifyRequest,
    PerformancePrediction,
    ProgressInsight,
    ProgressInsightRequest,
    StudentLearningPathRequest,
)
from eduportal.services import advisor
from eduportal.services.chat_service import chat_service
from eduportal.storage import students_db

router = APIRouter(tags=["Advisor"])

UNAVAILABLE = "Advisory unavailable right now. Please try again later."


def get_student_or_404(student_id: str):
    student = students_db.get(student_id)
    if student is None:
        raise HTTPException(status_code=404, detail="Student not found")
    return student


def require(result):
    """None from the advisory service becomes a retry-later 503."""
    if result is None:
        raise HTTPException(status_code=503, detail=UNAVAILABLE)
    return result


@router.post("/chat", response_model=ChatResponse)
async def chat(request: ChatRequest):
    reply = await chat_service.get_response(request.prompt, request.history, request.context, request.lang)
    return ChatResponse(response=reply)


@router.post("/students/{student_id}/learning-path", response_model=LearningPath)
async def personalized_learning_path(student_id: str):
    """Generate a plan from attendance and keep it on the student record."""
    student = get_student_or_404(student_id)
    path = require(await advisor.generate_personalized_learning_path(student))
    students_db[student_id] = student.model_copy(update={"learning_path": path})
    return path


@router.post("/learning-path", response_model=LearningPath)
async def student_learning_path(request: StudentLearningPathRequest):
    return require(await advisor.generate_student_initiated_learning_path(request.form, request.student_name))


@router.post("/students/{student_id}/prediction", response_model=PerformancePrediction)
async def performance_prediction(student_id: str):
    student = get_student_or_404(student_id)
    return require(await advisor.predict_student_performance(student))


@router.post("/progress-insights", response_model=ProgressInsight)
async def progress_insights(request: ProgressInsightRequest):
    return require(await advisor.generate_progress_insights(request.progress, request.student_name))


@router.post("/students/{student_id}/activities", response_model=List[ActivitySuggestion])
async def activity_suggestions(student_id: str):
    student = get_student_or_404(student_id)
    return require(await advisor.generate_activity_suggestions(student))


@router.post("/verify-face", response_model=FaceMatchResult)
async def verify_face(request: FaceVerifyRequest):
    """
    Compare a live capture with the registered image, taken from the request
    or from the student's stored face.
    """
    registered = request.registered_image
    if registered is None and request.student_id:
        registered = get_student_or_404(request.student_id).registered_face
    if not registered:
        raise HTTPException(status_code=400, detail="No registered face image to compare against")

    return require(await advisor.verify_face_match(registered, request.live_image))

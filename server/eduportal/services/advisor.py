"""
AI Advisory Service.

One function per advisory screen. Each builds a prompt from student data,
asks the model for a structured result and returns it, or None when the
advisory is unavailable. Callers show a "try later" message on None and never
retry on their own.
"""
import json
from typing import Dict, List, Optional
from pydantic import BaseModel

from eduportal.models import LearningPath, Student, SubjectProgress
from eduportal.schemas import (
    ActivitySuggestion,
    ActivitySuggestionList,
    FaceMatchResult,
    LearningPathForm,
    PerformancePrediction,
    ProgressInsight,
)
from eduportal.services.llm_service import llm_service
from eduportal.services.prompt_management import get_prompt


class AttendanceSummary(BaseModel):
    attendance_percentage: float
    subject_percentages: Dict[str, float]
    weakest_subject: str
    strongest_subject: str


def summarize_attendance(student: Student, default_subject: str = "General Studies") -> AttendanceSummary:
    """
    Per-subject attendance statistics.

    Overall attendance is 100% for a student with no records. Weakest and
    strongest subject fall back to default_subject when there is nothing to
    compare; on ties the first subject seen wins.
    """
    stats: Dict[str, Dict[str, int]] = {}
    for record in student.attendance:
        subject_stats = stats.setdefault(record.subject, {"present": 0, "total": 0})
        if record.status == "Present":
            subject_stats["present"] += 1
        subject_stats["total"] += 1

    percentages = {
        subject: s["present"] / s["total"] * 100
        for subject, s in stats.items()
    }

    weakest = strongest = default_subject
    min_pct, max_pct = 101.0, -1.0
    for subject, pct in percentages.items():
        if pct < min_pct:
            min_pct, weakest = pct, subject
        if pct > max_pct:
            max_pct, strongest = pct, subject

    total = len(student.attendance)
    present = sum(1 for a in student.attendance if a.status == "Present")
    overall = present / total * 100 if total > 0 else 100.0

    return AttendanceSummary(
        attendance_percentage=overall,
        subject_percentages=percentages,
        weakest_subject=weakest,
        strongest_subject=strongest,
    )


async def generate_personalized_learning_path(student: Student) -> Optional[LearningPath]:
    """Weekly plan built from attendance: weakest subject first, one confidence booster."""
    summary = summarize_attendance(student)
    subject_lines = "\n".join(
        f"  - {subject}: {pct:.1f}% attendance"
        for subject, pct in summary.subject_percentages.items()
    )

    prompts = get_prompt(
        "learning_path",
        student_id=student.id,
        attendance_percentage=f"{summary.attendance_percentage:.1f}",
        strongest_subject=summary.strongest_subject,
        weakest_subject=summary.weakest_subject,
        subject_lines=subject_lines or "  - No attendance recorded yet",
    )
    result = await llm_service.generate_response(
        response_model=LearningPath,
        system_prompt=prompts["system_prompt"],
        user_prompt=prompts["user_prompt"],
    )
    if result is None:
        print(f"❌ Error generating personalized learning path for {student.id}")
    return result


async def generate_student_initiated_learning_path(
    form: LearningPathForm,
    student_name: str
) -> Optional[LearningPath]:
    prompts = get_prompt(
        "student_learning_path",
        student_name=student_name,
        subjects=form.subjects,
        exam_dates=form.exam_dates,
        study_hours=form.study_hours,
        strengths_weaknesses=form.strengths_weaknesses,
        goal=form.goal,
    )
    result = await llm_service.generate_response(
        response_model=LearningPath,
        system_prompt=prompts["system_prompt"],
        user_prompt=prompts["user_prompt"],
    )
    if result is None:
        print(f"❌ Error generating student-initiated learning path for {student_name}")
    return result


async def predict_student_performance(student: Student) -> Optional[PerformancePrediction]:
    summary = summarize_attendance(student, default_subject="N/A")

    if student.learning_path:
        plan_status = f'The student has an active learning plan: "{student.learning_path.overall_summary}"'
    else:
        plan_status = "The student does not currently have an AI-generated learning plan."

    prompts = get_prompt(
        "performance_prediction",
        student_name=student.name,
        attendance_percentage=f"{summary.attendance_percentage:.1f}",
        strongest_subject=summary.strongest_subject,
        weakest_subject=summary.weakest_subject,
        learning_plan_status=plan_status,
    )
    result = await llm_service.generate_response(
        response_model=PerformancePrediction,
        system_prompt=prompts["system_prompt"],
        user_prompt=prompts["user_prompt"],
    )
    if result is None:
        print(f"❌ Error predicting performance for {student.id}")
    return result


async def generate_progress_insights(
    progress: List[SubjectProgress],
    student_name: str
) -> Optional[ProgressInsight]:
    progress_json = json.dumps([p.model_dump() for p in progress], indent=2, ensure_ascii=False)
    prompts = get_prompt(
        "progress_insights",
        student_name=student_name,
        progress_json=progress_json,
    )
    result = await llm_service.generate_response(
        response_model=ProgressInsight,
        system_prompt=prompts["system_prompt"],
        user_prompt=prompts["user_prompt"],
    )
    if result is None:
        print(f"❌ Error generating progress insights for {student_name}")
    return result


def build_activity_profile(student: Student) -> str:
    """Plain-text academic profile: grades, feedback, and the two most attended subjects."""
    lines = [f"The student, {student.name}, has the following academic profile:"]

    if student.progress:
        for subject in student.progress:
            lines.append(
                f'- In {subject.subject_name}, their overall grade is {subject.overall_grade}. '
                f'Teacher feedback: "{subject.teacher_feedback}"'
            )
    else:
        lines.append("- No detailed academic progress data is available.")

    present_counts: Dict[str, int] = {}
    for record in student.attendance:
        if record.status == "Present":
            present_counts[record.subject] = present_counts.get(record.subject, 0) + 1

    top_subjects = sorted(present_counts.items(), key=lambda item: item[1], reverse=True)[:2]
    if top_subjects:
        lines.append(f"- They have high attendance in: {', '.join(s for s, _ in top_subjects)}.")

    return "\n".join(lines)


async def generate_activity_suggestions(student: Student) -> Optional[List[ActivitySuggestion]]:
    prompts = get_prompt("activity_suggestions", profile=build_activity_profile(student))
    result = await llm_service.generate_response(
        response_model=ActivitySuggestionList,
        system_prompt=prompts["system_prompt"],
        user_prompt=prompts["user_prompt"],
    )
    if result is None:
        print(f"❌ Error generating activity suggestions for {student.id}")
        return None
    return result.suggestions


async def verify_face_match(registered_image_base64: str, live_image_base64: str) -> Optional[FaceMatchResult]:
    """
    Compare a registered face image with a live capture.

    The first image is the trusted one. Biometrics and liveness judgement are
    entirely the model's; this only frames the request.
    """
    prompts = get_prompt("face_verification")
    result = await llm_service.generate_response(
        response_model=FaceMatchResult,
        system_prompt=prompts["system_prompt"],
        user_prompt=prompts["user_prompt"],
        images=[registered_image_base64, live_image_base64],
        temperature=0.0,
    )
    if result is None:
        print("❌ Error verifying face match")
    return result

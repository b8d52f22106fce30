"""
Models package initialization
Domain records shared by the services and routes
"""

from eduportal.models.exam import Question, Exam, SubmissionStatus, NewSubmission, ExamSubmission
from eduportal.models.student import (
    AttendanceRecord,
    AssignmentResult,
    SubjectProgress,
    DailyPlanItem,
    LearningPath,
    Student,
    ChatMessage,
)

__all__ = [
    "Question",
    "Exam",
    "SubmissionStatus",
    "NewSubmission",
    "ExamSubmission",
    "AttendanceRecord",
    "AssignmentResult",
    "SubjectProgress",
    "DailyPlanItem",
    "LearningPath",
    "Student",
    "ChatMessage",
]

from pydantic import BaseModel
from typing import List, Literal, Optional


class AttendanceRecord(BaseModel):
    subject: str
    date: str
    status: Literal["Present", "Absent"]


class AssignmentResult(BaseModel):
    title: str
    score: Optional[float] = None
    submitted_late: bool = False


class SubjectProgress(BaseModel):
    subject_name: str
    overall_grade: str
    teacher_feedback: str = ""
    assignments: List[AssignmentResult] = []


class DailyPlanItem(BaseModel):
    day: str
    focus_topic: str
    learning_activity: str
    practice_task: str
    estimated_time: str


class LearningPath(BaseModel):
    overall_summary: str
    daily_plan: List[DailyPlanItem]


class Student(BaseModel):
    id: str
    name: str
    attendance: List[AttendanceRecord] = []
    progress: List[SubjectProgress] = []
    learning_path: Optional[LearningPath] = None
    registered_face: Optional[str] = None  # base64 PNG


class ChatMessage(BaseModel):
    sender: Literal["user", "bot"]
    text: str

from pydantic import BaseModel, Field
from typing import Dict, List, Optional
import enum


class SubmissionStatus(str, enum.Enum):
    COMPLETED = "Completed"
    BLOCKED = "Blocked"


class Question(BaseModel):
    """A single exam question. correct_answer is the answer key."""
    id: str
    text: str
    options: List[str] = []
    correct_answer: Optional[str] = None


class Exam(BaseModel):
    """Published exam. Immutable once created by the teacher."""
    id: str
    title: str
    subject: str
    questions: List[Question] = []
    duration_minutes: int = Field(ge=0)

    model_config = {"frozen": True}


class NewSubmission(BaseModel):
    """Submission as produced by the exam flow, before the host assigns id/score/name."""
    exam_id: str
    student_id: str
    answers: Dict[str, str] = {}
    submitted_at: int  # ms since epoch
    status: SubmissionStatus


class ExamSubmission(NewSubmission):
    id: str
    student_name: str = ""
    score: Optional[float] = None  # None until graded

from pydantic import BaseModel, ConfigDict, Field, field_validator
from typing import Optional, List, Dict, Literal
from eduportal.models import ChatMessage, SubjectProgress, SubmissionStatus
from eduportal.services.exam_access import ExamCard, PortalView, StartOutcome


# =============================================================================
# Advisory Schemas (also sent to the model as structured-output formats)
# =============================================================================

class PerformancePrediction(BaseModel):
    predicted_performance: str = Field(description="The predicted grade or score range, e.g. 'A- Grade (85-90%)'.")
    confidence_score: Literal["High", "Medium", "Low"]
    rationale: str = Field(description="A brief, encouraging explanation for the prediction.")


class ProgressInsight(BaseModel):
    strengths: List[str]
    areas_for_improvement: List[str]
    actionable_advice: str


class ActivitySuggestion(BaseModel):
    title: str
    description: str
    category: str  # 'Online Course', 'Workshop', 'Competition', 'Project Idea', 'Reading'
    rationale: str


class ActivitySuggestionList(BaseModel):
    """Structured outputs need an object at the root, so the list is wrapped."""
    suggestions: List[ActivitySuggestion]


class FaceMatchResult(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    is_match: bool = Field(alias="isMatch")
    confidence: float = Field(description="A confidence score from 0 to 100.")
    reason: str

    @field_validator("confidence")
    @classmethod
    def confidence_in_range(cls, v: float) -> float:
        if not 0 <= v <= 100:
            raise ValueError("confidence must be between 0 and 100")
        return v


# =============================================================================
# Exam Schemas (for routes/exam.py)
# =============================================================================

class QuestionCreate(BaseModel):
    text: str
    options: List[str] = []
    correct_answer: Optional[str] = None


class ExamCreate(BaseModel):
    """Teacher publishes an exam."""
    title: str
    subject: str
    questions: List[QuestionCreate] = []
    duration_minutes: int = Field(ge=0, default=30)


class StudentQuestion(BaseModel):
    """Question as shown to students (no answer key)."""
    id: str
    text: str
    options: List[str] = []


class StudentExam(BaseModel):
    id: str
    title: str
    subject: str
    duration_minutes: int
    questions: List[StudentQuestion]


class PortalResponse(BaseModel):
    student_id: str
    view: PortalView
    selected_exam_id: Optional[str] = None
    cards: List[ExamCard]


class StartExamResponse(BaseModel):
    outcome: StartOutcome
    view: PortalView
    exam: Optional[StudentExam] = None
    message: Optional[str] = None


class SubmitExamRequest(BaseModel):
    """Answers and final status reported by the exam-taking flow."""
    answers: Dict[str, str] = {}
    status: SubmissionStatus = SubmissionStatus.COMPLETED


class GradeSubmissionRequest(BaseModel):
    """Manual score; when omitted the answer key is used."""
    score: Optional[float] = Field(default=None, ge=0, le=100)


# =============================================================================
# Student Schemas (for routes/students.py)
# =============================================================================

class StudentCreate(BaseModel):
    name: str
    id: Optional[str] = None


class ProgressUpdate(BaseModel):
    progress: List[SubjectProgress]


class FaceRegisterRequest(BaseModel):
    image_base64: str


# =============================================================================
# Attendance Schemas (for routes/attendance.py)
# =============================================================================

class AttendanceCodeResponse(BaseModel):
    student_id: str
    code: str
    valid_for_seconds: int


class ScanRequest(BaseModel):
    """Text decoded by a browser-side scanner."""
    code: str
    subject: str


class ScanResponse(BaseModel):
    status: Literal["success", "error"]
    student_id: Optional[str] = None
    failure: Optional[str] = None
    message: Optional[str] = None


class ScannerStartRequest(BaseModel):
    subject: str


class ScannerSessionResponse(BaseModel):
    session_id: str
    subject: str
    state: str
    failure: Optional[str] = None
    message: Optional[str] = None
    student_id: Optional[str] = None


# =============================================================================
# Advisor Schemas (for routes/advisor.py)
# =============================================================================

class ChatRequest(BaseModel):
    prompt: str
    history: List[ChatMessage] = []
    context: str = ""
    lang: str = "en-IN"


class ChatResponse(BaseModel):
    response: str


class LearningPathForm(BaseModel):
    """Student-filled study planner form."""
    subjects: str
    exam_dates: str
    study_hours: str
    strengths_weaknesses: str
    goal: str


class StudentLearningPathRequest(BaseModel):
    student_name: str
    form: LearningPathForm


class ProgressInsightRequest(BaseModel):
    student_name: str
    progress: List[SubjectProgress]


class FaceVerifyRequest(BaseModel):
    """live_image is compared with registered_image, or with the student's registered face."""
    live_image: str
    student_id: Optional[str] = None
    registered_image: Optional[str] = None

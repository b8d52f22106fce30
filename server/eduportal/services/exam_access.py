"""
Exam Access Controller.

Decides, per exam, whether a student may start it, is blocked from it, or
has already completed it, and mediates the transition into and out of
exam-taking mode.
"""
import enum
import time
from typing import Callable, Dict, List, Optional, Sequence

from pydantic import BaseModel

from eduportal.models import Exam, ExamSubmission, NewSubmission, SubmissionStatus


class ExamNotFoundError(Exception):
    pass


class ExamNotInProgressError(Exception):
    """complete_exam() called while no exam is being taken."""


class PortalView(str, enum.Enum):
    CATALOG = "catalog"
    TAKING = "taking"
    BLOCKED = "blocked"


class StartOutcome(str, enum.Enum):
    TAKING = "taking"
    BLOCKED = "blocked"
    COMPLETED = "completed"


class CardVariant(str, enum.Enum):
    TAKE = "take"
    COMPLETED = "completed"
    BLOCKED = "blocked"


class ExamCard(BaseModel):
    """What the catalog shows for one exam."""
    exam_id: str
    title: str
    subject: str
    question_count: int
    duration_minutes: int
    variant: CardVariant
    score: Optional[float] = None  # None is the "not graded yet" placeholder


def card_variant(submission: Optional[ExamSubmission]) -> CardVariant:
    if submission is None:
        return CardVariant.TAKE
    match submission.status:
        case SubmissionStatus.COMPLETED:
            return CardVariant.COMPLETED
        case SubmissionStatus.BLOCKED:
            return CardVariant.BLOCKED


class ExamAccessController:
    """Per-student exam portal state."""

    def __init__(
        self,
        student_id: str,
        on_submit: Callable[[NewSubmission], None],
        exams: Sequence[Exam] = (),
        submissions: Sequence[ExamSubmission] = (),
        clock: Callable[[], float] = time.time,
    ):
        self.student_id = student_id
        self.on_submit = on_submit
        self.exams: List[Exam] = list(exams)
        self.submissions: List[ExamSubmission] = list(submissions)
        self.clock = clock
        self.selected_exam: Optional[Exam] = None
        self._view = PortalView.CATALOG

    @property
    def view(self) -> PortalView:
        return self._view

    def refresh(self, exams: Sequence[Exam], submissions: Sequence[ExamSubmission]) -> None:
        """Replace the catalog and the student's submissions with the host's current copy."""
        self.exams = list(exams)
        self.submissions = list(submissions)

    def _submission_map(self) -> Dict[str, ExamSubmission]:
        return {s.exam_id: s for s in self.submissions}

    def _find_exam(self, exam_id: str) -> Exam:
        for exam in self.exams:
            if exam.id == exam_id:
                return exam
        raise ExamNotFoundError(exam_id)

    def start_exam(self, exam_id: str) -> StartOutcome:
        """
        Try to open an exam.

        The submission status is checked here as well as on the catalog, so a
        stale client that still shows "Take" cannot reach the questions of a
        blocked exam.

        Returns:
            TAKING when the question flow is entered, BLOCKED when the
            blocked-access message must be shown, COMPLETED when the exam was
            already resolved and nothing changes.
        """
        exam = self._find_exam(exam_id)
        existing = self._submission_map().get(exam_id)

        if existing is not None:
            match existing.status:
                case SubmissionStatus.BLOCKED:
                    self.selected_exam = exam
                    self._view = PortalView.BLOCKED
                    return StartOutcome.BLOCKED
                case SubmissionStatus.COMPLETED:
                    return StartOutcome.COMPLETED

        self.selected_exam = exam
        self._view = PortalView.TAKING
        return StartOutcome.TAKING

    def complete_exam(self, answers: Dict[str, str], status: SubmissionStatus) -> NewSubmission:
        """
        Finish the exam being taken and hand the record to the host.

        The host callback is fire-and-forget: if it fails, the failure is
        logged and local state is still reset so the student cannot re-enter
        the exam.
        """
        if self.selected_exam is None or self._view is not PortalView.TAKING:
            raise ExamNotInProgressError(self.student_id)

        submission = NewSubmission(
            exam_id=self.selected_exam.id,
            student_id=self.student_id,
            answers=dict(answers),
            submitted_at=int(self.clock() * 1000),
            status=status,
        )

        try:
            self.on_submit(submission)
        except Exception as e:
            print(f"❌ Failed to hand submission for exam {submission.exam_id} to host: {e}")
        finally:
            self.cancel()

        return submission

    def cancel(self) -> None:
        self.selected_exam = None
        self._view = PortalView.CATALOG

    def exam_cards(self) -> List[ExamCard]:
        """Catalog rendering decision. Recomputed from the submissions on every call."""
        by_exam = self._submission_map()
        cards = []
        for exam in self.exams:
            submission = by_exam.get(exam.id)
            variant = card_variant(submission)
            cards.append(ExamCard(
                exam_id=exam.id,
                title=exam.title,
                subject=exam.subject,
                question_count=len(exam.questions or []),
                duration_minutes=exam.duration_minutes,
                variant=variant,
                score=submission.score if submission is not None else None,
            ))
        return cards

"""
Answer-key grading for exam submissions.
"""
from typing import Dict

from eduportal.models import Exam


def _normalize(answer) -> str:
    return str(answer).strip().lower()


def grade_submission(exam: Exam, answers: Dict[str, str]) -> float:
    """
    Score answers against the exam's answer key.

    Only questions that carry a correct_answer count towards the total.

    Returns:
        Percentage (0-100) rounded to one decimal, 0 when nothing is keyed
    """
    keyed = [q for q in exam.questions if q.correct_answer is not None]
    if not keyed:
        return 0.0

    correct = 0
    for q in keyed:
        student_answer = answers.get(q.id, "")
        if _normalize(student_answer) == _normalize(q.correct_answer):
            correct += 1

    return round(correct / len(keyed) * 100, 1)

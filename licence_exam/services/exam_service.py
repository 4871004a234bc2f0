"""
services/exam_service.py

Scoring and grading logic for the theory exam.
Pure Python functions: no I/O, no session state.
"""

from collections import defaultdict
from typing import Dict, List, Mapping, Sequence

from config import PASS_SCORE
from licence_exam.models.question_model import Question
from licence_exam.models.result_model import CategoryScore, PracticeItem, PracticeReport


def percentage(correct: int, total: int) -> int:
    """
    Integer percentage rounded half-up, computed exactly.

    floor(100 * correct / total + 0.5) == (200 * correct + total) // (2 * total)
    so 1/8 → 13 and 7/8 → 88, with no float error near the .5 boundary.
    Returns 0 when total is 0.
    """
    if total <= 0:
        return 0
    return (200 * correct + total) // (2 * total)


def count_correct(
    questions: Sequence[Question],
    answers: Mapping[str, int],
) -> int:
    """Number of questions whose selected option equals correct_index. Missing answers are wrong."""
    return sum(1 for q in questions if answers.get(q.id) == q.correct_index)


def calculate_score(
    questions: Sequence[Question],
    answers: Mapping[str, int],
) -> int:
    """
    Grade the answer sheet and return a 0-100 integer score.

    Args:
        questions: Questions drawn for the attempt.
        answers:   {question.id: selected option index}

    Returns:
        Half-up rounded percentage of correct answers. 0 for an empty set.
    """
    return percentage(count_correct(questions, answers), len(questions))


def is_passed(score: int, pass_score: int = PASS_SCORE) -> bool:
    """score >= pass_score."""
    return score >= pass_score


def get_incorrect_questions(
    questions: Sequence[Question],
    answers: Mapping[str, int],
) -> List[Question]:
    """Wrong or unanswered questions, in original order."""
    return [q for q in questions if answers.get(q.id) != q.correct_index]


def calculate_category_scores(
    questions: Sequence[Question],
    answers: Mapping[str, int],
) -> List[CategoryScore]:
    """
    Per-category tallies, sorted by category name.
    Questions without a category are grouped under "general".
    """
    buckets: Dict[str, Dict[str, int]] = defaultdict(
        lambda: {"total": 0, "correct": 0, "incorrect": 0, "unanswered": 0}
    )

    for q in questions:
        b = buckets[q.category or "general"]
        b["total"] += 1
        selected = answers.get(q.id)
        if selected is None:
            b["unanswered"] += 1
        elif selected == q.correct_index:
            b["correct"] += 1
        else:
            b["incorrect"] += 1

    return [
        CategoryScore(category=cat, **b, score=percentage(b["correct"], b["total"]))
        for cat, b in sorted(buckets.items())
    ]


def grade_practice(
    questions: Sequence[Question],
    answers: Mapping[str, int],
) -> PracticeReport:
    """Full breakdown for a practice attempt: totals, per-question items, per-category scores."""
    items = [
        PracticeItem(
            question_id=q.id,
            selected_index=answers.get(q.id),
            correct_index=q.correct_index,
            is_correct=answers.get(q.id) == q.correct_index,
        )
        for q in questions
    ]
    correct = sum(1 for i in items if i.is_correct)
    return PracticeReport(
        correct=correct,
        total=len(questions),
        percentage=percentage(correct, len(questions)),
        items=items,
        categories=calculate_category_scores(questions, answers),
    )

"""
Scoring: +marks for a correct option, -negative_marks for a wrong one, 0 when unattempted.
Answers are option letters ("A" is the first option) or None.
"""
import logging
import math
from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Optional, Sequence

from testhall.models import Question, TestPerformanceSummary, UserPerformanceHistory

logger = logging.getLogger(__name__)


@dataclass
class ScoreReport:
    score: float = 0.0
    total_score: float = 0.0
    accuracy: int = 0
    correct_answers: int = 0
    incorrect_answers: int = 0
    unattempted_questions: int = 0
    subject_performance: Dict[str, Dict[str, int]] = field(default_factory=dict)


def option_index(letter: str) -> int:
    letter = (letter or "").strip()
    if not letter:
        raise ValueError("Option letter is empty")
    return ord(letter.upper()[0]) - ord("A")


def option_letter(index: int) -> str:
    return chr(ord("A") + index)


def is_correct_choice(question: Question, letter: str) -> bool:
    if not (letter or "").strip():
        return False
    idx = option_index(letter)
    if idx < 0 or idx >= len(question.options):
        return False
    return question.options[idx].is_correct


def compute_accuracy(correct: int, incorrect: int) -> int:
    attempted = correct + incorrect
    if attempted == 0:
        return 0
    # Half-up, so 12.5% reads as 13
    return math.floor(correct / attempted * 100 + 0.5)


def score_answers(questions: Sequence[Question], answers: Sequence[Optional[str]]) -> ScoreReport:
    """Single linear pass over the questions; answers[i] belongs to questions[i]."""
    report = ScoreReport()
    total_possible = 0.0

    for index, question in enumerate(questions):
        marks = question.effective_marks
        negative_marks = question.effective_negative_marks
        total_possible += marks

        stats = None
        if question.subject:
            stats = report.subject_performance.setdefault(
                question.subject, {"correct": 0, "total": 0, "attempted": 0}
            )
            stats["total"] += 1

        selected = answers[index] if index < len(answers) else None
        if not selected:
            report.unattempted_questions += 1
            continue

        if stats is not None:
            stats["attempted"] += 1
        if is_correct_choice(question, selected):
            report.correct_answers += 1
            report.score += marks
            if stats is not None:
                stats["correct"] += 1
        else:
            report.incorrect_answers += 1
            report.score -= negative_marks

    report.total_score = abs(total_possible)
    report.accuracy = compute_accuracy(report.correct_answers, report.incorrect_answers)
    logger.debug(
        f"Scored {len(questions)} questions: {report.score}/{report.total_score}, "
        f"correct={report.correct_answers}, incorrect={report.incorrect_answers}"
    )
    return report


def aggregate_subject_performance(breakdowns: Iterable[Optional[Dict[str, Dict[str, int]]]]) -> Dict[str, Dict]:
    """Merge per-result subject breakdowns and add average_score (correct / total in percent)."""
    merged: Dict[str, Dict] = {}
    for breakdown in breakdowns:
        if not breakdown:
            continue
        for subject, perf in breakdown.items():
            totals = merged.setdefault(subject, {"correct": 0, "total": 0, "attempted": 0})
            totals["correct"] += perf.get("correct", 0)
            totals["total"] += perf.get("total", 0)
            totals["attempted"] += perf.get("attempted", 0)

    for totals in merged.values():
        totals["average_score"] = (totals["correct"] / totals["total"]) * 100 if totals["total"] > 0 else 0
    return merged


def summarize_history(user_id: str, display_name: str, summaries: List[TestPerformanceSummary]) -> UserPerformanceHistory:
    if not summaries:
        return UserPerformanceHistory(user_id=user_id, display_name=display_name)

    percents = [s.score / s.total_score * 100 if s.total_score else 0 for s in summaries]
    with_percentile = [s.percentile for s in summaries if s.percentile]
    return UserPerformanceHistory(
        user_id=user_id,
        display_name=display_name,
        test_results=summaries,
        average_score=sum(percents) / len(summaries),
        average_percentile=sum(with_percentile) / len(with_percentile) if with_percentile else 0,
        total_tests_taken=len(summaries),
    )

"""Submitted attempts: per-user local record, completion flags and the backend result row."""
import logging
from datetime import datetime
from typing import Dict, List, Optional

from testhall.database import DatabaseClient
from testhall.local_store import LocalStore
from testhall.models import TestResult
from testhall.session import SubmissionOutcome
from testhall.timeutil import seconds_to_time, time_to_seconds

logger = logging.getLogger(__name__)

# Local records of a session without a user id
ANONYMOUS_USER = "anonymous"


def _owner(user_id: Optional[str]) -> str:
    return user_id or ANONYMOUS_USER


def _key(user_id: Optional[str], test_id: str, suffix: str) -> str:
    return f"test_{_owner(user_id)}_{test_id}_{suffix}"


def _completed_key(user_id: Optional[str]) -> str:
    return f"completed_tests_{_owner(user_id)}"


def save_test_submission(
    store: LocalStore,
    user_id: Optional[str],
    test_id: str,
    answers: List[Optional[str]],
    time_taken: Dict[str, int],
    score: Optional[float] = None,
    total_score: Optional[float] = None,
    subject_performance: Optional[Dict[str, Dict[str, int]]] = None,
    correct_answers: Optional[int] = None,
    incorrect_answers: Optional[int] = None,
    db: Optional[DatabaseClient] = None,
) -> Dict:
    """
    Record a submitted attempt locally and, when possible, in the test_results table.

    Args:
        user_id: Acting user; local entries are kept per user, and the backend row
            is only written with a user id, a score and a total
        answers: Option letter (or None) per question, in question order
        time_taken: {"minutes", "seconds"}
        correct_answers, incorrect_answers: Counts from the score report; derived
            from the subject breakdown when not given

    Returns:
        The submission record as stored locally
    """
    time_taken_seconds = time_to_seconds(time_taken)
    submission = {
        "test_id": test_id,
        "user_id": user_id,
        "answers": answers,
        "time_taken": time_taken,
        "time_taken_seconds": time_taken_seconds,
        "score": score,
        "total_score": total_score,
        "submitted_at": datetime.utcnow().isoformat(),
        "subject_performance": subject_performance,
    }
    store.set(_key(user_id, test_id, "submission"), submission)
    store.set(_key(user_id, test_id, "answers"), answers)
    store.set(_key(user_id, test_id, "time_taken"), time_taken)
    store.set(_key(user_id, test_id, "time_taken_seconds"), time_taken_seconds)
    if subject_performance:
        store.set(_key(user_id, test_id, "subject_performance"), subject_performance)

    completed = completed_tests(store, user_id)
    if test_id not in completed:
        completed.append(test_id)
        store.set(_completed_key(user_id), completed)

    if db is not None and user_id and score is not None and total_score is not None:
        breakdown = subject_performance or {}
        if correct_answers is None or incorrect_answers is None:
            correct_answers = sum(s.get("correct", 0) for s in breakdown.values())
            attempted = sum(s.get("attempted", 0) for s in breakdown.values())
            incorrect_answers = attempted - correct_answers
        attempted = correct_answers + incorrect_answers
        result = TestResult(
            user_id=user_id,
            test_id=test_id,
            score=score,
            total_score=total_score,
            accuracy=(correct_answers / attempted) * 100 if attempted > 0 else 0.0,
            time_taken_seconds=time_taken_seconds,
            correct_answers=correct_answers,
            incorrect_answers=incorrect_answers,
            unattempted_questions=sum(1 for a in answers if a is None),
            answers={str(i): a for i, a in enumerate(answers)},
            subject_performance=breakdown,
            submitted_at=submission["submitted_at"],
        )
        if db.save_test_result(result):
            logger.info(f"Test result saved to database for user {user_id}, test {test_id}")

    logger.info(f"Test submission saved for test {test_id} (user {_owner(user_id)})")
    return submission


def save_outcome(store: LocalStore, outcome: SubmissionOutcome, user_id: Optional[str] = None,
                 db: Optional[DatabaseClient] = None) -> Dict:
    """Persist a scored session outcome."""
    report = outcome.report
    return save_test_submission(
        store,
        user_id,
        outcome.test_id,
        outcome.answers,
        outcome.time_taken,
        score=report.score,
        total_score=report.total_score,
        subject_performance=report.subject_performance,
        correct_answers=report.correct_answers,
        incorrect_answers=report.incorrect_answers,
        db=db,
    )


def get_test_submission(store: LocalStore, user_id: Optional[str], test_id: str) -> Optional[Dict]:
    """The stored record, or one rebuilt from the answers and time-taken entries."""
    submission = store.get(_key(user_id, test_id, "submission"))
    if submission:
        return submission

    answers = store.get(_key(user_id, test_id, "answers"))
    time_taken = store.get(_key(user_id, test_id, "time_taken"))
    if answers is None or time_taken is None:
        return None
    return {
        "test_id": test_id,
        "user_id": user_id,
        "answers": answers,
        "time_taken": time_taken,
        "time_taken_seconds": int(store.get(_key(user_id, test_id, "time_taken_seconds"), 0) or 0),
        "submitted_at": datetime.utcnow().isoformat(),
    }


def get_test_time_taken(store: LocalStore, user_id: Optional[str], test_id: str) -> Optional[Dict[str, int]]:
    time_taken = store.get(_key(user_id, test_id, "time_taken"))
    if time_taken:
        return time_taken
    seconds = store.get(_key(user_id, test_id, "time_taken_seconds"))
    if seconds is not None:
        return seconds_to_time(int(seconds))
    submission = get_test_submission(store, user_id, test_id)
    if submission and submission.get("time_taken"):
        return submission["time_taken"]
    return None


def get_subject_performance(store: LocalStore, user_id: Optional[str], test_id: str) -> Dict[str, Dict[str, int]]:
    return store.get(_key(user_id, test_id, "subject_performance"), {})


def completed_tests(store: LocalStore, user_id: Optional[str]) -> List[str]:
    return store.get(_completed_key(user_id), [])


def is_test_completed(store: LocalStore, user_id: Optional[str], test_id: str) -> bool:
    return test_id in completed_tests(store, user_id)

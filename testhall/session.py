"""
Test-taking session: per-question status tracking, answer buffering, section
navigation and (auto-)submission.

Status per question is one of not-visited, unanswered, answered, review and
review-with-answer. Counters mirror the statuses, except that a question in
review-with-answer is also counted as answered.
"""
import logging
import time
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Callable, Dict, List, Optional

from testhall.models import Question, TestSchedule
from testhall.scoring import ScoreReport, option_index, score_answers
from testhall.timer import EXPIRED, CountdownTimer, TimerEvent
from testhall.timeutil import parse_duration_to_seconds, seconds_to_time

logger = logging.getLogger(__name__)


class QuestionStatus(str, Enum):
    NOT_VISITED = "not-visited"
    UNANSWERED = "unanswered"
    ANSWERED = "answered"
    REVIEW = "review"
    REVIEW_WITH_ANSWER = "review-with-answer"


class SessionClosedError(RuntimeError):
    """Raised when a submitted session is modified."""


@dataclass
class SubmissionOutcome:
    test_id: str
    answers: List[Optional[str]]
    report: ScoreReport
    time_taken: Dict[str, int]
    time_taken_seconds: int
    auto_submitted: bool
    submitted_at: str


class TestSession:
    """Manages a single attempt at a scheduled test."""

    __test__ = False

    def __init__(self, test: TestSchedule, questions: List[Question], clock: Callable[[], float] = time.monotonic):
        self.test = test
        self.questions = list(questions)
        self.duration_seconds = parse_duration_to_seconds(test.duration)
        self.timer = CountdownTimer(self.duration_seconds, clock=clock)

        self.statuses: List[QuestionStatus] = [QuestionStatus.NOT_VISITED] * len(self.questions)
        self.answers: List[Optional[str]] = [None] * len(self.questions)
        self.pending: Optional[str] = None
        self.counters: Dict[str, int] = {s.value: 0 for s in QuestionStatus}
        self.counters[QuestionStatus.NOT_VISITED.value] = len(self.questions)

        # Sections: subjects in order of first appearance
        self.sections: List[str] = []
        for q in self.questions:
            if q.subject not in self.sections:
                self.sections.append(q.subject)
        self.subject: Optional[str] = self.sections[0] if self.sections else None
        self.position = 0  # index inside the current section

        self.outcome: Optional[SubmissionOutcome] = None
        self.last_question_reached = False

    # ----- lifecycle -----

    def start(self):
        self.timer.start()
        self._visit_current()
        logger.info(f"Session started for test {self.test.id}: {len(self.questions)} questions, "
                    f"{self.duration_seconds}s")

    @property
    def submitted(self) -> bool:
        return self.outcome is not None

    def _ensure_open(self):
        if self.submitted:
            raise SessionClosedError(f"Test {self.test.id} has already been submitted")

    # ----- section / cursor helpers -----

    def section_indices(self, subject: Optional[str] = None) -> List[int]:
        """Global question indices belonging to a section (current one by default)."""
        subject = self.subject if subject is None else subject
        return [i for i, q in enumerate(self.questions) if q.subject == subject]

    @property
    def current_index(self) -> int:
        indices = self.section_indices()
        if not indices or self.position >= len(indices):
            return -1
        return indices[self.position]

    @property
    def current_question(self) -> Optional[Question]:
        idx = self.current_index
        return self.questions[idx] if idx != -1 else None

    @property
    def displayed_option(self) -> Optional[str]:
        """What the option picker should show: the pending choice, else the saved answer."""
        if self.pending is not None:
            return self.pending
        idx = self.current_index
        return self.answers[idx] if idx != -1 else None

    # ----- status tracking -----

    def update_status(self, index: int, new_status: QuestionStatus):
        if index < 0 or index >= len(self.questions):
            logger.error(f"Invalid question index: {index}")
            return
        old_status = self.statuses[index]
        if old_status == new_status:
            return

        self.statuses[index] = new_status
        self.counters[old_status.value] = max(0, self.counters[old_status.value] - 1)
        if old_status == QuestionStatus.REVIEW_WITH_ANSWER:
            self.counters[QuestionStatus.ANSWERED.value] = max(0, self.counters[QuestionStatus.ANSWERED.value] - 1)
        self.counters[new_status.value] += 1
        if new_status == QuestionStatus.REVIEW_WITH_ANSWER:
            self.counters[QuestionStatus.ANSWERED.value] += 1
        logger.debug(f"Question {index + 1} status {old_status.value} -> {new_status.value}")

    def _visit_current(self):
        idx = self.current_index
        if idx != -1 and self.statuses[idx] == QuestionStatus.NOT_VISITED:
            self.update_status(idx, QuestionStatus.UNANSWERED)

    def _move_to(self, subject: str, position: int):
        self._visit_current()
        self.pending = None
        self.subject = subject
        self.position = position
        self._visit_current()

    # ----- user actions -----

    def select_option(self, letter: str):
        """Buffer a choice; it only becomes the answer on save_and_next or submit."""
        self._ensure_open()
        question = self.current_question
        if question is None:
            logger.error("Cannot select option: no current question")
            return
        idx = option_index(letter)
        if idx < 0 or idx >= len(question.options):
            raise ValueError(f"Option {letter!r} does not exist for question {question.id}")
        self.pending = letter.strip().upper()

    def mark_for_review(self):
        self._ensure_open()
        idx = self.current_index
        if idx == -1:
            logger.error("Cannot mark for review: no current question")
            return
        if self.answers[idx]:
            self.update_status(idx, QuestionStatus.REVIEW_WITH_ANSWER)
        else:
            self.update_status(idx, QuestionStatus.REVIEW)

    def clear_selection(self):
        self._ensure_open()
        idx = self.current_index
        if idx == -1:
            logger.error("Cannot clear selection: no current question")
            return
        self.pending = None
        self.answers[idx] = None
        if self.statuses[idx] in (QuestionStatus.ANSWERED, QuestionStatus.REVIEW_WITH_ANSWER):
            self.update_status(idx, QuestionStatus.UNANSWERED)

    def _commit_pending(self):
        idx = self.current_index
        if self.pending is None or idx == -1:
            return False
        self.answers[idx] = self.pending
        self.pending = None
        if self.statuses[idx] == QuestionStatus.REVIEW:
            self.update_status(idx, QuestionStatus.REVIEW_WITH_ANSWER)
        else:
            self.update_status(idx, QuestionStatus.ANSWERED)
        return True

    def save_and_next(self) -> bool:
        """
        Commit the pending choice and advance. Moves into the next section after
        the last question of a section. Returns True when the last question of
        the last section was reached (the cursor stays put).
        """
        self._ensure_open()
        self._commit_pending()
        self._visit_current()

        indices = self.section_indices()
        if self.position < len(indices) - 1:
            self._move_to(self.subject, self.position + 1)
            return False

        section_pos = self.sections.index(self.subject) if self.subject in self.sections else -1
        if 0 <= section_pos < len(self.sections) - 1:
            next_subject = self.sections[section_pos + 1]
            logger.info(f"Moving to next section: {next_subject}")
            self._move_to(next_subject, 0)
            return False

        logger.info("Last question of the exam reached")
        self.pending = None
        self.last_question_reached = True
        return True

    def previous(self):
        self._ensure_open()
        if self.position > 0:
            self._move_to(self.subject, self.position - 1)
        else:
            self.pending = None

    def switch_subject(self, subject: str):
        self._ensure_open()
        if subject not in self.sections:
            raise ValueError(f"No questions for subject {subject!r}")
        if subject != self.subject:
            self._move_to(subject, 0)

    def jump_to(self, question_number: int):
        """Open a question by its 1-based number across the whole test."""
        self._ensure_open()
        if question_number < 1 or question_number > len(self.questions):
            raise ValueError(f"Question {question_number} not found")
        target = self.questions[question_number - 1]
        position = self.section_indices(target.subject).index(question_number - 1)
        self._move_to(target.subject, position)

    # ----- timer & submission -----

    def remaining_seconds(self) -> float:
        return self.timer.remaining_seconds()

    def tick(self) -> List[TimerEvent]:
        """Poll the timer; on expiry the test is submitted automatically (once)."""
        events = self.timer.poll()
        if any(e.kind == EXPIRED for e in events) and not self.submitted:
            logger.info(f"Time is up! Automatically submitting test {self.test.id}")
            self.submit(auto=True)
        return events

    def submit(self, auto: bool = False) -> SubmissionOutcome:
        """Score the attempt. Idempotent: a second call returns the first outcome."""
        if self.outcome is not None:
            return self.outcome

        self._commit_pending()
        self.timer.stop()
        taken_seconds = int(round(self.duration_seconds - self.timer.remaining_seconds()))
        report = score_answers(self.questions, self.answers)
        self.outcome = SubmissionOutcome(
            test_id=self.test.id,
            answers=list(self.answers),
            report=report,
            time_taken=seconds_to_time(taken_seconds),
            time_taken_seconds=max(0, taken_seconds),
            auto_submitted=auto,
            submitted_at=datetime.utcnow().isoformat(),
        )
        logger.info(f"Test {self.test.id} submitted{' automatically' if auto else ''}: "
                    f"score={report.score}/{report.total_score}, accuracy={report.accuracy}%")
        return self.outcome

    def get_session_summary(self) -> Dict:
        """Real-time summary for the status panel."""
        return {
            "test_id": self.test.id,
            "current_question": self.current_index + 1,
            "total_questions": len(self.questions),
            "counters": dict(self.counters),
            "time_remaining_sec": self.remaining_seconds(),
            "submitted": self.submitted,
        }

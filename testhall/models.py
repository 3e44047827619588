"""
Records for tests, questions, results and rankings.
Each record maps to a Supabase row via from_row / to_row (snake_case columns).
"""
from dataclasses import dataclass, field, asdict
from typing import Dict, List, Optional

from engine import DEFAULT_MARKS, DEFAULT_NEGATIVE_MARKS

ONLINE = "ONLINE"
OFFLINE = "OFFLINE"


@dataclass
class TestSchedule:
    id: str
    title: str
    instructor: str = ""
    date: str = ""
    time: str = ""
    duration: str = ""
    status: str = ONLINE
    participants: List[str] = field(default_factory=list)
    start_datetime: Optional[str] = None
    end_datetime: Optional[str] = None

    # Keeps pytest from collecting this class in test modules that import it.
    __test__ = False

    @classmethod
    def from_row(cls, row: Dict) -> "TestSchedule":
        return cls(
            id=str(row.get("id", "")),
            title=row.get("title") or "",
            instructor=row.get("instructor") or "",
            date=row.get("date") or "",
            time=row.get("time") or "",
            duration=row.get("duration") or "",
            status=row.get("status") or ONLINE,
            participants=list(row.get("participants") or []),
            start_datetime=row.get("start_datetime"),
            end_datetime=row.get("end_datetime"),
        )

    def to_row(self, include_id: bool = True) -> Dict:
        row = asdict(self)
        if not include_id:
            row.pop("id")
        return row


@dataclass
class Option:
    id: str
    text: str
    is_correct: bool = False
    image_url: Optional[str] = None

    @classmethod
    def from_row(cls, row: Dict) -> "Option":
        # test_options stores the client-side id in option_id
        return cls(
            id=str(row.get("option_id") or row.get("id") or ""),
            text=row.get("text") or "",
            is_correct=bool(row.get("is_correct")),
            image_url=row.get("image_url") or None,
        )


@dataclass
class Question:
    id: str
    text: str
    subject: str
    options: List[Option] = field(default_factory=list)
    image_url: Optional[str] = None
    solution: Optional[str] = None
    marks: Optional[float] = None
    negative_marks: Optional[float] = None

    @property
    def effective_marks(self) -> float:
        return self.marks if self.marks is not None else DEFAULT_MARKS

    @property
    def effective_negative_marks(self) -> float:
        return self.negative_marks if self.negative_marks is not None else DEFAULT_NEGATIVE_MARKS

    @classmethod
    def from_dict(cls, data: Dict) -> "Question":
        """Build from a cached/serialized dict (the shape written by to_dict)."""
        return cls(
            id=str(data.get("id", "")),
            text=data.get("text") or "",
            subject=str(data.get("subject") or ""),
            options=[Option.from_row(o) for o in data.get("options") or []],
            image_url=data.get("image_url") or None,
            solution=data.get("solution") or None,
            marks=data.get("marks"),
            negative_marks=data.get("negative_marks"),
        )

    def to_dict(self) -> Dict:
        return asdict(self)


@dataclass
class TestResult:
    user_id: str
    test_id: str
    score: float
    total_score: float
    accuracy: float
    time_taken_seconds: int
    correct_answers: int
    incorrect_answers: int
    unattempted_questions: int
    answers: Dict[str, Optional[str]] = field(default_factory=dict)
    subject_performance: Dict[str, Dict[str, int]] = field(default_factory=dict)
    submitted_at: Optional[str] = None
    id: Optional[str] = None

    __test__ = False

    @classmethod
    def from_row(cls, row: Dict) -> "TestResult":
        return cls(
            id=row.get("id"),
            user_id=str(row.get("user_id", "")),
            test_id=str(row.get("test_id", "")),
            score=row.get("score") or 0,
            total_score=row.get("total_score") or 0,
            accuracy=row.get("accuracy") or 0,
            time_taken_seconds=row.get("time_taken_seconds") or 0,
            correct_answers=row.get("correct_answers") or 0,
            incorrect_answers=row.get("incorrect_answers") or 0,
            unattempted_questions=row.get("unattempted_questions") or 0,
            answers=row.get("answers") or {},
            subject_performance=row.get("subject_performance") or {},
            submitted_at=row.get("submitted_at"),
        )

    def to_row(self) -> Dict:
        row = asdict(self)
        row.pop("id")
        return row


@dataclass
class Ranking:
    user_id: str
    test_id: str
    batch_rank: int = 0
    batch_total: int = 0
    institute_rank: int = 0
    institute_total: int = 0
    percentile: float = 0.0

    @classmethod
    def from_row(cls, row: Dict) -> "Ranking":
        return cls(
            user_id=str(row.get("user_id", "")),
            test_id=str(row.get("test_id", "")),
            batch_rank=row.get("batch_rank") or 0,
            batch_total=row.get("batch_total") or 0,
            institute_rank=row.get("institute_rank") or 0,
            institute_total=row.get("institute_total") or 0,
            percentile=row.get("percentile") or 0.0,
        )

    def to_row(self) -> Dict:
        return asdict(self)


@dataclass
class Group:
    """A batch or an institute."""
    id: str
    name: str
    description: Optional[str] = None

    @classmethod
    def from_row(cls, row: Dict) -> "Group":
        return cls(id=str(row.get("id", "")), name=row.get("name") or "", description=row.get("description"))


@dataclass
class LeaderboardEntry:
    user_id: str
    display_name: str
    score: float
    rank: int
    time_taken_seconds: int


@dataclass
class TestPerformanceSummary:
    test_id: str
    test_title: str
    score: float
    total_score: float
    accuracy: float
    time_taken_seconds: int
    submitted_at: Optional[str] = None
    percentile: Optional[float] = None

    __test__ = False


@dataclass
class UserPerformanceHistory:
    user_id: str
    display_name: str
    test_results: List[TestPerformanceSummary] = field(default_factory=list)
    average_score: float = 0.0
    average_percentile: float = 0.0
    total_tests_taken: int = 0

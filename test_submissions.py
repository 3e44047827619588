"""Submission persistence: local record, completion flag, backend result."""
from conftest import make_question
from testhall.models import TestSchedule
from testhall.session import TestSession
from testhall.submissions import (
    completed_tests,
    get_subject_performance,
    get_test_submission,
    get_test_time_taken,
    is_test_completed,
    save_outcome,
    save_test_submission,
)

BREAKDOWN = {"physics": {"correct": 1, "total": 2, "attempted": 2}}


def test_local_record_and_completion(store):
    save_test_submission(store, "u1", "t1", ["A", None], {"minutes": 5, "seconds": 3}, score=3, total_score=8,
                         subject_performance=BREAKDOWN)
    submission = get_test_submission(store, "u1", "t1")
    assert submission["answers"] == ["A", None]
    assert submission["time_taken_seconds"] == 303
    assert submission["score"] == 3
    assert submission["user_id"] == "u1"
    assert get_test_time_taken(store, "u1", "t1") == {"minutes": 5, "seconds": 3}
    assert get_subject_performance(store, "u1", "t1") == BREAKDOWN
    assert is_test_completed(store, "u1", "t1")
    assert not is_test_completed(store, "u1", "t2")


def test_completion_is_per_user(store):
    save_test_submission(store, "alice", "t1", ["A"], {"minutes": 1, "seconds": 0}, score=4, total_score=4)
    assert is_test_completed(store, "alice", "t1")
    assert not is_test_completed(store, "bob", "t1")
    assert get_test_submission(store, "bob", "t1") is None
    assert get_test_time_taken(store, "bob", "t1") is None
    assert completed_tests(store, "bob") == []


def test_sessions_without_user_share_the_anonymous_record(store):
    save_test_submission(store, None, "t1", ["C"], {"minutes": 0, "seconds": 9})
    assert is_test_completed(store, "", "t1")
    assert get_test_submission(store, None, "t1")["answers"] == ["C"]
    assert not is_test_completed(store, "u1", "t1")


def test_completion_recorded_once(store):
    save_test_submission(store, "u1", "t1", [], {"minutes": 0, "seconds": 1})
    save_test_submission(store, "u1", "t1", [], {"minutes": 0, "seconds": 2})
    assert completed_tests(store, "u1") == ["t1"]


def test_submission_rebuilt_from_pieces(store):
    store.set("test_u1_t1_answers", ["B"])
    store.set("test_u1_t1_time_taken", {"minutes": 1, "seconds": 0})
    store.set("test_u1_t1_time_taken_seconds", 60)
    submission = get_test_submission(store, "u1", "t1")
    assert submission["answers"] == ["B"]
    assert submission["time_taken_seconds"] == 60


def test_time_taken_from_seconds_only(store):
    store.set("test_u1_t1_time_taken_seconds", 125)
    assert get_test_time_taken(store, "u1", "t1") == {"minutes": 2, "seconds": 5}
    assert get_test_time_taken(store, "u1", "t2") is None


def test_backend_result_written_with_user(store, db):
    save_test_submission(store, "u1", "t1", ["A", "B", None], {"minutes": 2, "seconds": 0}, score=3, total_score=12,
                         subject_performance={"physics": {"correct": 1, "total": 3, "attempted": 2}}, db=db)
    result = db.get_test_result("u1", "t1")
    assert result.score == 3
    assert result.accuracy == 50
    assert result.correct_answers == 1
    assert result.incorrect_answers == 1
    assert result.unattempted_questions == 1
    assert result.time_taken_seconds == 120
    assert result.answers == {"0": "A", "1": "B", "2": None}


def test_no_backend_row_without_user_or_score(store, db, fake_supabase):
    save_test_submission(store, None, "t1", ["A"], {"minutes": 1, "seconds": 0}, score=4, total_score=4, db=db)
    save_test_submission(store, "u1", "t1", ["A"], {"minutes": 1, "seconds": 0}, db=db)
    assert fake_supabase.tables.get("test_results", []) == []


def test_save_outcome_from_session(store, db, clock):
    test = TestSchedule(id="t9", title="Mock", duration="5 minutes")
    session = TestSession(test, [make_question(1, "physics"), make_question(2, "physics")], clock=clock)
    session.start()
    session.select_option("A")
    session.save_and_next()
    clock.advance(42)
    outcome = session.submit()

    save_outcome(store, outcome, user_id="u1", db=db)
    assert is_test_completed(store, "u1", "t9")
    assert get_test_time_taken(store, "u1", "t9") == {"minutes": 0, "seconds": 42}
    assert db.get_test_result("u1", "t9").score == 4


def test_save_outcome_counts_questions_without_subject(store, db, clock):
    test = TestSchedule(id="t9", title="Mock", duration="5 minutes")
    session = TestSession(test, [make_question(1, ""), make_question(2, "physics")], clock=clock)
    session.start()
    session.select_option("A")
    session.save_and_next()
    session.select_option("A")
    session.save_and_next()
    outcome = session.submit()
    assert outcome.report.correct_answers == 2

    save_outcome(store, outcome, user_id="u1", db=db)
    result = db.get_test_result("u1", "t9")
    assert result.correct_answers == 2
    assert result.incorrect_answers == 0
    assert result.accuracy == 100
    assert result.subject_performance == {"physics": {"correct": 1, "total": 1, "attempted": 1}}

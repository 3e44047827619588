"""Test catalog: backend first, offline fallback otherwise."""
import pytest

from conftest import make_question
from testhall import notify
from testhall.catalog import SETUP_MESSAGE, TestCatalog, questions_key
from testhall.local_store import LocalStore
from testhall.models import TestSchedule


@pytest.fixture
def catalog(db, store):
    return TestCatalog(db, store)


@pytest.fixture
def offline(db, fake_supabase, store):
    fake_supabase.missing_tables.update({"tests", "test_questions", "test_options"})
    return TestCatalog(db, store)


def test_fetch_tests_from_backend(catalog, db):
    db.create_test(TestSchedule(id="", title="Live test"))
    assert [t.title for t in catalog.fetch_tests()] == ["Live test"]


def test_missing_tables_fall_back_to_builtin_tests(offline):
    tests = offline.fetch_tests()
    assert [t.id for t in tests] == ["1", "2", "3"]
    assert tests[0].title == "JEE Main Test Series - 6 Test Paper (Full Syllabus Test)"


def test_setup_message_shown_once(offline):
    offline.fetch_tests()
    offline.fetch_tests()
    assert SETUP_MESSAGE in notify._shown_once


def test_no_database_at_all(store):
    catalog = TestCatalog(None, store)
    assert len(catalog.fetch_tests()) == 3


def test_query_failure_falls_back(catalog, db, monkeypatch):
    def boom():
        raise RuntimeError("connection reset")

    monkeypatch.setattr(db, "fetch_tests", boom)
    assert [t.id for t in catalog.fetch_tests()] == ["1", "2", "3"]


def test_offline_create_update_delete(offline):
    created = offline.create_test(TestSchedule(id="", title="Offline test"))
    assert created.id == "4"
    assert offline.find_test("4").title == "Offline test"

    created.title = "Renamed"
    assert offline.update_test(created)
    assert offline.find_test("4").title == "Renamed"

    assert offline.delete_test("4")
    assert not offline.delete_test("4")
    assert not offline.update_test(TestSchedule(id="99", title="Ghost"))


def test_find_unknown_test_returns_mock_schedule(offline):
    test = offline.find_test("abc")
    assert test.id == "abc"
    assert test.title == "JEE Mock Test - 1"
    assert test.duration == "3 hours"


def test_questions_offline_without_cache_are_mocked(offline):
    questions = offline.fetch_test_questions("1")
    assert len(questions) == 25
    assert {q.subject for q in questions} == {"1", "2", "3", "4", "5", "6"}
    assert all(len(q.options) == 4 for q in questions)
    assert questions[5].options[1].is_correct
    assert questions[0].marks == 4 and questions[0].negative_marks == 1


def test_questions_offline_are_cached_locally(offline, store):
    questions = [make_question(1, "physics", correct=1)]
    assert offline.save_test_questions("1", questions)
    assert store.has(questions_key("1"))
    fetched = offline.fetch_test_questions("1")
    assert [q.id for q in fetched] == ["q-1"]
    assert fetched[0].options[1].is_correct


def test_empty_cached_list_means_all_deleted(offline, store):
    store.set(questions_key("1"), [])
    assert offline.fetch_test_questions("1") == []


def test_saving_no_questions_removes_cache(offline, store):
    offline.save_test_questions("1", [make_question(1, "physics")])
    assert offline.save_test_questions("1", [])
    assert not store.has(questions_key("1"))


def test_offline_save_too_large(db, fake_supabase, tmp_path):
    fake_supabase.missing_tables.add("tests")
    catalog = TestCatalog(db, LocalStore(root=tmp_path, limit_mb=0.0001))
    questions = [make_question(i, "physics") for i in range(1, 20)]
    assert not catalog.save_test_questions("1", questions)


def test_questions_saved_to_backend_replace_previous(catalog, db):
    catalog.save_test_questions("t1", [make_question(1, "physics"), make_question(2, "physics")])
    catalog.save_test_questions("t1", [make_question(3, "chemistry")])
    assert [q.id for q in catalog.fetch_test_questions("t1")] == ["q-3"]


def test_backend_write_failure_caches_locally(catalog, fake_supabase, store):
    fake_supabase.failing_tables.add("test_questions")
    assert catalog.save_test_questions("t1", [make_question(1, "physics")])
    assert store.has(questions_key("t1"))
    assert [q.id for q in catalog.fetch_test_questions("t1")] == ["q-1"]


def test_failed_resave_serves_the_new_set(catalog, db, monkeypatch):
    catalog.save_test_questions("t1", [make_question(1, "physics")])

    def broken_insert(test_id, questions):
        raise RuntimeError("insert rejected")

    monkeypatch.setattr(db, "insert_questions", broken_insert)
    assert catalog.save_test_questions("t1", [make_question(2, "physics"), make_question(3, "chemistry")])
    assert [q.id for q in catalog.fetch_test_questions("t1")] == ["q-2", "q-3"]
    # The backend still holds the previous set
    assert [q.id for q in db.fetch_questions("t1")] == ["q-1"]


def test_successful_backend_save_clears_local_copy(catalog, store):
    store.set(questions_key("t1"), [make_question(1, "physics").to_dict()])
    assert catalog.save_test_questions("t1", [make_question(2, "physics")])
    assert not store.has(questions_key("t1"))
    assert [q.id for q in catalog.fetch_test_questions("t1")] == ["q-2"]

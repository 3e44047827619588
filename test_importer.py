"""Test/question import from JSON files."""
import json

from importer import load_tests, parse_question, run_import
from init_db import schema_statements


def _write(tmp_path, name, content):
    path = tmp_path / name
    path.write_text(content, encoding="utf-8")
    return path


SAMPLE = {
    "title": "Chemistry Weekly",
    "instructor": "LAKSHYA",
    "date": "2025/01/09",
    "time": "07:30 PM - 08:30 PM",
    "duration": "1 hour",
    "status": "offline",
    "questions": [
        {"text": "Noble gas?", "subject": "chemistry", "options": ["He", "Na", "Cl", "K"], "correct_option": 0},
        {"text": "Halogen?", "subject": "chemistry",
         "options": [{"text": "Cl", "is_correct": True}, {"text": "Ne"}], "marks": 2},
        {"text": "Broken", "options": ["only one"]},
    ],
}


def test_parse_question_with_string_options():
    question = parse_question(SAMPLE["questions"][0], 1)
    assert [o.id for o in question.options] == ["q-1-a", "q-1-b", "q-1-c", "q-1-d"]
    assert question.options[0].is_correct
    assert question.marks == 4 and question.negative_marks == 1


def test_invalid_question_is_skipped():
    assert parse_question(SAMPLE["questions"][2], 3) is None


def test_load_json_and_jsonl(tmp_path):
    json_path = _write(tmp_path, "tests.json", json.dumps([SAMPLE, {"title": ""}]))
    jsonl_path = _write(tmp_path, "tests.jsonl", json.dumps(SAMPLE) + "\n\n")
    for path in (json_path, jsonl_path):
        tests = list(load_tests(path))
        assert len(tests) == 1
        test, questions = tests[0]
        assert test.status == "OFFLINE"
        assert len(questions) == 2
        assert questions[1].marks == 2


def test_run_import_writes_tests_and_questions(tmp_path, db, fake_supabase):
    path = _write(tmp_path, "tests.json", json.dumps(SAMPLE))
    assert run_import(path, db=db) == 1
    tests = db.fetch_tests()
    assert [t.title for t in tests] == ["Chemistry Weekly"]
    assert len(db.fetch_questions(tests[0].id)) == 2


def test_dry_run_writes_nothing(tmp_path, db, fake_supabase):
    path = _write(tmp_path, "tests.json", json.dumps(SAMPLE))
    assert run_import(path, dry_run=True, db=db) == 1
    assert fake_supabase.calls == []


def test_schema_covers_all_tables():
    sql = " ".join(schema_statements())
    for table in ("tests", "test_questions", "test_options", "test_results", "rankings", "batches",
                  "institutes", "user_batches", "user_institutes", "profiles"):
        assert f"CREATE TABLE IF NOT EXISTS {table} (" in sql

"""Import tests with their questions from .json (a list) or .jsonl (one test per line) into Supabase."""
import json
import argparse
import logging
from pathlib import Path

from engine import DEFAULT_MARKS, DEFAULT_NEGATIVE_MARKS
from testhall.database import DatabaseClient
from testhall.models import ONLINE, OFFLINE, Option, Question, TestSchedule

logger = logging.getLogger(__name__)


def parse_question(raw: dict, number: int) -> Question | None:
    """One question dict -> Question. Returns None if invalid/skip."""
    text = raw.get("text") or raw.get("question_text") or ""
    options = raw.get("options")
    if not text or not isinstance(options, list) or len(options) < 2:
        return None

    # Options are either strings (with correct_option index) or dicts with is_correct
    correct_option = raw.get("correct_option")
    parsed = []
    for j, opt in enumerate(options[:26]):
        option_id = f"q-{number}-{chr(ord('a') + j)}"
        if isinstance(opt, dict):
            parsed.append(Option(
                id=str(opt.get("id") or option_id),
                text=opt.get("text") or "",
                is_correct=bool(opt.get("is_correct")),
                image_url=opt.get("image_url"),
            ))
        else:
            parsed.append(Option(id=option_id, text=str(opt), is_correct=correct_option == j))

    return Question(
        id=str(raw.get("id") or f"q-{number}"),
        text=text,
        subject=str(raw.get("subject") or "gk"),
        options=parsed,
        image_url=raw.get("image_url"),
        solution=raw.get("solution"),
        marks=raw.get("marks", DEFAULT_MARKS),
        negative_marks=raw.get("negative_marks", DEFAULT_NEGATIVE_MARKS),
    )


def parse_test(raw: dict) -> tuple[TestSchedule, list[Question]] | None:
    """One test dict -> (schedule, questions). Returns None without a title."""
    title = (raw.get("title") or "").strip()
    if not title:
        return None
    status = (raw.get("status") or ONLINE).upper()
    test = TestSchedule(
        id="",
        title=title,
        instructor=raw.get("instructor") or "",
        date=raw.get("date") or "",
        time=raw.get("time") or "",
        duration=raw.get("duration") or "",
        status=status if status in (ONLINE, OFFLINE) else ONLINE,
        participants=list(raw.get("participants") or []),
        start_datetime=raw.get("start_datetime"),
        end_datetime=raw.get("end_datetime"),
    )
    questions = []
    for i, q in enumerate(raw.get("questions") or [], 1):
        question = parse_question(q, i)
        if question is None:
            logger.warning(f"Skipping invalid question {i} in {title!r}")
            continue
        questions.append(question)
    return test, questions


def load_tests(path: Path):
    """Read .json or .jsonl and yield (schedule, questions) pairs."""
    with path.open("r", encoding="utf-8") as f:
        if path.suffix == ".jsonl":
            raws = [json.loads(line) for line in f if line.strip()]
        else:
            data = json.load(f)
            raws = data if isinstance(data, list) else [data]
    for raw in raws:
        parsed = parse_test(raw)
        if parsed:
            yield parsed


def run_import(path: Path, dry_run: bool = False, db: DatabaseClient | None = None) -> int:
    if not path.exists():
        raise FileNotFoundError(f"File not found: {path}")
    tests = list(load_tests(path))
    if dry_run:
        print(f"Dry run: would import {len(tests)} tests from {path}")
        for test, questions in tests:
            print(f"  {test.title}: {len(questions)} questions")
        return len(tests)

    if db is None:
        from db import get_supabase_uncached
        db = DatabaseClient(get_supabase_uncached())
    for test, questions in tests:
        created = db.create_test(test)
        db.insert_questions(created.id, questions)
        print(f"Imported {created.title} ({len(questions)} questions)")
    print(f"Imported {len(tests)} tests from {path}")
    return len(tests)


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO, format="%(levelname)s: %(message)s")
    parser = argparse.ArgumentParser(description="Import tests and questions into Supabase.")
    parser.add_argument("file", help="Path to .json or .jsonl")
    parser.add_argument("--dry-run", action="store_true", help="Parse only, do not write")
    args = parser.parse_args()
    run_import(Path(args.file), dry_run=args.dry_run)

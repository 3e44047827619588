"""Subjects: defaults, local CRUD and display names."""
import logging
from dataclasses import asdict, dataclass
from typing import Dict, List, Optional

from testhall.local_store import LocalStore

logger = logging.getLogger(__name__)

SUBJECTS_KEY = "subjects"


class SubjectNotFoundError(KeyError):
    pass


@dataclass
class Subject:
    id: str
    name: str
    code: str = ""
    category: str = ""
    slug: str = ""


DEFAULT_SUBJECTS = [
    Subject("1", "General Intelligence & Reasoning", "GIR101", "Competitive Exams", "general-intelligence-reasoning"),
    Subject("2", "General Awareness", "GA101", "Competitive Exams", "general-awareness"),
    Subject("3", "Quantitative Aptitude", "QA101", "Competitive Exams", "quantitative-aptitude"),
    Subject("4", "English Comprehension", "EC101", "Competitive Exams", "english-comprehension"),
    Subject("5", "Quantitative Aptitude & Reasoning", "QAR101", "Competitive Exams", "quantitative-aptitude-reasoning"),
    Subject("6", "General Awareness & English Comprehension", "GAEC101", "Competitive Exams",
            "general-awareness-english-comprehension"),
]

# Ids/slugs that always resolve, even when the subject list doesn't contain them
KNOWN_NAMES = {s.id: s.name for s in DEFAULT_SUBJECTS}
KNOWN_NAMES.update({s.slug: s.name for s in DEFAULT_SUBJECTS})
KNOWN_NAMES["gk"] = "GK"


def _load(store: LocalStore) -> List[Subject]:
    rows = store.get(SUBJECTS_KEY)
    if rows is None:
        return list(DEFAULT_SUBJECTS)
    return [Subject(**row) for row in rows]


def _save(store: LocalStore, subjects: List[Subject]):
    store.set(SUBJECTS_KEY, [asdict(s) for s in subjects])


def fetch_subjects(store: LocalStore) -> List[Subject]:
    """Stored subjects; seeds the store with the defaults on first use."""
    if not store.has(SUBJECTS_KEY):
        _save(store, DEFAULT_SUBJECTS)
        return list(DEFAULT_SUBJECTS)
    return _load(store)


def add_subject(store: LocalStore, subject: Subject) -> Subject:
    subjects = _load(store)
    subjects.append(subject)
    _save(store, subjects)
    return subject


def update_subject(store: LocalStore, subject: Subject) -> Subject:
    subjects = _load(store)
    for i, existing in enumerate(subjects):
        if existing.id == subject.id:
            subjects[i] = subject
            _save(store, subjects)
            return subject
    raise SubjectNotFoundError(subject.id)


def delete_subject(store: LocalStore, subject_id: str):
    subjects = _load(store)
    remaining = [s for s in subjects if s.id != subject_id]
    if len(remaining) == len(subjects):
        raise SubjectNotFoundError(subject_id)
    _save(store, remaining)


def get_subject_display_name(subject_id: str, subjects: Optional[List[Subject]] = None) -> str:
    if subject_id in KNOWN_NAMES:
        return KNOWN_NAMES[subject_id]
    for s in subjects or []:
        if s.id == subject_id or s.slug == subject_id:
            return s.name
    return subject_id[:1].upper() + subject_id[1:]


def subject_name_map(subjects: List[Subject]) -> Dict[str, str]:
    return {s.id: s.name for s in subjects}

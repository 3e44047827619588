"""Subject list and display names."""
import pytest

from testhall.subjects import (
    DEFAULT_SUBJECTS,
    Subject,
    SubjectNotFoundError,
    add_subject,
    delete_subject,
    fetch_subjects,
    get_subject_display_name,
    update_subject,
)


def test_defaults_are_seeded_on_first_read(store):
    subjects = fetch_subjects(store)
    assert [s.id for s in subjects] == ["1", "2", "3", "4", "5", "6"]
    assert store.has("subjects")


def test_add_update_delete(store):
    fetch_subjects(store)
    add_subject(store, Subject("7", "Physics", "PHY101", "Science", "physics"))
    assert fetch_subjects(store)[-1].name == "Physics"

    update_subject(store, Subject("7", "Physics I", "PHY101", "Science", "physics"))
    assert fetch_subjects(store)[-1].name == "Physics I"

    delete_subject(store, "7")
    assert len(fetch_subjects(store)) == len(DEFAULT_SUBJECTS)


def test_unknown_subject_raises(store):
    with pytest.raises(SubjectNotFoundError):
        update_subject(store, Subject("99", "Nope"))
    with pytest.raises(SubjectNotFoundError):
        delete_subject(store, "99")


@pytest.mark.parametrize(
    "subject_id, expected",
    [
        ("1", "General Intelligence & Reasoning"),
        ("quantitative-aptitude", "Quantitative Aptitude"),
        ("gk", "GK"),
        ("physics", "Physics"),
    ],
)
def test_display_name(subject_id, expected):
    assert get_subject_display_name(subject_id) == expected


def test_display_name_from_subject_list():
    subjects = [Subject("abc", "Organic Chemistry", slug="organic-chemistry")]
    assert get_subject_display_name("abc", subjects) == "Organic Chemistry"
    assert get_subject_display_name("organic-chemistry", subjects) == "Organic Chemistry"

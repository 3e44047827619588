"""TestHall: scheduled tests, timed exam sessions, leaderboards and performance."""
import sys
from pathlib import Path

# Ensure project root is in path
project_root = Path(__file__).resolve().parent
if str(project_root) not in sys.path:
    sys.path.insert(0, str(project_root))

import streamlit as st

from db import default_user_id, get_catalog, get_database, get_store
from engine import DEFAULT_MARKS, DEFAULT_NEGATIVE_MARKS, LEADERBOARD_LIMIT
from testhall.availability import check_availability
from testhall.ranking import rank_messages
from testhall.scoring import option_letter
from testhall.session import QuestionStatus, TestSession
from testhall.subjects import fetch_subjects, get_subject_display_name
from testhall.submissions import get_test_submission, is_test_completed, save_outcome
from testhall.timer import EXPIRED, EXPIRED_MESSAGE
from testhall.timeutil import format_clock, format_time

PAGES = ["Tests", "Take Test", "Leaderboard", "My Performance"]

STATUS_ICONS = {
    QuestionStatus.NOT_VISITED: "⬜",
    QuestionStatus.UNANSWERED: "🟥",
    QuestionStatus.ANSWERED: "🟩",
    QuestionStatus.REVIEW: "🟪",
    QuestionStatus.REVIEW_WITH_ANSWER: "🟣",
}
STATUS_LABELS = {
    QuestionStatus.NOT_VISITED: "Not visited",
    QuestionStatus.UNANSWERED: "Not answered",
    QuestionStatus.ANSWERED: "Answered",
    QuestionStatus.REVIEW: "Marked for review",
    QuestionStatus.REVIEW_WITH_ANSWER: "Answered & marked for review",
}

st.set_page_config(page_title="TestHall", layout="wide")
st.sidebar.title("TestHall")
# Allow URL to open a specific page (e.g. after "Start test")
default_page = st.query_params.get("page", "Tests")
if default_page not in PAGES:
    default_page = "Tests"
page = st.sidebar.radio("Navigate", PAGES, index=PAGES.index(default_page), label_visibility="collapsed")
user_id = st.sidebar.text_input("User ID", value=st.session_state.get("user_id", default_user_id()))
st.session_state["user_id"] = user_id

catalog = get_catalog()
store = get_store()
db = get_database()
subjects = fetch_subjects(store)


def _open_test(test_id: str):
    st.query_params["page"] = "Take Test"
    st.query_params["test_id"] = test_id


def _test_picker(label: str, key: str):
    tests = catalog.fetch_tests()
    if not tests:
        st.info("No tests scheduled.")
        st.stop()
    ids = [t.id for t in tests]
    wanted = st.query_params.get("test_id")
    index = ids.index(wanted) if wanted in ids else 0
    return st.selectbox(label, tests, index=index, format_func=lambda t: t.title, key=key)


# ----- Tests -----
if page == "Tests":
    st.header("Scheduled tests")
    search = st.text_input("Search tests", placeholder="Title or instructor")
    tests = catalog.fetch_tests()
    if search:
        needle = search.lower()
        tests = [t for t in tests if needle in t.title.lower() or needle in t.instructor.lower()]
    if not tests:
        st.info("No tests match your search.")

    for test in tests:
        availability = check_availability(test, strict=True)
        completed = is_test_completed(store, user_id, test.id)
        with st.container(border=True):
            col1, col2 = st.columns([3, 1])
            with col1:
                st.subheader(test.title)
                st.caption(f"{test.instructor} · {test.date} · {test.time} · {test.duration} · {test.status}")
                if test.participants:
                    st.caption(", ".join(test.participants))
                if availability.time_remaining:
                    st.caption(f"Starts in: {availability.time_remaining}")
                elif availability.message:
                    st.caption(availability.message)
            with col2:
                if completed:
                    st.success("Completed")
                elif availability.is_available:
                    st.button("Start test", key=f"start_{test.id}", type="primary",
                              on_click=_open_test, args=(test.id,))
                else:
                    st.button(availability.status.capitalize(), key=f"start_{test.id}", disabled=True)

# ----- Take Test -----
elif page == "Take Test":
    test = _test_picker("Test", key="take_test_pick")
    st.header(test.title)

    exam: TestSession = st.session_state.get("exam")
    if exam is not None and exam.test.id != test.id:
        exam = None

    if exam is None:
        if is_test_completed(store, user_id, test.id):
            submission = get_test_submission(store, user_id, test.id) or {}
            st.success("You have already completed this test.")
            col1, col2 = st.columns(2)
            col1.metric("Score", f"{submission.get('score', 0)} / {submission.get('total_score', 0)}")
            col2.metric("Time taken", format_time(submission.get("time_taken") or {"minutes": 0, "seconds": 0}))
            st.stop()

        availability = check_availability(test)
        if not availability.is_available:
            st.warning(availability.message)
            st.stop()

        st.caption(f"Duration: {test.duration} · Default marking: correct +{DEFAULT_MARKS}, "
                   f"wrong -{DEFAULT_NEGATIVE_MARKS}, unattempted 0")
        if st.button("Start exam", type="primary"):
            try:
                questions = catalog.fetch_test_questions(test.id)
            except Exception as e:
                st.error(f"Failed to load questions: {e}")
                st.stop()
            if not questions:
                st.warning("This test has no questions yet.")
                st.stop()
            exam = TestSession(test, questions)
            exam.start()
            st.session_state["exam"] = exam
            st.session_state["exam_saved"] = False
            st.session_state["exam_nonce"] = 0
            st.rerun()
        st.stop()

    def _finish():
        if not st.session_state.get("exam_saved"):
            outcome = exam.submit()
            save_outcome(store, outcome, user_id=user_id or None, db=db)
            if db is not None and user_id:
                db.recalculate_test_rankings(test.id)
            st.session_state["exam_saved"] = True

    if exam.submitted:
        _finish()
        report = exam.outcome.report
        if exam.outcome.auto_submitted:
            st.info(EXPIRED_MESSAGE)
        st.success("Test submitted.")
        col1, col2, col3, col4 = st.columns(4)
        col1.metric("Score", f"{report.score} / {report.total_score}")
        col2.metric("Accuracy", f"{report.accuracy}%")
        col3.metric("Correct / Wrong", f"{report.correct_answers} / {report.incorrect_answers}")
        col4.metric("Time taken", format_time(exam.outcome.time_taken))
        st.subheader("Subject-wise")
        for subject, perf in report.subject_performance.items():
            st.write(f"**{get_subject_display_name(subject, subjects)}**: "
                     f"{perf['correct']}/{perf['total']} correct, {perf['attempted']} attempted")
        if st.button("Close"):
            del st.session_state["exam"]
            st.rerun()
        st.stop()

    @st.fragment(run_every=1)
    def timer_panel():
        for event in exam.tick():
            st.toast(event.message, icon="⏰")
            if event.kind == EXPIRED:
                st.rerun(scope="app")
        st.metric("Time left", format_clock(exam.remaining_seconds()))

    def _act(action, *args):
        result = action(*args)
        st.session_state["exam_nonce"] += 1
        return result

    def _save_and_next():
        if _act(exam.save_and_next):
            st.session_state["exam_end_reached"] = True

    def _pick(key):
        letter = st.session_state.get(key)
        if letter:
            exam.select_option(letter)

    with st.sidebar:
        timer_panel()
        summary = exam.get_session_summary()
        for status in QuestionStatus:
            st.caption(f"{STATUS_ICONS[status]} {STATUS_LABELS[status]}: {summary['counters'][status.value]}")
        cols = st.columns(5)
        for i, status in enumerate(exam.statuses):
            cols[i % 5].button(f"{STATUS_ICONS[status]}{i + 1}", key=f"jump_{i}",
                               on_click=_act, args=(exam.jump_to, i + 1))
        st.button("Submit test", type="primary", on_click=exam.submit)

    section = st.radio(
        "Section",
        exam.sections,
        index=exam.sections.index(exam.subject),
        format_func=lambda s: get_subject_display_name(s, subjects),
        horizontal=True,
        key=f"section_{st.session_state['exam_nonce']}",
    )
    if section != exam.subject:
        _act(exam.switch_subject, section)
        st.rerun()

    idx = exam.current_index
    question = exam.current_question
    st.subheader(f"Question {idx + 1} of {len(exam.questions)}")
    st.write(question.text)
    if question.image_url:
        st.image(question.image_url)

    letters = [option_letter(i) for i in range(len(question.options))]
    shown = exam.displayed_option
    option_key = f"opt_{idx}_{st.session_state['exam_nonce']}"
    st.radio(
        "Choose one:",
        letters,
        index=letters.index(shown) if shown in letters else None,
        format_func=lambda letter: f"{letter}. {question.options[letters.index(letter)].text}",
        key=option_key,
        on_change=_pick,
        args=(option_key,),
    )
    for letter, option in zip(letters, question.options):
        if option.image_url:
            st.image(option.image_url, caption=letter, width=200)

    if st.session_state.pop("exam_end_reached", False):
        st.info("You have reached the last question. Review your answers or submit the test.")

    col1, col2, col3, col4 = st.columns(4)
    col1.button("Previous", on_click=_act, args=(exam.previous,))
    col2.button("Mark for review", on_click=_act, args=(exam.mark_for_review,))
    col3.button("Clear", on_click=_act, args=(exam.clear_selection,))
    col4.button("Save & next", type="primary", on_click=_save_and_next)

# ----- Leaderboard -----
elif page == "Leaderboard":
    st.header("Leaderboard")
    if db is None:
        st.warning("Leaderboards need a database. Set SUPABASE_URL and SUPABASE_KEY in .env.")
        st.stop()
    test = _test_picker("Test", key="leaderboard_pick")

    if user_id:
        ranking = db.get_ranking(user_id, test.id)
        if ranking:
            col1, col2, col3 = st.columns(3)
            col1.metric("Batch rank", f"{ranking.batch_rank} / {ranking.batch_total}" if ranking.batch_total else "-")
            col2.metric("Institute rank",
                        f"{ranking.institute_rank} / {ranking.institute_total}" if ranking.institute_total else "-")
            col3.metric("Percentile", f"{ranking.percentile:.2f}")
            for message in rank_messages(ranking):
                st.success(message)

    def _show(entries):
        if not entries:
            st.info("No results yet.")
            return
        st.dataframe(
            [
                {
                    "Rank": e.rank,
                    "Name": e.display_name,
                    "Score": e.score,
                    "Time": format_clock(e.time_taken_seconds),
                }
                for e in entries
            ],
            hide_index=True,
            use_container_width=True,
        )

    overall_tab, batch_tab, institute_tab = st.tabs(["Overall", "Batch", "Institute"])
    with overall_tab:
        _show(db.get_test_leaderboard(test.id, limit=LEADERBOARD_LIMIT))
    with batch_tab:
        batch = db.get_user_batch(user_id) if user_id else None
        if batch:
            st.caption(batch.name)
            _show(db.get_batch_leaderboard(test.id, batch.id, limit=LEADERBOARD_LIMIT))
        else:
            st.info("You are not assigned to a batch.")
    with institute_tab:
        institute = db.get_user_institute(user_id) if user_id else None
        if institute:
            st.caption(institute.name)
            _show(db.get_institute_leaderboard(test.id, institute.id, limit=LEADERBOARD_LIMIT))
        else:
            st.info("You are not assigned to an institute.")

# ----- My Performance -----
elif page == "My Performance":
    st.header("My Performance")
    if db is None or not user_id:
        st.warning("Enter your user ID and configure Supabase to see your history.")
        st.stop()

    history = db.get_user_performance_history(user_id)
    if not history or not history.total_tests_taken:
        st.info("No tests taken yet.")
        st.stop()

    col1, col2, col3 = st.columns(3)
    col1.metric("Tests taken", history.total_tests_taken)
    col2.metric("Average score", f"{history.average_score:.1f}%")
    col3.metric("Average percentile", f"{history.average_percentile:.1f}")

    st.subheader("History")
    st.dataframe(
        [
            {
                "Test": r.test_title,
                "Score": f"{r.score} / {r.total_score}",
                "Accuracy": f"{r.accuracy:.0f}%",
                "Time": format_clock(r.time_taken_seconds),
                "Percentile": r.percentile,
                "Submitted": r.submitted_at,
            }
            for r in history.test_results
        ],
        hide_index=True,
        use_container_width=True,
    )

    st.subheader("Subject-wise")
    performance = db.get_user_subject_performance(user_id)
    for subject, perf in performance.items():
        st.write(f"**{get_subject_display_name(subject, subjects)}**: {perf['correct']}/{perf['total']} correct")
        st.progress(min(1.0, perf["average_score"] / 100))

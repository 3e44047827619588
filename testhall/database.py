"""
Database operations for TestHall.
Handles Supabase reads/writes for tests, questions, results, rankings and groups.
"""
import logging
from datetime import datetime
from typing import Dict, List, Optional

from supabase import Client

from engine import DEFAULT_MARKS, DEFAULT_NEGATIVE_MARKS
from testhall.models import (
    Group,
    LeaderboardEntry,
    Option,
    Question,
    Ranking,
    TestPerformanceSummary,
    TestResult,
    TestSchedule,
    UserPerformanceHistory,
)
from testhall.ranking import UNKNOWN_USER, build_leaderboard, compute_rankings
from testhall.scoring import aggregate_subject_performance, summarize_history

logger = logging.getLogger(__name__)

# PostgREST "no rows" / Postgres "relation does not exist"
MISSING_TABLE_CODES = ("PGRST116", "42P01")


def is_missing_table_error(error: Exception) -> bool:
    code = getattr(error, "code", None)
    if code in MISSING_TABLE_CODES:
        return True
    return any(c in str(error) for c in MISSING_TABLE_CODES)


class DatabaseClient:
    """Wrapper around Supabase client with TestHall-specific operations.

    Test and question methods raise on backend errors so callers can fall back
    to cached data. Result, ranking and leaderboard methods log and return an
    empty value instead.
    """

    def __init__(self, client: Client):
        self.client = client

    # ============= Tests =============

    def tables_exist(self) -> bool:
        """Probe the tests table; False when it is missing or unreachable."""
        try:
            self.client.table("tests").select("id").limit(1).execute()
            return True
        except Exception as e:
            if is_missing_table_error(e):
                logger.warning(f"Tests table missing: {e}")
            else:
                logger.error(f"Error probing tests table: {e}")
            return False

    def fetch_tests(self) -> List[TestSchedule]:
        response = self.client.table("tests").select("*").order("created_at", desc=True).execute()
        return [TestSchedule.from_row(row) for row in response.data or []]

    def create_test(self, test: TestSchedule) -> TestSchedule:
        row = test.to_row(include_id=False)
        row["created_at"] = datetime.utcnow().isoformat()
        response = self.client.table("tests").insert(row).execute()
        created = TestSchedule.from_row(response.data[0]) if response.data else test
        logger.info(f"Created test {created.id}: {created.title}")
        return created

    def update_test(self, test: TestSchedule) -> TestSchedule:
        row = test.to_row(include_id=False)
        row["updated_at"] = datetime.utcnow().isoformat()
        response = self.client.table("tests").update(row).eq("id", test.id).execute()
        return TestSchedule.from_row(response.data[0]) if response.data else test

    def delete_test(self, test_id: str):
        """Delete options, then questions, then the test (no cascade assumed)."""
        self.delete_questions(test_id)
        self.client.table("tests").delete().eq("id", test_id).execute()
        logger.info(f"Deleted test {test_id}")

    # ============= Questions =============

    def _question_row_ids(self, test_id: str) -> List[str]:
        response = self.client.table("test_questions").select("id").eq("test_id", test_id).execute()
        return [row["id"] for row in response.data or []]

    def _delete_question_rows(self, question_ids: List[str]):
        if not question_ids:
            return
        self.client.table("test_options").delete().in_("question_id", question_ids).execute()
        self.client.table("test_questions").delete().in_("id", question_ids).execute()

    def delete_questions(self, test_id: str):
        question_ids = self._question_row_ids(test_id)
        self._delete_question_rows(question_ids)
        if question_ids:
            logger.info(f"Deleted {len(question_ids)} questions for test {test_id}")

    def replace_questions(self, test_id: str, questions: List[Question]) -> int:
        """Insert the new set first; the old rows are only deleted once the insert succeeded."""
        old_ids = self._question_row_ids(test_id)
        try:
            inserted = self.insert_questions(test_id, questions)
        except Exception:
            # Drop a partial insert so the previous set stays the only one
            partial = [i for i in self._question_row_ids(test_id) if i not in old_ids]
            self._delete_question_rows(partial)
            raise
        self._delete_question_rows(old_ids)
        logger.info(f"Replaced {len(old_ids)} questions with {inserted} for test {test_id}")
        return inserted

    def insert_questions(self, test_id: str, questions: List[Question]) -> int:
        """
        Insert questions with their options.

        Args:
            test_id: Owning test
            questions: Questions in display order

        Returns:
            Number of questions inserted
        """
        if not questions:
            return 0
        question_rows = [
            {
                "test_id": test_id,
                "question_id": q.id,
                "position": i,
                "text": q.text,
                "subject": q.subject,
                "image_url": q.image_url,
                "solution": q.solution,
                "marks": q.effective_marks,
                "negative_marks": q.effective_negative_marks,
            }
            for i, q in enumerate(questions)
        ]
        response = self.client.table("test_questions").insert(question_rows).execute()
        db_ids = {row["question_id"]: row["id"] for row in response.data or []}

        option_rows = [
            {
                "question_id": db_ids[q.id],
                "option_id": o.id,
                "text": o.text,
                "is_correct": o.is_correct,
                "image_url": o.image_url,
            }
            for q in questions if q.id in db_ids
            for o in q.options
        ]
        if option_rows:
            self.client.table("test_options").insert(option_rows).execute()
        logger.info(f"Inserted {len(db_ids)} questions ({len(option_rows)} options) for test {test_id}")
        return len(db_ids)

    def fetch_questions(self, test_id: str) -> List[Question]:
        response = (
            self.client.table("test_questions")
            .select("*")
            .eq("test_id", test_id)
            .order("position")
            .execute()
        )
        rows = response.data or []
        if not rows:
            return []

        options_response = (
            self.client.table("test_options")
            .select("*")
            .in_("question_id", [row["id"] for row in rows])
            .execute()
        )
        options_by_question: Dict[str, List[Option]] = {}
        for opt in options_response.data or []:
            options_by_question.setdefault(opt["question_id"], []).append(Option.from_row(opt))

        return [
            Question(
                id=str(row.get("question_id") or row["id"]),
                text=row.get("text") or "",
                subject=str(row.get("subject") or ""),
                options=options_by_question.get(row["id"], []),
                image_url=row.get("image_url") or None,
                solution=row.get("solution") or None,
                marks=row.get("marks") if row.get("marks") is not None else DEFAULT_MARKS,
                negative_marks=(
                    row.get("negative_marks") if row.get("negative_marks") is not None else DEFAULT_NEGATIVE_MARKS
                ),
            )
            for row in rows
        ]

    # ============= Results =============

    def save_test_result(self, result: TestResult) -> bool:
        """Upsert on (user_id, test_id)."""
        try:
            row = result.to_row()
            row["submitted_at"] = row.get("submitted_at") or datetime.utcnow().isoformat()
            self.client.table("test_results").upsert(row, on_conflict="user_id,test_id").execute()
            logger.info(f"Saved result for user {result.user_id} on test {result.test_id}: {result.score}")
            return True
        except Exception as e:
            logger.error(f"Error saving test result: {e}")
            return False

    def get_test_result(self, user_id: str, test_id: str) -> Optional[TestResult]:
        try:
            response = (
                self.client.table("test_results")
                .select("*")
                .eq("user_id", user_id)
                .eq("test_id", test_id)
                .limit(1)
                .execute()
            )
            return TestResult.from_row(response.data[0]) if response.data else None
        except Exception as e:
            logger.error(f"Error fetching test result: {e}")
            return None

    # ============= Rankings =============

    def get_ranking(self, user_id: str, test_id: str) -> Optional[Ranking]:
        try:
            response = (
                self.client.table("rankings")
                .select("*")
                .eq("user_id", user_id)
                .eq("test_id", test_id)
                .limit(1)
                .execute()
            )
            return Ranking.from_row(response.data[0]) if response.data else None
        except Exception as e:
            logger.error(f"Error fetching ranking: {e}")
            return None

    def upsert_rankings(self, rankings: List[Ranking]) -> bool:
        if not rankings:
            return True
        try:
            rows = [r.to_row() for r in rankings]
            self.client.table("rankings").upsert(rows, on_conflict="user_id,test_id").execute()
            return True
        except Exception as e:
            logger.error(f"Error upserting rankings: {e}")
            return False

    def recalculate_test_rankings(self, test_id: str) -> bool:
        """Recompute batch/institute ranks and percentile for every participant of a test."""
        try:
            results = (
                self.client.table("test_results")
                .select("user_id, score, time_taken_seconds")
                .eq("test_id", test_id)
                .execute()
            ).data or []
            if not results:
                logger.info(f"No results for test {test_id}; nothing to rank")
                return True

            user_ids = [str(r["user_id"]) for r in results]
            batches = (
                self.client.table("user_batches").select("user_id, batch_id").in_("user_id", user_ids).execute()
            ).data or []
            institutes = (
                self.client.table("user_institutes")
                .select("user_id, institute_id")
                .in_("user_id", user_ids)
                .execute()
            ).data or []
        except Exception as e:
            logger.error(f"Error loading data for ranking test {test_id}: {e}")
            return False

        rankings = compute_rankings(
            test_id,
            results,
            batch_of={r["user_id"]: r["batch_id"] for r in batches},
            institute_of={r["user_id"]: r["institute_id"] for r in institutes},
        )
        return self.upsert_rankings(rankings)

    # ============= Batches / Institutes =============

    def _get_groups(self, table: str) -> List[Group]:
        try:
            response = self.client.table(table).select("*").order("name").execute()
            return [Group.from_row(row) for row in response.data or []]
        except Exception as e:
            logger.error(f"Error fetching {table}: {e}")
            return []

    def get_batches(self) -> List[Group]:
        return self._get_groups("batches")

    def get_institutes(self) -> List[Group]:
        return self._get_groups("institutes")

    def _assign(self, table: str, column: str, user_id: str, group_id: str) -> bool:
        try:
            self.client.table(table).upsert(
                {"user_id": user_id, column: group_id}, on_conflict=f"user_id,{column}"
            ).execute()
            return True
        except Exception as e:
            logger.error(f"Error assigning user {user_id} via {table}: {e}")
            return False

    def assign_user_to_batch(self, user_id: str, batch_id: str) -> bool:
        return self._assign("user_batches", "batch_id", user_id, batch_id)

    def assign_user_to_institute(self, user_id: str, institute_id: str) -> bool:
        return self._assign("user_institutes", "institute_id", user_id, institute_id)

    def _get_user_group(self, membership_table: str, column: str, group_table: str, user_id: str) -> Optional[Group]:
        try:
            membership = (
                self.client.table(membership_table).select(column).eq("user_id", user_id).limit(1).execute()
            )
            if not membership.data:
                return None
            group_id = membership.data[0][column]
            response = self.client.table(group_table).select("*").eq("id", group_id).limit(1).execute()
            return Group.from_row(response.data[0]) if response.data else None
        except Exception as e:
            logger.error(f"Error getting {group_table} for user {user_id}: {e}")
            return None

    def get_user_batch(self, user_id: str) -> Optional[Group]:
        return self._get_user_group("user_batches", "batch_id", "batches", user_id)

    def get_user_institute(self, user_id: str) -> Optional[Group]:
        return self._get_user_group("user_institutes", "institute_id", "institutes", user_id)

    # ============= Leaderboards =============

    def _display_names(self, user_ids: List[str]) -> Dict[str, str]:
        if not user_ids:
            return {}
        response = self.client.table("profiles").select("id, display_name").in_("id", user_ids).execute()
        return {str(row["id"]): row.get("display_name") for row in response.data or []}

    def _leaderboard(self, test_id: str, limit: int, member_ids: Optional[List[str]] = None) -> List[LeaderboardEntry]:
        query = (
            self.client.table("test_results")
            .select("user_id, score, time_taken_seconds")
            .eq("test_id", test_id)
        )
        if member_ids is not None:
            query = query.in_("user_id", member_ids)
        rows = (
            query.order("score", desc=True)
            .order("time_taken_seconds")
            .limit(limit)
            .execute()
        ).data or []
        names = self._display_names([str(r["user_id"]) for r in rows])
        return build_leaderboard(rows, names)

    def get_test_leaderboard(self, test_id: str, limit: int = 10) -> List[LeaderboardEntry]:
        try:
            return self._leaderboard(test_id, limit)
        except Exception as e:
            logger.error(f"Error fetching leaderboard for test {test_id}: {e}")
            return []

    def _group_leaderboard(self, membership_table: str, column: str, group_id: str,
                           test_id: str, limit: int) -> List[LeaderboardEntry]:
        try:
            members = (
                self.client.table(membership_table).select("user_id").eq(column, group_id).execute()
            ).data or []
            member_ids = [str(m["user_id"]) for m in members]
            if not member_ids:
                return []
            return self._leaderboard(test_id, limit, member_ids)
        except Exception as e:
            logger.error(f"Error fetching {membership_table} leaderboard for test {test_id}: {e}")
            return []

    def get_batch_leaderboard(self, test_id: str, batch_id: str, limit: int = 10) -> List[LeaderboardEntry]:
        return self._group_leaderboard("user_batches", "batch_id", batch_id, test_id, limit)

    def get_institute_leaderboard(self, test_id: str, institute_id: str, limit: int = 10) -> List[LeaderboardEntry]:
        return self._group_leaderboard("user_institutes", "institute_id", institute_id, test_id, limit)

    # ============= Performance =============

    def get_user_performance_history(self, user_id: str) -> Optional[UserPerformanceHistory]:
        try:
            results = (
                self.client.table("test_results")
                .select("*")
                .eq("user_id", user_id)
                .order("submitted_at", desc=True)
                .execute()
            ).data or []
            test_ids = [str(r["test_id"]) for r in results]
            titles = {}
            if test_ids:
                tests = self.client.table("tests").select("id, title").in_("id", test_ids).execute().data or []
                titles = {str(t["id"]): t.get("title") or "" for t in tests}
            rankings = self.client.table("rankings").select("test_id, percentile").eq("user_id", user_id).execute()
            percentiles = {str(r["test_id"]): r.get("percentile") for r in rankings.data or []}
            display_name = self._display_names([user_id]).get(user_id) or UNKNOWN_USER
        except Exception as e:
            logger.error(f"Error fetching performance history for user {user_id}: {e}")
            return None

        summaries = [
            TestPerformanceSummary(
                test_id=str(r["test_id"]),
                test_title=titles.get(str(r["test_id"]), "Unknown Test"),
                score=r.get("score") or 0,
                total_score=r.get("total_score") or 0,
                accuracy=r.get("accuracy") or 0,
                time_taken_seconds=r.get("time_taken_seconds") or 0,
                submitted_at=r.get("submitted_at"),
                percentile=percentiles.get(str(r["test_id"])),
            )
            for r in results
        ]
        return summarize_history(user_id, display_name, summaries)

    def get_user_subject_performance(self, user_id: str) -> Dict[str, Dict]:
        try:
            response = (
                self.client.table("test_results").select("subject_performance").eq("user_id", user_id).execute()
            )
        except Exception as e:
            logger.error(f"Error fetching subject performance for user {user_id}: {e}")
            return {}
        return aggregate_subject_performance(row.get("subject_performance") for row in response.data or [])

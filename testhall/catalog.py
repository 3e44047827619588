"""
Tests and their questions, backed by Supabase with a local fallback.
When the tables are missing or a call fails, the built-in tests, cached
question sets or generated mock questions are served instead.
"""
import logging
from typing import List, Optional

from testhall import notify
from testhall.database import DatabaseClient
from testhall.fallback import create_mock_questions, default_tests, mock_test
from testhall.local_store import LocalStore, StoreResult
from testhall.models import Question, TestSchedule

logger = logging.getLogger(__name__)

OFFLINE_TESTS_KEY = "offline_tests"
SETUP_MESSAGE = "Supabase tables not set up. Run `python init_db.py` and apply the printed SQL."


def questions_key(test_id: str) -> str:
    return f"test_questions_{test_id}"


class TestCatalog:
    __test__ = False

    def __init__(self, db: Optional[DatabaseClient], store: LocalStore):
        self.db = db
        self.store = store

    def _tables_exist(self) -> bool:
        if self.db is None:
            return False
        if not self.db.tables_exist():
            notify.error(SETUP_MESSAGE, once=True)
            return False
        return True

    # --- offline test list ---

    def _offline_tests(self) -> List[TestSchedule]:
        rows = self.store.get(OFFLINE_TESTS_KEY)
        if rows is None:
            return default_tests()
        return [TestSchedule.from_row(row) for row in rows]

    def _save_offline_tests(self, tests: List[TestSchedule]):
        self.store.set(OFFLINE_TESTS_KEY, [t.to_row() for t in tests])

    def _create_offline(self, test: TestSchedule) -> TestSchedule:
        tests = self._offline_tests()
        if not test.id:
            numeric = [int(t.id) for t in tests if t.id.isdigit()]
            test.id = str(max(numeric, default=0) + 1)
        tests.append(test)
        self._save_offline_tests(tests)
        return test

    def _update_offline(self, test: TestSchedule) -> bool:
        tests = self._offline_tests()
        for i, existing in enumerate(tests):
            if existing.id == test.id:
                tests[i] = test
                self._save_offline_tests(tests)
                return True
        return False

    def _delete_offline(self, test_id: str) -> bool:
        tests = self._offline_tests()
        remaining = [t for t in tests if t.id != test_id]
        if len(remaining) == len(tests):
            return False
        self._save_offline_tests(remaining)
        return True

    # --- tests ---

    def fetch_tests(self) -> List[TestSchedule]:
        if not self._tables_exist():
            logger.info("Using fallback tests since Supabase tables don't exist")
            return self._offline_tests()
        try:
            return self.db.fetch_tests()
        except Exception as e:
            logger.error(f"Error fetching tests: {e}")
            notify.error("Failed to load tests from Supabase. Showing offline tests.")
            return self._offline_tests()

    def find_test(self, test_id: str) -> TestSchedule:
        """The test with this id, or a mock schedule when it is unknown."""
        for test in self.fetch_tests():
            if test.id == test_id:
                return test
        logger.warning(f"Test {test_id} not found; using mock test")
        return mock_test(test_id)

    def create_test(self, test: TestSchedule) -> Optional[TestSchedule]:
        if not self._tables_exist():
            return self._create_offline(test)
        try:
            return self.db.create_test(test)
        except Exception as e:
            logger.error(f"Error creating test: {e}")
            notify.error("Failed to create test in Supabase. Using local storage instead.")
            return self._create_offline(test)

    def update_test(self, test: TestSchedule) -> bool:
        if not self._tables_exist():
            return self._update_offline(test)
        try:
            self.db.update_test(test)
            return True
        except Exception as e:
            logger.error(f"Error updating test: {e}")
            notify.error("Failed to update test in Supabase. Using local storage instead.")
            return self._update_offline(test)

    def delete_test(self, test_id: str) -> bool:
        if not self._tables_exist():
            return self._delete_offline(test_id)
        try:
            self.db.delete_test(test_id)
            return True
        except Exception as e:
            logger.error(f"Error deleting test: {e}")
            notify.error("Failed to delete test in Supabase. Using local storage instead.")
            return self._delete_offline(test_id)

    # --- questions ---

    def save_test_questions(self, test_id: str, questions: List[Question]) -> bool:
        """Replace the question set of a test. An empty list means every question was deleted."""
        key = questions_key(test_id)
        if not questions:
            self.store.remove(key)
            if self._tables_exist():
                try:
                    self.db.delete_questions(test_id)
                except Exception as e:
                    logger.error(f"Error deleting questions for test {test_id}: {e}")
                    return False
            return True

        if not self._tables_exist():
            result: StoreResult = self.store.safely_store(key, [q.to_dict() for q in questions])
            if result.success:
                notify.success(f"Questions saved to local storage ({result.size:.2f}MB)")
                return True
            if result.size:
                notify.warning(
                    f"Test data is too large ({result.size:.2f}MB) for local storage. Please set up database storage."
                )
            else:
                notify.error("Failed to save questions to local storage. Please set up database storage.")
            return False

        try:
            self.db.replace_questions(test_id, questions)
            # Backend holds the set now
            self.store.remove(key)
            return True
        except Exception as e:
            logger.error(f"Error saving test questions: {e}")
            notify.error("Failed to save test questions to Supabase. Using local storage instead.")
            self.store.set(key, [q.to_dict() for q in questions])
            return True

    def _cached_questions(self, test_id: str) -> Optional[List[Question]]:
        key = questions_key(test_id)
        if not self.store.has(key):
            return None
        # An empty cached list is kept as-is: all questions were deleted
        return [Question.from_dict(q) for q in self.store.safely_retrieve(key, [])]

    def fetch_test_questions(self, test_id: str) -> List[Question]:
        logger.info(f"Fetching questions for test {test_id}")
        if not self._tables_exist():
            cached = self._cached_questions(test_id)
            if cached is not None:
                logger.info(f"Retrieved {len(cached)} cached questions for test {test_id}")
                return cached
            return create_mock_questions(test_id)
        # A local copy only exists after a failed backend save
        cached = self._cached_questions(test_id)
        if cached is not None:
            logger.info(f"Using {len(cached)} locally saved questions for test {test_id}")
            return cached
        try:
            return self.db.fetch_questions(test_id)
        except Exception as e:
            logger.error(f"Error fetching test questions: {e}")
            notify.error("Failed to load test questions from Supabase. Using mock questions.")
            logger.info("Falling back to mock questions after error")
            return create_mock_questions(test_id)

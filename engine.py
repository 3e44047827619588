"""Exam constants shared by the session, scoring and storage layers. No UI."""
# Scoring: correct +marks, incorrect -negative_marks, unattempted 0.0
# Warnings at 5 and 1 minute remaining, auto-submit at zero

DEFAULT_MARKS = 4
DEFAULT_NEGATIVE_MARKS = 1
DEFAULT_DURATION_MINUTES = 60
WARNING_THRESHOLDS_SECONDS = (5 * 60, 60)
LEADERBOARD_LIMIT = 50
MOCK_QUESTION_COUNT = 25
LOCAL_STORE_LIMIT_MB = 5.0

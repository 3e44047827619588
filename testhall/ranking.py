"""
Leaderboard ordering and batch/institute rank computation.
Order: score descending, then time taken ascending. Rank = 1-based position.
"""
import logging
from typing import Dict, Iterable, List, Mapping, Optional

from testhall.models import LeaderboardEntry, Ranking

logger = logging.getLogger(__name__)

UNKNOWN_USER = "Unknown User"


def sort_results(rows: Iterable[Dict]) -> List[Dict]:
    return sorted(rows, key=lambda r: (-(r.get("score") or 0), r.get("time_taken_seconds") or 0))


def build_leaderboard(rows: Iterable[Dict], display_names: Optional[Mapping[str, str]] = None,
                      limit: Optional[int] = None) -> List[LeaderboardEntry]:
    """Rows are test_results records (user_id, score, time_taken_seconds)."""
    display_names = display_names or {}
    ordered = sort_results(rows)
    if limit is not None:
        ordered = ordered[:limit]
    return [
        LeaderboardEntry(
            user_id=str(row.get("user_id")),
            display_name=display_names.get(str(row.get("user_id"))) or UNKNOWN_USER,
            score=row.get("score") or 0,
            rank=position + 1,
            time_taken_seconds=row.get("time_taken_seconds") or 0,
        )
        for position, row in enumerate(ordered)
    ]


def _rank_within(ordered: List[Dict], user_id: str, members: List[str]):
    group = [r for r in ordered if str(r.get("user_id")) in members]
    for position, row in enumerate(group):
        if str(row.get("user_id")) == user_id:
            return position + 1, len(group)
    return 0, 0


def compute_percentile(score: float, all_scores: List[float]) -> float:
    """Share of participants scoring at or below `score`, in percent (2 decimals)."""
    if not all_scores:
        return 0.0
    at_or_below = sum(1 for s in all_scores if s <= score)
    return round(at_or_below / len(all_scores) * 100, 2)


def compute_rankings(test_id: str, results: Iterable[Dict], batch_of: Mapping[str, str],
                     institute_of: Mapping[str, str]) -> List[Ranking]:
    """
    Rank every participant of a test within their batch and institute.

    Args:
        results: test_results rows for one test
        batch_of: user_id -> batch_id
        institute_of: user_id -> institute_id

    Returns:
        One Ranking per participant; rank/total are 0 when the user has no batch/institute.
    """
    batch_of = {str(k): str(v) for k, v in batch_of.items()}
    institute_of = {str(k): str(v) for k, v in institute_of.items()}
    ordered = sort_results(results)
    scores = [r.get("score") or 0 for r in ordered]

    batch_members: Dict[str, List[str]] = {}
    for user_id, batch_id in batch_of.items():
        batch_members.setdefault(batch_id, []).append(user_id)
    institute_members: Dict[str, List[str]] = {}
    for user_id, institute_id in institute_of.items():
        institute_members.setdefault(institute_id, []).append(user_id)

    rankings = []
    for row in ordered:
        user_id = str(row.get("user_id"))
        batch_rank, batch_total = 0, 0
        if user_id in batch_of:
            batch_rank, batch_total = _rank_within(ordered, user_id, batch_members[batch_of[user_id]])
        institute_rank, institute_total = 0, 0
        if user_id in institute_of:
            institute_rank, institute_total = _rank_within(
                ordered, user_id, institute_members[institute_of[user_id]]
            )
        rankings.append(Ranking(
            user_id=user_id,
            test_id=str(test_id),
            batch_rank=batch_rank,
            batch_total=batch_total,
            institute_rank=institute_rank,
            institute_total=institute_total,
            percentile=compute_percentile(row.get("score") or 0, scores),
        ))

    logger.info(f"Computed rankings for test {test_id}: {len(rankings)} participants")
    return rankings


def rank_messages(ranking: Ranking) -> List[str]:
    """Congratulation lines for the rank summary."""
    messages = []
    if ranking.batch_rank == 1:
        messages.append("Congratulations! You're at the top of your batch!")
    if ranking.institute_rank == 1:
        messages.append("Congratulations! You're at the top of your institute!")
    if ranking.percentile >= 90:
        messages.append(f"Excellent! You're in the top {max(1, 100 - int(ranking.percentile))}% of test takers!")
    return messages

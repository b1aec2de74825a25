"""
Ranking of groups and students

Rules:
  - Sort by score (desc); equal scores keep collection order
    (groups and students arrive sorted by name)
  - rank = 1-based position in the shown list
  - Top 3 rows get a distinct RankTier, the rest RankTier.OTHER
  - Filtering a subset of groups only changes which rows are shown;
    scores always come from the full score map
"""
from typing import Dict, Iterable, List, Optional, Sequence

from evaluator.models import (
    Group, GroupRankRow, GroupScore, RankTier, StudentRankRow, StudentStanding,
)


PODIUM = (RankTier.FIRST, RankTier.SECOND, RankTier.THIRD)


def rank_tier(rank: int) -> RankTier:
    """Tier for a 1-based rank"""
    if 1 <= rank <= len(PODIUM):
        return PODIUM[rank - 1]
    return RankTier.OTHER


def rank_groups(
    groups: Sequence[Group],
    scores: Dict[str, GroupScore],
    selected_ids: Optional[Iterable[str]] = None,
    limit: Optional[int] = None,
) -> List[GroupRankRow]:
    """
    Rank groups by their aggregated score

    Args:
        groups: All groups, in collection order
        scores: Output of group_scores() over the full dataset
        selected_ids: Optional subset of group ids to show (empty/None = all)
        limit: Optional maximum number of rows (e.g. 3 for a podium view)

    Returns:
        Ranked rows, best first
    """
    selected = set(selected_ids) if selected_ids else None
    shown = [g for g in groups if selected is None or g.id in selected]

    def score_of(group: Group) -> GroupScore:
        return scores.get(group.id) or GroupScore()

    ordered = sorted(shown, key=lambda g: -score_of(g).score)
    if limit is not None:
        ordered = ordered[:limit]

    return [
        GroupRankRow(
            group_id=group.id,
            name=group.name,
            score=score_of(group).score,
            member_count=score_of(group).members,
            rank=index + 1,
            rank_tier=rank_tier(index + 1),
        )
        for index, group in enumerate(ordered)
    ]


def rank_students(
    standings: Sequence[StudentStanding],
    groups: Sequence[Group] = (),
) -> List[StudentRankRow]:
    """Attach 1-based ranks (and group names) to already ordered standings"""
    group_names = {group.id: group.name for group in groups}
    return [
        StudentRankRow(
            **standing.model_dump(),
            rank=index + 1,
            group_name=group_names.get(standing.group_id),
        )
        for index, standing in enumerate(standings)
    ]

"""
Leaderboard service - Assemble ranked views from the loaded collections
"""
from typing import Dict, Iterable, List, Optional

from evaluator.context import Collections
from evaluator.core.ranking import rank_groups, rank_students
from evaluator.core.scoring import (
    group_details, group_scores, student_rankings, summarize_evaluations,
)
from evaluator.core.statistics import dashboard_summary
from evaluator.models import (
    EvaluationSummary, GroupEvaluationDetail, GroupRankRow, StudentRankRow,
)


TOP_GROUPS = 3


def get_group_ranking(
    collections: Collections,
    selected_ids: Optional[Iterable[str]] = None,
    limit: Optional[int] = None,
) -> List[GroupRankRow]:
    """
    Ranked groups

    Scores are always computed over every group and student; `selected_ids`
    only narrows the rows returned.
    """
    scores = group_scores(collections.groups, collections.students, collections.evaluations)
    return rank_groups(collections.groups, scores, selected_ids=selected_ids, limit=limit)


def get_student_ranking(collections: Collections) -> List[StudentRankRow]:
    standings = student_rankings(collections.students, collections.evaluations)
    return rank_students(standings, collections.groups)


def get_evaluation_summaries(collections: Collections) -> List[EvaluationSummary]:
    return summarize_evaluations(collections.evaluations, collections.tasks, collections.groups)


def get_group_details(collections: Collections, group_id: str) -> Optional[Dict]:
    """Evaluation breakdown of one group, or None if the group is unknown"""
    group = next((g for g in collections.groups if g.id == group_id), None)
    if group is None:
        return None

    scores = group_scores(collections.groups, collections.students, collections.evaluations)
    details: List[GroupEvaluationDetail] = group_details(
        group_id, collections.students, collections.tasks, collections.evaluations
    )
    return {
        "group_id": group.id,
        "name": group.name,
        "score": scores[group.id].score,
        "member_count": scores[group.id].members,
        "evaluations": details,
    }


def get_dashboard_data(collections: Collections) -> Dict:
    """
    Get dashboard data for display

    Returns:
        Summary counters, top groups, full group ranking and rubric option counts
    """
    ranking = get_group_ranking(collections)
    return {
        "summary": dashboard_summary(
            collections.groups, collections.students, collections.tasks, collections.evaluations
        ),
        "top_groups": ranking[:TOP_GROUPS],
        "group_ranking": ranking,
        "problem_stats": collections.problem_stats,
    }

"""
Counters over the loaded collections
"""
from typing import Dict, List, Sequence

from evaluator.core.scoring import scores_of, selected_options
from evaluator.models import (
    AcademicGroupShare, DashboardSummary, Evaluation, Group, ProblemStats,
    Student, Task,
)


UNKNOWN_ACADEMIC_GROUP = "Unknown"


def problem_stats(evaluations: Sequence[Evaluation]) -> ProblemStats:
    """
    Count how often each rubric option was selected

    Every (evaluation, student) score entry adds one to total_entries.
    Evaluations without a scores map are skipped and unknown option ids are
    not counted.

    Args:
        evaluations: All evaluations

    Returns:
        ProblemStats with a counter for each of the five rubric options
    """
    stats = ProblemStats()
    for evaluation in evaluations:
        if evaluation.scores is None:
            continue
        for score in evaluation.scores.values():
            stats.total_entries += 1
            for option in selected_options(score):
                stats.counts[option] += 1
    return stats


def academic_group_shares(students: Sequence[Student]) -> List[AcademicGroupShare]:
    """Students per academic group with a rounded percentage of the roster"""
    counts: Dict[str, int] = {}
    for student in students:
        label = student.academic_group or UNKNOWN_ACADEMIC_GROUP
        counts[label] = counts.get(label, 0) + 1

    total = len(students)
    return [
        AcademicGroupShare(
            academic_group=label,
            count=count,
            percent=round(count / total * 100) if total else 0,
        )
        for label, count in counts.items()
    ]


def _evaluation_base_score(evaluation: Evaluation) -> float:
    # taskScore + teamworkScore only, rubric marks are not part of this figure
    return sum(s.task_score + s.teamwork_score for s in scores_of(evaluation).values())


def dashboard_summary(
    groups: Sequence[Group],
    students: Sequence[Student],
    tasks: Sequence[Task],
    evaluations: Sequence[Evaluation],
) -> DashboardSummary:
    """
    Headline numbers for the dashboard

    average_evaluation_score is Σ(taskScore + teamworkScore) over all score
    entries divided by the number of evaluations.
    """
    gender_counts: Dict[str, int] = {}
    for student in students:
        if student.gender:
            gender_counts[student.gender] = gender_counts.get(student.gender, 0) + 1

    evaluated_tasks = len({e.task_id for e in evaluations if e.task_id})
    total_evaluations = len(evaluations)
    base_total = sum(_evaluation_base_score(e) for e in evaluations)

    return DashboardSummary(
        total_groups=len(groups),
        total_students=len(students),
        academic_groups=len({s.academic_group for s in students}),
        students_without_role=sum(1 for s in students if not s.role),
        gender_counts=gender_counts,
        total_tasks=len(tasks),
        evaluated_tasks=evaluated_tasks,
        pending_tasks=max(0, len(tasks) - evaluated_tasks),
        total_evaluations=total_evaluations,
        average_evaluation_score=round(base_total / total_evaluations, 2) if total_evaluations else 0.0,
        academic_group_shares=academic_group_shares(students),
    )

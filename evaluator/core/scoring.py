"""
Evaluation score aggregation

Formula (one student, one evaluation):
  total = taskScore + teamworkScore + Σ marks(selected rubric options)

Rules:
  - Missing score record → 0; missing taskScore / teamworkScore → 0
  - Rubric option ids outside the fixed rubric contribute 0
  - Student average = Σ totals / number of evaluations the student appears in
  - Group score = Σ student averages / number of students assigned to the group
    (students without any evaluation count as members with average 0)

All functions are pure: they read the collections and return new structures.
"""
from typing import Dict, List, Optional, Sequence, Tuple

from evaluator.models import (
    Evaluation, Group, GroupEvaluationDetail, GroupScore, MemberResult,
    RubricOption, Score, Student, StudentStanding, Task, EvaluationSummary,
)


def scores_of(evaluation: Evaluation) -> Dict[str, Score]:
    """Score records of an evaluation, empty when the evaluation has none"""
    return evaluation.scores if evaluation.scores is not None else {}


def score_for(evaluation: Evaluation, student_id: str) -> Optional[Score]:
    return scores_of(evaluation).get(student_id)


def selected_options(score: Score) -> List[RubricOption]:
    """
    Rubric options ticked in a score record

    The option is taken from the mark's optionId, falling back to the key it
    is stored under. Unknown ids are skipped.
    """
    if not score.option_marks:
        return []

    options = []
    for key, mark in score.option_marks.items():
        if not mark.selected:
            continue
        option = RubricOption.parse(mark.option_id or key)
        if option is not None:
            options.append(option)
    return options


def option_marks_total(score: Score) -> int:
    return sum(option.marks for option in selected_options(score))


def score_total(score: Optional[Score]) -> float:
    """taskScore + teamworkScore + rubric marks of one score record (0 if absent)"""
    if score is None:
        return 0
    return score.task_score + score.teamwork_score + option_marks_total(score)


def evaluation_total_for_student(evaluation: Evaluation, student_id: str) -> float:
    """
    Total score of one student in one evaluation

    Args:
        evaluation: Evaluation record
        student_id: Student ID

    Returns:
        0 if the evaluation holds no score for the student, else
        taskScore + teamworkScore + Σ marks of selected rubric options
    """
    return score_total(score_for(evaluation, student_id))


def evaluation_total(evaluation: Evaluation) -> float:
    """Sum of the totals of every student scored in an evaluation"""
    return sum(score_total(score) for score in scores_of(evaluation).values())


def student_totals(student_id: str, evaluations: Sequence[Evaluation]) -> Tuple[float, int]:
    """
    Accumulate a student's totals over the evaluations that score them

    Returns:
        (sum of totals, number of evaluations containing the student)
    """
    total = 0.0
    count = 0
    for evaluation in evaluations:
        score = score_for(evaluation, student_id)
        if score is None:
            continue
        total += score_total(score)
        count += 1
    return total, count


def student_average(student_id: str, evaluations: Sequence[Evaluation]) -> float:
    total, count = student_totals(student_id, evaluations)
    return total / count if count else 0.0


def group_scores(
    groups: Sequence[Group],
    students: Sequence[Student],
    evaluations: Sequence[Evaluation],
) -> Dict[str, GroupScore]:
    """
    Mean of per-student averages for every group

    Two-level averaging:
        1. each student's average over the evaluations they appear in
        2. group score = Σ member averages / member count

    Example:
        Student 1 totals 58 and 35 → average 46.5
        Student 2 totals 20        → average 20
        Group score = (46.5 + 20) / 2 = 33.25   (not (58 + 35 + 20) / 3)

    Students whose groupId is empty or unknown are ignored. A group without
    members scores 0.

    Args:
        groups: All groups
        students: All students
        evaluations: All evaluations

    Returns:
        Dictionary mapping group ID to GroupScore(score, members)
    """
    sums: Dict[str, float] = {group.id: 0.0 for group in groups}
    members: Dict[str, int] = {group.id: 0 for group in groups}

    for student in students:
        if not student.group_id or student.group_id not in sums:
            continue
        sums[student.group_id] += student_average(student.id, evaluations)
        members[student.group_id] += 1

    return {
        group_id: GroupScore(
            score=sums[group_id] / members[group_id] if members[group_id] else 0.0,
            members=members[group_id],
        )
        for group_id in sums
    }


def student_rankings(
    students: Sequence[Student],
    evaluations: Sequence[Evaluation],
) -> List[StudentStanding]:
    """
    Students ordered by average score (desc)

    Only evaluations that contain a score for the student count towards the
    average, and students with no such evaluation are left out. Equal averages
    keep the order of `students` (stable sort).
    """
    standings = []
    for student in students:
        total, count = student_totals(student.id, evaluations)
        if count == 0:
            continue
        standings.append(StudentStanding(
            student_id=student.id,
            name=student.name,
            roll=student.roll,
            group_id=student.group_id,
            academic_group=student.academic_group,
            total_score=total,
            evaluation_count=count,
            average_score=total / count,
        ))

    standings.sort(key=lambda s: -s.average_score)
    return standings


def member_count_map(groups: Sequence[Group], students: Sequence[Student]) -> Dict[str, int]:
    """Number of students per group id (groups without students → 0)"""
    counts = {group.id: 0 for group in groups}
    for student in students:
        if student.group_id:
            counts[student.group_id] = counts.get(student.group_id, 0) + 1
    return counts


def summarize_evaluations(
    evaluations: Sequence[Evaluation],
    tasks: Sequence[Task],
    groups: Sequence[Group],
) -> List[EvaluationSummary]:
    """Per-evaluation totals for list views"""
    task_names = {task.id: task.name for task in tasks}
    group_names = {group.id: group.name for group in groups}

    return [
        EvaluationSummary(
            evaluation_id=evaluation.id,
            task_id=evaluation.task_id,
            task_name=task_names.get(evaluation.task_id),
            group_id=evaluation.group_id,
            group_name=group_names.get(evaluation.group_id),
            student_count=len(scores_of(evaluation)),
            total_score=evaluation_total(evaluation),
            updated_at=evaluation.updated_at,
        )
        for evaluation in evaluations
    ]


def group_details(
    group_id: str,
    students: Sequence[Student],
    tasks: Sequence[Task],
    evaluations: Sequence[Evaluation],
) -> List[GroupEvaluationDetail]:
    """
    Every evaluation of a group broken down per current member

    Members without a score in an evaluation are listed with zeros.
    """
    task_names = {task.id: task.name for task in tasks}
    members = [s for s in students if s.group_id == group_id]

    details = []
    for evaluation in evaluations:
        if evaluation.group_id != group_id:
            continue

        rows = []
        for student in members:
            score = score_for(evaluation, student.id) or Score()
            options = selected_options(score)
            rows.append(MemberResult(
                student_id=student.id,
                name=student.name,
                role=student.role_tag.label if student.role_tag else None,
                task_score=score.task_score,
                teamwork_score=score.teamwork_score,
                additional_marks=sum(option.marks for option in options),
                total=score_total(score),
                comments=score.comments,
                selected_options=[option.label for option in options],
            ))

        details.append(GroupEvaluationDetail(
            evaluation_id=evaluation.id,
            task_id=evaluation.task_id,
            task_name=task_names.get(evaluation.task_id) or "Unknown Task",
            members=rows,
        ))

    return details

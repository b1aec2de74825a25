"""
Tests for rubric option statistics and dashboard counters
"""
from evaluator.core.statistics import academic_group_shares, dashboard_summary, problem_stats
from evaluator.models import Evaluation, RubricOption, Student
from tests.sample_data import sample_models


def test_problem_stats_counts_each_option():
    _, _, _, evaluations = sample_models()
    stats = problem_stats(evaluations)

    assert stats.total_entries == 3
    assert stats.counts[RubricOption.LEARNED_CAN_WRITE] == 1
    assert stats.counts[RubricOption.LEARNED_CANNOT_WRITE] == 1
    assert stats.counts[RubricOption.CANNOT_DO] == 0


def test_problem_stats_empty():
    """All five counters exist even with no evaluations"""
    stats = problem_stats([])
    assert stats.total_entries == 0
    assert set(stats.counts) == set(RubricOption)
    assert all(count == 0 for count in stats.counts.values())


def test_problem_stats_skips_evaluations_without_scores():
    evaluations = [
        Evaluation.model_validate({"id": "a", "scores": None}),
        Evaluation.model_validate({"id": "b", "scores": {"s1": {}, "s2": {}}}),
    ]
    assert problem_stats(evaluations).total_entries == 2


def test_problem_stats_ignores_unknown_and_unselected_options():
    evaluation = Evaluation.model_validate({"id": "e", "scores": {"s1": {"optionMarks": {
        "x": {"selected": True, "optionId": "made_up"},
        "cannot_do": {"selected": False, "optionId": "cannot_do"},
        "weekly_attendance": {"selected": True, "optionId": "weekly_attendance"},
    }}}})
    stats = problem_stats([evaluation])
    assert sum(stats.counts.values()) == 1
    assert stats.counts[RubricOption.WEEKLY_ATTENDANCE] == 1


def test_academic_group_shares():
    students = [
        Student(id="a", name="A", roll="1", academicGroup="Science"),
        Student(id="b", name="B", roll="2", academicGroup="Science"),
        Student(id="c", name="C", roll="3"),
    ]
    shares = {s.academic_group: s for s in academic_group_shares(students)}
    assert shares["Science"].count == 2
    assert shares["Science"].percent == 67
    assert shares["Unknown"].percent == 33


def test_dashboard_summary():
    groups, students, tasks, evaluations = sample_models()
    summary = dashboard_summary(groups, students, tasks, evaluations)

    assert summary.total_groups == 3
    assert summary.total_students == 3
    assert summary.academic_groups == 2
    assert summary.students_without_role == 2
    assert summary.gender_counts == {"female": 2, "male": 1}
    assert summary.total_tasks == 2
    assert summary.evaluated_tasks == 2
    assert summary.pending_tasks == 0
    assert summary.total_evaluations == 2
    # (40 + 8 + 20 + 0) + (25 + 5) = 98 over 2 evaluations
    assert summary.average_evaluation_score == 49.0


def test_dashboard_summary_empty():
    summary = dashboard_summary([], [], [], [])
    assert summary.average_evaluation_score == 0
    assert summary.academic_group_shares == []

"""
Tests for input normalization of groups, students, tasks and scores
"""
import pytest

from evaluator.core.normalizer import (
    normalize_group, normalize_role, normalize_scores, normalize_student, normalize_task,
)
from evaluator.models import RubricOption, Task


STUDENT = {
    "name": " Rahim ", "roll": 7, "gender": "male", "groupId": "g1",
    "academicGroup": "Science", "session": "2024-25",
}


def test_group_name_trimmed():
    assert normalize_group({"name": "  Alpha "}).name == "Alpha"


def test_group_name_required():
    with pytest.raises(ValueError):
        normalize_group({"name": "   "})


def test_group_name_max_length():
    assert normalize_group({"name": "x" * 50}).name == "x" * 50
    with pytest.raises(ValueError):
        normalize_group({"name": "x" * 51})


def test_student_fields():
    """Strings are trimmed and numeric rolls become text"""
    student = normalize_student(STUDENT)
    assert student.name == "Rahim"
    assert student.roll == "7"
    assert student.role is None
    assert student.contact is None


def test_student_accepts_snake_case():
    body = {**STUDENT, "group_id": "g2", "academic_group": "Arts"}
    del body["groupId"], body["academicGroup"]
    student = normalize_student(body)
    assert student.group_id == "g2"
    assert student.academic_group == "Arts"


def test_student_missing_fields():
    with pytest.raises(ValueError, match="session"):
        normalize_student({**STUDENT, "session": ""})


def test_student_unknown_role():
    with pytest.raises(ValueError):
        normalize_student({**STUDENT, "role": "captain"})


def test_role_normalization():
    assert normalize_role(None) is None
    assert normalize_role(" ") is None
    assert normalize_role("peace-maker") == "peace-maker"


def test_task_max_score_range():
    assert normalize_task({"name": "Essay", "maxScore": "1000"}).max_score == 1000
    with pytest.raises(ValueError):
        normalize_task({"name": "Essay", "maxScore": 0})
    with pytest.raises(ValueError):
        normalize_task({"name": "Essay", "maxScore": "lots"})


def test_task_name_required():
    with pytest.raises(ValueError):
        normalize_task({"maxScore": 10})


def test_scores_expand_all_options():
    """Every rubric option gets a mark, selected or not"""
    scores = normalize_scores(
        {"s1": {"taskScore": "40", "teamworkScore": 8,
                "optionMarks": {"a": {"selected": True, "optionId": "weekly_homework"}}}},
        Task(name="Essay", maxScore=50),
    )
    marks = scores["s1"].option_marks
    assert set(marks) == {option.value for option in RubricOption}
    assert marks["weekly_homework"].selected
    assert not marks["cannot_do"].selected
    assert scores["s1"].task_score == 40


def test_scores_missing_values_are_zero():
    scores = normalize_scores({"s1": {}}, Task(name="Essay"))
    assert scores["s1"].task_score == 0
    assert scores["s1"].teamwork_score == 0


def test_scores_teamwork_bound():
    with pytest.raises(ValueError):
        normalize_scores({"s1": {"teamworkScore": 11}}, Task(name="Essay"))


def test_scores_negative_task_score():
    with pytest.raises(ValueError):
        normalize_scores({"s1": {"taskScore": -1}}, Task(name="Essay"))


def test_scores_unknown_option():
    with pytest.raises(ValueError, match="bonus"):
        normalize_scores({"s1": {"optionMarks": ["bonus"]}}, Task(name="Essay"))


def test_scores_must_not_be_empty():
    with pytest.raises(ValueError):
        normalize_scores({}, Task(name="Essay"))

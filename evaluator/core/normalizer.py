"""
Normalizer for group, student, task and evaluation input
"""
from typing import Any, Dict, Optional

from evaluator.models import Group, OptionMark, Role, RubricOption, Score, Student, Task


GROUP_NAME_MAX = 50
TASK_MAX_SCORE_RANGE = (1, 1000)
TEAMWORK_MAX = 10
STUDENT_REQUIRED = ("name", "roll", "gender", "groupId", "academicGroup", "session")


def _text(body: Dict, *names: str) -> str:
    """First non-empty value among camelCase / snake_case spellings, stripped"""
    for name in names:
        value = body.get(name)
        if value is not None and str(value).strip():
            return str(value).strip()
    return ""


def normalize_group(body: Dict) -> Group:
    """
    Normalize group input

    Body format:
        {"name": "Alpha"}

    Raises:
        ValueError: If the name is empty or longer than 50 characters
    """
    name = _text(body, "name")
    if not name:
        raise ValueError("Group name is required")
    if len(name) > GROUP_NAME_MAX:
        raise ValueError(f"Group name must be at most {GROUP_NAME_MAX} characters")
    return Group(name=name)


def normalize_role(role: Optional[str]) -> Optional[str]:
    """Empty role → None; anything else must be a known responsibility tag"""
    if role is None or not str(role).strip():
        return None
    try:
        return Role(str(role).strip()).value
    except ValueError:
        raise ValueError(f"Unknown role: {role}")


def normalize_student(body: Dict) -> Student:
    """
    Normalize student input

    Body format:
        {
            "name": "Rahim", "roll": "07", "gender": "male", "groupId": "g1",
            "academicGroup": "Science", "session": "2024-25",
            "role": "team-leader", "contact": "..."
        }

    Raises:
        ValueError: If a required field is missing or the role is unknown
    """
    fields = {
        "name": _text(body, "name"),
        "roll": _text(body, "roll"),
        "gender": _text(body, "gender"),
        "groupId": _text(body, "groupId", "group_id"),
        "academicGroup": _text(body, "academicGroup", "academic_group"),
        "session": _text(body, "session"),
    }
    missing = [name for name in STUDENT_REQUIRED if not fields[name]]
    if missing:
        raise ValueError(f"Missing required fields: {', '.join(missing)}")

    return Student(
        **fields,
        role=normalize_role(body.get("role")),
        contact=_text(body, "contact") or None,
    )


def normalize_task(body: Dict) -> Task:
    """
    Normalize task input

    Body format:
        {"name": "Essay", "description": "...", "maxScore": 100, "date": "2025-01-10"}

    Raises:
        ValueError: If the name is missing or maxScore is not an integer in 1..1000
    """
    name = _text(body, "name")
    if not name:
        raise ValueError("Task name is required")

    raw_max = body.get("maxScore", body.get("max_score"))
    try:
        max_score = int(raw_max)
    except (TypeError, ValueError):
        raise ValueError("maxScore must be an integer")
    low, high = TASK_MAX_SCORE_RANGE
    if not low <= max_score <= high:
        raise ValueError(f"maxScore must be between {low} and {high}")

    return Task(
        name=name,
        description=_text(body, "description") or None,
        maxScore=max_score,
        date=_text(body, "date") or None,
    )


def _bounded_int(value: Any, upper: float, label: str) -> int:
    if value is None or value == "":
        return 0
    try:
        number = int(value)
    except (TypeError, ValueError):
        raise ValueError(f"{label} must be an integer")
    if not 0 <= number <= upper:
        raise ValueError(f"{label} must be between 0 and {upper}")
    return number


def normalize_scores(raw_scores: Dict, task: Task) -> Dict[str, Score]:
    """
    Normalize the per-student scores of an evaluation

    Body format:
        {
            "<studentId>": {
                "taskScore": 40,
                "teamworkScore": 8,
                "comments": "",
                "optionMarks": {"learned_can_write": {"selected": true, "optionId": "learned_can_write"}}
            }
        }

    optionMarks may also be given as a plain list of selected option ids.

    Args:
        raw_scores: Scores keyed by student ID
        task: Task being evaluated (bounds taskScore)

    Returns:
        Dictionary mapping student ID to Score with one OptionMark per rubric option

    Raises:
        ValueError: If a score is out of range or an option id is unknown
    """
    if not isinstance(raw_scores, dict) or not raw_scores:
        raise ValueError("scores must map student ids to score records")

    scores = {}
    for student_id, raw in raw_scores.items():
        if not isinstance(raw, dict):
            raise ValueError(f"Score for student {student_id} must be an object")

        task_score = _bounded_int(raw.get("taskScore"), task.max_score, f"taskScore of {student_id}")
        teamwork = _bounded_int(raw.get("teamworkScore"), TEAMWORK_MAX, f"teamworkScore of {student_id}")

        raw_marks = raw.get("optionMarks") or {}
        if isinstance(raw_marks, list):
            selected = set(raw_marks)
        elif isinstance(raw_marks, dict):
            selected = {
                (mark.get("optionId") or key)
                for key, mark in raw_marks.items()
                if isinstance(mark, dict) and mark.get("selected") is True
            }
        else:
            raise ValueError(f"optionMarks of {student_id} must be an object or a list")

        unknown = [option_id for option_id in selected if RubricOption.parse(option_id) is None]
        if unknown:
            raise ValueError(f"Unknown rubric options for {student_id}: {', '.join(sorted(map(str, unknown)))}")

        scores[str(student_id)] = Score(
            taskScore=task_score,
            teamworkScore=teamwork,
            comments=str(raw.get("comments") or ""),
            optionMarks={
                option.value: OptionMark(selected=option.value in selected, optionId=option.value)
                for option in RubricOption
            },
        )

    return scores

"""
Test helpers: a controllable clock and a small classroom dataset
"""
from evaluator.models import Evaluation, Group, Student, Task


class FakeClock:
    """Callable clock that only moves when told to"""

    def __init__(self, now: float = 1_700_000_000.0):
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


def sample_documents():
    """
    Alpha: s1 (58 and 35 → 46.5), s2 (20) → group score 33.25
    Beta:  s3, never evaluated         → group score 0
    Gamma: no members                  → group score 0
    """
    return {
        "groups": [
            {"id": "g1", "name": "Alpha"},
            {"id": "g2", "name": "Beta"},
            {"id": "g3", "name": "Gamma"},
        ],
        "students": [
            {"id": "s1", "name": "Anika", "roll": "01", "gender": "female", "groupId": "g1",
             "academicGroup": "Science", "session": "2024-25", "role": "team-leader"},
            {"id": "s2", "name": "Bashir", "roll": "02", "gender": "male", "groupId": "g1",
             "academicGroup": "Science", "session": "2024-25"},
            {"id": "s3", "name": "Chandra", "roll": "03", "gender": "female", "groupId": "g2",
             "academicGroup": "Commerce", "session": "2024-25"},
        ],
        "tasks": [
            {"id": "t1", "name": "Essay", "maxScore": 50, "date": "2025-01-10"},
            {"id": "t2", "name": "Project", "maxScore": 100, "date": "2025-02-14"},
        ],
        "evaluations": [
            {
                "id": "e1", "taskId": "t1", "groupId": "g1",
                "scores": {
                    "s1": {"taskScore": 40, "teamworkScore": 8,
                           "optionMarks": {"learned_can_write": {"selected": True, "optionId": "learned_can_write"}}},
                    "s2": {"taskScore": 20, "teamworkScore": 0},
                },
            },
            {
                "id": "e2", "taskId": "t2", "groupId": "g1",
                "scores": {
                    "s1": {"taskScore": 25, "teamworkScore": 5,
                           "optionMarks": {"learned_cannot_write": {"selected": True, "optionId": "learned_cannot_write"}}},
                },
            },
        ],
        "admins": [
            {"id": "uid-super", "email": "super@example.com", "type": "super-admin"},
            {"id": "uid-editor", "email": "editor@example.com", "type": "admin",
             "permissions": {"read": True, "write": True, "delete": False}},
        ],
    }


def sample_models():
    """(groups, students, tasks, evaluations) parsed from sample_documents()"""
    docs = sample_documents()
    return (
        [Group.model_validate(d) for d in docs["groups"]],
        [Student.model_validate(d) for d in docs["students"]],
        [Task.model_validate(d) for d in docs["tasks"]],
        [Evaluation.model_validate(d) for d in docs["evaluations"]],
    )

"""Student roster queries"""
from typing import List, Optional, Sequence

from evaluator.models import Group, Student


NO_GROUP = "No group"


def filter_students(
    students: Sequence[Student],
    group_id: Optional[str] = None,
    term: Optional[str] = None,
) -> List[Student]:
    """Students of a group (optional) whose name, roll or academic group contains `term`"""
    result = list(students)
    if group_id:
        result = [s for s in result if s.group_id == group_id]
    if term:
        needle = term.strip().lower()
        result = [
            s for s in result
            if needle in s.name.lower()
            or needle in s.roll.lower()
            or (s.academic_group and needle in s.academic_group.lower())
        ]
    return result


def group_name_for(student: Student, groups: Sequence[Group]) -> str:
    """Name of the student's group; missing or deleted groups read as "No group" """
    for group in groups:
        if student.group_id and group.id == student.group_id:
            return group.name
    return NO_GROUP

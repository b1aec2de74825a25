"""
Admin endpoints for groups, students, tasks and evaluations

Every write requires a signed-in user with the matching permission.
"""
import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException

from evaluator.api.deps import get_context, get_loader, require_permission
from evaluator.context import AppContext
from evaluator.core.loader import CollectionLoader, DuplicateStudentError, NotFoundError
from evaluator.core.store import StoreError
from evaluator.services.roster import filter_students, group_name_for


logger = logging.getLogger(__name__)

router = APIRouter(prefix="/admin", tags=["admin"])

can_write = require_permission("write")
can_delete = require_permission("delete")


def _http_error(exc: Exception) -> HTTPException:
    if isinstance(exc, DuplicateStudentError):
        return HTTPException(status_code=409, detail=str(exc))
    if isinstance(exc, NotFoundError):
        return HTTPException(status_code=404, detail=str(exc))
    if isinstance(exc, StoreError):
        logger.error(f"❌ Store error: {exc}")
        return HTTPException(status_code=503, detail=f"Document store unavailable: {exc}")
    return HTTPException(status_code=400, detail=str(exc))


# ==================== GROUPS ====================

@router.post("/groups", dependencies=[Depends(can_write)])
async def add_group(payload: dict, loader: CollectionLoader = Depends(get_loader)):
    """
    Add a group

    Request:
        {"name": "Alpha"}   # required, at most 50 characters
    """
    try:
        group = await loader.add_group(payload)
    except (ValueError, StoreError) as e:
        raise _http_error(e) from e
    return {"success": True, "group": group, "message": f"Group {group.name} added"}


@router.put("/groups/{group_id}", dependencies=[Depends(can_write)])
async def rename_group(group_id: str, payload: dict, loader: CollectionLoader = Depends(get_loader)):
    try:
        group = await loader.rename_group(group_id, payload)
    except (ValueError, StoreError) as e:
        raise _http_error(e) from e
    return {"success": True, "group": group}


@router.delete("/groups/{group_id}", dependencies=[Depends(can_delete)])
async def delete_group(group_id: str, loader: CollectionLoader = Depends(get_loader)):
    try:
        await loader.delete_group(group_id)
    except StoreError as e:
        raise _http_error(e) from e
    return {"success": True, "message": f"Group {group_id} deleted"}


# ==================== STUDENTS ====================

@router.get("/students")
async def list_students(
    group_id: Optional[str] = None,
    q: Optional[str] = None,
    context: AppContext = Depends(get_context),
    loader: CollectionLoader = Depends(get_loader),
):
    """Students filtered by group and search term (name, roll, academic group)"""
    failures = await loader.load_all()
    collections = context.collections
    students = filter_students(collections.students, group_id=group_id, term=q)
    return {
        "students": [
            {**s.model_dump(by_alias=True), "group_name": group_name_for(s, collections.groups)}
            for s in students
        ],
        "total_students": len(students),
        "failed_collections": sorted(failures),
    }


@router.post("/students", dependencies=[Depends(can_write)])
async def add_student(payload: dict, loader: CollectionLoader = Depends(get_loader)):
    """
    Add a student

    Request:
        {
            "name": "Rahim", "roll": "07", "gender": "male", "groupId": "g1",
            "academicGroup": "Science", "session": "2024-25",
            "role": "team-leader",   # optional
            "contact": "..."         # optional
        }
    """
    try:
        student = await loader.add_student(payload)
    except (ValueError, StoreError) as e:
        raise _http_error(e) from e
    return {"success": True, "student": student}


@router.put("/students/{student_id}", dependencies=[Depends(can_write)])
async def update_student(student_id: str, payload: dict, loader: CollectionLoader = Depends(get_loader)):
    try:
        student = await loader.update_student(student_id, payload)
    except (ValueError, StoreError) as e:
        raise _http_error(e) from e
    return {"success": True, "student": student}


@router.patch("/students/{student_id}/role", dependencies=[Depends(can_write)])
async def update_student_role(student_id: str, payload: dict, loader: CollectionLoader = Depends(get_loader)):
    """
    Change a student's responsibility

    Request:
        {"role": "reporter"}   # "" or null clears it
    """
    try:
        await loader.update_student_role(student_id, payload.get("role"))
    except (ValueError, StoreError) as e:
        raise _http_error(e) from e
    return {"success": True, "student_id": student_id, "role": payload.get("role") or None}


@router.delete("/students/{student_id}", dependencies=[Depends(can_delete)])
async def delete_student(student_id: str, loader: CollectionLoader = Depends(get_loader)):
    try:
        await loader.delete_student(student_id)
    except StoreError as e:
        raise _http_error(e) from e
    return {"success": True, "message": f"Student {student_id} deleted"}


# ==================== TASKS ====================

@router.post("/tasks", dependencies=[Depends(can_write)])
async def add_task(payload: dict, loader: CollectionLoader = Depends(get_loader)):
    """
    Add a task

    Request:
        {"name": "Essay", "description": "...", "maxScore": 100, "date": "2025-01-10"}
    """
    try:
        task = await loader.add_task(payload)
    except (ValueError, StoreError) as e:
        raise _http_error(e) from e
    return {"success": True, "task": task}


@router.put("/tasks/{task_id}", dependencies=[Depends(can_write)])
async def update_task(task_id: str, payload: dict, loader: CollectionLoader = Depends(get_loader)):
    try:
        task = await loader.update_task(task_id, payload)
    except (ValueError, StoreError) as e:
        raise _http_error(e) from e
    return {"success": True, "task": task}


@router.delete("/tasks/{task_id}", dependencies=[Depends(can_delete)])
async def delete_task(task_id: str, loader: CollectionLoader = Depends(get_loader)):
    try:
        await loader.delete_task(task_id)
    except StoreError as e:
        raise _http_error(e) from e
    return {"success": True, "message": f"Task {task_id} deleted"}


# ==================== EVALUATIONS ====================

@router.get("/evaluations/lookup")
async def find_evaluation(task_id: str, group_id: str, loader: CollectionLoader = Depends(get_loader)):
    """Existing evaluation of a task for a group (to prefill the form), or null"""
    try:
        evaluation = await loader.find_evaluation(task_id, group_id)
    except StoreError as e:
        raise _http_error(e) from e
    return {"evaluation": evaluation}


@router.post("/evaluations", dependencies=[Depends(can_write)])
async def save_evaluation(payload: dict, loader: CollectionLoader = Depends(get_loader)):
    """
    Save the evaluation of a task for a group (updates the existing one if any)

    Request:
        {
            "taskId": "t1",
            "groupId": "g1",
            "scores": {
                "s1": {"taskScore": 40, "teamworkScore": 8, "comments": "",
                       "optionMarks": ["learned_can_write"]}
            }
        }
    """
    task_id = payload.get("taskId") or payload.get("task_id")
    group_id = payload.get("groupId") or payload.get("group_id")
    if not task_id or not group_id:
        raise HTTPException(status_code=400, detail="taskId and groupId are required")

    try:
        evaluation = await loader.save_evaluation(task_id, group_id, payload.get("scores"))
    except (ValueError, StoreError) as e:
        raise _http_error(e) from e
    return {"success": True, "evaluation": evaluation}


@router.delete("/evaluations/{evaluation_id}", dependencies=[Depends(can_delete)])
async def delete_evaluation(evaluation_id: str, loader: CollectionLoader = Depends(get_loader)):
    try:
        await loader.delete_evaluation(evaluation_id)
    except StoreError as e:
        raise _http_error(e) from e
    return {"success": True, "message": f"Evaluation {evaluation_id} deleted"}

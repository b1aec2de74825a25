"""
Leaderboard, ranking and dashboard endpoints
"""
import logging
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query

from evaluator.api.deps import get_context, get_loader
from evaluator.context import AppContext
from evaluator.core.loader import CollectionLoader
from evaluator.services.leaderboard import (
    get_dashboard_data, get_evaluation_summaries, get_group_details,
    get_group_ranking, get_student_ranking,
)


logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["leaderboard"])


async def _load(loader: CollectionLoader) -> List[str]:
    """Load all collections; names of the ones that could not be loaded"""
    failures = await loader.load_all()
    return sorted(failures)


@router.get("/dashboard")
async def dashboard(
    context: AppContext = Depends(get_context),
    loader: CollectionLoader = Depends(get_loader),
):
    """
    Dashboard data

    Returns:
        - summary counters (groups, students, tasks, evaluations, ...)
        - top 3 groups and full group ranking
        - rubric option counts
        - failed_collections: collections that could not be loaded
    """
    failed = await _load(loader)
    data = get_dashboard_data(context.collections)
    data["failed_collections"] = failed
    return data


@router.get("/group-ranking")
async def group_ranking(
    group_id: Optional[List[str]] = Query(default=None),
    limit: Optional[int] = Query(default=None, ge=1),
    context: AppContext = Depends(get_context),
    loader: CollectionLoader = Depends(get_loader),
):
    """Groups ranked by score; repeat ?group_id= to show a subset"""
    failed = await _load(loader)
    rows = get_group_ranking(context.collections, selected_ids=group_id, limit=limit)
    return {"groups": rows, "total_groups": len(rows), "failed_collections": failed}


@router.get("/student-ranking")
async def student_ranking(
    context: AppContext = Depends(get_context),
    loader: CollectionLoader = Depends(get_loader),
):
    """Students with at least one evaluation, ranked by average score"""
    failed = await _load(loader)
    rows = get_student_ranking(context.collections)
    return {"students": rows, "total_students": len(rows), "failed_collections": failed}


@router.get("/problem-stats")
async def problem_stats(
    context: AppContext = Depends(get_context),
    loader: CollectionLoader = Depends(get_loader),
):
    """How often each rubric option was selected"""
    failed = await _load(loader)
    return {"stats": context.collections.problem_stats, "failed_collections": failed}


@router.get("/evaluations")
async def evaluations(
    context: AppContext = Depends(get_context),
    loader: CollectionLoader = Depends(get_loader),
):
    """Evaluations with their total score"""
    failed = await _load(loader)
    rows = get_evaluation_summaries(context.collections)
    return {"evaluations": rows, "failed_collections": failed}


@router.get("/groups/{group_id}/details")
async def group_detail(
    group_id: str,
    context: AppContext = Depends(get_context),
    loader: CollectionLoader = Depends(get_loader),
):
    """All evaluation results of one group, per member"""
    failed = await _load(loader)
    details = get_group_details(context.collections, group_id)
    if details is None:
        raise HTTPException(status_code=404, detail=f"Group {group_id} not found")
    details["failed_collections"] = failed
    return details


@router.post("/refresh")
async def refresh(loader: CollectionLoader = Depends(get_loader)):
    """Reload every collection from the store, bypassing the cache"""
    failures = await loader.refresh()
    if failures:
        logger.warning(f"⚠️ Refresh incomplete: {', '.join(failures)}")
    return {
        "success": not failures,
        "failed_collections": sorted(failures),
        "message": "Ranking refreshed" if not failures else "Some collections could not be refreshed",
    }

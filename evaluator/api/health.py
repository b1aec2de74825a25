"""
Health check and system status endpoints
"""
from fastapi import APIRouter, Depends

from evaluator.api.deps import get_context
from evaluator.context import AppContext


router = APIRouter(tags=["health"])


@router.get("/")
async def health_check(context: AppContext = Depends(get_context)):
    """Health check endpoint"""
    collections = context.collections
    return {
        "status": "ok",
        "message": "Group Evaluation Server",
        "version": "1.0.0",
        "groups": len(collections.groups),
        "students": len(collections.students),
        "tasks": len(collections.tasks),
        "evaluations": len(collections.evaluations),
        "cached_keys": len(context.cache.keys()),
    }

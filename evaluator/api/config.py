"""
Configuration endpoints
"""
from fastapi import APIRouter, Depends

from evaluator.api.deps import get_context
from evaluator.context import AppContext
from evaluator.core.normalizer import GROUP_NAME_MAX, TASK_MAX_SCORE_RANGE, TEAMWORK_MAX
from evaluator.models import Role, RubricOption


router = APIRouter(tags=["config"])


@router.get("/config")
async def get_config(context: AppContext = Depends(get_context)):
    """Effective cache settings, rubric options, roles and input limits"""
    cache = context.cache
    return {
        "cache": {
            "prefix": cache.prefix,
            "ttl_seconds": cache.ttl,
            "soft_ceiling": cache.soft_ceiling,
            "evict_count": cache.evict_count,
            "force_refresh": cache.force_refresh,
            "backend": context.settings.cache.backend,
        },
        "store_backend": context.settings.store.backend,
        "rubric_options": [
            {"id": option.value, "text": option.label, "marks": option.marks}
            for option in RubricOption
        ],
        "roles": {role.value: role.label for role in Role},
        "limits": {
            "group_name_max": GROUP_NAME_MAX,
            "task_max_score": list(TASK_MAX_SCORE_RANGE),
            "teamwork_max": TEAMWORK_MAX,
        },
    }

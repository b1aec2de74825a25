"""
Application context

Holds the resources shared by the loader, aggregators and API routers:
the cache, the remote store and the in-memory collection snapshots.
One context is created per application and passed explicitly.
"""
import logging
from dataclasses import dataclass, field
from typing import List, Optional

from evaluator.core.cache import TTLCache
from evaluator.core.storage import JsonFileStorage, KeyValueStorage, MemoryStorage
from evaluator.core.store import DocumentStore, HttpDocumentStore, InMemoryStore
from evaluator.models import (
    Admin, Evaluation, Group, ProblemStats, Settings, Student, Task,
)
from evaluator.seed_loader import load_seed

logger = logging.getLogger(__name__)


@dataclass
class Collections:
    """Latest loaded snapshot of every collection"""
    groups: List[Group] = field(default_factory=list)
    students: List[Student] = field(default_factory=list)
    tasks: List[Task] = field(default_factory=list)
    evaluations: List[Evaluation] = field(default_factory=list)
    admins: List[Admin] = field(default_factory=list)
    problem_stats: ProblemStats = field(default_factory=ProblemStats)


@dataclass
class AppContext:
    settings: Settings
    cache: TTLCache
    store: DocumentStore
    collections: Collections = field(default_factory=Collections)
    current_user: Optional[Admin] = None
    current_uid: Optional[str] = None


def build_storage(settings: Settings) -> KeyValueStorage:
    cache_settings = settings.cache
    if cache_settings.backend == "file":
        return JsonFileStorage(cache_settings.path, max_entries=cache_settings.max_entries)
    if cache_settings.backend == "memory":
        return MemoryStorage(max_entries=cache_settings.max_entries)
    raise ValueError(f"Unknown cache backend: {cache_settings.backend}")


def build_store(settings: Settings) -> DocumentStore:
    store_settings = settings.store
    if store_settings.backend == "http":
        return HttpDocumentStore(store_settings.base_url, timeout=store_settings.timeout)
    if store_settings.backend == "memory":
        seed = {}
        if store_settings.seed_file:
            try:
                seed = load_seed(store_settings.seed_file)
            except FileNotFoundError:
                logger.warning(f"⚠️ Seed file {store_settings.seed_file} not found, starting empty")
        return InMemoryStore(seed)
    raise ValueError(f"Unknown store backend: {store_settings.backend}")


def build_context(
    settings: Settings,
    store: Optional[DocumentStore] = None,
    storage: Optional[KeyValueStorage] = None,
) -> AppContext:
    """Create a context from settings; store/storage may be injected"""
    cache_settings = settings.cache
    cache = TTLCache(
        storage if storage is not None else build_storage(settings),
        prefix=cache_settings.prefix,
        ttl=cache_settings.ttl_seconds,
        soft_ceiling=cache_settings.soft_ceiling,
        evict_count=cache_settings.evict_count,
        force_refresh_seconds=cache_settings.force_refresh_seconds,
    )
    return AppContext(
        settings=settings,
        cache=cache,
        store=store if store is not None else build_store(settings),
    )

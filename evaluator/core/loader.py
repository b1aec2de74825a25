"""
Collection loader

Reads collections from the remote store through the TTL cache and keeps the
context's in-memory snapshots current.

Read path for one collection:
  1. cache hit             → cached snapshot
  2. miss                  → fetch from store, write cache, return
  3. fetch fails           → stale cache entry (expired or force refresh)
  4. nothing cached either → CollectionLoadError, snapshot left untouched

Every successful mutation clears the collection's cache key and reloads it.
"""
import asyncio
import logging
import time
from typing import Any, Dict, List, NamedTuple, Optional, Sequence, Type, Union

from pydantic import ValidationError

from evaluator.context import AppContext
from evaluator.core.normalizer import (
    normalize_group, normalize_role, normalize_scores, normalize_student,
    normalize_task,
)
from evaluator.core.statistics import problem_stats
from evaluator.core.store import StoreError
from evaluator.models import (
    Admin, Collection, Document, Evaluation, Group, Student, Task,
)

logger = logging.getLogger(__name__)


class CollectionLoadError(Exception):
    """Raised when a collection can be neither fetched nor read from cache"""

    def __init__(self, collection: str, cause: Optional[Exception] = None):
        self.collection = collection
        self.cause = cause
        super().__init__(f"Failed to load {collection}: {cause}")


class NotFoundError(ValueError):
    """Raised when a referenced document does not exist"""


class DuplicateStudentError(ValueError):
    """Raised when (roll, academicGroup) is already taken"""


class CollectionInfo(NamedTuple):
    model: Type[Document]
    order_by: Optional[str]
    descending: bool
    attribute: str


COLLECTIONS: Dict[Collection, CollectionInfo] = {
    Collection.GROUPS: CollectionInfo(Group, "name", False, "groups"),
    Collection.STUDENTS: CollectionInfo(Student, "name", False, "students"),
    Collection.TASKS: CollectionInfo(Task, "date", True, "tasks"),
    Collection.EVALUATIONS: CollectionInfo(Evaluation, None, False, "evaluations"),
    Collection.ADMINS: CollectionInfo(Admin, None, False, "admins"),
}

CORE_COLLECTIONS = (
    Collection.GROUPS,
    Collection.STUDENTS,
    Collection.TASKS,
    Collection.EVALUATIONS,
)


def parse_documents(model: Type[Document], docs: Sequence[Any]) -> List[Document]:
    """Validate raw documents, skipping (and logging) the ones that do not fit the model"""
    parsed = []
    for doc in docs:
        try:
            parsed.append(model.model_validate(doc))
        except ValidationError as e:
            doc_id = doc.get("id") if isinstance(doc, dict) else None
            logger.warning(f"⚠️ Skipping invalid {model.__name__} document {doc_id}: {e.error_count()} errors")
    return parsed


class CollectionLoader:
    """Cache-first loader owning the context's collection snapshots"""

    def __init__(self, context: AppContext, clock=time.time):
        self.context = context
        self.clock = clock

    @property
    def cache(self):
        return self.context.cache

    @property
    def store(self):
        return self.context.store

    # ==================== READS ====================

    def _snapshot(self, info: CollectionInfo, cached: Any) -> Optional[List[Document]]:
        if not isinstance(cached, list):
            return None
        return parse_documents(info.model, cached)

    def _assign(self, collection: Collection, items: List[Document]) -> None:
        setattr(self.context.collections, COLLECTIONS[collection].attribute, items)
        if collection is Collection.EVALUATIONS:
            self.context.collections.problem_stats = problem_stats(items)

    async def load(self, collection: Union[Collection, str]) -> List[Document]:
        """
        Load one collection, preferring the cache

        Args:
            collection: Collection (or its name)

        Returns:
            Parsed documents, also stored on context.collections

        Raises:
            CollectionLoadError: If the fetch fails and nothing is cached
        """
        collection = Collection(collection)
        info = COLLECTIONS[collection]
        key = collection.cache_key

        lookup = self.cache.lookup(key)
        if lookup.hit:
            items = self._snapshot(info, lookup.data)
            if items is not None:
                logger.debug(f"Cache hit for {key}")
                self._assign(collection, items)
                return items
            self.cache.clear(key)

        try:
            docs = await self.store.get_all(collection.value, order_by=info.order_by, descending=info.descending)
        except StoreError as e:
            stale = self.cache.peek_stale(key)
            items = self._snapshot(info, stale.data) if stale.hit else None
            if items is None:
                logger.error(f"❌ Failed to load {collection.value}: {e}")
                raise CollectionLoadError(collection.value, e) from e
            logger.warning(f"⚠️ Serving cached {collection.value} after fetch failure: {e}")
            self._assign(collection, items)
            return items

        items = parse_documents(info.model, docs)
        self.cache.set(key, [item.model_dump(by_alias=True, mode="json") for item in items])
        self._assign(collection, items)
        logger.info(f"📥 Loaded {len(items)} {collection.value} from store")
        return items

    async def load_all(self, include_admins: bool = False) -> Dict[str, CollectionLoadError]:
        """
        Load every core collection concurrently

        All loads are awaited before returning, so aggregation never sees a
        partial batch. A failed collection keeps its previous snapshot.

        Returns:
            Dictionary mapping collection name to the error it raised (empty on success)
        """
        collections = list(CORE_COLLECTIONS)
        if include_admins:
            collections.append(Collection.ADMINS)

        results = await asyncio.gather(
            *(self.load(collection) for collection in collections),
            return_exceptions=True,
        )

        failures = {}
        for collection, result in zip(collections, results):
            if isinstance(result, CollectionLoadError):
                failures[collection.value] = result
            elif isinstance(result, BaseException):
                raise result
        if failures:
            logger.error(f"❌ Load finished with failures: {', '.join(failures)}")
        return failures

    async def refresh(self, include_admins: bool = False) -> Dict[str, CollectionLoadError]:
        """Reload everything from the store, bypassing (not clearing) the cache"""
        self.cache.begin_force_refresh()
        try:
            return await self.load_all(include_admins=include_admins)
        finally:
            self.cache.end_force_refresh()

    def invalidate(self, collection: Union[Collection, str]) -> None:
        self.cache.clear(Collection(collection).cache_key)

    async def _reload(self, collection: Collection) -> None:
        self.invalidate(collection)
        try:
            await self.load(collection)
        except CollectionLoadError:
            # the mutation itself succeeded; the next read retries the fetch
            logger.warning(f"⚠️ Reload of {collection.value} after mutation failed")

    # ==================== LOOKUPS ====================

    async def _require(self, collection: Collection, doc_id: str) -> Dict[str, Any]:
        doc = await self.store.get(collection.value, doc_id)
        if doc is None:
            raise NotFoundError(f"{collection.value[:-1].capitalize()} {doc_id} not found")
        return doc

    async def student_exists(self, roll: str, academic_group: str, exclude_id: Optional[str] = None) -> bool:
        """True if another student already uses this (roll, academicGroup) pair"""
        docs = await self.store.query(Collection.STUDENTS.value, roll=roll, academicGroup=academic_group)
        return any(doc.get("id") != exclude_id for doc in docs)

    async def find_evaluation(self, task_id: str, group_id: str) -> Optional[Evaluation]:
        docs = await self.store.query(Collection.EVALUATIONS.value, taskId=task_id, groupId=group_id)
        if not docs:
            return None
        return Evaluation.model_validate(docs[0])

    # ==================== GROUPS ====================

    async def add_group(self, body: Dict) -> Group:
        group = normalize_group(body)
        group.created_at = self.clock()
        group.id = await self.store.add(Collection.GROUPS.value, group.to_store())
        await self._reload(Collection.GROUPS)
        logger.info(f"✅ Group added: {group.name} ({group.id})")
        return group

    async def rename_group(self, group_id: str, body: Dict) -> Group:
        group = normalize_group(body)
        await self._require(Collection.GROUPS, group_id)
        await self.store.update(Collection.GROUPS.value, group_id, {"name": group.name})
        await self._reload(Collection.GROUPS)
        group.id = group_id
        return group

    async def delete_group(self, group_id: str) -> None:
        # students keep their groupId and show up as "no group"
        await self.store.delete(Collection.GROUPS.value, group_id)
        await self._reload(Collection.GROUPS)

    # ==================== STUDENTS ====================

    async def add_student(self, body: Dict) -> Student:
        student = normalize_student(body)
        if await self.student_exists(student.roll, student.academic_group):
            raise DuplicateStudentError(
                f"A student with roll {student.roll} already exists in {student.academic_group}"
            )
        fields = student.to_store()
        fields["createdAt"] = self.clock()
        student.id = await self.store.add(Collection.STUDENTS.value, fields)
        await self._reload(Collection.STUDENTS)
        logger.info(f"✅ Student added: {student.name} ({student.id})")
        return student

    async def update_student(self, student_id: str, body: Dict) -> Student:
        current = Student.model_validate(await self._require(Collection.STUDENTS, student_id))
        student = normalize_student(body)

        changed_key = (student.roll, student.academic_group) != (current.roll, current.academic_group)
        if changed_key and await self.student_exists(student.roll, student.academic_group, exclude_id=student_id):
            raise DuplicateStudentError(
                f"A student with roll {student.roll} already exists in {student.academic_group}"
            )

        fields = student.to_store()
        # clearing role / contact must overwrite the stored value
        fields.setdefault("role", None)
        fields.setdefault("contact", None)
        await self.store.update(Collection.STUDENTS.value, student_id, fields)
        await self._reload(Collection.STUDENTS)
        student.id = student_id
        return student

    async def update_student_role(self, student_id: str, role: Optional[str]) -> None:
        role = normalize_role(role)
        await self._require(Collection.STUDENTS, student_id)
        await self.store.update(Collection.STUDENTS.value, student_id, {"role": role})
        await self._reload(Collection.STUDENTS)

    async def delete_student(self, student_id: str) -> None:
        await self.store.delete(Collection.STUDENTS.value, student_id)
        await self._reload(Collection.STUDENTS)

    # ==================== TASKS ====================

    async def add_task(self, body: Dict) -> Task:
        task = normalize_task(body)
        fields = task.to_store()
        fields["createdAt"] = self.clock()
        task.id = await self.store.add(Collection.TASKS.value, fields)
        await self._reload(Collection.TASKS)
        logger.info(f"✅ Task added: {task.name} ({task.id})")
        return task

    async def update_task(self, task_id: str, body: Dict) -> Task:
        task = normalize_task(body)
        await self._require(Collection.TASKS, task_id)
        await self.store.update(Collection.TASKS.value, task_id, task.to_store())
        await self._reload(Collection.TASKS)
        task.id = task_id
        return task

    async def delete_task(self, task_id: str) -> None:
        await self.store.delete(Collection.TASKS.value, task_id)
        await self._reload(Collection.TASKS)

    # ==================== EVALUATIONS ====================

    async def save_evaluation(self, task_id: str, group_id: str, raw_scores: Dict) -> Evaluation:
        """
        Create or update the evaluation of a task for a group

        An existing evaluation for (task_id, group_id) is updated in place;
        otherwise a new one is added.

        Raises:
            NotFoundError: If the task or group does not exist
            ValueError: If a score is out of range
        """
        task = Task.model_validate(await self._require(Collection.TASKS, task_id))
        await self._require(Collection.GROUPS, group_id)
        scores = normalize_scores(raw_scores, task)

        now = self.clock()
        payload = {
            "taskId": task_id,
            "groupId": group_id,
            "scores": {sid: score.model_dump(by_alias=True, mode="json") for sid, score in scores.items()},
            "updatedAt": now,
        }

        existing = await self.find_evaluation(task_id, group_id)
        if existing is not None:
            await self.store.update(Collection.EVALUATIONS.value, existing.id, payload)
            evaluation_id = existing.id
            created_at = existing.created_at
            logger.info(f"✅ Evaluation updated: task={task_id} group={group_id} ({evaluation_id})")
        else:
            payload["createdAt"] = now
            evaluation_id = await self.store.add(Collection.EVALUATIONS.value, payload)
            created_at = now
            logger.info(f"✅ Evaluation created: task={task_id} group={group_id} ({evaluation_id})")

        await self._reload(Collection.EVALUATIONS)
        return Evaluation(
            id=evaluation_id,
            taskId=task_id,
            groupId=group_id,
            scores=scores,
            updatedAt=now,
            createdAt=created_at,
        )

    async def delete_evaluation(self, evaluation_id: str) -> None:
        await self.store.delete(Collection.EVALUATIONS.value, evaluation_id)
        await self._reload(Collection.EVALUATIONS)

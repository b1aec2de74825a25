"""
Tests for the cache-first collection loader and its mutations
"""
import httpx
import pytest

from evaluator.core.cache import DEFAULT_TTL, TTLCache
from evaluator.core.loader import (
    CollectionLoadError, CollectionLoader, DuplicateStudentError, NotFoundError,
)
from evaluator.core.storage import JsonFileStorage
from evaluator.core.store import HttpDocumentStore, InMemoryStore, StoreError
from evaluator.models import Collection, RubricOption
from tests.sample_data import sample_documents


@pytest.mark.asyncio
async def test_load_fetches_then_serves_from_cache(loader, store, context):
    """Two loads within the TTL hit the store once"""
    first = await loader.load(Collection.GROUPS)
    second = await loader.load("groups")

    assert [g.id for g in first] == [g.id for g in second] == ["g1", "g2", "g3"]
    assert store.fetch_counts["groups"] == 1
    assert context.collections.groups == second


@pytest.mark.asyncio
async def test_load_after_expiry_fetches_again(loader, store, clock):
    await loader.load(Collection.TASKS)
    clock.advance(DEFAULT_TTL + 1)
    await loader.load(Collection.TASKS)
    assert store.fetch_counts["tasks"] == 2


@pytest.mark.asyncio
async def test_tasks_ordered_by_date_desc(loader):
    tasks = await loader.load(Collection.TASKS)
    assert [t.id for t in tasks] == ["t2", "t1"]


@pytest.mark.asyncio
async def test_clearing_key_forces_refetch(loader, store, cache):
    """Clearing students_data makes the next load go to the store"""
    await loader.load(Collection.STUDENTS)
    cache.clear("students_data")
    await loader.load(Collection.STUDENTS)
    assert store.fetch_counts["students"] == 2


@pytest.mark.asyncio
async def test_stale_cache_used_when_fetch_fails(loader, store, clock, context):
    """An expired entry is served when the store is down"""
    await loader.load(Collection.GROUPS)
    clock.advance(DEFAULT_TTL + 1)
    store.failing.add("groups")
    context.collections.groups = []

    groups = await loader.load(Collection.GROUPS)
    assert [g.name for g in groups] == ["Alpha", "Beta", "Gamma"]
    assert context.collections.groups == groups


@pytest.mark.asyncio
async def test_load_error_when_nothing_cached(loader, store, context):
    """Fetch failure with no cache raises and leaves the snapshot untouched"""
    store.failing.add("students")
    with pytest.raises(CollectionLoadError) as exc_info:
        await loader.load(Collection.STUDENTS)
    assert exc_info.value.collection == "students"
    assert context.collections.students == []


@pytest.mark.asyncio
async def test_load_all_reports_failures(loader, store, context):
    """One failing collection does not stop the others"""
    store.failing.add("tasks")
    failures = await loader.load_all()

    assert set(failures) == {"tasks"}
    assert len(context.collections.groups) == 3
    assert len(context.collections.students) == 3
    assert len(context.collections.evaluations) == 2
    assert context.collections.tasks == []


@pytest.mark.asyncio
async def test_load_all_recomputes_problem_stats(loader, context):
    await loader.load_all()
    stats = context.collections.problem_stats
    assert stats.total_entries == 3
    assert stats.counts[RubricOption.LEARNED_CAN_WRITE] == 1
    assert stats.counts[RubricOption.LEARNED_CANNOT_WRITE] == 1


@pytest.mark.asyncio
async def test_admins_loaded_only_on_request(loader, store, context):
    await loader.load_all()
    assert store.fetch_counts["admins"] == 0
    await loader.load_all(include_admins=True)
    assert len(context.collections.admins) == 2


@pytest.mark.asyncio
async def test_refresh_bypasses_cache(loader, store, cache):
    """Refresh refetches everything and ends force refresh afterwards"""
    await loader.load_all()
    failures = await loader.refresh()

    assert failures == {}
    assert store.fetch_counts["groups"] == 2
    assert store.fetch_counts["evaluations"] == 2
    assert not cache.force_refresh


@pytest.mark.asyncio
async def test_invalid_documents_are_skipped(loader, store):
    """Documents that do not fit the model are dropped from the snapshot"""
    await store.add("groups", {"createdAt": 1})
    groups = await loader.load(Collection.GROUPS)
    assert len(groups) == 3


# ==================== MUTATIONS ====================

@pytest.mark.asyncio
async def test_add_group_reloads_collection(loader, context, store):
    await loader.load_all()
    group = await loader.add_group({"name": "  Delta  "})

    assert group.name == "Delta"
    assert group.id
    assert "Delta" in [g.name for g in context.collections.groups]
    assert store.fetch_counts["groups"] == 2


@pytest.mark.asyncio
async def test_add_group_rejects_long_name(loader):
    with pytest.raises(ValueError):
        await loader.add_group({"name": "x" * 51})


@pytest.mark.asyncio
async def test_rename_missing_group(loader):
    with pytest.raises(NotFoundError):
        await loader.rename_group("nope", {"name": "Ghost"})


@pytest.mark.asyncio
async def test_add_student_duplicate_roll(loader):
    """Same roll in the same academic group is rejected"""
    body = {"name": "Copy", "roll": "01", "gender": "male", "groupId": "g2",
            "academicGroup": "Science", "session": "2024-25"}
    with pytest.raises(DuplicateStudentError):
        await loader.add_student(body)


@pytest.mark.asyncio
async def test_add_student_same_roll_other_academic_group(loader, context):
    body = {"name": "Dipu", "roll": "01", "gender": "male", "groupId": "g2",
            "academicGroup": "Arts", "session": "2024-25"}
    student = await loader.add_student(body)
    assert student.id in [s.id for s in context.collections.students]


@pytest.mark.asyncio
async def test_update_student_keeps_own_roll(loader, store):
    """Updating a student without changing roll is not a duplicate of itself"""
    body = {"name": "Anika R.", "roll": "01", "gender": "female", "groupId": "g2",
            "academicGroup": "Science", "session": "2024-25"}
    student = await loader.update_student("s1", body)

    assert student.group_id == "g2"
    doc = await store.get("students", "s1")
    assert doc["name"] == "Anika R."
    assert doc["role"] is None


@pytest.mark.asyncio
async def test_update_student_to_taken_roll(loader):
    body = {"name": "Anika", "roll": "02", "gender": "female", "groupId": "g1",
            "academicGroup": "Science", "session": "2024-25"}
    with pytest.raises(DuplicateStudentError):
        await loader.update_student("s1", body)


@pytest.mark.asyncio
async def test_update_student_role(loader, store):
    await loader.update_student_role("s3", "reporter")
    assert (await store.get("students", "s3"))["role"] == "reporter"

    await loader.update_student_role("s3", "")
    assert (await store.get("students", "s3"))["role"] is None

    with pytest.raises(ValueError):
        await loader.update_student_role("s3", "captain")


@pytest.mark.asyncio
async def test_delete_group_keeps_students(loader, context):
    await loader.delete_group("g1")
    await loader.load_all()
    assert "g1" not in [g.id for g in context.collections.groups]
    assert len(context.collections.students) == 3


@pytest.mark.asyncio
async def test_save_evaluation_creates_then_updates(loader, store, context):
    """Saving twice for the same task and group keeps one evaluation"""
    scores = {"s3": {"taskScore": 30, "teamworkScore": 6, "optionMarks": ["weekly_homework"]}}
    created = await loader.save_evaluation("t1", "g2", scores)

    assert created.scores["s3"].option_marks["weekly_homework"].selected
    assert len(created.scores["s3"].option_marks) == len(RubricOption)

    updated = await loader.save_evaluation("t1", "g2", {"s3": {"taskScore": 10}})
    assert updated.id == created.id
    assert updated.created_at == created.created_at

    matches = await store.query("evaluations", taskId="t1", groupId="g2")
    assert len(matches) == 1
    assert matches[0]["scores"]["s3"]["taskScore"] == 10
    assert len(context.collections.evaluations) == 3


@pytest.mark.asyncio
async def test_save_evaluation_rejects_score_above_max(loader):
    """taskScore is bounded by the task's maxScore"""
    with pytest.raises(ValueError):
        await loader.save_evaluation("t1", "g1", {"s1": {"taskScore": 51}})


@pytest.mark.asyncio
async def test_save_evaluation_unknown_task(loader):
    with pytest.raises(NotFoundError):
        await loader.save_evaluation("missing", "g1", {"s1": {"taskScore": 1}})


@pytest.mark.asyncio
async def test_delete_evaluation_updates_stats(loader, context):
    await loader.load_all()
    await loader.delete_evaluation("e1")
    assert [e.id for e in context.collections.evaluations] == ["e2"]
    assert context.collections.problem_stats.total_entries == 1




class ReadOnlyOutageStore(InMemoryStore):
    """Writes succeed while every collection read fails"""

    async def get_all(self, collection, order_by=None, descending=False):
        raise StoreError(f"{collection} unavailable")


@pytest.mark.asyncio
async def test_mutation_survives_failed_reload(context):
    """A reload failure after a successful write is logged, not raised"""
    context.store = ReadOnlyOutageStore(sample_documents())
    loader = CollectionLoader(context)

    task = await loader.add_task({"name": "Quiz", "maxScore": 20})
    assert await context.store.get("tasks", task.id) is not None


@pytest.mark.asyncio
async def test_load_succeeds_when_cache_file_is_unwritable(context, tmp_path, clock):
    """A failing cache write does not fail a successful fetch"""
    blocker = tmp_path / "blocker"
    blocker.write_text("", encoding="utf-8")
    context.cache = TTLCache(JsonFileStorage(str(blocker / "cache.json")), clock=clock)
    loader = CollectionLoader(context, clock=clock)

    groups = await loader.load(Collection.GROUPS)
    assert [g.id for g in groups] == ["g1", "g2", "g3"]

    failures = await loader.load_all()
    assert failures == {}


@pytest.mark.asyncio
async def test_stale_cache_used_when_store_returns_non_json(context, clock):
    """A 200 response that is not JSON counts as a fetch failure"""
    responses = [
        httpx.Response(200, json=[{"id": "g1", "name": "Alpha"}]),
        httpx.Response(200, text="<html>gateway</html>"),
    ]
    store = HttpDocumentStore("http://store.test/api")
    store._http = httpx.AsyncClient(
        base_url="http://store.test/api",
        transport=httpx.MockTransport(lambda request: responses.pop(0)),
    )
    context.store = store
    loader = CollectionLoader(context, clock=clock)

    await loader.load(Collection.GROUPS)
    clock.advance(DEFAULT_TTL + 1)
    groups = await loader.load(Collection.GROUPS)
    await store.close()

    assert [g.id for g in groups] == ["g1"]

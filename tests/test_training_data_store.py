import asyncio
import json
from datetime import datetime, timedelta, timezone

import pytest

from conftest import application, populate
from success_signal_ai.errors import InsufficientDataError, InvalidRecordError, NotFoundError, StorageTimeoutError
from success_signal_ai.schemas.application import OutcomeStatus
from success_signal_ai.storage import InMemoryKeyValueStore, JsonFileKeyValueStore, TrainingDataStore, train_test_split


def test_record_application_starts_pending(store, job_posting, resume):
    async def scenario():
        record_id = await store.record_application(job_posting, resume, {"applicationDate": "2024-01-10T10:00:00Z"})
        record = await store.get_record(record_id)
        assert record_id.startswith("app_")
        assert record.outcome.status is OutcomeStatus.PENDING
        assert record.outcome.updated_at is None
        assert record.job_posting.title == "Senior Backend Engineer"
        assert record.resume.skills == ["python", "sql", "docker", "git", "linux"]
        assert await store.get_labeled_records() == []

    asyncio.run(scenario())


def test_minimum_samples_for_dataset(store):
    async def scenario():
        await populate(store, 29)
        with pytest.raises(InsufficientDataError) as exc:
            await store.get_training_dataset()
        assert exc.value.available == 29

        job, res, ctx = application(29, success=False)
        record_id = await store.record_application(job, res, ctx)
        await store.update_application_outcome(record_id, {"status": "rejected"})
        dataset = await store.get_training_dataset()
        assert len(dataset.features) == len(dataset.labels) == len(dataset.ids) == 30
        assert dataset.labels.count(1) == 15
        assert dataset.metadata.success_rate == 0.5
        assert dataset.metadata.record_count == {"interview": 15, "reject": 15, "offer": 0}

    asyncio.run(scenario())


def test_pending_records_are_not_training_data(store):
    async def scenario():
        await populate(store, 40, status_for=lambda i: "interview" if i < 20 else None)
        with pytest.raises(InsufficientDataError):
            await store.get_training_dataset()

    asyncio.run(scenario())


def test_outcome_update_is_idempotent(store):
    async def scenario():
        (record_id,) = await populate(store, 1, status_for=lambda i: None)
        first = await store.update_application_outcome(record_id, {"status": "interview", "notes": "phone screen"})
        again = await store.update_application_outcome(record_id, {"status": "interview", "notes": "phone screen"})
        assert again.outcome.updated_at == first.outcome.updated_at

        final = await store.update_application_outcome(record_id, {"status": "reject"})
        assert final.outcome.status is OutcomeStatus.REJECT
        assert final.outcome.notes is None
        assert (await store.get_record(record_id)).label == 0
        # snapshots never change
        assert final.job_posting == first.job_posting
        assert final.timestamp == first.timestamp

    asyncio.run(scenario())


def test_outcome_update_errors(store):
    async def scenario():
        with pytest.raises(NotFoundError):
            await store.update_application_outcome("app_missing", {"status": "offer"})
        assert store._record_locks == {}
        (record_id,) = await populate(store, 1, status_for=lambda i: None)
        with pytest.raises(InvalidRecordError):
            await store.update_application_outcome(record_id, {"status": "maybe"})
        with pytest.raises(InvalidRecordError):
            await store.update_application_outcome(record_id, {})

    asyncio.run(scenario())


def test_concurrent_updates_last_write_wins(store):
    async def scenario():
        (record_id,) = await populate(store, 1, status_for=lambda i: None)
        await asyncio.gather(
            store.update_application_outcome(record_id, {"status": "interview"}),
            store.update_application_outcome(record_id, {"status": "offer"}),
        )
        record = await store.get_record(record_id)
        assert record.outcome.status is OutcomeStatus.OFFER
        assert store._record_locks == {}
        assert store._record_lock_users == {}

    asyncio.run(scenario())


def test_record_queries(store):
    async def scenario():
        ids = await populate(store, 6)
        all_records = await store.get_all_records()
        assert [r.id for r in all_records] == ids
        interviews = await store.get_records_by_outcome("interview")
        assert [r.id for r in interviews] == ids[0::2]

        now = datetime.now(timezone.utc)
        in_range = await store.get_records_by_date_range(now - timedelta(hours=1), now + timedelta(hours=1))
        assert len(in_range) == 6
        assert await store.get_records_by_date_range(now - timedelta(days=3), now - timedelta(days=2)) == []

        await store.clear_all_data()
        assert await store.get_all_records() == []

    asyncio.run(scenario())


def test_cleaning_removes_invalid_and_duplicates(store):
    async def scenario():
        await populate(store, 4)
        job, res, ctx = application(0, success=True)
        duplicate_id = await store.record_application(job, res, ctx)
        await store.update_application_outcome(duplicate_id, {"status": "interview"})
        short_id = await store.record_application({"title": "Analyst", "description": "Short."}, res, ctx)
        await store.update_application_outcome(short_id, {"status": "reject"})

        result = await store.clean_data_for_training()
        kept = [r.id for r in result.records]
        assert duplicate_id not in kept
        assert short_id not in kept
        assert len(kept) == 4
        assert result.stats.invalid == 1
        assert result.stats.duplicates == 1
        assert result.removed_count == 2

    asyncio.run(scenario())


def test_data_quality_report(store):
    async def scenario():
        ids = await populate(store, 4)
        job, res, ctx = application(0, success=True)
        duplicate_id = await store.record_application(job, res, ctx)
        await store.update_application_outcome(duplicate_id, {"status": "interview"})
        job, res, ctx = application(10, success=True)
        no_skills_id = await store.record_application(job, {**res, "skills": []}, ctx)
        await store.update_application_outcome(no_skills_id, {"status": "interview"})

        report = await store.validate_data_quality()
        assert not report.is_valid
        assert report.total_records == 6
        assert report.total_issues == 2
        assert report.issues.missing_skills == [no_skills_id]
        assert report.issues.duplicates[0].duplicate_of == ids[0]
        assert report.completeness == pytest.approx(1 - 2 / 36)

    asyncio.run(scenario())


def test_dataset_statistics(store):
    statuses = ["interview", "reject", "offer", None, "withdrawn", "reject"]

    async def scenario():
        await populate(store, len(statuses), status_for=lambda i: statuses[i])
        stats = await store.get_dataset_statistics()
        assert stats.total_applications == 6
        assert stats.completed_applications == 4
        assert stats.pending_applications == 1
        assert stats.withdrawn_applications == 1
        assert stats.success_rate == 0.5
        assert stats.interview_rate == pytest.approx(1 / 6)
        assert stats.rejection_rate == pytest.approx(2 / 6)
        assert not stats.ready_for_training
        assert stats.samples_needed == 26
        assert stats.class_balance.success == 0.5

    asyncio.run(scenario())


def test_success_rate_by_feature(store):
    async def scenario():
        await populate(store, 30)
        bins = await store.get_success_rate_by_feature("required_skills_coverage")
        assert [(b.bin_start, b.count, b.success_rate) for b in bins] == [(0.0, 15, 0.0), (1.0, 15, 1.0)]
        with pytest.raises(ValueError):
            await store.get_success_rate_by_feature("shoe_size")

    asyncio.run(scenario())


def test_export_import(store):
    target = TrainingDataStore(InMemoryKeyValueStore())

    async def scenario():
        await populate(store, 3)
        payload = await store.export_training_data()
        assert json.loads(payload)["record_count"] == 3

        assert await target.import_training_data(payload) == 3
        assert await target.import_training_data(payload) == 0
        assert await target.get_all_records() == await store.get_all_records()

    asyncio.run(scenario())


@pytest.mark.parametrize(
    "payload",
    ["not json", json.dumps([1, 2]), json.dumps({"records": "nope"}), json.dumps({"records": [{"resume": {}}]})],
)
def test_import_rejects_bad_payloads(store, payload):
    with pytest.raises(InvalidRecordError):
        asyncio.run(store.import_training_data(payload))


def test_train_test_split():
    features = list(range(50))
    labels = [i % 2 for i in range(50)]
    split = train_test_split(features, labels, ratio=0.2, seed=42)
    assert len(split.train_indices) == 40
    assert len(split.val_indices) == 10
    assert set(split.train_indices).isdisjoint(split.val_indices)
    assert sorted(split.train_indices + split.val_indices) == features
    assert split.train_labels == [labels[i] for i in split.train_indices]

    again = train_test_split(features, labels, ratio=0.2, seed=42)
    assert again.train_indices == split.train_indices

    with pytest.raises(ValueError):
        train_test_split(features, labels[:-1])
    with pytest.raises(ValueError):
        train_test_split(features, labels, ratio=1.0)


def test_json_file_store(tmp_path):
    path = tmp_path / "kv.json"

    async def scenario():
        kv = JsonFileKeyValueStore(path)
        await kv.set("record:a", {"x": 1})
        await kv.set("record:b", [1, 2])
        await kv.set("other", "v")
        await kv.set("short", "lived", ttl=0.01)
        await asyncio.sleep(0.05)

        reopened = JsonFileKeyValueStore(path)
        assert await reopened.get("record:a") == {"x": 1}
        assert await reopened.keys("record:") == ["record:a", "record:b"]
        assert await reopened.get_many(["record:b", "missing", "short"]) == {"record:b": [1, 2]}
        assert await reopened.get("short", "gone") == "gone"

        await reopened.delete("record:a")
        assert await reopened.get("record:a") is None
        await reopened.clear()
        assert await reopened.keys() == []

    asyncio.run(scenario())


def test_store_over_json_file(tmp_path):
    async def scenario():
        store = TrainingDataStore(JsonFileKeyValueStore(tmp_path / "data.json"))
        ids = await populate(store, 2)
        reopened = TrainingDataStore(JsonFileKeyValueStore(tmp_path / "data.json"))
        assert [r.id for r in await reopened.get_all_records()] == ids

    asyncio.run(scenario())


class SlowStore(InMemoryKeyValueStore):
    async def _get(self, key, default):
        await asyncio.sleep(1)
        return default


def test_storage_timeout():
    store = TrainingDataStore(SlowStore(timeout=0.05))
    with pytest.raises(StorageTimeoutError):
        asyncio.run(store.get_all_records())

"""Training data store: application records, outcome labeling, cleaning and dataset preparation."""

import asyncio
import json
import random
from contextlib import asynccontextmanager
from collections import defaultdict
from datetime import datetime
from typing import Any, AsyncIterator, Dict, List, Optional, Sequence, Tuple

from pydantic import ValidationError

from success_signal_ai.config import MIN_DESCRIPTION_LENGTH, MIN_TRAINING_SAMPLES, TEST_SPLIT_RATIO
from success_signal_ai.errors import InsufficientDataError, InvalidRecordError, NotFoundError
from success_signal_ai.features.builder import coerce_model, extract_features
from success_signal_ai.schemas.application import (
    RECORD_VERSION,
    ApplicationContext,
    Outcome,
    OutcomeStatus,
    OutcomeUpdate,
    TrainingRecord,
)
from success_signal_ai.schemas.dataset import (
    ClassBalance,
    CleaningResult,
    CleaningStats,
    DataQualityReport,
    DatasetMetadata,
    DatasetStatistics,
    DuplicateIssue,
    FeatureBin,
    QualityIssues,
    SplitResult,
    TrainingDataExport,
    TrainingDataset,
)
from success_signal_ai.schemas.feature_vector import FEATURE_SCHEMA
from success_signal_ai.schemas.job_posting import JobPosting
from success_signal_ai.schemas.resume import Resume
from success_signal_ai.storage.kv_store import InMemoryKeyValueStore, KeyValueStore
from success_signal_ai.utils.date_parser import ensure_utc, utc_now
from success_signal_ai.utils.helpers import deduplicate_by_key, generate_application_id
from success_signal_ai.utils.logger import get_logger

logger = get_logger(__name__)

RECORD_PREFIX = "record:"
INDEX_KEY = "records:index"
QUALITY_CHECKS_PER_RECORD = 6
BIN_WIDTH = 0.2


def duplicate_key(record: TrainingRecord) -> Tuple[str, str, str]:
    """(title, company, application day) identifying the same application."""
    job = record.job_posting
    day = record.application_date.date().isoformat()
    return (job.title.strip().lower(), job.company.strip().lower(), day)


def is_trainable(record: TrainingRecord) -> bool:
    """Has a title, a real description, work history, skills and a dated outcome."""
    job = record.job_posting
    return bool(
        job.title.strip()
        and len(job.description) >= MIN_DESCRIPTION_LENGTH
        and record.resume.experience
        and record.resume.skills
        and record.outcome.updated_at is not None
    )


def train_test_split(
    features: Sequence[Any],
    labels: Sequence[int],
    ratio: float = TEST_SPLIT_RATIO,
    seed: Optional[int] = None,
) -> SplitResult:
    """
    Shuffle indices (Fisher-Yates) and cut at floor(n * (1 - ratio)). The two index sets are
    disjoint and together cover every input index.
    """
    if len(features) != len(labels):
        raise ValueError(f"{len(features)} features but {len(labels)} labels")
    if not 0.0 <= ratio < 1.0:
        raise ValueError(f"ratio must be in [0, 1), got {ratio}")
    indices = list(range(len(features)))
    rng = random.Random(seed)
    for i in range(len(indices) - 1, 0, -1):
        j = rng.randint(0, i)
        indices[i], indices[j] = indices[j], indices[i]

    boundary = int(len(indices) * (1 - ratio))
    train_idx, val_idx = indices[:boundary], indices[boundary:]
    return SplitResult(
        train_features=[features[i] for i in train_idx],
        train_labels=[int(labels[i]) for i in train_idx],
        val_features=[features[i] for i in val_idx],
        val_labels=[int(labels[i]) for i in val_idx],
        train_indices=train_idx,
        val_indices=val_idx,
    )


class TrainingDataStore:
    """
    Append-only log of application records over an async key-value store. Only the outcome of
    a record changes after it is written; updates to one record are serialised by a per-id lock
    that is dropped once no update holds or waits on it.
    """

    def __init__(self, kv: Optional[KeyValueStore] = None, min_samples: int = MIN_TRAINING_SAMPLES):
        self.kv = kv or InMemoryKeyValueStore()
        self.min_samples = min_samples
        self._index_lock = asyncio.Lock()
        self._record_locks: Dict[str, asyncio.Lock] = {}
        self._record_lock_users: Dict[str, int] = {}

    # ---- writes ----

    async def record_application(
        self,
        job_posting: Any,
        resume: Any,
        context: Any = None,
    ) -> str:
        """Snapshot job, resume and context with a pending outcome. Returns the new record id."""
        record = TrainingRecord(
            id=generate_application_id(),
            job_posting=coerce_model(JobPosting, job_posting),
            resume=coerce_model(Resume, resume),
            application_context=coerce_model(ApplicationContext, context),
            outcome=Outcome(status=OutcomeStatus.PENDING, updated_at=None),
            version=RECORD_VERSION,
        )
        await self._append([record])
        logger.info("Recorded application %s: %s at %s", record.id, record.job_posting.title, record.job_posting.company)
        return record.id

    async def update_application_outcome(self, application_id: str, outcome: Any) -> TrainingRecord:
        """
        Replace the outcome of a record. Raises NotFoundError for an unknown id and
        InvalidRecordError for a malformed outcome. Re-applying the current outcome changes nothing.
        """
        try:
            update = outcome if isinstance(outcome, OutcomeUpdate) else OutcomeUpdate.model_validate(outcome)
        except ValidationError as e:
            raise InvalidRecordError(f"Invalid outcome for {application_id}: {e}") from e

        async with self._record_lock(application_id):
            record = await self.get_record(application_id)
            if record is None:
                raise NotFoundError(f"Application {application_id} not found")
            if record.outcome.same_as(update):
                logger.debug("Outcome for %s unchanged", application_id)
                return record

            fields = {name: getattr(update, name) for name in OutcomeUpdate.model_fields}
            new_outcome = Outcome(**fields, updated_at=utc_now())
            updated = record.model_copy(update={"outcome": new_outcome})
            await self.kv.set(RECORD_PREFIX + application_id, updated.model_dump(mode="json"))
        logger.info("Updated outcome for %s: %s", application_id, update.status.value)
        return updated

    @asynccontextmanager
    async def _record_lock(self, application_id: str) -> AsyncIterator[None]:
        lock = self._record_locks.setdefault(application_id, asyncio.Lock())
        self._record_lock_users[application_id] = self._record_lock_users.get(application_id, 0) + 1
        try:
            async with lock:
                yield
        finally:
            self._record_lock_users[application_id] -= 1
            if not self._record_lock_users[application_id]:
                del self._record_lock_users[application_id]
                del self._record_locks[application_id]

    async def _append(self, records: List[TrainingRecord]) -> None:
        async with self._index_lock:
            index = await self.kv.get(INDEX_KEY, [])
            for record in records:
                await self.kv.set(RECORD_PREFIX + record.id, record.model_dump(mode="json"))
                index.append(record.id)
            await self.kv.set(INDEX_KEY, index)

    async def clear_all_data(self) -> None:
        async with self._index_lock:
            index = await self.kv.get(INDEX_KEY, [])
            for record_id in index:
                await self.kv.delete(RECORD_PREFIX + record_id)
            await self.kv.delete(INDEX_KEY)
        logger.info("Cleared %s training records", len(index))

    # ---- reads ----

    async def get_record(self, application_id: str) -> Optional[TrainingRecord]:
        data = await self.kv.get(RECORD_PREFIX + application_id)
        return TrainingRecord.model_validate(data) if data is not None else None

    async def get_all_records(self) -> List[TrainingRecord]:
        """All records in insertion order."""
        index = await self.kv.get(INDEX_KEY, [])
        data = await self.kv.get_many([RECORD_PREFIX + i for i in index])
        return [
            TrainingRecord.model_validate(data[RECORD_PREFIX + i])
            for i in index
            if RECORD_PREFIX + i in data
        ]

    async def get_labeled_records(self) -> List[TrainingRecord]:
        """Records whose outcome is interview, offer or reject."""
        return [r for r in await self.get_all_records() if r.outcome.status.is_labeled]

    async def get_records_by_outcome(self, status: Any) -> List[TrainingRecord]:
        wanted = OutcomeStatus.parse(status)
        return [r for r in await self.get_all_records() if r.outcome.status is wanted]

    async def get_records_by_date_range(self, start: datetime, end: datetime) -> List[TrainingRecord]:
        start, end = ensure_utc(start), ensure_utc(end)
        return [r for r in await self.get_all_records() if start <= r.timestamp <= end]

    # ---- datasets ----

    async def get_training_dataset(self, records: Optional[List[TrainingRecord]] = None) -> TrainingDataset:
        """
        Features and labels for labeled records (or the given records). Raises InsufficientDataError
        when fewer than min_samples records are labeled.
        """
        if records is None:
            records = await self.get_labeled_records()
        else:
            records = [r for r in records if r.outcome.status.is_labeled]
        if len(records) < self.min_samples:
            raise InsufficientDataError(len(records), self.min_samples)

        features, labels, ids = [], [], []
        skipped = 0
        for record in records:
            try:
                vector = extract_features(
                    record.job_posting,
                    record.resume,
                    record.application_context,
                    now=record.application_date,
                )
            except Exception:
                skipped += 1
                logger.exception("Failed to extract features for record %s", record.id)
                continue
            features.append(vector)
            labels.append(record.label)
            ids.append(record.id)

        successes = sum(labels)
        success_rate = successes / len(labels) if labels else 0.0
        counts = {s.value: 0 for s in (OutcomeStatus.INTERVIEW, OutcomeStatus.REJECT, OutcomeStatus.OFFER)}
        for record in records:
            counts[record.outcome.status.value] += 1

        logger.info("Prepared %s training samples (success rate %.2f)", len(features), success_rate)
        return TrainingDataset(
            features=features,
            labels=labels,
            ids=ids,
            metadata=DatasetMetadata(
                total_records=len(records),
                success_rate=success_rate,
                class_balance=min(success_rate, 1 - success_rate) if labels else 0.0,
                record_count=counts,
                skipped=skipped,
            ),
        )

    def train_test_split(
        self,
        features: Sequence[Any],
        labels: Sequence[int],
        ratio: float = TEST_SPLIT_RATIO,
        seed: Optional[int] = None,
    ) -> SplitResult:
        return train_test_split(features, labels, ratio, seed)

    async def clean_data_for_training(self) -> CleaningResult:
        """Labeled records that pass is_trainable, de-duplicated by (title, company, day), first kept."""
        records = await self.get_labeled_records()
        valid = [r for r in records if is_trainable(r)]
        deduplicated = deduplicate_by_key(valid, duplicate_key)

        invalid = len(records) - len(valid)
        duplicates = len(valid) - len(deduplicated)
        logger.info("Cleaned data: %s -> %s records (%s invalid, %s duplicates)", len(records), len(deduplicated), invalid, duplicates)
        return CleaningResult(
            records=deduplicated,
            removed_count=invalid + duplicates,
            stats=CleaningStats(
                total=len(records),
                cleaned=len(deduplicated),
                removed=invalid + duplicates,
                invalid=invalid,
                duplicates=duplicates,
            ),
        )

    async def validate_data_quality(self) -> DataQualityReport:
        records = await self.get_labeled_records()
        issues = QualityIssues()
        seen: Dict[Tuple[str, str, str], str] = {}
        for record in records:
            job = record.job_posting
            if not job.title.strip():
                issues.missing_job_title.append(record.id)
            if len(job.description) < MIN_DESCRIPTION_LENGTH:
                issues.missing_job_description.append(record.id)
            if not record.resume.experience:
                issues.missing_resume.append(record.id)
            if not record.resume.skills:
                issues.missing_skills.append(record.id)
            if record.outcome.updated_at is None:
                issues.incomplete_outcome.append(record.id)
            key = duplicate_key(record)
            if key in seen:
                issues.duplicates.append(DuplicateIssue(id=record.id, duplicate_of=seen[key]))
            else:
                seen[key] = record.id

        total_issues = issues.count()
        checks = len(records) * QUALITY_CHECKS_PER_RECORD
        return DataQualityReport(
            is_valid=total_issues == 0,
            total_records=len(records),
            total_issues=total_issues,
            issues=issues,
            completeness=1 - total_issues / checks if checks else 1.0,
            recommendation=(
                "Data quality is good, ready for training"
                if total_issues == 0
                else "Data quality issues detected, review and clean data before training"
            ),
        )

    async def get_dataset_statistics(self) -> DatasetStatistics:
        records = await self.get_all_records()
        outcomes = {s.value: 0 for s in OutcomeStatus}
        for record in records:
            outcomes[record.outcome.status.value] += 1

        successes = outcomes["interview"] + outcomes["offer"]
        failures = outcomes["reject"]
        completed = successes + failures
        total = len(records)

        def rate(count: int) -> float:
            return count / total if total else 0.0

        return DatasetStatistics(
            total_applications=total,
            completed_applications=completed,
            pending_applications=outcomes["pending"],
            withdrawn_applications=outcomes["withdrawn"],
            outcomes=outcomes,
            success_rate=successes / completed if completed else 0.0,
            interview_rate=rate(outcomes["interview"]),
            offer_rate=rate(outcomes["offer"]),
            rejection_rate=rate(outcomes["reject"]),
            ready_for_training=completed >= self.min_samples,
            samples_needed=max(0, self.min_samples - completed),
            class_balance=ClassBalance(success=successes / completed, failure=failures / completed) if completed else None,
        )

    async def get_success_rate_by_feature(self, feature_name: str) -> List[FeatureBin]:
        """Success rate per 0.2-wide bin of one feature's value."""
        if feature_name not in FEATURE_SCHEMA:
            raise ValueError(f"Unknown feature: {feature_name}")
        dataset = await self.get_training_dataset()
        bins: Dict[float, List[int]] = defaultdict(lambda: [0, 0])
        for vector, label in zip(dataset.features, dataset.labels):
            start = round(int(getattr(vector, feature_name) / BIN_WIDTH) * BIN_WIDTH, 6)
            bins[start][0] += 1
            bins[start][1] += label
        return [
            FeatureBin(bin_start=start, bin_end=round(start + BIN_WIDTH, 6), count=total, success_rate=success / total)
            for start, (total, success) in sorted(bins.items())
        ]

    # ---- import / export ----

    async def export_training_data(self) -> str:
        records = await self.get_all_records()
        export = TrainingDataExport(
            version=RECORD_VERSION,
            exported_at=utc_now(),
            record_count=len(records),
            records=records,
        )
        return export.model_dump_json(indent=2)

    async def import_training_data(self, payload: str) -> int:
        """Add records from an export; ids already present are skipped. Returns the number added."""
        try:
            data = json.loads(payload)
        except (TypeError, ValueError) as e:
            raise InvalidRecordError(f"Import payload is not valid JSON: {e}") from e
        if not isinstance(data, dict) or not isinstance(data.get("records"), list):
            raise InvalidRecordError("Invalid import format: expected an object with a 'records' list")

        parsed: List[TrainingRecord] = []
        for i, raw in enumerate(data["records"]):
            try:
                parsed.append(TrainingRecord.model_validate(raw))
            except ValidationError as e:
                raise InvalidRecordError(f"Invalid record at position {i}: {e}") from e

        index = set(await self.kv.get(INDEX_KEY, []))
        new_records = deduplicate_by_key([r for r in parsed if r.id not in index], lambda r: r.id)
        if not new_records:
            logger.info("No new records to import")
            return 0
        await self._append(new_records)
        logger.info("Imported %s new records", len(new_records))
        return len(new_records)

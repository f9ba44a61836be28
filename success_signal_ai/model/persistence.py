"""Atomic on-disk persistence of model weights, feature stats and metadata."""

import asyncio
import json
import os
import shutil
import threading
import uuid
from pathlib import Path
from typing import Dict, NamedTuple, Optional

import torch

from success_signal_ai.config import MODEL_DIR, STORAGE_TIMEOUT_SECONDS
from success_signal_ai.errors import ModelPersistenceError, StorageTimeoutError
from success_signal_ai.schemas.feature_vector import FEATURE_COUNT, FEATURE_SCHEMA, FEATURE_SCHEMA_VERSION
from success_signal_ai.schemas.training import FeatureStats, ModelMetadata
from success_signal_ai.utils.logger import get_logger

logger = get_logger(__name__)

WEIGHTS_FILE = "weights.pt"
METADATA_FILE = "model.json"


class StoredModel(NamedTuple):
    state_dict: Dict[str, torch.Tensor]
    metadata: ModelMetadata
    feature_stats: FeatureStats


class ModelStore:
    """
    Stores one model as a directory holding weights.pt and model.json.
    Saves write a sibling temp directory first and then swap it in, so weights and stats
    are always replaced together and a failed save leaves the previous model in place.
    """

    def __init__(self, model_dir: Optional[Path] = None, timeout: float = STORAGE_TIMEOUT_SECONDS):
        self.model_dir = Path(model_dir) if model_dir is not None else MODEL_DIR
        self.timeout = timeout
        # Guards the cancelled check and the directory swap in _write
        self._commit_lock = threading.Lock()

    def exists(self) -> bool:
        return (self.model_dir / WEIGHTS_FILE).is_file() and (self.model_dir / METADATA_FILE).is_file()

    async def save(
        self,
        state_dict: Dict[str, torch.Tensor],
        metadata: ModelMetadata,
        feature_stats: FeatureStats,
    ) -> None:
        """
        Raises StorageTimeoutError only when nothing was swapped in. A write that finishes its
        swap after the deadline counts as saved, so the caller's view matches the disk.
        """
        cancelled = threading.Event()
        committed = threading.Event()
        try:
            await asyncio.wait_for(
                asyncio.to_thread(self._write, state_dict, metadata, feature_stats, cancelled, committed),
                timeout=self.timeout,
            )
        except asyncio.TimeoutError as e:
            with self._commit_lock:
                cancelled.set()
            if not committed.is_set():
                raise StorageTimeoutError(
                    f"Saving model to {self.model_dir} timed out after {self.timeout}s"
                ) from e
            logger.warning("Model save to %s outlived the %ss timeout but was committed", self.model_dir, self.timeout)
        except OSError as e:
            raise ModelPersistenceError(f"Failed to save model to {self.model_dir}: {e}") from e
        logger.info("Model saved to %s", self.model_dir)

    async def load(self) -> Optional[StoredModel]:
        """Stored model, or None if nothing has been saved. Raises ModelPersistenceError if unreadable."""
        if not self.exists():
            return None
        try:
            return await asyncio.wait_for(asyncio.to_thread(self._read), timeout=self.timeout)
        except asyncio.TimeoutError as e:
            raise StorageTimeoutError(f"Loading model from {self.model_dir} timed out after {self.timeout}s") from e

    async def delete(self) -> None:
        try:
            await asyncio.wait_for(asyncio.to_thread(shutil.rmtree, self.model_dir, True), timeout=self.timeout)
        except asyncio.TimeoutError as e:
            raise StorageTimeoutError(f"Deleting model from {self.model_dir} timed out after {self.timeout}s") from e
        logger.info("Model deleted from %s", self.model_dir)

    def _write(
        self,
        state_dict: Dict[str, torch.Tensor],
        metadata: ModelMetadata,
        feature_stats: FeatureStats,
        cancelled: threading.Event,
        committed: Optional[threading.Event] = None,
    ) -> None:
        parent = self.model_dir.parent
        parent.mkdir(parents=True, exist_ok=True)
        token = uuid.uuid4().hex[:8]
        tmp_dir = parent / f".{self.model_dir.name}.tmp-{token}"
        backup_dir = parent / f".{self.model_dir.name}.bak-{token}"
        tmp_dir.mkdir()
        try:
            torch.save(state_dict, tmp_dir / WEIGHTS_FILE)
            payload = {
                "metadata": metadata.model_dump(mode="json"),
                "feature_stats": feature_stats.model_dump(mode="json"),
            }
            with open(tmp_dir / METADATA_FILE, "w", encoding="utf-8") as f:
                json.dump(payload, f, indent=2)
                f.flush()
                os.fsync(f.fileno())
            with self._commit_lock:
                if cancelled.is_set():
                    raise ModelPersistenceError("Save cancelled after timeout")
                had_previous = self.model_dir.exists()
                if had_previous:
                    os.replace(self.model_dir, backup_dir)
                try:
                    os.replace(tmp_dir, self.model_dir)
                except OSError:
                    if had_previous:
                        os.replace(backup_dir, self.model_dir)
                    raise
                if committed is not None:
                    committed.set()
            if had_previous:
                shutil.rmtree(backup_dir, ignore_errors=True)
        finally:
            if tmp_dir.exists():
                shutil.rmtree(tmp_dir, ignore_errors=True)

    def _read(self) -> StoredModel:
        try:
            with open(self.model_dir / METADATA_FILE, encoding="utf-8") as f:
                payload = json.load(f)
            metadata = ModelMetadata.model_validate(payload["metadata"])
            stats = FeatureStats.model_validate(payload["feature_stats"])
            state_dict = torch.load(self.model_dir / WEIGHTS_FILE, map_location="cpu", weights_only=True)
        except (OSError, ValueError, KeyError, RuntimeError) as e:
            raise ModelPersistenceError(f"Failed to load model from {self.model_dir}: {e}") from e

        if metadata.feature_schema_version != FEATURE_SCHEMA_VERSION or metadata.feature_names != list(FEATURE_SCHEMA):
            raise ModelPersistenceError(
                f"Stored model uses feature schema {metadata.feature_schema_version}, "
                f"expected {FEATURE_SCHEMA_VERSION}"
            )
        if len(stats.mean) != FEATURE_COUNT or len(stats.std) != FEATURE_COUNT:
            raise ModelPersistenceError("Stored feature stats do not match the feature schema")
        return StoredModel(state_dict, metadata, stats)

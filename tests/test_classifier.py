import asyncio
import json
import os
import threading
import time

import numpy as np
import pytest
import torch

from conftest import synthetic_data
from success_signal_ai.errors import (
    AlreadyTrainingError,
    InsufficientDataError,
    ModelNotLoadedError,
    ModelPersistenceError,
    StorageTimeoutError,
    TrainingAbortedError,
)
from success_signal_ai.model import ApplicationSuccessModel, ModelStore, SuccessNet, persistence
from success_signal_ai.model.classifier import compute_class_weights, compute_feature_stats, to_feature_matrix
from success_signal_ai.schemas.feature_vector import FEATURE_COUNT, FeatureVector
from success_signal_ai.schemas.training import TrainingOptions


def test_network_shape():
    net = SuccessNet()
    arch = net.architecture()
    assert arch["input_dim"] == FEATURE_COUNT
    assert [layer["units"] for layer in arch["layers"] if layer["type"] == "dense"] == [64, 32, 16, 1]
    assert [layer["rate"] for layer in arch["layers"] if layer["type"] == "dropout"] == [0.3, 0.2]


def test_predict_before_training(tmp_path):
    model = ApplicationSuccessModel(store=ModelStore(tmp_path / "model"))
    assert not model.is_loaded
    with pytest.raises(ModelNotLoadedError):
        model.predict(FeatureVector())
    assert asyncio.run(model.load()) is False


def test_prediction_fields(trained_model):
    prediction = trained_model.predict(FeatureVector())
    assert 0.0 <= prediction.probability <= 1.0
    assert prediction.match_score == round(prediction.probability * 100)
    assert prediction.confidence == pytest.approx(abs(prediction.probability - 0.5) * 2)
    assert prediction.predicted_label == ("success" if prediction.probability >= 0.5 else "failure")


def test_training_result(tmp_path):
    model = ApplicationSuccessModel(store=ModelStore(tmp_path / "model"))
    x, y = synthetic_data(100)
    result = asyncio.run(model.train(x, y, TrainingOptions(epochs=3, seed=1)))
    assert len(result.history) == 3
    assert result.metadata.training_size == 80
    assert result.metadata.validation_size == 20
    assert result.metadata.performance is not None
    assert set(result.metadata.class_weight) == {0, 1}


def test_seeded_training_is_reproducible(tmp_path):
    x, y = synthetic_data()
    first = ApplicationSuccessModel(store=ModelStore(tmp_path / "a"))
    second = ApplicationSuccessModel(store=ModelStore(tmp_path / "b"))
    asyncio.run(first.train(x, y, TrainingOptions(epochs=3, seed=3)))
    asyncio.run(second.train(x, y, TrainingOptions(epochs=3, seed=3)))
    np.testing.assert_allclose(first.predict_proba(x), second.predict_proba(x), atol=1e-6)


def test_save_load_round_trip(trained_model, tmp_path):
    x, _ = synthetic_data(10, seed=5)
    reloaded = ApplicationSuccessModel(store=ModelStore(tmp_path / "model"))
    assert asyncio.run(reloaded.load()) is True
    np.testing.assert_allclose(reloaded.predict_proba(x), trained_model.predict_proba(x), atol=1e-6)
    assert reloaded.metadata.trained_at == trained_model.metadata.trained_at


def test_load_rejects_other_feature_schema(trained_model, tmp_path):
    path = tmp_path / "model" / "model.json"
    payload = json.loads(path.read_text())
    payload["metadata"]["feature_names"] = list(reversed(payload["metadata"]["feature_names"]))
    path.write_text(json.dumps(payload))
    with pytest.raises(ModelPersistenceError):
        asyncio.run(ApplicationSuccessModel(store=ModelStore(tmp_path / "model")).load())


def test_insufficient_data(tmp_path):
    model = ApplicationSuccessModel(store=ModelStore(tmp_path / "model"))
    x, y = synthetic_data(29)
    with pytest.raises(InsufficientDataError) as exc:
        asyncio.run(model.train(x, y, TrainingOptions(epochs=1)))
    assert exc.value.available == 29
    assert exc.value.required == 30
    assert not model.is_training


def test_concurrent_training_rejected(trained_model):
    x, y = synthetic_data()
    trained_model._train_lock.acquire()
    try:
        with pytest.raises(AlreadyTrainingError):
            asyncio.run(trained_model.train(x, y, TrainingOptions(epochs=1)))
    finally:
        trained_model._train_lock.release()


def test_abort_keeps_previous_model(trained_model):
    x, y = synthetic_data()
    before = trained_model.predict_proba(x)
    abort = threading.Event()
    abort.set()
    with pytest.raises(TrainingAbortedError):
        asyncio.run(trained_model.train(x, y, TrainingOptions(epochs=5, seed=9), abort_event=abort))
    np.testing.assert_array_equal(trained_model.predict_proba(x), before)
    assert not trained_model.is_training


def test_failed_save_keeps_previous_model(trained_model, monkeypatch):
    x, y = synthetic_data()
    before = trained_model.predict_proba(x)
    metadata = trained_model.metadata

    async def broken_save(*args, **kwargs):
        raise ModelPersistenceError("disk full")

    monkeypatch.setattr(trained_model.store, "save", broken_save)
    with pytest.raises(ModelPersistenceError):
        asyncio.run(trained_model.train(x, y, TrainingOptions(epochs=2, seed=4)))
    assert trained_model.metadata is metadata
    np.testing.assert_array_equal(trained_model.predict_proba(x), before)


def assert_same_stored_model(stored, expected_state, saved):
    assert stored.metadata == saved.metadata
    assert stored.feature_stats == saved.feature_stats
    assert stored.state_dict.keys() == expected_state.keys()
    for name, tensor in expected_state.items():
        assert torch.equal(stored.state_dict[name], tensor)


def leftover_dirs(path):
    return [p.name for p in path.iterdir() if ".tmp-" in p.name or ".bak-" in p.name]


@pytest.mark.parametrize("failing_step", ["weights", "swap"])
def test_failed_write_keeps_previous_model_on_disk(trained_model, tmp_path, monkeypatch, failing_step):
    x, y = synthetic_data()
    before = trained_model.predict_proba(x)
    saved = asyncio.run(trained_model.store.load())

    if failing_step == "weights":
        def broken_torch_save(*args, **kwargs):
            raise OSError("disk full")

        monkeypatch.setattr(persistence.torch, "save", broken_torch_save)
    else:
        real_replace = os.replace

        def broken_replace(src, dst):
            if ".tmp-" in str(src):
                raise OSError("rename failed")
            real_replace(src, dst)

        monkeypatch.setattr(persistence.os, "replace", broken_replace)

    with pytest.raises(ModelPersistenceError):
        asyncio.run(trained_model.train(x, y, TrainingOptions(epochs=2, seed=4)))
    monkeypatch.undo()

    store = ModelStore(tmp_path / "model")
    assert_same_stored_model(asyncio.run(store.load()), saved.state_dict, saved)
    reloaded = ApplicationSuccessModel(store=store)
    assert asyncio.run(reloaded.load()) is True
    np.testing.assert_allclose(reloaded.predict_proba(x), before, atol=1e-6)
    assert leftover_dirs(tmp_path) == []


def test_cancelled_write_does_not_swap(trained_model, tmp_path):
    store = trained_model.store
    saved = asyncio.run(store.load())
    zeroed = {name: torch.zeros_like(t) for name, t in saved.state_dict.items()}
    cancelled = threading.Event()
    cancelled.set()

    with pytest.raises(ModelPersistenceError):
        store._write(zeroed, saved.metadata, saved.feature_stats, cancelled)

    assert_same_stored_model(asyncio.run(store.load()), saved.state_dict, saved)
    assert leftover_dirs(tmp_path) == []


def test_save_timeout_agrees_with_disk(trained_model, tmp_path, monkeypatch):
    store = ModelStore(tmp_path / "model", timeout=0.2)
    saved = asyncio.run(store.load())
    zeroed = {name: torch.zeros_like(t) for name, t in saved.state_dict.items()}
    real_replace = os.replace

    def slow_replace(src, dst):
        if ".tmp-" in str(src):
            time.sleep(0.6)
        real_replace(src, dst)

    monkeypatch.setattr(persistence.os, "replace", slow_replace)
    try:
        asyncio.run(store.save(zeroed, saved.metadata, saved.feature_stats))
        committed = True
    except StorageTimeoutError:
        committed = False
    monkeypatch.undo()

    expected = zeroed if committed else saved.state_dict
    assert_same_stored_model(asyncio.run(store.load()), expected, saved)


def test_evaluate_records_performance(trained_model):
    x, y = synthetic_data(40, seed=2)
    metrics = trained_model.evaluate(x, y)
    assert metrics.total_samples == 40
    assert 0.0 <= metrics.accuracy <= 1.0
    assert trained_model.metadata.performance == metrics


def test_delete(trained_model, tmp_path):
    asyncio.run(trained_model.delete())
    assert not trained_model.is_loaded
    assert not (tmp_path / "model").exists()


def test_model_info(trained_model):
    info = trained_model.get_model_info()
    assert info["loaded"] is True
    assert len(info["feature_names"]) == FEATURE_COUNT
    assert info["metadata"]["epochs"] >= 1


def test_feature_matrix_inputs():
    vector = FeatureVector()
    matrix = to_feature_matrix([vector, vector.values(), vector.to_array()])
    assert matrix.shape == (3, FEATURE_COUNT)
    np.testing.assert_array_equal(matrix[0], matrix[1])
    with pytest.raises(ValueError):
        to_feature_matrix(np.zeros((2, 5)))


def test_feature_stats_and_class_weights():
    x = np.array([[1.0, 2.0], [3.0, 2.0]], dtype=np.float32)
    mean, std = compute_feature_stats(x)
    np.testing.assert_allclose(mean, [2.0, 2.0])
    np.testing.assert_allclose(std, [1.0, 1.0])
    assert compute_class_weights(np.array([1, 0, 0, 0])) == pytest.approx({0: 4 / 6, 1: 2.0})
    assert compute_class_weights(np.array([0, 0])) == {0: 1.0, 1: 1.0}

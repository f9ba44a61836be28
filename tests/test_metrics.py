import numpy as np
import pytest

from success_signal_ai.model.metrics import confusion_matrix, evaluate_predictions, roc_auc


def test_auc_perfect_and_inverted():
    labels = np.array([0, 0, 1, 1])
    assert roc_auc(labels, np.array([0.1, 0.2, 0.8, 0.9])) == 1.0
    assert roc_auc(labels, np.array([0.9, 0.8, 0.2, 0.1])) == 0.0


def test_auc_ties_count_half():
    labels = np.array([0, 1, 0, 1])
    assert roc_auc(labels, np.full(4, 0.5)) == pytest.approx(0.5)
    # one positive ties a negative, the other is above both
    assert roc_auc(np.array([0, 1, 1]), np.array([0.4, 0.4, 0.9])) == pytest.approx(0.75)


def test_auc_random_scores_near_half():
    rng = np.random.default_rng(0)
    labels = rng.integers(0, 2, 4000)
    assert roc_auc(labels, rng.random(4000)) == pytest.approx(0.5, abs=0.05)


def test_auc_single_class():
    assert roc_auc(np.ones(5), np.linspace(0, 1, 5)) == 0.5
    assert roc_auc(np.zeros(5), np.linspace(0, 1, 5)) == 0.5


def test_confusion_matrix_counts():
    cm = confusion_matrix(np.array([1, 1, 0, 0, 1]), np.array([1, 0, 0, 1, 1]))
    assert (cm.tp, cm.fp, cm.tn, cm.fn) == (2, 1, 1, 1)


def test_evaluate_predictions():
    labels = np.array([1, 1, 0, 0])
    metrics = evaluate_predictions(labels, np.array([0.9, 0.4, 0.6, 0.1]), loss=0.3)
    assert metrics.accuracy == 0.5
    assert metrics.precision == 0.5
    assert metrics.recall == 0.5
    assert metrics.f1_score == pytest.approx(0.5)
    assert metrics.auc == pytest.approx(0.75)
    assert metrics.loss == 0.3
    assert metrics.total_samples == 4


def test_evaluate_without_positive_predictions():
    metrics = evaluate_predictions(np.array([1, 0]), np.array([0.1, 0.2]))
    assert metrics.precision == 0.0
    assert metrics.f1_score == 0.0

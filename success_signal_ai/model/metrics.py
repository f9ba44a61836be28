"""Binary classification metrics over numpy arrays."""

from typing import Optional

import numpy as np

from success_signal_ai.schemas.training import ConfusionMatrix, EvaluationMetrics


def confusion_matrix(labels: np.ndarray, predicted: np.ndarray) -> ConfusionMatrix:
    labels = np.asarray(labels).astype(int)
    predicted = np.asarray(predicted).astype(int)
    return ConfusionMatrix(
        tp=int(np.sum((predicted == 1) & (labels == 1))),
        fp=int(np.sum((predicted == 1) & (labels == 0))),
        tn=int(np.sum((predicted == 0) & (labels == 0))),
        fn=int(np.sum((predicted == 0) & (labels == 1))),
    )


def roc_auc(labels: np.ndarray, scores: np.ndarray) -> float:
    """
    Rank-based AUC: probability that a random positive scores above a random negative
    (ties count half). 0.5 when either class is absent.
    """
    labels = np.asarray(labels).astype(int)
    scores = np.asarray(scores, dtype=np.float64)
    n_pos = int(np.sum(labels == 1))
    n_neg = int(np.sum(labels == 0))
    if n_pos == 0 or n_neg == 0:
        return 0.5

    order = np.argsort(scores, kind="mergesort")
    sorted_scores = scores[order]
    ranks = np.empty(len(scores), dtype=np.float64)
    i = 0
    n = len(scores)
    while i < n:
        j = i
        while j + 1 < n and sorted_scores[j + 1] == sorted_scores[i]:
            j += 1
        # Tied scores share the average of their 1-based ranks
        ranks[order[i:j + 1]] = (i + j) / 2.0 + 1.0
        i = j + 1

    rank_sum = float(np.sum(ranks[labels == 1]))
    return (rank_sum - n_pos * (n_pos + 1) / 2.0) / (n_pos * n_neg)


def _ratio(num: float, den: float) -> float:
    return num / den if den > 0 else 0.0


def evaluate_predictions(
    labels: np.ndarray,
    probabilities: np.ndarray,
    threshold: float = 0.5,
    loss: Optional[float] = None,
) -> EvaluationMetrics:
    labels = np.asarray(labels).astype(int)
    probabilities = np.asarray(probabilities, dtype=np.float64)
    predicted = (probabilities >= threshold).astype(int)
    cm = confusion_matrix(labels, predicted)

    precision = _ratio(cm.tp, cm.tp + cm.fp)
    recall = _ratio(cm.tp, cm.tp + cm.fn)
    f1 = _ratio(2 * precision * recall, precision + recall)
    return EvaluationMetrics(
        confusion_matrix=cm,
        precision=precision,
        recall=recall,
        f1_score=f1,
        accuracy=_ratio(cm.tp + cm.tn, len(labels)),
        auc=roc_auc(labels, probabilities),
        loss=loss,
        total_samples=len(labels),
    )

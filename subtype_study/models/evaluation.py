"""
Held-out evaluation of fitted models.

This module turns a fitted model and a test set into a confusion matrix and
the derived classification metrics reported for every strategy.

Classes:
    ConfusionMatrix: 2x2 counts for a designated positive class
    EvaluationResult: Confusion matrix plus derived metrics
    Evaluator: Applies a FittedModel to held-out samples
"""

import logging
from dataclasses import dataclass
from typing import Any, Dict, Sequence, Tuple

import numpy as np
import pandas as pd
from scipy import stats
from sklearn.metrics import cohen_kappa_score, confusion_matrix

from ..data.dataset import Dataset
from .classifiers import FittedModel

logger = logging.getLogger(__name__)


def _ratio(numerator: float, denominator: float) -> float:
    if denominator == 0:
        return 0.0
    return numerator / denominator


@dataclass(frozen=True)
class ConfusionMatrix:
    """
    Counts of (predicted, actual) label pairs for a binary problem.

    Attributes
    ----------
    tp, fn, fp, tn : int
        True positives, false negatives, false positives, true negatives.
    classes : tuple
        (negative, positive) class labels.
    """

    tp: int
    fn: int
    fp: int
    tn: int
    classes: Tuple[Any, Any]

    @classmethod
    def from_labels(
        cls,
        y_true: Sequence[Any],
        y_pred: Sequence[Any],
        classes: Tuple[Any, Any]
    ) -> 'ConfusionMatrix':
        """Build from label sequences; ``classes`` is (negative, positive)."""
        y_true = np.asarray(y_true)
        y_pred = np.asarray(y_pred)
        if len(y_true) != len(y_pred):
            raise ValueError(
                f"Length mismatch: {len(y_true)} true vs {len(y_pred)} predicted labels"
            )
        if len(y_true) == 0:
            return cls(0, 0, 0, 0, tuple(classes))
        cm = confusion_matrix(y_true, y_pred, labels=list(classes))
        tn, fp, fn, tp = cm.ravel()
        return cls(int(tp), int(fn), int(fp), int(tn), tuple(classes))

    @property
    def total(self) -> int:
        return self.tp + self.fn + self.fp + self.tn

    @property
    def accuracy(self) -> float:
        return _ratio(self.tp + self.tn, self.total)

    @property
    def sensitivity(self) -> float:
        """True positive rate of the positive class."""
        return _ratio(self.tp, self.tp + self.fn)

    @property
    def specificity(self) -> float:
        """True negative rate."""
        return _ratio(self.tn, self.tn + self.fp)

    @property
    def ppv(self) -> float:
        return _ratio(self.tp, self.tp + self.fp)

    @property
    def npv(self) -> float:
        return _ratio(self.tn, self.tn + self.fn)

    @property
    def balanced_accuracy(self) -> float:
        return (self.sensitivity + self.specificity) / 2

    def as_frame(self) -> pd.DataFrame:
        """Predicted labels as rows, actual labels as columns."""
        negative, positive = self.classes
        return pd.DataFrame(
            [[self.tp, self.fp], [self.fn, self.tn]],
            index=pd.Index([positive, negative], name='predicted'),
            columns=pd.Index([positive, negative], name='actual')
        )


@dataclass(frozen=True)
class EvaluationResult:
    """Metrics of one model on one held-out set."""

    confusion_matrix: ConfusionMatrix
    accuracy: float
    sensitivity: float
    specificity: float
    balanced_accuracy: float
    ppv: float
    npv: float
    kappa: float
    accuracy_ci: Tuple[float, float]
    n_samples: int

    def as_dict(self) -> Dict[str, float]:
        return {
            'accuracy': self.accuracy,
            'accuracy_ci_lower': self.accuracy_ci[0],
            'accuracy_ci_upper': self.accuracy_ci[1],
            'sensitivity': self.sensitivity,
            'specificity': self.specificity,
            'balanced_accuracy': self.balanced_accuracy,
            'ppv': self.ppv,
            'npv': self.npv,
            'kappa': self.kappa,
            'n_samples': self.n_samples
        }


class Evaluator:
    """
    Apply a fitted model to held-out samples and score the predictions.

    Parameters
    ----------
    threshold : float, default=0.5
        Samples with positive-class probability at or above the threshold
        are predicted positive.
    confidence : float, default=0.95
        Confidence level of the exact binomial interval for accuracy.

    Examples
    --------
    >>> result = Evaluator().evaluate(search.model, split.test)
    >>> result.accuracy, result.sensitivity, result.specificity
    """

    def __init__(self, threshold: float = 0.5, confidence: float = 0.95):
        if not 0.0 < threshold < 1.0:
            raise ValueError(f"threshold must be in (0, 1), got {threshold}")
        self.threshold = threshold
        self.confidence = confidence

    def accuracy_interval(self, n_correct: int, n_total: int) -> Tuple[float, float]:
        """Clopper-Pearson interval for ``n_correct`` successes out of ``n_total``."""
        if n_total == 0:
            return (0.0, 0.0)
        ci = stats.binomtest(n_correct, n_total).proportion_ci(
            confidence_level=self.confidence, method='exact'
        )
        return (float(ci.low), float(ci.high))

    def evaluate(self, model: FittedModel, test: Dataset) -> EvaluationResult:
        """
        Score ``model`` on ``test``.

        Parameters
        ----------
        model : FittedModel
            Model to evaluate; its stored standardization is applied to
            ``test``.
        test : Dataset
            Held-out samples containing at least the model's features.

        Returns
        -------
        result : EvaluationResult
        """
        y_pred = model.predict(test, threshold=self.threshold)
        cm = ConfusionMatrix.from_labels(test.labels, y_pred, model.classes)

        if cm.total != test.n_samples:
            raise ValueError(
                f"Confusion matrix counts {cm.total} samples, test set has {test.n_samples}"
            )

        if len(np.unique(np.concatenate([test.labels, y_pred]))) < 2:
            kappa = 0.0
        else:
            kappa = float(cohen_kappa_score(test.labels, y_pred, labels=list(model.classes)))

        result = EvaluationResult(
            confusion_matrix=cm,
            accuracy=cm.accuracy,
            sensitivity=cm.sensitivity,
            specificity=cm.specificity,
            balanced_accuracy=cm.balanced_accuracy,
            ppv=cm.ppv,
            npv=cm.npv,
            kappa=kappa,
            accuracy_ci=self.accuracy_interval(cm.tp + cm.tn, cm.total),
            n_samples=cm.total
        )

        logger.info(
            "Held-out %s model on %d samples: accuracy=%.4f sensitivity=%.4f specificity=%.4f",
            model.family, cm.total, result.accuracy, result.sensitivity, result.specificity
        )
        return result

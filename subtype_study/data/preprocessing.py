"""
Unsupervised pre-filtering of expression features.

Both filters look at the training subset only, so nothing learned here leaks
information from held-out samples.

Classes:
    Standardization: Per-feature centers and scales fitted on training data
    VarianceFilter: Keep the N features with the largest standard deviation
    CorrelationPruner: Drop features until no pair exceeds a correlation cutoff
"""

import logging
from dataclasses import dataclass
from typing import Optional, Tuple

import numpy as np
import pandas as pd
from sklearn.preprocessing import StandardScaler

from ..exceptions import EmptyFeatureSetError
from .dataset import Dataset, FeatureSet

logger = logging.getLogger(__name__)


@dataclass(frozen=True, eq=False)
class Standardization:
    """
    Centering and scaling statistics for one feature set.

    Attributes:
        feature_names: Features the statistics belong to, in column order.
        center: Per-feature training mean.
        scale: Per-feature training standard deviation (zeros replaced by 1).
    """

    feature_names: Tuple[str, ...]
    center: np.ndarray
    scale: np.ndarray

    @classmethod
    def fit(cls, dataset: Dataset) -> 'Standardization':
        scaler = StandardScaler().fit(dataset.values)
        center = np.array(scaler.mean_, dtype=float)
        scale = np.array(scaler.scale_, dtype=float)
        center.setflags(write=False)
        scale.setflags(write=False)
        return cls(dataset.feature_names, center, scale)

    def transform(self, dataset: Dataset) -> np.ndarray:
        """Standardized matrix of ``dataset`` restricted to these features."""
        if dataset.feature_names == self.feature_names:
            values = dataset.values
        else:
            values = dataset.values[:, dataset.column_positions(self.feature_names)]
        return (values - self.center) / self.scale


class VarianceFilter:
    """
    Keep the top-N features by standard deviation across training samples.

    Features are ranked by descending sample standard deviation; ties keep
    their original order. When N exceeds the number of available features it
    is clamped to that number and a warning is logged.

    Args:
        n_features: Number of features to keep.
    """

    def __init__(self, n_features: int = 1000):
        if n_features < 1:
            raise EmptyFeatureSetError(
                f"n_features must be at least 1, got {n_features}"
            )
        self.n_features = n_features

    def rank(
        self,
        train: Dataset,
        feature_set: Optional[FeatureSet] = None
    ) -> pd.Series:
        """Standard deviation per feature, sorted descending (stable)."""
        data = train if feature_set is None else train.restrict(feature_set)
        if data.n_features == 0:
            raise EmptyFeatureSetError("No features available for variance filtering")
        if data.n_samples < 2:
            sd = np.zeros(data.n_features)
        else:
            sd = data.values.std(axis=0, ddof=1)
        order = np.argsort(-sd, kind='stable')
        names = np.asarray(data.feature_names, dtype=object)
        return pd.Series(sd[order], index=names[order], name='sd')

    def select(
        self,
        train: Dataset,
        feature_set: Optional[FeatureSet] = None
    ) -> FeatureSet:
        ranking = self.rank(train, feature_set)

        n_keep = self.n_features
        if n_keep > len(ranking):
            logger.warning(
                "Requested %d features but only %d available; keeping all",
                n_keep, len(ranking)
            )
            n_keep = len(ranking)

        selected = FeatureSet.of(ranking.index[:n_keep])
        logger.info("Variance filter kept %d of %d features (min sd=%.4f)",
                    len(selected), len(ranking), ranking.iloc[n_keep - 1])
        return selected


class CorrelationPruner:
    """
    Remove redundant features until no pair is correlated above a cutoff.

    At each step the remaining pair with the largest absolute Pearson
    correlation above ``cutoff`` is resolved by dropping the member with the
    larger mean absolute correlation to all other remaining features. When
    the means agree up to rounding, the lexically lower name is kept.
    Surviving features keep their input order.

    Args:
        cutoff: Maximum allowed absolute pairwise correlation, in [0, 1].

    Example:
        >>> pruner = CorrelationPruner(cutoff=0.8)
        >>> kept = pruner.prune(split.train, variance_features)
    """

    def __init__(self, cutoff: float = 0.8):
        if not 0.0 <= cutoff <= 1.0:
            raise ValueError(f"cutoff must be in [0, 1], got {cutoff}")
        self.cutoff = cutoff

    @staticmethod
    def correlation_matrix(values: np.ndarray) -> np.ndarray:
        """Absolute Pearson correlation; constant columns correlate 0."""
        centered = values - values.mean(axis=0)
        norms = np.sqrt((centered ** 2).sum(axis=0))
        with np.errstate(invalid='ignore', divide='ignore'):
            corr = (centered.T @ centered) / np.outer(norms, norms)
        corr = np.abs(np.nan_to_num(corr, nan=0.0, posinf=0.0, neginf=0.0))
        np.fill_diagonal(corr, 0.0)
        return np.clip(corr, 0.0, 1.0)

    def prune(self, train: Dataset, feature_set: FeatureSet) -> FeatureSet:
        if len(feature_set) == 0:
            raise EmptyFeatureSetError("Cannot prune an empty feature set")

        names = list(feature_set)
        corr = self.correlation_matrix(train.restrict(feature_set).values)
        remaining = np.ones(len(names), dtype=bool)

        removed = []
        while remaining.sum() > 1:
            idx = np.flatnonzero(remaining)
            sub = corr[np.ix_(idx, idx)]
            upper = np.triu(sub, k=1)
            flat = int(np.argmax(upper))
            i, j = divmod(flat, len(idx))
            if upper[i, j] <= self.cutoff:
                break

            # mean over the other remaining features (diagonal is zero)
            mean_corr = sub.sum(axis=1) / (len(idx) - 1)
            a, b = idx[i], idx[j]
            if np.isclose(mean_corr[i], mean_corr[j], rtol=1e-9, atol=1e-12):
                drop = a if names[a] > names[b] else b
            elif mean_corr[i] > mean_corr[j]:
                drop = a
            else:
                drop = b

            remaining[drop] = False
            removed.append(names[drop])
            logger.debug("Dropped %s (|r|=%.3f with %s)", names[drop], upper[i, j],
                         names[b] if drop == a else names[a])

        kept = FeatureSet.of(name for name, keep in zip(names, remaining) if keep)
        logger.info("Correlation pruning (cutoff=%.2f) removed %d of %d features",
                    self.cutoff, len(removed), len(names))
        return kept

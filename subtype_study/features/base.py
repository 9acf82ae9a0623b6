"""
Common contract of the supervised feature selectors.
"""

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Dict

import numpy as np

from ..data.dataset import Dataset, FeatureSet
from ..data.preprocessing import Standardization
from ..exceptions import DegenerateSelectionError, EmptyFeatureSetError

logger = logging.getLogger(__name__)


@dataclass(frozen=True, eq=False)
class SelectionResult:
    """
    Output of a feature selector.

    Attributes:
        feature_set: Selected features.
        model: Selection model fitted on the whole training set.
        standardization: Training statistics the selection model was fit on.
        details: Strategy-specific diagnostics (criteria traces, CV curves).
    """

    feature_set: FeatureSet
    model: Any
    standardization: Standardization
    details: Dict[str, Any] = field(default_factory=dict)


class FeatureSelector(ABC):
    """
    Supervised selection of a feature subset from training data.

    Subclasses implement ``_select`` on a training set already restricted
    to the candidate features; ``select`` validates inputs and outputs.
    """

    name: str = 'base'

    def select(self, train: Dataset, feature_set: FeatureSet) -> SelectionResult:
        """
        Reduce ``feature_set`` using only ``train``.

        Args:
            train: Training samples.
            feature_set: Candidate features (already variance/correlation
                filtered).

        Returns:
            SelectionResult with a non-empty feature set.

        Raises:
            EmptyFeatureSetError: If ``feature_set`` is empty.
            DegenerateSelectionError: If no feature survives selection.
        """
        if len(feature_set) == 0:
            raise EmptyFeatureSetError(f"{self.name} selector received no candidate features")

        candidates = train.restrict(feature_set)
        logger.info("%s selection on %d samples, %d candidate features",
                    self.name, candidates.n_samples, candidates.n_features)

        result = self._select(candidates)
        if len(result.feature_set) == 0:
            raise DegenerateSelectionError(f"{self.name} selection kept no features")

        logger.info("%s selection kept %d of %d features",
                    self.name, len(result.feature_set), len(feature_set))
        return result

    @abstractmethod
    def _select(self, candidates: Dataset) -> SelectionResult:
        """Run the strategy on the restricted training set."""

    @staticmethod
    def _standardize(candidates: Dataset):
        standardization = Standardization.fit(candidates)
        return standardization, standardization.transform(candidates)

    @staticmethod
    def _names(candidates: Dataset, mask: np.ndarray) -> FeatureSet:
        return FeatureSet.of(
            name for name, keep in zip(candidates.feature_names, mask) if keep
        )

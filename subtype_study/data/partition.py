"""
Stratified train/test partitioning.
"""

import logging
from dataclasses import dataclass
from typing import Optional

import numpy as np
from sklearn.model_selection import train_test_split

from ..exceptions import InsufficientSamplesError, InvalidFractionError
from .dataset import Dataset

logger = logging.getLogger(__name__)


@dataclass(frozen=True, eq=False)
class Split:
    """
    Disjoint train/test partition of a Dataset.

    Attributes:
        train: Training subset.
        test: Held-out subset.
        train_index: Positions of the training samples in the source dataset.
        test_index: Positions of the test samples in the source dataset.
    """

    train: Dataset
    test: Dataset
    train_index: np.ndarray
    test_index: np.ndarray

    def apply(self, dataset: Dataset) -> 'Split':
        """
        Reuse this partition on another dataset of the same samples.

        Args:
            dataset: Dataset whose rows are the source samples in source
                order (e.g. embedding coordinates of the full matrix).

        Returns:
            A new Split over ``dataset`` using the same sample positions.

        Raises:
            ValueError: If ``dataset`` does not hold the partitioned samples.
        """
        n_source = len(self.train_index) + len(self.test_index)
        if dataset.n_samples != n_source:
            raise ValueError(
                f"Dataset has {dataset.n_samples} samples, split covers {n_source}"
            )
        train = dataset.subset(self.train_index)
        test = dataset.subset(self.test_index)
        if not (train.sample_ids.equals(self.train.sample_ids)
                and test.sample_ids.equals(self.test.sample_ids)):
            raise ValueError("Dataset sample ids do not match the partitioned samples")
        return Split(train, test, self.train_index, self.test_index)


class DataPartitioner:
    """
    Class-stratified train/test splitter with a fixed seed.

    Parameters
    ----------
    train_fraction : float, default=0.75
        Fraction of samples assigned to the training subset, in (0, 1).
    seed : int, default=42
        Random seed; the same seed and dataset order give the same split.

    Examples
    --------
    >>> split = DataPartitioner(train_fraction=0.75, seed=42).split(dataset)
    >>> split.train.n_samples, split.test.n_samples
    (225, 75)
    """

    def __init__(self, train_fraction: float = 0.75, seed: Optional[int] = 42):
        if not 0.0 < train_fraction < 1.0:
            raise InvalidFractionError(
                f"train_fraction must be in (0, 1), got {train_fraction}"
            )
        self.train_fraction = train_fraction
        self.seed = seed

    def split(self, dataset: Dataset) -> Split:
        counts = dataset.class_counts()
        too_small = counts[counts < 2]
        if len(too_small) > 0 or len(counts) < 2:
            raise InsufficientSamplesError(
                f"Each class needs at least 2 samples to stratify, got "
                f"{counts.to_dict()}"
            )

        positions = np.arange(dataset.n_samples)
        try:
            train_index, test_index = train_test_split(
                positions,
                train_size=self.train_fraction,
                random_state=self.seed,
                stratify=dataset.labels
            )
        except ValueError as e:
            raise InsufficientSamplesError(
                f"Cannot stratify {dataset.n_samples} samples with "
                f"train_fraction={self.train_fraction}: {e}"
            ) from e

        train_index = np.sort(train_index)
        test_index = np.sort(test_index)

        split = Split(
            train=dataset.subset(train_index),
            test=dataset.subset(test_index),
            train_index=train_index,
            test_index=test_index
        )

        logger.info(
            "Partitioned %d samples into %d train / %d test (seed=%s)",
            dataset.n_samples, len(train_index), len(test_index), self.seed
        )
        logger.debug("Train classes %s, test classes %s",
                     split.train.class_counts().to_dict(),
                     split.test.class_counts().to_dict())
        return split

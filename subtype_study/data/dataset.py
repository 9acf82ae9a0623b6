"""
Immutable value types shared by every stage of the study.

Classes:
    Sample: One expression profile with its subtype label
    FeatureSet: Ordered, unique collection of feature names
    Dataset: Samples x features matrix with aligned binary labels
"""

import numbers
from dataclasses import dataclass
from typing import Any, Hashable, Iterable, Iterator, NamedTuple, Optional, Sequence, Tuple, Union

import numpy as np
import pandas as pd


class Sample(NamedTuple):
    """A single expression profile."""

    sample_id: Hashable
    values: Tuple[float, ...]
    label: Any


@dataclass(frozen=True)
class FeatureSet:
    """
    Ordered set of feature names produced by a selection stage.

    Attributes:
        names: Feature names in stage output order. Must be unique.
    """

    names: Tuple[str, ...]

    def __post_init__(self):
        names = tuple(self.names)
        if len(set(names)) != len(names):
            duplicated = pd.Index(names)[pd.Index(names).duplicated()].tolist()
            raise ValueError(f"Feature names must be unique, duplicated: {duplicated}")
        object.__setattr__(self, 'names', names)

    @classmethod
    def of(cls, names: Iterable[str]) -> 'FeatureSet':
        return cls(tuple(names))

    def __iter__(self) -> Iterator[str]:
        return iter(self.names)

    def __len__(self) -> int:
        return len(self.names)

    def __contains__(self, name: object) -> bool:
        return name in self.names

    def to_list(self):
        return list(self.names)


def _read_only(values: np.ndarray) -> np.ndarray:
    values = np.array(values, dtype=float, copy=True)
    values.setflags(write=False)
    return values


def _sorted_labels(labels: Iterable[Any]) -> list:
    """Numbers in numeric order, anything else by its string form."""
    labels = list(labels)
    if all(isinstance(label, numbers.Number) for label in labels):
        return sorted(labels)
    return sorted(labels, key=str)


class Dataset:
    """
    Expression matrix (samples x features) with aligned two-class labels.

    The matrix and labels are copied on construction and never modified
    afterwards; ``subset`` and ``restrict`` return new datasets.

    Parameters
    ----------
    data : pd.DataFrame
        Numeric matrix, samples as rows and features as columns.
    labels : pd.Series
        Class label for each row of ``data`` (aligned by position).
    positive_class : optional
        Label treated as the positive class for sensitivity and for the
        binary 0/1 encoding. Defaults to the second label in sorted order:
        numeric order when every label is a number, otherwise the order of
        the labels as strings.

    Examples
    --------
    >>> dataset = Dataset.from_frame(expression_df, subtype_labels,
    ...                              positive_class='Basal')
    >>> dataset.n_samples, dataset.n_features
    (300, 20000)
    """

    def __init__(
        self,
        data: pd.DataFrame,
        labels: Union[pd.Series, Sequence],
        positive_class: Optional[Any] = None,
        classes: Optional[Sequence[Any]] = None
    ):
        if not isinstance(data, pd.DataFrame):
            raise ValueError("Data must be a pandas DataFrame")
        if data.shape[0] == 0:
            raise ValueError("Data DataFrame is empty")

        labels = pd.Series(np.asarray(labels), index=data.index, name='label') \
            if not isinstance(labels, pd.Series) else labels
        if len(labels) != data.shape[0]:
            raise ValueError(
                f"Label length ({len(labels)}) does not match "
                f"number of samples ({data.shape[0]})"
            )

        if data.columns.has_duplicates:
            duplicated = data.columns[data.columns.duplicated()].tolist()
            raise ValueError(f"Feature names must be unique, duplicated: {duplicated}")

        try:
            values = data.to_numpy(dtype=float)
        except (TypeError, ValueError) as e:
            raise ValueError(f"Expression matrix must be numeric: {e}") from e
        if not np.all(np.isfinite(values)):
            raise ValueError("Expression matrix contains missing or infinite values")

        observed = _sorted_labels(pd.unique(labels.to_numpy()).tolist())
        if classes is None:
            classes = observed
        else:
            classes = list(classes)
            unexpected = set(observed) - set(classes)
            if unexpected:
                raise ValueError(f"Unexpected labels: {_sorted_labels(unexpected)}")
        if len(classes) != 2:
            raise ValueError(
                f"Binary labels required, got {len(classes)} unique values"
            )
        if positive_class is None:
            positive_class = classes[1]
        elif positive_class not in classes:
            raise ValueError(
                f"Positive class {positive_class!r} not among labels {classes}"
            )

        self._values = _read_only(values)
        self._sample_ids = pd.Index(data.index)
        self._feature_names = tuple(str(c) for c in data.columns)
        self._labels = labels.to_numpy(copy=True)
        self._labels.setflags(write=False)
        self._positive_class = positive_class
        self._negative_class = classes[0] if classes[1] == positive_class else classes[1]

    @classmethod
    def from_frame(
        cls,
        data: pd.DataFrame,
        labels: Union[pd.Series, Sequence],
        positive_class: Optional[Any] = None
    ) -> 'Dataset':
        """Build a Dataset, aligning a label Series to the matrix index."""
        if isinstance(labels, pd.Series) and not labels.index.equals(data.index):
            missing = data.index.difference(labels.index)
            if len(missing) > 0:
                raise ValueError(f"No label for samples: {missing.tolist()[:5]}")
            labels = labels.loc[data.index]
        return cls(data, labels, positive_class=positive_class)

    # -- accessors -------------------------------------------------------

    @property
    def n_samples(self) -> int:
        return self._values.shape[0]

    @property
    def n_features(self) -> int:
        return self._values.shape[1]

    @property
    def values(self) -> np.ndarray:
        """Read-only samples x features array."""
        return self._values

    @property
    def sample_ids(self) -> pd.Index:
        return self._sample_ids

    @property
    def feature_names(self) -> Tuple[str, ...]:
        return self._feature_names

    @property
    def feature_set(self) -> FeatureSet:
        return FeatureSet(self._feature_names)

    @property
    def labels(self) -> np.ndarray:
        return self._labels

    @property
    def positive_class(self):
        return self._positive_class

    @property
    def negative_class(self):
        return self._negative_class

    @property
    def classes(self) -> Tuple[Any, Any]:
        """(negative, positive) class labels."""
        return (self._negative_class, self._positive_class)

    def binary_labels(self) -> np.ndarray:
        """Labels encoded as 1 for the positive class, 0 otherwise."""
        return (self._labels == self._positive_class).astype(int)

    def class_counts(self) -> pd.Series:
        return pd.Series(self._labels).value_counts()

    def to_frame(self) -> pd.DataFrame:
        return pd.DataFrame(
            self._values, index=self._sample_ids, columns=list(self._feature_names)
        )

    def sample(self, position: int) -> Sample:
        return Sample(
            sample_id=self._sample_ids[position],
            values=tuple(self._values[position].tolist()),
            label=self._labels[position]
        )

    def __iter__(self) -> Iterator[Sample]:
        for position in range(self.n_samples):
            yield self.sample(position)

    def __len__(self) -> int:
        return self.n_samples

    def __repr__(self) -> str:
        return (
            f"Dataset(n_samples={self.n_samples}, n_features={self.n_features}, "
            f"positive_class={self._positive_class!r})"
        )

    # -- derivation ------------------------------------------------------

    def subset(self, positions: Sequence[int]) -> 'Dataset':
        """Rows at ``positions`` (in the given order)."""
        positions = np.asarray(positions, dtype=int)
        frame = pd.DataFrame(
            self._values[positions],
            index=self._sample_ids[positions],
            columns=list(self._feature_names)
        )
        return Dataset(
            frame, self._labels[positions],
            positive_class=self._positive_class, classes=self.classes
        )

    def restrict(self, feature_set: Union[FeatureSet, Sequence[str]]) -> 'Dataset':
        """Columns named in ``feature_set`` (in feature set order)."""
        names = list(feature_set)
        columns = self.column_positions(names)
        frame = pd.DataFrame(
            self._values[:, columns],
            index=self._sample_ids,
            columns=names
        )
        return Dataset(
            frame, self._labels,
            positive_class=self._positive_class, classes=self.classes
        )

    def column_positions(self, names: Sequence[str]) -> np.ndarray:
        lookup = {name: i for i, name in enumerate(self._feature_names)}
        unknown = [name for name in names if name not in lookup]
        if unknown:
            raise ValueError(
                f"Features not present in dataset: {unknown[:5]}"
                + (f" (+{len(unknown) - 5} more)" if len(unknown) > 5 else "")
            )
        return np.array([lookup[name] for name in names], dtype=int)

"""
Classifier families compared by the study and the fitted-model value type.

Classes:
    FittedModel: Trained estimator bound to its features, configuration and
        standardization statistics
    ClassifierFamily: Interface for a tunable classifier family
    LinearSVMFamily: Support vector machine with a linear kernel
    RadialSVMFamily: Support vector machine with a radial basis kernel
"""

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Optional, Tuple

import numpy as np
from sklearn.base import BaseEstimator
from sklearn.calibration import CalibratedClassifierCV
from sklearn.svm import SVC

from ..data.dataset import Dataset, FeatureSet
from ..data.preprocessing import Standardization
from .hyperparameters import Configuration, HyperparameterGrid

logger = logging.getLogger(__name__)


@dataclass(frozen=True, eq=False)
class FittedModel:
    """
    A trained classifier and everything needed to apply it to new samples.

    Attributes
    ----------
    estimator : BaseEstimator
        Fitted sklearn estimator trained on 0/1 labels (1 = positive class).
    feature_set : FeatureSet
        Features the estimator was trained on, in column order.
    configuration : Configuration
        Hyperparameters used for training.
    standardization : Standardization
        Training centers and scales applied before prediction.
    classes : tuple
        (negative, positive) class labels.
    family : str
        Name of the classifier family.
    """

    estimator: BaseEstimator
    feature_set: FeatureSet
    configuration: Configuration
    standardization: Standardization
    classes: Tuple[Any, Any]
    family: str

    @property
    def positive_class(self):
        return self.classes[1]

    def positive_probability(self, dataset: Dataset) -> np.ndarray:
        """Probability of the positive class for every sample in ``dataset``."""
        X = self.standardization.transform(dataset)
        proba = self.estimator.predict_proba(X)
        column = list(self.estimator.classes_).index(1)
        return proba[:, column]

    def predict(self, dataset: Dataset, threshold: float = 0.5) -> np.ndarray:
        """Class labels using ``P(positive) >= threshold``."""
        is_positive = self.positive_probability(dataset) >= threshold
        return np.where(is_positive, self.classes[1], self.classes[0])


class ClassifierFamily(ABC):
    """
    A classifier type whose hyperparameters are tuned by grid search.

    Parameters
    ----------
    random_state : int, default=42
        Seed for the estimator's internal randomness, so refits are
        reproducible.
    calibration_folds : int, default=5
        Folds used to fit the sigmoid (Platt) mapping from decision values
        to probabilities.
    """

    name: str = 'base'
    tunable: Tuple[str, ...] = ()

    def __init__(self, random_state: Optional[int] = 42, calibration_folds: int = 5):
        self.random_state = random_state
        self.calibration_folds = calibration_folds

    @abstractmethod
    def build_raw(self, configuration: Configuration) -> BaseEstimator:
        """Unfitted, uncalibrated estimator for ``configuration``."""

    def build(self, configuration: Configuration, probability: bool = True) -> BaseEstimator:
        """
        Create an unfitted estimator for ``configuration``.

        With ``probability=True`` the raw estimator is wrapped in a sigmoid
        calibrator so ``predict_proba`` is available.
        """
        estimator = self.build_raw(configuration)
        if not probability:
            return estimator
        return CalibratedClassifierCV(
            estimator, method='sigmoid', cv=self.calibration_folds, ensemble=False
        )

    @abstractmethod
    def default_grid(self) -> HyperparameterGrid:
        """Grid searched when the caller supplies none."""

    def validate(self, configuration: Configuration) -> None:
        unknown = set(configuration.names()) - set(self.tunable)
        if unknown:
            raise ValueError(
                f"Unknown hyperparameters for {self.name}: {sorted(unknown)}. "
                f"Tunable: {list(self.tunable)}"
            )

    def train(self, train: Dataset, configuration: Configuration) -> FittedModel:
        """
        Standardize ``train`` on its own statistics and fit one estimator.

        Parameters
        ----------
        train : Dataset
            Training samples, already restricted to the model's features.
        configuration : Configuration
            Hyperparameters for this fit.

        Returns
        -------
        model : FittedModel
        """
        self.validate(configuration)
        standardization = Standardization.fit(train)
        X = standardization.transform(train)
        estimator = self.build(configuration)
        estimator.fit(X, train.binary_labels())
        return FittedModel(
            estimator=estimator,
            feature_set=train.feature_set,
            configuration=configuration,
            standardization=standardization,
            classes=train.classes,
            family=self.name
        )

    def __repr__(self) -> str:
        return f"{type(self).__name__}(random_state={self.random_state})"


class LinearSVMFamily(ClassifierFamily):
    """Linear-kernel SVM tuned over the cost parameter ``C``."""

    name = 'linear'
    tunable = ('C',)

    def build_raw(self, configuration: Configuration) -> SVC:
        params = {'C': 1.0}
        params.update(configuration.as_dict())
        return SVC(
            kernel='linear',
            random_state=self.random_state,
            **params
        )

    def default_grid(self) -> HyperparameterGrid:
        return HyperparameterGrid({'C': [0.001, 0.01, 0.1, 1.0, 10.0]})


class RadialSVMFamily(ClassifierFamily):
    """RBF-kernel SVM tuned over cost ``C`` and kernel width ``gamma``."""

    name = 'radial'
    tunable = ('C', 'gamma')

    def build_raw(self, configuration: Configuration) -> SVC:
        params = {'C': 1.0, 'gamma': 'scale'}
        params.update(configuration.as_dict())
        return SVC(
            kernel='rbf',
            random_state=self.random_state,
            **params
        )

    def default_grid(self) -> HyperparameterGrid:
        return HyperparameterGrid({
            'C': [0.1, 1.0, 10.0, 100.0],
            'gamma': [0.001, 0.01, 0.1, 1.0]
        })

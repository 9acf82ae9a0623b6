"""
Supervised feature selection strategies.

Each selector reduces a pre-filtered FeatureSet using training samples only
and returns a SelectionResult carrying the fitted selection model.

Example Usage:
    >>> from subtype_study.features import LassoSelector, RFESelector, StepwiseSelector
    >>>
    >>> for selector in (StepwiseSelector(), LassoSelector(), RFESelector()):
    ...     result = selector.select(split.train, pruned_features)
    ...     print(selector.name, len(result.feature_set))
"""

from .base import FeatureSelector, SelectionResult
from .lasso import LassoSelector
from .rfe import RFESelector
from .stepwise import StepwiseSelector

__all__ = [
    'FeatureSelector',
    'SelectionResult',
    'LassoSelector',
    'RFESelector',
    'StepwiseSelector'
]

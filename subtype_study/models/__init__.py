"""
Classifier families, hyperparameter search, evaluation and embedding.
"""

from .classifiers import ClassifierFamily, FittedModel, LinearSVMFamily, RadialSVMFamily
from .embedding import EmbeddingProjector
from .evaluation import ConfusionMatrix, EvaluationResult, Evaluator
from .grid_search import (
    ExcludedUnit,
    FoldAssignment,
    GridSearchResult,
    GridSearchTrainer
)
from .hyperparameters import Configuration, HyperparameterGrid

__all__ = [
    'ClassifierFamily',
    'FittedModel',
    'LinearSVMFamily',
    'RadialSVMFamily',
    'EmbeddingProjector',
    'ConfusionMatrix',
    'EvaluationResult',
    'Evaluator',
    'ExcludedUnit',
    'FoldAssignment',
    'GridSearchResult',
    'GridSearchTrainer',
    'Configuration',
    'HyperparameterGrid'
]

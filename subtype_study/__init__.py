"""
Subtype Study Package

A Python package comparing feature-selection strategies and support vector
machine classifiers for two-subtype classification of gene-expression data
under small-n, large-p conditions.
"""

__version__ = "0.1.0"
__author__ = "Subtype Study Team"

# Core module imports
from .config import StudyConfig
from .data.dataset import Dataset, FeatureSet, Sample
from .data.loaders import create_sample_data
from .data.partition import DataPartitioner, Split
from .data.preprocessing import CorrelationPruner, Standardization, VarianceFilter
from .exceptions import (
    DegenerateSelectionError,
    EmptyFeatureSetError,
    EmptyGridError,
    InsufficientSamplesError,
    InvalidFractionError,
    NonConvergenceError,
    SubtypingError
)
from .features import FeatureSelector, LassoSelector, RFESelector, SelectionResult, StepwiseSelector
from .models import (
    ConfusionMatrix,
    EmbeddingProjector,
    EvaluationResult,
    Evaluator,
    FittedModel,
    GridSearchTrainer,
    HyperparameterGrid,
    LinearSVMFamily,
    RadialSVMFamily
)
from .pipeline import ComparativeStudy, StrategyFailure, StrategyResult, StudyReport

__all__ = [
    'StudyConfig',
    'Dataset',
    'FeatureSet',
    'Sample',
    'create_sample_data',
    'DataPartitioner',
    'Split',
    'CorrelationPruner',
    'Standardization',
    'VarianceFilter',
    'SubtypingError',
    'InvalidFractionError',
    'InsufficientSamplesError',
    'EmptyFeatureSetError',
    'NonConvergenceError',
    'DegenerateSelectionError',
    'EmptyGridError',
    'FeatureSelector',
    'SelectionResult',
    'StepwiseSelector',
    'LassoSelector',
    'RFESelector',
    'ConfusionMatrix',
    'EmbeddingProjector',
    'EvaluationResult',
    'Evaluator',
    'FittedModel',
    'GridSearchTrainer',
    'HyperparameterGrid',
    'LinearSVMFamily',
    'RadialSVMFamily',
    'ComparativeStudy',
    'StrategyFailure',
    'StrategyResult',
    'StudyReport'
]

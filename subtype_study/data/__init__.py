"""
Dataset value types, partitioning and unsupervised pre-filtering.
"""

from .dataset import Dataset, FeatureSet, Sample
from .partition import DataPartitioner, Split
from .preprocessing import CorrelationPruner, Standardization, VarianceFilter
from .loaders import create_sample_data

__all__ = [
    'Dataset',
    'FeatureSet',
    'Sample',
    'DataPartitioner',
    'Split',
    'CorrelationPruner',
    'Standardization',
    'VarianceFilter',
    'create_sample_data'
]

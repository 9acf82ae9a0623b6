"""Shared pytest fixtures for subtype study tests."""
import pytest
import numpy as np
import pandas as pd

from subtype_study.data import Dataset, DataPartitioner, create_sample_data


@pytest.fixture
def expression_data():
    """Synthetic expression matrix (120 samples x 200 genes, 5 informative)."""
    return create_sample_data(
        n_samples=120, n_genes=200, n_informative=5, effect_size=2.0, random_state=0
    )


@pytest.fixture
def dataset(expression_data):
    """Dataset built from the synthetic matrix with 'Basal' as positive class."""
    data, labels, _ = expression_data
    return Dataset.from_frame(data, labels, positive_class="Basal")


@pytest.fixture
def informative_genes(expression_data):
    """Names of the genes carrying the subtype signal."""
    return expression_data[2]


@pytest.fixture
def split(dataset):
    """Seeded 75/25 stratified split of the dataset."""
    return DataPartitioner(train_fraction=0.75, seed=42).split(dataset)


@pytest.fixture
def small_data():
    """Small dataset (60 samples x 30 genes, 3 strong genes) and its informative genes."""
    data, labels, informative = create_sample_data(
        n_samples=60, n_genes=30, n_informative=3, effect_size=2.5, random_state=1
    )
    return Dataset.from_frame(data, labels, positive_class="Basal"), informative


@pytest.fixture
def tiny_frame():
    """Hand-written 6 x 3 matrix with two identical columns."""
    return pd.DataFrame(
        {
            "g2": [1.0, 2.0, 3.0, 4.0, 5.0, 6.0],
            "g1": [1.0, 2.0, 3.0, 4.0, 5.0, 6.0],
            "g3": [1.0, -1.0, 1.0, -1.0, 1.0, -1.0],
        },
        index=[f"S{i}" for i in range(6)],
    )


@pytest.fixture
def tiny_labels():
    """Labels for ``tiny_frame``."""
    return pd.Series(
        ["A", "A", "A", "B", "B", "B"],
        index=[f"S{i}" for i in range(6)],
        name="subtype",
    )


@pytest.fixture
def balanced_300():
    """300 samples split 150/150 between the two subtypes."""
    data, labels, _ = create_sample_data(
        n_samples=300, n_genes=20, n_informative=2, positive_fraction=0.5, random_state=3
    )
    return Dataset.from_frame(data, labels, positive_class="Basal")

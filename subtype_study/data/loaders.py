"""
Synthetic expression data for testing and demonstration.

The real expression matrix comes from an external genomic data provider and
is handed to ``Dataset.from_frame``; this module only fabricates matrices
with a known ground truth.
"""

import logging
from typing import List, Optional, Tuple

import numpy as np
import pandas as pd

logger = logging.getLogger(__name__)


def create_sample_data(
    n_samples: int = 100,
    n_genes: int = 1000,
    n_informative: int = 10,
    effect_size: float = 1.0,
    n_redundant: int = 0,
    positive_fraction: float = 0.5,
    subtypes: Tuple[str, str] = ('Luminal', 'Basal'),
    random_state: Optional[int] = 42
) -> Tuple[pd.DataFrame, pd.Series, List[str]]:
    """
    Create a synthetic two-subtype log-expression matrix.

    Parameters:
    -----------
    n_samples : int
        Number of samples to generate
    n_genes : int
        Total number of genes (columns)
    n_informative : int
        Genes whose mean differs between subtypes
    effect_size : float
        Mean shift (in noise standard deviations) of informative genes
    n_redundant : int
        Extra genes that are noisy copies of informative genes; they carry
        signal but are highly correlated with their source
    positive_fraction : float
        Fraction of samples belonging to the second subtype
    subtypes : Tuple[str, str]
        (negative, positive) subtype labels
    random_state : int, optional
        Random seed for reproducibility

    Returns:
    --------
    Tuple[pd.DataFrame, pd.Series, List[str]]
        Expression matrix (samples x genes), subtype labels and the names of
        the informative genes
    """

    if n_informative + n_redundant > n_genes:
        raise ValueError(
            f"n_informative + n_redundant ({n_informative + n_redundant}) "
            f"exceeds n_genes ({n_genes})"
        )

    rng = np.random.RandomState(random_state)

    sample_ids = [f"TCGA-{i:04d}" for i in range(n_samples)]
    gene_ids = [f"GENE{i:05d}" for i in range(n_genes)]

    n_positive = int(round(n_samples * positive_fraction))
    is_positive = np.zeros(n_samples, dtype=bool)
    is_positive[:n_positive] = True
    rng.shuffle(is_positive)

    # Baseline log2 expression with gene-specific mean and spread
    gene_means = rng.uniform(4.0, 10.0, n_genes)
    gene_sds = rng.uniform(0.5, 2.0, n_genes)
    expression = gene_means + rng.standard_normal((n_samples, n_genes)) * gene_sds

    signal_genes = rng.choice(n_genes, n_informative + n_redundant, replace=False)
    informative = signal_genes[:n_informative]
    redundant = signal_genes[n_informative:]

    direction = rng.choice([-1.0, 1.0], n_informative)
    expression[np.ix_(is_positive, informative)] += direction * effect_size * gene_sds[informative]

    for k, gene in enumerate(redundant):
        source = informative[k % max(n_informative, 1)]
        expression[:, gene] = expression[:, source] + rng.standard_normal(n_samples) * 0.1

    data = pd.DataFrame(expression, index=sample_ids, columns=gene_ids)
    labels = pd.Series(
        np.where(is_positive, subtypes[1], subtypes[0]),
        index=sample_ids,
        name='subtype'
    )
    informative_genes = [gene_ids[i] for i in informative]

    logger.info("Generated synthetic expression data: %s, %d informative genes",
                data.shape, n_informative)

    return data, labels, informative_genes

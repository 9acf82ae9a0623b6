"""
Two-dimensional t-SNE embedding of the full expression matrix.
"""

import logging
from typing import Optional

import pandas as pd
from sklearn.manifold import TSNE

from ..data.dataset import Dataset
from ..exceptions import InsufficientSamplesError

logger = logging.getLogger(__name__)


class EmbeddingProjector:
    """
    Project every sample to two t-SNE coordinates.

    The embedding is computed on all samples at once (train and test); the
    train/test split is reapplied to the coordinates afterwards with
    ``Split.apply`` so the same classifiers can be tuned and evaluated on a
    two-feature space.

    Args:
        perplexity: Effective neighbourhood size; must be below the number
            of samples.
        max_iter: Maximum number of optimization iterations.
        seed: Random seed; identical seeds and inputs reproduce the
            embedding.
        n_components: Output dimensionality.
    """

    def __init__(
        self,
        perplexity: float = 30.0,
        max_iter: int = 1000,
        seed: Optional[int] = 42,
        n_components: int = 2
    ):
        if perplexity <= 0:
            raise ValueError(f"perplexity must be positive, got {perplexity}")
        if max_iter < 250:
            raise ValueError(f"max_iter must be at least 250, got {max_iter}")
        self.perplexity = perplexity
        self.max_iter = max_iter
        self.seed = seed
        self.n_components = n_components
        self.kl_divergence_: Optional[float] = None

    def project(self, dataset: Dataset) -> Dataset:
        if self.perplexity >= dataset.n_samples:
            raise InsufficientSamplesError(
                f"perplexity ({self.perplexity}) must be smaller than the "
                f"number of samples ({dataset.n_samples})"
            )

        logger.info("Running t-SNE on %d samples x %d features (perplexity=%.1f)",
                    dataset.n_samples, dataset.n_features, self.perplexity)

        tsne = TSNE(
            n_components=self.n_components,
            perplexity=self.perplexity,
            max_iter=self.max_iter,
            init='pca',
            random_state=self.seed
        )
        coordinates = tsne.fit_transform(dataset.values)
        self.kl_divergence_ = float(tsne.kl_divergence_)

        logger.info("t-SNE finished after %d iterations (KL divergence %.4f)",
                    tsne.n_iter_, self.kl_divergence_)

        frame = pd.DataFrame(
            coordinates,
            index=dataset.sample_ids,
            columns=[f"tsne_{i + 1}" for i in range(self.n_components)]
        )
        return Dataset(
            frame, dataset.labels,
            positive_class=dataset.positive_class, classes=dataset.classes
        )

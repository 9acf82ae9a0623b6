"""Tests for the t-SNE embedding projector."""
import pytest
import numpy as np

from subtype_study.data import DataPartitioner
from subtype_study.exceptions import InsufficientSamplesError
from subtype_study.models import EmbeddingProjector


class TestEmbeddingProjector:
    """Tests for EmbeddingProjector."""

    def test_two_coordinates_per_sample(self, small_data):
        """The embedding should keep samples and labels with two features."""
        dataset, _ = small_data
        embedding = EmbeddingProjector(perplexity=10, max_iter=250, seed=0).project(dataset)
        assert embedding.feature_names == ("tsne_1", "tsne_2")
        assert embedding.sample_ids.equals(dataset.sample_ids)
        np.testing.assert_array_equal(embedding.labels, dataset.labels)
        assert embedding.positive_class == dataset.positive_class

    def test_reproducible_with_seed(self, small_data):
        """The same seed and input should reproduce the embedding."""
        dataset, _ = small_data
        first = EmbeddingProjector(perplexity=10, max_iter=250, seed=7).project(dataset)
        second = EmbeddingProjector(perplexity=10, max_iter=250, seed=7).project(dataset)
        np.testing.assert_allclose(first.values, second.values)

    def test_records_kl_divergence(self, small_data):
        """The final KL divergence should be stored after projecting."""
        dataset, _ = small_data
        projector = EmbeddingProjector(perplexity=10, max_iter=250, seed=0)
        assert projector.kl_divergence_ is None
        projector.project(dataset)
        assert projector.kl_divergence_ >= 0.0

    def test_split_reapplied_to_coordinates(self, small_data):
        """The partition of the expression data should carry over to the embedding."""
        dataset, _ = small_data
        split = DataPartitioner(0.75, seed=42).split(dataset)
        embedding = EmbeddingProjector(perplexity=10, max_iter=250, seed=0).project(dataset)
        embedded = split.apply(embedding)
        assert embedded.train.sample_ids.equals(split.train.sample_ids)
        assert embedded.test.sample_ids.equals(split.test.sample_ids)
        assert embedded.train.n_features == 2

    def test_perplexity_must_be_below_sample_count(self, small_data):
        """Perplexity at or above the sample count should be rejected."""
        dataset, _ = small_data
        with pytest.raises(InsufficientSamplesError, match="perplexity"):
            EmbeddingProjector(perplexity=60).project(dataset)

    @pytest.mark.parametrize("kwargs", [{"perplexity": 0}, {"max_iter": 100}])
    def test_invalid_settings(self, kwargs):
        """Non-positive perplexity and too few iterations should be rejected."""
        with pytest.raises(ValueError):
            EmbeddingProjector(**kwargs)

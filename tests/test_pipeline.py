"""Tests for the study configuration and the end-to-end comparative study."""
import pytest
import pandas as pd

from subtype_study import (
    ComparativeStudy,
    Dataset,
    StudyConfig,
    create_sample_data,
)
from subtype_study.exceptions import InvalidFractionError
from subtype_study.features import LassoSelector, RFESelector, StepwiseSelector
from subtype_study.models import LinearSVMFamily, RadialSVMFamily


@pytest.fixture
def study_dataset():
    """80 samples x 60 genes with 4 informative and 4 redundant genes."""
    data, labels, _ = create_sample_data(
        n_samples=80, n_genes=60, n_informative=4, effect_size=2.0,
        n_redundant=4, random_state=11
    )
    return Dataset.from_frame(data, labels, positive_class="Basal")


@pytest.fixture
def fast_config():
    """Study settings small enough for a quick end-to-end run."""
    return StudyConfig(
        n_variance_features=40,
        n_folds=3,
        n_jobs=1,
        lasso_n_penalties=8,
        rfe_subset_sizes=(2, 4, 8),
        linear_grid={"C": [0.1, 1.0]},
        radial_grid={"C": [1.0], "gamma": [0.01, 0.1]},
        tsne_perplexity=10.0,
        tsne_max_iter=250,
    )


class TestStudyConfig:
    """Tests for StudyConfig."""

    def test_defaults(self):
        """Defaults should mirror the reference study."""
        config = StudyConfig()
        assert config.train_fraction == 0.75
        assert config.n_variance_features == 1000
        assert config.correlation_cutoff == 0.8
        assert config.rfe_subset_sizes == (2, 5, 10, 20, 50)
        assert config.strategies == ("stepwise", "lasso", "rfe")
        assert config.families == ("linear", "radial")

    def test_from_dict(self):
        """Plain mappings should build a config with sequences normalized."""
        config = StudyConfig.from_dict({"seed": 7, "strategies": ["lasso"]})
        assert config.seed == 7
        assert config.strategies == ("lasso",)

    def test_from_dict_unknown_key(self):
        """Unknown keys should be rejected."""
        with pytest.raises(ValueError, match="Unknown StudyConfig keys"):
            StudyConfig.from_dict({"n_trees": 100})

    def test_invalid_fraction(self):
        """Train fractions outside (0, 1) should be rejected."""
        with pytest.raises(InvalidFractionError):
            StudyConfig(train_fraction=1.0)

    @pytest.mark.parametrize("kwargs", [
        {"strategies": ("boosting",)},
        {"families": ()},
        {"correlation_cutoff": 1.5},
        {"n_folds": 1},
    ])
    def test_invalid_values(self, kwargs):
        """Out-of-range settings should be rejected."""
        with pytest.raises(ValueError):
            StudyConfig(**kwargs)

    def test_round_trip_through_dict(self):
        """to_dict output should rebuild an equal config."""
        config = StudyConfig(seed=3, linear_grid={"C": [1.0]})
        assert StudyConfig.from_dict(config.to_dict()) == config


class TestComparativeStudy:
    """Tests for ComparativeStudy."""

    def test_builds_components_from_config(self, fast_config):
        """Strategy and family names should map to configured components."""
        study = ComparativeStudy(fast_config)
        assert isinstance(study.selector("stepwise"), StepwiseSelector)
        lasso = study.selector("lasso")
        assert isinstance(lasso, LassoSelector) and lasso.n_penalties == 8
        rfe = study.selector("rfe")
        assert isinstance(rfe, RFESelector) and rfe.subset_sizes == (2, 4, 8)
        assert isinstance(study.family("linear"), LinearSVMFamily)
        assert isinstance(study.family("radial"), RadialSVMFamily)
        assert len(study.grid("radial")) == 2

    def test_end_to_end(self, study_dataset, fast_config):
        """Every combination should end as a result or a recorded failure."""
        report = ComparativeStudy(fast_config).run(study_dataset)

        assert report.split.train.n_samples == 60
        assert len(report.variance_features) == 40
        assert len(report.pruned_features) <= 40

        for strategy in ("lasso", "rfe", "tsne"):
            for family in ("linear", "radial"):
                result = report.result(strategy, family)
                cm = result.evaluation.confusion_matrix
                assert cm.total == report.split.test.n_samples
                assert set(result.feature_set) <= set(result.model.feature_set)

        stepwise_done = [r for r in report.results if r.strategy == "stepwise"]
        stepwise_failed = [f for f in report.failures if f.strategy == "stepwise"]
        assert stepwise_done or stepwise_failed

        assert report.embedding is not None
        assert report.embedding.feature_names == ("tsne_1", "tsne_2")
        assert report.result("tsne", "linear").feature_set.to_list() == ["tsne_1", "tsne_2"]

    def test_summary_table(self, study_dataset, fast_config):
        """The summary should have one row per combination with metrics."""
        fast_config.strategies = ("lasso",)
        fast_config.run_embedding = False
        report = ComparativeStudy(fast_config).run(study_dataset)
        summary = report.summary()
        assert isinstance(summary, pd.DataFrame)
        assert len(summary) == 2
        assert summary["status"].tolist() == ["ok", "ok"]
        for column in ("accuracy", "sensitivity", "specificity", "cv_accuracy", "configuration"):
            assert column in summary.columns

    def test_failed_strategy_is_recorded(self):
        """A strategy that raises should be reported with its stage."""
        data, labels, _ = create_sample_data(n_samples=40, n_genes=60, random_state=2)
        dataset = Dataset.from_frame(data, labels)
        config = StudyConfig(
            n_variance_features=60,
            correlation_cutoff=1.0,
            strategies=("stepwise",),
            run_embedding=False,
            n_jobs=1,
        )
        report = ComparativeStudy(config).run(dataset)

        assert report.results == []
        failure, = report.failures
        assert failure.strategy == "stepwise"
        assert failure.family is None
        assert failure.stage == "selection"
        assert failure.message.startswith("NonConvergenceError")
        assert report.summary()["status"].tolist() == ["failed (selection)"]

    def test_embedding_failure_keeps_strategy_results(self):
        """A perplexity too large for the dataset should only fail the t-SNE path."""
        data, labels, _ = create_sample_data(
            n_samples=28, n_genes=30, n_informative=3, effect_size=2.5, random_state=4
        )
        dataset = Dataset.from_frame(data, labels)
        config = StudyConfig(
            n_variance_features=30,
            n_folds=3,
            n_jobs=1,
            rfe_subset_sizes=(2, 4),
            strategies=("rfe",),
            families=("linear",),
            linear_grid={"C": [1.0]},
        )
        report = ComparativeStudy(config).run(dataset)

        assert report.result("rfe", "linear").evaluation.confusion_matrix.total == 7
        assert report.embedding is None
        failure, = report.failures
        assert (failure.strategy, failure.family, failure.stage) == ("tsne", None, "embedding")
        assert failure.message.startswith("InsufficientSamplesError")
        assert "perplexity" in failure.message

    def test_unknown_result(self, study_dataset, fast_config):
        """Asking for a combination that did not run should raise KeyError."""
        fast_config.strategies = ("rfe",)
        fast_config.families = ("linear",)
        fast_config.run_embedding = False
        report = ComparativeStudy(fast_config).run(study_dataset)
        with pytest.raises(KeyError):
            report.result("rfe", "radial")

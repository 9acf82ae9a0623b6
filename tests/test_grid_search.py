"""Tests for hyperparameter grids, fold assignment and the grid search trainer."""
import logging

import pytest
import numpy as np
import pandas as pd
from sklearn.model_selection import StratifiedKFold

from subtype_study.exceptions import (
    EmptyGridError,
    InsufficientSamplesError,
    NonConvergenceError,
)
from subtype_study.models import (
    Configuration,
    FoldAssignment,
    GridSearchTrainer,
    HyperparameterGrid,
    LinearSVMFamily,
    RadialSVMFamily,
)


class FlakyLinearFamily(LinearSVMFamily):
    """Linear SVM that fails for one value of C.

    With ``required_sample`` set, the failure only happens when that sample
    is missing from the training data, i.e. in the fold holding it out.
    """

    def __init__(self, fail_C, required_sample=None):
        super().__init__(random_state=0)
        self.fail_C = fail_C
        self.required_sample = required_sample

    def train(self, train, configuration):
        if configuration.as_dict().get("C") == self.fail_C and (
            self.required_sample is None or self.required_sample not in train.sample_ids
        ):
            raise NonConvergenceError("synthetic failure")
        return super().train(train, configuration)


@pytest.fixture
def tuning_train(split, informative_genes):
    """Training set restricted to the informative genes plus three noise genes."""
    noise = [g for g in split.train.feature_names if g not in informative_genes][:3]
    return split.train.restrict(list(informative_genes) + noise)


class TestHyperparameterGrid:
    """Tests for HyperparameterGrid and Configuration."""

    def test_enumeration_order(self):
        """The first parameter should vary slowest."""
        grid = HyperparameterGrid({"C": [1, 10], "gamma": [0.1, 0.01]})
        assert [str(c) for c in grid.configurations()] == [
            "C=1, gamma=0.1",
            "C=1, gamma=0.01",
            "C=10, gamma=0.1",
            "C=10, gamma=0.01",
        ]
        assert len(grid) == 4

    def test_empty_value_list(self):
        """A parameter without values gives no configurations."""
        assert HyperparameterGrid({"C": [1, 10], "gamma": []}).configurations() == []
        assert HyperparameterGrid({}).configurations() == []

    def test_single(self):
        """A single-configuration grid should reproduce the configuration."""
        configuration = Configuration.of(C=0.5, gamma=0.1)
        assert HyperparameterGrid.single(configuration).configurations() == [configuration]

    def test_default_configuration_string(self):
        """An empty configuration should print as '<default>'."""
        assert str(Configuration.of()) == "<default>"


class TestFoldAssignment:
    """Tests for FoldAssignment."""

    @pytest.mark.parametrize("n_samples", [23, 45, 50])
    @pytest.mark.parametrize("n_folds", [2, 3, 5])
    def test_partition_and_balance(self, n_samples, n_folds):
        """Folds should cover every sample once and differ in size by at most one."""
        labels = np.array(["A"] * (n_samples // 3) + ["B"] * (n_samples - n_samples // 3))
        assignment = FoldAssignment.stratified(labels, n_folds=n_folds, seed=0)
        assert len(assignment.folds) == n_samples
        assert set(np.unique(assignment.folds)) == set(range(n_folds))
        sizes = assignment.sizes()
        assert sizes.sum() == n_samples
        assert sizes.max() - sizes.min() <= 1

    def test_stratified(self):
        """Each class should be spread evenly over the folds."""
        labels = np.array(["A"] * 17 + ["B"] * 33)
        assignment = FoldAssignment.stratified(labels, n_folds=5, seed=1)
        for label in ("A", "B"):
            counts = np.bincount(assignment.folds[labels == label], minlength=5)
            assert counts.max() - counts.min() <= 1

    def test_deterministic(self):
        """The same seed should give the same folds."""
        labels = np.array(["A", "B"] * 20)
        first = FoldAssignment.stratified(labels, 5, seed=3)
        second = FoldAssignment.stratified(labels, 5, seed=3)
        np.testing.assert_array_equal(first.folds, second.folds)

    def test_splits_are_disjoint(self):
        """Each split should separate held-out positions from fit positions."""
        labels = np.array(["A", "B"] * 10)
        for fold, fit, held_out in FoldAssignment.stratified(labels, 4).splits():
            assert set(fit).isdisjoint(held_out)
            assert len(fit) + len(held_out) == 20

    def test_matches_stratified_kfold(self):
        """Held-out positions should be the test folds of a seeded StratifiedKFold."""
        labels = np.array(["A"] * 12 + ["B"] * 18)
        assignment = FoldAssignment.stratified(labels, n_folds=3, seed=5)
        skf = StratifiedKFold(n_splits=3, shuffle=True, random_state=5)
        expected = skf.split(np.zeros((30, 1)), labels)
        for (fold, _, held_out), (_, test_index) in zip(assignment.splits(), expected):
            np.testing.assert_array_equal(held_out, np.sort(test_index))

    def test_classes_smaller_than_fold_count(self):
        """Folds that cannot hold every class should be rejected."""
        labels = np.array(["A", "B"] * 3)
        with pytest.raises(InsufficientSamplesError):
            FoldAssignment.stratified(labels, n_folds=5)

    def test_invalid_fold_counts(self):
        """Too few or too many folds should be rejected."""
        labels = np.array(["A", "B"] * 3)
        with pytest.raises(ValueError):
            FoldAssignment.stratified(labels, n_folds=1)
        with pytest.raises(InsufficientSamplesError):
            FoldAssignment.stratified(labels, n_folds=7)


class TestGridSearchTrainer:
    """Tests for GridSearchTrainer."""

    def test_single_configuration(self, tuning_train):
        """A one-point grid should train exactly that configuration."""
        grid = HyperparameterGrid({"C": [1.0]})
        result = GridSearchTrainer(LinearSVMFamily(), grid, n_folds=5, n_jobs=1).fit(tuning_train)
        assert result.configuration == Configuration.of(C=1.0)
        assert len(result.cv_results) == 1
        assert len(result.fold_results) == 5
        assert result.excluded == ()

    def test_empty_grid(self):
        """A grid without configurations should be rejected."""
        with pytest.raises(EmptyGridError):
            GridSearchTrainer(LinearSVMFamily(), HyperparameterGrid({"C": []}))

    def test_unknown_hyperparameter(self):
        """Hyperparameters the family does not tune should be rejected."""
        with pytest.raises(ValueError, match="Unknown hyperparameters"):
            GridSearchTrainer(LinearSVMFamily(), HyperparameterGrid({"degree": [2, 3]}))

    def test_best_configuration_has_highest_mean(self, tuning_train):
        """The winner should be the first configuration with the highest mean accuracy."""
        grid = HyperparameterGrid({"C": [0.1, 1.0, 10.0], "gamma": [0.01, 0.1]})
        result = GridSearchTrainer(RadialSVMFamily(), grid, n_folds=3, n_jobs=1).fit(tuning_train)
        cv = result.cv_results
        assert len(cv) == 6
        assert str(result.configuration) == cv.loc[cv["mean_accuracy"].idxmax(), "configuration"]
        assert result.best_score == pytest.approx(cv["mean_accuracy"].max())

    def test_final_model_refit_on_all_training_data(self, tuning_train):
        """The final model should use the whole training set's statistics."""
        result = GridSearchTrainer(
            LinearSVMFamily(), HyperparameterGrid({"C": [0.1, 1.0]}), n_folds=3, n_jobs=1
        ).fit(tuning_train)
        assert result.model.feature_set == tuning_train.feature_set
        np.testing.assert_allclose(
            result.model.standardization.center, tuning_train.values.mean(axis=0)
        )

    def test_all_folds_failed(self, tuning_train):
        """If every fold of a configuration fails the run should fail."""
        family = FlakyLinearFamily(fail_C=0.5)
        trainer = GridSearchTrainer(family, HyperparameterGrid({"C": [1.0, 0.5]}), n_folds=3, n_jobs=1)
        with pytest.raises(NonConvergenceError, match="C=0.5"):
            trainer.fit(tuning_train)

    def test_partial_failure_is_excluded(self, tuning_train, caplog):
        """A failed fold should be excluded, reported and logged."""
        family = FlakyLinearFamily(fail_C=2.0, required_sample=tuning_train.sample_ids[0])
        trainer = GridSearchTrainer(family, HyperparameterGrid({"C": [2.0, 1.0]}), n_folds=3, n_jobs=1)
        with caplog.at_level(logging.WARNING, logger="subtype_study.models.grid_search"):
            result = trainer.fit(tuning_train)

        assert len(result.excluded) == 1
        assert result.excluded[0].configuration == Configuration.of(C=2.0)
        assert "synthetic failure" in result.excluded[0].error
        assert result.cv_results["n_completed"].tolist() == [2, 3]
        # only the configuration with every fold completed is eligible
        assert result.configuration == Configuration.of(C=1.0)
        assert "Excluded fold" in caplog.text

    def test_partial_results_used_when_nothing_complete(self, tuning_train):
        """Without any complete configuration the partial ones are compared."""
        family = FlakyLinearFamily(fail_C=2.0, required_sample=tuning_train.sample_ids[0])
        result = GridSearchTrainer(
            family, HyperparameterGrid({"C": [2.0]}), n_folds=3, n_jobs=1
        ).fit(tuning_train)
        assert result.configuration == Configuration.of(C=2.0)
        assert result.cv_results["n_completed"].iloc[0] == 2

    def test_independent_of_worker_count(self, tuning_train):
        """Serial and parallel runs should give identical CV results."""
        grid = HyperparameterGrid({"C": [0.1, 1.0]})
        serial = GridSearchTrainer(LinearSVMFamily(), grid, n_folds=3, n_jobs=1).fit(tuning_train)
        parallel = GridSearchTrainer(LinearSVMFamily(), grid, n_folds=3, n_jobs=2).fit(tuning_train)
        pd.testing.assert_frame_equal(serial.cv_results, parallel.cv_results)


class TestClassifierFamilies:
    """Tests for the SVM families and FittedModel."""

    def test_probability_estimator_is_calibrated(self):
        """Probability estimators should wrap the raw SVM in a calibrator."""
        family = RadialSVMFamily()
        estimator = family.build(Configuration.of(C=1.0, gamma=0.1))
        assert hasattr(estimator, "predict_proba")
        assert family.build(Configuration.of(C=1.0), probability=False).kernel == "rbf"

    def test_linear_kernel(self):
        """The linear family should build a linear-kernel SVM."""
        raw = LinearSVMFamily().build(Configuration.of(C=0.1), probability=False)
        assert raw.kernel == "linear"
        assert raw.C == 0.1

    def test_predict_returns_class_labels(self, split, tuning_train):
        """Predictions should be original labels, probabilities in [0, 1]."""
        model = LinearSVMFamily().train(tuning_train, Configuration.of(C=1.0))
        test = split.test.restrict(tuning_train.feature_set)
        predictions = model.predict(test)
        assert set(predictions) <= {"Basal", "Luminal"}
        probabilities = model.positive_probability(test)
        assert np.all((probabilities >= 0) & (probabilities <= 1))
        assert model.positive_class == "Basal"

    def test_threshold_controls_predictions(self, split, tuning_train):
        """Raising the threshold should never add positive predictions."""
        model = LinearSVMFamily().train(tuning_train, Configuration.of(C=1.0))
        test = split.test.restrict(tuning_train.feature_set)
        low = (model.predict(test, threshold=0.3) == "Basal").sum()
        high = (model.predict(test, threshold=0.7) == "Basal").sum()
        assert high <= low

    def test_training_is_reproducible(self, tuning_train, split):
        """Two fits with the same configuration should agree."""
        test = split.test.restrict(tuning_train.feature_set)
        first = RadialSVMFamily().train(tuning_train, Configuration.of(C=1.0, gamma=0.1))
        second = RadialSVMFamily().train(tuning_train, Configuration.of(C=1.0, gamma=0.1))
        np.testing.assert_allclose(
            first.positive_probability(test), second.positive_probability(test)
        )

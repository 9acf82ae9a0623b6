"""
Cross-validated hyperparameter grid search.

Every (configuration x fold) pair is an independent task: it standardizes the
k-1 training folds on their own statistics, fits one classifier and scores
accuracy on the held-out fold. Accuracies are reduced per configuration after
all tasks have finished.
"""

import logging
from dataclasses import dataclass
from typing import Any, Iterator, List, Optional, Sequence, Tuple

import numpy as np
import pandas as pd
from sklearn.model_selection import StratifiedKFold

from ..data.dataset import Dataset
from ..exceptions import EmptyGridError, InsufficientSamplesError, NonConvergenceError
from ..utils.parallel import outcomes_to_frame, run_tasks
from .classifiers import ClassifierFamily, FittedModel
from .hyperparameters import Configuration, HyperparameterGrid

logger = logging.getLogger(__name__)


@dataclass(frozen=True, eq=False)
class FoldAssignment:
    """
    Fold id for every training sample.

    Folds come from a shuffled ``StratifiedKFold`` seeded with ``seed``, so
    every class is spread evenly over the folds and fold sizes differ by at
    most one.

    Attributes:
        folds: Fold id (0..n_folds-1) per sample position.
        n_folds: Number of folds.
    """

    folds: np.ndarray
    n_folds: int

    @classmethod
    def stratified(
        cls,
        labels: Sequence[Any],
        n_folds: int = 5,
        seed: Optional[int] = 42
    ) -> 'FoldAssignment':
        labels = np.asarray(labels)
        if n_folds < 2:
            raise ValueError(f"n_folds must be at least 2, got {n_folds}")
        if n_folds > len(labels):
            raise InsufficientSamplesError(
                f"Cannot build {n_folds} folds from {len(labels)} samples"
            )

        skf = StratifiedKFold(n_splits=n_folds, shuffle=True, random_state=seed)
        folds = np.empty(len(labels), dtype=int)
        try:
            for fold, (_, held_out) in enumerate(skf.split(np.zeros((len(labels), 1)), labels)):
                folds[held_out] = fold
        except ValueError as e:
            raise InsufficientSamplesError(
                f"Cannot stratify {len(labels)} samples into {n_folds} folds: {e}"
            ) from e

        folds.setflags(write=False)
        return cls(folds, n_folds)

    def sizes(self) -> np.ndarray:
        return np.bincount(self.folds, minlength=self.n_folds)

    def splits(self) -> Iterator[Tuple[int, np.ndarray, np.ndarray]]:
        """Yield ``(fold, train_positions, held_out_positions)``."""
        for fold in range(self.n_folds):
            yield fold, np.flatnonzero(self.folds != fold), np.flatnonzero(self.folds == fold)


@dataclass(frozen=True)
class ExcludedUnit:
    """A (configuration, fold) task that failed and was left out of its mean."""

    configuration: Configuration
    fold: int
    error: str


@dataclass(frozen=True, eq=False)
class GridSearchResult:
    """
    Outcome of a grid search.

    Attributes:
        model: Final model refit on the whole training set.
        configuration: Winning configuration.
        cv_results: One row per configuration with mean/sd accuracy and the
            number of completed folds, in enumeration order.
        fold_results: One row per (configuration, fold) task.
        excluded: Failed tasks left out of the reduction.
    """

    model: FittedModel
    configuration: Configuration
    cv_results: pd.DataFrame
    fold_results: pd.DataFrame
    excluded: Tuple[ExcludedUnit, ...]

    @property
    def best_score(self) -> float:
        row = self.cv_results[self.cv_results['configuration'] == str(self.configuration)]
        return float(row['mean_accuracy'].iloc[0])


def fold_accuracy(
    family: ClassifierFamily,
    configuration: Configuration,
    train: Dataset,
    fit_positions: np.ndarray,
    held_out_positions: np.ndarray
) -> float:
    """Train on ``fit_positions`` of ``train`` and score the held-out fold."""
    model = family.train(train.subset(fit_positions), configuration)
    held_out = train.subset(held_out_positions)
    return float(np.mean(model.predict(held_out) == held_out.labels))


class GridSearchTrainer:
    """
    Select hyperparameters by k-fold cross-validated accuracy.

    Parameters
    ----------
    family : ClassifierFamily
        Classifier family to tune.
    grid : HyperparameterGrid, optional
        Candidate configurations. Defaults to ``family.default_grid()``.
    n_folds : int, default=5
        Number of cross-validation folds.
    seed : int, default=42
        Seed for the fold assignment.
    n_jobs : int, default=-1
        Number of parallel workers.

    Notes
    -----
    The winner is the configuration with the highest mean held-out accuracy
    among configurations that completed every fold; ties go to the first
    configuration in enumeration order. Failed folds are excluded from their
    configuration's mean and reported. Configurations with missing folds are
    only considered when no configuration completed all folds, and the run
    fails if every fold of some configuration failed.

    Examples
    --------
    >>> trainer = GridSearchTrainer(RadialSVMFamily(), n_folds=5)
    >>> result = trainer.fit(split.train.restrict(selected))
    >>> result.configuration, result.best_score
    """

    def __init__(
        self,
        family: ClassifierFamily,
        grid: Optional[HyperparameterGrid] = None,
        n_folds: int = 5,
        seed: Optional[int] = 42,
        n_jobs: int = -1
    ):
        self.family = family
        self.grid = grid if grid is not None else family.default_grid()
        self.n_folds = n_folds
        self.seed = seed
        self.n_jobs = n_jobs

        self.configurations: List[Configuration] = self.grid.configurations()
        if not self.configurations:
            raise EmptyGridError(f"Hyperparameter grid {self.grid!r} has no configurations")
        for configuration in self.configurations:
            family.validate(configuration)

    def fit(self, train: Dataset) -> GridSearchResult:
        assignment = FoldAssignment.stratified(train.labels, self.n_folds, self.seed)

        logger.info(
            "Grid search for %s: %d configurations x %d folds on %d samples, %d features",
            self.family.name, len(self.configurations), self.n_folds,
            train.n_samples, train.n_features
        )

        tasks = [
            ((index, fold), fold_accuracy,
             (self.family, configuration, train, fit_positions, held_out_positions))
            for index, configuration in enumerate(self.configurations)
            for fold, fit_positions, held_out_positions in assignment.splits()
        ]
        outcomes = run_tasks(tasks, n_jobs=self.n_jobs)

        fold_results = outcomes_to_frame(outcomes, ['config_index', 'fold'])
        fold_results.insert(
            1, 'configuration',
            [str(self.configurations[i]) for i in fold_results['config_index']]
        )
        fold_results = fold_results.rename(columns={'value': 'accuracy'})

        excluded = tuple(
            ExcludedUnit(self.configurations[o.key[0]], o.key[1], o.error)
            for o in outcomes if not o.ok
        )
        for unit in excluded:
            logger.warning("Excluded fold %d of configuration (%s): %s",
                           unit.fold, unit.configuration, unit.error)

        cv_results = self._reduce(fold_results)
        best = self._choose(cv_results)
        configuration = self.configurations[best]

        logger.info("Best %s configuration: %s (mean accuracy %.4f)",
                    self.family.name, configuration,
                    cv_results['mean_accuracy'].iloc[best])

        model = self.family.train(train, configuration)
        return GridSearchResult(
            model=model,
            configuration=configuration,
            cv_results=cv_results,
            fold_results=fold_results,
            excluded=excluded
        )

    def _reduce(self, fold_results: pd.DataFrame) -> pd.DataFrame:
        rows = []
        for index, configuration in enumerate(self.configurations):
            scores = fold_results.loc[
                (fold_results['config_index'] == index) & fold_results['error'].isna(),
                'accuracy'
            ].astype(float)
            if len(scores) == 0:
                errors = fold_results.loc[fold_results['config_index'] == index, 'error']
                raise NonConvergenceError(
                    f"All {self.n_folds} folds failed for {self.family.name} "
                    f"configuration ({configuration}): {errors.iloc[0]}"
                )
            rows.append({
                'configuration': str(configuration),
                'mean_accuracy': scores.mean(),
                'sd_accuracy': scores.std(ddof=1) if len(scores) > 1 else np.nan,
                'n_completed': len(scores),
                **configuration.as_dict()
            })
        return pd.DataFrame(rows)

    def _choose(self, cv_results: pd.DataFrame) -> int:
        complete = cv_results['n_completed'] == self.n_folds
        eligible = np.flatnonzero(complete.to_numpy())
        if len(eligible) == 0:
            logger.warning("No configuration completed all %d folds; "
                           "choosing among partial results", self.n_folds)
            eligible = np.arange(len(cv_results))

        means = cv_results['mean_accuracy'].to_numpy()
        best = eligible[0]
        for index in eligible[1:]:
            if means[index] > means[best]:
                best = index
        return int(best)

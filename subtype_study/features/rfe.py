"""
Recursive feature elimination with the subset size chosen by cross-validation.

For every candidate subset size and every fold, a linear-kernel SVM is fit on
the standardized fold-train, the features with the smallest absolute weights
are dropped until the size is reached, and the reduced model is scored on the
held-out fold. The size with the best mean accuracy is then eliminated down
to on the whole training set.
"""

import logging
from typing import Optional, Sequence

import numpy as np
import pandas as pd
from sklearn.feature_selection import RFE
from sklearn.preprocessing import StandardScaler

from ..data.dataset import Dataset
from ..exceptions import NonConvergenceError
from ..models.classifiers import ClassifierFamily, LinearSVMFamily
from ..models.grid_search import FoldAssignment
from ..models.hyperparameters import Configuration
from ..utils.parallel import outcomes_to_frame, run_tasks
from .base import FeatureSelector, SelectionResult

logger = logging.getLogger(__name__)


def size_fold_accuracy(
    family: ClassifierFamily,
    configuration: Configuration,
    X: np.ndarray,
    y: np.ndarray,
    fit_positions: np.ndarray,
    held_out_positions: np.ndarray,
    size: int,
    step: float
) -> float:
    """Held-out accuracy of an RFE model reduced to ``size`` features."""
    scaler = StandardScaler().fit(X[fit_positions])
    rfe = RFE(
        family.build(configuration, probability=False),
        n_features_to_select=size,
        step=step
    )
    rfe.fit(scaler.transform(X[fit_positions]), y[fit_positions])
    predicted = rfe.predict(scaler.transform(X[held_out_positions]))
    return float(np.mean(predicted == y[held_out_positions]))


class RFESelector(FeatureSelector):
    """
    Recursive feature elimination over a list of candidate subset sizes.

    Parameters
    ----------
    subset_sizes : sequence of int, default=(2, 5, 10, 20, 50)
        Candidate numbers of features to keep. Sizes above the number of
        candidates are dropped; when none remain the full candidate count
        is used.
    n_folds : int, default=5
        Cross-validation folds used to score each size.
    seed : int, default=42
        Seed for the fold assignment and the ranking classifier.
    step : float or int, default=0.1
        Features removed per elimination round (fraction if below 1).
    n_jobs : int, default=-1
        Number of parallel workers.
    family : ClassifierFamily, optional
        Ranking classifier; must expose ``coef_``. Defaults to a linear SVM.
    configuration : Configuration, optional
        Hyperparameters of the ranking classifier. Defaults to ``C=1``.

    Notes
    -----
    The retained size has the highest mean held-out accuracy; ties go to the
    smaller size. Sizes with failed folds follow the grid-search policy:
    they are only eligible when no size completed every fold, and the run
    fails if every fold of some size failed.
    """

    name = 'rfe'

    def __init__(
        self,
        subset_sizes: Sequence[int] = (2, 5, 10, 20, 50),
        n_folds: int = 5,
        seed: Optional[int] = 42,
        step: float = 0.1,
        n_jobs: int = -1,
        family: Optional[ClassifierFamily] = None,
        configuration: Optional[Configuration] = None
    ):
        if not subset_sizes:
            raise ValueError("subset_sizes must not be empty")
        if min(subset_sizes) < 1:
            raise ValueError(f"subset sizes must be at least 1, got {list(subset_sizes)}")
        self.subset_sizes = tuple(sorted(set(int(s) for s in subset_sizes)))
        self.n_folds = n_folds
        self.seed = seed
        self.step = step
        self.n_jobs = n_jobs
        self.family = family if family is not None else LinearSVMFamily(random_state=seed)
        self.configuration = (configuration if configuration is not None
                              else Configuration.of({'C': 1.0}))
        self.family.validate(self.configuration)

    def candidate_sizes(self, n_candidates: int) -> list:
        """Subset sizes that fit within ``n_candidates``, ascending."""
        sizes = [s for s in self.subset_sizes if s <= n_candidates]
        if not sizes:
            logger.warning("All subset sizes %s exceed the %d candidates; using %d",
                           list(self.subset_sizes), n_candidates, n_candidates)
            sizes = [n_candidates]
        return sizes

    def _select(self, candidates: Dataset) -> SelectionResult:
        standardization, X_scaled = self._standardize(candidates)
        y = candidates.binary_labels()
        X = np.asarray(candidates.values)
        sizes = self.candidate_sizes(candidates.n_features)

        assignment = FoldAssignment.stratified(candidates.labels, self.n_folds, self.seed)
        tasks = [
            ((size, fold), size_fold_accuracy,
             (self.family, self.configuration, X, y,
              fit_positions, held_out_positions, size, self.step))
            for size in sizes
            for fold, fit_positions, held_out_positions in assignment.splits()
        ]
        folds = outcomes_to_frame(run_tasks(tasks, n_jobs=self.n_jobs), ['size', 'fold'])

        curve = self._accuracy_curve(folds, sizes)
        best_size = self._choose(curve)

        rfe = RFE(
            self.family.build(self.configuration, probability=False),
            n_features_to_select=best_size,
            step=self.step
        ).fit(X_scaled, y)
        selected = self._names(candidates, rfe.support_)

        logger.info("RFE kept %d features (CV accuracy %.4f)", best_size,
                    curve.loc[curve['size'] == best_size, 'mean_accuracy'].iloc[0])

        return SelectionResult(
            feature_set=selected,
            model=rfe,
            standardization=standardization,
            details={
                'accuracy_curve': curve,
                'fold_accuracies': folds,
                'best_size': best_size,
                'ranking': pd.Series(
                    rfe.ranking_, index=candidates.feature_names, name='rank'
                ).sort_values(kind='stable')
            }
        )

    def _accuracy_curve(self, folds: pd.DataFrame, sizes: Sequence[int]) -> pd.DataFrame:
        rows = []
        for size in sizes:
            mine = folds[folds['size'] == size]
            scores = mine.loc[mine['error'].isna(), 'value'].astype(float)
            if len(scores) == 0:
                raise NonConvergenceError(
                    f"All {self.n_folds} folds failed for RFE size {size}: "
                    f"{mine['error'].iloc[0]}"
                )
            if len(scores) < self.n_folds:
                logger.warning("RFE size %d: %d of %d folds failed",
                               size, self.n_folds - len(scores), self.n_folds)
            rows.append({
                'size': size,
                'mean_accuracy': scores.mean(),
                'sd_accuracy': scores.std(ddof=1) if len(scores) > 1 else np.nan,
                'n_completed': len(scores)
            })
        return pd.DataFrame(rows)

    def _choose(self, curve: pd.DataFrame) -> int:
        eligible = curve[curve['n_completed'] == self.n_folds]
        if eligible.empty:
            logger.warning("No RFE size completed all %d folds; "
                           "choosing among partial results", self.n_folds)
            eligible = curve

        # ascending sizes, strict improvement keeps the smaller size on ties
        best_size, best_accuracy = None, -np.inf
        for size, accuracy in zip(eligible['size'], eligible['mean_accuracy']):
            if accuracy > best_accuracy:
                best_size, best_accuracy = int(size), accuracy
        return best_size

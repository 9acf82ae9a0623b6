"""
L1-regularized logistic regression path with one-standard-error selection.

The penalty grid runs geometrically from the smallest penalty that zeroes
every coefficient down to a fraction of it. Each (penalty, fold) pair is an
independent task; the selected penalty is the largest one whose mean
cross-validated misclassification error is within one standard error of the
minimum.

Example:
    >>> from subtype_study.features import LassoSelector
    >>>
    >>> selector = LassoSelector(n_penalties=30, n_folds=5)
    >>> result = selector.select(split.train, pruned_features)
    >>> result.details['lambda_1se'], len(result.feature_set)
"""

import logging
from typing import Optional

import numpy as np
import pandas as pd
from sklearn.linear_model import LogisticRegression
from sklearn.preprocessing import StandardScaler

from ..data.dataset import Dataset
from ..exceptions import NonConvergenceError
from ..models.grid_search import FoldAssignment
from ..utils.parallel import outcomes_to_frame, run_tasks
from .base import FeatureSelector, SelectionResult

logger = logging.getLogger(__name__)


def l1_logistic(penalty: float, n_samples: int, max_iter: int, seed: Optional[int]) -> LogisticRegression:
    """L1 logistic regression for penalty ``lambda`` on ``n_samples`` rows."""
    return LogisticRegression(
        l1_ratio=1.0,
        solver='liblinear',
        C=1.0 / (n_samples * penalty),
        max_iter=max_iter,
        random_state=seed
    )


def penalty_fold_error(
    X: np.ndarray,
    y: np.ndarray,
    fit_positions: np.ndarray,
    held_out_positions: np.ndarray,
    penalty: float,
    max_iter: int,
    seed: Optional[int]
) -> float:
    """Misclassification error on one held-out fold for one penalty."""
    scaler = StandardScaler().fit(X[fit_positions])
    model = l1_logistic(penalty, len(fit_positions), max_iter, seed)
    model.fit(scaler.transform(X[fit_positions]), y[fit_positions])
    predicted = model.predict(scaler.transform(X[held_out_positions]))
    return float(np.mean(predicted != y[held_out_positions]))


class LassoSelector(FeatureSelector):
    """
    Feature selection from the L1 regularization path of a logistic model.

    Attributes:
        n_penalties: Number of penalties on the geometric grid.
        min_ratio: Smallest penalty as a fraction of the largest.
        n_folds: Cross-validation folds for the error curve.
        seed: Seed for the fold assignment and the solver.
        max_iter: Solver iteration limit.
        n_jobs: Number of parallel workers.
    """

    name = 'lasso'

    def __init__(
        self,
        n_penalties: int = 30,
        min_ratio: float = 0.01,
        n_folds: int = 5,
        seed: Optional[int] = 42,
        max_iter: int = 1000,
        n_jobs: int = -1
    ):
        if n_penalties < 1:
            raise ValueError(f"n_penalties must be at least 1, got {n_penalties}")
        if not 0.0 < min_ratio < 1.0:
            raise ValueError(f"min_ratio must be in (0, 1), got {min_ratio}")
        self.n_penalties = n_penalties
        self.min_ratio = min_ratio
        self.n_folds = n_folds
        self.seed = seed
        self.max_iter = max_iter
        self.n_jobs = n_jobs

    def penalty_grid(self, X: np.ndarray, y: np.ndarray) -> np.ndarray:
        """Penalties from strongest to weakest for standardized ``X``."""
        lambda_max = np.max(np.abs(X.T @ (y - y.mean()))) / len(y)
        if lambda_max <= 0:
            raise NonConvergenceError("No feature is associated with the labels (lambda_max=0)")
        return np.geomspace(lambda_max, lambda_max * self.min_ratio, self.n_penalties)

    def _select(self, candidates: Dataset) -> SelectionResult:
        standardization, X_scaled = self._standardize(candidates)
        y = candidates.binary_labels()
        penalties = self.penalty_grid(X_scaled, y)

        assignment = FoldAssignment.stratified(candidates.labels, self.n_folds, self.seed)
        X = np.asarray(candidates.values)
        tasks = [
            ((index, fold), penalty_fold_error,
             (X, y, fit_positions, held_out_positions, penalty, self.max_iter, self.seed))
            for index, penalty in enumerate(penalties)
            for fold, fit_positions, held_out_positions in assignment.splits()
        ]
        folds = outcomes_to_frame(run_tasks(tasks, n_jobs=self.n_jobs), ['penalty_index', 'fold'])

        curve = self._error_curve(folds, penalties, X_scaled, y)
        index_min = int(np.argmin(curve['mean_error'].to_numpy()))
        se_min = curve['se_error'].iloc[index_min]
        threshold = curve['mean_error'].iloc[index_min] + (0.0 if np.isnan(se_min) else se_min)
        index_1se = int(np.flatnonzero(curve['mean_error'].to_numpy() <= threshold)[0])

        lambda_1se = penalties[index_1se]
        model = l1_logistic(lambda_1se, len(y), self.max_iter, self.seed).fit(X_scaled, y)
        coef = model.coef_.ravel()
        selected = self._names(candidates, coef != 0)

        logger.info("Lasso lambda_min=%.5f, lambda_1se=%.5f (CV error %.4f), %d nonzero",
                    penalties[index_min], lambda_1se,
                    curve['mean_error'].iloc[index_1se], len(selected))

        return SelectionResult(
            feature_set=selected,
            model=model,
            standardization=standardization,
            details={
                'cv_curve': curve,
                'fold_errors': folds,
                'lambda_min': float(penalties[index_min]),
                'lambda_1se': float(lambda_1se),
                'coefficients': pd.Series(
                    coef[coef != 0], index=list(selected), name='coefficient'
                )
            }
        )

    def _error_curve(
        self,
        folds: pd.DataFrame,
        penalties: np.ndarray,
        X_scaled: np.ndarray,
        y: np.ndarray
    ) -> pd.DataFrame:
        rows = []
        for index, penalty in enumerate(penalties):
            mine = folds[folds['penalty_index'] == index]
            errors = mine.loc[mine['error'].isna(), 'value'].astype(float)
            if len(errors) == 0:
                raise NonConvergenceError(
                    f"All {self.n_folds} folds failed for lambda={penalty:.5g}: "
                    f"{mine['error'].iloc[0]}"
                )
            if len(errors) < self.n_folds:
                logger.warning("lambda=%.5g: %d of %d folds failed",
                               penalty, self.n_folds - len(errors), self.n_folds)
            path_model = l1_logistic(penalty, len(y), self.max_iter, self.seed).fit(X_scaled, y)
            rows.append({
                'lambda': penalty,
                'C': 1.0 / (len(y) * penalty),
                'mean_error': errors.mean(),
                'se_error': errors.std(ddof=1) / np.sqrt(len(errors)) if len(errors) > 1 else np.nan,
                'n_completed': len(errors),
                'n_nonzero': int(np.count_nonzero(path_model.coef_))
            })
        return pd.DataFrame(rows)

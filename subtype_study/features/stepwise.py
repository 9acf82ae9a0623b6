"""
Greedy backward stepwise selection driven by the Akaike information criterion.

Starting from all candidate features, the logistic regression is refit
without each remaining feature in turn and the removal that lowers
AIC = 2k - 2 log L the most is applied. Elimination stops at the first step
where no removal lowers the criterion.
"""

import logging
import warnings
from typing import List, Sequence

import numpy as np
import pandas as pd
import statsmodels.api as sm
from statsmodels.tools.sm_exceptions import (
    ConvergenceWarning,
    HessianInversionWarning,
    PerfectSeparationError,
    PerfectSeparationWarning,
)

from ..data.dataset import Dataset
from ..exceptions import NonConvergenceError
from .base import FeatureSelector, SelectionResult

logger = logging.getLogger(__name__)


def fit_logit(y: np.ndarray, X: np.ndarray, maxiter: int = 100):
    """
    Fit a logistic regression with intercept, raising on numerical failure.

    Args:
        y: Binary 0/1 response.
        X: Standardized predictors (may have zero columns).
        maxiter: Newton iterations allowed.

    Returns:
        Fitted statsmodels ``LogitResults``.

    Raises:
        NonConvergenceError: On perfect separation, a singular Hessian,
            a non-finite likelihood or failure to converge.
    """
    exog = np.column_stack([np.ones(len(y)), X])
    with warnings.catch_warnings():
        warnings.simplefilter('error', PerfectSeparationWarning)
        warnings.simplefilter('error', ConvergenceWarning)
        warnings.simplefilter('ignore', HessianInversionWarning)
        warnings.simplefilter('ignore', RuntimeWarning)
        try:
            result = sm.Logit(y, exog).fit(disp=0, maxiter=maxiter)
        except (PerfectSeparationError, PerfectSeparationWarning) as e:
            raise NonConvergenceError(f"Perfect separation with {X.shape[1]} predictors") from e
        except ConvergenceWarning as e:
            raise NonConvergenceError(f"Logistic fit did not converge: {e}") from e
        except np.linalg.LinAlgError as e:
            raise NonConvergenceError(f"Singular Hessian with {X.shape[1]} predictors") from e

    if not result.mle_retvals.get('converged', True) or not np.isfinite(result.llf):
        raise NonConvergenceError(
            f"Logistic fit with {X.shape[1]} predictors did not converge"
        )
    return result


class StepwiseSelector(FeatureSelector):
    """
    Backward elimination of logistic-regression predictors by AIC.

    Attributes:
        max_iter: Maximum number of elimination steps. The search is also
            bounded by the number of candidates.
        tol: Minimum AIC decrease for a removal to count as an improvement.
        fit_maxiter: Newton iterations per logistic fit.

    Example:
        >>> selector = StepwiseSelector(max_iter=50)
        >>> result = selector.select(split.train, pruned_features)
        >>> result.details['aic_trace']
    """

    name = 'stepwise'

    def __init__(self, max_iter: int = 50, tol: float = 1e-8, fit_maxiter: int = 100):
        if max_iter < 0:
            raise ValueError(f"max_iter must be non-negative, got {max_iter}")
        self.max_iter = max_iter
        self.tol = tol
        self.fit_maxiter = fit_maxiter

    def _fit(self, y: np.ndarray, X: np.ndarray, columns: Sequence[int]):
        return fit_logit(y, X[:, list(columns)], maxiter=self.fit_maxiter)

    def _select(self, candidates: Dataset) -> SelectionResult:
        standardization, X = self._standardize(candidates)
        y = candidates.binary_labels()
        names = candidates.feature_names

        if X.shape[1] + 1 >= X.shape[0]:
            raise NonConvergenceError(
                f"Stepwise logistic regression needs fewer parameters "
                f"({X.shape[1] + 1}) than samples ({X.shape[0]})"
            )

        current: List[int] = list(range(X.shape[1]))
        result = self._fit(y, X, current)
        aic = result.aic
        trace = [{'step': 0, 'removed': None, 'aic': aic, 'n_features': len(current)}]

        bound = min(self.max_iter, len(current))
        for step in range(1, bound + 1):
            best_aic, best_drop, best_result = np.inf, None, None
            for column in current:
                trial = self._fit(y, X, [c for c in current if c != column])
                if trial.aic < best_aic:
                    best_aic, best_drop, best_result = trial.aic, column, trial

            if best_drop is None or best_aic >= aic - self.tol:
                break

            current.remove(best_drop)
            aic, result = best_aic, best_result
            trace.append({
                'step': step,
                'removed': names[best_drop],
                'aic': aic,
                'n_features': len(current)
            })
            logger.debug("Step %d: removed %s, AIC=%.3f", step, names[best_drop], aic)
        else:
            if bound < X.shape[1]:
                logger.warning("Stepwise selection stopped at the %d-step limit "
                               "while AIC was still decreasing", bound)

        mask = np.zeros(len(names), dtype=bool)
        mask[current] = True
        selected = self._names(candidates, mask)

        coefficients = pd.Series(
            result.params[1:], index=list(selected), name='coefficient'
        )
        logger.info("Stepwise AIC %.3f -> %.3f after %d removals",
                    trace[0]['aic'], aic, len(trace) - 1)

        return SelectionResult(
            feature_set=selected,
            model=result,
            standardization=standardization,
            details={
                'aic_trace': pd.DataFrame(trace),
                'aic': aic,
                'coefficients': coefficients
            }
        )

"""
Fork-join execution of independent cross-validation tasks.

Each task is a module-level function plus its arguments. Tasks only read
their inputs and return one scalar, so they can run in any order on any
number of workers; the caller reduces the collected outcomes after the join.
A task that fails numerically yields a failed outcome carrying the error
message instead of a value.
"""

import logging
from dataclasses import dataclass
from typing import Any, Callable, Hashable, List, Optional, Sequence, Tuple

import numpy as np
import pandas as pd
from joblib import Parallel, delayed

from ..exceptions import SubtypingError

logger = logging.getLogger(__name__)

Task = Tuple[Hashable, Callable[..., float], Tuple[Any, ...]]


@dataclass(frozen=True)
class TaskOutcome:
    """Result of one task: a value, or the error that aborted it."""

    key: Hashable
    value: Optional[float] = None
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.error is None


def _run_captured(key: Hashable, func: Callable[..., float], args: Tuple[Any, ...]) -> TaskOutcome:
    try:
        return TaskOutcome(key, value=float(func(*args)))
    except (SubtypingError, ValueError, np.linalg.LinAlgError) as e:
        return TaskOutcome(key, error=f"{type(e).__name__}: {e}")


def run_tasks(tasks: Sequence[Task], n_jobs: int = -1) -> List[TaskOutcome]:
    """
    Run tasks on a worker pool and wait for all of them.

    Args:
        tasks: ``(key, func, args)`` triples. ``func`` must be picklable.
        n_jobs: Number of parallel workers (-1 uses all cores).

    Returns:
        One TaskOutcome per task, in task order.
    """
    outcomes = Parallel(n_jobs=n_jobs)(
        delayed(_run_captured)(key, func, args) for key, func, args in tasks
    )
    n_failed = sum(not outcome.ok for outcome in outcomes)
    logger.debug("Completed %d tasks (%d failed) with n_jobs=%s",
                 len(outcomes), n_failed, n_jobs)
    return list(outcomes)


def outcomes_to_frame(outcomes: Sequence[TaskOutcome], key_names: Sequence[str]) -> pd.DataFrame:
    """Tabulate outcomes whose keys are tuples matching ``key_names``."""
    rows = []
    for outcome in outcomes:
        row = dict(zip(key_names, outcome.key))
        row['value'] = outcome.value
        row['error'] = outcome.error
        rows.append(row)
    return pd.DataFrame(rows, columns=list(key_names) + ['value', 'error'])

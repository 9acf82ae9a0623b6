"""
Run configuration for the comparative subtype study.
"""

import dataclasses
from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Optional, Sequence, Tuple

from .exceptions import InvalidFractionError

STRATEGIES = ('stepwise', 'lasso', 'rfe')
FAMILIES = ('linear', 'radial')


def _default_linear_grid() -> Dict[str, List[float]]:
    return {'C': [0.001, 0.01, 0.1, 1.0, 10.0]}


def _default_radial_grid() -> Dict[str, List[float]]:
    return {
        'C': [0.1, 1.0, 10.0, 100.0],
        'gamma': [0.001, 0.01, 0.1, 1.0]
    }


@dataclass
class StudyConfig:
    """
    Settings for one run of the comparative study.

    Attributes:
        train_fraction: Share of samples in the training split (default: 0.75)
        seed: Seed for the split, folds, solvers and embedding (default: 42)
        n_variance_features: Top-N most variable features kept (default: 1000)
        correlation_cutoff: Absolute Pearson correlation above which one of
            a pair of features is pruned (default: 0.8)
        n_folds: Cross-validation folds for every tuning stage (default: 5)
        n_jobs: Parallel workers, -1 for all cores (default: -1)
        stepwise_max_iter: Elimination step limit for stepwise AIC (default: 50)
        lasso_n_penalties: Penalties on the L1 path (default: 30)
        lasso_min_ratio: Smallest penalty as a fraction of the largest (default: 0.01)
        rfe_subset_sizes: Candidate RFE subset sizes (default: 2, 5, 10, 20, 50)
        rfe_step: Fraction of features removed per RFE round (default: 0.1)
        linear_grid: Hyperparameter grid for the linear SVM
        radial_grid: Hyperparameter grid for the radial SVM
        tsne_perplexity: t-SNE perplexity (default: 30)
        tsne_max_iter: t-SNE iteration cap (default: 1000)
        strategies: Selection strategies to run, from 'stepwise', 'lasso', 'rfe'
        families: Classifier families to tune, from 'linear', 'radial'
        run_embedding: Also evaluate the families on t-SNE coordinates

    Example:
        >>> config = StudyConfig(n_variance_features=500, strategies=('lasso',))
        >>> config = StudyConfig.from_dict({'seed': 7, 'n_jobs': 1})
    """

    train_fraction: float = 0.75
    seed: Optional[int] = 42
    n_variance_features: int = 1000
    correlation_cutoff: float = 0.8
    n_folds: int = 5
    n_jobs: int = -1
    stepwise_max_iter: int = 50
    lasso_n_penalties: int = 30
    lasso_min_ratio: float = 0.01
    rfe_subset_sizes: Tuple[int, ...] = (2, 5, 10, 20, 50)
    rfe_step: float = 0.1
    linear_grid: Dict[str, List[Any]] = field(default_factory=_default_linear_grid)
    radial_grid: Dict[str, List[Any]] = field(default_factory=_default_radial_grid)
    tsne_perplexity: float = 30.0
    tsne_max_iter: int = 1000
    strategies: Tuple[str, ...] = STRATEGIES
    families: Tuple[str, ...] = FAMILIES
    run_embedding: bool = True

    def __post_init__(self):
        """Normalize sequences and validate ranges."""
        self.rfe_subset_sizes = tuple(self.rfe_subset_sizes)
        self.strategies = tuple(self.strategies)
        self.families = tuple(self.families)

        if not 0.0 < self.train_fraction < 1.0:
            raise InvalidFractionError(
                f"train_fraction must be in (0, 1), got {self.train_fraction}"
            )
        if self.n_variance_features < 1:
            raise ValueError(
                f"n_variance_features must be at least 1, got {self.n_variance_features}"
            )
        if not 0.0 <= self.correlation_cutoff <= 1.0:
            raise ValueError(
                f"correlation_cutoff must be in [0, 1], got {self.correlation_cutoff}"
            )
        if self.n_folds < 2:
            raise ValueError(f"n_folds must be at least 2, got {self.n_folds}")
        if self.tsne_perplexity <= 0:
            raise ValueError(f"tsne_perplexity must be positive, got {self.tsne_perplexity}")
        _check_names('strategies', self.strategies, STRATEGIES)
        _check_names('families', self.families, FAMILIES)

    @classmethod
    def from_dict(cls, values: Mapping[str, Any]) -> 'StudyConfig':
        """Build from a plain mapping; unknown keys raise ``ValueError``."""
        known = {f.name for f in dataclasses.fields(cls)}
        unknown = sorted(set(values) - known)
        if unknown:
            raise ValueError(f"Unknown StudyConfig keys: {unknown}")
        return cls(**values)

    def to_dict(self) -> Dict[str, Any]:
        return dataclasses.asdict(self)


def _check_names(attribute: str, names: Sequence[str], allowed: Sequence[str]) -> None:
    if not names:
        raise ValueError(f"{attribute} must name at least one of {list(allowed)}")
    unknown = [n for n in names if n not in allowed]
    if unknown:
        raise ValueError(f"Unknown {attribute} {unknown}; expected a subset of {list(allowed)}")

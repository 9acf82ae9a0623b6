"""
End-to-end comparative study of feature-selection strategies and classifiers.

The study splits the dataset once, pre-filters features on the training
samples, then runs every configured selection strategy and tunes every
classifier family on the selected features. The t-SNE coordinates of the
full matrix are evaluated the same way under the strategy name ``tsne``.

Classes:
    StrategyResult: Selected features, tuned model and held-out metrics for
        one (strategy, family) pair
    StrategyFailure: A (strategy, family) pair that aborted, with its stage
    StudyReport: All results of one run
    ComparativeStudy: Runs the study from a StudyConfig

Example:
    >>> from subtype_study import ComparativeStudy, Dataset, StudyConfig
    >>>
    >>> dataset = Dataset.from_frame(expression, subtypes, positive_class='Basal')
    >>> report = ComparativeStudy(StudyConfig(n_jobs=4)).run(dataset)
    >>> report.summary()
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional

import pandas as pd

from .config import StudyConfig
from .data.dataset import Dataset, FeatureSet
from .data.partition import DataPartitioner, Split
from .data.preprocessing import CorrelationPruner, VarianceFilter
from .exceptions import SubtypingError
from .features import FeatureSelector, LassoSelector, RFESelector, SelectionResult, StepwiseSelector
from .models.classifiers import ClassifierFamily, LinearSVMFamily, RadialSVMFamily
from .models.embedding import EmbeddingProjector
from .models.evaluation import EvaluationResult, Evaluator
from .models.grid_search import GridSearchResult, GridSearchTrainer
from .models.hyperparameters import Configuration, HyperparameterGrid

logger = logging.getLogger(__name__)

EMBEDDING = 'tsne'


@dataclass(frozen=True, eq=False)
class StrategyResult:
    """
    Outcome of one (strategy, family) combination.

    Attributes:
        strategy: Selection strategy name, or 'tsne' for the embedding.
        family: Classifier family name.
        feature_set: Features the classifier was tuned on.
        search: Grid search result, including the final model.
        evaluation: Metrics on the held-out test samples.
        selection_details: Diagnostics of the selection step (curves, traces).
    """

    strategy: str
    family: str
    feature_set: FeatureSet
    search: GridSearchResult
    evaluation: EvaluationResult
    selection_details: Dict[str, Any] = field(default_factory=dict)

    @property
    def configuration(self) -> Configuration:
        return self.search.configuration

    @property
    def model(self):
        return self.search.model


@dataclass(frozen=True)
class StrategyFailure:
    """A combination that aborted, with the stage that raised."""

    strategy: str
    family: Optional[str]
    stage: str
    message: str


@dataclass(eq=False)
class StudyReport:
    """
    Everything produced by one run of the study.

    Attributes:
        config: Settings of the run.
        split: Train/test partition of the input dataset.
        variance_features: Features kept by the variance filter.
        pruned_features: Features kept after correlation pruning.
        selections: Selection result per strategy that succeeded.
        results: One entry per successful (strategy, family) pair.
        failures: One entry per failed pair (or strategy, when selection
            failed before any family ran).
        embedding: t-SNE coordinates of all samples, if computed.
    """

    config: StudyConfig
    split: Split
    variance_features: FeatureSet
    pruned_features: FeatureSet
    selections: Dict[str, SelectionResult] = field(default_factory=dict)
    results: List[StrategyResult] = field(default_factory=list)
    failures: List[StrategyFailure] = field(default_factory=list)
    embedding: Optional[Dataset] = None

    def result(self, strategy: str, family: str) -> StrategyResult:
        for result in self.results:
            if result.strategy == strategy and result.family == family:
                return result
        raise KeyError(f"No result for strategy={strategy!r}, family={family!r}")

    def summary(self) -> pd.DataFrame:
        """
        One row per (strategy, family) pair, successful or failed.

        Failed rows carry the stage and error message and no metrics.
        """
        rows = []
        for result in self.results:
            rows.append({
                'strategy': result.strategy,
                'family': result.family,
                'status': 'ok',
                'n_features': len(result.feature_set),
                'configuration': str(result.configuration),
                'cv_accuracy': result.search.best_score,
                **result.evaluation.as_dict()
            })
        for failure in self.failures:
            rows.append({
                'strategy': failure.strategy,
                'family': failure.family,
                'status': f"failed ({failure.stage})",
                'error': failure.message
            })
        return pd.DataFrame(rows)


class ComparativeStudy:
    """
    Run every configured strategy and classifier family on one dataset.

    A strategy or family that raises a ``SubtypingError`` is recorded as a
    StrategyFailure and the remaining combinations still run.

    Args:
        config: Study settings. Defaults to ``StudyConfig()``.
    """

    def __init__(self, config: Optional[StudyConfig] = None):
        self.config = config if config is not None else StudyConfig()
        self.evaluator = Evaluator()

    def selector(self, strategy: str) -> FeatureSelector:
        """Selector for a strategy name configured from the study settings."""
        factories: Dict[str, Callable[[StudyConfig], FeatureSelector]] = {
            'stepwise': lambda c: StepwiseSelector(max_iter=c.stepwise_max_iter),
            'lasso': lambda c: LassoSelector(
                n_penalties=c.lasso_n_penalties,
                min_ratio=c.lasso_min_ratio,
                n_folds=c.n_folds,
                seed=c.seed,
                n_jobs=c.n_jobs
            ),
            'rfe': lambda c: RFESelector(
                subset_sizes=c.rfe_subset_sizes,
                n_folds=c.n_folds,
                seed=c.seed,
                step=c.rfe_step,
                n_jobs=c.n_jobs
            )
        }
        return factories[strategy](self.config)

    def family(self, name: str) -> ClassifierFamily:
        families = {'linear': LinearSVMFamily, 'radial': RadialSVMFamily}
        return families[name](random_state=self.config.seed)

    def grid(self, name: str) -> HyperparameterGrid:
        grids = {'linear': self.config.linear_grid, 'radial': self.config.radial_grid}
        return HyperparameterGrid(grids[name])

    def run(self, dataset: Dataset) -> StudyReport:
        """
        Run the full study on ``dataset``.

        Args:
            dataset: All samples with their subtype labels.

        Returns:
            StudyReport with results and failures for every combination.

        Raises:
            SubtypingError: If partitioning or pre-filtering fails, since no
                strategy can run without them.
        """
        config = self.config
        logger.info("Starting comparative study on %r", dataset)

        split = DataPartitioner(config.train_fraction, config.seed).split(dataset)
        variance_features = VarianceFilter(config.n_variance_features).select(split.train)
        pruned_features = CorrelationPruner(config.correlation_cutoff).prune(
            split.train, variance_features
        )

        report = StudyReport(
            config=config,
            split=split,
            variance_features=variance_features,
            pruned_features=pruned_features
        )

        for strategy in config.strategies:
            try:
                selection = self.selector(strategy).select(split.train, pruned_features)
            except SubtypingError as e:
                self._record(report, strategy, None, 'selection', e)
                continue
            report.selections[strategy] = selection
            for family in config.families:
                self._tune_and_evaluate(
                    report, strategy, family, split,
                    selection.feature_set, selection.details
                )

        if config.run_embedding:
            self._run_embedding(report, dataset)

        logger.info("Study finished: %d results, %d failures",
                    len(report.results), len(report.failures))
        return report

    def _run_embedding(self, report: StudyReport, dataset: Dataset) -> None:
        config = self.config
        projector = EmbeddingProjector(
            perplexity=config.tsne_perplexity,
            max_iter=config.tsne_max_iter,
            seed=config.seed
        )
        try:
            embedding = projector.project(dataset)
        except SubtypingError as e:
            self._record(report, EMBEDDING, None, 'embedding', e)
            return

        report.embedding = embedding
        embedded_split = report.split.apply(embedding)
        details = {'kl_divergence': projector.kl_divergence_}
        for family in config.families:
            self._tune_and_evaluate(
                report, EMBEDDING, family, embedded_split,
                embedding.feature_set, details
            )

    def _tune_and_evaluate(
        self,
        report: StudyReport,
        strategy: str,
        family: str,
        split: Split,
        feature_set: FeatureSet,
        details: Dict[str, Any]
    ) -> None:
        stage = 'grid_search'
        try:
            trainer = GridSearchTrainer(
                self.family(family),
                grid=self.grid(family),
                n_folds=self.config.n_folds,
                seed=self.config.seed,
                n_jobs=self.config.n_jobs
            )
            search = trainer.fit(split.train.restrict(feature_set))
            stage = 'evaluation'
            evaluation = self.evaluator.evaluate(search.model, split.test.restrict(feature_set))
        except SubtypingError as e:
            self._record(report, strategy, family, stage, e)
            return

        logger.info("%s/%s: %d features, %s, test accuracy %.4f",
                    strategy, family, len(feature_set), search.configuration,
                    evaluation.accuracy)
        report.results.append(StrategyResult(
            strategy=strategy,
            family=family,
            feature_set=feature_set,
            search=search,
            evaluation=evaluation,
            selection_details=details
        ))

    @staticmethod
    def _record(
        report: StudyReport,
        strategy: str,
        family: Optional[str],
        stage: str,
        error: Exception
    ) -> None:
        logger.error("%s%s failed during %s: %s", strategy,
                     f"/{family}" if family else '', stage, error)
        report.failures.append(StrategyFailure(
            strategy=strategy,
            family=family,
            stage=stage,
            message=f"{type(error).__name__}: {error}"
        ))

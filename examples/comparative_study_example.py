#!/usr/bin/env python3
"""
Comparative Subtype Classification Example

This example demonstrates how to use the subtype_study package to:
1. Generate a synthetic two-subtype expression matrix
2. Run the staged pipeline by hand (split, filters, selection, tuning, evaluation)
3. Run the full comparative study across strategies and SVM families
4. Inspect the curves a plotting collaborator would draw
"""

import logging
import sys
import os

# Add the package to Python path
sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..'))

from subtype_study import ComparativeStudy, Dataset, StudyConfig, create_sample_data
from subtype_study.data import CorrelationPruner, DataPartitioner, VarianceFilter
from subtype_study.features import LassoSelector
from subtype_study.models import Evaluator, GridSearchTrainer, RadialSVMFamily


def main():
    """Run comparative study example."""

    logging.basicConfig(level=logging.INFO, format="%(name)s - %(levelname)s - %(message)s")

    print("=== Comparative Subtype Classification Example ===")
    print()

    # Step 1: Generate synthetic data
    print("1. Generating synthetic expression data...")
    expression, subtypes, informative = create_sample_data(
        n_samples=150,
        n_genes=2000,
        n_informative=8,
        effect_size=1.5,
        n_redundant=8,
        random_state=42
    )
    dataset = Dataset.from_frame(expression, subtypes, positive_class='Basal')
    print(f"   {dataset}")
    print(f"   Subtype distribution: {dataset.class_counts().to_dict()}")
    print()

    # Step 2: Staged pipeline with the Lasso strategy
    print("2. Running the Lasso strategy step by step...")
    split = DataPartitioner(train_fraction=0.75, seed=42).split(dataset)
    variance_features = VarianceFilter(n_features=1000).select(split.train)
    pruned = CorrelationPruner(cutoff=0.8).prune(split.train, variance_features)
    selection = LassoSelector(n_penalties=30).select(split.train, pruned)
    print(f"   Variance filter: {len(variance_features)}, after pruning: {len(pruned)}")
    print(f"   Lasso selected {len(selection.feature_set)} genes "
          f"(lambda_1se={selection.details['lambda_1se']:.4f})")
    recovered = set(selection.feature_set) & set(informative)
    print(f"   Informative genes recovered: {len(recovered)} of {len(informative)}")

    search = GridSearchTrainer(RadialSVMFamily()).fit(split.train.restrict(selection.feature_set))
    result = Evaluator().evaluate(search.model, split.test.restrict(selection.feature_set))
    print(f"   Best radial configuration: {search.configuration}")
    print(f"   Test accuracy: {result.accuracy:.3f} "
          f"(95% CI {result.accuracy_ci[0]:.3f}-{result.accuracy_ci[1]:.3f})")
    print(result.confusion_matrix.as_frame())
    print()

    # Step 3: Full comparative study
    print("3. Running the full comparative study...")
    config = StudyConfig(n_variance_features=500, rfe_subset_sizes=(2, 5, 10, 20))
    report = ComparativeStudy(config).run(dataset)
    summary = report.summary()
    columns = [c for c in ['strategy', 'family', 'status', 'n_features', 'configuration',
                           'cv_accuracy', 'accuracy', 'sensitivity', 'specificity']
               if c in summary.columns]
    print(summary[columns].to_string(index=False))
    print()

    # Step 4: Data for plots
    print("4. Curves for reporting...")
    if 'rfe' in report.selections:
        print("   RFE accuracy by subset size:")
        print(report.selections['rfe'].details['accuracy_curve'].to_string(index=False))
    if 'lasso' in report.selections:
        curve = report.selections['lasso'].details['cv_curve']
        print(f"   Lasso CV curve: {len(curve)} penalties, "
              f"min error {curve['mean_error'].min():.3f}")
    if report.embedding is not None:
        print(f"   t-SNE coordinates: {report.embedding.to_frame().shape}")

    print()
    print("=== Example completed successfully! ===")


if __name__ == "__main__":
    main()

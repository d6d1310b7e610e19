"""
Cross-Validation Module
=======================

Estimates model accuracy with k-fold cross-validation on the single
training dataset.

Features:
    - L1, L2, RMS, loss function (squared loss), Tweedie deviance and R² per fold
    - Average, standard deviation and 95% confidence interval per metric,
      skipping folds where a metric is undefined
    - Optional JSON export of the fold metrics
    - Console report of the averaged metrics
"""

import logging
import json
from pathlib import Path
from typing import Dict, Any, List, Optional, Union

import numpy as np
import pandas as pd
from sklearn.base import clone
from sklearn.metrics import make_scorer, mean_tweedie_deviance
from sklearn.model_selection import KFold, cross_validate
from sklearn.pipeline import Pipeline

from .pipeline import split_features_label

logger = logging.getLogger(__name__)

METRIC_NAMES = ['l1', 'l2', 'rms', 'loss_function', 'tweedie_deviance', 'r2']


def _build_scorers(power: float) -> Dict[str, Any]:
    return {
        'l1': 'neg_mean_absolute_error',
        'l2': 'neg_mean_squared_error',
        'rms': 'neg_root_mean_squared_error',
        'loss_function': 'neg_mean_squared_error',
        'tweedie_deviance': make_scorer(mean_tweedie_deviance, greater_is_better=False, power=power),
        'r2': 'r2',
    }


def aggregate_fold_metrics(per_fold: List[Dict[str, float]]) -> Dict[str, Dict[str, float]]:
    """
    Aggregate per-fold metrics into average, std and 95% confidence interval.

    Args:
        per_fold: List of per-fold metric dictionaries

    Folds where a metric is undefined (NaN, e.g. R² on a single-row test
    fold) are left out of that metric's aggregates and counted in
    'undefined_folds'.

    Returns:
        Dictionary with 'average', 'std', 'confidence_interval_95' and
        'undefined_folds' sections
    """
    if not per_fold:
        raise ValueError("Cannot aggregate an empty set of folds.")

    aggregated = {'average': {}, 'std': {}, 'confidence_interval_95': {}, 'undefined_folds': {}}

    for name in METRIC_NAMES:
        values = np.array([fold[name] for fold in per_fold], dtype=float)
        defined = values[np.isfinite(values)]
        n = len(defined)

        aggregated['undefined_folds'][name] = int(len(values) - n)
        if n == 0:
            aggregated['average'][name] = float('nan')
            aggregated['std'][name] = float('nan')
            aggregated['confidence_interval_95'][name] = float('nan')
            continue

        std = float(np.std(defined, ddof=1)) if n > 1 else 0.0
        aggregated['average'][name] = float(np.mean(defined))
        aggregated['std'][name] = std
        aggregated['confidence_interval_95'][name] = float(1.96 * std / np.sqrt(n))

    undefined = {name: count for name, count in aggregated['undefined_folds'].items() if count}
    if undefined:
        logger.warning(f"Metrics undefined on some folds and left out of the averages: {undefined}")

    return aggregated


def cross_validate_pipeline(
    pipeline: Pipeline,
    df: pd.DataFrame,
    n_folds: int = 6,
    shuffle: bool = True,
    random_state: Optional[int] = 1,
    tweedie_power: float = 1.5
) -> Dict[str, Any]:
    """
    Run k-fold cross-validation of the training pipeline.

    Each fold trains a fresh clone of the pipeline, so the passed pipeline
    stays unfitted.

    Args:
        pipeline: Unfitted training pipeline
        df: Full ProductData dataset
        n_folds: Number of folds
        shuffle: Whether to shuffle rows before partitioning
        random_state: Seed for the fold partitioning
        tweedie_power: Power of the Tweedie deviance metric

    Returns:
        Dictionary containing per-fold metrics and their aggregates

    Raises:
        ValueError: If n_folds is below 2 or above the number of rows
    """
    if n_folds < 2:
        raise ValueError(f"Number of folds must be at least 2, got {n_folds}")
    if n_folds > len(df):
        raise ValueError(f"Number of folds ({n_folds}) exceeds number of rows ({len(df)})")

    X, y = split_features_label(df)

    kfold = KFold(
        n_splits=n_folds,
        shuffle=shuffle,
        random_state=random_state if shuffle else None
    )

    logger.info(f"Cross-validating with {n_folds} folds on {len(df)} rows")

    scores = cross_validate(
        clone(pipeline),
        X,
        y,
        cv=kfold,
        scoring=_build_scorers(tweedie_power),
        error_score='raise'
    )

    per_fold = []
    for i in range(n_folds):
        fold = {'fold': i + 1}
        for name in METRIC_NAMES:
            value = float(scores[f'test_{name}'][i])
            # Error scorers are negated by scikit-learn
            fold[name] = value if name == 'r2' else -value
        per_fold.append(fold)
        logger.debug(f"Fold {i + 1}: {fold}")

    results = {
        'n_folds': n_folds,
        'per_fold': per_fold,
    }
    results.update(aggregate_fold_metrics(per_fold))

    logger.info(
        f"Cross-validation complete: mean RMS {results['average']['rms']:.4f}, "
        f"mean R² {results['average']['r2']:.4f}"
    )

    return results


def save_metrics(results: Dict[str, Any], path: Union[str, Path]) -> str:
    """Write cross-validation results to a JSON file."""
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, 'w') as f:
        json.dump(results, f, indent=2)
    logger.info(f"Metrics saved to {path}")
    return str(path)


def print_regression_folds_average_metrics(algorithm_name: str, results: Dict[str, Any]) -> None:
    """
    Print the averaged cross-validation metrics.

    Args:
        algorithm_name: Name of the trainer
        results: Dictionary from cross_validate_pipeline
    """
    average = results['average']
    ci = results['confidence_interval_95']
    undefined = results.get('undefined_folds', {})

    print("*" * 100)
    print(f"*       Metrics for {algorithm_name} Regression model")
    print("*" + "-" * 99)
    print(f"*       Average L1 Loss:       {average['l1']:.3f}")
    print(f"*       Average L2 Loss:       {average['l2']:.3f}")
    print(f"*       Average RMS:           {average['rms']:.3f}")
    print(f"*       Average Loss Function: {average['loss_function']:.3f}")
    print(f"*       Average Tweedie Dev.:  {average['tweedie_deviance']:.3f}")
    print(f"*       Average R-squared:     {average['r2']:.3f}  "
          f"(95% CI: ±{ci['r2']:.3f})")
    if undefined.get('r2'):
        print(f"*       R-squared undefined on {undefined['r2']} of {results['n_folds']} folds "
              f"(single-row test folds), left out of the average")
    print("*" * 100)

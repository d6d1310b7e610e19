"""
Test Suite for Evaluation Module
=================================

Tests for k-fold cross-validation and metric aggregation.
"""

import json

import pytest
import numpy as np
from sklearn.exceptions import NotFittedError
from sklearn.utils.validation import check_is_fitted

import sys
from pathlib import Path
sys.path.insert(0, str(Path(__file__).parent.parent))

from forecast_trainer.evaluation import (
    METRIC_NAMES,
    aggregate_fold_metrics,
    cross_validate_pipeline,
    print_regression_folds_average_metrics,
    save_metrics,
)
from forecast_trainer.pipeline import build_training_pipeline


class TestCrossValidation:
    """Tests for cross_validate_pipeline."""

    @pytest.fixture
    def pipeline(self, fast_config):
        return build_training_pipeline(fast_config)

    def test_one_record_per_fold(self, pipeline, product_data):
        results = cross_validate_pipeline(pipeline, product_data, n_folds=4)

        assert results['n_folds'] == 4
        assert [fold['fold'] for fold in results['per_fold']] == [1, 2, 3, 4]
        for fold in results['per_fold']:
            for name in METRIC_NAMES:
                assert np.isfinite(fold[name])

    def test_error_metrics_are_positive(self, pipeline, product_data):
        results = cross_validate_pipeline(pipeline, product_data, n_folds=4)

        for fold in results['per_fold']:
            assert fold['l1'] >= 0
            assert fold['l2'] >= 0
            assert fold['tweedie_deviance'] >= 0
            assert fold['rms'] == pytest.approx(np.sqrt(fold['l2']))

    def test_loss_function_is_squared_loss(self, pipeline, product_data):
        results = cross_validate_pipeline(pipeline, product_data, n_folds=4)

        for fold in results['per_fold']:
            assert fold['loss_function'] == pytest.approx(fold['l2'])
        assert results['average']['loss_function'] == pytest.approx(results['average']['l2'])

    def test_single_row_folds_skip_undefined_r2(self, pipeline, product_data):
        """With one row per test fold R² is undefined and left out of the average."""
        small = product_data.head(12)

        results = cross_validate_pipeline(pipeline, small, n_folds=12)

        assert all(np.isnan(fold['r2']) for fold in results['per_fold'])
        assert results['undefined_folds']['r2'] == 12
        assert results['undefined_folds']['l1'] == 0
        assert np.isfinite(results['average']['l1'])

    def test_fixed_seed_is_deterministic(self, pipeline, product_data):
        first = cross_validate_pipeline(pipeline, product_data, n_folds=4, random_state=7)
        second = cross_validate_pipeline(pipeline, product_data, n_folds=4, random_state=7)

        assert first['per_fold'] == second['per_fold']

    def test_pipeline_left_unfitted(self, pipeline, product_data):
        cross_validate_pipeline(pipeline, product_data, n_folds=3)

        with pytest.raises(NotFittedError):
            check_is_fitted(pipeline.named_steps['regressor'])

    def test_sklearn_backend(self, fast_config, product_data):
        fast_config['model']['backend'] = 'sklearn'
        pipeline = build_training_pipeline(fast_config)

        results = cross_validate_pipeline(pipeline, product_data, n_folds=3, tweedie_power=1.0)

        assert len(results['per_fold']) == 3

    def test_more_folds_than_rows(self, pipeline, product_data):
        with pytest.raises(ValueError, match="exceeds number of rows"):
            cross_validate_pipeline(pipeline, product_data.head(5), n_folds=6)

    def test_fewer_than_two_folds(self, pipeline, product_data):
        with pytest.raises(ValueError, match="at least 2"):
            cross_validate_pipeline(pipeline, product_data, n_folds=1)


class TestAggregation:
    """Tests for aggregate_fold_metrics."""

    def test_average_std_and_interval(self):
        per_fold = [
            {'fold': 1, 'l1': 1.0, 'l2': 2.0, 'rms': 1.0, 'loss_function': 2.0, 'tweedie_deviance': 0.5, 'r2': 0.8},
            {'fold': 2, 'l1': 3.0, 'l2': 4.0, 'rms': 2.0, 'loss_function': 4.0, 'tweedie_deviance': 0.7, 'r2': 0.6},
        ]

        aggregated = aggregate_fold_metrics(per_fold)

        assert aggregated['average']['l1'] == pytest.approx(2.0)
        assert aggregated['average']['r2'] == pytest.approx(0.7)
        assert aggregated['std']['l1'] == pytest.approx(np.sqrt(2.0))
        assert aggregated['confidence_interval_95']['l1'] == pytest.approx(1.96)

    def test_undefined_values_are_skipped(self):
        per_fold = [
            {'fold': 1, 'l1': 1.0, 'l2': 2.0, 'rms': 1.0, 'loss_function': 2.0, 'tweedie_deviance': 0.5, 'r2': np.nan},
            {'fold': 2, 'l1': 3.0, 'l2': 4.0, 'rms': 2.0, 'loss_function': 4.0, 'tweedie_deviance': 0.7, 'r2': 0.6},
        ]

        aggregated = aggregate_fold_metrics(per_fold)

        assert aggregated['average']['r2'] == pytest.approx(0.6)
        assert aggregated['std']['r2'] == 0.0
        assert aggregated['undefined_folds']['r2'] == 1
        assert aggregated['undefined_folds']['l1'] == 0

    def test_all_undefined(self):
        per_fold = [
            {'fold': 1, 'l1': 1.0, 'l2': 2.0, 'rms': 1.0, 'loss_function': 2.0, 'tweedie_deviance': 0.5, 'r2': np.nan},
        ]

        aggregated = aggregate_fold_metrics(per_fold)

        assert np.isnan(aggregated['average']['r2'])
        assert aggregated['undefined_folds']['r2'] == 1

    def test_empty(self):
        with pytest.raises(ValueError, match="empty"):
            aggregate_fold_metrics([])


class TestReporting:

    @pytest.fixture
    def results(self):
        per_fold = [
            {'fold': 1, 'l1': 1.0, 'l2': 2.0, 'rms': 1.4, 'loss_function': 2.0, 'tweedie_deviance': 0.5, 'r2': 0.8},
            {'fold': 2, 'l1': 2.0, 'l2': 3.0, 'rms': 1.7, 'loss_function': 3.0, 'tweedie_deviance': 0.6, 'r2': 0.7},
        ]
        results = {'n_folds': 2, 'per_fold': per_fold}
        results.update(aggregate_fold_metrics(per_fold))
        return results

    def test_print_metrics(self, results, capsys):
        print_regression_folds_average_metrics('LGBMRegressor(tweedie)', results)

        out = capsys.readouterr().out
        assert "Metrics for LGBMRegressor(tweedie) Regression model" in out
        assert "Average L1 Loss:       1.500" in out
        assert "Average R-squared:     0.750" in out
        assert "Average Loss Function: 2.500" in out
        assert "Average Tweedie Dev.:  0.550" in out
        assert "undefined" not in out

    def test_print_notes_undefined_r2(self, capsys):
        per_fold = [
            {'fold': 1, 'l1': 1.0, 'l2': 2.0, 'rms': 1.4, 'loss_function': 2.0, 'tweedie_deviance': 0.5, 'r2': np.nan},
            {'fold': 2, 'l1': 2.0, 'l2': 3.0, 'rms': 1.7, 'loss_function': 3.0, 'tweedie_deviance': 0.6, 'r2': 0.7},
        ]
        results = {'n_folds': 2, 'per_fold': per_fold}
        results.update(aggregate_fold_metrics(per_fold))

        print_regression_folds_average_metrics('LGBMRegressor(tweedie)', results)

        out = capsys.readouterr().out
        assert "Average R-squared:     0.700" in out
        assert "R-squared undefined on 1 of 2 folds" in out

    def test_save_metrics(self, results, tmp_path):
        path = save_metrics(results, tmp_path / "metrics" / "cv.json")

        with open(path) as f:
            saved = json.load(f)

        assert saved['average']['l1'] == pytest.approx(1.5)
        assert len(saved['per_fold']) == 2

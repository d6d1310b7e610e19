#!/usr/bin/env python3
"""
Product Sales Forecast Trainer - Main Pipeline
===============================================

Trains the model that forecasts next-month unit sales per product.

Steps:
    1. Load the product statistics CSV
    2. Build the pipeline (feature concatenation, one-hot encoded product id,
       gradient-boosted trees with a Tweedie loss)
    3. Cross-validate to get the model's accuracy metrics
    4. Fit on the full dataset and save the model artifact

Usage:
    # Run with the defaults from config/config.yaml
    python main.py

    # Override paths
    python main.py --data Data/products.stats.csv --output product_month_tweedie.joblib
"""

import argparse
import logging
import sys
from pathlib import Path
from datetime import datetime
from typing import Dict, Any, List, Optional, Union

from forecast_trainer.console import (
    console_press_any_key,
    console_write_exception,
    console_write_header,
)
from forecast_trainer.data_loader import (
    get_absolute_path,
    load_config,
    load_data,
    print_data_summary,
    validate_data,
)
from forecast_trainer.evaluation import (
    cross_validate_pipeline,
    print_regression_folds_average_metrics,
    save_metrics,
)
from forecast_trainer.model import print_model_summary, train_model
from forecast_trainer.pipeline import (
    build_training_pipeline,
    describe_regressor,
    get_model_config,
    tweedie_power,
)

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_PATH = "config/config.yaml"
DEFAULT_DATA_PATH = "Data/products.stats.csv"
DEFAULT_MODEL_PATH = "product_month_tweedie.joblib"


def setup_logging(level: str = "INFO", log_file: Optional[str] = None) -> None:
    """Configure logging for the training run."""
    handlers: List[logging.Handler] = [logging.StreamHandler(sys.stdout)]
    if log_file:
        handlers.append(
            logging.FileHandler(log_file.format(timestamp=datetime.now().strftime("%Y%m%d_%H%M%S")))
        )

    logging.basicConfig(
        level=getattr(logging, level.upper()),
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        handlers=handlers
    )


def train_and_save_model(
    data_path: Union[str, Path],
    output_model_path: Union[str, Path] = DEFAULT_MODEL_PATH,
    config: Optional[Dict[str, Any]] = None
) -> Dict[str, Any]:
    """
    Train and save the model for predicting next month product unit sales.

    Args:
        data_path: Input training file path
        output_model_path: Trained model path
        config: Configuration dictionary

    Returns:
        Dictionary with the cross-validation results and the trained model
    """
    config = config or {}
    data_config = config.get('data', {})
    cv_config = config.get('cross_validation', {})
    n_folds = cv_config.get('n_folds', 6)

    console_write_header("Training product forecasting")

    df = load_data(
        data_path,
        separator=data_config.get('separator', ','),
        has_header=data_config.get('has_header', True)
    )
    validate_data(df, n_folds=n_folds, strict=True)
    print_data_summary(df)

    console_write_header("Running algo over training data")

    model_config = get_model_config(config)
    pipeline = build_training_pipeline(config)
    algorithm_name = describe_regressor(pipeline)

    # Single dataset, so cross-validate it to get the accuracy metrics
    print("=============== Cross-validating to get model's accuracy metrics ===============")
    cv_results = cross_validate_pipeline(
        pipeline,
        df,
        n_folds=n_folds,
        shuffle=cv_config.get('shuffle', True),
        random_state=cv_config.get('random_state', model_config['random_state']),
        tweedie_power=tweedie_power(model_config)
    )
    print_regression_folds_average_metrics(algorithm_name, cv_results)

    metrics_path = config.get('output', {}).get('metrics_path')
    if metrics_path:
        save_metrics(cv_results, metrics_path)

    model = train_model(df, config, save_path=output_model_path)
    print_model_summary(model)

    print(f"Model saved to {output_model_path}")

    return {
        'data_shape': df.shape,
        'cross_validation': cv_results,
        'model': model,
        'model_path': str(output_model_path)
    }


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Train the next-month product unit sales forecasting model",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python main.py
  python main.py --config config/custom.yaml
  python main.py --data Data/products.stats.csv --no-pause
        """
    )

    parser.add_argument(
        '--config', '-c',
        type=str,
        default=None,
        help=f'Path to configuration file (default: {DEFAULT_CONFIG_PATH})'
    )

    parser.add_argument(
        '--data', '-d',
        type=str,
        default=None,
        help='Path to the input CSV file (default: data.path from config)'
    )

    parser.add_argument(
        '--output', '-o',
        type=str,
        default=None,
        help='Path of the model artifact (default: output.model_path from config)'
    )

    parser.add_argument(
        '--no-pause',
        action='store_true',
        help='Exit without waiting for Enter'
    )

    return parser.parse_args(argv)


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point. Errors are reported on the console, never via the exit code."""
    args = parse_args(argv)
    pause = not args.no_pause

    try:
        config_path = args.config or get_absolute_path(DEFAULT_CONFIG_PATH)
        config = load_config(config_path)

        logging_config = config.get('logging', {})
        setup_logging(logging_config.get('level', 'INFO'), logging_config.get('log_file'))

        if not config.get('console', {}).get('pause_on_exit', True):
            pause = False

        data_path = args.data or get_absolute_path(config.get('data', {}).get('path', DEFAULT_DATA_PATH))
        model_path = args.output or config.get('output', {}).get('model_path', DEFAULT_MODEL_PATH)

        train_and_save_model(data_path, model_path, config)

    except Exception as e:
        logger.error(f"Training failed: {e}", exc_info=True)
        console_write_exception(str(e))

    if pause:
        console_press_any_key()

    return 0


if __name__ == "__main__":
    sys.exit(main())

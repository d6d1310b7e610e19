"""
Data Loader Module
==================

Handles configuration loading, CSV ingestion of the product sales dataset,
and basic data quality checks.

Functions:
    - load_config: Load YAML configuration file
    - get_absolute_path: Resolve configured paths against the project directory
    - load_data: Load the product statistics CSV using the fixed schema
    - validate_data: Check data quality constraints before training
    - print_data_summary: Console summary of the loaded dataset
"""

import logging
from pathlib import Path
from typing import Dict, Any, Optional, Tuple, Union

import pandas as pd
import numpy as np
import yaml

logger = logging.getLogger(__name__)

BASE_DIR = Path(__file__).resolve().parent.parent

# Column order of a ProductData row, target first
PRODUCT_DATA_SCHEMA: Dict[str, Any] = {
    'next': 'float64',
    'productId': 'str',
    'year': 'float64',
    'month': 'float64',
    'units': 'float64',
    'avg': 'float64',
    'count': 'float64',
    'max': 'float64',
    'min': 'float64',
    'prev': 'float64',
}

PRODUCT_DATA_COLUMNS = list(PRODUCT_DATA_SCHEMA.keys())


def load_config(config_path: Union[str, Path] = "config/config.yaml") -> Dict[str, Any]:
    """
    Load configuration from YAML file.

    Args:
        config_path: Path to the configuration file

    Returns:
        Dictionary containing configuration parameters

    Raises:
        FileNotFoundError: If config file doesn't exist
        yaml.YAMLError: If config file is malformed
    """
    config_path = Path(config_path)

    if not config_path.exists():
        raise FileNotFoundError(f"Configuration file not found: {config_path}")

    with open(config_path, 'r') as f:
        config = yaml.safe_load(f) or {}

    logger.info(f"Loaded configuration from {config_path}")
    return config


def get_absolute_path(
    relative_path: Union[str, Path],
    base_dir: Optional[Union[str, Path]] = None
) -> Path:
    """Resolve a path against the project directory unless it is already absolute."""
    path = Path(relative_path)
    if path.is_absolute():
        return path
    return (Path(base_dir) if base_dir is not None else BASE_DIR) / path


def load_data(
    file_path: Union[str, Path],
    separator: str = ",",
    has_header: bool = True
) -> pd.DataFrame:
    """
    Load the product statistics CSV with the fixed ProductData schema.

    Args:
        file_path: Path to the CSV file
        separator: Field delimiter
        has_header: Whether the first line is a header row

    Returns:
        DataFrame with one row per (product, month) observation

    Raises:
        FileNotFoundError: If data file doesn't exist
        ValueError: If the header doesn't match the schema or a value can't be parsed
    """
    file_path = Path(file_path)

    if not file_path.exists():
        raise FileNotFoundError(f"Data file not found: {file_path}")

    if has_header:
        df = pd.read_csv(file_path, sep=separator, dtype=PRODUCT_DATA_SCHEMA)
        if list(df.columns) != PRODUCT_DATA_COLUMNS:
            raise ValueError(
                f"Header doesn't match the ProductData schema. "
                f"Expected {PRODUCT_DATA_COLUMNS}, found {list(df.columns)}"
            )
    else:
        df = pd.read_csv(
            file_path,
            sep=separator,
            header=None,
            names=PRODUCT_DATA_COLUMNS,
            dtype=PRODUCT_DATA_SCHEMA
        )

    logger.info(f"Loaded data from {file_path}: {df.shape[0]} rows × {df.shape[1]} columns")

    return df


def validate_data(
    df: pd.DataFrame,
    n_folds: Optional[int] = None,
    strict: bool = True
) -> Tuple[bool, Dict[str, Any]]:
    """
    Validate data quality constraints for training.

    Checks:
        - Columns match the ProductData schema
        - No missing values
        - Label column is non-negative (required by the Tweedie loss)
        - Enough rows for the requested number of folds

    Duplicate rows are reported as a warning only.

    Args:
        df: DataFrame to validate
        n_folds: Number of cross-validation folds that will be used
        strict: If True, raise errors on validation failure

    Returns:
        Tuple of (is_valid, validation_report)
    """
    report = {
        "total_rows": len(df),
        "total_columns": len(df.columns),
        "column_names": list(df.columns),
        "issues": [],
        "warnings": []
    }

    # Check 1: Schema
    if list(df.columns) != PRODUCT_DATA_COLUMNS:
        issue = f"Columns {list(df.columns)} don't match schema {PRODUCT_DATA_COLUMNS}"
        report["issues"].append(issue)
        logger.warning(issue)

    # Check 2: Missing values
    missing_counts = df.isnull().sum()
    total_missing = int(missing_counts.sum())
    if total_missing > 0:
        issue = f"Missing values: {total_missing}"
        report["issues"].append(issue)
        report["missing_by_column"] = missing_counts[missing_counts > 0].to_dict()
        logger.warning(issue)

    # Check 3: Label range
    if 'next' in df.columns:
        negatives = int((df['next'] < 0).sum())
        if negatives > 0:
            issue = f"Label column 'next' has {negatives} negative values"
            report["issues"].append(issue)
            logger.warning(issue)

    # Check 4: Fold count
    if n_folds is not None:
        if n_folds < 2:
            issue = f"Number of folds must be at least 2, got {n_folds}"
            report["issues"].append(issue)
            logger.warning(issue)
        elif n_folds > len(df):
            issue = f"Number of folds ({n_folds}) exceeds number of rows ({len(df)})"
            report["issues"].append(issue)
            logger.warning(issue)

    # Check 5: Duplicate rows
    duplicates = int(df.duplicated().sum())
    if duplicates > 0:
        warning = f"Duplicate rows found: {duplicates}"
        report["warnings"].append(warning)
        logger.warning(warning)

    is_valid = len(report["issues"]) == 0
    report["is_valid"] = is_valid

    if strict and not is_valid:
        raise ValueError(f"Data validation failed: {report['issues']}")

    return is_valid, report


def print_data_summary(df: pd.DataFrame) -> None:
    """
    Print a formatted summary of the dataset to console.

    Args:
        df: DataFrame to summarize
    """
    print("\n" + "=" * 60)
    print("DATASET SUMMARY")
    print("=" * 60)
    print(f"Shape: {df.shape[0]} rows × {df.shape[1]} columns")
    print(f"Products: {df['productId'].nunique()}")

    if df[['year', 'month']].notna().all(axis=1).any():
        periods = (df['year'] * 100 + df['month']).dropna().astype(np.int64)
        print(f"Periods: {periods.min()} - {periods.max()}")

    print("\nBasic Statistics:")
    print("-" * 40)
    print(df.describe().round(2).to_string())
    print("=" * 60 + "\n")

"""
Training Pipeline Module
========================

Declares the fixed feature transforms and the regression trainer.

Transform chain:
    1. NumFeatures - numeric ProductData columns passed through as-is
    2. CatFeatures - one-hot encoding of the product identifier
    3. Features    - concatenation of NumFeatures and CatFeatures
    4. Label       - copy of the `next` column

followed by a gradient-boosted tree regressor with a Tweedie-family loss.
"""

import logging
from typing import Dict, Any, List, Tuple

import pandas as pd
from lightgbm import LGBMRegressor
from sklearn.compose import ColumnTransformer
from sklearn.ensemble import HistGradientBoostingRegressor
from sklearn.pipeline import Pipeline
from sklearn.preprocessing import OneHotEncoder

logger = logging.getLogger(__name__)

LABEL_COLUMN = 'next'
CATEGORICAL_COLUMN = 'productId'
NUMERIC_FEATURES: List[str] = ['year', 'month', 'units', 'avg', 'count', 'max', 'min', 'prev']
FEATURE_COLUMNS: List[str] = NUMERIC_FEATURES + [CATEGORICAL_COLUMN]

SUPPORTED_BACKENDS = ('lightgbm', 'sklearn')

# FastTree-style defaults: 100 trees, 20 leaves, 10 samples per leaf
DEFAULT_MODEL_CONFIG: Dict[str, Any] = {
    'backend': 'lightgbm',
    'n_estimators': 100,
    'num_leaves': 20,
    'learning_rate': 0.2,
    'min_child_samples': 10,
    'tweedie_variance_power': 1.5,
    'l2_regularization': 0.0,
    'random_state': 1,
    'n_jobs': -1
}


def get_model_config(config: Dict[str, Any]) -> Dict[str, Any]:
    """Merge the `model` section of the config over the defaults."""
    model_config = dict(DEFAULT_MODEL_CONFIG)
    model_config.update(config.get('model', {}) or {})
    return model_config


def split_features_label(df: pd.DataFrame) -> Tuple[pd.DataFrame, pd.Series]:
    """
    Separate the feature columns from the label column.

    Args:
        df: DataFrame with ProductData columns

    Returns:
        Tuple of (X, y)
    """
    missing = [col for col in FEATURE_COLUMNS + [LABEL_COLUMN] if col not in df.columns]
    if missing:
        raise ValueError(f"Missing required columns: {missing}")

    X = df[FEATURE_COLUMNS]
    y = df[LABEL_COLUMN].rename('Label')
    return X, y


def build_feature_transformer() -> ColumnTransformer:
    """Numeric passthrough followed by the one-hot encoded product id."""
    return ColumnTransformer(
        transformers=[
            ('NumFeatures', 'passthrough', NUMERIC_FEATURES),
            ('CatFeatures', OneHotEncoder(handle_unknown='ignore', sparse_output=False),
             [CATEGORICAL_COLUMN]),
        ],
        remainder='drop',
        verbose_feature_names_out=False
    )


def tweedie_power(model_config: Dict[str, Any]) -> float:
    """
    Deviance power matching the trainer's loss.

    The sklearn backend uses the Poisson loss, which is the Tweedie
    family member with power 1.
    """
    if model_config.get('backend', 'lightgbm') == 'sklearn':
        return 1.0
    return float(model_config.get('tweedie_variance_power', 1.5))


def build_regressor(model_config: Dict[str, Any]):
    """
    Create the gradient-boosted tree regressor.

    Args:
        model_config: Merged model configuration

    Returns:
        Unfitted scikit-learn compatible regressor

    Raises:
        ValueError: If the backend is unknown
    """
    backend = model_config.get('backend', 'lightgbm')

    if backend == 'lightgbm':
        power = float(model_config['tweedie_variance_power'])
        if not 1.0 <= power < 2.0:
            raise ValueError(f"tweedie_variance_power must be in [1.0, 2.0), got {power}")

        return LGBMRegressor(
            objective='tweedie',
            tweedie_variance_power=power,
            n_estimators=model_config['n_estimators'],
            num_leaves=model_config['num_leaves'],
            learning_rate=model_config['learning_rate'],
            min_child_samples=model_config['min_child_samples'],
            reg_lambda=model_config['l2_regularization'],
            random_state=model_config['random_state'],
            n_jobs=model_config['n_jobs'],
            deterministic=True,
            force_row_wise=True,
            verbose=-1
        )

    if backend == 'sklearn':
        return HistGradientBoostingRegressor(
            loss='poisson',
            max_iter=model_config['n_estimators'],
            max_leaf_nodes=model_config['num_leaves'],
            learning_rate=model_config['learning_rate'],
            min_samples_leaf=model_config['min_child_samples'],
            l2_regularization=model_config['l2_regularization'],
            random_state=model_config['random_state'],
            early_stopping=False,
            verbose=0
        )

    raise ValueError(f"Unknown model backend: {backend}. Choose from: {', '.join(SUPPORTED_BACKENDS)}")


def build_training_pipeline(config: Dict[str, Any]) -> Pipeline:
    """
    Build the full (unfitted) training pipeline from configuration.

    Args:
        config: Configuration dictionary

    Returns:
        Pipeline of feature transformer and regressor
    """
    model_config = get_model_config(config)
    regressor = build_regressor(model_config)

    logger.info(f"Building pipeline with {describe_regressor(regressor)}")

    return Pipeline([
        ('features', build_feature_transformer()),
        ('regressor', regressor),
    ])


def describe_regressor(estimator) -> str:
    """Short human-readable trainer name, e.g. 'LGBMRegressor(tweedie)'."""
    if isinstance(estimator, Pipeline):
        estimator = estimator.named_steps['regressor']

    if isinstance(estimator, LGBMRegressor):
        return f"LGBMRegressor({estimator.objective})"
    if isinstance(estimator, HistGradientBoostingRegressor):
        return f"HistGradientBoostingRegressor({estimator.loss})"
    return type(estimator).__name__

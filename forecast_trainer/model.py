"""
Model Training Module
=====================

Fits the product forecasting pipeline on the full dataset and persists it.

Features:
    - Pipeline construction from the config file
    - Training progress logging
    - Versioned model artifact (fitted pipeline + input schema)
    - Model persistence (save/load)
"""

import logging
from pathlib import Path
from typing import Dict, Any, List, Optional, Union
from datetime import datetime

import numpy as np
import pandas as pd
import joblib
import lightgbm
import sklearn
from sklearn.pipeline import Pipeline

from .data_loader import PRODUCT_DATA_SCHEMA
from .pipeline import (
    CATEGORICAL_COLUMN,
    FEATURE_COLUMNS,
    LABEL_COLUMN,
    build_training_pipeline,
    describe_regressor,
    get_model_config,
    split_features_label,
)

logger = logging.getLogger(__name__)

ARTIFACT_FORMAT_VERSION = 1


class ProductForecastModel:
    """
    Next-month unit sales model for a single product.

    Wraps the scikit-learn pipeline (feature transforms + gradient-boosted
    tree regressor) together with the schema it was trained on.
    """

    def __init__(self, config: Optional[Dict[str, Any]] = None):
        """
        Initialize the model from configuration.

        Args:
            config: Configuration dictionary (uses the `model` section)
        """
        self.config = config or {}
        self.hyperparameters = get_model_config(self.config)

        self.pipeline: Optional[Pipeline] = None
        self.schema: List[Dict[str, str]] = []
        self.training_info: Dict[str, Any] = {}
        self._is_fitted = False

    @property
    def algorithm_name(self) -> str:
        if self.pipeline is None:
            return str(self.hyperparameters.get('backend'))
        return describe_regressor(self.pipeline)

    def fit(self, df: pd.DataFrame) -> 'ProductForecastModel':
        """
        Train the pipeline on the provided data.

        Args:
            df: ProductData DataFrame (features and label)

        Returns:
            Self for method chaining
        """
        start_time = datetime.now()

        logger.info("=" * 60)
        logger.info("STARTING MODEL TRAINING")
        logger.info("=" * 60)
        logger.info(f"Training data shape: {df.shape}")
        logger.info("Hyperparameters:")
        for key, value in self.hyperparameters.items():
            logger.info(f"  - {key}: {value}")

        X, y = split_features_label(df)

        self.pipeline = build_training_pipeline(self.config)
        self.pipeline.fit(X, y)

        self.schema = [
            {'name': str(col), 'dtype': str(dtype)}
            for col, dtype in df.dtypes.items()
        ]

        end_time = datetime.now()
        training_duration = (end_time - start_time).total_seconds()

        self.training_info = {
            'training_duration_seconds': training_duration,
            'n_samples': int(len(df)),
            'n_products': int(df[CATEGORICAL_COLUMN].nunique()),
            'n_features': int(len(self.pipeline.named_steps['features'].get_feature_names_out())),
            'trained_at': end_time.isoformat(),
            'library_versions': {
                'scikit-learn': sklearn.__version__,
                'lightgbm': lightgbm.__version__,
            }
        }

        self._is_fitted = True

        logger.info("=" * 60)
        logger.info(f"MODEL TRAINING COMPLETE in {training_duration:.2f} seconds")
        logger.info("=" * 60)

        return self

    def predict(self, df: pd.DataFrame) -> np.ndarray:
        """
        Predict next-month units for each row.

        Args:
            df: DataFrame with the feature columns (label column optional)

        Returns:
            Predictions array of shape (n_samples,)
        """
        if not self._is_fitted:
            raise ValueError("Model must be trained before prediction. Call fit() first.")

        missing = [col for col in FEATURE_COLUMNS if col not in df.columns]
        if missing:
            raise ValueError(f"Missing feature columns: {missing}")

        # Same dtypes as training, e.g. an integer productId must match its string category
        features = df[FEATURE_COLUMNS].astype({col: PRODUCT_DATA_SCHEMA[col] for col in FEATURE_COLUMNS})
        return self.pipeline.predict(features)

    def save(self, filepath: Union[str, Path]) -> None:
        """
        Save the trained model artifact to disk.

        Args:
            filepath: Path to save the model
        """
        if not self._is_fitted:
            raise ValueError("Cannot save untrained model.")

        state = {
            'format_version': ARTIFACT_FORMAT_VERSION,
            'pipeline': self.pipeline,
            'schema': self.schema,
            'feature_columns': FEATURE_COLUMNS,
            'categorical_column': CATEGORICAL_COLUMN,
            'label_column': LABEL_COLUMN,
            'config': self.config,
            'hyperparameters': self.hyperparameters,
            'training_info': self.training_info,
        }

        Path(filepath).parent.mkdir(parents=True, exist_ok=True)
        joblib.dump(state, filepath, compress=3)
        logger.info(f"Model saved to {filepath}")

    @classmethod
    def load(cls, filepath: Union[str, Path]) -> 'ProductForecastModel':
        """
        Load a trained model artifact from disk.

        Args:
            filepath: Path to the saved model

        Returns:
            Loaded ProductForecastModel instance

        Raises:
            FileNotFoundError: If the artifact doesn't exist
            ValueError: If the artifact format version is not supported
        """
        if not Path(filepath).exists():
            raise FileNotFoundError(f"Model file not found: {filepath}")

        state = joblib.load(filepath)

        version = state.get('format_version') if isinstance(state, dict) else None
        if version != ARTIFACT_FORMAT_VERSION:
            raise ValueError(
                f"Unsupported model artifact version: {version} "
                f"(expected {ARTIFACT_FORMAT_VERSION})"
            )

        model = cls(state['config'])
        model.pipeline = state['pipeline']
        model.schema = state['schema']
        model.training_info = state['training_info']
        model._is_fitted = True

        logger.info(f"Model loaded from {filepath}")
        return model


def train_model(
    df: pd.DataFrame,
    config: Dict[str, Any],
    save_path: Optional[Union[str, Path]] = None
) -> ProductForecastModel:
    """
    Train a model on the full dataset using configuration parameters.

    Args:
        df: ProductData DataFrame
        config: Configuration dictionary
        save_path: Path to save the trained model (optional)

    Returns:
        Trained ProductForecastModel
    """
    model = ProductForecastModel(config)
    model.fit(df)

    if save_path:
        model.save(save_path)

    return model


def print_model_summary(model: ProductForecastModel) -> None:
    """
    Print a summary of the trained model.

    Args:
        model: Trained model instance
    """
    print("\n" + "=" * 50)
    print("MODEL SUMMARY")
    print("=" * 50)
    print(f"Model Type: {model.algorithm_name}")
    print(f"Input columns: {len(model.schema)}")

    if model.training_info:
        print("\nTraining Info:")
        print(f"  - Duration: {model.training_info.get('training_duration_seconds', 0.0):.2f}s")
        print(f"  - Samples: {model.training_info.get('n_samples', 'N/A')}")
        print(f"  - Products: {model.training_info.get('n_products', 'N/A')}")
        print(f"  - Encoded features: {model.training_info.get('n_features', 'N/A')}")

    print("=" * 50 + "\n")

"""Shared fixtures: a small synthetic ProductData dataset."""

import sys
from pathlib import Path

import numpy as np
import pandas as pd
import pytest

sys.path.insert(0, str(Path(__file__).parent.parent))

from forecast_trainer.data_loader import PRODUCT_DATA_COLUMNS


def make_product_data(n_products: int = 5, n_months: int = 20, seed: int = 42) -> pd.DataFrame:
    """Generate monthly sales statistics for a handful of products."""
    rng = np.random.default_rng(seed)
    rows = []

    for p in range(n_products):
        product_id = str(1000 + p)
        base = 20 + 15 * p
        units = [
            float(round(base * (1 + 0.3 * np.sin(2 * np.pi * (t % 12) / 12)) * rng.uniform(0.8, 1.2)))
            for t in range(n_months + 1)
        ]
        for t in range(n_months):
            count = float(units[t] // 3 + 1)
            rows.append({
                'next': units[t + 1],
                'productId': product_id,
                'year': float(2017 + t // 12),
                'month': float(t % 12 + 1),
                'units': units[t],
                'avg': units[t] / count,
                'count': count,
                'max': float(units[t] // count * 2 + 1),
                'min': 1.0,
                'prev': units[t - 1] if t > 0 else float(base),
            })

    return pd.DataFrame(rows, columns=PRODUCT_DATA_COLUMNS)


@pytest.fixture
def product_data() -> pd.DataFrame:
    return make_product_data()


@pytest.fixture
def product_csv(tmp_path, product_data) -> Path:
    path = tmp_path / "products.stats.csv"
    product_data.to_csv(path, index=False)
    return path


@pytest.fixture
def fast_config():
    """Small model so tests train quickly."""
    return {
        'model': {
            'backend': 'lightgbm',
            'n_estimators': 20,
            'num_leaves': 8,
            'learning_rate': 0.2,
            'min_child_samples': 5,
            'tweedie_variance_power': 1.5,
            'random_state': 1,
            'n_jobs': 1
        },
        'cross_validation': {
            'n_folds': 4,
            'shuffle': True,
            'random_state': 1
        }
    }

"""
Product Sales Forecast Trainer
==============================

Trains a model that predicts next-month unit sales per product.

Modules:
    - data_loader: Configuration, CSV ingestion and validation
    - pipeline: Feature transforms and the Tweedie gradient-boosting regressor
    - evaluation: k-fold cross-validation and metric reporting
    - model: Full-dataset training and model artifact persistence
    - console: Console output helpers
"""

__version__ = "1.0.0"
__author__ = "Forecast Trainer Maintainers"

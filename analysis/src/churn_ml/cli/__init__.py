"""Command-line interface for churn-ML."""

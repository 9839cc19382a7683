"""Resampling, tuning, final evaluation, and reporting."""

from churn_ml.evaluation.final import FinalResult, finalize
from churn_ml.evaluation.reports import OutputDirectories, ReportAggregator, ResultsWriter
from churn_ml.evaluation.resampling import (
    MetricRecord,
    ResamplingResult,
    evaluate,
    records_to_frame,
    summarize_records,
)
from churn_ml.evaluation.tuning import (
    TuningResult,
    expand_grid,
    finalize_candidate,
    select_best,
    tune,
)

__all__ = [
    # Resampling
    "MetricRecord",
    "ResamplingResult",
    "evaluate",
    "records_to_frame",
    "summarize_records",
    # Tuning
    "TuningResult",
    "expand_grid",
    "select_best",
    "finalize_candidate",
    "tune",
    # Final
    "FinalResult",
    "finalize",
    # Reports
    "ReportAggregator",
    "OutputDirectories",
    "ResultsWriter",
]

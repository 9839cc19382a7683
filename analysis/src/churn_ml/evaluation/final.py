"""
Final evaluation: one refit on TRAIN, one scoring pass on TEST.

This is the only place the TEST subset is read. Preprocessing parameters are
estimated on TRAIN and applied unchanged to TEST.
"""

import logging
from collections.abc import Sequence
from dataclasses import dataclass
from typing import Any

import pandas as pd

from churn_ml.data.schema import POSITIVE_LABEL, encode_outcome
from churn_ml.data.splits import Split
from churn_ml.errors import FinalizeError, PipelineError
from churn_ml.features.preprocessing import FittedTransform, PreprocessingPipeline
from churn_ml.metrics.classification import (
    DEFAULT_METRICS,
    DEFAULT_THRESHOLD,
    compute_metrics,
)
from churn_ml.models.registry import CandidateConfig, predict_positive_proba

logger = logging.getLogger(__name__)


@dataclass(frozen=True, eq=False)
class FinalResult:
    """
    TEST-subset outcome of one finalized candidate.

    Attributes:
        candidate: Fully specified candidate that was refitted
        metrics: Metric name -> TEST value
        predictions: One row per TEST record (index, y_true, prob, y_pred)
        fitted_transform: Preprocessing fitted on TRAIN
        estimator: Model fitted on TRAIN
        threshold: Probability threshold behind y_pred
    """

    candidate: CandidateConfig
    metrics: dict[str, float]
    predictions: pd.DataFrame
    fitted_transform: FittedTransform
    estimator: Any
    threshold: float = DEFAULT_THRESHOLD

    @property
    def params(self) -> dict[str, Any]:
        return self.candidate.resolved_params()


def finalize(
    candidate: CandidateConfig,
    preprocessing: PreprocessingPipeline,
    split: Split,
    metric_names: Sequence[str] = DEFAULT_METRICS,
    *,
    positive_label: str = POSITIVE_LABEL,
    threshold: float = DEFAULT_THRESHOLD,
) -> FinalResult:
    """
    Refit a candidate on TRAIN and score it on TEST.

    Args:
        candidate: Fully specified candidate (tuned values substituted)
        preprocessing: Recipe fitted once on the TRAIN subset
        split: TRAIN/TEST partition
        metric_names: Metrics computed on TEST
        positive_label: Outcome level encoded as 1
        threshold: Probability threshold for hard predictions

    Returns:
        FinalResult

    Raises:
        FinalizeError: If fitting or predicting fails
        SchemaMismatchError: If TEST fields differ from TRAIN fields
    """
    target_col = preprocessing.target_col
    train, test = split.train, split.test
    logger.info(f"Finalizing {candidate.label} on TRAIN={len(train):,}, TEST={len(test):,}")

    try:
        fitted = preprocessing.fit(train)
        X_train = fitted.apply(train, stage="finalize")
        X_test = fitted.apply(test, stage="finalize")
        y_train = encode_outcome(train[target_col], positive_label)
        estimator = candidate.fit(X_train, y_train)
        prob = predict_positive_proba(estimator, X_test)
    except PipelineError as e:
        raise e.with_context("finalize", config=candidate.label) from e
    except Exception as e:
        raise FinalizeError(
            f"{type(e).__name__}: {e}", stage="finalize", config=candidate.label
        ) from e

    y_test = encode_outcome(test[target_col], positive_label)
    metrics = compute_metrics(y_test, prob, metric_names, threshold=threshold)

    predictions = pd.DataFrame(
        {
            "index": test.index.to_numpy(),
            "y_true": y_test,
            "prob": prob,
            "y_pred": (prob >= threshold).astype(int),
        }
    )
    id_col = preprocessing.id_col
    if id_col and id_col in test.columns:
        predictions.insert(0, id_col, test[id_col].to_numpy())

    logger.info(
        f"{candidate.label} TEST: "
        + ", ".join(f"{k}={v:.4f}" for k, v in metrics.items())
    )
    return FinalResult(
        candidate=candidate,
        metrics=metrics,
        predictions=predictions,
        fitted_transform=fitted,
        estimator=estimator,
        threshold=threshold,
    )

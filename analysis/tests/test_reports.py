"""
Tests for report aggregation and results writing.
"""

import json
import os

import numpy as np
import pandas as pd
import pytest
from churn_ml.evaluation.final import FinalResult, finalize
from churn_ml.evaluation.reports import OutputDirectories, ReportAggregator, ResultsWriter
from churn_ml.models.registry import CandidateConfig, predict_positive_proba


def make_final(y_true, prob, metrics=None, name="knn"):
    """FinalResult with hand-made predictions (no fitted objects)."""
    prob = np.asarray(prob, dtype=float)
    preds = pd.DataFrame(
        {
            "index": np.arange(len(prob)),
            "y_true": np.asarray(y_true),
            "prob": prob,
            "y_pred": (prob >= 0.5).astype(int),
        }
    )
    return FinalResult(
        candidate=CandidateConfig(name),
        metrics=metrics or {"accuracy": 1.0},
        predictions=preds,
        fitted_transform=None,
        estimator=None,
    )


@pytest.fixture
def final_lr(split, preprocessing):
    return finalize(CandidateConfig("logistic_regression"), preprocessing, split)


class TestReportAggregator:
    """Test side-by-side aggregation."""

    def test_add_and_order(self):
        """Models are reported in insertion order."""
        agg = ReportAggregator()
        agg.add("B", make_final([0, 1], [0.2, 0.8], {"accuracy": 1.0}))
        agg.add("A", make_final([0, 1], [0.8, 0.2], {"accuracy": 0.0}))
        assert agg.models == ["B", "A"]
        assert len(agg) == 2
        assert "A" in agg
        table = agg.metrics_table()
        assert table["model"].tolist() == ["B", "A"]
        assert table["accuracy"].tolist() == [1.0, 0.0]

    def test_duplicate_raises(self):
        """A model name can be added once."""
        agg = ReportAggregator()
        agg.add("KNN", make_final([0, 1], [0.2, 0.8]))
        with pytest.raises(ValueError, match="already added"):
            agg.add("KNN", make_final([0, 1], [0.2, 0.8]))

    def test_confusion_matrices(self):
        """Counts and accuracy derive from stored predictions."""
        y_true = [1] * 6 + [0] * 2 + [0] + [1]
        prob = [0.9] * 6 + [0.1] * 2 + [0.9] + [0.1]
        agg = ReportAggregator()
        agg.add("M", make_final(y_true, prob))
        row = agg.confusion_matrices().iloc[0]
        assert (row["TP"], row["TN"], row["FP"], row["FN"]) == (6, 2, 1, 1)
        assert row["accuracy"] == pytest.approx(0.8)

    def test_roc_curves(self):
        """ROC points are tagged by model."""
        agg = ReportAggregator()
        agg.add("M1", make_final([0, 0, 1, 1], [0.1, 0.4, 0.35, 0.8]))
        agg.add("M2", make_final([0, 1], [0.3, 0.7]))
        roc = agg.roc_curves()
        assert list(roc.columns) == ["model", "fpr", "tpr", "threshold"]
        assert roc["model"].unique().tolist() == ["M1", "M2"]

    def test_empty(self):
        """An empty aggregator yields empty tables."""
        agg = ReportAggregator()
        assert agg.roc_curves().empty
        assert agg.confusion_matrices().empty
        assert agg.metrics_table().empty


class TestOutputDirectories:
    """Test output layout."""

    def test_create(self, tmp_path):
        """All category directories are created."""
        dirs = OutputDirectories.create(str(tmp_path / "results"))
        for key in ("core", "cv", "preds", "plots", "models"):
            assert os.path.isdir(getattr(dirs, key))

    def test_split_seed_nesting(self, tmp_path):
        """split_seed nests the layout under split_seed{N}."""
        dirs = OutputDirectories.create(str(tmp_path), split_seed=123)
        assert dirs.root.endswith("split_seed123")
        assert dirs.core == os.path.join(dirs.root, "core")

    def test_get_path(self, tmp_path):
        """get_path joins category and file; unknown categories fail."""
        dirs = OutputDirectories.create(str(tmp_path))
        assert dirs.get_path("cv", "x.csv") == os.path.join(dirs.cv, "x.csv")
        with pytest.raises(ValueError, match="Unknown output category"):
            dirs.get_path("misc", "x.csv")


class TestResultsWriter:
    """Test writing result files."""

    def test_tables(self, tmp_path):
        """Core tables land in core/."""
        writer = ResultsWriter(OutputDirectories.create(str(tmp_path)))
        agg = ReportAggregator()
        agg.add("KNN", make_final([0, 1], [0.2, 0.8]))
        metrics_path = writer.save_metrics_table(agg.metrics_table())
        writer.save_confusion_matrices(agg.confusion_matrices())
        writer.save_roc_curves(agg.roc_curves())
        assert os.path.basename(metrics_path) == "test_metrics.csv"
        assert pd.read_csv(metrics_path)["model"].tolist() == ["KNN"]
        assert set(writer.summarize_outputs()) == {
            os.path.join("core", "test_metrics.csv"),
            os.path.join("core", "confusion_matrices.csv"),
            os.path.join("core", "roc_curves.csv"),
        }

    def test_model_names_made_file_safe(self, tmp_path):
        """Spaces in model names become underscores in file names."""
        writer = ResultsWriter(OutputDirectories.create(str(tmp_path)))
        path = writer.save_test_predictions(pd.DataFrame({"prob": [0.1]}), "Logistic Regression")
        assert os.path.basename(path) == "test_preds__Logistic_Regression.csv"

    def test_cv_outputs(self, tmp_path):
        """Fold metrics, summaries, and best params land in cv/."""
        writer = ResultsWriter(OutputDirectories.create(str(tmp_path)))
        fold_path = writer.save_resampling_metrics(pd.DataFrame({"fold": ["Fold1"]}), "KNN")
        summary_path = writer.save_resampling_summary(pd.DataFrame({"metric": ["roc_auc"]}), "KNN")
        best_path = writer.save_best_params([{"model": "KNN", "n_neighbors": 9}])
        assert os.path.basename(fold_path) == "KNN__fold_metrics.csv"
        assert os.path.basename(summary_path) == "KNN__cv_summary.csv"
        assert pd.read_csv(best_path)["n_neighbors"].tolist() == [9]

    def test_run_settings(self, tmp_path):
        """Run settings are written as JSON."""
        writer = ResultsWriter(OutputDirectories.create(str(tmp_path)))
        path = writer.save_run_settings({"seed": np.int64(123), "folds": 5})
        with open(path) as f:
            assert json.load(f) == {"seed": 123, "folds": 5}

    def test_model_artifact_round_trip(self, tmp_path, final_lr, split):
        """Saved bundle reproduces TEST probabilities."""
        writer = ResultsWriter(OutputDirectories.create(str(tmp_path)))
        writer.save_model_artifact(final_lr, "Logistic Regression", metadata={"split_seed": 123})
        bundle = writer.load_model_artifact("Logistic Regression")
        assert bundle["model_name"] == "Logistic Regression"
        assert bundle["family"] == "logistic_regression"
        assert bundle["metadata"] == {"split_seed": 123}
        assert set(bundle["versions"]) == {"sklearn", "pandas", "numpy"}

        X_test = bundle["fitted_transform"].apply(split.test)
        prob = predict_positive_proba(bundle["estimator"], X_test)
        np.testing.assert_allclose(prob, final_lr.predictions["prob"].to_numpy())

    def test_load_missing_artifact_raises(self, tmp_path):
        """Loading an absent bundle raises FileNotFoundError."""
        writer = ResultsWriter(OutputDirectories.create(str(tmp_path)))
        with pytest.raises(FileNotFoundError):
            writer.load_model_artifact("nope")

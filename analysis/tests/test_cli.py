"""
Integration tests for the churn CLI.

Runs the commands end to end through click's CliRunner on a synthetic
customer dataset.
"""

import json

import pandas as pd
import pytest
import yaml
from churn_ml import __version__
from churn_ml.cli.main import cli
from click.testing import CliRunner


@pytest.fixture
def runner():
    return CliRunner()


class TestCLIBasics:
    """Help and version output."""

    def test_help(self, runner):
        """Top-level help lists the commands."""
        result = runner.invoke(cli, ["--help"])
        assert result.exit_code == 0
        assert "run-report" in result.output
        assert "save-splits" in result.output
        assert "config" in result.output

    def test_version(self, runner):
        """--version prints the package version."""
        result = runner.invoke(cli, ["--version"])
        assert result.exit_code == 0
        assert __version__ in result.output

    def test_save_splits_requires_infile(self, runner):
        """save-splits without --infile is a usage error."""
        result = runner.invoke(cli, ["save-splits"])
        assert result.exit_code != 0
        assert "--infile" in result.output


class TestSaveSplits:
    """save-splits command."""

    def test_writes_split_files(self, runner, churn_csv, tmp_path):
        """Indices, fold assignments, and metadata are written."""
        outdir = tmp_path / "splits"
        result = runner.invoke(
            cli, ["save-splits", "--infile", str(churn_csv), "--outdir", str(outdir)]
        )
        assert result.exit_code == 0, result.output

        train = pd.read_csv(outdir / "train_idx_seed123.csv")
        test = pd.read_csv(outdir / "test_idx_seed123.csv")
        folds = pd.read_csv(outdir / "folds_seed123.csv")
        assert len(train) == 750
        assert len(test) == 250
        assert len(folds) == 750
        assert folds["fold"].nunique() == 5

        with open(outdir / "split_meta_seed123.json") as f:
            meta = json.load(f)
        assert meta["cv"]["k"] == 5
        assert meta["infile"].endswith("customers.csv")

    def test_options(self, runner, churn_csv, tmp_path):
        """Seed, fraction, and folds options are honored."""
        outdir = tmp_path / "splits"
        result = runner.invoke(
            cli,
            [
                "save-splits",
                "--infile",
                str(churn_csv),
                "--outdir",
                str(outdir),
                "--seed",
                "7",
                "--train-fraction",
                "0.8",
                "--folds",
                "4",
            ],
        )
        assert result.exit_code == 0, result.output
        assert len(pd.read_csv(outdir / "train_idx_seed7.csv")) == 800
        assert pd.read_csv(outdir / "folds_seed7.csv")["fold"].nunique() == 4

    def test_refuses_overwrite(self, runner, churn_csv, tmp_path):
        """A second run needs --overwrite."""
        args = ["save-splits", "--infile", str(churn_csv), "--outdir", str(tmp_path / "s")]
        assert runner.invoke(cli, args).exit_code == 0
        second = runner.invoke(cli, args)
        assert second.exit_code != 0
        assert isinstance(second.exception, FileExistsError)
        assert runner.invoke(cli, args + ["--overwrite"]).exit_code == 0

    def test_logs_written(self, runner, churn_csv, tmp_path):
        """Logs go to a logs/ directory beside the output directory."""
        runner.invoke(
            cli, ["save-splits", "--infile", str(churn_csv), "--outdir", str(tmp_path / "splits")]
        )
        assert (tmp_path / "logs" / "splits" / "seed123.log").exists()


class TestRunReport:
    """run-report command end to end."""

    @pytest.fixture
    def report_root(self, runner, churn_csv, tmp_path):
        outdir = tmp_path / "results"
        result = runner.invoke(
            cli,
            [
                "run-report",
                "--infile",
                str(churn_csv),
                "--outdir",
                str(outdir),
                "--override",
                "models.2.grid.n_neighbors=3,9",
            ],
        )
        assert result.exit_code == 0, result.output
        return outdir / "split_seed123"

    def test_test_metrics(self, report_root):
        """One TEST metrics row per enabled model."""
        metrics = pd.read_csv(report_root / "core" / "test_metrics.csv")
        assert metrics["model"].tolist() == ["Logistic Regression", "Discriminant Analysis", "KNN"]
        assert (metrics["roc_auc"] > 0.6).all()

    def test_confusion_and_roc(self, report_root):
        """Confusion counts sum to the TEST size; ROC points per model."""
        confusion = pd.read_csv(report_root / "core" / "confusion_matrices.csv")
        totals = confusion[["TP", "TN", "FP", "FN"]].sum(axis=1)
        assert (totals == 250).all()
        roc = pd.read_csv(report_root / "core" / "roc_curves.csv")
        assert set(roc["model"]) == set(confusion["model"])

    def test_cv_outputs(self, report_root):
        """Fold metrics, CV summaries, and the tuned KNN best params."""
        cv = report_root / "cv"
        lr_folds = pd.read_csv(cv / "Logistic_Regression__fold_metrics.csv")
        assert lr_folds["fold"].tolist() == [f"Fold{i}" for i in range(1, 6)]
        knn_folds = pd.read_csv(cv / "KNN__fold_metrics.csv")
        assert len(knn_folds) == 10
        best = pd.read_csv(cv / "best_params.csv")
        assert best["model"].tolist() == ["KNN"]
        assert best["n_neighbors"].iloc[0] in (3, 9)

    def test_class_balance_and_split(self, report_root):
        """Class balance and split summary are saved."""
        balance = pd.read_csv(report_root / "core" / "class_balance.csv")
        assert balance["n"].sum() == 1000
        split = pd.read_csv(report_root / "core" / "split_summary.csv")
        assert split["n"].tolist() == [1000, 750, 250]

    def test_predictions_models_plots(self, report_root):
        """Per-model predictions, bundles, and plots exist."""
        preds = pd.read_csv(report_root / "preds" / "test_preds__KNN.csv")
        assert len(preds) == 250
        assert set(preds["pred_label"]) <= {"yes", "no"}
        assert (preds["pred_label"] == "yes").tolist() == (preds["y_pred"] == 1).tolist()
        assert (report_root / "models" / "KNN__final_model.joblib").exists()
        assert (report_root / "plots" / "roc_curves.png").exists()
        assert (report_root / "plots" / "KNN__confusion.png").exists()
        assert (report_root / "plots" / "KNN__tuning_n_neighbors.png").exists()

    def test_resolved_config_saved(self, report_root):
        """The resolved configuration is saved beside the results."""
        with open(report_root / "report_config.yaml") as f:
            saved = yaml.safe_load(f)
        assert saved["models"][2]["grid"]["n_neighbors"] == [3, 9]
        assert (report_root / "core" / "run_settings.json").exists()

    def test_fold_predictions_for_tuned_and_untuned(self, runner, churn_csv, tmp_path):
        """save_fold_predictions writes out-of-fold files for every model."""
        outdir = tmp_path / "oof"
        result = runner.invoke(
            cli,
            [
                "run-report",
                "--infile",
                str(churn_csv),
                "--outdir",
                str(outdir),
                "--override",
                "models.2.grid.n_neighbors=3,9",
                "--override",
                "output.save_fold_predictions=true",
                "--override",
                "output.save_plots=false",
            ],
        )
        assert result.exit_code == 0, result.output
        preds_dir = outdir / "split_seed123" / "preds"
        knn = pd.read_csv(preds_dir / "oof_preds__KNN.csv")
        assert len(knn) == 750
        assert knn["row"].tolist() == list(range(750))
        lr = pd.read_csv(preds_dir / "oof_preds__Logistic_Regression.csv")
        assert len(lr) == 750

    def test_reuses_saved_split(self, runner, churn_csv, tmp_path):
        """--use-saved-splits takes TRAIN/TEST from save-splits output."""
        split_dir = tmp_path / "splits"
        saved = runner.invoke(
            cli,
            [
                "save-splits",
                "--infile",
                str(churn_csv),
                "--outdir",
                str(split_dir),
                "--train-fraction",
                "0.6",
            ],
        )
        assert saved.exit_code == 0, saved.output

        outdir = tmp_path / "reused"
        result = runner.invoke(
            cli,
            [
                "run-report",
                "--infile",
                str(churn_csv),
                "--outdir",
                str(outdir),
                "--split-dir",
                str(split_dir),
                "--use-saved-splits",
                "--override",
                "models.2.grid.n_neighbors=5",
                "--override",
                "output.save_plots=false",
            ],
        )
        assert result.exit_code == 0, result.output
        root = outdir / "split_seed123"
        summary = pd.read_csv(root / "core" / "split_summary.csv")
        assert summary["n"].tolist() == [1000, 600, 400]
        saved_test = pd.read_csv(split_dir / "test_idx_seed123.csv").iloc[:, 0]
        preds = pd.read_csv(root / "preds" / "test_preds__KNN.csv")
        assert sorted(preds["index"].tolist()) == sorted(saved_test.tolist())

    def test_missing_saved_split_fails(self, runner, churn_csv, tmp_path):
        """Asking for a saved split that does not exist is an error."""
        result = runner.invoke(
            cli,
            [
                "run-report",
                "--infile",
                str(churn_csv),
                "--outdir",
                str(tmp_path / "r"),
                "--split-dir",
                str(tmp_path / "nowhere"),
                "--use-saved-splits",
            ],
        )
        assert result.exit_code != 0
        assert isinstance(result.exception, FileNotFoundError)

    def test_missing_infile_fails(self, runner, tmp_path):
        """Without an input file the report refuses to run."""
        result = runner.invoke(cli, ["run-report", "--outdir", str(tmp_path / "r")])
        assert result.exit_code != 0
        assert "infile" in str(result.exception)


class TestConfigValidate:
    """config validate command."""

    def test_valid_config(self, runner, tmp_path):
        """A clean config exits 0."""
        path = tmp_path / "ok.yaml"
        path.write_text(yaml.safe_dump({"cv": {"folds": 5}}))
        result = runner.invoke(cli, ["config", "validate", str(path)])
        assert result.exit_code == 0
        assert "[OK]" in result.output

    def test_warnings_only_fail_in_strict_mode(self, runner, tmp_path):
        """Warnings pass by default and fail with --strict."""
        path = tmp_path / "warn.yaml"
        path.write_text(yaml.safe_dump({"metrics": ["accuracy"]}))
        relaxed = runner.invoke(cli, ["config", "validate", str(path)])
        assert relaxed.exit_code == 0
        assert "WARNINGS" in relaxed.output
        strict = runner.invoke(cli, ["config", "validate", str(path), "--strict"])
        assert strict.exit_code == 1
        assert "[FAIL]" in strict.output

    def test_invalid_config(self, runner, tmp_path):
        """Schema errors exit 1."""
        path = tmp_path / "bad.yaml"
        path.write_text(yaml.safe_dump({"splits": {"train_fraction": 2.0}}))
        result = runner.invoke(cli, ["config", "validate", str(path)])
        assert result.exit_code == 1
        assert "ERRORS" in result.output

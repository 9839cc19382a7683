"""
Error and warning kinds raised by the churn-ML pipeline.

Fatal errors carry the pipeline stage (split/fold/tune/finalize) and, where
known, the configuration and fold that triggered them, so that a failing run
reports exactly where it stopped.
"""

from typing import Any


class PipelineError(Exception):
    """Base class for pipeline errors tagged with a stage."""

    def __init__(
        self,
        message: str,
        stage: str,
        config: Any | None = None,
        fold: str | None = None,
    ):
        self.message = message
        self.stage = stage
        self.config = config
        self.fold = fold

        context = [f"stage={stage}"]
        if config is not None:
            context.append(f"config={config}")
        if fold is not None:
            context.append(f"fold={fold}")
        super().__init__(f"[{', '.join(context)}] {message}")

    def __reduce__(self):
        # Rebuild from the parts so errors survive joblib worker processes
        return (type(self), (self.message, self.stage, self.config, self.fold))

    def with_context(
        self,
        stage: str,
        config: Any | None = None,
        fold: str | None = None,
    ) -> "PipelineError":
        """Same error kind re-tagged with the stage, configuration, and fold that surfaced it."""
        return type(self)(
            self.message,
            stage=stage,
            config=config if config is not None else self.config,
            fold=fold if fold is not None else self.fold,
        )


class SchemaMismatchError(PipelineError):
    """A subset's fields do not match the fields a transform was fitted on."""


class UnknownCategoryError(PipelineError):
    """A categorical value was not seen at fit time and the policy forbids bucketing."""


class EmptyGridError(PipelineError):
    """Tuning was requested with zero candidate configurations."""


class FoldEvaluationError(PipelineError):
    """Fitting or scoring a single fold failed with error_score='raise'."""


class TuningError(PipelineError):
    """No configuration in a grid produced a usable selection metric."""


class FinalizeError(PipelineError):
    """Refitting on the training subset or scoring the test subset failed."""


class DegenerateFoldWarning(UserWarning):
    """A validation piece is missing one outcome class; some metrics are NaN."""


class UnknownCategoryWarning(UserWarning):
    """Unseen categorical values were mapped to the unknown bucket."""

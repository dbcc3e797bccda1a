"""Feature engineering and classification for arena deck outcomes."""

from arenaedge.ml.features.engineer import (
    FEATURES,
    LABEL,
    TARGET,
    DeckFeatureVector,
    FeatureContext,
    aggregate,
    build_context,
    engineer_features,
)
from arenaedge.ml.pipeline import (
    ClassPipelineResult,
    PipelineRun,
    run_all_classes,
    run_class_pipeline,
)
from arenaedge.ml.training.train import ModelEvaluation, TrainingMode, run_experiment

__all__ = [
    "ClassPipelineResult",
    "DeckFeatureVector",
    "FEATURES",
    "FeatureContext",
    "LABEL",
    "ModelEvaluation",
    "PipelineRun",
    "TARGET",
    "TrainingMode",
    "aggregate",
    "build_context",
    "engineer_features",
    "run_all_classes",
    "run_class_pipeline",
    "run_experiment",
]

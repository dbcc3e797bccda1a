"""
Per-class feature and model pipeline.

Each playable class is an independent pipeline over the shared,
read-only dataset: rank, estimate swing, aggregate features, train.
Ranking completes before swing estimation within a class; classes have
no ordering between them and run in a thread pool. A failure in one
class is logged and recorded without affecting the others.
"""

import logging
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from typing import Any

import pandas as pd

from arenaedge.analysis.popularity import ALL_CLASSES, PopularityRanking, TieBreak, rank_cards
from arenaedge.config import Settings
from arenaedge.ml.features.engineer import build_context, engineer_features
from arenaedge.ml.training.train import ModelEvaluation, TrainingMode, run_experiment
from arenaedge.models.card import PLAYABLE_CLASSES, CardClass, resolve_playable_class
from arenaedge.models.dataset import DerivedTable, DraftDataset
from arenaedge.models.failure import KnownError

logger = logging.getLogger(__name__)


@dataclass
class ClassPipelineResult:
    """Output tables and model evaluations for one class."""

    player_class: CardClass
    popularity: DerivedTable
    swing: DerivedTable
    features: DerivedTable
    evaluations: list[ModelEvaluation] = field(default_factory=list)


@dataclass
class PipelineRun:
    """Results of every class pipeline, plus the classes that failed."""

    results: dict[CardClass, ClassPipelineResult] = field(default_factory=dict)
    failures: dict[CardClass, str] = field(default_factory=dict)
    global_popularity: DerivedTable | None = None

    def popularity_table(self) -> pd.DataFrame:
        frames = [r.popularity.frame for r in self.results.values()]
        if self.global_popularity is not None:
            frames.append(self.global_popularity.frame)
        return pd.concat(frames, ignore_index=True) if frames else pd.DataFrame()

    def swing_table(self) -> pd.DataFrame:
        frames = [r.swing.frame for r in self.results.values()]
        return pd.concat(frames, ignore_index=True) if frames else pd.DataFrame()

    def table_summaries(self) -> list[dict[str, Any]]:
        """Row and dropped-row counts of every derived table."""
        summaries = [
            {"player_class": c.value, **table.summary()}
            for c, r in self.results.items()
            for table in (r.popularity, r.swing, r.features)
        ]
        if self.global_popularity is not None:
            summaries.append({"player_class": ALL_CLASSES, **self.global_popularity.summary()})
        return summaries

    def evaluations(self) -> list[dict[str, Any]]:
        return [
            {"player_class": c.value, **e.to_dict()}
            for c, r in self.results.items()
            for e in r.evaluations
        ]


def run_class_pipeline(
    dataset: DraftDataset,
    player_class: CardClass | Any,
    config: Settings,
    global_ranking: PopularityRanking | None = None,
    train: bool = True,
    mode: TrainingMode = TrainingMode.FULL,
) -> ClassPipelineResult:
    """
    Run ranking, swing, features and (optionally) training for one class.

    Args:
        dataset: Loaded dataset
        player_class: Class to run
        config: Pipeline settings
        global_ranking: Pooled ranking shared across classes
        train: Whether to train and evaluate models
        mode: Training mode for the classifier harness

    Returns:
        ClassPipelineResult

    Raises:
        ConfigurationError: If the class is unknown or training can't proceed
    """
    resolved = resolve_playable_class(player_class)
    context = build_context(dataset, resolved, config, global_ranking)
    features = engineer_features(dataset, resolved, context)

    dropped_runs = dataset.report.dropped_by_class.get(resolved, 0) if dataset.report else 0
    result = ClassPipelineResult(
        player_class=resolved,
        popularity=DerivedTable("popularity", context.ranking.to_table()),
        swing=DerivedTable("swing", context.swing.to_table(), dropped_rows=context.swing.absent),
        features=DerivedTable("features", features, dropped_rows=dropped_runs),
    )
    logger.info(
        "%s: %d ranked cards, %d swing buckets (%d absent), %d feature rows (%d runs dropped)",
        resolved.value,
        result.popularity.rows,
        result.swing.rows,
        result.swing.dropped_rows,
        result.features.rows,
        result.features.dropped_rows,
    )

    if train:
        result.evaluations = run_experiment(features, config, mode=mode)
    return result


def run_all_classes(
    dataset: DraftDataset,
    config: Settings,
    classes: tuple[CardClass, ...] = PLAYABLE_CLASSES,
    train: bool = True,
    mode: TrainingMode = TrainingMode.FULL,
) -> PipelineRun:
    """
    Run every class pipeline in parallel.

    The pooled ranking is computed once and shared read-only.

    Args:
        dataset: Loaded dataset
        config: Pipeline settings
        classes: Classes to run
        train: Whether to train and evaluate models
        mode: Training mode for the classifier harness

    Returns:
        PipelineRun with per-class results and failures
    """
    global_ranking = rank_cards(dataset, None, tie_break=TieBreak(config.rank_tie_break))
    run = PipelineRun(
        global_popularity=DerivedTable("popularity", global_ranking.to_table()),
    )

    with ThreadPoolExecutor(max_workers=config.class_workers) as pool:
        futures = {
            player_class: pool.submit(
                run_class_pipeline, dataset, player_class, config, global_ranking, train, mode
            )
            for player_class in classes
        }
        for player_class, future in futures.items():
            try:
                run.results[player_class] = future.result()
            except (KnownError, ValueError) as e:
                logger.error("%s pipeline aborted: %s", player_class.value, e)
                run.failures[player_class] = str(e)

    logger.info(
        "Pipelines complete: %d succeeded, %d failed", len(run.results), len(run.failures)
    )
    return run

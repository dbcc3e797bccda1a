"""
Build popularity, swing and feature tables and train deck classifiers.

Reads the card, run, draft-event and era tables from CSV, runs every
class pipeline, and writes the output tables to a directory.
"""

import argparse
import json
import logging
from datetime import timedelta
from pathlib import Path

from arenaedge.config import Settings, settings
from arenaedge.ml.data.eras import resolve_era_window
from arenaedge.ml.data.loader import load_dataset, load_table
from arenaedge.ml.pipeline import PipelineRun, run_all_classes
from arenaedge.ml.training.train import TrainingMode

logger = logging.getLogger(__name__)


def write_outputs(run: PipelineRun, report: dict[str, object], output_dir: Path) -> None:
    """Write every output table of a pipeline run."""
    output_dir.mkdir(parents=True, exist_ok=True)

    run.popularity_table().to_csv(output_dir / "popularity.csv", index=False)
    run.swing_table().to_csv(output_dir / "swing.csv", index=False)
    for player_class, result in run.results.items():
        result.features.frame.to_csv(output_dir / f"features_{player_class.value}.csv")

    with open(output_dir / "evaluations.json", "w") as f:
        json.dump(run.evaluations(), f, indent=2)
    with open(output_dir / "load_report.json", "w") as f:
        json.dump(
            {
                **report,
                "tables": run.table_summaries(),
                "failures": {c.value: msg for c, msg in run.failures.items()},
            },
            f,
            indent=2,
        )
    logger.info("Wrote outputs to %s", output_dir)


def run_build(
    data_dir: Path,
    output_dir: Path,
    era_id: int | None,
    config: Settings,
    train: bool = True,
    mode: TrainingMode = TrainingMode.FULL,
) -> PipelineRun:
    """
    Load tables from data_dir and run all class pipelines.

    Expects cards.csv, runs.csv and draft_events.csv (optionally
    gzipped), plus eras.csv when era_id is given.
    """
    def table(name: str) -> Path:
        gz = data_dir / f"{name}.csv.gz"
        return gz if gz.exists() else data_dir / f"{name}.csv"

    era = None
    if era_id is not None:
        era = resolve_era_window(
            load_table(table("eras")), era_id, timedelta(days=config.era_grace_days)
        )
        logger.info("Era %d window: %s to %s", era_id, era.start, era.end)

    dataset = load_dataset(
        load_table(table("cards")),
        load_table(table("runs")),
        load_table(table("draft_events")),
        config,
        era=era,
    )
    run = run_all_classes(dataset, config, train=train, mode=mode)
    write_outputs(run, dataset.report.to_dict() if dataset.report else {}, output_dir)
    return run


def main() -> None:
    """CLI entry point."""
    parser = argparse.ArgumentParser(description=__doc__)
    parser.add_argument("data_dir", type=Path, help="Directory holding the input CSV tables")
    parser.add_argument("output_dir", type=Path, help="Directory to write output tables to")
    parser.add_argument("--era", type=int, default=None, help="Restrict runs to this era id")
    parser.add_argument("--no-train", action="store_true", help="Only build feature tables")
    parser.add_argument(
        "--mode",
        choices=[m.value for m in TrainingMode],
        default=TrainingMode.FULL.value,
        help="Training mode",
    )
    args = parser.parse_args()

    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )
    run_build(
        args.data_dir,
        args.output_dir,
        args.era,
        settings,
        train=not args.no_train,
        mode=TrainingMode(args.mode),
    )


if __name__ == "__main__":
    main()

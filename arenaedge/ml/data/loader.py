"""Load and validate arena draft tables.

Resolves the raw card, run and draft-event tables into normalized
entities. Self-reported data is noisy: rows that fail a check are
filtered and counted, never treated as fatal.
"""

import logging
import warnings
from collections import Counter, defaultdict
from collections.abc import Iterable
from datetime import UTC, datetime
from pathlib import Path

import pandas as pd

from arenaedge.config import Settings
from arenaedge.models.card import Card, CardClass, CardType, Rarity
from arenaedge.models.dataset import DraftDataset, EraWindow, LoadReport, SampleDiagnostics
from arenaedge.models.failure import DataIntegrityWarning, IntegrityIssue, SchemaValidationError
from arenaedge.models.run import DRAFT_ROUNDS, MAX_LOSSES, MAX_WINS, DraftEvent, Run

logger = logging.getLogger(__name__)

CARD_COLUMNS = frozenset(["id", "name", "set", "rarity", "type", "card_class", "cost", "text"])

RUN_COLUMNS = frozenset([
    "run_id",
    "player_id",
    "player_class",
    "wins",
    "losses",
    "reported_wins",
    "reported_losses",
    "retired",
    "started_at",
])

EVENT_COLUMNS = frozenset(["event_id", "card_id", "run_id", "round_index", "chosen"])

TRUE_STRINGS = frozenset(["t", "true", "1", "yes", "y"])


def load_table(file_path: Path) -> pd.DataFrame:
    """Load a CSV table, gzipped or plain.

    Args:
        file_path: Path to .csv or .csv.gz file

    Returns:
        DataFrame with the table rows
    """
    return pd.read_csv(file_path, compression="infer")


def to_utc(epoch_seconds: float) -> datetime:
    """Convert epoch seconds to an aware UTC datetime."""
    return datetime.fromtimestamp(float(epoch_seconds), tz=UTC)


def validate_schema(df: pd.DataFrame, required: Iterable[str], table: str) -> None:
    """Validate that DataFrame has required columns.

    Args:
        df: DataFrame to validate
        required: Column names that must be present
        table: Table name for the error message

    Raises:
        SchemaValidationError: If required columns are missing
    """
    missing = set(required) - set(df.columns)
    if missing:
        raise SchemaValidationError(table, sorted(missing))


def _optional_int(value: object) -> int | None:
    """Integer value of a cell, or None when it is missing or not a whole number."""
    if value is None or pd.isna(value):
        return None
    try:
        number = float(value)  # type: ignore[arg-type]
    except (TypeError, ValueError):
        return None
    return int(number) if number.is_integer() else None


def _flag(value: object) -> bool:
    """Read a boolean column that may hold bools, 0/1 or t/f strings."""
    if value is None or pd.isna(value):
        return False
    if isinstance(value, str):
        return value.strip().lower() in TRUE_STRINGS
    return bool(value)


def load_cards(
    cards: pd.DataFrame,
    non_draftable_sets: Iterable[str],
    dropped: Counter[IntegrityIssue],
) -> dict[int, Card]:
    """
    Resolve the card reference table.

    Cards without an integer id are dropped as missing keys. Cards from
    promotional/reward sets, and cards whose rarity, type or class isn't
    draftable, are dropped as non-draftable.

    Returns:
        Card pool {card_id: Card}
    """
    validate_schema(cards, CARD_COLUMNS, "card")
    excluded_sets = {s.upper() for s in non_draftable_sets}

    pool: dict[int, Card] = {}
    for row in cards.itertuples(index=False):
        card_id = _optional_int(row.id)
        if card_id is None:
            dropped[IntegrityIssue.MISSING_KEY] += 1
            continue

        card_set = "" if pd.isna(row.set) else str(row.set)
        rarity = Rarity.parse(row.rarity)
        card_type = CardType.parse(row.type)
        card_class = CardClass.parse(row.card_class)

        if (
            card_set.upper() in excluded_sets
            or rarity is None
            or card_type is None
            or card_class is None
            or _optional_int(row.cost) is None
        ):
            dropped[IntegrityIssue.NON_DRAFTABLE_CARD] += 1
            continue

        pool[card_id] = Card(
            card_id=card_id,
            name=str(row.name),
            card_set=card_set,
            rarity=rarity,  # type: ignore[arg-type]
            card_type=card_type,  # type: ignore[arg-type]
            card_class=card_class,  # type: ignore[arg-type]
            cost=_optional_int(row.cost),  # type: ignore[arg-type]
            text="" if pd.isna(row.text) else str(row.text),
        )
    return pool


def _screen_run(
    row: object,
    outcome_source: str,
    era: EraWindow | None,
) -> tuple[IntegrityIssue | None, CardClass | None, int | None]:
    """Check one run row. Returns (issue, class, outcome)."""
    run_id = _optional_int(row.run_id)  # type: ignore[attr-defined]
    player_id = _optional_int(row.player_id)  # type: ignore[attr-defined]
    if run_id is None or player_id is None:
        return IntegrityIssue.MISSING_KEY, None, None

    wins = _optional_int(row.wins)  # type: ignore[attr-defined]
    losses = _optional_int(row.losses)  # type: ignore[attr-defined]
    reported_wins = _optional_int(row.reported_wins)  # type: ignore[attr-defined]
    reported_losses = _optional_int(row.reported_losses)  # type: ignore[attr-defined]

    if outcome_source == "reported":
        outcome, outcome_losses = reported_wins, reported_losses
    else:
        outcome, outcome_losses = wins, losses
    if outcome is None or outcome_losses is None or wins is None or losses is None:
        return IntegrityIssue.MISSING_OUTCOME, None, None

    if _flag(row.retired):  # type: ignore[attr-defined]
        return IntegrityIssue.EARLY_RETIREMENT, None, None

    if not (0 <= outcome <= MAX_WINS and 0 <= outcome_losses <= MAX_LOSSES):
        return IntegrityIssue.OUTCOME_OUT_OF_RANGE, None, None

    player_class = CardClass.parse(row.player_class)  # type: ignore[attr-defined]
    if player_class is None or not player_class.playable:
        return IntegrityIssue.UNKNOWN_CLASS, None, None

    started_at = row.started_at  # type: ignore[attr-defined]
    if pd.isna(started_at) or (era is not None and to_utc(started_at) not in era):
        return IntegrityIssue.OUTSIDE_ERA, player_class, outcome  # type: ignore[return-value]

    return None, player_class, outcome  # type: ignore[return-value]


def _group_events(
    events: pd.DataFrame,
    known_runs: set[int],
    pool: dict[int, Card],
    dropped: Counter[IntegrityIssue],
) -> dict[int, list[DraftEvent]]:
    """Group valid draft events by run, preserving source order."""
    validate_schema(events, EVENT_COLUMNS, "draft event")

    by_run: dict[int, list[DraftEvent]] = defaultdict(list)
    for row in events.itertuples(index=False):
        event_id = _optional_int(row.event_id)
        run_id = _optional_int(row.run_id)
        card_id = _optional_int(row.card_id)
        round_index = _optional_int(row.round_index)

        if event_id is None:
            dropped[IntegrityIssue.MISSING_KEY] += 1
            continue
        if run_id is None or run_id not in known_runs:
            dropped[IntegrityIssue.ORPHANED_RUN] += 1
            continue
        if card_id is None or card_id not in pool:
            dropped[IntegrityIssue.ORPHANED_CARD] += 1
            continue
        if round_index is None or not 1 <= round_index <= DRAFT_ROUNDS:
            dropped[IntegrityIssue.INVALID_ROUND] += 1
            continue

        by_run[run_id].append(
            DraftEvent(
                event_id=event_id,
                run_id=run_id,
                round_index=round_index,
                card_id=card_id,
                chosen=_flag(row.chosen),
            )
        )
    return by_run


def _mean(values: list[int]) -> float:
    return sum(values) / len(values) if values else 0.0


def load_dataset(
    cards: pd.DataFrame,
    runs: pd.DataFrame,
    events: pd.DataFrame,
    config: Settings,
    era: EraWindow | None = None,
) -> DraftDataset:
    """
    Resolve raw tables into a DraftDataset of complete runs.

    Rows without an integer key (card id, run or player id, event id)
    are dropped, as are repeated run_ids after their first row. Runs are
    dropped when their outcome is missing or out of range, when the
    player retired early, when the class is unknown, when they started
    outside the era window, or when fewer than 30 draft rounds were
    recorded. Draft events with an unknown run, unknown card or an
    invalid round are dropped and counted.

    Args:
        cards: Card reference table
        runs: Run outcome table
        events: Draft event table
        config: Pipeline settings
        era: Era window to restrict runs to (None = no restriction)

    Returns:
        DraftDataset whose report carries kept/dropped counts and sample
        diagnostics

    Raises:
        SchemaValidationError: If a table is missing required columns
    """
    validate_schema(runs, RUN_COLUMNS, "run")
    dropped: Counter[IntegrityIssue] = Counter()
    dropped_by_class: Counter[CardClass] = Counter()

    pool = load_cards(cards, config.non_draftable_sets, dropped)

    known_runs = {r for r in map(_optional_int, runs["run_id"]) if r is not None}
    drafts = _group_events(events, known_runs, pool, dropped)

    scored_outcomes: list[int] = []
    complete_outcomes: list[int] = []
    kept: list[Run] = []

    seen_runs: set[int] = set()
    for row in runs.itertuples(index=False):
        run_id = _optional_int(row.run_id)
        if run_id is not None and run_id in seen_runs:
            # Keep the first row of a repeated run_id
            dropped[IntegrityIssue.DUPLICATE_RUN] += 1
            continue
        if run_id is not None:
            seen_runs.add(run_id)

        issue, player_class, outcome = _screen_run(row, config.outcome_source, era)
        if issue is not None:
            dropped[issue] += 1
            if player_class is not None:
                dropped_by_class[player_class] += 1
            continue

        scored_outcomes.append(outcome)  # type: ignore[arg-type]
        run = Run(
            run_id=run_id,  # type: ignore[arg-type]
            player_id=_optional_int(row.player_id),  # type: ignore[arg-type]
            player_class=player_class,  # type: ignore[arg-type]
            wins=_optional_int(row.wins),  # type: ignore[arg-type]
            losses=_optional_int(row.losses),  # type: ignore[arg-type]
            reported_wins=_optional_int(row.reported_wins),
            reported_losses=_optional_int(row.reported_losses),
            retired=False,
            started_at=to_utc(row.started_at),
            outcome=outcome,  # type: ignore[arg-type]
            draft=tuple(drafts.get(run_id, ())),  # type: ignore[arg-type]
        )
        if not run.is_complete(strict=config.strict_rounds):
            dropped[IntegrityIssue.INCOMPLETE_DECK] += 1
            dropped_by_class[run.player_class] += 1
            continue

        complete_outcomes.append(run.outcome)
        kept.append(run)

    diagnostics = SampleDiagnostics(
        total_runs=len(scored_outcomes),
        complete_runs=len(kept),
        mean_wins_all=_mean(scored_outcomes),
        mean_wins_complete=_mean(complete_outcomes),
    )
    report = LoadReport(
        cards=len(pool),
        runs=len(kept),
        events=sum(len(r.draft) for r in kept),
        dropped=dict(dropped),
        dropped_by_class=dict(dropped_by_class),
        diagnostics=diagnostics,
    )

    logger.info(
        "Loaded %d cards, %d complete runs (%.1f%% completion, win bias %+.2f)",
        report.cards,
        report.runs,
        diagnostics.completion_rate * 100,
        diagnostics.win_bias,
    )
    if dropped:
        for issue, count in sorted(dropped.items(), key=lambda item: item[0].value):
            logger.warning("Dropped %d rows: %s", count, issue.value)
        warnings.warn(
            f"Filtered {report.dropped_total} rows from noisy source data",
            DataIntegrityWarning,
            stacklevel=2,
        )

    return DraftDataset(cards=pool, runs=tuple(kept), era=era, report=report)

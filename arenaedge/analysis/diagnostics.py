"""
Sample representativeness and popularity-vs-success analysis.

Self-reported runs are a biased sample: only about a third record a
complete deck, and those runs win slightly more than average. These
helpers put numbers on that, and compare what winning and losing decks
pick.
"""

import logging
from collections.abc import Iterable
from typing import Any

import pandas as pd

from arenaedge.analysis.popularity import PopularityRanking, TieBreak, rank_cards
from arenaedge.ml.features.engineer import TARGET
from arenaedge.models.card import PLAYABLE_CLASSES, CardClass, resolve_playable_class
from arenaedge.models.dataset import DraftDataset
from arenaedge.models.run import MAX_WINS, OutcomeRange

logger = logging.getLogger(__name__)


def class_representation(dataset: DraftDataset) -> pd.DataFrame:
    """
    Runs kept and dropped per class.

    Returns:
        DataFrame indexed by player_class with complete_runs,
        dropped_runs, completion_rate and mean_wins
    """
    dropped = dataset.report.dropped_by_class if dataset.report else {}
    rows = []
    for player_class in PLAYABLE_CLASSES:
        runs = dataset.runs_for(player_class)
        n_dropped = dropped.get(player_class, 0)
        total = len(runs) + n_dropped
        rows.append({
            "player_class": player_class.value,
            "complete_runs": len(runs),
            "dropped_runs": n_dropped,
            "completion_rate": len(runs) / total if total else 0.0,
            "mean_wins": sum(r.outcome for r in runs) / len(runs) if runs else float("nan"),
        })
    return pd.DataFrame(rows).set_index("player_class")


def popularity_by_outcome(
    dataset: DraftDataset,
    player_class: CardClass | Any,
    wins_values: Iterable[int] = range(MAX_WINS + 1),
    tie_break: TieBreak = TieBreak.FIRST_SEEN,
) -> pd.DataFrame:
    """
    Popularity ranking computed separately for each win count.

    Win counts with no runs are skipped.

    Returns:
        DataFrame with wins, card_id, rank, pick_fraction
    """
    resolved = resolve_playable_class(player_class)
    frames = []
    for wins in wins_values:
        ranking = rank_cards(dataset, resolved, OutcomeRange.exactly(wins), tie_break)
        if len(ranking) == 0:
            continue
        table = ranking.to_table()[["card_id", "rank", "pick_fraction"]]
        table.insert(0, "wins", wins)
        frames.append(table)

    if not frames:
        return pd.DataFrame(columns=["wins", "card_id", "rank", "pick_fraction"])
    return pd.concat(frames, ignore_index=True)


def rank_correlation(a: PopularityRanking, b: PopularityRanking) -> float:
    """
    Spearman correlation of two rankings over the cards both rank.

    Returns NaN when fewer than two cards are shared.
    """
    shared = a.stats.index.intersection(b.stats.index)
    if len(shared) < 2:
        return float("nan")
    return float(
        a.stats.loc[shared, "rank"].corr(b.stats.loc[shared, "rank"], method="spearman")
    )


def mean_rank_by_wins(features: pd.DataFrame) -> pd.DataFrame:
    """
    Average deck popularity rank and top-popular count per win count.

    A rising mean rank with wins means winning decks hold less popular
    cards.
    """
    grouped = features.groupby(TARGET)
    return pd.DataFrame({
        "decks": grouped.size(),
        "mean_rank": grouped["mean_rank"].mean(),
        "top_popular": grouped["top_popular"].mean(),
    })

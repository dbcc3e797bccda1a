"""
Card popularity ranking.

Ranks cards by how often players take them when offered. Rank 1 is the
most-picked card; every card offered to the class gets a distinct rank,
so ranks form a gapless permutation of 1..K.
"""

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

import numpy as np
import pandas as pd

from arenaedge.models.card import CardClass, resolve_playable_class
from arenaedge.models.dataset import DraftDataset
from arenaedge.models.run import OutcomeRange

logger = logging.getLogger(__name__)

RANK_COLUMNS = ["player_class", "card_id", "rank", "pick_fraction", "offered", "chosen"]

# player_class value used in output tables for the pooled ranking
ALL_CLASSES = "all"


class TieBreak(str, Enum):
    """How cards with equal pick fraction are ordered."""

    FIRST_SEEN = "first_seen"
    CARD_ID = "card_id"


@dataclass(frozen=True)
class PopularityRanking:
    """
    Popularity ranks for one class, or for all classes pooled.

    Attributes:
        player_class: Class the ranking covers (None = pooled)
        stats: DataFrame indexed by card_id with offered, chosen,
               pick_fraction and rank, ordered by rank
    """

    player_class: CardClass | None
    stats: pd.DataFrame
    _ranks: dict[int, int] = field(init=False, repr=False, compare=False)

    def __post_init__(self) -> None:
        ranks = {int(card_id): int(rank) for card_id, rank in self.stats["rank"].items()}
        object.__setattr__(self, "_ranks", ranks)

    def __len__(self) -> int:
        return len(self._ranks)

    def __contains__(self, card_id: object) -> bool:
        return card_id in self._ranks

    @property
    def max_rank(self) -> int:
        return len(self._ranks)

    @property
    def unseen_rank(self) -> int:
        """Rank given to cards never offered: worse than every ranked card."""
        return self.max_rank + 1

    def rank_of(self, card_id: int) -> int:
        """Rank of a card; cards never offered get unseen_rank."""
        return self._ranks.get(card_id, self.unseen_rank)

    def pick_fraction(self, card_id: int) -> float | None:
        if card_id not in self._ranks:
            return None
        return float(self.stats.at[card_id, "pick_fraction"])

    def top(self, n: int) -> set[int]:
        """Card ids ranked 1..n."""
        return {card_id for card_id, rank in self._ranks.items() if rank <= n}

    def to_table(self) -> pd.DataFrame:
        """Output table: one row per ranked card."""
        table = self.stats.reset_index()
        label = self.player_class.value if self.player_class else ALL_CLASSES
        table.insert(0, "player_class", label)
        return table[RANK_COLUMNS]


def rank_cards(
    dataset: DraftDataset,
    player_class: CardClass | Any | None,
    outcome_range: OutcomeRange | None = None,
    tie_break: TieBreak = TieBreak.FIRST_SEEN,
) -> PopularityRanking:
    """
    Rank cards by pick fraction among draft offers to a class.

    pick_fraction = times chosen / times offered, over the complete runs
    of the class (restricted to outcome_range when given). Ties keep the
    order in which cards were first offered, or card id order with
    TieBreak.CARD_ID.

    Args:
        dataset: Loaded dataset
        player_class: Class to rank for, or None to pool all classes
        outcome_range: Only count runs with outcome in this range
        tie_break: Tie-breaking rule

    Returns:
        PopularityRanking

    Raises:
        ConfigurationError: If player_class isn't a playable class
    """
    resolved = None if player_class is None else resolve_playable_class(player_class)
    events = dataset.events_frame(resolved, outcome_range)

    # sort=False keeps first-offered order for the stable sort below
    stats = events.groupby("card_id", sort=False)["chosen"].agg(offered="size", chosen="sum")
    stats["chosen"] = stats["chosen"].astype(int)
    stats["pick_fraction"] = stats["chosen"] / stats["offered"]

    if TieBreak(tie_break) is TieBreak.CARD_ID:
        stats = stats.sort_index()
    stats = stats.sort_values("pick_fraction", ascending=False, kind="stable")
    stats["rank"] = np.arange(1, len(stats) + 1)
    stats.index = stats.index.astype(int)
    stats.index.name = "card_id"

    logger.debug(
        "Ranked %d cards for %s from %d offers",
        len(stats),
        resolved.value if resolved else ALL_CLASSES,
        len(events),
    )
    return PopularityRanking(player_class=resolved, stats=stats)

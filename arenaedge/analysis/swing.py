"""
Card swing estimation.

A card's swing for a copy count is the mean outcome of the class's decks
holding exactly that many copies, minus the class mean outcome. Buckets
with fewer decks than the minimum sample have no swing ("absent").

Deck-level swing treats an absent endpoint as a zero contribution. That
is a conservative approximation for rare cards, not a measured effect.
"""

import logging
from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any

import pandas as pd

from arenaedge.analysis.popularity import PopularityRanking
from arenaedge.models.card import CardClass, resolve_playable_class
from arenaedge.models.dataset import DraftDataset
from arenaedge.models.failure import ConfigurationError, InsufficientSampleError
from arenaedge.models.run import Run

logger = logging.getLogger(__name__)

DEFAULT_MIN_SAMPLE = 50

# Deck-building rules allow at most this many copies of a card
DEFAULT_MAX_COPIES = 4

SWING_COLUMNS = ["player_class", "card_id", "copies", "swing", "sample_size"]


@dataclass(frozen=True)
class SwingTable:
    """
    Swing values for one class.

    Attributes:
        player_class: Class the table covers
        class_mean: Mean outcome over every run of the class
        buckets: DataFrame indexed by (card_id, copies) with mean_outcome,
                 sample_size and swing (NaN when below min_sample)
        min_sample: Minimum decks per bucket for a swing to be present
        max_copies: Copy counts above this were folded into it
        anomalies: Number of (run, card) pairs that exceeded max_copies
    """

    player_class: CardClass
    class_mean: float
    buckets: pd.DataFrame
    min_sample: int = DEFAULT_MIN_SAMPLE
    max_copies: int = DEFAULT_MAX_COPIES
    anomalies: int = 0
    _swings: dict[tuple[int, int], float] = field(init=False, repr=False, compare=False)
    _samples: dict[tuple[int, int], int] = field(init=False, repr=False, compare=False)

    def __post_init__(self) -> None:
        swings: dict[tuple[int, int], float] = {}
        samples: dict[tuple[int, int], int] = {}
        for (card_id, copies), row in self.buckets.iterrows():
            key = (int(card_id), int(copies))
            samples[key] = int(row["sample_size"])
            if pd.notna(row["swing"]):
                swings[key] = float(row["swing"])
        object.__setattr__(self, "_swings", swings)
        object.__setattr__(self, "_samples", samples)

    def _key(self, card_id: int, copies: int) -> tuple[int, int]:
        if copies < 0:
            raise ConfigurationError("Copy count must not be negative", detail=str(copies))
        return int(card_id), min(int(copies), self.max_copies)

    def swing(self, card_id: int, copies: int) -> float | None:
        """Swing for holding `copies` copies, or None when absent."""
        return self._swings.get(self._key(card_id, copies))

    def sample_size(self, card_id: int, copies: int) -> int:
        return self._samples.get(self._key(card_id, copies), 0)

    def require(self, card_id: int, copies: int) -> float:
        """
        Swing for holding `copies` copies.

        Raises:
            InsufficientSampleError: If the bucket is below min_sample
        """
        value = self.swing(card_id, copies)
        if value is None:
            raise InsufficientSampleError(
                self.sample_size(card_id, copies),
                self.min_sample,
                detail=f"{self.player_class.value} card {card_id} x{copies}",
            )
        return value

    def card_swing(self, card_id: int, copies: int) -> float:
        """
        Swing of holding `copies` copies relative to holding none.

        Absent endpoints contribute 0 rather than propagating as missing.
        """
        held = self.swing(card_id, copies)
        baseline = self.swing(card_id, 0)
        if held is None or baseline is None:
            return 0.0
        return held - baseline

    def deck_swing(self, deck: Run | Mapping[int, int]) -> float:
        """Sum of card_swing over the distinct cards of a deck."""
        cards = deck.deck if isinstance(deck, Run) else deck
        return sum(self.card_swing(card_id, copies) for card_id, copies in cards.items())

    @property
    def absent(self) -> int:
        """Buckets observed but below min_sample."""
        return len(self._samples) - len(self._swings)

    def to_table(self) -> pd.DataFrame:
        """Output table: one row per observed (card, copies) bucket."""
        table = self.buckets.reset_index()
        table.insert(0, "player_class", self.player_class.value)
        return table[SWING_COLUMNS]


def estimate_swing(
    dataset: DraftDataset,
    player_class: CardClass | Any,
    ranking: PopularityRanking,
    min_sample: int = DEFAULT_MIN_SAMPLE,
    max_copies: int = DEFAULT_MAX_COPIES,
) -> SwingTable:
    """
    Estimate swing for every card offered to a class.

    The class's popularity ranking defines the card universe, so cards
    offered but never picked still get a zero-copies bucket.

    Args:
        dataset: Loaded dataset
        player_class: Class to estimate for
        ranking: Popularity ranking of the same class
        min_sample: Minimum decks per bucket
        max_copies: Copy counts above this are folded into it

    Returns:
        SwingTable

    Raises:
        ConfigurationError: If the class is unknown or doesn't match the ranking
    """
    resolved = resolve_playable_class(player_class)
    if ranking.player_class is not resolved:
        raise ConfigurationError(
            "Swing needs the popularity ranking of the same class",
            detail=f"{resolved.value} vs {ranking.player_class}",
        )

    outcomes = dataset.outcomes(resolved)
    class_mean = float(outcomes.mean()) if len(outcomes) else 0.0

    decks = dataset.deck_matrix(resolved).reindex(columns=list(ranking.stats.index), fill_value=0)
    anomalies = int((decks > max_copies).to_numpy().sum())
    if anomalies:
        logger.warning(
            "%s: %d deck/card pairs hold more than %d copies; folded into %d",
            resolved.value,
            anomalies,
            max_copies,
            max_copies,
        )
    decks = decks.clip(upper=max_copies)

    if decks.empty:
        index = pd.MultiIndex.from_arrays([[], []], names=["card_id", "copies"])
        buckets = pd.DataFrame({"mean_outcome": [], "sample_size": []}, index=index)
    else:
        held = pd.DataFrame(
            {
                "run_id": decks.index.repeat(decks.shape[1]),
                "card_id": list(decks.columns) * decks.shape[0],
                "copies": decks.to_numpy().ravel(),
            }
        )
        held["outcome"] = outcomes.reindex(held["run_id"]).to_numpy()
        buckets = held.groupby(["card_id", "copies"])["outcome"].agg(
            mean_outcome="mean", sample_size="size"
        )
    buckets["swing"] = (buckets["mean_outcome"] - class_mean).where(
        buckets["sample_size"] >= min_sample
    )

    table = SwingTable(
        player_class=resolved,
        class_mean=class_mean,
        buckets=buckets,
        min_sample=min_sample,
        max_copies=max_copies,
        anomalies=anomalies,
    )
    logger.debug(
        "%s: %d swing buckets, %d below minimum sample of %d",
        resolved.value,
        len(buckets),
        table.absent,
        min_sample,
    )
    return table

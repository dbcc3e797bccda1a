"""
Loaded draft data and load-time bookkeeping.

A DraftDataset is the read-only result of entity loading. Every derived
table (rankings, swing, features) is a pure function of it, so the same
dataset can be shared by class pipelines running in parallel.
"""

from collections import Counter
from collections.abc import Mapping
from dataclasses import dataclass, field
from datetime import datetime
from functools import cached_property
from types import MappingProxyType

import pandas as pd

from arenaedge.models.card import Card, CardClass
from arenaedge.models.failure import ConfigurationError, IntegrityIssue
from arenaedge.models.run import OutcomeRange, Run

EVENT_COLUMNS = ["run_id", "player_class", "outcome", "card_id", "round_index", "chosen"]


@dataclass(frozen=True)
class EraWindow:
    """Half-open [start, end) time window of one game-content era."""

    start: datetime
    end: datetime
    era_id: int | None = None

    def __post_init__(self) -> None:
        if self.start >= self.end:
            raise ConfigurationError(
                "Invalid era window",
                detail=f"start {self.start.isoformat()} is not before end {self.end.isoformat()}",
            )

    def __contains__(self, moment: object) -> bool:
        return isinstance(moment, datetime) and self.start <= moment < self.end


@dataclass(frozen=True)
class SampleDiagnostics:
    """
    Representativeness of the modeled sample.

    Only complete decks are modeled, and players who finish recording a
    draft tend to do slightly better than those who don't. These numbers
    let a consumer judge that bias.
    """

    total_runs: int
    complete_runs: int
    mean_wins_all: float
    mean_wins_complete: float

    @property
    def completion_rate(self) -> float:
        if self.total_runs == 0:
            return 0.0
        return self.complete_runs / self.total_runs

    @property
    def win_bias(self) -> float:
        """Mean wins of complete runs minus mean wins of all scored runs."""
        return self.mean_wins_complete - self.mean_wins_all

    def to_dict(self) -> dict[str, float | int]:
        return {
            "total_runs": self.total_runs,
            "complete_runs": self.complete_runs,
            "completion_rate": self.completion_rate,
            "mean_wins_all": self.mean_wins_all,
            "mean_wins_complete": self.mean_wins_complete,
            "win_bias": self.win_bias,
        }


@dataclass(frozen=True)
class LoadReport:
    """
    Row counts kept and dropped while loading.

    dropped_by_class counts runs of a known playable class that fell
    outside the era or failed the complete-deck gate.
    """

    cards: int
    runs: int
    events: int
    dropped: Mapping[IntegrityIssue, int]
    diagnostics: SampleDiagnostics
    dropped_by_class: Mapping[CardClass, int] = field(default_factory=dict)

    @property
    def dropped_total(self) -> int:
        return sum(self.dropped.values())

    def dropped_for(self, issue: IntegrityIssue) -> int:
        return self.dropped.get(issue, 0)

    def to_dict(self) -> dict[str, object]:
        return {
            "cards": self.cards,
            "runs": self.runs,
            "events": self.events,
            "dropped": {issue.value: n for issue, n in self.dropped.items()},
            "dropped_by_class": {c.value: n for c, n in self.dropped_by_class.items()},
            "diagnostics": self.diagnostics.to_dict(),
        }


@dataclass(frozen=True)
class DraftDataset:
    """
    Normalized cards and complete runs.

    Attributes:
        cards: Read-only card pool {card_id: Card}
        runs: Complete runs, in source order
        era: Era window the runs were restricted to, if any
        report: Load bookkeeping
    """

    cards: Mapping[int, Card]
    runs: tuple[Run, ...]
    era: EraWindow | None = None
    report: LoadReport | None = field(default=None, compare=False)

    def __post_init__(self) -> None:
        if not isinstance(self.cards, MappingProxyType):
            object.__setattr__(self, "cards", MappingProxyType(dict(self.cards)))

    def runs_for(
        self,
        player_class: CardClass | None = None,
        outcome_range: OutcomeRange | None = None,
    ) -> tuple[Run, ...]:
        """Runs of a class (all classes when None), optionally limited by outcome."""
        return tuple(
            r
            for r in self.runs
            if (player_class is None or r.player_class is player_class)
            and (outcome_range is None or r.outcome in outcome_range)
        )

    @cached_property
    def _events(self) -> pd.DataFrame:
        rows = [
            (r.run_id, r.player_class.value, r.outcome, e.card_id, e.round_index, e.chosen)
            for r in self.runs
            for e in r.draft
        ]
        frame = pd.DataFrame(rows, columns=EVENT_COLUMNS)
        return frame.astype({"chosen": bool})

    def events_frame(
        self,
        player_class: CardClass | None = None,
        outcome_range: OutcomeRange | None = None,
    ) -> pd.DataFrame:
        """
        Flat draft events of complete runs, in source order.

        Args:
            player_class: Restrict to runs of this class (None = all)
            outcome_range: Restrict to runs whose outcome is in range

        Returns:
            DataFrame with EVENT_COLUMNS
        """
        events = self._events
        mask = pd.Series(True, index=events.index)
        if player_class is not None:
            mask &= events["player_class"] == player_class.value
        if outcome_range is not None:
            mask &= events["outcome"].between(outcome_range.min_wins, outcome_range.max_wins)
        return events[mask]

    def deck_matrix(self, player_class: CardClass | None = None) -> pd.DataFrame:
        """
        Copies held per run and card.

        Returns:
            DataFrame indexed by run_id with one column per card_id seen in
            a deck, zero-filled
        """
        runs = self.runs_for(player_class)
        counts: Counter[tuple[int, int]] = Counter()
        for run in runs:
            for card_id, copies in run.deck.items():
                counts[(run.run_id, card_id)] = copies

        index = pd.Index([r.run_id for r in runs], name="run_id")
        if not counts:
            return pd.DataFrame(index=index)

        series = pd.Series(counts)
        series.index.names = ["run_id", "card_id"]
        return series.unstack("card_id", fill_value=0).reindex(index, fill_value=0)

    def outcomes(self, player_class: CardClass | None = None) -> pd.Series:
        """Outcome per run_id."""
        runs = self.runs_for(player_class)
        return pd.Series(
            [r.outcome for r in runs],
            index=pd.Index([r.run_id for r in runs], name="run_id"),
            name="outcome",
            dtype=float,
        )


@dataclass(frozen=True)
class DerivedTable:
    """An output table plus how many candidate rows were left out of it."""

    name: str
    frame: pd.DataFrame
    dropped_rows: int = 0

    @property
    def rows(self) -> int:
        return len(self.frame)

    def summary(self) -> dict[str, int | str]:
        return {"name": self.name, "rows": self.rows, "dropped_rows": self.dropped_rows}

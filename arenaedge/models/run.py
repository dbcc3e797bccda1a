from collections import Counter
from dataclasses import dataclass, field
from datetime import datetime
from functools import cached_property
from numbers import Integral

from arenaedge.models.card import CardClass
from arenaedge.models.failure import ConfigurationError

# A full arena draft is 30 picks
DRAFT_ROUNDS = 30

# Game rules end a run at 12 wins or 3 losses
MAX_WINS = 12
MAX_LOSSES = 3


@dataclass(frozen=True, slots=True)
class DraftEvent:
    """One offered card during a draft round, flagged chosen or not."""

    event_id: int
    run_id: int
    round_index: int
    card_id: int
    chosen: bool


@dataclass(frozen=True)
class Run:
    """
    One arena attempt: a drafted deck plus its win/loss outcome.

    Attributes:
        run_id: Unique run id
        player_id: Reporting player
        player_class: Class played (never NEUTRAL)
        wins: Official win count
        losses: Official loss count
        reported_wins: Player-reported win count, if any
        reported_losses: Player-reported loss count, if any
        retired: Early-retirement flag
        started_at: Run start (UTC)
        outcome: Win count used for modeling (official or reported)
        draft: Every draft event of the run, in source order
    """

    run_id: int
    player_id: int
    player_class: CardClass
    wins: int
    losses: int
    reported_wins: int | None
    reported_losses: int | None
    retired: bool
    started_at: datetime
    outcome: int
    draft: tuple[DraftEvent, ...] = field(default_factory=tuple, repr=False)

    @cached_property
    def deck(self) -> dict[int, int]:
        """Chosen cards as {card_id: copies}, in pick order."""
        return dict(Counter(e.card_id for e in self.draft if e.chosen))

    def deck_size(self) -> int:
        """Total chosen cards."""
        return sum(self.deck.values())

    def resolved_rounds(self) -> set[int]:
        """Rounds with exactly one chosen event."""
        chosen_per_round = Counter(e.round_index for e in self.draft if e.chosen)
        return {r for r, n in chosen_per_round.items() if n == 1}

    def is_complete(self, strict: bool = True) -> bool:
        """
        True if the run recorded a full 30-pick deck.

        Strict mode requires every round 1..30 to be resolved by exactly
        one chosen event. Lenient mode only requires a chosen pick to
        reach round 30.
        """
        if strict:
            return self.resolved_rounds() == set(range(1, DRAFT_ROUNDS + 1))
        return any(e.chosen and e.round_index == DRAFT_ROUNDS for e in self.draft)


@dataclass(frozen=True)
class OutcomeRange:
    """Inclusive win-count filter, e.g. OutcomeRange(7, 12) for strong decks."""

    min_wins: int = 0
    max_wins: int = MAX_WINS

    def __post_init__(self) -> None:
        if self.min_wins < 0 or self.max_wins > MAX_WINS or self.min_wins > self.max_wins:
            raise ConfigurationError(
                "Invalid outcome range",
                detail=f"{self.min_wins}..{self.max_wins} is not within 0..{MAX_WINS}",
            )

    @classmethod
    def exactly(cls, wins: int) -> "OutcomeRange":
        return cls(wins, wins)

    def __contains__(self, wins: object) -> bool:
        return isinstance(wins, Integral) and self.min_wins <= wins <= self.max_wins

from collections.abc import Callable, Iterable, Mapping, Sequence
from datetime import UTC, datetime

import numpy as np
import pandas as pd
import pytest

from arenaedge.config import Settings
from arenaedge.models.card import Card, CardClass, CardType, Rarity
from arenaedge.models.dataset import DraftDataset
from arenaedge.models.run import DraftEvent, Run

# 2017-01-01 00:00:00 UTC
BASE_EPOCH = 1_483_228_800

RunBuilder = Callable[..., Run]


def build_card(
    card_id: int,
    card_class: CardClass = CardClass.NEUTRAL,
    card_type: CardType = CardType.MINION,
    cost: int = 2,
    text: str = "",
) -> Card:
    return Card(
        card_id=card_id,
        name=f"Card {card_id}",
        card_set="CORE",
        rarity=Rarity.COMMON,
        card_type=card_type,
        card_class=card_class,
        cost=cost,
        text=text,
    )


def build_run(
    run_id: int,
    picks: Sequence[int],
    player_class: CardClass = CardClass.MAGE,
    wins: int = 5,
    passes: Mapping[int, Iterable[int]] | None = None,
) -> Run:
    """Run whose i-th pick is chosen in round i+1; passes maps round -> offered, not taken."""
    events = []
    event_id = run_id * 1000
    for round_index, card_id in enumerate(picks, start=1):
        for passed in (passes or {}).get(round_index, ()):
            events.append(DraftEvent(event_id, run_id, round_index, passed, False))
            event_id += 1
        events.append(DraftEvent(event_id, run_id, round_index, card_id, True))
        event_id += 1
    return Run(
        run_id=run_id,
        player_id=run_id,
        player_class=player_class,
        wins=wins,
        losses=3,
        reported_wins=wins,
        reported_losses=3,
        retired=False,
        started_at=datetime.fromtimestamp(BASE_EPOCH, tz=UTC),
        outcome=wins,
        draft=tuple(events),
    )


def build_dataset(runs: Iterable[Run], cards: Iterable[Card]) -> DraftDataset:
    return DraftDataset(cards={c.card_id: c for c in cards}, runs=tuple(runs))


@pytest.fixture
def run_builder() -> RunBuilder:
    return build_run


@pytest.fixture
def test_settings() -> Settings:
    """Small-sample settings so the harness runs quickly."""
    return Settings(
        min_swing_sample=10,
        cv_folds=3,
        cv_repeats=1,
        class_workers=2,
    )


@pytest.fixture
def raw_tables() -> dict[str, pd.DataFrame]:
    """
    Raw card, run, draft event and era tables.

    80 complete runs each for MAGE and WARRIOR, plus one noisy row for
    every filter the loader applies.
    """
    rng = np.random.default_rng(7)
    texts = [
        "Taunt",
        "Battlecry: Deal 2 damage.",
        "Deal $3 damage to all enemy minions.",
        "Draw a card.",
        "",
        "Divine Shield",
        "Charge",
        "Give a minion +2/+2.",
        "Freeze a character.",
        "Deathrattle: Restore 3 Health.",
    ]
    card_rows = []
    for card_id in range(1, 41):
        if card_id <= 10:
            card_class = 12
        elif card_id <= 25:
            card_class = 4
        else:
            card_class = 10
        card_rows.append({
            "id": card_id,
            "name": f"Card {card_id}",
            "set": "CORE",
            "rarity": [1, 3, 4, 5][card_id % 4],
            "type": 5 if card_id % 3 == 0 else 4,
            "card_class": card_class,
            "cost": card_id % 8,
            "text": texts[card_id % len(texts)] or None,
        })
    card_rows.append({
        "id": 99, "name": "Promo", "set": "PROMO", "rarity": 5, "type": 4,
        "card_class": 12, "cost": 3, "text": "Taunt",
    })
    cards = pd.DataFrame(card_rows)

    pools = {4: list(range(1, 26)), 10: list(range(1, 11)) + list(range(26, 41))}
    run_rows = []
    event_rows = []
    event_id = 0

    def add_draft(run_id: int, player_class: int, rounds: int) -> None:
        nonlocal event_id
        pool = pools[player_class]
        for round_index in range(1, rounds + 1):
            offered = rng.choice(pool, size=3, replace=False)
            pick = int(offered[np.argmax(offered)]) if rng.random() < 0.7 else int(offered[0])
            for card_id in offered:
                event_rows.append({
                    "event_id": event_id,
                    "card_id": int(card_id),
                    "run_id": run_id,
                    "round_index": round_index,
                    "chosen": int(card_id) == pick,
                })
                event_id += 1

    run_id = 1
    for player_class in (4, 10):
        for _ in range(80):
            wins = int(rng.integers(0, 13))
            run_rows.append({
                "run_id": run_id,
                "player_id": run_id,
                "player_class": player_class,
                "wins": wins,
                "losses": 3 if wins < 12 else int(rng.integers(0, 3)),
                "reported_wins": wins,
                "reported_losses": 3,
                "retired": False,
                "started_at": BASE_EPOCH + run_id * 3600,
            })
            add_draft(run_id, player_class, 30)
            run_id += 1

    noisy = {
        "incomplete": {"player_class": 4, "wins": 3},
        "retired": {"player_class": 4, "wins": 1, "retired": True},
        "missing": {"player_class": 4, "wins": None},
        "out_of_range": {"player_class": 10, "wins": 15},
        "neutral": {"player_class": 12, "wins": 4},
    }
    noisy_ids = {}
    for name, overrides in noisy.items():
        row = {
            "run_id": run_id,
            "player_id": run_id,
            "player_class": 4,
            "wins": 2,
            "losses": 3,
            "reported_wins": 2,
            "reported_losses": 3,
            "retired": False,
            "started_at": BASE_EPOCH + run_id * 3600,
        }
        row.update(overrides)
        run_rows.append(row)
        add_draft(run_id, 4, 29 if name == "incomplete" else 30)
        noisy_ids[name] = run_id
        run_id += 1

    event_rows.append({
        "event_id": event_id, "card_id": 1, "run_id": 9999, "round_index": 1, "chosen": True,
    })
    event_rows.append({
        "event_id": event_id + 1, "card_id": 777, "run_id": 1, "round_index": 1,
        "chosen": False,
    })
    event_rows.append({
        "event_id": event_id + 2, "card_id": 1, "run_id": 1, "round_index": 31,
        "chosen": False,
    })

    eras = pd.DataFrame({
        "era_id": [1, 2],
        "start": [BASE_EPOCH - 86_400, BASE_EPOCH + 60 * 86_400],
        "end": [BASE_EPOCH + 60 * 86_400, BASE_EPOCH + 120 * 86_400],
    })

    return {
        "cards": cards,
        "runs": pd.DataFrame(run_rows),
        "events": pd.DataFrame(event_rows),
        "eras": eras,
        "noisy_ids": noisy_ids,  # type: ignore[dict-item]
    }

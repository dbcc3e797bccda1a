"""Feature engineering for deck outcome prediction.

Folds per-card attributes, popularity rank and swing into one fixed-width
feature vector per complete run.

Attribute and type counts are rank-weighted: each deck slot holding a
card with the attribute adds the card's popularity rank. Less popular
cards have larger ranks and so weigh more; the features measure how much
unpopular content of each kind a deck carries.
"""

from collections.abc import Mapping
from dataclasses import asdict, dataclass
from typing import Any

import pandas as pd

from arenaedge.analysis.attributes import Attribute, tag_card_pool
from arenaedge.analysis.popularity import PopularityRanking, TieBreak, rank_cards
from arenaedge.analysis.swing import SwingTable, estimate_swing
from arenaedge.config import Settings
from arenaedge.models.card import Card, CardClass, CardType, resolve_playable_class
from arenaedge.models.dataset import DraftDataset
from arenaedge.models.run import Run

# Feature names for the model
FEATURES = [
    # Mana curve
    "mean_cost",
    "median_cost",
    "cost_skew",
    # Rank-weighted attributes
    *[attribute.value for attribute in Attribute],
    "damage_spell",
    # Rank-weighted composition
    "minions",
    "spells",
    "class_cards",
    # Popularity and swing
    "mean_rank",
    "top_popular",
    "deck_swing",
]

TARGET = "wins"
LABEL = "above_mean"


@dataclass(frozen=True)
class DeckFeatureVector:
    """Feature vector of one complete run."""

    run_id: int
    mean_cost: float
    median_cost: float
    cost_skew: float
    taunt: float
    draw: float
    destroy: float
    area_damage: float
    silence: float
    charge: float
    heal: float
    deathrattle: float
    enrage: float
    damage: float
    battlecry: float
    freeze: float
    divine_shield: float
    buff: float
    blank: float
    damage_spell: float
    minions: float
    spells: float
    class_cards: float
    mean_rank: float
    top_popular: int
    deck_swing: float
    wins: int

    def to_dict(self) -> dict[str, float | int]:
        """Convert to dictionary, one key per column."""
        return asdict(self)


@dataclass(frozen=True)
class FeatureContext:
    """
    Read-only inputs the aggregator needs for one class.

    Attributes:
        cards: Card pool {card_id: Card}
        attributes: Capability tags {card_id: tags}
        ranking: Popularity ranking of the class
        global_ranking: Popularity ranking pooled over all classes
        swing: Swing table of the class
        top_popular_ranks: Global ranks counted as "top popular"
    """

    cards: Mapping[int, Card]
    attributes: Mapping[int, frozenset[Attribute]]
    ranking: PopularityRanking
    global_ranking: PopularityRanking
    swing: SwingTable
    top_popular_ranks: int = 15


def build_context(
    dataset: DraftDataset,
    player_class: CardClass | Any,
    config: Settings,
    global_ranking: PopularityRanking | None = None,
) -> FeatureContext:
    """
    Derive ranking, tags and swing for one class.

    Ranking completes before swing estimation, which depends on it.

    Args:
        dataset: Loaded dataset
        player_class: Class to build for
        config: Pipeline settings
        global_ranking: Pooled ranking, computed here when not supplied

    Returns:
        FeatureContext for the class
    """
    resolved = resolve_playable_class(player_class)
    tie_break = TieBreak(config.rank_tie_break)

    ranking = rank_cards(dataset, resolved, tie_break=tie_break)
    if global_ranking is None:
        global_ranking = rank_cards(dataset, None, tie_break=tie_break)
    swing = estimate_swing(
        dataset,
        resolved,
        ranking,
        min_sample=config.min_swing_sample,
        max_copies=config.max_copies,
    )
    return FeatureContext(
        cards=dataset.cards,
        attributes=tag_card_pool(dataset.cards),
        ranking=ranking,
        global_ranking=global_ranking,
        swing=swing,
        top_popular_ranks=config.top_popular_ranks,
    )


def _weighted(slots: pd.DataFrame, mask: pd.Series) -> float:
    """Sum of slot ranks where mask holds."""
    return float(slots.loc[mask, "rank"].sum())


def deck_slots(run: Run, context: FeatureContext) -> pd.DataFrame:
    """
    One row per deck slot (copies expanded).

    Args:
        run: Complete run
        context: Class feature context

    Returns:
        DataFrame with card_id, cost, card_type, class_card, rank,
        global_rank and one boolean column per attribute
    """
    rows = []
    for card_id, copies in run.deck.items():
        card = context.cards[card_id]
        tags = context.attributes.get(card_id, frozenset())
        row = {
            "card_id": card_id,
            "cost": card.cost,
            "card_type": card.card_type,
            "class_card": card.is_class_card,
            "rank": context.ranking.rank_of(card_id),
            "global_rank": context.global_ranking.rank_of(card_id),
        }
        row.update({attribute.value: attribute in tags for attribute in Attribute})
        rows.extend([row] * copies)
    return pd.DataFrame(rows)


def aggregate(run: Run, context: FeatureContext) -> DeckFeatureVector:
    """
    Build the feature vector of one run.

    Args:
        run: Complete run
        context: Class feature context

    Returns:
        DeckFeatureVector
    """
    slots = deck_slots(run, context)
    costs = slots["cost"].astype(float)
    skew = costs.skew()

    weighted = {
        attribute.value: _weighted(slots, slots[attribute.value]) for attribute in Attribute
    }
    is_spell = slots["card_type"] == CardType.SPELL

    return DeckFeatureVector(
        run_id=run.run_id,
        mean_cost=float(costs.mean()),
        median_cost=float(costs.median()),
        cost_skew=0.0 if pd.isna(skew) else float(skew),
        **weighted,
        damage_spell=_weighted(slots, slots[Attribute.DAMAGE.value] & is_spell),
        minions=_weighted(slots, slots["card_type"] == CardType.MINION),
        spells=_weighted(slots, is_spell),
        class_cards=_weighted(slots, slots["class_card"]),
        mean_rank=float(slots["rank"].mean()),
        top_popular=int((slots["global_rank"] <= context.top_popular_ranks).sum()),
        deck_swing=float(context.swing.deck_swing(run)),
        wins=run.outcome,
    )


def label_above_mean(wins: pd.Series, reference: pd.Series | None = None) -> pd.Series:
    """
    Binary label: outcome above the population mean.

    The threshold is the mean of `reference` (defaults to `wins` itself),
    so it moves with whatever population the model is trained on.

    Args:
        wins: Outcomes to label
        reference: Population whose mean is the threshold

    Returns:
        Integer Series of 0/1 aligned with wins
    """
    threshold = (wins if reference is None else reference).mean()
    return (wins > threshold).astype(int).rename(LABEL)


def engineer_features(
    dataset: DraftDataset,
    player_class: CardClass | Any,
    context: FeatureContext,
) -> pd.DataFrame:
    """
    Engineer features for every complete run of a class.

    Args:
        dataset: Loaded dataset
        player_class: Class to engineer
        context: Feature context of the same class

    Returns:
        DataFrame indexed by run_id with FEATURES, TARGET and LABEL columns
    """
    resolved = resolve_playable_class(player_class)
    vectors = [aggregate(run, context).to_dict() for run in dataset.runs_for(resolved)]

    result = pd.DataFrame(vectors, columns=["run_id", *FEATURES, TARGET])
    result = result.set_index("run_id")
    result[TARGET] = result[TARGET].astype(int)
    result[LABEL] = label_above_mean(result[TARGET])
    return result

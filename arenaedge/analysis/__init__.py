from arenaedge.analysis.attributes import Attribute, extract_attributes, tag_card_pool
from arenaedge.analysis.popularity import PopularityRanking, TieBreak, rank_cards
from arenaedge.analysis.swing import SwingTable, estimate_swing

__all__ = [
    "Attribute",
    "PopularityRanking",
    "SwingTable",
    "TieBreak",
    "estimate_swing",
    "extract_attributes",
    "rank_cards",
    "tag_card_pool",
]

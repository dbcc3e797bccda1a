"""
Card capability tagging.

Derives boolean capability tags from card description text using an
ordered list of keyword rules. This is heuristic text classification,
not a rules-text parser: some cards will be mis-tagged, and the rules
below document exactly which mistakes are accepted.
"""

import re
from collections.abc import Callable, Mapping
from enum import Enum

from arenaedge.models.card import Card

# Sentinel for cards with no description (vanilla minions)
BLANK_TEXT = ""

_MARKUP = re.compile(r"<[^>]+>")
_NUMBER_PREFIX = re.compile(r"[$#](\d)")
_WHITESPACE = re.compile(r"\s+")
_BUFF = re.compile(r"\+\d")
_ALL_WORD = re.compile(r"\ball\b")


class Attribute(str, Enum):
    """Capability tag vocabulary."""

    TAUNT = "taunt"
    DRAW = "draw"
    DESTROY = "destroy"
    AREA_DAMAGE = "area_damage"
    SILENCE = "silence"
    CHARGE = "charge"
    HEAL = "heal"
    DEATHRATTLE = "deathrattle"
    ENRAGE = "enrage"
    DAMAGE = "damage"
    BATTLECRY = "battlecry"
    FREEZE = "freeze"
    DIVINE_SHIELD = "divine_shield"
    BUFF = "buff"
    BLANK = "blank"


Predicate = Callable[[str], bool]


def normalize_text(text: str | None) -> str:
    """
    Normalize card text for matching.

    Strips markup tags and the $/# prefixes used for spell-damage and
    healing numbers, lower-cases, and collapses whitespace. Missing text
    becomes BLANK_TEXT.
    """
    if not text:
        return BLANK_TEXT
    text = _MARKUP.sub("", text)
    text = _NUMBER_PREFIX.sub(r"\1", text)
    return _WHITESPACE.sub(" ", text).strip().lower()


def _contains(*needles: str) -> Predicate:
    return lambda text: any(n in text for n in needles)


def _has_taunt(text: str) -> bool:
    # "Destroy a minion with Taunt" removes Taunt, it doesn't grant it
    return "taunt" in text and "destroy" not in text


def _has_area_damage(text: str) -> bool:
    return "damage" in text and (_ALL_WORD.search(text) is not None or "adjacent" in text)


def _has_divine_shield(text: str) -> bool:
    # "Enemy minions lose Divine Shield" removes the shield
    return "divine shield" in text and "lose" not in text


# Ordered (tag, predicate) rules over normalized text
ATTRIBUTE_RULES: list[tuple[Attribute, Predicate]] = [
    (Attribute.TAUNT, _has_taunt),
    (Attribute.DRAW, _contains("draw")),
    (Attribute.DESTROY, _contains("destroy")),
    (Attribute.AREA_DAMAGE, _has_area_damage),
    (Attribute.SILENCE, _contains("silence")),
    (Attribute.CHARGE, _contains("charge")),
    (Attribute.HEAL, _contains("restore", "heal")),
    (Attribute.DEATHRATTLE, _contains("deathrattle")),
    (Attribute.ENRAGE, _contains("enrage")),
    (Attribute.DAMAGE, _contains("damage")),
    (Attribute.BATTLECRY, _contains("battlecry")),
    (Attribute.FREEZE, _contains("freeze")),
    (Attribute.DIVINE_SHIELD, _has_divine_shield),
    (Attribute.BUFF, lambda text: _BUFF.search(text) is not None),
    (Attribute.BLANK, lambda text: text == BLANK_TEXT),
]


def extract_attributes(text: str | None) -> frozenset[Attribute]:
    """
    Tag a card description.

    Args:
        text: Raw card description (None or "" for cards without text)

    Returns:
        Set of capability tags whose rule matched
    """
    normalized = normalize_text(text)
    return frozenset(tag for tag, predicate in ATTRIBUTE_RULES if predicate(normalized))


def attribute_flags(text: str | None) -> dict[Attribute, bool]:
    """All tags as booleans, in rule order."""
    tags = extract_attributes(text)
    return {tag: tag in tags for tag, _ in ATTRIBUTE_RULES}


def tag_card_pool(cards: Mapping[int, Card]) -> dict[int, frozenset[Attribute]]:
    """Tag every card in a pool: {card_id: tags}."""
    return {card_id: extract_attributes(card.text) for card_id, card in cards.items()}

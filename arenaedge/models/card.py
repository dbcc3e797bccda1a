from dataclasses import dataclass
from enum import Enum
from typing import Any

from arenaedge.models.failure import ConfigurationError


class _CodedEnum(str, Enum):
    """Enum whose members can be resolved from a numeric code or a name."""

    @classmethod
    def _codes(cls) -> dict[int, "_CodedEnum"]:
        """Numeric code table; subclasses override. Without one only names parse."""
        return {}

    @classmethod
    def parse(cls, value: Any) -> "_CodedEnum | None":
        """
        Resolve a raw table value to a member.

        Accepts the game's numeric code (int or numeric string) or the
        member name/value in any case. Returns None when unrecognized.
        """
        if isinstance(value, cls):
            return value
        if value is None:
            return None
        if isinstance(value, float):
            if value != value or not value.is_integer():  # NaN or fractional
                return None
            value = int(value)
        if isinstance(value, int) and not isinstance(value, bool):
            return cls._codes().get(value)

        text = str(value).strip()
        if text.lstrip("-").isdigit():
            return cls._codes().get(int(text))

        key = text.upper().replace(" ", "_")
        if key in cls.__members__:
            return cls.__members__[key]
        for member in cls:
            if member.value == text.lower():
                return member
        return None


class Rarity(_CodedEnum):
    """Card rarity. The free basic set is folded into COMMON."""

    COMMON = "common"
    RARE = "rare"
    EPIC = "epic"
    LEGENDARY = "legendary"

    @classmethod
    def _codes(cls) -> dict[int, "_CodedEnum"]:
        return {1: cls.COMMON, 2: cls.COMMON, 3: cls.RARE, 4: cls.EPIC, 5: cls.LEGENDARY}

    @classmethod
    def parse(cls, value: Any) -> "_CodedEnum | None":
        if isinstance(value, str) and value.strip().lower() == "free":
            return cls.COMMON
        return super().parse(value)


class CardType(_CodedEnum):
    """Draftable card types."""

    MINION = "minion"
    SPELL = "spell"
    WEAPON = "weapon"

    @classmethod
    def _codes(cls) -> dict[int, "_CodedEnum"]:
        return {4: cls.MINION, 5: cls.SPELL, 7: cls.WEAPON}


class CardClass(_CodedEnum):
    """Owning class of a card. NEUTRAL is not a playable class."""

    DRUID = "druid"
    HUNTER = "hunter"
    MAGE = "mage"
    PALADIN = "paladin"
    PRIEST = "priest"
    ROGUE = "rogue"
    SHAMAN = "shaman"
    WARLOCK = "warlock"
    WARRIOR = "warrior"
    NEUTRAL = "neutral"

    @classmethod
    def _codes(cls) -> dict[int, "_CodedEnum"]:
        return {
            2: cls.DRUID,
            3: cls.HUNTER,
            4: cls.MAGE,
            5: cls.PALADIN,
            6: cls.PRIEST,
            7: cls.ROGUE,
            8: cls.SHAMAN,
            9: cls.WARLOCK,
            10: cls.WARRIOR,
            12: cls.NEUTRAL,
        }

    @property
    def playable(self) -> bool:
        return self is not CardClass.NEUTRAL


PLAYABLE_CLASSES: tuple[CardClass, ...] = tuple(c for c in CardClass if c.playable)


def resolve_playable_class(value: Any) -> CardClass:
    """
    Resolve a class query parameter to a playable class.

    Raises:
        ConfigurationError: If the value is unknown or names NEUTRAL
    """
    card_class = CardClass.parse(value)
    if card_class is None or not card_class.playable:
        raise ConfigurationError(
            "Unknown playable class",
            detail=f"{value!r} is not one of {[c.value for c in PLAYABLE_CLASSES]}",
        )
    return card_class  # type: ignore[return-value]


@dataclass(frozen=True, slots=True)
class Card:
    """
    Draftable card reference data.

    Attributes:
        card_id: Unique card id
        name: Card name
        card_set: Release set code
        rarity: Card rarity
        card_type: Minion, spell or weapon
        card_class: Owning class, NEUTRAL for class-less cards
        cost: Mana cost
        text: Normalized card description ("" when the card has none)
    """

    card_id: int
    name: str
    card_set: str
    rarity: Rarity
    card_type: CardType
    card_class: CardClass
    cost: int
    text: str = ""

    @property
    def is_class_card(self) -> bool:
        """True if only one class can draft this card."""
        return self.card_class is not CardClass.NEUTRAL

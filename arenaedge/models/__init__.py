from arenaedge.models.card import (
    PLAYABLE_CLASSES,
    Card,
    CardClass,
    CardType,
    Rarity,
    resolve_playable_class,
)
from arenaedge.models.dataset import (
    DerivedTable,
    DraftDataset,
    EraWindow,
    LoadReport,
    SampleDiagnostics,
)
from arenaedge.models.failure import (
    ConfigurationError,
    DataIntegrityWarning,
    FailureKind,
    InsufficientSampleError,
    IntegrityIssue,
    KnownError,
    SchemaValidationError,
)
from arenaedge.models.run import DRAFT_ROUNDS, DraftEvent, OutcomeRange, Run

__all__ = [
    "Card",
    "CardClass",
    "CardType",
    "ConfigurationError",
    "DRAFT_ROUNDS",
    "DataIntegrityWarning",
    "DerivedTable",
    "DraftDataset",
    "DraftEvent",
    "EraWindow",
    "FailureKind",
    "InsufficientSampleError",
    "IntegrityIssue",
    "KnownError",
    "LoadReport",
    "OutcomeRange",
    "PLAYABLE_CLASSES",
    "Rarity",
    "Run",
    "SampleDiagnostics",
    "SchemaValidationError",
    "resolve_playable_class",
]

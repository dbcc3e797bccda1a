"""Resolve era windows from the era boundary table.

Expansion content reaches some players a few days before the platform
logs the official era change, so the tail of an era is cut back by a
grace window before the next expansion starts.
"""

from datetime import UTC, datetime, timedelta

import pandas as pd

from arenaedge.ml.data.loader import to_utc, validate_schema
from arenaedge.models.dataset import EraWindow
from arenaedge.models.failure import ConfigurationError

DEFAULT_GRACE = timedelta(days=9)

ERA_COLUMNS = frozenset(["era_id", "start", "end"])


def resolve_era_window(
    eras: pd.DataFrame,
    era_id: int,
    grace: timedelta = DEFAULT_GRACE,
) -> EraWindow:
    """
    Build the analysis window for one era.

    The window starts at the era's official start. It ends at the era's
    logged end, or earlier if the next expansion was released: at the
    greater of the official start and (next expansion start - grace).

    Args:
        eras: Era boundary table with era_id, start, end (epoch seconds)
        era_id: Era to resolve
        grace: Pre-release availability window of the next expansion

    Returns:
        EraWindow for the era

    Raises:
        SchemaValidationError: If the era table is missing columns
        ConfigurationError: If the era is unknown or the window is empty
    """
    validate_schema(eras, ERA_COLUMNS, "era")
    if grace < timedelta(0):
        raise ConfigurationError("Grace window must not be negative", detail=str(grace))

    match = eras[eras["era_id"] == era_id]
    if match.empty:
        raise ConfigurationError("Unknown era", detail=f"era_id={era_id}")

    row = match.iloc[0]
    start = to_utc(row["start"])
    end = to_utc(row["end"]) if pd.notna(row["end"]) else datetime.max.replace(tzinfo=UTC)

    later = eras[eras["start"] > row["start"]]
    if not later.empty:
        next_release = to_utc(later["start"].min())
        end = min(end, max(start, next_release - grace))

    return EraWindow(start=start, end=end, era_id=int(era_id))

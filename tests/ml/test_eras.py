"""Tests for era window resolution."""

from datetime import UTC, datetime, timedelta

import pandas as pd
import pytest

from arenaedge.ml.data.eras import DEFAULT_GRACE, resolve_era_window
from arenaedge.ml.data.loader import to_utc
from arenaedge.models.failure import ConfigurationError, SchemaValidationError

from conftest import BASE_EPOCH

DAY = 86_400


@pytest.fixture
def eras() -> pd.DataFrame:
    return pd.DataFrame({
        "era_id": [1, 2, 3],
        "start": [BASE_EPOCH, BASE_EPOCH + 60 * DAY, BASE_EPOCH + 65 * DAY],
        "end": [BASE_EPOCH + 60 * DAY, BASE_EPOCH + 65 * DAY, BASE_EPOCH + 120 * DAY],
    })


class TestToUtc:
    def test_epoch_seconds(self) -> None:
        assert to_utc(BASE_EPOCH) == datetime(2017, 1, 1, tzinfo=UTC)


class TestResolveEraWindow:
    """Tests for clamping era ends before the next expansion."""

    def test_end_is_cut_back_by_grace(self, eras: pd.DataFrame) -> None:
        window = resolve_era_window(eras, 1)

        assert window.start == to_utc(BASE_EPOCH)
        assert window.end == to_utc(BASE_EPOCH + 60 * DAY) - DEFAULT_GRACE
        assert window.era_id == 1

    def test_last_era_keeps_logged_end(self, eras: pd.DataFrame) -> None:
        window = resolve_era_window(eras, 3)

        assert window.end == to_utc(BASE_EPOCH + 120 * DAY)

    def test_zero_grace_uses_next_start(self, eras: pd.DataFrame) -> None:
        window = resolve_era_window(eras, 1, grace=timedelta(0))

        assert window.end == to_utc(BASE_EPOCH + 60 * DAY)

    def test_logged_end_wins_when_earlier(self, eras: pd.DataFrame) -> None:
        eras.loc[0, "end"] = BASE_EPOCH + 30 * DAY

        window = resolve_era_window(eras, 1)

        assert window.end == to_utc(BASE_EPOCH + 30 * DAY)

    def test_short_era_collapses_to_empty(self, eras: pd.DataFrame) -> None:
        """A 5-day era followed by a release 9 days later leaves no window."""
        with pytest.raises(ConfigurationError, match="Invalid era window"):
            resolve_era_window(eras, 2)

    def test_missing_end_is_open(self, eras: pd.DataFrame) -> None:
        eras["end"] = eras["end"].astype(float)
        eras.loc[2, "end"] = float("nan")

        window = resolve_era_window(eras, 3)

        assert window.end.year == 9999
        assert to_utc(BASE_EPOCH + 500 * DAY) in window

    def test_unknown_era(self, eras: pd.DataFrame) -> None:
        with pytest.raises(ConfigurationError, match="Unknown era"):
            resolve_era_window(eras, 42)

    def test_negative_grace(self, eras: pd.DataFrame) -> None:
        with pytest.raises(ConfigurationError, match="Grace"):
            resolve_era_window(eras, 1, grace=timedelta(days=-1))

    def test_missing_column(self, eras: pd.DataFrame) -> None:
        with pytest.raises(SchemaValidationError, match="end"):
            resolve_era_window(eras.drop(columns=["end"]), 1)

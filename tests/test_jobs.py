"""Tests for the feature build job."""

import json
import sys
from pathlib import Path

import pandas as pd
import pytest

from arenaedge.config import Settings
from arenaedge.jobs.build_features import main, run_build
from arenaedge.models.card import CardClass
from arenaedge.models.failure import ConfigurationError


@pytest.fixture
def data_dir(tmp_path: Path, raw_tables: dict[str, pd.DataFrame]) -> Path:
    path = tmp_path / "data"
    path.mkdir()
    raw_tables["cards"].to_csv(path / "cards.csv", index=False)
    raw_tables["runs"].to_csv(path / "runs.csv", index=False)
    raw_tables["events"].to_csv(path / "draft_events.csv.gz", index=False)
    raw_tables["eras"].to_csv(path / "eras.csv", index=False)
    return path


class TestRunBuild:
    """Tests for building output tables from CSV inputs."""

    def test_writes_output_tables(
        self, data_dir: Path, tmp_path: Path, test_settings: Settings
    ) -> None:
        output_dir = tmp_path / "out"

        run = run_build(data_dir, output_dir, None, test_settings, train=False)

        assert run.failures == {}
        for name in ["popularity.csv", "swing.csv", "evaluations.json", "load_report.json"]:
            assert (output_dir / name).exists()
        features = pd.read_csv(output_dir / "features_mage.csv", index_col="run_id")
        assert len(features) == 80

        popularity = pd.read_csv(output_dir / "popularity.csv")
        assert {"mage", "warrior", "all"} <= set(popularity["player_class"])
        assert json.loads((output_dir / "evaluations.json").read_text()) == []

    def test_load_report(self, data_dir: Path, tmp_path: Path, test_settings: Settings) -> None:
        output_dir = tmp_path / "out"

        run_build(data_dir, output_dir, None, test_settings, train=False)

        report = json.loads((output_dir / "load_report.json").read_text())
        assert report["runs"] == 160
        assert report["dropped"]["incomplete_deck"] == 1
        assert report["dropped_by_class"] == {"mage": 1}
        assert report["failures"] == {}

    def test_load_report_summarizes_tables(
        self, data_dir: Path, tmp_path: Path, test_settings: Settings
    ) -> None:
        output_dir = tmp_path / "out"

        run = run_build(data_dir, output_dir, None, test_settings, train=False)

        report = json.loads((output_dir / "load_report.json").read_text())
        tables = {(t["player_class"], t["name"]): t for t in report["tables"]}
        assert tables[("mage", "features")]["rows"] == 80
        assert tables[("mage", "features")]["dropped_rows"] == 1
        assert tables[("mage", "swing")]["dropped_rows"] == (
            run.results[CardClass.MAGE].swing.dropped_rows
        )
        assert tables[("mage", "popularity")]["rows"] > 0
        assert ("all", "popularity") in tables
        assert len(report["tables"]) == 3 * len(run.results) + 1

    def test_era_restriction(self, data_dir: Path, tmp_path: Path, test_settings: Settings) -> None:
        run = run_build(data_dir, tmp_path / "out", 1, test_settings, train=False)

        assert run.results[CardClass.MAGE].features.rows == 80

    def test_era_with_no_runs(
        self, data_dir: Path, tmp_path: Path, test_settings: Settings
    ) -> None:
        run = run_build(data_dir, tmp_path / "out", 2, test_settings, train=False)

        assert run.results[CardClass.MAGE].features.rows == 0
        assert run.results[CardClass.MAGE].features.dropped_rows == 81

    def test_unknown_era(self, data_dir: Path, tmp_path: Path, test_settings: Settings) -> None:
        with pytest.raises(ConfigurationError):
            run_build(data_dir, tmp_path / "out", 7, test_settings, train=False)


class TestMain:
    def test_cli(
        self, data_dir: Path, tmp_path: Path, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        output_dir = tmp_path / "cli"
        monkeypatch.setattr(
            sys, "argv", ["arenaedge-build", str(data_dir), str(output_dir), "--no-train"]
        )

        main()

        assert (output_dir / "features_warrior.csv").exists()

"""Tests for running class pipelines over a shared dataset."""

import pandas as pd
import pytest

from arenaedge.analysis.popularity import ALL_CLASSES
from arenaedge.config import Settings
from arenaedge.ml.data.loader import load_dataset
from arenaedge.ml.features.engineer import FEATURES
from arenaedge.ml.pipeline import run_all_classes, run_class_pipeline
from arenaedge.models.card import PLAYABLE_CLASSES, CardClass
from arenaedge.models.dataset import DraftDataset
from arenaedge.models.failure import ConfigurationError


@pytest.fixture
def dataset(raw_tables: dict[str, pd.DataFrame], test_settings: Settings) -> DraftDataset:
    return load_dataset(
        raw_tables["cards"], raw_tables["runs"], raw_tables["events"], test_settings
    )


class TestRunClassPipeline:
    """Tests for a single class pipeline."""

    def test_builds_all_tables(self, dataset: DraftDataset, test_settings: Settings) -> None:
        result = run_class_pipeline(dataset, CardClass.MAGE, test_settings, train=False)

        assert result.player_class is CardClass.MAGE
        assert result.popularity.rows > 0
        assert set(result.popularity.frame["player_class"]) == {"mage"}
        assert result.swing.rows > 0
        assert result.features.rows == 80
        assert result.features.dropped_rows == 1
        assert set(FEATURES) <= set(result.features.frame.columns)
        assert result.evaluations == []

    def test_absent_buckets_are_reported(
        self, dataset: DraftDataset, test_settings: Settings
    ) -> None:
        result = run_class_pipeline(dataset, CardClass.WARRIOR, test_settings, train=False)
        frame = result.swing.frame

        assert result.swing.dropped_rows == int(frame["swing"].isna().sum())
        assert (frame.loc[frame["swing"].isna(), "sample_size"] < 10).all()

    def test_trains_models(self, dataset: DraftDataset, test_settings: Settings) -> None:
        result = run_class_pipeline(dataset, CardClass.MAGE, test_settings)

        assert len(result.evaluations) == 2
        assert all(0.0 <= e.auc <= 1.0 for e in result.evaluations)

    def test_rejects_neutral(self, dataset: DraftDataset, test_settings: Settings) -> None:
        with pytest.raises(ConfigurationError):
            run_class_pipeline(dataset, CardClass.NEUTRAL, test_settings)


class TestRunAllClasses:
    """Tests for running every class in parallel."""

    def test_runs_every_playable_class(
        self, dataset: DraftDataset, test_settings: Settings
    ) -> None:
        run = run_all_classes(dataset, test_settings, train=False)

        assert set(run.results) == set(PLAYABLE_CLASSES)
        assert run.failures == {}
        assert run.results[CardClass.DRUID].features.rows == 0

    def test_combined_tables(self, dataset: DraftDataset, test_settings: Settings) -> None:
        run = run_all_classes(
            dataset, test_settings, classes=(CardClass.MAGE, CardClass.WARRIOR), train=False
        )

        popularity = run.popularity_table()
        assert set(popularity["player_class"]) == {"mage", "warrior", ALL_CLASSES}
        swing = run.swing_table()
        assert set(swing["player_class"]) == {"mage", "warrior"}

    def test_matches_sequential_run(self, dataset: DraftDataset, test_settings: Settings) -> None:
        run = run_all_classes(
            dataset, test_settings, classes=(CardClass.MAGE, CardClass.WARRIOR), train=False
        )
        sequential = run_class_pipeline(dataset, CardClass.WARRIOR, test_settings, train=False)

        pd.testing.assert_frame_equal(
            run.results[CardClass.WARRIOR].features.frame, sequential.features.frame
        )

    def test_failure_is_isolated(self, dataset: DraftDataset, test_settings: Settings) -> None:
        """A class with no runs can't be trained; the other class still completes."""
        run = run_all_classes(dataset, test_settings, classes=(CardClass.MAGE, CardClass.DRUID))

        assert CardClass.MAGE in run.results
        assert len(run.results[CardClass.MAGE].evaluations) == 2
        assert CardClass.DRUID in run.failures
        assert "stratify" in run.failures[CardClass.DRUID]
        assert [e["player_class"] for e in run.evaluations()] == ["mage", "mage"]

    def test_repeated_run_rows(
        self, raw_tables: dict[str, pd.DataFrame], test_settings: Settings
    ) -> None:
        runs = raw_tables["runs"]
        repeated = pd.concat([runs, runs.iloc[[0]]], ignore_index=True)
        dataset = load_dataset(raw_tables["cards"], repeated, raw_tables["events"], test_settings)

        run = run_all_classes(dataset, test_settings, classes=(CardClass.MAGE,), train=False)

        assert run.failures == {}
        assert run.results[CardClass.MAGE].features.rows == 80

    def test_table_summaries(self, dataset: DraftDataset, test_settings: Settings) -> None:
        run = run_all_classes(
            dataset, test_settings, classes=(CardClass.MAGE, CardClass.WARRIOR), train=False
        )
        summaries = run.table_summaries()

        assert len(summaries) == 7
        by_key = {(s["player_class"], s["name"]): s for s in summaries}
        assert by_key[("mage", "features")] == {
            "player_class": "mage", "name": "features", "rows": 80, "dropped_rows": 1,
        }
        mage_swing = run.results[CardClass.MAGE].swing
        assert by_key[("mage", "swing")]["dropped_rows"] == mage_swing.dropped_rows
        assert run.global_popularity is not None
        assert by_key[(ALL_CLASSES, "popularity")]["rows"] == run.global_popularity.rows

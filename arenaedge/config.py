from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Pipeline settings loaded from environment.

    Instances are immutable and passed explicitly into each pipeline stage.
    """

    model_config = SettingsConfigDict(env_file=".env", env_prefix="ARENAEDGE_", frozen=True)

    # Entity loading
    era_grace_days: int = Field(default=9, ge=0)
    non_draftable_sets: tuple[str, ...] = ("PROMO", "REWARD")
    outcome_source: Literal["official", "reported"] = "official"
    strict_rounds: bool = True

    # Derivations
    min_swing_sample: int = Field(default=50, ge=1)
    max_copies: int = Field(default=4, ge=1)
    top_popular_ranks: int = Field(default=15, ge=1)
    rank_tie_break: Literal["first_seen", "card_id"] = "first_seen"

    # Classifier harness
    test_ratio: float = Field(default=0.25, gt=0.0, lt=1.0)
    cv_folds: int = Field(default=5, ge=2)
    cv_repeats: int = Field(default=3, ge=1)
    random_state: int = 42
    n_jobs: int = 1

    # Near-zero-variance screening (caret defaults: 95/5 and 10%)
    nzv_freq_ratio: float = Field(default=19.0, gt=1.0)
    nzv_unique_percent: float = Field(default=10.0, ge=0.0, le=100.0)

    # Extreme-outcome training mode
    extreme_low_wins: int = Field(default=2, ge=0)
    extreme_high_wins: int = Field(default=7, ge=0)

    class_workers: int = Field(default=4, ge=1)


settings = Settings()

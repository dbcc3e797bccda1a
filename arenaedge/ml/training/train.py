"""Model training pipeline for deck outcome classification.

Trains bagged-tree and boosted-tree classifiers that predict whether a
deck finishes above its class's mean win count, and reports ROC AUC and
a confusion matrix on a held-out stratified split.
"""

import logging
from collections.abc import Callable
from dataclasses import asdict, dataclass, field
from enum import Enum
from typing import Any

import numpy as np
import pandas as pd  # type: ignore[import-untyped]
from sklearn.base import (  # type: ignore[import-untyped]
    BaseEstimator,
    ClassifierMixin,
    TransformerMixin,
)
from sklearn.ensemble import BaggingClassifier  # type: ignore[import-untyped]
from sklearn.metrics import confusion_matrix, roc_auc_score  # type: ignore[import-untyped]
from sklearn.model_selection import (  # type: ignore[import-untyped]
    RepeatedStratifiedKFold,
    cross_validate,
    train_test_split,
)
from sklearn.pipeline import Pipeline  # type: ignore[import-untyped]
from sklearn.tree import DecisionTreeClassifier  # type: ignore[import-untyped]
from xgboost import XGBClassifier

from arenaedge.config import Settings
from arenaedge.ml.features.engineer import FEATURES, TARGET, label_above_mean
from arenaedge.models.failure import ConfigurationError

logger = logging.getLogger(__name__)

# Model hyperparameters
BAGGED_CONFIG = {
    "n_estimators": 100,
    "max_samples": 1.0,
}

BOOSTED_CONFIG = {
    "n_estimators": 150,
    "max_depth": 3,
    "learning_rate": 0.1,
    "subsample": 0.8,
}

# Default decision threshold for the confusion matrix
DECISION_THRESHOLD = 0.5


class TrainingMode(str, Enum):
    """Which training rows a model sees."""

    FULL = "full"
    # Train on clearly good and clearly bad decks only; test on everything
    EXTREMES = "extremes"


class NearZeroVarianceFilter(TransformerMixin, BaseEstimator):
    """
    Drop features with negligible variation.

    A feature is near-zero-variance when it has a single value, or when
    the ratio of its most common to second most common value exceeds
    freq_ratio while its distinct values are fewer than unique_percent
    of the rows. Fitted on each training fold separately.
    """

    def __init__(self, freq_ratio: float = 19.0, unique_percent: float = 10.0):
        self.freq_ratio = freq_ratio
        self.unique_percent = unique_percent

    def fit(self, X: Any, y: Any = None) -> "NearZeroVarianceFilter":  # noqa: N803
        frame = pd.DataFrame(X)
        self.feature_names_in_ = np.asarray(frame.columns, dtype=object)
        keep = [
            not _is_near_zero_variance(frame[c], self.freq_ratio, self.unique_percent)
            for c in frame.columns
        ]
        self.support_ = np.asarray(keep, dtype=bool)
        if not self.support_.any():
            raise ConfigurationError(
                "No features left after near-zero-variance screening",
                detail=f"{frame.shape[1]} features screened on {frame.shape[0]} rows",
            )
        return self

    def transform(self, X: Any) -> Any:  # noqa: N803
        if isinstance(X, pd.DataFrame):
            return X.loc[:, self.support_]
        return np.asarray(X)[:, self.support_]

    def get_feature_names_out(self, input_features: Any = None) -> np.ndarray:
        return self.feature_names_in_[self.support_]


def _is_near_zero_variance(values: pd.Series, freq_ratio: float, unique_percent: float) -> bool:
    counts = values.value_counts(dropna=False)
    if len(counts) <= 1:
        return True
    ratio = counts.iloc[0] / counts.iloc[1]
    percent_unique = 100.0 * len(counts) / len(values)
    return bool(ratio > freq_ratio and percent_unique < unique_percent)


def near_zero_variance_features(
    df: pd.DataFrame,
    freq_ratio: float = 19.0,
    unique_percent: float = 10.0,
) -> list[str]:
    """Names of near-zero-variance columns in df."""
    return [c for c in df.columns if _is_near_zero_variance(df[c], freq_ratio, unique_percent)]


def make_bagged_trees(random_state: int) -> ClassifierMixin:
    """Bootstrap-aggregated decision trees."""
    return BaggingClassifier(
        estimator=DecisionTreeClassifier(random_state=random_state),
        n_estimators=BAGGED_CONFIG["n_estimators"],
        max_samples=BAGGED_CONFIG["max_samples"],
        bootstrap=True,
        random_state=random_state,
    )


def make_boosted_trees(random_state: int) -> ClassifierMixin:
    """Gradient-boosted trees (XGBoost)."""
    return XGBClassifier(
        n_estimators=BOOSTED_CONFIG["n_estimators"],
        max_depth=BOOSTED_CONFIG["max_depth"],
        learning_rate=BOOSTED_CONFIG["learning_rate"],
        subsample=BOOSTED_CONFIG["subsample"],
        random_state=random_state,
        eval_metric="logloss",
    )


MODEL_FAMILIES: dict[str, Callable[[int], ClassifierMixin]] = {
    "bagged_trees": make_bagged_trees,
    "boosted_trees": make_boosted_trees,
}


@dataclass
class ModelEvaluation:
    """Discrimination quality of one trained model."""

    model_name: str
    auc: float
    confusion_matrix: list[list[int]]
    cv_folds: int
    cv_auc_mean: float
    cv_auc_std: float
    n_train: int
    n_test: int
    mode: str = TrainingMode.FULL.value
    kept_features: list[str] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


@dataclass
class FeatureSplit:
    """Stratified train/test split with labels relative to the training mean."""

    X_train: pd.DataFrame
    X_test: pd.DataFrame
    y_train: pd.Series
    y_test: pd.Series
    wins_train: pd.Series
    wins_test: pd.Series
    threshold: float


def split_features(
    df: pd.DataFrame,
    test_ratio: float = 0.25,
    random_state: int = 42,
) -> FeatureSplit:
    """
    Split a feature matrix into stratified train and test sets.

    Stratifies on the above-mean label of the whole matrix, then derives
    both sets' labels from the training population's mean.

    Args:
        df: Feature matrix with FEATURES and TARGET columns
        test_ratio: Fraction of runs held out
        random_state: Seed for the split

    Returns:
        FeatureSplit

    Raises:
        ConfigurationError: If the ratio is invalid or a label class is empty
    """
    if not 0.0 < test_ratio < 1.0:
        raise ConfigurationError("Test ratio must be between 0 and 1", detail=str(test_ratio))

    strata = label_above_mean(df[TARGET])
    if strata.nunique() < 2:
        raise ConfigurationError(
            "Cannot stratify: every run falls on one side of the mean",
            detail=f"{len(df)} runs",
        )

    train, test = train_test_split(
        df, test_size=test_ratio, stratify=strata, random_state=random_state
    )
    threshold = float(train[TARGET].mean())
    return FeatureSplit(
        X_train=train[FEATURES],
        X_test=test[FEATURES],
        y_train=label_above_mean(train[TARGET], train[TARGET]),
        y_test=label_above_mean(test[TARGET], train[TARGET]),
        wins_train=train[TARGET],
        wins_test=test[TARGET],
        threshold=threshold,
    )


def extreme_rows(wins: pd.Series, low_wins: int = 2, high_wins: int = 7) -> pd.Series:
    """Mask of runs with wins <= low_wins or wins >= high_wins."""
    if low_wins >= high_wins:
        raise ConfigurationError(
            "Extreme-outcome cuts overlap",
            detail=f"low {low_wins} must be below high {high_wins}",
        )
    return (wins <= low_wins) | (wins >= high_wins)


def build_model(
    family: str,
    random_state: int = 42,
    freq_ratio: float = 19.0,
    unique_percent: float = 10.0,
) -> Pipeline:
    """
    Screening + classifier pipeline for one model family.

    Raises:
        ConfigurationError: If the family is unknown
    """
    if family not in MODEL_FAMILIES:
        raise ConfigurationError(
            "Unknown model family", detail=f"{family!r} not in {sorted(MODEL_FAMILIES)}"
        )
    return Pipeline([
        ("screen", NearZeroVarianceFilter(freq_ratio, unique_percent)),
        ("model", MODEL_FAMILIES[family](random_state)),
    ])


def cross_validate_model(
    model: Pipeline,
    X: pd.DataFrame,  # noqa: N803
    y: pd.Series,
    n_splits: int = 5,
    n_repeats: int = 3,
    random_state: int = 42,
    n_jobs: int | None = 1,
) -> np.ndarray:
    """
    Repeated stratified k-fold ROC AUC.

    Screening runs inside each fold, on that fold's training rows only.

    Returns:
        Array of per-fold AUC scores
    """
    cv = RepeatedStratifiedKFold(n_splits=n_splits, n_repeats=n_repeats, random_state=random_state)
    scores = cross_validate(
        model, X, y, cv=cv, scoring="roc_auc", n_jobs=n_jobs, error_score="raise"
    )
    return scores["test_score"]


def evaluate_model(
    model: Pipeline,
    X_test: pd.DataFrame,  # noqa: N803
    y_test: pd.Series,
    threshold: float = DECISION_THRESHOLD,
) -> tuple[float, list[list[int]]]:
    """
    Evaluate a fitted model on the test set.

    Returns:
        Tuple of (ROC AUC, confusion matrix [[tn, fp], [fn, tp]])
    """
    y_prob = model.predict_proba(X_test)[:, 1]
    y_pred = (y_prob >= threshold).astype(int)
    matrix = confusion_matrix(y_test, y_pred, labels=[0, 1])
    return float(roc_auc_score(y_test, y_prob)), matrix.tolist()


def train_and_evaluate(
    family: str,
    split: FeatureSplit,
    config: Settings,
    mode: TrainingMode = TrainingMode.FULL,
) -> ModelEvaluation:
    """
    Cross-validate, fit and evaluate one model family.

    Args:
        family: Key of MODEL_FAMILIES
        split: Train/test split
        config: Pipeline settings
        mode: FULL trains on every training run; EXTREMES trains only on
              runs outside the ambiguous middle, still testing on all

    Returns:
        ModelEvaluation
    """
    X_train, y_train = split.X_train, split.y_train  # noqa: N806
    if TrainingMode(mode) is TrainingMode.EXTREMES:
        mask = extreme_rows(split.wins_train, config.extreme_low_wins, config.extreme_high_wins)
        X_train, y_train = X_train[mask], y_train[mask]  # noqa: N806
        logger.info("%s: training on %d extreme-outcome runs", family, len(X_train))

    model = build_model(
        family, config.random_state, config.nzv_freq_ratio, config.nzv_unique_percent
    )
    cv_scores = cross_validate_model(
        model,
        X_train,
        y_train,
        n_splits=config.cv_folds,
        n_repeats=config.cv_repeats,
        random_state=config.random_state,
        n_jobs=config.n_jobs,
    )

    model.fit(X_train, y_train)
    auc, matrix = evaluate_model(model, split.X_test, split.y_test)
    kept = [str(name) for name in model.named_steps["screen"].get_feature_names_out()]

    logger.info(
        "%s (%s): test AUC %.3f, CV AUC %.3f +/- %.3f over %d folds",
        family,
        TrainingMode(mode).value,
        auc,
        cv_scores.mean(),
        cv_scores.std(),
        len(cv_scores),
    )
    return ModelEvaluation(
        model_name=family,
        auc=auc,
        confusion_matrix=matrix,
        cv_folds=len(cv_scores),
        cv_auc_mean=float(cv_scores.mean()),
        cv_auc_std=float(cv_scores.std()),
        n_train=len(X_train),
        n_test=len(split.X_test),
        mode=TrainingMode(mode).value,
        kept_features=kept,
    )


def run_experiment(
    features: pd.DataFrame,
    config: Settings,
    families: list[str] | None = None,
    mode: TrainingMode = TrainingMode.FULL,
) -> list[ModelEvaluation]:
    """
    Split once, then train and evaluate each model family.

    Args:
        features: Feature matrix from engineer_features
        config: Pipeline settings
        families: Model families to run (default: all)
        mode: Training mode

    Returns:
        One ModelEvaluation per family
    """
    split = split_features(features, config.test_ratio, config.random_state)
    return [
        train_and_evaluate(family, split, config, mode)
        for family in (families or list(MODEL_FAMILIES))
    ]

"""
Feature schema for wallet clustering.

The schema is the ordered catalog of behavioral features every wallet is
described by. It is pure configuration: the extractor clamps and normalizes
against it, and the distance layer weights each dimension by it.
"""

from enum import Enum
from typing import Dict, Iterable, List, Mapping, Sequence, Tuple

import numpy as np
from pydantic import BaseModel, ConfigDict, Field


class FeatureCategory(str, Enum):
    """Feature categories for wallet clustering."""
    TRADING_ACTIVITY = "TRADING_ACTIVITY"
    VOLUME_PATTERNS = "VOLUME_PATTERNS"
    TIMING_PATTERNS = "TIMING_PATTERNS"
    MARKET_PREFERENCES = "MARKET_PREFERENCES"
    PERFORMANCE = "PERFORMANCE"
    RISK_INDICATORS = "RISK_INDICATORS"


class FeatureDefinition(BaseModel):
    """
    Definition of one clustering feature.

    Attributes:
        name: Feature name, also the key in every feature map
        category: Feature category
        description: Human-readable description
        default_value: Value used when the raw data lacks the feature
        min_value: Lower clamp bound
        max_value: Upper clamp bound
        weight: Importance multiplier in distance calculations (> 0)
        normalize: Whether to min-max scale the clamped value into [0, 1]
    """
    model_config = ConfigDict(frozen=True)

    name: str
    category: FeatureCategory
    description: str = ""
    default_value: float = 0.0
    min_value: float = 0.0
    max_value: float = 1.0
    weight: float = 1.0
    normalize: bool = False

    def clamp(self, value: float) -> float:
        return max(self.min_value, min(self.max_value, value))

    def normalize_value(self, value: float) -> float:
        if self.normalize and self.max_value != self.min_value:
            return (value - self.min_value) / (self.max_value - self.min_value)
        return value

    def denormalize_value(self, value: float) -> float:
        if self.normalize and self.max_value != self.min_value:
            return self.min_value + value * (self.max_value - self.min_value)
        return value


def _feature(name: str, category: FeatureCategory, description: str, *,
             default: float = 0.0, min_value: float = 0.0, max_value: float = 1.0,
             weight: float = 1.0, normalize: bool = False) -> FeatureDefinition:
    return FeatureDefinition(
        name=name,
        category=category,
        description=description,
        default_value=default,
        min_value=min_value,
        max_value=max_value,
        weight=weight,
        normalize=normalize,
    )


_C = FeatureCategory

DEFAULT_FEATURE_DEFINITIONS: Tuple[FeatureDefinition, ...] = (
    # Trading activity
    _feature("total_trades", _C.TRADING_ACTIVITY, "Total number of trades",
             max_value=100_000, weight=1.0, normalize=True),
    _feature("unique_markets", _C.TRADING_ACTIVITY, "Number of unique markets traded",
             max_value=1_000, weight=0.9, normalize=True),
    _feature("trade_frequency_per_day", _C.TRADING_ACTIVITY, "Average trades per day",
             max_value=1_000, weight=0.8, normalize=True),
    _feature("active_days_ratio", _C.TRADING_ACTIVITY, "Ratio of days with trading activity",
             weight=0.7),

    # Volume patterns
    _feature("avg_trade_size_usd", _C.VOLUME_PATTERNS, "Average trade size in USD",
             max_value=10_000_000, weight=1.2, normalize=True),
    _feature("total_volume_usd", _C.VOLUME_PATTERNS, "Total trading volume in USD",
             max_value=100_000_000, weight=1.0, normalize=True),
    _feature("trade_size_variance", _C.VOLUME_PATTERNS, "Variance in trade sizes",
             max_value=1_000_000_000, weight=0.8, normalize=True),
    _feature("whale_trade_ratio", _C.VOLUME_PATTERNS, "Ratio of whale-sized trades",
             weight=1.1),

    # Timing patterns
    _feature("avg_time_between_trades_hours", _C.TIMING_PATTERNS,
             "Average time between trades in hours",
             default=24, max_value=720, weight=0.9, normalize=True),
    _feature("off_hours_trading_ratio", _C.TIMING_PATTERNS, "Ratio of trades during off-hours",
             weight=1.0),
    _feature("pre_event_trading_ratio", _C.TIMING_PATTERNS, "Ratio of trades before market events",
             weight=1.3),
    _feature("timing_consistency_score", _C.TIMING_PATTERNS, "Consistency of trading schedule",
             weight=0.7),

    # Market preferences
    _feature("market_concentration_score", _C.MARKET_PREFERENCES,
             "Concentration in specific markets", weight=1.0),
    _feature("niche_market_ratio", _C.MARKET_PREFERENCES, "Ratio of trades in niche markets",
             weight=1.1),
    _feature("political_market_ratio", _C.MARKET_PREFERENCES,
             "Ratio of trades in political markets", weight=1.0),
    _feature("category_diversity_score", _C.MARKET_PREFERENCES,
             "Diversity across market categories", weight=0.8),

    # Performance
    _feature("win_rate", _C.PERFORMANCE, "Win rate of resolved positions",
             default=0.5, weight=1.4),
    _feature("profit_factor", _C.PERFORMANCE, "Profit factor (gross profit / gross loss)",
             default=1, max_value=100, weight=1.2, normalize=True),
    _feature("avg_holding_period_hours", _C.PERFORMANCE, "Average position holding period",
             default=24, max_value=8_760, weight=0.9, normalize=True),
    _feature("max_consecutive_wins", _C.PERFORMANCE, "Maximum consecutive winning trades",
             max_value=100, weight=1.1, normalize=True),

    # Risk indicators
    _feature("wallet_age_days", _C.RISK_INDICATORS, "Age of wallet in days",
             max_value=3_650, weight=1.3, normalize=True),
    _feature("coordination_score", _C.RISK_INDICATORS, "Score indicating coordinated behavior",
             max_value=100, weight=1.5, normalize=True),
    _feature("sybil_risk_score", _C.RISK_INDICATORS, "Sybil attack risk score",
             max_value=100, weight=1.4, normalize=True),
    _feature("suspicion_score", _C.RISK_INDICATORS, "Overall suspicion score",
             max_value=100, weight=1.2, normalize=True),
)


class FeatureSchema:
    """
    Ordered, indexed view over a list of feature definitions.

    Converts between the name-keyed maps stored on feature vectors and the
    dense arrays the algorithms work on. Array position i always holds the
    feature at ``definitions[i]``.
    """

    def __init__(self, definitions: Sequence[FeatureDefinition]):
        self.definitions: Tuple[FeatureDefinition, ...] = tuple(definitions)
        self.names: Tuple[str, ...] = tuple(d.name for d in self.definitions)
        self.index: Dict[str, int] = {name: i for i, name in enumerate(self.names)}
        self.weights = np.array([d.weight for d in self.definitions], dtype=float)
        self._mins = np.array([d.min_value for d in self.definitions], dtype=float)
        self._spans = np.array(
            [
                (d.max_value - d.min_value) if d.normalize and d.max_value != d.min_value else 1.0
                for d in self.definitions
            ],
            dtype=float,
        )
        self._scaled = np.array(
            [d.normalize and d.max_value != d.min_value for d in self.definitions], dtype=bool
        )

    def __len__(self) -> int:
        return len(self.definitions)

    def __iter__(self):
        return iter(self.definitions)

    def __contains__(self, name: object) -> bool:
        return name in self.index

    def get(self, name: str) -> FeatureDefinition:
        return self.definitions[self.index[name]]

    def vectorize(self, values: Mapping[str, float]) -> np.ndarray:
        """Dense array in schema order; missing keys read as 0.0."""
        return np.array([float(values.get(name, 0.0)) for name in self.names], dtype=float)

    def vectorize_many(self, maps: Iterable[Mapping[str, float]]) -> np.ndarray:
        rows: List[np.ndarray] = [self.vectorize(m) for m in maps]
        if not rows:
            return np.zeros((0, len(self.names)), dtype=float)
        return np.vstack(rows)

    def to_mapping(self, array: np.ndarray) -> Dict[str, float]:
        return {name: float(value) for name, value in zip(self.names, array)}

    def denormalize(self, array: np.ndarray) -> np.ndarray:
        """Map a normalized-space point back onto the clamped raw scale."""
        return np.where(self._scaled, self._mins + array * self._spans, array)


DEFAULT_SCHEMA = FeatureSchema(DEFAULT_FEATURE_DEFINITIONS)

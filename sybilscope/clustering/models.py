"""
Data model for the wallet clustering engine.

Raw wallet input is validated with pydantic (it comes from outside the
engine); everything the engine produces is a plain dataclass.
"""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Dict, FrozenSet, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from ..validation import WalletAddressValidator


# =============================================================================
# Enums
# =============================================================================

class ClusteringAlgorithm(str, Enum):
    """Clustering algorithm types."""
    KMEANS = "KMEANS"
    KMEANS_PLUS_PLUS = "KMEANS_PLUS_PLUS"
    HIERARCHICAL = "HIERARCHICAL"
    DBSCAN = "DBSCAN"


class DistanceMetric(str, Enum):
    """Distance metric for similarity calculation."""
    EUCLIDEAN = "EUCLIDEAN"
    MANHATTAN = "MANHATTAN"
    COSINE = "COSINE"


class ClusterQuality(str, Enum):
    """Cluster quality tier derived from the silhouette score."""
    EXCELLENT = "EXCELLENT"
    GOOD = "GOOD"
    FAIR = "FAIR"
    POOR = "POOR"
    VERY_POOR = "VERY_POOR"


class ClusterRiskLevel(str, Enum):
    """Risk tier of a cluster."""
    NONE = "NONE"
    LOW = "LOW"
    MEDIUM = "MEDIUM"
    HIGH = "HIGH"
    CRITICAL = "CRITICAL"


# =============================================================================
# Raw Input
# =============================================================================

class WalletData(BaseModel):
    """
    Raw behavioral data for one wallet, as supplied by the data source.

    Every feature is optional; missing ones fall back to the schema default.
    camelCase keys (``avgTradeSizeUsd``) are accepted alongside snake_case.
    """
    model_config = ConfigDict(extra='ignore', populate_by_name=True)

    address: str

    # Trading activity
    total_trades: Optional[float] = Field(None, alias="totalTrades")
    unique_markets: Optional[float] = Field(None, alias="uniqueMarkets")
    trade_frequency_per_day: Optional[float] = Field(None, alias="tradeFrequencyPerDay")
    active_days_ratio: Optional[float] = Field(None, alias="activeDaysRatio")

    # Volume patterns
    avg_trade_size_usd: Optional[float] = Field(None, alias="avgTradeSizeUsd")
    total_volume_usd: Optional[float] = Field(None, alias="totalVolumeUsd")
    trade_size_variance: Optional[float] = Field(None, alias="tradeSizeVariance")
    whale_trade_ratio: Optional[float] = Field(None, alias="whaleTradeRatio")

    # Timing patterns
    avg_time_between_trades_hours: Optional[float] = Field(None, alias="avgTimeBetweenTradesHours")
    off_hours_trading_ratio: Optional[float] = Field(None, alias="offHoursTradingRatio")
    pre_event_trading_ratio: Optional[float] = Field(None, alias="preEventTradingRatio")
    timing_consistency_score: Optional[float] = Field(None, alias="timingConsistencyScore")

    # Market preferences
    market_concentration_score: Optional[float] = Field(None, alias="marketConcentrationScore")
    niche_market_ratio: Optional[float] = Field(None, alias="nicheMarketRatio")
    political_market_ratio: Optional[float] = Field(None, alias="politicalMarketRatio")
    category_diversity_score: Optional[float] = Field(None, alias="categoryDiversityScore")

    # Performance
    win_rate: Optional[float] = Field(None, alias="winRate")
    profit_factor: Optional[float] = Field(None, alias="profitFactor")
    avg_holding_period_hours: Optional[float] = Field(None, alias="avgHoldingPeriodHours")
    max_consecutive_wins: Optional[float] = Field(None, alias="maxConsecutiveWins")

    # Risk indicators
    wallet_age_days: Optional[float] = Field(None, alias="walletAgeDays")
    coordination_score: Optional[float] = Field(None, alias="coordinationScore")
    sybil_risk_score: Optional[float] = Field(None, alias="sybilRiskScore")
    suspicion_score: Optional[float] = Field(None, alias="suspicionScore")

    @field_validator('address')
    @classmethod
    def validate_address(cls, v):
        return WalletAddressValidator.validate(v)

    def feature_values(self) -> Dict[str, Optional[float]]:
        """Feature name -> raw value, without the address."""
        values = self.model_dump(exclude={'address'})
        return values


# =============================================================================
# Feature Vectors
# =============================================================================

@dataclass(frozen=True)
class FeatureVector:
    """
    Bounded, normalized feature representation of one wallet.

    ``features`` holds clamped raw-scale values; ``normalized_features`` the
    same values min-max scaled for features flagged ``normalize``.
    """
    wallet_address: str
    features: Dict[str, float]
    normalized_features: Dict[str, float]
    extracted_at: datetime
    data_quality: float
    missing_features: FrozenSet[str] = field(default_factory=frozenset)

    @property
    def entity_id(self) -> str:
        return self.wallet_address


# =============================================================================
# Results
# =============================================================================

@dataclass
class DominantFeature:
    """A feature that sets a cluster apart from the population."""
    feature_name: str
    avg_value: float
    std_dev: float
    deviation_from_global: float
    importance: float


@dataclass
class ClusterCentroid:
    """Representative point of a cluster."""
    cluster_id: str
    features: Dict[str, float]        # normalized space
    raw_features: Dict[str, float]    # clamped raw scale
    member_count: int
    inertia: float


@dataclass
class ClusterMembership:
    """Assignment of one wallet to a cluster."""
    wallet_address: str
    cluster_id: str
    distance_to_centroid: float
    confidence: float
    distance_to_all_centroids: Dict[str, float]
    second_closest_cluster_id: Optional[str]

    @property
    def entity_id(self) -> str:
        return self.wallet_address


@dataclass
class RiskAssessment:
    """Outcome of scoring a cluster centroid against the risk rules."""
    risk_level: ClusterRiskLevel
    risk_score: int
    risk_indicators: List[str] = field(default_factory=list)


@dataclass
class WalletCluster:
    """A group of behaviorally similar wallets."""
    cluster_id: str
    label: str
    centroid: ClusterCentroid
    members: List[str]
    member_count: int
    avg_distance_to_centroid: float
    compactness: float
    dominant_features: List[DominantFeature]
    risk_level: ClusterRiskLevel
    risk_score: int
    risk_indicators: List[str] = field(default_factory=list)

    @property
    def is_high_risk(self) -> bool:
        return self.risk_level in (ClusterRiskLevel.HIGH, ClusterRiskLevel.CRITICAL)

    def get_cluster_summary(self) -> Dict[str, Any]:
        """Get human-readable cluster summary."""
        return {
            'cluster_id': self.cluster_id,
            'label': self.label,
            'wallet_count': self.member_count,
            'avg_distance_to_centroid': self.avg_distance_to_centroid,
            'compactness': self.compactness,
            'risk_level': self.risk_level.value,
            'risk_score': self.risk_score,
            'risk_indicators': list(self.risk_indicators),
            'dominant_features': [f.feature_name for f in self.dominant_features],
        }


@dataclass
class ClusteringResult:
    """
    Output of one clustering run.

    Owns a lookup index over its memberships so a host can query a result
    without going through the engine that produced it.
    """
    result_id: str
    algorithm: ClusteringAlgorithm
    num_clusters: int
    clusters: List[WalletCluster]
    memberships: List[ClusterMembership]
    silhouette_score: float
    quality: ClusterQuality
    total_inertia: float
    iterations: int
    converged: bool
    clustered_at: datetime
    processing_time_ms: float
    # DBSCAN only: wallets that were noise before being folded into a cluster
    outlier_wallets: List[str] = field(default_factory=list)
    _membership_index: Dict[str, ClusterMembership] = field(
        default_factory=dict, init=False, repr=False, compare=False
    )

    def __post_init__(self):
        self._membership_index = {m.wallet_address: m for m in self.memberships}

    def membership_for(self, wallet_address: str) -> Optional[ClusterMembership]:
        return self._membership_index.get(wallet_address)

    def cluster_by_id(self, cluster_id: str) -> Optional[WalletCluster]:
        for cluster in self.clusters:
            if cluster.cluster_id == cluster_id:
                return cluster
        return None

    def members_of(self, cluster_id: str) -> List[str]:
        cluster = self.cluster_by_id(cluster_id)
        return list(cluster.members) if cluster else []

    def high_risk_clusters(self) -> List[WalletCluster]:
        return [c for c in self.clusters if c.is_high_risk]

    def summary(self) -> Dict[str, Any]:
        return {
            'result_id': self.result_id,
            'algorithm': self.algorithm.value,
            'num_clusters': self.num_clusters,
            'wallet_count': len(self.memberships),
            'silhouette_score': self.silhouette_score,
            'quality': self.quality.value,
            'total_inertia': self.total_inertia,
            'iterations': self.iterations,
            'converged': self.converged,
            'processing_time_ms': self.processing_time_ms,
            'outlier_count': len(self.outlier_wallets),
            'clusters': [c.get_cluster_summary() for c in self.clusters],
        }


@dataclass
class ClusteringStats:
    """Running counters kept by the engine across runs."""
    total_clusterings: int = 0
    total_wallets_clustered: int = 0
    avg_silhouette_score: float = 0.0

    def record(self, wallet_count: int, silhouette_score: float) -> None:
        self.total_clusterings += 1
        self.total_wallets_clustered += wallet_count
        self.avg_silhouette_score += (
            (silhouette_score - self.avg_silhouette_score) / self.total_clusterings
        )


@dataclass
class OptimalKResult:
    """Elbow-method search outcome."""
    optimal_k: int
    inertias: List[float]
    k_values: List[int]

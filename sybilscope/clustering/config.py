"""
Clustering engine configuration.

Loaded from ``CLUSTERING_*`` environment variables (and ``.env``) through
pydantic-settings, or constructed directly by the host. Structural checks
(weights, bounds, k range, rule table) live in ``config_validator`` so that
a bad configuration is reported as ``InvalidConfigError`` before any run.
"""

from typing import Dict, Literal, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from .features import DEFAULT_FEATURE_DEFINITIONS, FeatureDefinition
from .models import ClusteringAlgorithm, DistanceMetric


class RiskThresholds(BaseModel):
    """Score cut-offs for the cluster risk tiers."""

    high_risk_threshold: float = Field(
        default=60,
        description="Risk score for HIGH; also the centroid suspicion_score trigger"
    )
    critical_risk_threshold: float = Field(
        default=80,
        description="Risk score for CRITICAL"
    )
    medium_risk_threshold: float = Field(
        default=40,
        description="Risk score for MEDIUM"
    )
    low_risk_threshold: float = Field(
        default=20,
        description="Risk score for LOW"
    )


class RiskRule(BaseModel):
    """
    One additive condition of the cluster risk score.

    The rule fires when the centroid's raw-scale value of ``feature``
    compares against the threshold with ``operator``. The threshold is either
    a literal or, via ``threshold_ref``, an attribute of RiskThresholds, so
    tuning the tier cut-offs also moves the rules tied to them.
    """
    model_config = ConfigDict(frozen=True)

    feature: str
    operator: Literal["gt", "ge", "lt", "le"] = "gt"
    threshold: Optional[float] = None
    threshold_ref: Optional[str] = None
    points: int
    indicator: str

    def resolve_threshold(self, thresholds: RiskThresholds) -> float:
        if self.threshold_ref is not None:
            return float(getattr(thresholds, self.threshold_ref))
        return float(self.threshold if self.threshold is not None else 0.0)

    def is_triggered(self, value: float, thresholds: RiskThresholds) -> bool:
        limit = self.resolve_threshold(thresholds)
        if self.operator == "gt":
            return value > limit
        if self.operator == "ge":
            return value >= limit
        if self.operator == "lt":
            return value < limit
        return value <= limit


DEFAULT_RISK_RULES: Tuple[RiskRule, ...] = (
    RiskRule(feature="suspicion_score", threshold_ref="high_risk_threshold", points=30,
             indicator="High average suspicion score"),
    RiskRule(feature="coordination_score", threshold=50, points=25,
             indicator="High coordination score"),
    RiskRule(feature="wallet_age_days", operator="lt", threshold=7, points=20,
             indicator="Cluster of fresh wallets"),
    RiskRule(feature="win_rate", threshold=0.75, points=25,
             indicator="Abnormally high win rate"),
    RiskRule(feature="pre_event_trading_ratio", threshold=0.3, points=15,
             indicator="Elevated pre-event trading"),
    RiskRule(feature="niche_market_ratio", threshold=0.5, points=20,
             indicator="High niche market concentration"),
    RiskRule(feature="sybil_risk_score", threshold=50, points=10,
             indicator="Elevated sybil risk"),
)

# feature -> (label when above population mean, label when below)
DEFAULT_CLUSTER_LABELS: Dict[str, Tuple[str, str]] = {
    "total_trades": ("High Activity", "Low Activity"),
    "avg_trade_size_usd": ("Large Trades", "Small Trades"),
    "win_rate": ("High Win Rate", "Low Win Rate"),
    "wallet_age_days": ("Mature Wallets", "Fresh Wallets"),
    "coordination_score": ("Coordinated", "Independent"),
    "niche_market_ratio": ("Niche Focused", "Diversified"),
    "suspicion_score": ("Suspicious", "Normal"),
}


class ClusteringSettings(BaseSettings):
    """
    Clustering engine configuration.

    Usage:
        config = ClusteringSettings(num_clusters=3, random_seed=7)
        engine = WalletClusteringEngine(config)

    Environment overrides: CLUSTERING_ALGORITHM=DBSCAN,
    CLUSTERING_K_RANGE='[2, 8]', CLUSTERING_RISK__HIGH_RISK_THRESHOLD=55.
    """

    algorithm: ClusteringAlgorithm = Field(
        default=ClusteringAlgorithm.KMEANS_PLUS_PLUS,
        description="Clustering algorithm to use"
    )
    num_clusters: int = Field(
        default=5,
        description="Number of clusters (K-means, K-means++, hierarchical)"
    )
    max_iterations: int = Field(
        default=100,
        description="Iteration cap for K-means"
    )
    convergence_threshold: float = Field(
        default=0.0001,
        description="K-means stops once no centroid moves farther than this"
    )
    distance_metric: DistanceMetric = Field(
        default=DistanceMetric.EUCLIDEAN,
        description="Distance metric for similarity calculation"
    )
    features: Tuple[FeatureDefinition, ...] = Field(
        default=DEFAULT_FEATURE_DEFINITIONS,
        description="Ordered feature schema"
    )
    min_samples_per_cluster: int = Field(
        default=3,
        description="Minimum samples per cluster; DBSCAN minPts"
    )
    dbscan_eps: float = Field(
        default=0.5,
        description="DBSCAN neighborhood radius in normalized feature space"
    )
    random_seed: Optional[int] = Field(
        default=None,
        description="Seed for reproducible centroid initialization"
    )
    auto_optimize_k: bool = Field(
        default=False,
        description="Pick num_clusters with the elbow method before each run"
    )
    k_range: Tuple[int, int] = Field(
        default=(2, 10),
        description="Inclusive K range for optimal-K search"
    )
    risk: RiskThresholds = Field(default_factory=RiskThresholds)
    risk_rules: Tuple[RiskRule, ...] = Field(default=DEFAULT_RISK_RULES)
    cluster_labels: Dict[str, Tuple[str, str]] = Field(
        default_factory=lambda: dict(DEFAULT_CLUSTER_LABELS)
    )

    model_config = SettingsConfigDict(
        env_prefix="CLUSTERING_",
        env_nested_delimiter="__",
        extra="ignore"
    )

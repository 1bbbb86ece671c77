"""
Clustering module for grouping wallets by trading behavior.

Builds bounded feature vectors from raw wallet data, clusters them with
K-means, K-means++, DBSCAN or hierarchical clustering, and scores every
resulting cluster for coordinated or sybil-like risk.
"""

from .algorithms import (
    AlgorithmOutput,
    ClusteringStrategy,
    DBSCANClustering,
    HierarchicalClustering,
    KMeansClustering,
    KMeansPlusPlusClustering,
    create_strategy,
)
from .analyzer import ClusterAnalyzer, membership_confidence
from .config import (
    DEFAULT_CLUSTER_LABELS,
    DEFAULT_RISK_RULES,
    ClusteringSettings,
    RiskRule,
    RiskThresholds,
)
from .descriptions import (
    get_algorithm_description,
    get_cluster_quality_description,
    get_risk_level_color,
    get_risk_level_description,
)
from .distance import DistanceCalculator, calculate_distance
from .engine import (
    WalletClusteringEngine,
    elbow_k,
    get_clustering_engine,
    reset_clustering_engine,
    set_clustering_engine,
)
from .events import (
    ClusteringCompleted,
    ClusteringEvent,
    ClusteringFailed,
    ClusteringObserver,
    ClusteringStarted,
    EventRecorder,
    HighRiskClusterDetected,
    IterationCompleted,
    WalletAssigned,
)
from .extractor import FeatureExtractor
from .features import (
    DEFAULT_FEATURE_DEFINITIONS,
    DEFAULT_SCHEMA,
    FeatureCategory,
    FeatureDefinition,
    FeatureSchema,
)
from .mock_data import create_mock_wallet_data, create_mock_wallet_data_batch
from .models import (
    ClusterCentroid,
    ClusteringAlgorithm,
    ClusteringResult,
    ClusteringStats,
    ClusterMembership,
    ClusterQuality,
    ClusterRiskLevel,
    DistanceMetric,
    DominantFeature,
    FeatureVector,
    OptimalKResult,
    RiskAssessment,
    WalletCluster,
    WalletData,
)
from .quality import assess_cluster_quality, calculate_silhouette_score

__all__ = [
    # Engine
    "WalletClusteringEngine",
    "get_clustering_engine",
    "set_clustering_engine",
    "reset_clustering_engine",
    "elbow_k",
    # Configuration
    "ClusteringSettings",
    "RiskThresholds",
    "RiskRule",
    "DEFAULT_RISK_RULES",
    "DEFAULT_CLUSTER_LABELS",
    # Features
    "FeatureCategory",
    "FeatureDefinition",
    "FeatureSchema",
    "DEFAULT_FEATURE_DEFINITIONS",
    "DEFAULT_SCHEMA",
    "FeatureExtractor",
    # Algorithms and metrics
    "ClusteringStrategy",
    "AlgorithmOutput",
    "KMeansClustering",
    "KMeansPlusPlusClustering",
    "DBSCANClustering",
    "HierarchicalClustering",
    "create_strategy",
    "DistanceCalculator",
    "calculate_distance",
    "calculate_silhouette_score",
    "assess_cluster_quality",
    "ClusterAnalyzer",
    "membership_confidence",
    # Models
    "ClusteringAlgorithm",
    "DistanceMetric",
    "ClusterQuality",
    "ClusterRiskLevel",
    "WalletData",
    "FeatureVector",
    "ClusterCentroid",
    "ClusterMembership",
    "DominantFeature",
    "RiskAssessment",
    "WalletCluster",
    "ClusteringResult",
    "ClusteringStats",
    "OptimalKResult",
    # Events
    "ClusteringEvent",
    "ClusteringObserver",
    "ClusteringStarted",
    "IterationCompleted",
    "WalletAssigned",
    "HighRiskClusterDetected",
    "ClusteringCompleted",
    "ClusteringFailed",
    "EventRecorder",
    # Helpers
    "get_cluster_quality_description",
    "get_risk_level_description",
    "get_risk_level_color",
    "get_algorithm_description",
    "create_mock_wallet_data",
    "create_mock_wallet_data_batch",
]

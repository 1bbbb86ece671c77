"""
Human-readable descriptions for clustering enums, used by the CLI and by
hosts that render results.
"""

from .models import ClusteringAlgorithm, ClusterQuality, ClusterRiskLevel

_QUALITY_DESCRIPTIONS = {
    ClusterQuality.EXCELLENT: "Excellent cluster separation and cohesion",
    ClusterQuality.GOOD: "Good cluster quality with clear separations",
    ClusterQuality.FAIR: "Fair clustering with some overlap",
    ClusterQuality.POOR: "Poor clustering quality, consider adjusting parameters",
    ClusterQuality.VERY_POOR: "Very poor clustering, no clear structure",
}

_RISK_DESCRIPTIONS = {
    ClusterRiskLevel.NONE: "No significant risk indicators",
    ClusterRiskLevel.LOW: "Low risk, minimal suspicious indicators",
    ClusterRiskLevel.MEDIUM: "Medium risk, warrants monitoring",
    ClusterRiskLevel.HIGH: "High risk, multiple suspicious indicators",
    ClusterRiskLevel.CRITICAL: "Critical risk, likely suspicious activity",
}

# Hex colors, also valid rich style strings
_RISK_COLORS = {
    ClusterRiskLevel.NONE: "#10B981",
    ClusterRiskLevel.LOW: "#6EE7B7",
    ClusterRiskLevel.MEDIUM: "#FBBF24",
    ClusterRiskLevel.HIGH: "#F97316",
    ClusterRiskLevel.CRITICAL: "#EF4444",
}

_ALGORITHM_DESCRIPTIONS = {
    ClusteringAlgorithm.KMEANS: "K-means clustering with random initialization",
    ClusteringAlgorithm.KMEANS_PLUS_PLUS: "K-means++ with smart centroid initialization",
    ClusteringAlgorithm.HIERARCHICAL: "Hierarchical agglomerative clustering",
    ClusteringAlgorithm.DBSCAN: "DBSCAN density-based clustering",
}


def get_cluster_quality_description(quality: ClusterQuality) -> str:
    return _QUALITY_DESCRIPTIONS[ClusterQuality(quality)]


def get_risk_level_description(level: ClusterRiskLevel) -> str:
    return _RISK_DESCRIPTIONS[ClusterRiskLevel(level)]


def get_risk_level_color(level: ClusterRiskLevel) -> str:
    return _RISK_COLORS[ClusterRiskLevel(level)]


def get_algorithm_description(algorithm: ClusteringAlgorithm) -> str:
    return _ALGORITHM_DESCRIPTIONS[ClusteringAlgorithm(algorithm)]

"""
Per-cluster analysis: dominant features, labels, compactness and risk.

Everything here is algorithm-agnostic post-processing over final labels and
centroids, so DBSCAN and hierarchical results are scored exactly like
K-means ones.
"""

from typing import Dict, List, Mapping, Optional, Sequence, Tuple

import numpy as np

from ..secure_logging import get_secure_logger
from .config import DEFAULT_CLUSTER_LABELS, DEFAULT_RISK_RULES, RiskRule, RiskThresholds
from .features import DEFAULT_SCHEMA, FeatureSchema
from .models import (
    ClusterCentroid,
    ClusterRiskLevel,
    DominantFeature,
    RiskAssessment,
    WalletCluster,
)

logger = get_secure_logger(__name__)

TOP_DOMINANT_FEATURES = 5
SPREAD_EPSILON = 1e-9


def cluster_id_for(index: int) -> str:
    return f"cluster_{index}"


class ClusterAnalyzer:
    """
    Turns raw cluster assignments into described, risk-scored clusters.

    Args:
        schema: Feature schema the points were built from
        thresholds: Risk tier cut-offs
        risk_rules: Additive risk rule table
        cluster_labels: feature -> (label above mean, label below mean)
    """

    def __init__(self, schema: Optional[FeatureSchema] = None,
                 thresholds: Optional[RiskThresholds] = None,
                 risk_rules: Sequence[RiskRule] = DEFAULT_RISK_RULES,
                 cluster_labels: Optional[Mapping[str, Tuple[str, str]]] = None):
        self.schema = schema or DEFAULT_SCHEMA
        self.thresholds = thresholds or RiskThresholds()
        self.risk_rules = tuple(risk_rules)
        self.cluster_labels = dict(cluster_labels if cluster_labels is not None else DEFAULT_CLUSTER_LABELS)

    # -------------------------------------------------------------------------
    # Dominant features and labels
    # -------------------------------------------------------------------------

    def find_dominant_features(self, members: np.ndarray, population: np.ndarray,
                               top_n: int = TOP_DOMINANT_FEATURES) -> List[DominantFeature]:
        """
        Features whose cluster mean deviates most from the population mean.

        Deviation is measured in population standard deviations and scaled
        by the feature weight. Computed on normalized values.
        """
        if members.shape[0] == 0 or population.shape[0] == 0:
            return []

        global_mean = population.mean(axis=0)
        global_std = population.std(axis=0)
        cluster_mean = members.mean(axis=0)
        cluster_std = members.std(axis=0)

        # A constant feature can show float noise instead of a zero spread
        spread = global_std > SPREAD_EPSILON
        deviation = np.where(
            spread,
            (cluster_mean - global_mean) / np.where(spread, global_std, 1.0),
            0.0,
        )
        importance = np.abs(deviation) * self.schema.weights

        order = np.argsort(-importance, kind='stable')[:top_n]
        return [
            DominantFeature(
                feature_name=self.schema.names[i],
                avg_value=float(cluster_mean[i]),
                std_dev=float(cluster_std[i]),
                deviation_from_global=float(deviation[i]),
                importance=float(importance[i]),
            )
            for i in order
        ]

    def generate_label(self, index: int, dominant_features: Sequence[DominantFeature]) -> str:
        fallback = f"Cluster {index + 1}"
        if not dominant_features:
            return fallback

        top = dominant_features[0]
        labels = self.cluster_labels.get(top.feature_name)
        if labels is None or top.importance == 0:
            return fallback

        above, below = labels
        return above if top.deviation_from_global > 0 else below

    # -------------------------------------------------------------------------
    # Risk
    # -------------------------------------------------------------------------

    def assess_risk(self, raw_centroid: Mapping[str, float]) -> RiskAssessment:
        """
        Score a centroid (raw feature scale) against the risk rule table.

        Rules whose feature is absent from the centroid are skipped.
        """
        score = 0
        indicators: List[str] = []

        for rule in self.risk_rules:
            value = raw_centroid.get(rule.feature)
            if value is None:
                continue
            if rule.is_triggered(float(value), self.thresholds):
                score += rule.points
                indicators.append(rule.indicator)

        return RiskAssessment(
            risk_level=self.risk_level_for(score),
            risk_score=score,
            risk_indicators=indicators,
        )

    def risk_level_for(self, score: float) -> ClusterRiskLevel:
        t = self.thresholds
        if score >= t.critical_risk_threshold:
            return ClusterRiskLevel.CRITICAL
        if score >= t.high_risk_threshold:
            return ClusterRiskLevel.HIGH
        if score >= t.medium_risk_threshold:
            return ClusterRiskLevel.MEDIUM
        if score >= t.low_risk_threshold:
            return ClusterRiskLevel.LOW
        return ClusterRiskLevel.NONE

    # -------------------------------------------------------------------------
    # Assembly
    # -------------------------------------------------------------------------

    def build_cluster(self, index: int, centroid: np.ndarray, member_addresses: List[str],
                      member_points: np.ndarray, member_distances: np.ndarray,
                      population: np.ndarray) -> WalletCluster:
        """Assemble a fully described WalletCluster from its members."""
        cluster_id = cluster_id_for(index)
        member_count = len(member_addresses)

        compactness = float(np.sum(member_distances * member_distances)) if member_count else 0.0
        avg_distance = float(member_distances.mean()) if member_count else 0.0

        raw_centroid = self.schema.to_mapping(self.schema.denormalize(centroid))
        dominant = self.find_dominant_features(member_points, population)
        risk = self.assess_risk(raw_centroid)

        if member_count == 0:
            logger.warning("empty_cluster", cluster_id=cluster_id)

        return WalletCluster(
            cluster_id=cluster_id,
            label=self.generate_label(index, dominant),
            centroid=ClusterCentroid(
                cluster_id=cluster_id,
                features=self.schema.to_mapping(centroid),
                raw_features=raw_centroid,
                member_count=member_count,
                inertia=compactness,
            ),
            members=list(member_addresses),
            member_count=member_count,
            avg_distance_to_centroid=avg_distance,
            compactness=compactness,
            dominant_features=dominant,
            risk_level=risk.risk_level,
            risk_score=risk.risk_score,
            risk_indicators=risk.risk_indicators,
        )


def membership_confidence(assigned_distance: float, second_distance: Optional[float]) -> float:
    """Confidence that a wallet belongs to its assigned cluster rather than the runner-up."""
    if assigned_distance == 0:
        return 1.0
    if second_distance is None:
        return 0.5
    if second_distance == 0:
        return 0.5
    return max(0.0, min(1.0, 1.0 - assigned_distance / second_distance + 0.5))


def distances_by_cluster(row: np.ndarray) -> Dict[str, float]:
    return {cluster_id_for(c): float(d) for c, d in enumerate(row)}

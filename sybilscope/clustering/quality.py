"""
Cluster quality: silhouette score and quality tiers.
"""

import numpy as np

from .distance import DistanceCalculator
from .models import ClusterQuality


def silhouette_from_distances(pairwise: np.ndarray, labels: np.ndarray) -> float:
    """
    Mean silhouette over all points that have one.

    A point is skipped when its cluster has no other members; b(i) always
    exists once two labels are present. Returns 0.0 when nothing qualifies.

    Args:
        pairwise: (n, n) distance matrix
        labels: cluster index per point
    """
    labels = np.asarray(labels)
    n = labels.shape[0]
    if n < 2:
        return 0.0

    present = np.unique(labels)
    if present.size < 2:
        return 0.0

    counts = np.array([np.count_nonzero(labels == c) for c in present], dtype=float)
    sums = np.column_stack([pairwise[:, labels == c].sum(axis=1) for c in present])
    own = np.searchsorted(present, labels)
    rows = np.arange(n)

    own_counts = counts[own]
    valid = own_counts > 1

    # Exclude the point itself from its own cluster's mean
    a = (sums[rows, own] - np.diag(pairwise)) / np.maximum(own_counts - 1, 1)

    means = sums / counts[np.newaxis, :]
    means[rows, own] = np.inf
    b = means.min(axis=1)

    denom = np.maximum(a, b)
    with np.errstate(divide='ignore', invalid='ignore'):
        s = np.where(denom > 0, (b - a) / np.where(denom > 0, denom, 1.0), 0.0)

    if not np.any(valid):
        return 0.0
    return float(np.clip(s[valid].mean(), -1.0, 1.0))


def calculate_silhouette_score(points: np.ndarray, labels: np.ndarray,
                               distance: DistanceCalculator) -> float:
    """Silhouette score of ``labels`` over the rows of ``points``."""
    if points.shape[0] < 2:
        return 0.0
    return silhouette_from_distances(distance.pairwise(points, points), labels)


def assess_cluster_quality(silhouette_score: float) -> ClusterQuality:
    if silhouette_score >= 0.7:
        return ClusterQuality.EXCELLENT
    if silhouette_score >= 0.5:
        return ClusterQuality.GOOD
    if silhouette_score >= 0.25:
        return ClusterQuality.FAIR
    if silhouette_score >= 0:
        return ClusterQuality.POOR
    return ClusterQuality.VERY_POOR

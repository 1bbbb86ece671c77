"""
Weighted distance metrics over the feature schema.

All metrics run over every schema dimension, scale each dimension by the
feature weight, and read a missing key as 0.0.
"""

from typing import Mapping, Optional

import numpy as np

from .features import DEFAULT_SCHEMA, FeatureSchema
from .models import DistanceMetric

# Rows of X handled per broadcast block in pairwise(); bounds peak memory
# at roughly _BLOCK_ROWS * len(Y) * n_features floats.
_BLOCK_ROWS = 64


class DistanceCalculator:
    """Computes distances between feature maps or dense schema arrays."""

    def __init__(self, metric: DistanceMetric = DistanceMetric.EUCLIDEAN,
                 schema: Optional[FeatureSchema] = None):
        self.metric = DistanceMetric(metric)
        self.schema = schema or DEFAULT_SCHEMA
        self.weights = self.schema.weights

    def distance(self, a: Mapping[str, float], b: Mapping[str, float]) -> float:
        """Distance between two name-keyed feature maps."""
        return self.distance_arrays(self.schema.vectorize(a), self.schema.vectorize(b))

    def distance_arrays(self, a: np.ndarray, b: np.ndarray) -> float:
        return float(self.pairwise(a[np.newaxis, :], b[np.newaxis, :])[0, 0])

    def to_points(self, a: np.ndarray, points: np.ndarray) -> np.ndarray:
        """Distances from one point to each row of ``points``."""
        return self.pairwise(a[np.newaxis, :], points)[0]

    def pairwise(self, x: np.ndarray, y: np.ndarray) -> np.ndarray:
        """
        Distance matrix between the rows of ``x`` (n, d) and ``y`` (m, d).

        Returns:
            (n, m) array of non-negative distances
        """
        x = np.atleast_2d(np.asarray(x, dtype=float))
        y = np.atleast_2d(np.asarray(y, dtype=float))
        out = np.empty((x.shape[0], y.shape[0]), dtype=float)

        for start in range(0, x.shape[0], _BLOCK_ROWS):
            block = x[start:start + _BLOCK_ROWS]
            out[start:start + block.shape[0]] = self._block(block, y)

        return out

    def _block(self, x: np.ndarray, y: np.ndarray) -> np.ndarray:
        w = self.weights

        if self.metric == DistanceMetric.EUCLIDEAN:
            diff = x[:, np.newaxis, :] - y[np.newaxis, :, :]
            return np.sqrt(np.sum(diff * diff * w, axis=2))

        if self.metric == DistanceMetric.MANHATTAN:
            diff = np.abs(x[:, np.newaxis, :] - y[np.newaxis, :, :])
            return np.sum(diff * w, axis=2)

        # Cosine: 1 - similarity of the weighted vectors
        wx = x * w
        wy = y * w
        dot = np.sum(wx[:, np.newaxis, :] * wy[np.newaxis, :, :], axis=2)
        norm_x = np.sum(wx * wx, axis=1)
        norm_y = np.sum(wy * wy, axis=1)
        denom = np.sqrt(norm_x[:, np.newaxis] * norm_y[np.newaxis, :])

        with np.errstate(divide='ignore', invalid='ignore'):
            similarity = np.where(denom > 0, dot / np.where(denom > 0, denom, 1.0), 0.0)

        result = np.clip(1.0 - similarity, 0.0, 2.0)
        # Zero-norm vectors are maximally distant rather than NaN
        zero = (norm_x[:, np.newaxis] == 0) | (norm_y[np.newaxis, :] == 0)
        result[zero] = 1.0
        return result


def calculate_distance(a: Mapping[str, float], b: Mapping[str, float],
                       metric: DistanceMetric = DistanceMetric.EUCLIDEAN,
                       schema: Optional[FeatureSchema] = None) -> float:
    """One-off distance between two feature maps."""
    return DistanceCalculator(metric, schema).distance(a, b)

"""Tests for the weighted distance metrics."""

import math

import numpy as np
import pytest
from hypothesis import assume, given, settings
from hypothesis import strategies as st

from sybilscope.clustering import DEFAULT_SCHEMA, DistanceCalculator, DistanceMetric, calculate_distance

ALL_METRICS = list(DistanceMetric)

unit_vectors = st.lists(
    st.floats(min_value=0.0, max_value=1.0, allow_nan=False, allow_infinity=False),
    min_size=len(DEFAULT_SCHEMA),
    max_size=len(DEFAULT_SCHEMA),
)


def as_map(values):
    return dict(zip(DEFAULT_SCHEMA.names, values))


class TestDistanceAxioms:
    """Property-based tests of the metric axioms."""

    @pytest.mark.parametrize("metric", [DistanceMetric.EUCLIDEAN, DistanceMetric.MANHATTAN])
    @given(values=unit_vectors)
    @settings(max_examples=100, deadline=None)
    def test_identity_is_zero(self, metric, values):
        a = as_map(values)
        assert calculate_distance(a, a, metric) == 0.0

    @given(values=unit_vectors)
    @settings(max_examples=100, deadline=None)
    def test_cosine_identity_is_zero(self, values):
        assume(any(v > 1e-3 for v in values))
        a = as_map(values)
        assert calculate_distance(a, a, DistanceMetric.COSINE) == pytest.approx(0.0, abs=1e-9)

    @pytest.mark.parametrize("metric", ALL_METRICS)
    @given(a=unit_vectors, b=unit_vectors)
    @settings(max_examples=100, deadline=None)
    def test_symmetry(self, metric, a, b):
        ab = calculate_distance(as_map(a), as_map(b), metric)
        ba = calculate_distance(as_map(b), as_map(a), metric)
        assert ab == pytest.approx(ba, abs=1e-12)
        assert ab >= 0.0

    @pytest.mark.parametrize("metric", [DistanceMetric.EUCLIDEAN, DistanceMetric.MANHATTAN])
    @given(a=unit_vectors, b=unit_vectors, c=unit_vectors)
    @settings(max_examples=100, deadline=None)
    def test_triangle_inequality(self, metric, a, b, c):
        calc = DistanceCalculator(metric)
        ab = calc.distance(as_map(a), as_map(b))
        bc = calc.distance(as_map(b), as_map(c))
        ac = calc.distance(as_map(a), as_map(c))
        assert ac <= ab + bc + 1e-9

    @given(a=unit_vectors, b=unit_vectors)
    @settings(max_examples=100, deadline=None)
    def test_cosine_is_bounded(self, a, b):
        d = calculate_distance(as_map(a), as_map(b), DistanceMetric.COSINE)
        assert 0.0 <= d <= 2.0


class TestDistanceValues:
    """Exact values on hand-built inputs."""

    def test_euclidean_is_weighted(self):
        # win_rate weight 1.4
        d = calculate_distance({"win_rate": 0.5}, {}, DistanceMetric.EUCLIDEAN)
        assert d == pytest.approx(math.sqrt(1.4 * 0.25))

    def test_manhattan_is_weighted(self):
        # coordination_score weight 1.5, whale_trade_ratio weight 1.1
        d = calculate_distance({"coordination_score": 0.2, "whale_trade_ratio": 0.1},
                               {"coordination_score": 0.6},
                               DistanceMetric.MANHATTAN)
        assert d == pytest.approx(1.5 * 0.4 + 1.1 * 0.1)

    def test_cosine_zero_norm_is_maximal(self):
        assert calculate_distance({}, {"win_rate": 0.4}, DistanceMetric.COSINE) == 1.0
        assert calculate_distance({}, {}, DistanceMetric.COSINE) == 1.0

    def test_cosine_ignores_magnitude(self):
        a = {"win_rate": 0.2, "niche_market_ratio": 0.4}
        b = {"win_rate": 0.4, "niche_market_ratio": 0.8}
        assert calculate_distance(a, b, DistanceMetric.COSINE) == pytest.approx(0.0, abs=1e-12)

    def test_cosine_orthogonal_is_one(self):
        d = calculate_distance({"win_rate": 0.3}, {"niche_market_ratio": 0.9}, DistanceMetric.COSINE)
        assert d == pytest.approx(1.0)

    def test_unknown_keys_are_ignored(self):
        assert calculate_distance({"not_a_feature": 5.0}, {}, DistanceMetric.EUCLIDEAN) == 0.0


class TestPairwise:
    """Tests for the vectorized pairwise matrix."""

    @pytest.mark.parametrize("metric", ALL_METRICS)
    def test_pairwise_matches_single_distances(self, metric, rng):
        calc = DistanceCalculator(metric)
        x = rng.random((70, len(DEFAULT_SCHEMA)))
        y = rng.random((3, len(DEFAULT_SCHEMA)))

        matrix = calc.pairwise(x, y)

        assert matrix.shape == (70, 3)
        for i in (0, 33, 69):
            for j in range(3):
                assert matrix[i, j] == pytest.approx(calc.distance_arrays(x[i], y[j]))

    def test_to_points(self, rng):
        calc = DistanceCalculator()
        points = rng.random((5, len(DEFAULT_SCHEMA)))
        distances = calc.to_points(points[0], points)

        assert distances.shape == (5,)
        assert distances[0] == 0.0
        assert np.all(distances[1:] > 0)

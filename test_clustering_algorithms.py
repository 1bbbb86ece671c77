"""Tests for the clustering strategies on plain arrays."""

import numpy as np
import pytest

from sybilscope.clustering import (
    ClusteringAlgorithm,
    DBSCANClustering,
    DistanceCalculator,
    DistanceMetric,
    EventRecorder,
    FeatureCategory,
    FeatureDefinition,
    FeatureSchema,
    HierarchicalClustering,
    IterationCompleted,
    KMeansClustering,
    KMeansPlusPlusClustering,
    create_strategy,
)
from sybilscope.clustering.algorithms import centroids_from_labels
from sybilscope.exceptions import InsufficientDataError

PLANE = FeatureSchema([
    FeatureDefinition(name="x", category=FeatureCategory.TRADING_ACTIVITY),
    FeatureDefinition(name="y", category=FeatureCategory.TRADING_ACTIVITY),
])

# Two dense squares and one point in between, nearer the first square
BLOBS_WITH_OUTLIER = np.array([
    [0.00, 0.00], [0.05, 0.00], [0.00, 0.05], [0.05, 0.05],
    [1.00, 1.00], [1.05, 1.00], [1.00, 1.05], [1.05, 1.05],
    [0.30, 0.30],
])


@pytest.fixture
def plane_distance():
    return DistanceCalculator(DistanceMetric.EUCLIDEAN, PLANE)


def kmeans(distance, k, seed=7, plus_plus=False, max_iterations=100, on_iteration=None):
    cls = KMeansPlusPlusClustering if plus_plus else KMeansClustering
    return cls(distance, k, max_iterations, 1e-4, np.random.default_rng(seed), on_iteration)


class TestKMeans:
    """Tests for K-means and K-means++."""

    @pytest.mark.parametrize("plus_plus", [False, True])
    def test_invariants_on_random_data(self, plus_plus, rng):
        distance = DistanceCalculator()
        points = rng.random((60, 24))

        output = kmeans(distance, 4, plus_plus=plus_plus, max_iterations=25).fit(points)

        assert output.labels.shape == (60,)
        assert set(output.labels.tolist()) <= {0, 1, 2, 3}
        assert output.centroids.shape == (4, 24)
        assert output.total_inertia >= 0
        assert 1 <= output.iterations <= 25

    @pytest.mark.parametrize("plus_plus", [False, True])
    def test_same_seed_same_labels(self, plus_plus, rng):
        distance = DistanceCalculator(DistanceMetric.MANHATTAN)
        points = rng.random((40, 24))

        first = kmeans(distance, 3, seed=99, plus_plus=plus_plus).fit(points)
        second = kmeans(distance, 3, seed=99, plus_plus=plus_plus).fit(points)

        np.testing.assert_array_equal(first.labels, second.labels)
        np.testing.assert_allclose(first.centroids, second.centroids)
        assert first.total_inertia == second.total_inertia

    def test_more_clusters_than_points_fails_fast(self, plane_distance):
        recorder = EventRecorder()
        with pytest.raises(InsufficientDataError):
            kmeans(plane_distance, 5, on_iteration=recorder).fit(BLOBS_WITH_OUTLIER[:3])
        assert recorder.events == []

    def test_reports_every_iteration(self, plane_distance):
        recorder = EventRecorder()
        output = kmeans(plane_distance, 2, on_iteration=recorder).fit(BLOBS_WITH_OUTLIER)

        events = recorder.of_type(IterationCompleted)
        assert len(events) == output.iterations
        assert [e.iteration for e in events] == list(range(1, output.iterations + 1))
        # The first pass always changes assignments from "unassigned"
        assert events[0].centers_changed is True
        assert events[-1].inertia == pytest.approx(output.total_inertia)

    def test_converges_on_separated_data(self, plane_distance):
        output = kmeans(plane_distance, 2, plus_plus=True).fit(BLOBS_WITH_OUTLIER[:8])

        assert output.converged
        assert len(set(output.labels[:4].tolist())) == 1
        assert len(set(output.labels[4:].tolist())) == 1
        assert output.labels[0] != output.labels[4]

    def test_identical_points_reseed_empty_clusters(self, plane_distance):
        points = np.full((4, 2), 0.5)
        output = kmeans(plane_distance, 3).fit(points)

        # Ties go to the first centroid; the others stay empty but finite
        assert output.labels.tolist() == [0, 0, 0, 0]
        assert np.all(np.isfinite(output.centroids))
        assert output.total_inertia == 0.0
        assert output.converged

    def test_iteration_cap(self, rng):
        output = kmeans(DistanceCalculator(), 6, max_iterations=1).fit(rng.random((50, 24)))
        assert output.iterations == 1


class TestDBSCAN:
    """Tests for density-based clustering."""

    def test_dense_regions_and_noise(self, plane_distance):
        output = DBSCANClustering(plane_distance, eps=0.1, min_samples=3).fit(BLOBS_WITH_OUTLIER)

        assert output.labels.tolist() == [0, 0, 0, 0, 1, 1, 1, 1, 0]
        assert output.noise_indices == [8]
        assert output.num_clusters == 2
        assert output.iterations == 1
        assert output.converged

    def test_every_point_is_labeled(self, rng):
        points = rng.random((40, 24))
        output = DBSCANClustering(DistanceCalculator(), eps=0.8, min_samples=3).fit(points)

        assert output.labels.min() >= 0
        assert output.labels.max() == output.num_clusters - 1

    def test_all_noise_collapses_to_one_cluster(self, plane_distance):
        output = DBSCANClustering(plane_distance, eps=0.01, min_samples=3).fit(BLOBS_WITH_OUTLIER)

        assert output.labels.tolist() == [0] * 9
        assert output.num_clusters == 1
        assert len(output.noise_indices) == 9

    def test_centroids_are_member_means(self, plane_distance):
        output = DBSCANClustering(plane_distance, eps=0.1, min_samples=3).fit(BLOBS_WITH_OUTLIER[:8])

        np.testing.assert_allclose(output.centroids, [[0.025, 0.025], [1.025, 1.025]])


class TestHierarchical:
    """Tests for average-linkage agglomeration."""

    def test_merges_down_to_requested_clusters(self, plane_distance):
        output = HierarchicalClustering(plane_distance, 2).fit(BLOBS_WITH_OUTLIER)

        assert output.labels.tolist() == [0, 0, 0, 0, 1, 1, 1, 1, 0]
        assert output.iterations == 7
        assert output.converged

    def test_three_clusters_isolates_outlier(self, plane_distance):
        output = HierarchicalClustering(plane_distance, 3).fit(BLOBS_WITH_OUTLIER)

        assert output.labels.tolist() == [0, 0, 0, 0, 1, 1, 1, 1, 2]

    def test_k_equal_to_n_keeps_singletons(self, plane_distance):
        output = HierarchicalClustering(plane_distance, 9).fit(BLOBS_WITH_OUTLIER)

        assert output.labels.tolist() == list(range(9))
        assert output.iterations == 0
        assert output.total_inertia == 0.0

    def test_every_point_is_labeled(self, rng):
        output = HierarchicalClustering(DistanceCalculator(), 4).fit(rng.random((30, 24)))

        assert sorted(set(output.labels.tolist())) == [0, 1, 2, 3]
        assert output.num_clusters == 4

    def test_more_clusters_than_points_fails(self, plane_distance):
        with pytest.raises(InsufficientDataError):
            HierarchicalClustering(plane_distance, 10).fit(BLOBS_WITH_OUTLIER)


class TestFactory:
    """Tests for create_strategy."""

    @pytest.mark.parametrize("algorithm, expected", [
        (ClusteringAlgorithm.KMEANS, KMeansClustering),
        (ClusteringAlgorithm.KMEANS_PLUS_PLUS, KMeansPlusPlusClustering),
        (ClusteringAlgorithm.DBSCAN, DBSCANClustering),
        (ClusteringAlgorithm.HIERARCHICAL, HierarchicalClustering),
    ])
    def test_builds_each_algorithm(self, algorithm, expected, plane_distance):
        strategy = create_strategy(algorithm, plane_distance, num_clusters=2, max_iterations=10,
                                   convergence_threshold=1e-4, eps=0.5, min_samples=3,
                                   rng=np.random.default_rng(0))
        assert type(strategy) is expected

    def test_centroids_from_labels_zero_fills_empty_clusters(self):
        points = np.array([[1.0, 2.0], [3.0, 4.0]])
        centroids = centroids_from_labels(points, np.array([0, 0]), 2)

        np.testing.assert_allclose(centroids, [[2.0, 3.0], [0.0, 0.0]])

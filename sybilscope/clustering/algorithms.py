"""
Clustering algorithms.

Four interchangeable strategies over a dense (n_wallets, n_features) array
of normalized feature values:

- K-means: random distinct initial centroids, Lloyd iterations
- K-means++: same loop, D^2-weighted centroid seeding
- DBSCAN: density-based region growing; noise is folded into the nearest
  cluster afterwards so every wallet ends up labeled
- Hierarchical: average-linkage agglomeration down to ``num_clusters``

Each strategy instance owns its own working buffers; nothing is shared
between runs.
"""

from abc import ABC, abstractmethod
from collections import deque
from dataclasses import dataclass, field
from typing import Callable, List, Optional

import numpy as np

from ..exceptions import InsufficientDataError, UnknownAlgorithmError
from ..secure_logging import get_secure_logger
from .distance import DistanceCalculator
from .events import IterationCompleted
from .models import ClusteringAlgorithm

logger = get_secure_logger(__name__)

IterationCallback = Callable[[IterationCompleted], None]

_NOISE = -1
_UNCLASSIFIED = -2


@dataclass
class AlgorithmOutput:
    """Raw assignment produced by a strategy."""
    labels: np.ndarray          # cluster index per input row
    centroids: np.ndarray       # (num_clusters, n_features), normalized space
    total_inertia: float
    iterations: int
    converged: bool
    noise_indices: List[int] = field(default_factory=list)

    @property
    def num_clusters(self) -> int:
        return int(self.centroids.shape[0])


def centroids_from_labels(points: np.ndarray, labels: np.ndarray, num_clusters: int) -> np.ndarray:
    """Per-feature mean of each cluster's members; empty clusters get zeros."""
    centroids = np.zeros((num_clusters, points.shape[1]), dtype=float)
    for c in range(num_clusters):
        mask = labels == c
        if np.any(mask):
            centroids[c] = points[mask].mean(axis=0)
    return centroids


def total_inertia(points: np.ndarray, labels: np.ndarray, centroids: np.ndarray,
                  distance: DistanceCalculator) -> float:
    """Sum of squared member-to-centroid distances."""
    if points.shape[0] == 0:
        return 0.0
    dists = distance.pairwise(points, centroids)
    member_dists = dists[np.arange(points.shape[0]), labels]
    return float(np.sum(member_dists * member_dists))


class ClusteringStrategy(ABC):
    """Base class for clustering algorithms."""

    algorithm: ClusteringAlgorithm

    def __init__(self, distance: DistanceCalculator, on_iteration: Optional[IterationCallback] = None):
        self.distance = distance
        self.on_iteration = on_iteration

    @abstractmethod
    def fit(self, points: np.ndarray) -> AlgorithmOutput:
        """Cluster the rows of ``points``."""

    def _notify(self, event: IterationCompleted) -> None:
        if self.on_iteration is not None:
            self.on_iteration(event)


# =============================================================================
# K-means / K-means++
# =============================================================================

class KMeansClustering(ClusteringStrategy):
    """
    Lloyd's K-means with random distinct initial centroids.

    Stops when no centroid moves farther than ``convergence_threshold``
    between iterations, or after ``max_iterations`` passes.
    """

    algorithm = ClusteringAlgorithm.KMEANS

    def __init__(self, distance: DistanceCalculator, num_clusters: int, max_iterations: int,
                 convergence_threshold: float, rng: np.random.Generator,
                 on_iteration: Optional[IterationCallback] = None):
        super().__init__(distance, on_iteration)
        self.num_clusters = num_clusters
        self.max_iterations = max_iterations
        self.convergence_threshold = convergence_threshold
        self.rng = rng

    def fit(self, points: np.ndarray) -> AlgorithmOutput:
        n = points.shape[0]
        k = self.num_clusters
        if k > n:
            raise InsufficientDataError("wallets", required_amount=k, available_amount=n)

        centroids = self._init_centroids(points)
        assignments = np.full(n, -1, dtype=int)
        inertia = 0.0
        iteration = 0
        converged = False

        while iteration < self.max_iterations and not converged:
            # Assignment step; argmin keeps the first centroid on ties
            dists = self.distance.pairwise(points, centroids)
            new_assignments = np.argmin(dists, axis=1)
            min_dists = dists[np.arange(n), new_assignments]
            inertia = float(np.sum(min_dists * min_dists))

            centers_changed = not np.array_equal(assignments, new_assignments)
            assignments = new_assignments

            # Update step
            new_centroids = self._update_centroids(points, assignments)
            max_change = max(
                self.distance.distance_arrays(new_centroids[c], centroids[c]) for c in range(k)
            )

            centroids = new_centroids
            iteration += 1
            converged = max_change < self.convergence_threshold

            self._notify(IterationCompleted(
                iteration=iteration,
                inertia=inertia,
                centers_changed=centers_changed,
            ))

        logger.debug("kmeans_finished",
                     algorithm=self.algorithm.value,
                     iterations=iteration,
                     converged=converged,
                     inertia=inertia)

        return AlgorithmOutput(
            labels=assignments,
            centroids=centroids,
            total_inertia=inertia,
            iterations=iteration,
            converged=converged,
        )

    def _init_centroids(self, points: np.ndarray) -> np.ndarray:
        indices = self.rng.choice(points.shape[0], size=self.num_clusters, replace=False)
        return points[indices].copy()

    def _update_centroids(self, points: np.ndarray, assignments: np.ndarray) -> np.ndarray:
        centroids = np.empty((self.num_clusters, points.shape[1]), dtype=float)
        for c in range(self.num_clusters):
            mask = assignments == c
            if np.any(mask):
                centroids[c] = points[mask].mean(axis=0)
            else:
                # Reseed from a random wallet so the cluster can recover
                idx = int(self.rng.integers(0, points.shape[0]))
                centroids[c] = points[idx]
                logger.debug("empty_cluster_reseeded", cluster_index=c, seed_index=idx)
        return centroids


class KMeansPlusPlusClustering(KMeansClustering):
    """K-means with D^2-weighted (K-means++) centroid seeding."""

    algorithm = ClusteringAlgorithm.KMEANS_PLUS_PLUS

    def _init_centroids(self, points: np.ndarray) -> np.ndarray:
        n = points.shape[0]
        chosen = [int(self.rng.integers(0, n))]

        while len(chosen) < self.num_clusters:
            nearest = self.distance.pairwise(points, points[chosen]).min(axis=1)
            weights = nearest * nearest
            total = float(weights.sum())

            if total > 0:
                threshold = self.rng.random() * total
                idx = int(np.searchsorted(np.cumsum(weights), threshold, side='right'))
                idx = min(idx, n - 1)
            else:
                # Every wallet coincides with a chosen centroid
                idx = int(self.rng.integers(0, n))

            chosen.append(idx)

        return points[chosen].copy()


# =============================================================================
# DBSCAN
# =============================================================================

class DBSCANClustering(ClusteringStrategy):
    """
    Density-based clustering.

    Wallets with fewer than ``min_samples`` neighbors within ``eps`` start
    out as noise. After region growing, every remaining noise wallet joins
    the cluster of its nearest labeled wallet; their indices are kept in
    ``AlgorithmOutput.noise_indices`` so hosts can still see the outliers.
    """

    algorithm = ClusteringAlgorithm.DBSCAN

    def __init__(self, distance: DistanceCalculator, eps: float, min_samples: int,
                 on_iteration: Optional[IterationCallback] = None):
        super().__init__(distance, on_iteration)
        self.eps = eps
        self.min_samples = min_samples

    def fit(self, points: np.ndarray) -> AlgorithmOutput:
        n = points.shape[0]
        if n == 0:
            raise InsufficientDataError("wallets", required_amount=1, available_amount=0)

        pairwise = self.distance.pairwise(points, points)
        labels = np.full(n, _UNCLASSIFIED, dtype=int)
        cluster_id = 0

        for i in range(n):
            if labels[i] != _UNCLASSIFIED:
                continue

            neighbors = self._region_query(pairwise, i)
            if len(neighbors) < self.min_samples:
                labels[i] = _NOISE
                continue

            labels[i] = cluster_id
            queued = set(int(j) for j in neighbors)
            frontier = deque(int(j) for j in neighbors if j != i)

            while frontier:
                q = frontier.popleft()

                if labels[q] == _NOISE:
                    # Border point: joins the cluster but does not expand it
                    labels[q] = cluster_id
                    continue
                if labels[q] != _UNCLASSIFIED:
                    continue

                labels[q] = cluster_id
                q_neighbors = self._region_query(pairwise, q)
                if len(q_neighbors) >= self.min_samples:
                    for nb in q_neighbors:
                        nb = int(nb)
                        if nb not in queued and labels[nb] in (_UNCLASSIFIED, _NOISE):
                            queued.add(nb)
                            frontier.append(nb)

            cluster_id += 1

        noise_indices = [int(i) for i in np.flatnonzero(labels == _NOISE)]
        labels = self._absorb_noise(pairwise, labels, noise_indices)

        num_clusters = int(labels.max()) + 1
        centroids = centroids_from_labels(points, labels, num_clusters)
        inertia = total_inertia(points, labels, centroids, self.distance)

        logger.debug("dbscan_finished",
                     clusters=num_clusters,
                     noise_reassigned=len(noise_indices),
                     eps=self.eps,
                     min_samples=self.min_samples)

        return AlgorithmOutput(
            labels=labels,
            centroids=centroids,
            total_inertia=inertia,
            iterations=1,
            converged=True,
            noise_indices=noise_indices,
        )

    def _region_query(self, pairwise: np.ndarray, idx: int) -> np.ndarray:
        return np.flatnonzero(pairwise[idx] <= self.eps)

    @staticmethod
    def _absorb_noise(pairwise: np.ndarray, labels: np.ndarray, noise_indices: List[int]) -> np.ndarray:
        labels = labels.copy()
        labeled = np.flatnonzero(labels >= 0)

        if labeled.size == 0:
            # No dense region at all: everything is one cluster
            labels[:] = 0
            return labels

        for i in noise_indices:
            nearest = labeled[int(np.argmin(pairwise[i, labeled]))]
            labels[i] = labels[nearest]

        return labels


# =============================================================================
# Hierarchical (average linkage)
# =============================================================================

class HierarchicalClustering(ClusteringStrategy):
    """
    Agglomerative clustering with average linkage.

    Starts from singletons and repeatedly merges the pair of clusters with
    the smallest mean pairwise distance until ``num_clusters`` remain.
    O(n^2) per merge and O(n) merges: fine for hundreds to low thousands
    of wallets, not beyond.
    """

    algorithm = ClusteringAlgorithm.HIERARCHICAL

    def __init__(self, distance: DistanceCalculator, num_clusters: int,
                 on_iteration: Optional[IterationCallback] = None):
        super().__init__(distance, on_iteration)
        self.num_clusters = num_clusters

    def fit(self, points: np.ndarray) -> AlgorithmOutput:
        n = points.shape[0]
        k = self.num_clusters
        if k > n:
            raise InsufficientDataError("wallets", required_amount=k, available_amount=n)

        # sums[i, j]: total pairwise distance between members of clusters i and j
        sums = self.distance.pairwise(points, points)
        sizes = np.ones(n, dtype=float)
        active = np.ones(n, dtype=bool)
        members = {i: [i] for i in range(n)}
        upper = np.triu(np.ones((n, n), dtype=bool), k=1)
        remaining = n

        while remaining > k:
            candidates = upper & active[:, np.newaxis] & active[np.newaxis, :]
            linkage = np.where(candidates, sums / np.outer(sizes, sizes), np.inf)

            # Row-major argmin: lowest i, then lowest j, on ties
            i, j = divmod(int(np.argmin(linkage)), n)

            sums[i, :] += sums[j, :]
            sums[:, i] += sums[:, j]
            sizes[i] += sizes[j]
            active[j] = False
            members[i].extend(members.pop(j))
            remaining -= 1

        labels = np.empty(n, dtype=int)
        for label, root in enumerate(sorted(members)):
            labels[members[root]] = label

        centroids = centroids_from_labels(points, labels, k)
        inertia = total_inertia(points, labels, centroids, self.distance)

        logger.debug("hierarchical_finished", clusters=k, merges=n - k)

        return AlgorithmOutput(
            labels=labels,
            centroids=centroids,
            total_inertia=inertia,
            iterations=n - k,
            converged=True,
        )


def create_strategy(algorithm: ClusteringAlgorithm, distance: DistanceCalculator, *,
                    num_clusters: int, max_iterations: int, convergence_threshold: float,
                    eps: float, min_samples: int, rng: np.random.Generator,
                    on_iteration: Optional[IterationCallback] = None) -> ClusteringStrategy:
    """Build a fresh strategy instance for one run."""
    algorithm = ClusteringAlgorithm(algorithm)

    if algorithm == ClusteringAlgorithm.KMEANS:
        return KMeansClustering(distance, num_clusters, max_iterations, convergence_threshold,
                                rng, on_iteration)
    if algorithm == ClusteringAlgorithm.KMEANS_PLUS_PLUS:
        return KMeansPlusPlusClustering(distance, num_clusters, max_iterations, convergence_threshold,
                                        rng, on_iteration)
    if algorithm == ClusteringAlgorithm.DBSCAN:
        return DBSCANClustering(distance, eps, min_samples, on_iteration)
    if algorithm == ClusteringAlgorithm.HIERARCHICAL:
        return HierarchicalClustering(distance, num_clusters, on_iteration)

    raise UnknownAlgorithmError(algorithm)

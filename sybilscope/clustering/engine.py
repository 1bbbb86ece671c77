"""
Wallet clustering engine.

Public entry point of the clustering package. Wires feature extraction,
the configured algorithm, quality scoring and per-cluster analysis
together, notifies observers of the run lifecycle, and keeps the latest
result plus running statistics.

Usage:
    engine = WalletClusteringEngine(ClusteringSettings(num_clusters=3, random_seed=7))
    vectors = engine.extract_features_batch(wallets)
    result = engine.cluster(vectors)

An engine instance is not thread-safe: serialize calls to ``cluster()`` or
use one engine per concurrent caller. ``find_optimal_k`` runs every K on a
fresh engine, so those runs share no state and may use a thread pool.
"""

import dataclasses
import time
import uuid
from concurrent.futures import ThreadPoolExecutor
from datetime import datetime, timezone
from typing import Any, Callable, Dict, Iterable, List, Optional, Sequence, Tuple

import numpy as np
from pydantic import ValidationError as PydanticValidationError

from ..config_validator import validate_clustering_config
from ..exceptions import ClusteringError, InsufficientDataError, InvalidConfigError, SybilScopeError
from ..secure_logging import get_secure_logger
from ..validation import WalletAddressValidator
from .algorithms import AlgorithmOutput, create_strategy
from .analyzer import ClusterAnalyzer, distances_by_cluster, membership_confidence, cluster_id_for
from .config import ClusteringSettings
from .distance import DistanceCalculator
from .events import (
    ClusteringCompleted,
    ClusteringEvent,
    ClusteringFailed,
    ClusteringObserver,
    ClusteringStarted,
    HighRiskClusterDetected,
    WalletAssigned,
)
from .extractor import FeatureExtractor, RawWallet
from .features import FeatureSchema
from .models import (
    ClusterMembership,
    ClusteringAlgorithm,
    ClusteringResult,
    ClusteringStats,
    FeatureVector,
    OptimalKResult,
)
from .quality import assess_cluster_quality, silhouette_from_distances

logger = get_secure_logger(__name__)


class WalletClusteringEngine:
    """
    Groups wallets by behavioral similarity and scores each group for risk.

    Args:
        config: Clustering configuration (defaults to ClusteringSettings())
        observers: Callables notified of every lifecycle event
        rng: Random generator for centroid seeding; defaults to one seeded
            from ``config.random_seed``

    Raises:
        InvalidConfigError: If the configuration fails validation
    """

    def __init__(self, config: Optional[ClusteringSettings] = None,
                 observers: Optional[Iterable[ClusteringObserver]] = None,
                 rng: Optional[np.random.Generator] = None):
        self._apply_config(config or ClusteringSettings())
        self.rng = rng if rng is not None else np.random.default_rng(self.config.random_seed)
        self._observers: List[ClusteringObserver] = list(observers or [])

        self._latest_result: Optional[ClusteringResult] = None
        self._stats = ClusteringStats()

    def _apply_config(self, config: ClusteringSettings) -> None:
        validate_clustering_config(config)

        self.config = config
        self.schema = FeatureSchema(config.features)
        self.extractor = FeatureExtractor(self.schema)
        self.distance = DistanceCalculator(config.distance_metric, self.schema)
        self.analyzer = ClusterAnalyzer(
            schema=self.schema,
            thresholds=config.risk,
            risk_rules=config.risk_rules,
            cluster_labels=config.cluster_labels,
        )

    # =========================================================================
    # Observers
    # =========================================================================

    def subscribe(self, observer: ClusteringObserver) -> Callable[[], None]:
        """
        Register an observer.

        Returns:
            Function that removes the observer again
        """
        self._observers.append(observer)

        def unsubscribe() -> None:
            if observer in self._observers:
                self._observers.remove(observer)

        return unsubscribe

    def _emit(self, event: ClusteringEvent) -> None:
        for observer in list(self._observers):
            try:
                observer(event)
            except Exception as e:
                logger.warning("observer_failed",
                               event_type=type(event).__name__,
                               error=str(e))

    # =========================================================================
    # Feature Extraction
    # =========================================================================

    def extract_features(self, raw: RawWallet) -> FeatureVector:
        return self.extractor.extract(raw)

    def extract_features_batch(self, raws: Iterable[RawWallet]) -> List[FeatureVector]:
        return self.extractor.extract_batch(raws)

    # =========================================================================
    # Clustering
    # =========================================================================

    def cluster(self, vectors: Sequence[FeatureVector]) -> ClusteringResult:
        """
        Cluster feature vectors with the configured algorithm.

        Args:
            vectors: Feature vectors, one per wallet

        Returns:
            ClusteringResult; also kept as the engine's latest result

        Raises:
            InsufficientDataError: Fewer vectors than clusters (or none).
                Raised before any event is emitted or state is touched.
            ClusteringError: The algorithm failed mid-run
        """
        vectors = list(vectors)
        config = self.config

        if not vectors:
            raise InsufficientDataError("wallets", required_amount=max(config.num_clusters, 1),
                                        available_amount=0)

        num_clusters = config.num_clusters
        if config.auto_optimize_k and config.algorithm != ClusteringAlgorithm.DBSCAN:
            num_clusters = self.auto_optimize_k(vectors)

        if len(vectors) < num_clusters:
            logger.warning("insufficient_wallets_for_clustering",
                           wallet_count=len(vectors),
                           num_clusters=num_clusters)
            raise InsufficientDataError("wallets", required_amount=num_clusters,
                                        available_amount=len(vectors))

        logger.info("clustering_started",
                    wallet_count=len(vectors),
                    algorithm=ClusteringAlgorithm(config.algorithm).value,
                    num_clusters=num_clusters)
        self._emit(ClusteringStarted(wallet_count=len(vectors), algorithm=config.algorithm))

        try:
            result = self._run(vectors, num_clusters)
        except Exception as e:
            logger.error("clustering_failed", error=str(e), error_type=type(e).__name__)
            self._emit(ClusteringFailed(message=str(e), error_type=type(e).__name__))
            if isinstance(e, SybilScopeError):
                raise
            raise ClusteringError(f"Clustering failed: {e}",
                                  {'algorithm': ClusteringAlgorithm(config.algorithm).value}) from e

        for membership in result.memberships:
            self._emit(WalletAssigned(
                wallet_address=membership.wallet_address,
                cluster_id=membership.cluster_id,
                confidence=membership.confidence,
            ))

        for wallet_cluster in result.high_risk_clusters():
            logger.warning("high_risk_cluster_detected",
                           cluster_id=wallet_cluster.cluster_id,
                           risk_level=wallet_cluster.risk_level.value,
                           risk_score=wallet_cluster.risk_score,
                           member_count=wallet_cluster.member_count)
            self._emit(HighRiskClusterDetected(
                cluster_id=wallet_cluster.cluster_id,
                risk_level=wallet_cluster.risk_level,
                member_count=wallet_cluster.member_count,
                risk_indicators=tuple(wallet_cluster.risk_indicators),
            ))

        # State changes only after a fully successful run
        self._latest_result = result
        self._stats.record(len(vectors), result.silhouette_score)

        logger.info("clustering_completed",
                    result_id=result.result_id,
                    clusters=result.num_clusters,
                    silhouette_score=round(result.silhouette_score, 4),
                    quality=result.quality.value,
                    iterations=result.iterations,
                    converged=result.converged,
                    processing_time_ms=round(result.processing_time_ms, 2))
        self._emit(ClusteringCompleted(
            result_id=result.result_id,
            num_clusters=result.num_clusters,
            silhouette_score=result.silhouette_score,
            processing_time_ms=result.processing_time_ms,
        ))

        return result

    def _run(self, vectors: List[FeatureVector], num_clusters: int) -> ClusteringResult:
        config = self.config
        started = time.perf_counter()

        points = self.schema.vectorize_many(v.normalized_features for v in vectors)
        addresses = [v.entity_id for v in vectors]

        strategy = create_strategy(
            config.algorithm,
            self.distance,
            num_clusters=num_clusters,
            max_iterations=config.max_iterations,
            convergence_threshold=config.convergence_threshold,
            eps=config.dbscan_eps,
            min_samples=config.min_samples_per_cluster,
            rng=self.rng,
            on_iteration=self._emit,
        )
        output = strategy.fit(points)

        centroid_distances = self.distance.pairwise(points, output.centroids)
        memberships = self._build_memberships(addresses, output, centroid_distances)

        clusters = []
        for c in range(output.num_clusters):
            mask = output.labels == c
            clusters.append(self.analyzer.build_cluster(
                index=c,
                centroid=output.centroids[c],
                member_addresses=[a for a, m in zip(addresses, mask) if m],
                member_points=points[mask],
                member_distances=centroid_distances[mask, c],
                population=points,
            ))

        silhouette = silhouette_from_distances(self.distance.pairwise(points, points), output.labels)

        return ClusteringResult(
            result_id=f"result_{uuid.uuid4().hex[:12]}",
            algorithm=ClusteringAlgorithm(config.algorithm),
            num_clusters=output.num_clusters,
            clusters=clusters,
            memberships=memberships,
            silhouette_score=silhouette,
            quality=assess_cluster_quality(silhouette),
            total_inertia=output.total_inertia,
            iterations=output.iterations,
            converged=output.converged,
            clustered_at=datetime.now(timezone.utc),
            processing_time_ms=(time.perf_counter() - started) * 1000,
            outlier_wallets=[addresses[i] for i in output.noise_indices],
        )

    @staticmethod
    def _build_memberships(addresses: List[str], output: AlgorithmOutput,
                           centroid_distances: np.ndarray) -> List[ClusterMembership]:
        memberships = []

        for i, address in enumerate(addresses):
            assigned = int(output.labels[i])
            row = centroid_distances[i]
            assigned_distance = float(row[assigned])

            second_id = None
            second_distance = None
            if row.shape[0] > 1:
                others = row.copy()
                others[assigned] = np.inf
                second = int(np.argmin(others))
                second_id = cluster_id_for(second)
                second_distance = float(others[second])

            memberships.append(ClusterMembership(
                wallet_address=address,
                cluster_id=cluster_id_for(assigned),
                distance_to_centroid=assigned_distance,
                confidence=membership_confidence(assigned_distance, second_distance),
                distance_to_all_centroids=distances_by_cluster(row),
                second_closest_cluster_id=second_id,
            ))

        return memberships

    # =========================================================================
    # Optimal K
    # =========================================================================

    def find_optimal_k(self, vectors: Sequence[FeatureVector],
                       k_range: Optional[Tuple[int, int]] = None,
                       max_workers: Optional[int] = None) -> OptimalKResult:
        """
        Elbow-method search for the number of clusters.

        Clusters once per K in the inclusive range, each on a fresh engine
        with its own generator, and picks the K with the largest second difference of inertia.

        Args:
            vectors: Feature vectors to cluster
            k_range: (min_k, max_k); defaults to ``config.k_range``
            max_workers: Run the K values on a thread pool of this size

        Raises:
            InvalidConfigError: If the range is empty or starts below 1
            InsufficientDataError: If max_k exceeds the number of vectors
        """
        vectors = list(vectors)
        min_k, max_k = k_range if k_range is not None else self.config.k_range

        if min_k < 1 or min_k > max_k:
            raise InvalidConfigError("k_range", (min_k, max_k),
                                     expected_format="1 <= min_k <= max_k")
        if max_k > len(vectors):
            raise InsufficientDataError("wallets", required_amount=max_k,
                                        available_amount=len(vectors))

        k_values = list(range(min_k, max_k + 1))
        runs = list(zip(k_values, self._child_rngs(len(k_values))))

        if max_workers and max_workers > 1:
            with ThreadPoolExecutor(max_workers=max_workers) as executor:
                inertias = list(executor.map(lambda run: self._inertia_for_k(vectors, *run), runs))
        else:
            inertias = [self._inertia_for_k(vectors, k, rng) for k, rng in runs]

        optimal_k = elbow_k(k_values, inertias)

        logger.info("optimal_k_found",
                    optimal_k=optimal_k,
                    k_range=[min_k, max_k],
                    inertias=[round(i, 4) for i in inertias])

        return OptimalKResult(optimal_k=optimal_k, inertias=inertias, k_values=k_values)

    def _child_rngs(self, count: int) -> List[np.random.Generator]:
        # An explicit seed pins every per-k run; otherwise derive from the engine generator
        if self.config.random_seed is not None:
            return [np.random.default_rng(self.config.random_seed) for _ in range(count)]
        return self.rng.spawn(count)

    def _inertia_for_k(self, vectors: List[FeatureVector], k: int, rng: np.random.Generator) -> float:
        config = self.config.model_copy(update={"num_clusters": k, "auto_optimize_k": False})
        return WalletClusteringEngine(config, rng=rng).cluster(vectors).total_inertia

    def auto_optimize_k(self, vectors: Sequence[FeatureVector]) -> int:
        """Elbow K over ``config.k_range`` clipped to the number of vectors."""
        vectors = list(vectors)
        min_k, max_k = self.config.k_range
        max_k = min(max_k, len(vectors))

        if min_k > max_k:
            raise InsufficientDataError("wallets", required_amount=min_k,
                                        available_amount=len(vectors))

        return self.find_optimal_k(vectors, (min_k, max_k)).optimal_k

    # =========================================================================
    # Queries
    # =========================================================================

    def get_wallet_cluster(self, wallet_address: str) -> Optional[ClusterMembership]:
        """Membership of a wallet in the latest result."""
        if self._latest_result is None:
            return None
        return self._latest_result.membership_for(WalletAddressValidator.validate(wallet_address))

    def get_cluster_members(self, cluster_id: str) -> List[str]:
        if self._latest_result is None:
            return []
        return self._latest_result.members_of(cluster_id)

    def get_latest_result(self) -> Optional[ClusteringResult]:
        return self._latest_result

    def get_stats(self) -> ClusteringStats:
        return dataclasses.replace(self._stats)

    def get_config(self) -> ClusteringSettings:
        return self.config.model_copy()

    def update_config(self, **changes: Any) -> ClusteringSettings:
        """
        Apply configuration changes.

        The merged configuration is re-validated as a whole; on failure the
        current configuration stays in place.

        Raises:
            InvalidConfigError: Unknown key, wrong type, or failed validation
        """
        unknown = sorted(set(changes) - set(ClusteringSettings.model_fields))
        if unknown:
            raise InvalidConfigError(unknown[0], changes[unknown[0]],
                                     expected_format="a ClusteringSettings field")

        merged: Dict[str, Any] = {**self.config.model_dump(), **changes}
        try:
            config = ClusteringSettings.model_validate(merged)
        except PydanticValidationError as e:
            raise InvalidConfigError(", ".join(sorted(changes)), changes,
                                     expected_format=str(e.errors()[0].get('msg'))) from e

        seed_changed = config.random_seed != self.config.random_seed
        self._apply_config(config)
        if seed_changed:
            self.rng = np.random.default_rng(config.random_seed)

        logger.info("config_updated", changed=sorted(changes))
        return self.get_config()


def elbow_k(k_values: Sequence[int], inertias: Sequence[float]) -> int:
    """K at the largest positive second difference of inertia; the first K otherwise."""
    diffs = [inertias[i] - inertias[i + 1] for i in range(len(inertias) - 1)]
    second = [diffs[i] - diffs[i + 1] for i in range(len(diffs) - 1)]

    best = 0.0
    optimal = k_values[0]
    for i, value in enumerate(second):
        if value > best:
            best = value
            optimal = k_values[i + 1]
    return optimal


# Global clustering engine instance
_clustering_engine: Optional[WalletClusteringEngine] = None


def get_clustering_engine() -> WalletClusteringEngine:
    """Get or create the shared clustering engine (configured from settings)."""
    global _clustering_engine
    if _clustering_engine is None:
        from ..config import get_settings
        _clustering_engine = WalletClusteringEngine(get_settings().clustering)
    return _clustering_engine


def set_clustering_engine(engine: WalletClusteringEngine) -> None:
    global _clustering_engine
    _clustering_engine = engine


def reset_clustering_engine() -> None:
    global _clustering_engine
    _clustering_engine = None

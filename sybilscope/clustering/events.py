"""
Typed lifecycle events emitted by the clustering engine.

Observers are plain callables taking one event. Per run the engine emits,
in order: one ClusteringStarted, zero or more IterationCompleted, one
WalletAssigned per wallet, zero or more HighRiskClusterDetected, and a
final ClusteringCompleted (or ClusteringFailed if the run aborts).
"""

from dataclasses import dataclass, field
from typing import Callable, List, Tuple, Union

from .models import ClusteringAlgorithm, ClusterRiskLevel


@dataclass(frozen=True)
class ClusteringStarted:
    wallet_count: int
    algorithm: ClusteringAlgorithm


@dataclass(frozen=True)
class IterationCompleted:
    iteration: int
    inertia: float
    centers_changed: bool


@dataclass(frozen=True)
class WalletAssigned:
    wallet_address: str
    cluster_id: str
    confidence: float


@dataclass(frozen=True)
class HighRiskClusterDetected:
    cluster_id: str
    risk_level: ClusterRiskLevel
    member_count: int
    risk_indicators: Tuple[str, ...] = field(default_factory=tuple)


@dataclass(frozen=True)
class ClusteringCompleted:
    result_id: str
    num_clusters: int
    silhouette_score: float
    processing_time_ms: float


@dataclass(frozen=True)
class ClusteringFailed:
    message: str
    error_type: str


ClusteringEvent = Union[
    ClusteringStarted,
    IterationCompleted,
    WalletAssigned,
    HighRiskClusterDetected,
    ClusteringCompleted,
    ClusteringFailed,
]

ClusteringObserver = Callable[[ClusteringEvent], None]


class EventRecorder:
    """Observer that keeps every event it receives; handy for hosts and tests."""

    def __init__(self):
        self.events: List[ClusteringEvent] = []

    def __call__(self, event: ClusteringEvent) -> None:
        self.events.append(event)

    def of_type(self, event_type: type) -> List[ClusteringEvent]:
        return [e for e in self.events if isinstance(e, event_type)]

    def clear(self) -> None:
        self.events.clear()

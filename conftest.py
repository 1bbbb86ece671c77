"""Pytest configuration and shared fixtures."""

from typing import Any, Dict, List

import numpy as np
import pytest

from sybilscope.clustering import (
    ClusteringSettings,
    DistanceMetric,
    EventRecorder,
    FeatureExtractor,
    reset_clustering_engine,
)
from sybilscope.clustering.mock_data import mock_address
from sybilscope.config import get_settings


def make_wallet(index: int, **features: Any) -> Dict[str, Any]:
    """Raw wallet record with a deterministic address."""
    return {"address": mock_address(index), **features}


@pytest.fixture(autouse=True)
def reset_shared_state():
    """Fresh shared engine and settings for every test."""
    reset_clustering_engine()
    get_settings.cache_clear()
    yield
    reset_clustering_engine()
    get_settings.cache_clear()


@pytest.fixture
def rng():
    return np.random.default_rng(1234)


@pytest.fixture
def extractor():
    return FeatureExtractor()


@pytest.fixture
def recorder():
    return EventRecorder()


@pytest.fixture
def two_population_wallets(rng) -> List[Dict[str, Any]]:
    """
    10 small retail wallets followed by 10 large ones.

    Only trade size and volume are supplied; everything else defaults.
    """
    small = [
        make_wallet(i,
                    avgTradeSizeUsd=float(rng.uniform(100, 2_000)),
                    totalVolumeUsd=float(rng.uniform(5_000, 20_000)))
        for i in range(10)
    ]
    large = [
        make_wallet(10 + i,
                    avgTradeSizeUsd=float(rng.uniform(50_000, 100_000)),
                    totalVolumeUsd=float(rng.uniform(1_000_000, 1_500_000)))
        for i in range(10)
    ]
    return small + large


@pytest.fixture
def two_blob_wallets(rng) -> List[Dict[str, Any]]:
    """
    Two tight, well-separated groups: 10 benign wallets then 10 wallets with
    high suspicion, coordination and win rate.
    """
    def jitter(scale: float) -> float:
        return float(rng.uniform(-scale, scale))

    benign = [
        make_wallet(i,
                    suspicion_score=10 + jitter(1),
                    coordination_score=10 + jitter(1),
                    win_rate=0.2 + jitter(0.01),
                    wallet_age_days=365)
        for i in range(10)
    ]
    suspicious = [
        make_wallet(10 + i,
                    suspicion_score=90 + jitter(1),
                    coordination_score=90 + jitter(1),
                    win_rate=0.9 + jitter(0.01),
                    wallet_age_days=365)
        for i in range(10)
    ]
    return benign + suspicious


@pytest.fixture
def two_population_vectors(extractor, two_population_wallets):
    return extractor.extract_batch(two_population_wallets)


@pytest.fixture
def two_blob_vectors(extractor, two_blob_wallets):
    return extractor.extract_batch(two_blob_wallets)


@pytest.fixture
def seeded_config():
    return ClusteringSettings(num_clusters=2, random_seed=42, distance_metric=DistanceMetric.EUCLIDEAN)

"""Tests for configuration loading and validation."""

import pytest

from sybilscope.clustering import (
    ClusteringAlgorithm,
    ClusteringSettings,
    FeatureCategory,
    FeatureDefinition,
    RiskRule,
    RiskThresholds,
)
from sybilscope.config import get_settings
from sybilscope.config_validator import ConfigurationValidator, validate_clustering_config
from sybilscope.exceptions import InsufficientDataError, InvalidConfigError


def feature(name, **kwargs):
    return FeatureDefinition(name=name, category=FeatureCategory.PERFORMANCE, **kwargs)


def failed_checks(config):
    summary = ConfigurationValidator(config).validate_all()
    return {r.check_name for r in summary.results if not r.passed and r.level == "critical"}


class TestValidator:
    """Tests for ConfigurationValidator."""

    def test_default_config_is_valid(self):
        summary = validate_clustering_config(ClusteringSettings())

        assert summary.is_valid
        assert summary.critical_failures == 0
        assert summary.passed_checks == summary.total_checks

    def test_duplicate_feature_names(self):
        config = ClusteringSettings(features=(feature("a"), feature("a")), risk_rules=())
        assert "feature_names" in failed_checks(config)

    def test_empty_schema(self):
        config = ClusteringSettings(features=(), risk_rules=())
        assert "feature_schema" in failed_checks(config)

    @pytest.mark.parametrize("weight", [0, -1.5])
    def test_non_positive_weight(self, weight):
        config = ClusteringSettings(features=(feature("a", weight=weight),), risk_rules=())
        assert "feature_weights" in failed_checks(config)

    def test_inverted_feature_bounds(self):
        config = ClusteringSettings(features=(feature("a", min_value=2, max_value=1),), risk_rules=())
        assert "feature_bounds" in failed_checks(config)

    @pytest.mark.parametrize("changes, check", [
        ({"num_clusters": 0}, "num_clusters"),
        ({"max_iterations": 0}, "max_iterations"),
        ({"convergence_threshold": -1.0}, "convergence_threshold"),
        ({"min_samples_per_cluster": 0}, "min_samples_per_cluster"),
        ({"dbscan_eps": 0.0}, "dbscan_eps"),
        ({"k_range": (5, 2)}, "k_range"),
        ({"k_range": (0, 4)}, "k_range"),
    ])
    def test_algorithm_parameters(self, changes, check):
        assert check in failed_checks(ClusteringSettings(**changes))

    def test_rule_on_unknown_feature(self):
        config = ClusteringSettings(risk_rules=(RiskRule(feature="nope", threshold=1, points=10,
                                                         indicator="x"),))
        assert "risk_rule_nope" in failed_checks(config)

    def test_rule_with_unknown_threshold_reference(self):
        config = ClusteringSettings(risk_rules=(RiskRule(feature="win_rate", threshold_ref="bogus",
                                                         points=10, indicator="x"),))
        assert "risk_rule_win_rate" in failed_checks(config)

    def test_rule_without_points(self):
        config = ClusteringSettings(risk_rules=(RiskRule(feature="win_rate", threshold=0.5, points=0,
                                                         indicator="x"),))
        assert "risk_rule_win_rate" in failed_checks(config)

    def test_critical_below_high(self):
        config = ClusteringSettings(risk=RiskThresholds(high_risk_threshold=70, critical_risk_threshold=50))
        assert "risk_thresholds" in failed_checks(config)

    def test_num_clusters_outside_range_only_warns(self):
        summary = validate_clustering_config(ClusteringSettings(num_clusters=20, k_range=(2, 5)))

        assert summary.is_valid
        assert summary.warnings == 1

    def test_raises_with_every_failure(self):
        config = ClusteringSettings(num_clusters=0, dbscan_eps=-1)

        with pytest.raises(InvalidConfigError) as exc_info:
            validate_clustering_config(config)

        assert exc_info.value.config_key == "num_clusters"
        assert len(exc_info.value.failures) == 2


class TestSettings:
    """Tests for environment-driven settings."""

    def test_defaults(self):
        config = ClusteringSettings()

        assert config.algorithm == ClusteringAlgorithm.KMEANS_PLUS_PLUS
        assert config.num_clusters == 5
        assert config.max_iterations == 100
        assert config.convergence_threshold == 0.0001
        assert config.min_samples_per_cluster == 3
        assert config.k_range == (2, 10)
        assert config.risk.high_risk_threshold == 60
        assert config.risk.critical_risk_threshold == 80
        assert len(config.features) == 24
        assert len(config.risk_rules) == 7

    def test_environment_overrides(self, monkeypatch):
        monkeypatch.setenv("CLUSTERING_ALGORITHM", "DBSCAN")
        monkeypatch.setenv("CLUSTERING_K_RANGE", "[3, 8]")
        monkeypatch.setenv("CLUSTERING_RISK__HIGH_RISK_THRESHOLD", "55")

        config = ClusteringSettings()

        assert config.algorithm == ClusteringAlgorithm.DBSCAN
        assert config.k_range == (3, 8)
        assert config.risk.high_risk_threshold == 55

    def test_application_settings(self, monkeypatch):
        monkeypatch.setenv("LOG_LEVEL", "DEBUG")
        settings = get_settings()

        assert settings.log_level == "DEBUG"
        assert settings.clustering.num_clusters == 5
        assert get_settings() is settings


class TestExceptions:
    """Tests for error rendering."""

    def test_insufficient_data_message(self):
        error = InsufficientDataError("wallets", required_amount=5, available_amount=3)

        assert "need 5, got 3" in str(error)
        assert error.details["required_amount"] == 5

    def test_invalid_config_message(self):
        error = InvalidConfigError("k_range", (5, 2), expected_format="1 <= min_k <= max_k")

        assert "k_range" in str(error)
        assert error.details["expected_format"] == "1 <= min_k <= max_k"

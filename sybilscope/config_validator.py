"""
Configuration validation for the clustering engine.

Checks a clustering configuration before it is used so that structural
mistakes (non-positive weights, inverted bounds, impossible K ranges, rules
that point at features the schema does not have) are reported up front
instead of surfacing as silent always-default values mid-run.
"""

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Dict, List

from .exceptions import InvalidConfigError
from .secure_logging import get_secure_logger

if TYPE_CHECKING:
    from .clustering.config import ClusteringSettings

logger = get_secure_logger(__name__)


@dataclass
class ValidationResult:
    """Result of a configuration validation check."""
    check_name: str
    passed: bool
    level: str  # "critical", "warning", "info"
    message: str
    details: Dict[str, Any] = field(default_factory=dict)
    suggestions: List[str] = field(default_factory=list)


@dataclass
class ValidationSummary:
    """Summary of all validation results."""
    total_checks: int = 0
    passed_checks: int = 0
    failed_checks: int = 0
    warnings: int = 0
    critical_failures: int = 0
    results: List[ValidationResult] = field(default_factory=list)
    is_valid: bool = True

    def add_result(self, result: ValidationResult):
        """Add a validation result."""
        self.results.append(result)
        self.total_checks += 1

        if result.passed:
            self.passed_checks += 1
        else:
            self.failed_checks += 1
            if result.level == "critical":
                self.critical_failures += 1
            elif result.level == "warning":
                self.warnings += 1

        self.is_valid = self.critical_failures == 0

    @property
    def critical_results(self) -> List[ValidationResult]:
        return [r for r in self.results if not r.passed and r.level == "critical"]


class ConfigurationValidator:
    """
    Clustering configuration validator.

    Validates:
    - Feature schema (names, bounds, weights)
    - Algorithm parameters (K, iterations, convergence, DBSCAN radius)
    - Optimal-K search range
    - Risk thresholds and rule table
    """

    def __init__(self, config: "ClusteringSettings"):
        self.config = config
        self.summary = ValidationSummary()

    def validate_all(self) -> ValidationSummary:
        """Run all configuration validations."""
        checks = [
            self._validate_feature_schema,
            self._validate_algorithm_parameters,
            self._validate_k_range,
            self._validate_risk_configuration,
        ]

        for check in checks:
            check()

        self._log_validation_summary()
        return self.summary

    def _fail(self, check_name: str, message: str, level: str = "critical",
              suggestions: List[str] = None, **details):
        self.summary.add_result(ValidationResult(
            check_name=check_name,
            passed=False,
            level=level,
            message=message,
            details=details,
            suggestions=suggestions or []
        ))

    def _pass(self, check_name: str, message: str):
        self.summary.add_result(ValidationResult(
            check_name=check_name,
            passed=True,
            level="info",
            message=message
        ))

    def _validate_feature_schema(self):
        features = list(self.config.features)

        if not features:
            self._fail("feature_schema", "Feature schema is empty",
                       suggestions=["Use DEFAULT_FEATURE_DEFINITIONS or supply at least one feature"])
            return

        seen = set()
        duplicates = []
        for feature in features:
            if feature.name in seen:
                duplicates.append(feature.name)
            seen.add(feature.name)
        if duplicates:
            self._fail("feature_names", f"Duplicate feature names: {', '.join(duplicates)}",
                       duplicates=duplicates)
        else:
            self._pass("feature_names", f"{len(features)} unique features")

        bad_weights = [f.name for f in features if not f.weight > 0]
        if bad_weights:
            self._fail("feature_weights", "Feature weights must be positive",
                       suggestions=["Drop the feature instead of zeroing its weight"],
                       features=bad_weights)
        else:
            self._pass("feature_weights", "All feature weights positive")

        heavy = [f.name for f in features if f.weight > 10]
        if heavy:
            self._fail("feature_weight_scale", "Some feature weights dominate the distance",
                       level="warning", features=heavy)

        inverted = [f.name for f in features if f.min_value > f.max_value]
        if inverted:
            self._fail("feature_bounds", "Feature min exceeds max",
                       features=inverted)
        else:
            self._pass("feature_bounds", "All feature bounds ordered")

    def _validate_algorithm_parameters(self):
        config = self.config

        if config.num_clusters < 1:
            self._fail("num_clusters", f"num_clusters must be >= 1, got {config.num_clusters}")
        else:
            self._pass("num_clusters", f"num_clusters: {config.num_clusters}")

        if config.max_iterations < 1:
            self._fail("max_iterations", f"max_iterations must be >= 1, got {config.max_iterations}")
        else:
            self._pass("max_iterations", f"max_iterations: {config.max_iterations}")

        if config.convergence_threshold < 0:
            self._fail("convergence_threshold",
                       f"convergence_threshold must be >= 0, got {config.convergence_threshold}")
        else:
            self._pass("convergence_threshold", f"convergence_threshold: {config.convergence_threshold}")

        if config.min_samples_per_cluster < 1:
            self._fail("min_samples_per_cluster",
                       f"min_samples_per_cluster must be >= 1, got {config.min_samples_per_cluster}")
        else:
            self._pass("min_samples_per_cluster", f"min_samples_per_cluster: {config.min_samples_per_cluster}")

        if not config.dbscan_eps > 0:
            self._fail("dbscan_eps", f"dbscan_eps must be positive, got {config.dbscan_eps}")
        else:
            self._pass("dbscan_eps", f"dbscan_eps: {config.dbscan_eps}")

    def _validate_k_range(self):
        k_min, k_max = self.config.k_range

        if k_min < 1:
            self._fail("k_range", f"k_range minimum must be >= 1, got {k_min}")
            return

        if k_min > k_max:
            self._fail("k_range", f"k_range minimum {k_min} exceeds maximum {k_max}",
                       suggestions=["Swap the bounds"])
            return

        self._pass("k_range", f"k_range: [{k_min}, {k_max}]")

        if not k_min <= self.config.num_clusters <= k_max:
            self._fail("num_clusters_in_range",
                       f"num_clusters {self.config.num_clusters} lies outside k_range",
                       level="warning")

    def _validate_risk_configuration(self):
        risk = self.config.risk

        if risk.critical_risk_threshold < risk.high_risk_threshold:
            self._fail("risk_thresholds", "critical_risk_threshold is below high_risk_threshold")
        elif not (risk.low_risk_threshold <= risk.medium_risk_threshold <= risk.high_risk_threshold):
            self._fail("risk_thresholds", "Risk tier thresholds must be ascending (low <= medium <= high)")
        else:
            self._pass("risk_thresholds", "Risk tier thresholds ordered")

        feature_names = {f.name for f in self.config.features}
        for rule in self.config.risk_rules:
            check_name = f"risk_rule_{rule.feature}"
            if rule.feature not in feature_names:
                self._fail(check_name, f"Risk rule references unknown feature '{rule.feature}'",
                           suggestions=["Add the feature to the schema or remove the rule"])
            elif rule.points <= 0:
                self._fail(check_name, f"Risk rule for '{rule.feature}' must award positive points")
            elif rule.threshold_ref is not None and not hasattr(risk, rule.threshold_ref):
                self._fail(check_name, f"Unknown threshold reference '{rule.threshold_ref}'")
            elif rule.threshold_ref is None and rule.threshold is None:
                self._fail(check_name, f"Risk rule for '{rule.feature}' has no threshold")
            else:
                self._pass(check_name, f"Risk rule for '{rule.feature}' valid")

    def _log_validation_summary(self):
        if self.summary.is_valid:
            logger.debug("configuration_validated",
                         checks=self.summary.total_checks,
                         warnings=self.summary.warnings)
        else:
            logger.error("configuration_invalid",
                         critical_failures=self.summary.critical_failures,
                         failures=[r.message for r in self.summary.critical_results])

        for result in self.summary.results:
            if not result.passed and result.level == "warning":
                logger.warning("configuration_warning", check=result.check_name, message=result.message)


def validate_clustering_config(config: "ClusteringSettings") -> ValidationSummary:
    """
    Validate a clustering configuration.

    Returns:
        ValidationSummary when no critical check fails

    Raises:
        InvalidConfigError: On the first critical failure (all failures are
            attached in ``failures``)
    """
    summary = ConfigurationValidator(config).validate_all()

    if not summary.is_valid:
        first = summary.critical_results[0]
        raise InvalidConfigError(
            first.check_name,
            first.details or first.message,
            expected_format=first.message,
            failures=[r.message for r in summary.critical_results]
        )

    return summary

"""check-conditions: Report unhealthy status conditions in a Kubernetes cluster.

This package scans every resource type of a cluster, filters out conditions
that carry no signal and prints the rest, once or in a polling loop.

Example usage:
    from check_conditions import Cluster, load_config, build_classifier
    from check_conditions.models import Mode
    from check_conditions.scan import Aggregator, Scanner, ScanWorker

    cluster = Cluster(context="kind-dev")
    classifier = build_classifier(Mode.ONLY_LEGACY, load_config(), print)
    scanner = Scanner(cluster, ScanWorker(cluster, classifier))
    scanner.run_cycle(Aggregator())
"""

__version__ = "0.1.0"

from check_conditions.classify import build_classifier
from check_conditions.cli import cli
from check_conditions.cluster import Cluster
from check_conditions.config import RuleConfig, load_config
from check_conditions.exceptions import (
    CheckConditionsError,
    ClusterConnectionError,
    ConfigRuleError,
    InvalidPatternError,
    MalformedConditionError,
    ResourceListError,
    SetupError,
)

__all__ = [
    # Version
    "__version__",
    # Main CLI
    "cli",
    # Classes
    "Cluster",
    "RuleConfig",
    # Functions
    "build_classifier",
    "load_config",
    # Exceptions
    "CheckConditionsError",
    "SetupError",
    "ClusterConnectionError",
    "InvalidPatternError",
    "ConfigRuleError",
    "ResourceListError",
    "MalformedConditionError",
]

"""Heuristic condition classification.

The legacy engine decides from the condition type name alone: types ending
in "Ready" are fine when True, types ending in "Pressure" are fine when
False, and so on. The tables live in an immutable LegacyRuleSet so tests
and the comparison mode can inject their own.
"""

import re
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Mapping

from check_conditions.formatting import format_condition_line


def _freeze(table: dict[str, tuple[str, ...]]) -> Mapping[str, tuple[str, ...]]:
    return MappingProxyType(dict(table))


@dataclass(frozen=True)
class LegacyRuleSet:
    """Static tables driving the legacy classifier.

    Attributes:
        always_skip: Types that are fine with any status.
        positive_suffixes: Type suffixes meaning "good" when True.
        positive_prefixes: Type prefixes meaning "good" when True.
        negative_suffixes: Type suffixes meaning "good" when False.
        negative_affixes: (prefix, suffix) pairs meaning "good" when False.
        positive_by_resource: Extra positive types per resource name.
        negative_by_resource: Extra negative types per resource name.
        ignore_lines: Regexes searched in '<resource> <type>=<status> <reason> "<message>"'.

    """

    always_skip: frozenset[str] = frozenset()
    positive_suffixes: tuple[str, ...] = ()
    positive_prefixes: tuple[str, ...] = ()
    negative_suffixes: tuple[str, ...] = ()
    negative_affixes: tuple[tuple[str, str], ...] = ()
    positive_by_resource: Mapping[str, tuple[str, ...]] = field(default_factory=lambda: _freeze({}))
    negative_by_resource: Mapping[str, tuple[str, ...]] = field(default_factory=lambda: _freeze({}))
    ignore_lines: tuple[re.Pattern[str], ...] = ()

    def has_positive_meaning(self, resource: str, c_type: str) -> bool:
        if c_type in self.positive_by_resource.get(resource, ()):
            return True
        return c_type.endswith(self.positive_suffixes) or c_type.startswith(self.positive_prefixes)

    def has_negative_meaning(self, resource: str, c_type: str) -> bool:
        if c_type in self.negative_by_resource.get(resource, ()):
            return True
        if c_type.endswith(self.negative_suffixes):
            return True
        return any(c_type.startswith(prefix) and c_type.endswith(suffix) for prefix, suffix in self.negative_affixes)

    def ignores_line(self, line: str) -> bool:
        return any(regex.search(line) for regex in self.ignore_lines)


# Condition types which carry no health signal, whatever the strategy or status.
ALWAYS_SKIP_TYPES = frozenset(
    {
        "DisruptionAllowed",
        "LoadBalancerAttachedToNetwork",
        "NetworkAttached",
        "PodReadyToStartContainers",  # completed pods have "False"
    }
)

# To add an ignore line, take a reported line and drop the namespace, the
# object name and the age. Example:
#   longhorn-system backuptargets default Condition Unavailable=True Unavailable "backup target URL is empty" (5m21s)
# becomes
#   backuptargets Unavailable=True Unavailable "backup target URL is empty"
DEFAULT_LEGACY_RULES = LegacyRuleSet(
    always_skip=ALWAYS_SKIP_TYPES,
    positive_suffixes=(
        "Applied",
        "Approved",
        "Available",
        "Built",
        "Complete",
        "Created",
        "Downloaded",
        "Established",
        "Healthy",
        "Initialized",
        "Installed",
        "LoadBalancerAttached",
        "NamesAccepted",
        "Passed",
        "PodScheduled",
        "Progressing",
        "Provisioned",
        "Reachable",
        "Ready",
        "Reconciled",
        "RemediationAllowed",
        "Resized",
        "Succeeded",
        "Synced",
        "UpToDate",
        "ProviderUpgraded",
    ),
    positive_prefixes=("Created",),
    negative_suffixes=("Unavailable", "Pressure", "Dangling", "Unhealthy"),
    negative_affixes=(("Frequent", "Restart"),),
    positive_by_resource=_freeze(
        {
            "extensionconfigs": ("Discovered",),  # runtime.cluster.x-k8s.io
            "hetznerclusters": ("ControlPlaneEndpointSet",),
            "hetznerbaremetalmachines": ("AssociateBMHCondition",),
            "horizontalpodautoscalers": ("AbleToScale", "ScalingActive"),
            "hetznerbaremetalhosts": ("RootDeviceHintsValidated",),
            "clusters": ("ContinuousArchiving",),  # postgresql.cnpg.io
            "clusteraddons": ("ClusterAddonConfigValidated", "ClusterAddonHelmChartUntarred"),
            "engineimages": ("ready",),  # Longhorn
            "nodes": ("Schedulable", "MountPropagation"),
        }
    ),
    negative_by_resource=_freeze(
        {
            "nodes": ("KernelDeadlock", "ReadonlyFilesystem", "FrequentUnregisterNetDevice", "NTPProblem"),
            "horizontalpodautoscalers": ("ScalingLimited",),
        }
    ),
    ignore_lines=tuple(
        re.compile(pattern)
        for pattern in (
            r"machinesets MachinesReady=False Deleted @.*",
            r"machinesets Ready=False Deleted @.*",
            # Longhorn
            r'backuptargets Unavailable=True Unavailable "backup target URL is empty"',
            r"engines InstanceCreation=True",
            r"engines FilesystemReadOnly=False",
            r"replicas InstanceCreation=True",
            r"replicas FilesystemReadOnly=False",
            r"replicas WaitForBackingImage=False",
            r"volumes WaitForBackingImage=False",
            r"volumes TooManySnapshots=False",
            r"volumes Scheduled=True",
            r"volumes Restore=False",
        )
    ),
)


class LegacyClassifier:
    """Classifier driven by a LegacyRuleSet."""

    name = "legacy"

    def __init__(self, rules: LegacyRuleSet = DEFAULT_LEGACY_RULES) -> None:
        self.rules = rules

    def should_skip(self, group: str, resource: str, c_type: str, status: str, reason: str, message: str) -> bool:
        """Return True if the condition is expected and should not be reported.

        The group is not consulted by the heuristics.
        """
        rules = self.rules
        if c_type in rules.always_skip:
            return True
        if status == "True" and rules.has_positive_meaning(resource, c_type):
            return True
        if status == "False" and rules.has_negative_meaning(resource, c_type):
            return True
        return rules.ignores_line(format_condition_line(resource, c_type, status, reason, message))

    def __repr__(self) -> str:
        return f"LegacyClassifier(ignore_lines={len(self.rules.ignore_lines)})"

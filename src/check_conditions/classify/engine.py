"""Classifier strategies and the per-object classification pipeline.

A classifier answers one question for a condition: should it be skipped?
LegacyClassifier and ConfigClassifier are interchangeable; ComparingClassifier
evaluates both and lets the mode decide which one wins.
"""

from collections.abc import Callable, Iterable
from typing import TYPE_CHECKING, Protocol

from icecream import ic

from check_conditions.classify.legacy import ALWAYS_SKIP_TYPES, DEFAULT_LEGACY_RULES, LegacyClassifier, LegacyRuleSet
from check_conditions.exceptions import ConfigRuleError
from check_conditions.formatting import quote
from check_conditions.models import ConditionEntry, Mode

if TYPE_CHECKING:
    from check_conditions.config import RuleConfig

READY = "Ready"

# (type, reason) pairs which mean the object was deliberately stopped or removed.
_TERMINAL_TYPES = frozenset({"Ready", "ContainersReady", "InfrastructureReady", "MachinesReady"})
_TERMINAL_REASONS = frozenset({"PodCompleted", "InstanceTerminated", "Deleted"})


class Classifier(Protocol):
    """Decides whether a condition is expected and should not be reported."""

    name: str

    def should_skip(self, group: str, resource: str, c_type: str, status: str, reason: str, message: str) -> bool: ...


class ConfigClassifier:
    """Classifier backed by the pattern rules of a RuleConfig."""

    name = "config"

    def __init__(self, config: "RuleConfig") -> None:
        self.config = config

    def should_skip(self, group: str, resource: str, c_type: str, status: str, reason: str, message: str) -> bool:
        return self.config.should_skip(group, resource, c_type, status, reason, message)

    def __repr__(self) -> str:
        return f"ConfigClassifier({self.config!r})"


class ComparingClassifier:
    """Evaluate two classifiers; ``primary`` decides, disagreements are reported.

    Attributes:
        primary: The classifier whose verdict is used.
        secondary: The classifier only used for comparison.
        warn: Callback receiving one diagnostic line per disagreement.
        on_legacy_skip: Optional callback invoked with the six values when
            the legacy classifier skips a condition the config does not.

    """

    def __init__(
        self,
        primary: Classifier,
        secondary: Classifier,
        warn: Callable[[str], None],
        on_legacy_skip: Callable[[str, str, str, str, str, str], None] | None = None,
    ) -> None:
        self.primary = primary
        self.secondary = secondary
        self.warn = warn
        self.on_legacy_skip = on_legacy_skip
        self.name = f"{primary.name}-compare-{secondary.name}"

    def should_skip(self, group: str, resource: str, c_type: str, status: str, reason: str, message: str) -> bool:
        decision = self.primary.should_skip(group, resource, c_type, status, reason, message)
        other = self.secondary.should_skip(group, resource, c_type, status, reason, message)
        if decision != other:
            self.warn(
                f"WARNING: {self.primary.name} and {self.secondary.name} classifiers disagree: "
                f"group={quote(group)} resource={quote(resource)} type={quote(c_type)} status={quote(status)} "
                f"reason={quote(reason)} message={quote(message)} "
                f"{self.primary.name}={_verdict(decision)} {self.secondary.name}={_verdict(other)}"
            )
            legacy_skipped = decision if self.primary.name == LegacyClassifier.name else other
            if legacy_skipped and self.on_legacy_skip is not None:
                self.on_legacy_skip(group, resource, c_type, status, reason, message)
        return decision

    def __repr__(self) -> str:
        return f"ComparingClassifier(primary={self.primary!r}, secondary={self.secondary!r})"


def _verdict(skip: bool) -> str:
    return "skip" if skip else "report"


def build_classifier(
    mode: Mode,
    config: "RuleConfig",
    warn: Callable[[str], None],
    *,
    legacy_rules: LegacyRuleSet = DEFAULT_LEGACY_RULES,
    auto_add_from_legacy: bool = False,
) -> Classifier:
    """Create the classifier selected by ``mode``.

    Args:
        mode: Which classifier decides and whether the other is compared.
        config: Rules for the config classifier.
        warn: Receives disagreement diagnostics in comparison modes.
        legacy_rules: Tables for the legacy classifier.
        auto_add_from_legacy: In comparison modes, persist conditions the
            legacy classifier skips but the config does not.

    Returns:
        The classifier to use for the scan.

    """
    legacy = LegacyClassifier(legacy_rules)
    configured = ConfigClassifier(config)
    ic(mode)

    on_legacy_skip = None
    if auto_add_from_legacy:

        def on_legacy_skip(group: str, resource: str, c_type: str, status: str, reason: str, message: str) -> None:
            try:
                if config.add_legacy_ignore(group, resource, c_type, status, reason, message):
                    warn(f"WARNING: added {resource} {c_type}={status} {reason} to {config.path}")
            except ConfigRuleError as e:
                warn(f"WARNING: failed to add legacy rule to config: {e}")

    match mode:
        case Mode.ONLY_LEGACY:
            return legacy
        case Mode.ONLY_CONFIG:
            return configured
        case Mode.LEGACY_COMPARE_CONFIG:
            return ComparingClassifier(legacy, configured, warn, on_legacy_skip)
        case Mode.CONFIG_COMPARE_LEGACY:
            return ComparingClassifier(configured, legacy, warn, on_legacy_skip)
    raise ValueError(f"Unsupported mode: {mode!r}")


def is_terminal_state(c_type: str, status: str, reason: str) -> bool:
    """Return True for conditions of objects which were completed or deleted on purpose.

    Cluster API writes reasons like "Deleted @ Machine/name" for MachinesReady;
    only the part before "@" is compared.
    """
    if c_type == "MachinesReady":
        reason = reason.split("@", 1)[0].strip()
    return c_type in _TERMINAL_TYPES and reason in _TERMINAL_REASONS and status == "False"


def is_reportable(classifier: Classifier, group: str, resource: str, entry: ConditionEntry) -> bool:
    """Run one condition through the shared skip checks and the classifier."""
    if entry.type in ALWAYS_SKIP_TYPES:
        return False
    if classifier.should_skip(group, resource, entry.type, entry.status, entry.reason, entry.message):
        return False
    return not is_terminal_state(entry.type, entry.status, entry.reason)


def drop_redundant_ready(entries: Iterable[ConditionEntry]) -> list[ConditionEntry]:
    """Drop the Ready condition if another condition carries the same signal.

    Summary conditions (see cluster-api's SetSummary) repeat the status,
    reason and message of a more specific condition.
    """
    rows = list(entries)
    ready = next((row for row in rows if row.type == READY), None)
    if ready is None:
        return rows
    duplicated = any(
        row.type != READY and (row.status, row.reason, row.message) == (ready.status, ready.reason, ready.message)
        for row in rows
    )
    if not duplicated:
        return rows
    return [row for row in rows if row.type != READY]

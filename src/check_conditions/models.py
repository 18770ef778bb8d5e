"""Data models for check-conditions.

This module provides type-safe data structures shared by the classifier,
the scan pipeline and the poll controller.
"""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, NamedTuple

from check_conditions.exceptions import MalformedConditionError


class Mode(str, Enum):
    """Selects which classifier is authoritative.

    The comparison modes evaluate both classifiers and report disagreements
    on the diagnostic stream, but only the first named classifier decides.
    """

    ONLY_LEGACY = "only-legacy"
    ONLY_CONFIG = "only-config"
    LEGACY_COMPARE_CONFIG = "legacy-compare-config"
    CONFIG_COMPARE_LEGACY = "config-compare-legacy"

    @classmethod
    def parse(cls, value: str) -> "Mode":
        """Parse a mode name, accepting the historical old/new aliases.

        Args:
            value: Mode name, case insensitive.

        Returns:
            The matching Mode.

        Raises:
            ValueError: If the name is unknown.

        """
        normalized = value.strip().lower()
        normalized = _MODE_ALIASES.get(normalized, normalized)
        return cls(normalized)

    @property
    def compares(self) -> bool:
        """Whether both classifiers are evaluated."""
        return self in (Mode.LEGACY_COMPARE_CONFIG, Mode.CONFIG_COMPARE_LEGACY)


_MODE_ALIASES = {
    "only-old": Mode.ONLY_LEGACY.value,
    "only-new": Mode.ONLY_CONFIG.value,
    "old-compare-new": Mode.LEGACY_COMPARE_CONFIG.value,
    "new-compare-old": Mode.CONFIG_COMPARE_LEGACY.value,
}


class RegexMode(str, Enum):
    """How a user pattern controls repeated polling."""

    WAIT_FOR = "waitfor"
    WHILE = "while"


class ResourceTypeDescriptor(NamedTuple):
    """One kind of object in the cluster.

    Attributes:
        group: API group, empty for the core group.
        version: API version within the group.
        name: Plural resource name (e.g. 'pods').
        namespaced: Whether objects of this type live in namespaces.

    """

    group: str
    version: str
    name: str
    namespaced: bool

    @property
    def group_version(self) -> str:
        """The 'group/version' string, or just the version for the core group."""
        if not self.group:
            return self.version
        return f"{self.group}/{self.version}"


@dataclass(frozen=True, slots=True)
class ConditionEntry:
    """A single health entry reported by a cluster object.

    Attributes:
        type: Condition type, e.g. 'Ready'.
        status: 'True', 'False' or 'Unknown'.
        reason: Machine readable reason, may be empty.
        message: Human readable message, may be empty.
        last_transition_time: When the status last changed, if known.

    """

    type: str
    status: str
    reason: str = ""
    message: str = ""
    last_transition_time: datetime | None = None

    @classmethod
    def from_dict(cls, raw: Any) -> "ConditionEntry":
        """Build an entry from the raw mapping found in an object.

        Missing or non-string fields are treated as empty strings. An
        unparseable lastTransitionTime is treated as unknown.

        Args:
            raw: One element of the object's conditions list.

        Returns:
            The parsed ConditionEntry.

        Raises:
            MalformedConditionError: If the element is not a mapping.

        """
        if not isinstance(raw, dict):
            raise MalformedConditionError(f"Invalid condition format: expected a mapping, got {type(raw).__name__}")
        return cls(
            type=_as_str(raw.get("type")),
            status=_as_str(raw.get("status")),
            reason=_as_str(raw.get("reason")),
            message=_as_str(raw.get("message")),
            last_transition_time=_parse_timestamp(raw.get("lastTransitionTime")),
        )


def _as_str(value: Any) -> str:
    return value if isinstance(value, str) else ""


def _parse_timestamp(value: Any) -> datetime | None:
    if not isinstance(value, str) or not value:
        return None
    try:
        # RFC 3339 as written by the API server, e.g. 2024-01-02T03:04:05Z
        return datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        return None


@dataclass(slots=True)
class JobResult:
    """Output of one worker for one resource type.

    Attributes:
        descriptor: The resource type that was scanned.
        resource_types: 1 if the type was scanned, else 0.
        objects: Number of objects inspected.
        conditions: Number of condition entries inspected.
        lines: Report lines for entries that were not suppressed.
        error: Error message if listing failed.
        worker: Name of the worker thread.

    """

    descriptor: ResourceTypeDescriptor
    resource_types: int = 0
    objects: int = 0
    conditions: int = 0
    lines: list[str] = field(default_factory=list)
    error: str | None = None
    worker: str = ""


@dataclass(slots=True)
class CycleCounters:
    """Cycle-wide counters, owned and mutated by the aggregator only."""

    resource_types: int = 0
    objects: int = 0
    conditions: int = 0
    reported_any: bool = False
    check_again: bool = False


@dataclass(frozen=True, slots=True)
class ScanSettings:
    """Runtime settings collected from the command line.

    Attributes:
        verbose: Print one line per scanned resource type.
        sleep: Seconds to wait between cycles.
        timeout: Seconds a whole scan cycle may take, 0 for no limit.
        name: Label printed in poll notices.
        namespace: Restrict the scan to one namespace.
        retry_count: Attempts for the first cluster connection, 0 for forever.
        workers: Number of concurrent list workers.
        mode: Which classifier decides.
        auto_add_from_legacy: Persist rules the legacy engine would suppress.

    """

    verbose: bool = False
    sleep: float = 15.0
    timeout: float = 0.0
    name: str = ""
    namespace: str | None = None
    retry_count: int = 5
    workers: int = 10
    mode: Mode = Mode.ONLY_LEGACY
    auto_add_from_legacy: bool = False

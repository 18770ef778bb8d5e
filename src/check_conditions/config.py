"""Rule configuration for the config driven classifier.

The config file lists, per resource, condition types that are expected when
True (``skipIfTrue``) or when False (``skipIfFalse``). It is looked up by
walking upwards from the working directory, and a built-in file shipped with
the package provides rules equivalent to the legacy heuristics.
"""

import os
import threading
from dataclasses import dataclass, field
from importlib import resources
from pathlib import Path
from typing import Any, NamedTuple

import yaml
from icecream import ic

from check_conditions.classify.patterns import WILDCARD, ClassificationRule, RuleIndex, wildcard_or
from check_conditions.exceptions import ConfigRuleError

CONFIG_REL_PATH = Path(".config") / "check-conditions" / "check-conditions.yaml"
BUILTIN_CONFIG = "builtin-config.yaml"

_TOP_LEVEL_KEYS = {"resources", "conditionPaths"}
_RESOURCE_KEYS = {"name", "resourceGroup", "group", "skipIfTrue", "skipIfFalse"}
_MATCHER_KEYS = {"type", "status", "reason", "message"}


class ConditionMatcher(NamedTuple):
    """One ignore entry of a resource: condition type plus optional reason and message."""

    type: str
    reason: str = ""
    message: str = ""


@dataclass
class ResourceConfig:
    """How conditions of one resource (group + name) are treated."""

    name: str
    resource_group: str = ""
    skip_if_true: list[ConditionMatcher] = field(default_factory=list)
    skip_if_false: list[ConditionMatcher] = field(default_factory=list)


def canonical_group(group: str) -> str:
    """Map the 'core' spelling of the core API group to ''."""
    stripped = group.strip()
    if stripped.lower() == "core":
        return ""
    return stripped


def find_config_path(start: Path | None = None) -> Path | None:
    """Walk upwards from ``start`` looking for the config file.

    The walk stops before checking '/' and '/home'.

    Args:
        start: Directory to start from, the working directory by default.

    Returns:
        The path of the first config file found, or None.

    Raises:
        ConfigRuleError: If a candidate exists but cannot be inspected.

    """
    directory = (start or Path.cwd()).resolve()
    stop = {Path("/"), Path("/home")}
    while True:
        candidate = directory / CONFIG_REL_PATH
        try:
            if candidate.is_file():
                return candidate
        except OSError as e:
            raise ConfigRuleError(f"Checking config at {candidate} failed: {e}") from e
        parent = directory.parent
        if parent == directory or parent in stop:
            return None
        directory = parent


def default_config_path() -> Path:
    """Location used when a config file has to be created."""
    return Path.home() / CONFIG_REL_PATH


class RuleConfig:
    """Condition rules loaded from YAML, plus rules added at runtime.

    Attributes:
        resources: Resource entries of the user file, written back by save().
        condition_paths: Extra per-resource locations of the conditions list.
        path: File the user entries are loaded from and saved to.

    """

    def __init__(self, path: Path | None = None) -> None:
        self.resources: list[ResourceConfig] = []
        self.condition_paths: dict[str, tuple[str, ...]] = {}
        self.path: Path | None = path
        self._index = RuleIndex()
        self._lock = threading.RLock()

    def __repr__(self) -> str:
        return f"RuleConfig(path={str(self.path) if self.path else None!r}, rules={len(self._index)})"

    @property
    def rules(self) -> tuple[ClassificationRule, ...]:
        """All rules currently indexed, built-in ones included."""
        return self._index.rules

    def add_rule(self, group: str, resource: str, c_type: str, status: str, reason: str, message: str) -> bool:
        """Insert a rule; every argument is a pattern where '*' matches anything.

        Returns:
            True if the rule was new.

        Raises:
            ConfigRuleError: If a pattern cannot be compiled.

        """
        with self._lock:
            return self._index.add(ClassificationRule(group, resource, c_type, status, reason, message))

    def should_skip(self, group: str, resource: str, c_type: str, status: str, reason: str, message: str) -> bool:
        """Return True if any rule matches the condition."""
        with self._lock:
            return self._index.matches(group, resource, c_type, status, reason, message)

    def load_document(self, document: Any, source: str, *, keep: bool) -> None:
        """Validate a parsed YAML document and index its rules.

        Args:
            document: The result of yaml.safe_load.
            source: Name used in error messages.
            keep: Whether the resource entries belong to the user file.

        Raises:
            ConfigRuleError: If the document is malformed.

        """
        if document is None:
            return
        if not isinstance(document, dict):
            raise ConfigRuleError(f"{source}: expected a mapping at the top level")
        _reject_unknown(document, _TOP_LEVEL_KEYS, source)

        raw_resources = document.get("resources") or []
        if not isinstance(raw_resources, list):
            raise ConfigRuleError(f"{source}: 'resources' must be a list")
        parsed = [_parse_resource(raw, source) for raw in raw_resources]
        for resource in parsed:
            self._index_resource(resource, source)
        if keep:
            self.resources.extend(parsed)

        raw_paths = document.get("conditionPaths") or {}
        if not isinstance(raw_paths, dict):
            raise ConfigRuleError(f"{source}: 'conditionPaths' must be a mapping")
        for resource_name, dotted in raw_paths.items():
            if not isinstance(resource_name, str) or not isinstance(dotted, str) or not dotted.strip():
                raise ConfigRuleError(f"{source}: conditionPaths entry {resource_name!r} must map to a dotted path")
            self.condition_paths[resource_name] = tuple(dotted.strip().split("."))

    def _index_resource(self, resource: ResourceConfig, source: str) -> None:
        if not resource.resource_group.strip():
            raise ConfigRuleError(f"{source}: resource {resource.name!r} missing group")
        group = canonical_group(resource.resource_group)
        name = wildcard_or(resource.name)
        for status, matchers in (("True", resource.skip_if_true), ("False", resource.skip_if_false)):
            for matcher in matchers:
                try:
                    self.add_rule(group, name, matcher.type, status, wildcard_or(matcher.reason), wildcard_or(matcher.message))
                except ConfigRuleError as e:
                    raise ConfigRuleError(f"{source}: {e}") from e

    def add_legacy_ignore(self, group: str, resource: str, c_type: str, status: str, reason: str, message: str) -> bool:
        """Record a condition the legacy engine suppresses and persist the file.

        Args:
            group: API group, '' for the core group.
            resource: Resource name.
            c_type: Condition type.
            status: 'True', 'False', or '' / '*' for both.
            reason: Reason, '' or '*' for any.
            message: Message, '' or '*' for any.

        Returns:
            True if a new entry was added.

        Raises:
            ConfigRuleError: If no path is set or the file cannot be written.

        """
        if self.path is None:
            raise ConfigRuleError("config path not set")
        entry = ConditionMatcher(
            type=c_type,
            reason="" if reason in ("", WILDCARD) else reason,
            message="" if message in ("", WILDCARD) else message,
        )
        statuses = _statuses_for(status)
        with self._lock:
            target = self._ensure_resource(group.strip() or "core", resource)
            added = False
            for value in statuses:
                matchers = target.skip_if_true if value == "True" else target.skip_if_false
                if entry not in matchers:
                    matchers.append(entry)
                    added = True
            if not added:
                return False
            for value in statuses:
                self.add_rule(
                    canonical_group(group), resource, c_type, value, wildcard_or(entry.reason), wildcard_or(entry.message)
                )
            ic(target)
            self.save()
        return True

    def _ensure_resource(self, group: str, name: str) -> ResourceConfig:
        for resource in self.resources:
            if resource.name == name and canonical_group(resource.resource_group) == canonical_group(group):
                return resource
        resource = ResourceConfig(name=name, resource_group=group)
        self.resources.append(resource)
        return resource

    def to_document(self) -> dict[str, Any]:
        """Return the user entries as a YAML-ready document."""
        items: list[dict[str, Any]] = []
        for resource in self.resources:
            item: dict[str, Any] = {"name": resource.name}
            if resource.resource_group:
                item["resourceGroup"] = resource.resource_group
            if resource.skip_if_true:
                item["skipIfTrue"] = [_dump_matcher(m) for m in resource.skip_if_true]
            if resource.skip_if_false:
                item["skipIfFalse"] = [_dump_matcher(m) for m in resource.skip_if_false]
            items.append(item)
        document: dict[str, Any] = {"resources": items}
        if self.condition_paths:
            document["conditionPaths"] = {name: ".".join(path) for name, path in self.condition_paths.items()}
        return document

    def save(self) -> None:
        """Write the user entries to ``path``.

        Raises:
            ConfigRuleError: If no path is set or writing fails.

        """
        if self.path is None:
            raise ConfigRuleError("config path not set")
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            with open(self.path, "w") as stream:
                yaml.safe_dump(self.to_document(), stream, sort_keys=False)
            os.chmod(self.path, 0o600)
        except OSError as e:
            raise ConfigRuleError(f"Unable to write config at {self.path}: {e}") from e


def _statuses_for(status: str) -> tuple[str, ...]:
    normalized = status.strip().lower()
    if normalized == "true":
        return ("True",)
    if normalized == "false":
        return ("False",)
    return ("True", "False")


def _dump_matcher(matcher: ConditionMatcher) -> dict[str, str]:
    item = {"type": matcher.type}
    if matcher.reason.strip():
        item["reason"] = matcher.reason
    if matcher.message.strip():
        item["message"] = matcher.message
    return item


def _reject_unknown(mapping: dict[str, Any], allowed: set[str], source: str) -> None:
    unknown = sorted(str(key) for key in mapping if key not in allowed)
    if unknown:
        raise ConfigRuleError(f"{source}: unknown field(s) {', '.join(unknown)}")


def _parse_resource(raw: Any, source: str) -> ResourceConfig:
    if not isinstance(raw, dict):
        raise ConfigRuleError(f"{source}: each resource entry must be a mapping")
    _reject_unknown(raw, _RESOURCE_KEYS, source)
    name = str(raw.get("name") or "")
    group = raw.get("resourceGroup") or raw.get("group") or ""
    resource = ResourceConfig(name=name, resource_group=str(group))
    resource.skip_if_true = _parse_matchers(raw.get("skipIfTrue"), name, "skipIfTrue", source)
    resource.skip_if_false = _parse_matchers(raw.get("skipIfFalse"), name, "skipIfFalse", source)
    return resource


def _parse_matchers(raw: Any, resource_name: str, field_name: str, source: str) -> list[ConditionMatcher]:
    if raw is None:
        return []
    if not isinstance(raw, list):
        raise ConfigRuleError(f"{source}: resource {resource_name!r} {field_name} must be a list")
    matchers: list[ConditionMatcher] = []
    for entry in raw:
        if not isinstance(entry, dict):
            raise ConfigRuleError(f"{source}: resource {resource_name!r} {field_name} entries must be mappings")
        _reject_unknown(entry, _MATCHER_KEYS, source)
        if str(entry.get("status") or "").strip():
            raise ConfigRuleError(f"{source}: resource {resource_name!r} {field_name} entry must not set status")
        c_type = str(entry.get("type") or "")
        if not c_type:
            raise ConfigRuleError(f"{source}: resource {resource_name!r} ignore entry missing type")
        matchers.append(
            ConditionMatcher(type=c_type, reason=str(entry.get("reason") or ""), message=str(entry.get("message") or ""))
        )
    return matchers


def _read_yaml(text: str, source: str) -> Any:
    try:
        return yaml.safe_load(text)
    except yaml.YAMLError as e:
        raise ConfigRuleError(f"Unable to parse config at {source}: {e}") from e


def load_config(path: Path | None = None, *, skip_builtin: bool = False) -> RuleConfig:
    """Build the rule config from the built-in file and the user file.

    Args:
        path: User config file. When None the file is searched for with
              find_config_path(). A missing file is not an error.
        skip_builtin: Do not load the rules shipped with the package.

    Returns:
        The loaded RuleConfig; its ``path`` is set when a user file was found.

    Raises:
        ConfigRuleError: If a file cannot be read or is malformed.

    """
    config = RuleConfig()
    if not skip_builtin:
        builtin = resources.files("check_conditions").joinpath("data").joinpath(BUILTIN_CONFIG).read_text()
        config.load_document(_read_yaml(builtin, BUILTIN_CONFIG), BUILTIN_CONFIG, keep=False)

    if path is None:
        path = find_config_path()
    if path is None:
        return config

    try:
        text = Path(path).read_text()
    except FileNotFoundError:
        return config
    except OSError as e:
        raise ConfigRuleError(f"Unable to read config at {path}: {e}") from e

    config.path = Path(path)
    config.load_document(_read_yaml(text, str(path)), str(path), keep=True)
    ic(config)
    return config


def ensure_config_path(config: RuleConfig) -> bool:
    """Make sure the config has a file to persist to, creating one if needed.

    Returns:
        True if a new file was created.

    """
    if config.path is not None:
        return False
    config.path = default_config_path()
    if config.path.exists():
        config.load_document(_read_yaml(config.path.read_text(), str(config.path)), str(config.path), keep=True)
        return False
    config.save()
    return True

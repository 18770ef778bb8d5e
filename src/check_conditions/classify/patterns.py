"""Pattern rules for the config driven classifier.

A rule is six glob-like patterns, one per condition attribute. Rules are
stored in a nested index keyed by the raw pattern strings
(group -> resource -> type -> status -> reason -> message), so rules sharing
a prefix share the compiled regexes of that prefix.
"""

import re
from dataclasses import dataclass, field
from typing import NamedTuple

from check_conditions.exceptions import ConfigRuleError

WILDCARD = "*"


def compile_pattern(value: str) -> re.Pattern[str]:
    """Compile a glob-like pattern into an anchored regex.

    Everything is literal except '*', which matches any run of characters.

    Args:
        value: The pattern, e.g. 'Frequent*Restart' or '*'.

    Returns:
        The compiled regular expression.

    Raises:
        ConfigRuleError: If the resulting regex does not compile.

    """
    escaped = re.escape(value).replace(r"\*", ".*")
    try:
        return re.compile(f"^{escaped}$", re.DOTALL)
    except re.error as e:
        raise ConfigRuleError(f"Invalid pattern {value!r}: {e}") from e


def wildcard_or(value: str | None) -> str:
    """Return the value, or the match-any wildcard if it is empty."""
    if not value:
        return WILDCARD
    return value


class ClassificationRule(NamedTuple):
    """Six patterns describing conditions that should be suppressed."""

    group: str
    resource: str
    type: str
    status: str
    reason: str
    message: str

    def matches(self, group: str, resource: str, c_type: str, status: str, reason: str, message: str) -> bool:
        """Check the rule against one condition by compiling each pattern."""
        values = (group, resource, c_type, status, reason, message)
        return all(compile_pattern(pattern).match(value) for pattern, value in zip(self, values, strict=True))


@dataclass
class _Node:
    regex: re.Pattern[str]
    children: dict[str, "_Node"] = field(default_factory=dict)


class RuleIndex:
    """Nested index of classification rules.

    Lookup walks every branch whose pattern matches, so the result is the
    same as evaluating each inserted rule in turn (see ``matches_flat``).
    """

    _DEPTH = 6

    def __init__(self) -> None:
        self._root: dict[str, _Node] = {}
        self._rules: list[ClassificationRule] = []

    def __len__(self) -> int:
        return len(self._rules)

    def __contains__(self, rule: object) -> bool:
        return rule in self._rules

    @property
    def rules(self) -> tuple[ClassificationRule, ...]:
        """Inserted rules in insertion order."""
        return tuple(self._rules)

    def add(self, rule: ClassificationRule) -> bool:
        """Insert a rule.

        Args:
            rule: The rule to insert.

        Returns:
            True if the rule was new, False if it was already indexed.

        Raises:
            ConfigRuleError: If a pattern cannot be compiled.

        """
        if rule in self._rules:
            return False
        level = self._root
        for attribute, pattern in zip(ClassificationRule._fields, rule, strict=True):
            node = level.get(pattern)
            if node is None:
                try:
                    node = _Node(regex=compile_pattern(pattern))
                except ConfigRuleError as e:
                    raise ConfigRuleError(f"{attribute} pattern {pattern!r}: {e}") from e
                level[pattern] = node
            level = node.children
        self._rules.append(rule)
        return True

    def matches(self, group: str, resource: str, c_type: str, status: str, reason: str, message: str) -> bool:
        """Return True if any inserted rule matches all six values."""
        return self._match(self._root, (group, resource, c_type, status, reason, message), 0)

    def _match(self, level: dict[str, _Node], values: tuple[str, ...], depth: int) -> bool:
        value = values[depth]
        for node in level.values():
            if not node.regex.match(value):
                continue
            if depth == self._DEPTH - 1:
                return True
            if self._match(node.children, values, depth + 1):
                return True
        return False

    def matches_flat(self, group: str, resource: str, c_type: str, status: str, reason: str, message: str) -> bool:
        """Evaluate every rule in insertion order, without the index."""
        return any(rule.matches(group, resource, c_type, status, reason, message) for rule in self._rules)

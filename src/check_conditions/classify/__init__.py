"""Condition classification subpackage.

This package contains the legacy heuristic classifier, the pattern rules of
the config driven classifier, and the strategies combining them.
"""

from check_conditions.classify.engine import (
    Classifier,
    ComparingClassifier,
    ConfigClassifier,
    build_classifier,
    drop_redundant_ready,
    is_reportable,
    is_terminal_state,
)
from check_conditions.classify.legacy import ALWAYS_SKIP_TYPES, DEFAULT_LEGACY_RULES, LegacyClassifier, LegacyRuleSet
from check_conditions.classify.patterns import ClassificationRule, RuleIndex, compile_pattern

__all__ = [
    # engine
    "Classifier",
    "ComparingClassifier",
    "ConfigClassifier",
    "build_classifier",
    "drop_redundant_ready",
    "is_reportable",
    "is_terminal_state",
    # legacy
    "ALWAYS_SKIP_TYPES",
    "DEFAULT_LEGACY_RULES",
    "LegacyClassifier",
    "LegacyRuleSet",
    # patterns
    "ClassificationRule",
    "RuleIndex",
    "compile_pattern",
]

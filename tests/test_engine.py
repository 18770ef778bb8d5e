"""Tests for classify/engine.py module."""

from unittest.mock import MagicMock

import pytest

from check_conditions.classify.engine import (
    ComparingClassifier,
    ConfigClassifier,
    build_classifier,
    drop_redundant_ready,
    is_reportable,
    is_terminal_state,
)
from check_conditions.classify.legacy import ALWAYS_SKIP_TYPES, LegacyClassifier, LegacyRuleSet
from check_conditions.config import RuleConfig, load_config
from check_conditions.models import ConditionEntry, Mode


def entry(c_type, status, reason="", message=""):
    return ConditionEntry(type=c_type, status=status, reason=reason, message=message)


class TestTerminalState:
    """Tests for expected terminal states."""

    @pytest.mark.parametrize(
        ("c_type", "reason"),
        [
            ("Ready", "PodCompleted"),
            ("ContainersReady", "PodCompleted"),
            ("InfrastructureReady", "InstanceTerminated"),
            ("MachinesReady", "Deleted @ Machine/m-1"),
            ("MachinesReady", "Deleted"),
        ],
    )
    def test_terminal_states(self, c_type, reason):
        """Test completed and deleted objects are terminal when False."""
        assert is_terminal_state(c_type, "False", reason)

    def test_true_is_not_terminal(self):
        """Test status True is never terminal."""
        assert not is_terminal_state("Ready", "True", "PodCompleted")

    def test_other_reason_is_not_terminal(self):
        """Test unrelated reasons are reported."""
        assert not is_terminal_state("Ready", "False", "CrashLoop")

    def test_at_suffix_only_for_machines_ready(self):
        """Test the '@' split only applies to MachinesReady."""
        assert not is_terminal_state("Ready", "False", "Deleted @ Machine/m-1")

    def test_terminal_applies_to_every_classifier(self):
        """Test terminal states are dropped even if the classifier reports them."""
        classifier = LegacyClassifier(LegacyRuleSet())
        assert not is_reportable(classifier, "", "pods", entry("Ready", "False", "PodCompleted"))
        assert is_reportable(classifier, "", "pods", entry("Ready", "False", "CrashLoop"))


class TestAlwaysSkip:
    """Tests for types that are never reported."""

    @pytest.mark.parametrize("mode", list(Mode))
    @pytest.mark.parametrize("status", ["True", "False", "Unknown"])
    @pytest.mark.parametrize("c_type", sorted(ALWAYS_SKIP_TYPES))
    def test_never_reported_in_any_mode(self, isolated_config, mode, status, c_type):
        """Test always-skip types are dropped whatever the mode and status."""
        warn = MagicMock()
        classifier = build_classifier(mode, load_config(), warn)
        assert not is_reportable(classifier, "policy", "poddisruptionbudgets", entry(c_type, status))
        warn.assert_not_called()

    def test_not_taken_from_injected_tables(self):
        """Test empty legacy tables do not bring always-skip types back."""
        classifier = build_classifier(Mode.ONLY_LEGACY, RuleConfig(), MagicMock(), legacy_rules=LegacyRuleSet())
        assert not is_reportable(classifier, "", "pods", entry("PodReadyToStartContainers", "Unknown"))
        assert is_reportable(classifier, "", "pods", entry("Weird", "Unknown"))


class TestDropRedundantReady:
    """Tests for Ready suppression."""

    def test_ready_duplicate_is_dropped(self):
        """Test Ready is dropped when another entry has the same status, reason and message."""
        rows = [entry("Ready", "False", "R", "M"), entry("Specific", "False", "R", "M")]
        assert [row.type for row in drop_redundant_ready(rows)] == ["Specific"]

    def test_ready_kept_when_different(self):
        """Test Ready is kept when no other entry duplicates it."""
        rows = [entry("Ready", "False", "R", "M"), entry("Specific", "False", "R", "other")]
        assert [row.type for row in drop_redundant_ready(rows)] == ["Ready", "Specific"]

    def test_ready_alone(self):
        """Test a single Ready entry is kept."""
        rows = [entry("Ready", "False", "R", "M")]
        assert drop_redundant_ready(rows) == rows


class TestComparingClassifier:
    """Tests for the dual-mode comparison."""

    def _classifiers(self, primary_skip, secondary_skip):
        primary = MagicMock()
        primary.name = "legacy"
        primary.should_skip.return_value = primary_skip
        secondary = MagicMock()
        secondary.name = "config"
        secondary.should_skip.return_value = secondary_skip
        return primary, secondary

    def test_agreement_is_silent(self):
        """Test no warning when both classifiers agree."""
        warn = MagicMock()
        primary, secondary = self._classifiers(True, True)
        assert ComparingClassifier(primary, secondary, warn).should_skip("", "pods", "Ready", "True", "", "")
        warn.assert_not_called()

    def test_disagreement_warns_and_primary_decides(self):
        """Test a disagreement is reported and the primary verdict is returned."""
        warn = MagicMock()
        primary, secondary = self._classifiers(False, True)
        classifier = ComparingClassifier(primary, secondary, warn)

        assert not classifier.should_skip("", "pods", "Ready", "False", "CrashLoop", "boom")

        warn.assert_called_once()
        line = warn.call_args[0][0]
        assert line.startswith("WARNING: ")
        assert 'type="Ready"' in line
        assert 'message="boom"' in line
        assert "legacy=report config=skip" in line

    def test_legacy_skip_callback(self):
        """Test the callback fires when the legacy side skips."""
        callback = MagicMock()
        primary, secondary = self._classifiers(True, False)
        ComparingClassifier(primary, secondary, MagicMock(), callback).should_skip("g", "r", "T", "True", "x", "y")
        callback.assert_called_once_with("g", "r", "T", "True", "x", "y")

    def test_no_callback_when_config_skips(self):
        """Test the callback is not invoked when only the config side skips."""
        callback = MagicMock()
        primary, secondary = self._classifiers(False, True)
        ComparingClassifier(primary, secondary, MagicMock(), callback).should_skip("g", "r", "T", "True", "x", "y")
        callback.assert_not_called()


class TestBuildClassifier:
    """Tests for mode selection."""

    def test_only_legacy(self):
        """Test the legacy classifier is used alone."""
        assert isinstance(build_classifier(Mode.ONLY_LEGACY, RuleConfig(), MagicMock()), LegacyClassifier)

    def test_only_config(self):
        """Test the config classifier is used alone."""
        assert isinstance(build_classifier(Mode.ONLY_CONFIG, RuleConfig(), MagicMock()), ConfigClassifier)

    def test_compare_modes(self):
        """Test the comparison modes order the classifiers."""
        classifier = build_classifier(Mode.CONFIG_COMPARE_LEGACY, RuleConfig(), MagicMock())
        assert isinstance(classifier, ComparingClassifier)
        assert classifier.primary.name == "config"
        assert classifier.secondary.name == "legacy"

    def test_only_legacy_ignores_config(self):
        """Test changing the rule config does not change legacy verdicts."""
        config = RuleConfig()
        classifier = build_classifier(Mode.ONLY_LEGACY, config, MagicMock())
        before = classifier.should_skip("", "pods", "Weird", "True", "", "")
        config.add_rule("*", "*", "*", "*", "*", "*")
        assert classifier.should_skip("", "pods", "Weird", "True", "", "") == before

    def test_only_config_ignores_legacy_tables(self):
        """Test changing the legacy tables does not change config verdicts."""
        config = RuleConfig()
        config.add_rule("", "pods", "Weird", "True", "*", "*")
        default = build_classifier(Mode.ONLY_CONFIG, config, MagicMock())
        empty = build_classifier(Mode.ONLY_CONFIG, config, MagicMock(), legacy_rules=LegacyRuleSet())
        for args in (("", "pods", "Weird", "True", "", ""), ("", "pods", "Ready", "True", "", "")):
            assert default.should_skip(*args) == empty.should_skip(*args)

    def test_auto_add_persists_legacy_skip(self, tmp_path):
        """Test auto-add writes conditions the legacy classifier skips."""
        config = RuleConfig(path=tmp_path / "rules.yaml")
        warn = MagicMock()
        classifier = build_classifier(Mode.LEGACY_COMPARE_CONFIG, config, warn, auto_add_from_legacy=True)

        assert classifier.should_skip("", "pods", "ContainersReady", "True", "", "")

        assert config.should_skip("", "pods", "ContainersReady", "True", "", "")
        assert (tmp_path / "rules.yaml").exists()
        assert any("added" in call.args[0] for call in warn.call_args_list)


class TestBuiltinEquivalence:
    """Tests that the built-in rules reproduce the legacy heuristics."""

    @pytest.mark.parametrize(
        "values",
        [
            ("", "pods", "Ready", "True", "", ""),
            ("", "pods", "Ready", "False", "CrashLoop", "boom"),
            ("", "nodes", "MemoryPressure", "False", "", ""),
            ("", "nodes", "FrequentContainerRestart", "False", "", ""),
            ("", "nodes", "ContainerRestart", "False", "", ""),
            ("policy", "poddisruptionbudgets", "DisruptionAllowed", "False", "", ""),
            ("autoscaling", "horizontalpodautoscalers", "ScalingLimited", "False", "", ""),
            ("apps", "deployments", "ReplicaFailure", "True", "FailedCreate", ""),
        ],
    )
    def test_same_verdict(self, isolated_config, values):
        """Test built-in config and legacy tables agree on common conditions."""
        config = load_config()
        assert ConfigClassifier(config).should_skip(*values) == LegacyClassifier().should_skip(*values)

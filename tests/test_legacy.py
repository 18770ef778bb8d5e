"""Tests for classify/legacy.py module."""

import re

import pytest

from check_conditions.classify.legacy import DEFAULT_LEGACY_RULES, LegacyClassifier, LegacyRuleSet


@pytest.fixture
def legacy():
    return LegacyClassifier()


class TestAlwaysSkip:
    """Tests for types that are fine with any status."""

    @pytest.mark.parametrize("c_type", sorted(DEFAULT_LEGACY_RULES.always_skip))
    @pytest.mark.parametrize("status", ["True", "False", "Unknown"])
    def test_always_skipped(self, legacy, c_type, status):
        """Test always-skip types are skipped regardless of status."""
        assert legacy.should_skip("", "pods", c_type, status, "Whatever", "msg")


class TestPositiveMeaning:
    """Tests for types which are good when True."""

    def test_generic_suffix_true_is_skipped(self, legacy):
        """Test a type ending in Ready is skipped when True."""
        assert legacy.should_skip("", "pods", "ContainersReady", "True", "", "")

    def test_generic_suffix_false_is_reported(self, legacy):
        """Test the same type is reported when False."""
        assert not legacy.should_skip("", "pods", "ContainersReady", "False", "ContainersNotReady", "")

    def test_created_prefix(self, legacy):
        """Test the Created prefix marks positive meaning."""
        assert legacy.should_skip("", "foos", "CreatedSomething", "True", "", "")

    def test_per_resource_type(self, legacy):
        """Test per-resource positive types only apply to their resource."""
        assert legacy.should_skip("autoscaling", "horizontalpodautoscalers", "AbleToScale", "True", "", "")
        assert not legacy.should_skip("", "pods", "AbleToScale", "True", "", "")


class TestNegativeMeaning:
    """Tests for types which are good when False."""

    def test_pressure_false_is_skipped(self, legacy):
        """Test node pressure types are skipped when False."""
        assert legacy.should_skip("", "nodes", "MemoryPressure", "False", "KubeletHasSufficientMemory", "")

    def test_pressure_true_is_reported(self, legacy):
        """Test node pressure types are reported when True."""
        assert not legacy.should_skip("", "nodes", "MemoryPressure", "True", "KubeletHasInsufficientMemory", "")

    def test_frequent_restart(self, legacy):
        """Test FrequentContainerRestart=False is suppressed but ContainerRestart=False is not."""
        assert legacy.should_skip("", "nodes", "FrequentContainerRestart", "False", "", "")
        assert not legacy.should_skip("", "nodes", "ContainerRestart", "False", "", "")

    def test_per_resource_type(self, legacy):
        """Test per-resource negative types."""
        assert legacy.should_skip("", "nodes", "KernelDeadlock", "False", "KernelHasNoDeadlock", "")
        assert not legacy.should_skip("", "pods", "KernelDeadlock", "False", "KernelHasNoDeadlock", "")


class TestIgnoreLines:
    """Tests for the ignore-line regexes."""

    def test_longhorn_line_is_skipped(self, legacy):
        """Test a known Longhorn line is ignored."""
        assert legacy.should_skip(
            "longhorn.io", "backuptargets", "Unavailable", "True", "Unavailable", "backup target URL is empty"
        )

    def test_other_message_is_reported(self, legacy):
        """Test the ignore line requires the exact message."""
        assert not legacy.should_skip(
            "longhorn.io", "backuptargets", "Unavailable", "True", "Unavailable", "connection refused"
        )

    def test_machineset_deleted(self, legacy):
        """Test machinesets being deleted are ignored."""
        assert legacy.should_skip(
            "cluster.x-k8s.io", "machinesets", "MachinesReady", "False", "Deleted @ Machine/m-1", ""
        )


class TestInjectedRules:
    """Tests for classifiers built from custom tables."""

    def test_empty_rules_report_everything(self):
        """Test an empty rule set skips nothing."""
        classifier = LegacyClassifier(LegacyRuleSet())
        assert not classifier.should_skip("", "pods", "Ready", "True", "", "")
        assert not classifier.should_skip("", "pods", "DisruptionAllowed", "True", "", "")

    def test_custom_ignore_line(self):
        """Test a custom ignore line is searched, not anchored."""
        classifier = LegacyClassifier(LegacyRuleSet(ignore_lines=(re.compile("Flaky=True"),)))
        assert classifier.should_skip("", "widgets", "Flaky", "True", "Because", "it is")

    def test_rule_set_is_immutable(self):
        """Test the default tables cannot be changed at runtime."""
        with pytest.raises(TypeError):
            DEFAULT_LEGACY_RULES.positive_by_resource["pods"] = ("Foo",)  # type: ignore[index]


class TestDeterminism:
    """Tests that classification has no state."""

    def test_same_input_same_verdict(self, legacy):
        """Test classifying the same tuple twice yields the same verdict."""
        args = ("apps", "deployments", "ReplicaFailure", "True", "FailedCreate", "quota exceeded")
        assert legacy.should_skip(*args) == legacy.should_skip(*args)

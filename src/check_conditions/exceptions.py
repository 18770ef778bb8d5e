"""Custom exceptions for check-conditions.

This module defines the exception hierarchy used throughout the application.
Fatal errors (setup and rule configuration problems) end the process, while
per-resource-type and per-condition errors are contained within their job.
"""


class CheckConditionsError(Exception):
    """Base exception for all check-conditions errors.

    All custom exceptions in this package inherit from this class,
    allowing callers to catch all check-conditions errors with a single
    except clause if desired.
    """

    pass


class SetupError(CheckConditionsError):
    """Raised when the tool cannot start or keep running.

    Setup errors are fatal and are reported with a failure exit code that
    differs from the "unhealthy conditions were found" exit code.
    """

    pass


class ClusterConnectionError(SetupError):
    """Raised when connection to the Kubernetes cluster fails.

    This can occur when:
    - The kubeconfig is invalid or missing
    - The cluster is unreachable after all connection retries
    - Authentication fails
    """

    pass


class InvalidPatternError(SetupError):
    """Raised when a user supplied regular expression does not compile."""

    pass


class ConfigRuleError(CheckConditionsError):
    """Raised when the rule configuration cannot be loaded.

    This can occur when:
    - The config file is not valid YAML
    - The file contains unknown keys
    - A rule entry is missing its condition type or sets a status
    - A resource entry has no group
    - A pattern cannot be compiled
    """

    pass


class ResourceListError(CheckConditionsError):
    """Raised when listing the objects of one resource type fails.

    The scan records the error and skips the resource type. It is
    retried naturally on the next cycle.
    """

    pass


class MalformedConditionError(CheckConditionsError):
    """Raised when a condition entry does not have the expected shape.

    The offending entry is dropped; the rest of the object is still checked.
    """

    pass

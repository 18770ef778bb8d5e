"""Turn the cluster's resource types into scan jobs."""

from collections.abc import Iterable

from check_conditions.models import ResourceTypeDescriptor

# Resources which hold no objects with conditions: access reviews, token
# reviews and similar request-only APIs.
RESOURCES_TO_SKIP = frozenset(
    {
        "bindings",
        "tokenreviews",
        "selfsubjectreviews",
        "selfsubjectaccessreviews",
        "selfsubjectrulesreviews",
        "localsubjectaccessreviews",
        "subjectaccessreviews",
        "componentstatuses",
    }
)


def build_jobs(
    descriptors: Iterable[ResourceTypeDescriptor],
    namespace: str | None = None,
) -> list[ResourceTypeDescriptor]:
    """Filter resource types down to the ones worth listing.

    Args:
        descriptors: Resource types advertised by the cluster.
        namespace: When set, cluster scoped types are dropped.

    Returns:
        One descriptor per (group, version, name) to scan.

    """
    jobs: list[ResourceTypeDescriptor] = []
    seen: set[tuple[str, str, str]] = set()
    for descriptor in descriptors:
        # Subresources like pods/log or pods/status
        if "/" in descriptor.name:
            continue
        if descriptor.name in RESOURCES_TO_SKIP:
            continue
        if namespace and not descriptor.namespaced:
            continue
        key = (descriptor.group, descriptor.version, descriptor.name)
        if key in seen:
            continue
        seen.add(key)
        jobs.append(descriptor)
    return jobs

"""Scan pipeline subpackage.

This package contains the resource type filter, the concurrent scan workers
and the aggregator owning the cycle counters.
"""

from check_conditions.scan.aggregate import Aggregator
from check_conditions.scan.resources import RESOURCES_TO_SKIP, build_jobs
from check_conditions.scan.worker import DEFAULT_CONDITION_PATHS, Scanner, ScanWorker, nested_field

__all__ = [
    "Aggregator",
    "RESOURCES_TO_SKIP",
    "build_jobs",
    "DEFAULT_CONDITION_PATHS",
    "Scanner",
    "ScanWorker",
    "nested_field",
]

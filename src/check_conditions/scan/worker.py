"""Concurrent scanning of resource types.

Each job lists the objects of one resource type and turns their conditions
into report lines. Jobs run on a fixed size thread pool; results flow back to
the calling thread, which is the only one touching the cycle counters.
"""

import threading
from collections.abc import Callable, Mapping
from concurrent import futures
from datetime import datetime, timezone
from typing import Any, Protocol

from icecream import ic

from check_conditions import console
from check_conditions.classify.engine import Classifier, drop_redundant_ready, is_reportable
from check_conditions.exceptions import MalformedConditionError, ResourceListError
from check_conditions.formatting import format_age, format_report_line
from check_conditions.models import ConditionEntry, JobResult, ResourceTypeDescriptor
from check_conditions.scan.aggregate import Aggregator
from check_conditions.scan.resources import build_jobs

DEFAULT_CONDITIONS_PATH = ("status", "conditions")

# Resources which store their conditions somewhere else
DEFAULT_CONDITION_PATHS: Mapping[str, tuple[str, ...]] = {
    "hetznerbaremetalhosts": ("spec", "status", "conditions"),
}


class ClusterAccess(Protocol):
    """What the scan needs from a cluster."""

    def enumerate_resource_types(self) -> list[ResourceTypeDescriptor]: ...

    def list_objects(
        self, descriptor: ResourceTypeDescriptor, namespace: str | None = None, timeout: float | None = None
    ) -> list[dict[str, Any]]: ...


def nested_field(obj: Mapping[str, Any], path: tuple[str, ...]) -> Any:
    """Return the value at a dotted path, or None if any part is missing."""
    value: Any = obj
    for key in path:
        if not isinstance(value, Mapping):
            return None
        value = value.get(key)
    return value


class ScanWorker:
    """Scans one resource type at a time; safe to share between threads.

    Attributes:
        cluster: Source of objects.
        classifier: Decides which conditions are reported.
        condition_paths: Where the conditions list lives, per resource name.
        namespace: Only list objects in this namespace.
        request_timeout: Timeout for listing one resource type, all pages included.

    """

    def __init__(
        self,
        cluster: ClusterAccess,
        classifier: Classifier,
        *,
        condition_paths: Mapping[str, tuple[str, ...]] | None = None,
        namespace: str | None = None,
        request_timeout: float | None = None,
        warn: Callable[[str], None] = console.diagnostic,
    ) -> None:
        self.cluster = cluster
        self.classifier = classifier
        self.condition_paths = {**DEFAULT_CONDITION_PATHS, **(condition_paths or {})}
        self.namespace = namespace
        self.request_timeout = request_timeout
        self.warn = warn

    def handle(self, descriptor: ResourceTypeDescriptor) -> JobResult:
        """List and check all objects of one resource type.

        Listing errors are recorded in the result rather than raised.
        """
        result = JobResult(descriptor=descriptor, resource_types=1, worker=threading.current_thread().name)
        try:
            objects = self.cluster.list_objects(descriptor, self.namespace, self.request_timeout)
        except ResourceListError as e:
            result.error = f"..{e}"
            return result

        now = datetime.now(timezone.utc)
        for obj in objects:
            result.objects += 1
            result.lines.extend(self._check_object(descriptor, obj, result, now))
        return result

    def _check_object(
        self, descriptor: ResourceTypeDescriptor, obj: dict[str, Any], result: JobResult, now: datetime
    ) -> list[str]:
        path = self.condition_paths.get(descriptor.name, DEFAULT_CONDITIONS_PATH)
        metadata = obj.get("metadata") or {}
        namespace = metadata.get("namespace") or ""
        name = metadata.get("name") or ""

        raw_conditions = nested_field(obj, path)
        if raw_conditions is None:
            return []
        if not isinstance(raw_conditions, list):
            self.warn(
                f"WARNING: {descriptor.name} {namespace}/{name}: {'.'.join(path)} is not a list, skipping object"
            )
            return []

        kept: list[ConditionEntry] = []
        for raw in raw_conditions:
            try:
                entry = ConditionEntry.from_dict(raw)
            except MalformedConditionError as e:
                self.warn(f"WARNING: {descriptor.name} {namespace}/{name}: {e}")
                continue
            result.conditions += 1
            if is_reportable(self.classifier, descriptor.group, descriptor.name, entry):
                kept.append(entry)

        return [
            format_report_line(
                namespace,
                descriptor.name,
                name,
                entry.type,
                entry.status,
                entry.reason,
                entry.message,
                format_age(entry.last_transition_time, now),
            )
            for entry in drop_redundant_ready(kept)
        ]


class Scanner:
    """Runs one scan cycle across all resource types.

    Attributes:
        cluster: Source of resource types and objects.
        worker: Per-job logic.
        workers: Size of the thread pool.
        timeout: Seconds the whole cycle may take, 0 for no limit.
        namespace: Restrict the scan to one namespace.

    """

    def __init__(
        self,
        cluster: ClusterAccess,
        worker: ScanWorker,
        *,
        workers: int = 10,
        timeout: float = 0,
        namespace: str | None = None,
        warn: Callable[[str], None] = console.diagnostic,
    ) -> None:
        self.cluster = cluster
        self.worker = worker
        self.workers = workers
        self.timeout = timeout
        self.namespace = namespace
        self.warn = warn

    def run_cycle(self, aggregator: Aggregator) -> None:
        """Scan every resource type and feed each job result to the aggregator.

        When the cycle timeout expires, jobs that have not started are
        cancelled and completed ones are kept. Running jobs are abandoned.
        Each listing is bounded by the same timeout, counted from the start
        of its own job.

        Raises:
            ClusterConnectionError: If resource type discovery fails.

        """
        jobs = build_jobs(self.cluster.enumerate_resource_types(), self.namespace)
        ic(len(jobs))
        executor = futures.ThreadPoolExecutor(max_workers=self.workers, thread_name_prefix="worker")
        try:
            pending = [executor.submit(self.worker.handle, job) for job in jobs]
            try:
                for future in futures.as_completed(pending, timeout=self.timeout or None):
                    aggregator.add(future.result())
            except futures.TimeoutError:
                unfinished = sum(1 for future in pending if not future.done())
                self.warn(
                    f"WARNING: scan timed out after {self.timeout:g}s, {unfinished} of {len(pending)} "
                    "resource types were not checked"
                )
        finally:
            executor.shutdown(wait=False, cancel_futures=True)

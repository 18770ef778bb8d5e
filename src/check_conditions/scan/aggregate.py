"""Merging of job results into cycle counters."""

import re
from collections.abc import Callable

from check_conditions import console
from check_conditions.models import CycleCounters, JobResult


class Aggregator:
    """Single owner of one cycle's counters.

    Only the thread draining the job results calls ``add``. Report lines
    are printed here, so lines of different jobs never interleave.

    Attributes:
        counters: The cycle counters.
        regex: Pattern deciding whether the cycle should run again.
        verbose: Print one line per scanned resource type.

    """

    def __init__(
        self,
        *,
        regex: re.Pattern[str] | None = None,
        verbose: bool = False,
        out: Callable[[str], None] = console.report,
    ) -> None:
        self.counters = CycleCounters()
        self.regex = regex
        self.verbose = verbose
        self.out = out

    def add(self, result: JobResult) -> None:
        """Merge one job result and print its lines."""
        counters = self.counters
        counters.resource_types += result.resource_types
        counters.objects += result.objects
        counters.conditions += result.conditions
        if result.error:
            self.out(result.error)
        for line in result.lines:
            self.out(line)
            counters.reported_any = True
            if self.regex is not None and self.regex.search(line):
                counters.check_again = True
        if self.verbose:
            descriptor = result.descriptor
            self.out(f"    checked {descriptor.name} {descriptor.group} {descriptor.version} worker={result.worker}")

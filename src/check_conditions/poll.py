"""Poll controller.

Runs scan cycles until the selected strategy decides to stop, and maps the
final state to an outcome the CLI turns into an exit code.
"""

import re
import time
from collections.abc import Callable
from datetime import datetime
from enum import Enum

from icecream import ic

from check_conditions import console
from check_conditions.exceptions import ClusterConnectionError
from check_conditions.formatting import format_duration, format_summary
from check_conditions.models import CycleCounters, RegexMode, ScanSettings
from check_conditions.scan.aggregate import Aggregator
from check_conditions.scan.worker import Scanner

# "Stopping after ..." is only printed for runs longer than this
_QUIET_RUN_SECONDS = 5


class Outcome(Enum):
    """Final state of a run."""

    CLEAN = "clean"
    CONDITION_FOUND = "condition-found"
    UNHEALTHY = "unhealthy"

    @property
    def exit_code(self) -> int:
        """Process exit code for this outcome."""
        if self is Outcome.UNHEALTHY:
            return 1
        return 0


class SingleRun:
    """One cycle, then stop."""

    regex: re.Pattern[str] | None = None

    def check_again(self, counters: CycleCounters) -> bool:
        return False

    def outcome(self, counters: CycleCounters) -> Outcome:
        return Outcome.UNHEALTHY if counters.reported_any else Outcome.CLEAN


class RunForever:
    """Cycle until the process is interrupted."""

    regex: re.Pattern[str] | None = None

    def check_again(self, counters: CycleCounters) -> bool:
        return True

    def outcome(self, counters: CycleCounters) -> Outcome:
        return Outcome.UNHEALTHY if counters.reported_any else Outcome.CLEAN


class RunUntilRegex:
    """Cycle until a pattern matches (waitfor) or stops matching (while).

    Attributes:
        regex: Pattern searched in every report line.
        mode: Whether a match stops the run or keeps it going.

    """

    def __init__(self, regex: re.Pattern[str], mode: RegexMode) -> None:
        self.regex = regex
        self.mode = mode

    def check_again(self, counters: CycleCounters) -> bool:
        match self.mode:
            case RegexMode.WAIT_FOR:
                return not counters.check_again
            case RegexMode.WHILE:
                return counters.check_again
        raise ValueError(f"Unknown regex mode: {self.mode}")

    def outcome(self, counters: CycleCounters) -> Outcome:
        if self.mode is RegexMode.WAIT_FOR:
            return Outcome.CONDITION_FOUND
        return Outcome.CLEAN


Strategy = SingleRun | RunForever | RunUntilRegex


class PollController:
    """Drive scan cycles according to a strategy.

    Attributes:
        scanner: Runs one scan cycle.
        strategy: Decides whether to run another cycle.
        settings: Sleep interval, retry budget, verbosity and label.

    """

    def __init__(
        self,
        scanner: Scanner,
        strategy: Strategy,
        settings: ScanSettings,
        *,
        sleep: Callable[[float], None] = time.sleep,
        clock: Callable[[], float] = time.monotonic,
        out: Callable[[str], None] = console.report,
        warn: Callable[[str], None] = console.diagnostic,
    ) -> None:
        self.scanner = scanner
        self.strategy = strategy
        self.settings = settings
        self.sleep = sleep
        self.clock = clock
        self.out = out
        self.warn = warn

    def _notice(self, message: str) -> None:
        if self.settings.name:
            message = f"{self.settings.name}: {message}"
        self.out(message)

    def run(self) -> Outcome:
        """Run cycles until the strategy stops.

        Returns:
            The outcome of the last cycle.

        Raises:
            ClusterConnectionError: If the first connection to the cluster
                still fails after all retries.

        """
        started = self.clock()
        connected = False
        failures = 0
        regex = self.strategy.regex

        while True:
            aggregator = Aggregator(regex=regex, verbose=self.settings.verbose, out=self.out)
            try:
                self.scanner.run_cycle(aggregator)
            except ClusterConnectionError as e:
                if not connected:
                    failures += 1
                    retry_count = self.settings.retry_count
                    if retry_count and failures > retry_count:
                        raise
                    self.warn(f"WARNING: {e}. Retrying in {self.settings.sleep:g} seconds ({failures})")
                else:
                    self.warn(f"WARNING: {e}. Trying again in {self.settings.sleep:g} seconds")
                self.sleep(self.settings.sleep)
                continue

            connected = True
            counters = aggregator.counters
            ic(counters)
            self.out(format_summary(counters.conditions, counters.objects, counters.resource_types, self.clock() - started))

            duration = format_duration(int(self.clock() - started))
            if not self.strategy.check_again(counters):
                if regex is not None:
                    if self.strategy.mode is RegexMode.WHILE:
                        self._notice(f'Regex "{regex.pattern}" did not match. Stopping')
                    else:
                        self._notice(f'Regex "{regex.pattern}" matched. Stopping')
                if self.clock() - started > _QUIET_RUN_SECONDS:
                    self._notice(f"Stopping after {duration}")
                return self.strategy.outcome(counters)

            if regex is None:
                pre = "Running forever. "
            elif self.strategy.mode is RegexMode.WHILE:
                pre = f'Regex "{regex.pattern}" did match. '
            else:
                pre = f'Regex "{regex.pattern}" did not match yet. '
            now = datetime.now().astimezone().strftime("%Y-%m-%d %H:%M:%S %z %Z")
            self._notice(
                f"{pre}Waiting {self.settings.sleep:g} seconds, then checking again. {now} ({duration}).\n"
            )
            self.sleep(self.settings.sleep)

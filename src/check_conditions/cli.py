#!/usr/bin/env python
"""Command-line interface for check-conditions.

This module provides the main CLI entry point, parsing the shared options
into ScanSettings and wiring the rule config, classifier, cluster access,
scanner and poll controller together for each command.
"""

import os
import re
import sys
from pathlib import Path

import click
from icecream import ic

from check_conditions import __version__, console
from check_conditions.classify import build_classifier
from check_conditions.cluster import Cluster
from check_conditions.config import ensure_config_path, load_config
from check_conditions.exceptions import CheckConditionsError, InvalidPatternError
from check_conditions.models import Mode, RegexMode, ScanSettings
from check_conditions.poll import Outcome, PollController, RunForever, RunUntilRegex, SingleRun, Strategy
from check_conditions.scan import Scanner, ScanWorker

SETUP_ERROR_EXIT_CODE = 3

_MODE_CHOICES = ", ".join(mode.value for mode in Mode)


def resolve_mode(value: str | None) -> Mode:
    """Pick the classifier mode from the option, its env var or the legacy env var.

    Raises:
        click.BadParameter: If the mode name is unknown.

    """
    if not value:
        if os.environ.get("CHECK_CONDITIONS_COMPARE_WITH_NEW_CONFIG"):
            return Mode.LEGACY_COMPARE_CONFIG
        return Mode.ONLY_LEGACY
    try:
        return Mode.parse(value)
    except ValueError:
        raise click.BadParameter(f"invalid mode {value!r}: must be one of: {_MODE_CHOICES}", param_hint="--mode") from None


def compile_regex(pattern: str) -> re.Pattern[str]:
    """Compile a user supplied pattern.

    Raises:
        InvalidPatternError: If the pattern is not a valid regular expression.

    """
    try:
        return re.compile(pattern)
    except re.error as e:
        raise InvalidPatternError(f"Invalid regex {pattern!r}: {e}") from e


def run(ctx: click.Context, strategy: Strategy) -> None:
    """Build the scan pipeline, run it and exit with the outcome's code.

    Args:
        ctx: Click context holding the parsed group options.
        strategy: Poll strategy of the invoked command.

    """
    options = ctx.obj
    settings: ScanSettings = options["settings"]
    ic(settings, strategy)

    try:
        rule_config = load_config(options["config"], skip_builtin=options["skip_builtin"])
        auto_add = settings.auto_add_from_legacy
        if auto_add and not settings.mode.compares:
            console.warning(f"--auto-add-from-legacy-config has no effect in mode {settings.mode.value}")
            auto_add = False
        if auto_add and ensure_config_path(rule_config):
            console.info(f"Created config at {rule_config.path}")

        classifier = build_classifier(
            settings.mode, rule_config, console.diagnostic, auto_add_from_legacy=auto_add
        )
        cluster = Cluster(context=options["context"], select_context=options["select"], pool_size=settings.workers)
        worker = ScanWorker(
            cluster,
            classifier,
            condition_paths=rule_config.condition_paths,
            namespace=settings.namespace,
            request_timeout=settings.timeout or None,
        )
        scanner = Scanner(
            cluster, worker, workers=settings.workers, timeout=settings.timeout, namespace=settings.namespace
        )
        outcome: Outcome = PollController(scanner, strategy, settings).run()
    except CheckConditionsError as e:
        console.error(str(e))
        sys.exit(SETUP_ERROR_EXIT_CODE)

    ic(outcome)
    sys.exit(outcome.exit_code)


@click.group(help="Check your cluster by looking at the status conditions of all resources")
@click.version_option(__version__, prog_name="check-conditions")
@click.option("--verbose", "-v", is_flag=True, help="print one line per checked resource type")
@click.option("--debug", is_flag=True, help="print debug information")
@click.option("--sleep", "-s", type=click.FloatRange(min=0), default=15, show_default=True, help="seconds between cycles")
@click.option(
    "--timeout",
    "-t",
    type=click.FloatRange(min=0),
    default=0,
    show_default=True,
    help="cycle timeout, also bounding each resource type's listing, 0 for none",
)
@click.option("--name", default="", help="label printed in poll notices")
@click.option("--namespace", "-n", default=None, help="only check this namespace")
@click.option(
    "--retry-count",
    type=click.IntRange(min=0),
    default=5,
    show_default=True,
    help="retries of the first connection, 0 retries forever",
)
@click.option("--workers", type=click.IntRange(min=1), default=10, show_default=True, help="concurrent list requests")
@click.option("--mode", envvar="CHECK_CONDITIONS_MODE", default=None, help=f"classifier mode: {_MODE_CHOICES}")
@click.option(
    "--config",
    "config_path",
    envvar="CHECK_CONDITIONS_CONFIG",
    type=click.Path(dir_okay=False, path_type=Path),
    default=None,
    help="rule config file",
)
@click.option("--skip-loading-built-in-config", is_flag=True, help="do not load the built-in rules")
@click.option(
    "--auto-add-from-legacy-config",
    is_flag=True,
    help="persist conditions the legacy rules skip to the config file",
)
@click.option("--context", default=None, help="kube context to use")
@click.option("--select", is_flag=True, default=False, help="prompt for context select")
@click.pass_context
def cli(
    ctx: click.Context,
    verbose: bool,
    debug: bool,
    sleep: float,
    timeout: float,
    name: str,
    namespace: str | None,
    retry_count: int,
    workers: int,
    mode: str | None,
    config_path: Path | None,
    skip_loading_built_in_config: bool,
    auto_add_from_legacy_config: bool,
    context: str | None,
    select: bool,
) -> None:
    """Collect the shared options for the subcommands."""
    if not (debug or os.environ.get("CHECK_CONDITIONS_DEBUG")):
        ic.disable()

    settings = ScanSettings(
        verbose=verbose,
        sleep=sleep,
        timeout=timeout,
        name=name,
        namespace=namespace,
        retry_count=retry_count,
        workers=workers,
        mode=resolve_mode(mode),
        auto_add_from_legacy=auto_add_from_legacy_config,
    )
    ctx.obj = {
        "settings": settings,
        "config": config_path,
        "skip_builtin": skip_loading_built_in_config,
        "context": context,
        "select": select,
    }


@cli.command("all", help="check all conditions once; exit code 1 if unhealthy conditions were found")
@click.pass_context
def all_command(ctx: click.Context) -> None:
    run(ctx, SingleRun())


@cli.command(help="check all conditions in a loop, forever")
@click.pass_context
def forever(ctx: click.Context) -> None:
    run(ctx, RunForever())


@cli.command("while", help="check all conditions while a reported line matches REGEX")
@click.argument("regex")
@click.pass_context
def while_command(ctx: click.Context, regex: str) -> None:
    try:
        pattern = compile_regex(regex)
    except InvalidPatternError as e:
        console.error(str(e))
        sys.exit(SETUP_ERROR_EXIT_CODE)
    run(ctx, RunUntilRegex(pattern, RegexMode.WHILE))


@cli.command(help="check all conditions until a reported line matches REGEX")
@click.argument("regex")
@click.pass_context
def waitfor(ctx: click.Context, regex: str) -> None:
    try:
        pattern = compile_regex(regex)
    except InvalidPatternError as e:
        console.error(str(e))
        sys.exit(SETUP_ERROR_EXIT_CODE)
    run(ctx, RunUntilRegex(pattern, RegexMode.WAIT_FOR))


if __name__ == "__main__":
    cli()

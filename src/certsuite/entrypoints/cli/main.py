"""CERTSUITE CLI entry point.

Defines the top-level ``certsuite`` command (via Click-Extra) and its
subcommands:

- ``certsuite capabilities``: list every capability name.
- ``certsuite plan``: show which scenarios would run for the declared
  limitations, without contacting any backend.
- ``certsuite run``: certify one or more issuers through a backend client.
- ``certsuite rbac``: certify the aggregated role grants.

Notes
- The CLI version is sourced from `certsuite.__version__` and displayed
  automatically by Click-Extra (``--version``).
- Backends and access reviewers are plugged in as ``module:factory`` strings;
  the factory is called with no arguments.

Examples
    $ certsuite capabilities
    $ certsuite plan -i cert-manager.io/ClusterIssuer/ca -n sandbox -u Duration
    $ certsuite run -i example.com/Issuer/mine -n sandbox --backend mypkg:client
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Sequence
from pathlib import Path
from typing import TYPE_CHECKING, Any

import click
import click_extra as clickx
from platformdirs import user_log_dir

from certsuite import __version__, config
from certsuite.adapters.memory import InMemoryResourceClient
from certsuite.domain.capabilities import Capability
from certsuite.domain.errors import ConfigurationError
from certsuite.domain.resources import ObjectReference
from certsuite.logging import (
    config_console_handler,
    config_flight_recorder,
    configure_logging,
    log_startup,
)
from certsuite.rbac import RBACSuite
from certsuite.service_layer.waiter import WaitSettings
from certsuite.suite import CaseResult, run_cases

from .helpers import error, parse_log_level, success, warn

if TYPE_CHECKING:
    from logging import Handler

logger = logging.getLogger(__name__)


HELP = """CERTSUITE command-line interface.

    CERTSUITE certifies certificate-issuer backends. It submits a catalog of
    certificate requests through the backend, waits for issuance and checks
    every issued certificate, skipping whatever the issuer declares it does
    not support.
    """

MISSING_NAMESPACE_MSG = (
    "No namespace given.\n\n"
    "Pass --namespace or set it in the environment, e.g.:\n"
    f"  export {config.NAMESPACE_ENV}=certsuite-sandbox"
)


@clickx.extra_group(
    version=__version__,
    help=HELP,
    params=[
        clickx.ColorOption(show_envvar=True),
        clickx.TimerOption(show_envvar=True),
        clickx.ExtraVersionOption(),
    ],
)
@click.option(
    "--verbose",
    "-v",
    "verbose_count",
    count=True,
    help="Raise the default WARNING verbosity one level per repetition.",
    default=0,
)
@click.option(
    "--quiet",
    "-q",
    "quiet_count",
    count=True,
    help="Lower the default WARNING verbosity one level per repetition.",
    default=0,
)
@click.option(
    "--debug/--no-debug",
    is_flag=True,
    help="Enable debug mode (source paths and timestamps in console logs).",
    default=False,
)
@click.option(
    "--log-path",
    type=click.Path(dir_okay=False, path_type=Path),
    help="File the flight recorder writes to.",
    default=Path(user_log_dir("certsuite", appauthor=False, ensure_exists=True))
    / "latest.log",
    envvar="CERTSUITE_LOG_PATH",
    show_default=True,
    show_envvar=True,
)
@click.option(
    "--flight-recorder-capacity",
    type=int,
    default=2000,
    hidden=True,
    envvar="CERTSUITE_FLIGHT_RECORDER_CAPACITY",
    show_envvar=True,
    help="Capacity of the flight recorder (in number of log records).",
)
@click.option(
    "--flight-recorder/--no-flight-recorder",
    "flight_recorder",
    is_flag=True,
    help=(
        "Keep the last N log records at DEBUG granularity in memory and write "
        "them to --log-path when a WARNING or ERROR occurs. Console verbosity "
        "is unchanged."
    ),
    default=True,
    show_envvar=True,
)
@click.option(
    "--force-flush/--no-force-flush",
    "force_flush_flight_recorder",
    is_flag=True,
    help="Also write the flight recorder to --log-path on a clean exit.",
    default=False,
    show_default=True,
    show_envvar=True,
)
@click.option(
    "-L",
    "--logger-level",
    "logger_levels",
    multiple=True,
    callback=parse_log_level,
    help=(
        "Set the MINIMUM LEVEL of specific LOGGERS (NAME=LEVEL), for both the "
        "console and the flight recorder. Repeatable, or a comma/space list in "
        "CERTSUITE_LOGGER_LEVELS."
    ),
    envvar="CERTSUITE_LOGGER_LEVELS",
    show_envvar=True,
)
@clickx.pass_context
def certsuite(  # pylint: disable=too-many-arguments, too-many-positional-arguments
    ctx: click.Context,
    verbose_count: int,
    quiet_count: int,
    debug: bool,
    log_path: Path,
    flight_recorder_capacity: int,
    flight_recorder: bool,
    force_flush_flight_recorder: bool,
    logger_levels: dict[str, int],
) -> None:
    """CERTSUITE command-line interface."""
    level = logging.WARNING - 10 * verbose_count + 10 * quiet_count
    level = max(logging.DEBUG, min(logging.CRITICAL, level))

    handlers: list[Handler] = [
        config_console_handler(
            level=level, debug_mode=debug, color=ctx.color is not False
        )
    ]
    if flight_recorder:
        handlers.append(
            config_flight_recorder(
                path=log_path,
                capacity=flight_recorder_capacity,
                flush_on_close=force_flush_flight_recorder,
            )
        )
    configure_logging(handlers, logger_levels)

    log_startup(
        logger,
        app_version=__version__,
        level=level,
        handlers=handlers,
        log_path=log_path,
        flight_recorder=flight_recorder,
        flight_capacity=flight_recorder_capacity if flight_recorder else None,
        force_flush_fr=force_flush_flight_recorder,
        logger_levels=logger_levels,
    )
    ctx.call_on_close(logging.shutdown)


# ============================================================================
#                              Shared options
# ============================================================================


def _parse_issuer_refs(
    ctx: click.Context,  # pylint: disable=unused-argument
    param: click.Parameter,  # pylint: disable=unused-argument
    value: Sequence[str],
) -> tuple[ObjectReference, ...]:
    try:
        return tuple(config.parse_issuer_ref(v) for v in value)
    except ConfigurationError as e:
        raise click.BadParameter(str(e)) from e


def _parse_unsupported(
    ctx: click.Context,  # pylint: disable=unused-argument
    param: click.Parameter,  # pylint: disable=unused-argument
    value: Sequence[str],
) -> frozenset[Capability]:
    try:
        return frozenset(config.parse_capabilities(value))
    except ConfigurationError as e:
        raise click.BadParameter(str(e)) from e


SUITE_OPTIONS = (
    click.option(
        "--issuer-ref",
        "-i",
        "issuer_refs",
        multiple=True,
        required=True,
        callback=_parse_issuer_refs,
        help="Issuer to certify, as group/kind/name. Repeatable.",
    ),
    click.option(
        "--namespace",
        "-n",
        default=None,
        help=f"Namespace to create resources in [default: ${config.NAMESPACE_ENV}].",
    ),
    click.option(
        "--unsupported",
        "-u",
        multiple=True,
        callback=_parse_unsupported,
        help="Capability the issuers lack. Repeatable or comma separated.",
    ),
    click.option(
        "--domain-suffix",
        default=None,
        help=f"Parent domain of generated names [default: ${config.DOMAIN_SUFFIX_ENV} "
        "or example.com].",
    ),
    click.option(
        "--name",
        default="",
        help="Display name (defaults to the issuer ref; suffixed with it when "
        "several refs are given).",
    ),
)


def suite_options(func: Callable[..., Any]) -> Callable[..., Any]:
    """Apply the options shared by every command that builds certificate suites."""
    for option in reversed(SUITE_OPTIONS):
        func = option(func)
    return func


def _run_config(  # pylint: disable=too-many-arguments
    issuer_refs: tuple[ObjectReference, ...],
    namespace: str | None,
    unsupported: frozenset[Capability],
    domain_suffix: str | None,
    name: str,
    settings: WaitSettings | None = None,
) -> config.RunConfig:
    if namespace is None:
        try:
            namespace = config.get_namespace()
        except config.NamespaceNotSetError as e:
            raise click.ClickException(MISSING_NAMESPACE_MSG) from e
    return config.RunConfig(
        namespace=namespace,
        issuer_refs=issuer_refs,
        unsupported=unsupported,
        domain_suffix=domain_suffix or config.get_domain_suffix(),
        settings=settings or WaitSettings(),
        name=name,
    )


def _load_factory(spec: str) -> Any:
    try:
        factory = config.load_factory(spec)
    except ConfigurationError as e:
        raise click.ClickException(str(e)) from e
    return factory()


def _report(results: list[CaseResult]) -> None:
    failed = [r for r in results if not r.passed]
    for result in results:
        status = click.style("PASS", fg="green") if result.passed else click.style(
            "FAIL", fg="red"
        )
        click.echo(f"{status} {result.case_id} ({result.elapsed:.2f}s)")
        if result.error is not None:
            click.echo(f"     {result.error.cause}")
    if failed:
        error(f"{len(failed)} of {len(results)} case(s) failed")
        raise click.exceptions.Exit(1)
    success(f"All {len(results)} case(s) passed")


# ============================================================================
#                              Commands
# ============================================================================


@click.command()
def capabilities() -> None:
    """List every capability that can be declared unsupported."""
    for capability in Capability:
        click.echo(capability.value)


@click.command()
@suite_options
def plan(  # pylint: disable=too-many-arguments
    issuer_refs: tuple[ObjectReference, ...],
    namespace: str | None,
    unsupported: frozenset[Capability],
    domain_suffix: str | None,
    name: str,
) -> None:
    """Show the scenarios each issuer would run; contacts no backend."""
    run_config = _run_config(issuer_refs, namespace, unsupported, domain_suffix, name)
    try:
        suites = run_config.suites(InMemoryResourceClient())
    except ConfigurationError as e:
        raise click.ClickException(str(e)) from e
    for suite in suites:
        cases = suite.define()
        click.secho(f"{suite.name} (issuer {suite.issuer_ref})", bold=True)
        for case in cases:
            click.echo(f"  RUN  {case.scenario.name}")
        for skip in suite.skipped:
            click.echo(
                f"  SKIP {skip.scenario} (unsupported: {', '.join(skip.blocked_by)})"
            )
        click.echo(f"  {len(cases)} to run, {len(suite.skipped)} skipped")


@click.command()
@suite_options
@click.option(
    "--backend",
    required=True,
    help="module:factory returning the ResourceClient of the backend under test.",
)
@click.option(
    "--workers",
    type=click.IntRange(min=1),
    default=1,
    show_default=True,
    help="Cases run in parallel.",
)
@click.option(
    "--timeout",
    type=click.FloatRange(min=0, min_open=True),
    default=None,
    help="Issuance timeout in seconds (the extended timeout scales with it).",
)
@click.option(
    "--poll-interval",
    type=click.FloatRange(min=0, min_open=True),
    default=WaitSettings().poll_interval,
    show_default=True,
    help="Seconds between polls of the backend.",
)
def run(  # pylint: disable=too-many-arguments, too-many-positional-arguments
    issuer_refs: tuple[ObjectReference, ...],
    namespace: str | None,
    unsupported: frozenset[Capability],
    domain_suffix: str | None,
    name: str,
    backend: str,
    workers: int,
    timeout: float | None,
    poll_interval: float,
) -> None:
    """Certify issuers by running every applicable scenario."""
    defaults = WaitSettings()
    settings = WaitSettings(poll_interval=poll_interval)
    if timeout is not None:
        ratio = defaults.extended_timeout / defaults.issuance_timeout
        settings = WaitSettings(
            issuance_timeout=timeout,
            extended_timeout=timeout * ratio,
            poll_interval=poll_interval,
        )
    run_config = _run_config(
        issuer_refs, namespace, unsupported, domain_suffix, name, settings
    )
    client = _load_factory(backend)
    try:
        suites = run_config.suites(client)
    except ConfigurationError as e:
        raise click.ClickException(str(e)) from e

    cases = []
    for suite in suites:
        cases.extend(suite.define())
        for skip in suite.skipped:
            logger.info("Skipping %s", skip)
    if not cases:
        warn("Every scenario is skipped by the declared limitations")
    _report(run_cases(cases, workers=workers))


@click.command()
@click.option(
    "--reviewer",
    required=True,
    help="module:factory returning the AccessReviewer of the cluster under test.",
)
@click.option("--name", default="issuer", show_default=True, help="Display name.")
@click.option(
    "--resource",
    "resources",
    multiple=True,
    help="Resource type the issuer serves. Repeatable [default: all].",
)
def rbac(reviewer: str, name: str, resources: tuple[str, ...]) -> None:
    """Certify the view/edit/admin role grants on issuer resources."""
    suite = RBACSuite(_load_factory(reviewer), name=name, resources=resources or None)
    _report(run_cases(suite.define()))


certsuite.add_command(capabilities)
certsuite.add_command(plan)
certsuite.add_command(run)
certsuite.add_command(rbac)

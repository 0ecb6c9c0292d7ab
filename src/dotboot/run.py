# run.py
# Entry point. Config and wiring only.
#
# Exit codes:
#   0    completed; optional failures are reported but non-fatal
#   1    aborted on a required failure (policy halt)
#   2    usage error (unknown step set, bad option or config value)
#   3    completed under policy continue with required failures
#   130  interrupted between steps

import logging
import sys

import click
from pydantic import ValidationError

from dotboot import catalog
from dotboot.config import POLICY_ALIASES, load_config
from dotboot.display import Reporter
from dotboot.logging_config import setup_logging
from dotboot.models import EXIT_INTERRUPTED
from dotboot.runner import Runner, RunnerAborted

logger = logging.getLogger(__name__)


@click.command(context_settings={"help_option_names": ["-h", "--help"]})
@click.argument("sets", nargs=-1, type=click.Choice(sorted(catalog.STEP_SETS)))
@click.option(
    "--policy",
    type=click.Choice(sorted(POLICY_ALIASES)),
    default=None,
    help="Stop at the first required failure (halt) or attempt every step (continue).",
)
@click.option("--check", "check_only", is_flag=True, help="Probe only; never remediate.")
@click.option("--list", "list_only", is_flag=True, help="List step sets and exit.")
@click.option("--verbose", "-v", is_flag=True, help="Log progress at INFO level.")
@click.option("--debug", is_flag=True, help="Log every command at DEBUG level.")
def main(
    sets: tuple[str, ...],
    policy: str | None,
    check_only: bool,
    list_only: bool,
    verbose: bool,
    debug: bool,
) -> None:
    """Bring this machine to the state described by SETS.

    With no SETS the default sequence runs: prompt, aiml, containers, cloud.
    Every step checks first and only acts when its condition is missing, so
    re-running is always safe.
    """
    try:
        config = load_config(policy=POLICY_ALIASES.get(policy) if policy else None)
    except ValidationError as exc:
        raise click.UsageError(f"Invalid configuration:\n{exc}") from exc

    if debug:
        level = "DEBUG"
    elif verbose:
        level = "INFO"
    else:
        level = config.log_level
    setup_logging(level=level, log_file=config.log_file)

    groups = catalog.build(list(sets), config)
    reporter = Reporter(thresholds=config.thresholds)

    if list_only:
        reporter.catalog(groups)
        return

    reporter.banner(list(groups), check_only)
    reporter.sections({step.name: name for name, steps in groups.items() for step in steps})

    runner = Runner(
        [step for steps in groups.values() for step in steps],
        policy=config.policy,
        reporter=reporter,
        check_only=check_only,
    )
    try:
        result = runner.run()
    except KeyboardInterrupt:
        reporter.halt("Interrupted. Steps already applied are kept; re-run to continue.")
        sys.exit(EXIT_INTERRUPTED)

    try:
        runner.raise_for_abort()
    except RunnerAborted as exc:
        logger.error("%s", exc)
    sys.exit(result.exit_code)


if __name__ == "__main__":
    main()

# runner.py
# Idempotent provisioning runner.
#
# The Runner is the kernel. Probes and remediations are passive callables;
# this class owns ordering, the failure policy and the run state machine.
#
# Control flow per step:
#   probe → satisfied? → already-satisfied
#         → remediate → re-probe once → fixed | failed
#
# All terminal output is delegated to a Reporter.

import logging
from typing import Optional, Sequence

from dotboot.models import (
    Outcome,
    Policy,
    ProbeResult,
    ProbeState,
    RemediationResult,
    RunResult,
    RunState,
    Severity,
    Status,
    Step,
)

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Exceptions
# ---------------------------------------------------------------------------


class ProbeIndeterminate(Exception):
    """Raised by a probe whose underlying query cannot run. Never fatal."""


class RemediationFailed(Exception):
    """Raised by a remediation or collaborator that could not apply its fix."""


class RunnerAborted(Exception):
    """A required step failed under halt-on-required-failure."""

    def __init__(self, outcome: Outcome) -> None:
        super().__init__(f"Required step {outcome.step_name!r} failed: {outcome.detail}")
        self.outcome = outcome


# ---------------------------------------------------------------------------
# Step execution
# ---------------------------------------------------------------------------


def _safe_probe(step: Step) -> ProbeResult:
    """Run a probe, folding any exception into an indeterminate result."""
    try:
        return step.probe()
    except Exception as exc:
        logger.debug("probe for %r raised", step.name, exc_info=True)
        return ProbeResult(state=ProbeState.INDETERMINATE, detail=str(exc) or type(exc).__name__)


def _safe_remediate(step: Step) -> RemediationResult:
    try:
        return step.remediate()
    except Exception as exc:
        logger.debug("remediation for %r raised", step.name, exc_info=True)
        return RemediationResult(ok=False, detail=str(exc) or type(exc).__name__)


def execute_step(step: Step, check_only: bool = False) -> Outcome:
    """
    Run one probe/remediation cycle and return its Outcome.

    Indeterminate probes take the remediation path like unsatisfied ones.
    After a successful remediation the probe is re-run exactly once.
    """

    def outcome(status: Status, detail: str) -> Outcome:
        return Outcome(step_name=step.name, status=status, detail=detail, severity=step.severity)

    before = _safe_probe(step)
    if before.satisfied:
        return outcome(Status.ALREADY_SATISFIED, before.detail)

    logger.info("%s: %s (%s)", step.name, before.state.value, before.detail or "no detail")

    if check_only:
        return outcome(Status.FAILED, _join("not satisfied", before.detail))

    if step.remediate is None:
        return outcome(Status.FAILED, _join("no remediation available", before.detail))

    fix = _safe_remediate(step)
    if not fix.ok:
        return outcome(Status.FAILED, fix.detail)

    after = _safe_probe(step)
    if after.satisfied:
        return outcome(Status.FIXED, after.detail or fix.detail)

    return outcome(
        Status.FAILED,
        _join(f"still {after.state.value} after remediation", after.detail),
    )


def _join(head: str, tail: str) -> str:
    return f"{head}: {tail}" if tail else head


# ---------------------------------------------------------------------------
# Runner
# ---------------------------------------------------------------------------


class Runner:
    """
    Executes an ordered list of Steps exactly once.

    Example:
        runner = Runner(steps, policy=Policy.HALT_ON_REQUIRED_FAILURE)
        result = runner.run()
        sys.exit(result.exit_code)
    """

    def __init__(
        self,
        steps: Sequence[Step],
        policy: Policy = Policy.HALT_ON_REQUIRED_FAILURE,
        reporter=None,
        check_only: bool = False,
    ) -> None:
        names = [step.name for step in steps]
        duplicates = sorted({name for name in names if names.count(name) > 1})
        if duplicates:
            raise ValueError(f"Duplicate step names: {', '.join(duplicates)}")

        self._steps = list(steps)
        self._policy = policy
        self._reporter = reporter
        self._check_only = check_only
        self._state = RunState.PENDING
        self._outcomes: list[Outcome] = []
        self._abort_cause: Optional[Outcome] = None

    @property
    def state(self) -> RunState:
        return self._state

    @property
    def outcomes(self) -> list[Outcome]:
        return list(self._outcomes)

    def _emit(self, event: str, *args) -> None:
        if self._reporter is not None:
            getattr(self._reporter, event)(*args)

    def _record(self, index: int, outcome: Outcome) -> None:
        self._outcomes.append(outcome)
        self._emit("step_finished", index, len(self._steps), outcome)

    def _should_halt(self, outcome: Outcome) -> bool:
        return (
            self._policy is Policy.HALT_ON_REQUIRED_FAILURE
            and outcome.status is Status.FAILED
            and outcome.severity is Severity.REQUIRED
        )

    def run(self) -> RunResult:
        """
        Walk the steps in declared order.

        On a halting failure every remaining step is recorded as skipped in
        its original position. Returns the RunResult in all cases.
        """
        if self._state is not RunState.PENDING:
            raise RuntimeError(f"Runner already {self._state.value}; create a new one.")

        self._state = RunState.RUNNING
        total = len(self._steps)
        logger.info("run started: %d step(s), policy=%s", total, self._policy.value)
        self._emit("run_started", total, self._policy, self._check_only)

        for index, step in enumerate(self._steps):
            if self._abort_cause is not None:
                self._record(index, Outcome(
                    step_name=step.name,
                    status=Status.SKIPPED,
                    detail=f"skipped after {self._abort_cause.step_name!r} failed",
                    severity=step.severity,
                ))
                continue

            self._emit("step_started", index, total, step)
            outcome = execute_step(step, check_only=self._check_only)
            self._record(index, outcome)

            if self._should_halt(outcome):
                logger.warning("required step %r failed; halting", step.name)
                self._abort_cause = outcome

        if self._abort_cause is not None:
            self._state = RunState.ABORTED
            self._emit("run_aborted", self._abort_cause)
        else:
            self._state = RunState.COMPLETED

        result = RunResult(state=self._state, outcomes=self._outcomes)
        logger.info("run %s: score %d%%", self._state.value, result.score)
        self._emit("run_finished", result)
        return result

    def raise_for_abort(self) -> None:
        """Raise RunnerAborted if the last run halted on a required failure."""
        if self._state is RunState.ABORTED:
            raise RunnerAborted(self._abort_cause)

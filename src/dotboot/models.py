# models.py
# Data contracts for the provisioning engine.
# No business logic lives here beyond derived values on RunResult.

from enum import Enum
from typing import Callable, Optional

from pydantic import BaseModel, ConfigDict, Field


class ProbeState(str, Enum):
    SATISFIED = "satisfied"
    UNSATISFIED = "unsatisfied"
    INDETERMINATE = "indeterminate"


class Severity(str, Enum):
    REQUIRED = "required"
    OPTIONAL = "optional"


class Status(str, Enum):
    ALREADY_SATISFIED = "already-satisfied"
    FIXED = "fixed"
    FAILED = "failed"
    SKIPPED = "skipped"


class Policy(str, Enum):
    HALT_ON_REQUIRED_FAILURE = "halt-on-required-failure"
    CONTINUE_ALWAYS = "continue-always"


class RunState(str, Enum):
    PENDING = "pending"
    RUNNING = "running"
    COMPLETED = "completed"
    ABORTED = "aborted"


# Exit codes. 2 is left to click for usage errors.
EXIT_OK = 0
EXIT_ABORTED = 1
EXIT_REQUIRED_FAILED = 3
EXIT_INTERRUPTED = 130


class ProbeResult(BaseModel):
    """What a probe observed. Never raised, always returned."""

    model_config = ConfigDict(frozen=True)

    state: ProbeState
    detail: str = ""

    @property
    def satisfied(self) -> bool:
        return self.state is ProbeState.SATISFIED


class RemediationResult(BaseModel):
    model_config = ConfigDict(frozen=True)

    ok: bool
    detail: str = ""


class CommandResult(BaseModel):
    """Captured result of one subprocess invocation."""

    model_config = ConfigDict(frozen=True)

    ok: bool
    returncode: Optional[int] = None
    stdout: str = ""
    stderr: str = ""
    error: str = Field(default="", description="Set when the process could not be run at all.")

    @property
    def diagnostic(self) -> str:
        """Best single line of text explaining a failure."""
        if self.error:
            return self.error
        text = (self.stderr or self.stdout).strip()
        tail = text.splitlines()[-1] if text else ""
        return f"exit {self.returncode}: {tail}" if tail else f"exit {self.returncode}"


class Step(BaseModel):
    """A named probe/remediation pair. Holds no state between runs."""

    model_config = ConfigDict(frozen=True)

    name: str = Field(..., min_length=1, description="Unique within a run.")
    probe: Callable[[], ProbeResult]
    remediate: Optional[Callable[[], RemediationResult]] = Field(
        default=None, description="None for check-only steps."
    )
    severity: Severity = Severity.REQUIRED
    description: str = ""


class Outcome(BaseModel):
    """Immutable record of one step's result within a run."""

    model_config = ConfigDict(frozen=True)

    step_name: str
    status: Status
    detail: str = ""
    severity: Severity = Severity.REQUIRED


class RunResult(BaseModel):
    """Ordered outcomes of a run plus the terminal runner state."""

    state: RunState
    outcomes: list[Outcome] = Field(default_factory=list)

    def counts(self) -> dict[Status, int]:
        tally = {status: 0 for status in Status}
        for outcome in self.outcomes:
            tally[outcome.status] += 1
        return tally

    @property
    def attempted(self) -> int:
        return sum(1 for o in self.outcomes if o.status is not Status.SKIPPED)

    @property
    def succeeded(self) -> int:
        return sum(
            1 for o in self.outcomes
            if o.status in (Status.ALREADY_SATISFIED, Status.FIXED)
        )

    @property
    def score(self) -> int:
        """Percent of non-skipped steps that ended satisfied or fixed."""
        if not self.attempted:
            return 0
        return round(self.succeeded * 100 / self.attempted)

    @property
    def required_failures(self) -> list[Outcome]:
        return [
            o for o in self.outcomes
            if o.status is Status.FAILED and o.severity is Severity.REQUIRED
        ]

    @property
    def exit_code(self) -> int:
        if self.state is RunState.ABORTED:
            return EXIT_ABORTED
        if self.required_failures:
            return EXIT_REQUIRED_FAILED
        return EXIT_OK

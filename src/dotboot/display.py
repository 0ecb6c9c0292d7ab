# display.py
# All terminal output for a provisioning run.
#
# This module owns presentation entirely. runner.py never formats strings;
# it calls named Reporter hooks here. Swap this file to change the entire UI.
#
# Colour language:
#   cyan: run scaffolding (banner, step-set headings)
#   green: already satisfied / excellent score
#   blue: fixed by this run
#   yellow: optional failures, "good" score
#   red: required failures, halts
#   dim: skipped steps, details

from typing import Optional

from pydantic import BaseModel, Field, model_validator
from rich import box
from rich.console import Console
from rich.markup import escape
from rich.panel import Panel
from rich.rule import Rule
from rich.table import Table
from rich.text import Text

from dotboot.models import Outcome, Policy, RunResult, Severity, Status, Step

GLYPHS = {
    Status.ALREADY_SATISFIED: "✓",
    Status.FIXED: "+",
    Status.FAILED: "✗",
    Status.SKIPPED: "-",
}

_STATUS_STYLE = {
    Status.ALREADY_SATISFIED: "green",
    Status.FIXED: "blue",
    Status.FAILED: "red",
    Status.SKIPPED: "dim",
}


class Thresholds(BaseModel):
    """Score grading. Purely presentational; the runner never sees these."""

    excellent: int = Field(default=80, ge=0, le=100)
    good: int = Field(default=60, ge=0, le=100)

    @model_validator(mode="after")
    def _ordered(self) -> "Thresholds":
        if self.good > self.excellent:
            raise ValueError("good threshold must not exceed excellent")
        return self

    def grade(self, score: int) -> tuple[str, str]:
        """Return (label, colour) for a percentage score."""
        if score >= self.excellent:
            return "Excellent", "green"
        if score >= self.good:
            return "Good", "yellow"
        return "Needs setup", "red"


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _label(tag: str, color: str) -> Text:
    t = Text()
    t.append(f" {tag} ", style=f"bold white on {color}")
    return t


def _mono(value: str, max_len: int = 120) -> str:
    if len(value) > max_len:
        return value[:max_len] + "…"
    return value


def status_line(outcome: Outcome) -> Text:
    """One progress line: glyph, step name, detail."""
    style = _STATUS_STYLE[outcome.status]
    if outcome.status is Status.FAILED and outcome.severity is Severity.OPTIONAL:
        style = "yellow"
    line = Text("  ")
    line.append(GLYPHS[outcome.status], style=f"bold {style}")
    line.append(f" {outcome.step_name}", style=style)
    if outcome.detail:
        line.append(f"  {_mono(outcome.detail, 100)}", style="dim")
    return line


# ---------------------------------------------------------------------------
# Reporter
# ---------------------------------------------------------------------------


class Reporter:
    """
    Streams outcomes to the terminal as the runner produces them.

    Never mutates what it is given. Pass a Console built over a StringIO to
    capture output in tests.
    """

    def __init__(
        self,
        console: Optional[Console] = None,
        thresholds: Optional[Thresholds] = None,
    ) -> None:
        self.console = console or Console()
        self.thresholds = thresholds or Thresholds()
        self._sections: dict[str, str] = {}
        self._current_section: Optional[str] = None

    # ------------------------------------------------------------------
    # Framing (called by the CLI)
    # ------------------------------------------------------------------

    def banner(self, sets: list[str], check_only: bool) -> None:
        mode = "health check (probe only)" if check_only else "provision"
        self.console.print()
        self.console.print(
            Panel.fit(
                "[bold cyan]dotboot[/bold cyan]\n"
                "[dim]Idempotent development-environment bootstrap[/dim]\n\n"
                f"[dim]Step sets :[/dim] [white]{', '.join(sets)}[/white]\n"
                f"[dim]Mode      :[/dim] [white]{mode}[/white]",
                border_style="cyan",
                padding=(1, 4),
            )
        )

    def sections(self, mapping: dict[str, str]) -> None:
        """Map step names to step-set names; a heading prints when the set changes."""
        self._sections = dict(mapping)
        self._current_section = None

    def section(self, name: str) -> None:
        self.console.print()
        self.console.print(Rule(f"[cyan]{name}[/cyan]", style="cyan"))

    def catalog(self, listing: dict[str, list[Step]]) -> None:
        table = Table(
            box=box.SIMPLE_HEAVY,
            border_style="cyan",
            show_header=True,
            header_style="bold cyan",
            padding=(0, 1),
        )
        table.add_column("Set", style="bold white", width=12)
        table.add_column("Step", style="white")
        table.add_column("Severity", width=9)
        table.add_column("Description", style="dim white")
        for set_name, steps in listing.items():
            for i, step in enumerate(steps):
                table.add_row(
                    set_name if i == 0 else "",
                    step.name,
                    step.severity.value,
                    step.description,
                )
        self.console.print(table)

    def halt(self, reason: str) -> None:
        self.console.print()
        self.console.print(
            Panel(
                f"[bold white]{escape(reason)}[/bold white]",
                title=_label("HALT", "red"),
                border_style="red",
                padding=(0, 2),
            )
        )

    # ------------------------------------------------------------------
    # Runner hooks
    # ------------------------------------------------------------------

    def run_started(self, total: int, policy: Policy, check_only: bool) -> None:
        self.console.print(f"[dim]  {total} step(s), policy {policy.value}[/dim]")

    def step_started(self, index: int, total: int, step: Step) -> None:
        # Progress lines are printed on completion; nothing to show until then.
        pass

    def step_finished(self, index: int, total: int, outcome: Outcome) -> None:
        section = self._sections.get(outcome.step_name)
        if section and section != self._current_section:
            self._current_section = section
            self.section(section)
        self.console.print(status_line(outcome))

    def run_aborted(self, cause: Outcome) -> None:
        self.console.print()
        self.console.print(
            Panel(
                f"[bold red]Required step {escape(repr(cause.step_name))} failed.[/bold red]\n"
                f"[white]{escape(cause.detail)}[/white]\n"
                "[dim]Remaining steps were skipped. Fix the failure and re-run; "
                "completed steps will report as already satisfied.[/dim]",
                title=_label("ABORTED ✗", "red"),
                border_style="red",
                padding=(0, 2),
            )
        )

    def run_finished(self, result: RunResult) -> None:
        self.summary(result)

    # ------------------------------------------------------------------
    # Summary
    # ------------------------------------------------------------------

    def summary(self, result: RunResult) -> None:
        counts = result.counts()
        table = Table(box=box.SIMPLE, show_header=False, padding=(0, 1))
        table.add_column("Status", width=20)
        table.add_column("Count", justify="right", width=6)
        for status in Status:
            style = _STATUS_STYLE[status]
            table.add_row(
                f"[{style}]{GLYPHS[status]} {status.value}[/{style}]",
                str(counts[status]),
            )

        label, color = self.thresholds.grade(result.score)
        self.console.print()
        self.console.print(
            Panel(
                table,
                title="[dim]SUMMARY[/dim]",
                subtitle=(
                    f"[bold {color}]{label}[/bold {color}] "
                    f"[{color}]Score: {result.succeeded}/{result.attempted} "
                    f"({result.score}%)[/{color}]"
                ),
                border_style="dim",
                padding=(0, 1),
            )
        )
        for outcome in result.required_failures:
            self.console.print(
                f"  [red]✗ required:[/red] [white]{escape(outcome.step_name)}[/white]"
                f" [dim]{escape(_mono(outcome.detail, 100))}[/dim]"
            )
        self.console.print()

import io

import pytest
from rich.console import Console

from dotboot.config import Config
from dotboot.display import Reporter
from dotboot.models import ProbeResult, ProbeState, RemediationResult, Severity, Step


class FakeTarget:
    """An in-memory condition that a step can probe and fix."""

    def __init__(self, present: bool = False, fix_works: bool = True, sticks: bool = True):
        self.present = present
        self.fix_works = fix_works
        self.sticks = sticks
        self.probe_calls = 0
        self.fix_calls = 0

    def probe(self) -> ProbeResult:
        self.probe_calls += 1
        if self.present:
            return ProbeResult(state=ProbeState.SATISFIED, detail="present")
        return ProbeResult(state=ProbeState.UNSATISFIED, detail="absent")

    def fix(self) -> RemediationResult:
        self.fix_calls += 1
        if not self.fix_works:
            return RemediationResult(ok=False, detail="installer exploded")
        self.present = self.sticks
        return RemediationResult(ok=True, detail="installed")

    def step(self, name: str, severity: Severity = Severity.REQUIRED) -> Step:
        return Step(name=name, probe=self.probe, remediate=self.fix, severity=severity)


@pytest.fixture
def console():
    return Console(file=io.StringIO(), width=120, color_system=None)


@pytest.fixture
def reporter(console):
    return Reporter(console=console)


@pytest.fixture
def config(tmp_path):
    home = tmp_path / "home"
    home.mkdir()
    dotfiles = tmp_path / "dotfiles"
    dotfiles.mkdir()
    return Config(home=home, dotfiles_root=dotfiles, base_path="/usr/bin:/bin",
                  user="dev", hostname="box")

import pytest
from unittest.mock import MagicMock

from conftest import FakeTarget
from dotboot import probes, remediations
from dotboot.models import (
    Policy,
    ProbeResult,
    ProbeState,
    RemediationResult,
    RunState,
    Severity,
    Status,
    Step,
)
from dotboot.runner import (
    ProbeIndeterminate,
    RemediationFailed,
    Runner,
    RunnerAborted,
    execute_step,
)

# ---------------------------------------------------------------------------
# Single step execution
# ---------------------------------------------------------------------------

def test_satisfied_probe_short_circuits():
    target = FakeTarget(present=True)
    outcome = execute_step(target.step("tool"))
    assert outcome.status is Status.ALREADY_SATISFIED
    assert outcome.detail == "present"
    assert target.fix_calls == 0


def test_unsatisfied_probe_remediates_and_reprobes_once():
    target = FakeTarget(present=False)
    outcome = execute_step(target.step("tool"))
    assert outcome.status is Status.FIXED
    assert target.fix_calls == 1
    assert target.probe_calls == 2


def test_remediation_that_does_not_stick_fails():
    target = FakeTarget(present=False, sticks=False)
    outcome = execute_step(target.step("tool"))
    assert outcome.status is Status.FAILED
    assert "still unsatisfied after remediation" in outcome.detail
    assert target.probe_calls == 2


def test_failed_remediation_detail_is_verbatim():
    target = FakeTarget(present=False, fix_works=False)
    outcome = execute_step(target.step("tool"))
    assert outcome.status is Status.FAILED
    assert outcome.detail == "installer exploded"
    # No confirming probe after a failed remediation.
    assert target.probe_calls == 1


def test_step_idempotence_on_real_file(tmp_path):
    rc = tmp_path / ".bashrc"
    rc.write_text("# existing\n")
    line = 'eval "$(starship init bash)"'
    step = Step(
        name="starship-bash-init",
        probe=probes.file_contains_line(rc, line),
        remediate=remediations.append_line(rc, line, header="Starship prompt"),
    )

    first = execute_step(step)
    after_first = rc.read_text()
    second = execute_step(step)

    assert first.status is Status.FIXED
    assert second.status is Status.ALREADY_SATISFIED
    assert rc.read_text() == after_first
    assert after_first.count(line) == 1


def test_indeterminate_probe_takes_remediation_path():
    state = {"installed": False}

    def probe():
        if not state["installed"]:
            return ProbeResult(state=ProbeState.INDETERMINATE, detail="version tool missing")
        return ProbeResult(state=ProbeState.SATISFIED, detail="1.0")

    def install():
        state["installed"] = True
        return RemediationResult(ok=True, detail="installed")

    fix = MagicMock(side_effect=install)
    outcome = execute_step(Step(name="tool", probe=probe, remediate=fix))

    fix.assert_called_once()
    assert outcome.status is Status.FIXED
    assert outcome.detail == "1.0"


def test_raising_probe_is_indeterminate_not_fatal():
    def probe():
        raise ProbeIndeterminate("kubectl: command not found")

    fix = MagicMock(return_value=RemediationResult(ok=False, detail="no network"))
    outcome = execute_step(Step(name="kubectl", probe=probe, remediate=fix))

    fix.assert_called_once()
    assert outcome.status is Status.FAILED
    assert outcome.detail == "no network"


def test_raising_remediation_becomes_failed_outcome():
    target = FakeTarget(present=False)

    def fix():
        raise RemediationFailed("GET https://example.invalid → 404")

    outcome = execute_step(Step(name="tool", probe=target.probe, remediate=fix))
    assert outcome.status is Status.FAILED
    assert outcome.detail == "GET https://example.invalid → 404"


def test_check_only_never_remediates():
    target = FakeTarget(present=False)
    outcome = execute_step(target.step("tool"), check_only=True)
    assert outcome.status is Status.FAILED
    assert outcome.detail == "not satisfied: absent"
    assert target.fix_calls == 0


def test_step_without_remediation_fails_when_unsatisfied():
    target = FakeTarget(present=False)
    outcome = execute_step(Step(name="check-gpu", probe=target.probe))
    assert outcome.status is Status.FAILED
    assert outcome.detail.startswith("no remediation available")


def test_outcome_carries_step_severity():
    target = FakeTarget(present=False, fix_works=False)
    outcome = execute_step(target.step("tool", Severity.OPTIONAL))
    assert outcome.severity is Severity.OPTIONAL


# ---------------------------------------------------------------------------
# Runner state machine
# ---------------------------------------------------------------------------

def _abc(policy, reporter=None):
    a = FakeTarget(present=False, fix_works=False)
    b = FakeTarget(present=False)
    c = FakeTarget(present=False)
    steps = [
        a.step("A", Severity.REQUIRED),
        b.step("B", Severity.OPTIONAL),
        c.step("C", Severity.REQUIRED),
    ]
    return Runner(steps, policy=policy, reporter=reporter), (a, b, c)


def test_halt_propagation():
    runner, (a, b, c) = _abc(Policy.HALT_ON_REQUIRED_FAILURE)
    assert runner.state is RunState.PENDING

    result = runner.run()

    assert [o.step_name for o in result.outcomes] == ["A", "B", "C"]
    assert [o.status for o in result.outcomes] == [Status.FAILED, Status.SKIPPED, Status.SKIPPED]
    assert result.state is RunState.ABORTED
    assert runner.state is RunState.ABORTED
    assert result.exit_code != 0
    assert b.probe_calls == 0 and c.probe_calls == 0
    assert "'A' failed" in result.outcomes[1].detail


def test_continue_policy_attempts_every_step():
    runner, (a, b, c) = _abc(Policy.CONTINUE_ALWAYS)
    result = runner.run()

    assert [o.status for o in result.outcomes] == [Status.FAILED, Status.FIXED, Status.FIXED]
    assert result.state is RunState.COMPLETED
    assert a.fix_calls == b.fix_calls == c.fix_calls == 1
    assert result.exit_code == 3


def test_optional_failure_does_not_halt():
    bad = FakeTarget(present=False, fix_works=False)
    good = FakeTarget(present=True)
    runner = Runner([bad.step("opt", Severity.OPTIONAL), good.step("req")])
    result = runner.run()

    assert result.state is RunState.COMPLETED
    assert [o.status for o in result.outcomes] == [Status.FAILED, Status.ALREADY_SATISFIED]
    assert result.exit_code == 0


def test_order_preserved():
    targets = [FakeTarget(present=i % 2 == 0) for i in range(6)]
    steps = [t.step(f"step-{i}") for i, t in enumerate(targets)]
    result = Runner(steps).run()
    assert [o.step_name for o in result.outcomes] == [s.name for s in steps]


def test_duplicate_step_names_rejected():
    target = FakeTarget()
    with pytest.raises(ValueError, match="Duplicate step names: uv"):
        Runner([target.step("uv"), target.step("uv")])


def test_runner_runs_once():
    runner = Runner([FakeTarget(present=True).step("x")])
    runner.run()
    with pytest.raises(RuntimeError, match="already completed"):
        runner.run()


def test_raise_for_abort():
    runner, _ = _abc(Policy.HALT_ON_REQUIRED_FAILURE)
    runner.run()
    with pytest.raises(RunnerAborted, match="'A' failed: installer exploded") as info:
        runner.raise_for_abort()
    assert info.value.outcome.step_name == "A"


def test_raise_for_abort_noop_when_completed():
    runner = Runner([FakeTarget(present=True).step("x")])
    runner.run()
    runner.raise_for_abort()


def test_reporter_receives_streamed_hooks():
    reporter = MagicMock()
    runner, _ = _abc(Policy.HALT_ON_REQUIRED_FAILURE, reporter)
    result = runner.run()

    reporter.run_started.assert_called_once_with(3, Policy.HALT_ON_REQUIRED_FAILURE, False)
    # Skipped steps are never started, only recorded.
    assert reporter.step_started.call_count == 1
    assert reporter.step_finished.call_count == 3
    streamed = [c.args[2] for c in reporter.step_finished.call_args_list]
    assert streamed == result.outcomes
    reporter.run_aborted.assert_called_once_with(result.outcomes[0])
    reporter.run_finished.assert_called_once_with(result)


def test_interrupt_propagates_between_steps():
    done = FakeTarget(present=False)

    def interrupted():
        raise KeyboardInterrupt

    steps = [done.step("first"), Step(name="second", probe=interrupted)]
    runner = Runner(steps)
    with pytest.raises(KeyboardInterrupt):
        runner.run()
    assert done.present
    assert [o.step_name for o in runner.outcomes] == ["first"]

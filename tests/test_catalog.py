import pytest
from unittest.mock import patch

from dotboot import catalog
from dotboot.models import CommandResult, RemediationResult, RunState, Severity, Status
from dotboot.runner import RemediationFailed, Runner


def test_build_defaults(config):
    groups = catalog.build([], config)
    assert list(groups) == catalog.DEFAULT_SETS


def test_build_keeps_first_mention_order(config):
    groups = catalog.build(["cloud", "prompt", "cloud"], config)
    assert list(groups) == ["cloud", "prompt"]


def test_build_rejects_unknown_set(config):
    with pytest.raises(KeyError, match="Unknown step set"):
        catalog.build(["prompt", "gaming"], config)


def test_step_names_unique_across_all_sets(config):
    names = [step.name for steps in catalog.build(list(catalog.STEP_SETS), config).values()
             for step in steps]
    assert len(names) == len(set(names))


def test_health_steps_are_check_only(config):
    steps = catalog.health_steps(config)
    assert steps
    assert all(step.remediate is None for step in steps)
    assert all(step.severity is Severity.OPTIONAL for step in steps)
    assert all(step.name.startswith("check-") for step in steps)


def test_aliases_name_the_configured_env(config):
    config = config.model_copy(update={"aiml_env": "ml"})
    step = next(s for s in catalog.aiml_steps(config) if s.name == "aiml-aliases")
    (config.home / ".bashrc").write_text("")
    assert step.remediate().ok
    assert "alias aiml='conda activate ml'" in (config.home / ".bashrc").read_text()


def test_rc_path_lines_use_home_variable(config):
    assert catalog._path_line(config.bin_dir, config) == 'export PATH="$HOME/.local/bin:$PATH"'


@patch("dotboot.probes.system.run")
@patch("dotboot.probes.system.locate", return_value="/usr/local/bin/starship")
def test_prompt_set_converges(mock_locate, mock_run, config):
    mock_run.return_value = CommandResult(ok=True, returncode=0, stdout="starship 1.17.1\n")
    toml = config.dotfiles_root / "starship" / "starship.toml"
    toml.parent.mkdir()
    toml.write_text("add_newline = false\n")
    bashrc = config.home / ".bashrc"
    bashrc.write_text("alias ll='ls -l'\n")

    first = Runner(catalog.prompt_steps(config)).run()
    by_name = {o.step_name: o for o in first.outcomes}

    assert first.state is RunState.COMPLETED
    assert first.exit_code == 0
    assert by_name["starship-config"].status is Status.FIXED
    assert by_name["starship"].status is Status.ALREADY_SATISFIED
    assert by_name["starship-bash-init"].status is Status.FIXED
    # No .zshrc: optional failure, reported but not fatal.
    assert by_name["starship-zsh-init"].status is Status.FAILED
    assert (config.home / ".config" / "starship.toml").read_text() == "add_newline = false\n"

    second = Runner(catalog.prompt_steps(config)).run()
    by_name = {o.step_name: o for o in second.outcomes}
    assert by_name["starship-config"].status is Status.ALREADY_SATISFIED
    assert by_name["starship-bash-init"].status is Status.ALREADY_SATISFIED
    assert bashrc.read_text().count('eval "$(starship init bash)"') == 1


def _step(steps, name):
    return next(s for s in steps if s.name == name)


@patch("dotboot.catalog.system.fetch", side_effect=RemediationFailed("GET stable.txt → 503"))
def test_kubectl_release_lookup_failure_is_a_result(mock_fetch, config):
    step = _step(catalog.container_steps(config), "kubectl")
    result = step.remediate()
    assert result == RemediationResult(ok=False, detail="GET stable.txt → 503")


@patch("dotboot.catalog.system.fetch", return_value=b"<html>\xff maintenance</html>")
def test_kubectl_unexpected_release_text_is_a_result(mock_fetch, config):
    step = _step(catalog.container_steps(config), "kubectl")
    result = step.remediate()
    assert not result.ok
    assert "unexpected release version" in result.detail
    assert mock_fetch.call_count == 1


def test_aiml_set_installs_what_the_health_check_audits(config):
    names = [step.name for step in catalog.aiml_steps(config)]
    for name in ("system-tools", "github-cli", "conda-auto-activate", "computer-vision",
                 "ml-stack", "dev-tools", "vscode-extensions"):
        assert name in names
    assert names.index("github-cli") < names.index("aiml-aliases")
    assert names.index("conda") < names.index("conda-auto-activate") < names.index("aiml-env")


@patch("dotboot.probes.system.run")
def test_computer_vision_checks_cv2(mock_run, config):
    mock_run.return_value = CommandResult(ok=False, returncode=1, stderr="ModuleNotFoundError")
    result = _step(catalog.aiml_steps(config), "computer-vision").probe()
    assert not result.satisfied
    imported = [call.args[0][2] for call in mock_run.call_args_list]
    assert any("import cv2" in script for script in imported)


@patch("dotboot.probes.system.run")
def test_conda_auto_activate_reads_conda_config(mock_run, config):
    step = _step(catalog.aiml_steps(config), "conda-auto-activate")
    mock_run.return_value = CommandResult(ok=True, returncode=0, stdout="auto_activate_base: True\n")
    assert not step.probe().satisfied
    mock_run.return_value = CommandResult(ok=True, returncode=0, stdout="auto_activate_base: False\n")
    assert step.probe().satisfied


@patch("dotboot.probes.system.run")
def test_vscode_extensions_need_every_extension(mock_run, config):
    step = _step(catalog.aiml_steps(config), "vscode-extensions")
    listed = "\n".join(catalog.VSCODE_EXTENSIONS)
    mock_run.return_value = CommandResult(ok=True, returncode=0, stdout=listed.lower() + "\n")
    assert step.probe().satisfied
    mock_run.return_value = CommandResult(ok=True, returncode=0, stdout="ms-python.python\n")
    assert not step.probe().satisfied


def test_iac_layouts_converge(config):
    steps = [s for s in catalog.cloud_steps(config) if s.name.endswith("-layout")]
    assert [s.name for s in steps] == ["terraform-layout", "ansible-layout"]

    first = Runner(steps).run()
    assert [o.status for o in first.outcomes] == [Status.FIXED, Status.FIXED]
    assert (config.dotfiles_root / "infrastructure" / "environments" / "staging").is_dir()
    assert (config.dotfiles_root / "infrastructure" / "providers" / "oracle").is_dir()
    assert (config.dotfiles_root / "automation" / "inventory").is_dir()

    second = Runner(steps).run()
    assert [o.status for o in second.outcomes] == [Status.ALREADY_SATISFIED] * 2

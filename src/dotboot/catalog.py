# catalog.py
# Step-set registry: the provisioning recipes.
#
# Each set is a factory taking a Config and returning an ordered list of
# Steps. The CLI imports STEP_SETS and never builds steps directly. Order
# inside a set matters: later steps rely on binaries installed earlier.

import platform
import re
from pathlib import Path
from typing import Callable

from dotboot import probes, remediations, system
from dotboot.config import Config
from dotboot.models import RemediationResult, Severity, Step
from dotboot.runner import RemediationFailed

REQUIRED = Severity.REQUIRED
OPTIONAL = Severity.OPTIONAL

STARSHIP_INSTALLER = "https://starship.rs/install.sh"
UV_INSTALLER = "https://astral.sh/uv/install.sh"
NODESOURCE_SETUP = "https://deb.nodesource.com/setup_lts.x"
MINICONDA_INSTALLER = "https://repo.anaconda.com/miniconda/Miniconda3-latest-Linux-{arch}.sh"
DOCKER_INSTALLER = "https://get.docker.com"
KUBECTL_STABLE = "https://dl.k8s.io/release/stable.txt"
KUBECTL_BINARY = "https://dl.k8s.io/release/{version}/bin/linux/{arch}/kubectl"
HELM_INSTALLER = "https://raw.githubusercontent.com/helm/helm/main/scripts/get-helm-3"
K9S_INSTALLER = "https://webinstall.dev/k9s"
COMPOSE_BINARY = "https://github.com/docker/compose/releases/latest/download/docker-compose-linux-{machine}"
SKAFFOLD_BINARY = "https://storage.googleapis.com/skaffold/releases/latest/skaffold-linux-{arch}"
AZURE_INSTALLER = "https://aka.ms/InstallAzureCLIDeb"

SCIENTIFIC_PACKAGES = ["numpy", "scipy", "pandas", "matplotlib", "seaborn", "jupyter", "ipykernel"]
PYTORCH_PACKAGES = ["pytorch", "pytorch-cuda=12.1", "torchvision", "torchaudio"]
HUGGINGFACE_PACKAGES = ["transformers", "datasets", "accelerate", "diffusers", "tokenizers"]
VISION_PACKAGES = ["opencv", "pillow", "scikit-image"]
ML_PACKAGES = ["scikit-learn", "xgboost", "lightgbm", "optuna", "wandb"]
DEV_TOOL_PACKAGES = ["black", "isort", "flake8", "pytest", "ipywidgets", "tqdm", "rich"]
SYSTEM_TOOLS = ["htop", "iotop", "ncdu", "tree"]
VSCODE_EXTENSIONS = [
    "ms-python.python",
    "ms-toolsai.jupyter",
    "ms-python.black-formatter",
    "ms-python.isort",
    "ms-python.flake8",
    "GitHub.copilot",
    "tamasfe.even-better-toml",
]

AIML_ALIASES = """
# AI/ML Aliases
alias gpu='watch -n 1 nvidia-smi'
alias gpumem='nvidia-smi --query-gpu=memory.used,memory.total --format=csv'
alias gputemp='nvidia-smi --query-gpu=temperature.gpu --format=csv,noheader'
alias aiml='conda activate {env}'
alias lab='jupyter lab --no-browser --port=8888'
alias nb='jupyter notebook --no-browser --port=8888'
alias uvinstall='uv pip install'
alias uvlist='uv pip list'

# GitHub CLI Shortcuts
alias ghcreate='gh repo create'
alias ghclone='gh repo clone'
alias ghpr='gh pr create'
alias ghissue='gh issue create'
alias ghview='gh repo view --web'
alias ghstatus='gh pr status'"""

AI_PROJECT_DIRS = ["data", "models", "notebooks", "src", "configs", "outputs", "logs", ".github/workflows"]

MICROSERVICE_LAYOUT = {
    "ui": ["src", "public", "components"],
    "api": ["routes", "middleware", "types"],
    "ml-service": ["models", "endpoints", "utils"],
    "email-parser": ["parser", "processors", "schemas"],
    "infra": ["docker", "k8s", "helm"],
}

MICROSERVICE_SCRIPT = """#!/bin/bash
# Create new microservice project structure

PROJECT_NAME=${1:-my-ai-app}
echo "Creating microservice project: $PROJECT_NAME"

mkdir -p "$PROJECT_NAME"/{ui,api,ml-service,email-parser,infra}
mkdir -p "$PROJECT_NAME/ui"/{src,public,components}
mkdir -p "$PROJECT_NAME/api"/{routes,middleware,types}
mkdir -p "$PROJECT_NAME/ml-service"/{models,endpoints,utils}
mkdir -p "$PROJECT_NAME/email-parser"/{parser,processors,schemas}
mkdir -p "$PROJECT_NAME/infra"/{docker,k8s,helm}

echo "Project structure created in $PROJECT_NAME/"
"""

TERRAFORM_APT = (
    "wget -O- https://apt.releases.hashicorp.com/gpg"
    " | gpg --dearmor --yes -o /usr/share/keyrings/hashicorp-archive-keyring.gpg"
    " && echo \"deb [signed-by=/usr/share/keyrings/hashicorp-archive-keyring.gpg]"
    " https://apt.releases.hashicorp.com $(lsb_release -cs) main\""
    " > /etc/apt/sources.list.d/hashicorp.list"
    " && apt-get update && apt-get install -y terraform"
)

ANSIBLE_APT = (
    "apt-get update && apt-get install -y software-properties-common"
    " && add-apt-repository --yes --update ppa:ansible/ansible"
    " && apt-get install -y ansible"
)

GH_APT = (
    "curl -fsSL https://cli.github.com/packages/githubcli-archive-keyring.gpg"
    " -o /usr/share/keyrings/githubcli-archive-keyring.gpg"
    " && echo \"deb [arch=$(dpkg --print-architecture)"
    " signed-by=/usr/share/keyrings/githubcli-archive-keyring.gpg]"
    " https://cli.github.com/packages stable main\""
    " > /etc/apt/sources.list.d/github-cli.list"
    " && apt-get update && apt-get install -y gh"
)

TERRAFORM_LAYOUT = [
    "modules/kubernetes", "modules/networking", "modules/databases",
    "modules/monitoring", "modules/ai-ml",
    "environments/dev", "environments/staging", "environments/prod",
    "providers/azure", "providers/gcp", "providers/aws", "providers/oracle",
]
ANSIBLE_LAYOUT = ["playbooks", "roles", "inventory"]

GCLOUD_APT = (
    "curl -fsSL https://packages.cloud.google.com/apt/doc/apt-key.gpg"
    " | gpg --dearmor --yes -o /usr/share/keyrings/cloud.google.gpg"
    " && echo \"deb [signed-by=/usr/share/keyrings/cloud.google.gpg]"
    " https://packages.cloud.google.com/apt cloud-sdk main\""
    " > /etc/apt/sources.list.d/google-cloud-sdk.list"
    " && apt-get update && apt-get install -y google-cloud-cli"
)

AWS_BUNDLE = (
    "cd \"$(mktemp -d)\""
    " && curl -fsSL https://awscli.amazonaws.com/awscli-exe-linux-{machine}.zip -o awscliv2.zip"
    " && unzip -q awscliv2.zip && sudo ./aws/install"
)


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _arch() -> str:
    """Debian-style architecture name (amd64 / arm64)."""
    machine = platform.machine().lower()
    return {"x86_64": "amd64", "aarch64": "arm64"}.get(machine, machine)


def _machine() -> str:
    """Kernel-style architecture name (x86_64 / aarch64)."""
    machine = platform.machine().lower()
    return {"amd64": "x86_64", "arm64": "aarch64"}.get(machine, machine)


def _shell_path(path: Path, home: Path) -> str:
    """Render `path` for an rc file, spelling the home prefix as $HOME."""
    try:
        return "$HOME/" + path.relative_to(home).as_posix()
    except ValueError:
        return path.as_posix()


def _path_line(path: Path, config: Config) -> str:
    return f'export PATH="{_shell_path(path, config.home)}:$PATH"'


def _binary(
    config: Config,
    name: str,
    binary: str,
    remediate,
    *,
    severity: Severity = REQUIRED,
    version_args=("--version",),
    description: str = "",
) -> Step:
    return Step(
        name=name,
        probe=probes.binary_on_path(
            binary, search_path=config.search_path, version_args=version_args
        ),
        remediate=remediate,
        severity=severity,
        description=description or f"{binary} on PATH",
    )


def _modules(python: str, *modules: str):
    return probes.all_of(*[probes.python_module(m, python=python) for m in modules])


def _layout(root: Path, subdirs: list[str]) -> tuple:
    """Probe and remediation for a directory skeleton under `root`."""
    dirs = [root / d for d in subdirs]
    return (
        probes.all_of(*[probes.path_exists(d, "dir") for d in dirs]),
        remediations.make_directories(*dirs),
    )


def _installer(config: Config, url: str, **kwargs):
    """fetch_and_run with the config's network settings and PATH."""
    env = {"PATH": config.search_path, **kwargs.pop("env", {})}
    return remediations.fetch_and_run(
        url,
        env=env,
        timeout=config.command_timeout,
        http_timeout=config.http_timeout,
        retries=config.fetch_retries,
        **kwargs,
    )


def _command(config: Config, cmd, **kwargs):
    env = {"PATH": config.search_path, **kwargs.pop("env", {})}
    return remediations.run_command(cmd, timeout=config.command_timeout, env=env, **kwargs)


def _sudo_shell(config: Config, script: str):
    return _command(config, ["sudo", "sh", "-c", script])


def _download(config: Config, url: str, dest: Path, mode: int = 0o755):
    return remediations.download_file(
        url, dest, mode=mode, timeout=config.http_timeout, retries=config.fetch_retries
    )


def _install_kubectl(config: Config):
    """Resolve the current stable release, then download that binary."""

    def remediate() -> RemediationResult:
        try:
            body = system.fetch(
                KUBECTL_STABLE, timeout=config.http_timeout, retries=config.fetch_retries
            )
        except RemediationFailed as exc:
            return RemediationResult(ok=False, detail=str(exc))
        version = body.decode("ascii", errors="replace").strip()
        if not re.fullmatch(r"v\d+\.\d+\.\d+", version):
            return RemediationResult(
                ok=False, detail=f"unexpected release version from {KUBECTL_STABLE}: {version[:40]!r}"
            )
        url = KUBECTL_BINARY.format(version=version, arch=_arch())
        return _download(config, url, config.bin_dir / "kubectl")()

    return remediate


# ---------------------------------------------------------------------------
# Step sets
# ---------------------------------------------------------------------------


def prompt_steps(config: Config) -> list[Step]:
    """Starship prompt: config file, binary, shell init lines."""
    src = config.dotfiles_root / "starship" / "starship.toml"
    dest = config.home / ".config" / "starship.toml"
    steps = [
        Step(
            name="starship-config",
            probe=probes.same_content(src, dest),
            remediate=remediations.copy_file(src, dest),
            description=f"copy starship.toml to {dest.parent}",
        ),
        _binary(
            config, "starship", "starship",
            _installer(config, STARSHIP_INSTALLER, args=["-y", "-b", str(config.bin_dir)]),
            severity=OPTIONAL,
        ),
    ]
    for shell in ("bash", "zsh"):
        rc = config.home / f".{shell}rc"
        line = f'eval "$(starship init {shell})"'
        steps.append(Step(
            name=f"starship-{shell}-init",
            probe=probes.file_contains_line(rc, line),
            remediate=remediations.append_line(rc, line, header="Starship prompt"),
            severity=OPTIONAL,
            description=f"starship init in {rc.name}",
        ))
    return steps


def aiml_steps(config: Config) -> list[Step]:
    """uv, Node.js + Graphite, Miniconda and the AI/ML conda environment."""
    bashrc = config.home / ".bashrc"
    env_dir = config.conda_root / "envs" / config.aiml_env
    conda = config.conda
    python = config.env_python
    template = config.home / "ai-projects" / "template"
    local_bin = _path_line(config.bin_dir, config)
    conda_bin = _path_line(config.conda_root / "bin", config)

    return [
        _binary(
            config, "uv", "uv",
            _installer(config, UV_INSTALLER, env={
                "UV_INSTALL_DIR": str(config.bin_dir),
                "INSTALLER_NO_MODIFY_PATH": "1",
            }),
        ),
        Step(
            name="local-bin-path",
            probe=probes.file_contains_line(bashrc, local_bin),
            remediate=remediations.append_line(bashrc, local_bin, header="Local binaries"),
            severity=OPTIONAL,
            description=f"{config.bin_dir} on PATH in .bashrc",
        ),
        _binary(
            config, "nodejs", "node",
            remediations.chain(
                _installer(config, NODESOURCE_SETUP, interpreter=["sudo", "-E", "bash"]),
                _command(config, ["sudo", "apt-get", "install", "-y", "nodejs"]),
            ),
            severity=OPTIONAL,
        ),
        _binary(
            config, "graphite", "gt",
            _command(config, ["npm", "install", "-g", "@withgraphite/graphite-cli"]),
            severity=OPTIONAL,
        ),
        _binary(
            config, "conda", "conda",
            _installer(
                config,
                MINICONDA_INSTALLER.format(arch=_machine()),
                interpreter=["bash"],
                args=["-b", "-p", str(config.conda_root)],
            ),
        ),
        Step(
            name="conda-path",
            probe=probes.file_contains_line(bashrc, conda_bin),
            remediate=remediations.append_line(bashrc, conda_bin, header="Miniconda"),
            severity=OPTIONAL,
            description="miniconda on PATH in .bashrc",
        ),
        Step(
            name="conda-auto-activate",
            probe=probes.command_succeeds(
                [conda, "config", "--show", "auto_activate_base"],
                expect=r"auto_activate_base:\s*False",
            ),
            remediate=_command(config, [conda, "config", "--set", "auto_activate_base", "false"]),
            severity=OPTIONAL,
            description="base environment not activated in new shells",
        ),
        Step(
            name="aiml-env",
            probe=probes.path_exists(env_dir, "dir"),
            remediate=_command(config, [conda, "create", "-n", config.aiml_env, "python=3.11", "-y"]),
            description=f"conda environment {config.aiml_env!r}",
        ),
        Step(
            name="scientific-stack",
            probe=probes.all_of(*[
                probes.python_module(pkg, python=python)
                for pkg in ("numpy", "pandas", "matplotlib", "jupyter")
            ]),
            remediate=_command(config, [
                conda, "install", "-n", config.aiml_env, "-y",
                *SCIENTIFIC_PACKAGES, "-c", "conda-forge",
            ]),
            description="numpy, pandas, matplotlib, jupyter",
        ),
        Step(
            name="pytorch",
            probe=probes.python_module("torch", python=python),
            remediate=_command(config, [
                conda, "install", "-n", config.aiml_env, "-y",
                *PYTORCH_PACKAGES, "-c", "pytorch", "-c", "nvidia",
            ]),
            description="PyTorch with CUDA",
        ),
        Step(
            name="huggingface",
            probe=probes.python_module("transformers", python=python),
            remediate=_command(config, [
                "uv", "pip", "install", "--python", python, *HUGGINGFACE_PACKAGES,
            ]),
            severity=OPTIONAL,
            description="transformers, datasets, diffusers",
        ),
        Step(
            name="computer-vision",
            probe=_modules(python, "cv2", "PIL", "skimage"),
            remediate=_command(config, [
                conda, "install", "-n", config.aiml_env, "-y",
                *VISION_PACKAGES, "-c", "conda-forge",
            ]),
            severity=OPTIONAL,
            description="opencv, pillow, scikit-image",
        ),
        Step(
            name="ml-stack",
            probe=_modules(python, "sklearn", "xgboost", "lightgbm", "optuna"),
            remediate=_command(config, ["uv", "pip", "install", "--python", python, *ML_PACKAGES]),
            severity=OPTIONAL,
            description="scikit-learn, xgboost, lightgbm, optuna",
        ),
        Step(
            name="dev-tools",
            probe=_modules(python, "black", "isort", "pytest", "tqdm"),
            remediate=_command(config, [
                "uv", "pip", "install", "--python", python, *DEV_TOOL_PACKAGES,
            ]),
            severity=OPTIONAL,
            description="formatters, linters and pytest in the environment",
        ),
        Step(
            name="system-tools",
            probe=probes.all_of(*[
                probes.binary_on_path(tool, search_path=config.search_path)
                for tool in SYSTEM_TOOLS
            ]),
            remediate=_sudo_shell(
                config, f"apt-get update && apt-get install -y {' '.join(SYSTEM_TOOLS)}"
            ),
            severity=OPTIONAL,
            description="htop, iotop, ncdu, tree",
        ),
        _binary(
            config, "github-cli", "gh", _sudo_shell(config, GH_APT),
            severity=OPTIONAL,
        ),
        Step(
            name="vscode-extensions",
            probe=probes.all_of(*[
                probes.command_succeeds(
                    ["code", "--list-extensions"],
                    expect=rf"(?im)^{re.escape(ext)}$",
                    search_path=config.search_path,
                )
                for ext in VSCODE_EXTENSIONS
            ]),
            remediate=remediations.chain(*[
                _command(config, ["code", "--install-extension", ext])
                for ext in VSCODE_EXTENSIONS
            ]),
            severity=OPTIONAL,
            description="Python, Jupyter and formatter extensions",
        ),
        Step(
            name="aiml-aliases",
            probe=probes.file_contains_line(bashrc, "# AI/ML Aliases"),
            remediate=remediations.append_line(
                bashrc, AIML_ALIASES.format(env=config.aiml_env)
            ),
            severity=OPTIONAL,
            description="gpu / lab / gh aliases in .bashrc",
        ),
        Step(
            name="ai-project-template",
            probe=probes.all_of(*[
                probes.path_exists(template / d, "dir") for d in AI_PROJECT_DIRS
            ]),
            remediate=remediations.make_directories(*[template / d for d in AI_PROJECT_DIRS]),
            severity=OPTIONAL,
            description=f"project skeleton at {template}",
        ),
    ]


def container_steps(config: Config) -> list[Step]:
    """Docker, Kubernetes CLIs and the microservice template script."""
    template = config.dotfiles_root / "templates" / "create-microservice-project.sh"
    return [
        _binary(
            config, "docker", "docker",
            remediations.chain(
                _installer(config, DOCKER_INSTALLER),
                _command(config, ["sudo", "usermod", "-aG", "docker", config.user]),
            ),
        ),
        _binary(
            config, "kubectl", "kubectl", _install_kubectl(config),
            version_args=("version", "--client"),
        ),
        _binary(
            config, "helm", "helm",
            _installer(config, HELM_INSTALLER, interpreter=["bash"], env={
                "HELM_INSTALL_DIR": str(config.bin_dir),
                "USE_SUDO": "false",
            }),
            version_args=("version", "--short"),
        ),
        _binary(
            config, "k9s", "k9s",
            _installer(config, K9S_INSTALLER, interpreter=["bash"]),
            severity=OPTIONAL,
            version_args=("version", "--short"),
        ),
        _binary(
            config, "docker-compose", "docker-compose",
            _download(config, COMPOSE_BINARY.format(machine=_machine()),
                      config.bin_dir / "docker-compose"),
            severity=OPTIONAL,
        ),
        _binary(
            config, "skaffold", "skaffold",
            _download(config, SKAFFOLD_BINARY.format(arch=_arch()), config.bin_dir / "skaffold"),
            severity=OPTIONAL,
            version_args=("version",),
        ),
        Step(
            name="microservice-template",
            probe=probes.path_exists(template, "file"),
            remediate=remediations.write_file(template, MICROSERVICE_SCRIPT, mode=0o755),
            severity=OPTIONAL,
            description=f"{template.name} in {template.parent}",
        ),
    ]


def cloud_steps(config: Config) -> list[Step]:
    """Cloud provider CLIs, Terraform, Ansible, an SSH key pair and IaC layouts."""
    key = config.home / ".ssh" / "id_rsa"
    infra = config.dotfiles_root / "infrastructure"
    automation = config.dotfiles_root / "automation"
    terraform_probe, terraform_fix = _layout(infra, TERRAFORM_LAYOUT)
    ansible_probe, ansible_fix = _layout(automation, ANSIBLE_LAYOUT)
    return [
        _binary(
            config, "azure-cli", "az",
            _installer(config, AZURE_INSTALLER, interpreter=["sudo", "bash"]),
            severity=OPTIONAL,
            version_args=None,
        ),
        _binary(config, "terraform", "terraform", _sudo_shell(config, TERRAFORM_APT),
                version_args=("version",)),
        _binary(config, "ansible", "ansible", _sudo_shell(config, ANSIBLE_APT)),
        _binary(
            config, "gcloud", "gcloud", _sudo_shell(config, GCLOUD_APT),
            severity=OPTIONAL, version_args=None,
        ),
        _binary(
            config, "aws-cli", "aws",
            _command(config, ["sh", "-c", AWS_BUNDLE.format(machine=_machine())]),
            severity=OPTIONAL,
        ),
        Step(
            name="ssh-key",
            probe=probes.path_exists(key, "file"),
            remediate=remediations.chain(
                remediations.make_directories(key.parent),
                _command(config, [
                    "ssh-keygen", "-t", "rsa", "-b", "4096",
                    "-C", f"{config.user}@{config.hostname}",
                    "-f", str(key), "-N", "",
                ]),
            ),
            description=f"SSH key pair at {key}",
        ),
        Step(
            name="terraform-layout",
            probe=terraform_probe,
            remediate=terraform_fix,
            severity=OPTIONAL,
            description=f"module and environment tree at {infra}",
        ),
        Step(
            name="ansible-layout",
            probe=ansible_probe,
            remediate=ansible_fix,
            severity=OPTIONAL,
            description=f"playbooks, roles and inventory at {automation}",
        ),
    ]


def scaffold_steps(config: Config) -> list[Step]:
    """Microservice project directory tree under the project root."""
    root = config.project_root / config.project_name
    dirs = [root / service / sub for service, subs in MICROSERVICE_LAYOUT.items() for sub in subs]
    return [
        Step(
            name="microservice-project",
            probe=probes.all_of(*[probes.path_exists(d, "dir") for d in dirs]),
            remediate=remediations.make_directories(*dirs),
            description=f"service layout at {root}",
        ),
    ]


def health_steps(config: Config) -> list[Step]:
    """Check-only environment audit; nothing here remediates."""
    python = config.env_python
    path = config.search_path

    def check(name, probe, description=""):
        return Step(name=f"check-{name}", probe=probe, severity=OPTIONAL, description=description)

    steps = [
        check("ram", probes.min_memory_gb(15), "at least 16GB RAM recommended"),
        check("gpu", probes.command_succeeds(
            ["nvidia-smi", "--query-gpu=name,memory.total", "--format=csv,noheader,nounits"],
            search_path=path,
        ), "NVIDIA GPU"),
        check("python", probes.binary_on_path(
            "python3", search_path=path, version_args=["--version"], min_version="3.11",
        ), "Python 3.11+"),
        check("conda", probes.binary_on_path(
            "conda", search_path=path, version_args=["--version"],
        )),
        check("conda-env", probes.path_exists(config.conda_root / "envs" / config.aiml_env, "dir"),
              f"conda environment {config.aiml_env!r}"),
        check("pytorch", probes.python_module("torch", python=python)),
        check("pytorch-cuda", probes.command_succeeds(
            [python, "-c",
             "import sys, torch; print(torch.version.cuda); "
             "sys.exit(0 if torch.cuda.is_available() else 1)"],
        ), "GPU acceleration"),
    ]
    for module, label in (
        ("numpy", "numpy"), ("pandas", "pandas"), ("matplotlib", "matplotlib"),
        ("transformers", "transformers"), ("cv2", "opencv"),
    ):
        steps.append(check(label, probes.python_module(module, python=python)))
    steps += [
        check("git", probes.binary_on_path("git", search_path=path, version_args=["--version"])),
        check("vscode", probes.binary_on_path("code", search_path=path)),
        check("jupyter", probes.python_module("jupyter", python=python)),
        check("docker", probes.binary_on_path("docker", search_path=path, version_args=["--version"])),
    ]
    return steps


STEP_SETS: dict[str, Callable[[Config], list[Step]]] = {
    "prompt":     prompt_steps,
    "aiml":       aiml_steps,
    "containers": container_steps,
    "cloud":      cloud_steps,
    "scaffold":   scaffold_steps,
    "health":     health_steps,
}

DEFAULT_SETS = ["prompt", "aiml", "containers", "cloud"]


def build(names: list[str], config: Config) -> dict[str, list[Step]]:
    """
    Instantiate the selected sets in order of first mention.

    An empty selection means DEFAULT_SETS. Unknown names raise KeyError.
    """
    selected = list(dict.fromkeys(names or DEFAULT_SETS))
    unknown = [name for name in selected if name not in STEP_SETS]
    if unknown:
        raise KeyError(f"Unknown step set(s): {', '.join(unknown)}")
    return {name: STEP_SETS[name](config) for name in selected}

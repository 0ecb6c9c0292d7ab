# config.py
# Run configuration, resolved once at startup.
#
# Values come from DOTBOOT_* environment variables, optionally seeded from a
# .env file. Step factories receive this object explicitly; nothing below the
# CLI reads os.environ or mutates PATH.

import getpass
import os
import socket
from pathlib import Path
from typing import Optional

from dotenv import find_dotenv, load_dotenv
from pydantic import BaseModel, Field, model_validator

from dotboot.display import Thresholds
from dotboot.models import Policy

ENV_PREFIX = "DOTBOOT_"

POLICY_ALIASES = {
    "halt": Policy.HALT_ON_REQUIRED_FAILURE,
    "continue": Policy.CONTINUE_ALWAYS,
}


class Config(BaseModel):
    home: Path = Field(default_factory=Path.home)
    dotfiles_root: Path = Field(default_factory=Path.cwd)
    bin_dir: Optional[Path] = None
    conda_root: Optional[Path] = None
    aiml_env: str = "aiml"
    project_root: Optional[Path] = None
    project_name: str = "my-ai-app"
    user: str = Field(default_factory=getpass.getuser)
    hostname: str = Field(default_factory=socket.gethostname)
    policy: Policy = Policy.HALT_ON_REQUIRED_FAILURE
    http_timeout: float = Field(default=30.0, gt=0)
    fetch_retries: int = Field(default=3, ge=1)
    command_timeout: float = Field(default=900.0, gt=0)
    thresholds: Thresholds = Field(default_factory=Thresholds)
    log_level: str = "WARNING"
    log_file: Optional[str] = None
    base_path: str = Field(default_factory=lambda: os.environ.get("PATH", os.defpath))

    @model_validator(mode="after")
    def _derive_locations(self) -> "Config":
        if self.bin_dir is None:
            self.bin_dir = self.home / ".local" / "bin"
        if self.conda_root is None:
            self.conda_root = self.home / "miniconda3"
        if self.project_root is None:
            self.project_root = self.home / "projects"
        return self

    @property
    def extra_bin_dirs(self) -> list[Path]:
        """Install locations the scripts used to prepend to PATH."""
        return [self.bin_dir, self.conda_root / "bin", self.home / ".cargo" / "bin"]

    @property
    def search_path(self) -> str:
        """PATH with install locations prepended, for probes and installers."""
        parts = [str(p) for p in self.extra_bin_dirs]
        parts += [p for p in self.base_path.split(os.pathsep) if p and p not in parts]
        return os.pathsep.join(parts)

    @property
    def conda(self) -> str:
        return str(self.conda_root / "bin" / "conda")

    @property
    def env_python(self) -> str:
        """Interpreter inside the AI/ML conda environment."""
        return str(self.conda_root / "envs" / self.aiml_env / "bin" / "python")


def _read_env(environ: dict[str, str]) -> dict:
    """Map DOTBOOT_* variables onto Config field names."""
    fields = {
        "home", "dotfiles_root", "bin_dir", "conda_root", "aiml_env",
        "project_root", "project_name", "http_timeout", "fetch_retries",
        "command_timeout", "log_level", "log_file",
    }
    values: dict = {}
    for name in fields:
        raw = environ.get(ENV_PREFIX + name.upper())
        if raw:
            values[name] = raw

    policy = environ.get(ENV_PREFIX + "POLICY")
    if policy:
        values["policy"] = POLICY_ALIASES.get(policy.lower(), policy)

    thresholds = {}
    for name in ("excellent", "good"):
        raw = environ.get(f"{ENV_PREFIX}{name.upper()}_THRESHOLD")
        if raw:
            thresholds[name] = raw
    if thresholds:
        values["thresholds"] = thresholds

    if "PATH" in environ:
        values["base_path"] = environ["PATH"]
    return values


def load_config(environ: Optional[dict[str, str]] = None, dotenv: bool = True, **overrides) -> Config:
    """
    Build the Config for this invocation.

    Precedence: explicit overrides > environment > .env file > defaults.
    Invalid values raise pydantic.ValidationError.
    """
    if environ is None:
        if dotenv:
            load_dotenv(find_dotenv(usecwd=True))
        environ = dict(os.environ)
    values = _read_env(environ)
    values.update({k: v for k, v in overrides.items() if v is not None})
    return Config.model_validate(values)

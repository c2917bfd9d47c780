"""
scorebridge.environment - micromamba environment probing and provisioning

All commands run as argument vectors (never through a shell) with
MAMBA_ROOT_PREFIX set for the child process only.
"""

import json
import logging
import os
import subprocess
from dataclasses import dataclass, field, asdict
from pathlib import Path
from typing import Callable, List, Dict, Optional, Any, Sequence

from .config import Settings

logger = logging.getLogger(__name__)

Runner = Callable[..., "subprocess.CompletedProcess"]


@dataclass
class CommandResult:
    """Outcome of one external command."""
    args: List[str]
    returncode: int
    stdout: str = ""
    stderr: str = ""
    timed_out: bool = False

    @property
    def ok(self) -> bool:
        return self.returncode == 0 and not self.timed_out

    def error_text(self) -> str:
        """Short description of why the command failed."""
        if self.timed_out:
            return "timed out"
        detail = (self.stderr or self.stdout).strip().splitlines()
        tail = detail[-1] if detail else ""
        return f"exit status {self.returncode}" + (f": {tail}" if tail else "")


@dataclass
class PackageInstall:
    """Result of installing a single package."""
    package: str
    success: bool
    returncode: int
    error: str = ""


@dataclass
class ProvisionResult:
    """Result of creating an environment and installing its packages."""
    env_name: str
    python_version: str
    created: bool
    packages: List[PackageInstall] = field(default_factory=list)
    error: str = ""

    @property
    def success(self) -> bool:
        return self.created

    @property
    def failed_packages(self) -> List[str]:
        return [p.package for p in self.packages if not p.success]

    @property
    def all_packages_installed(self) -> bool:
        return self.created and not self.failed_packages

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data["failed_packages"] = self.failed_packages
        return data

    def to_json(self, indent: int = 2) -> str:
        return json.dumps(self.to_dict(), indent=indent)


def name_in_listing(listing: str, name: str) -> bool:
    """True if a line of a plain-text listing, trimmed, equals the name exactly."""
    return any(line.strip() == name for line in listing.splitlines())


def names_from_json_listing(payload: str, root_prefix: str) -> List[str]:
    """
    Extract environment names from `env list --json` output.

    Only prefixes belonging to this root count: the root itself is
    "base" and <root>/envs/<name> is <name>. Environments registered
    by other conda installations are ignored.
    """
    data = json.loads(payload)
    root = Path(root_prefix).resolve()
    envs_dir = root / "envs"
    names = []
    for prefix in data.get("envs", []):
        path = Path(prefix).resolve()
        if path == root:
            names.append("base")
        elif path.parent == envs_dir:
            names.append(path.name)
    return names


def names_from_text_listing(listing: str) -> List[str]:
    """First column of each row of a plain-text `env list`, skipping comments."""
    names = []
    for line in listing.splitlines():
        columns = line.split()
        if columns and not columns[0].startswith("#"):
            names.append(columns[0])
    return names


class EnvironmentManager:
    """
    Thin wrapper around the micromamba command line.

    Args:
        root_prefix: Directory holding all environments
        executable: micromamba binary to invoke
        channel: Package channel used when creating environments
        trusted_hosts: pip hosts to trust in trusted-host mode
        timeout: Per-command timeout in seconds (None waits forever)
        structured_listing: Use `env list --json` instead of scraping text
        runner: subprocess.run-compatible callable
    """

    def __init__(
        self,
        root_prefix: str,
        executable: str = "micromamba",
        channel: str = "conda-forge",
        trusted_hosts: Optional[Sequence[str]] = None,
        timeout: Optional[float] = None,
        structured_listing: bool = True,
        runner: Optional[Runner] = None
    ):
        self.root_prefix = str(root_prefix)
        self.executable = executable
        self.channel = channel
        self.trusted_hosts = list(trusted_hosts) if trusted_hosts is not None else [
            "pypi.org", "files.pythonhosted.org"
        ]
        self.timeout = timeout
        self.structured_listing = structured_listing
        self._runner = runner or subprocess.run

    @classmethod
    def from_settings(cls, settings: Settings, runner: Optional[Runner] = None) -> "EnvironmentManager":
        return cls(
            root_prefix=settings.root_prefix,
            executable=settings.mamba_executable,
            channel=settings.channel,
            trusted_hosts=settings.trusted_hosts,
            timeout=settings.timeout,
            structured_listing=settings.structured_listing,
            runner=runner
        )

    def _child_env(self) -> Dict[str, str]:
        env = dict(os.environ)
        env["MAMBA_ROOT_PREFIX"] = self.root_prefix
        return env

    def run_command(self, args: Sequence[str]) -> CommandResult:
        """Run `micromamba <args>` and capture its output."""
        cmd = [self.executable] + list(args)
        logger.debug("Running: %s", " ".join(cmd))

        try:
            proc = self._runner(
                cmd,
                capture_output=True,
                text=True,
                env=self._child_env(),
                timeout=self.timeout,
                check=False
            )
        except subprocess.TimeoutExpired:
            logger.warning("Command timed out after %ss: %s", self.timeout, cmd[:3])
            return CommandResult(cmd, returncode=-1, timed_out=True)
        except OSError as e:
            logger.warning("Could not launch %s: %s", self.executable, e)
            return CommandResult(cmd, returncode=127, stderr=str(e))

        return CommandResult(
            cmd,
            returncode=proc.returncode,
            stdout=proc.stdout or "",
            stderr=proc.stderr or ""
        )

    def run_in_env(self, name: str, args: Sequence[str]) -> CommandResult:
        """Run a command inside the named environment."""
        return self.run_command(["run", "-n", name] + list(args))

    # Probing

    def list_environments(self) -> List[str]:
        """Names of all environments under the root prefix."""
        if self.structured_listing:
            result = self.run_command(["env", "list", "--json"])
            if not result.ok:
                logger.warning("Environment listing failed: %s", result.error_text())
                return []
            try:
                return names_from_json_listing(result.stdout, self.root_prefix)
            except (json.JSONDecodeError, AttributeError, TypeError) as e:
                logger.warning("Unreadable environment listing: %s", e)
                return []

        result = self.run_command(["env", "list"])
        if not result.ok:
            logger.warning("Environment listing failed: %s", result.error_text())
            return []
        return names_from_text_listing(result.stdout)

    def exists(self, name: str) -> bool:
        """True only if an environment with exactly this name exists."""
        if self.structured_listing:
            return name in self.list_environments()

        result = self.run_command(["env", "list"])
        if not result.ok:
            logger.warning("Environment listing failed: %s", result.error_text())
            return False
        return name_in_listing(result.stdout, name)

    # Provisioning

    def create(self, name: str, python_version: str, trusted_host: bool = False) -> ProvisionResult:
        """Create an environment with the given interpreter version."""
        args = ["create", "-y", "-n", name, f"python={python_version}", "-c", self.channel]
        if trusted_host:
            args += ["--ssl-verify", "false"]

        logger.info("Creating environment '%s' (python %s)", name, python_version)
        result = self.run_command(args)
        if not result.ok:
            logger.error("Failed to create environment '%s': %s", name, result.error_text())
            return ProvisionResult(name, python_version, created=False, error=result.error_text())

        return ProvisionResult(name, python_version, created=True)

    def install_package(self, name: str, package: str, trusted_host: bool = False) -> PackageInstall:
        """pip-install one package into the environment."""
        args = ["python", "-m", "pip", "install"]
        if trusted_host:
            for host in self.trusted_hosts:
                args += ["--trusted-host", host]
        args.append(package)

        result = self.run_in_env(name, args)
        if not result.ok:
            logger.warning("Failed to install %s into '%s': %s", package, name, result.error_text())
            return PackageInstall(package, False, result.returncode, result.error_text())

        logger.info("Installed %s into '%s'", package, name)
        return PackageInstall(package, True, result.returncode)

    def install_packages(
        self,
        name: str,
        packages: Sequence[str],
        trusted_host: bool = False
    ) -> List[PackageInstall]:
        """Install every package; a failure never stops the remaining installs."""
        return [self.install_package(name, pkg, trusted_host=trusted_host) for pkg in packages]

    def provision(
        self,
        name: str,
        python_version: str,
        packages: Optional[Sequence[str]] = None,
        trusted_host: bool = False
    ) -> ProvisionResult:
        """Create the environment, then install the extra packages into it."""
        result = self.create(name, python_version, trusted_host=trusted_host)
        if result.created and packages:
            result.packages = self.install_packages(name, packages, trusted_host=trusted_host)
        return result

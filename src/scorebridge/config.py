"""
scorebridge.config - Settings loading

Values come from (lowest to highest precedence) the built-in defaults,
a YAML config file, and SCOREBRIDGE_* environment variables.
"""

import os
from dataclasses import dataclass, field, fields, asdict
from pathlib import Path
from typing import List, Dict, Optional, Any
import yaml

from .errors import ConfigError

DEFAULT_PYTHON_VERSION = "3.11"
DEFAULT_ENV_NAME = "langchain"
DEFAULT_CHANNEL = "conda-forge"
DEFAULT_TRUSTED_HOSTS = ["pypi.org", "files.pythonhosted.org"]
DEFAULT_CONFIG_PATH = Path.home() / ".scorebridge" / "config.yaml"

_TRUE_VALUES = {"1", "true", "yes", "on"}


def default_root_prefix() -> str:
    """Per-user application-data directory for micromamba environments."""
    appdata = os.getenv("APPDATA")
    base = Path(appdata) if appdata else Path.home() / ".local" / "share"
    return str(base / "micromamba")


@dataclass
class Settings:
    """Runtime configuration for a scoring run."""
    python_version: str = DEFAULT_PYTHON_VERSION
    env_name: str = DEFAULT_ENV_NAME
    root_prefix: str = field(default_factory=default_root_prefix)
    packages: List[str] = field(default_factory=list)
    trusted_host: bool = False
    trusted_hosts: List[str] = field(default_factory=lambda: list(DEFAULT_TRUSTED_HOSTS))
    channel: str = DEFAULT_CHANNEL
    mamba_executable: str = "micromamba"
    script_path: Optional[str] = None
    message_argument: str = "--message"
    timeout: Optional[float] = None
    structured_listing: bool = True

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Settings":
        known = {f.name for f in fields(cls)}
        unknown = sorted(set(data) - known)
        if unknown:
            raise ConfigError(f"Unknown config keys: {', '.join(unknown)}")

        values = dict(data)
        if "packages" in values:
            values["packages"] = _as_list(values["packages"])
        if "trusted_hosts" in values:
            values["trusted_hosts"] = _as_list(values["trusted_hosts"])
        if values.get("python_version") is not None:
            # YAML reads 3.11 as a float
            values["python_version"] = str(values["python_version"])
        return cls(**values)


def _as_list(value: Any) -> List[str]:
    if value is None:
        return []
    if isinstance(value, str):
        return [v.strip() for v in value.split(",") if v.strip()]
    if isinstance(value, (list, tuple)):
        return [str(v) for v in value]
    raise ConfigError(f"Expected a list or comma separated string, got {value!r}")


def _read_config_file(path: Path) -> Dict[str, Any]:
    try:
        with open(path, "r") as f:
            data = yaml.safe_load(f)
    except OSError as e:
        raise ConfigError(f"Could not read config file {path}: {e}") from e
    except yaml.YAMLError as e:
        raise ConfigError(f"Invalid YAML in {path}: {e}") from e

    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ConfigError(f"Config file {path} must contain a mapping")
    return data


def _env_overrides(environ: Dict[str, str]) -> Dict[str, Any]:
    overrides: Dict[str, Any] = {}

    simple = {
        "SCOREBRIDGE_PYTHON_VERSION": "python_version",
        "SCOREBRIDGE_ENV_NAME": "env_name",
        "SCOREBRIDGE_ROOT_PREFIX": "root_prefix",
        "SCOREBRIDGE_CHANNEL": "channel",
        "SCOREBRIDGE_MAMBA": "mamba_executable",
        "SCOREBRIDGE_SCRIPT": "script_path",
    }
    for var, key in simple.items():
        if environ.get(var):
            overrides[key] = environ[var]

    if environ.get("SCOREBRIDGE_PACKAGES"):
        overrides["packages"] = _as_list(environ["SCOREBRIDGE_PACKAGES"])
    if environ.get("SCOREBRIDGE_TRUSTED_HOST"):
        overrides["trusted_host"] = environ["SCOREBRIDGE_TRUSTED_HOST"].strip().lower() in _TRUE_VALUES
    if environ.get("SCOREBRIDGE_TIMEOUT"):
        try:
            overrides["timeout"] = float(environ["SCOREBRIDGE_TIMEOUT"])
        except ValueError as e:
            raise ConfigError(f"SCOREBRIDGE_TIMEOUT must be a number: {e}") from e

    return overrides


def load_settings(
    path: Optional[str] = None,
    environ: Optional[Dict[str, str]] = None
) -> Settings:
    """
    Load settings from a YAML file and the environment.

    Args:
        path: Config file. Falls back to $SCOREBRIDGE_CONFIG, then
            ~/.scorebridge/config.yaml if it exists.
        environ: Environment mapping (defaults to os.environ)
    """
    environ = os.environ if environ is None else environ

    data: Dict[str, Any] = {}
    if path:
        data = _read_config_file(Path(path))
    elif environ.get("SCOREBRIDGE_CONFIG"):
        data = _read_config_file(Path(environ["SCOREBRIDGE_CONFIG"]))
    elif DEFAULT_CONFIG_PATH.exists():
        data = _read_config_file(DEFAULT_CONFIG_PATH)

    data.update(_env_overrides(environ))
    return Settings.from_dict(data)

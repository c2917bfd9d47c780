"""
scorebridge.orchestrator - Validate, provision, invoke, format
"""

import logging
from dataclasses import replace
from typing import List, Optional

from .config import Settings
from .environment import EnvironmentManager, Runner
from .errors import ConfigError, ProvisioningError
from .invoker import ScriptResult, invoke_script
from .validator import validate_message

logger = logging.getLogger(__name__)

FAILURE_MESSAGE = "Failed to retrieve result from the Python script."


def format_result(result: Optional[ScriptResult]) -> str:
    """Human-readable rendering of a script result."""
    if result is None:
        return FAILURE_MESSAGE
    return f"Score: {result.score}\n\nReason: {result.reason}"


def ensure_environment(
    manager: EnvironmentManager,
    env_name: str,
    python_version: str,
    packages: Optional[List[str]] = None,
    trusted_host: bool = False
) -> bool:
    """
    Make sure the environment exists, creating it if needed.

    Returns True if it had to be created.

    Raises:
        ProvisioningError: the environment was missing and creation failed
    """
    if manager.exists(env_name):
        logger.debug("Environment '%s' already exists", env_name)
        return False

    result = manager.provision(env_name, python_version, packages=packages, trusted_host=trusted_host)
    if not result.created:
        raise ProvisioningError(f"Failed to create environment '{env_name}': {result.error}")
    if result.failed_packages:
        logger.warning(
            "Environment '%s' created but %d package(s) failed: %s",
            env_name, len(result.failed_packages), ", ".join(result.failed_packages)
        )
    return True


def run_threat_check(
    message: str,
    script_path: Optional[str] = None,
    python_version: Optional[str] = None,
    env_name: Optional[str] = None,
    root_prefix: Optional[str] = None,
    packages: Optional[List[str]] = None,
    trusted_host: Optional[bool] = None,
    settings: Optional[Settings] = None,
    manager: Optional[EnvironmentManager] = None,
    runner: Optional[Runner] = None
) -> str:
    """
    Score a message with the external script and return a display string.

    Explicit arguments override the values in `settings`; unset values
    fall back to the Settings defaults (python 3.11, environment
    "langchain", the per-user micromamba root).

    Args:
        message: Text to score
        script_path: Scoring script to run inside the environment
        python_version: Interpreter version for a newly created environment
        env_name: Environment to run in
        root_prefix: micromamba root prefix
        packages: Extra packages installed after creation
        trusted_host: Relax certificate checks for installs
        settings: Base configuration
        manager: Pre-built EnvironmentManager (ignores root_prefix)
        runner: subprocess.run-compatible callable for the manager

    Returns:
        "Score: ...\\n\\nReason: ..." or the fixed failure message

    Raises:
        ValidationError: the message was rejected
        ProvisioningError: the environment could not be created
        ConfigError: no scoring script path was given
    """
    settings = settings or Settings()
    overrides = {
        "script_path": script_path,
        "python_version": python_version,
        "env_name": env_name,
        "root_prefix": root_prefix,
        "packages": list(packages) if packages is not None else None,
        "trusted_host": trusted_host,
    }
    settings = replace(settings, **{k: v for k, v in overrides.items() if v is not None})

    message = validate_message(message)

    if not settings.script_path:
        raise ConfigError("A scoring script path is required")

    if manager is None:
        manager = EnvironmentManager.from_settings(settings, runner=runner)

    ensure_environment(
        manager,
        settings.env_name,
        settings.python_version,
        packages=settings.packages,
        trusted_host=settings.trusted_host
    )

    result = invoke_script(
        manager,
        settings.env_name,
        settings.script_path,
        message,
        message_argument=settings.message_argument
    )
    return format_result(result)

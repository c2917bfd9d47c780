"""
scorebridge - Score messages with an external script in a managed environment
=============================================================================

Validates a message, makes sure a named micromamba environment exists,
runs a scoring script inside it and renders the script's JSON result.

Usage:
    from scorebridge import run_threat_check

    output = run_threat_check(
        "Check this text for threats",
        script_path="score.py",
        packages=["langchain"],
    )
    print(output)
    # Score: 0.87
    #
    # Reason: elevated risk language
"""

__version__ = "0.1.0"

from .config import Settings, load_settings, default_root_prefix
from .environment import EnvironmentManager, CommandResult, PackageInstall, ProvisionResult
from .errors import (
    ScorebridgeError, ConfigError, ValidationError, EmptyMessageError,
    InvalidCharactersError, ProvisioningError
)
from .invoker import ScriptResult, invoke_script, parse_script_output
from .orchestrator import FAILURE_MESSAGE, run_threat_check, format_result
from .rejection_log import RejectionLogger, RejectionEntry
from .validator import validate_message, is_valid_message

__all__ = [
    "Settings", "load_settings", "default_root_prefix",
    "EnvironmentManager", "CommandResult", "PackageInstall", "ProvisionResult",
    "ScorebridgeError", "ConfigError", "ValidationError", "EmptyMessageError",
    "InvalidCharactersError", "ProvisioningError",
    "ScriptResult", "invoke_script", "parse_script_output",
    "FAILURE_MESSAGE", "run_threat_check", "format_result",
    "RejectionLogger", "RejectionEntry",
    "validate_message", "is_valid_message",
]

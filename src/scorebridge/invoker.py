"""
scorebridge.invoker - Run the scoring script inside an environment
"""

import json
import logging
from dataclasses import dataclass, field
from typing import Dict, Optional, Any, Union

from .environment import EnvironmentManager

logger = logging.getLogger(__name__)


@dataclass
class ScriptResult:
    """Structured output of the scoring script."""
    score: Union[float, int, str]
    reason: str
    raw: Dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ScriptResult":
        return cls(score=data["score"], reason=str(data["reason"]), raw=dict(data))

    def to_dict(self) -> Dict[str, Any]:
        return {"score": self.score, "reason": self.reason}

    def to_json(self, indent: int = 2) -> str:
        return json.dumps(self.to_dict(), indent=indent)


def _load_object(text: str) -> Optional[Dict[str, Any]]:
    try:
        data = json.loads(text)
    except (json.JSONDecodeError, ValueError):
        return None
    return data if isinstance(data, dict) else None


def parse_script_output(stdout: str) -> Optional[ScriptResult]:
    """
    Parse the script's stdout into a ScriptResult.

    The whole output is tried first, then its last non-empty line, so
    scripts that print progress before the result still parse.
    Returns None if no JSON object with score and reason is found.
    """
    text = (stdout or "").strip()
    if not text:
        return None

    data = _load_object(text)
    if data is None:
        last_line = text.splitlines()[-1].strip()
        data = _load_object(last_line)
    if data is None:
        return None

    if "score" not in data or "reason" not in data:
        logger.warning("Script output is missing 'score' or 'reason': %s", sorted(data))
        return None

    return ScriptResult.from_dict(data)


def invoke_script(
    manager: EnvironmentManager,
    env_name: str,
    script_path: str,
    message: str,
    message_argument: str = "--message"
) -> Optional[ScriptResult]:
    """
    Run `python <script> --message=<message>` inside the environment.

    Any launch failure, non-zero exit or unparseable output yields None.
    """
    # One argv element, so a message starting with "-" is never read as an option
    argument = f"{message_argument}={message}"
    result = manager.run_in_env(env_name, ["python", str(script_path), argument])
    if not result.ok:
        logger.warning("Scoring script failed in '%s': %s", env_name, result.error_text())
        return None

    parsed = parse_script_output(result.stdout)
    if parsed is None:
        logger.warning("Scoring script produced no usable JSON result")
    return parsed

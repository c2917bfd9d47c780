"""
Shared fixtures for scorebridge tests
"""

import json
import subprocess
import sys
from pathlib import Path

import pytest

# Add src to path for testing
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))


class FakeRunner:
    """
    Stand-in for subprocess.run.

    Rules match when every token appears in the command; the most
    recently added matching rule wins. Unmatched commands succeed
    with empty output.
    """

    def __init__(self):
        self.calls = []
        self._rules = []

    def respond(self, *tokens, returncode=0, stdout="", stderr="", raises=None):
        self._rules.insert(0, (tokens, returncode, stdout, stderr, raises))
        return self

    def envs(self, root, *names):
        """Make `env list --json` report the given environments."""
        prefixes = [str(root)] + [str(Path(root) / "envs" / n) for n in names]
        return self.respond("env", "list", "--json", stdout=json.dumps({"envs": prefixes}))

    def __call__(self, cmd, **kwargs):
        self.calls.append((list(cmd), kwargs))
        for tokens, returncode, stdout, stderr, raises in self._rules:
            if all(t in cmd for t in tokens):
                if raises is not None:
                    raise raises
                return subprocess.CompletedProcess(cmd, returncode, stdout, stderr)
        return subprocess.CompletedProcess(cmd, 0, "", "")

    def commands_with(self, *tokens):
        return [cmd for cmd, _ in self.calls if all(t in cmd for t in tokens)]


@pytest.fixture
def fake_runner():
    return FakeRunner()


@pytest.fixture
def root_prefix(tmp_path):
    return str(tmp_path / "micromamba")

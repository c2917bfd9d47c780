"""
Tests for the end-to-end scoring flow
"""

import pytest

from scorebridge import (
    FAILURE_MESSAGE, ConfigError, EmptyMessageError, InvalidCharactersError, ProvisioningError,
    ScriptResult, Settings, format_result, run_threat_check
)

RESULT_JSON = '{"score": 0.87, "reason": "elevated risk language"}'


@pytest.fixture
def settings(root_prefix):
    return Settings(root_prefix=root_prefix, script_path="score.py")


class TestFormatResult:

    def test_with_result(self):
        assert format_result(ScriptResult(0.87, "elevated risk language")) == \
            "Score: 0.87\n\nReason: elevated risk language"

    def test_without_result(self):
        assert format_result(None) == "Failed to retrieve result from the Python script."


class TestRunThreatCheck:
    """Validate -> probe -> provision -> invoke -> format."""

    def test_end_to_end_existing_environment(self, fake_runner, settings, root_prefix):
        fake_runner.envs(root_prefix, "langchain")
        fake_runner.respond("score.py", stdout=RESULT_JSON)

        output = run_threat_check("Check this text for threats", settings=settings, runner=fake_runner)

        assert output == "Score: 0.87\n\nReason: elevated risk language"
        assert fake_runner.commands_with("create") == []

    def test_creates_missing_environment(self, fake_runner, settings, root_prefix):
        fake_runner.envs(root_prefix, "langchain-test")
        fake_runner.respond("score.py", stdout=RESULT_JSON)

        output = run_threat_check(
            "Check this text for threats",
            settings=settings,
            packages=["langchain", "openai"],
            runner=fake_runner
        )

        assert output.startswith("Score: 0.87")
        creates = fake_runner.commands_with("create")
        assert len(creates) == 1
        assert "python=3.11" in creates[0]
        assert len(fake_runner.commands_with("install")) == 2

    def test_explicit_arguments_override_settings(self, fake_runner, root_prefix):
        fake_runner.envs(root_prefix)
        run_threat_check(
            "hello",
            script_path="other.py",
            python_version="3.12",
            env_name="scoring",
            root_prefix=root_prefix,
            trusted_host=True,
            runner=fake_runner
        )

        create = fake_runner.commands_with("create")[0]
        assert "scoring" in create
        assert "python=3.12" in create
        assert "--ssl-verify" in create
        assert fake_runner.commands_with("other.py")

    def test_root_prefix_reaches_every_command(self, fake_runner, settings, root_prefix):
        run_threat_check("hello", settings=settings, runner=fake_runner)
        assert fake_runner.calls
        for _, kwargs in fake_runner.calls:
            assert kwargs["env"]["MAMBA_ROOT_PREFIX"] == root_prefix

    def test_package_failure_still_invokes_script(self, fake_runner, settings, root_prefix):
        fake_runner.envs(root_prefix)
        fake_runner.respond("install", "broken", returncode=1)
        fake_runner.respond("score.py", stdout=RESULT_JSON)

        output = run_threat_check("hello", settings=settings, packages=["broken", "ok"], runner=fake_runner)

        assert output.startswith("Score:")
        assert len(fake_runner.commands_with("install")) == 2

    def test_creation_failure_aborts(self, fake_runner, settings, root_prefix):
        fake_runner.envs(root_prefix)
        fake_runner.respond("create", returncode=1, stderr="solver failed")

        with pytest.raises(ProvisioningError, match="langchain"):
            run_threat_check("hello", settings=settings, runner=fake_runner)
        assert fake_runner.commands_with("score.py") == []

    def test_non_json_output_gives_failure_message(self, fake_runner, settings, root_prefix):
        fake_runner.envs(root_prefix, "langchain")
        fake_runner.respond("score.py", stdout="something went wrong")

        output = run_threat_check("hello", settings=settings, runner=fake_runner)
        assert output == FAILURE_MESSAGE

    def test_invalid_message_spawns_nothing(self, fake_runner, settings):
        with pytest.raises(InvalidCharactersError):
            run_threat_check("hello; rm -rf ~", settings=settings, runner=fake_runner)
        assert fake_runner.calls == []

    def test_empty_message(self, fake_runner, settings):
        with pytest.raises(EmptyMessageError):
            run_threat_check("   ", settings=settings, runner=fake_runner)
        assert fake_runner.calls == []

    def test_script_path_required(self, fake_runner, root_prefix):
        with pytest.raises(ConfigError, match="script"):
            run_threat_check("hello", root_prefix=root_prefix, runner=fake_runner)
        assert fake_runner.calls == []

    def test_validation_runs_before_script_check(self, fake_runner, root_prefix):
        with pytest.raises(EmptyMessageError):
            run_threat_check("", root_prefix=root_prefix, runner=fake_runner)

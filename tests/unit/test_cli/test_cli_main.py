"""
Unit tests for the proxylauncher command line.
"""

import pytest

from proxylauncher.cli.main import build_config, build_parser, main_cli, run_supervisor, split_extra_args
from proxylauncher.models.config import LauncherOptions, SupervisorConfig
from proxylauncher.orchestration import INVALID_CONFIG_EXIT_CODE
from proxylauncher.validation import ValidationError


def parse(argv):
    own_args, extra_args = split_extra_args(argv)
    return build_parser().parse_args(own_args), extra_args


@pytest.mark.unit
class TestSplitExtraArgs:
    """Test cases for split_extra_args."""

    def test_no_separator(self):
        assert split_extra_args(["engine", "--engine-config", "c.json"]) == (
            ["engine", "--engine-config", "c.json"], []
        )

    def test_separator(self):
        assert split_extra_args(["engine", "--", "-restart=false", "--", "x"]) == (
            ["engine"], ["-restart=false", "--", "x"]
        )

    def test_trailing_separator(self):
        assert split_extra_args(["engine", "--"]) == (["engine"], [])


@pytest.mark.unit
class TestBuildConfig:
    """Test cases for build_config."""

    def test_executable_and_engine_config(self, fake_engine):
        args, extra = parse([fake_engine, "--engine-config", "engine.json",
                             "--startup-timeout", "250", "--", "-verbose"])

        config = build_config(args, extra)

        assert config.executable == fake_engine
        assert config.engine_config == "engine.json"
        assert config.options.startup_timeout == 250.0
        assert config.options.extra_args == ["-verbose"]

    def test_executable_required(self):
        args, extra = parse(["--engine-config", "engine.json"])
        with pytest.raises(ValidationError, match="executable or --launcher-config"):
            build_config(args, extra)

    def test_engine_config_required(self, fake_engine):
        args, extra = parse([fake_engine])
        with pytest.raises(ValidationError, match="--engine-config is required"):
            build_config(args, extra)

    def test_missing_executable(self, temp_dir):
        args, extra = parse([str(temp_dir / "nope"), "--engine-config", "engine.json"])
        with pytest.raises(ValidationError, match="does not exist"):
            build_config(args, extra)

    def test_command_line_overrides_launcher_file(self, temp_dir, fake_engine):
        launcher_toml = temp_dir / "launcher.toml"
        launcher_toml.write_text(f'''
[launcher]
executable = "{fake_engine}"
config = "from-file.json"
startup_timeout_ms = 1000
extra_args = ["-from-file"]
''')
        args, extra = parse(["-c", str(launcher_toml), "--engine-config", "cli.json",
                             "--startup-timeout", "0", "--", "-from-cli"])

        config = build_config(args, extra)

        assert config.engine_config == "cli.json"
        assert config.options.startup_timeout == 0.0
        assert config.options.extra_args == ["-from-file", "-from-cli"]

    def test_launcher_file_alone(self, temp_dir, fake_engine):
        launcher_toml = temp_dir / "launcher.toml"
        launcher_toml.write_text(f'[launcher]\nexecutable = "{fake_engine}"\nconfig = "e.json"\n')
        args, extra = parse(["--launcher-config", str(launcher_toml)])

        config = build_config(args, extra)

        assert config.engine_config == str(temp_dir / "e.json")
        assert config.options.startup_timeout is None


@pytest.mark.unit
class TestMainCli:
    """Test cases for main_cli exit statuses."""

    def test_missing_launcher_file_exits_2(self, temp_dir):
        with pytest.raises(SystemExit) as exc_info:
            main_cli(["-c", str(temp_dir / "absent.toml")])
        assert exc_info.value.code == 2

    def test_malformed_launcher_file_exits_2(self, temp_dir):
        path = temp_dir / "broken.toml"
        path.write_text("[launcher\n")
        with pytest.raises(SystemExit) as exc_info:
            main_cli(["-c", str(path)])
        assert exc_info.value.code == 2

    def test_no_arguments_exits_2(self):
        with pytest.raises(SystemExit) as exc_info:
            main_cli([])
        assert exc_info.value.code == 2


@pytest.mark.unit
class TestRunSupervisor:
    """Test cases for run_supervisor with the fake engine."""

    @pytest.mark.asyncio
    async def test_invalid_configuration_exit_status(self, fake_engine, engine_config_file):
        config = SupervisorConfig(
            executable=fake_engine,
            engine_config=engine_config_file,
            options=LauncherOptions(
                extra_env={"FAKE_ENGINE_MODE": "exit", "FAKE_ENGINE_EXIT_CODE": "78"},
                cleanup_events=[],
            ),
        )
        assert await run_supervisor(config) == INVALID_CONFIG_EXIT_CODE

    @pytest.mark.asyncio
    async def test_startup_timeout_exit_status(self, fake_engine, engine_config_file):
        config = SupervisorConfig(
            executable=fake_engine,
            engine_config=engine_config_file,
            options=LauncherOptions(
                extra_env={"FAKE_ENGINE_MODE": "hang"},
                startup_timeout=50,
                cleanup_events=[],
            ),
        )
        assert await run_supervisor(config) == 1

"""
Unit tests for child command/environment construction and exit handling.
"""

import json
import signal
from pathlib import Path
from unittest.mock import Mock, patch

import psutil
import pytest

from proxylauncher.orchestration import (
    ProcessManager,
    TimeoutConstants,
    describe_exit,
    resolve_startup_timeout,
    signal_name,
)


@pytest.mark.unit
class TestBuildCommand:
    """Test cases for ProcessManager.build_command."""

    def test_file_config(self):
        manager = ProcessManager("/opt/engine", "/etc/engine.json")

        assert manager.build_command(3) == [
            "/opt/engine",
            "-listening-reporter-fd=3",
            "-config=/etc/engine.json",
        ]

    def test_pathlike_config(self):
        manager = ProcessManager("/opt/engine", Path("/etc/engine.json"))
        assert manager.build_command(7)[2] == "-config=/etc/engine.json"

    def test_inline_config_uses_env(self):
        manager = ProcessManager("/opt/engine", {"apiKey": "k"})
        assert manager.build_command(5)[1:] == ["-listening-reporter-fd=5", "-config=env"]

    def test_extra_args_come_last(self):
        manager = ProcessManager("/opt/engine", "/etc/engine.json")
        args = manager.build_command(3, ["-restart=false", "-verbose"])
        assert args[-2:] == ["-restart=false", "-verbose"]


@pytest.mark.unit
class TestBuildEnvironment:
    """Test cases for ProcessManager.build_environment."""

    def test_file_config_adds_nothing(self):
        manager = ProcessManager("/opt/engine", "/etc/engine.json")
        assert manager.build_environment(base_env={"PATH": "/bin"}) == {"PATH": "/bin"}

    def test_inline_config_is_serialized(self):
        config = {"origins": [{"http": {"url": "http://localhost:3000"}}]}
        manager = ProcessManager("/opt/engine", config)

        env = manager.build_environment(base_env={"PATH": "/bin"})

        assert json.loads(env["ENGINE_CONFIG"]) == config
        assert env["PATH"] == "/bin"

    def test_custom_env_var(self):
        manager = ProcessManager("/opt/engine", {"a": 1}, config_env_var="PROXY_CONFIG")
        env = manager.build_environment(base_env={})
        assert env == {"PROXY_CONFIG": '{"a": 1}'}

    def test_extra_env_overrides_everything(self):
        manager = ProcessManager("/opt/engine", {"a": 1})
        env = manager.build_environment(
            extra_env={"PATH": "/custom", "ENGINE_CONFIG": "{}"},
            base_env={"PATH": "/bin"},
        )
        assert env == {"PATH": "/custom", "ENGINE_CONFIG": "{}"}

    def test_inherits_process_environment(self, monkeypatch):
        monkeypatch.setenv("PROXYLAUNCHER_TEST_VAR", "inherited")
        env = ProcessManager("/opt/engine", "/etc/engine.json").build_environment()
        assert env["PROXYLAUNCHER_TEST_VAR"] == "inherited"


@pytest.mark.unit
class TestExitDescriptions:
    """Test cases for describe_exit and signal_name."""

    def test_exit_code(self):
        notice = describe_exit(3)

        assert str(notice) == "Child crashed unexpectedly with code: 3"
        assert notice.exit_code == 3
        assert notice.signal_name is None

    def test_killed_by_signal(self):
        notice = describe_exit(-signal.SIGKILL)

        assert str(notice) == "Child was killed unexpectedly by signal: SIGKILL"
        assert notice.exit_code is None
        assert notice.signal_name == "SIGKILL"

    def test_clean_exit_is_still_unexpected(self):
        assert str(describe_exit(0)) == "Child crashed unexpectedly with code: 0"

    def test_unknown_signal_number(self):
        assert signal_name(999) == "999"


@pytest.mark.unit
class TestResolveStartupTimeout:
    """Test cases for resolve_startup_timeout."""

    def test_default(self):
        assert resolve_startup_timeout(None) == TimeoutConstants.DEFAULT_STARTUP_TIMEOUT_MS / 1000.0
        assert resolve_startup_timeout(None) == 5.0

    def test_positive_overrides(self):
        assert resolve_startup_timeout(50) == 0.05

    @pytest.mark.parametrize("value", [0, 0.0, -1, -5000])
    def test_non_positive_disables(self, value):
        assert resolve_startup_timeout(value) is None


@pytest.mark.unit
class TestSignalling:
    """Test cases for the signalling helpers."""

    def test_send_signal_to_exited_process(self):
        process = Mock(pid=123)
        process.send_signal.side_effect = ProcessLookupError()

        assert ProcessManager("/opt/engine", "c").send_signal(process, signal.SIGTERM) is False

    def test_send_signal(self):
        process = Mock(pid=123)

        assert ProcessManager("/opt/engine", "c").send_signal(process, signal.SIGTERM) is True
        process.send_signal.assert_called_once_with(signal.SIGTERM)

    def test_terminate_nowait(self):
        with patch("psutil.Process") as mock_process_class:
            assert ProcessManager("/opt/engine", "c").terminate_nowait(4321) is True

        mock_process_class.assert_called_once_with(4321)
        mock_process_class.return_value.terminate.assert_called_once_with()

    def test_terminate_nowait_gone(self):
        with patch("psutil.Process", side_effect=psutil.NoSuchProcess(4321)):
            assert ProcessManager("/opt/engine", "c").terminate_nowait(4321) is False

    def test_terminate_nowait_denied(self, caplog):
        with patch("psutil.Process") as mock_process_class:
            mock_process_class.return_value.terminate.side_effect = psutil.AccessDenied(4321)
            assert ProcessManager("/opt/engine", "c").terminate_nowait(4321) is False
        assert "Access denied" in caplog.text

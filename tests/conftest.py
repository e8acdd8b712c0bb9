"""
Pytest configuration and shared fixtures for the proxylauncher test suite.

The integration tests supervise a small fake engine: a Python script written
into a temporary directory at test time. Its behaviour is driven entirely by
environment variables passed through ``LauncherOptions.extra_env``.
"""

import asyncio
import shutil
import stat
import sys
import tempfile
from pathlib import Path
from typing import Any, Dict, List

import pytest

# Add src to Python path for testing
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))


# ============================================================================
# Test Configuration
# ============================================================================


def pytest_configure(config):
    """Configure pytest with custom markers and settings."""
    config.addinivalue_line("markers", "unit: mark test as a unit test")
    config.addinivalue_line("markers", "integration: mark test as an integration test")
    config.addinivalue_line("markers", "slow: mark test as slow running")


# ============================================================================
# Fake engine
# ============================================================================

FAKE_ENGINE_SOURCE = '''\
import json
import os
import sys
import time


def main():
    reporter_fd = None
    for arg in sys.argv[1:]:
        if arg.startswith("-listening-reporter-fd="):
            reporter_fd = int(arg.split("=", 1)[1])

    run = 1
    counter = os.environ.get("FAKE_ENGINE_COUNTER")
    if counter:
        if os.path.exists(counter):
            with open(counter) as f:
                run = int(f.read() or "0") + 1
        with open(counter, "w") as f:
            f.write(str(run))

    record = os.environ.get("FAKE_ENGINE_RECORD")
    if record:
        with open(record, "a") as f:
            f.write(json.dumps({
                "run": run,
                "pid": os.getpid(),
                "argv": sys.argv,
                "engine_config": os.environ.get("ENGINE_CONFIG"),
                "extra": os.environ.get("FAKE_ENGINE_EXTRA"),
            }) + "\\n")

    sys.stdout.write("engine run %d stdout\\n" % run)
    sys.stdout.flush()
    sys.stderr.write("engine run %d stderr\\n" % run)
    sys.stderr.flush()

    exit_code = int(os.environ.get("FAKE_ENGINE_EXIT_CODE", "1"))
    crashes = int(os.environ.get("FAKE_ENGINE_CRASHES", "0"))
    fail_from_run = int(os.environ.get("FAKE_ENGINE_FAIL_FROM_RUN", "0"))
    if run <= crashes or (fail_from_run and run >= fail_from_run):
        sys.exit(exit_code)

    mode = os.environ.get("FAKE_ENGINE_MODE", "ready")
    if mode == "exit":
        sys.exit(exit_code)
    if mode == "ready":
        report = os.environ.get("FAKE_ENGINE_REPORT", '{"ip": "127.0.0.1", "port": 4000}')
        if run == int(os.environ.get("FAKE_ENGINE_BAD_REPORT_RUN", "0")):
            report = "garbage"
        os.write(reporter_fd, report.encode())
        os.close(reporter_fd)
    # "hang" keeps the reporter fd open and never reports.

    while True:
        time.sleep(1)


main()
'''


@pytest.fixture
def temp_dir():
    """Create a temporary directory for test files."""
    temp_path = tempfile.mkdtemp()
    yield Path(temp_path)
    shutil.rmtree(temp_path, ignore_errors=True)


@pytest.fixture
def fake_engine(temp_dir) -> str:
    """Write the fake engine script and return its path."""
    script = temp_dir / "fake_engine"
    script.write_text(f"#!{sys.executable}\n{FAKE_ENGINE_SOURCE}")
    script.chmod(script.stat().st_mode | stat.S_IXUSR | stat.S_IXGRP | stat.S_IXOTH)
    return str(script)


@pytest.fixture
def engine_config_file(temp_dir) -> str:
    path = temp_dir / "engine.json"
    path.write_text('{"origins": [{"http": {"url": "http://localhost:3000/graphql"}}]}')
    return str(path)


@pytest.fixture
def engine_env(temp_dir) -> Dict[str, str]:
    """Base environment for the fake engine: run counter and argv record."""
    return {
        "FAKE_ENGINE_COUNTER": str(temp_dir / "runs"),
        "FAKE_ENGINE_RECORD": str(temp_dir / "record.jsonl"),
    }


@pytest.fixture
def spawned_processes(monkeypatch) -> List[Any]:
    """Capture every process created through asyncio.create_subprocess_exec."""
    spawned = []
    real_exec = asyncio.create_subprocess_exec

    async def capture(*args, **kwargs):
        process = await real_exec(*args, **kwargs)
        spawned.append(process)
        return process

    monkeypatch.setattr(asyncio, "create_subprocess_exec", capture)
    return spawned


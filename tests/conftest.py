"""Shared pytest configuration and fixtures for all tests."""

import sys
import time
from pathlib import Path

import psutil
import pytest

from unitd.local.config import effective_settings as config
from unitd.local.supervisor import ProcessSupervisor, persistence, process_utils, shutdown
from unitd.local.units import UnitStore


# =============================================================================
# Command Helpers
# =============================================================================


def python_exec_start(code: str) -> str:
    """Builds an ExecStart line running `code` with the current interpreter."""
    assert '"' not in code, "code must not contain double quotes"
    return f'"{sys.executable}" -c "{code}"'


SLEEPER = python_exec_start("import time; time.sleep(60)")


def unit_text(exec_start: str, working_directory: str = "", description: str = "test unit") -> str:
    return (
        "[Unit]\n"
        f"Description={description}\n"
        "\n"
        "[Service]\n"
        "Type=simple\n"
        f"ExecStart={exec_start}\n"
        f"WorkingDirectory={working_directory}\n"
        "Restart=no\n"
        "RestartSec=0\n"
    )


def is_gone(pid: int) -> bool:
    """True when a pid no longer names a running (non-zombie) process."""
    try:
        return psutil.Process(pid).status() == psutil.STATUS_ZOMBIE
    except psutil.NoSuchProcess:
        return True


def wait_until(predicate, timeout: float = 5.0, interval: float = 0.05) -> bool:
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        if predicate():
            return True
        time.sleep(interval)
    return predicate()


# =============================================================================
# Fixtures
# =============================================================================


@pytest.fixture(autouse=True)
def isolated_settings(tmp_path, monkeypatch):
    """Points every configured directory at a per-test temporary tree."""
    home = tmp_path / "unitd-home"
    monkeypatch.setattr(config, "UNITS_DIR", home / "system")
    monkeypatch.setattr(config, "RUNTIME_DIR", home / "runtime")
    monkeypatch.setattr(config, "LOGS_DIR", home / "logs")
    monkeypatch.setattr(config, "LOG_FILE_PATH", home / "logs" / "unitd.log")
    monkeypatch.setattr(config, "DIAGNOSTICS_DIR", home / "diagnostics")
    monkeypatch.setattr(config, "DIAGNOSTICS_ENABLED", True)
    monkeypatch.setattr(config, "DIAGNOSTICS_URL", "")
    monkeypatch.setattr(config, "APP_BASE_DIR", home / "app")
    monkeypatch.setattr(config, "DEFAULT_WORKING_DIRECTORY", str(tmp_path))
    monkeypatch.setattr(config, "GRACEFUL_STOP_TIMEOUT", 3)
    return home


@pytest.fixture
def store(isolated_settings) -> UnitStore:
    return UnitStore(config.UNITS_DIR)


@pytest.fixture
def supervisor(store, isolated_settings):
    """A supervisor bound to the temporary tree; kills leftover units on teardown."""
    sup = ProcessSupervisor(store, config.RUNTIME_DIR, config.APP_BASE_DIR, stop_timeout=3)
    yield sup
    kill_recorded_units(Path(config.RUNTIME_DIR))


def kill_recorded_units(runtime_dir: Path) -> None:
    if not runtime_dir.is_dir():
        return
    for path in runtime_dir.glob(f"*{persistence.RECORD_SUFFIX}"):
        if not path.is_file():
            continue
        record = persistence.read_record(runtime_dir, path.stem)
        if record is None:
            continue
        proc = process_utils.verify_record(record, config.CREATE_TIME_TOLERANCE)
        if proc is not None:
            shutdown.terminate_tree(proc, timeout=2)

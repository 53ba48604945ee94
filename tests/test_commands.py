"""Tests for command parsing and the shared command handlers."""

import json
import os
import time

import psutil
import pytest

from unitd.local.config import effective_settings as config
from unitd.local.console import run_args, run_line
from unitd.local.console.commands import Verb, parse_command, parse_line
from unitd.local.errors import (EXIT_FAILURE, EXIT_NOT_RUNNING, EXIT_OK, EXIT_STATUS_ERROR, EXIT_USAGE,
                                MalformedCommand, TerminationFailed, UnknownVerb)
from unitd.local.supervisor import persistence, process_utils, shutdown
from unitd.local.supervisor.persistence import LivenessRecord

from conftest import SLEEPER, is_gone, unit_text, wait_until


#* --- Parsing ---

def test_parse_command_normalizes_verb():
    command = parse_command(["START", "webapp"])
    assert command.verb is Verb.START
    assert command.target == "webapp"


def test_parse_line_splits_on_first_whitespace():
    command = parse_line("  is-active   my unit  \n")
    assert command.verb is Verb.IS_ACTIVE
    assert command.target == "my unit"


def test_daemon_reload_needs_no_target():
    assert parse_line("daemon-reload").verb is Verb.DAEMON_RELOAD


@pytest.mark.parametrize("tokens", [[], [""], ["   "]])
def test_empty_command_is_malformed(tokens):
    with pytest.raises(MalformedCommand, match="empty command"):
        parse_command(tokens)


def test_missing_target_reports_usage():
    with pytest.raises(MalformedCommand, match="usage: start <unit>"):
        parse_line("start")


def test_unknown_verb():
    with pytest.raises(UnknownVerb, match="unknown command: reboot"):
        parse_line("reboot now")


#* --- Handlers ---

def test_add_start_status_stop_scenario(supervisor, tmp_path):
    added = run_args(["add", "webapp"], supervisor, unit_text(SLEEPER, str(tmp_path)))
    assert added.exit_code == EXIT_OK
    assert added.message == "Added unit webapp.service"

    started = run_args(["start", "webapp"], supervisor)
    assert started.exit_code == EXIT_OK
    assert started.message.startswith("webapp started (pid ")

    status = run_args(["status", "webapp"], supervisor)
    assert status.exit_code == EXIT_OK
    assert "running" in status.message

    again = run_args(["start", "webapp"], supervisor)
    assert again.exit_code == EXIT_OK
    assert "already running" in again.message

    stopped = run_args(["stop", "webapp"], supervisor)
    assert (stopped.exit_code, stopped.message) == (EXIT_OK, "webapp stopped")

    after = run_args(["status", "webapp"], supervisor)
    assert (after.exit_code, after.message) == (EXIT_NOT_RUNNING, "webapp not running")


def test_stop_not_running_succeeds(supervisor):
    result = run_line("stop idle", supervisor)
    assert (result.exit_code, result.message) == (EXIT_OK, "idle not running")


def test_is_active(supervisor):
    supervisor.store.add("svc", unit_text(SLEEPER))

    assert run_line("is-active svc", supervisor).message == "inactive"
    assert run_line("is-active svc", supervisor).exit_code == EXIT_NOT_RUNNING

    run_line("start svc", supervisor)
    result = run_line("is-active svc", supervisor)
    assert (result.exit_code, result.message) == (EXIT_OK, "active")


def test_restart_reports_new_pid(supervisor):
    supervisor.store.add("svc", unit_text(SLEEPER))
    first = supervisor.start("svc")

    result = run_line("restart svc", supervisor)

    assert result.exit_code == EXIT_OK
    assert result.message.startswith("svc restarted (pid ")
    assert f"(pid {first.pid})" not in result.message


def test_remove_unit(supervisor):
    supervisor.store.add("svc", unit_text("/bin/true"))

    assert run_line("remove svc", supervisor).message == "Removed unit svc.service"

    missing = run_line("remove svc", supervisor)
    assert missing.exit_code == EXIT_NOT_RUNNING
    assert missing.is_error


def test_add_without_content_is_usage_error(supervisor):
    result = run_args(["add", "ghost"], supervisor, None)
    assert result.exit_code == EXIT_USAGE
    assert result.is_error


def test_start_missing_unit_fails_and_records_diagnostics(supervisor):
    result = run_line("start missing-unit", supervisor)

    assert result.exit_code == EXIT_FAILURE
    assert result.is_error
    assert "Executable not found" in result.message

    reports = list(config.DIAGNOSTICS_DIR.glob("missing-unit-start-*.json"))
    assert len(reports) == 1
    event = json.loads(reports[0].read_text())
    assert event["unit"] == "missing-unit"
    assert event["state"] == "failed"
    assert "Executable not found" in event["message"]


def test_usage_errors_write_no_diagnostics(supervisor):
    assert run_line("bogus thing", supervisor).exit_code == EXIT_USAGE
    assert run_line("status", supervisor).exit_code == EXIT_USAGE
    assert not config.DIAGNOSTICS_DIR.exists()


def test_daemon_reload_lists_units(supervisor):
    supervisor.store.add("alpha", unit_text("/bin/true"))
    supervisor.store.add("beta", unit_text("/bin/true"))

    result = run_line("daemon-reload", supervisor)

    assert result.exit_code == EXIT_OK
    lines = result.message.splitlines()
    assert lines[0] == "Reloaded 2 unit(s)"
    assert sorted(lines[1:]) == ["alpha.service", "beta.service"]


def test_status_check_failure_exits_4_with_unknown_state(supervisor, monkeypatch):
    class Unreadable:
        def __init__(self, pid):
            self.pid = pid

        def create_time(self):
            raise psutil.AccessDenied(self.pid)

    record = LivenessRecord(unit="guarded", pid=os.getpid(), create_time=time.time())
    persistence.write_record(supervisor.runtime_dir, "guarded", record)
    monkeypatch.setattr(process_utils, "get_process_from_pid", Unreadable)

    result = run_line("status guarded", supervisor)
    persistence.delete_record(supervisor.runtime_dir, "guarded")

    assert result.exit_code == EXIT_STATUS_ERROR
    assert result.is_error
    assert "Cannot inspect PID" in result.message
    reports = list(config.DIAGNOSTICS_DIR.glob("guarded-status-*.json"))
    assert len(reports) == 1
    assert json.loads(reports[0].read_text())["state"] == "unknown"


def test_unreadable_runtime_state_exits_4(supervisor):
    (supervisor.runtime_dir / "webapp.pid").mkdir(parents=True)

    result = run_line("status webapp", supervisor)

    assert result.exit_code == EXIT_STATUS_ERROR
    assert result.message.startswith("Cannot read liveness record for webapp")


def test_failed_stop_exits_3_and_keeps_record(supervisor, monkeypatch):
    supervisor.store.add("sticky", unit_text(SLEEPER))
    started = supervisor.start("sticky")

    def refuse(proc, timeout, kill_timeout=5):
        raise TerminationFailed(f"Failed to stop PID {proc.pid}: access denied")

    monkeypatch.setattr(shutdown, "terminate_tree", refuse)

    result = run_line("stop sticky", supervisor)

    assert result.exit_code == EXIT_FAILURE
    assert result.message == f"Failed to stop PID {started.pid}: access denied"
    assert persistence.read_record(supervisor.runtime_dir, "sticky").pid == started.pid
    reports = list(config.DIAGNOSTICS_DIR.glob("sticky-stop-*.json"))
    assert json.loads(reports[0].read_text())["state"] == "failed"

    psutil.Process(started.pid).kill()
    assert wait_until(lambda: is_gone(started.pid))

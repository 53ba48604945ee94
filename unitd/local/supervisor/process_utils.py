import sys
import time
import psutil
import logging
import subprocess
from pathlib import Path
from typing import Any, Dict, List, Optional

from unitd.local.errors import LaunchFailed, StatusCheckFailed
from unitd.local.units.resolver import ResolvedCommand
from unitd.local.supervisor.persistence import LivenessRecord

log = logging.getLogger(__name__)


#* --- Process Status & Monitoring ---
def pid_exists(pid: int) -> bool:
    """A wrapper for psutil.pid_exists for easy testing/mocking if needed."""
    return psutil.pid_exists(pid)

def get_process_from_pid(pid: int) -> psutil.Process:
    """A wrapper for psutil.Process for easy testing/mocking if needed."""
    return psutil.Process(pid)

def get_create_time(proc: psutil.Process) -> Optional[float]:
    """Returns the OS-reported start time of a process, or None if it is gone."""
    try:
        return proc.create_time()
    except psutil.NoSuchProcess:
        return None

def _reap_if_child(proc: psutil.Process) -> None:
    """Collects the exit status of a zombie that belongs to this process."""
    try:
        proc.wait(timeout=0)
    except psutil.TimeoutExpired:
        log.debug(f"Zombie {proc.pid} is not our child; leaving it to its parent.")

def verify_record(record: LivenessRecord, tolerance: float) -> Optional[psutil.Process]:
    """
    Checks a liveness record against the OS process table.

    The pid must exist, must not be a zombie, and its start time must match
    the recorded one. A recycled pid therefore never verifies.

    :param record: The persisted liveness record.
    :param tolerance: Allowed difference between recorded and actual start time.
    :return: The live process, or None if the record is stale.
    """
    if record.create_time is None or not pid_exists(record.pid):
        return None
    try:
        proc = get_process_from_pid(record.pid)
        created = get_create_time(proc)
        if created is None:
            return None
        if abs(created - record.create_time) > tolerance:
            log.debug(f"PID {record.pid} was recycled (start time mismatch).")
            return None
        if proc.status() == psutil.STATUS_ZOMBIE:
            _reap_if_child(proc)
            return None
        return proc
    except psutil.NoSuchProcess:
        return None
    except psutil.AccessDenied as e:
        raise StatusCheckFailed(f"Cannot inspect PID {record.pid}: {e}") from e
    except OSError as e:
        raise StatusCheckFailed(f"Cannot inspect PID {record.pid}: {e}") from e


#* --- Process Creation ---
def _get_popen_creation_flags() -> Dict[str, Any]:
    """Returns platform-specific creation flags for subprocess.Popen."""
    if sys.platform == "win32":
        return {"creationflags": subprocess.DETACHED_PROCESS | subprocess.CREATE_NEW_PROCESS_GROUP | subprocess.CREATE_NO_WINDOW}
    return {"start_new_session": True}

def launch_process(unit: str, command: ResolvedCommand, output_path: Path) -> LivenessRecord:
    """
    Launches a unit's process detached from the caller.

    stdout and stderr are appended to `output_path` so they never mix with
    the caller's console. Returns as soon as the child has been spawned.

    :param unit: The unit name, used for logging and the record.
    :param command: The resolved command to run.
    :param output_path: File receiving the child's stdout and stderr.
    :return LivenessRecord: The identity of the new process.
    """
    argv: List[str] = command.argv
    log.info(f"Starting unit: {unit} -> {' '.join(argv)}")
    output_path.parent.mkdir(parents=True, exist_ok=True)
    try:
        with output_path.open("ab") as output:
            output.write(f"--- {time.strftime('%Y-%m-%d %H:%M:%S')} starting {unit}\n".encode("utf-8"))
            output.flush()
            p = subprocess.Popen(
                argv,
                stdout=output,
                stderr=subprocess.STDOUT,
                stdin=subprocess.DEVNULL,
                cwd=command.working_directory or None,
                **_get_popen_creation_flags(),
            )
    except OSError as e:
        log.error(f"Failed to start unit '{unit}': {e}")
        raise LaunchFailed(f"Failed to start {unit}: {e.strerror or e}") from e

    try:
        create_time = get_create_time(get_process_from_pid(p.pid))
    except psutil.NoSuchProcess:
        create_time = None
    if create_time is None:
        log.warning(f"Unit '{unit}' (PID {p.pid}) exited before it could be identified.")

    log.info(f"{unit} started successfully with PID: {p.pid}")
    return LivenessRecord(unit=unit, pid=p.pid, create_time=create_time, cmdline=argv)

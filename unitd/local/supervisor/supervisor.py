import logging
from enum import Enum
from pathlib import Path
from dataclasses import dataclass
from typing import Optional

from unitd.local.config import effective_settings as config
from unitd.local.errors import StatusCheckFailed
from unitd.local.units import UnitDefinition, UnitStore, resolve, unit_key
from unitd.local.units.store import validate_unit_name
from unitd.local.supervisor import persistence, process_utils, shutdown
from unitd.local.supervisor.locking import unit_lock

log = logging.getLogger(__name__)


class UnitState(str, Enum):
    UNKNOWN = "unknown"
    ACTIVE = "active"
    INACTIVE = "inactive"
    FAILED = "failed"


class Outcome(str, Enum):
    STARTED = "started"
    ALREADY_RUNNING = "already_running"
    STOPPED = "stopped"
    NOT_RUNNING = "not_running"
    RUNNING = "running"


@dataclass
class SupervisorResult:
    """The result of a supervisor operation on one unit."""

    unit: str
    outcome: Outcome
    state: UnitState
    pid: Optional[int] = None


class ProcessSupervisor:
    """
    Owns the start/stop/status state machine of units.

    The supervisor keeps no state in memory between calls: every answer is
    derived from the liveness records under `runtime_dir`, verified against
    the OS process table. A stateless CLI invocation and a long-running daemon
    therefore always agree on what is running.
    """

    def __init__(self, store: Optional[UnitStore] = None, runtime_dir: Optional[Path] = None,
                 app_base_dir: Optional[Path] = None, stop_timeout: Optional[float] = None) -> None:
        self.store = store or UnitStore()
        self.runtime_dir = Path(runtime_dir or config.RUNTIME_DIR)
        self.app_base_dir = Path(app_base_dir or config.APP_BASE_DIR)
        self.stop_timeout = config.GRACEFUL_STOP_TIMEOUT if stop_timeout is None else stop_timeout

    def output_path(self, name: str) -> Path:
        """Returns the file that receives a unit's stdout and stderr."""
        return self.runtime_dir / f"{unit_key(name)}.log"

    def _live_record(self, key: str) -> Optional[persistence.LivenessRecord]:
        """
        Returns the unit's record if its process is verifiably alive.

        A stale record (process gone, or pid recycled by another process) is
        deleted as a side effect.
        """
        record = persistence.read_record(self.runtime_dir, key)
        if record is None:
            return None
        if process_utils.verify_record(record, config.CREATE_TIME_TOLERANCE) is not None:
            return record
        log.info(f"Reconciled stale liveness record for '{key}' (PID {record.pid}).")
        persistence.delete_record(self.runtime_dir, key)
        return None

    def _start_locked(self, name: str, key: str) -> SupervisorResult:
        record = self._live_record(key)
        if record is not None:
            log.info(f"Unit '{name}' is already running (PID {record.pid}).")
            return SupervisorResult(name, Outcome.ALREADY_RUNNING, UnitState.ACTIVE, record.pid)

        definition = self.store.find(name)
        command = resolve(name, definition, base_dir=self.app_base_dir)
        record = process_utils.launch_process(name, command, self.output_path(name))
        persistence.write_record(self.runtime_dir, key, record)
        return SupervisorResult(name, Outcome.STARTED, UnitState.ACTIVE, record.pid)

    def _stop_locked(self, name: str, key: str) -> SupervisorResult:
        record = persistence.read_record(self.runtime_dir, key)
        if record is None:
            return SupervisorResult(name, Outcome.NOT_RUNNING, UnitState.INACTIVE)

        proc = process_utils.verify_record(record, config.CREATE_TIME_TOLERANCE)
        if proc is None:
            log.info(f"Unit '{name}' was not running; removing stale record (PID {record.pid}).")
            persistence.delete_record(self.runtime_dir, key)
            return SupervisorResult(name, Outcome.NOT_RUNNING, UnitState.INACTIVE)

        log.info(f"Stopping unit '{name}' (PID {record.pid})...")
        shutdown.terminate_tree(proc, self.stop_timeout, config.FORCED_KILL_TIMEOUT)
        persistence.delete_record(self.runtime_dir, key)
        log.info(f"Unit '{name}' stopped.")
        return SupervisorResult(name, Outcome.STOPPED, UnitState.INACTIVE, record.pid)

    def start(self, name: str) -> SupervisorResult:
        """
        Starts a unit unless it is already running.

        :param name: The unit name.
        :return SupervisorResult: STARTED with the new pid, or ALREADY_RUNNING.
        """
        name = validate_unit_name(name)
        key = unit_key(name)
        with unit_lock(self.runtime_dir, key):
            return self._start_locked(name, key)

    def stop(self, name: str) -> SupervisorResult:
        """
        Stops a unit and its whole process tree.

        Stopping a unit that is not running succeeds with NOT_RUNNING.

        :param name: The unit name.
        :return SupervisorResult: STOPPED or NOT_RUNNING.
        """
        name = validate_unit_name(name)
        key = unit_key(name)
        with unit_lock(self.runtime_dir, key):
            return self._stop_locked(name, key)

    def restart(self, name: str) -> SupervisorResult:
        """Stops then starts a unit while holding its lock throughout."""
        name = validate_unit_name(name)
        key = unit_key(name)
        with unit_lock(self.runtime_dir, key):
            self._stop_locked(name, key)
            return self._start_locked(name, key)

    def status(self, name: str) -> SupervisorResult:
        """
        Reports whether a unit's recorded process is still the one that was started.

        :param name: The unit name.
        :return SupervisorResult: RUNNING/ACTIVE with the pid, or NOT_RUNNING/INACTIVE.
        """
        name = validate_unit_name(name)
        key = unit_key(name)
        try:
            with unit_lock(self.runtime_dir, key):
                record = self._live_record(key)
        except OSError as e:
            log.error(f"Cannot read runtime state of '{name}': {e}")
            raise StatusCheckFailed(f"Cannot read liveness record for {name}: {e}") from e
        if record is None:
            return SupervisorResult(name, Outcome.NOT_RUNNING, UnitState.INACTIVE)
        return SupervisorResult(name, Outcome.RUNNING, UnitState.ACTIVE, record.pid)

    def create_definition(self, name: str, exec_start: str, description: str = "",
                          working_directory: Optional[str] = None, restart: Optional[str] = None,
                          restart_sec: Optional[int] = None, type: Optional[str] = None) -> UnitDefinition:
        """
        Writes a unit definition from individual fields, filling in defaults.

        This does not touch the unit's run state.
        """
        definition = UnitDefinition(
            name=validate_unit_name(name),
            description=description,
            exec_start=exec_start,
            working_directory=working_directory if working_directory is not None else config.DEFAULT_WORKING_DIRECTORY,
            restart=restart or config.DEFAULT_RESTART_POLICY,
            restart_sec=config.DEFAULT_RESTART_SEC if restart_sec is None else restart_sec,
            type=type or config.DEFAULT_SERVICE_TYPE,
        )
        self.store.write_definition(definition)
        return self.store.get(definition.name)

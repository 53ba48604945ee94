import logging

from unitd.local.errors import EXIT_NOT_RUNNING, EXIT_OK
from unitd.local.supervisor import Outcome, ProcessSupervisor
from unitd.local.console.commands import Command, CommandResult

log = logging.getLogger(__name__)


def handle_add(command: Command, supervisor: ProcessSupervisor) -> CommandResult:
    """Stores a unit definition from a file path or from piped content."""
    definition = supervisor.store.add(command.target, command.content)
    return CommandResult(EXIT_OK, f"Added unit {definition.name}.service")


def handle_remove(command: Command, supervisor: ProcessSupervisor) -> CommandResult:
    removed = supervisor.store.remove(command.target)
    return CommandResult(EXIT_OK, f"Removed unit {removed}")


def handle_start(command: Command, supervisor: ProcessSupervisor) -> CommandResult:
    result = supervisor.start(command.target)
    if result.outcome is Outcome.ALREADY_RUNNING:
        return CommandResult(EXIT_OK, f"{command.target} already running (pid {result.pid})")
    return CommandResult(EXIT_OK, f"{command.target} started (pid {result.pid})")


def handle_stop(command: Command, supervisor: ProcessSupervisor) -> CommandResult:
    result = supervisor.stop(command.target)
    if result.outcome is Outcome.NOT_RUNNING:
        return CommandResult(EXIT_OK, f"{command.target} not running")
    return CommandResult(EXIT_OK, f"{command.target} stopped")


def handle_restart(command: Command, supervisor: ProcessSupervisor) -> CommandResult:
    result = supervisor.restart(command.target)
    return CommandResult(EXIT_OK, f"{command.target} restarted (pid {result.pid})")


def handle_status(command: Command, supervisor: ProcessSupervisor) -> CommandResult:
    result = supervisor.status(command.target)
    if result.outcome is Outcome.RUNNING:
        return CommandResult(EXIT_OK, f"{command.target} running (pid {result.pid})")
    return CommandResult(EXIT_NOT_RUNNING, f"{command.target} not running")


def handle_is_active(command: Command, supervisor: ProcessSupervisor) -> CommandResult:
    result = supervisor.status(command.target)
    if result.outcome is Outcome.RUNNING:
        return CommandResult(EXIT_OK, "active")
    return CommandResult(EXIT_NOT_RUNNING, "inactive")


def handle_daemon_reload(command: Command, supervisor: ProcessSupervisor) -> CommandResult:
    """
    Re-lists the units on disk.

    Definitions are read from disk on every command, so there is nothing
    to reload beyond reporting what is loadable.
    """
    units = supervisor.store.list()
    log.info(f"daemon-reload: {len(units)} unit(s) loadable.")
    lines = [f"Reloaded {len(units)} unit(s)", *units]
    return CommandResult(EXIT_OK, "\n".join(lines))

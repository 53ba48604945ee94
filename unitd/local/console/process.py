import logging
from typing import Callable, Dict, List, Optional

from unitd.local import diagnostics
from unitd.local.errors import EXIT_FAILURE, EXIT_STATUS_ERROR, StatusCheckFailed, UnitdError
from unitd.local.supervisor import ProcessSupervisor, UnitState
from unitd.local.console import handler
from unitd.local.console.commands import Command, CommandResult, Verb, parse_command, parse_line

log = logging.getLogger(__name__)

Handler = Callable[[Command, ProcessSupervisor], CommandResult]

# One handler per verb; both the CLI and the daemon dispatch through this table.
COMMAND_HANDLERS: Dict[Verb, Handler] = {
    Verb.ADD: handler.handle_add,
    Verb.REMOVE: handler.handle_remove,
    Verb.START: handler.handle_start,
    Verb.STOP: handler.handle_stop,
    Verb.STATUS: handler.handle_status,
    Verb.RESTART: handler.handle_restart,
    Verb.IS_ACTIVE: handler.handle_is_active,
    Verb.DAEMON_RELOAD: handler.handle_daemon_reload,
}


def error_result(error: UnitdError, command: Optional[Command] = None) -> CommandResult:
    """
    Converts an error into a result, notifying diagnostics of operational failures.

    :param error: The error raised while parsing or executing a command.
    :param command: The command that failed, if it could be parsed.
    :return CommandResult: The failure result carrying the error's exit code.
    """
    message = str(error)
    if error.exit_code in (EXIT_FAILURE, EXIT_STATUS_ERROR) and command is not None:
        state = UnitState.UNKNOWN if isinstance(error, StatusCheckFailed) else UnitState.FAILED
        log.error(f"'{command.verb.value} {command.target}' failed: {message}")
        diagnostics.notify_failure(command.verb.value, command.target, message, state.value)
    return CommandResult(error.exit_code, message, is_error=True)


def execute_command(command: Command, supervisor: ProcessSupervisor) -> CommandResult:
    """
    Executes a single parsed command.

    :param command: The command to run.
    :param supervisor: The supervisor (and its unit store) to run it against.
    :return CommandResult: The outcome; errors are converted, never raised.
    """
    log.debug(f"Executing command: {command.verb.value} {command.target}")
    try:
        return COMMAND_HANDLERS[command.verb](command, supervisor)
    except UnitdError as e:
        return error_result(e, command)


def run_args(tokens: List[str], supervisor: ProcessSupervisor, content: Optional[str] = None) -> CommandResult:
    """Parses and executes a command given as CLI tokens."""
    try:
        command = parse_command(tokens, content)
    except UnitdError as e:
        return error_result(e)
    return execute_command(command, supervisor)


def run_line(line: str, supervisor: ProcessSupervisor) -> CommandResult:
    """Parses and executes one protocol line."""
    try:
        command = parse_line(line)
    except UnitdError as e:
        return error_result(e)
    return execute_command(command, supervisor)

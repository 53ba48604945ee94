"""
Exception types raised by the unit store, resolver, supervisor and command channel.

Every error carries the exit code the stateless CLI reports for it, so the
front ends never have to map exception types to outcomes themselves.
"""

EXIT_OK = 0
EXIT_NOT_RUNNING = 1
EXIT_USAGE = 2
EXIT_FAILURE = 3
EXIT_STATUS_ERROR = 4


class UnitdError(Exception):
    """Base exception for all unitd errors."""
    exit_code = EXIT_FAILURE


#* --- Unit Store ---
class InvalidUnitName(UnitdError):
    """Raised when a unit name is empty or cannot be used as a file name."""
    exit_code = EXIT_USAGE


class EmptyContent(UnitdError):
    """Raised when a unit is added without a source file or any content."""
    exit_code = EXIT_USAGE


class NotFound(UnitdError):
    """Raised when a unit definition does not exist in the store."""
    exit_code = EXIT_NOT_RUNNING


#* --- Executable Resolver ---
class ExecutableNotFound(UnitdError):
    """Raised when neither ExecStart nor the conventional path exists."""

    def __init__(self, path: str):
        super().__init__(f"Executable not found: {path}")
        self.path = path


#* --- Process Supervisor ---
class LaunchFailed(UnitdError):
    """Raised when the OS refuses to spawn a unit's process."""


class TerminationFailed(UnitdError):
    """Raised when a running unit's process tree cannot be terminated."""


class StatusCheckFailed(UnitdError):
    """Raised when liveness cannot be determined because of an OS error."""
    exit_code = EXIT_STATUS_ERROR


#* --- Command Channel ---
class CommandTimeout(UnitdError):
    """Raised when a daemon command does not complete within its time budget."""


class MalformedCommand(UnitdError):
    """Raised when a command line is empty or lacks a required argument."""
    exit_code = EXIT_USAGE


class UnknownVerb(UnitdError):
    """Raised for a verb outside the supported command set."""
    exit_code = EXIT_USAGE

    def __init__(self, verb: str):
        super().__init__(f"unknown command: {verb}")
        self.verb = verb

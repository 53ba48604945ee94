import os
import sys
import shlex
import shutil
import logging
from pathlib import Path
from dataclasses import dataclass, field
from typing import List, Optional, Tuple

from unitd.local.config import effective_settings as config
from unitd.local.errors import ExecutableNotFound
from unitd.local.units.unitfile import UnitDefinition

log = logging.getLogger(__name__)


@dataclass
class ResolvedCommand:
    """The concrete command line a unit runs. Derived, never persisted."""

    executable: str
    arguments: List[str] = field(default_factory=list)
    working_directory: str = ""

    @property
    def argv(self) -> List[str]:
        return [self.executable, *self.arguments]


def get_executable_path(base_path: Path) -> Path:
    """Returns the platform-specific full path for an executable."""
    return base_path.with_suffix(base_path.suffix + ".exe") if sys.platform == "win32" else base_path


def split_exec_start(exec_start: str) -> Tuple[str, List[str]]:
    """
    Splits an ExecStart line into (executable, arguments).

    A double-quoted first token is taken verbatim as the executable, spaces
    included. Otherwise the executable ends at the first whitespace run.
    The remainder is tokenized with shell-like quoting rules.

    :param exec_start: The raw ExecStart value.
    :return tuple: The executable and its argument list.
    """
    line = exec_start.strip()
    if line.startswith('"'):
        closing = line.find('"', 1)
        if closing == -1:
            return line[1:], []
        executable, rest = line[1:closing], line[closing + 1:]
    else:
        parts = line.split(None, 1)
        executable = parts[0]
        rest = parts[1] if len(parts) > 1 else ""
    return executable, shlex.split(rest, posix=sys.platform != "win32")


def short_name(unit_name: str) -> str:
    """Returns the lower-cased final dot-delimited segment of a unit name."""
    name = unit_name.strip()
    if name.lower().endswith(config.UNIT_FILE_SUFFIX):
        name = name[: -len(config.UNIT_FILE_SUFFIX)]
    return name.split(".")[-1].lower()


def _locate_executable(executable: str, working_directory: str) -> Optional[str]:
    """Finds an ExecStart target on disk or on PATH."""
    candidate = Path(executable).expanduser()
    if candidate.is_absolute() or os.sep in executable or "/" in executable:
        if not candidate.is_absolute() and working_directory:
            candidate = Path(working_directory) / candidate
        return os.path.abspath(candidate) if candidate.is_file() else None
    return shutil.which(executable)


def _conventional_command(unit_name: str, base_dir: Path) -> Tuple[List[str], Path]:
    """
    Builds the launch command for a unit that has no ExecStart.

    Looks for <base>/<short>/<name>, then for a <name>.py script next to it.
    """
    name = unit_name.strip()
    if name.lower().endswith(config.UNIT_FILE_SUFFIX):
        name = name[: -len(config.UNIT_FILE_SUFFIX)]
    folder = base_dir / short_name(name)

    executable = get_executable_path(folder / name)
    if executable.is_file():
        return [str(executable)], executable

    script = folder / f"{name}.py"
    if script.is_file():
        return [config.PYTHON_EXECUTABLE, str(script)], script

    raise ExecutableNotFound(str(executable))


def _working_directory(configured: str, fallback: Path, default_dir: Optional[str]) -> str:
    if configured:
        return configured
    default_dir = default_dir if default_dir is not None else config.DEFAULT_WORKING_DIRECTORY
    if default_dir and Path(default_dir).is_dir():
        return str(default_dir)
    return str(fallback)


def resolve(unit_name: str, definition: Optional[UnitDefinition] = None,
            base_dir: Optional[Path] = None, default_working_directory: Optional[str] = None) -> ResolvedCommand:
    """
    Determines the command line and working directory for a unit.

    Uses the definition's ExecStart when present, otherwise the naming
    convention <base>/<short>/<name>. The target must exist on disk before
    anything is launched.

    :param unit_name: The unit name.
    :param definition: The stored definition, if any.
    :param base_dir: Base directory for convention-based lookup.
    :param default_working_directory: Used when the unit sets no WorkingDirectory.
    :return ResolvedCommand: The command to launch.
    """
    base_dir = Path(base_dir or config.APP_BASE_DIR)

    if definition is not None and definition.is_runnable:
        executable, arguments = split_exec_start(definition.exec_start)
        located = _locate_executable(executable, definition.working_directory)
        if located is None:
            raise ExecutableNotFound(executable)
        workdir = _working_directory(definition.working_directory, Path(located).parent, default_working_directory)
        log.debug(f"Resolved '{unit_name}' from ExecStart: {located} {arguments}")
        return ResolvedCommand(located, arguments, workdir)

    argv, target = _conventional_command(unit_name, base_dir)
    configured = definition.working_directory if definition is not None else ""
    workdir = _working_directory(configured, target.parent, default_working_directory)
    log.debug(f"Resolved '{unit_name}' by convention: {argv}")
    return ResolvedCommand(argv[0], argv[1:], workdir)

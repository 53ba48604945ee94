import os
import shutil
import logging
from pathlib import Path
from typing import List, Optional

from unitd.local.config import effective_settings as config
from unitd.local.errors import EmptyContent, InvalidUnitName, NotFound
from unitd.local.units.unitfile import (UnitDefinition, parse_unit_text, render_unit_text,
                                        unit_file_name, unit_key)

log = logging.getLogger(__name__)


def validate_unit_name(name: Optional[str]) -> str:
    """
    Checks that a unit name can be used as a file name in the store.

    :param name: The raw unit name.
    :return str: The stripped name.
    """
    if name is None or not name.strip():
        raise InvalidUnitName("Unit name must not be empty")
    name = name.strip()
    if name in (".", "..") or "/" in name or "\\" in name or os.sep in name:
        raise InvalidUnitName(f"Invalid unit name: {name}")
    return name


class UnitStore:
    """
    Stores unit definitions as one '<name>.service' file per unit.

    Lookups are case-insensitive; the file keeps the case it was added with.
    """

    def __init__(self, units_dir: Optional[Path] = None) -> None:
        self.units_dir = Path(units_dir or config.UNITS_DIR)

    def _ensure_dir(self) -> None:
        self.units_dir.mkdir(parents=True, exist_ok=True)

    def _find_path(self, name: str) -> Optional[Path]:
        """Returns the stored file for a unit name, ignoring case, or None."""
        if not self.units_dir.is_dir():
            return None
        key = unit_key(name)
        for entry in self.units_dir.iterdir():
            if entry.is_file() and entry.name.lower().endswith(config.UNIT_FILE_SUFFIX) and unit_key(entry.name) == key:
                return entry
        return None

    def _write_atomic(self, target: Path, text: str) -> None:
        temp_path = target.with_name(f".{target.name}.tmp")
        try:
            temp_path.write_text(text, encoding="utf-8")
            temp_path.replace(target)
        finally:
            temp_path.unlink(missing_ok=True)

    def _replace_existing(self, file_name: str) -> Path:
        """Removes a differently-cased file for the same unit and returns the target path."""
        existing = self._find_path(file_name)
        target = self.units_dir / file_name
        if existing is not None and existing.name != file_name:
            log.debug(f"Replacing '{existing.name}' with '{file_name}'.")
            existing.unlink()
        return target

    def add(self, name: str, content: Optional[str] = None) -> UnitDefinition:
        """
        Adds or replaces a unit definition.

        If `name` is a path to an existing file it is copied verbatim, keyed by
        its file name. Otherwise `name` is a unit identifier and `content` is the
        unit text.

        :param name: A path to a unit file, or a unit name.
        :param content: Unit text, used when `name` is not an existing file.
        :return UnitDefinition: The stored definition.
        """
        if name is None or not name.strip():
            raise InvalidUnitName("Unit name must not be empty")

        source = Path(name.strip()).expanduser()
        if source.is_file():
            file_name = unit_file_name(validate_unit_name(source.name))
            self._ensure_dir()
            target = self._replace_existing(file_name)
            if source.resolve() != target.resolve():
                shutil.copyfile(source, target)
            log.info(f"Added unit '{file_name}' from {source}")
            return self.get(file_name)

        file_name = unit_file_name(validate_unit_name(name))
        if content is None or not content.strip():
            raise EmptyContent(f"No unit file at '{name}' and no content supplied")

        self._ensure_dir()
        target = self._replace_existing(file_name)
        self._write_atomic(target, content)
        log.info(f"Added unit '{file_name}'")
        return self.get(file_name)

    def write_definition(self, definition: UnitDefinition) -> Path:
        """Renders a definition with the unit template and stores it."""
        file_name = unit_file_name(validate_unit_name(definition.name))
        self._ensure_dir()
        target = self._replace_existing(file_name)
        self._write_atomic(target, render_unit_text(definition))
        log.info(f"Unit '{file_name}' created at {target}")
        return target

    def remove(self, name: str) -> str:
        """
        Deletes a stored unit definition.

        :param name: The unit name.
        :return str: The file name that was removed.
        """
        validate_unit_name(name)
        path = self._find_path(name)
        if path is None:
            raise NotFound(f"Unit {unit_file_name(name)} not found")
        path.unlink()
        log.info(f"Removed unit '{path.name}'")
        return path.name

    def get(self, name: str) -> UnitDefinition:
        """Returns the parsed definition of a unit, raising NotFound if absent."""
        definition = self.find(name)
        if definition is None:
            raise NotFound(f"Unit {unit_file_name(name)} not found")
        return definition

    def find(self, name: str) -> Optional[UnitDefinition]:
        """Returns the parsed definition of a unit, or None if it has no file."""
        path = self._find_path(validate_unit_name(name))
        if path is None:
            return None
        text = path.read_text(encoding="utf-8", errors="replace")
        return parse_unit_text(path.name[: -len(config.UNIT_FILE_SUFFIX)], text)

    def list(self) -> List[str]:
        """Returns the unit file names currently on disk, in directory order."""
        if not self.units_dir.is_dir():
            return []
        return [
            entry.name for entry in self.units_dir.iterdir()
            if entry.is_file() and entry.name.lower().endswith(config.UNIT_FILE_SUFFIX)
        ]

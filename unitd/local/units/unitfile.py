import re
import logging
from dataclasses import dataclass, field
from typing import Dict, Optional

from unitd.local.config import effective_settings as config

log = logging.getLogger(__name__)

RESTART_POLICIES = ("no", "on-failure", "always")
SERVICE_TYPES = ("simple", "forking", "oneshot")

_SECTION_RE = re.compile(r"^\[([^\[\]]+)\]$")


@dataclass
class UnitDefinition:
    """A parsed unit file. Unknown sections and keys are kept in `sections`."""

    name: str
    description: str = ""
    exec_start: str = ""
    working_directory: str = ""
    restart: str = "on-failure"
    restart_sec: int = 5
    type: str = "simple"
    sections: Dict[str, Dict[str, str]] = field(default_factory=dict)

    @property
    def is_runnable(self) -> bool:
        return bool(self.exec_start.strip())


def unit_key(name: str) -> str:
    """
    Returns the canonical, case-insensitive key for a unit name.

    'WebApp.service', 'webapp' and ' webapp ' all map to 'webapp'.
    """
    key = name.strip().lower()
    if key.endswith(config.UNIT_FILE_SUFFIX):
        key = key[: -len(config.UNIT_FILE_SUFFIX)]
    return key


def unit_file_name(name: str) -> str:
    """Returns the on-disk file name for a unit, ending in '.service'."""
    name = name.strip()
    if name.lower().endswith(config.UNIT_FILE_SUFFIX):
        return name
    return name + config.UNIT_FILE_SUFFIX


def parse_sections(text: str) -> Dict[str, Dict[str, str]]:
    """
    Parses INI-like unit text into {section: {key: value}}.

    Parsing is tolerant: blank lines and '#'/';' comments are skipped, lines
    without '=' are ignored, and repeated keys keep the last value.
    Lines before the first section header are ignored.

    :param text: The raw unit file content.
    :return dict: The parsed sections in file order.
    """
    sections: Dict[str, Dict[str, str]] = {}
    current: Optional[Dict[str, str]] = None

    for raw_line in text.splitlines():
        line = raw_line.strip()
        if not line or line.startswith(("#", ";")):
            continue

        header = _SECTION_RE.match(line)
        if header:
            current = sections.setdefault(header.group(1), {})
            continue

        if current is None or "=" not in line:
            continue

        key, value = line.split("=", 1)
        key = key.strip()
        if key:
            current[key] = value.strip()

    return sections


def _lookup(sections: Dict[str, Dict[str, str]], section: str, key: str) -> Optional[str]:
    """Case-insensitive lookup of a key, preferring the expected section."""
    wanted_key = key.lower()
    ordered = sorted(sections.items(), key=lambda item: item[0].lower() != section.lower())
    for _, values in ordered:
        for k, v in values.items():
            if k.lower() == wanted_key:
                return v
    return None


def _parse_restart_sec(name: str, value: Optional[str]) -> int:
    if value is None or value == "":
        return config.DEFAULT_RESTART_SEC
    try:
        seconds = int(value)
    except ValueError:
        log.warning(f"Unit '{name}': invalid RestartSec '{value}', using {config.DEFAULT_RESTART_SEC}.")
        return config.DEFAULT_RESTART_SEC
    if seconds < 0:
        log.warning(f"Unit '{name}': negative RestartSec '{value}', using {config.DEFAULT_RESTART_SEC}.")
        return config.DEFAULT_RESTART_SEC
    return seconds


def _parse_choice(name: str, key: str, value: Optional[str], choices: tuple, default: str) -> str:
    if not value:
        return default
    if value.lower() not in choices:
        log.warning(f"Unit '{name}': unsupported {key} '{value}', using '{default}'.")
        return default
    return value.lower()


def parse_unit_text(name: str, text: str) -> UnitDefinition:
    """
    Builds a UnitDefinition from unit file text.

    Invalid Restart, RestartSec or Type values are logged and replaced by
    their defaults rather than failing the parse.

    :param name: The unit name the text belongs to.
    :param text: The raw unit file content.
    :return UnitDefinition: The parsed definition.
    """
    sections = parse_sections(text)
    return UnitDefinition(
        name=name,
        description=_lookup(sections, "Unit", "Description") or "",
        exec_start=_lookup(sections, "Service", "ExecStart") or "",
        working_directory=_lookup(sections, "Service", "WorkingDirectory") or "",
        restart=_parse_choice(name, "Restart", _lookup(sections, "Service", "Restart"),
                              RESTART_POLICIES, config.DEFAULT_RESTART_POLICY),
        restart_sec=_parse_restart_sec(name, _lookup(sections, "Service", "RestartSec")),
        type=_parse_choice(name, "Type", _lookup(sections, "Service", "Type"),
                           SERVICE_TYPES, config.DEFAULT_SERVICE_TYPE),
        sections=sections,
    )


def render_unit_text(definition: UnitDefinition) -> str:
    """Renders a definition with the standard unit template."""
    return config.UNIT_TEMPLATE.format(
        Description=definition.description,
        Type=definition.type,
        ExecStart=definition.exec_start,
        WorkingDirectory=definition.working_directory,
        Restart=definition.restart,
        RestartSec=definition.restart_sec,
    )

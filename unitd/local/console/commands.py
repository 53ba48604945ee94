from enum import Enum
from dataclasses import dataclass
from typing import List, Optional

from unitd.local.errors import EXIT_OK, MalformedCommand, UnknownVerb


class Verb(str, Enum):
    ADD = "add"
    REMOVE = "remove"
    START = "start"
    STOP = "stop"
    STATUS = "status"
    RESTART = "restart"
    IS_ACTIVE = "is-active"
    DAEMON_RELOAD = "daemon-reload"

    @property
    def needs_target(self) -> bool:
        return self is not Verb.DAEMON_RELOAD

    @property
    def usage(self) -> str:
        if self is Verb.ADD:
            return "add <path-or-name>"
        if self is Verb.DAEMON_RELOAD:
            return "daemon-reload"
        return f"{self.value} <unit>"


@dataclass
class Command:
    """A parsed command. `content` carries out-of-band unit text for 'add'."""

    verb: Verb
    target: str = ""
    content: Optional[str] = None


@dataclass
class CommandResult:
    """
    The outcome of one command.

    `exit_code` is authoritative; `is_error` only selects the output stream.
    """

    exit_code: int
    message: str
    is_error: bool = False

    @property
    def ok(self) -> bool:
        return self.exit_code == EXIT_OK


def parse_command(tokens: List[str], content: Optional[str] = None) -> Command:
    """
    Builds a Command from a verb and its arguments.

    :param tokens: The verb followed by its arguments.
    :param content: Unit text supplied out-of-band (stdin) for 'add'.
    :return Command: The parsed command.
    """
    if not tokens or not tokens[0].strip():
        raise MalformedCommand("empty command")

    verb_text = tokens[0].strip().lower()
    try:
        verb = Verb(verb_text)
    except ValueError:
        raise UnknownVerb(verb_text) from None

    target = " ".join(t for t in tokens[1:] if t.strip()).strip()
    if verb.needs_target and not target:
        raise MalformedCommand(f"usage: {verb.usage}")
    return Command(verb, target, content)


def parse_line(line: str) -> Command:
    """Parses one protocol line of the form '<verb> <name>'."""
    parts = line.strip().split(None, 1)
    return parse_command(parts)

"""
This module initializes the console package, exposing the command model and
the dispatch functions shared by the CLI and the daemon.
"""

from .commands import Command, CommandResult, Verb, parse_command, parse_line
from .process import COMMAND_HANDLERS, execute_command, run_args, run_line

__all__ = ["Command", "CommandResult", "Verb", "parse_command", "parse_line",
           "COMMAND_HANDLERS", "execute_command", "run_args", "run_line"]

import logging
import threading
import socketserver
from typing import Optional, Tuple

import setproctitle

from unitd.local.config import effective_settings as config
from unitd.local.errors import EXIT_FAILURE, CommandTimeout, UnitdError
from unitd.local.supervisor import ProcessSupervisor
from unitd.local.console import CommandResult, execute_command, parse_line
from unitd.local.console.process import error_result
from unitd.log.setup import default_log_file, setup_logging

log = logging.getLogger(__name__)


class UnitCommandHandler(socketserver.StreamRequestHandler):
    """
    Serves one connection: reads a '<verb> <name>' line and writes one response.

    Each connection runs on its own thread (see UnitDaemon), and every command
    is bounded by the server's command timeout.
    """

    server: "UnitDaemon"

    def _respond(self, result: CommandResult) -> None:
        self.wfile.write((result.message.rstrip("\n") + "\n").encode("utf-8"))
        self.wfile.flush()

    def handle(self) -> None:
        raw = self.rfile.readline()
        line = raw.decode("utf-8", errors="replace").strip()
        peer = "%s:%s" % self.client_address[:2]
        log.info(f"Request from {peer}: {line!r}")
        try:
            command = parse_line(line)
        except UnitdError as e:
            self._respond(error_result(e))
            return

        self._respond(self.server.run_command(command))


class UnitDaemon(socketserver.ThreadingTCPServer):
    """A loopback TCP server dispatching line commands to the supervisor."""

    allow_reuse_address = True
    daemon_threads = True

    def __init__(self, address: Tuple[str, int], supervisor: Optional[ProcessSupervisor] = None,
                 command_timeout: Optional[float] = None) -> None:
        self.supervisor = supervisor or ProcessSupervisor()
        self.command_timeout = config.COMMAND_TIMEOUT if command_timeout is None else command_timeout
        super().__init__(address, UnitCommandHandler)

    def run_command(self, command) -> CommandResult:
        """
        Executes a command on a worker thread, giving up after the command timeout.

        A command that times out keeps running in the background; the caller
        gets a timeout response instead of a blocked connection.
        """
        outcome = {}

        def _worker() -> None:
            try:
                outcome["result"] = execute_command(command, self.supervisor)
            except Exception as e:
                log.error(f"Unexpected error executing '{command.verb.value} {command.target}': {e}", exc_info=True)
                outcome["result"] = CommandResult(EXIT_FAILURE, f"error: {e}", is_error=True)

        worker = threading.Thread(target=_worker, daemon=True, name=f"cmd-{command.verb.value}-{command.target}")
        worker.start()
        worker.join(self.command_timeout)
        if worker.is_alive():
            request = " ".join(filter(None, (command.verb.value, command.target)))
            return error_result(CommandTimeout(f"{request} timed out after {self.command_timeout:g}s"), command)
        return outcome["result"]


def run_daemon(host: Optional[str] = None, port: Optional[int] = None,
               supervisor: Optional[ProcessSupervisor] = None) -> None:
    """
    Runs the daemon in the foreground until interrupted.

    :param host: Address to bind, loopback by default.
    :param port: Port to bind.
    :param supervisor: The supervisor to dispatch to.
    """
    setproctitle.setproctitle(config.DAEMON_PROCESS_TITLE)
    setup_logging(logging.DEBUG if config.VERBOSE_LOGGING else logging.INFO, log_file=default_log_file())

    host = host or config.DAEMON_HOST
    port = config.DAEMON_PORT if port is None else port
    with UnitDaemon((host, port), supervisor) as server:
        log.info(f"unitd daemon listening on {host}:{port}")
        try:
            server.serve_forever()
        except KeyboardInterrupt:
            log.info("Daemon interrupted by user.")
        finally:
            log.info("unitd daemon shutting down.")

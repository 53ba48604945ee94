import socket
import logging
from typing import Optional

from unitd.local.config import effective_settings as config

log = logging.getLogger(__name__)


def send_command(line: str, host: Optional[str] = None, port: Optional[int] = None,
                 timeout: Optional[float] = None) -> str:
    """
    Sends one command line to a running daemon and returns its response.

    :param line: The command, e.g. 'start webapp'.
    :param host: The daemon host.
    :param port: The daemon port.
    :param timeout: Socket timeout in seconds.
    :return str: The response text without the trailing newline.
    """
    host = host or config.DAEMON_HOST
    port = config.DAEMON_PORT if port is None else port
    timeout = config.CLIENT_TIMEOUT if timeout is None else timeout

    with socket.create_connection((host, port), timeout=timeout) as sock:
        sock.sendall((line.strip() + "\n").encode("utf-8"))
        sock.shutdown(socket.SHUT_WR)
        chunks = []
        while True:
            data = sock.recv(4096)
            if not data:
                break
            chunks.append(data)

    response = b"".join(chunks).decode("utf-8", errors="replace")
    log.debug(f"Daemon at {host}:{port} answered '{line}' with: {response.strip()}")
    return response.rstrip("\n")

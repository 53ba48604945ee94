import json
import time
import uuid
import logging
import requests
from pathlib import Path
from typing import Any, Dict, List, Optional

from unitd.local.config import effective_settings as config

log = logging.getLogger(__name__)


class FileDiagnostics:
    """Writes each diagnostics event as an atomic JSON file named '<name>.json'."""

    def __init__(self, directory: Path) -> None:
        self.directory = Path(directory)

    def write(self, name: str, data: Dict[str, Any]) -> Path:
        """
        Atomically writes a diagnostics object to disk.

        :param name: The file name without extension.
        :param data: A JSON-serializable object.
        :return: The path of the written file.
        """
        if not name or not name.strip():
            raise ValueError("Diagnostics name must not be empty")
        self.directory.mkdir(parents=True, exist_ok=True)
        path = self.directory / f"{name}.json"
        temp_path = self.directory / f"{name}.json.tmp{uuid.uuid4().hex}"
        try:
            with temp_path.open("w") as f:
                json.dump(data, f, indent=4)
            temp_path.replace(path)
        finally:
            temp_path.unlink(missing_ok=True)
        return path

    def read(self, name: str) -> Optional[Dict[str, Any]]:
        """Reads a diagnostics file back, or returns None if it does not exist."""
        path = self.directory / f"{name}.json"
        if not path.exists():
            return None
        return json.loads(path.read_text())


class HttpDiagnostics:
    """Posts diagnostics events as JSON to a collector URL."""

    def __init__(self, url: str, timeout: float = 3) -> None:
        self.url = url
        self.timeout = timeout

    def write(self, name: str, data: Dict[str, Any]) -> None:
        response = requests.post(self.url, json={"name": name, **data}, timeout=self.timeout)
        response.raise_for_status()


def _default_sinks() -> List[Any]:
    sinks: List[Any] = [FileDiagnostics(config.DIAGNOSTICS_DIR)]
    if config.DIAGNOSTICS_URL:
        sinks.append(HttpDiagnostics(config.DIAGNOSTICS_URL, config.DIAGNOSTICS_TIMEOUT))
    return sinks


def notify_failure(verb: str, unit: str, message: str, state: str, sinks: Optional[List[Any]] = None) -> None:
    """
    Reports an operational failure to the diagnostics sinks.

    Best effort: a sink that fails is logged and skipped, and the caller's
    outcome is never affected.

    :param verb: The command verb that failed.
    :param unit: The unit the command targeted.
    :param message: The failure text reported to the caller.
    :param state: The unit state after the failure.
    :param sinks: Sinks to notify; defaults to the configured ones.
    """
    if sinks is None:
        if not config.DIAGNOSTICS_ENABLED:
            return
        sinks = _default_sinks()

    event = {
        "verb": verb,
        "unit": unit,
        "state": state,
        "message": message,
        "timestamp": time.time(),
    }
    name = f"{unit or 'unitd'}-{verb}-{int(event['timestamp'] * 1000)}"
    for sink in sinks:
        try:
            sink.write(name, event)
        except requests.exceptions.RequestException as e:
            log.warning(f"Failed to post diagnostics to {getattr(sink, 'url', sink)}: {e}")
        except (OSError, TypeError, ValueError) as e:
            log.warning(f"Failed to write diagnostics '{name}': {e}")

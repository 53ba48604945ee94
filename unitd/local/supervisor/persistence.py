import json
import time
import logging
from pathlib import Path
from dataclasses import dataclass, asdict, field
from typing import List, Optional

log = logging.getLogger(__name__)

RECORD_SUFFIX = ".pid"


@dataclass
class LivenessRecord:
    """
    The last known process identity of a unit.

    `create_time` is the process start time reported by the OS; together with
    the pid it identifies the process even after the pid has been recycled.
    """

    unit: str
    pid: int
    create_time: Optional[float]
    cmdline: List[str] = field(default_factory=list)
    started_at: float = field(default_factory=time.time)


def record_path(runtime_dir: Path, key: str) -> Path:
    """Returns the liveness record file for a unit key."""
    return runtime_dir / f"{key}{RECORD_SUFFIX}"


def read_record(runtime_dir: Path, key: str) -> Optional[LivenessRecord]:
    """
    Reads a unit's liveness record from disk.

    A record that cannot be parsed is deleted and treated as absent.

    :param runtime_dir: The runtime state directory.
    :param key: The unit key.
    :return: The record if the file exists and is valid, else None.
    """
    path = record_path(runtime_dir, key)
    if not path.exists():
        return None
    try:
        with path.open("r") as f:
            data = json.load(f)
        if not isinstance(data, dict):
            raise ValueError("record is not a JSON object")
        return LivenessRecord(
            unit=str(data.get("unit", key)),
            pid=int(data["pid"]),
            create_time=float(data["create_time"]) if data.get("create_time") is not None else None,
            cmdline=list(data.get("cmdline") or []),
            started_at=float(data.get("started_at") or 0.0),
        )
    except (json.JSONDecodeError, KeyError, TypeError, ValueError) as e:
        log.warning(f"Discarding malformed liveness record {path}: {e}")
        path.unlink(missing_ok=True)
        return None


def write_record(runtime_dir: Path, key: str, record: LivenessRecord) -> None:
    """
    Atomically writes a unit's liveness record.

    :param runtime_dir: The runtime state directory.
    :param key: The unit key.
    :param record: The record to persist.
    """
    runtime_dir.mkdir(parents=True, exist_ok=True)
    path = record_path(runtime_dir, key)
    temp_path = path.with_suffix(".tmp")
    try:
        with temp_path.open("w") as f:
            json.dump(asdict(record), f, indent=4)
        temp_path.replace(path)
    finally:
        temp_path.unlink(missing_ok=True)


def delete_record(runtime_dir: Path, key: str) -> None:
    """Removes a unit's liveness record if present."""
    record_path(runtime_dir, key).unlink(missing_ok=True)

import psutil
import logging
from typing import List

from unitd.local.errors import TerminationFailed

log = logging.getLogger(__name__)


def collect_process_tree(proc: psutil.Process) -> List[psutil.Process]:
    """
    Returns the process and all of its descendants, root first.

    :param proc: The root of the tree.
    :return: The processes that make up the tree.
    """
    tree = [proc]
    try:
        tree.extend(proc.children(recursive=True))
    except psutil.NoSuchProcess:
        log.warning(f"Process {proc.pid} no longer exists, skipping children retrieval.")
    return tree


def _is_zombie(proc: psutil.Process) -> bool:
    try:
        return proc.status() == psutil.STATUS_ZOMBIE
    except psutil.NoSuchProcess:
        return True


def _terminate_processes(processes: List[psutil.Process]) -> None:
    """Sends the graceful stop signal (SIGTERM / TerminateProcess) to each process."""
    for proc in processes:
        try:
            log.debug(f"Sending SIGTERM to {proc.name()} (PID {proc.pid})")
            proc.terminate()
        except psutil.NoSuchProcess:
            log.debug(f"Process {proc.pid} no longer exists, skipping termination.")
            continue


def _forceful_kill(processes: List[psutil.Process]) -> None:
    """Forcefully kills processes that didn't terminate gracefully."""
    if not processes:
        return

    log.warning(f"{len(processes)} processes did not terminate gracefully. Forcing shutdown...")
    for proc in processes:
        try:
            log.warning(f"Killing stubborn process {proc.name()} (PID {proc.pid}).")
            proc.kill()
        except psutil.NoSuchProcess:
            log.debug(f"Process {proc.pid} no longer exists, skipping forceful kill.")
            continue


def terminate_tree(proc: psutil.Process, timeout: float, kill_timeout: float = 5) -> None:
    """
    Stops a process and all of its descendants.

    Every process in the tree is signalled to terminate; whatever is still
    alive after `timeout` seconds is killed. psutil hides the platform
    differences between signals and TerminateProcess.

    :param proc: The root process of the tree.
    :param timeout: Grace period before escalating to a forced kill.
    :param kill_timeout: How long to wait for killed processes to disappear.
    """
    tree = collect_process_tree(proc)
    try:
        _terminate_processes(tree)
        _, alive = psutil.wait_procs(tree, timeout=timeout)
        _forceful_kill(alive)
        _, alive = psutil.wait_procs(alive, timeout=kill_timeout)
    except psutil.AccessDenied as e:
        raise TerminationFailed(f"Failed to stop PID {proc.pid}: access denied") from e
    except OSError as e:
        raise TerminationFailed(f"Failed to stop PID {proc.pid}: {e}") from e

    # Zombies are dead; they only wait for their parent to reap them.
    alive = [p for p in alive if not _is_zombie(p)]
    if alive:
        pids = ", ".join(str(p.pid) for p in alive)
        raise TerminationFailed(f"Processes still running after kill: {pids}")

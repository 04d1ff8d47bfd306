"""
Background mounts for shotwell-vfs.

A mount started without --foreground double-forks into its own session,
records its PID and unmounts on SIGTERM. ``run_fn`` sets up the
daemon's logging.
"""

import logging
import os
import signal
from typing import Callable

from .safety import write_pid, clear_pid, read_pid, is_process_alive, is_vfs_process

log = logging.getLogger(__name__)


def _read_until_closed(fd: int) -> bytes:
    data = b""
    while True:
        chunk = os.read(fd, 64)
        if not chunk:
            break
        data += chunk
    os.close(fd)
    return data


def _redirect_stdio() -> None:
    devnull = os.open(os.devnull, os.O_RDWR)
    for target in (0, 1, 2):
        os.dup2(devnull, target)
    os.close(devnull)


def _request_shutdown(signum, frame):
    # Unwinds trio.run() so pyfuse3.close() detaches the mount
    log.info(f"Received signal {signum}, shutting down")
    raise KeyboardInterrupt


def fork_mount(mountpoint: str, run_fn: Callable[[str], None]) -> int:
    """Run ``run_fn(mountpoint)`` in a detached daemon.

    Returns the daemon's PID in the calling process; never returns in
    the daemon itself.
    """
    read_fd, write_fd = os.pipe()

    pid = os.fork()
    if pid > 0:
        os.close(write_fd)
        reported = _read_until_closed(read_fd)
        try:
            os.waitpid(pid, 0)
        except ChildProcessError:
            pass
        try:
            return int(reported.strip())
        except ValueError:
            return pid

    # Intermediate child: new session, fork the daemon, report its PID
    os.close(read_fd)
    os.setsid()
    daemon_pid = os.fork()
    if daemon_pid > 0:
        os.write(write_fd, str(daemon_pid).encode())
        os.close(write_fd)
        os._exit(0)

    os.close(write_fd)
    _redirect_stdio()
    write_pid(mountpoint, os.getpid())
    signal.signal(signal.SIGTERM, _request_shutdown)
    signal.signal(signal.SIGINT, _request_shutdown)

    try:
        run_fn(mountpoint)
    except Exception as e:
        log.error(f"Mount failed for {mountpoint}: {e}", exc_info=True)
    finally:
        clear_pid(mountpoint)
    os._exit(0)


def mount_status(mountpoint: str) -> dict:
    """Report whether a mount is being served: {"running", "pid", "orphaned"}.

    The PID file counts only while it names a live shotwell-vfs process;
    a stale one is removed. A mount listed in /proc/mounts with no such
    process is either orphaned (ENOTCONN) or served by a foreground run
    started elsewhere.
    """
    from .safety import is_mount_orphaned, find_mounted_fuse

    pid = read_pid(mountpoint)
    if pid is not None and is_process_alive(pid) and is_vfs_process(pid):
        return {"running": True, "pid": pid, "orphaned": False}

    if mountpoint in {m.mountpoint for m in find_mounted_fuse()}:
        orphaned = is_mount_orphaned(mountpoint)
        return {"running": not orphaned, "pid": pid, "orphaned": orphaned}

    if pid is not None:
        clear_pid(mountpoint)
    return {"running": False, "pid": None, "orphaned": False}

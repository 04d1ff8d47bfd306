"""
Safety fences for shotwell-vfs.

Before mounting: refuse system directories, non-empty directories and
paths another FUSE filesystem already occupies. While mounted: track the
daemon by PID file. After a crash: spot the dead mount (ENOTCONN) and
detach it with fusermount.
"""

import errno
import logging
import os
import signal
import subprocess
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from .config import get_mount_id, get_state_dir

log = logging.getLogger(__name__)

# Source column our mounts show in /proc/mounts
FSNAME = "shotwell-vfs"

_SYSTEM_DIRS = (
    "bin", "boot", "dev", "etc", "home", "lib", "lib64", "mnt", "opt",
    "proc", "root", "run", "sbin", "srv", "sys", "tmp", "usr", "var",
)
BLOCKED_PATHS = frozenset({"/"} | {f"/{name}" for name in _SYSTEM_DIRS})

UNMOUNT_COMMANDS = ("fusermount", "fusermount3")


@dataclass(frozen=True)
class FuseMount:
    """One FUSE line of /proc/mounts."""
    source: str
    mountpoint: str
    fstype: str

    @property
    def is_ours(self) -> bool:
        return self.source == FSNAME


# --- Mountpoint checks ---

def _occupied_by(resolved: str) -> Optional[FuseMount]:
    for mount in find_all_fuse_mounts():
        if os.path.realpath(mount.mountpoint) == resolved:
            return mount
    return None


def validate_mountpoint(path: str) -> Optional[str]:
    """Explain why ``path`` cannot host a catalog mount, or None if it can."""
    resolved = os.path.realpath(path)

    if resolved in BLOCKED_PATHS:
        return (
            f"{resolved} is a system directory; a catalog mount would hide it.\n"
            f"\n"
            f"Pick a dedicated directory, e.g.:\n"
            f"  shotwell-vfs init ~/Photos-catalog"
        )

    occupant = _occupied_by(resolved)
    if occupant is not None and occupant.is_ours:
        return (
            f"A catalog is already mounted at {resolved}.\n"
            f"Detach it first: shotwell-vfs unmount {resolved}"
        )
    if occupant is not None:
        return (
            f"{resolved} is in use by another FUSE filesystem "
            f"({occupant.source}, {occupant.fstype})."
        )

    if not os.path.isdir(resolved):
        return None
    try:
        entries = os.listdir(resolved)
    except PermissionError:
        return f"Cannot list {resolved}: permission denied."
    if entries:
        noun = "entry" if len(entries) == 1 else "entries"
        return (
            f"{resolved} is not empty ({len(entries)} {noun}).\n"
            f"\n"
            f"Mounting over it would hide those files until unmount.\n"
            f"Use an empty or new directory."
        )
    return None


def ensure_mountpoint(path: str) -> Optional[str]:
    """mkdir -p the mountpoint. Returns an error message on failure."""
    try:
        Path(path).mkdir(parents=True, exist_ok=True)
    except PermissionError:
        return (
            f"Cannot create {path}: permission denied.\n"
            f"\n"
            f"Create it yourself and hand it over:\n"
            f"  sudo install -d -o $USER {path}"
        )
    except OSError as e:
        return f"Cannot create {path}: {e}"
    return None


# --- PID files ---

def get_pid_path(mountpoint: str) -> Path:
    return get_state_dir() / f"{get_mount_id(mountpoint)}.pid"


def write_pid(mountpoint: str, pid: int) -> None:
    path = get_pid_path(mountpoint)
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(f"{pid}\n")


def read_pid(mountpoint: str) -> Optional[int]:
    """PID recorded for a mount; None when absent or unreadable."""
    try:
        text = get_pid_path(mountpoint).read_text()
    except OSError:
        return None
    text = text.strip()
    return int(text) if text.isdigit() else None


def clear_pid(mountpoint: str) -> None:
    get_pid_path(mountpoint).unlink(missing_ok=True)


def is_vfs_process(pid: int) -> bool:
    """Whether ``pid`` is running shotwell-vfs (judged by its command line)."""
    try:
        argv = Path(f"/proc/{pid}/cmdline").read_bytes().split(b"\0")
    except OSError:
        return False
    return any(b"shotwell-vfs" in arg or b"shotwell_vfs" in arg for arg in argv)


def is_process_alive(pid: int) -> bool:
    try:
        os.kill(pid, 0)
    except OSError:
        return False
    return True


def kill_mount_daemon(mountpoint: str) -> tuple[bool, str]:
    """SIGTERM the daemon serving ``mountpoint``. Returns (sent, message).

    The PID file is dropped in every outcome except a failed kill. A PID
    that now belongs to some other program is never signalled.
    """
    pid = read_pid(mountpoint)
    if pid is None:
        return False, f"no daemon recorded for {mountpoint}"

    if not is_process_alive(pid):
        reason = f"daemon {pid} already exited"
    elif not is_vfs_process(pid):
        reason = f"pid {pid} is not a shotwell-vfs process, left alone"
    else:
        try:
            os.kill(pid, signal.SIGTERM)
        except OSError as e:
            return False, f"could not signal pid {pid}: {e}"
        clear_pid(mountpoint)
        return True, f"sent SIGTERM to pid {pid}"

    clear_pid(mountpoint)
    return False, reason


# --- Mount table ---

def find_all_fuse_mounts() -> list[FuseMount]:
    """Every FUSE filesystem currently mounted, ours or not."""
    try:
        table = Path("/proc/mounts").read_text()
    except OSError as e:
        log.debug(f"Cannot read /proc/mounts: {e}")
        return []

    mounts = []
    for line in table.splitlines():
        fields = line.split()
        if len(fields) < 3 or "fuse" not in fields[2].lower():
            continue
        mounts.append(FuseMount(source=fields[0], mountpoint=fields[1], fstype=fields[2]))
    return mounts


def find_mounted_fuse() -> list[FuseMount]:
    """Mounts created by shotwell-vfs."""
    return [m for m in find_all_fuse_mounts() if m.is_ours]


def is_mount_orphaned(mountpoint: str) -> bool:
    """A mount whose daemon died answers every call with ENOTCONN."""
    try:
        os.statvfs(mountpoint)
    except OSError as e:
        return e.errno == errno.ENOTCONN
    return False


def fusermount_unmount(mountpoint: str) -> tuple[bool, str]:
    """Detach ``mountpoint`` with whichever fusermount is installed."""
    for command in UNMOUNT_COMMANDS:
        try:
            result = subprocess.run(
                [command, "-u", mountpoint],
                capture_output=True, text=True, timeout=10,
            )
        except FileNotFoundError:
            continue
        except subprocess.TimeoutExpired:
            return False, f"{command} -u {mountpoint} timed out"

        if result.returncode != 0:
            return False, f"{command} -u failed: {result.stderr.strip()}"
        return True, f"detached {mountpoint}"

    return False, f"none of {', '.join(UNMOUNT_COMMANDS)} is installed"

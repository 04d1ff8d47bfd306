"""
Configuration for shotwell-vfs.

Settings live in $XDG_CONFIG_HOME/shotwell-vfs/config.json:

    {
      "db_path": "~/.local/share/shotwell/data/photo.db",
      "mounts": {"/home/me/Photos-catalog": {"db_path": ""}}
    }

A mount serves the first catalog found among: the --db flag, the mount's
own db_path, the top-level db_path, then Shotwell's default location.
"""

import fcntl
import hashlib
import json
import logging
import os
import stat
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

log = logging.getLogger(__name__)

APP_DIR = "shotwell-vfs"
CONFIG_NAME = "config.json"


# --- XDG locations ---

def _xdg_base(variable: str, fallback: str) -> Path:
    return Path(os.environ.get(variable) or os.path.expanduser(fallback))


def get_config_dir() -> Path:
    return _xdg_base("XDG_CONFIG_HOME", "~/.config") / APP_DIR


def get_config_path() -> Path:
    return get_config_dir() / CONFIG_NAME


def get_data_dir() -> Path:
    """Per-user data: one subdirectory per mount, holding its daemon log."""
    return _xdg_base("XDG_DATA_HOME", "~/.local/share") / APP_DIR


def get_state_dir() -> Path:
    """PID files of running daemons."""
    return _xdg_base("XDG_STATE_HOME", "~/.local/state") / APP_DIR


def get_default_db_path() -> Path:
    """Where Shotwell itself keeps the library database."""
    return _xdg_base("XDG_DATA_HOME", "~/.local/share") / "shotwell" / "data" / "photo.db"


def get_mount_id(mountpoint: str) -> str:
    """12 hex digits naming a mountpoint in file names."""
    digest = hashlib.sha256(mountpoint.encode("utf-8"))
    return digest.hexdigest()[:12]


def get_mount_data_dir(mountpoint: str) -> Path:
    return get_data_dir() / "mounts" / get_mount_id(mountpoint)


# --- Settings ---

@dataclass
class MountConfig:
    """One registered mountpoint."""
    path: str
    db_path: str = ""  # blank: use the top-level catalog


@dataclass
class VFSConfig:
    """Everything config.json says, after defaults are applied."""
    db_path: str = field(default_factory=lambda: str(get_default_db_path()))
    mounts: dict[str, MountConfig] = field(default_factory=dict)

    def db_path_for(self, mountpoint: str, cli_db: Optional[str] = None) -> Path:
        """The catalog ``mountpoint`` serves, with ``~`` expanded."""
        mount = self.mounts.get(mountpoint)
        for candidate in (cli_db, mount.db_path if mount else None, self.db_path):
            if candidate:
                return Path(candidate).expanduser()
        return get_default_db_path()


# --- config.json I/O ---

def read_config_file() -> Optional[dict]:
    """Parsed config.json, or None if it is missing or unreadable."""
    path = get_config_path()
    try:
        f = open(path, "r")
    except FileNotFoundError:
        return None
    except OSError as e:
        log.warning(f"Cannot open {path}: {e}")
        return None

    with f:
        fcntl.flock(f, fcntl.LOCK_SH)
        try:
            return json.load(f)
        except json.JSONDecodeError as e:
            log.warning(f"Ignoring malformed {path}: {e}")
            return None
        finally:
            fcntl.flock(f, fcntl.LOCK_UN)


def write_config_file(data: dict) -> None:
    """Replace config.json with ``data``, readable by the owner only.

    The JSON is checked to load back equal to ``data`` before anything is
    written. It then goes to a sibling temp file that is renamed over the
    original while an exclusive lock is held, so readers never see a
    partial file.
    """
    text = json.dumps(data, indent=2) + "\n"
    if json.loads(text) != data:
        raise ValueError("config does not survive a JSON roundtrip; not writing it")

    path = get_config_path()
    path.parent.mkdir(parents=True, exist_ok=True)
    tmp_path = path.with_suffix(".tmp")

    with open(tmp_path, "w") as f:
        fcntl.flock(f, fcntl.LOCK_EX)
        try:
            f.write(text)
            f.flush()
            os.fsync(f.fileno())
            os.chmod(tmp_path, stat.S_IRUSR | stat.S_IWUSR)
            os.replace(tmp_path, path)
        finally:
            fcntl.flock(f, fcntl.LOCK_UN)


# --- Settings <-> file ---

def _mount_config_to_dict(mc: MountConfig) -> dict:
    return {"db_path": mc.db_path}


def load_config(cli_db: Optional[str] = None) -> VFSConfig:
    """Settings from config.json; ``cli_db`` replaces the top-level catalog."""
    data = read_config_file() or {}
    config = VFSConfig(
        mounts={
            path: MountConfig(path=path, db_path=entry.get("db_path", ""))
            for path, entry in data.get("mounts", {}).items()
        },
    )
    if data.get("db_path"):
        config.db_path = data["db_path"]
    if cli_db:
        config.db_path = str(Path(cli_db).expanduser())
    return config


def add_mount_to_config(mountpoint: str, mount_config: Optional[MountConfig] = None) -> None:
    """Register (or re-register) ``mountpoint``, keeping every other setting."""
    data = read_config_file() or {}
    entry = mount_config or MountConfig(path=mountpoint)
    data.setdefault("mounts", {})[mountpoint] = _mount_config_to_dict(entry)
    write_config_file(data)
    log.info(f"Registered {mountpoint} in {get_config_path()}")


def remove_mount_from_config(mountpoint: str) -> bool:
    """Forget ``mountpoint``. False if it was never registered."""
    data = read_config_file() or {}
    mounts = data.get("mounts", {})
    if mountpoint not in mounts:
        return False
    del mounts[mountpoint]
    write_config_file(data)
    return True

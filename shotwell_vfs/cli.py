"""
Subcommand implementations for the shotwell-vfs CLI.

Commands: init, mount, unmount, status, config. Each takes the argparse
Namespace built in main.py and prints for a human; failures that should
stop a script exit non-zero.
"""

import logging
import os
import shutil
import sys
from argparse import Namespace
from pathlib import Path
from typing import Optional

from .config import (
    MountConfig, VFSConfig,
    get_config_path, get_mount_data_dir,
    load_config, add_mount_to_config, remove_mount_from_config,
    read_config_file,
)
from .daemon import fork_mount, mount_status
from .errors import CatalogUnavailable
from .safety import (
    FSNAME, validate_mountpoint, ensure_mountpoint,
    kill_mount_daemon, fusermount_unmount, clear_pid, write_pid,
)

log = logging.getLogger(__name__)

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


# --- Terminal styling ---

def _supports_color() -> bool:
    """ANSI styling only on a real terminal, and never with NO_COLOR set."""
    if os.environ.get("NO_COLOR"):
        return False
    isatty = getattr(sys.stdout, "isatty", None)
    return bool(isatty and isatty())

def _style(code: str, text: str) -> str:
    if not _supports_color():
        return text
    return f"\033[{code}m{text}\033[0m"

def _bold(text: str) -> str:
    return _style("1", text)

def _dim(text: str) -> str:
    return _style("2", text)

def _red(text: str) -> str:
    return _style("31", text)

def _green(text: str) -> str:
    return _style("32", text)

def _yellow(text: str) -> str:
    return _style("33", text)


def _get_version() -> str:
    """Installed distribution version, or "dev" from a source checkout."""
    from importlib.metadata import version, PackageNotFoundError
    try:
        return version("shotwell-vfs")
    except PackageNotFoundError:
        return "dev"


def _catalog_note(db_path: Path, missing: str) -> str:
    return f"{db_path} {_green('(found)') if db_path.is_file() else missing}"


def _configure_logging(debug: bool, logfile: Optional[Path] = None) -> None:
    kwargs = {"filename": str(logfile)} if logfile else {}
    logging.basicConfig(
        level=logging.DEBUG if debug else logging.INFO,
        format=LOG_FORMAT,
        force=True,
        **kwargs,
    )


# --- init ---

def cmd_init(args: Namespace) -> None:
    """Check a mountpoint, create it, and register it in config.json."""
    mountpoint = os.path.realpath(args.mountpoint)
    cli_db = getattr(args, "db", None)
    db_path = load_config().db_path_for(mountpoint, cli_db)

    print(f"\n{_bold('Mountpoint:')} {mountpoint}")
    problem = validate_mountpoint(mountpoint) or ensure_mountpoint(mountpoint)
    if problem:
        print(f"\n{_red('Cannot use this mountpoint.')}\n{problem}")
        sys.exit(1)

    print(f"{_bold('Catalog:')}    {_catalog_note(db_path, _yellow('(not found yet)'))}")
    add_mount_to_config(mountpoint, MountConfig(path=mountpoint, db_path=cli_db or ""))

    print(f"\nRegistered in {get_config_path()}")
    print(f"Mount it with: {_bold(f'shotwell-vfs mount {mountpoint}')}\n")


# --- mount ---

def _preflight(mountpoint: str, config: VFSConfig, cli_db: Optional[str]) -> Optional[Path]:
    """Catalog path to serve at ``mountpoint``, or None after explaining why not."""
    status = mount_status(mountpoint)
    if status["running"]:
        print(f"Already mounted at {mountpoint} (pid {status['pid']})")
        return None

    problem = validate_mountpoint(mountpoint) or ensure_mountpoint(mountpoint)
    if problem:
        print(f"{mountpoint}: {problem}")
        return None

    db_path = config.db_path_for(mountpoint, cli_db)
    if not db_path.is_file():
        print(f"{mountpoint}: no Shotwell database at {db_path}")
        print("  Pass --db, or set db_path in config.json")
        return None
    return db_path


def _serve(db_path: Path, mountpoint: str, debug: bool) -> None:
    """Mount the catalog and handle requests until unmounted or interrupted."""
    # pyfuse3 needs libfuse; only mounting should require it
    import pyfuse3
    import trio
    from .catalog import Catalog
    from .filesystem import ShotwellFS

    catalog = Catalog(db_path).open()
    options = set(pyfuse3.default_options) | {f"fsname={FSNAME}", "ro"}
    if debug:
        options.add("debug")

    log.info(f"Serving {db_path} at {mountpoint}")
    pyfuse3.init(ShotwellFS(catalog), mountpoint, options)

    async def handle_requests():
        # One request at a time over the single catalog connection
        await pyfuse3.main(min_tasks=1, max_tasks=1)

    try:
        trio.run(handle_requests)
    except KeyboardInterrupt:
        log.info("Interrupted")
    finally:
        pyfuse3.close(unmount=True)
        catalog.close()
        log.info(f"Detached {mountpoint}")


def _start_mount(
    mountpoint: str,
    config: VFSConfig,
    cli_db: str = None,
    foreground: bool = False,
    debug: bool = False,
) -> bool:
    """Mount one catalog, in the foreground or as a daemon. True if it started."""
    db_path = _preflight(mountpoint, config, cli_db)
    if db_path is None:
        return False

    if foreground:
        _configure_logging(debug)
        write_pid(mountpoint, os.getpid())
        try:
            _serve(db_path, mountpoint, debug)
        except CatalogUnavailable as e:
            print(f"{mountpoint}: {e}")
            return False
        finally:
            clear_pid(mountpoint)
        return True

    def run_daemon(mp: str) -> None:
        log_dir = get_mount_data_dir(mp)
        log_dir.mkdir(parents=True, exist_ok=True)
        _configure_logging(debug, log_dir / "daemon.log")
        _serve(db_path, mp, debug)

    pid = fork_mount(mountpoint, run_daemon)
    print(f"  {mountpoint} {_green('mounted')} (pid {pid})")
    return True


def cmd_mount(args: Namespace) -> None:
    """Mount the given mountpoint, or every configured one."""
    config = load_config()
    cli_db = getattr(args, "db", None)
    debug = getattr(args, "debug", False)

    if getattr(args, "mountpoint", None):
        mountpoint = os.path.realpath(args.mountpoint)
        if mountpoint not in config.mounts:
            print(_dim(f"{mountpoint} is not registered; using top-level settings"))
        ok = _start_mount(
            mountpoint, config, cli_db=cli_db,
            foreground=getattr(args, "foreground", False), debug=debug,
        )
        if not ok:
            sys.exit(1)
        return

    if not config.mounts:
        print("Nothing registered. Start with: shotwell-vfs init ~/Photos-catalog")
        sys.exit(1)

    started = 0
    for mountpoint in config.mounts:
        if mount_status(mountpoint)["orphaned"]:
            print(f"  {mountpoint}: {_red('orphaned')}; run shotwell-vfs unmount {mountpoint}")
            continue
        if _start_mount(mountpoint, config, cli_db=cli_db, debug=debug):
            started += 1

    print(f"\n{started} of {len(config.mounts)} mount(s) started.")


# --- unmount ---

def _stop_mount(mountpoint: str) -> None:
    """Signal the daemon (if any), then detach the mountpoint."""
    status = mount_status(mountpoint)
    if status["running"] and status["pid"]:
        _, msg = kill_mount_daemon(mountpoint)
        print(f"  {mountpoint}: {msg}")

    ok, msg = fusermount_unmount(mountpoint)
    if ok:
        print(f"  {mountpoint} unmounted")
    elif status["running"] or status["orphaned"]:
        print(f"  {mountpoint}: {_red(msg)}")
    clear_pid(mountpoint)


def _forget(mountpoint: str) -> None:
    if remove_mount_from_config(mountpoint):
        print(f"  {mountpoint} removed from {get_config_path()}")
    else:
        print(_dim(f"  {mountpoint} was not registered"))


def cmd_unmount(args: Namespace) -> None:
    """Unmount the given mountpoint, or every configured one that is up."""
    if getattr(args, "mountpoint", None):
        mountpoint = os.path.realpath(args.mountpoint)
        _stop_mount(mountpoint)
        if getattr(args, "forget", False):
            _forget(mountpoint)
        return

    config = load_config()
    if not config.mounts:
        print("No mounts configured.")
        return

    active = []
    for mountpoint in config.mounts:
        status = mount_status(mountpoint)
        if status["running"] or status["orphaned"]:
            active.append(mountpoint)
    for mountpoint in active:
        _stop_mount(mountpoint)
    if not active:
        print("Nothing is mounted.")
    if getattr(args, "forget", False):
        for mountpoint in list(config.mounts):
            _forget(mountpoint)


# --- status / config ---

def _state_label(mountpoint: str) -> str:
    status = mount_status(mountpoint)
    if status["orphaned"]:
        return _red("orphaned") + _dim(f"  (shotwell-vfs unmount {mountpoint})")
    if status["running"]:
        pid = f"pid {status['pid']}" if status["pid"] else "foreground"
        return f"{_green('mounted')}  {pid}"
    return _dim("stopped")


def cmd_status(args: Namespace) -> None:
    """Show every configured mount, its catalog and whether FUSE is available."""
    config = load_config()
    print(f"\n{_bold('shotwell-vfs')} {_get_version()}\n")

    if not config.mounts:
        print(f"Mounts: {_dim('(none configured)')}")
        print(f"  Register one with: {_bold('shotwell-vfs init ~/Photos-catalog')}")
    for mountpoint in config.mounts:
        print(f"  {mountpoint:<30s} {_state_label(mountpoint)}")
        db_path = config.db_path_for(mountpoint)
        print(f"    catalog {_catalog_note(db_path, _red('(NOT FOUND)'))}")

    have_fusermount = any(shutil.which(cmd) for cmd in ("fusermount3", "fusermount"))
    print(f"\nfusermount: {_green('present') if have_fusermount else _red('NOT FOUND')}\n")


def cmd_config(args: Namespace) -> None:
    """Print the config file location and what it resolves to."""
    path = get_config_path()
    print(f"\n{_bold('file:')}    {path}{'' if path.exists() else _dim(' (not created yet)')}")
    print(f"{_bold('catalog:')} {load_config().db_path}")

    mounts = (read_config_file() or {}).get("mounts", {})
    if not mounts:
        print("mounts:  (none)\n")
        return
    print("mounts:")
    for mountpoint, settings in mounts.items():
        override = settings.get("db_path") or _dim("(top-level catalog)")
        print(f"  {mountpoint}\n    db_path: {override}")
    print()

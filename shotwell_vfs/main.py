#!/usr/bin/env python3
"""
Shotwell catalog FUSE driver

Mounts a Shotwell photo library as a read-only filesystem.

Usage:
    shotwell-vfs init ~/Photos-catalog
    shotwell-vfs mount ~/Photos-catalog --db ~/.local/share/shotwell/data/photo.db
    shotwell-vfs unmount ~/Photos-catalog
"""

import argparse
import sys
from typing import Optional

from . import cli


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="shotwell-vfs",
        description="Expose a Shotwell library as a filesystem hierarchy",
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {cli._get_version()}")
    sub = parser.add_subparsers(dest="command")

    p_init = sub.add_parser("init", help="Prepare a mountpoint and record it in config")
    p_init.add_argument("mountpoint", help="Directory to mount the filesystem")
    p_init.add_argument("--db", metavar="FILE", help="Custom path to database file")
    p_init.set_defaults(func=cli.cmd_init)

    p_mount = sub.add_parser("mount", help="Mount one or all configured filesystems")
    p_mount.add_argument("mountpoint", nargs="?", help="Directory to mount (default: all configured)")
    p_mount.add_argument("--db", metavar="FILE", help="Custom path to database file")
    p_mount.add_argument(
        "--foreground", "-f",
        action="store_true",
        help="Run in foreground (don't daemonize)",
    )
    p_mount.add_argument("--debug", action="store_true", help="Enable debug logging")
    p_mount.set_defaults(func=cli.cmd_mount)

    p_unmount = sub.add_parser("unmount", help="Unmount one or all filesystems")
    p_unmount.add_argument("mountpoint", nargs="?", help="Mountpoint (default: all configured)")
    p_unmount.add_argument(
        "--forget", action="store_true",
        help="Also remove the mountpoint from config.json",
    )
    p_unmount.set_defaults(func=cli.cmd_unmount)

    p_status = sub.add_parser("status", help="Show mount status")
    p_status.set_defaults(func=cli.cmd_status)

    p_config = sub.add_parser("config", help="Show configuration")
    p_config.set_defaults(func=cli.cmd_config)

    return parser


def main(argv: Optional[list[str]] = None) -> None:
    args = build_parser().parse_args(argv)
    func = getattr(args, "func", cli.cmd_status)
    func(args)


if __name__ == "__main__":
    sys.exit(main())

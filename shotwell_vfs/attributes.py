"""
Attribute builder — catalog values to pyfuse3.EntryAttributes.

Everything is read-only: mode 0o555, one link, owned by root. The
fixed containers carry a sentinel timestamp (1s past the epoch) since
they have no catalog row.
"""

import stat

import pyfuse3

# Kernel may cache entries and attributes this long (seconds)
TTL = 60
NOTIME_NS = 1_000_000_000
# Largest time the kernel's signed 64-bit nanosecond field can carry
MAX_TIME_NS = 2**63 - 1
READ_ONLY_PERM = 0o555


def _make_attr(inode: int, mode: int, size: int, timestamp_ns: int) -> pyfuse3.EntryAttributes:
    attr = pyfuse3.EntryAttributes()
    attr.st_ino = inode
    attr.st_mode = mode | READ_ONLY_PERM
    attr.st_nlink = 1
    attr.st_size = max(size or 0, 0)
    attr.st_atime_ns = timestamp_ns
    attr.st_mtime_ns = timestamp_ns
    attr.st_ctime_ns = timestamp_ns
    attr.st_uid = 0
    attr.st_gid = 0
    attr.st_rdev = 0
    attr.entry_timeout = TTL
    attr.attr_timeout = TTL
    return attr


def _seconds_to_ns(seconds) -> int:
    ns = max(int(seconds or 0), 0) * 1_000_000_000
    return min(ns, MAX_TIME_NS)


def container_attr(inode: int) -> pyfuse3.EntryAttributes:
    """Attributes for a directory with no catalog timestamp."""
    return _make_attr(inode, stat.S_IFDIR, 0, NOTIME_NS)


def dated_container_attr(inode: int, created_at: int) -> pyfuse3.EntryAttributes:
    """Attributes for a tag/event directory, stamped with its creation time."""
    return _make_attr(inode, stat.S_IFDIR, 0, _seconds_to_ns(created_at))


def file_attr(inode: int, size_bytes: int, timestamp: int) -> pyfuse3.EntryAttributes:
    """Attributes for a photo/video file."""
    return _make_attr(inode, stat.S_IFREG, size_bytes, _seconds_to_ns(timestamp))

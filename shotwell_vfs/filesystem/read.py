"""
ReadMixin — File open and read operations.

Photo inodes are backed by the original file on disk. Video inodes can
be looked up and opened, but reads fail: no byte source is wired up for
them.
"""

import logging

import pyfuse3

from ..errors import NotFound
from ..identity import NodeKind, decode_inode
from .base import fuse_errors

log = logging.getLogger(__name__)

FILE_KINDS = frozenset({NodeKind.PHOTO, NodeKind.VIDEO})


class ReadMixin:
    """File open and read operations."""

    def read_bytes(self, inode: int, offset: int, length: int) -> bytes:
        return self._media.read_bytes(inode, offset, length)

    async def open(self, inode: int, flags: int, ctx: pyfuse3.RequestContext) -> pyfuse3.FileInfo:
        """Open a file. The handle is the inode itself."""
        with fuse_errors(f"open {inode:#x}"):
            node = decode_inode(inode)
            if node.kind not in FILE_KINDS:
                raise NotFound(f"{node.kind.value} is not a file")
        return pyfuse3.FileInfo(fh=inode)

    async def read(self, fh: int, off: int, size: int) -> bytes:
        """Read up to size bytes at off."""
        with fuse_errors(f"read {fh:#x}"):
            return self.read_bytes(fh, off, size)

    async def release(self, fh: int) -> None:
        """Release a file handle. Nothing is held open between reads."""
        pass

"""
Media reader — byte ranges of the photo files the catalog points at.

Only photos are readable. The catalog is consulted on every read; the
file is opened, read once and closed again.
"""

import logging

from .catalog import Catalog
from .errors import InvalidArgument, NotFound, UnknownNamespace
from .identity import NodeKind, decode_inode

log = logging.getLogger(__name__)


class MediaReader:
    """Serves read() for photo inodes."""

    def __init__(self, catalog: Catalog):
        self.catalog = catalog

    def read_bytes(self, inode: int, offset: int, length: int) -> bytes:
        """Return up to ``length`` bytes of the photo at ``offset``.

        Short reads are normal; at or past end-of-file the result is b"".
        """
        try:
            node = decode_inode(inode)
        except UnknownNamespace:
            raise NotFound(f"read: inode {inode:#x} is not a photo")
        if node.kind != NodeKind.PHOTO or offset < 0 or length <= 0:
            log.debug(f"read: rejecting inode={inode:#x} offset={offset} length={length}")
            raise NotFound(f"read: inode {inode:#x} is not readable")

        row = self.catalog.fetch_one(NodeKind.PHOTO, node.ident)
        if row is None:
            log.debug(f"read: photo {node.ident} not in catalog")
            raise NotFound(f"photo {node.ident} not in catalog")

        log.debug(f"read: photo {node.ident} from {row.filename!r} offset={offset} length={length}")
        try:
            f = open(row.filename, "rb")
        except OSError as e:
            log.debug(f"read: cannot open {row.filename!r}: {e}")
            raise NotFound(f"cannot open media for photo {node.ident}") from e

        with f:
            try:
                f.seek(offset)
            except (OSError, OverflowError) as e:
                log.debug(f"read: seek to {offset} failed: {e}")
                raise InvalidArgument(f"seek failed: {e}") from e
            try:
                data = f.read(length)
            except OSError as e:
                log.debug(f"read: read failed: {e}")
                raise InvalidArgument(f"read failed: {e}") from e

        log.debug(f"read: replying with {len(data)} bytes")
        return data

"""
InodeMixin — Attribute resolution for encoded inodes.

Inodes are never allocated: they are computed from catalog ids (see
identity.py), so getattr is a decode plus at most one catalog lookup.
"""

import logging

import pyfuse3

from ..attributes import container_attr, dated_container_attr, file_attr
from ..errors import NotFound
from ..identity import Node, NodeKind, decode_inode
from .base import fuse_errors

log = logging.getLogger(__name__)

# Kinds getattr answers from the catalog; video and event inodes only
# get attributes through lookup.
GETATTR_KINDS = frozenset({NodeKind.TAG, NodeKind.PHOTO})


class InodeMixin:
    """Attribute resolution."""

    def _node_attr(self, node: Node) -> pyfuse3.EntryAttributes:
        """Build attributes for a node from a fresh catalog read."""
        if node.kind.is_container:
            return container_attr(node.inode)

        row = self._catalog.fetch_one(node.kind, node.ident)
        if row is None:
            raise NotFound(f"{node.kind.value} {node.ident} not in catalog")

        if node.kind in (NodeKind.TAG, NodeKind.EVENT):
            return dated_container_attr(node.inode, row.time_created)
        return file_attr(node.inode, row.filesize, row.timestamp)

    def get_attributes(self, inode: int) -> pyfuse3.EntryAttributes:
        """Attributes for the fixed roots, tags and photos."""
        node = decode_inode(inode)
        if not node.kind.is_container and node.kind not in GETATTR_KINDS:
            raise NotFound(f"getattr not supported for {node.kind.value} inodes")
        return self._node_attr(node)

    async def getattr(self, inode: int, ctx: pyfuse3.RequestContext = None) -> pyfuse3.EntryAttributes:
        """Get file/directory attributes."""
        with fuse_errors(f"getattr {inode:#x}"):
            return self.get_attributes(inode)

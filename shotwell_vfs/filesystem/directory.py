"""
DirectoryMixin — Name resolution and directory listing.

Handles lookup, opendir/releasedir and readdir. Which child names a
directory accepts depends on the directory's kind:

- /          photos, videos, tags, events (literal names)
- photos/    "(id) ..."  photos
- videos/    "(id) ..."  videos
- events/    "[id] ..."  events
- tags/      "[id] ..."  tags, "(id) ..." photos
- tags/[id]  "[id] ..."  tags, "(id) ..." photos
"""

import logging
from typing import Union

import pyfuse3

from ..attributes import container_attr
from ..errors import NotFound
from ..identity import BracketKind, Node, NodeKind, decode_inode, decode_name, encode
from ..models import DirEntry
from .base import fuse_errors

log = logging.getLogger(__name__)

ROOT_NAMES = {
    "/": NodeKind.ROOT,
    "photos": NodeKind.PHOTOS_ROOT,
    "videos": NodeKind.VIDEOS_ROOT,
    "tags": NodeKind.TAGS_ROOT,
    "events": NodeKind.EVENTS_ROOT,
}

# (parent kind, bracket) -> kind of the referenced child
CHILD_KINDS = {
    (NodeKind.PHOTOS_ROOT, BracketKind.LEAF): NodeKind.PHOTO,
    (NodeKind.VIDEOS_ROOT, BracketKind.LEAF): NodeKind.VIDEO,
    (NodeKind.EVENTS_ROOT, BracketKind.CONTAINER): NodeKind.EVENT,
    (NodeKind.TAGS_ROOT, BracketKind.CONTAINER): NodeKind.TAG,
    (NodeKind.TAGS_ROOT, BracketKind.LEAF): NodeKind.PHOTO,
    (NodeKind.TAG, BracketKind.CONTAINER): NodeKind.TAG,
    (NodeKind.TAG, BracketKind.LEAF): NodeKind.PHOTO,
}

DIRECTORY_KINDS = frozenset({
    NodeKind.ROOT, NodeKind.PHOTOS_ROOT, NodeKind.VIDEOS_ROOT,
    NodeKind.TAGS_ROOT, NodeKind.EVENTS_ROOT, NodeKind.TAG, NodeKind.EVENT,
})


class DirectoryMixin:
    """Name resolution and directory listing."""

    def resolve(self, parent_inode: int, name: Union[str, bytes]) -> pyfuse3.EntryAttributes:
        """Resolve a child name to its attributes. Every failure is NotFound."""
        parent = decode_inode(parent_inode)

        if parent.kind == NodeKind.ROOT:
            name_str = name.decode("utf-8", "replace") if isinstance(name, bytes) else name
            kind = ROOT_NAMES.get(name_str)
            if kind is None:
                raise NotFound(f"no root entry {name_str!r}")
            return container_attr(encode(kind))

        token = decode_name(name)
        if token is None:
            raise NotFound(f"{name!r} carries no id")
        bracket, ident = token

        kind = CHILD_KINDS.get((parent.kind, bracket))
        if kind is None:
            raise NotFound(f"{parent.kind.value} has no {bracket.value}-children")
        return self._node_attr(Node(kind, ident))

    def list_directory(self, inode: int, offset: int) -> list[DirEntry]:
        """One page of a directory listing, starting at ``offset``."""
        node = decode_inode(inode)

        if node.kind == NodeKind.ROOT:
            return self._directories.list_root(offset)
        if node.kind == NodeKind.PHOTOS_ROOT:
            return self._directories.list_photos(offset)
        if node.kind == NodeKind.VIDEOS_ROOT:
            return self._directories.list_videos(offset)
        if node.kind == NodeKind.TAGS_ROOT:
            return self._directories.list_tags(offset)
        if node.kind == NodeKind.EVENTS_ROOT:
            return self._directories.list_events(offset)
        if node.kind == NodeKind.TAG:
            return self._directories.list_tag_members(node.ident, offset)

        raise NotFound(f"{node.kind.value} directories cannot be listed")

    async def lookup(self, parent_inode: int, name: bytes, ctx: pyfuse3.RequestContext = None) -> pyfuse3.EntryAttributes:
        """Look up a directory entry by name."""
        log.debug(f"lookup: parent={parent_inode:#x}, name={name!r}")
        with fuse_errors(f"lookup {name!r}"):
            return self.resolve(parent_inode, name)

    async def opendir(self, inode: int, ctx: pyfuse3.RequestContext) -> int:
        """Open a directory, return file handle."""
        with fuse_errors(f"opendir {inode:#x}"):
            node = decode_inode(inode)
            if node.kind not in DIRECTORY_KINDS:
                raise NotFound(f"{node.kind.value} is not a directory")
        return inode  # Use inode as file handle

    async def releasedir(self, fh: int) -> None:
        """Release (close) a directory handle. Nothing to free; the handle is the inode."""
        pass

    async def readdir(self, fh: int, start_id: int, token: pyfuse3.ReaddirToken) -> None:
        """Read one page of directory contents starting at start_id."""
        log.debug(f"readdir: fh={fh:#x}, start_id={start_id}")

        with fuse_errors(f"readdir {fh:#x}"):
            entries = self.list_directory(fh, start_id)

        for entry in entries:
            if not pyfuse3.readdir_reply(token, entry.name.encode("utf-8"), entry.attr, entry.next_offset):
                break

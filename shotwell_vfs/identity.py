"""
Identity codec — catalog identities <-> inode numbers and filename tokens.

Inode layout:
- 1                     Root (pyfuse3.ROOT_INODE)
- 1 << 51               photos/   (and the Photo namespace flag)
- 1 << 52               videos/   (Video flag)
- 1 << 53               tags/     (Tag flag)
- 1 << 54               events/   (Event flag)
- id | flag             an individual photo, video, tag or event

Filename tokens:
- "[42] Summer Trip"    container reference (tags, events)
- "(17) sunset.jpg"     leaf reference (photos, videos)

Only the leading id is ever parsed back; the label is display text.
"""

import enum
from dataclasses import dataclass
from typing import Optional, Union

from .errors import UnknownNamespace

ROOT_INODE = 1
PHOTO_FLAG = 1 << 51
VIDEO_FLAG = 1 << 52
TAG_FLAG = 1 << 53
EVENT_FLAG = 1 << 54

# Catalog ids start at 1 and must stay below the lowest namespace flag;
# id 0 would collide with the namespace root inodes.
MAX_IDENTITY = PHOTO_FLAG - 1


class NodeKind(enum.Enum):
    ROOT = "root"
    PHOTOS_ROOT = "photos_root"
    VIDEOS_ROOT = "videos_root"
    TAGS_ROOT = "tags_root"
    EVENTS_ROOT = "events_root"
    PHOTO = "photo"
    VIDEO = "video"
    TAG = "tag"
    EVENT = "event"

    @property
    def is_container(self) -> bool:
        return self in CONTAINER_INODES


class BracketKind(enum.Enum):
    """Which bracket opened a filename token."""
    CONTAINER = "["
    LEAF = "("


CONTAINER_INODES = {
    NodeKind.ROOT: ROOT_INODE,
    NodeKind.PHOTOS_ROOT: PHOTO_FLAG,
    NodeKind.VIDEOS_ROOT: VIDEO_FLAG,
    NodeKind.TAGS_ROOT: TAG_FLAG,
    NodeKind.EVENTS_ROOT: EVENT_FLAG,
}

NAMESPACE_FLAGS = {
    NodeKind.PHOTO: PHOTO_FLAG,
    NodeKind.VIDEO: VIDEO_FLAG,
    NodeKind.TAG: TAG_FLAG,
    NodeKind.EVENT: EVENT_FLAG,
}

_CONTAINERS_BY_INODE = {inode: kind for kind, inode in CONTAINER_INODES.items()}
_KINDS_BY_FLAG = {flag: kind for kind, flag in NAMESPACE_FLAGS.items()}
_ALL_FLAGS = PHOTO_FLAG | VIDEO_FLAG | TAG_FLAG | EVENT_FLAG

_CLOSING = {b"[": b"]", b"(": b")"}


@dataclass(frozen=True)
class Node:
    """A decoded inode: kind plus catalog identity (None for containers)."""
    kind: NodeKind
    ident: Optional[int] = None

    @property
    def inode(self) -> int:
        return encode(self.kind, self.ident)


def encode(kind: NodeKind, ident: Optional[int] = None) -> int:
    """Pack a kind and catalog identity into an inode number."""
    if kind in CONTAINER_INODES:
        return CONTAINER_INODES[kind]
    if ident is None or ident < 1 or ident > MAX_IDENTITY:
        raise ValueError(f"identity {ident!r} out of range for {kind.value}")
    return ident | NAMESPACE_FLAGS[kind]


def decode_inode(inode: int) -> Node:
    """Unpack an inode number into a Node.

    Raises UnknownNamespace unless the inode is a fixed container or
    carries exactly one namespace flag.
    """
    kind = _CONTAINERS_BY_INODE.get(inode)
    if kind is not None:
        return Node(kind)

    flags = inode & _ALL_FLAGS
    kind = _KINDS_BY_FLAG.get(flags)
    if kind is None or inode >> 55:
        raise UnknownNamespace(f"inode {inode:#x} has no single namespace flag")
    return Node(kind, inode & ~flags)


def decode_name(name: Union[str, bytes]) -> Optional[tuple[BracketKind, int]]:
    """Parse the leading "[id]" / "(id)" token of a directory entry name.

    Returns None for names that carry no parseable token; that is the
    ordinary not-found path, not an error.
    """
    # Only the ASCII token matters; the label may be in any encoding
    if isinstance(name, str):
        name = name.encode("utf-8", "surrogateescape")
    opener = name[:1]
    if opener not in _CLOSING:
        return None

    end = name.find(_CLOSING[opener])
    if end < 0:
        return None
    digits = name[1:end]
    # bytes.isdigit() is ASCII-only; int() would also accept signs and underscores
    if not digits.isdigit():
        return None
    ident = int(digits)
    if ident < 1 or ident > MAX_IDENTITY:
        return None
    return BracketKind(opener.decode("ascii")), ident

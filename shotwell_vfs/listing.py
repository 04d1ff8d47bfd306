"""
Directory engine — paginated listings of the catalog collections.

Offsets are positions in a stable order: 0 is ".", 1 is "..", 2 + k is
row k of the collection. Each entry carries position + 1 as its next
offset, so the kernel can resume a listing anywhere it stopped. One
call never returns more than one catalog page; the listing is finished
when a call yields nothing.
"""

import logging
from datetime import datetime

from .attributes import container_attr, dated_container_attr, file_attr
from .catalog import Catalog
from .errors import InvalidOffset
from .identity import NodeKind, ROOT_INODE, encode
from .models import CollectionRow, DirEntry, MediaRow

log = logging.getLogger(__name__)

PAGE_SIZE = 100

# "." and ".." occupy positions 0 and 1
STRUCTURAL_ENTRIES = 2

ROOT_CHILDREN = (
    ("photos", NodeKind.PHOTOS_ROOT),
    ("videos", NodeKind.VIDEOS_ROOT),
    ("tags", NodeKind.TAGS_ROOT),
    ("events", NodeKind.EVENTS_ROOT),
)


def format_timestamp(timestamp: int) -> str:
    """Fallback label for untitled rows, in local time.

    Timestamps the platform cannot represent (millisecond values, for
    one) are shown as the raw number.
    """
    try:
        return datetime.fromtimestamp(timestamp or 0).strftime("%Y-%m-%d %H:%M")
    except (ValueError, OverflowError, OSError):
        log.debug(f"Timestamp {timestamp} out of range, labelling it verbatim")
        return str(timestamp)


def _safe_label(label: str) -> str:
    # Entry names must be a single path component
    return label.replace("/", "-").replace("\0", "-")


def collection_entry_name(row: CollectionRow) -> str:
    """Display name for a tag or event directory: "[id] label"."""
    label = row.name or format_timestamp(row.time_created)
    return f"[{row.id}] {_safe_label(label)}"


def media_entry_name(row: MediaRow) -> str:
    """Display name for a photo or video file: "(id) label.ext"."""
    label = row.title or format_timestamp(row.timestamp)
    name = f"({row.id}) {_safe_label(label)}"
    ext = _safe_label(row.extension)
    return f"{name}.{ext}" if ext else name


class DirectoryEngine:
    """Pure function of (directory, offset) to one page of entries."""

    def __init__(self, catalog: Catalog, page_size: int = PAGE_SIZE):
        self.catalog = catalog
        self.page_size = page_size

    def _begin(self, offset: int, inode: int, parent_inode: int) -> list[DirEntry]:
        """Validate the offset and seed "." / ".." on the first call."""
        if offset < 0:
            raise InvalidOffset(f"negative directory offset {offset}")
        if offset != 0:
            return []
        return [
            DirEntry(".", inode, 1, container_attr(inode)),
            DirEntry("..", parent_inode, 2, container_attr(parent_inode)),
        ]

    @staticmethod
    def _first_row(offset: int) -> int:
        return max(offset - STRUCTURAL_ENTRIES, 0)

    def list_root(self, offset: int) -> list[DirEntry]:
        """The root never paginates: everything at offset 0, nothing valid after."""
        if offset != 0:
            raise InvalidOffset(f"root listing does not resume (offset {offset})")
        entries = self._begin(0, ROOT_INODE, ROOT_INODE)
        for position, (name, kind) in enumerate(ROOT_CHILDREN, start=STRUCTURAL_ENTRIES):
            inode = encode(kind)
            entries.append(DirEntry(name, inode, position + 1, container_attr(inode)))
        return entries

    def _list_media(self, kind: NodeKind, offset: int) -> list[DirEntry]:
        parent_kind = NodeKind.PHOTOS_ROOT if kind == NodeKind.PHOTO else NodeKind.VIDEOS_ROOT
        entries = self._begin(offset, encode(parent_kind), ROOT_INODE)
        first = self._first_row(offset)
        rows = self.catalog.fetch_page(kind, first, self.page_size)
        for position, row in enumerate(rows, start=first + STRUCTURAL_ENTRIES):
            entries.append(self._media_entry(kind, row, position + 1))
        log.debug(f"list {kind.value}s: offset={offset}, {len(rows)} row(s)")
        return entries

    def _list_collection(self, kind: NodeKind, offset: int) -> list[DirEntry]:
        parent_kind = NodeKind.TAGS_ROOT if kind == NodeKind.TAG else NodeKind.EVENTS_ROOT
        entries = self._begin(offset, encode(parent_kind), ROOT_INODE)
        first = self._first_row(offset)
        rows = self.catalog.fetch_page(kind, first, self.page_size)
        for position, row in enumerate(rows, start=first + STRUCTURAL_ENTRIES):
            inode = encode(kind, row.id)
            entries.append(DirEntry(
                collection_entry_name(row), inode, position + 1,
                dated_container_attr(inode, row.time_created),
            ))
        log.debug(f"list {kind.value}s: offset={offset}, {len(rows)} row(s)")
        return entries

    @staticmethod
    def _media_entry(kind: NodeKind, row: MediaRow, next_offset: int) -> DirEntry:
        inode = encode(kind, row.id)
        return DirEntry(
            media_entry_name(row), inode, next_offset,
            file_attr(inode, row.filesize, row.timestamp),
        )

    def list_photos(self, offset: int) -> list[DirEntry]:
        return self._list_media(NodeKind.PHOTO, offset)

    def list_videos(self, offset: int) -> list[DirEntry]:
        return self._list_media(NodeKind.VIDEO, offset)

    def list_events(self, offset: int) -> list[DirEntry]:
        return self._list_collection(NodeKind.EVENT, offset)

    def list_tags(self, offset: int) -> list[DirEntry]:
        """Top-level tags only; "/parent/child" tags are not listed."""
        return self._list_collection(NodeKind.TAG, offset)

    def list_tag_members(self, tag_id: int, offset: int) -> list[DirEntry]:
        """Photos attached to one tag.

        Child tags are not listed here; nested tag browsing is not
        supported.
        """
        entries = self._begin(offset, encode(NodeKind.TAG, tag_id), encode(NodeKind.TAGS_ROOT))
        first = self._first_row(offset)
        members = self.catalog.fetch_tag_members(tag_id, first, self.page_size)
        for member_position, row in members:
            next_offset = member_position + STRUCTURAL_ENTRIES + 1
            entries.append(self._media_entry(NodeKind.PHOTO, row, next_offset))
        log.debug(f"list tag {tag_id}: offset={offset}, {len(members)} member(s)")
        return entries

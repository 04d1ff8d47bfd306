"""Data models for catalog rows and directory entries."""

from dataclasses import dataclass
from typing import Any, Optional


@dataclass
class MediaRow:
    """A PhotoTable or VideoTable row.

    filename stays bytes: it is only ever handed to open() and used
    for the extension shown in listings.
    """
    id: int
    filename: bytes
    timestamp: int
    title: str = ""
    filesize: int = 0

    @property
    def extension(self) -> str:
        """Extension of the original filename, without the dot."""
        dot = self.filename.rfind(b".")
        if dot < 0:
            return ""
        try:
            return self.filename[dot + 1:].decode("utf-8")
        except UnicodeDecodeError:
            return ""


@dataclass
class CollectionRow:
    """A TagTable or EventTable row."""
    id: int
    name: str
    time_created: int


@dataclass
class DirEntry:
    """One readdir entry.

    next_offset is the position the transport replays to continue
    the listing right after this entry.
    """
    name: str
    inode: int
    next_offset: int
    attr: Optional[Any] = None  # pyfuse3.EntryAttributes

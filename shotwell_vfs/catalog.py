"""
Catalog query gateway — read-only access to a Shotwell photo database.

One connection is opened for the lifetime of the mount and every query
goes through it. Text columns are fetched as BLOBs and decoded here so
a single badly-encoded title cannot break a whole listing.
"""

import itertools
import logging
from pathlib import Path
from typing import Iterator, Optional, Union
from urllib.parse import quote

from sqlalchemy import (
    Column, Integer, LargeBinary, MetaData, Table, Text,
    cast, create_engine, func, inspect, select,
)
from sqlalchemy.engine import URL, Connection, Engine
from sqlalchemy.exc import SQLAlchemyError

from .errors import CatalogUnavailable, NotFound
from .identity import NodeKind
from .models import CollectionRow, MediaRow

log = logging.getLogger(__name__)

metadata = MetaData()

# Only the columns the filesystem reads; Shotwell tables carry many more.
photo_table = Table(
    "PhotoTable", metadata,
    Column("id", Integer, primary_key=True),
    Column("filename", Text),
    Column("timestamp", Integer),
    Column("title", Text),
    Column("filesize", Integer),
)

video_table = Table(
    "VideoTable", metadata,
    Column("id", Integer, primary_key=True),
    Column("filename", Text),
    Column("timestamp", Integer),
    Column("title", Text),
    Column("filesize", Integer),
)

tag_table = Table(
    "TagTable", metadata,
    Column("id", Integer, primary_key=True),
    Column("name", Text),
    Column("photo_id_list", Text),  # comma-delimited photo ids
    Column("time_created", Integer),
)

event_table = Table(
    "EventTable", metadata,
    Column("id", Integer, primary_key=True),
    Column("name", Text),
    Column("time_created", Integer),
)

_MEDIA_TABLES = {NodeKind.PHOTO: photo_table, NodeKind.VIDEO: video_table}

Row = Union[MediaRow, CollectionRow]


def _text(value) -> str:
    """Decode a BLOB-cast text column; undecodable or NULL becomes ''."""
    if value is None:
        return ""
    if isinstance(value, str):
        return value
    try:
        return bytes(value).decode("utf-8")
    except UnicodeDecodeError:
        return ""


def _member_ids(photo_id_list: str) -> Iterator[int]:
    """Lazily parse a comma-delimited id list, skipping malformed tokens."""
    for token in photo_id_list.split(","):
        token = token.strip()
        if token.isascii() and token.isdigit():
            yield int(token)


def _tag_name():
    # Shotwell stores hierarchical tags as "/parent/child"
    return func.ltrim(tag_table.c.name, "/")


class Catalog:
    """Read-only gateway over the catalog database."""

    def __init__(self, db_path: Union[str, Path]):
        self.db_path = Path(db_path).expanduser()
        self._engine: Optional[Engine] = None
        self._conn: Optional[Connection] = None

    # ── Lifecycle ─────────────────────────────────────────────────────

    def open(self) -> "Catalog":
        """Open the single read-only connection."""
        if self._conn is not None:
            return self
        if not self.db_path.is_file():
            raise CatalogUnavailable(f"No catalog database at {self.db_path}")

        url = URL.create(
            "sqlite",
            database=f"file:{quote(str(self.db_path.resolve()))}",
            query={"mode": "ro", "uri": "true"},
        )
        try:
            self._engine = create_engine(url)
            self._conn = self._engine.connect()
            if not inspect(self._conn).has_table(photo_table.name):
                raise CatalogUnavailable(f"{self.db_path} is not a Shotwell database (no PhotoTable)")
        except SQLAlchemyError as e:
            self.close()
            raise CatalogUnavailable(f"Cannot open {self.db_path}: {e}") from e
        except CatalogUnavailable:
            self.close()
            raise

        log.info(f"Opened catalog {self.db_path} (read-only)")
        return self

    def close(self) -> None:
        if self._conn is not None:
            self._conn.close()
            self._conn = None
        if self._engine is not None:
            self._engine.dispose()
            self._engine = None

    def __enter__(self) -> "Catalog":
        return self.open()

    def __exit__(self, *exc) -> None:
        self.close()

    def _execute(self, stmt):
        if self._conn is None:
            raise NotFound("catalog is not open")
        try:
            return self._conn.execute(stmt)
        except SQLAlchemyError as e:
            log.warning(f"Catalog query failed: {e}")
            raise NotFound("catalog query failed") from e

    # ── Queries ──────────────────────────────────────────────────────

    def _media_select(self, table: Table):
        return select(
            table.c.id,
            cast(table.c.filename, LargeBinary).label("filename"),
            table.c.timestamp,
            cast(table.c.title, LargeBinary).label("title"),
            table.c.filesize,
        )

    def _collection_select(self, kind: NodeKind):
        if kind == NodeKind.TAG:
            return select(
                tag_table.c.id,
                cast(_tag_name(), LargeBinary).label("name"),
                tag_table.c.time_created,
            )
        return select(
            event_table.c.id,
            cast(event_table.c.name, LargeBinary).label("name"),
            event_table.c.time_created,
        )

    @staticmethod
    def _media_row(row) -> MediaRow:
        return MediaRow(
            id=row.id,
            filename=bytes(row.filename or b""),
            timestamp=row.timestamp or 0,
            title=_text(row.title),
            filesize=row.filesize or 0,
        )

    @staticmethod
    def _collection_row(row) -> CollectionRow:
        return CollectionRow(id=row.id, name=_text(row.name), time_created=row.time_created or 0)

    def fetch_one(self, kind: NodeKind, ident: int) -> Optional[Row]:
        """Fetch a single photo, video, tag or event by id."""
        if kind in _MEDIA_TABLES:
            table = _MEDIA_TABLES[kind]
            row = self._execute(self._media_select(table).where(table.c.id == ident)).first()
            return self._media_row(row) if row is not None else None

        if kind in (NodeKind.TAG, NodeKind.EVENT):
            table = tag_table if kind == NodeKind.TAG else event_table
            row = self._execute(self._collection_select(kind).where(table.c.id == ident)).first()
            return self._collection_row(row) if row is not None else None

        raise ValueError(f"{kind.value} has no catalog rows")

    def fetch_page(self, kind: NodeKind, offset: int, limit: int) -> list[Row]:
        """Fetch one page of a collection in its stable order.

        Photos and videos: by timestamp, then id. Events: by creation
        time, then id. Tags: by name with the leading "/" stripped; tags
        with a nested (or empty) name are left out.
        """
        if kind in _MEDIA_TABLES:
            table = _MEDIA_TABLES[kind]
            stmt = self._media_select(table).order_by(table.c.timestamp, table.c.id)
            convert = self._media_row
        elif kind == NodeKind.EVENT:
            stmt = self._collection_select(kind).order_by(event_table.c.time_created, event_table.c.id)
            convert = self._collection_row
        elif kind == NodeKind.TAG:
            tname = _tag_name()
            stmt = (
                self._collection_select(kind)
                .where(func.instr(tname, "/") == 0)
                .where(tname != "")
                .order_by(tname, tag_table.c.id)
            )
            convert = self._collection_row
        else:
            raise ValueError(f"{kind.value} is not a paged collection")

        rows = self._execute(stmt.offset(offset).limit(limit)).all()
        return [convert(row) for row in rows]

    def iter_tag_member_ids(self, tag_id: int) -> Iterator[int]:
        """Photo ids listed on a tag, in stored order. Empty for unknown tags."""
        stmt = select(cast(tag_table.c.photo_id_list, LargeBinary)).where(tag_table.c.id == tag_id)
        row = self._execute(stmt).first()
        if row is None:
            return iter(())
        return _member_ids(_text(row[0]))

    def fetch_tag_members(self, tag_id: int, offset: int, limit: int) -> list[tuple[int, MediaRow]]:
        """Fetch photos attached to a tag, as (member position, row) pairs.

        Members without a PhotoTable row are dropped but still use up
        their position, so positions stay stable across pages.
        """
        members = itertools.islice(enumerate(self.iter_tag_member_ids(tag_id)), offset, offset + limit)
        result = []
        for position, photo_id in members:
            row = self.fetch_one(NodeKind.PHOTO, photo_id)
            if row is None:
                log.debug(f"tag {tag_id}: member photo {photo_id} has no row, skipping")
                continue
            result.append((position, row))
        return result

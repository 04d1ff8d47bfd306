"""Shared fixtures: a small Shotwell catalog on disk and a filesystem over it."""

import pytest
from sqlalchemy import create_engine, insert

from shotwell_vfs.catalog import Catalog, event_table, metadata, photo_table, tag_table, video_table

from tests.helpers import PHOTO_BYTES, T_BEACH, T_SUNSET, T_UNTITLED


def _writable_engine(db_path):
    return create_engine(f"sqlite:///{db_path}")


@pytest.fixture
def media_dir(tmp_path):
    media = tmp_path / "media"
    media.mkdir()
    (media / "sunset.jpg").write_bytes(PHOTO_BYTES)
    (media / "IMG_0002.JPG").write_bytes(b"x" * 20)
    (media / "beach.png").write_bytes(b"y" * 30)
    return media


@pytest.fixture
def catalog_path(tmp_path, media_dir):
    """A Shotwell-shaped photo.db with three photos, one video, four tags and two events."""
    db_path = tmp_path / "photo.db"
    engine = _writable_engine(db_path)
    metadata.create_all(engine)
    with engine.begin() as conn:
        conn.execute(insert(photo_table), [
            {"id": 1, "filename": str(media_dir / "sunset.jpg"), "timestamp": T_SUNSET,
             "title": "Sunset", "filesize": 10},
            {"id": 2, "filename": str(media_dir / "IMG_0002.JPG"), "timestamp": T_UNTITLED,
             "title": "", "filesize": 20},
            {"id": 3, "filename": str(media_dir / "beach.png"), "timestamp": T_BEACH,
             "title": "Beach/Day", "filesize": 30},
        ])
        conn.execute(insert(video_table), [
            {"id": 1, "filename": str(media_dir / "clip.mp4"), "timestamp": 1_500_000_050,
             "title": "Clip", "filesize": 4096},
        ])
        conn.execute(insert(tag_table), [
            {"id": 1, "name": "/Family", "photo_id_list": "3,abc,1", "time_created": 1_400_000_000},
            {"id": 2, "name": "/Family/Kids", "photo_id_list": "2", "time_created": 1_400_000_100},
            {"id": 3, "name": "Animals", "photo_id_list": "", "time_created": 1_400_000_200},
            {"id": 4, "name": "Trips", "photo_id_list": "999,2", "time_created": 1_400_000_300},
        ])
        conn.execute(insert(event_table), [
            {"id": 7, "name": "Summer Trip", "time_created": 1_450_000_000},
            {"id": 8, "name": "", "time_created": 1_440_000_000},
        ])
    engine.dispose()
    return db_path


@pytest.fixture
def add_rows(catalog_path):
    """Insert extra rows into the catalog through a separate writable connection."""
    def _add(table, rows):
        engine = _writable_engine(catalog_path)
        with engine.begin() as conn:
            conn.execute(insert(table), rows)
        engine.dispose()
    return _add


@pytest.fixture
def catalog(catalog_path):
    with Catalog(catalog_path) as cat:
        yield cat


@pytest.fixture
def fs(catalog):
    from shotwell_vfs.filesystem import ShotwellFS
    return ShotwellFS(catalog)

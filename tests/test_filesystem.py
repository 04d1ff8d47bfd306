"""Tests for the FUSE operation handlers over a real catalog."""

import errno
import stat

import pytest
from unittest.mock import MagicMock, patch

import pyfuse3

from shotwell_vfs.catalog import photo_table
from shotwell_vfs.identity import (
    EVENT_FLAG, PHOTO_FLAG, ROOT_INODE, TAG_FLAG, VIDEO_FLAG,
)

from tests.helpers import PHOTO_BYTES


def _mock_ctx():
    """Create a mock pyfuse3.RequestContext."""
    ctx = MagicMock(spec=pyfuse3.RequestContext)
    ctx.uid = 1000
    ctx.gid = 1000
    ctx.pid = 12345
    return ctx


async def _readdir(fs, inode, start_id=0, accept=None):
    """Run readdir and collect (name, inode, next_id) replies."""
    replies = []

    def reply(token, name, attr, next_id):
        # Refusing an entry means it was not added to the buffer
        if accept is not None and len(replies) >= accept:
            return False
        replies.append((name, attr.st_ino, next_id))
        return True

    with patch("pyfuse3.readdir_reply", side_effect=reply):
        await fs.readdir(inode, start_id, MagicMock())
    return replies


class TestGetattr:
    """Tests for getattr on encoded inodes."""

    @pytest.mark.anyio
    async def test_root_and_namespace_roots(self, fs):
        for inode in (ROOT_INODE, PHOTO_FLAG, VIDEO_FLAG, TAG_FLAG, EVENT_FLAG):
            attr = await fs.getattr(inode, _mock_ctx())
            assert attr.st_ino == inode
            assert stat.S_ISDIR(attr.st_mode)

    @pytest.mark.anyio
    async def test_photo(self, fs):
        attr = await fs.getattr(PHOTO_FLAG | 1, _mock_ctx())
        assert stat.S_ISREG(attr.st_mode)
        assert attr.st_size == 10

    @pytest.mark.anyio
    async def test_tag(self, fs):
        attr = await fs.getattr(TAG_FLAG | 1, _mock_ctx())
        assert stat.S_ISDIR(attr.st_mode)
        assert attr.st_mtime_ns == 1_400_000_000 * 1_000_000_000

    @pytest.mark.anyio
    @pytest.mark.parametrize("inode", [
        VIDEO_FLAG | 1,      # exists, but only reachable through lookup
        EVENT_FLAG | 7,
        PHOTO_FLAG | 404,
    ])
    async def test_unsupported_or_missing(self, fs, inode):
        with pytest.raises(pyfuse3.FUSEError) as exc_info:
            await fs.getattr(inode, _mock_ctx())
        assert exc_info.value.errno == errno.ENOENT

    @pytest.mark.anyio
    async def test_garbage_inode(self, fs):
        with pytest.raises(pyfuse3.FUSEError) as exc_info:
            await fs.getattr(PHOTO_FLAG | TAG_FLAG | 1, _mock_ctx())
        assert exc_info.value.errno == errno.ENOENT


class TestLookup:
    """Tests for name resolution."""

    @pytest.mark.anyio
    async def test_root_children(self, fs):
        for name, inode in [(b"photos", PHOTO_FLAG), (b"videos", VIDEO_FLAG),
                            (b"tags", TAG_FLAG), (b"events", EVENT_FLAG),
                            (b"/", ROOT_INODE)]:
            attr = await fs.lookup(ROOT_INODE, name, _mock_ctx())
            assert attr.st_ino == inode

    @pytest.mark.anyio
    async def test_unknown_root_child(self, fs):
        with pytest.raises(pyfuse3.FUSEError) as exc_info:
            await fs.lookup(ROOT_INODE, b"albums", _mock_ctx())
        assert exc_info.value.errno == errno.ENOENT

    @pytest.mark.anyio
    async def test_photo_by_id_any_label(self, fs):
        attr = await fs.lookup(PHOTO_FLAG, b"(1) whatever you like.gif", _mock_ctx())
        assert attr.st_ino == PHOTO_FLAG | 1
        assert attr.st_size == 10

    @pytest.mark.anyio
    async def test_video_by_id(self, fs):
        attr = await fs.lookup(VIDEO_FLAG, b"(1) Clip.mp4", _mock_ctx())
        assert attr.st_ino == VIDEO_FLAG | 1
        assert attr.st_size == 4096

    @pytest.mark.anyio
    async def test_event_by_id(self, fs):
        attr = await fs.lookup(EVENT_FLAG, b"[7] Summer Trip", _mock_ctx())
        assert attr.st_ino == EVENT_FLAG | 7
        assert stat.S_ISDIR(attr.st_mode)

    @pytest.mark.anyio
    async def test_tags_root_accepts_tags_and_photos(self, fs):
        tag = await fs.lookup(TAG_FLAG, b"[1] Family", _mock_ctx())
        photo = await fs.lookup(TAG_FLAG, b"(2) x", _mock_ctx())
        assert tag.st_ino == TAG_FLAG | 1
        assert photo.st_ino == PHOTO_FLAG | 2

    @pytest.mark.anyio
    async def test_tag_directory_children(self, fs):
        photo = await fs.lookup(TAG_FLAG | 1, b"(3) Beach-Day.png", _mock_ctx())
        nested = await fs.lookup(TAG_FLAG | 1, b"[2] Kids", _mock_ctx())
        assert photo.st_ino == PHOTO_FLAG | 3
        assert nested.st_ino == TAG_FLAG | 2

    @pytest.mark.anyio
    async def test_non_utf8_label_still_resolves(self, fs):
        attr = await fs.lookup(PHOTO_FLAG, b"(1) \xff.jpg", _mock_ctx())
        assert attr.st_ino == PHOTO_FLAG | 1

    @pytest.mark.anyio
    @pytest.mark.parametrize("parent, name", [
        (PHOTO_FLAG, b"[1] wrong bracket"),
        (PHOTO_FLAG, b"(404) missing.jpg"),
        (PHOTO_FLAG, b"Sunset.jpg"),
        (VIDEO_FLAG, b"(2) no such video"),
        (EVENT_FLAG, b"(7) leaf in events"),
        (EVENT_FLAG | 7, b"(1) Sunset.jpg"),
        (PHOTO_FLAG | 1, b"(1) inside a file"),
        (TAG_FLAG, b"[0] zero"),
    ])
    async def test_not_found(self, fs, parent, name):
        with pytest.raises(pyfuse3.FUSEError) as exc_info:
            await fs.lookup(parent, name, _mock_ctx())
        assert exc_info.value.errno == errno.ENOENT

    @pytest.mark.anyio
    async def test_bad_parent_inode(self, fs):
        with pytest.raises(pyfuse3.FUSEError) as exc_info:
            await fs.lookup(12345, b"photos", _mock_ctx())
        assert exc_info.value.errno == errno.ENOENT


class TestReaddir:
    """Tests for readdir through the kernel reply callback."""

    @pytest.mark.anyio
    async def test_root(self, fs):
        replies = await _readdir(fs, ROOT_INODE)
        assert replies == [
            (b".", ROOT_INODE, 1),
            (b"..", ROOT_INODE, 2),
            (b"photos", PHOTO_FLAG, 3),
            (b"videos", VIDEO_FLAG, 4),
            (b"tags", TAG_FLAG, 5),
            (b"events", EVENT_FLAG, 6),
        ]

    @pytest.mark.anyio
    async def test_root_resume_fails(self, fs):
        with pytest.raises(pyfuse3.FUSEError) as exc_info:
            await _readdir(fs, ROOT_INODE, start_id=6)
        assert exc_info.value.errno == errno.ENOENT

    @pytest.mark.anyio
    async def test_photos_resume_where_buffer_filled(self, fs):
        first = await _readdir(fs, PHOTO_FLAG, accept=3)
        assert len(first) == 3
        rest = await _readdir(fs, PHOTO_FLAG, start_id=first[-1][2])
        assert [r[1] for r in first + rest][2:] == [PHOTO_FLAG | 1, PHOTO_FLAG | 2, PHOTO_FLAG | 3]

    @pytest.mark.anyio
    async def test_tag_directory(self, fs):
        replies = await _readdir(fs, TAG_FLAG | 1)
        assert [r[0] for r in replies] == [b".", b"..", b"(3) Beach-Day.png", b"(1) Sunset.jpg"]

    @pytest.mark.anyio
    async def test_utf8_names(self, fs, add_rows):
        add_rows(photo_table, [
            {"id": 40, "filename": "/x/40.jpg", "timestamp": 1_700_000_000,
             "title": "Café", "filesize": 1},
        ])
        replies = await _readdir(fs, PHOTO_FLAG, start_id=2)
        assert replies[-1][0] == "(40) Café.jpg".encode("utf-8")

    @pytest.mark.anyio
    async def test_event_directory_not_listable(self, fs):
        with pytest.raises(pyfuse3.FUSEError) as exc_info:
            await _readdir(fs, EVENT_FLAG | 7)
        assert exc_info.value.errno == errno.ENOENT


class TestOpenRead:
    """Tests for opendir, open and read."""

    @pytest.mark.anyio
    async def test_opendir_uses_inode_as_handle(self, fs):
        assert await fs.opendir(PHOTO_FLAG, _mock_ctx()) == PHOTO_FLAG
        assert await fs.opendir(TAG_FLAG | 1, _mock_ctx()) == TAG_FLAG | 1

    @pytest.mark.anyio
    async def test_opendir_on_file_fails(self, fs):
        with pytest.raises(pyfuse3.FUSEError) as exc_info:
            await fs.opendir(PHOTO_FLAG | 1, _mock_ctx())
        assert exc_info.value.errno == errno.ENOENT

    @pytest.mark.anyio
    async def test_open_and_read_photo(self, fs):
        info = await fs.open(PHOTO_FLAG | 1, 0, _mock_ctx())
        assert info.fh == PHOTO_FLAG | 1
        assert await fs.read(info.fh, 0, 100) == PHOTO_BYTES
        assert await fs.read(info.fh, 20, 10) == b""
        await fs.release(info.fh)

    @pytest.mark.anyio
    async def test_open_directory_fails(self, fs):
        with pytest.raises(pyfuse3.FUSEError) as exc_info:
            await fs.open(TAG_FLAG | 1, 0, _mock_ctx())
        assert exc_info.value.errno == errno.ENOENT

    @pytest.mark.anyio
    async def test_read_video_fails(self, fs):
        info = await fs.open(VIDEO_FLAG | 1, 0, _mock_ctx())
        with pytest.raises(pyfuse3.FUSEError) as exc_info:
            await fs.read(info.fh, 0, 10)
        assert exc_info.value.errno == errno.ENOENT

    @pytest.mark.anyio
    async def test_read_seek_failure_is_einval(self, fs):
        fake = MagicMock()
        fake.seek.side_effect = OSError(errno.EINVAL, "Invalid argument")
        with patch("shotwell_vfs.media.open", create=True, return_value=fake):
            with pytest.raises(pyfuse3.FUSEError) as exc_info:
                await fs.read(PHOTO_FLAG | 1, 5, 10)
        assert exc_info.value.errno == errno.EINVAL


class TestLifecycle:

    @pytest.mark.anyio
    async def test_statfs(self, fs):
        s = await fs.statfs(_mock_ctx())
        assert s.f_namemax == 255
        assert s.f_bfree == 0

    @pytest.mark.anyio
    async def test_destroy_closes_catalog(self, fs, catalog):
        await fs.destroy()
        assert catalog._conn is None

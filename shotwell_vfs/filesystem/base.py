"""
BaseMixin — Lifecycle and core FUSE plumbing.

Owns the catalog connection and the helpers every handler shares:
the directory engine, the media reader, statfs and destroy.
"""

import logging
from contextlib import contextmanager

import pyfuse3

from ..catalog import Catalog
from ..errors import VFSError
from ..listing import DirectoryEngine
from ..media import MediaReader

log = logging.getLogger(__name__)


@contextmanager
def fuse_errors(operation: str):
    """Translate typed engine failures into the FUSE errno reply."""
    try:
        yield
    except VFSError as e:
        log.debug(f"{operation}: {e} (errno {e.errno})")
        raise pyfuse3.FUSEError(e.errno) from e


class BaseMixin(pyfuse3.Operations):
    """Lifecycle and core FUSE plumbing."""

    def __init__(self, catalog: Catalog):
        super().__init__()
        # Opened once by the caller, closed in destroy()
        self._catalog = catalog
        self._directories = DirectoryEngine(catalog)
        self._media = MediaReader(catalog)

    async def statfs(self, ctx: pyfuse3.RequestContext) -> pyfuse3.StatvfsData:
        """Return filesystem stats. Required for file managers like Dolphin.

        Read-only mount: no free blocks, no free inodes.
        """
        s = pyfuse3.StatvfsData()
        s.f_bsize = 4096
        s.f_frsize = 4096
        s.f_blocks = 0
        s.f_bfree = 0
        s.f_bavail = 0
        s.f_files = 0
        s.f_ffree = 0
        s.f_favail = 0
        s.f_namemax = 255
        return s

    async def destroy(self) -> None:
        """Release the catalog connection on unmount."""
        log.info("Destroying filesystem, closing catalog")
        self._catalog.close()

"""Typed failures raised by the mapping engine.

Every failure carries the errno the FUSE layer replies with, so the
handlers in ``filesystem/`` translate them in one place.
"""

import errno


class VFSError(Exception):
    """Base class for request-scoped failures."""

    errno = errno.EIO

    def __init__(self, message: str = ""):
        super().__init__(message or self.__class__.__name__)


class NotFound(VFSError):
    """Name, inode or offset cannot be resolved."""

    errno = errno.ENOENT


class InvalidOffset(NotFound):
    """Directory offset outside the meaningful range."""


class UnknownNamespace(NotFound):
    """Inode carries no (or more than one) namespace flag."""


class InvalidArgument(VFSError):
    """Read parameters the underlying file rejects (seek/read failure)."""

    errno = errno.EINVAL


class CatalogUnavailable(Exception):
    """The catalog database could not be opened.

    Raised at startup only; never turned into a FUSE reply.
    """

"""
Shotwell catalog FUSE filesystem — mixin composition.

Hierarchy:
- /                              - Mount root
- /photos/                       - Every photo, by capture time
- /photos/(id) title.ext         - Photo file (bytes from the original)
- /videos/                       - Every video, by capture time
- /videos/(id) title.ext         - Video entry (attributes only)
- /tags/                         - Top-level tags, by name
- /tags/[id] name/               - Tag directory
- /tags/[id] name/(id) title.ext - Photo carrying the tag
- /events/                       - Events, by creation time
- /events/[id] name/             - Event directory

Untitled entries are named after their timestamp ("2019-07-04 18:30").
"""

from .base import BaseMixin, fuse_errors
from .directory import DirectoryMixin
from .inode import InodeMixin
from .read import ReadMixin


class ShotwellFS(
    ReadMixin,         # open, read, release, read_bytes
    DirectoryMixin,    # lookup, opendir, readdir, resolve, list_directory
    InodeMixin,        # getattr, get_attributes, _node_attr
    BaseMixin,         # __init__, statfs, destroy (MUST be last)
):
    """Shotwell catalog FUSE filesystem.

    Composed from domain-specific mixins. BaseMixin must be last in MRO
    so its __init__ runs first and sets up all shared state.
    """
    pass


__all__ = [
    "ShotwellFS",
    "fuse_errors",
]

# Copyright 2025 Accelerated Cloud Storage Corporation. All Rights Reserved.
"""
File attributes derived from object metadata and ACLs.

Two attribute kinds exist: ``basic`` (size, timestamps, file kind) and
``posix`` (adds owner and permission bits derived from the owner's ACL
grants). Timestamps are floats in seconds since the epoch, like
``os.stat_result``.

The store does not let a client set an object's modification time, so the
"real" timestamps are stashed in user metadata under the ``bucketpath-*``
keys below, as milliseconds since the epoch.
"""

import stat
from dataclasses import dataclass, field
from enum import Enum
from typing import ClassVar, Dict, FrozenSet, Iterable, List, Optional

from ..client.types import Grant, ObjectMetadata
from .exceptions import UnsupportedOperationError

LAST_MODIFIED_KEY = "bucketpath-last-modified"
LAST_ACCESS_KEY = "bucketpath-last-access"
CREATE_TIME_KEY = "bucketpath-create-time"


class AccessMode(Enum):
    READ = "read"
    WRITE = "write"
    EXECUTE = "execute"


class PosixFilePermission(Enum):
    OWNER_READ = stat.S_IRUSR
    OWNER_WRITE = stat.S_IWUSR
    OWNER_EXECUTE = stat.S_IXUSR
    GROUP_READ = stat.S_IRGRP
    GROUP_WRITE = stat.S_IWGRP
    GROUP_EXECUTE = stat.S_IXGRP
    OTHERS_READ = stat.S_IROTH
    OTHERS_WRITE = stat.S_IWOTH
    OTHERS_EXECUTE = stat.S_IXOTH


OWNER_ALL = frozenset({
    PosixFilePermission.OWNER_READ,
    PosixFilePermission.OWNER_WRITE,
    PosixFilePermission.OWNER_EXECUTE,
})

# ACL permission -> granted posix bits
_GRANT_PERMISSIONS = {
    "FULL_CONTROL": OWNER_ALL,
    "READ": frozenset({PosixFilePermission.OWNER_READ}),
    "WRITE": frozenset({PosixFilePermission.OWNER_WRITE}),
}


@dataclass
class BasicFileAttributes:
    """Size, timestamps and kind of a path at ``fetch_time``."""
    key: str
    size: int
    last_modified_time: float
    last_access_time: float
    creation_time: float
    is_directory: bool
    is_regular_file: bool
    fetch_time: float
    is_symbolic_link: bool = False
    is_other: bool = False

    kind: ClassVar[str] = "basic"

    @property
    def file_key(self) -> str:
        return self.key


@dataclass
class PosixFileAttributes(BasicFileAttributes):
    """Basic attributes plus owner and permissions."""
    owner: Optional[str] = None
    group: Optional[str] = None
    permissions: FrozenSet[PosixFilePermission] = field(default_factory=frozenset)

    kind: ClassVar[str] = "posix"

    @property
    def mode(self) -> int:
        """``st_mode`` style file type and permission bits."""
        bits = stat.S_IFDIR if self.is_directory else stat.S_IFREG
        for permission in self.permissions:
            bits |= permission.value
        return bits


BASIC_ATTRIBUTE_NAMES = (
    "last_modified_time",
    "last_access_time",
    "creation_time",
    "size",
    "is_regular_file",
    "is_directory",
    "is_symbolic_link",
    "is_other",
    "file_key",
)

POSIX_ATTRIBUTE_NAMES = BASIC_ATTRIBUTE_NAMES + ("owner", "group", "permissions")


def permissions_from_grants(owner_id: Optional[str], grants: Iterable[Grant]) -> FrozenSet[PosixFilePermission]:
    """Collect the posix bits granted to ``owner_id``."""
    permissions = set()
    for grant in grants:
        if owner_id is not None and grant.grantee_id == owner_id:
            permissions |= _GRANT_PERMISSIONS.get(grant.permission, frozenset())
    return frozenset(permissions)


def has_grant(owner_id: Optional[str], grants: Iterable[Grant], accepted: Iterable[str]) -> bool:
    accepted = set(accepted)
    return any(g.grantee_id == owner_id and g.permission in accepted for g in grants)


def set_metadata_times(metadata: ObjectMetadata, last_modified: Optional[float] = None,
                       last_access: Optional[float] = None, create_time: Optional[float] = None) -> ObjectMetadata:
    """Store the given timestamps in ``metadata``'s user metadata, in milliseconds."""
    for name, value in ((LAST_MODIFIED_KEY, last_modified),
                        (LAST_ACCESS_KEY, last_access),
                        (CREATE_TIME_KEY, create_time)):
        if value is not None:
            metadata.user_metadata[name] = str(int(value * 1000))
    return metadata


def metadata_time(user_metadata: Dict[str, str], name: str, default: float) -> float:
    """Read a ``bucketpath-*`` timestamp, falling back to ``default``."""
    raw = user_metadata.get(name)
    if raw is None:
        return default
    try:
        return int(raw) / 1000.0
    except ValueError:
        return default


def attributes_to_map(attrs: BasicFileAttributes, filters: Optional[List[str]] = None) -> Dict[str, object]:
    """
    Convert attributes to a name -> value mapping.

    Args:
        attrs (BasicFileAttributes): Basic or posix attributes
        filters (list, optional): Attribute names to keep. ``basic:`` and
            ``posix:`` prefixes are stripped; ``*`` keeps everything. Names
            unknown to the attributes' kind are ignored.

    Returns:
        dict: The selected attributes
    """
    names = POSIX_ATTRIBUTE_NAMES if attrs.kind == "posix" else BASIC_ATTRIBUTE_NAMES
    if filters is not None:
        wanted = set()
        for name in filters:
            name = name.strip()
            for prefix in ("basic:", "posix:"):
                if name.startswith(prefix):
                    name = name[len(prefix):]
            if name == "*":
                wanted = set(names)
                break
            wanted.add(name)
        names = tuple(n for n in names if n in wanted)
    return {name: getattr(attrs, name) for name in names}


class BasicFileAttributeView:
    """
    Reads and updates the ``basic`` attributes of one path.

    Attributes:
        path (BucketPath): The viewed path
    """

    name = "basic"

    def __init__(self, path):
        self.path = path

    def read_attributes(self) -> BasicFileAttributes:
        return self.path.filesystem.read_attributes(self.path, kind=self.name)

    def set_times(self, last_modified_time: Optional[float] = None, last_access_time: Optional[float] = None,
                  create_time: Optional[float] = None) -> None:
        """
        Record new timestamps in the object's metadata.

        The object is copied onto itself with the updated metadata, so large
        objects take the multi-part copy path like any other copy.
        """
        self.path.filesystem.transfer.set_times(self.path, last_modified_time, last_access_time, create_time)


class PosixFileAttributeView(BasicFileAttributeView):
    """Adds owner and permissions; both are read-only."""

    name = "posix"

    def set_permissions(self, permissions) -> None:
        raise UnsupportedOperationError("Setting permissions is not supported", path=self.path)

    def set_owner(self, owner) -> None:
        raise UnsupportedOperationError("Setting the owner is not supported", path=self.path)

    def set_group(self, group) -> None:
        raise UnsupportedOperationError("Setting the group is not supported", path=self.path)

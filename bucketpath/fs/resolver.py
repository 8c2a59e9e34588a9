# Copyright 2025 Accelerated Cloud Storage Corporation. All Rights Reserved.
"""
Directory resolution over a flat key space.

The store has no directories. A path is a directory when a ``key/`` marker
object exists for it, when it is a container root, or when other keys use
``key/`` as a prefix (an implicit directory). A path can be a file and a
directory at the same time, so classification returns a set of kinds.
"""

import time
from enum import Enum
from typing import Callable, FrozenSet, Iterable, Iterator, Optional, Tuple

from ..client.base import ObjectStoreClient
from ..client.exceptions import StoreError
from ..client.types import ListObjectsOptions, ObjectMetadata, ObjectSummary
from ..utils import logger, trace_op
from .attributes import (
    CREATE_TIME_KEY,
    LAST_ACCESS_KEY,
    LAST_MODIFIED_KEY,
    OWNER_ALL,
    AccessMode,
    BasicFileAttributes,
    PosixFileAttributes,
    has_grant,
    metadata_time,
    permissions_from_grants,
)
from .exceptions import AccessDeniedError, NoSuchFileError, NotDirectoryError, translate_store_error
from .path import SEPARATOR, BucketPath


class PathKind(Enum):
    FILE = "file"
    DIRECTORY = "directory"


def _timestamp(value) -> float:
    return value.timestamp() if value is not None else 0.0


def _base_key(path: BucketPath) -> str:
    return path.key.rstrip(SEPARATOR)


class DirectoryListing:
    """
    Immediate children of a directory.

    The listing is lazy: store pages are fetched while iterating. It is not
    materialized, so every new iteration issues the list requests again.
    """

    def __init__(self, resolver: "DirectoryResolver", path: BucketPath,
                 path_filter: Optional[Callable[[BucketPath], bool]] = None):
        self.resolver = resolver
        self.path = path
        self.path_filter = path_filter

    def __iter__(self) -> Iterator[BucketPath]:
        for child in self.resolver._iter_children(self.path):
            if self.path_filter is None or self.path_filter(child):
                yield child

    def close(self) -> None:
        pass

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()


class DirectoryResolver:
    """
    Answers existence and kind queries and lists children.

    Attributes:
        client (ObjectStoreClient): Store client
        clock (callable): Time source for snapshot fetch times
    """

    def __init__(self, client: ObjectStoreClient, clock: Callable[[], float] = time.time):
        self.client = client
        self.clock = clock

    # -- lookups ---------------------------------------------------------

    def _head(self, bucket: str, key: str) -> Optional[ObjectMetadata]:
        try:
            return self.client.get_object_metadata(bucket, key)
        except StoreError as e:
            if e.is_not_found:
                return None
            raise

    def _probe_prefix(self, bucket: str, prefix: str) -> Optional[ObjectSummary]:
        try:
            listing = self.client.list_objects(bucket, ListObjectsOptions(prefix=prefix, max_keys=1))
        except StoreError as e:
            # missing bucket
            if e.is_not_found:
                return None
            raise
        if listing.object_summaries:
            return listing.object_summaries[0]
        return None

    def _locate(self, path: BucketPath) -> Tuple[Optional[ObjectSummary], Optional[ObjectMetadata]]:
        """Find the object backing ``path``: exact key, then marker, then any child."""
        bucket = path.container
        base = _base_key(path)
        try:
            if base:
                for key in (base, base + SEPARATOR):
                    metadata = self._head(bucket, key)
                    if metadata is not None:
                        summary = ObjectSummary(
                            bucket=bucket,
                            key=key,
                            size=metadata.content_length,
                            last_modified=metadata.last_modified,
                            etag=metadata.etag,
                        )
                        return summary, metadata
            prefix = base + SEPARATOR if base else ""
            return self._probe_prefix(bucket, prefix), None
        except StoreError as e:
            raise translate_store_error(e, path) from e

    def find_object_summary(self, path: BucketPath) -> Optional[ObjectSummary]:
        """
        Find the object that proves ``path`` exists.

        Tries the exact key, then the ``key/`` marker, then any key with
        ``key/`` as its prefix.

        Returns:
            ObjectSummary: The first match, or None if the path does not exist
        """
        trace_op("find_object_summary", str(path))
        return self._locate(path)[0]

    def get_object_summary(self, path: BucketPath) -> ObjectSummary:
        summary = self.find_object_summary(path)
        if summary is None:
            raise NoSuchFileError(path)
        return summary

    def _container_exists(self, path: BucketPath) -> bool:
        try:
            return self.client.get_bucket(path.container) is not None
        except StoreError as e:
            raise translate_store_error(e, path) from e

    # -- classification --------------------------------------------------

    def classify(self, path: BucketPath) -> FrozenSet[PathKind]:
        """
        Classify ``path``.

        Returns:
            frozenset: Any of ``PathKind.FILE`` and ``PathKind.DIRECTORY``;
            an empty set means the path does not exist
        """
        start_time = time.time()
        if path.is_root:
            kinds = frozenset({PathKind.DIRECTORY}) if self._container_exists(path) else frozenset()
            return kinds

        bucket = path.container
        base = _base_key(path)
        kinds = set()
        try:
            if self._head(bucket, base) is not None:
                kinds.add(PathKind.FILE)
            if self._head(bucket, base + SEPARATOR) is not None:
                kinds.add(PathKind.DIRECTORY)
            elif not kinds and self._probe_prefix(bucket, base + SEPARATOR) is not None:
                kinds.add(PathKind.DIRECTORY)
        except StoreError as e:
            raise translate_store_error(e, path) from e

        logger.debug(f"classify {path}: {sorted(k.value for k in kinds)} in {time.time() - start_time:.4f} seconds")
        return frozenset(kinds)

    def exists(self, path: BucketPath) -> bool:
        return bool(self.classify(path))

    def is_directory(self, path: BucketPath) -> bool:
        return PathKind.DIRECTORY in self.classify(path)

    def is_regular_file(self, path: BucketPath) -> bool:
        return PathKind.FILE in self.classify(path)

    # -- listing ---------------------------------------------------------

    def list_directory(self, path: BucketPath,
                       path_filter: Optional[Callable[[BucketPath], bool]] = None) -> DirectoryListing:
        """
        List the immediate children of a directory.

        Args:
            path (BucketPath): Directory to list
            path_filter (callable, optional): Keeps children for which it returns True

        Returns:
            DirectoryListing: Lazy listing of child paths with attached attributes

        Raises:
            NoSuchFileError: If the path does not exist
            NotDirectoryError: If the path exists but is not a directory
        """
        kinds = self.classify(path)
        if not kinds:
            raise NoSuchFileError(path)
        if PathKind.DIRECTORY not in kinds:
            raise NotDirectoryError(path)
        return DirectoryListing(self, path, path_filter)

    def _iter_children(self, path: BucketPath) -> Iterator[BucketPath]:
        bucket = path.container
        base = _base_key(path)
        prefix = base + SEPARATOR if base else ""
        options = ListObjectsOptions(prefix=prefix, delimiter=SEPARATOR)
        seen = set()
        pages = 0

        while True:
            try:
                listing = self.client.list_objects(bucket, options)
            except StoreError as e:
                raise translate_store_error(e, path) from e
            pages += 1

            for common_prefix in listing.common_prefixes:
                name = common_prefix[len(prefix):].rstrip(SEPARATOR)
                if not name or name in seen:
                    continue
                seen.add(name)
                child = BucketPath._from_parts(path.filesystem, path.segments + (name,), True, True)
                child.file_attributes = self._implicit_directory_attributes(common_prefix)
                yield child

            for summary in listing.object_summaries:
                if summary.key == prefix:
                    # the directory's own marker
                    continue
                name = summary.key[len(prefix):].rstrip(SEPARATOR)
                if not name or name in seen:
                    continue
                seen.add(name)
                is_marker = summary.key.endswith(SEPARATOR)
                child = BucketPath._from_parts(path.filesystem, path.segments + (name,), True, is_marker)
                child.file_attributes = self._attributes_from_summary(summary, base_key=prefix + name)
                yield child

            if not listing.is_truncated or not listing.next_continuation_token:
                break
            options = ListObjectsOptions(
                prefix=prefix, delimiter=SEPARATOR, continuation_token=listing.next_continuation_token
            )

        logger.debug(f"listed {len(seen)} children of {path} in {pages} page(s)")

    def is_empty_directory(self, path: BucketPath) -> bool:
        for _ in self.list_directory(path):
            return False
        return True

    # -- attributes ------------------------------------------------------

    def _implicit_directory_attributes(self, key: str) -> BasicFileAttributes:
        return BasicFileAttributes(
            key=key,
            size=0,
            last_modified_time=0.0,
            last_access_time=0.0,
            creation_time=0.0,
            is_directory=True,
            is_regular_file=False,
            fetch_time=self.clock(),
        )

    def _attributes_from_summary(self, summary: ObjectSummary, base_key: str,
                                 metadata: Optional[ObjectMetadata] = None) -> BasicFileAttributes:
        resolved = summary.key
        if resolved == base_key + SEPARATOR:
            is_directory, size = True, summary.size
        elif resolved != base_key or not base_key:
            return self._implicit_directory_attributes(resolved)
        else:
            is_directory, size = False, summary.size

        modified = _timestamp(summary.last_modified)
        user_metadata = metadata.user_metadata if metadata is not None else {}
        return BasicFileAttributes(
            key=resolved,
            size=size,
            last_modified_time=metadata_time(user_metadata, LAST_MODIFIED_KEY, modified),
            last_access_time=metadata_time(user_metadata, LAST_ACCESS_KEY, modified),
            creation_time=metadata_time(user_metadata, CREATE_TIME_KEY, modified),
            is_directory=is_directory,
            is_regular_file=not is_directory,
            fetch_time=self.clock(),
        )

    def get_file_attributes(self, path: BucketPath) -> BasicFileAttributes:
        """
        Fetch basic attributes for ``path``.

        Raises:
            NoSuchFileError: If the path does not exist
        """
        start_time = time.time()
        if path.is_root:
            if not self._container_exists(path):
                raise NoSuchFileError(path)
            return self._implicit_directory_attributes("")

        summary, metadata = self._locate(path)
        if summary is None:
            raise NoSuchFileError(path)
        attrs = self._attributes_from_summary(summary, _base_key(path), metadata)
        logger.info(f"get_file_attributes for {path} completed in {time.time() - start_time:.4f} seconds")
        return attrs

    def get_posix_file_attributes(self, path: BucketPath) -> PosixFileAttributes:
        """
        Fetch posix attributes for ``path``.

        Objects report the ACL owner and the bits granted to it. Roots and
        implicit directories have no ACL of their own and report the
        container owner with full owner permissions.
        """
        basic = self.get_file_attributes(path)
        values = {name: getattr(basic, name) for name in (
            "key", "size", "last_modified_time", "last_access_time", "creation_time",
            "is_directory", "is_regular_file", "fetch_time",
        )}
        base = _base_key(path)
        try:
            if path.is_root or basic.key not in (base, base + SEPARATOR):
                bucket = self.client.get_bucket(path.container)
                owner = bucket.owner.id if bucket is not None and bucket.owner is not None else None
                permissions = OWNER_ALL
            else:
                acl = self.client.get_object_acl(path.container, basic.key)
                owner = acl.owner.id if acl.owner is not None else None
                permissions = permissions_from_grants(owner, acl.grants)
        except StoreError as e:
            raise translate_store_error(e, path) from e
        return PosixFileAttributes(owner=owner, group=None, permissions=permissions, **values)

    def get_access_control_list(self, path: BucketPath):
        """Fetch the ACL of the object that backs ``path``."""
        summary = self.get_object_summary(path)
        try:
            return self.client.get_object_acl(path.container, summary.key)
        except StoreError as e:
            raise translate_store_error(e, path) from e

    def check_access(self, path: BucketPath, modes: Iterable[AccessMode] = ()) -> None:
        """
        Check that the container owner may access ``path``.

        With no modes this is an existence check. Read and write are checked
        against the owner's ACL grants; execute is never granted.

        Raises:
            NoSuchFileError: If the path does not exist
            AccessDeniedError: If a requested mode is not granted
        """
        modes = list(modes)
        if not modes:
            if not self.exists(path):
                raise NoSuchFileError(path)
            return

        acl = self.get_access_control_list(path)
        try:
            bucket = self.client.get_bucket(path.container)
        except StoreError as e:
            raise translate_store_error(e, path) from e
        owner = bucket.owner if bucket is not None and bucket.owner is not None else acl.owner
        owner_id = owner.id if owner is not None else None

        for mode in modes:
            if mode is AccessMode.EXECUTE:
                raise AccessDeniedError(path, message=f"File is not executable: {path}")
            if mode is AccessMode.READ and not has_grant(owner_id, acl.grants, ("FULL_CONTROL", "READ")):
                raise AccessDeniedError(path, message=f"File is not readable: {path}")
            if mode is AccessMode.WRITE and not has_grant(owner_id, acl.grants, ("FULL_CONTROL", "WRITE")):
                raise AccessDeniedError(path, message=f"Bucket '{path.container}' is not writable")

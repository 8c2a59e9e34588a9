# Copyright 2025 Accelerated Cloud Storage Corporation. All Rights Reserved.
"""
Copy, move and delete orchestration.

Copies of objects up to :data:`PARALLEL_SIZE_THRESHOLD` bytes are a single
server side request. Larger objects are copied in parts by a worker pool
that lives for the duration of one call: 10 workers, or 20 for objects
above :data:`LARGE_OBJECT_THRESHOLD`.

Moves are a copy followed by a delete and are not atomic; a failure between
the two steps leaves both objects in place.
"""

import time
from concurrent.futures import ThreadPoolExecutor, wait
from enum import Enum

from ..client.base import ObjectStoreClient
from ..client.exceptions import StoreError
from ..client.types import CopyObjectRequest, ObjectMetadata
from ..utils import logger, time_function, trace_op
from .attributes import set_metadata_times
from .exceptions import (
    AtomicMoveNotSupportedError,
    DirectoryNotEmptyError,
    FileAlreadyExistsError,
    NoSuchFileError,
    StoreFaultError,
    UnsupportedOperationError,
    translate_store_error,
)
from .path import SEPARATOR, BucketPath
from .resolver import DirectoryResolver, PathKind

PARALLEL_SIZE_THRESHOLD = 16 * 1024 * 1024
LARGE_OBJECT_THRESHOLD = 1024 * 1024 * 1204
SMALL_POOL_WORKERS = 10
LARGE_POOL_WORKERS = 20
DEFAULT_PART_SIZE = 16 * 1024 * 1024


class CopyOption(Enum):
    REPLACE_EXISTING = "replace_existing"
    ATOMIC_MOVE = "atomic_move"
    COPY_ATTRIBUTES = "copy_attributes"


SUPPORTED_COPY_OPTIONS = frozenset({CopyOption.REPLACE_EXISTING})


def worker_count(size: int) -> int:
    """Number of copy workers for an object of ``size`` bytes."""
    return LARGE_POOL_WORKERS if size > LARGE_OBJECT_THRESHOLD else SMALL_POOL_WORKERS


def is_same_file(path1: BucketPath, path2: BucketPath) -> bool:
    return path1.is_absolute() and path2.is_absolute() and path1 == path2


def copy_object(client: ObjectStoreClient, metadata: ObjectMetadata, source_bucket: str, source_key: str,
                target_bucket: str, target_key: str, path_for_error) -> None:
    """
    Copy one object, choosing a single request or a parallel multi-part copy.

    ``metadata`` becomes the target's metadata. Objects larger than
    :data:`PARALLEL_SIZE_THRESHOLD` go through ``multipart_copy`` with a
    worker pool that is shut down before this function returns.

    Args:
        client (ObjectStoreClient): Store client
        metadata (ObjectMetadata): Source metadata, possibly modified
        source_bucket (str): Source bucket
        source_key (str): Source key
        target_bucket (str): Target bucket
        target_key (str): Target key
        path_for_error: Path reported in raised errors

    Raises:
        NoSuchFileError: If the store reports the source missing
        StoreFaultError: On any other store failure, or when the copy is
            interrupted (KeyboardInterrupt); a started multi-part upload is
            aborted before this is raised
    """
    size = metadata.content_length
    request = CopyObjectRequest(source_bucket, source_key, target_bucket, target_key, metadata=metadata)
    start_time = time.time()
    try:
        if size > PARALLEL_SIZE_THRESHOLD:
            workers = worker_count(size)
            logger.debug(f"copy_object: {source_key} is {size} bytes, multi-part copy with {workers} workers")
            with ThreadPoolExecutor(max_workers=workers) as executor:
                client.multipart_copy(request, executor, DEFAULT_PART_SIZE)
        else:
            client.copy_object(request)
    except (InterruptedError, KeyboardInterrupt) as e:
        logger.error(f"copy_object: interrupted while copying {source_key} to {target_key}")
        raise StoreFaultError(path_for_error) from e
    except StoreError as e:
        raise translate_store_error(e, path_for_error) from e
    time_function("copy_object", start_time)


class TransferEngine:
    """
    Delete, copy and move for one filesystem.

    Attributes:
        client (ObjectStoreClient): Store client
        resolver (DirectoryResolver): Used for existence and kind checks
    """

    def __init__(self, client: ObjectStoreClient, resolver: DirectoryResolver):
        self.client = client
        self.resolver = resolver

    # -- delete ----------------------------------------------------------

    def delete(self, path: BucketPath) -> None:
        """
        Delete a file or an empty directory.

        Raises:
            NoSuchFileError: If the path does not exist
            DirectoryNotEmptyError: If the path is a directory with children
            UnsupportedOperationError: For a container root
        """
        trace_op("delete", str(path))
        if path.is_root:
            raise UnsupportedOperationError(f"Cannot delete container root {path}", path=path)
        kinds = self.resolver.classify(path)
        if not kinds:
            raise NoSuchFileError(path)
        if PathKind.DIRECTORY in kinds and not self.resolver.is_empty_directory(path):
            raise DirectoryNotEmptyError(path)
        self._delete_both(path)

    def delete_if_exists(self, path: BucketPath) -> bool:
        """
        Delete ``key`` and ``key/`` without checking that either exists.

        Always returns True: finding out whether anything existed would cost
        an extra request per delete.
        """
        trace_op("delete_if_exists", str(path))
        if path.is_root:
            raise UnsupportedOperationError(f"Cannot delete container root {path}", path=path)
        self._delete_both(path)
        return True

    def _delete_both(self, path: BucketPath) -> None:
        bucket = path.container
        key = path.key.rstrip(SEPARATOR)
        start_time = time.time()

        with ThreadPoolExecutor(max_workers=2) as executor:
            futures = [executor.submit(self.client.delete_object, bucket, k) for k in (key, key + SEPARATOR)]
            wait(futures)

        errors = [f.exception() for f in futures if f.exception() is not None]
        if errors:
            logger.error(f"delete of {path} failed: {errors[0]}")
            raise StoreFaultError(path) from errors[0]
        path.file_attributes = None
        time_function("delete", start_time)

    # -- copy / move -----------------------------------------------------

    def _is_directory_only(self, path: BucketPath) -> bool:
        kinds = self.resolver.classify(path)
        return PathKind.DIRECTORY in kinds and PathKind.FILE not in kinds

    def copy(self, source: BucketPath, target: BucketPath, *options: CopyOption) -> None:
        """
        Copy a file.

        Args:
            source (BucketPath): Existing file
            target (BucketPath): Destination
            *options (CopyOption): Only ``REPLACE_EXISTING`` is supported

        Raises:
            UnsupportedOperationError: For directories or unsupported options
            FileAlreadyExistsError: If the target exists without ``REPLACE_EXISTING``
            NoSuchFileError: If the source does not exist
        """
        trace_op("copy", str(source), target=str(target), options=options)
        if is_same_file(source, target):
            logger.debug(f"copy: {source} and {target} are the same file, nothing to do")
            return

        for path in (source, target):
            if self._is_directory_only(path):
                raise UnsupportedOperationError(f"Copying directories is not supported: {path}", path=path)

        unsupported = set(options) - SUPPORTED_COPY_OPTIONS
        if unsupported:
            names = ", ".join(sorted(o.value for o in unsupported))
            raise UnsupportedOperationError(f"The following options are not supported: {names}", path=source)

        if CopyOption.REPLACE_EXISTING not in options and self.resolver.exists(target):
            raise FileAlreadyExistsError(target)

        try:
            metadata = self.client.get_object_metadata(source.container, source.key)
        except StoreError as e:
            raise translate_store_error(e, source) from e

        copy_object(self.client, metadata.copy(), source.container, source.key, target.container, target.key, source)
        target.file_attributes = None

    def move(self, source: BucketPath, target: BucketPath, *options: CopyOption) -> None:
        """
        Move a file as copy then delete.

        Raises:
            AtomicMoveNotSupportedError: If ``ATOMIC_MOVE`` is requested; nothing is changed
        """
        trace_op("move", str(source), target=str(target), options=options)
        if CopyOption.ATOMIC_MOVE in options:
            raise AtomicMoveNotSupportedError(source, target)
        if is_same_file(source, target):
            return
        self.copy(source, target, *options)
        self.delete(source)

    # -- metadata --------------------------------------------------------

    def set_times(self, path: BucketPath, last_modified=None, last_access=None, create_time=None) -> None:
        """Rewrite the object's timestamp metadata with a copy onto itself."""
        trace_op("set_times", str(path), last_modified=last_modified)
        try:
            metadata = self.client.get_object_metadata(path.container, path.key).copy()
        except StoreError as e:
            raise translate_store_error(e, path) from e
        set_metadata_times(metadata, last_modified, last_access, create_time)
        copy_object(self.client, metadata, path.container, path.key, path.container, path.key, path)
        path.file_attributes = None

# Copyright 2025 Accelerated Cloud Storage Corporation. All Rights Reserved.
"""
Object store client interface.

The filesystem layer talks to storage exclusively through this interface.
Implementations are synchronous and may be slow or fallible; they raise
:class:`~bucketpath.client.exceptions.StoreError` subclasses, with
``status_code == 404`` for missing buckets or keys.
"""

from abc import ABC, abstractmethod
from concurrent.futures import Executor
from typing import Optional, Tuple

from .types import (
    AccessControlList,
    Bucket,
    CopyObjectRequest,
    ListObjectsOptions,
    ObjectListing,
    ObjectMetadata,
)


class ObjectStoreClient(ABC):
    """Bucket/key CRUD, metadata, ACLs, prefix listing and managed copies."""

    @abstractmethod
    def get_object(self, bucket: str, key: str, byte_range: Optional[Tuple[int, int]] = None) -> bytes:
        """
        Retrieve an object's content.

        Args:
            bucket (str): Bucket name
            key (str): Object key
            byte_range (tuple, optional): Inclusive ``(start, end)`` byte range.

        Returns:
            bytes: The object data, or the requested range of it
        """

    @abstractmethod
    def put_object(self, bucket: str, key: str, data: bytes, metadata: Optional[ObjectMetadata] = None) -> None:
        """Upload ``data`` as ``key``, replacing any existing object."""

    @abstractmethod
    def copy_object(self, request: CopyObjectRequest) -> None:
        """Copy an object with a single server side request."""

    @abstractmethod
    def multipart_copy(self, request: CopyObjectRequest, executor: Executor, part_size: int) -> None:
        """
        Copy an object as a multi-part transfer.

        Part copies are submitted to ``executor``, which the caller owns and
        shuts down. The call blocks until every part has completed and the
        upload has been finalized; if any part fails the upload is aborted
        and the failure is raised.

        Args:
            request (CopyObjectRequest): Source, target and metadata
            executor (Executor): Pool that runs the part copies
            part_size (int): Size of each copied part in bytes
        """

    @abstractmethod
    def delete_object(self, bucket: str, key: str) -> None:
        """Delete ``key``. Deleting a key that does not exist succeeds."""

    @abstractmethod
    def list_objects(self, bucket: str, options: ListObjectsOptions) -> ObjectListing:
        """Return one page of objects and common prefixes."""

    @abstractmethod
    def get_object_metadata(self, bucket: str, key: str) -> ObjectMetadata:
        """Fetch metadata without the content."""

    @abstractmethod
    def get_object_acl(self, bucket: str, key: str) -> AccessControlList:
        """Fetch the access control list of an object."""

    @abstractmethod
    def create_bucket(self, bucket: str) -> None:
        """Create a bucket."""

    @abstractmethod
    def get_bucket(self, bucket: str) -> Optional[Bucket]:
        """Return the bucket, or None if it does not exist."""

    def close(self) -> None:
        """Release connections held by the client."""

# Copyright 2025 Accelerated Cloud Storage Corporation. All Rights Reserved.
"""Object store client interface and its S3 implementation."""

from .base import ObjectStoreClient
from .exceptions import (
    AuthenticationError,
    BucketError,
    ConfigurationError,
    ObjectError,
    StoreError,
)
from .factory import ClientFactory, S3ClientFactory, load_client_factory
from .s3 import S3Client
from .types import (
    AccessControlList,
    Bucket,
    CopyObjectRequest,
    Grant,
    ListObjectsOptions,
    ObjectListing,
    ObjectMetadata,
    ObjectSummary,
    Owner,
)

__all__ = [
    "AccessControlList",
    "AuthenticationError",
    "Bucket",
    "BucketError",
    "ClientFactory",
    "ConfigurationError",
    "CopyObjectRequest",
    "Grant",
    "ListObjectsOptions",
    "ObjectError",
    "ObjectListing",
    "ObjectMetadata",
    "ObjectStoreClient",
    "ObjectSummary",
    "Owner",
    "S3Client",
    "S3ClientFactory",
    "StoreError",
    "load_client_factory",
]

# Copyright 2025 Accelerated Cloud Storage Corporation. All Rights Reserved.
"""
bucketpath presents a bucket/key object store as a hierarchical filesystem.

Example:
    >>> from bucketpath import FileSystemContext
    >>> ctx = FileSystemContext()
    >>> fs = ctx.registry.open("s3://s3.amazonaws.com/")
    >>> for child in fs.list_directory("/my-bucket/data"):
    ...     print(child)
"""

from .fs import (
    BucketPath,
    CopyOption,
    FileSystemContext,
    ObjectFileSystem,
    PathKind,
)

__version__ = "0.1.0"

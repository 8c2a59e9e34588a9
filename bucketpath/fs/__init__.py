# Copyright 2025 Accelerated Cloud Storage Corporation. All Rights Reserved.
"""Hierarchical filesystem view over an object store."""

from .attributes import (
    AccessMode,
    BasicFileAttributes,
    BasicFileAttributeView,
    PosixFileAttributes,
    PosixFileAttributeView,
    PosixFilePermission,
)
from .cache import AttributeCache, CacheConfig
from .exceptions import (
    AccessDeniedError,
    AtomicMoveNotSupportedError,
    DirectoryNotEmptyError,
    FileAlreadyExistsError,
    FileSystemAlreadyExistsError,
    FileSystemConfigurationError,
    FileSystemError,
    FileSystemNotFoundError,
    NoSuchFileError,
    NotDirectoryError,
    StoreFaultError,
    UnsupportedOperationError,
)
from .filesystem import Container, ObjectFileSystem
from .path import BucketPath
from .registry import FileSystemContext, FileSystemRegistry
from .resolver import DirectoryListing, DirectoryResolver, PathKind
from .transfer import CopyOption, TransferEngine

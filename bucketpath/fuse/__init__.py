# Copyright 2025 Accelerated Cloud Storage Corporation. All Rights Reserved.
"""Mount a container of a bucketpath filesystem as a local directory."""

from .fuse_mount import BucketPathFuse, main, mount

__all__ = ["BucketPathFuse", "main", "mount"]

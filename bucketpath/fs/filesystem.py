# Copyright 2025 Accelerated Cloud Storage Corporation. All Rights Reserved.
"""
Filesystem instances.

An :class:`ObjectFileSystem` is created by the registry for one
``access-key@host`` identity. It owns the store client and exposes the
file operations: existence and kind checks, listings, reads and writes,
copy/move/delete and attribute access.

Example:
    >>> ctx = FileSystemContext()
    >>> fs = ctx.registry.open("s3://s3.amazonaws.com/")
    >>> path = fs.get_path("/my-bucket/data/report.csv")
    >>> fs.read_bytes(path)
"""

import time
from io import BytesIO
from typing import Callable, Dict, List, Optional, Tuple, Union

from ..client.base import ObjectStoreClient
from ..client.exceptions import StoreError
from ..client.properties import CACHE_ATTRIBUTES_TTL, DEFAULT_CACHE_TTL, DEFAULT_HOST
from ..client.types import ObjectMetadata
from ..utils import logger, time_function, trace_op
from .attributes import (
    AccessMode,
    BasicFileAttributeView,
    BasicFileAttributes,
    PosixFileAttributeView,
    attributes_to_map,
)
from .cache import CacheConfig
from .exceptions import (
    FileAlreadyExistsError,
    FileSystemConfigurationError,
    UnsupportedOperationError,
    translate_store_error,
)
from .path import SEPARATOR, BucketPath
from .resolver import DirectoryListing, DirectoryResolver
from .transfer import CopyOption, TransferEngine, is_same_file

ATTRIBUTE_KINDS = ("basic", "posix")


class Container:
    """
    Handle on a container (bucket).

    Existence and owner are read from the store on every access.

    Attributes:
        filesystem (ObjectFileSystem): Owning filesystem
        name (str): Container name
    """

    def __init__(self, filesystem: "ObjectFileSystem", name: str):
        self.filesystem = filesystem
        self.name = name

    def _bucket(self):
        try:
            return self.filesystem.client.get_bucket(self.name)
        except StoreError as e:
            raise translate_store_error(e, f"/{self.name}") from e

    @property
    def exists(self) -> bool:
        return self._bucket() is not None

    @property
    def owner(self):
        bucket = self._bucket()
        return bucket.owner if bucket is not None else None

    @property
    def root(self) -> BucketPath:
        return self.filesystem.get_path(SEPARATOR + self.name)

    def __repr__(self):
        return f"Container({self.name!r})"


def _cache_config(properties: Dict[str, str]) -> CacheConfig:
    raw = properties.get(CACHE_ATTRIBUTES_TTL)
    if raw is None or raw == "":
        return CacheConfig(DEFAULT_CACHE_TTL)
    try:
        return CacheConfig(float(raw))
    except (TypeError, ValueError) as e:
        raise FileSystemConfigurationError(f"Invalid {CACHE_ATTRIBUTES_TTL}: {raw!r}") from e


class ObjectFileSystem:
    """
    A filesystem over one object store endpoint.

    Attributes:
        context (FileSystemContext): Context whose registry holds this instance
        key (str): Registry identity, ``access-key@host`` or ``host``
        client (ObjectStoreClient): Store client
        host (str): Endpoint host
        properties (dict): Resolved properties
        cache_config (CacheConfig): Attribute cache settings
        resolver (DirectoryResolver): Existence, kind and listing queries
        transfer (TransferEngine): Copy, move and delete
    """

    def __init__(self, context, key: str, client: ObjectStoreClient, host: Optional[str],
                 properties: Dict[str, str]):
        self.context = context
        self.key = key
        self.client = client
        self.host = host or DEFAULT_HOST
        self.properties = dict(properties)
        self.cache_config = _cache_config(self.properties)
        self.resolver = DirectoryResolver(client, clock=lambda: self.context.cache.clock())
        self.transfer = TransferEngine(client, self.resolver)
        self._closed = False
        logger.info(f"Created filesystem {key} (attribute cache ttl {self.cache_config.ttl}s)")

    # -- paths -----------------------------------------------------------

    def get_path(self, first: str, *more: str) -> BucketPath:
        return BucketPath(self, first, *more)

    def get_container(self, name: str) -> Container:
        return Container(self, name)

    def _absolute(self, path: Union[BucketPath, str]) -> BucketPath:
        if not isinstance(path, BucketPath):
            path = self.get_path(path)
        if not path.is_absolute():
            raise ValueError(f"Path must be absolute: {path}")
        return path

    # -- queries ---------------------------------------------------------

    def classify(self, path):
        return self.resolver.classify(self._absolute(path))

    def exists(self, path) -> bool:
        return self.resolver.exists(self._absolute(path))

    def is_directory(self, path) -> bool:
        return self.resolver.is_directory(self._absolute(path))

    def is_regular_file(self, path) -> bool:
        return self.resolver.is_regular_file(self._absolute(path))

    def list_directory(self, path, path_filter: Optional[Callable[[BucketPath], bool]] = None) -> DirectoryListing:
        """Lazy listing of the children of ``path``; see :meth:`DirectoryResolver.list_directory`."""
        return self.resolver.list_directory(self._absolute(path), path_filter)

    def is_same_file(self, path1, path2) -> bool:
        return is_same_file(path1, path2)

    def is_hidden(self, path) -> bool:
        return False

    def check_access(self, path, *modes: AccessMode) -> None:
        self.resolver.check_access(self._absolute(path), modes)

    # -- content ---------------------------------------------------------

    def create_directory(self, path) -> None:
        """
        Create a directory by writing an empty ``key/`` marker.

        The container is created first when it does not exist. Creation is not
        atomic: a concurrent writer can create the path between the check and
        the write.

        Raises:
            FileAlreadyExistsError: If the path already exists
        """
        path = self._absolute(path)
        trace_op("create_directory", str(path))
        start_time = time.time()
        if self.resolver.exists(path):
            raise FileAlreadyExistsError(path)

        container = self.get_container(path.container)
        try:
            if not container.exists:
                logger.info(f"Container {container.name} does not exist, creating it")
                self.client.create_bucket(container.name)
            if not path.is_root:
                directory_key = path.key.rstrip(SEPARATOR) + SEPARATOR
                self.client.put_object(container.name, directory_key, b"", ObjectMetadata(content_length=0))
        except StoreError as e:
            raise translate_store_error(e, path) from e
        time_function("create_directory", start_time)

    def read_bytes(self, path, byte_range: Optional[Tuple[int, int]] = None) -> bytes:
        """
        Read an object's content.

        Args:
            path: Absolute path of the file
            byte_range (tuple, optional): Inclusive ``(start, end)`` byte range

        Returns:
            bytes: The content, or the requested range of it
        """
        path = self._absolute(path)
        trace_op("read_bytes", str(path), byte_range=byte_range)
        if not path.key:
            raise ValueError(f"Cannot read container root {path}")
        start_time = time.time()
        try:
            data = self.client.get_object(path.container, path.key, byte_range)
        except StoreError as e:
            raise translate_store_error(e, path) from e
        logger.info(f"read_bytes {path}: {len(data)} bytes in {time.time() - start_time:.4f} seconds")
        return data

    def open_input(self, path) -> BytesIO:
        return BytesIO(self.read_bytes(path))

    def write_bytes(self, path, data: bytes, metadata: Optional[ObjectMetadata] = None,
                    overwrite: bool = True) -> None:
        """
        Upload ``data`` as the content of ``path``.

        Raises:
            FileAlreadyExistsError: If ``overwrite`` is False and the path exists
        """
        path = self._absolute(path)
        trace_op("write_bytes", str(path), size=len(data))
        if not path.key:
            raise ValueError(f"Cannot write container root {path}")
        if not overwrite and self.resolver.exists(path):
            raise FileAlreadyExistsError(path)
        if metadata is None:
            metadata = ObjectMetadata(content_length=len(data))
        start_time = time.time()
        try:
            self.client.put_object(path.container, path.key, data, metadata)
        except StoreError as e:
            raise translate_store_error(e, path) from e
        path.file_attributes = None
        time_function("write_bytes", start_time)

    # -- transfer --------------------------------------------------------

    def delete(self, path) -> None:
        self.transfer.delete(self._absolute(path))

    def delete_if_exists(self, path) -> bool:
        return self.transfer.delete_if_exists(self._absolute(path))

    def copy(self, source, target, *options: CopyOption) -> None:
        self.transfer.copy(self._absolute(source), self._absolute(target), *options)

    def move(self, source, target, *options: CopyOption) -> None:
        self.transfer.move(self._absolute(source), self._absolute(target), *options)

    # -- attributes ------------------------------------------------------

    def read_attributes(self, path, kind: str = "basic") -> BasicFileAttributes:
        """
        Read attributes, reusing the snapshot attached to the path when fresh.

        A fresh snapshot is returned once and detached; the next read fetches
        again. A fetched snapshot is attached to the path for the next read.

        Args:
            path (BucketPath): Absolute path
            kind (str): ``basic`` or ``posix``

        Raises:
            UnsupportedOperationError: For any other kind
        """
        path = self._absolute(path)
        if kind not in ATTRIBUTE_KINDS:
            raise UnsupportedOperationError(f"Only basic or posix attributes are supported, not {kind}", path=path)

        snapshot = path.file_attributes
        usable = snapshot is not None and (kind == "basic" or snapshot.kind == "posix")
        if usable and self.context.cache.is_in_time(self.cache_config, snapshot):
            logger.debug(f"read_attributes {path}: using cached {snapshot.kind} snapshot")
            path.file_attributes = None
            return snapshot

        if kind == "posix":
            attrs = self.resolver.get_posix_file_attributes(path)
        else:
            attrs = self.resolver.get_file_attributes(path)
        path.file_attributes = attrs
        return attrs

    def read_attributes_map(self, path, query: str) -> Dict[str, object]:
        """
        Read attributes by name.

        ``query`` is ``*``, ``basic:*``, ``posix:*``, a single name or a comma
        separated list of names, optionally prefixed with ``basic:`` or
        ``posix:``.
        """
        if query is None:
            raise ValueError("Attributes query must not be None")
        if ":" in query and "basic:" not in query and "posix:" not in query:
            raise UnsupportedOperationError(
                f"Attributes {query} are not supported, only basic and posix are supported", path=path
            )
        if query in ("*", "basic:*"):
            return attributes_to_map(self.read_attributes(path, "basic"))
        if query == "posix:*":
            return attributes_to_map(self.read_attributes(path, "posix"))

        filters: List[str] = query.split(",")
        kind = "posix" if query.startswith("posix:") else "basic"
        return attributes_to_map(self.read_attributes(path, kind), filters)

    def get_attribute_view(self, path, name: str = "basic") -> BasicFileAttributeView:
        path = self._absolute(path)
        if name == "basic":
            return BasicFileAttributeView(path)
        if name == "posix":
            return PosixFileAttributeView(path)
        raise UnsupportedOperationError(f"Attribute view {name} is not supported", path=path)

    def set_attribute(self, path, attribute: str, value) -> None:
        raise UnsupportedOperationError(f"Setting attribute {attribute} is not supported", path=path)

    # -- lifecycle -------------------------------------------------------

    @property
    def is_open(self) -> bool:
        return not self._closed and self.context.registry.is_open(self)

    def close(self) -> None:
        """Remove this filesystem from the registry and close its client."""
        if self._closed:
            return
        self._closed = True
        self.context.registry.close(self)
        self.client.close()
        logger.info(f"Closed filesystem {self.key}")

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()

    def __repr__(self):
        return f"ObjectFileSystem({self.key!r})"

# Copyright 2025 Accelerated Cloud Storage Corporation. All Rights Reserved.
"""
Registry of open filesystems.

A :class:`FileSystemContext` is built by whatever composes the application
and passed down; it owns the registry, the property resolver and the
attribute cache. There is no module level singleton, so independent
contexts can coexist, for example one per test.

Per identity the registry moves through UNCREATED -> OPEN -> CLOSED, and a
closed identity can be opened again.
"""

import threading
import time
from typing import Dict, Mapping, Optional

from ..client.exceptions import ConfigurationError
from ..client.factory import ClientFactory, S3ClientFactory, load_client_factory
from ..client.properties import CLIENT_FACTORY
from ..utils import logger, time_function
from .cache import AttributeCache
from .config import PropertyResolver, filesystem_key, parse_uri, validate_properties
from .exceptions import FileSystemAlreadyExistsError, FileSystemConfigurationError, FileSystemNotFoundError
from .filesystem import ObjectFileSystem
from .path import BucketPath


class FileSystemRegistry:
    """
    Identity -> filesystem table guarded by a lock.

    Attributes:
        context (FileSystemContext): Owning context
    """

    def __init__(self, context: "FileSystemContext"):
        self.context = context
        self._filesystems: Dict[str, ObjectFileSystem] = {}
        self._lock = threading.Lock()

    def _prepare(self, uri: str, config: Optional[Mapping[str, object]]):
        parse_uri(uri)
        properties = self.context.properties.resolve(uri, config)
        validate_properties(properties)
        return filesystem_key(uri, properties), properties

    def _client_factory(self, properties: Dict[str, str]) -> ClientFactory:
        path = properties.get(CLIENT_FACTORY)
        if path:
            try:
                return load_client_factory(path)
            except ConfigurationError as e:
                raise FileSystemConfigurationError(
                    f"Configuration problem, couldn't instantiate client factory ({path}): {e.message}"
                ) from e
        return self.context.client_factory or S3ClientFactory()

    def _create(self, uri: str, key: str, properties: Dict[str, str]) -> ObjectFileSystem:
        host = parse_uri(uri).host
        client = self._client_factory(properties).get_client(host, properties)
        return ObjectFileSystem(self.context, key, client, host, properties)

    def open(self, uri: str, config: Optional[Mapping[str, object]] = None) -> ObjectFileSystem:
        """
        Create the filesystem for the identity of ``uri``.

        Args:
            uri (str): ``s3://[access:secret@]host/`` URI
            config (dict, optional): Explicit properties

        Returns:
            ObjectFileSystem: The new filesystem

        Raises:
            FileSystemAlreadyExistsError: If the identity is already open
            FileSystemConfigurationError: For a bad URI or bad properties
        """
        start_time = time.time()
        key, properties = self._prepare(uri, config)
        with self._lock:
            if key in self._filesystems:
                raise FileSystemAlreadyExistsError(key)
            filesystem = self._create(uri, key, properties)
            self._filesystems[key] = filesystem
        time_function("open", start_time)
        return filesystem

    def lookup(self, uri: str, config: Optional[Mapping[str, object]] = None) -> ObjectFileSystem:
        """
        Return the open filesystem for the identity of ``uri``.

        Raises:
            FileSystemNotFoundError: If the identity is not open
        """
        key, _ = self._prepare(uri, config)
        with self._lock:
            filesystem = self._filesystems.get(key)
        if filesystem is None:
            raise FileSystemNotFoundError(key)
        return filesystem

    def get_or_open(self, uri: str, config: Optional[Mapping[str, object]] = None) -> ObjectFileSystem:
        """Return the open filesystem for ``uri``, creating it if needed."""
        key, properties = self._prepare(uri, config)
        with self._lock:
            filesystem = self._filesystems.get(key)
            if filesystem is None:
                filesystem = self._create(uri, key, properties)
                self._filesystems[key] = filesystem
        return filesystem

    def get_path(self, uri: str) -> BucketPath:
        """Resolve ``s3://host/container/key`` against its open filesystem."""
        filesystem = self.lookup(uri)
        return filesystem.get_path(parse_uri(uri).path)

    def close(self, filesystem: ObjectFileSystem) -> None:
        """Forget ``filesystem``; its identity may be opened again."""
        with self._lock:
            if self._filesystems.get(filesystem.key) is filesystem:
                del self._filesystems[filesystem.key]
                logger.debug(f"Removed filesystem {filesystem.key} from registry")

    def is_open(self, filesystem: ObjectFileSystem) -> bool:
        with self._lock:
            return self._filesystems.get(filesystem.key) is filesystem

    def __len__(self) -> int:
        with self._lock:
            return len(self._filesystems)


class FileSystemContext:
    """
    Process wide state for filesystems, held explicitly.

    Attributes:
        properties (PropertyResolver): Property sources
        client_factory (ClientFactory): Factory used when no
            ``bucketpath_client_factory`` property is set
        cache (AttributeCache): Attribute freshness policy; may be replaced
        registry (FileSystemRegistry): Open filesystems
    """

    def __init__(self, system_properties: Optional[Dict[str, str]] = None,
                 environ: Optional[Mapping[str, str]] = None, defaults_path: Optional[str] = None,
                 client_factory: Optional[ClientFactory] = None, cache: Optional[AttributeCache] = None):
        self.properties = PropertyResolver(system_properties, environ, defaults_path)
        self.client_factory = client_factory
        self.cache = cache or AttributeCache()
        self.registry = FileSystemRegistry(self)

# Copyright 2025 Accelerated Cloud Storage Corporation. All Rights Reserved.
"""
Client factories.

A client factory turns an endpoint host and a set of resolved properties into
an :class:`ObjectStoreClient`. The factory used by a filesystem can be chosen
with the ``bucketpath_client_factory`` property as a ``module:attr`` path.
"""

import importlib
from typing import Dict, Optional

from ..utils import logger
from .base import ObjectStoreClient
from .exceptions import ConfigurationError
from .s3 import S3Client


class ClientFactory:
    """Builds store clients for a filesystem."""

    def get_client(self, host: Optional[str], properties: Dict[str, str]) -> ObjectStoreClient:
        raise NotImplementedError


class S3ClientFactory(ClientFactory):
    """Default factory returning boto3 backed clients."""

    def get_client(self, host: Optional[str], properties: Dict[str, str]) -> ObjectStoreClient:
        return S3Client.from_properties(host, properties)


def load_client_factory(path: str) -> ClientFactory:
    """
    Import and instantiate a client factory from a ``module:attr`` path.

    The attribute may be a :class:`ClientFactory` subclass, which is
    instantiated without arguments, or an already constructed factory.

    Args:
        path (str): Dotted module path and attribute name, e.g. ``pkg.mod:Factory``

    Returns:
        ClientFactory: The factory instance

    Raises:
        ConfigurationError: If the path is malformed or cannot be imported
    """
    module_name, sep, attr = path.partition(":")
    if not sep or not module_name or not attr:
        raise ConfigurationError(f"Invalid client factory path '{path}', expected 'module:attr'")
    try:
        module = importlib.import_module(module_name)
        target = getattr(module, attr)
    except (ImportError, AttributeError) as e:
        raise ConfigurationError(f"Cannot load client factory '{path}': {e}") from e

    factory = target() if isinstance(target, type) else target
    if not hasattr(factory, "get_client"):
        raise ConfigurationError(f"Client factory '{path}' has no get_client method")
    logger.debug(f"Loaded client factory {path}")
    return factory

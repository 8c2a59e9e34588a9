# Copyright 2025 Accelerated Cloud Storage Corporation. All Rights Reserved.
"""
Property resolution for filesystem creation.

Each overloadable property is taken from the first source that sets it:

1. the explicit mapping passed to ``open`` (string values only)
2. the context's ``system_properties`` mapping
3. the process environment, under the upper-cased name
   (``bucketpath_access_key`` -> ``BUCKETPATH_ACCESS_KEY``)
4. the ``[bucketpath]`` section of the defaults INI file

Credentials embedded in the URI (``s3://access:secret@host/``) override all
of them.
"""

import configparser
import os
from collections import namedtuple
from typing import Dict, Mapping, Optional

from ..client.properties import (
    ACCESS_KEY,
    CACHE_ATTRIBUTES_TTL,
    CLIENT_FACTORY,
    CONNECTION_TIMEOUT,
    DEFAULT_HOST,
    MAX_CONNECTIONS,
    MAX_ERROR_RETRY,
    PATH_STYLE_ACCESS,
    PROTOCOL,
    REGION,
    SECRET_KEY,
    SIGNER_OVERRIDE,
    SOCKET_TIMEOUT,
    USER_AGENT,
)
from ..utils import logger
from .exceptions import FileSystemConfigurationError

SCHEME = "s3"
DEFAULTS_SECTION = "bucketpath"
DEFAULTS_PATH = os.path.join(os.path.dirname(os.path.dirname(os.path.abspath(__file__))), "defaults.ini")

PROPS_TO_OVERLOAD = (
    ACCESS_KEY,
    SECRET_KEY,
    REGION,
    PROTOCOL,
    PATH_STYLE_ACCESS,
    MAX_CONNECTIONS,
    CONNECTION_TIMEOUT,
    SOCKET_TIMEOUT,
    MAX_ERROR_RETRY,
    USER_AGENT,
    SIGNER_OVERRIDE,
    CACHE_ATTRIBUTES_TTL,
    CLIENT_FACTORY,
)

StoreUri = namedtuple("StoreUri", ["scheme", "user_info", "host", "path"])


def parse_uri(uri: str) -> StoreUri:
    """
    Split an ``s3://[user-info@]host/container/key`` URI.

    The text is split by hand rather than with :mod:`urllib.parse`: secret
    keys may contain characters that a URI parser would reject or decode.

    Raises:
        FileSystemConfigurationError: If the URI is empty or not an ``s3`` URI
    """
    if not uri:
        raise FileSystemConfigurationError("uri is empty")
    scheme, sep, rest = uri.partition("://")
    if not sep or scheme != SCHEME:
        raise FileSystemConfigurationError(f"uri scheme must be '{SCHEME}': '{uri}'")

    user_info = None
    at = rest.find("@")
    if at > 0:
        user_info = rest[:at]
        rest = rest[at + 1:]
    host, slash, path = rest.partition("/")
    return StoreUri(scheme, user_info, host or None, slash + path)


def filesystem_key(uri: str, properties: Mapping[str, str]) -> str:
    """
    Compute the registry identity for ``uri``.

    ``user-info@host`` when the URI carries credentials, otherwise
    ``access-key@host`` or just ``host`` when no access key is configured.
    An omitted host is the default AWS endpoint.
    """
    parsed = parse_uri(uri)
    host = parsed.host or DEFAULT_HOST
    if parsed.user_info is not None:
        return f"{parsed.user_info}@{host}"
    access_key = properties.get(ACCESS_KEY)
    return f"{access_key}@{host}" if access_key else host


def load_defaults(path: str) -> Dict[str, str]:
    """Read the ``[bucketpath]`` section of an INI file; a missing file yields nothing."""
    parser = configparser.ConfigParser(interpolation=None)
    try:
        found = parser.read(path)
    except configparser.Error as e:
        raise FileSystemConfigurationError(f"Cannot parse defaults file {path}: {e}") from e
    if not found or not parser.has_section(DEFAULTS_SECTION):
        return {}
    return {key: value for key, value in parser.items(DEFAULTS_SECTION) if value != ""}


def validate_properties(properties: Mapping[str, str]) -> None:
    has_access = properties.get(ACCESS_KEY) is not None
    has_secret = properties.get(SECRET_KEY) is not None
    if has_access != has_secret:
        raise FileSystemConfigurationError(
            f"{ACCESS_KEY} and {SECRET_KEY} should both be provided or should both be omitted"
        )


class PropertyResolver:
    """
    Merges property sources for one filesystem context.

    Attributes:
        system_properties (dict): Process level overrides set programmatically
        environ (Mapping): Environment variables, ``os.environ`` by default
        defaults_path (str): INI file with the lowest priority values
    """

    def __init__(self, system_properties: Optional[Dict[str, str]] = None,
                 environ: Optional[Mapping[str, str]] = None, defaults_path: Optional[str] = None):
        self.system_properties = system_properties if system_properties is not None else {}
        self.environ = environ if environ is not None else os.environ
        self.defaults_path = defaults_path or DEFAULTS_PATH

    def _overload(self, properties: Dict[str, str], config: Mapping[str, object], key: str) -> None:
        value = config.get(key)
        if isinstance(value, str):
            properties[key] = value
            return
        if self.system_properties.get(key) is not None:
            properties[key] = self.system_properties[key]
            return
        env_value = self.environ.get(key.upper())
        if env_value is not None:
            properties[key] = env_value

    def resolve(self, uri: str, config: Optional[Mapping[str, object]] = None) -> Dict[str, str]:
        """
        Resolve the properties for ``uri``.

        Args:
            uri (str): Filesystem URI, possibly with embedded credentials
            config (dict, optional): Explicit per-call properties

        Returns:
            dict: The merged properties
        """
        config = config or {}
        properties = load_defaults(self.defaults_path)
        for key in PROPS_TO_OVERLOAD:
            self._overload(properties, config, key)
        for key, value in config.items():
            if key not in PROPS_TO_OVERLOAD:
                properties[key] = value

        user_info = parse_uri(uri).user_info
        if user_info is not None:
            access_key, sep, secret_key = user_info.partition(":")
            properties[ACCESS_KEY] = access_key
            if sep:
                properties[SECRET_KEY] = secret_key
            logger.debug("Using credentials embedded in the filesystem URI")
        return properties

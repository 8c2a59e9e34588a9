# Copyright 2025 Accelerated Cloud Storage Corporation. All Rights Reserved.
"""Property names understood by the client factories and the filesystem."""

ACCESS_KEY = "bucketpath_access_key"
SECRET_KEY = "bucketpath_secret_key"
REGION = "bucketpath_region"
PROTOCOL = "bucketpath_protocol"
PATH_STYLE_ACCESS = "bucketpath_path_style_access"
MAX_CONNECTIONS = "bucketpath_max_connections"
CONNECTION_TIMEOUT = "bucketpath_connection_timeout"
SOCKET_TIMEOUT = "bucketpath_socket_timeout"
MAX_ERROR_RETRY = "bucketpath_max_error_retry"
USER_AGENT = "bucketpath_user_agent"
SIGNER_OVERRIDE = "bucketpath_signer_override"
CACHE_ATTRIBUTES_TTL = "bucketpath_cache_attributes_ttl"
CLIENT_FACTORY = "bucketpath_client_factory"

DEFAULT_HOST = "s3.amazonaws.com"
DEFAULT_CACHE_TTL = 60.0

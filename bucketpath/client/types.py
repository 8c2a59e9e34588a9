from dataclasses import dataclass, field, replace
from datetime import datetime
from typing import Dict, List, Optional

@dataclass
class Owner:
    """Canonical identity of a bucket or object owner."""
    id: str
    display_name: Optional[str] = None

@dataclass
class Bucket:
    """A bucket as reported by the store."""
    name: str
    owner: Optional[Owner] = None
    creation_date: Optional[datetime] = None

@dataclass
class ObjectMetadata:
    """Metadata for an object."""
    content_length: int
    last_modified: Optional[datetime] = None
    content_type: Optional[str] = None
    etag: Optional[str] = None
    user_metadata: Dict[str, str] = field(default_factory=dict)

    def copy(self) -> "ObjectMetadata":
        """Return an independent copy, including the user metadata map."""
        return replace(self, user_metadata=dict(self.user_metadata))

@dataclass
class ObjectSummary:
    """One entry of a listing, or a metadata fetch reduced to the same shape."""
    bucket: str
    key: str
    size: int
    last_modified: Optional[datetime] = None
    etag: Optional[str] = None
    owner: Optional[Owner] = None

@dataclass
class ListObjectsOptions:
    """Options for listing objects."""
    prefix: Optional[str] = None
    delimiter: Optional[str] = None
    continuation_token: Optional[str] = None
    max_keys: Optional[int] = None

@dataclass
class ObjectListing:
    """A single page of a listing."""
    object_summaries: List[ObjectSummary] = field(default_factory=list)
    common_prefixes: List[str] = field(default_factory=list)
    is_truncated: bool = False
    next_continuation_token: Optional[str] = None

@dataclass
class Grant:
    """Permission granted to a grantee by an ACL."""
    grantee_id: Optional[str]
    permission: str

@dataclass
class AccessControlList:
    """Owner and grants of an object."""
    owner: Optional[Owner]
    grants: List[Grant] = field(default_factory=list)

@dataclass
class CopyObjectRequest:
    """Server side copy, optionally replacing the target's metadata."""
    source_bucket: str
    source_key: str
    target_bucket: str
    target_key: str
    metadata: Optional[ObjectMetadata] = None

import os
import threading
from datetime import datetime, timezone

import pytest

from bucketpath.client.base import ObjectStoreClient
from bucketpath.client.exceptions import BucketError, ObjectError
from bucketpath.client.factory import ClientFactory
from bucketpath.client.types import (
    AccessControlList,
    Bucket,
    Grant,
    ObjectListing,
    ObjectMetadata,
    ObjectSummary,
    Owner,
)
from bucketpath.fs.cache import AttributeCache
from bucketpath.fs.registry import FileSystemContext

OWNER_ID = "owner-id"


def pytest_configure(config):
    """Configure test environment."""
    # Exercise the tracing paths in every test
    os.environ.setdefault("BUCKETPATH_TRACE_OPS", "true")


class MemoryObjectStore(ObjectStoreClient):
    """
    In-memory ObjectStoreClient.

    Records every call in ``calls`` as ``(method, bucket, key)``. Failures can
    be injected per method through ``failures``, or for one key through
    ``key_failures`` keyed by ``(method, key)``; ``page_size`` limits the size
    of listing pages.
    """

    def __init__(self, page_size=None):
        self.buckets = {}
        self.objects = {}
        self.acls = {}
        self.calls = []
        self.failures = {}
        self.key_failures = {}
        self.page_size = page_size
        self.closed = False
        self.lock = threading.Lock()

    def _record(self, method, bucket, key=None):
        with self.lock:
            self.calls.append((method, bucket, key))
        failure = self.key_failures.get((method, key)) or self.failures.get(method)
        if failure is not None:
            raise failure

    def calls_to(self, method):
        return [call for call in self.calls if call[0] == method]

    def _require_bucket(self, bucket):
        if bucket not in self.buckets:
            raise BucketError("Bucket does not exist", operation="ACCESS", status_code=404)

    def _require_object(self, bucket, key, operation):
        self._require_bucket(bucket)
        if (bucket, key) not in self.objects:
            raise ObjectError("Object does not exist", operation=operation, status_code=404)
        return self.objects[(bucket, key)]

    def add_object(self, bucket, key, data=b"", user_metadata=None, content_length=None):
        """Store an object directly; ``content_length`` may differ from ``len(data)``."""
        if bucket not in self.buckets:
            self.buckets[bucket] = Bucket(bucket, owner=Owner(OWNER_ID))
        metadata = ObjectMetadata(
            content_length=len(data) if content_length is None else content_length,
            last_modified=datetime(2024, 1, 1, tzinfo=timezone.utc),
            user_metadata=dict(user_metadata or {}),
        )
        self.objects[(bucket, key)] = (data, metadata)

    def keys(self, bucket):
        return sorted(key for b, key in self.objects if b == bucket)

    def get_object(self, bucket, key, byte_range=None):
        self._record("get_object", bucket, key)
        data, _ = self._require_object(bucket, key, "GET")
        if byte_range is not None:
            return data[byte_range[0]:byte_range[1] + 1]
        return data

    def put_object(self, bucket, key, data, metadata=None):
        self._record("put_object", bucket, key)
        self._require_bucket(bucket)
        stored = metadata.copy() if metadata is not None else ObjectMetadata(content_length=len(data))
        stored.content_length = len(data)
        stored.last_modified = datetime.now(timezone.utc)
        self.objects[(bucket, key)] = (data, stored)

    def _store_copy(self, request):
        data, metadata = self._require_object(request.source_bucket, request.source_key, "COPY")
        self._require_bucket(request.target_bucket)
        target = request.metadata.copy() if request.metadata is not None else metadata.copy()
        target.content_length = metadata.content_length
        target.last_modified = datetime.now(timezone.utc)
        self.objects[(request.target_bucket, request.target_key)] = (data, target)

    def copy_object(self, request):
        self._record("copy_object", request.source_bucket, request.source_key)
        self._store_copy(request)

    def multipart_copy(self, request, executor, part_size):
        self._record("multipart_copy", request.source_bucket, request.source_key)
        _, metadata = self._require_object(request.source_bucket, request.source_key, "COPY")
        parts = range(0, metadata.content_length, part_size)
        futures = [executor.submit(lambda offset: offset, offset) for offset in parts]
        for future in futures:
            future.result()
        self._store_copy(request)

    def delete_object(self, bucket, key):
        self._record("delete_object", bucket, key)
        self._require_bucket(bucket)
        with self.lock:
            self.objects.pop((bucket, key), None)

    def list_objects(self, bucket, options):
        self._record("list_objects", bucket, options.prefix)
        self._require_bucket(bucket)
        prefix = options.prefix or ""
        entries = []
        seen_prefixes = set()
        for key in self.keys(bucket):
            if not key.startswith(prefix):
                continue
            rest = key[len(prefix):]
            if options.delimiter and options.delimiter in rest:
                common = prefix + rest[:rest.index(options.delimiter) + 1]
                if common not in seen_prefixes:
                    seen_prefixes.add(common)
                    entries.append(("prefix", common))
                continue
            entries.append(("key", key))

        start = int(options.continuation_token or 0)
        limits = [n for n in (options.max_keys, self.page_size) if n]
        end = start + min(limits) if limits else len(entries)
        page = entries[start:end]

        listing = ObjectListing()
        for kind, value in page:
            if kind == "prefix":
                listing.common_prefixes.append(value)
            else:
                data, metadata = self.objects[(bucket, value)]
                listing.object_summaries.append(ObjectSummary(
                    bucket=bucket, key=value, size=metadata.content_length, last_modified=metadata.last_modified,
                ))
        if end < len(entries):
            listing.is_truncated = True
            listing.next_continuation_token = str(end)
        return listing

    def get_object_metadata(self, bucket, key):
        self._record("get_object_metadata", bucket, key)
        _, metadata = self._require_object(bucket, key, "HEAD")
        return metadata.copy()

    def get_object_acl(self, bucket, key):
        self._record("get_object_acl", bucket, key)
        self._require_object(bucket, key, "ACL")
        acl = self.acls.get((bucket, key))
        if acl is None:
            acl = AccessControlList(owner=Owner(OWNER_ID), grants=[Grant(OWNER_ID, "FULL_CONTROL")])
        return acl

    def create_bucket(self, bucket):
        self._record("create_bucket", bucket)
        if bucket in self.buckets:
            raise BucketError("Bucket already exists", operation="CREATE", status_code=409)
        self.buckets[bucket] = Bucket(bucket, owner=Owner(OWNER_ID))

    def get_bucket(self, bucket):
        self._record("get_bucket", bucket)
        return self.buckets.get(bucket)

    def close(self):
        self.closed = True


class StaticClientFactory(ClientFactory):
    """Hands out one prepared client and remembers what it was asked for."""

    def __init__(self, client):
        self.client = client
        self.requests = []

    def get_client(self, host, properties):
        self.requests.append((host, dict(properties)))
        return self.client


class ManualClock:
    def __init__(self, now=1_000_000.0):
        self.now = now

    def __call__(self):
        return self.now

    def advance(self, seconds):
        self.now += seconds


@pytest.fixture
def store():
    """Store with one empty bucket named ``bucket``."""
    memory = MemoryObjectStore()
    memory.buckets["bucket"] = Bucket("bucket", owner=Owner(OWNER_ID))
    return memory


@pytest.fixture
def clock():
    return ManualClock()


@pytest.fixture
def factory(store):
    return StaticClientFactory(store)


@pytest.fixture
def context(factory, clock, tmp_path):
    """Context isolated from the process environment and the packaged defaults."""
    return FileSystemContext(
        environ={},
        defaults_path=str(tmp_path / "missing.ini"),
        client_factory=factory,
        cache=AttributeCache(clock=clock),
    )


@pytest.fixture
def filesystem(context):
    fs = context.registry.open("s3://endpoint.test/")
    yield fs
    fs.close()

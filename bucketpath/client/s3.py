# Copyright 2025 Accelerated Cloud Storage Corporation. All Rights Reserved.
"""
S3 implementation of the object store client.

This module adapts a boto3 ``s3`` client to :class:`ObjectStoreClient`.
It works against AWS S3 and S3-compatible endpoints (MinIO, Ceph, R2).

Classes:
    S3Client: ObjectStoreClient backed by boto3.
"""

import math
import time
from concurrent.futures import Executor, wait, FIRST_EXCEPTION
from typing import Any, Dict, List, Optional, Tuple

import boto3
from botocore.config import Config as BotoConfig

from ..utils import logger
from .base import ObjectStoreClient
from .errors import wrap_client_errors
from .exceptions import StoreError
from .properties import (
    ACCESS_KEY, SECRET_KEY, REGION, PROTOCOL, PATH_STYLE_ACCESS, MAX_CONNECTIONS,
    CONNECTION_TIMEOUT, SOCKET_TIMEOUT, MAX_ERROR_RETRY, USER_AGENT, SIGNER_OVERRIDE, DEFAULT_HOST,
)
from .types import (
    AccessControlList,
    Bucket,
    CopyObjectRequest,
    Grant,
    ListObjectsOptions,
    ObjectListing,
    ObjectMetadata,
    ObjectSummary,
    Owner,
)

# Limits of one multi-part upload
MAX_PARTS = 10000
MAX_PART_SIZE = 5 * 1024 * 1024 * 1024


def _owner(raw: Optional[Dict[str, Any]]) -> Optional[Owner]:
    if not raw or "ID" not in raw:
        return None
    return Owner(id=raw["ID"], display_name=raw.get("DisplayName"))


def _metadata_args(metadata: Optional[ObjectMetadata]) -> Dict[str, Any]:
    args = {}
    if metadata is None:
        return args
    args["Metadata"] = dict(metadata.user_metadata)
    if metadata.content_type:
        args["ContentType"] = metadata.content_type
    return args


class S3Client(ObjectStoreClient):
    """
    Object store client for S3-compatible services.

    Attributes:
        client: The underlying boto3 ``s3`` client
        region (str): Region used when creating buckets
    """

    def __init__(self, client, region: Optional[str] = None):
        self.client = client
        self.region = region

    @classmethod
    def from_properties(cls, host: Optional[str], properties: Dict[str, str]) -> "S3Client":
        """
        Build a client from resolved filesystem properties.

        Args:
            host (str): Endpoint host; the default AWS host uses boto3's own endpoint resolution
            properties (dict): Resolved ``bucketpath_*`` properties

        Returns:
            S3Client: A client ready for use
        """
        config_args = {}
        if properties.get(CONNECTION_TIMEOUT):
            config_args["connect_timeout"] = float(properties[CONNECTION_TIMEOUT])
        if properties.get(SOCKET_TIMEOUT):
            config_args["read_timeout"] = float(properties[SOCKET_TIMEOUT])
        if properties.get(MAX_CONNECTIONS):
            config_args["max_pool_connections"] = int(properties[MAX_CONNECTIONS])
        if properties.get(MAX_ERROR_RETRY):
            config_args["retries"] = {"max_attempts": int(properties[MAX_ERROR_RETRY]), "mode": "standard"}
        if properties.get(USER_AGENT):
            config_args["user_agent_extra"] = properties[USER_AGENT]
        if properties.get(SIGNER_OVERRIDE):
            config_args["signature_version"] = properties[SIGNER_OVERRIDE]
        if str(properties.get(PATH_STYLE_ACCESS, "")).lower() in ("true", "1", "yes"):
            config_args["s3"] = {"addressing_style": "path"}

        endpoint_url = None
        if host and host != DEFAULT_HOST:
            endpoint_url = f"{properties.get(PROTOCOL) or 'https'}://{host}"

        region = properties.get(REGION)
        session = boto3.session.Session(
            aws_access_key_id=properties.get(ACCESS_KEY),
            aws_secret_access_key=properties.get(SECRET_KEY),
            region_name=region,
        )
        logger.info(f"Creating S3 client for endpoint {endpoint_url or DEFAULT_HOST}")
        client = session.client("s3", endpoint_url=endpoint_url, config=BotoConfig(**config_args))
        return cls(client, region=region)

    @wrap_client_errors("GET")
    def get_object(self, bucket: str, key: str, byte_range: Optional[Tuple[int, int]] = None) -> bytes:
        args = {"Bucket": bucket, "Key": key}
        if byte_range is not None:
            args["Range"] = f"bytes={byte_range[0]}-{byte_range[1]}"
        response = self.client.get_object(**args)
        return response["Body"].read()

    @wrap_client_errors("PUT")
    def put_object(self, bucket: str, key: str, data: bytes, metadata: Optional[ObjectMetadata] = None) -> None:
        self.client.put_object(Bucket=bucket, Key=key, Body=data, **_metadata_args(metadata))

    @wrap_client_errors("COPY")
    def copy_object(self, request: CopyObjectRequest) -> None:
        args = _metadata_args(request.metadata)
        if args:
            args["MetadataDirective"] = "REPLACE"
        self.client.copy_object(
            CopySource={"Bucket": request.source_bucket, "Key": request.source_key},
            Bucket=request.target_bucket,
            Key=request.target_key,
            **args,
        )

    @wrap_client_errors("COPY")
    def multipart_copy(self, request: CopyObjectRequest, executor: Executor, part_size: int) -> None:
        """
        Copy an object with parallel ``UploadPartCopy`` requests.

        Args:
            request (CopyObjectRequest): Source, target and metadata
            executor (Executor): Pool that runs the part copies
            part_size (int): Preferred size of each copied part in bytes. It is
                raised when the object would otherwise need more than
                :data:`MAX_PARTS` parts.

        Raises:
            StoreError: If any request fails; the multi-part upload is aborted first
        """
        metadata = request.metadata
        if metadata is None:
            metadata = self.get_object_metadata(request.source_bucket, request.source_key)
        size = metadata.content_length
        copy_source = {"Bucket": request.source_bucket, "Key": request.source_key}

        needed = min(max(part_size, math.ceil(size / MAX_PARTS)), MAX_PART_SIZE)
        if needed != part_size:
            logger.debug(f"multipart_copy: part size {part_size} -> {needed} for {size} bytes")
            part_size = needed

        upload = self.client.create_multipart_upload(
            Bucket=request.target_bucket, Key=request.target_key, **_metadata_args(metadata)
        )
        upload_id = upload["UploadId"]
        logger.debug(f"multipart_copy: started upload {upload_id} for {request.target_key} ({size} bytes)")

        start_time = time.time()
        futures = []
        try:
            part_number = 1
            for offset in range(0, size, part_size):
                last_byte = min(offset + part_size, size) - 1
                futures.append(executor.submit(
                    self._copy_part, request, copy_source, upload_id, part_number, offset, last_byte
                ))
                part_number += 1

            done, _ = wait(futures, return_when=FIRST_EXCEPTION)
            failed = [f for f in done if f.exception() is not None]
            if failed:
                raise failed[0].exception()

            parts = sorted((f.result() for f in futures), key=lambda p: p["PartNumber"])
            self.client.complete_multipart_upload(
                Bucket=request.target_bucket,
                Key=request.target_key,
                UploadId=upload_id,
                MultipartUpload={"Parts": parts},
            )
        except BaseException as e:
            for future in futures:
                future.cancel()
            if isinstance(e, Exception):
                wait(futures)
            logger.error(f"multipart_copy: aborting upload {upload_id} for {request.target_key}")
            self.client.abort_multipart_upload(
                Bucket=request.target_bucket, Key=request.target_key, UploadId=upload_id
            )
            raise
        logger.info(f"multipart_copy of {len(parts)} parts completed in {time.time() - start_time:.4f} seconds")

    def _copy_part(self, request: CopyObjectRequest, copy_source, upload_id: str,
                   part_number: int, first_byte: int, last_byte: int) -> Dict[str, Any]:
        response = self.client.upload_part_copy(
            Bucket=request.target_bucket,
            Key=request.target_key,
            CopySource=copy_source,
            CopySourceRange=f"bytes={first_byte}-{last_byte}",
            PartNumber=part_number,
            UploadId=upload_id,
        )
        return {"ETag": response["CopyPartResult"]["ETag"], "PartNumber": part_number}

    @wrap_client_errors("DELETE")
    def delete_object(self, bucket: str, key: str) -> None:
        self.client.delete_object(Bucket=bucket, Key=key)

    @wrap_client_errors("LIST")
    def list_objects(self, bucket: str, options: ListObjectsOptions) -> ObjectListing:
        args = {"Bucket": bucket, "FetchOwner": True}
        if options.prefix:
            args["Prefix"] = options.prefix
        if options.delimiter:
            args["Delimiter"] = options.delimiter
        if options.continuation_token:
            args["ContinuationToken"] = options.continuation_token
        if options.max_keys:
            args["MaxKeys"] = options.max_keys
        response = self.client.list_objects_v2(**args)

        summaries: List[ObjectSummary] = [
            ObjectSummary(
                bucket=bucket,
                key=item["Key"],
                size=item.get("Size", 0),
                last_modified=item.get("LastModified"),
                etag=item.get("ETag"),
                owner=_owner(item.get("Owner")),
            )
            for item in response.get("Contents", [])
        ]
        prefixes = [item["Prefix"] for item in response.get("CommonPrefixes", [])]
        return ObjectListing(
            object_summaries=summaries,
            common_prefixes=prefixes,
            is_truncated=response.get("IsTruncated", False),
            next_continuation_token=response.get("NextContinuationToken"),
        )

    @wrap_client_errors("HEAD")
    def get_object_metadata(self, bucket: str, key: str) -> ObjectMetadata:
        response = self.client.head_object(Bucket=bucket, Key=key)
        return ObjectMetadata(
            content_length=response.get("ContentLength", 0),
            last_modified=response.get("LastModified"),
            content_type=response.get("ContentType"),
            etag=response.get("ETag"),
            user_metadata=dict(response.get("Metadata", {})),
        )

    @wrap_client_errors("ACL")
    def get_object_acl(self, bucket: str, key: str) -> AccessControlList:
        response = self.client.get_object_acl(Bucket=bucket, Key=key)
        grants = [
            Grant(grantee_id=grant.get("Grantee", {}).get("ID"), permission=grant["Permission"])
            for grant in response.get("Grants", [])
        ]
        return AccessControlList(owner=_owner(response.get("Owner")), grants=grants)

    @wrap_client_errors("CREATE")
    def create_bucket(self, bucket: str) -> None:
        args = {"Bucket": bucket}
        if self.region and self.region != "us-east-1":
            args["CreateBucketConfiguration"] = {"LocationConstraint": self.region}
        self.client.create_bucket(**args)

    def get_bucket(self, bucket: str) -> Optional[Bucket]:
        try:
            response = self._get_bucket_acl(bucket)
        except StoreError as e:
            if e.is_not_found:
                return None
            raise
        return Bucket(name=bucket, owner=_owner(response.get("Owner")))

    @wrap_client_errors("ACCESS")
    def _get_bucket_acl(self, bucket: str) -> Dict[str, Any]:
        return self.client.get_bucket_acl(Bucket=bucket)

    def close(self) -> None:
        """Close the connection pool of the underlying client."""
        close = getattr(self.client, "close", None)
        if callable(close):
            close()

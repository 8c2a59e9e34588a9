import io
from concurrent.futures import ThreadPoolExecutor
from datetime import datetime, timezone
from unittest import mock

import boto3
import pytest
from botocore.exceptions import ClientError, NoCredentialsError
from botocore.response import StreamingBody
from botocore.stub import ANY, Stubber

from bucketpath.client.errors import convert_client_error
from bucketpath.client.exceptions import AuthenticationError, BucketError, ObjectError, StoreError
from bucketpath.client.properties import MAX_ERROR_RETRY, PATH_STYLE_ACCESS, PROTOCOL, REGION
from bucketpath.client.s3 import MAX_PARTS, S3Client
from bucketpath.client.types import CopyObjectRequest, ListObjectsOptions, ObjectMetadata


@pytest.fixture
def boto_client():
    return boto3.client(
        "s3",
        region_name="us-east-1",
        aws_access_key_id="testing",
        aws_secret_access_key="testing",
    )


@pytest.fixture
def stubber(boto_client):
    with Stubber(boto_client) as stub:
        yield stub
        stub.assert_no_pending_responses()


@pytest.fixture
def client(boto_client, stubber):
    return S3Client(boto_client, region="us-east-1")


def client_error(code, status):
    return ClientError({"Error": {"Code": code, "Message": code},
                        "ResponseMetadata": {"HTTPStatusCode": status}}, "Operation")


def test_get_object_range(client, stubber):
    stubber.add_response(
        "get_object",
        {"Body": StreamingBody(io.BytesIO(b"ell"), 3)},
        {"Bucket": "bucket", "Key": "key", "Range": "bytes=1-3"},
    )

    assert client.get_object("bucket", "key", (1, 3)) == b"ell"


def test_head_missing_object(client, stubber):
    stubber.add_client_error("head_object", service_error_code="404", http_status_code=404)

    with pytest.raises(ObjectError) as excinfo:
        client.get_object_metadata("bucket", "missing")
    assert excinfo.value.is_not_found


def test_object_metadata(client, stubber):
    modified = datetime(2024, 5, 1, tzinfo=timezone.utc)
    stubber.add_response(
        "head_object",
        {"ContentLength": 42, "LastModified": modified, "ETag": '"abc"', "Metadata": {"k": "v"}},
        {"Bucket": "bucket", "Key": "key"},
    )

    metadata = client.get_object_metadata("bucket", "key")
    assert metadata.content_length == 42
    assert metadata.last_modified == modified
    assert metadata.user_metadata == {"k": "v"}


def test_put_object_sends_user_metadata(client, stubber):
    stubber.add_response(
        "put_object",
        {},
        {"Bucket": "bucket", "Key": "key", "Body": b"data", "Metadata": {"k": "v"}},
    )

    client.put_object("bucket", "key", b"data", ObjectMetadata(content_length=4, user_metadata={"k": "v"}))


def test_list_objects(client, stubber):
    modified = datetime(2024, 5, 1, tzinfo=timezone.utc)
    stubber.add_response(
        "list_objects_v2",
        {
            "Contents": [{"Key": "a/file", "Size": 3, "LastModified": modified, "ETag": '"e"',
                          "Owner": {"ID": "owner-id", "DisplayName": "owner"}}],
            "CommonPrefixes": [{"Prefix": "a/sub/"}],
            "IsTruncated": True,
            "NextContinuationToken": "token-2",
        },
        {"Bucket": "bucket", "FetchOwner": True, "Prefix": "a/", "Delimiter": "/"},
    )

    listing = client.list_objects("bucket", ListObjectsOptions(prefix="a/", delimiter="/"))
    assert [s.key for s in listing.object_summaries] == ["a/file"]
    assert listing.object_summaries[0].owner.id == "owner-id"
    assert listing.common_prefixes == ["a/sub/"]
    assert listing.is_truncated
    assert listing.next_continuation_token == "token-2"


def test_copy_object_replaces_metadata(client, stubber):
    stubber.add_response(
        "copy_object",
        {},
        {
            "CopySource": {"Bucket": "src", "Key": "a"},
            "Bucket": "dst",
            "Key": "b",
            "Metadata": {"k": "v"},
            "MetadataDirective": "REPLACE",
        },
    )

    metadata = ObjectMetadata(content_length=1, user_metadata={"k": "v"})
    client.copy_object(CopyObjectRequest("src", "a", "dst", "b", metadata=metadata))


def test_multipart_copy(client, stubber):
    stubber.add_response(
        "create_multipart_upload",
        {"UploadId": "upload-1"},
        {"Bucket": "dst", "Key": "b", "Metadata": {}},
    )
    for part, byte_range, etag in ((1, "bytes=0-5", '"e1"'), (2, "bytes=6-9", '"e2"')):
        stubber.add_response(
            "upload_part_copy",
            {"CopyPartResult": {"ETag": etag}},
            {"Bucket": "dst", "Key": "b", "CopySource": {"Bucket": "src", "Key": "a"},
             "CopySourceRange": byte_range, "PartNumber": part, "UploadId": "upload-1"},
        )
    stubber.add_response(
        "complete_multipart_upload",
        {},
        {"Bucket": "dst", "Key": "b", "UploadId": "upload-1",
         "MultipartUpload": {"Parts": [{"ETag": '"e1"', "PartNumber": 1}, {"ETag": '"e2"', "PartNumber": 2}]}},
    )

    request = CopyObjectRequest("src", "a", "dst", "b", metadata=ObjectMetadata(content_length=10))
    with ThreadPoolExecutor(max_workers=1) as executor:
        client.multipart_copy(request, executor, part_size=6)


def test_multipart_copy_aborts_on_failure(client, stubber):
    stubber.add_response("create_multipart_upload", {"UploadId": "upload-1"}, {"Bucket": "dst", "Key": "b",
                                                                              "Metadata": {}})
    stubber.add_client_error("upload_part_copy", service_error_code="InternalError", http_status_code=500)
    stubber.add_response("abort_multipart_upload", {}, {"Bucket": "dst", "Key": "b", "UploadId": "upload-1"})

    request = CopyObjectRequest("src", "a", "dst", "b", metadata=ObjectMetadata(content_length=5))
    with ThreadPoolExecutor(max_workers=1) as executor:
        with pytest.raises(StoreError) as excinfo:
            client.multipart_copy(request, executor, part_size=6)
    assert excinfo.value.status_code == 500


def test_multipart_copy_aborts_when_complete_fails(client, stubber):
    stubber.add_response("create_multipart_upload", {"UploadId": "upload-1"}, {"Bucket": "dst", "Key": "b",
                                                                              "Metadata": {}})
    stubber.add_response("upload_part_copy", {"CopyPartResult": {"ETag": '"e1"'}},
                         {"Bucket": "dst", "Key": "b", "CopySource": {"Bucket": "src", "Key": "a"},
                          "CopySourceRange": "bytes=0-4", "PartNumber": 1, "UploadId": "upload-1"})
    stubber.add_client_error("complete_multipart_upload", service_error_code="InternalError", http_status_code=500)
    stubber.add_response("abort_multipart_upload", {}, {"Bucket": "dst", "Key": "b", "UploadId": "upload-1"})

    request = CopyObjectRequest("src", "a", "dst", "b", metadata=ObjectMetadata(content_length=5))
    with ThreadPoolExecutor(max_workers=1) as executor:
        with pytest.raises(StoreError) as excinfo:
            client.multipart_copy(request, executor, part_size=6)
    assert excinfo.value.status_code == 500


def fake_multipart_client():
    boto = mock.MagicMock()
    boto.create_multipart_upload.return_value = {"UploadId": "upload-1"}
    boto.upload_part_copy.return_value = {"CopyPartResult": {"ETag": '"e"'}}
    return boto


def test_multipart_copy_aborts_on_keyboard_interrupt():
    boto = fake_multipart_client()
    boto.complete_multipart_upload.side_effect = KeyboardInterrupt()
    client = S3Client(boto)

    request = CopyObjectRequest("src", "a", "dst", "b", metadata=ObjectMetadata(content_length=40 * 1024 * 1024))
    with ThreadPoolExecutor(max_workers=2) as executor:
        with pytest.raises(KeyboardInterrupt):
            client.multipart_copy(request, executor, part_size=16 * 1024 * 1024)

    boto.abort_multipart_upload.assert_called_once_with(Bucket="dst", Key="b", UploadId="upload-1")


def test_multipart_copy_grows_part_size_for_huge_objects():
    boto = fake_multipart_client()
    client = S3Client(boto)
    size = 200 * 1024 * 1024 * 1024

    request = CopyObjectRequest("src", "a", "dst", "b", metadata=ObjectMetadata(content_length=size))
    with ThreadPoolExecutor(max_workers=4) as executor:
        client.multipart_copy(request, executor, part_size=16 * 1024 * 1024)

    assert boto.upload_part_copy.call_count == MAX_PARTS
    ranges = sorted((c.kwargs["PartNumber"], c.kwargs["CopySourceRange"])
                    for c in boto.upload_part_copy.call_args_list)
    assert ranges[-1][0] == MAX_PARTS
    assert ranges[-1][1].endswith(f"-{size - 1}")
    parts = boto.complete_multipart_upload.call_args.kwargs["MultipartUpload"]["Parts"]
    assert len(parts) == MAX_PARTS
    boto.abort_multipart_upload.assert_not_called()


def test_get_bucket(client, stubber):
    stubber.add_response(
        "get_bucket_acl",
        {"Owner": {"ID": "owner-id"}, "Grants": []},
        {"Bucket": "bucket"},
    )
    stubber.add_client_error("get_bucket_acl", service_error_code="NoSuchBucket", http_status_code=404)

    assert client.get_bucket("bucket").owner.id == "owner-id"
    assert client.get_bucket("missing") is None


def test_get_bucket_propagates_other_errors(client, stubber):
    stubber.add_client_error("get_bucket_acl", service_error_code="AccessDenied", http_status_code=403)

    with pytest.raises(StoreError):
        client.get_bucket("bucket")


def test_object_acl(client, stubber):
    stubber.add_response(
        "get_object_acl",
        {"Owner": {"ID": "owner-id"},
         "Grants": [{"Grantee": {"ID": "owner-id", "Type": "CanonicalUser"}, "Permission": "FULL_CONTROL"}]},
        {"Bucket": "bucket", "Key": "key"},
    )

    acl = client.get_object_acl("bucket", "key")
    assert acl.owner.id == "owner-id"
    assert acl.grants[0].permission == "FULL_CONTROL"


def test_delete_object(client, stubber):
    stubber.add_response("delete_object", {}, {"Bucket": "bucket", "Key": ANY})
    client.delete_object("bucket", "key")


def test_convert_client_error():
    assert isinstance(convert_client_error(client_error("NoSuchBucket", 404)), BucketError)
    assert convert_client_error(client_error("NoSuchKey", 404)).is_not_found

    denied = convert_client_error(client_error("AccessDenied", 403), "GET")
    assert isinstance(denied, ObjectError)
    assert denied.code == "ERR_OBJECT_GET"
    assert not denied.is_not_found

    assert isinstance(convert_client_error(client_error("InvalidAccessKeyId", 403)), AuthenticationError)
    assert isinstance(convert_client_error(NoCredentialsError()), AuthenticationError)


def test_from_properties():
    client = S3Client.from_properties("minio.local:9000", {
        PROTOCOL: "http",
        REGION: "eu-west-1",
        PATH_STYLE_ACCESS: "true",
        MAX_ERROR_RETRY: "2",
    })

    assert client.region == "eu-west-1"
    assert client.client.meta.endpoint_url == "http://minio.local:9000"
    assert client.client.meta.config.s3["addressing_style"] == "path"

import pytest

from bucketpath.client.properties import (
    ACCESS_KEY,
    CACHE_ATTRIBUTES_TTL,
    CLIENT_FACTORY,
    PROTOCOL,
    REGION,
    SECRET_KEY,
)
from bucketpath.client.s3 import S3Client
from bucketpath.fs.config import PropertyResolver, filesystem_key, load_defaults, parse_uri
from bucketpath.fs.exceptions import (
    FileSystemAlreadyExistsError,
    FileSystemConfigurationError,
    FileSystemNotFoundError,
)
from bucketpath.fs.registry import FileSystemContext


@pytest.fixture
def defaults_file(tmp_path):
    path = tmp_path / "defaults.ini"
    path.write_text(
        "[bucketpath]\n"
        "bucketpath_region = from-file\n"
        "bucketpath_protocol = https\n"
        "bucketpath_user_agent =\n"
        "bucketpath_signer_override = S3SignerType\n"
    )
    return str(path)


def test_parse_uri():
    parsed = parse_uri("s3://access:sec@ret@host.example:9000/bucket/key")
    assert parsed.user_info == "access:sec"
    assert parsed.host == "ret@host.example:9000"
    assert parse_uri("s3:///bucket").host is None
    assert parse_uri("s3://host").path == ""


@pytest.mark.parametrize("uri", ["", "http://host/", "s3:/host"])
def test_parse_uri_rejects(uri):
    with pytest.raises(FileSystemConfigurationError):
        parse_uri(uri)


def test_filesystem_key():
    assert filesystem_key("s3://host/", {}) == "host"
    assert filesystem_key("s3://host/", {ACCESS_KEY: "AK"}) == "AK@host"
    assert filesystem_key("s3://AK:SK@host/", {ACCESS_KEY: "other"}) == "AK:SK@host"
    assert filesystem_key("s3:///", {}) == "s3.amazonaws.com"


def test_load_defaults(defaults_file, tmp_path):
    values = load_defaults(defaults_file)
    assert values[REGION] == "from-file"
    assert "bucketpath_user_agent" not in values
    assert load_defaults(str(tmp_path / "nope.ini")) == {}


def test_property_precedence(defaults_file):
    resolver = PropertyResolver(
        system_properties={REGION: "from-system", PROTOCOL: "http"},
        environ={"BUCKETPATH_REGION": "from-env", "BUCKETPATH_PROTOCOL": "from-env",
                 "BUCKETPATH_SIGNER_OVERRIDE": "from-env"},
        defaults_path=defaults_file,
    )

    props = resolver.resolve("s3://host/", {REGION: "from-map"})
    assert props[REGION] == "from-map"
    assert props[PROTOCOL] == "http"
    assert props["bucketpath_signer_override"] == "from-env"

    props = resolver.resolve("s3://host/", {})
    assert props[REGION] == "from-system"


def test_non_string_map_values_do_not_override(defaults_file):
    resolver = PropertyResolver(environ={}, defaults_path=defaults_file)

    props = resolver.resolve("s3://host/", {REGION: 5, "custom": 7})
    assert props[REGION] == "from-file"
    assert props["custom"] == 7


def test_uri_credentials_override(defaults_file):
    resolver = PropertyResolver(environ={ACCESS_KEY.upper(): "env-ak", SECRET_KEY.upper(): "env-sk"},
                                defaults_path=defaults_file)

    props = resolver.resolve("s3://uri-ak:uri-sk@host/", {})
    assert props[ACCESS_KEY] == "uri-ak"
    assert props[SECRET_KEY] == "uri-sk"


def test_open_lookup_close(context):
    fs = context.registry.open("s3://endpoint.test/")

    assert context.registry.lookup("s3://endpoint.test/") is fs
    assert context.registry.get_or_open("s3://endpoint.test/") is fs
    with pytest.raises(FileSystemAlreadyExistsError):
        context.registry.open("s3://endpoint.test/")

    fs.close()
    with pytest.raises(FileSystemNotFoundError):
        context.registry.lookup("s3://endpoint.test/")

    reopened = context.registry.open("s3://endpoint.test/")
    assert reopened is not fs
    assert reopened.is_open
    reopened.close()


def test_identities_are_independent(context):
    anonymous = context.registry.open("s3://endpoint.test/")
    keyed = context.registry.open("s3://endpoint.test/", {ACCESS_KEY: "AK", SECRET_KEY: "SK"})

    assert anonymous is not keyed
    assert keyed.key == "AK@endpoint.test"
    assert len(context.registry) == 2


def test_close_of_stale_instance_keeps_new_one(context):
    first = context.registry.open("s3://endpoint.test/")
    first.close()
    second = context.registry.open("s3://endpoint.test/")

    context.registry.close(first)
    assert context.registry.lookup("s3://endpoint.test/") is second


def test_get_path(context):
    fs = context.registry.open("s3://endpoint.test/")
    path = context.registry.get_path("s3://endpoint.test/bucket/a/b")

    assert path.filesystem is fs
    assert str(path) == "/bucket/a/b"


def test_partial_credentials_rejected(context):
    with pytest.raises(FileSystemConfigurationError):
        context.registry.open("s3://endpoint.test/", {ACCESS_KEY: "AK"})


def test_invalid_cache_ttl(context):
    with pytest.raises(FileSystemConfigurationError):
        context.registry.open("s3://endpoint.test/", {CACHE_ATTRIBUTES_TTL: "soon"})


def test_cache_ttl_property(context):
    fs = context.registry.open("s3://endpoint.test/", {CACHE_ATTRIBUTES_TTL: "5"})
    assert fs.cache_config.ttl == 5.0


def test_context_factory_receives_host_and_properties(context, factory):
    context.registry.open("s3://endpoint.test/", {REGION: "eu-west-1"})

    host, properties = factory.requests[-1]
    assert host == "endpoint.test"
    assert properties[REGION] == "eu-west-1"


def test_client_factory_property_wins(context, factory):
    fs = context.registry.open(
        "s3://minio.local:9000/",
        {CLIENT_FACTORY: "bucketpath.client.factory:S3ClientFactory", REGION: "us-east-1", PROTOCOL: "http"},
    )

    assert isinstance(fs.client, S3Client)
    assert fs.client.client.meta.endpoint_url == "http://minio.local:9000"
    assert factory.requests == []
    fs.close()


def test_bad_client_factory(context):
    with pytest.raises(FileSystemConfigurationError):
        context.registry.open("s3://endpoint.test/", {CLIENT_FACTORY: "no.such.module:Factory"})


def test_default_context_reads_packaged_defaults():
    context = FileSystemContext(environ={})

    props = context.properties.resolve("s3://host/")
    assert props[PROTOCOL] == "https"

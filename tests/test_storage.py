import os
import stat
from datetime import datetime, timezone

import pytest

from s5storage.storage import (
    Bucket,
    GivenObjectNotFoundError,
    Metadata,
    NoObjectFoundError,
    NotSupportedError,
    ObjectType,
    Options,
    Storage,
    StorageClass,
    StorageError,
    StorageObject,
    should_process_url,
)
from s5storage.url import parse


@pytest.mark.parametrize(
    "mode, expected",
    [
        (0, "file"),
        (stat.S_IFREG | 0o644, "file"),
        (stat.S_IFDIR | 0o755, "directory"),
        (stat.S_IFLNK | 0o777, "symlink"),
        (stat.S_IFIFO, ""),
    ],
)
def test_object_type_str(mode, expected):
    assert str(ObjectType(mode)) == expected


def test_object_type_predicates():
    assert ObjectType(stat.S_IFDIR).is_dir() is True
    assert ObjectType(stat.S_IFREG).is_dir() is False
    assert ObjectType(stat.S_IFLNK).is_symlink() is True
    assert ObjectType().is_symlink() is False


def test_storage_class_glacier():
    assert StorageClass("GLACIER").is_glacier() is True
    assert StorageClass("STANDARD").is_glacier() is False
    assert StorageClass().is_glacier() is False


def test_error_messages():
    assert str(GivenObjectNotFoundError()) == "given object not found"
    assert str(NoObjectFoundError()) == "no object found"
    assert isinstance(NoObjectFoundError(), StorageError)


def test_not_supported_error_message():
    err = NotSupportedError("local", "select")
    assert str(err) == '"select" is not supported on "local" storage'
    assert err.method == "select"


def test_metadata_defaults_empty():
    md = Metadata()
    assert (md.acl, md.sse, md.sse_key_id, md.content_type) == ("", "", "", "")


def test_metadata_keys():
    md = Metadata()
    md.sse = "aws:kms"
    md.sse_key_id = "key-id"
    md.acl = "bucket-owner-full-control"
    md.storage_class = "GLACIER"
    assert md["EncryptionMethod"] == "aws:kms"
    assert md["EncryptionKeyID"] == "key-id"
    assert md["ACL"] == "bucket-owner-full-control"
    assert md["StorageClass"] == "GLACIER"
    assert md.sse == "aws:kms"


def test_options_with_region_and_bucket():
    opts = Options(max_retries=3)
    regional = opts.with_region("us-west-2").with_bucket("bucket")
    assert opts.region == ""
    assert regional.region == "us-west-2"
    assert regional.bucket == "bucket"
    assert regional.max_retries == 3


def test_options_hashable_as_cache_key():
    cache = {Options(endpoint="example.com"): 1}
    assert cache[Options(endpoint="example.com")] == 1


def test_storage_object_str_and_json_omits_empty():
    obj = StorageObject(url=parse("s3://bucket/key"))
    assert str(obj) == "s3://bucket/key"
    assert obj.to_json() == '{"key":"s3://bucket/key","type":"file"}'


def test_storage_object_json_fields():
    obj = StorageObject(
        url=parse("s3://bucket/key"),
        etag="abc",
        size=22,
        storage_class=StorageClass("GLACIER"),
    )
    assert obj.to_json() == (
        '{"key":"s3://bucket/key","etag":"abc","type":"file",'
        '"size":22,"storage_class":"GLACIER"}'
    )


def test_storage_object_json_error():
    obj = StorageObject(err=NoObjectFoundError())
    assert obj.to_json() == '{"type":"file","error":"no object found"}'


def test_bucket_str():
    bucket = Bucket(datetime(2020, 1, 2, 3, 4, 5), "bucket")
    assert str(bucket) == "2020/01/02 03:04:05  s3://bucket"


def test_bucket_json():
    bucket = Bucket(datetime(2020, 1, 2, 3, 4, 5, tzinfo=timezone.utc), "bucket")
    assert bucket.to_json() == '{"created_at":"2020-01-02T03:04:05Z","name":"bucket"}'


def test_storage_is_abstract():
    with pytest.raises(TypeError):
        Storage()


def test_should_process_remote_and_follow():
    assert should_process_url(parse("s3://bucket/key"), False) is True
    assert should_process_url(parse("/nonexistent/path/x"), True) is True


def test_should_process_local(tmp_path):
    target = tmp_path / "file.txt"
    target.write_text("content")
    link = tmp_path / "link.txt"
    os.symlink(target, link)
    assert should_process_url(parse(str(target)), False) is True
    assert should_process_url(parse(str(link)), False) is False
    assert should_process_url(parse(str(tmp_path / "missing")), False) is False
"""Storage-independent types shared by local filesystem and S3 clients."""

from __future__ import annotations

import abc
import json
import os
import stat as statmod
from dataclasses import dataclass, field, replace
from datetime import datetime
from typing import Iterable, Iterator

from . import strutil
from .url import URL

_DATE_FORMAT = "%Y/%m/%d %H:%M:%S"


class StorageError(Exception):
    """Base class for storage errors."""


class GivenObjectNotFoundError(StorageError):
    """A specified object does not exist."""

    def __init__(self, message: str = "given object not found") -> None:
        super().__init__(message)


class NoObjectFoundError(StorageError):
    """No objects were found under a given directory or prefix."""

    def __init__(self, message: str = "no object found") -> None:
        super().__init__(message)


class NotSupportedError(StorageError):
    """An operation is not supported by a storage type."""

    def __init__(self, api_type: str, method: str) -> None:
        self.api_type = api_type
        self.method = method
        super().__init__(
            f"{json.dumps(method)} is not supported on {json.dumps(api_type)} storage"
        )


@dataclass(frozen=True)
class ObjectType:
    """The kind of a storage object, described by its stat mode bits."""

    mode: int = 0

    def is_dir(self) -> bool:
        """Report whether the object is a directory."""
        return statmod.S_ISDIR(self.mode)

    def is_symlink(self) -> bool:
        """Report whether the object is a symbolic link."""
        return statmod.S_ISLNK(self.mode)

    def __str__(self) -> str:
        kind = statmod.S_IFMT(self.mode)
        if kind in (0, statmod.S_IFREG):
            return "file"
        if kind == statmod.S_IFDIR:
            return "directory"
        if kind == statmod.S_IFLNK:
            return "symlink"
        return ""


class StorageClass(str):
    """The storage class an object is kept in."""

    def is_glacier(self) -> bool:
        """Report whether the storage class is GLACIER."""
        return self == "GLACIER"


@dataclass
class StorageObject:
    """Metadata describing a storage item, or an error met while listing."""

    url: URL | None = None
    etag: str = ""
    mod_time: datetime | None = None
    type: ObjectType = field(default_factory=ObjectType)
    size: int = 0
    storage_class: StorageClass = field(default_factory=StorageClass)
    err: Exception | None = None

    def __str__(self) -> str:
        return str(self.url) if self.url is not None else ""

    def to_json(self) -> str:
        """Return the object as a compact JSON document."""
        data: dict = {}
        if self.url is not None:
            data["key"] = str(self.url)
        if self.etag:
            data["etag"] = self.etag
        if self.mod_time is not None:
            data["last_modified"] = self.mod_time
        data["type"] = str(self.type)
        if self.size:
            data["size"] = self.size
        if self.storage_class:
            data["storage_class"] = str(self.storage_class)
        if self.err is not None:
            data["error"] = str(self.err)
        return strutil.to_json(data)


@dataclass(frozen=True)
class Bucket:
    """A container for storage objects."""

    creation_date: datetime
    name: str

    def __str__(self) -> str:
        return f"{self.creation_date.strftime(_DATE_FORMAT)}  s3://{self.name}"

    def to_json(self) -> str:
        """Return the bucket as a compact JSON document."""
        return strutil.to_json({"created_at": self.creation_date, "name": self.name})


def _metadata_field(key: str, doc: str) -> property:
    def getter(self: "Metadata") -> str:
        return self.get(key, "")

    def setter(self: "Metadata", value: str) -> None:
        self[key] = value

    return property(getter, setter, doc=doc)


class Metadata(dict):
    """Object metadata applied on upload and copy."""

    acl = _metadata_field("ACL", "Canned access control list.")
    cache_control = _metadata_field("CacheControl", "Cache-Control header value.")
    expires = _metadata_field("Expires", "Expiry time in RFC 3339 format.")
    storage_class = _metadata_field("StorageClass", "Storage class of the object.")
    content_type = _metadata_field("ContentType", "Content-Type of the object.")
    sse = _metadata_field("EncryptionMethod", "Server side encryption method.")
    sse_key_id = _metadata_field("EncryptionKeyID", "KMS key id used for encryption.")


@dataclass(frozen=True)
class Options:
    """Configuration for storage clients."""

    max_retries: int = 0
    endpoint: str = ""
    no_verify_ssl: bool = False
    dry_run: bool = False
    no_sign_request: bool = False
    use_list_objects_v1: bool = False
    request_payer: str = ""
    bucket: str = ""
    region: str = ""

    def with_region(self, region: str) -> Options:
        """Return a copy of the options with the region set."""
        return replace(self, region=region)

    def with_bucket(self, bucket: str) -> Options:
        """Return a copy of the options with the bucket set."""
        return replace(self, bucket=bucket)


class Storage(abc.ABC):
    """Operations common to local filesystem and remote object storage."""

    @abc.abstractmethod
    def stat(self, url: URL) -> StorageObject:
        """Describe the object; raise GivenObjectNotFoundError if it is missing."""

    @abc.abstractmethod
    def list(self, src: URL, follow_symlinks: bool = True) -> Iterator[StorageObject]:
        """Yield the objects and directories found at src."""

    @abc.abstractmethod
    def delete(self, url: URL) -> None:
        """Delete the given object."""

    @abc.abstractmethod
    def multi_delete(self, urls: Iterable[URL]) -> Iterator[StorageObject]:
        """Delete every given object, yielding one result per object."""

    @abc.abstractmethod
    def copy(self, src: URL, dst: URL, metadata: Metadata | None = None) -> None:
        """Copy src to dst within the same storage."""


def should_process_url(url: URL, follow_symlinks: bool) -> bool:
    """Report whether url should be processed given the symlink policy."""
    if follow_symlinks or url.is_remote():
        return True
    try:
        st = os.lstat(url.absolute())
    except OSError:
        return False
    return not statmod.S_ISLNK(st.st_mode)
"""Canonical representation of local paths and s3:// object URLs."""

from __future__ import annotations

import enum
import json
import os
import posixpath
import re
from dataclasses import dataclass, field, replace
from urllib.parse import quote_plus

from . import strutil

GLOB_CHARACTERS = "?*"
S3_SCHEME = "s3://"
S3_SEPARATOR = "/"
_MATCH_ALL = ".*"
_REGEX_META = frozenset("\\.+*?()|[]{}^$")


class UrlType(enum.Enum):
    """Where the object behind a URL is stored."""

    REMOTE = "remote"
    LOCAL = "local"


class InvalidURLError(ValueError):
    """Raised when a string cannot be parsed into a URL."""


def _quoted(s: str) -> str:
    return json.dumps(s, ensure_ascii=False)


def _quote_meta(s: str) -> str:
    return "".join("\\" + ch if ch in _REGEX_META else ch for ch in s)


def _clean(p: str) -> str:
    if not p:
        return "."
    cleaned = posixpath.normpath(p)
    if cleaned.startswith("//"):
        cleaned = "/" + cleaned.lstrip("/")
    return cleaned


def _posix_base(p: str) -> str:
    if not p:
        return "."
    stripped = p.rstrip("/")
    if not stripped:
        return "/"
    return stripped[stripped.rfind("/") + 1 :]


def _posix_dir(p: str) -> str:
    return _clean(p[: p.rfind("/") + 1])


def _posix_join(*elems: str) -> str:
    parts = [e for e in elems if e]
    if not parts:
        return ""
    return _clean("/".join(parts))


def _local_base(p: str) -> str:
    if os.sep == "/":
        return _posix_base(p)
    if not p:
        return "."
    stripped = p.rstrip("/" + os.sep)
    if not stripped:
        return os.sep
    return os.path.basename(stripped)


def _local_dir(p: str) -> str:
    if os.sep == "/":
        return _posix_dir(p)
    d = os.path.dirname(p)
    return os.path.normpath(d) if d else "."


def _relpath(base: str, target: str) -> str:
    if os.path.isabs(base) != os.path.isabs(target):
        return ""
    try:
        return os.path.relpath(target, base)
    except ValueError:
        return ""


def has_glob_character(s: str) -> bool:
    """Report whether the string contains any wildcard characters."""
    return any(ch in s for ch in GLOB_CHARACTERS)


def parse_batch(prefix: str, key: str) -> str:
    """Cut a key from the last directory of the prefix, for wildcard listings."""
    index = prefix.rfind(S3_SEPARATOR)
    if index < 0 or not key.startswith(prefix):
        return key
    return key[index:].removeprefix(S3_SEPARATOR)


def parse_non_batch(prefix: str, key: str) -> str:
    """Return the first path element of a key after the prefix."""
    if key == prefix or not key.startswith(prefix):
        return key
    parsed = key.removesuffix(S3_SEPARATOR)
    loc = parsed.rfind(S3_SEPARATOR)
    if loc < len(prefix):
        if loc < 0:
            return key
        return key[loc:].removeprefix(S3_SEPARATOR)
    parsed = key.removeprefix(prefix).removeprefix(S3_SEPARATOR)
    index = parsed.find(S3_SEPARATOR) + 1
    if index <= 0 or index >= len(parsed):
        return parsed
    return parsed[:index]


@dataclass
class URL:
    """A local path or a remote s3:// object reference."""

    type: UrlType
    scheme: str = ""
    bucket: str = ""
    path: str = ""
    delimiter: str = ""
    prefix: str = ""
    filter: str = ""
    raw: bool = False
    _relative_path: str = field(default="", repr=False, compare=False)
    _filter_regex: re.Pattern | None = field(default=None, repr=False, compare=False)

    @property
    def filter_regex(self) -> re.Pattern | None:
        """The compiled pattern keys are matched against."""
        return self._filter_regex

    def _set_prefix_and_filter(self) -> None:
        if self.raw:
            return
        locations = [i for i in (self.path.find(c) for c in GLOB_CHARACTERS) if i >= 0]
        if not locations:
            self.delimiter = S3_SEPARATOR
            self.prefix = self.path
        else:
            loc = min(locations)
            self.prefix = self.path[:loc]
            self.filter = self.path[loc:]

        pattern = _MATCH_ALL
        if self.filter:
            pattern = _quote_meta(self.filter)
            pattern = pattern.replace("\\?", ".").replace("\\*", ".*?")
        pattern = _quote_meta(self.prefix) + pattern
        try:
            self._filter_regex = re.compile("^" + pattern + "$")
        except re.error as exc:
            raise InvalidURLError(str(exc)) from exc

    def is_remote(self) -> bool:
        """Report whether the object lives on remote storage."""
        return self.type is UrlType.REMOTE

    def is_prefix(self) -> bool:
        """Report whether the remote URL denotes a prefix rather than an object."""
        return self.is_remote() and self.path.endswith("/")

    def is_bucket(self) -> bool:
        """Report whether the URL holds only a bucket name."""
        return self.is_remote() and self.path == ""

    def absolute(self) -> str:
        """Return the absolute form of the URL."""
        if not self.is_remote():
            return self.path
        s = self.scheme + "://"
        if self.bucket:
            s += self.bucket
        if self.path:
            s += "/" + self.path
        return s

    def relative(self) -> str:
        """Return the path relative to the computed base, or the absolute form."""
        return self._relative_path or self.absolute()

    def base(self) -> str:
        """Return the last element of the path."""
        return _posix_base(self.path) if self.is_remote() else _local_base(self.path)

    def dir(self) -> str:
        """Return all but the last element of the path."""
        return _posix_dir(self.path) if self.is_remote() else _local_dir(self.path)

    def join(self, s: str) -> URL:
        """Return a copy of this URL with s appended to the path."""
        if os.sep != "/":
            s = s.replace(os.sep, "/")
        joined = self.clone()
        joined.path = _posix_join(joined.path, s)
        return joined

    def clone(self) -> URL:
        """Return a copy of this URL."""
        return replace(self, raw=False)

    def set_relative(self, base: str) -> None:
        """Set the relative path of this URL against the directory of base."""
        self._relative_path = _relpath(_local_dir(base), self.absolute())

    def match(self, key: str) -> bool:
        """Report whether key matches this URL, recording its relative path."""
        if self._filter_regex is None:
            if key != self.path:
                return False
            self._relative_path = key
            return True
        if self._filter_regex.fullmatch(key) is None:
            return False
        if self.filter:
            self._relative_path = parse_batch(self.prefix, key)
        else:
            self._relative_path = parse_non_batch(self.prefix, key)
        return True

    def is_wildcard(self) -> bool:
        """Report whether the path contains wildcard characters."""
        return not self.raw and has_glob_character(self.path)

    def escaped_path(self) -> str:
        """Return "bucket/key" with each path element query-escaped."""
        source_key = str(self).removeprefix("s3://")
        return "/".join(quote_plus(element, safe="") for element in source_key.split("/"))

    def to_json(self) -> str:
        """Return the URL as a JSON string value."""
        return strutil.to_json(str(self))

    def __str__(self) -> str:
        return self.absolute()


def parse(s: str, raw: bool = False) -> URL:
    """Parse a local path or an s3:// URL."""
    split = s.split("://")

    if len(split) == 1:
        url = URL(type=UrlType.LOCAL, scheme="", path=s, raw=raw)
        url._set_prefix_and_filter()
        if os.sep != "/":
            url.path = url.path.replace(os.sep, "/")
        return url

    if len(split) != 2:
        raise InvalidURLError(f"storage: unknown url format {_quoted(s)}")

    scheme, rest = split
    if scheme != "s3":
        raise InvalidURLError(f"s3 url should start with {_quoted(S3_SCHEME)}")

    parts = rest.split(S3_SEPARATOR, 1)
    bucket = parts[0]
    key = parts[1].lstrip(S3_SEPARATOR) if len(parts) == 2 else ""

    if not bucket:
        raise InvalidURLError("s3 url should have a bucket")
    if has_glob_character(bucket):
        raise InvalidURLError("bucket name cannot contain wildcards")

    url = URL(type=UrlType.REMOTE, scheme="s3", bucket=bucket, path=key, raw=raw)
    url._set_prefix_and_filter()
    return url
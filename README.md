# s5storage

Building blocks for a tool that moves objects between S3-compatible object
stores and the local filesystem. The package parses `s3://bucket/key` and
local paths into one `URL` type and expands `*` and `?` wildcards; it defines
the shared storage types (objects, buckets, metadata, options and the
abstract `Storage` interface); and it handles S3 endpoints, retry decisions
and cached sessions.

It has no dependencies outside the standard library.

## Installation

```
pip install s5storage
```

To run the test suite:

```
pip install "s5storage[test]"
pytest
```

## URLs and wildcards (`s5storage.url`)

```python
from s5storage.url import parse

u = parse("s3://bucket/key/*/b/*/c/*.tsv")
u.is_remote()      # True
u.is_wildcard()    # True
u.prefix           # "key/"

if u.match("key/a/b/c/c/file.tsv"):
    print(u.relative())   # "a/b/c/c/file.tsv"
```

- A string without `://` is a local path. Anything else must use the `s3`
  scheme and name a bucket without wildcards; otherwise `parse` raises
  `InvalidURLError`.
- A URL without wildcards gets `/` as its delimiter and matches every key
  that starts with its path. `relative()` then gives the first path element
  after the prefix.
- `parse(s, raw=True)` takes `*` and `?` as literal characters. No prefix or
  filter is worked out.
- `URL` also has `is_prefix()`, `is_bucket()`, `absolute()`, `base()`,
  `dir()`, `join()`, `clone()`, `set_relative()`, `escaped_path()` and
  `to_json()`.
- The helpers `has_glob_character`, `parse_batch` and `parse_non_batch` are
  public too.

## Storage types (`s5storage.storage`)

- `StorageObject` carries the URL, etag, modification time, `ObjectType`,
  size, `StorageClass` and an optional error. `to_json()` leaves out empty
  fields.
- `Bucket` prints as `2006/01/02 15:04:05  s3://name` and has `to_json()`.
- `Metadata` is a `dict` with `acl`, `cache_control`, `expires`,
  `storage_class`, `content_type`, `sse` and `sse_key_id` properties.
- `Options` is frozen, and so it can be hashed. `with_region()` and
  `with_bucket()` return changed copies.
- `Storage` is the abstract interface: `stat`, `list`, `delete`,
  `multi_delete` and `copy`.
- `GivenObjectNotFoundError`, `NoObjectFoundError` and `NotSupportedError`
  all derive from `StorageError`.
- `should_process_url(url, follow_symlinks)` turns down local symbolic links
  when links are not followed. It also turns down paths that do not exist.

## S3 sessions (`s5storage.s3session`)

```python
from s5storage.s3session import SessionCache, parse_endpoint, is_virtual_host_style
from s5storage.storage import Options

is_virtual_host_style(parse_endpoint(""))                # True
is_virtual_host_style(parse_endpoint("127.0.0.1:9000"))  # False, path style

cache = SessionCache()
session = cache.new_session(Options(endpoint="127.0.0.1:9000", region="eu-west-1"))
session.force_path_style   # True
session.region             # "eu-west-1"
```

- `parse_endpoint` adds `http://` when no scheme is given.
- The transfer acceleration endpoint turns on `use_accelerate` and falls back
  to the default endpoint.
- `SessionCache.new_session` returns the same `Session` for equal options.
  The region comes from the options first, then from `AWS_REGION`, and from
  `AWS_DEFAULT_REGION` unless `AWS_SDK_LOAD_CONFIG` is set to a false value.
- When no region is known, `set_session_region` sets `us-east-1`. If a
  bucket is named, it then asks for the bucket's region. By default it sends
  an HTTP HEAD request; a different `region_lookup` callable can be passed to
  `SessionCache` or to `set_session_region`. A `NotFound` error is raised.
  Any other failure is logged and the default region is kept.
- `RetryPolicy(max_retries).should_retry(error)` retries internal errors,
  clock skew, reset or timed-out connections, request and timeout errors,
  throttling, and 5xx statuses other than 501. It never retries expired or
  invalid tokens.
- `ApiError` and `MultiUploadFailure` carry a code. `err_has_code` and
  `is_cancelation_error` look through wrapped errors.

## Helpers

- `s5storage.strutil.humanize_bytes(2048)` gives `"2.0K"`. It uses base-1024
  units K, M, G and T. Values up to and including 1024 are printed as plain
  numbers.
- `s5storage.strutil.to_json(value)` writes compact JSON. Datetimes are
  written in RFC 3339 form.
- `s5storage.version.human_version("1.2.3", "abc123")` gives
  `"v1.2.3-abc123"`.

## What this package does not do

The package has no concrete storage client. Nothing in it implements
`Storage`, so it cannot list, stat, copy or delete files on the local disk.
It cannot talk to an S3 service either: it sends no listing, upload,
download, copy, delete or bucket requests. The only network request it makes
is the optional bucket-region lookup. There is no command-line program.
"""Endpoint handling, retry policy and cached sessions for S3 clients."""

from __future__ import annotations

import logging
import os
import ssl
import threading
import urllib.error
import urllib.request
from dataclasses import dataclass, field
from typing import Callable, Optional
from urllib.parse import quote, urlsplit, urlunsplit

from .storage import Options

logger = logging.getLogger(__name__)

TRANSFER_ACCEL_ENDPOINT = "s3-accelerate.amazonaws.com"
GCS_ENDPOINT = "storage.googleapis.com"
DEFAULT_REGION = "us-east-1"
CANCELED_ERROR_CODE = "RequestCanceled"
REQUEST_ERROR_CODE = "RequestError"
BUCKET_REGION_HEADER = "X-Amz-Bucket-Region"

_RETRYABLE_CODES = frozenset(
    {"RequestError", "RequestTimeout", "ResponseTimeout", "RequestTimeTooSkewed"}
)
_THROTTLE_CODES = frozenset(
    {
        "ProvisionedThroughputExceededException",
        "ThrottledException",
        "Throttling",
        "ThrottlingException",
        "RequestLimitExceeded",
        "RequestThrottled",
        "RequestThrottledException",
        "TooManyRequestsException",
        "PriorRequestNotComplete",
        "TransactionInProgressException",
        "EC2ThrottledException",
    }
)
_CREDS_EXPIRED_CODES = frozenset({"ExpiredToken", "ExpiredTokenException", "RequestExpired"})
_TOKEN_ERROR_CODES = ("ExpiredToken", "ExpiredTokenException", "InvalidToken")
_THROTTLE_STATUSES = frozenset({429, 502, 503, 504})
_TRUE_VALUES = frozenset({"1", "t", "T", "TRUE", "true", "True"})
_LOOKUP_TIMEOUT = 10.0


class ApiError(Exception):
    """An error reported by the storage service, identified by a code."""

    def __init__(
        self,
        code: str,
        message: str = "",
        orig_err: Optional[BaseException] = None,
        status_code: Optional[int] = None,
    ) -> None:
        self.code = code
        self.message = message
        self.orig_err = orig_err
        self.status_code = status_code
        super().__init__(self._format())

    def _format(self) -> str:
        text = f"{self.code}: {self.message}"
        if self.orig_err is not None:
            text += f"\ncaused by: {self.orig_err}"
        return text


class MultiUploadFailure(ApiError):
    """A failed multipart upload, wrapping the error that caused it."""

    def __init__(
        self,
        code: str,
        message: str = "",
        upload_id: str = "",
        orig_err: Optional[BaseException] = None,
    ) -> None:
        self.upload_id = upload_id
        super().__init__(code, message, orig_err)


@dataclass(frozen=True)
class Endpoint:
    """A parsed service endpoint URL; the empty value means the default endpoint."""

    scheme: str = ""
    host: str = ""
    path: str = ""
    query: str = ""
    fragment: str = ""

    @property
    def hostname(self) -> str:
        """The host without any port number or IPv6 brackets."""
        host = self.host
        if host.startswith("["):
            end = host.find("]")
            return host[1:end] if end >= 0 else host[1:]
        colon = host.rfind(":")
        if colon >= 0 and host[colon + 1 :].isdigit() or host.endswith(":"):
            return host[:colon]
        return host

    def __str__(self) -> str:
        return urlunsplit((self.scheme, self.host, self.path, self.query, self.fragment))


SENTINEL_ENDPOINT = Endpoint()


def parse_endpoint(endpoint: str) -> Endpoint:
    """Parse an endpoint, assuming http:// when no scheme is given."""
    if not endpoint:
        return SENTINEL_ENDPOINT
    if not endpoint.startswith("http"):
        endpoint = "http://" + endpoint
    try:
        parts = urlsplit(endpoint)
        parts.port  # validates the port number
    except ValueError as exc:
        raise ValueError(f'parse endpoint "{endpoint}": {exc}') from exc
    return Endpoint(parts.scheme, parts.netloc, parts.path, parts.query, parts.fragment)


def supports_transfer_acceleration(endpoint: Endpoint) -> bool:
    """Report whether the endpoint is the transfer acceleration endpoint."""
    return endpoint.hostname == TRANSFER_ACCEL_ENDPOINT


def is_google_endpoint(endpoint: Endpoint) -> bool:
    """Report whether the endpoint is Google Cloud Storage."""
    return endpoint.hostname == GCS_ENDPOINT


def is_virtual_host_style(endpoint: Endpoint) -> bool:
    """Report whether bucket names are resolved through the host name."""
    return (
        endpoint == SENTINEL_ENDPOINT
        or supports_transfer_acceleration(endpoint)
        or is_google_endpoint(endpoint)
    )


def _find(err: Optional[BaseException], kind: type) -> Optional[BaseException]:
    seen = set()
    while err is not None and id(err) not in seen:
        if isinstance(err, kind):
            return err
        seen.add(id(err))
        err = err.__cause__
    return None


def err_has_code(err: Optional[BaseException], code: str) -> bool:
    """Report whether err, or an error it wraps, carries the given code."""
    if err is None or not code:
        return False
    api_err = _find(err, ApiError)
    if api_err is not None and api_err.code == code:
        return True
    failure = _find(err, MultiUploadFailure)
    if failure is not None:
        return err_has_code(failure.orig_err, code)
    return False


def is_cancelation_error(err: Optional[BaseException]) -> bool:
    """Report whether err is a cancelled request."""
    return err_has_code(err, CANCELED_ERROR_CODE)


def _is_retryable(err: Optional[BaseException]) -> bool:
    if err is None:
        return False
    if isinstance(err, ApiError):
        if err.code == CANCELED_ERROR_CODE:
            return False
        should = False
        if err.orig_err is not None:
            should = _is_retryable(err.orig_err)
            if err.code == REQUEST_ERROR_CODE and not should:
                return False
        if err.code in _RETRYABLE_CODES or err.code in _CREDS_EXPIRED_CODES:
            return True
        return should
    return True


def _is_throttle(err: BaseException) -> bool:
    if isinstance(err, ApiError):
        if err.code in _THROTTLE_CODES:
            return True
        if err.status_code in _THROTTLE_STATUSES:
            return True
    return False


def _default_should_retry(err: BaseException) -> bool:
    status = getattr(err, "status_code", None)
    if isinstance(status, int) and status >= 500 and status != 501:
        return True
    return _is_retryable(err) or _is_throttle(err)


@dataclass(frozen=True)
class RetryPolicy:
    """Decides which failed requests are retried, up to max_retries times."""

    max_retries: int = 0

    def should_retry(self, error: Optional[BaseException]) -> bool:
        """Report whether a request that failed with error should be retried."""
        if error is None:
            return False
        text = str(error)
        should = (
            err_has_code(error, "InternalError")
            or err_has_code(error, "RequestTimeTooSkewed")
            or "connection reset" in text
            or "connection timed out" in text
        )
        if not should:
            should = _default_should_retry(error)

        if any(err_has_code(error, code) for code in _TOKEN_ERROR_CODES):
            return False

        if should:
            logger.debug("retryable error: %s", error)
        return should


@dataclass
class Session:
    """Client configuration shared by the requests made for one set of options."""

    endpoint: str = ""
    region: str = ""
    force_path_style: bool = False
    use_accelerate: bool = False
    anonymous: bool = False
    verify_ssl: bool = True
    shared_config: bool = True
    retry_policy: RetryPolicy = field(default_factory=RetryPolicy)


RegionLookup = Callable[[Session, str], str]


def _normalize_bucket_location(location: str) -> str:
    if location == "":
        return DEFAULT_REGION
    if location == "EU":
        return "eu-west-1"
    return location


def _bucket_url(session: Session, bucket: str) -> str:
    base = session.endpoint or "https://s3.amazonaws.com"
    parts = urlsplit(base)
    if session.force_path_style:
        path = parts.path.rstrip("/") + "/" + quote(bucket, safe="")
        return urlunsplit((parts.scheme, parts.netloc, path, "", ""))
    host = parts.netloc
    if not session.endpoint:
        host = "s3.amazonaws.com"
    return urlunsplit((parts.scheme or "https", f"{bucket}.{host}", parts.path or "/", "", ""))


def _http_region_lookup(session: Session, bucket: str) -> str:
    """Ask the service for the region of bucket with an anonymous HEAD request."""
    handlers = []
    if not session.verify_ssl:
        context = ssl.create_default_context()
        context.check_hostname = False
        context.verify_mode = ssl.CERT_NONE
        handlers.append(urllib.request.HTTPSHandler(context=context))
    opener = urllib.request.build_opener(*handlers)
    request = urllib.request.Request(_bucket_url(session, bucket), method="HEAD")
    try:
        with opener.open(request, timeout=_LOOKUP_TIMEOUT) as response:
            return _normalize_bucket_location(response.headers.get(BUCKET_REGION_HEADER, ""))
    except urllib.error.HTTPError as exc:
        region = exc.headers.get(BUCKET_REGION_HEADER, "") if exc.headers else ""
        if region:
            return _normalize_bucket_location(region)
        if exc.code == 404:
            raise ApiError("NotFound", "Not Found", status_code=404) from exc
        code = (exc.reason or str(exc.code)).replace(" ", "") if isinstance(exc.reason, str) else str(exc.code)
        raise ApiError(code, str(exc.reason), status_code=exc.code) from exc
    except (urllib.error.URLError, OSError) as exc:
        raise ApiError(REQUEST_ERROR_CODE, "send request failed", orig_err=exc) from exc


def set_session_region(
    session: Session, bucket: str, region_lookup: Optional[RegionLookup] = None
) -> None:
    """Fill in the session region, detecting the bucket's region when needed."""
    if session.region:
        return

    session.region = DEFAULT_REGION
    if not bucket:
        return

    lookup = region_lookup or _http_region_lookup
    try:
        region = lookup(session, bucket)
    except Exception as exc:
        if err_has_code(exc, "NotFound"):
            raise
        logger.error("session: fetching region failed: %s", exc)
        return
    if region:
        session.region = region


def _shared_config_enabled() -> bool:
    value = os.environ.get("AWS_SDK_LOAD_CONFIG", "")
    if value == "":
        return True
    return value in _TRUE_VALUES


def _region_from_environment(shared_config: bool) -> str:
    region = os.environ.get("AWS_REGION", "")
    if not region and shared_config:
        region = os.environ.get("AWS_DEFAULT_REGION", "")
    return region


class SessionCache:
    """Creates sessions and reuses them for equal options."""

    def __init__(self, region_lookup: Optional[RegionLookup] = None) -> None:
        self._lock = threading.Lock()
        self._sessions: dict[Options, Session] = {}
        self._region_lookup = region_lookup

    def new_session(self, opts: Options) -> Session:
        """Return the session for opts, creating it on first use."""
        with self._lock:
            cached = self._sessions.get(opts)
            if cached is not None:
                return cached

            endpoint = parse_endpoint(opts.endpoint)
            virtual_host = is_virtual_host_style(endpoint)
            use_accelerate = supports_transfer_acceleration(endpoint)
            if use_accelerate:
                endpoint = SENTINEL_ENDPOINT

            shared_config = _shared_config_enabled()
            session = Session(
                endpoint=str(endpoint),
                region=_region_from_environment(shared_config),
                force_path_style=not virtual_host,
                use_accelerate=use_accelerate,
                anonymous=opts.no_sign_request,
                verify_ssl=not opts.no_verify_ssl,
                shared_config=shared_config,
                retry_policy=RetryPolicy(opts.max_retries),
            )

            if opts.region:
                session.region = opts.region
            else:
                set_session_region(session, opts.bucket, self._region_lookup)

            self._sessions[opts] = session
            return session

    def clear(self) -> None:
        """Forget every cached session."""
        with self._lock:
            self._sessions = {}


GLOBAL_SESSION_CACHE = SessionCache()
"""URLs with wildcard matching, storage types and S3 session handling for object transfers."""

__version__ = "0.1.0"
__all__ = ["s3session", "storage", "strutil", "url", "version"]
"""Release version information."""

VERSION = "v0.0.0"
GIT_COMMIT = "dev"


def human_version(version: str = VERSION, commit: str = GIT_COMMIT) -> str:
    """Return a human-readable version string such as "v1.0.0-abcdef"."""
    if not version.startswith("v"):
        version = "v" + version
    return f"{version}-{commit}"
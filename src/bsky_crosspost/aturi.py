"""Parse and format ``at://repo/collection/rkey`` record URIs."""

from dataclasses import dataclass

from .errors import UnparsableAtUriError

AT_URI_SCHEME = "at://"


@dataclass(frozen=True)
class AtUri:
    repo: str
    collection: str
    rkey: str

    def __str__(self) -> str:
        return format_at_uri(self.repo, self.collection, self.rkey)


def parse_at_uri(uri: str | None) -> AtUri:
    """Split an AT-URI into its parts.

    Only fully qualified record URIs are accepted: the scheme followed by
    exactly three non-empty, slash-separated segments.
    """
    if not uri or not uri.startswith(AT_URI_SCHEME):
        raise UnparsableAtUriError(f"Not an AT-URI: {uri!r}")

    parts = uri[len(AT_URI_SCHEME):].split("/")
    if len(parts) != 3 or not all(parts):
        raise UnparsableAtUriError(
            f"Expected at://repo/collection/rkey, got {uri!r}"
        )
    return AtUri(repo=parts[0], collection=parts[1], rkey=parts[2])


def format_at_uri(repo: str, collection: str, rkey: str) -> str:
    return f"{AT_URI_SCHEME}{repo}/{collection}/{rkey}"

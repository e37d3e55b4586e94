"""Upload validated media bytes to the PDS blob store."""

from .client import BlueskyClient
from .models import BlobRef


class BlobUploader:
    """Bind a client to one session's bearer token.

    ``upload`` makes exactly one uploadBlob call and lets
    UnexpectedUpstreamError propagate; callers decide whether a failed upload
    costs them one attachment or the whole record.
    """

    def __init__(self, client: BlueskyClient, token: str):
        self._client = client
        self._token = token

    def upload(self, data: bytes, mime_type: str) -> BlobRef:
        return self._client.upload_blob(self._token, data, mime_type)

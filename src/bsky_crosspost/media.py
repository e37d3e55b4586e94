"""Choose which attachments to mirror and fetch their bytes.

A Bluesky post carries at most one embed: either a single video or up to four
images. Selection and fetching never raise for a single bad attachment; the
problem is reported as a ``SkipReason`` so the post is still published with
whatever media survived.
"""

import logging
from dataclasses import dataclass, field
from enum import Enum

import httpx

from .config import CrosspostLimits
from .models import Attachment, BlobRef, LocalSource, MediaKind, MediaSource, RemoteSource

logger = logging.getLogger(__name__)

# Remote downloads may exceed the ceiling by this factor before being cut off;
# the exact size is checked once the transfer completes.
DOWNLOAD_ALLOWANCE = 2

USER_AGENT = "bsky-crosspost/0.1"


class SkipReason(str, Enum):
    NOT_READY = "not_ready"
    UNSUPPORTED_TYPE = "unsupported_type"
    MISSING = "missing"
    FETCH_FAILED = "fetch_failed"
    TOO_LARGE = "too_large"
    UPLOAD_FAILED = "upload_failed"


class MediaSkipped(Exception):
    """Raised by the fetcher when an attachment yields no usable bytes."""

    def __init__(self, reason: SkipReason, detail: str = ""):
        self.reason = reason
        self.detail = detail
        super().__init__(f"{reason.value}: {detail}" if detail else reason.value)


@dataclass
class MediaResult:
    """Outcome of fetching and uploading one attachment."""

    attachment: Attachment
    blob: BlobRef | None = None
    skip_reason: SkipReason | None = None

    @property
    def ok(self) -> bool:
        return self.blob is not None


@dataclass
class MediaSelection:
    chosen: list[Attachment] = field(default_factory=list)
    dropped: list[Attachment] = field(default_factory=list)
    not_ready: list[Attachment] = field(default_factory=list)

    @property
    def is_video(self) -> bool:
        return len(self.chosen) == 1 and self.chosen[0].kind is MediaKind.VIDEO


def select_media(
    attachments: list[Attachment], limits: CrosspostLimits
) -> MediaSelection:
    """Pick the attachments that will make up the post's embed."""
    selection = MediaSelection()
    ready: list[Attachment] = []
    for attachment in attachments:
        if attachment.ready:
            ready.append(attachment)
        else:
            logger.warning(
                "Media attachment %s still processing, skipping",
                attachment.attachment_id,
            )
            selection.not_ready.append(attachment)

    videos = [a for a in ready if a.kind is MediaKind.VIDEO]
    if videos:
        selection.chosen = [videos[0]]
        selection.dropped = [a for a in ready if a is not videos[0]]
        if selection.dropped:
            logger.info(
                "Post has a video; dropping %d other attachment(s)",
                len(selection.dropped),
            )
        return selection

    images = [a for a in ready if a.kind is MediaKind.IMAGE]
    selection.chosen = images[: limits.image_limit]
    selection.dropped = images[limits.image_limit :] + [
        a for a in ready if a.kind is not MediaKind.IMAGE
    ]

    if len(images) > limits.image_limit:
        logger.info(
            "Post has %d images; only the first %d are cross-posted",
            len(images),
            limits.image_limit,
        )
    others = [a for a in ready if a.kind is not MediaKind.IMAGE]
    if others:
        media_types = sorted({a.kind.value for a in others})
        logger.info(
            "Skipping %d non-image media attachment(s) (types: %s)",
            len(others),
            ", ".join(media_types),
        )
    return selection


def supported_mime_type(attachment: Attachment, limits: CrosspostLimits) -> bool:
    if attachment.kind is MediaKind.VIDEO:
        return attachment.mime_type in limits.video_types
    return attachment.mime_type in limits.image_types


def byte_ceiling(kind: MediaKind, limits: CrosspostLimits) -> int:
    if kind is MediaKind.VIDEO:
        return limits.max_video_bytes
    return limits.max_image_bytes


class MediaFetcher:
    """Read attachment bytes from local storage or over HTTP."""

    def __init__(self, http_client: httpx.Client | None = None):
        self._owns_client = http_client is None
        self._client = http_client or httpx.Client(
            headers={"User-Agent": USER_AGENT},
            timeout=30.0,
            follow_redirects=True,
        )

    def fetch(self, source: MediaSource, ceiling: int, label: str = "?") -> bytes:
        """Return the bytes behind ``source``.

        Raises MediaSkipped when there is nothing usable; the caller decides
        what to do without the attachment.
        """
        if isinstance(source, LocalSource):
            data = self._read_local(source, label)
        else:
            data = self._download(source, ceiling, label)

        if len(data) > ceiling:
            logger.warning(
                "Media %s size %d bytes exceeds limit of %d bytes",
                label,
                len(data),
                ceiling,
            )
            raise MediaSkipped(SkipReason.TOO_LARGE, f"{len(data)} bytes")
        return data

    def _read_local(self, source: LocalSource, label: str) -> bytes:
        try:
            if source.path is not None and source.path.is_file():
                return source.path.read_bytes()
        except OSError as e:
            logger.error("Failed to read local file for %s: %s", label, e)
            raise MediaSkipped(SkipReason.FETCH_FAILED, str(e)) from e

        if source.reader is not None:
            # The reader is supplied by the storage backend and may raise anything
            try:
                data = source.reader()
            except Exception as e:
                logger.error("Failed to read stored file for %s: %s", label, e)
                raise MediaSkipped(SkipReason.FETCH_FAILED, str(e)) from e
            if data is not None:
                return data

        logger.error("File not found locally for %s", label)
        raise MediaSkipped(SkipReason.MISSING)

    def _download(self, source: RemoteSource, ceiling: int, label: str) -> bytes:
        limit = ceiling * DOWNLOAD_ALLOWANCE
        try:
            with self._client.stream("GET", source.url) as response:
                if not response.is_success:
                    logger.error(
                        "Failed to download remote file for %s: HTTP %d",
                        label,
                        response.status_code,
                    )
                    raise MediaSkipped(
                        SkipReason.FETCH_FAILED, f"HTTP {response.status_code}"
                    )

                declared = response.headers.get("content-length")
                if declared and declared.isdigit() and int(declared) > limit:
                    logger.error(
                        "Remote file for %s too large: declared %s bytes",
                        label,
                        declared,
                    )
                    raise MediaSkipped(SkipReason.TOO_LARGE, f"{declared} bytes")

                chunks: list[bytes] = []
                received = 0
                for chunk in response.iter_bytes():
                    received += len(chunk)
                    if received > limit:
                        logger.error(
                            "Remote file for %s too large: over %d bytes",
                            label,
                            limit,
                        )
                        raise MediaSkipped(SkipReason.TOO_LARGE, f"over {limit} bytes")
                    chunks.append(chunk)
                return b"".join(chunks)
        except httpx.HTTPError as e:
            logger.error("Failed to download remote file for %s: %s", label, e)
            raise MediaSkipped(SkipReason.FETCH_FAILED, str(e)) from e

    def close(self) -> None:
        if self._owns_client:
            self._client.close()

    def __enter__(self):
        return self

    def __exit__(self, *args):
        self.close()

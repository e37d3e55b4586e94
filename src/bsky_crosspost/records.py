"""Assemble app.bsky.feed.post and app.bsky.actor.profile records."""

import logging
from datetime import datetime, timezone

import httpx

from .blobs import BlobUploader
from .config import CrosspostLimits
from .errors import UnexpectedUpstreamError
from .facets import detect_links
from .media import (
    MediaFetcher,
    MediaResult,
    MediaSkipped,
    SkipReason,
    byte_ceiling,
    select_media,
    supported_mime_type,
)
from .models import (
    Attachment,
    BlobRef,
    EmbeddedImage,
    Embed,
    Facet,
    ImagesEmbed,
    MediaKind,
    Post,
    ProfileSource,
    VideoEmbed,
)
from .text import normalize_text

logger = logging.getLogger(__name__)

POST_RECORD_TYPE = "app.bsky.feed.post"
PROFILE_RECORD_TYPE = "app.bsky.actor.profile"


def iso8601(dt: datetime) -> str:
    """Format ``dt`` the way AT Protocol datetimes are usually written."""
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc).isoformat(timespec="milliseconds").replace(
        "+00:00", "Z"
    )


def aspect_ratio(width: object, height: object) -> dict | None:
    """Return an aspectRatio object when both dimensions are positive ints."""
    if (
        isinstance(width, int)
        and isinstance(height, int)
        and not isinstance(width, bool)
        and not isinstance(height, bool)
        and width > 0
        and height > 0
    ):
        return {"width": width, "height": height}
    return None


class RecordBuilder:
    """Build post records, uploading media through ``uploader``.

    Attachments are processed one at a time in the order the post lists them.
    A failed fetch or upload only costs that attachment: it is logged and
    reported as a skipped MediaResult, and the embed is built from the rest.
    """

    def __init__(
        self,
        limits: CrosspostLimits,
        fetcher: MediaFetcher | None = None,
        uploader: BlobUploader | None = None,
    ):
        self.limits = limits
        self.fetcher = fetcher
        self.uploader = uploader

    def build_text(self, post: Post) -> tuple[str, list[Facet]]:
        text = normalize_text(post.text, self.limits.char_budget)
        return text, detect_links(text, post.mentions)

    def upload_attachment(self, attachment: Attachment) -> MediaResult:
        label = attachment.attachment_id
        if not supported_mime_type(attachment, self.limits):
            logger.warning(
                "Unsupported media type %s for attachment %s, skipping",
                attachment.mime_type,
                label,
            )
            return MediaResult(attachment, skip_reason=SkipReason.UNSUPPORTED_TYPE)

        if self.fetcher is None or self.uploader is None:
            raise RuntimeError("RecordBuilder needs a fetcher and an uploader for media")

        try:
            data = self.fetcher.fetch(
                attachment.source, byte_ceiling(attachment.kind, self.limits), label
            )
        except MediaSkipped as e:
            return MediaResult(attachment, skip_reason=e.reason)

        try:
            blob = self.uploader.upload(data, attachment.mime_type)
        except UnexpectedUpstreamError as e:
            logger.error("Bluesky API error uploading attachment %s: %s", label, e)
            return MediaResult(attachment, skip_reason=SkipReason.UPLOAD_FAILED)
        except httpx.HTTPError as e:
            logger.error("Failed to upload media attachment %s: %s", label, e)
            return MediaResult(attachment, skip_reason=SkipReason.UPLOAD_FAILED)

        return MediaResult(attachment, blob=blob)

    def process_media(self, post: Post) -> list[MediaResult]:
        selection = select_media(post.attachments, self.limits)
        results = [self.upload_attachment(a) for a in selection.chosen]
        results.extend(
            MediaResult(a, skip_reason=SkipReason.NOT_READY)
            for a in selection.not_ready
        )
        return results

    def build_embed(self, results: list[MediaResult]) -> Embed | None:
        uploaded = [r for r in results if r.ok]
        if not uploaded:
            if results:
                logger.warning("No media attachments could be uploaded to Bluesky")
            return None

        first = uploaded[0].attachment
        if first.kind is MediaKind.VIDEO:
            return VideoEmbed(
                blob=uploaded[0].blob,
                alt=first.description or "",
                aspect_ratio=aspect_ratio(first.width, first.height),
            )

        return ImagesEmbed(
            images=[
                EmbeddedImage(
                    blob=r.blob,
                    alt=r.attachment.description or "",
                    aspect_ratio=aspect_ratio(r.attachment.width, r.attachment.height),
                )
                for r in uploaded
            ]
        )

    def build_post_record(self, post: Post) -> dict:
        text, facets = self.build_text(post)
        record: dict = {
            "$type": POST_RECORD_TYPE,
            "text": text,
            "createdAt": iso8601(post.created_at),
        }
        if facets:
            record["facets"] = [facet.to_record() for facet in facets]
        if post.language:
            record["langs"] = [post.language]

        if post.attachments:
            embed = self.build_embed(self.process_media(post))
            if embed is not None:
                record["embed"] = embed.to_record()

        return record


def build_profile_record(
    source: ProfileSource,
    limits: CrosspostLimits,
    avatar: BlobRef | None = None,
    banner: BlobRef | None = None,
    base: dict | None = None,
) -> dict:
    """Build a profile record, keeping fields of ``base`` not managed here."""
    record = dict(base or {})
    record["$type"] = PROFILE_RECORD_TYPE
    record["displayName"] = normalize_text(
        source.display_name or "", limits.display_name_budget
    )
    record["description"] = normalize_text(source.note or "", limits.description_budget)
    if avatar is not None:
        record["avatar"] = avatar
    if banner is not None:
        record["banner"] = banner
    return record

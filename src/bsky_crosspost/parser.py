"""Parse Mastodon REST API JSON into Post and ProfileSource objects.

Statuses look like ``GET /api/v1/statuses/:id``:
    content -> HTML body
    media_attachments[] -> type, url, meta.original.{width,height}, description
    mentions[] -> acct, url

A media attachment whose ``url`` is null is still being processed by the
server. Exports made directly from a server's storage may carry a ``path`` to
the local file instead of (or as well as) a URL; the local file wins.
"""

import logging
import mimetypes
from datetime import datetime, timezone
from pathlib import Path

from .models import (
    Attachment,
    LocalSource,
    MediaKind,
    MediaSource,
    Post,
    ProfileImage,
    ProfileSource,
    RemoteSource,
)

logger = logging.getLogger(__name__)

# Mastodon's attachment types; gifv is a silent looping mp4
_KIND_BY_TYPE = {
    "image": MediaKind.IMAGE,
    "video": MediaKind.VIDEO,
    "gifv": MediaKind.VIDEO,
}

# Placeholder images Mastodon serves for accounts without avatar/header
_MISSING_IMAGE_SUFFIXES = ("/avatars/original/missing.png", "/headers/original/missing.png")


def parse_datetime(value: str) -> datetime:
    """Parse an ISO 8601 timestamp, treating a trailing Z as UTC."""
    dt = datetime.fromisoformat(value.replace("Z", "+00:00"))
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt


def guess_mime_type(location: str, default: str = "application/octet-stream") -> str:
    mime_type, _ = mimetypes.guess_type(location.split("?", 1)[0])
    return mime_type or default


def _media_source(data: dict, path_key: str, url_key: str) -> MediaSource | None:
    path = data.get(path_key)
    if path:
        return LocalSource(path=Path(path))
    url = data.get(url_key)
    if url:
        return RemoteSource(url=url)
    return None


def _parse_attachment(data: dict) -> Attachment:
    attachment_id = str(data["id"])
    kind = _KIND_BY_TYPE.get(data.get("type", ""), MediaKind.OTHER)
    source = _media_source(data, "path", "url")

    original = (data.get("meta") or {}).get("original") or {}
    location = data.get("path") or data.get("url") or data.get("remote_url") or ""
    default_type = "video/mp4" if kind is MediaKind.VIDEO else "application/octet-stream"

    return Attachment(
        attachment_id=attachment_id,
        kind=kind,
        mime_type=data.get("mime_type") or guess_mime_type(location, default_type),
        source=source or RemoteSource(url=""),
        ready=source is not None,
        width=original.get("width"),
        height=original.get("height"),
        description=data.get("description"),
    )


def parse_status(data: dict) -> Post:
    """Parse a status dict; malformed attachments are skipped, not raised."""
    attachments: list[Attachment] = []
    for raw in data.get("media_attachments", []):
        try:
            attachments.append(_parse_attachment(raw))
        except (KeyError, TypeError, ValueError) as e:
            logger.warning(
                "Skipping malformed attachment %s on status %s: %s",
                raw.get("id", "?") if isinstance(raw, dict) else "?",
                data.get("id", "?"),
                e,
            )

    mentions = {
        m["acct"]: m.get("url")
        for m in data.get("mentions", [])
        if isinstance(m, dict) and m.get("acct")
    }

    return Post(
        post_id=str(data["id"]),
        text=data.get("content", ""),
        created_at=parse_datetime(data["created_at"]),
        attachments=attachments,
        mentions=mentions,
        language=data.get("language") or None,
    )


def _profile_image(data: dict, field: str) -> ProfileImage | None:
    url = data.get(field) or ""
    if not data.get(f"{field}_path") and (not url or url.endswith(_MISSING_IMAGE_SUFFIXES)):
        return None
    source = _media_source(data, f"{field}_path", field)
    if source is None:
        return None

    updated_at = data.get(f"{field}_updated_at")
    location = data.get(f"{field}_path") or url
    return ProfileImage(
        source=source,
        mime_type=data.get(f"{field}_content_type") or guess_mime_type(location),
        updated_at=parse_datetime(updated_at) if updated_at else None,
    )


def parse_account(data: dict) -> ProfileSource:
    return ProfileSource(
        account_id=str(data["id"]),
        display_name=data.get("display_name", ""),
        note=data.get("note", ""),
        avatar=_profile_image(data, "avatar"),
        header=_profile_image(data, "header"),
    )

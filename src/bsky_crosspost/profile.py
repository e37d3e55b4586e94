"""Decide whether the remote profile record needs to be rewritten.

Profile images are only re-uploaded when the remote record lacks them or the
local file changed recently, so a profile sync triggered by an unrelated
account edit does not push the same avatar again.
"""

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone

import httpx

from .blobs import BlobUploader
from .config import CrosspostLimits
from .errors import UnexpectedUpstreamError
from .media import MediaFetcher, MediaSkipped
from .models import BlobRef, ProfileImage, ProfileSource
from .records import build_profile_record

logger = logging.getLogger(__name__)


@dataclass
class ProfileCandidate:
    record: dict
    images_changed: bool = False


def _aware(dt: datetime) -> datetime:
    return dt if dt.tzinfo else dt.replace(tzinfo=timezone.utc)


def should_upload_image(
    remote_has_image: bool,
    updated_at: datetime | None,
    now: datetime,
    window: timedelta = timedelta(hours=1),
) -> bool:
    if not remote_has_image:
        return True
    if updated_at is None:
        return False
    return _aware(updated_at) > _aware(now) - window


def needs_update(current: dict, candidate: ProfileCandidate) -> bool:
    """True when the text fields differ or an image was (re)uploaded or removed."""
    text_changed = current.get("displayName") != candidate.record.get(
        "displayName"
    ) or current.get("description") != candidate.record.get("description")
    return text_changed or candidate.images_changed


class ProfileDiffEngine:
    def __init__(
        self,
        limits: CrosspostLimits,
        fetcher: MediaFetcher,
        uploader: BlobUploader,
    ):
        self.limits = limits
        self.fetcher = fetcher
        self.uploader = uploader

    def upload_image(self, image: ProfileImage, label: str) -> BlobRef | None:
        """Upload one profile image, returning None if it cannot be used."""
        if image.mime_type not in self.limits.profile_image_types:
            logger.warning("Unsupported image type %s for %s, skipping", image.mime_type, label)
            return None
        try:
            data = self.fetcher.fetch(image.source, self.limits.max_image_bytes, label)
            return self.uploader.upload(data, image.mime_type)
        except MediaSkipped as e:
            logger.warning("No usable data for %s: %s", label, e)
        except (UnexpectedUpstreamError, httpx.HTTPError) as e:
            logger.warning("Failed to upload %s: %s", label, e)
        return None

    def _sync_image(
        self,
        record: dict,
        field: str,
        image: ProfileImage | None,
        current: dict,
        now: datetime,
        label: str,
    ) -> bool:
        """Update ``record[field]`` in place; return True if it changed."""
        if image is None:
            if field in current:
                record.pop(field, None)
                logger.info("Removing %s no longer present locally", label)
                return True
            return False

        if not should_upload_image(
            field in current, image.updated_at, now, self.limits.profile_image_window
        ):
            return False

        blob = self.upload_image(image, label)
        if blob is None:
            return False
        record[field] = blob
        logger.info("Uploaded %s", label)
        return True

    def build_candidate(
        self, current: dict, source: ProfileSource, now: datetime | None = None
    ) -> ProfileCandidate:
        now = now or datetime.now(timezone.utc)
        record = build_profile_record(source, self.limits, base=current)

        avatar_changed = self._sync_image(
            record, "avatar", source.avatar, current, now,
            f"avatar of account {source.account_id}",
        )
        banner_changed = self._sync_image(
            record, "banner", source.header, current, now,
            f"header of account {source.account_id}",
        )
        return ProfileCandidate(record=record, images_changed=avatar_changed or banner_changed)

"""Data models for source posts and the Bluesky records built from them."""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from pathlib import Path
from typing import Callable

# Opaque blob reference returned by com.atproto.repo.uploadBlob
BlobRef = dict

FACET_TYPE = "app.bsky.richtext.facet"
LINK_FEATURE_TYPE = "app.bsky.richtext.facet#link"
IMAGES_EMBED_TYPE = "app.bsky.embed.images"
VIDEO_EMBED_TYPE = "app.bsky.embed.video"


class MediaKind(str, Enum):
    IMAGE = "image"
    VIDEO = "video"
    OTHER = "other"


@dataclass(frozen=True)
class LocalSource:
    path: Path | None
    reader: Callable[[], bytes | None] | None = None  # used when path is unavailable


@dataclass(frozen=True)
class RemoteSource:
    url: str


MediaSource = LocalSource | RemoteSource


@dataclass
class Attachment:
    attachment_id: str
    kind: MediaKind
    mime_type: str
    source: MediaSource
    ready: bool = True  # False while the source server is still transcoding
    width: int | None = None
    height: int | None = None
    description: str | None = None


@dataclass
class Post:
    post_id: str
    text: str  # may still contain HTML markup
    created_at: datetime
    attachments: list[Attachment] = field(default_factory=list)
    mentions: dict[str, str | None] = field(default_factory=dict)  # handle -> profile URI
    language: str | None = None


@dataclass(frozen=True)
class Facet:
    byte_start: int
    byte_end: int  # exclusive
    uri: str

    def to_record(self) -> dict:
        return {
            "$type": FACET_TYPE,
            "index": {"byteStart": self.byte_start, "byteEnd": self.byte_end},
            "features": [{"$type": LINK_FEATURE_TYPE, "uri": self.uri}],
        }


@dataclass
class EmbeddedImage:
    blob: BlobRef
    alt: str = ""
    aspect_ratio: dict | None = None

    def to_record(self) -> dict:
        data: dict = {"alt": self.alt, "image": self.blob}
        if self.aspect_ratio:
            data["aspectRatio"] = self.aspect_ratio
        return data


@dataclass
class ImagesEmbed:
    images: list[EmbeddedImage]

    def to_record(self) -> dict:
        return {
            "$type": IMAGES_EMBED_TYPE,
            "images": [image.to_record() for image in self.images],
        }


@dataclass
class VideoEmbed:
    blob: BlobRef
    alt: str = ""
    aspect_ratio: dict | None = None

    def to_record(self) -> dict:
        data: dict = {"$type": VIDEO_EMBED_TYPE, "video": self.blob, "alt": self.alt}
        if self.aspect_ratio:
            data["aspectRatio"] = self.aspect_ratio
        return data


Embed = ImagesEmbed | VideoEmbed


@dataclass
class ProfileImage:
    source: MediaSource
    mime_type: str
    updated_at: datetime | None = None


@dataclass
class ProfileSource:
    account_id: str
    display_name: str
    note: str  # may contain HTML markup
    avatar: ProfileImage | None = None
    header: ProfileImage | None = None


@dataclass
class Credentials:
    handle: str
    password: str
    did: str | None = None  # repo identifier, known once the account exists

"""Shared test fixtures."""

import json
from datetime import datetime, timezone
from pathlib import Path

import pytest

from bsky_crosspost.config import CrosspostLimits
from bsky_crosspost.models import (
    Attachment,
    Credentials,
    MediaKind,
    Post,
    RemoteSource,
)

FIXTURES_DIR = Path(__file__).parent / "fixtures"

PDS_DOMAIN = "pds.example.com"
XRPC = f"https://{PDS_DOMAIN}/xrpc"
DID = "did:plc:abc123"


@pytest.fixture
def status_data() -> dict:
    """Load the sample Mastodon status."""
    with open(FIXTURES_DIR / "status.json") as f:
        return json.load(f)


@pytest.fixture
def account_data() -> dict:
    with open(FIXTURES_DIR / "account.json") as f:
        return json.load(f)


@pytest.fixture
def limits() -> CrosspostLimits:
    return CrosspostLimits()


@pytest.fixture
def credentials() -> Credentials:
    return Credentials(handle="bob.pds.example.com", password="secret", did=DID)


def make_image(attachment_id: str, **kwargs) -> Attachment:
    defaults = dict(
        kind=MediaKind.IMAGE,
        mime_type="image/jpeg",
        source=RemoteSource(url=f"https://files.example.social/{attachment_id}.jpg"),
    )
    defaults.update(kwargs)
    return Attachment(attachment_id=attachment_id, **defaults)


def make_video(attachment_id: str, **kwargs) -> Attachment:
    defaults = dict(
        kind=MediaKind.VIDEO,
        mime_type="video/mp4",
        source=RemoteSource(url=f"https://files.example.social/{attachment_id}.mp4"),
    )
    defaults.update(kwargs)
    return Attachment(attachment_id=attachment_id, **defaults)


def make_post(text: str = "Hello", **kwargs) -> Post:
    defaults = dict(
        post_id="1",
        created_at=datetime(2025, 2, 10, 18, 30, 0, tzinfo=timezone.utc),
    )
    defaults.update(kwargs)
    return Post(text=text, **defaults)

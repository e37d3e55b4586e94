"""One method per unit of cross-posting work.

Each call authenticates on its own, runs sequentially and catches every
failure at its boundary: the error is logged with the post or account it
concerns and the caller gets a falsy result instead of an exception, so a job
runner can mark the job failed and carry on with the next one.
"""

import logging
import secrets
from datetime import datetime, timezone

import httpx

from .aturi import parse_at_uri
from .blobs import BlobUploader
from .client import POST_COLLECTION, PROFILE_COLLECTION, PROFILE_RKEY, BlueskyClient
from .config import CrosspostLimits
from .errors import CrosspostError, RecordNotFoundError, UnparsableAtUriError
from .media import MediaFetcher
from .models import Credentials, Post, ProfileSource
from .profile import ProfileDiffEngine, needs_update
from .records import RecordBuilder, build_profile_record, iso8601

logger = logging.getLogger(__name__)

# Failures that abort a single invocation; anything else is a bug and propagates
ABORTING_ERRORS = (CrosspostError, httpx.HTTPError, KeyError)


class CrossPoster:
    def __init__(
        self,
        client: BlueskyClient,
        limits: CrosspostLimits | None = None,
        fetcher: MediaFetcher | None = None,
    ):
        self.client = client
        self.limits = limits or CrosspostLimits()
        self.fetcher = fetcher or MediaFetcher()

    def _authenticate(self, credentials: Credentials) -> str:
        return self.client.authenticate(credentials.handle or credentials.did, credentials.password)

    def _profile_engine(self, token: str) -> ProfileDiffEngine:
        return ProfileDiffEngine(self.limits, self.fetcher, BlobUploader(self.client, token))

    def publish_post(self, post: Post, credentials: Credentials) -> str | None:
        """Create the Bluesky post for ``post`` and return its AT-URI."""
        if not credentials.did:
            logger.warning("No Bluesky repo configured, not cross-posting %s", post.post_id)
            return None

        try:
            token = self._authenticate(credentials)
            builder = RecordBuilder(self.limits, self.fetcher, BlobUploader(self.client, token))
            record = builder.build_post_record(post)
            body = self.client.create_record(token, credentials.did, POST_COLLECTION, record)
        except ABORTING_ERRORS as e:
            logger.error("Error posting status %s to Bluesky: %s", post.post_id, e)
            return None

        logger.info("Status %s cross-posted as %s", post.post_id, body.get("uri"))
        return body.get("uri")

    def sync_profile(
        self,
        source: ProfileSource,
        credentials: Credentials,
        now: datetime | None = None,
    ) -> bool:
        """Push display name, description and images; True if a write happened."""
        if not credentials.did:
            logger.warning("No Bluesky repo configured, not syncing account %s", source.account_id)
            return False

        try:
            token = self._authenticate(credentials)
            try:
                current = self.client.get_record(
                    token, credentials.did, PROFILE_COLLECTION, PROFILE_RKEY
                )
            except RecordNotFoundError:
                logger.info("No Bluesky profile record yet for account %s", source.account_id)
                current = {}

            candidate = self._profile_engine(token).build_candidate(current, source, now)
            if not needs_update(current, candidate):
                logger.info("Bluesky profile for account %s already up to date", source.account_id)
                return False

            self.client.put_record(
                token, credentials.did, PROFILE_COLLECTION, PROFILE_RKEY, candidate.record
            )
        except ABORTING_ERRORS as e:
            logger.error("Failed to sync Bluesky profile for account %s: %s", source.account_id, e)
            return False

        logger.info("Bluesky profile updated for account %s", source.account_id)
        return True

    def delete_post(self, record_uri: str, credentials: Credentials) -> bool:
        try:
            uri = parse_at_uri(record_uri)
        except UnparsableAtUriError as e:
            logger.error("Cannot delete Bluesky record: %s", e)
            return False

        try:
            token = self._authenticate(credentials)
            self.client.delete_record(token, uri.repo, uri.collection, uri.rkey)
        except ABORTING_ERRORS as e:
            logger.error("Failed to delete Bluesky record %s: %s", record_uri, e)
            return False
        return True

    def create_account(
        self,
        source: ProfileSource,
        email: str,
        username: str,
        admin_password: str,
    ) -> Credentials | None:
        """Create a PDS account mirroring ``source`` and its initial profile.

        Returns the new credentials even when the profile record could not be
        written, since the account itself exists at that point.
        """
        handle = f"{username}.{self.client.pds_domain}"
        password = secrets.token_hex(16)

        try:
            invite_code = self.client.create_invite_code(admin_password)
            did, actual_handle = self.client.create_account(email, handle, password, invite_code)
        except ABORTING_ERRORS as e:
            logger.error("Error creating Bluesky account for account %s: %s", source.account_id, e)
            return None

        credentials = Credentials(handle=actual_handle, password=password, did=did)

        try:
            token = self._authenticate(credentials)
            engine = self._profile_engine(token)
            avatar = (
                engine.upload_image(source.avatar, f"avatar of account {source.account_id}")
                if source.avatar
                else None
            )
            banner = (
                engine.upload_image(source.header, f"header of account {source.account_id}")
                if source.header
                else None
            )
            record = build_profile_record(source, self.limits, avatar=avatar, banner=banner)
            record["createdAt"] = iso8601(datetime.now(timezone.utc))
            self.client.create_record(token, did, PROFILE_COLLECTION, record, rkey=PROFILE_RKEY)
        except ABORTING_ERRORS as e:
            logger.error("Created %s but failed to write its profile: %s", actual_handle, e)
            return credentials

        logger.info("Bluesky account %s created for account %s", actual_handle, source.account_id)
        return credentials

    def close(self) -> None:
        self.fetcher.close()
        self.client.close()

    def __enter__(self):
        return self

    def __exit__(self, *args):
        self.close()

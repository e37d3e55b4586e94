"""XRPC client for an AT Protocol PDS.

Only the handful of endpoints cross-posting needs are wrapped. Every call is a
single attempt: a non-2xx answer raises UnexpectedUpstreamError and retrying
is left to whatever runs the job.

Authenticated calls take the bearer token explicitly so each unit of work
owns its own session.
"""

import base64
import logging

import httpx

from .errors import RecordNotFoundError, UnexpectedUpstreamError
from .models import BlobRef

logger = logging.getLogger(__name__)

USER_AGENT = "bsky-crosspost/0.1"

PROFILE_COLLECTION = "app.bsky.actor.profile"
POST_COLLECTION = "app.bsky.feed.post"
PROFILE_RKEY = "self"


class BlueskyClient:
    """Client for the com.atproto XRPC endpoints of a single PDS."""

    def __init__(self, pds_domain: str):
        self.pds_domain = pds_domain
        self._api_url = f"https://{pds_domain}/xrpc"
        self._client = httpx.Client(
            headers={"User-Agent": USER_AGENT},
            timeout=30.0,
        )

    def _request(
        self,
        method: str,
        endpoint: str,
        *,
        token: str | None = None,
        json: dict | None = None,
        params: dict | None = None,
        content: bytes | None = None,
        headers: dict | None = None,
    ) -> dict:
        request_headers = dict(headers or {})
        if token:
            request_headers["Authorization"] = f"Bearer {token}"

        response = self._client.request(
            method,
            f"{self._api_url}/{endpoint}",
            json=json,
            params=params,
            content=content,
            headers=request_headers,
        )

        if not response.is_success:
            logger.error(
                "API request failed: %s %s - %d %s",
                method,
                endpoint,
                response.status_code,
                response.text,
            )
            if endpoint == "com.atproto.repo.getRecord" and _is_not_found(response):
                raise RecordNotFoundError(endpoint, response.status_code, response.text)
            raise UnexpectedUpstreamError(endpoint, response.status_code, response.text)

        if not response.content:
            return {}
        try:
            body = response.json()
        except ValueError:
            logger.error("API request returned non-JSON body: %s %s", method, endpoint)
            raise UnexpectedUpstreamError(endpoint, response.status_code, response.text)
        if not isinstance(body, dict):
            raise UnexpectedUpstreamError(endpoint, response.status_code, response.text)
        return body

    def authenticate(self, identifier: str, password: str) -> str:
        """Open a session and return its access JWT."""
        body = self._request(
            "POST",
            "com.atproto.server.createSession",
            json={"identifier": identifier, "password": password},
        )
        logger.info("Bluesky authentication successful for %s", identifier)
        return body["accessJwt"]

    def create_record(
        self,
        token: str,
        repo: str,
        collection: str,
        record: dict,
        rkey: str | None = None,
    ) -> dict:
        data = {"repo": repo, "collection": collection, "record": record}
        if rkey:
            data["rkey"] = rkey
        body = self._request(
            "POST", "com.atproto.repo.createRecord", token=token, json=data
        )
        logger.info("Record created: %s", body.get("uri"))
        return body

    def get_record(self, token: str, repo: str, collection: str, rkey: str) -> dict:
        """Return the record value stored at repo/collection/rkey."""
        body = self._request(
            "GET",
            "com.atproto.repo.getRecord",
            token=token,
            params={"repo": repo, "collection": collection, "rkey": rkey},
        )
        return body.get("value", {})

    def put_record(
        self, token: str, repo: str, collection: str, rkey: str, record: dict
    ) -> dict:
        return self._request(
            "POST",
            "com.atproto.repo.putRecord",
            token=token,
            json={
                "repo": repo,
                "collection": collection,
                "rkey": rkey,
                "record": record,
            },
        )

    def delete_record(self, token: str, repo: str, collection: str, rkey: str) -> dict:
        body = self._request(
            "POST",
            "com.atproto.repo.deleteRecord",
            token=token,
            json={"repo": repo, "collection": collection, "rkey": rkey},
        )
        logger.info("Record deleted: at://%s/%s/%s", repo, collection, rkey)
        return body

    def upload_blob(self, token: str, data: bytes, mime_type: str) -> BlobRef:
        body = self._request(
            "POST",
            "com.atproto.repo.uploadBlob",
            token=token,
            content=data,
            headers={"Content-Type": mime_type},
        )
        if "blob" not in body:
            raise UnexpectedUpstreamError(
                "com.atproto.repo.uploadBlob", 200, f"no blob in response: {body}"
            )
        logger.info("Blob uploaded successfully, size: %d bytes", len(data))
        return body["blob"]

    def create_invite_code(self, admin_password: str, use_count: int = 1) -> str:
        basic = base64.b64encode(f"admin:{admin_password}".encode()).decode()
        body = self._request(
            "POST",
            "com.atproto.server.createInviteCode",
            json={"useCount": use_count},
            headers={"Authorization": f"Basic {basic}"},
        )
        return body["code"]

    def create_account(
        self, email: str, handle: str, password: str, invite_code: str
    ) -> tuple[str, str]:
        """Create an account and return its (did, handle)."""
        body = self._request(
            "POST",
            "com.atproto.server.createAccount",
            json={
                "email": email,
                "handle": handle,
                "password": password,
                "inviteCode": invite_code,
            },
        )
        logger.info("Account created: %s %s", body["did"], body["handle"])
        return body["did"], body["handle"]

    def close(self) -> None:
        self._client.close()

    def __enter__(self):
        return self

    def __exit__(self, *args):
        self.close()


def _is_not_found(response: httpx.Response) -> bool:
    if response.status_code == 404:
        return True
    try:
        data = response.json()
    except ValueError:
        return False
    return isinstance(data, dict) and data.get("error") == "RecordNotFound"

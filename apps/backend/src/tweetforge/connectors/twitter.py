"""Twitter (X) API connector."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Optional

import httpx
from authlib.oauth1 import ClientAuth

from ..models import EngagementAction
from .base import BaseConnector, ServiceError, error_type_for_status

if TYPE_CHECKING:
    from ..config import Settings

_TWITTER_API = "https://api.twitter.com/2"
_UPLOAD_API = "https://upload.twitter.com/1.1/media"

DEFAULT_ENGAGEMENT_LIMIT = 5
# Recent search rejects max_results below 10
_SEARCH_PAGE_SIZE = 10
_FORM_CONTENT_TYPE = "application/x-www-form-urlencoded"


class OAuth1Signer(httpx.Auth):
    """Adds an OAuth 1.0a ``Authorization`` header to each httpx request.

    Signing is delegated to authlib's ``ClientAuth``. Form-encoded bodies are
    part of the signature base string; JSON bodies are not, and are sent
    unchanged.
    """

    requires_request_body = True

    def __init__(self, client_id: str, client_secret: str, token: str, token_secret: str) -> None:
        self._client = ClientAuth(
            client_id,
            client_secret=client_secret,
            token=token,
            token_secret=token_secret,
        )

    def auth_flow(self, request: httpx.Request):
        if _FORM_CONTENT_TYPE in request.headers.get("Content-Type", ""):
            headers = {"Content-Type": _FORM_CONTENT_TYPE}
            body = request.content.decode()
        else:
            headers, body = {}, b""
        _, signed, _ = self._client.sign(request.method, str(request.url), headers, body)
        request.headers["Authorization"] = signed["Authorization"]
        yield request


class TwitterConnector(BaseConnector):
    """Real Twitter connector using API v2 with OAuth 1.0a user context.

    Required settings: TWITTER_API_KEY, TWITTER_API_SECRET,
    TWITTER_ACCESS_TOKEN, TWITTER_ACCESS_SECRET
    Media uploads go through the v1.1 upload endpoint.
    """

    service_name = "twitter"

    def __init__(
        self,
        api_key: str,
        api_secret: str,
        access_token: str,
        access_secret: str,
        http_client: httpx.AsyncClient,
    ) -> None:
        super().__init__(http_client)
        self._auth = OAuth1Signer(
            client_id=api_key,
            client_secret=api_secret,
            token=access_token,
            token_secret=access_secret,
        )
        self._user_id: Optional[str] = None

    @classmethod
    def from_settings(cls, settings: Settings, http_client: httpx.AsyncClient) -> TwitterConnector:
        return cls(
            settings.twitter_api_key or "",
            settings.twitter_api_secret or "",
            settings.twitter_access_token or "",
            settings.twitter_access_secret or "",
            http_client,
        )

    @classmethod
    def is_configured(cls, settings: Settings) -> bool:
        return all(
            [
                settings.twitter_api_key,
                settings.twitter_api_secret,
                settings.twitter_access_token,
                settings.twitter_access_secret,
            ]
        )

    # ------------------------------------------------------------------
    # Actions
    # ------------------------------------------------------------------

    async def publish_tweet(
        self,
        status: str,
        alt_text: Optional[str] = None,
        thread: Optional[list[str]] = None,
        image_base64: Optional[str] = None,
    ) -> dict:
        """Post a tweet (with optional image) and chain the thread as replies."""
        media_id = None
        if image_base64:
            media_id = await self._upload_media(image_base64, alt_text)

        body: dict[str, Any] = {"text": status}
        if media_id:
            body["media"] = {"media_ids": [media_id]}
        head = await self._post_tweet(body)

        reply_to = head["id"]
        for entry in thread or []:
            reply = await self._post_tweet(
                {"text": entry, "reply": {"in_reply_to_tweet_id": reply_to}}
            )
            reply_to = reply["id"]

        self._log("publish_tweet", tweet_id=head["id"], thread=len(thread or []), media=bool(media_id))
        return head

    async def perform_engagement(self, requests: list[EngagementAction]) -> list[dict]:
        """Like, retweet or reply to explicit tweets and to search results."""
        if not requests:
            return []
        for request in requests:
            if request.action == "reply" and not request.message:
                self._fail("Reply action requires a message.", "invalid_request")
        user_id = await self.current_user_id()

        results: list[dict] = []
        for request in requests:
            limit = request.limit or DEFAULT_ENGAGEMENT_LIMIT
            targets: list[str] = []
            if request.tweet_id:
                targets.append(request.tweet_id)
            if request.search_query:
                for tweet_id in await self.search_recent(request.search_query):
                    if len(targets) >= limit:
                        break
                    targets.append(tweet_id)

            for tweet_id in targets:
                if request.action == "like":
                    data = await self._request(
                        "POST", f"{_TWITTER_API}/users/{user_id}/likes", json={"tweet_id": tweet_id}
                    )
                elif request.action == "retweet":
                    data = await self._request(
                        "POST",
                        f"{_TWITTER_API}/users/{user_id}/retweets",
                        json={"tweet_id": tweet_id},
                    )
                else:
                    data = await self._request(
                        "POST",
                        f"{_TWITTER_API}/tweets",
                        json={
                            "text": request.message,
                            "reply": {"in_reply_to_tweet_id": tweet_id},
                        },
                    )
                results.append(
                    {"action": request.action, "tweetId": tweet_id, "result": data.get("data", {})}
                )

        self._log("perform_engagement", requests=len(requests), actions=len(results))
        return results

    async def send_direct_message(
        self,
        message: str,
        recipient_handle: Optional[str] = None,
        recipient_id: Optional[str] = None,
    ) -> dict:
        """Send one DM, resolving the recipient handle to a user id if needed."""
        if not recipient_id and recipient_handle:
            recipient_id = await self.user_id_for_handle(recipient_handle)
        if not recipient_id:
            self._fail(
                "Recipient information is missing. Provide recipientId or recipientHandle.",
                "invalid_request",
            )

        data = await self._request(
            "POST",
            f"{_TWITTER_API}/dm_conversations/with/{recipient_id}/messages",
            json={"text": message},
        )
        self._log("send_direct_message", recipient_id=recipient_id)
        return data.get("data", {})

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    async def current_user_id(self) -> str:
        """Id of the authenticated account, fetched once per connector."""
        if self._user_id is None:
            data = await self._request("GET", f"{_TWITTER_API}/users/me")
            self._user_id = data["data"]["id"]
        return self._user_id

    async def user_id_for_handle(self, handle: str) -> str:
        username = handle.lstrip("@")
        data = await self._request("GET", f"{_TWITTER_API}/users/by/username/{username}")
        return data["data"]["id"]

    async def search_recent(self, query: str) -> list[str]:
        data = await self._request(
            "GET",
            f"{_TWITTER_API}/tweets/search/recent",
            params={
                "query": query,
                "max_results": _SEARCH_PAGE_SIZE,
                "tweet.fields": "author_id",
            },
        )
        return [tweet["id"] for tweet in data.get("data", []) if tweet.get("id")]

    async def _post_tweet(self, body: dict) -> dict:
        data = await self._request("POST", f"{_TWITTER_API}/tweets", json=body)
        return data["data"]

    async def _upload_media(self, image_base64: str, alt_text: Optional[str]) -> str:
        data = await self._request(
            "POST", f"{_UPLOAD_API}/upload.json", data={"media_data": image_base64}
        )
        media_id = data["media_id_string"]
        if alt_text:
            await self._request(
                "POST",
                f"{_UPLOAD_API}/metadata/create.json",
                json={"media_id": media_id, "alt_text": {"text": alt_text}},
            )
        return media_id

    async def _request(self, method: str, url: str, **kwargs) -> dict:
        try:
            resp = await self.http.request(method, url, auth=self._auth, **kwargs)
        except httpx.HTTPError as e:
            raise ServiceError(f"Twitter request failed: {e}", "connector_error") from e
        if resp.status_code >= 400:
            self._map_error(resp)
        if not resp.content:
            return {}
        return resp.json()

    def _map_error(self, resp: httpx.Response) -> None:
        detail = resp.reason_phrase
        try:
            payload = resp.json()
        except ValueError:
            payload = {}
        if isinstance(payload, dict):
            errors = payload.get("errors") or [{}]
            detail = (
                payload.get("detail")
                or payload.get("title")
                or errors[0].get("message")
                or detail
            )
        raise ServiceError(
            f"Twitter API error ({resp.status_code}): {detail}",
            error_type_for_status(resp.status_code),
        )

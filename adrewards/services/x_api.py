"""
Read-only X (Twitter) API v2 client used to check follow / like / retweet.

Capability failures (no bearer token, transport errors, timeouts, auth or
rate-limit responses, undecodable bodies) raise ExternalCapabilityError so
callers can tell them apart from a user who simply has not done the action.
"""
import logging
import re
from typing import Optional

import httpx

from adrewards.core.config import Settings, get_settings
from adrewards.core.errors import ExternalCapabilityError
from adrewards.models.x_post import XActionType

logger = logging.getLogger(__name__)

TWEET_ID_RE = re.compile(r"status/(\d+)")
USERNAME_RE = re.compile(r"(?:twitter\.com|x\.com)/([^/?#]+)")


def extract_tweet_id(post_url: str) -> Optional[str]:
    match = TWEET_ID_RE.search(post_url or "")
    return match.group(1) if match else None


def extract_username(post_url: str) -> Optional[str]:
    match = USERNAME_RE.search(post_url or "")
    return match.group(1) if match else None


class XUserNotFound(Exception):
    pass


class XApiClient:
    def __init__(self, settings: Settings, transport: Optional[httpx.AsyncBaseTransport] = None):
        self.base_url = settings.X_API_BASE_URL.rstrip("/")
        self.bearer_token = settings.X_API_BEARER_TOKEN
        self.timeout = settings.X_API_TIMEOUT_SECONDS
        self._transport = transport

    async def _get(self, endpoint: str, params: Optional[dict] = None) -> dict:
        if not self.bearer_token:
            raise ExternalCapabilityError("X API Bearer Token not configured")

        try:
            async with httpx.AsyncClient(
                base_url=self.base_url,
                timeout=self.timeout,
                transport=self._transport,
            ) as client:
                res = await client.get(
                    endpoint,
                    params=params,
                    headers={"Authorization": f"Bearer {self.bearer_token}"},
                )
        except httpx.HTTPError as e:
            raise ExternalCapabilityError(f"X API unreachable: {e.__class__.__name__}") from e

        if res.status_code == 404:
            return {}
        if res.status_code in (401, 403, 429) or res.status_code >= 500:
            raise ExternalCapabilityError(f"X API Error: {res.status_code}")
        if res.status_code >= 400:
            logger.info("X API rejected %s with %s", endpoint, res.status_code)
            return {}

        try:
            return res.json()
        except ValueError as e:
            raise ExternalCapabilityError("X API returned an undecodable body") from e

    async def user_id_for(self, username: str) -> str:
        clean = username.lstrip("@")
        data = await self._get(f"/users/by/username/{clean}")
        user_id = (data.get("data") or {}).get("id")
        if not user_id:
            raise XUserNotFound(clean)
        return user_id

    async def is_following(self, user_id: str, target_user_id: str) -> bool:
        data = await self._get(f"/users/{user_id}/following", params={"max_results": 1000})
        return any(u.get("id") == target_user_id for u in data.get("data") or [])

    async def has_liked(self, user_id: str, tweet_id: str) -> bool:
        data = await self._get(f"/users/{user_id}/liked_tweets", params={"max_results": 100})
        return any(t.get("id") == tweet_id for t in data.get("data") or [])

    async def has_retweeted(self, user_id: str, tweet_id: str) -> bool:
        data = await self._get(f"/tweets/{tweet_id}/retweeted_by", params={"max_results": 100})
        return any(u.get("id") == user_id for u in data.get("data") or [])

    async def verify(self, handle: str, post_url: str, action_type: str) -> bool:
        """True if ``handle`` has done ``action_type`` on the post at ``post_url``.

        False is a user verdict; ExternalCapabilityError means no verdict.
        """
        try:
            user_id = await self.user_id_for(handle)
            if action_type == XActionType.follow.value:
                target = extract_username(post_url)
                if not target:
                    return False
                return await self.is_following(user_id, await self.user_id_for(target))

            tweet_id = extract_tweet_id(post_url)
            if not tweet_id:
                return False
            if action_type == XActionType.like.value:
                return await self.has_liked(user_id, tweet_id)
            if action_type == XActionType.retweet.value:
                return await self.has_retweeted(user_id, tweet_id)
        except XUserNotFound as e:
            logger.info("X user not found: %s", e)
            return False
        return False


def get_x_client() -> XApiClient:
    return XApiClient(get_settings())

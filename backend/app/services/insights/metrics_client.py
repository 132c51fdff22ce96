"""
Meta Graph API metrics client.

Fetches per-post counters for Instagram media and Facebook page posts:

Instagram:
    GET {INSTAGRAM_GRAPH_API_URL}/{version}/{media_id}/insights
        ?metric=likes,comments,shares,saved,reach,impressions

Facebook:
    GET {META_GRAPH_API_URL}/{version}/{post_id}
        ?fields=shares,likes.summary(true).limit(0),comments.summary(true).limit(0)
    GET {META_GRAPH_API_URL}/{version}/{post_id}/insights
        ?metric=post_impressions,post_impressions_unique

Facebook posts have no saves; that counter is always 0.
"""

import logging
from typing import Any, Optional

import httpx

from app.core.config import settings
from app.core.exceptions import MetricsFetchError
from app.repositories.records import ConnectedAccount, PlatformMetrics

logger = logging.getLogger(__name__)

INSTAGRAM_METRICS = ("likes", "comments", "shares", "saved", "reach", "impressions")
FACEBOOK_POST_FIELDS = "shares,likes.summary(true).limit(0),comments.summary(true).limit(0)"
FACEBOOK_INSIGHT_METRICS = ("post_impressions", "post_impressions_unique")


def _insight_values(payload: dict[str, Any]) -> dict[str, int]:
    """
    Flatten a Graph API insights payload to {metric_name: value}.

    Entries carry either values[0].value or total_value.value.
    """
    values: dict[str, int] = {}
    for entry in payload.get("data") or []:
        name = entry.get("name")
        if not name:
            continue
        if entry.get("total_value") is not None:
            raw = entry["total_value"].get("value")
        else:
            raw = (entry.get("values") or [{}])[0].get("value")
        try:
            values[name] = int(raw or 0)
        except (TypeError, ValueError):
            values[name] = 0
    return values


class PlatformMetricsClient:
    """
    Async client for per-post platform metrics.

    Example:
        >>> async with PlatformMetricsClient() as client:
        ...     metrics = await client.fetch_metrics(account, "17895695668004550")
    """

    def __init__(self, http_client: Optional[httpx.AsyncClient] = None):
        self._owns_client = http_client is None
        self.http = http_client or httpx.AsyncClient(timeout=settings.META_REQUEST_TIMEOUT)

    async def __aenter__(self) -> "PlatformMetricsClient":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        if self._owns_client:
            await self.http.aclose()

    async def fetch_metrics(self, account: ConnectedAccount, external_post_id: str) -> PlatformMetrics:
        """
        Fetch counters for one post on the account's platform.

        Raises:
            MetricsFetchError: Missing token, unsupported platform, HTTP or
                payload error
        """
        if not account.access_token:
            raise MetricsFetchError("No access token available", platform=account.platform)

        if account.platform == "instagram":
            return await self._fetch_instagram(account.access_token, external_post_id)
        if account.platform == "facebook":
            return await self._fetch_facebook(account.access_token, external_post_id)

        raise MetricsFetchError(f"Unsupported platform: {account.platform}", platform=account.platform)

    async def _fetch_instagram(self, access_token: str, media_id: str) -> PlatformMetrics:
        url = f"{settings.INSTAGRAM_GRAPH_API_URL}/{settings.META_GRAPH_API_VERSION}/{media_id}/insights"
        payload = await self._get(url, {"metric": ",".join(INSTAGRAM_METRICS), "access_token": access_token})
        values = _insight_values(payload)

        return PlatformMetrics(
            likes=values.get("likes", 0),
            comments=values.get("comments", 0),
            shares=values.get("shares", 0),
            saves=values.get("saved", 0),
            reach=values.get("reach", 0),
            impressions=values.get("impressions", 0),
        )

    async def _fetch_facebook(self, access_token: str, post_id: str) -> PlatformMetrics:
        base = f"{settings.META_GRAPH_API_URL}/{settings.META_GRAPH_API_VERSION}/{post_id}"

        post = await self._get(base, {"fields": FACEBOOK_POST_FIELDS, "access_token": access_token})
        insights = await self._get(
            f"{base}/insights",
            {"metric": ",".join(FACEBOOK_INSIGHT_METRICS), "access_token": access_token},
        )
        values = _insight_values(insights)

        return PlatformMetrics(
            likes=int(((post.get("likes") or {}).get("summary") or {}).get("total_count", 0)),
            comments=int(((post.get("comments") or {}).get("summary") or {}).get("total_count", 0)),
            shares=int((post.get("shares") or {}).get("count", 0)),
            saves=0,
            reach=values.get("post_impressions_unique", 0),
            impressions=values.get("post_impressions", 0),
        )

    async def _get(self, url: str, params: dict[str, str]) -> dict[str, Any]:
        try:
            response = await self.http.get(url, params=params)
            response.raise_for_status()
            payload = response.json()
        except httpx.HTTPStatusError as e:
            logger.error(f"Graph API returned {e.response.status_code} for {e.request.url.path}")
            raise MetricsFetchError(
                f"Graph API request failed with status {e.response.status_code}",
                status=e.response.status_code,
            ) from e
        except httpx.HTTPError as e:
            logger.error(f"Graph API request failed: {e}")
            raise MetricsFetchError(f"Graph API request failed: {e}") from e
        except ValueError as e:
            raise MetricsFetchError("Graph API returned invalid JSON") from e

        if not isinstance(payload, dict):
            raise MetricsFetchError("Graph API returned an unexpected payload")
        if "error" in payload:
            message = (payload["error"] or {}).get("message", "unknown error")
            raise MetricsFetchError(f"Graph API error: {message}")

        return payload

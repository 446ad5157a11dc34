"""
Suno studio API client
======================

Thin async wrapper over the handful of studio-api endpoints the player
needs:

- single clip metadata (bearer token)
- workspace feed, cursor paginated (bearer token)
- public playlist, page-number paginated (no auth)
- raw CDN downloads for audio and cover art

Pages are fetched sequentially with a fixed sleep in between so a big
workspace does not trip Suno's rate limiter.
"""

from __future__ import annotations
import asyncio
import logging
import re
from dataclasses import dataclass
from typing import Any, AsyncIterator, Dict, List, Optional, Sequence

import httpx

from .config import get_settings
from .models import Track

logger = logging.getLogger(__name__)

SUNO_API_BASE = "https://studio-api.prod.suno.com"
USER_AGENT = "Mozilla/5.0 (Windows NT 10.0; Win64; x64) Gecko/20100101 Firefox/147.0"

PAGE_SIZE = 20
BATCH_SIZE = 5
MAX_PAGES = 500

_WORKSPACE_RE = re.compile(r"(?:workspace/|wid=)([a-f0-9-]{36})", re.IGNORECASE)
_PLAYLIST_RE = re.compile(r"playlist/([a-f0-9-]{36})", re.IGNORECASE)

UNEXPECTED_RESPONSE = "Suno returned an unexpected response"

_FRIENDLY = {
    401: "Auth token expired or invalid. Please paste a fresh Bearer token from Suno.",
    403: "Access denied. Your token may have expired, try getting a new one from Suno.",
    404: "Not found. Check that the workspace/playlist ID is correct.",
    429: "Rate limited by Suno. Wait a moment and try again.",
}


def friendly_error(status: int) -> str:
    if status in _FRIENDLY:
        return _FRIENDLY[status]
    if status >= 500:
        return f"Suno servers are having issues ({status}). Try again later."
    return f"Suno API error: {status}"


class SunoError(Exception):
    def __init__(self, status: int, message: Optional[str] = None):
        self.status = status
        super().__init__(message or friendly_error(status))


def extract_workspace_id(value: str) -> str:
    m = _WORKSPACE_RE.search(value)
    return m.group(1) if m else value.strip()


def extract_playlist_id(value: str) -> str:
    m = _PLAYLIST_RE.search(value)
    return m.group(1) if m else value.strip()


@dataclass(frozen=True)
class SunoAuth:
    authorization: str
    device_id: Optional[str] = None

    @classmethod
    def from_headers(cls, authorization: Optional[str], device_id: Optional[str]) -> Optional["SunoAuth"]:
        if not authorization:
            return None
        return cls(authorization=authorization, device_id=device_id or None)


def _headers(auth: Optional[SunoAuth]) -> Dict[str, str]:
    headers = {"User-Agent": USER_AGENT}
    if auth is not None:
        headers["Authorization"] = auth.authorization
        headers["Content-Type"] = "application/json"
        if auth.device_id:
            headers["Device-Id"] = auth.device_id
    return headers


def _json_object(resp: httpx.Response) -> Dict[str, Any]:
    """Decoded body of a page response; anything but a JSON object is an upstream failure."""
    try:
        data = resp.json()
    except ValueError:
        raise SunoError(resp.status_code, UNEXPECTED_RESPONSE)
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise SunoError(resp.status_code, UNEXPECTED_RESPONSE)
    return data


def _object_list(resp: httpx.Response, value: Any) -> List[Dict[str, Any]]:
    if not value:
        return []
    if not isinstance(value, list) or not all(isinstance(v, dict) for v in value):
        raise SunoError(resp.status_code, UNEXPECTED_RESPONSE)
    return value


def _workspace_query(workspace_id: str, cursor: Optional[str], page: int) -> Dict[str, Any]:
    return {
        "cursor": cursor,
        "limit": PAGE_SIZE,
        "filters": {
            "disliked": "False",
            "trashed": "False",
            "fromStudioProject": {"presence": "False"},
            "stem": {"presence": "False"},
            "workspace": {"presence": "True", "workspaceId": workspace_id},
        },
        "page": page,
    }


class SunoClient:
    def __init__(
        self,
        http: httpx.AsyncClient,
        page_delay: float = 0.4,
        batch_delay: float = 0.2,
        base_url: str = SUNO_API_BASE,
    ):
        self.http = http
        self.page_delay = page_delay
        self.batch_delay = batch_delay
        self.base_url = base_url.rstrip("/")

    async def fetch_clip(self, clip_id: str, auth: Optional[SunoAuth] = None) -> Track:
        """Metadata for one clip; falls back to CDN placeholders on any failure."""
        track = Track.placeholder(clip_id)
        if auth is None:
            return track

        try:
            resp = await self.http.get(f"{self.base_url}/api/clip/{clip_id}", headers=_headers(auth))
            if resp.is_success:
                data = resp.json()
                if isinstance(data, dict):
                    track.apply_clip(data)
                else:
                    logger.warning("Metadata for %s: unexpected response body", clip_id)
            else:
                logger.warning("Metadata for %s: %s", clip_id, friendly_error(resp.status_code))
        except (httpx.HTTPError, ValueError) as e:
            logger.error("Failed to fetch metadata for %s: %s", clip_id, e)
        return track

    async def fetch_clips(self, ids: Sequence[str], auth: Optional[SunoAuth] = None) -> List[Track]:
        results: List[Track] = []
        for start in range(0, len(ids), BATCH_SIZE):
            batch = ids[start:start + BATCH_SIZE]
            results.extend(await asyncio.gather(*(self.fetch_clip(i, auth) for i in batch)))
            if start + BATCH_SIZE < len(ids) and self.batch_delay:
                await asyncio.sleep(self.batch_delay)
        return results

    async def fetch_workspace(self, workspace_id: str, auth: Optional[SunoAuth]) -> List[Track]:
        if auth is None:
            raise SunoError(401, "Auth required to fetch workspace")

        tracks: List[Track] = []
        cursor: Optional[str] = None
        for page in range(MAX_PAGES):
            resp = await self.http.post(
                f"{self.base_url}/api/feed/v3",
                json=_workspace_query(workspace_id, cursor, page),
                headers=_headers(auth),
            )
            if not resp.is_success:
                raise SunoError(resp.status_code)

            data = _json_object(resp)
            clips = _object_list(resp, data.get("clips"))
            if not clips:
                break
            tracks.extend(Track.from_clip(c) for c in clips if c.get("id"))
            logger.info("Workspace page %d -> %d clips (total: %d)", page, len(clips), len(tracks))

            cursor = data.get("next_cursor")
            if not data.get("has_more") or not cursor:
                break
            await self._pause()
        else:
            logger.warning("Workspace %s: stopped after %d pages", workspace_id, MAX_PAGES)
        return tracks

    async def fetch_playlist(self, playlist_id: str) -> List[Track]:
        tracks: List[Track] = []
        for page in range(1, MAX_PAGES + 1):
            resp = await self.http.get(
                f"{self.base_url}/api/playlist/{playlist_id}",
                params={"page": page},
                headers=_headers(None),
            )
            if not resp.is_success:
                raise SunoError(resp.status_code)

            data = _json_object(resp)
            items = _object_list(resp, data.get("playlist_clips"))
            if not items:
                break
            for item in items:
                clip = item.get("clip") or item
                if isinstance(clip, dict) and clip.get("id"):
                    tracks.append(Track.from_clip(clip))
            logger.info("Playlist page %d -> %d clips (total: %d)", page, len(items), len(tracks))

            if not data.get("has_more") and len(items) < PAGE_SIZE:
                break
            await self._pause()
        else:
            logger.warning("Playlist %s: stopped after %d pages", playlist_id, MAX_PAGES)
        return tracks

    async def fetch_bytes(self, url: str) -> Optional[bytes]:
        """Body of ``url``, or None when the server answers with an error status."""
        resp = await self.http.get(url, headers=_headers(None), follow_redirects=True)
        if resp.status_code >= 400:
            return None
        return resp.content

    async def _pause(self) -> None:
        if self.page_delay:
            await asyncio.sleep(self.page_delay)


async def get_suno_client() -> AsyncIterator[SunoClient]:
    settings = get_settings()
    async with httpx.AsyncClient(timeout=settings.timeout) as http:
        yield SunoClient(http, page_delay=settings.page_delay, batch_delay=settings.batch_delay)

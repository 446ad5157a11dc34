"""
Suno Router - external track sources
====================================

Endpoints for:
- Batch metadata lookup for clip ids
- Importing every clip of a workspace (needs the user's bearer token)
- Importing a public playlist
- Downloading a clip as a tagged MP3
"""

from __future__ import annotations
import logging
import re
from typing import Any, Optional
from urllib.parse import quote

import httpx
from fastapi import APIRouter, Depends, Header, HTTPException, Query
from fastapi.responses import Response
from pydantic import BaseModel

from ..models import AUDIO_CDN
from ..suno import (
    SunoAuth,
    SunoClient,
    SunoError,
    extract_playlist_id,
    extract_workspace_id,
    get_suno_client,
)
from ..tagging import safe_filename, tag_mp3

logger = logging.getLogger(__name__)

router = APIRouter()

_CLIP_ID_RE = re.compile(r"^[A-Za-z0-9-]+$")


class MetadataRequest(BaseModel):
    ids: Optional[Any] = None


class WorkspaceRequest(BaseModel):
    workspaceId: Optional[str] = None


class PlaylistRequest(BaseModel):
    playlistId: Optional[str] = None


def _track_list(tracks) -> dict:
    return {"tracks": [t.to_dict() for t in tracks], "count": len(tracks)}


@router.post("/metadata")
async def fetch_metadata(
    body: MetadataRequest,
    authorization: Optional[str] = Header(default=None),
    device_id: Optional[str] = Header(default=None),
    client: SunoClient = Depends(get_suno_client),
):
    if not isinstance(body.ids, list) or not body.ids:
        raise HTTPException(status_code=400, detail="ids array is required")
    auth = SunoAuth.from_headers(authorization, device_id)
    tracks = await client.fetch_clips([str(i) for i in body.ids], auth)
    return {"tracks": [t.to_dict() for t in tracks]}


@router.post("/workspace")
async def fetch_workspace(
    body: WorkspaceRequest,
    authorization: Optional[str] = Header(default=None),
    device_id: Optional[str] = Header(default=None),
    client: SunoClient = Depends(get_suno_client),
):
    if not body.workspaceId:
        raise HTTPException(status_code=400, detail="workspaceId is required")
    auth = SunoAuth.from_headers(authorization, device_id)
    if auth is None:
        raise HTTPException(status_code=401, detail="Auth token required. Set it first.")

    workspace_id = extract_workspace_id(body.workspaceId)
    try:
        tracks = await client.fetch_workspace(workspace_id, auth)
    except (SunoError, httpx.HTTPError) as e:
        logger.error("Workspace fetch error: %s", e)
        raise HTTPException(status_code=502, detail=str(e))
    return _track_list(tracks)


@router.post("/playlist")
async def fetch_playlist(body: PlaylistRequest, client: SunoClient = Depends(get_suno_client)):
    if not body.playlistId:
        raise HTTPException(status_code=400, detail="playlistId is required")

    playlist_id = extract_playlist_id(body.playlistId)
    try:
        tracks = await client.fetch_playlist(playlist_id)
    except (SunoError, httpx.HTTPError) as e:
        logger.error("Playlist fetch error: %s", e)
        raise HTTPException(status_code=502, detail=str(e))
    return _track_list(tracks)


@router.get("/download/{clip_id}")
async def download_clip(
    clip_id: str,
    title: Optional[str] = Query(default=None),
    style: Optional[str] = Query(default=None),
    image: Optional[str] = Query(default=None),
    client: SunoClient = Depends(get_suno_client),
):
    if not _CLIP_ID_RE.match(clip_id):
        raise HTTPException(status_code=400, detail="Invalid clip id")
    if image and not image.lower().startswith(("http://", "https://")):
        raise HTTPException(status_code=400, detail="image must be an http(s) URL")

    raw_title = title or clip_id
    filename = safe_filename(raw_title, clip_id) + ".mp3"

    try:
        audio = await client.fetch_bytes(AUDIO_CDN.format(id=clip_id))
    except httpx.HTTPError as e:
        logger.error("Download of %s failed: %s", clip_id, e)
        raise HTTPException(status_code=502, detail=str(e))
    if audio is None:
        raise HTTPException(status_code=404, detail="File not found or unreachable")

    cover = None
    if image:
        try:
            cover = await client.fetch_bytes(image)
        except (httpx.HTTPError, httpx.InvalidURL, ValueError) as e:
            logger.warning("Skipping cover %s for %s: %s", image, clip_id, e)

    tagged = tag_mp3(audio, title=raw_title, album=style, cover=cover)
    ascii_name = filename.encode("ascii", "replace").decode("ascii").replace("?", "_")
    disposition = f"attachment; filename=\"{ascii_name}\"; filename*=UTF-8''{quote(filename)}"
    return Response(content=tagged, media_type="audio/mpeg", headers={"Content-Disposition": disposition})

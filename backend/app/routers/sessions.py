"""
Sessions Router
===============

Sessions live inside a project and hold an ordered track list plus
per-track ratings/notes. A session may carry its own password; reading
a locked session goes through ``/unlock`` (or the admin header).
"""

from __future__ import annotations
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Depends, Header, HTTPException
from fastapi.responses import JSONResponse
from pydantic import BaseModel, ConfigDict, Field

from ..config import Settings, get_settings
from ..models import Rating, Session, Track, new_session_id, newest_first
from ..security import can_modify, hash_password, is_admin, verify_password
from ..storage import ProjectStore, get_store
from .projects import UnlockRequest, get_project_or_404

router = APIRouter()


# ==================== MODELS ====================

class TrackIn(BaseModel):
    model_config = ConfigDict(extra="allow")

    id: str = Field(min_length=1)
    title: Optional[str] = None
    style: Optional[str] = None
    imageUrl: Optional[str] = None
    audioUrl: Optional[str] = None
    duration: Optional[float] = None

    def to_track(self) -> Track:
        return Track.from_dict(self.model_dump())


class CreateSessionRequest(BaseModel):
    name: Optional[str] = None
    tracks: List[TrackIn] = []
    icon: Optional[str] = None
    password: Optional[str] = None
    workspaceId: Optional[str] = None


class UpdateSessionRequest(BaseModel):
    tracks: Optional[List[TrackIn]] = None
    newTracks: Optional[List[TrackIn]] = None
    ratings: Optional[Dict[str, Dict[str, Any]]] = None
    name: Optional[str] = None
    icon: Optional[str] = None
    workspaceId: Optional[str] = None


class RateRequest(BaseModel):
    trackId: Optional[str] = None
    rating: Optional[int] = Field(default=None, ge=0, le=5)
    note: Optional[str] = None
    title: Optional[str] = None
    imageUrl: Optional[str] = None
    style: Optional[str] = None


class ImportSessionRequest(BaseModel):
    model_config = ConfigDict(extra="ignore")

    name: str = Field(min_length=1)
    icon: Optional[str] = None
    tracks: List[TrackIn] = []
    ratings: Dict[str, Dict[str, Any]] = {}
    workspaceId: Optional[str] = None
    password: Optional[str] = None


# ==================== HELPERS ====================

def get_session_or_404(project, session_id: str) -> Session:
    session = project.sessions.get(session_id)
    if not session:
        raise HTTPException(status_code=404, detail="Session not found")
    return session


def _require_readable(session: Session, admin: bool, supplied: Optional[str] = None) -> None:
    if session.locked and not admin and not (supplied and verify_password(supplied, session.password_hash)):
        raise HTTPException(status_code=403, detail={"error": "Password required", "locked": True})


# ==================== ENDPOINTS ====================

@router.get("")
def list_sessions(slug: str, store: ProjectStore = Depends(get_store)):
    project = get_project_or_404(store.load(), slug)
    return newest_first([s.summary() for s in project.sessions.values()])


@router.post("")
def create_session(slug: str, body: CreateSessionRequest, store: ProjectStore = Depends(get_store)):
    if not body.name:
        raise HTTPException(status_code=400, detail="name is required")

    with store.transaction() as projects:
        project = get_project_or_404(projects, slug)
        session = Session(
            id=new_session_id(),
            name=body.name,
            workspace_id=body.workspaceId or None,
            password_hash=hash_password(body.password) if body.password else None,
        )
        if body.icon:
            session.icon = body.icon
        session.tracks = [t.to_track() for t in body.tracks]
        project.add_session(session)
    return {"ok": True, "id": session.id}


@router.post("/import")
def import_session(slug: str, body: ImportSessionRequest, store: ProjectStore = Depends(get_store)):
    """Create a new session from a file produced by ``/export``."""
    with store.transaction() as projects:
        project = get_project_or_404(projects, slug)
        session = Session(
            id=new_session_id(),
            name=body.name,
            workspace_id=body.workspaceId or None,
            password_hash=hash_password(body.password) if body.password else None,
            ratings={tid: Rating.from_dict(r) for tid, r in body.ratings.items()},
        )
        if body.icon:
            session.icon = body.icon
        session.add_tracks(t.to_track() for t in body.tracks)
        project.add_session(session)
    return {"ok": True, "id": session.id, "trackCount": len(session.tracks)}


@router.get("/{session_id}")
def get_session(
    slug: str,
    session_id: str,
    x_admin_password: Optional[str] = Header(default=None),
    store: ProjectStore = Depends(get_store),
    settings: Settings = Depends(get_settings),
):
    project = get_project_or_404(store.load(), slug)
    session = get_session_or_404(project, session_id)
    _require_readable(session, is_admin(x_admin_password, settings))
    return session.public_dict()


@router.post("/{session_id}/unlock")
def unlock_session(
    slug: str,
    session_id: str,
    body: UnlockRequest,
    x_admin_password: Optional[str] = Header(default=None),
    store: ProjectStore = Depends(get_store),
    settings: Settings = Depends(get_settings),
):
    project = get_project_or_404(store.load(), slug)
    session = get_session_or_404(project, session_id)
    if is_admin(x_admin_password, settings):
        return {**session.public_dict(), "admin": True}
    if not verify_password(body.password, session.password_hash):
        raise HTTPException(status_code=403, detail="Wrong password")
    return session.public_dict()


@router.put("/{session_id}")
def update_session(
    slug: str,
    session_id: str,
    body: UpdateSessionRequest,
    store: ProjectStore = Depends(get_store),
):
    added = 0
    with store.transaction() as projects:
        project = get_project_or_404(projects, slug)
        session = get_session_or_404(project, session_id)

        if body.tracks is not None:
            session.tracks = [t.to_track() for t in body.tracks]
        if body.newTracks is not None:
            added = session.add_tracks(t.to_track() for t in body.newTracks)
        if body.ratings is not None:
            session.ratings = {tid: Rating.from_dict(r) for tid, r in body.ratings.items()}
        if body.name is not None:
            session.name = body.name
        if body.icon is not None:
            session.icon = body.icon
        if body.workspaceId is not None:
            session.workspace_id = body.workspaceId or None
        session.touch()
    return {"ok": True, "added": added}


@router.delete("/{session_id}")
def delete_session(
    slug: str,
    session_id: str,
    x_admin_password: Optional[str] = Header(default=None),
    x_session_password: Optional[str] = Header(default=None),
    store: ProjectStore = Depends(get_store),
    settings: Settings = Depends(get_settings),
):
    with store.transaction() as projects:
        project = get_project_or_404(projects, slug)
        session = get_session_or_404(project, session_id)
        admin = is_admin(x_admin_password, settings)
        if not can_modify(session.password_hash, x_session_password, admin):
            raise HTTPException(status_code=403, detail="Unauthorized to delete session")
        del project.sessions[session_id]
    return {"ok": True}


@router.post("/{session_id}/rate")
def rate_track(
    slug: str,
    session_id: str,
    body: RateRequest,
    store: ProjectStore = Depends(get_store),
):
    if not body.trackId:
        raise HTTPException(status_code=400, detail="trackId is required")

    fields = body.model_dump(exclude_unset=True, exclude={"trackId"})
    with store.transaction() as projects:
        project = get_project_or_404(projects, slug)
        session = get_session_or_404(project, session_id)
        rating = session.rate(body.trackId, fields)
    return {"ok": True, "rating": rating.to_dict()}


@router.get("/{session_id}/export")
def export_session(
    slug: str,
    session_id: str,
    x_admin_password: Optional[str] = Header(default=None),
    x_session_password: Optional[str] = Header(default=None),
    store: ProjectStore = Depends(get_store),
    settings: Settings = Depends(get_settings),
):
    project = get_project_or_404(store.load(), slug)
    session = get_session_or_404(project, session_id)
    _require_readable(session, is_admin(x_admin_password, settings), x_session_password)
    return JSONResponse(
        content=session.public_dict(),
        headers={"Content-Disposition": f"attachment; filename=suno-session-{session_id}.json"},
    )

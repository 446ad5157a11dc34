from __future__ import annotations
from typing import Optional

from fastapi import APIRouter, Depends, Header, HTTPException
from pydantic import BaseModel, Field

from ..config import Settings, get_settings
from ..models import Project, newest_first
from ..security import can_modify, hash_password, is_admin, verify_password
from ..storage import ProjectStore, get_store

router = APIRouter()

RESERVED_SLUGS = {"api", "static"}


def get_project_or_404(projects: dict, slug: str) -> Project:
    project = projects.get(slug)
    if not project:
        raise HTTPException(status_code=404, detail="Project not found")
    return project


class CreateProjectRequest(BaseModel):
    title: Optional[str] = None
    slug: Optional[str] = Field(default=None, pattern=r"^[A-Za-z0-9][A-Za-z0-9_-]*$", max_length=64)
    password: Optional[str] = None
    description: Optional[str] = None


class UnlockRequest(BaseModel):
    password: Optional[str] = None


@router.get("")
def list_projects(store: ProjectStore = Depends(get_store)):
    projects = store.load()
    return newest_first([p.summary() for p in projects.values()])


@router.post("")
def create_project(body: CreateProjectRequest, store: ProjectStore = Depends(get_store)):
    if not body.title or not body.slug:
        raise HTTPException(status_code=400, detail="Title and slug required")
    if body.slug.lower() in RESERVED_SLUGS:
        raise HTTPException(status_code=400, detail="Project slug is reserved")

    with store.transaction() as projects:
        if body.slug in projects:
            raise HTTPException(status_code=400, detail="Project slug already exists")
        projects[body.slug] = Project(
            slug=body.slug,
            title=body.title,
            description=body.description or "",
            password_hash=hash_password(body.password) if body.password else None,
        )
    return {"ok": True, "slug": body.slug}


@router.post("/{slug}/unlock")
def unlock_project(
    slug: str,
    body: UnlockRequest,
    x_admin_password: Optional[str] = Header(default=None),
    store: ProjectStore = Depends(get_store),
    settings: Settings = Depends(get_settings),
):
    project = get_project_or_404(store.load(), slug)
    if not project.locked:
        return {"ok": True}
    if is_admin(x_admin_password, settings):
        return {"ok": True, "admin": True}
    if not verify_password(body.password, project.password_hash):
        raise HTTPException(status_code=403, detail="Wrong password")
    return {"ok": True}


@router.delete("/{slug}")
def delete_project(
    slug: str,
    x_admin_password: Optional[str] = Header(default=None),
    x_project_password: Optional[str] = Header(default=None),
    store: ProjectStore = Depends(get_store),
    settings: Settings = Depends(get_settings),
):
    with store.transaction() as projects:
        project = get_project_or_404(projects, slug)
        admin = is_admin(x_admin_password, settings)
        if not can_modify(project.password_hash, x_project_password, admin):
            raise HTTPException(status_code=403, detail="Unauthorized to delete project")
        del projects[slug]
    return {"ok": True}

from __future__ import annotations
import logging
from contextlib import asynccontextmanager

from fastapi import Depends, FastAPI, HTTPException, Request
from fastapi.responses import FileResponse, JSONResponse, RedirectResponse
from fastapi.staticfiles import StaticFiles

from .config import Settings, get_settings
from .routers import projects, sessions, suno
from .storage import ProjectStore, StorageError, get_store

settings = get_settings()

logging.basicConfig(
    level=settings.log_level,
    format="%(asctime)s [%(name)s] %(levelname)s: %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    store = app.dependency_overrides.get(get_store, get_store)()
    store.data_dir.mkdir(parents=True, exist_ok=True)
    store.migrate_legacy_sessions()
    logger.info("Suno Player ready, data in %s", store.data_dir)
    yield


app = FastAPI(title="Suno Session Player", version="0.1.0", lifespan=lifespan)


@app.exception_handler(StorageError)
async def storage_error_handler(request: Request, exc: StorageError):
    return JSONResponse(status_code=500, content={"detail": str(exc)})


app.include_router(projects.router, prefix="/api/projects", tags=["Projects"])
app.include_router(sessions.router, prefix="/api/projects/{slug}/sessions", tags=["Sessions"])
app.include_router(suno.router, prefix="/api", tags=["Suno"])


# Static mounting (only if frontend exists)
if settings.public_dir.is_dir():
    app.mount("/static", StaticFiles(directory=str(settings.public_dir), html=True), name="static")


@app.get("/")
def root():
    """Redirect root to static frontend."""
    return RedirectResponse(url="/static/", status_code=307)


@app.get("/api/health")
def health(store: ProjectStore = Depends(get_store)):
    return {"status": "ok", "projects": len(store.load())}


@app.get("/{slug}")
def project_page(slug: str, settings: Settings = Depends(get_settings)):
    """Every top-level slug renders the shared project page."""
    page = settings.public_dir / "project.html"
    if slug == "api" or not page.is_file():
        raise HTTPException(status_code=404, detail="Not found")
    return FileResponse(str(page), media_type="text/html")


if __name__ == "__main__":
    import uvicorn
    uvicorn.run("backend.app.main:app", host=settings.host, port=settings.port)

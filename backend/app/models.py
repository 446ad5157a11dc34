from __future__ import annotations
import random
import string
import time
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, Iterable, List, Optional

AUDIO_CDN = "https://cdn1.suno.ai/{id}.mp3"
IMAGE_CDN = "https://cdn2.suno.ai/image_{id}.jpeg"
DEFAULT_ICON = "🎧"

_BASE36 = string.digits + string.ascii_lowercase
_EPOCH = datetime.min.replace(tzinfo=timezone.utc)


def utc_now() -> str:
    """ISO timestamp with milliseconds and a trailing Z."""
    stamp = datetime.now(timezone.utc).isoformat(timespec="milliseconds")
    return stamp.replace("+00:00", "Z")


def parse_timestamp(value: Optional[str]) -> datetime:
    if not value:
        return _EPOCH
    try:
        parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        return _EPOCH
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def _base36(number: int) -> str:
    if number == 0:
        return "0"
    digits = []
    while number:
        number, rem = divmod(number, 36)
        digits.append(_BASE36[rem])
    return "".join(reversed(digits))


def new_session_id() -> str:
    suffix = "".join(random.choice(_BASE36) for _ in range(4))
    return _base36(int(time.time() * 1000)) + suffix


_TRACK_KEYS = {"id", "title", "style", "imageUrl", "audioUrl", "duration"}


@dataclass
class Track:
    id: str
    title: Optional[str] = None
    style: Optional[str] = None
    image_url: Optional[str] = None
    audio_url: Optional[str] = None
    duration: Optional[float] = None
    # client-side keys this server does not interpret, stored as sent
    extra: Dict[str, Any] = field(default_factory=dict)

    @classmethod
    def placeholder(cls, track_id: str) -> "Track":
        return cls(
            id=track_id,
            image_url=IMAGE_CDN.format(id=track_id),
            audio_url=AUDIO_CDN.format(id=track_id),
        )

    @classmethod
    def from_clip(cls, clip: Dict[str, Any]) -> "Track":
        """Map a clip object as returned by the Suno studio API."""
        track = cls.placeholder(clip["id"])
        track.apply_clip(clip)
        return track

    def apply_clip(self, clip: Dict[str, Any]) -> None:
        meta = clip.get("metadata") or {}
        self.title = clip.get("title") or None
        self.style = meta.get("tags") or meta.get("prompt") or None
        self.image_url = clip.get("image_url") or clip.get("image_large_url") or self.image_url
        self.audio_url = clip.get("audio_url") or self.audio_url
        self.duration = meta.get("duration") or None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Track":
        return cls(
            id=data["id"],
            title=data.get("title"),
            style=data.get("style"),
            image_url=data.get("imageUrl"),
            audio_url=data.get("audioUrl"),
            duration=data.get("duration"),
            extra={k: v for k, v in data.items() if k not in _TRACK_KEYS},
        )

    def to_dict(self) -> Dict[str, Any]:
        data = dict(self.extra)
        data.update({
            "id": self.id,
            "title": self.title,
            "style": self.style,
            "imageUrl": self.image_url,
            "audioUrl": self.audio_url,
            "duration": self.duration,
        })
        return data


# camelCase wire name -> attribute
_RATING_FIELDS = {
    "rating": "rating",
    "note": "note",
    "title": "title",
    "imageUrl": "image_url",
    "style": "style",
    "updatedAt": "updated_at",
}


@dataclass
class Rating:
    rating: Optional[int] = None
    note: Optional[str] = None
    title: Optional[str] = None
    image_url: Optional[str] = None
    style: Optional[str] = None
    updated_at: Optional[str] = None

    def merge(self, fields: Dict[str, Any]) -> None:
        """Overwrite only the given wire fields, then stamp updatedAt."""
        for key, value in fields.items():
            attr = _RATING_FIELDS.get(key)
            if attr and attr != "updated_at":
                setattr(self, attr, value)
        self.updated_at = utc_now()

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Rating":
        r = cls()
        for key, attr in _RATING_FIELDS.items():
            if key in data:
                setattr(r, attr, data[key])
        return r

    def to_dict(self) -> Dict[str, Any]:
        out = {}
        for key, attr in _RATING_FIELDS.items():
            value = getattr(self, attr)
            if value is not None:
                out[key] = value
        return out


@dataclass
class Session:
    id: str
    name: str
    icon: str = DEFAULT_ICON
    tracks: List[Track] = field(default_factory=list)
    ratings: Dict[str, Rating] = field(default_factory=dict)
    created_at: str = field(default_factory=utc_now)
    updated_at: Optional[str] = None
    workspace_id: Optional[str] = None
    password_hash: Optional[str] = None

    @property
    def locked(self) -> bool:
        return bool(self.password_hash)

    @property
    def rated_count(self) -> int:
        return sum(1 for r in self.ratings.values() if r.rating)

    def add_tracks(self, tracks: Iterable[Track]) -> int:
        existing = {t.id for t in self.tracks}
        added = 0
        for t in tracks:
            if t.id in existing:
                continue
            self.tracks.append(t)
            existing.add(t.id)
            added += 1
        return added

    def rate(self, track_id: str, fields: Dict[str, Any]) -> Rating:
        rating = self.ratings.setdefault(track_id, Rating())
        rating.merge(fields)
        return rating

    def touch(self) -> None:
        self.updated_at = utc_now()

    def summary(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "icon": self.icon or DEFAULT_ICON,
            "locked": self.locked,
            "createdAt": self.created_at,
            "trackCount": len(self.tracks),
            "ratedCount": self.rated_count,
            "workspaceId": self.workspace_id,
        }

    def public_dict(self) -> Dict[str, Any]:
        data = self.to_dict()
        data.pop("passwordHash", None)
        return data

    @classmethod
    def from_dict(cls, session_id: str, data: Dict[str, Any]) -> "Session":
        return cls(
            id=session_id,
            name=data.get("name") or "",
            icon=data.get("icon") or DEFAULT_ICON,
            tracks=[Track.from_dict(t) for t in data.get("tracks") or [] if t.get("id")],
            ratings={tid: Rating.from_dict(r) for tid, r in (data.get("ratings") or {}).items()},
            created_at=data.get("createdAt") or utc_now(),
            updated_at=data.get("updatedAt"),
            workspace_id=data.get("workspaceId"),
            password_hash=data.get("passwordHash"),
        )

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {
            "name": self.name,
            "icon": self.icon,
            "tracks": [t.to_dict() for t in self.tracks],
            "ratings": {tid: r.to_dict() for tid, r in self.ratings.items()},
            "createdAt": self.created_at,
        }
        if self.updated_at:
            data["updatedAt"] = self.updated_at
        if self.workspace_id:
            data["workspaceId"] = self.workspace_id
        if self.password_hash:
            data["passwordHash"] = self.password_hash
        return data


@dataclass
class Project:
    slug: str
    title: str
    description: str = ""
    sessions: Dict[str, Session] = field(default_factory=dict)
    created_at: str = field(default_factory=utc_now)
    password_hash: Optional[str] = None

    @property
    def locked(self) -> bool:
        return bool(self.password_hash)

    def add_session(self, session: Session) -> str:
        self.sessions[session.id] = session
        return session.id

    def summary(self) -> Dict[str, Any]:
        return {
            "slug": self.slug,
            "title": self.title,
            "description": self.description or "",
            "locked": self.locked,
            "createdAt": self.created_at,
            "sessionCount": len(self.sessions),
        }

    @classmethod
    def from_dict(cls, slug: str, data: Dict[str, Any]) -> "Project":
        sessions = data.get("sessions") or {}
        return cls(
            slug=data.get("slug") or slug,
            title=data.get("title") or slug,
            description=data.get("description") or "",
            sessions={sid: Session.from_dict(sid, s) for sid, s in sessions.items()},
            created_at=data.get("createdAt") or utc_now(),
            password_hash=data.get("passwordHash"),
        )

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {
            "slug": self.slug,
            "title": self.title,
            "description": self.description,
            "sessions": {sid: s.to_dict() for sid, s in self.sessions.items()},
            "createdAt": self.created_at,
        }
        if self.password_hash:
            data["passwordHash"] = self.password_hash
        return data


def newest_first(items: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
    return sorted(items, key=lambda x: parse_timestamp(x.get("createdAt")), reverse=True)
